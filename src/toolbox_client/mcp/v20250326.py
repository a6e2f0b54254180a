"""MCP transport for protocol revision 2025-03-26."""

from collections.abc import Mapping
from typing import Optional

import httpx

from shared.errors import ProtocolError
from toolbox_client.mcp.base import McpHttpTransportBase
from toolbox_client.protocol import Protocol

SESSION_ID_HEADER = "Mcp-Session-Id"


class McpHttpTransportV20250326(McpHttpTransportBase):
    """
    Session-aware revision.

    The server must assign a session id in its reply to ``initialize``;
    the id is echoed on every later request.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[httpx.AsyncClient] = None,
        protocol: Protocol = Protocol.MCP_v20250326,
        client_name: Optional[str] = None,
        client_version: Optional[str] = None,
        timeout: float = 30.0
    ) -> None:
        super().__init__(base_url, session, protocol, client_name, client_version, timeout)
        self._session_id: Optional[str] = None

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    def _request_headers(self, headers: Optional[Mapping[str, str]]) -> dict[str, str]:
        request_headers = super()._request_headers(headers)
        if self._session_id:
            request_headers[SESSION_ID_HEADER] = self._session_id
        return request_headers

    def _on_response(self, method: str, response: httpx.Response) -> None:
        if method != "initialize":
            return

        session_id = response.headers.get(SESSION_ID_HEADER)
        if not session_id:
            raise ProtocolError(
                f"Server did not return a {SESSION_ID_HEADER} during initialization."
            )
        self._session_id = session_id
