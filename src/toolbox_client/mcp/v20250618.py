"""MCP transport for protocol revision 2025-06-18."""

from collections.abc import Mapping
from typing import Optional

import httpx

from toolbox_client.mcp.base import McpHttpTransportBase
from toolbox_client.protocol import Protocol

PROTOCOL_VERSION_HEADER = "MCP-Protocol-Version"


class McpHttpTransportV20250618(McpHttpTransportBase):
    """Revision announcing the protocol version on every request."""

    def __init__(
        self,
        base_url: str,
        session: Optional[httpx.AsyncClient] = None,
        protocol: Protocol = Protocol.MCP_v20250618,
        client_name: Optional[str] = None,
        client_version: Optional[str] = None,
        timeout: float = 30.0
    ) -> None:
        super().__init__(base_url, session, protocol, client_name, client_version, timeout)

    def _request_headers(self, headers: Optional[Mapping[str, str]]) -> dict[str, str]:
        request_headers = super()._request_headers(headers)
        request_headers[PROTOCOL_VERSION_HEADER] = self._protocol_version
        return request_headers
