"""MCP transport for protocol revision 2024-11-05."""

from typing import Optional

import httpx

from toolbox_client.mcp.base import McpHttpTransportBase
from toolbox_client.protocol import Protocol


class McpHttpTransportV20241105(McpHttpTransportBase):
    """Stateless revision: no session id, no protocol-version header."""

    def __init__(
        self,
        base_url: str,
        session: Optional[httpx.AsyncClient] = None,
        protocol: Protocol = Protocol.MCP_v20241105,
        client_name: Optional[str] = None,
        client_version: Optional[str] = None,
        timeout: float = 30.0
    ) -> None:
        super().__init__(base_url, session, protocol, client_name, client_version, timeout)
