"""MCP transport for protocol revision 2025-11-25."""

from typing import Optional

import httpx

from toolbox_client.mcp.v20250618 import McpHttpTransportV20250618
from toolbox_client.protocol import Protocol


class McpHttpTransportV20251125(McpHttpTransportV20250618):
    """Same request shaping as 2025-06-18 under a newer version string."""

    def __init__(
        self,
        base_url: str,
        session: Optional[httpx.AsyncClient] = None,
        protocol: Protocol = Protocol.MCP_v20251125,
        client_name: Optional[str] = None,
        client_version: Optional[str] = None,
        timeout: float = 30.0
    ) -> None:
        super().__init__(base_url, session, protocol, client_name, client_version, timeout)
