"""MCP-over-HTTP transports, one per protocol revision."""

from toolbox_client.mcp.base import McpHttpTransportBase
from toolbox_client.mcp.v20241105 import McpHttpTransportV20241105
from toolbox_client.mcp.v20250326 import McpHttpTransportV20250326
from toolbox_client.mcp.v20250618 import McpHttpTransportV20250618
from toolbox_client.mcp.v20251125 import McpHttpTransportV20251125
from toolbox_client.protocol import Protocol

TRANSPORTS: dict[Protocol, type[McpHttpTransportBase]] = {
    Protocol.MCP_v20241105: McpHttpTransportV20241105,
    Protocol.MCP_v20250326: McpHttpTransportV20250326,
    Protocol.MCP_v20250618: McpHttpTransportV20250618,
    Protocol.MCP_v20251125: McpHttpTransportV20251125,
}

__all__ = [
    "McpHttpTransportBase",
    "McpHttpTransportV20241105",
    "McpHttpTransportV20250326",
    "McpHttpTransportV20250618",
    "McpHttpTransportV20251125",
    "TRANSPORTS",
]
