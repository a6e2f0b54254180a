"""Wire protocols understood by the Toolbox client."""

from enum import Enum


class Protocol(str, Enum):
    """Protocol used to talk to a Toolbox server."""
    TOOLBOX = "toolbox"
    MCP_v20241105 = "2024-11-05"
    MCP_v20250326 = "2025-03-26"
    MCP_v20250618 = "2025-06-18"
    MCP_v20251125 = "2025-11-25"

    # Default MCP revision; an alias of MCP_v20250618.
    MCP = "2025-06-18"

    @property
    def is_mcp(self) -> bool:
        return self is not Protocol.TOOLBOX

    @staticmethod
    def get_supported_mcp_versions() -> list[str]:
        """Return the MCP protocol versions the client can negotiate."""
        return [p.value for p in Protocol if p is not Protocol.TOOLBOX]
