"""Client library for discovering and invoking Toolbox tools."""

from toolbox_client.client import ToolboxClient
from toolbox_client.protocol import Protocol
from toolbox_client.tool import ToolboxTool, build_tool
from toolbox_client.version import __version__

__all__ = [
    "Protocol",
    "ToolboxClient",
    "ToolboxTool",
    "build_tool",
    "__version__",
]
