"""Exception hierarchy for the Toolbox client.

Validation and binding errors are raised before any network I/O.
Transport and protocol errors are logged once where they occur and
propagated unchanged to the caller.
"""

from typing import Optional


class ToolboxError(Exception):
    """Base exception for Toolbox client errors."""
    pass


class ManifestStructureError(ToolboxError):
    """Server response does not match the manifest structure."""
    pass


class ToolNotFoundError(ToolboxError):
    """Requested tool is absent from the manifest."""
    pass


class UnusedBindingError(ToolboxError):
    """Auth token getters or bound parameters were never consumed."""
    pass


class RebindError(ToolboxError):
    """A parameter or auth source was bound twice, or is not known to the tool."""
    pass


class ArgumentValidationError(ToolboxError):
    """Tool arguments failed the parameter validator."""

    def __init__(self, message: str, errors: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class AuthRequirementError(ToolboxError, PermissionError):
    """Invocation-level auth sources are still unsatisfied."""
    pass


class ProtocolError(ToolboxError):
    """MCP handshake or envelope violated the protocol."""
    pass


class RpcError(ToolboxError):
    """Server reported an error for the request."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


class TransportError(ToolboxError):
    """HTTP request failed or returned a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
