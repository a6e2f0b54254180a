"""Shared models, validation, configuration and logging for the Toolbox client."""

from shared.config import ToolboxSettings, get_settings
from shared.errors import (
    ArgumentValidationError,
    AuthRequirementError,
    ManifestStructureError,
    ProtocolError,
    RebindError,
    RpcError,
    ToolboxError,
    ToolNotFoundError,
    TransportError,
    UnusedBindingError,
)
from shared.logging import get_logger, setup_logging
from shared.models import ManifestSchema, ParameterSchema, ToolSchema
from shared.schema import ParameterValidator

__all__ = [
    "ArgumentValidationError",
    "AuthRequirementError",
    "ManifestSchema",
    "ManifestStructureError",
    "ParameterSchema",
    "ParameterValidator",
    "ProtocolError",
    "RebindError",
    "RpcError",
    "ToolSchema",
    "ToolboxError",
    "ToolboxSettings",
    "ToolNotFoundError",
    "TransportError",
    "UnusedBindingError",
    "get_logger",
    "get_settings",
    "setup_logging",
]
