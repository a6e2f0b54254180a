"""Shared implementation of the MCP-over-HTTP transports.

Every protocol revision uses the same handshake, discovery and invocation
algorithms. Subclasses only shape requests: which headers are added and
what is captured from the ``initialize`` reply.
"""

import asyncio
import json
import uuid
from collections.abc import Mapping
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from shared.errors import (
    ManifestStructureError,
    ProtocolError,
    RpcError,
    ToolboxError,
    ToolNotFoundError,
    TransportError,
)
from shared.logging import get_logger
from shared.models import (
    AdditionalPropertiesSchema,
    ManifestSchema,
    ParameterSchema,
    ParameterType,
    ToolSchema,
    TypeSchema,
)
from toolbox_client.mcp import types
from toolbox_client.protocol import Protocol
from toolbox_client.transport import Transport
from toolbox_client.utils import warn_if_http_and_headers
from toolbox_client.version import CLIENT_NAME, __version__

logger = get_logger(__name__)

OK_STATUSES = (200, 202, 204)
NO_CONTENT_STATUSES = (202, 204)

AUTH_PARAM_META = "toolbox/authParam"
AUTH_INVOKE_META = "toolbox/authInvoke"

# JSON Schema type -> manifest parameter type
JSON_TYPE_MAPPING = {
    "string": ParameterType.STRING,
    "integer": ParameterType.INTEGER,
    "number": ParameterType.FLOAT,
    "float": ParameterType.FLOAT,
    "boolean": ParameterType.BOOLEAN,
    "array": ParameterType.ARRAY,
    "object": ParameterType.OBJECT,
}


def _is_json_object(text: str) -> bool:
    try:
        return isinstance(json.loads(text), dict)
    except (ValueError, RecursionError):
        return False


class McpHttpTransportBase(Transport):
    """
    JSON-RPC 2.0 transport posting to ``{base_url}/mcp/``.

    Session lifecycle: the first discovery or invocation call starts the
    handshake as a single task; every caller, concurrent or later, awaits
    that same task. A failed handshake stays failed for the lifetime of
    the transport.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[httpx.AsyncClient] = None,
        protocol: Protocol = Protocol.MCP,
        client_name: Optional[str] = None,
        client_version: Optional[str] = None,
        timeout: float = 30.0
    ) -> None:
        super().__init__(base_url, session, timeout)
        self._mcp_base_url = f"{self._base_url}/mcp/"
        self._protocol_version = Protocol(protocol).value
        self._server_version: Optional[str] = None
        self._client_name = client_name or CLIENT_NAME
        self._client_version = client_version or __version__
        self._init_task: Optional[asyncio.Task] = None

    @property
    def base_url(self) -> str:
        return self._mcp_base_url

    @property
    def protocol_version(self) -> str:
        return self._protocol_version

    @property
    def server_version(self) -> Optional[str]:
        """Server version recorded during the handshake."""
        return self._server_version

    # Request shaping hooks

    def _request_headers(self, headers: Optional[Mapping[str, str]]) -> dict[str, str]:
        """Headers sent with every request."""
        return dict(headers or {})

    def _on_response(self, method: str, response: httpx.Response) -> None:
        """Inspect a successful, non-empty reply to a request."""
        pass

    # JSON-RPC

    async def _send_request(
        self,
        url: str,
        request: Union[types.MCPRequest, types.MCPNotification],
        params: Optional[dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None
    ) -> Optional[Any]:
        """
        Post a JSON-RPC request or notification.

        Returns:
            The parsed result model, or None for notifications and for
            202/204 replies

        Raises:
            TransportError: On network failure or a non-success status
            RpcError: If the server replied with a JSON-RPC error
            ProtocolError: If the reply is not a valid JSON-RPC response
        """
        is_notification = isinstance(request, types.MCPNotification)
        if is_notification:
            payload = types.JSONRPCNotification(method=request.method, params=params)
        else:
            payload = types.JSONRPCRequest(id=str(uuid.uuid4()), method=request.method, params=params)

        try:
            return await self._post(url, request, payload.model_dump(), headers, is_notification)
        except ToolboxError as e:
            logger.error("MCP request failed", url=url, method=request.method, error=str(e))
            raise

    async def _post(
        self,
        url: str,
        request: Union[types.MCPRequest, types.MCPNotification],
        payload: dict[str, Any],
        headers: Optional[Mapping[str, str]],
        is_notification: bool
    ) -> Optional[Any]:
        try:
            response = await self._session.post(url, json=payload, headers=self._request_headers(headers))
        except httpx.HTTPError as e:
            raise TransportError(f"Cannot connect to MCP server: {e}") from e

        if response.status_code not in OK_STATUSES:
            raise TransportError(
                f"API request failed with status {response.status_code} "
                f"({response.reason_phrase}). Server response: {response.text}",
                status_code=response.status_code,
            )

        # Notifications expect no reply; any body is accepted.
        if is_notification or response.status_code in NO_CONTENT_STATUSES:
            return None

        try:
            body = response.json()
        except ValueError as e:
            raise ProtocolError("Failed to parse JSON-RPC response structure") from e

        if isinstance(body, dict) and body.get("error") is not None:
            try:
                error = types.JSONRPCError.model_validate(body).error
            except ValidationError:
                raise RpcError(f"MCP request failed: {json.dumps(body['error'])}")
            raise RpcError(f"MCP request failed with code {error.code}: {error.message}", code=error.code)

        try:
            rpc_response = types.JSONRPCResponse.model_validate(body)
        except ValidationError as e:
            raise ProtocolError("Failed to parse JSON-RPC response structure") from e

        try:
            result = request.result_model.model_validate(rpc_response.result)
        except ValidationError as e:
            raise ProtocolError(f"Invalid result for '{request.method}': {e}") from e

        self._on_response(request.method, response)
        return result

    # Handshake

    async def _ensure_initialized(self, headers: Optional[Mapping[str, str]] = None) -> None:
        """Run the handshake once; concurrent callers share the same task."""
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize_session(headers))
        await asyncio.shield(self._init_task)

    def _fail(self, message: str, **context: Any) -> ProtocolError:
        logger.error(message, **context)
        return ProtocolError(message)

    async def _initialize_session(self, headers: Optional[Mapping[str, str]] = None) -> None:
        params = types.InitializeRequestParams(
            protocol_version=self._protocol_version,
            capabilities={},
            client_info=types.Implementation(name=self._client_name, version=self._client_version),
        )

        result = await self._send_request(
            self._mcp_base_url,
            types.InitializeRequest,
            params.model_dump(by_alias=True),
            headers,
        )
        if result is None:
            raise self._fail("Initialization failed: No response")

        if result.protocol_version != self._protocol_version:
            raise self._fail(
                "MCP version mismatch: client does not support server version "
                f"{result.protocol_version}"
            )

        if result.capabilities.tools is None:
            raise self._fail("Server does not support the 'tools' capability.")

        self._server_version = result.server_info.version
        logger.debug(
            "MCP session initialized",
            protocol_version=self._protocol_version,
            server_version=self._server_version,
        )

        await self._send_request(self._mcp_base_url, types.InitializedNotification, {}, headers)

    # Schema conversion

    def _convert_type_schema(self, schema: Mapping[str, Any]) -> dict[str, Any]:
        json_type = schema.get("type")
        if isinstance(json_type, list):
            json_type = next((t for t in json_type if t != "null"), None)
        param_type = JSON_TYPE_MAPPING.get(json_type, ParameterType.STRING)

        if param_type == ParameterType.ARRAY:
            items = schema.get("items") or {"type": "string"}
            return {
                "type": param_type,
                "items": TypeSchema(**self._convert_type_schema(items)),
            }

        if param_type == ParameterType.OBJECT:
            additional = schema.get("additionalProperties")
            if isinstance(additional, dict):
                value_type = JSON_TYPE_MAPPING.get(additional.get("type"), ParameterType.STRING)
                additional = AdditionalPropertiesSchema(type=value_type)
            else:
                additional = additional is not False
            return {"type": param_type, "additional_properties": additional}

        return {"type": param_type}

    def _convert_tool_schema(self, tool: types.Tool) -> ToolSchema:
        """Convert an MCP tool description into a manifest tool schema."""
        meta = tool.meta or {}
        param_auth = meta.get(AUTH_PARAM_META)
        if not isinstance(param_auth, dict):
            param_auth = {}
        invoke_auth = meta.get(AUTH_INVOKE_META)
        if not isinstance(invoke_auth, list):
            invoke_auth = []

        input_schema = tool.input_schema or {}
        properties = input_schema.get("properties") or {}
        required = set(input_schema.get("required") or [])

        parameters = [
            ParameterSchema(
                name=name,
                description=schema.get("description") or "",
                required=name in required,
                auth_sources=param_auth.get(name) or None,
                **self._convert_type_schema(schema),
            )
            for name, schema in properties.items()
        ]

        return ToolSchema(
            description=tool.description or "",
            parameters=parameters,
            auth_required=invoke_auth,
        )

    # Transport operations

    async def tools_list(
        self,
        toolset_name: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None
    ) -> ManifestSchema:
        await self._ensure_initialized(headers)
        url = f"{self._mcp_base_url}{toolset_name or ''}"

        result = await self._send_request(url, types.ListToolsRequest, {}, headers)
        if result is None:
            raise self._fail("Failed to list tools: No response from server.", url=url)

        if self._server_version is None:
            raise self._fail("Server version not available.", url=url)

        try:
            return ManifestSchema(
                server_version=self._server_version,
                tools={tool.name: self._convert_tool_schema(tool) for tool in result.tools},
            )
        except ValidationError as e:
            details = json.dumps(e.errors(include_url=False), indent=2, default=str)
            logger.error("Invalid tool list", url=url, errors=e.error_count())
            raise ManifestStructureError(
                f"Invalid manifest structure received from {url}: {details}"
            ) from e

    async def tool_get(
        self,
        tool_name: str,
        headers: Optional[Mapping[str, str]] = None
    ) -> ManifestSchema:
        manifest = await self.tools_list(None, headers)
        if tool_name not in manifest.tools:
            logger.error("Error getting tool", tool=tool_name)
            raise ToolNotFoundError(f"Tool '{tool_name}' not found.")

        return ManifestSchema(
            server_version=manifest.server_version,
            tools={tool_name: manifest.tools[tool_name]},
        )

    async def tool_invoke(
        self,
        tool_name: str,
        arguments: Mapping[str, Any],
        headers: Mapping[str, str]
    ) -> str:
        await self._ensure_initialized(headers)
        warn_if_http_and_headers(self._mcp_base_url, headers)

        params = types.CallToolRequestParams(name=tool_name, arguments=dict(arguments))
        result = await self._send_request(
            self._mcp_base_url,
            types.CallToolRequest,
            params.model_dump(),
            headers,
        )
        if result is None:
            raise self._fail(
                f"Failed to invoke tool '{tool_name}': No response from server.",
                tool=tool_name,
            )

        return self._process_tool_result_content(result.content)

    @staticmethod
    def _process_tool_result_content(content: list[dict[str, Any]]) -> str:
        """
        Reassemble the text chunks of a tool result.

        No text -> ``"null"``; one chunk -> verbatim; several chunks that
        all parse as JSON objects -> their original texts joined into a
        JSON array; otherwise plain concatenation.
        """
        texts = [
            chunk["text"]
            for chunk in content
            if chunk.get("type") == "text" and isinstance(chunk.get("text"), str)
        ]

        if not texts:
            return "null"
        if len(texts) == 1:
            return texts[0]
        if all(_is_json_object(text) for text in texts):
            return "[" + ",".join(texts) + "]"
        return "".join(texts)
