"""Toolbox client.

Discovers tools from a Toolbox server and turns their manifests into
ready-to-call ``ToolboxTool`` objects.
"""

from collections.abc import Mapping
from typing import Optional, Union

import httpx

from shared.config import ToolboxSettings
from shared.errors import ToolNotFoundError, UnusedBindingError
from shared.logging import get_logger
from toolbox_client.mcp import TRANSPORTS
from toolbox_client.protocol import Protocol
from toolbox_client.tool import ToolboxTool, build_tool
from toolbox_client.toolbox_transport import ToolboxTransport
from toolbox_client.transport import Transport
from toolbox_client.utils import AuthTokenGetter, BoundValue, HeaderValue, resolve_headers

logger = get_logger(__name__)


def _unused_message(unused_auth: list[str], unused_bound: list[str], suffix: str = "") -> str:
    parts = []
    if unused_auth:
        parts.append(f"unused auth tokens{suffix}: {', '.join(unused_auth)}")
    if unused_bound:
        parts.append(f"unused bound parameters{suffix}: {', '.join(unused_bound)}")
    return "; ".join(parts)


class ToolboxClient:
    """
    Asynchronous client for a Toolbox server.

    Every load re-fetches the manifest; nothing is cached between calls.
    The client creates (and later closes) its own ``httpx.AsyncClient``
    unless one is passed in.
    """

    def __init__(
        self,
        url: str,
        session: Optional[httpx.AsyncClient] = None,
        client_headers: Optional[Mapping[str, HeaderValue]] = None,
        protocol: Union[Protocol, str] = Protocol.MCP,
        client_name: Optional[str] = None,
        client_version: Optional[str] = None,
        timeout: float = 30.0
    ) -> None:
        """
        Initialize the client.

        Args:
            url: Base URL of the Toolbox server
            session: Optional HTTP client to reuse; left open on ``close``
            client_headers: Headers sent with every request, as strings or
                sync/async callables returning strings
            protocol: ``Protocol.TOOLBOX`` or an MCP protocol revision
            client_name: Name announced during the MCP handshake
            client_version: Version announced during the MCP handshake
            timeout: HTTP timeout in seconds for a self-created session

        Raises:
            ValueError: If the protocol is neither toolbox nor a known MCP version
        """
        try:
            self._protocol = Protocol(protocol)
        except ValueError as e:
            supported = ", ".join(Protocol.get_supported_mcp_versions())
            raise ValueError(
                f"Unsupported protocol '{protocol}'. Use '{Protocol.TOOLBOX.value}' "
                f"or one of the MCP versions: {supported}."
            ) from e
        self._client_headers = dict(client_headers or {})
        self._transport = self._create_transport(
            url, session, client_name, client_version, timeout
        )

    def _create_transport(
        self,
        url: str,
        session: Optional[httpx.AsyncClient],
        client_name: Optional[str],
        client_version: Optional[str],
        timeout: float
    ) -> Transport:
        if not self._protocol.is_mcp:
            return ToolboxTransport(url, session, timeout)

        transport_cls = TRANSPORTS[self._protocol]
        return transport_cls(
            url,
            session,
            self._protocol,
            client_name,
            client_version,
            timeout,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ToolboxSettings,
        session: Optional[httpx.AsyncClient] = None,
        client_headers: Optional[Mapping[str, HeaderValue]] = None
    ) -> "ToolboxClient":
        """Build a client from loaded settings."""
        return cls(
            settings.url,
            session=session,
            client_headers=client_headers,
            protocol=settings.protocol,
            client_name=settings.client_name,
            timeout=settings.timeout,
        )

    @property
    def protocol(self) -> Protocol:
        return self._protocol

    @property
    def transport(self) -> Transport:
        return self._transport

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        await self._transport.close()

    async def __aenter__(self) -> "ToolboxClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def load_tool(
        self,
        name: str,
        auth_token_getters: Optional[Mapping[str, AuthTokenGetter]] = None,
        bound_params: Optional[Mapping[str, BoundValue]] = None
    ) -> ToolboxTool:
        """
        Load a single tool.

        Args:
            name: Tool name
            auth_token_getters: Auth source to token getter
            bound_params: Parameter name to a value or a callable producing it

        Returns:
            The tool, with the applicable getters and bindings applied

        Raises:
            ToolNotFoundError: If the server does not know the tool
            UnusedBindingError: If a getter or binding does not apply to it
        """
        auth_token_getters = auth_token_getters or {}
        bound_params = bound_params or {}

        headers = await resolve_headers(self._client_headers)
        manifest = await self._transport.tool_get(name, headers)
        if name not in manifest.tools:
            logger.error("Tool not found in manifest", tool=name, url=self._transport.base_url)
            raise ToolNotFoundError(
                f"Tool '{name}' not found in manifest from {self._transport.base_url}."
            )

        tool, used_auth, used_bound = build_tool(
            self._transport,
            name,
            manifest.tools[name],
            auth_token_getters,
            bound_params,
            self._client_headers,
        )

        unused_auth = [k for k in auth_token_getters if k not in used_auth]
        unused_bound = [k for k in bound_params if k not in used_bound]
        if unused_auth or unused_bound:
            raise UnusedBindingError(
                f"Validation failed for tool '{name}': "
                f"{_unused_message(unused_auth, unused_bound)}."
            )

        logger.debug("Tool loaded", tool=name)
        return tool

    async def load_toolset(
        self,
        name: Optional[str] = None,
        auth_token_getters: Optional[Mapping[str, AuthTokenGetter]] = None,
        bound_params: Optional[Mapping[str, BoundValue]] = None,
        strict: bool = False
    ) -> list[ToolboxTool]:
        """
        Load every tool of a toolset.

        Args:
            name: Toolset name; the default toolset when omitted
            auth_token_getters: Auth source to token getter
            bound_params: Parameter name to a value or a callable producing it
            strict: Require every getter and binding to apply to every tool,
                instead of to at least one tool of the set

        Returns:
            Tools in manifest order

        Raises:
            UnusedBindingError: If a getter or binding goes unused
        """
        auth_token_getters = auth_token_getters or {}
        bound_params = bound_params or {}

        headers = await resolve_headers(self._client_headers)
        manifest = await self._transport.tools_list(name, headers)

        tools: list[ToolboxTool] = []
        overall_used_auth: set[str] = set()
        overall_used_bound: set[str] = set()

        for tool_name, schema in manifest.tools.items():
            tool, used_auth, used_bound = build_tool(
                self._transport,
                tool_name,
                schema,
                auth_token_getters,
                bound_params,
                self._client_headers,
            )

            if strict:
                unused_auth = [k for k in auth_token_getters if k not in used_auth]
                unused_bound = [k for k in bound_params if k not in used_bound]
                if unused_auth or unused_bound:
                    raise UnusedBindingError(
                        f"Validation failed for tool '{tool_name}': "
                        f"{_unused_message(unused_auth, unused_bound)}."
                    )
            else:
                overall_used_auth.update(used_auth)
                overall_used_bound.update(used_bound)

            tools.append(tool)

        if not strict:
            unused_auth = [k for k in auth_token_getters if k not in overall_used_auth]
            unused_bound = [k for k in bound_params if k not in overall_used_bound]
            if unused_auth or unused_bound:
                suffix = " could not be applied to any tool"
                raise UnusedBindingError(
                    f"Validation failed for toolset '{name or 'default'}': "
                    f"{_unused_message(unused_auth, unused_bound, suffix)}."
                )

        logger.debug("Toolset loaded", toolset=name or "default", tools=len(tools))
        return tools
