"""Transport interface shared by the REST and MCP protocol families."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Optional

import httpx

from shared.models import ManifestSchema


class Transport(ABC):
    """
    Protocol formatting plus network communication for one server.

    A transport owns an ``httpx.AsyncClient``; it closes the client on
    ``close`` only when it created the client itself.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._manage_session = session is None
        self._session = session or httpx.AsyncClient(timeout=timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    @abstractmethod
    async def tool_get(
        self,
        tool_name: str,
        headers: Optional[Mapping[str, str]] = None
    ) -> ManifestSchema:
        """Get the manifest of a single tool."""
        pass

    @abstractmethod
    async def tools_list(
        self,
        toolset_name: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None
    ) -> ManifestSchema:
        """Get the manifest of a toolset, or of every tool when unnamed."""
        pass

    @abstractmethod
    async def tool_invoke(
        self,
        tool_name: str,
        arguments: Mapping[str, Any],
        headers: Mapping[str, str]
    ) -> str:
        """Invoke a tool and return its result text."""
        pass

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._manage_session and not self._session.is_closed:
            await self._session.aclose()
