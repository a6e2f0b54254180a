"""Transport for the native Toolbox REST protocol."""

import json
from collections.abc import Mapping
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from shared.errors import ManifestStructureError, RpcError, TransportError
from shared.logging import get_logger
from shared.models import ManifestSchema
from toolbox_client.transport import Transport
from toolbox_client.utils import warn_if_http_and_headers

logger = get_logger(__name__)


class ToolboxTransport(Transport):
    """
    Plain REST transport.

    Manifests are fetched from ``/api/tool/{name}`` and
    ``/api/toolset/{name}``; tools are invoked with
    ``POST /api/tool/{name}/invoke``.
    """

    async def _get_manifest(
        self,
        url: str,
        headers: Optional[Mapping[str, str]]
    ) -> ManifestSchema:
        """Perform a GET request and parse the manifest."""
        try:
            response = await self._session.get(url, headers=dict(headers or {}))
        except httpx.HTTPError as e:
            logger.error("Error fetching data", url=url, error=str(e))
            raise TransportError(f"Cannot connect to Toolbox server: {e}") from e

        if not response.is_success:
            logger.error("Error fetching data", url=url, status=response.status_code)
            raise TransportError(
                f"API request failed with status {response.status_code} "
                f"({response.reason_phrase}). Server response: {response.text}",
                status_code=response.status_code,
            )

        try:
            return ManifestSchema.model_validate(response.json())
        except ValidationError as e:
            details = json.dumps(e.errors(include_url=False), indent=2, default=str)
            logger.error("Invalid manifest", url=url, errors=e.error_count())
            raise ManifestStructureError(
                f"Invalid manifest structure received from {url}: {details}"
            ) from e
        except ValueError as e:
            logger.error("Invalid manifest", url=url, error=str(e))
            raise ManifestStructureError(
                f"Invalid manifest structure received from {url}: {e}"
            ) from e

    async def tool_get(
        self,
        tool_name: str,
        headers: Optional[Mapping[str, str]] = None
    ) -> ManifestSchema:
        return await self._get_manifest(f"{self._base_url}/api/tool/{tool_name}", headers)

    async def tools_list(
        self,
        toolset_name: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None
    ) -> ManifestSchema:
        url = f"{self._base_url}/api/toolset/{toolset_name or ''}"
        return await self._get_manifest(url, headers)

    async def tool_invoke(
        self,
        tool_name: str,
        arguments: Mapping[str, Any],
        headers: Mapping[str, str]
    ) -> str:
        warn_if_http_and_headers(self._base_url, headers)
        url = f"{self._base_url}/api/tool/{tool_name}/invoke"

        try:
            response = await self._session.post(url, json=dict(arguments), headers=dict(headers))
        except httpx.HTTPError as e:
            logger.error("Error posting data", url=url, error=str(e))
            raise TransportError(f"Cannot connect to Toolbox server: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            body = {}

        if not response.is_success:
            logger.error("Error posting data", url=url, status=response.status_code)
            raise TransportError(
                body.get("error") or f"unexpected status from server: {response.status_code}",
                status_code=response.status_code,
            )

        if body.get("error"):
            raise RpcError(str(body["error"]))

        return body.get("result")
