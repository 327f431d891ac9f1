"""
Remote manifest loader.

A manifest repository (typically a GitHub raw-content URL) exposes three
JSON documents side by side::

    <base>/directory.json   {InstallRoot, GameDirectory, ModsDirectory}
    <base>/mods.json        [{Id, Name, Description, Nexus: {...}, Strategy}, ...]
    <base>/tools.json       [{Id, Name, Url, Version}, ...]

:class:`ManifestLoader` fetches all three on every call and assembles them
into one :class:`~salsanow.models.Manifest`. There is no caching and no
partial success: one failing document fails the whole load.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from salsanow.exceptions import FetchError, ParseError
from salsanow.models import DirectoryConfig, Manifest, ModDefinition, ToolDefinition

logger = logging.getLogger(__name__)

DIRECTORY_FILE = "directory.json"
MODS_FILE = "mods.json"
TOOLS_FILE = "tools.json"


def manifest_file_url(base_url: str, file_name: str) -> str:
    """Join ``base_url`` and ``file_name``, trimming one trailing slash from the base."""
    if base_url.endswith("/"):
        base_url = base_url[:-1]
    return f"{base_url}/{file_name}"


class ManifestLoader:
    """
    Loads manifest documents over HTTP.

    Usage::

        async with ManifestLoader() as loader:
            manifest = await loader.load_manifest("https://example.com/manifests")
            for mod in manifest.mods:
                print(mod.name)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout, follow_redirects=True
        )

    async def __aenter__(self) -> ManifestLoader:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def load_manifest(self, base_url: str) -> Manifest:
        """
        Fetch ``directory.json``, ``mods.json`` and ``tools.json`` and join them.

        Raises:
            FetchError: A document could not be retrieved.
            ParseError: A document is not valid JSON of the expected shape.
        """
        logger.info("Loading manifests from %s", base_url)

        directory = await self.load_manifest_file(base_url, DIRECTORY_FILE, DirectoryConfig)
        mods = await self.load_manifest_file(base_url, MODS_FILE, list[ModDefinition])
        tools = await self.load_manifest_file(base_url, TOOLS_FILE, list[ToolDefinition])

        logger.info("Manifest loaded: %d mods, %d tools", len(mods), len(tools))
        return Manifest(directory=directory, mods=mods, tools=tools)

    async def load_manifest_file(self, base_url: str, file_name: str, model: Any) -> Any:
        """Fetch a single manifest document and validate it against ``model``."""
        url = manifest_file_url(base_url, file_name)
        logger.debug("Fetching manifest file: %s", url)

        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Failed to fetch {file_name}: HTTP {e.response.status_code}",
                code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch {file_name}: {e}") from e

        try:
            raw = json.loads(resp.text)
        except ValueError as e:
            raise ParseError(f"Invalid JSON in {file_name}: {e}") from e
        if raw is None:
            raise ParseError(f"Failed to deserialize manifest file: {file_name}")

        try:
            return TypeAdapter(model).validate_python(raw)
        except ValidationError as e:
            raise ParseError(
                f"Unexpected content in {file_name}: {e.error_count()} validation error(s)"
            ) from e
