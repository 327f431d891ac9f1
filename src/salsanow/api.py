"""
Async Nexus Mods API client.

Wraps the Nexus Mods v1 REST API with an :class:`httpx.AsyncClient`, adding
API key header injection and translating HTTP failures into
:class:`~salsanow.exceptions.HostApiError`.

Reference: https://app.swaggerhub.com/apis-docs/NexusMods/nexus-mods_public_api_params_in_form_data/1.0
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Sequence

import httpx
from pydantic import ValidationError

from salsanow import __version__
from salsanow.exceptions import HostApiError
from salsanow.models import DownloadLink, ModFile

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.nexusmods.com"
APPLICATION_NAME = "SalsaNOW"


class NexusAPI:
    """
    Async client for the Nexus Mods v1 API.

    Usage::

        async with NexusAPI(api_key="...") as api:
            files = await api.list_files("eldenring", 541)
            main = NexusAPI.select_file(files, "main")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else os.environ.get("NEXUS_API_KEY", "")
        self.api_base = api_base.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers=self._build_headers(),
            transport=transport,
        )

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Application-Name": APPLICATION_NAME,
            "Application-Version": __version__,
            "User-Agent": f"{APPLICATION_NAME}/{__version__}",
        }
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    @property
    def is_available(self) -> bool:
        """Whether an API key is configured."""
        return bool(self.api_key)

    async def __aenter__(self) -> NexusAPI:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ── Low-level helpers ──────────────────────────────────────────

    async def _get(self, path: str):
        if not self.api_key:
            raise HostApiError("Nexus API key is not configured")
        try:
            resp = await self._client.get(f"{self.api_base}{path}")
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (401, 403):
                message = "Nexus API rejected the API key"
            else:
                message = f"Nexus API request failed: HTTP {status}"
            raise HostApiError(message, code=status) from e
        except httpx.HTTPError as e:
            raise HostApiError(f"Nexus API request failed: {e}") from e
        except ValueError as e:
            raise HostApiError(f"Nexus API returned invalid JSON: {e}") from e

    # ── Files & download links ─────────────────────────────────────

    async def list_files(self, game_domain: str, mod_id: int) -> list[ModFile]:
        """Get all files hosted for a mod, in the order Nexus returns them."""
        logger.info("Fetching files for mod %d in game %s", mod_id, game_domain)
        data = await self._get(f"/v1/games/{game_domain}/mods/{mod_id}/files.json")
        try:
            return [ModFile.model_validate(item) for item in data.get("files", [])]
        except (AttributeError, ValidationError) as e:
            raise HostApiError(f"Unexpected files response for mod {mod_id}: {e}") from e

    async def resolve_download_links(
        self, game_domain: str, mod_id: int, file_id: int
    ) -> list[DownloadLink]:
        """
        Generate CDN download links for one file.

        Returns an empty list when Nexus offers no link. Links expire after
        roughly an hour; consume them promptly.
        """
        logger.info("Generating download links for file %d", file_id)
        data = await self._get(
            f"/v1/games/{game_domain}/mods/{mod_id}/files/{file_id}/download_link.json"
        )
        if not isinstance(data, list):
            raise HostApiError(f"Unexpected download link response for file {file_id}")
        try:
            return [DownloadLink(url=item["URI"]) for item in data if item.get("URI")]
        except (AttributeError, ValidationError) as e:
            raise HostApiError(f"Unexpected download link response for file {file_id}: {e}") from e

    async def validate_key(self) -> str:
        """Check the configured key and return the user name it belongs to."""
        data = await self._get("/v1/users/validate.json")
        return data.get("name", "")

    # ── File selection ─────────────────────────────────────────────

    @staticmethod
    def select_file(files: Sequence[ModFile], pattern: str) -> Optional[ModFile]:
        """
        Pick one file from ``files`` according to ``pattern``.

        - ``"main"``: first file whose name contains ``MAIN`` (any case)
        - ``"latest"``: most recently uploaded file, first one on ties
        - anything else: the first file

        Returns ``None`` when nothing matches, including for an empty list.
        """
        logger.debug("Selecting file with pattern: %s", pattern)
        if not files:
            return None

        key = pattern.lower()
        if key == "main":
            return next((f for f in files if "main" in f.file_name.lower()), None)
        if key == "latest":
            return max(files, key=lambda f: f.uploaded_date)
        return files[0]
