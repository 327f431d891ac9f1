"""
Streaming download and archive extraction helpers.

Both helpers observe an optional :class:`asyncio.Event` between chunks (or
archive entries) and raise :class:`~salsanow.exceptions.OperationCancelled`
once it is set. Partial output is left behind on failure or cancellation.
"""

from __future__ import annotations

import asyncio
import logging
import zipfile
from pathlib import Path
from typing import Callable, Optional

import httpx

from salsanow.exceptions import ExtractionError, OperationCancelled, TransferError

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSIONS = (".zip", ".7z")
SUPPORTED_ARCHIVE_EXTENSIONS = (".zip",)

ProgressCallback = Callable[[float], None]


def is_archive(file_name: str) -> bool:
    """Whether ``file_name`` ends in an archive extension (``.zip`` / ``.7z``)."""
    return file_name.lower().endswith(ARCHIVE_EXTENSIONS)


def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelled("Operation cancelled")


async def download_file(
    url: str,
    destination: str | Path,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    client: Optional[httpx.AsyncClient] = None,
    chunk_size: Optional[int] = None,
    timeout: float = 120.0,
) -> Path:
    """
    Download ``url`` to ``destination`` with a single streamed GET.

    ``on_progress`` receives a percentage in [0, 100] after every chunk as it
    arrives, but only when the server reports a ``Content-Length``. The
    percentage counts bytes on the wire, so compressed responses progress
    evenly too. An existing file at ``destination`` is overwritten.

    Raises:
        TransferError: Non-success status, transport failure or I/O failure.
        OperationCancelled: ``cancel_event`` was set mid-transfer.
    """
    destination = Path(destination)
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    try:
        async with client.stream("GET", url) as resp:
            resp.raise_for_status()
            total = int(resp.headers.get("Content-Length", 0) or 0)
            received = 0
            with open(destination, "wb") as fp:
                async for chunk in resp.aiter_bytes(chunk_size):
                    _check_cancelled(cancel_event)
                    fp.write(chunk)
                    received += len(chunk)
                    if total > 0 and on_progress is not None:
                        on_progress(min(resp.num_bytes_downloaded / total * 100, 100.0))
    except httpx.HTTPStatusError as e:
        raise TransferError(
            f"Download failed: HTTP {e.response.status_code}",
            code=e.response.status_code,
        ) from e
    except httpx.HTTPError as e:
        raise TransferError(f"Download failed: {e}") from e
    except OSError as e:
        raise TransferError(f"Could not write {destination}: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    logger.debug("Downloaded %d bytes to %s", received, destination)
    return destination


def list_entries(archive: str | Path) -> list[str]:
    """Return the entry names inside a ZIP archive."""
    try:
        with zipfile.ZipFile(archive, "r") as zf:
            return zf.namelist()
    except (zipfile.BadZipFile, OSError) as e:
        raise ExtractionError(f"Could not read archive {Path(archive).name}: {e}") from e


def _extract_zip(
    archive: Path, destination: Path, cancel_event: Optional[asyncio.Event]
) -> int:
    root = destination.resolve()
    count = 0
    with zipfile.ZipFile(archive, "r") as zf:
        for info in zf.infolist():
            _check_cancelled(cancel_event)
            target = (destination / info.filename).resolve()
            if target != root and root not in target.parents:
                raise ExtractionError(f"Archive entry escapes destination: {info.filename}")
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, open(target, "wb") as dst:
                while True:
                    block = src.read(1024 * 1024)
                    if not block:
                        break
                    dst.write(block)
            count += 1
    return count


async def extract(
    archive: str | Path,
    destination: str | Path,
    cancel_event: Optional[asyncio.Event] = None,
) -> int:
    """
    Extract ``archive`` into ``destination``, overwriting existing files.

    Only ZIP archives are supported. Returns the number of files written.

    Raises:
        ExtractionError: Unsupported format, corrupt archive or I/O failure.
        OperationCancelled: ``cancel_event`` was set between entries.
    """
    archive = Path(archive)
    destination = Path(destination)

    suffix = archive.suffix.lower()
    if suffix not in SUPPORTED_ARCHIVE_EXTENSIONS:
        raise ExtractionError(f"Unsupported archive format: {suffix or archive.name}")

    try:
        destination.mkdir(parents=True, exist_ok=True)
        count = await asyncio.to_thread(_extract_zip, archive, destination, cancel_event)
    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Corrupt archive {archive.name}: {e}") from e
    except OSError as e:
        raise ExtractionError(f"Could not extract {archive.name}: {e}") from e

    logger.info("Extracted %d files from %s", count, archive.name)
    return count
