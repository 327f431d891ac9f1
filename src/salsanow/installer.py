"""
Nexus mod installer.

Handles the complete flow of installing one mod from the manifest:
  1. List the mod's files on Nexus and pick one by the mod's file pattern
  2. Resolve a time-limited download link for that file
  3. Create ``<target>/<mod id>``
  4. Stream the file into it, reporting progress
  5. Extract it in place if it is an archive
  6. Optionally put a launcher shortcut on the desktop

The installer is an error boundary: every failure ends up in the returned
:class:`~salsanow.models.InstallResult`, never as a raised exception.
Nothing is rolled back, so a failed attempt may leave a partial file or an
empty directory.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from salsanow.api import NexusAPI
from salsanow.download import ProgressCallback, download_file, extract, is_archive
from salsanow.exceptions import FilesystemError, SalsaError
from salsanow.models import InstallOptions, InstallResult, InstallStrategy, ModDefinition
from salsanow.shortcuts import ShortcutService, desktop_path, find_launcher

logger = logging.getLogger(__name__)

Downloader = Callable[..., Awaitable[Path]]
Extractor = Callable[..., Awaitable[int]]


class InstallPhase(str, Enum):
    RESOLVING_FILE = "Resolving file"
    RESOLVING_LINK = "Resolving download link"
    PREPARING_DIRECTORY = "Preparing directory"
    DOWNLOADING = "Downloading"
    EXTRACTING = "Extracting"
    DONE = "Done"
    FAILED = "Failed"


class ModInstaller:
    """
    Install a mod described by a :class:`ModDefinition`.

    Usage::

        async with NexusAPI(api_key="...") as api:
            installer = ModInstaller(api)
            result = await installer.install(mod, InstallOptions(target_directory="mods"))
            if not result.success:
                print(result.errors)
    """

    def __init__(
        self,
        api: NexusAPI,
        downloader: Downloader = download_file,
        extractor: Extractor = extract,
        shortcut_service: Optional[ShortcutService] = None,
    ):
        self.api = api
        self._download = downloader
        self._extract = extractor
        self._shortcuts = shortcut_service

    # ── Public entry points ────────────────────────────────────────

    @staticmethod
    def get_install_directory(mod: ModDefinition, options: InstallOptions) -> Path:
        """Directory the mod is installed into: ``<target_directory>/<mod id>``."""
        return Path(options.target_directory) / mod.id

    async def verify_installation(self, mod: ModDefinition, install_path: str | Path) -> bool:
        """Check that the install directory exists. Contents are not inspected."""
        return Path(install_path).is_dir()

    async def install(
        self,
        mod: ModDefinition,
        options: InstallOptions,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_phase: Optional[Callable[[InstallPhase], None]] = None,
    ) -> InstallResult:
        """
        Install ``mod`` according to ``options``.

        Args:
            mod: Mod definition from the manifest.
            options: Target directory and flags.
            on_progress: Receives the download percentage (0-100).
            cancel_event: Set it to abort between chunks of I/O.
            on_phase: Receives each :class:`InstallPhase` as it is entered.

        Returns:
            An :class:`InstallResult`; ``success`` is false when anything failed.
        """
        phase = InstallPhase.RESOLVING_FILE

        def enter(new_phase: InstallPhase) -> None:
            nonlocal phase
            phase = new_phase
            logger.debug("%s: %s", mod.id, new_phase.value)
            if on_phase:
                on_phase(new_phase)

        def fail(error: str) -> InstallResult:
            enter(InstallPhase.FAILED)
            logger.error("Installation of %s failed: %s", mod.name, error)
            return InstallResult.failed(error)

        try:
            logger.info("Installing mod: %s", mod.name)
            nexus = mod.nexus

            # 1. Pick the file
            enter(InstallPhase.RESOLVING_FILE)
            files = await self.api.list_files(nexus.game_domain, nexus.mod_id)
            selected = self.api.select_file(files, nexus.file_pattern)
            if selected is None:
                return fail(f"No file found matching pattern: {nexus.file_pattern}")
            logger.info("Selected file: %s (%d bytes)", selected.file_name, selected.size_bytes)

            # 2. Resolve a link; the first one is canonical
            enter(InstallPhase.RESOLVING_LINK)
            links = await self.api.resolve_download_links(
                nexus.game_domain, nexus.mod_id, selected.file_id
            )
            if not links:
                return fail("No download links available")
            download_url = links[0].url

            # 3. Install directory
            enter(InstallPhase.PREPARING_DIRECTORY)
            install_dir = self.get_install_directory(mod, options)
            try:
                install_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemError(f"Could not create {install_dir}: {e}") from e

            # 4. Download
            enter(InstallPhase.DOWNLOADING)
            download_path = install_dir / selected.file_name
            logger.info("Downloading to: %s", download_path)
            await self._download(
                download_url, download_path, on_progress=on_progress, cancel_event=cancel_event
            )

            # 5. Extract
            if is_archive(selected.file_name):
                enter(InstallPhase.EXTRACTING)
                logger.info("Extracting archive...")
                await self._extract(download_path, install_dir, cancel_event=cancel_event)

            warnings = self._post_install(mod, options, install_dir)

            enter(InstallPhase.DONE)
            logger.info("Installation complete: %s", install_dir)
            return InstallResult.succeeded(install_dir, warnings)
        except SalsaError as e:
            return fail(str(e))
        except Exception as e:
            logger.exception("Unexpected error while %s", phase.value.lower())
            return fail(str(e) or e.__class__.__name__)

    # ── Post-install ───────────────────────────────────────────────

    def _post_install(
        self, mod: ModDefinition, options: InstallOptions, install_dir: Path
    ) -> list[str]:
        """Create the desktop shortcut if asked to. Problems become warnings."""
        warnings: list[str] = []
        if not options.create_shortcut:
            return warnings
        if self._shortcuts is None:
            warnings.append("Shortcut requested but no shortcut service is configured")
            return warnings
        if mod.strategy is not InstallStrategy.ERR_LAUNCHER:
            warnings.append(f"Shortcuts are not supported for strategy {mod.strategy.value}")
            return warnings

        launcher = find_launcher(install_dir)
        if launcher is None:
            logger.warning("Launcher not found in %s", install_dir)
            warnings.append(f"Launcher not found in {install_dir}")
            return warnings

        shortcut_path = desktop_path() / f"{mod.name}.lnk"
        try:
            self._shortcuts.create_shortcut(launcher, shortcut_path, launcher.parent)
        except SalsaError as e:
            logger.warning("Could not create shortcut: %s", e)
            warnings.append(str(e))
        return warnings
