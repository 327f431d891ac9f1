"""
Base game installation through DepotDownloader.

DepotDownloader (https://github.com/SteamRE/DepotDownloader) pulls Steam
depots without the Steam client. It is run as a child process whose stdout
and stderr are streamed line by line to an observer; exit code 0 means
success, anything else is reported and not retried.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
import sys
from pathlib import Path
from typing import Callable, Optional

from salsanow.download import download_file, extract
from salsanow.exceptions import ToolNotFoundError
from salsanow.models import ToolDefinition

logger = logging.getLogger(__name__)

ELDEN_RING_APP_ID = 1245620
GAME_EXECUTABLE = Path("Game") / "eldenring.exe"
DEPOT_DOWNLOADER_RELEASES = "https://github.com/SteamRE/DepotDownloader/releases"
DEPOT_DOWNLOADER_TOOL_ID = "depotdownloader"

OutputCallback = Callable[[str], None]


def game_executable(install_dir: str | Path) -> Path:
    return Path(install_dir) / GAME_EXECUTABLE


def verify_game_installed(install_dir: str | Path) -> bool:
    """Whether the game executable exists under ``install_dir``."""
    path = game_executable(install_dir)
    exists = path.is_file()
    logger.info("Elden Ring verification: %s exists = %s", path, exists)
    return exists


def launch_game(install_dir: str | Path) -> Optional[subprocess.Popen]:
    """Start the vanilla game. Returns ``None`` if it is not installed or fails to start."""
    path = game_executable(install_dir)
    if not path.is_file():
        logger.error("Cannot launch - game not found at: %s", path)
        return None

    logger.info("Launching Elden Ring: %s", path)
    try:
        return subprocess.Popen([str(path)], cwd=path.parent)
    except OSError as e:
        logger.error("Failed to launch %s: %s", path, e)
        return None


class DepotDownloader:
    """Runs DepotDownloader out of ``<tools_dir>/DepotDownloader``."""

    def __init__(self, tools_dir: str | Path, platform: str = sys.platform):
        self.tool_dir = Path(tools_dir) / "DepotDownloader"
        exe = "DepotDownloader.exe" if platform.startswith("win") else "DepotDownloader"
        self.executable = self.tool_dir / exe

    @property
    def is_available(self) -> bool:
        return self.executable.is_file()

    async def ensure_available(
        self,
        tool: Optional[ToolDefinition] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> Path:
        """
        Make sure the DepotDownloader executable exists.

        When it is missing and ``tool`` (from ``tools.json``) is given, its
        archive is downloaded and extracted into the tool directory.
        """
        if self.is_available:
            logger.info("DepotDownloader already exists at: %s", self.executable)
            return self.executable
        if tool is None:
            raise ToolNotFoundError(
                f"DepotDownloader not found at {self.executable}. "
                f"Download it manually from: {DEPOT_DOWNLOADER_RELEASES}"
            )

        logger.info("Downloading %s %s...", tool.name, tool.version)
        self.tool_dir.mkdir(parents=True, exist_ok=True)
        archive = self.tool_dir / (Path(tool.url.split("?", 1)[0]).name or "DepotDownloader.zip")
        await download_file(tool.url, archive, on_progress=on_progress)
        await extract(archive, self.tool_dir)

        if not self.is_available:
            raise ToolNotFoundError(
                f"{tool.name} archive did not contain {self.executable.name}"
            )
        if not sys.platform.startswith("win"):
            self.executable.chmod(self.executable.stat().st_mode | 0o111)
        return self.executable

    def build_arguments(self, username: str, password: str, install_dir: str | Path) -> list[str]:
        return [
            str(self.executable),
            "-app", str(ELDEN_RING_APP_ID),
            "-username", username,
            "-password", password,
            "-os", "windows",
            "-no-mobile",
            "-dir", str(install_dir),
        ]

    async def install_game(
        self,
        username: str,
        password: str,
        install_dir: str | Path,
        on_output: Optional[OutputCallback] = None,
    ) -> bool:
        """
        Download the game into ``install_dir``.

        Returns True when DepotDownloader exits with code 0. Requires the
        executable to be present already (see :meth:`ensure_available`).
        """
        if not self.is_available:
            raise ToolNotFoundError(
                f"DepotDownloader not found at {self.executable}. "
                f"Download it manually from: {DEPOT_DOWNLOADER_RELEASES}"
            )

        install_dir = Path(install_dir)
        install_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Installing Elden Ring to: %s", install_dir)
        if on_output:
            on_output("Starting Elden Ring installation via DepotDownloader...")

        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_arguments(username, password, install_dir),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Failed to run DepotDownloader: %s", e)
            if on_output:
                on_output(f"Installation failed: {e}")
            return False

        async def pump(stream: asyncio.StreamReader, level: int) -> None:
            async for raw in stream:
                line = raw.decode(errors="replace").rstrip()
                if not line:
                    continue
                logger.log(level, "DepotDownloader: %s", line)
                if on_output:
                    on_output(line)

        await asyncio.gather(
            pump(process.stdout, logging.INFO),
            pump(process.stderr, logging.WARNING),
        )
        exit_code = await process.wait()

        if exit_code != 0:
            logger.error("DepotDownloader exited with code: %d", exit_code)
            if on_output:
                on_output(f"DepotDownloader exited with code {exit_code}")
            return False

        (install_dir / "steam_appid.txt").write_text(str(ELDEN_RING_APP_ID), encoding="utf-8")
        logger.info("Elden Ring installation complete")
        if on_output:
            on_output("Installation complete!")
        return True
