"""
Desktop shortcut creation.

Only Windows ``.lnk`` shortcuts are supported. :func:`get_shortcut_service`
picks the implementation once at startup; on other platforms it returns
:class:`UnsupportedShortcutService`, which reports
:class:`~salsanow.exceptions.UnsupportedOperation` without attempting
anything.
"""

from __future__ import annotations

import abc
import logging
import subprocess
import sys
from pathlib import Path
from typing import Optional

from salsanow.exceptions import ShortcutError, UnsupportedOperation

logger = logging.getLogger(__name__)

LAUNCHER_CANDIDATES = (
    "Launch ELDEN RING Reforged.bat",
    "!! Launch ELDEN RING Reforged.BAT",
    "launch.bat",
)


def find_launcher(mod_dir: str | Path) -> Optional[Path]:
    """Return the first known launcher script present in ``mod_dir``."""
    mod_dir = Path(mod_dir)
    for name in LAUNCHER_CANDIDATES:
        candidate = mod_dir / name
        if candidate.is_file():
            return candidate
    return None


def desktop_path() -> Path:
    """The current user's desktop directory."""
    return Path.home() / "Desktop"


class ShortcutService(abc.ABC):
    """Creates desktop shortcuts on the host platform."""

    is_supported: bool = True

    @abc.abstractmethod
    def create_shortcut(
        self,
        target: str | Path,
        shortcut_path: str | Path,
        working_directory: Optional[str | Path] = None,
        arguments: Optional[str] = None,
    ) -> Path:
        """Create ``shortcut_path`` pointing at ``target``."""

    def shortcut_exists(self, shortcut_path: str | Path) -> bool:
        exists = Path(shortcut_path).exists()
        logger.debug("Shortcut exists check: %s = %s", shortcut_path, exists)
        return exists


def _ps_quote(value: str | Path) -> str:
    return "'" + str(value).replace("'", "''") + "'"


class WindowsShortcutService(ShortcutService):
    """Writes ``.lnk`` files through the ``WScript.Shell`` COM object via PowerShell."""

    def __init__(self, powershell: str = "powershell"):
        self.powershell = powershell

    def create_shortcut(self, target, shortcut_path, working_directory=None, arguments=None):
        target = Path(target)
        shortcut_path = Path(shortcut_path)
        working_directory = Path(working_directory) if working_directory else target.parent

        logger.info("Creating Windows shortcut: %s -> %s", shortcut_path, target)
        lines = [
            "$shell = New-Object -ComObject WScript.Shell",
            f"$lnk = $shell.CreateShortcut({_ps_quote(shortcut_path)})",
            f"$lnk.TargetPath = {_ps_quote(target)}",
            f"$lnk.WorkingDirectory = {_ps_quote(working_directory)}",
        ]
        if arguments:
            lines.append(f"$lnk.Arguments = {_ps_quote(arguments)}")
        lines.append("$lnk.Save()")

        try:
            proc = subprocess.run(
                [self.powershell, "-NoProfile", "-NonInteractive", "-Command", "; ".join(lines)],
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ShortcutError(f"Could not run PowerShell: {e}") from e

        if proc.returncode != 0:
            raise ShortcutError(
                f"Failed to create shortcut (exit code {proc.returncode}): {proc.stderr.strip()}"
            )
        logger.info("Shortcut created successfully")
        return shortcut_path


class UnsupportedShortcutService(ShortcutService):
    """Stand-in for platforms without shortcut support."""

    is_supported = False

    def __init__(self, platform: str = sys.platform):
        self.platform = platform

    def create_shortcut(self, target, shortcut_path, working_directory=None, arguments=None):
        raise UnsupportedOperation(f"Shortcut creation is not supported on {self.platform}")


def get_shortcut_service(platform: str = sys.platform) -> ShortcutService:
    if platform.startswith("win"):
        return WindowsShortcutService()
    return UnsupportedShortcutService(platform)
