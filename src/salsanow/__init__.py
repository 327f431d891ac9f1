"""
salsanow: Elden Ring mod installer.

Install the base game, fetch a remote mod manifest and install mods from
Nexus Mods.
"""

__version__ = "0.1.0"

from salsanow.models import (
    DirectoryConfig,
    DownloadLink,
    InstallOptions,
    InstallResult,
    InstallStrategy,
    Manifest,
    ModDefinition,
    ModFile,
    NexusInfo,
    ToolDefinition,
)
from salsanow.api import NexusAPI
from salsanow.manifest import ManifestLoader
from salsanow.installer import InstallPhase, ModInstaller
from salsanow.download import download_file, extract

__all__ = [
    "DirectoryConfig",
    "DownloadLink",
    "InstallOptions",
    "InstallResult",
    "InstallStrategy",
    "Manifest",
    "ModDefinition",
    "ModFile",
    "NexusInfo",
    "ToolDefinition",
    "NexusAPI",
    "ManifestLoader",
    "InstallPhase",
    "ModInstaller",
    "download_file",
    "extract",
]
