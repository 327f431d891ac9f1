"""
Pydantic data models for the remote manifest, Nexus API responses and
installation results.

Manifest documents use PascalCase keys (``directory.json``, ``mods.json``,
``tools.json``); Nexus responses use snake_case. Both are mapped onto
snake_case attributes through field aliases.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DOWNLOAD_LINK_LIFETIME = timedelta(hours=1)
_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


# ── Manifest models (directory.json / mods.json / tools.json) ──────


class DirectoryConfig(BaseModel):
    """Directory layout for game and mod installations."""

    install_root: str = Field(alias="InstallRoot")
    game_directory: str = Field(alias="GameDirectory")
    mods_directory: str = Field(alias="ModsDirectory")

    model_config = {"populate_by_name": True, "frozen": True}


class InstallStrategy(str, Enum):
    """How a mod is launched once installed."""

    ERR_LAUNCHER = "ErrLauncher"  # the mod ships its own launcher
    MOD_ENGINE_2 = "ModEngine2"  # loaded through Mod Engine 2, not implemented


class NexusInfo(BaseModel):
    """Where a mod lives on Nexus Mods and which of its files to pick."""

    game_domain: str = Field(alias="GameDomain")  # e.g. "eldenring"
    mod_id: int = Field(alias="ModId")
    file_pattern: str = Field(default="main", alias="FilePattern")  # "main", "latest", ...

    model_config = {"populate_by_name": True, "frozen": True}


class ModDefinition(BaseModel):
    """One installable mod as listed in ``mods.json``."""

    id: str = Field(alias="Id")
    name: str = Field(alias="Name")
    description: str = Field(default="", alias="Description")
    nexus: NexusInfo = Field(alias="Nexus")
    strategy: InstallStrategy = Field(default=InstallStrategy.ERR_LAUNCHER, alias="Strategy")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("strategy", mode="before")
    @classmethod
    def _strategy_from_ordinal(cls, value):
        # Enum ordinals are accepted as well as names
        if isinstance(value, int) and not isinstance(value, bool):
            members = list(InstallStrategy)
            if 0 <= value < len(members):
                return members[value]
        return value


class ToolDefinition(BaseModel):
    """External tool (DepotDownloader, Mod Engine 2, ...) listed in ``tools.json``."""

    id: str = Field(alias="Id")
    name: str = Field(alias="Name")
    url: str = Field(alias="Url")
    version: str = Field(default="", alias="Version")

    model_config = {"populate_by_name": True, "frozen": True}


class Manifest(BaseModel):
    """Snapshot of all three manifest documents, built fresh on every load."""

    directory: DirectoryConfig
    mods: tuple[ModDefinition, ...] = ()
    tools: tuple[ToolDefinition, ...] = ()

    model_config = {"frozen": True}

    def get_mod(self, mod_id: str) -> Optional[ModDefinition]:
        for mod in self.mods:
            if mod.id == mod_id:
                return mod
        return None

    def get_tool(self, tool_id: str) -> Optional[ToolDefinition]:
        for tool in self.tools:
            if tool.id == tool_id:
                return tool
        return None


# ── Nexus API models ───────────────────────────────────────────────


class ModFile(BaseModel):
    """
    A single file hosted for a mod on Nexus.

    Built from an entry of ``files.json``; ``uploaded_timestamp`` is a Unix
    timestamp there.
    """

    file_id: int
    file_name: str
    version: str = "unknown"
    size_bytes: int = Field(default=0, alias="size_in_bytes")
    uploaded_date: datetime = Field(default=_EPOCH, alias="uploaded_timestamp")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("version", mode="before")
    @classmethod
    def _default_version(cls, value):
        return value or "unknown"

    @field_validator("size_bytes", mode="before")
    @classmethod
    def _default_size(cls, value):
        return value or 0

    @field_validator("uploaded_date", mode="before")
    @classmethod
    def _default_date(cls, value):
        return _EPOCH if value is None else value

    @field_validator("uploaded_date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class DownloadLink(BaseModel):
    """
    A time-limited CDN URL for one file.

    ``expires_at`` is computed locally when the link is resolved; Nexus does
    not report it, so treat it as informational.
    """

    url: str
    expires_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc) + DOWNLOAD_LINK_LIFETIME
    )

    model_config = {"frozen": True}


# ── Installation models ────────────────────────────────────────────


class InstallOptions(BaseModel):
    """Caller-supplied parameters for one installation."""

    target_directory: Path
    overwrite_existing: bool = True
    create_shortcut: bool = False

    model_config = {"frozen": True}


class InstallResult(BaseModel):
    """Terminal outcome of one installation attempt."""

    success: bool
    installed_path: Optional[Path] = None
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_consistency(self) -> InstallResult:
        if self.success == bool(self.errors):
            raise ValueError("success must be true exactly when there are no errors")
        if self.success and self.installed_path is None:
            raise ValueError("a successful result needs an installed_path")
        return self

    @classmethod
    def succeeded(cls, installed_path: Path, warnings: list[str] | None = None) -> InstallResult:
        return cls(success=True, installed_path=installed_path, warnings=tuple(warnings or ()))

    @classmethod
    def failed(cls, error: str, warnings: list[str] | None = None) -> InstallResult:
        return cls(success=False, errors=(error,), warnings=tuple(warnings or ()))
