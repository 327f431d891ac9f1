"""
Layered application settings.

Resolved once at startup, in increasing priority:

  1. built-in defaults
  2. JSON settings file (``salsanow.json`` in the working directory by default)
  3. environment variables (a ``.env`` file is honoured)

The resulting :class:`Settings` object is handed to whatever needs it.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from salsanow.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "salsanow.json"
CONFIG_ENV = "SALSANOW_CONFIG"

# env var -> (section, field)
ENV_OVERRIDES = {
    "SALSANOW_MANIFEST_URL": ("manifest", "base_url"),
    "NEXUS_API_KEY": ("nexus", "api_key"),
    "SALSANOW_INSTALL_ROOT": ("paths", "install_root"),
    "SALSANOW_GAME_DIR": ("paths", "game_directory"),
    "SALSANOW_MODS_DIR": ("paths", "mods_directory"),
    "SALSANOW_TOOLS_DIR": ("paths", "tools_directory"),
}


class ManifestSettings(BaseModel):
    base_url: str = Field(default="", alias="BaseUrl")

    model_config = {"populate_by_name": True}


class NexusSettings(BaseModel):
    api_key: str = Field(default="", alias="ApiKey")
    default_api_key: str = Field(default="", alias="DefaultApiKey")

    model_config = {"populate_by_name": True}


class PathSettings(BaseModel):
    install_root: str = Field(default=str(Path.home() / "SalsaNOW"), alias="InstallRoot")
    game_directory: str = Field(default="ELDENRING", alias="GameDirectory")
    mods_directory: str = Field(default="Mods", alias="ModsDirectory")
    tools_directory: str = Field(default="Tools", alias="ToolsDirectory")

    model_config = {"populate_by_name": True}

    @property
    def full_game_path(self) -> Path:
        return Path(self.install_root) / self.game_directory

    @property
    def full_mods_path(self) -> Path:
        return Path(self.install_root) / self.mods_directory

    @property
    def full_tools_path(self) -> Path:
        return Path(self.install_root) / self.tools_directory


class Settings(BaseModel):
    manifest: ManifestSettings = Field(default_factory=ManifestSettings, alias="Manifest")
    nexus: NexusSettings = Field(default_factory=NexusSettings, alias="Nexus")
    paths: PathSettings = Field(default_factory=PathSettings, alias="Paths")

    model_config = {"populate_by_name": True}

    @property
    def effective_api_key(self) -> str:
        """The configured key, falling back to the default key when blank."""
        if self.nexus.api_key.strip():
            return self.nexus.api_key
        return self.nexus.default_api_key


def mask_api_key(key: str) -> str:
    """Shorten a key for display: ``abcd...wxyz``."""
    if len(key) <= 8:
        return "****"
    return f"{key[:4]}...{key[-4:]}"


def settings_path(path: Optional[str | Path] = None) -> Path:
    if path:
        return Path(path)
    return Path(os.environ.get(CONFIG_ENV) or DEFAULT_SETTINGS_FILE)


def _read_settings_file(path: Path) -> dict:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return raw


def load_settings(
    path: Optional[str | Path] = None,
    environ: Optional[dict[str, str]] = None,
) -> Settings:
    """
    Build :class:`Settings` from defaults, the settings file and the environment.

    A missing settings file is not an error; a malformed one is.
    """
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)

    file_path = settings_path(path)
    data: dict = {}
    if file_path.is_file():
        logger.debug("Reading settings from %s", file_path)
        data = _read_settings_file(file_path)

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {file_path}: {e.error_count()} error(s)") from e

    for var, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            setattr(getattr(settings, section), field, value)
    return settings


def save_settings(settings: Settings, path: Optional[str | Path] = None) -> Path:
    """Write ``settings`` to the settings file, creating parent directories."""
    file_path = settings_path(path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(
            settings.model_dump_json(indent=2, by_alias=True), encoding="utf-8"
        )
    except OSError as e:
        raise ConfigError(f"Could not write {file_path}: {e}") from e
    logger.info("Settings saved to %s", file_path)
    return file_path
