"""Tests for manifest, Nexus and installation models."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from salsanow.models import (
    DirectoryConfig,
    DownloadLink,
    InstallResult,
    InstallStrategy,
    ModDefinition,
    ModFile,
    ToolDefinition,
)

ERR_JSON = """
{
  "Id": "elden-ring-reforged",
  "Name": "Elden Ring Reforged",
  "Description": "Overhaul mod",
  "Nexus": {"GameDomain": "eldenring", "ModId": 541, "FilePattern": "main"},
  "Strategy": "ErrLauncher"
}
"""


class TestModDefinition:
    def test_parse_pascal_case(self):
        mod = ModDefinition.model_validate(json.loads(ERR_JSON))
        assert mod.id == "elden-ring-reforged"
        assert mod.name == "Elden Ring Reforged"
        assert mod.nexus.game_domain == "eldenring"
        assert mod.nexus.mod_id == 541
        assert mod.nexus.file_pattern == "main"
        assert mod.strategy is InstallStrategy.ERR_LAUNCHER

    def test_strategy_ordinal(self):
        raw = json.loads(ERR_JSON)
        raw["Strategy"] = 1
        mod = ModDefinition.model_validate(raw)
        assert mod.strategy is InstallStrategy.MOD_ENGINE_2

    def test_unknown_strategy_rejected(self):
        raw = json.loads(ERR_JSON)
        raw["Strategy"] = "Seamless"
        with pytest.raises(ValidationError):
            ModDefinition.model_validate(raw)

    def test_missing_nexus_rejected(self):
        raw = json.loads(ERR_JSON)
        del raw["Nexus"]
        with pytest.raises(ValidationError):
            ModDefinition.model_validate(raw)

    def test_immutable(self):
        mod = ModDefinition.model_validate(json.loads(ERR_JSON))
        with pytest.raises(ValidationError):
            mod.id = "other"


class TestDirectoryAndTools:
    def test_directory(self):
        d = DirectoryConfig.model_validate(
            {"InstallRoot": "I:/Games", "GameDirectory": "ELDENRING", "ModsDirectory": "Mods"}
        )
        assert d.install_root == "I:/Games"
        assert d.mods_directory == "Mods"

    def test_tool(self):
        t = ToolDefinition.model_validate(
            {"Id": "depotdownloader", "Name": "DepotDownloader", "Url": "https://x/dd.zip", "Version": "2.5"}
        )
        assert t.url == "https://x/dd.zip"
        assert t.version == "2.5"


class TestModFile:
    def test_from_nexus_entry(self):
        f = ModFile.model_validate(
            {
                "file_id": 10,
                "name": "Main",
                "file_name": "ERR-MAIN-2.1.zip",
                "version": "2.1",
                "size_in_bytes": 1234,
                "uploaded_timestamp": 1700000000,
            }
        )
        assert f.file_id == 10
        assert f.size_bytes == 1234
        assert f.uploaded_date == datetime.fromtimestamp(1700000000, tz=timezone.utc)

    def test_null_fields_get_defaults(self):
        f = ModFile.model_validate(
            {"file_id": 1, "file_name": "a.zip", "version": None, "size_in_bytes": None}
        )
        assert f.version == "unknown"
        assert f.size_bytes == 0
        assert f.uploaded_date.tzinfo is not None

    def test_naive_date_is_utc(self):
        f = ModFile(file_id=1, file_name="a.zip", uploaded_date=datetime(2024, 1, 1))
        assert f.uploaded_date.tzinfo == timezone.utc


class TestDownloadLink:
    def test_expires_in_an_hour(self):
        before = datetime.now(timezone.utc)
        link = DownloadLink(url="https://cdn.example/a.zip")
        assert before + timedelta(minutes=59) < link.expires_at <= before + timedelta(hours=1, seconds=5)


class TestInstallResult:
    def test_succeeded(self):
        r = InstallResult.succeeded(Path("mods/err"), ["careful"])
        assert r.success is True
        assert r.installed_path == Path("mods/err")
        assert r.errors == ()
        assert r.warnings == ("careful",)

    def test_failed(self):
        r = InstallResult.failed("boom")
        assert r.success is False
        assert r.installed_path is None
        assert r.errors == ("boom",)

    def test_success_with_errors_rejected(self):
        with pytest.raises(ValidationError):
            InstallResult(success=True, installed_path=Path("x"), errors=("bad",))

    def test_failure_without_errors_rejected(self):
        with pytest.raises(ValidationError):
            InstallResult(success=False)

    def test_success_needs_path(self):
        with pytest.raises(ValidationError):
            InstallResult(success=True)
