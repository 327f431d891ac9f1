"""Tests for game verification and the DepotDownloader runner."""

import asyncio
import sys
import zipfile

import pytest

from salsanow.exceptions import ToolNotFoundError
from salsanow.game import (
    ELDEN_RING_APP_ID,
    DepotDownloader,
    launch_game,
    verify_game_installed,
)

posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="uses a shell script")


def _fake_depot(tools_dir, script):
    depot = DepotDownloader(tools_dir, platform="linux")
    depot.tool_dir.mkdir(parents=True)
    depot.executable.write_text("#!/bin/sh\n" + script)
    depot.executable.chmod(0o755)
    return depot


class TestVerifyGame:
    def test_missing(self, tmp_path):
        assert verify_game_installed(tmp_path) is False
        assert launch_game(tmp_path) is None

    def test_present(self, tmp_path):
        exe = tmp_path / "Game" / "eldenring.exe"
        exe.parent.mkdir()
        exe.write_bytes(b"MZ")
        assert verify_game_installed(tmp_path) is True


class TestDepotDownloader:
    def test_executable_name(self, tmp_path):
        assert DepotDownloader(tmp_path, platform="win32").executable.name == "DepotDownloader.exe"
        assert DepotDownloader(tmp_path, platform="linux").executable.name == "DepotDownloader"

    def test_arguments(self, tmp_path):
        depot = DepotDownloader(tmp_path, platform="linux")
        args = depot.build_arguments("user", "pass", tmp_path / "ER")
        assert args[0] == str(depot.executable)
        assert args[args.index("-app") + 1] == str(ELDEN_RING_APP_ID)
        assert args[args.index("-username") + 1] == "user"
        assert args[args.index("-dir") + 1] == str(tmp_path / "ER")
        assert "-no-mobile" in args

    def test_missing_without_tool(self, tmp_path):
        depot = DepotDownloader(tmp_path)
        with pytest.raises(ToolNotFoundError):
            asyncio.run(depot.ensure_available())
        with pytest.raises(ToolNotFoundError):
            asyncio.run(depot.install_game("u", "p", tmp_path / "game"))

    @posix_only
    def test_success_streams_output(self, tmp_path):
        depot = _fake_depot(tmp_path / "tools", 'echo "Downloading depot 1245621"\necho "warn" >&2\nexit 0\n')
        lines = []
        game_dir = tmp_path / "game"
        ok = asyncio.run(depot.install_game("u", "p", game_dir, on_output=lines.append))
        assert ok is True
        assert "Downloading depot 1245621" in lines
        assert "warn" in lines
        assert lines[-1] == "Installation complete!"
        assert (game_dir / "steam_appid.txt").read_text() == str(ELDEN_RING_APP_ID)

    @posix_only
    def test_nonzero_exit_is_failure(self, tmp_path):
        depot = _fake_depot(tmp_path / "tools", "echo 'Login failed'\nexit 5\n")
        lines = []
        game_dir = tmp_path / "game"
        ok = asyncio.run(depot.install_game("u", "p", game_dir, on_output=lines.append))
        assert ok is False
        assert "DepotDownloader exited with code 5" in lines
        assert not (game_dir / "steam_appid.txt").exists()

    @posix_only
    def test_already_available(self, tmp_path):
        depot = _fake_depot(tmp_path / "tools", "exit 0\n")
        assert asyncio.run(depot.ensure_available()) == depot.executable

    def test_ensure_from_tool_definition(self, tmp_path, monkeypatch):
        from salsanow import game
        from salsanow.models import ToolDefinition

        archive_bytes = tmp_path / "dd.zip"
        with zipfile.ZipFile(archive_bytes, "w") as zf:
            zf.writestr("DepotDownloader", "#!/bin/sh\nexit 0\n")

        async def fake_download(url, destination, on_progress=None, cancel_event=None):
            destination.write_bytes(archive_bytes.read_bytes())
            return destination

        monkeypatch.setattr(game, "download_file", fake_download)
        depot = DepotDownloader(tmp_path / "tools", platform="linux")
        tool = ToolDefinition(
            id="depotdownloader",
            name="DepotDownloader",
            url="https://github.com/SteamRE/DepotDownloader/releases/download/v2/DepotDownloader.zip?x=1",
            version="2.5.0",
        )
        path = asyncio.run(depot.ensure_available(tool))
        assert path == depot.executable
        assert (depot.tool_dir / "DepotDownloader.zip").exists()
