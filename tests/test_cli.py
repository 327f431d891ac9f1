"""Tests for the click commands that need no network."""

from click.testing import CliRunner

from salsanow.cli import main


def _invoke(tmp_path, *args, env=None):
    runner = CliRunner()
    base_env = {"SALSANOW_MANIFEST_URL": "", "NEXUS_API_KEY": "", "SALSANOW_INSTALL_ROOT": str(tmp_path)}
    base_env.update(env or {})
    return runner.invoke(main, ["--config", str(tmp_path / "salsanow.json"), *args], env=base_env)


class TestCommands:
    def test_list_mods_without_manifest_url(self, tmp_path):
        result = _invoke(tmp_path, "list-mods")
        assert result.exit_code == 1
        assert "Manifest base URL not configured" in result.output

    def test_install_mod_requires_api_key(self, tmp_path):
        result = _invoke(tmp_path, "install-mod", "elden-ring-reforged")
        assert result.exit_code == 1
        assert "API key required" in result.output

    def test_verify_game_missing(self, tmp_path):
        result = _invoke(tmp_path, "verify-game", "--no-launch")
        assert result.exit_code == 0
        assert "not found" in result.output

    def test_create_shortcut_without_launcher(self, tmp_path):
        result = _invoke(tmp_path, "create-shortcut")
        assert result.exit_code == 0
        assert "Launcher not found" in result.output

    def test_install_game_skip(self, tmp_path):
        result = _invoke(tmp_path, "install-game", "--method", "skip")
        assert result.exit_code == 0
        assert "Skipping installation" in result.output

    def test_bad_config_file(self, tmp_path):
        (tmp_path / "salsanow.json").write_text("{broken")
        result = _invoke(tmp_path, "list-mods")
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output
