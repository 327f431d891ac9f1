"""
CLI entry point for salsanow.

Running ``salsanow`` with no command opens the interactive main menu.
Every menu entry is also available as a command:

  - ``salsanow install-game``
  - ``salsanow verify-game``
  - ``salsanow configure-nexus``
  - ``salsanow install-mod [MOD_ID]``
  - ``salsanow create-shortcut``
  - ``salsanow list-mods`` / ``salsanow list-tools``
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional

import click
from dotenv import load_dotenv
from tqdm import tqdm

# Load .env file so NEXUS_API_KEY (and others) can be set via .env
load_dotenv()

from salsanow.api import NexusAPI
from salsanow.config import Settings, load_settings, mask_api_key, save_settings
from salsanow.exceptions import SalsaError
from salsanow.game import (
    DEPOT_DOWNLOADER_RELEASES,
    DEPOT_DOWNLOADER_TOOL_ID,
    DepotDownloader,
    launch_game,
    verify_game_installed,
)
from salsanow.installer import InstallPhase, ModInstaller
from salsanow.manifest import ManifestLoader
from salsanow.models import InstallOptions, Manifest, ModDefinition
from salsanow.shortcuts import desktop_path, find_launcher, get_shortcut_service

logger = logging.getLogger(__name__)

ERR_MOD_ID = "elden-ring-reforged"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _ok(message: str) -> None:
    click.secho(f"✓ {message}", fg="green")


def _fail(message: str) -> None:
    click.secho(f"✗ {message}", fg="red", err=True)


def _pause() -> None:
    click.echo()
    click.pause(click.style("Press any key to continue...", dim=True))


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


async def _load_manifest(settings: Settings) -> Manifest:
    if not settings.manifest.base_url:
        raise SalsaError(
            "Manifest base URL not configured. Set SALSANOW_MANIFEST_URL or Manifest.BaseUrl."
        )
    async with ManifestLoader() as loader:
        return await loader.load_manifest(settings.manifest.base_url)


# ── Actions ────────────────────────────────────────────────────────


def run_install_game(settings: Settings, method: Optional[str] = None) -> None:
    click.secho("Install Elden Ring", bold=True, fg="cyan")
    click.echo()
    methods = {"1": "steam", "2": "depot", "3": "skip"}
    if method is None:
        click.echo("  1. Via Steam (recommended)")
        click.echo("  2. Via DepotDownloader (automated)")
        click.echo("  3. Skip (already installed)")
        choice = click.prompt("Choose installation method", type=click.Choice(list(methods)))
        method = methods[choice]

    if method == "skip":
        click.secho("Skipping installation", fg="yellow")
        return

    game_path = settings.paths.full_game_path
    if method == "steam":
        click.secho("Manual Installation via Steam:", fg="yellow")
        click.echo()
        click.echo("1. Open Steam client")
        click.echo("2. Go to Library")
        click.echo("3. Find 'Elden Ring'")
        click.echo(f"4. Install to: {click.style(str(game_path), fg='cyan')}")
        click.echo("5. Wait for installation to complete")
        click.echo("6. Exit Steam")
        click.echo()
        click.pause("Press any key when installation is complete...")
        logger.info("User installed Elden Ring via Steam")
        return

    click.secho("Automated Installation via DepotDownloader", fg="yellow")
    username = click.prompt("Steam username")
    password = click.prompt("Steam password", hide_input=True)

    async def run() -> bool:
        depot = DepotDownloader(settings.paths.full_tools_path)
        if not depot.is_available:
            tool = None
            if settings.manifest.base_url:
                manifest = await _load_manifest(settings)
                tool = manifest.get_tool(DEPOT_DOWNLOADER_TOOL_ID)
            if tool is None:
                _fail("DepotDownloader is not installed")
                click.echo(f"Please download it manually from: {DEPOT_DOWNLOADER_RELEASES}")
                return False
            await depot.ensure_available(tool)
        return await depot.install_game(
            username,
            password,
            game_path,
            on_output=lambda line: click.secho(line, dim=True),
        )

    if asyncio.run(run()):
        _ok("Elden Ring installed successfully")
    else:
        _fail("Installation failed")


def run_verify_game(settings: Settings, launch: Optional[bool] = None) -> None:
    click.secho("Verify Vanilla Installation", bold=True, fg="cyan")
    click.echo()
    game_path = settings.paths.full_game_path

    if not verify_game_installed(game_path):
        _fail(f"Elden Ring not found at: {game_path}")
        click.secho("Please install the game first", fg="yellow")
        return

    _ok(f"Elden Ring found at: {game_path}")
    if launch is None:
        launch = click.confirm("Launch game to verify?", default=False)
    if not launch:
        return

    click.secho("Launching Elden Ring...", fg="yellow")
    if launch_game(game_path) is None:
        _fail("Failed to launch game")
    else:
        _ok("Game launched")
        click.secho("Please verify the game reaches main menu, then exit", dim=True)


def run_configure_nexus(
    settings: Settings, config_path: Optional[str], api_key: Optional[str] = None
) -> None:
    click.secho("Configure Nexus Mods API Key", bold=True, fg="cyan")
    click.echo()
    current = settings.nexus.api_key
    click.echo(f"Current API Key: {mask_api_key(current) if current.strip() else 'Not configured'}")
    click.echo()

    if api_key is None:
        api_key = click.prompt(
            "Enter Nexus API Key (or press Enter to use default)",
            default=settings.nexus.default_api_key,
            show_default=False,
            hide_input=True,
        )
    settings.nexus.api_key = api_key

    async def validate() -> str:
        async with NexusAPI(api_key=settings.effective_api_key) as api:
            return await api.validate_key()

    if settings.effective_api_key:
        try:
            user = asyncio.run(validate())
            _ok(f"API key belongs to {user or 'unknown user'}")
        except SalsaError as e:
            click.secho(f"! Could not validate API key: {e}", fg="yellow")

    path = save_settings(settings, config_path)
    _ok(f"Nexus API Key configured ({path})")
    logger.info("Nexus API key configured")


def _choose_mod(manifest: Manifest) -> ModDefinition:
    click.echo("Select mod to install:")
    for i, mod in enumerate(manifest.mods, 1):
        click.echo(f"  {i}. {mod.name} - {mod.description}")
    index = click.prompt("Mod", type=click.IntRange(1, len(manifest.mods)))
    return manifest.mods[index - 1]


def run_install_mod(
    settings: Settings,
    mod_id: Optional[str] = None,
    create_shortcut: bool = False,
) -> bool:
    click.secho("Install Mods", bold=True, fg="cyan")
    click.echo()

    async def run() -> bool:
        click.echo("Loading mod manifest...")
        manifest = await _load_manifest(settings)
        if not manifest.mods:
            click.secho("No mods found in manifest", fg="yellow")
            return False

        if mod_id is None:
            mod = _choose_mod(manifest)
        else:
            mod = manifest.get_mod(mod_id)
            if mod is None:
                _fail(f"Mod '{mod_id}' not found in manifest")
                return False

        options = InstallOptions(
            target_directory=settings.paths.full_mods_path,
            overwrite_existing=True,
            create_shortcut=create_shortcut,
        )
        click.echo(f"Installing {mod.name} to {ModInstaller.get_install_directory(mod, options)}")

        pbar = tqdm(total=100, desc="Downloading", unit="%", bar_format="{l_bar}{bar}| {n:.1f}%")

        def on_progress(pct: float) -> None:
            pbar.update(pct - pbar.n)

        def on_phase(phase: InstallPhase) -> None:
            if phase is InstallPhase.EXTRACTING:
                pbar.close()
                click.echo("Extracting...")

        async with NexusAPI(api_key=settings.effective_api_key) as api:
            installer = ModInstaller(api, shortcut_service=get_shortcut_service())
            result = await installer.install(
                mod, options, on_progress=on_progress, on_phase=on_phase
            )
        pbar.close()

        if result.success:
            _ok(f"{mod.name} installed to: {result.installed_path}")
            logger.info("Mod installed: %s at %s", mod.name, result.installed_path)
        else:
            _fail("Installation failed")
            for error in result.errors:
                click.secho(f"  - {error}", fg="red", err=True)
            logger.error("Mod installation failed: %s", ", ".join(result.errors))
        for warning in result.warnings:
            click.secho(f"  ! {warning}", fg="yellow")
        return result.success

    return asyncio.run(run())


def run_create_shortcut(settings: Settings, mod_id: str = ERR_MOD_ID) -> None:
    click.secho("Create Desktop Shortcut", bold=True, fg="cyan")
    click.echo()

    mod_path = settings.paths.full_mods_path / mod_id
    launcher = find_launcher(mod_path)
    if launcher is None:
        _fail("Launcher not found")
        click.echo(f"Searched in: {mod_path}")
        logger.warning("Launcher not found at %s", mod_path)
        return

    service = get_shortcut_service()
    shortcut_path = desktop_path() / "Elden Ring Reforged.lnk"
    try:
        service.create_shortcut(launcher, shortcut_path, launcher.parent)
    except SalsaError as e:
        _fail(str(e))
        logger.warning("Failed to create shortcut: %s", e)
        return
    _ok(f"Shortcut created: {shortcut_path}")
    logger.info("Shortcut created at %s", shortcut_path)


# ── Commands ───────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Settings file (default: salsanow.json).")
@click.option("--api-key", envvar="NEXUS_API_KEY", default="", help="Nexus Mods API key.")
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: Optional[str], api_key: str) -> None:
    """salsanow: install Elden Ring and Nexus mods from a remote manifest."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    try:
        settings = load_settings(config_path)
    except SalsaError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if api_key:
        settings.nexus.api_key = api_key
    ctx.obj["settings"] = settings
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    if ctx.invoked_subcommand is None:
        menu(ctx)


MENU_ENTRIES = (
    ("1", "Install Elden Ring"),
    ("2", "Verify Vanilla Installation"),
    ("3", "Configure Nexus API Key"),
    ("4", "Install Elden Ring Reforged (ERR)"),
    ("5", "Create Desktop Shortcut"),
    ("Q", "Quit"),
)


def menu(ctx: click.Context) -> None:
    """Main menu loop. A failing action is reported and the loop continues."""
    settings = _settings(ctx)
    actions = {
        "1": lambda: run_install_game(settings),
        "2": lambda: run_verify_game(settings),
        "3": lambda: run_configure_nexus(settings, ctx.obj["config_path"]),
        "4": lambda: run_install_mod(settings),
        "5": lambda: run_create_shortcut(settings),
    }
    while True:
        click.clear()
        click.secho("=" * 50, fg="cyan")
        click.secho("  SalsaNOW - Elden Ring Modding", bold=True, fg="cyan")
        click.secho("=" * 50, fg="cyan")
        for key, label in MENU_ENTRIES:
            click.echo(f"  {key}. {label}")
        choice = click.prompt(
            "Main Menu",
            type=click.Choice([key for key, _ in MENU_ENTRIES], case_sensitive=False),
        ).upper()
        if choice == "Q":
            return

        click.clear()
        try:
            actions[choice]()
        except (click.Abort, KeyboardInterrupt):
            click.echo()
        except Exception as e:
            logger.debug("Menu action failed", exc_info=True)
            _fail(f"Error: {e}")
        _pause()


@main.command("install-game")
@click.option("--method", type=click.Choice(["steam", "depot", "skip"]), default=None,
              help="Installation method (prompted when omitted).")
@click.pass_context
def install_game(ctx: click.Context, method: Optional[str]) -> None:
    """Install the base game via Steam or DepotDownloader."""
    run_install_game(_settings(ctx), method)


@main.command("verify-game")
@click.option("--launch/--no-launch", default=None, help="Launch the game after verifying.")
@click.pass_context
def verify_game(ctx: click.Context, launch: Optional[bool]) -> None:
    """Check that the vanilla game is installed."""
    run_verify_game(_settings(ctx), launch)


@main.command("configure-nexus")
@click.option("--key", default=None, help="API key to store (prompted when omitted).")
@click.pass_context
def configure_nexus(ctx: click.Context, key: Optional[str]) -> None:
    """Store the Nexus Mods API key in the settings file."""
    try:
        run_configure_nexus(_settings(ctx), ctx.obj["config_path"], key)
    except SalsaError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command("install-mod")
@click.argument("mod_id", required=False)
@click.option("--shortcut", is_flag=True, help="Create a desktop shortcut afterwards.")
@click.pass_context
def install_mod(ctx: click.Context, mod_id: Optional[str], shortcut: bool) -> None:
    """Install a mod from the manifest (prompted when MOD_ID is omitted)."""
    settings = _settings(ctx)
    if not settings.effective_api_key:
        click.echo("Error: Nexus API key required. Set NEXUS_API_KEY or use --api-key.", err=True)
        sys.exit(1)
    try:
        ok = run_install_mod(settings, mod_id, create_shortcut=shortcut)
    except SalsaError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if not ok:
        sys.exit(1)


@main.command("create-shortcut")
@click.option("--mod-id", default=ERR_MOD_ID, show_default=True, help="Installed mod to link.")
@click.pass_context
def create_shortcut(ctx: click.Context, mod_id: str) -> None:
    """Create a desktop shortcut to an installed mod's launcher."""
    run_create_shortcut(_settings(ctx), mod_id)


@main.command("list-mods")
@click.pass_context
def list_mods(ctx: click.Context) -> None:
    """List the mods in the remote manifest."""
    try:
        manifest = asyncio.run(_load_manifest(_settings(ctx)))
    except SalsaError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if not manifest.mods:
        click.echo("No mods found.")
        return
    for mod in manifest.mods:
        nexus = mod.nexus
        click.echo(
            f"  [{mod.id}] {mod.name}  ({nexus.game_domain}/{nexus.mod_id}, "
            f"pattern={nexus.file_pattern}, strategy={mod.strategy.value})"
        )
        if mod.description:
            click.echo(f"      {mod.description}")


@main.command("list-tools")
@click.pass_context
def list_tools(ctx: click.Context) -> None:
    """List the tools in the remote manifest."""
    try:
        manifest = asyncio.run(_load_manifest(_settings(ctx)))
    except SalsaError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if not manifest.tools:
        click.echo("No tools found.")
        return
    for tool in manifest.tools:
        click.echo(f"  [{tool.id}] {tool.name} {tool.version}  {tool.url}")


if __name__ == "__main__":
    main()
