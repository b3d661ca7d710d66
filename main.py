#!/usr/bin/env python3
"""Sekiro Mod Manager: command-line entry point"""

import argparse
import faulthandler
import logging
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path

import modengine_config
from app_settings import AppPaths, AppSettings, load_settings, save_settings, set_game_directory
from file_operations import GAME_EXE_NAME, FileOperations
from mod_catalog import ModCatalog, ProfileCatalog
from mod_errors import ModManagerError
from mod_installation import ModInstaller

logger = logging.getLogger()

# --flag -> AppSettings attribute
_SETTING_FLAGS = {
    "warnings": "warnings_enabled",
    "logging": "logging_enabled",
    "close-on-launch": "close_on_launch",
    "reinstall-after-dir-change": "reinstall_after_dir_change",
    "keep-modengine-settings": "keep_modengine_settings",
}
# --flag -> ModEngineSettings attribute
_MODENGINE_FLAGS = {
    "chain-dll": "chain_dll",
    "debug": "debug",
    "skip-logos": "skip_logos",
    "cache-file-paths": "cache_file_paths",
    "load-uxm-files": "load_uxm_files",
}


def setup_logging(log_file: Path | None) -> logging.Logger:
    logger.setLevel(logging.DEBUG)
    if log_file is None:
        logger.addHandler(logging.NullHandler())
        return logger

    handler = RotatingFileHandler(
        log_file,
        maxBytes=1 * 1024 * 1024,  # 1 MB
        backupCount=2,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
    logger.addHandler(handler)
    return logger


def install_crash_handler(log_dir: Path):
    def handle_exception(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        logger.critical(
            "Unhandled exception:\n%s",
            "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
        )
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = handle_exception

    # faulthandler can't use logging after a native crash, so it gets its own file
    crash_file = log_dir / "crash.log"
    faulthandler.enable(open(crash_file, "w"), all_threads=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sekiro Mod Manager")
    parser.add_argument("--base-dir", default=".", help="Directory holding mods/, configs/, ...")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="Show catalogued mods and profiles")

    p = sub.add_parser("add-mod", help="Import a mod archive")
    p.add_argument("archive")
    p.add_argument("name")

    p = sub.add_parser("add-profile", help="Bundle catalogued mods into a profile")
    p.add_argument("name")
    p.add_argument("mods", nargs="+")
    p.add_argument("--folder", help="Destination folder under the game directory")

    for kind in ("mod", "profile"):
        for action in ("remove", "install", "uninstall"):
            p = sub.add_parser(f"{action}-{kind}", help=f"{action.capitalize()} a {kind}")
            p.add_argument("name")
            if action == "remove":
                p.add_argument("--yes", action="store_true", help="Skip the removal warning")

    p = sub.add_parser("set-active-profile", help="Point ModEngine at a profile (omit for mods/)")
    p.add_argument("name", nargs="?")

    p = sub.add_parser("set-game-dir", help="Set the Sekiro installation directory")
    p.add_argument("directory")

    p = sub.add_parser("settings", help="Show or change manager settings")
    _add_switches(p, _SETTING_FLAGS)

    p = sub.add_parser("modengine-set", help="Show or change modengine.ini switches")
    _add_switches(p, _MODENGINE_FLAGS)
    return parser


def _add_switches(parser: argparse.ArgumentParser, flags: dict[str, str]):
    for flag, attr in flags.items():
        parser.add_argument(f"--{flag}", dest=attr, action=argparse.BooleanOptionalAction, default=None)


def _apply_switches(args: argparse.Namespace, flags: dict[str, str], target) -> bool:
    """Copy the switches given on the command line onto target. Returns True if any were."""
    changed = False
    for attr in flags.values():
        value = getattr(args, attr)
        if value is not None:
            setattr(target, attr, value)
            changed = True
    return changed


def _print_switches(flags: dict[str, str], source):
    for flag, attr in flags.items():
        print(f"{flag:<28}{'on' if getattr(source, attr) else 'off'}")


def _confirm_removal(settings: AppSettings, args: argparse.Namespace, kind: str):
    if settings.warnings_enabled and not args.yes:
        raise ModManagerError(f"Warnings are enabled; pass --yes to remove {kind} '{args.name}'")


def _require_game_dir(files: FileOperations, game_dir: str) -> str:
    if not files.contains_game_exe(game_dir):
        raise ModManagerError(
            f"Game directory is not set or does not contain {GAME_EXE_NAME}; run set-game-dir first"
        )
    return game_dir


def run(args: argparse.Namespace, files: FileOperations | None = None) -> int:
    paths = AppPaths(Path(args.base_dir))
    paths.ensure_layout()
    settings = load_settings(paths)

    files = files or FileOperations()
    mods = ModCatalog(paths.mod_records_dir)
    profiles = ProfileCatalog(paths.profile_records_dir)
    mods.load_all()
    profiles.load_all()
    installer = ModInstaller(mods, profiles, paths, files)

    cmd = args.command
    if cmd == "list":
        for mod in mods.list_units():
            print(f"mod      {'[x]' if mod.installed else '[ ]'}  {mod.name}  ({len(mod.manifest)} files)")
        for profile in profiles.list_units():
            print(
                f"profile  {'[x]' if profile.installed else '[ ]'}  {profile.name}  "
                f"({profile.mod_count} mods, folder {profile.destination_folder})"
            )
        if settings.game_directory:
            active = modengine_config.active_profile_name(settings.game_directory)
            print(f"Active profile: {active or 'None'}")
            if not modengine_config.is_modengine_installed(settings.game_directory):
                print(
                    f"ModEngine is not installed: {modengine_config.MODENGINE_DLL} "
                    f"missing from {settings.game_directory}"
                )
    elif cmd == "add-mod":
        installer.import_mod(args.archive, args.name)
    elif cmd == "add-profile":
        installer.create_profile(args.name, args.mods, profile_folder=args.folder)
    elif cmd == "remove-mod":
        _confirm_removal(settings, args, "mod")
        installer.delete_mod(args.name)
    elif cmd == "remove-profile":
        _confirm_removal(settings, args, "profile")
        installer.delete_profile(args.name)
    elif cmd == "install-mod":
        installer.install_mod(args.name, _require_game_dir(files, settings.game_directory))
    elif cmd == "uninstall-mod":
        installer.uninstall_mod(args.name, _require_game_dir(files, settings.game_directory))
    elif cmd == "install-profile":
        installer.install_profile(args.name, _require_game_dir(files, settings.game_directory))
    elif cmd == "uninstall-profile":
        installer.uninstall_profile(args.name, _require_game_dir(files, settings.game_directory))
    elif cmd == "set-active-profile":
        game_dir = _require_game_dir(files, settings.game_directory)
        folder = None
        if args.name:
            profile = profiles.find_by_name(args.name)
            if profile is None:
                raise ModManagerError(f"Profile '{args.name}' not found")
            folder = profile.destination_folder
        if not modengine_config.set_active_profile(game_dir, folder):
            raise ModManagerError(f"{modengine_config.MODENGINE_INI} not found in {game_dir}")
        settings.active_profile = args.name or ""
        save_settings(paths, settings)
    elif cmd == "set-game-dir":
        directory = str(Path(args.directory).resolve())
        if not files.contains_game_exe(directory):
            raise ModManagerError(f"The selected directory does not contain {GAME_EXE_NAME}")
        set_game_directory(paths, directory)
        if settings.reinstall_after_dir_change:
            reinstalled = installer.reinstall_installed(directory)
            print(f"Reinstalled {len(reinstalled)} unit(s)")
    elif cmd == "settings":
        if _apply_switches(args, _SETTING_FLAGS, settings):
            save_settings(paths, settings)
        _print_switches(_SETTING_FLAGS, settings)
    elif cmd == "modengine-set":
        game_dir = _require_game_dir(files, settings.game_directory)
        engine = modengine_config.load_settings(game_dir)
        if _apply_switches(args, _MODENGINE_FLAGS, engine):
            if not modengine_config.save_settings(game_dir, engine):
                raise ModManagerError(f"{modengine_config.MODENGINE_INI} not found in {game_dir}")
        _print_switches(_MODENGINE_FLAGS, engine)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    paths = AppPaths(Path(args.base_dir))
    paths.ensure_layout()

    setup_logging(paths.log_file if load_settings(paths).logging_enabled else None)
    install_crash_handler(paths.base_dir)
    logger.info("Starting Sekiro Mod Manager: %s", args.command)

    try:
        return run(args)
    except ModManagerError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
