"""
Application settings and on-disk layout.

All working directories live under a single base directory (the process
working directory by default):

    mods/        packed mod archives (<name>.zip)
    configs/     mod records
    profiles/    packed profile archives
    configsP/    profile records
    tmp/         scratch space for extraction
    settings.ini Key=Value application settings
    dir.ini      path of the game installation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, field_validator

_log = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.ini"
GAME_DIR_FILENAME = "dir.ini"
LOG_FILENAME = "log.txt"

# settings.ini key -> AppSettings attribute (write order is this order)
_BOOL_KEYS = {
    "Warnings": "warnings_enabled",
    "Logging": "logging_enabled",
    "CloseOnLaunch": "close_on_launch",
    "ReinstallAfterDirChange": "reinstall_after_dir_change",
    "KeepModengineSettings": "keep_modengine_settings",
}
_TEXT_KEYS = {"ActiveProfile": "active_profile"}


@dataclass
class AppPaths:
    base_dir: Path = field(default_factory=Path.cwd)

    def __post_init__(self):
        self.base_dir = Path(self.base_dir)

    @property
    def mods_dir(self) -> Path:
        return self.base_dir / "mods"

    @property
    def mod_records_dir(self) -> Path:
        return self.base_dir / "configs"

    @property
    def profiles_dir(self) -> Path:
        return self.base_dir / "profiles"

    @property
    def profile_records_dir(self) -> Path:
        return self.base_dir / "configsP"

    @property
    def scratch_dir(self) -> Path:
        return self.base_dir / "tmp"

    @property
    def settings_file(self) -> Path:
        return self.base_dir / SETTINGS_FILENAME

    @property
    def game_dir_file(self) -> Path:
        return self.base_dir / GAME_DIR_FILENAME

    @property
    def log_file(self) -> Path:
        return self.base_dir / LOG_FILENAME

    def ensure_layout(self):
        for d in (
            self.mods_dir,
            self.mod_records_dir,
            self.profiles_dir,
            self.profile_records_dir,
            self.scratch_dir,
        ):
            d.mkdir(parents=True, exist_ok=True)


class AppSettings(BaseModel):
    """User-facing switches persisted in settings.ini."""

    game_directory: str = ""
    warnings_enabled: bool = False
    logging_enabled: bool = False
    close_on_launch: bool = False
    reinstall_after_dir_change: bool = False
    keep_modengine_settings: bool = False
    active_profile: str = ""

    @field_validator("game_directory", "active_profile")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


def get_game_directory(paths: AppPaths) -> str:
    """Return the configured game directory, or "" if unset or missing."""
    if not paths.game_dir_file.is_file():
        return ""
    content = paths.game_dir_file.read_text(encoding="utf-8").strip()
    if content and Path(content).is_dir():
        return content
    return ""


def set_game_directory(paths: AppPaths, directory: str | Path):
    paths.game_dir_file.write_text(str(directory), encoding="utf-8")
    _log.info("Game directory set to: %s", directory)


def load_settings(paths: AppPaths) -> AppSettings:
    values: dict[str, object] = {}
    if paths.settings_file.is_file():
        for line in paths.settings_file.read_text(encoding="utf-8").splitlines():
            parts = line.split("=")
            if len(parts) != 2:
                continue
            key, value = parts[0].strip(), parts[1].strip()
            if key in _BOOL_KEYS:
                values[_BOOL_KEYS[key]] = value == "1"
            elif key in _TEXT_KEYS:
                values[_TEXT_KEYS[key]] = value

    values["game_directory"] = get_game_directory(paths)
    return AppSettings.model_validate(values)


def save_settings(paths: AppPaths, settings: AppSettings):
    lines = [
        f"{key}={1 if getattr(settings, attr) else 0}" for key, attr in _BOOL_KEYS.items()
    ]
    lines.extend(f"{key}={getattr(settings, attr)}" for key, attr in _TEXT_KEYS.items())
    paths.settings_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
