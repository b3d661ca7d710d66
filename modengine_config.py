"""
Reading and rewriting ModEngine's ``modengine.ini``.

The file belongs to ModEngine, so it is edited in place with regular
expressions rather than regenerated: comments and unknown keys survive.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pydantic import BaseModel

_log = logging.getLogger(__name__)

MODENGINE_INI = "modengine.ini"
MODENGINE_DLL = "dinput8.dll"
DEFAULT_OVERRIDE_DIR = "mods"

# ini key -> ModEngineSettings attribute
_BOOL_KEYS = {
    "chainDll": "chain_dll",
    "debug": "debug",
    "skipLogos": "skip_logos",
    "cacheFilePaths": "cache_file_paths",
    "loadUXMFiles": "load_uxm_files",
}
_OVERRIDE_KEY = "modOverrideDirectory"


class ModEngineSettings(BaseModel):
    chain_dll: bool = False
    debug: bool = False
    skip_logos: bool = False
    cache_file_paths: bool = False
    load_uxm_files: bool = False
    mod_override_directory: str = DEFAULT_OVERRIDE_DIR


def _ini_path(game_dir: str | Path) -> Path:
    return Path(game_dir) / MODENGINE_INI


def _replace_key(content: str, key: str, value: str) -> str:
    return re.sub(
        rf"\b{key}\s*=[^\r\n]*",
        lambda _: f"{key} = {value}",
        content,
        flags=re.IGNORECASE,
    )


def is_modengine_installed(game_dir: str | Path) -> bool:
    return (Path(game_dir) / MODENGINE_DLL).is_file()


def load_settings(game_dir: str | Path) -> ModEngineSettings:
    ini = _ini_path(game_dir)
    if not ini.is_file():
        return ModEngineSettings()

    content = ini.read_text(encoding="utf-8", errors="replace")
    values: dict[str, object] = {
        attr: re.search(rf"\b{key}\s*=\s*true", content, re.IGNORECASE) is not None
        for key, attr in _BOOL_KEYS.items()
    }
    match = re.search(rf"\b{_OVERRIDE_KEY}\s*=([^\r\n]+)", content, re.IGNORECASE)
    if match and match.group(1).strip():
        values["mod_override_directory"] = match.group(1).strip()
    return ModEngineSettings.model_validate(values)


def save_settings(game_dir: str | Path, settings: ModEngineSettings) -> bool:
    ini = _ini_path(game_dir)
    if not ini.is_file():
        _log.error("%s not found in %s", MODENGINE_INI, game_dir)
        return False

    content = ini.read_text(encoding="utf-8", errors="replace")
    for key, attr in _BOOL_KEYS.items():
        content = _replace_key(content, key, str(getattr(settings, attr)).lower())
    content = _replace_key(content, _OVERRIDE_KEY, settings.mod_override_directory)
    ini.write_text(content, encoding="utf-8")
    _log.info("Saved ModEngine settings")
    return True


def set_active_profile(game_dir: str | Path, profile_name: str | None) -> bool:
    """Point ModEngine at a profile folder, or back at ``mods`` for None."""
    ini = _ini_path(game_dir)
    if not ini.is_file():
        _log.error("%s not found in %s", MODENGINE_INI, game_dir)
        return False

    override = profile_name or DEFAULT_OVERRIDE_DIR
    content = ini.read_text(encoding="utf-8", errors="replace")
    ini.write_text(_replace_key(content, _OVERRIDE_KEY, override), encoding="utf-8")
    _log.info("Set active profile to: %s", override)
    return True


def active_profile_name(game_dir: str | Path) -> str | None:
    override = load_settings(game_dir).mod_override_directory
    return None if override == DEFAULT_OVERRIDE_DIR else override
