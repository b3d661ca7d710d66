"""
Content units tracked by the catalog: mods and profiles.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Mod:
    """A single installable mod."""

    name: str
    source_path: str = ""  # e.g. "mods/Brighter-Torches.zip"
    record_path: str = ""  # rewritten on every save: "<records dir>/<name>.ini"
    manifest: list[str] = field(default_factory=list)  # relative, "/"-separated
    installed: bool = False

    kind = "mod"


@dataclass
class Profile:
    """A bundle of mods installed into its own folder under the game root."""

    name: str
    source_path: str = ""
    record_path: str = ""
    manifest: list[str] = field(default_factory=list)
    installed: bool = False
    profile_folder: str = ""  # destination folder name; falls back to ``name``
    mod_count: int = 0  # advisory only

    kind = "profile"

    @property
    def destination_folder(self) -> str:
        return self.profile_folder or self.name
