"""
Sekiro Mod Manager - installation orchestrator.

Moves unit payloads between the packed archives kept by the manager and
the game directory, and flips the catalog's ``installed`` flag once the
filesystem work is done.

Workflow:
    1. import_mod() / create_profile() to pack and catalogue a unit
    2. install_mod() / install_profile() to extract and copy its manifest
    3. uninstall_mod() / uninstall_profile() to delete it from the game

An install extracts into ``<scratch>/<name>``, which is removed on every
exit path. Nothing else is rolled back: if copying fails halfway, the
files already copied stay in the game directory and the unit keeps its
previous ``installed`` value.
"""

from __future__ import annotations

import logging
import re
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

from app_settings import AppPaths
from content_units import Mod, Profile
from file_operations import FileOperations, list_archive_names, names_contain_content_folder
from mod_catalog import Catalog, ModCatalog, ProfileCatalog
from mod_errors import (
    ContentNotFoundError,
    DuplicateNameError,
    InvalidNameError,
    ModManagerError,
    NotFoundError,
)

_log = logging.getLogger(__name__)

ARCHIVE_EXTENSION = ".zip"
GAME_MODS_FOLDER = "mods"
UNIT_NAME_RE = re.compile(r"^[A-Za-z0-9 -]+$")


def validate_unit_name(name: str) -> str:
    """Return the trimmed name, or raise InvalidNameError."""
    name = (name or "").strip()
    if not name:
        raise InvalidNameError("No name was entered")
    if not UNIT_NAME_RE.match(name):
        raise InvalidNameError(
            "Name can only contain alphanumeric characters, dashes, and spaces"
        )
    return name


def validate_profile_folder(folder: str) -> str:
    """Return the trimmed folder name for a profile, or raise InvalidNameError.

    A profile folder is a single directory directly under the game directory
    and cannot be the shared mods folder.
    """
    folder = validate_unit_name(folder)
    if folder.casefold() == GAME_MODS_FOLDER:
        raise InvalidNameError(f"Profile folder cannot be '{GAME_MODS_FOLDER}'")
    return folder


class ModInstaller:
    def __init__(
        self,
        mods: ModCatalog,
        profiles: ProfileCatalog,
        paths: AppPaths,
        files: Optional[FileOperations] = None,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        self.mods = mods
        self.profiles = profiles
        self.paths = paths
        self.files = files or FileOperations()
        self._log_cb = log_callback or print

    # ── Logging ───────────────────────────────────────────────────────

    def log(self, msg: str):
        _log.info(msg)
        self._log_cb(msg)

    # ── Paths ─────────────────────────────────────────────────────────

    def archive_path(self, unit: Mod | Profile) -> Path:
        source_dir = self.paths.profiles_dir if isinstance(unit, Profile) else self.paths.mods_dir
        return source_dir / f"{unit.name}{ARCHIVE_EXTENSION}"

    @staticmethod
    def destination_dir(unit: Mod | Profile, target_root: str | Path) -> Path:
        if isinstance(unit, Profile):
            # profile folders are deleted whole on uninstall
            root = Path(target_root).resolve()
            resolved = (root / unit.destination_folder).resolve()
            if resolved.parent != root or resolved.name.casefold() == GAME_MODS_FOLDER:
                raise InvalidNameError(
                    f"Profile '{unit.name}' has an invalid folder: {unit.destination_folder!r}"
                )
            return Path(target_root) / unit.destination_folder
        return Path(target_root) / GAME_MODS_FOLDER

    def scratch_path(self, name: str) -> Path:
        return self.paths.scratch_dir / name

    @contextmanager
    def scratch_directory(self, name: str) -> Iterator[Path]:
        """A fresh ``<scratch>/<name>`` directory, deleted on exit."""
        scratch = self.scratch_path(name)
        self.files.delete_tree(scratch)
        self.files.ensure_directory(scratch)
        try:
            yield scratch
        finally:
            self.files.delete_tree(scratch)

    def _catalog_for(self, unit: Mod | Profile) -> Catalog:
        return self.profiles if isinstance(unit, Profile) else self.mods

    # ── Install ───────────────────────────────────────────────────────

    def install_mod(self, name: str, target_root: str | Path) -> int:
        """Install a catalogued mod into ``<target_root>/mods``.

        Returns the number of files copied.
        """
        return self._install(self.mods.get(name), target_root)

    def install_profile(self, name: str, target_root: str | Path) -> int:
        """Install a catalogued profile into ``<target_root>/<profile folder>``."""
        return self._install(self.profiles.get(name), target_root)

    def _install(self, unit: Mod | Profile, target_root: str | Path) -> int:
        archive = self.archive_path(unit)
        if not archive.is_file():
            raise NotFoundError(f"{unit.kind.capitalize()} archive not found: {archive}")

        dest = self.destination_dir(unit, target_root)
        self.log(f"Installing {unit.kind} '{unit.name}' into {dest}...")
        self.files.ensure_directory(dest)

        with self.scratch_directory(unit.name) as scratch:
            self.log(f"  Extracting {archive.name}...")
            self.files.extract_archive(archive, scratch)

            copied = 0
            for rel in unit.manifest:
                src = scratch / rel
                if not src.is_file():
                    self.log(f"  Not in archive, skipping: {rel}")
                    continue
                dst = dest / rel
                dst.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dst)
                copied += 1

            self._catalog_for(unit).set_installed(unit.name, True)

        self.log(f"  Installed '{unit.name}' ({copied} of {len(unit.manifest)} file(s))")
        return copied

    # ── Uninstall ─────────────────────────────────────────────────────

    def uninstall_mod(self, name: str, target_root: str | Path) -> int:
        """Delete a mod's manifested files from ``<target_root>/mods``.

        An unknown name is a no-op. Returns the number of files removed.
        """
        mod = self.mods.find_by_name(name)
        if mod is None:
            self.log(f"No mod named '{name}', nothing to uninstall")
            return 0
        return self._uninstall(mod, target_root)

    def uninstall_profile(self, name: str, target_root: str | Path) -> int:
        """Delete a profile's files and its whole destination folder."""
        profile = self.profiles.find_by_name(name)
        if profile is None:
            self.log(f"No profile named '{name}', nothing to uninstall")
            return 0
        return self._uninstall(profile, target_root)

    def _uninstall(self, unit: Mod | Profile, target_root: str | Path) -> int:
        dest = self.destination_dir(unit, target_root)
        self.log(f"Uninstalling {unit.kind} '{unit.name}' from {dest}...")

        removed = 0
        for rel in unit.manifest:
            fp = dest / rel
            if fp.is_file():
                fp.unlink()
                removed += 1

        # a profile owns its folder, the shared mods folder is never removed
        if isinstance(unit, Profile):
            self.files.delete_tree(dest)

        self._catalog_for(unit).set_installed(unit.name, False)
        self.log(f"  Removed {removed} file(s)")
        return removed

    def reinstall_installed(self, target_root: str | Path) -> list[str]:
        """Install every unit flagged as installed into ``target_root`` again."""
        reinstalled: list[str] = []
        for mod in self.mods.list_units():
            if mod.installed:
                self.install_mod(mod.name, target_root)
                reinstalled.append(mod.name)
        for profile in self.profiles.list_units():
            if profile.installed:
                self.install_profile(profile.name, target_root)
                reinstalled.append(profile.name)
        return reinstalled

    # ── Catalogue ─────────────────────────────────────────────────────

    def import_mod(self, archive_path: str | Path, name: str) -> Mod:
        """Repack a downloaded mod archive into ``mods/<name>.zip`` and catalogue it.

        The archive may wrap its content in any number of folders; the
        payload base is the parent of the first content folder found.
        """
        name = validate_unit_name(name)
        if self.mods.name_exists(name):
            raise DuplicateNameError(f"Name already matches a previously added mod: {name}")

        archive_path = Path(archive_path)
        if not archive_path.is_file():
            raise NotFoundError(f"Mod archive not found: {archive_path}")
        if not names_contain_content_folder(list_archive_names(archive_path)):
            raise ContentNotFoundError(f"No mod content folders found in {archive_path.name}")

        packed = self.paths.mods_dir / f"{name}{ARCHIVE_EXTENSION}"
        self.log(f"Importing '{name}' from {archive_path.name}...")

        with self.scratch_directory(name) as scratch:
            self.files.extract_archive(archive_path, scratch)
            content_root = self.files.locate_content_root(scratch)
            if content_root is None:
                raise ContentNotFoundError(f"No mod content folders found in {archive_path.name}")

            base = content_root.parent
            manifest = self.files.collect_relative_files(base)
            self._replace_archive(base, packed)

        mod = Mod(name=name, source_path=str(packed), manifest=manifest)
        self.mods.add(mod)
        self.log(f"  Added mod '{name}' ({len(manifest)} file(s))")
        return mod

    def create_profile(
        self, name: str, mod_names: list[str], profile_folder: str | None = None
    ) -> Profile:
        """Bundle catalogued mods into ``profiles/<name>.zip`` and catalogue it.

        Mods are layered in the given order, so a later mod's file wins
        over an earlier one with the same path.
        """
        name = validate_unit_name(name)
        if self.profiles.name_exists(name):
            raise DuplicateNameError(f"Name already matches a previously added profile: {name}")
        folder = validate_profile_folder(profile_folder or name)
        if not mod_names:
            raise ModManagerError("A profile needs at least one mod")

        archives = []
        for mod_name in mod_names:
            archive = self.archive_path(self.mods.get(mod_name))
            if not archive.is_file():
                raise NotFoundError(f"Mod archive not found: {archive}")
            archives.append(archive)

        packed = self.paths.profiles_dir / f"{name}{ARCHIVE_EXTENSION}"
        self.log(f"Creating profile '{name}' from {len(mod_names)} mod(s)...")

        with self.scratch_directory(name) as scratch:
            for archive in archives:
                self.log(f"  Adding {archive.name}")
                self.files.extract_archive(archive, scratch)
            manifest = self.files.collect_relative_files(scratch)
            self._replace_archive(scratch, packed)

        profile = Profile(
            name=name,
            source_path=str(packed),
            manifest=manifest,
            profile_folder=folder,
            mod_count=len(mod_names),
        )
        self.profiles.add(profile)
        self.log(f"  Added profile '{name}' ({len(manifest)} file(s))")
        return profile

    def _replace_archive(self, src_dir: Path, archive: Path):
        # 7-Zip's "a" command merges into an existing archive
        if archive.is_file():
            self.log(f"  Replacing stale {archive.name}")
            archive.unlink()
        self.files.create_archive(src_dir, archive)

    def delete_mod(self, name: str):
        """Forget a mod. Files already copied into the game stay there."""
        self.mods.remove(name)

    def delete_profile(self, name: str):
        """Forget a profile. Files already copied into the game stay there."""
        self.profiles.remove(name)
