"""
Sekiro Mod Manager - unit catalogs.

A catalog holds every unit of one kind in memory, in insertion order, and
mirrors each one to its own record file in the records directory.

Lookups by name are exact, while duplicate detection ignores case. The two
checks deliberately disagree: ``find_by_name("foo")`` misses a unit called
``"Foo"`` even though ``add`` refuses a second ``"foo"``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Generic, TypeVar

from content_units import Mod, Profile
from mod_errors import DuplicateNameError, InvalidNameError, NotFoundError, RecordFormatError
from record_codec import (
    RECORD_EXTENSION,
    ModRecordCodec,
    ProfileRecordCodec,
    read_record_lines,
    write_record_lines,
)

_log = logging.getLogger(__name__)

UnitT = TypeVar("UnitT", Mod, Profile)


class Catalog(Generic[UnitT]):
    unit_label = "unit"

    def __init__(self, records_dir: str | Path, codec):
        self.records_dir = Path(records_dir)
        self.codec = codec
        self._units: list[UnitT] = []

    # ── Queries ───────────────────────────────────────────────────────

    def list_units(self) -> list[UnitT]:
        return list(self._units)

    def find_by_name(self, name: str) -> UnitT | None:
        return next((u for u in self._units if u.name == name), None)

    def get(self, name: str) -> UnitT:
        unit = self.find_by_name(name)
        if unit is None:
            raise NotFoundError(f"{self.unit_label.capitalize()} '{name}' not found")
        return unit

    def name_exists(self, name: str) -> bool:
        folded = name.casefold()
        return any(u.name.casefold() == folded for u in self._units)

    def record_path_for(self, name: str) -> Path:
        return self.records_dir / f"{name}{RECORD_EXTENSION}"

    # ── Mutation ──────────────────────────────────────────────────────

    def add(self, unit: UnitT):
        if not unit.name or not unit.name.strip():
            raise InvalidNameError(f"{self.unit_label.capitalize()} name must not be empty")
        if self.name_exists(unit.name):
            raise DuplicateNameError(
                f"{self.unit_label.capitalize()} with name '{unit.name}' already exists"
            )
        self.save(unit)
        self._units.append(unit)
        _log.info("Added %s: %s", self.unit_label, unit.name)

    def remove(self, name: str):
        unit = self.find_by_name(name)
        if unit is None:
            return

        self._units.remove(unit)
        # line 3 of a record goes stale when the manager directory moves
        records = {self.record_path_for(name)}
        if unit.record_path:
            records.add(Path(unit.record_path))
        for record in records:
            if record.is_file():
                record.unlink()
        _log.info("Removed %s: %s", self.unit_label, name)

    def set_installed(self, name: str, value: bool):
        unit = self.get(name)
        unit.installed = value
        self.save(unit)
        _log.info("Marked %s '%s' %s", self.unit_label, name, "installed" if value else "uninstalled")

    # ── Persistence ───────────────────────────────────────────────────

    def save(self, unit: UnitT):
        path = self.record_path_for(unit.name)
        unit.record_path = str(path)
        write_record_lines(path, self.codec.encode(unit))

    def load_all(self) -> list[UnitT]:
        """Rebuild the in-memory list from the record files on disk.

        Records that cannot be decoded are skipped with a warning.
        """
        loaded: list[UnitT] = []
        if self.records_dir.is_dir():
            for path in sorted(self.records_dir.glob(f"*{RECORD_EXTENSION}")):
                if not path.is_file():
                    continue
                try:
                    loaded.append(self.codec.decode(read_record_lines(path)))
                except (RecordFormatError, UnicodeDecodeError) as exc:
                    _log.warning("Skipping %s record %s: %s", self.unit_label, path.name, exc)

        self._units = loaded
        _log.info("Loaded %d %s(s) from %s", len(loaded), self.unit_label, self.records_dir)
        return self.list_units()


class ModCatalog(Catalog[Mod]):
    unit_label = "mod"

    def __init__(self, records_dir: str | Path):
        super().__init__(records_dir, ModRecordCodec())


class ProfileCatalog(Catalog[Profile]):
    unit_label = "profile"

    def __init__(self, records_dir: str | Path):
        super().__init__(records_dir, ProfileRecordCodec())
