"""
Positional record format for catalogued units.

One record file per unit, one field per line, order fixed:

    Mod                         Profile
    ---                         -------
    0  y | n  (installed)       0  y | n
    1  name                     1  name
    2  source path              2  source path
    3  record path              3  record path
    4  file count               4  profile folder
    5+ one file per line        5  mod count
                                6  file count
                                7+ one file per line

Fields carry no escaping: a file name containing a newline cannot be
represented and would corrupt the record.
"""

from __future__ import annotations

from pathlib import Path

from content_units import Mod, Profile
from mod_errors import RecordFormatError

RECORD_EXTENSION = ".ini"


def _flag(value: bool) -> str:
    return "y" if value else "n"


def _parse_int(text: str) -> int | None:
    try:
        return int(text.strip())
    except ValueError:
        return None


def _read_files(lines: list[str], start: int, count_line: str) -> list[str]:
    # A short file yields a partial manifest rather than an error
    count = _parse_int(count_line)
    if count is None:
        return []
    return lines[start:start + max(count, 0)]


class ModRecordCodec:
    min_lines = 5

    @staticmethod
    def encode(mod: Mod) -> list[str]:
        return [
            _flag(mod.installed),
            mod.name,
            mod.source_path,
            mod.record_path,
            str(len(mod.manifest)),
            *mod.manifest,
        ]

    def decode(self, lines: list[str]) -> Mod:
        if len(lines) < self.min_lines:
            raise RecordFormatError(
                f"Mod record needs at least {self.min_lines} lines, got {len(lines)}"
            )
        return Mod(
            installed=lines[0] == "y",
            name=lines[1],
            source_path=lines[2],
            record_path=lines[3],
            manifest=_read_files(lines, 5, lines[4]),
        )


class ProfileRecordCodec:
    min_lines = 7

    @staticmethod
    def encode(profile: Profile) -> list[str]:
        return [
            _flag(profile.installed),
            profile.name,
            profile.source_path,
            profile.record_path,
            profile.profile_folder,
            str(profile.mod_count),
            str(len(profile.manifest)),
            *profile.manifest,
        ]

    def decode(self, lines: list[str]) -> Profile:
        if len(lines) < self.min_lines:
            raise RecordFormatError(
                f"Profile record needs at least {self.min_lines} lines, got {len(lines)}"
            )
        return Profile(
            installed=lines[0] == "y",
            name=lines[1],
            source_path=lines[2],
            record_path=lines[3],
            profile_folder=lines[4],
            mod_count=_parse_int(lines[5]) or 0,
            manifest=_read_files(lines, 7, lines[6]),
        )


def read_record_lines(path: str | Path) -> list[str]:
    return Path(path).read_text(encoding="utf-8").splitlines()


def write_record_lines(path: str | Path, lines: list[str]):
    Path(path).write_text("\n".join(lines) + "\n", encoding="utf-8")
