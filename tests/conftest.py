"""
Shared fixtures and helpers for the Sekiro Mod Manager test suite.
"""

import zipfile
from pathlib import Path

import pytest

from app_settings import AppPaths
from file_operations import FileOperations, ToolResult
from mod_catalog import ModCatalog, ProfileCatalog
from mod_installation import ModInstaller


def make_zip(path: Path, members: dict[str, bytes | str]) -> Path:
    """Write a zip with the given {member_name: data} entries."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for member, data in members.items():
            zf.writestr(member, data)
    return path


class FakeArchiveTool:
    """Stands in for 7za / unrar, doing the work with zipfile.

    Every archive is treated as a zip regardless of extension. Set
    ``fail_with`` to make the next calls exit with code 2.
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.fail_with: str | None = None

    def __call__(self, argv: list[str]) -> ToolResult:
        self.calls.append(list(argv))
        if self.fail_with is not None:
            return ToolResult(returncode=2, stderr=self.fail_with)

        tool, command = argv[0], argv[1]
        if command == "a":
            archive, src = Path(argv[3]), Path(argv[4][: -len("/*")])
            with zipfile.ZipFile(archive, "w") as zf:
                for f in sorted(src.rglob("*")):
                    if f.is_file():
                        zf.write(f, f.relative_to(src).as_posix())
            return ToolResult(returncode=0)

        if tool == "unrar":
            archive, out = argv[3], argv[5]
        else:
            archive = argv[-1]
            out = next(a[2:] for a in argv if a.startswith("-o"))
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(out)
        return ToolResult(returncode=0)


@pytest.fixture
def tool():
    return FakeArchiveTool()


@pytest.fixture
def files(tool):
    return FileOperations(runner=tool, seven_zip_tool="7za", unrar_tool="unrar")


@pytest.fixture
def paths(tmp_path):
    """AppPaths rooted in a fresh directory with every working dir created."""
    p = AppPaths(tmp_path / "manager")
    p.ensure_layout()
    return p


@pytest.fixture
def game_dir(tmp_path):
    game = tmp_path / "Sekiro"
    game.mkdir()
    (game / "sekiro.exe").write_bytes(b"exe")
    return game


@pytest.fixture
def mods(paths):
    return ModCatalog(paths.mod_records_dir)


@pytest.fixture
def profiles(paths):
    return ProfileCatalog(paths.profile_records_dir)


@pytest.fixture
def installer(mods, profiles, paths, files):
    return ModInstaller(mods, profiles, paths, files, log_callback=lambda _: None)
