"""
Sekiro Mod Manager - filesystem gateway.

Primitive side-effecting operations used by the catalog and the installer:
directory creation, copying and deletion, content-folder discovery, and
archive extraction/creation through external tools (7-Zip and UnRAR).

The tools are reached through a ``ToolRunner`` callable so everything above
this layer can be exercised without spawning real processes.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import py7zr
import rarfile

from mod_errors import ExternalToolError, NotFoundError, UnsupportedFormatError

_log = logging.getLogger(__name__)

SEVEN_ZIP_EXTENSIONS = {".zip", ".7z"}
RAR_EXTENSIONS = {".rar"}
SUPPORTED_EXTENSIONS = SEVEN_ZIP_EXTENSIONS | RAR_EXTENSIONS

GAME_EXE_NAME = "sekiro.exe"

# Top-level folders ModEngine loads from a mod override directory.
CONTENT_FOLDERS = frozenset({
    "parts", "event", "map", "msg", "param", "script", "chr", "cutscene",
    "facegen", "font", "action", "menu", "mtd", "obj", "other", "sfx",
    "shader", "sound", "movie",
})


def _bundled_tool(exe_name: str, fallback: str) -> str:
    # Frozen exe ships tools next to _MEIPASS, dev checkouts keep them in assets/
    if getattr(sys, "frozen", False):
        candidate = Path(sys._MEIPASS) / exe_name
    else:
        candidate = Path(__file__).parent / "assets" / exe_name
    return str(candidate) if candidate.exists() else fallback


SEVEN_ZIP_TOOL = _bundled_tool("7za.exe", "7za")
UNRAR_TOOL = _bundled_tool("UnRAR.exe", "unrar")
rarfile.UNRAR_TOOL = UNRAR_TOOL


@dataclass
class ToolResult:
    returncode: int
    stderr: str = ""


ToolRunner = Callable[[list[str]], ToolResult]


def run_tool(argv: list[str]) -> ToolResult:
    """Run an archive tool to completion and capture its error output.

    Blocks until the process exits; there is no timeout.
    """
    proc = subprocess.run(
        argv,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    return ToolResult(returncode=proc.returncode, stderr=proc.stderr or "")


def _list_dir(directory: Path) -> tuple[list[Path], list[Path]]:
    """Return (files, subdirectories) of ``directory``, each sorted by name."""
    files: list[Path] = []
    dirs: list[Path] = []
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            dirs.append(entry)
        elif entry.is_file():
            files.append(entry)
    return files, dirs


def list_archive_names(filepath: str | Path) -> list[str]:
    """List member names of an archive without extracting it."""
    filepath = Path(filepath)
    ext = filepath.suffix.lower()
    if ext == ".zip":
        with zipfile.ZipFile(filepath, "r") as zf:
            names = zf.namelist()
    elif ext == ".7z":
        with py7zr.SevenZipFile(filepath, "r") as sz:
            names = sz.getnames()
    elif ext == ".rar":
        with rarfile.RarFile(filepath, "r") as rf:
            names = [info.filename for info in rf.infolist()]
    else:
        raise UnsupportedFormatError(f"Archive format {ext or '(none)'} is not supported")
    return [name.replace("\\", "/") for name in names]


def names_contain_content_folder(names: list[str]) -> bool:
    """True if any directory segment of any member name is a content folder."""
    for name in names:
        parts = [p for p in name.split("/") if p]
        # the last segment of a file member is the filename, not a folder
        if not name.endswith("/"):
            parts = parts[:-1]
        if any(part.lower() in CONTENT_FOLDERS for part in parts):
            return True
    return False


class FileOperations:
    """
    Filesystem gateway.

    Every path argument accepts ``str`` or ``Path``. Archive tools run
    synchronously through ``runner``.
    """

    def __init__(
        self,
        runner: Optional[ToolRunner] = None,
        seven_zip_tool: str = SEVEN_ZIP_TOOL,
        unrar_tool: str = UNRAR_TOOL,
    ):
        self.runner = runner or run_tool
        self.seven_zip_tool = seven_zip_tool
        self.unrar_tool = unrar_tool

    # ── Directories ───────────────────────────────────────────────────

    @staticmethod
    def ensure_directory(path: str | Path | None):
        if not path:
            return
        Path(path).mkdir(parents=True, exist_ok=True)

    def copy_tree(self, src: str | Path, dst: str | Path, recursive: bool = True):
        """Copy every file in ``src`` into ``dst``, overwriting existing files."""
        src, dst = Path(src), Path(dst)
        if not src.is_dir():
            raise NotFoundError(f"Source directory not found: {src}")

        pending = [(src, dst)]
        while pending:
            current_src, current_dst = pending.pop()
            self.ensure_directory(current_dst)
            files, dirs = _list_dir(current_src)
            for f in files:
                shutil.copy2(f, current_dst / f.name)
            if recursive:
                pending.extend((d, current_dst / d.name) for d in dirs)

    @staticmethod
    def delete_tree(path: str | Path):
        path = Path(path)
        if path.is_dir():
            shutil.rmtree(path)

    @staticmethod
    def has_marker_file(directory: str | Path, name: str) -> bool:
        return (Path(directory) / name).is_file()

    def contains_game_exe(self, directory: str | Path) -> bool:
        return bool(directory) and self.has_marker_file(directory, GAME_EXE_NAME)

    # ── Traversal ─────────────────────────────────────────────────────

    @staticmethod
    def locate_content_root(root_dir: str | Path) -> Optional[Path]:
        """Find the first content folder (``parts``, ``msg``, ...) under ``root_dir``.

        Each directory's immediate children are checked before any of them
        is descended into; children are visited in name order, so a match
        next to the current directory always beats a deeper one inside it.
        Returns ``None`` when nothing matches.
        """
        root_dir = Path(root_dir)
        if not root_dir.is_dir():
            return None

        stack = [root_dir]
        while stack:
            current = stack.pop()
            _, children = _list_dir(current)
            for child in children:
                if child.name.lower() in CONTENT_FOLDERS:
                    return child
            stack.extend(reversed(children))
        return None

    @staticmethod
    def collect_relative_files(root_dir: str | Path) -> list[str]:
        """List every file below ``root_dir`` as a "/"-separated relative path.

        Depth-first; at each level files come before subdirectories.
        """
        root_dir = Path(root_dir)
        if not root_dir.is_dir():
            return []

        collected: list[str] = []
        stack = [root_dir]
        while stack:
            current = stack.pop()
            files, dirs = _list_dir(current)
            collected.extend(f.relative_to(root_dir).as_posix() for f in files)
            stack.extend(reversed(dirs))
        return collected

    # ── Archives ──────────────────────────────────────────────────────

    def extract_archive(self, archive_path: str | Path, output_dir: str | Path):
        archive_path, output_dir = Path(archive_path), Path(output_dir)
        self.ensure_directory(output_dir)

        ext = archive_path.suffix.lower()
        if ext in SEVEN_ZIP_EXTENSIONS:
            argv = [self.seven_zip_tool, "x", "-y", f"-o{output_dir}", str(archive_path)]
        elif ext in RAR_EXTENSIONS:
            argv = [self.unrar_tool, "x", "-y", str(archive_path), "*", f"{output_dir}{os.sep}"]
        else:
            raise UnsupportedFormatError(f"Archive format {ext or '(none)'} is not supported")

        _log.debug("Extracting %s -> %s", archive_path, output_dir)
        self._run(argv, f"Failed to extract archive {archive_path}")

    def create_archive(self, src_dir: str | Path, archive_path: str | Path):
        src_dir, archive_path = Path(src_dir), Path(archive_path)
        ext = archive_path.suffix.lower()
        if ext not in SEVEN_ZIP_EXTENSIONS:
            raise UnsupportedFormatError(f"Cannot create {ext or '(none)'} archives")
        if not src_dir.is_dir():
            raise NotFoundError(f"Source directory not found: {src_dir}")

        self.ensure_directory(archive_path.parent)
        argv = [self.seven_zip_tool, "a", "-y", str(archive_path), f"{src_dir}/*"]
        _log.debug("Packing %s -> %s", src_dir, archive_path)
        self._run(argv, f"Failed to create archive {archive_path}")

    def _run(self, argv: list[str], context: str):
        result = self.runner(argv)
        if result.returncode != 0:
            _log.error("%s: %s", context, result.stderr.strip())
            raise ExternalToolError(argv, result.returncode, result.stderr)
