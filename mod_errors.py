"""
Sekiro Mod Manager - error taxonomy.

Validation failures (missing unit, missing archive, duplicate or invalid
name) are raised before anything on disk is touched. Failures raised from
the middle of an install propagate after scratch cleanup. Plain ``OSError``
is never wrapped.
"""

from __future__ import annotations


class ModManagerError(Exception):
    """Base class for every error raised by the catalog and installer."""


class NotFoundError(ModManagerError, LookupError):
    """A unit, archive or source directory does not exist."""


class ContentNotFoundError(NotFoundError):
    """An archive contains no recognised content folder."""


class DuplicateNameError(ModManagerError, ValueError):
    """A unit with the same (case-insensitive) name is already catalogued."""


class InvalidNameError(ModManagerError, ValueError):
    """A unit name is empty or uses characters outside the allowed set."""


class UnsupportedFormatError(ModManagerError, ValueError):
    """The archive extension is not handled by any known tool."""


class RecordFormatError(ModManagerError, ValueError):
    """A record file is too short or otherwise unreadable."""


class ExternalToolError(ModManagerError):
    """An archive tool exited with a nonzero status.

    ``stderr`` holds the tool's error output exactly as captured.
    """

    def __init__(self, argv: list[str], returncode: int, stderr: str):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        tool = argv[0] if argv else "<tool>"
        super().__init__(f"{tool} exited with code {returncode}: {stderr.strip()}")
