"""Directory planning for bundle file lists."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePosixPath

from stackgen.models import TemplateFile


def plan_directories(files: Iterable[TemplateFile | str]) -> list[str]:
    """Return the directories that must exist before any file is written.

    The result is ancestor-closed (every listed directory's parent is listed
    too, except the bundle root itself), contains no duplicates, and is
    sorted lexicographically, which puts parents before their children::

        plan_directories(["a/b/c/file1", "a/file2"]) -> ["a", "a/b", "a/b/c"]

    Directory creation is still expected to create missing parents, so the
    ordering is a convenience rather than a correctness requirement.
    """
    directories: set[str] = set()
    for file in files:
        path = file.path if isinstance(file, TemplateFile) else file
        parent = PurePosixPath(path).parent
        while parent.as_posix() not in (".", "", "/"):
            directories.add(parent.as_posix())
            parent = parent.parent
    return sorted(directories)
