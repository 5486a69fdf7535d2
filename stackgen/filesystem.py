"""File-system collaborator used by the validator, repository and generator.

The core only depends on the narrow :class:`FileSystem` protocol.
:class:`LocalFileSystem` implements it on the local disk, running blocking
calls in a worker thread so the event loop is never blocked, and turning
every ``OSError`` into a :class:`~stackgen.errors.FileSystemError`
attributed to the path and operation that failed.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import os
import shutil
from pathlib import Path
from typing import Protocol, runtime_checkable

from stackgen.errors import FileSystemError
from stackgen.logger import get_logger


@runtime_checkable
class FileSystem(Protocol):
    """Narrow, implementation-agnostic file-system capability."""

    async def exists(self, path: str | Path) -> bool: ...

    async def create_directory(self, path: str | Path) -> None: ...

    async def write_file(self, path: str | Path, content: str) -> None: ...

    async def read_file(self, path: str | Path) -> str: ...

    async def copy_file(self, source: str | Path, destination: str | Path) -> None: ...

    async def delete_file(self, path: str | Path) -> None: ...

    async def glob(
        self,
        pattern: str,
        cwd: str | Path | None = None,
        ignore: list[str] | None = None,
    ) -> list[str]: ...

    async def set_permissions(self, path: str | Path, mode: int) -> None: ...


class LocalFileSystem:
    """:class:`FileSystem` backed by :mod:`pathlib` and :mod:`shutil`."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_logger(__name__)

    async def exists(self, path: str | Path) -> bool:
        return await asyncio.to_thread(Path(path).exists)

    async def create_directory(self, path: str | Path) -> None:
        """Create *path* and any missing parents; existing directories are fine."""
        try:
            await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            self.logger.error("Failed to create directory: %s", path, exc_info=exc)
            raise FileSystemError(str(exc), str(path), "create-directory") from exc
        self.logger.debug("Created directory: %s", path)

    async def write_file(self, path: str | Path, content: str) -> None:
        """Write *content* as UTF-8, creating parent directories as needed."""
        try:
            await asyncio.to_thread(_write_file, Path(path), content)
        except OSError as exc:
            self.logger.error("Failed to write file: %s", path, exc_info=exc)
            raise FileSystemError(str(exc), str(path), "write") from exc
        self.logger.debug("Wrote file: %s", path)

    async def read_file(self, path: str | Path) -> str:
        """Read *path* as UTF-8 with line endings left untouched."""
        try:
            content = await asyncio.to_thread(_read_file, Path(path))
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.error("Failed to read file: %s", path, exc_info=exc)
            raise FileSystemError(str(exc), str(path), "read") from exc
        self.logger.debug("Read file: %s", path)
        return content

    async def copy_file(self, source: str | Path, destination: str | Path) -> None:
        """Copy a file or directory tree, creating the destination's parents."""
        try:
            await asyncio.to_thread(_copy, Path(source), Path(destination))
        except OSError as exc:
            self.logger.error("Failed to copy file: %s -> %s", source, destination, exc_info=exc)
            raise FileSystemError(str(exc), str(source), "copy") from exc
        self.logger.debug("Copied file: %s -> %s", source, destination)

    async def delete_file(self, path: str | Path) -> None:
        """Remove a file or directory tree; a missing path is not an error."""
        try:
            await asyncio.to_thread(_remove, Path(path))
        except OSError as exc:
            self.logger.error("Failed to delete file: %s", path, exc_info=exc)
            raise FileSystemError(str(exc), str(path), "delete") from exc
        self.logger.debug("Deleted file: %s", path)

    async def glob(
        self,
        pattern: str,
        cwd: str | Path | None = None,
        ignore: list[str] | None = None,
    ) -> list[str]:
        """Return sorted POSIX paths relative to *cwd* matching *pattern*.

        Paths matching any of the *ignore* patterns are dropped.
        """
        base = Path(cwd) if cwd is not None else Path(os.getcwd())
        try:
            matches = await asyncio.to_thread(_glob, base, pattern)
        except (OSError, ValueError) as exc:
            self.logger.error("Glob pattern failed: %s", pattern, exc_info=exc)
            raise FileSystemError(str(exc), str(base), "glob") from exc
        ignore = ignore or []
        return [m for m in matches if not any(fnmatch.fnmatch(m, pat) for pat in ignore)]

    async def set_permissions(self, path: str | Path, mode: int) -> None:
        try:
            await asyncio.to_thread(os.chmod, Path(path), mode)
        except OSError as exc:
            raise FileSystemError(str(exc), str(path), "chmod") from exc
        self.logger.debug("Set permissions %o on %s", mode, path)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _read_file(path: Path) -> str:
    with open(path, encoding="utf-8", newline="") as handle:
        return handle.read()


def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content verbatim."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as handle:
        handle.write(content)


def _copy(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, destination, dirs_exist_ok=True)
    else:
        shutil.copy2(source, destination)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def _glob(base: Path, pattern: str) -> list[str]:
    if not base.is_dir():
        raise FileNotFoundError(f"No such directory: {base}")
    return sorted(p.relative_to(base).as_posix() for p in base.glob(pattern))
