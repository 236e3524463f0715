"""Tree sources: uniform listing/opening over directories and zip archives."""

from __future__ import annotations

import logging
import os
import shutil
import zipfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO, List, Protocol

from .errors import TreePatchError

LOGGER = logging.getLogger(__name__)

BACKUP_SUFFIX = "~"


def relative_path(root: Path, file: Path) -> str:
    """Return ``file`` relative to ``root`` using forward slashes on every host."""
    relative = os.path.relpath(file, root)
    return relative.replace(os.sep, "/")


def normalise_entry_name(name: str) -> str:
    """Normalise archive entry names to the slash-separated form used as keys."""
    return name.replace("\\", "/").lstrip("/")


def resolve_within(root: Path, relative: str) -> Path:
    """Join ``relative`` onto ``root``, refusing paths that escape it."""
    candidate = PurePosixPath(relative)
    if candidate.is_absolute() or any(part == ".." for part in candidate.parts):
        raise TreePatchError(f"Path escapes tree root: {relative}", details={"path": relative})
    return Path(root).joinpath(*candidate.parts)


class TreeSource(Protocol):
    """Capability for enumerating and reading the regular files of a tree."""

    root: Path

    def list_files(self) -> List[str]:
        ...

    def open_file(self, path: str) -> BinaryIO:
        ...

    def close(self) -> None:
        ...


class DirectoryTreeSource:
    """Tree backed by a directory on disk."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        if not self.root.is_dir():
            raise TreePatchError(f"Not a directory: {self.root}")

    def list_files(self) -> List[str]:
        return sorted(
            relative_path(self.root, path) for path in self.root.rglob("*") if path.is_file()
        )

    def open_file(self, path: str) -> BinaryIO:
        return resolve_within(self.root, path).open("rb")

    def close(self) -> None:
        return None

    def __enter__(self) -> "DirectoryTreeSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ArchiveTreeSource:
    """Tree backed by the file entries of a zip archive."""

    def __init__(self, archive: Path | str) -> None:
        self.root = Path(archive)
        self._zip = zipfile.ZipFile(self.root)
        self._names: dict[str, str] = {}
        for info in self._zip.infolist():
            if info.is_dir():
                continue
            self._names[normalise_entry_name(info.filename)] = info.filename

    def list_files(self) -> List[str]:
        return sorted(self._names)

    def open_file(self, path: str) -> BinaryIO:
        try:
            entry = self._names[path]
        except KeyError:
            raise TreePatchError(f"No such archive entry: {path}", details={"archive": self.root.as_posix()}) from None
        return self._zip.open(entry, "r")

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "ArchiveTreeSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_tree_source(root: Path | str) -> DirectoryTreeSource | ArchiveTreeSource:
    """Pick the tree source variant that matches ``root``."""
    path = Path(root)
    if path.is_dir():
        return DirectoryTreeSource(path)
    if path.is_file():
        if not zipfile.is_zipfile(path):
            raise TreePatchError(f"Not a zip archive: {path}")
        return ArchiveTreeSource(path)
    raise TreePatchError(f"Tree root does not exist: {path}")


def read_entry(source: TreeSource, path: str) -> bytes:
    """Read one file from ``source`` fully, closing the stream afterwards."""
    with source.open_file(path) as stream:
        return stream.read()


def materialize(source: TreeSource, destination: Path | str) -> List[str]:
    """Copy every file of ``source`` into ``destination`` and return the paths written."""
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)
    written: List[str] = []
    for path in source.list_files():
        target = resolve_within(destination, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with source.open_file(path) as stream, target.open("wb") as handle:
            shutil.copyfileobj(stream, handle)
        written.append(path)
    LOGGER.debug("Materialised %d file(s) from %s into %s", len(written), source.root, destination)
    return written
