"""Walk an original tree against a target directory and classify each path."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Set, Tuple

from .errors import TreePatchError
from .sources import BACKUP_SUFFIX, DirectoryTreeSource, TreeSource, read_entry, resolve_within


class ChangeKind(str, Enum):
    """Membership of a relative path across the original and target trees."""

    UNCHANGED = "UNCHANGED"
    CHANGED = "CHANGED"
    ADDED = "ADDED"
    DELETED = "DELETED"


@dataclass(slots=True)
class ChangeRecord:
    """Transient unit of work handed to the patch generator.

    ``error`` is set instead of the byte fields when either side could not be read.
    """

    path: str
    kind: ChangeKind
    original: bytes | None
    modified: bytes | None
    error: Exception | None = None


def list_target_paths(target_root: Path) -> Set[str]:
    """Return every target path, skipping editor/patch backup files."""
    with DirectoryTreeSource(target_root) as target:
        return {path for path in target.list_files() if not path.endswith(BACKUP_SUFFIX)}


def _read_pair(original: TreeSource, target_root: Path, path: str) -> Tuple[bytes, bytes | None]:
    original_bytes = read_entry(original, path)
    modified_file = resolve_within(target_root, path)
    if not modified_file.is_file():
        return original_bytes, None
    return original_bytes, modified_file.read_bytes()


def reconcile(
    original: TreeSource,
    target_root: Path,
    remaining: Set[str] | None = None,
) -> Iterator[ChangeRecord]:
    """Yield one ``ChangeRecord`` per path present in either tree.

    ``remaining`` starts as the target listing and loses every path visited
    while walking ``original``; whatever is left afterwards was added. Read
    failures are yielded as records carrying ``error`` so the walk continues.
    """
    target_root = Path(target_root)
    if remaining is None:
        remaining = list_target_paths(target_root)

    for path in original.list_files():
        remaining.discard(path)
        try:
            original_bytes, modified_bytes = _read_pair(original, target_root, path)
        except (OSError, TreePatchError) as error:
            yield ChangeRecord(path, ChangeKind.CHANGED, None, None, error=error)
            continue
        if modified_bytes is None:
            yield ChangeRecord(path, ChangeKind.DELETED, original_bytes, None)
            continue
        kind = ChangeKind.UNCHANGED if modified_bytes == original_bytes else ChangeKind.CHANGED
        yield ChangeRecord(path, kind, original_bytes, modified_bytes)

    for path in sorted(remaining):
        try:
            modified_bytes = resolve_within(target_root, path).read_bytes()
        except (OSError, TreePatchError) as error:
            yield ChangeRecord(path, ChangeKind.ADDED, None, None, error=error)
            continue
        yield ChangeRecord(path, ChangeKind.ADDED, None, modified_bytes)
