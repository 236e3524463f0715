"""Apply unified diff artifacts to a target directory."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Sequence, Tuple

from unidiff import Hunk, PatchSet, PatchedFile, UnidiffParseError
from unidiff.constants import LINE_TYPE_NO_NEWLINE

from .errors import TextPatchApplyError, TreePatchError
from .sources import BACKUP_SUFFIX, resolve_within
from .textdiff import decode_text, encode_text, split_lines

LOGGER = logging.getLogger(__name__)

DEV_NULL = "/dev/null"


class PatchStatus(str, Enum):
    """Outcome of applying one file section of a unified diff."""

    PATCHED = "PATCHED"
    MISSING = "MISSING"
    FAILURE = "FAILURE"


@dataclass(slots=True)
class PatchReport:
    """Per-file result returned by :func:`apply_text_patch`."""

    target: Path
    status: PatchStatus
    original_backup_file: Path | None = None
    failure: Exception | None = None


def _strip_eol(line: str) -> str:
    return line[:-1] if line.endswith("\n") else line


def _comparable(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2] + "\n"
    return line


def _hunk_sides(hunk: Hunk) -> Tuple[List[str], List[str], List[int | None]]:
    """Split a hunk into the lines it expects and the lines it produces.

    The third list maps each produced line to the index of the expected line
    it repeats, or ``None`` for inserted lines.
    """
    old: List[str] = []
    new: List[str] = []
    sources: List[int | None] = []
    previous = None
    for line in hunk:
        if line.line_type == LINE_TYPE_NO_NEWLINE:
            if previous is not None and (previous.is_context or previous.is_removed):
                old[-1] = _strip_eol(old[-1])
            if previous is not None and (previous.is_context or previous.is_added):
                new[-1] = _strip_eol(new[-1])
            continue
        if line.is_context or line.is_removed:
            old.append(line.value)
        if line.is_context:
            new.append(line.value)
            sources.append(len(old) - 1)
        elif line.is_added:
            new.append(line.value)
            sources.append(None)
        previous = line
    return old, new, sources


def _line_ending(lines: Sequence[str]) -> str:
    return "\r\n" if any(line.endswith("\r\n") for line in lines) else "\n"


def _matches(lines: Sequence[str], expected: Sequence[str], position: int) -> bool:
    if position < 0 or position + len(expected) > len(lines):
        return False
    return all(
        _comparable(lines[position + index]) == _comparable(candidate)
        for index, candidate in enumerate(expected)
    )


def _locate(lines: Sequence[str], expected: Sequence[str], hint: int, floor: int) -> int | None:
    """Find ``expected`` in ``lines`` at or after ``floor``, nearest to ``hint`` first."""
    hint = max(floor, min(hint, len(lines)))
    if not expected:
        return hint
    if _matches(lines, expected, hint):
        return hint
    for distance in range(1, len(lines) + 1):
        for position in (hint - distance, hint + distance):
            if position >= floor and _matches(lines, expected, position):
                return position
        if hint - distance < floor and hint + distance > len(lines):
            break
    return None


def apply_hunks(text: str, hunks: Sequence[Hunk]) -> str:
    """Apply ``hunks`` to ``text`` and return the patched text.

    Context lines keep the target's own bytes and inserted lines take the line
    ending used around the match.
    """
    lines = split_lines(text)
    result: List[str] = []
    cursor = 0
    offset = 0
    for number, hunk in enumerate(hunks, start=1):
        old, new, sources = _hunk_sides(hunk)
        recorded = hunk.source_start - 1 if hunk.source_length else hunk.source_start
        position = _locate(lines, old, recorded + offset, cursor)
        if position is None:
            raise TextPatchApplyError(
                f"Hunk #{number} failed at {hunk.source_start}",
                details={"hunk": number, "line": hunk.source_start},
            )
        matched = lines[position:position + len(old)]
        ending = _line_ending(matched or lines[max(position - 1, 0):position + 1])
        result.extend(lines[cursor:position])
        for line, source in zip(new, sources):
            if source is not None:
                result.append(matched[source])
            elif line.endswith("\n"):
                result.append(line[:-1] + ending)
            else:
                result.append(line)
        cursor = position + len(old)
        offset = position - recorded
    result.extend(lines[cursor:])
    return "".join(result)


def _strip_prefix(path: str, prefix: str) -> str:
    if prefix and path.startswith(prefix):
        return path[len(prefix):]
    return path


def _target_path(patched_file: PatchedFile, original_prefix: str, modified_prefix: str) -> str:
    if patched_file.target_file == DEV_NULL:
        return _strip_prefix(patched_file.source_file, original_prefix)
    return _strip_prefix(patched_file.target_file, modified_prefix)


def _backup(path: Path) -> Path:
    backup = path.with_name(path.name + BACKUP_SUFFIX)
    shutil.copyfile(path, backup)
    return backup


def _apply_file(
    patched_file: PatchedFile,
    target_dir: Path,
    *,
    dry_run: bool,
    original_prefix: str,
    modified_prefix: str,
) -> PatchReport:
    relative = _target_path(patched_file, original_prefix, modified_prefix)
    target = resolve_within(target_dir, relative)
    creating = patched_file.source_file == DEV_NULL
    deleting = patched_file.target_file == DEV_NULL

    if creating and target.exists():
        return PatchReport(
            target,
            PatchStatus.FAILURE,
            failure=TextPatchApplyError(f"File to create already exists: {relative}"),
        )
    if not creating and not target.is_file():
        return PatchReport(
            target,
            PatchStatus.MISSING,
            failure=TextPatchApplyError(f"File to patch is missing: {relative}"),
        )

    original = "" if creating else decode_text(target.read_bytes())
    try:
        patched = apply_hunks(original, list(patched_file))
    except TextPatchApplyError as error:
        return PatchReport(target, PatchStatus.FAILURE, failure=error)

    if deleting and patched:
        return PatchReport(
            target,
            PatchStatus.FAILURE,
            failure=TextPatchApplyError(f"File to delete has unexpected content: {relative}"),
        )
    if dry_run:
        return PatchReport(target, PatchStatus.PATCHED)

    backup = None if creating else _backup(target)
    if deleting:
        target.unlink()
    else:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(encode_text(patched))
    LOGGER.debug("Patched %s (%d hunk(s))", relative, len(patched_file))
    return PatchReport(target, PatchStatus.PATCHED, original_backup_file=backup)


def apply_text_patch(
    patch_file: Path,
    target_dir: Path,
    *,
    dry_run: bool = False,
    original_prefix: str = "a/",
    modified_prefix: str = "b/",
) -> List[PatchReport]:
    """Apply every file section of ``patch_file`` beneath ``target_dir``.

    Failures are reported, never raised, so callers can keep going with the
    remaining artifacts. When a file is rewritten its previous content is kept
    next to it with a ``~`` suffix; callers delete it once satisfied.
    """
    patch_file = Path(patch_file)
    target_dir = Path(target_dir)
    text = decode_text(patch_file.read_bytes())
    try:
        patch_set = PatchSet(split_lines(text))
    except UnidiffParseError as error:
        return [PatchReport(patch_file, PatchStatus.FAILURE, failure=error)]

    reports: List[PatchReport] = []
    for patched_file in patch_set:
        try:
            report = _apply_file(
                patched_file,
                target_dir,
                dry_run=dry_run,
                original_prefix=original_prefix,
                modified_prefix=modified_prefix,
            )
        except (OSError, TreePatchError) as error:
            report = PatchReport(patch_file, PatchStatus.FAILURE, failure=error)
        reports.append(report)
    if not reports:
        reports.append(
            PatchReport(
                patch_file,
                PatchStatus.FAILURE,
                failure=TextPatchApplyError(f"Patch does not describe any file changes: {patch_file}"),
            )
        )
    return reports
