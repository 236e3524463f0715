"""Line-based unified diff production for text artifacts."""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from typing import Hashable, List, Sequence, Tuple

DEFAULT_CONTEXT = 3
TEXT_ENCODING = "utf-8"
NO_NEWLINE_MARKER = "\\ No newline at end of file"


@dataclass(slots=True)
class Hunk:
    """Contiguous block of changes plus surrounding context."""

    original_start: int
    original_stop: int
    modified_start: int
    modified_stop: int
    lines: List[str] = field(default_factory=list)

    def header(self) -> str:
        original_range = _format_range(self.original_start, self.original_stop)
        modified_range = _format_range(self.modified_start, self.modified_stop)
        return f"@@ -{original_range} +{modified_range} @@"


def decode_text(data: bytes) -> str:
    """Decode file bytes so that undecodable bytes survive a later :func:`encode_text`."""
    return data.decode(TEXT_ENCODING, errors="surrogateescape")


def encode_text(text: str) -> bytes:
    return text.encode(TEXT_ENCODING, errors="surrogateescape")


def split_lines(text: str) -> List[str]:
    """Split on ``\\n`` only, keeping terminators; a final unterminated line is kept."""
    if not text:
        return []
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def _format_range(start: int, stop: int) -> str:
    """Format an ``@@`` range the way ``diff -u`` does."""
    beginning = start + 1
    length = stop - start
    if length == 1:
        return str(beginning)
    if not length:
        beginning -= 1
    return f"{beginning},{length}"


def _comparison_keys(lines: Sequence[str], ignore_whitespace: bool) -> List[Hashable]:
    if not ignore_whitespace:
        return list(lines)
    return [(line.strip(), line.endswith("\n")) for line in lines]


def _emit(prefix: str, line: str, out: List[str]) -> None:
    # Artifacts only ever carry LF endings.
    if line.endswith("\n"):
        out.append(prefix + line[:-1].removesuffix("\r"))
    else:
        out.append(prefix + line)
        out.append(NO_NEWLINE_MARKER)


def unified_diff(
    original: str,
    modified: str,
    *,
    ignore_whitespace: bool = True,
    context: int = DEFAULT_CONTEXT,
) -> List[Hunk]:
    """Compute the hunks turning ``original`` into ``modified``.

    Context lines are always taken from ``original`` so a whitespace-insensitive
    diff still applies cleanly against the original bytes.
    """
    a = split_lines(original)
    b = split_lines(modified)
    matcher = difflib.SequenceMatcher(
        None,
        _comparison_keys(a, ignore_whitespace),
        _comparison_keys(b, ignore_whitespace),
        autojunk=False,
    )
    hunks: List[Hunk] = []
    for group in matcher.get_grouped_opcodes(context):
        first, last = group[0], group[-1]
        hunk = Hunk(first[1], last[2], first[3], last[4])
        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                for line in a[i1:i2]:
                    _emit(" ", line, hunk.lines)
                continue
            if tag in {"replace", "delete"}:
                for line in a[i1:i2]:
                    _emit("-", line, hunk.lines)
            if tag in {"replace", "insert"}:
                for line in b[j1:j2]:
                    _emit("+", line, hunk.lines)
        hunks.append(hunk)
    return hunks


def format_unified_diff(hunks: Sequence[Hunk], original_label: str, modified_label: str) -> str:
    """Serialise hunks under ``---``/``+++`` headers with LF line endings."""
    if not hunks:
        return ""
    out: List[str] = [f"--- {original_label}", f"+++ {modified_label}"]
    for hunk in hunks:
        out.append(hunk.header())
        out.extend(hunk.lines)
    return "\n".join(out) + "\n"


def diff_stats(hunks: Sequence[Hunk]) -> Tuple[int, int]:
    """Return ``(added, removed)`` line counts across ``hunks``."""
    added = sum(1 for hunk in hunks for line in hunk.lines if line.startswith("+"))
    removed = sum(1 for hunk in hunks for line in hunk.lines if line.startswith("-"))
    return added, removed
