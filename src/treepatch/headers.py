"""Interpretation of the ``---``/``+++`` header lines of binary artifacts."""

from __future__ import annotations

from enum import Enum
from typing import Tuple

from .bindiff import HEADER_ENCODING
from .errors import HeaderFormatError

DEV_NULL = "/dev/null"
BASE_MARKER = "--- "
MODIFIED_MARKER = "+++ "


class OperationMode(str, Enum):
    """What applying an artifact does to its target file."""

    ADD = "ADD"
    CHANGE = "CHANGE"
    DELETE = "DELETE"


def _until_tab(value: str) -> str:
    index = value.find("\t")
    if index > 0:
        value = value[:index]
    return value


def validate_header_lines(line1: str | None, line2: str | None) -> None:
    """Raise :class:`HeaderFormatError` unless the lines carry ``---``/``+++`` markers."""
    if line1 is None or not line1.startswith(BASE_MARKER):
        raise HeaderFormatError(f"Invalid diff header: {line1}", details={"line": 1})
    if line2 is None or not line2.startswith(MODIFIED_MARKER):
        raise HeaderFormatError(f"Invalid diff header: {line2}", details={"line": 2})


def header_paths(line1: str, line2: str) -> Tuple[str, str]:
    """Return the ``(base, modified)`` paths named by the two header lines.

    The first line is the base side and the second the modified side, with
    ``a/``/``b/`` stripped only when both sides follow that convention
    (Mercurial-style headers). Tab-separated metadata is dropped.
    """
    validate_header_lines(line1, line2)
    base = line1[len(BASE_MARKER):]
    modified = line2[len(MODIFIED_MARKER):]
    if (base.startswith(DEV_NULL) or base.startswith("a/")) and (
        modified == DEV_NULL or modified.startswith("b/")
    ):
        if base.startswith("a/"):
            base = base[2:]
        if modified.startswith("b/"):
            modified = modified[2:]
    return _until_tab(base).strip(), _until_tab(modified).strip()


def compute_mode(line1: str, line2: str) -> OperationMode:
    """Classify an artifact as ADD, CHANGE or DELETE from its header lines."""
    base, modified = header_paths(line1, line2)
    if base == DEV_NULL:
        return OperationMode.ADD
    if modified.startswith(DEV_NULL):
        return OperationMode.DELETE
    return OperationMode.CHANGE


def read_header_lines(data: bytes) -> Tuple[str, str, int]:
    """Split the two header lines off an artifact.

    Returns both lines verbatim (without their ``\\n``) and the byte offset at
    which the delta payload starts.
    """
    first_end = data.find(b"\n")
    if first_end < 0:
        raise HeaderFormatError("Invalid diff header: missing header lines", details={"line": 1})
    second_end = data.find(b"\n", first_end + 1)
    if second_end < 0:
        raise HeaderFormatError("Invalid diff header: missing modified header", details={"line": 2})
    raw1 = data[:first_end]
    raw2 = data[first_end + 1:second_end]
    try:
        line1 = raw1.decode(HEADER_ENCODING)
        line2 = raw2.decode(HEADER_ENCODING)
    except UnicodeDecodeError as error:
        raise HeaderFormatError(f"Invalid diff header encoding: {error}") from error
    validate_header_lines(line1, line2)
    offset = len(raw1) + 1 + len(raw2) + 1
    return line1, line2, offset
