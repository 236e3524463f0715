"""bsdiff4-backed binary deltas and the two-line header container around them."""

from __future__ import annotations

import bsdiff4

from .errors import BinaryDeltaError

HEADER_ENCODING = "utf-8"


def make_delta(original: bytes, modified: bytes) -> bytes:
    """Return a self-delimiting delta turning ``original`` into ``modified``.

    An empty ``modified`` is encoded as an empty payload.
    """
    if not modified:
        return b""
    try:
        return bsdiff4.diff(original, modified)
    except (ValueError, OSError, RuntimeError) as error:
        raise BinaryDeltaError(f"bsdiff4 diff operation failed: {error}") from error


def apply_delta(original: bytes, delta: bytes) -> bytes:
    """Rebuild the modified bytes from ``original`` and a delta payload."""
    if not delta:
        return b""
    try:
        return bsdiff4.patch(original, delta)
    except (ValueError, OSError, RuntimeError) as error:
        raise BinaryDeltaError(
            f"Delta rejected by base content: {error}",
            details={"base_bytes": len(original), "delta_bytes": len(delta)},
        ) from error


def encode_binary_artifact(base_label: str, modified_label: str, delta: bytes) -> bytes:
    """Lay out ``--- base``/``+++ modified`` header lines directly followed by ``delta``."""
    header = f"--- {base_label}\n+++ {modified_label}\n".encode(HEADER_ENCODING)
    return header + delta
