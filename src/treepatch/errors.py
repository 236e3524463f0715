"""Exception types raised while generating or applying patch stores."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Sequence, Tuple


class TreePatchError(RuntimeError):
    """Base class for failures raised by the patch engine."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class MissingRootError(TreePatchError):
    """Raised when generation is requested without an original tree."""


class HeaderFormatError(TreePatchError):
    """Raised when a binary artifact does not start with ``---``/``+++`` headers."""


class TextPatchApplyError(TreePatchError):
    """Raised when a unified diff hunk cannot be located in its target file."""


class BinaryDeltaError(TreePatchError):
    """Raised when a binary delta cannot be produced or applied."""


class PatchRunError(TreePatchError):
    """Aggregate failure reported once a full traversal has completed."""

    def __init__(self, message: str, *, failures: Sequence[Path] = ()) -> None:
        super().__init__(message, details={"failures": [path.as_posix() for path in failures]})
        self.failures: Tuple[Path, ...] = tuple(failures)
