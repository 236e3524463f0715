"""Generate and replay patch stores that track edits to vendored source trees."""

from .apply import ApplyReport, PatchApplicator, apply_patches
from .classify import ContentKind, classify_bytes, classify_stream
from .config import ApplyOptions, GenerateOptions, load_config
from .errors import (
    BinaryDeltaError,
    HeaderFormatError,
    MissingRootError,
    PatchRunError,
    TextPatchApplyError,
    TreePatchError,
)
from .generate import GenerationReport, PatchGenerator, generate_patches
from .headers import OperationMode, compute_mode
from .reconcile import ChangeKind, ChangeRecord, reconcile
from .sources import ArchiveTreeSource, DirectoryTreeSource, open_tree_source

__all__ = [
    "ApplyOptions",
    "ApplyReport",
    "ArchiveTreeSource",
    "BinaryDeltaError",
    "ChangeKind",
    "ChangeRecord",
    "ContentKind",
    "DirectoryTreeSource",
    "GenerateOptions",
    "GenerationReport",
    "HeaderFormatError",
    "MissingRootError",
    "OperationMode",
    "PatchApplicator",
    "PatchGenerator",
    "PatchRunError",
    "TextPatchApplyError",
    "TreePatchError",
    "apply_patches",
    "classify_bytes",
    "classify_stream",
    "compute_mode",
    "generate_patches",
    "load_config",
    "open_tree_source",
    "reconcile",
]
