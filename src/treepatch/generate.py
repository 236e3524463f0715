"""Patch store generation from an original tree and a modified target tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .bindiff import encode_binary_artifact, make_delta
from .classify import ContentKind, classify_bytes
from .config import GenerateOptions
from .errors import MissingRootError, PatchRunError, TreePatchError
from .reconcile import ChangeKind, ChangeRecord, list_target_paths, reconcile
from .sources import open_tree_source, resolve_within
from .telemetry import emit_event
from .textdiff import decode_text, diff_stats, encode_text, format_unified_diff, unified_diff

LOGGER = logging.getLogger(__name__)

DEV_NULL = "/dev/null"
TEXT_SUFFIX = ".patch"
BINARY_SUFFIX = ".diff"


@dataclass(slots=True)
class GenerationReport:
    """Summary of one generation run."""

    written: List[Path] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def delete_empty_dirs(base: Path) -> List[Path]:
    """Remove empty directories below ``base``, deepest first."""
    removed: List[Path] = []
    directories = sorted(
        (path for path in Path(base).rglob("*") if path.is_dir()),
        key=lambda item: len(item.parts),
        reverse=True,
    )
    for directory in directories:
        if not any(directory.iterdir()):
            directory.rmdir()
            removed.append(directory)
    return removed


def clear_patch_store(patches: Path) -> int:
    """Delete existing artifacts so stale patches do not outlive their files."""
    count = 0
    for path in sorted(Path(patches).rglob("*")):
        if path.is_file() and path.name.endswith((TEXT_SUFFIX, BINARY_SUFFIX)):
            path.unlink()
            count += 1
    return count


class PatchGenerator:
    """Compare two trees and write one artifact per changed path."""

    def __init__(self, options: GenerateOptions) -> None:
        self.options = options
        self.patches = Path(options.patches)
        self.target = Path(options.target)

    def _labels(self, path: str, original: bytes | None, modified: bytes | None) -> tuple[str, str]:
        original_label = DEV_NULL if original is None else self.options.original_prefix + path
        modified_label = DEV_NULL if modified is None else self.options.modified_prefix + path
        return original_label, modified_label

    def _artifact_path(self, path: str, suffix: str) -> Path:
        artifact = resolve_within(self.patches, path + suffix)
        artifact.parent.mkdir(parents=True, exist_ok=True)
        return artifact

    def generate_text_patch(self, path: str, original: bytes | None, modified: bytes | None) -> Path | None:
        """Write ``<path>.patch`` when the decoded texts differ; return it or ``None``."""
        original_text = "" if original is None else decode_text(original)
        modified_text = "" if modified is None else decode_text(modified)
        hunks = unified_diff(
            original_text,
            modified_text,
            ignore_whitespace=self.options.ignore_whitespace,
        )
        if not hunks:
            return None

        original_label, modified_label = self._labels(path, original, modified)
        document = format_unified_diff(hunks, original_label, modified_label)
        artifact = self._artifact_path(path, TEXT_SUFFIX)
        artifact.write_bytes(encode_text(document))
        added, removed = diff_stats(hunks)
        emit_event(
            "patch.generated",
            path=path,
            artifact=artifact,
            kind=ContentKind.TEXT,
            hunks=len(hunks),
            added=added,
            removed=removed,
        )
        return artifact

    def generate_binary_patch(self, path: str, original: bytes | None, modified: bytes | None) -> Path | None:
        """Write ``<path>.diff`` when the bytes differ; return it or ``None``."""
        if original == modified:
            return None

        original_label, modified_label = self._labels(path, original, modified)
        delta = make_delta(original or b"", modified or b"")
        artifact = self._artifact_path(path, BINARY_SUFFIX)
        artifact.write_bytes(encode_binary_artifact(original_label, modified_label, delta))
        emit_event(
            "patch.generated",
            path=path,
            artifact=artifact,
            kind=ContentKind.BINARY,
            delta_bytes=len(delta),
        )
        return artifact

    def process(self, record: ChangeRecord) -> Path | None:
        """Route one change record to the text or binary generator."""
        sample = record.original if record.original is not None else record.modified
        # Empty files produce no hunks.
        if not sample and record.kind in (ChangeKind.ADDED, ChangeKind.DELETED):
            return self.generate_binary_patch(record.path, record.original, record.modified)
        if classify_bytes(sample or b"") is ContentKind.BINARY:
            return self.generate_binary_patch(record.path, record.original, record.modified)
        return self.generate_text_patch(record.path, record.original, record.modified)

    def run(self) -> GenerationReport:
        """Diff the whole tree, then raise once if any file failed."""
        root = self.options.root
        if root is None:
            raise MissingRootError("At least one of root_zip and root_dir has to be specified!")

        self.patches.mkdir(parents=True, exist_ok=True)
        if self.options.clean:
            removed = clear_patch_store(self.patches)
            LOGGER.debug("Removed %d stale artifact(s) from %s", removed, self.patches)

        report = GenerationReport()
        remaining = list_target_paths(self.target)
        with open_tree_source(root) as original:
            for record in reconcile(original, self.target, remaining):
                if record.error is not None:
                    LOGGER.error("Failed to read %s: %s", record.path, record.error)
                    emit_event("patch.failed", path=record.path, error=str(record.error))
                    report.failures.append(record.path)
                    continue
                if record.kind is ChangeKind.UNCHANGED:
                    report.unchanged.append(record.path)
                    continue
                try:
                    artifact = self.process(record)
                except (OSError, TreePatchError) as error:
                    LOGGER.error("Failed to generate patch for %s: %s", record.path, error)
                    emit_event("patch.failed", path=record.path, error=str(error))
                    report.failures.append(record.path)
                    continue
                if artifact is not None:
                    LOGGER.info("Wrote %s (%s)", artifact, record.kind.value.lower())
                    report.written.append(artifact)

        delete_empty_dirs(self.patches)
        if report.failures:
            raise PatchRunError(
                "One or more patches failed to generate, see log for details",
                failures=[Path(path) for path in report.failures],
            )
        return report


def generate_patches(options: GenerateOptions) -> GenerationReport:
    """Convenience wrapper around :class:`PatchGenerator`."""
    return PatchGenerator(options).run()
