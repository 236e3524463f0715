"""Replay a patch store onto a target tree."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .bindiff import apply_delta
from .config import ApplyOptions
from .errors import PatchRunError, TreePatchError
from .generate import BINARY_SUFFIX, TEXT_SUFFIX
from .headers import OperationMode, compute_mode, read_header_lines
from .sources import relative_path, resolve_within
from .telemetry import emit_event
from .textpatch import PatchStatus, apply_text_patch

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplyReport:
    """Summary of one apply run."""

    applied: List[Path] = field(default_factory=list)
    deleted: List[Path] = field(default_factory=list)
    failures: List[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def remove_null_device_artifact(null_path: Path = Path("/dev/null")) -> bool:
    """Delete a literal ``/dev/null`` entry accidentally created on Windows hosts."""
    if not sys.platform.startswith("win") or not null_path.exists():
        return False
    if null_path.is_dir():
        null_path.rmdir()
    else:
        null_path.unlink()
    return True


class PatchApplicator:
    """Walk a patch store and reconstruct or delete the matching target files."""

    def __init__(self, options: ApplyOptions) -> None:
        self.options = options
        self.patches = Path(options.patches)
        self.target = Path(options.target)

    def apply_text_artifact(self, patch_file: Path, report: ApplyReport) -> None:
        """Apply one ``.patch`` artifact, recording every failing file section."""
        reports = apply_text_patch(
            patch_file,
            self.target,
            dry_run=self.options.dry_run,
            original_prefix=self.options.original_prefix,
            modified_prefix=self.options.modified_prefix,
        )
        for outcome in reports:
            if outcome.status is PatchStatus.PATCHED:
                if outcome.original_backup_file is not None:
                    outcome.original_backup_file.unlink(missing_ok=True)
                if outcome.target.exists() or self.options.dry_run:
                    report.applied.append(outcome.target)
                else:
                    report.deleted.append(outcome.target)
                continue
            LOGGER.error("Failed to apply: %s", patch_file)
            if isinstance(outcome.failure, TreePatchError):
                LOGGER.error("    %s", outcome.failure)
            else:
                LOGGER.error("    %s", outcome.failure, exc_info=outcome.failure)
            emit_event(
                "patch.failed",
                artifact=patch_file,
                target=outcome.target,
                status=outcome.status,
                error=str(outcome.failure),
            )
            if patch_file not in report.failures:
                report.failures.append(patch_file)

    def apply_binary_artifact(self, diff_file: Path, report: ApplyReport) -> OperationMode:
        """Apply one ``.diff`` artifact; errors propagate to the caller."""
        relative = relative_path(self.patches, diff_file)[: -len(BINARY_SUFFIX)]
        out_file = resolve_within(self.target, relative)

        data = diff_file.read_bytes()
        line1, line2, offset = read_header_lines(data)
        mode = compute_mode(line1, line2)

        if mode is OperationMode.DELETE:
            if not self.options.dry_run:
                out_file.unlink(missing_ok=True)
            report.deleted.append(out_file)
            emit_event("patch.applied", artifact=diff_file, target=out_file, mode=mode)
            return mode

        old_bytes = out_file.read_bytes() if out_file.is_file() else b""
        new_bytes = apply_delta(old_bytes, data[offset:])
        if not self.options.dry_run:
            out_file.parent.mkdir(parents=True, exist_ok=True)
            out_file.write_bytes(new_bytes)
        report.applied.append(out_file)
        emit_event(
            "patch.applied",
            artifact=diff_file,
            target=out_file,
            mode=mode,
            bytes=len(new_bytes),
        )
        return mode

    def run(self) -> ApplyReport:
        """Apply every artifact, then raise once if any of them failed."""
        self.patches.mkdir(parents=True, exist_ok=True)
        report = ApplyReport()

        artifacts = sorted(path for path in self.patches.rglob("*") if path.is_file())
        for artifact in artifacts:
            if artifact.name.endswith(TEXT_SUFFIX):
                try:
                    self.apply_text_artifact(artifact, report)
                except OSError as error:
                    LOGGER.error("Failed to apply: %s\n    %s", artifact, error)
                    report.failures.append(artifact)
            elif artifact.name.endswith(BINARY_SUFFIX):
                try:
                    self.apply_binary_artifact(artifact, report)
                except (OSError, TreePatchError) as error:
                    LOGGER.error("Failed to apply: %s\n    %s", artifact, error)
                    emit_event("patch.failed", artifact=artifact, error=str(error))
                    report.failures.append(artifact)

        # Headers always use /dev/null; clean up what Windows makes of it.
        remove_null_device_artifact()

        if report.failures:
            raise PatchRunError(
                "One or more patches failed to apply, see log for details",
                failures=report.failures,
            )
        LOGGER.info(
            "Applied %d artifact target(s), deleted %d",
            len(report.applied),
            len(report.deleted),
        )
        return report


def apply_patches(options: ApplyOptions) -> ApplyReport:
    """Convenience wrapper around :class:`PatchApplicator`."""
    return PatchApplicator(options).run()
