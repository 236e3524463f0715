"""Validated run options and the optional YAML configuration file."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import TreePatchError

DEFAULT_CONFIG_NAME = "treepatch.yaml"


class OptionsModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=False)


class GenerateOptions(OptionsModel):
    """Inputs for building a patch store from an original and a target tree."""

    root_dir: Optional[Path] = None
    root_zip: Optional[Path] = None
    target: Path
    patches: Path
    original_prefix: str = "a/"
    modified_prefix: str = "b/"
    ignore_whitespace: bool = True
    clean: bool = False

    @property
    def root(self) -> Optional[Path]:
        """Archive root when given, otherwise the directory root."""
        return self.root_zip if self.root_zip is not None else self.root_dir


class ApplyOptions(OptionsModel):
    """Inputs for replaying a patch store onto a target tree."""

    target: Path
    patches: Path
    original_prefix: str = "a/"
    modified_prefix: str = "b/"
    dry_run: bool = False


class TreePatchConfig(OptionsModel):
    """Top-level layout of ``treepatch.yaml``; each section is a partial option set."""

    generate: Dict[str, Any] = Field(default_factory=dict)
    apply: Dict[str, Any] = Field(default_factory=dict)


_PATH_KEYS = ("root_dir", "root_zip", "target", "patches")


def _resolve_paths(section: Mapping[str, Any], base_dir: Path) -> Dict[str, Any]:
    """Resolve relative path values against the configuration directory."""
    resolved: Dict[str, Any] = dict(section)
    for key in _PATH_KEYS:
        value = resolved.get(key)
        if value is None:
            continue
        candidate = Path(str(value))
        if not candidate.is_absolute():
            candidate = (base_dir / candidate).resolve()
        resolved[key] = candidate
    return resolved


def load_config(config_path: Path) -> TreePatchConfig:
    """Load YAML configuration from disk, resolving relative paths."""
    config_path = Path(config_path)
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise TreePatchError(f"Failed to parse config: {error}") from error

    if not isinstance(data, dict):
        raise TreePatchError("Configuration must be a mapping at the top level.")

    try:
        config = TreePatchConfig.model_validate(data)
    except ValidationError as error:
        raise TreePatchError(f"Invalid configuration: {error}") from error

    base_dir = config_path.resolve().parent
    config.generate = _resolve_paths(config.generate or {}, base_dir)
    config.apply = _resolve_paths(config.apply or {}, base_dir)
    return config


def merge_options(section: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Layer explicitly supplied CLI values over a configuration section."""
    merged: Dict[str, Any] = dict(section)
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def build_generate_options(section: Mapping[str, Any], **overrides: Any) -> GenerateOptions:
    try:
        return GenerateOptions.model_validate(merge_options(section, overrides))
    except ValidationError as error:
        raise TreePatchError(f"Invalid generate options: {error}") from error


def build_apply_options(section: Mapping[str, Any], **overrides: Any) -> ApplyOptions:
    try:
        return ApplyOptions.model_validate(merge_options(section, overrides))
    except ValidationError as error:
        raise TreePatchError(f"Invalid apply options: {error}") from error
