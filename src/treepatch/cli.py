"""CLI commands for generating and applying patch stores."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .apply import PatchApplicator
from .config import (
    DEFAULT_CONFIG_NAME,
    TreePatchConfig,
    build_apply_options,
    build_generate_options,
    load_config,
    merge_options,
)
from .errors import MissingRootError, TreePatchError
from .generate import PatchGenerator
from .sources import materialize, open_tree_source

APP_HELP = "Track edits to vendored source trees as replayable patch files."

app = typer.Typer(help=APP_HELP)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_sections(config: Optional[str]) -> TreePatchConfig:
    """Read the configuration file when one is named or present in the cwd."""
    if config is None:
        candidate = Path(DEFAULT_CONFIG_NAME)
        if not candidate.exists():
            return TreePatchConfig()
        config_path = candidate
    else:
        config_path = Path(config)
        if not config_path.exists():
            raise typer.BadParameter(f"Config file not found: {config_path}", param_hint="--config")
    try:
        return load_config(config_path)
    except TreePatchError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


@app.command()
def generate(
    root_dir: Optional[Path] = typer.Option(None, "--root-dir", help="Directory holding the original tree."),
    root_zip: Optional[Path] = typer.Option(None, "--root-zip", help="Zip archive holding the original tree."),
    target: Optional[Path] = typer.Option(None, "--target", "-t", help="Directory holding the modified tree."),
    patches: Optional[Path] = typer.Option(None, "--patches", "-p", help="Patch store directory to write."),
    original_prefix: Optional[str] = typer.Option(None, "--original-prefix", help="Header prefix for original paths."),
    modified_prefix: Optional[str] = typer.Option(None, "--modified-prefix", help="Header prefix for modified paths."),
    ignore_whitespace: Optional[bool] = typer.Option(
        None,
        "--ignore-whitespace/--no-ignore-whitespace",
        help="Treat lines differing only in surrounding whitespace as equal.",
    ),
    clean: bool = typer.Option(False, "--clean", help="Remove existing artifacts before generating."),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to a treepatch.yaml file."),
) -> None:
    """Diff the original tree against the target and write the patch store."""
    sections = _load_sections(config)
    try:
        options = build_generate_options(
            sections.generate,
            root_dir=root_dir,
            root_zip=root_zip,
            target=target,
            patches=patches,
            original_prefix=original_prefix,
            modified_prefix=modified_prefix,
            ignore_whitespace=ignore_whitespace,
            clean=clean or None,
        )
        report = PatchGenerator(options).run()
    except TreePatchError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error

    typer.echo(f"Wrote {len(report.written)} patch(es) to {options.patches}")


@app.command("apply")
def apply_command(
    target: Optional[Path] = typer.Option(None, "--target", "-t", help="Directory to patch in place."),
    patches: Optional[Path] = typer.Option(None, "--patches", "-p", help="Patch store directory to read."),
    original_prefix: Optional[str] = typer.Option(None, "--original-prefix", help="Header prefix for original paths."),
    modified_prefix: Optional[str] = typer.Option(None, "--modified-prefix", help="Header prefix for modified paths."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Check every artifact without writing."),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to a treepatch.yaml file."),
) -> None:
    """Replay the patch store onto the target tree."""
    sections = _load_sections(config)
    try:
        options = build_apply_options(
            sections.apply,
            target=target,
            patches=patches,
            original_prefix=original_prefix,
            modified_prefix=modified_prefix,
            dry_run=dry_run or None,
        )
        report = PatchApplicator(options).run()
    except TreePatchError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error

    verb = "Checked" if options.dry_run else "Applied"
    typer.echo(f"{verb} {len(report.applied)} file(s), deleted {len(report.deleted)}")


@app.command()
def reset(
    root_dir: Optional[Path] = typer.Option(None, "--root-dir", help="Directory holding the original tree."),
    root_zip: Optional[Path] = typer.Option(None, "--root-zip", help="Zip archive holding the original tree."),
    target: Optional[Path] = typer.Option(None, "--target", "-t", help="Directory to populate."),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to a treepatch.yaml file."),
) -> None:
    """Copy the original tree into the target directory."""
    sections = _load_sections(config)
    section = merge_options(sections.generate, {"root_dir": root_dir, "root_zip": root_zip, "target": target})

    root = section.get("root_zip") or section.get("root_dir")
    if root is None:
        typer.echo(str(MissingRootError("At least one of root_zip and root_dir has to be specified!")))
        raise typer.Exit(code=1)
    if section.get("target") is None:
        raise typer.BadParameter("A target directory is required.", param_hint="--target")

    try:
        with open_tree_source(Path(root)) as source:
            written = materialize(source, Path(section["target"]))
    except TreePatchError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error
    typer.echo(f"Copied {len(written)} file(s) into {section['target']}")


if __name__ == "__main__":
    app()
