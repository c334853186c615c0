"""Click CLI entry point for gherkit."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from gherkit import __version__
from gherkit.config import (
    ConfigError,
    ensure_initialized,
    find_feature_files,
    is_initialized,
    load_config,
    save_config,
    tag_expression_from_config,
)
from gherkit.models import FileParseError, ParseResult, ProjectConfig


@click.group()
@click.version_option(version=__version__, prog_name="gherkit")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """gherkit: parse Gherkin features, filter by tags, check step coverage."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
def init() -> None:
    """Initialize a project for gherkit."""
    project_root = Path.cwd()
    already = is_initialized(project_root)

    if already:
        click.echo("Warning: Project is already initialized. Keeping existing configuration.")
        return

    config = ProjectConfig()
    features_dir = project_root / config.features_dir
    features_dir.mkdir(exist_ok=True)
    path = save_config(config, project_root)

    click.echo("Initialized gherkit project.")
    click.echo(f"  Created: {features_dir}/")
    click.echo(f"  Config:  {path}")


def _resolve_paths(ctx: click.Context, paths: tuple[str, ...]) -> list[Path] | None:
    """Explicit paths (directories expanded), else the configured features dir."""
    if paths:
        resolved: list[Path] = []
        for p in map(Path, paths):
            resolved.extend(sorted(p.rglob("*.feature")) if p.is_dir() else [p])
        return resolved

    project_root = Path.cwd()
    config = _initialized_config_or_exit(ctx, "No paths given")
    if config is None:
        return None
    return find_feature_files(project_root, config)


def _initialized_config_or_exit(ctx: click.Context, reason: str) -> ProjectConfig | None:
    try:
        return ensure_initialized(Path.cwd())
    except RuntimeError as e:
        click.echo(f"Error: {reason}. {e}")
        ctx.exit(1)
        return None
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def _load_config_or_exit(ctx: click.Context, project_root: Path) -> ProjectConfig:
    try:
        return load_config(project_root)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def _format_error(error: FileParseError) -> str:
    location = error.source_file or "<input>"
    if error.line_number is not None:
        location = f"{location}:{error.line_number}"
    return f"{location}: {error.message}"


def _report_errors(result: ParseResult) -> None:
    for error in result.errors:
        click.echo(_format_error(error), err=True)


@cli.command("parse")
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option("--format", "fmt", type=click.Choice(["text", "json"]), default="text")
@click.option("--include", "include", multiple=True, help="Only examples with this tag")
@click.option("--exclude", "exclude", multiple=True, help="Skip examples with this tag")
@click.pass_context
def parse_cmd(
    ctx: click.Context,
    paths: tuple[str, ...],
    fmt: str,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
) -> None:
    """Parse feature files and list their examples."""
    from gherkit.exporters.json_export import feature_to_dict
    from gherkit.parser import parse_feature_files

    files = _resolve_paths(ctx, paths)
    if files is None:
        return

    if not include and not exclude and is_initialized(Path.cwd()):
        config = _load_config_or_exit(ctx, Path.cwd())
        include, exclude = tuple(config.include_tags), tuple(config.exclude_tags)
    expression = tag_expression_from_config(list(include), list(exclude))

    result = parse_feature_files(files)

    if fmt == "json":
        click.echo(json.dumps([feature_to_dict(f) for f in result.features], indent=2))
    else:
        if not result.features and result.is_success:
            click.echo("No features found.")
        for feature in result.features:
            click.echo(f"Feature: {feature.name}")
            if feature.tags:
                click.echo(f"  Tags: {' '.join('@' + t for t in feature.tags)}")
            if feature.background is not None:
                click.echo(f"  Background: {len(feature.background.steps)} step(s)")
            for example in feature.examples:
                selected = expression is None or expression.matches(example.tags)
                marker = " " if selected else "-"
                click.echo(f"  {marker} {example.name} ({len(example.steps)} step(s))")
        if expression is not None:
            click.echo(f"Tag filter: {expression}")

    if not result.is_success:
        _report_errors(result)
        ctx.exit(1)


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option("--steps", "steps_file", type=click.Path(exists=True), default=None,
              help="YAML step catalog (defaults to the configured steps file)")
@click.pass_context
def check(ctx: click.Context, paths: tuple[str, ...], steps_file: str | None) -> None:
    """Check that every step binds to exactly one catalog pattern."""
    from gherkit.catalog import CatalogError, check_steps, load_step_catalog
    from gherkit.parser import parse_feature_files

    files = _resolve_paths(ctx, paths)
    if files is None:
        return

    if steps_file is None:
        config = _initialized_config_or_exit(ctx, "No --steps catalog given")
        if config is None:
            return
        catalog_path = Path.cwd() / config.steps_file
    else:
        catalog_path = Path(steps_file)

    if not catalog_path.exists():
        click.echo(f"Error: Step catalog not found: {catalog_path}")
        ctx.exit(1)
        return

    try:
        registry = load_step_catalog(catalog_path)
    except CatalogError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
        return

    result = parse_feature_files(files)
    problems = 0
    total = 0
    for feature in result.features:
        for check_result in check_steps(feature, registry):
            total += 1
            if check_result.ok:
                continue
            problems += 1
            click.echo(
                f"[{check_result.status.value.upper()}] {feature.name} / "
                f"{check_result.example}: {check_result.step.description}"
            )
            if check_result.patterns:
                click.echo(f"    Patterns: {', '.join(check_result.patterns)}")
            if check_result.suggestion:
                click.echo(f"    {check_result.suggestion}")

    click.echo(f"{total - problems} of {total} step(s) bound to a single pattern.")
    _report_errors(result)
    if problems or not result.is_success:
        ctx.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the current state of the project."""
    from gherkit.parser import parse_feature_files

    project_root = Path.cwd()
    if not is_initialized(project_root):
        click.echo("Project is not initialized. Run `gherkit init`.")
        return

    config = _load_config_or_exit(ctx, project_root)
    files = find_feature_files(project_root, config)
    result = parse_feature_files(files)
    example_count = sum(len(f.examples) for f in result.features)

    click.echo(f"Feature files: {len(files)}")
    click.echo(f"Examples: {example_count}")
    click.echo(f"Parse errors: {len(result.errors)}")
    steps_path = project_root / config.steps_file
    click.echo(f"Step catalog: {config.steps_file if steps_path.exists() else 'not found'}")
    expression = tag_expression_from_config(config.include_tags, config.exclude_tags)
    click.echo(f"Tag filter: {expression if expression is not None else 'none'}")
