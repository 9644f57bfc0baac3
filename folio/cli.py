"""Command-line interface for Folio.

This module defines the CLI commands using Click framework.
It provides commands for building sites, running the development server,
cleaning the output directory and creating content files.

Commands:
- build: Build the site into the output directory.
- serve: Run development server with live reload.
- clean: Remove the output directory.
- new: Create a new content file interactively.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .config import load_config
from .content_types import default_content_types
from .errors import ConfigurationError
from .utils import slug_from_filename, slugify


@click.group()
@click.version_option(version=__version__, prog_name="folio")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
def cli(verbose: bool):
    """Folio static site generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _display_path(path: Path | None, project_root: Path) -> str:
    if path is None:
        return "<derived page>"
    try:
        return str(path.resolve().relative_to(project_root.resolve()))
    except ValueError:
        return str(path)


def _fail(message: str) -> None:
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  Error: {message}", fg="white"), err=True)
    raise SystemExit(1)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
    help="Output directory (overrides folio.yaml)",
)
def build(drafts: bool, output: Path | None):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    overrides: dict[str, object] = {}
    if drafts:
        overrides["drafts"] = True
    if output is not None:
        overrides["output_dir"] = str(output)

    try:
        result = build_site(project_root, **overrides)
    except ConfigurationError as exc:
        _fail(str(exc))
        return

    click.echo(
        f"Built {len(result.pages)} pages into {result.output_dir} in {result.elapsed:.2f}s"
    )
    for diagnostic in result.diagnostics:
        click.echo(
            click.style(f"Warning: {diagnostic.source}: {diagnostic.message}", fg="yellow"),
            err=True,
        )
    if result.failures:
        click.echo(
            click.style(f"{len(result.failures)} document(s) failed:", fg="red", bold=True),
            err=True,
        )
        for failure in result.failures:
            click.echo(
                click.style(
                    f"  File: {_display_path(failure.source_path, project_root)}", fg="yellow"
                ),
                err=True,
            )
            click.echo(f"    Stage: {failure.stage}", err=True)
            click.echo(click.style(f"    Error: {failure.cause}", fg="white"), err=True)
        raise SystemExit(1)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides folio.yaml)",
)
def serve(drafts: bool, port: int | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    try:
        server = DevServer(project_root, port=port, drafts=drafts)
        initial = server.start()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    for failure in initial.failures:
        click.echo(click.style(f"Warning: {failure}", fg="yellow"), err=True)
    click.echo(f"Serving {initial.output_dir} at http://localhost:{server.port}")
    server.serve_forever()


@cli.command()
def clean():
    """Remove the output directory."""
    from .build import clean_output

    try:
        removed = clean_output(Path.cwd())
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    if removed is None:
        click.echo("Nothing to clean")
    else:
        click.echo(f"Removed {removed}")


@cli.command()
def new():
    """Create a new content file interactively."""
    project_root = Path.cwd()
    try:
        config = load_config(project_root)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    content_dir = config.content_path
    if not content_dir.is_dir():
        raise click.ClickException(
            f"No {config.content_dir}/ directory found. Run this command from a Folio project root."
        )

    content_types = default_content_types()
    type_name = questionary.select(
        "Content type:",
        choices=[descriptor.name for descriptor in content_types],
        style=_questionary_style(),
    ).ask()
    if type_name is None:
        raise click.Abort()
    descriptor = content_types.describe(type_name)

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    title = title.strip()

    lang = config.default_lang
    if len(config.language_codes) > 1:
        lang = questionary.select(
            "Language:",
            choices=list(config.language_codes),
            default=config.default_lang,
            style=_questionary_style(),
        ).ask()
        if lang is None:
            raise click.Abort()

    target_dir = content_dir / descriptor.directory
    if lang != config.default_lang:
        target_dir = target_dir / lang

    slug = slugify(title)
    today = date.today()
    filename = f"{today.isoformat()}-{slug}.md" if descriptor.is_dated else f"{slug}.md"
    target_path = target_dir / filename

    # Also check for slug collision (same name with different date)
    if target_dir.exists():
        for existing in sorted(target_dir.glob("*.md")):
            if slug_from_filename(existing.name) == slug:
                raise click.ClickException(
                    f"A file with slug '{slug}' already exists: {existing.name}"
                )

    front_matter: dict[str, object] = {"title": title}
    if descriptor.is_dated:
        front_matter["date"] = today
    front_matter["draft"] = True
    header = yaml.safe_dump(front_matter, sort_keys=False, allow_unicode=True)

    target_dir.mkdir(parents=True, exist_ok=True)
    target_path.write_text(f"---\n{header}---\n\n", encoding="utf-8")
    click.echo(f"Created {_display_path(target_path, project_root)}")


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()
