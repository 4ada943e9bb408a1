"""CLI entry point for browser containers."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from browser_containers.containers.runtime import ContainerRuntime
from browser_containers.demo import DemoRunner
from browser_containers.errors import BrowserContainerError, UnsupportedBrowserError
from browser_containers.images.resolver import (
    DockerImageCheck,
    ImageValidator,
    candidate_images,
    resolve_standard_image,
)
from browser_containers.models.config import RunConfig

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Selenium browser containers with screen recording"""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default="containers.json", help="Config file path")
def demo(config: str) -> None:
    """Start a recorded container per browser and run a short session."""
    try:
        cfg = RunConfig.load(config)
    except FileNotFoundError:
        console.print(f"[yellow]Config file not found: {config} - using defaults[/yellow]")
        cfg = RunConfig()

    try:
        outcomes = DemoRunner(cfg).run()
    except BrowserContainerError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    table = Table(title="Recordings")
    table.add_column("Test", style="bold")
    table.add_column("Result")
    table.add_column("Recording")
    for outcome in outcomes:
        result = "[green]PASSED[/green]" if outcome.succeeded else "[red]FAILED[/red]"
        table.add_row(outcome.test_name, result, outcome.recording_path or "[yellow]-[/yellow]")
    console.print(table)


@cli.command("resolve-image")
@click.argument("browser", required=False)
@click.option("--version", "selenium_version", default=None, help="Selenium version tag")
@click.option("--validate/--no-validate", default=True, help="Check the registry for the tag")
@click.option("--timeout", default=300.0, show_default=True, help="Per-tag check timeout in seconds")
def resolve_image(browser: str | None, selenium_version: str | None, validate: bool, timeout: float) -> None:
    """Show the standalone image used for BROWSER (default: chrome)."""
    try:
        image = resolve_standard_image(browser, selenium_version)
    except UnsupportedBrowserError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    console.print(f"Requested: [blue]{image.canonical_name}[/blue]")
    console.print(
        "Candidates: " + ", ".join(c.canonical_name for c in candidate_images(image))
    )
    if not validate:
        return

    runtime = ContainerRuntime()
    try:
        validator = ImageValidator(DockerImageCheck(runtime.client), timeout_seconds=timeout)
        resolved = validator.validate_or_pick_alternative(image)
    except BrowserContainerError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    console.print(f"Resolved:  [green]{resolved}[/green]")


@cli.command()
@click.option("--browser", "-b", "browsers", multiple=True, help="Browser to include (repeatable)")
@click.option("--output", "-o", default="containers.json", help="Config file to write")
def init(browsers: tuple[str, ...], output: str) -> None:
    """Create a default configuration file."""
    config_path = Path(output)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = RunConfig()
    if browsers:
        cfg.browsers = list(browsers)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print("  [blue]browser-containers demo[/blue]")


if __name__ == "__main__":
    cli()
