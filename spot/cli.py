"""Command-line interface for Spot.

This module defines the CLI commands using Click framework.
It provides commands for creating new projects and building sites.

Commands:
- init: Scaffold a new Spot project.
- build: Build the site; with --watch, rebuild on change and serve the output.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path

import click

from . import __version__

# Path to the files copied into new projects
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="spot")
def cli():
    """Build static websites from unstructured docs."""


@cli.command()
@click.argument(
    "directory",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
)
def init(directory: Path):
    """Scaffold a new Spot project."""
    target = directory.resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    try:
        _scaffold(target)
    except PermissionError as exc:
        _fail("Insufficient permissions", str(exc))
    click.echo(f"New Spot site created at {target}")


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default="config.yaml",
    show_default=True,
    help="Path to the site configuration",
)
@click.option("--watch", is_flag=True, help="Rebuild on change and serve the output")
@click.option(
    "--addr",
    default=":8080",
    show_default=True,
    help="Address to serve the output on in watch mode",
)
@click.option("--debug", is_flag=True, hidden=True)
def build(config_path: Path, watch: bool, addr: str, debug: bool):
    """Build the site into the build directory."""
    configure_logging(debug)
    from .build import BuildError, build_site
    from .config import ConfigError, load_config
    from .server import DevServer, parse_address
    from .watch import WatchError

    try:
        if watch:
            try:
                parse_address(addr)
            except ValueError as exc:
                raise click.BadParameter(str(exc), param_hint="--addr") from None
            try:
                DevServer(config_path, addr).start()
            except PermissionError:
                raise
            except (WatchError, OSError) as exc:
                _fail("Failed to serve output directory", str(exc))
            return
        result = build_site(load_config(config_path))
    except PermissionError as exc:
        _fail("Insufficient permissions", str(exc))
    except ConfigError as exc:
        _fail("Invalid configuration", str(exc))
    except BuildError as exc:
        if isinstance(exc.original_error, PermissionError):
            _fail("Insufficient permissions", str(exc))
        # Display user-friendly error message
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  File: {_display_path(exc.source_path)}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    except OSError as exc:
        _fail("Failed to build site", str(exc))
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")


def configure_logging(debug: bool = False) -> None:
    """Send Spot's log records to stderr.

    Only the ``spot`` logger is configured; repeated calls replace the
    handler installed by a previous call.
    """
    package_logger = logging.getLogger("spot")
    for handler in list(package_logger.handlers):
        if getattr(handler, "_spot_cli", False):
            package_logger.removeHandler(handler)
    handler = logging.StreamHandler()
    handler._spot_cli = True
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-7s %(message)s", datefmt="%H:%M:%S")
    )
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if debug:
        package_logger.debug("Debug logging enabled.")


def _fail(title: str, detail: str) -> None:
    click.echo(click.style(f"{title}:", fg="red", bold=True), err=True)
    click.echo(f"  {detail}", err=True)
    raise SystemExit(1)


def _display_path(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Spot project.

    Args:
        root: Root directory for the new project.
    """
    # Copy scaffold directory contents to new project
    for src_path in _SCAFFOLD_DIR.rglob("*"):
        if src_path.is_dir() or src_path.name == "__pycache__":
            continue
        rel_path = src_path.relative_to(_SCAFFOLD_DIR)
        dest_path = root / rel_path
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)

    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("SPOT_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run(
            [git_bin, "init"],
            cwd=root,
            check=True,
            capture_output=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        # Non-fatal: user can run git init manually
        logger.debug("git init failed in %s: %s", root, exc)
