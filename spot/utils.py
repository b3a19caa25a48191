"""Utility functions for Spot.

This module contains small helpers used throughout the Spot codebase: output
path derivation, URL computation, date coercion and the filesystem operations
behind a build (directory reset, verbatim tree copy, staged output swap).

Key functions:
    derive_output_path: Map a content file to its default ``.html`` destination.
    url_for_destination: Compute the site URL of an output file.
    coerce_datetime: Normalize YAML dates and ISO strings to datetime.
    ensure_clean_dir: Ensure a directory exists and is empty.
    copy_tree: Copy a directory tree preserving permissions.
    swap_dirs: Replace a directory with a freshly built one.
    build_tags_index: Build index of pages by tags.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path
from typing import Any


def is_relative_to(path: Path, root: Path) -> bool:
    """Return True when ``path`` is ``root`` or lies below it."""
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def derive_output_path(input_path: Path, content_root: Path, build_root: Path) -> Path:
    """Derive the default destination of a content file.

    The path relative to the content root is kept and its extension is
    replaced by ``.html``.

    Args:
        input_path: Absolute path of the content file.
        content_root: Root of the content tree.
        build_root: Root of the output tree.

    Returns:
        Absolute destination path below ``build_root``.

    Raises:
        ValueError: If ``input_path`` is not below ``content_root``.

    Examples:
        >>> derive_output_path(Path("/s/content/blog/a.md"), Path("/s/content"), Path("/s/dist"))
        PosixPath('/s/dist/blog/a.html')
    """
    relative = input_path.relative_to(content_root)
    return build_root / relative.with_suffix(".html")


def url_for_destination(destination: Path, build_root: Path) -> str:
    """Compute the site-relative URL of an output file.

    A trailing ``index.html`` is dropped so directory pages get
    directory-style URLs.

    Examples:
        >>> url_for_destination(Path("/s/dist/blog/index.html"), Path("/s/dist"))
        '/blog/'

        >>> url_for_destination(Path("/s/dist/about.html"), Path("/s/dist"))
        '/about.html'
    """
    relative = destination.relative_to(build_root).as_posix()
    if relative == "index.html":
        relative = ""
    elif relative.endswith("/index.html"):
        relative = relative[: -len("index.html")]
    return "/" + relative


def coerce_datetime(value: Any) -> datetime | None:
    """Normalize a YAML timestamp value.

    PyYAML already turns ISO timestamps into ``datetime``/``date`` objects;
    quoted strings are parsed with ``datetime.fromisoformat``.

    Raises:
        ValueError: If a string value is not an ISO 8601 timestamp.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    raise ValueError(f"unsupported timestamp {value!r}")


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(str(path), ignore_errors=True)
        if path.exists():
            # Fallback for stubborn directories
            for item in path.rglob("*"):
                if item.is_file() or item.is_symlink():
                    item.unlink()
            for item in sorted(
                [p for p in path.rglob("*") if p.is_dir()], reverse=True
            ):
                item.rmdir()
            path.rmdir()
    path.mkdir(parents=True, exist_ok=True)


def copy_tree(source: Path, dest: Path) -> None:
    """Copy ``source`` into ``dest`` verbatim, preserving permissions and times."""
    shutil.copytree(source, dest, copy_function=shutil.copy2, dirs_exist_ok=True)


def swap_dirs(staging: Path, target: Path) -> None:
    """Move a freshly built ``staging`` tree into place at ``target``.

    The previous tree is renamed aside first, so ``target`` only ever holds
    a complete build. Files already opened from the old tree stay readable
    until their handles are closed.
    """
    previous = target.with_name(target.name + ".old")
    if previous.exists():
        shutil.rmtree(previous)
    if target.exists():
        os.replace(target, previous)
    os.replace(staging, target)
    if previous.exists():
        shutil.rmtree(previous, ignore_errors=True)


def build_tags_index(pages: Iterable) -> dict[str, list]:
    """Build an index mapping tags to lists of pages containing that tag.

    Args:
        pages: Iterable of Page objects with a 'tags' attribute.

    Returns:
        Dictionary mapping tag names to lists of pages.
    """
    tags: dict[str, list] = {}
    for page in pages:
        for tag in page.tags:
            tags.setdefault(tag, []).append(page)
    return tags
