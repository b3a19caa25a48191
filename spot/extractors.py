"""Metadata extractors for Spot.

This module reads the metadata Spot overlays onto content entries and pages.
Each extractor handles a single source of metadata.

Key classes:
- FrontMatterReader: Reads the leading YAML block of a content file.
- HeadingTitleExtractor: Finds a fallback title in produced HTML.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml
from bs4 import BeautifulSoup

from .config import ConfigError, parse_metadata, parse_tags
from .utils import coerce_datetime

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"^---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|$)", re.DOTALL)

FRONTMATTER_FIELDS = ("title", "description", "created_at", "tags", "metadata")


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Extract YAML frontmatter from content.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (frontmatter dict, remaining content).

    Raises:
        yaml.YAMLError: If the block exists but is not valid YAML.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    data = yaml.safe_load(match.group(1)) or {}
    if not isinstance(data, dict):
        raise yaml.YAMLError("front matter must be a mapping")
    return data, text[match.end() :]


class FrontMatterReader:
    """Reads front matter from content files.

    Only the recognised fields are returned, and only when present in the
    block, so callers can overlay them onto rule values key by key. Every
    failure is soft: it is logged and reported as ``None``.
    """

    def read(self, path: Path) -> dict[str, Any] | None:
        """Read the front matter of ``path``.

        Args:
            path: Content file to inspect.

        Returns:
            Normalized fields present in the block, or None when the file has
            no usable front matter.
        """
        try:
            with open(path, "rb") as f:
                if f.read(3) != b"---":
                    logger.debug("No front matter in %s", path)
                    return None
                f.seek(0)
                text = f.read().decode("utf-8")
        except OSError as exc:
            logger.warning("Failed to read %s to extract front matter: %s", path, exc)
            return None
        except UnicodeDecodeError:
            logger.debug("Skipping front matter of non-text file %s", path)
            return None

        try:
            data, _ = extract_frontmatter(text)
        except yaml.YAMLError as exc:
            logger.warning("Failed to parse front matter of %s: %s", path, exc)
            return None
        if not data:
            logger.debug("No front matter in %s", path)
            return None

        try:
            return self._normalize(data)
        except (ConfigError, ValueError) as exc:
            logger.warning("Ignoring invalid front matter in %s: %s", path, exc)
            return None

    def _normalize(self, data: dict[str, Any]) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if "title" in data:
            fields["title"] = str(data["title"] or "")
        if "description" in data:
            fields["description"] = str(data["description"] or "")
        if "created_at" in data:
            fields["created_at"] = coerce_datetime(data["created_at"])
        if "tags" in data:
            fields["tags"] = parse_tags(data["tags"])
        if "metadata" in data:
            fields["metadata"] = parse_metadata(data["metadata"])
        return fields


class HeadingTitleExtractor:
    """Extracts a page title from the first heading of an HTML document.

    The document is searched depth-first in pre-order, so the first heading
    in source order wins regardless of nesting.

    Attributes:
        tag: Heading tag to look for.
    """

    def __init__(self, tag: str = "h1"):
        self.tag = tag

    def extract(self, html: str) -> str | None:
        """Return the stripped text of the first heading, or None."""
        soup = BeautifulSoup(html, "html.parser")
        heading = soup.find(self.tag)
        if heading is None:
            return None
        text = heading.get_text(" ", strip=True)
        return text or None


default_frontmatter_reader = FrontMatterReader()
default_title_extractor = HeadingTitleExtractor()
