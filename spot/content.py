"""Content resolution for Spot.

This module decides how every content file is built. A file is matched against
the configured content rules; the match (or a synthesized default) is turned
into a ContentEntry with a concrete output path and template, and metadata from
the file's own front matter is overlaid on top.

Key classes:
- ContentEntry: Fully resolved per-file build settings.
- Page: Build-time record of one emitted page, exposed to templates.
- FileContentLoader: Deterministic discovery of content files.

Key functions:
- resolve_entry: Resolve the ContentEntry of one input file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .config import Config, ConfigError, ContentRule
from .extractors import FrontMatterReader, default_frontmatter_reader
from .utils import derive_output_path

logger = logging.getLogger(__name__)


@dataclass
class ContentEntry:
    """Resolved build settings for one content file.

    Attributes:
        input_path: The concrete content file.
        output_path: Absolute destination of the produced HTML.
        template: Template wrapping the page, or None to write contents as-is.
        title: Page title (may be empty until the heading fallback runs).
        description: Page description.
        created_at: Creation timestamp, if known.
        tags: Page tags.
        metadata: Free-form string metadata.
    """

    input_path: Path
    output_path: Path
    template: Path | None = None
    title: str = ""
    description: str = ""
    created_at: datetime | None = None
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)

    def overlay(self, fields: dict) -> None:
        """Overwrite entry values with the front matter fields present."""
        if "title" in fields:
            self.title = fields["title"]
        if "description" in fields:
            self.description = fields["description"]
        if "created_at" in fields:
            self.created_at = fields["created_at"]
        if "tags" in fields:
            self.tags = list(fields["tags"])
        if "metadata" in fields:
            self.metadata = dict(fields["metadata"])


@dataclass
class Page:
    """Represents an emitted page with its site metadata.

    Attributes:
        source_path: Content file the page was built from.
        template_path: Template used to render the page, if any.
        destination_path: Final location of the page below the build root.
        url: Site-relative URL with a leading slash; ``index.html`` is dropped.
        title: Page title.
        description: Page description.
        created_at: Creation timestamp.
        tags: Page tags.
        metadata: Free-form string metadata.
    """

    source_path: Path
    template_path: Path | None
    destination_path: Path
    url: str
    title: str = ""
    description: str = ""
    created_at: datetime | None = None
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)


def resolve_entry(
    config: Config,
    input_path: Path,
    read_front_matter: bool = True,
    reader: FrontMatterReader | None = None,
) -> ContentEntry | None:
    """Resolve the build settings of one content file.

    Args:
        config: Loaded site configuration.
        input_path: Absolute path of the content file.
        read_front_matter: Whether to overlay the file's front matter.
        reader: Optional custom front matter reader.

    Returns:
        The resolved entry, or None when no rule matches and no default
        template is configured (the file should be skipped).

    Raises:
        ConfigError: If a directory rule remaps its output path, which would
            make every file below it collide on one destination.
    """
    derived = derive_output_path(input_path, config.content_path, config.build_path)
    rule = config.match(input_path)
    if rule is None:
        if config.default_template is None:
            return None
        entry = ContentEntry(
            input_path=input_path,
            output_path=derived,
            template=config.default_template,
        )
        logger.debug("Generated default entry for %s -> %s", input_path, derived)
    else:
        entry = _entry_from_rule(config, rule, input_path, derived)

    if read_front_matter:
        fields = (reader or default_frontmatter_reader).read(input_path)
        if fields:
            entry.overlay(fields)
    return entry


def _entry_from_rule(
    config: Config, rule: ContentRule, input_path: Path, derived: Path
) -> ContentEntry:
    output_path = rule.output_path
    if output_path is None:
        output_path = derived
    elif output_path != derived and (rule.is_directory or rule.input_path != input_path):
        raise ConfigError(
            f"Content rule for {rule.input_path} sets output_path {output_path}, "
            f"but it also matches {input_path}; output remapping is only "
            "supported for single-file rules"
        )
    return ContentEntry(
        input_path=input_path,
        output_path=output_path,
        template=rule.template or config.default_template,
        title=rule.title,
        description=rule.description,
        created_at=rule.created_at,
        tags=list(rule.tags),
        metadata=dict(rule.metadata),
    )


class FileContentLoader:
    """Discovers content files.

    Each directory's entries are visited in one lexical sequence, descending
    into a subdirectory at its sorted position, so ``b/x.md`` comes between
    ``a.md`` and ``c.md``. Two builds of the same tree register pages
    identically.

    Attributes:
        content_dir: Root of the content tree.
    """

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def iter_files(self) -> list[Path]:
        """List every file below the content root in walk order."""
        files: list[Path] = []
        self._walk(self.content_dir, files)
        return files

    def _walk(self, directory: Path, files: list[Path]) -> None:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                self._walk(Path(entry.path), files)
            elif entry.is_file():
                files.append(Path(entry.path))
