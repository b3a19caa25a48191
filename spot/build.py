"""Site building functionality for Spot.

This module contains the core logic for building a static site from a loaded
configuration. It copies the static tree, walks the content tree resolving and
dispatching every file, and renders every page once the complete page index is
known, so templates can cross-reference pages that appear later in the walk.

The build writes into a staging directory that replaces the build directory
only once the whole build succeeded; a failed build leaves the previous output
untouched, and a server reading the output never sees a half-written tree.

Key functions:
- build_site: Main function to build the entire site.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from jinja2 import TemplateNotFound, TemplateSyntaxError

from .collections import PageCollection
from .config import Config
from .content import ContentEntry, FileContentLoader, Page, resolve_entry
from .converters import ConversionError
from .extractors import HeadingTitleExtractor, default_title_extractor
from .handlers import HandlerRegistry, create_default_registry
from .templates import TemplateEngine
from .utils import copy_tree, ensure_clean_dir, swap_dirs, url_for_destination

logger = logging.getLogger(__name__)


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        pages: Every page of the site, in walk order.
        output_dir: Directory where the site was built.
    """

    pages: PageCollection
    output_dir: Path


def staging_dir_for(build_path: Path) -> Path:
    """Return the directory a build of ``build_path`` is staged in."""
    return build_path.with_name(build_path.name + ".staging")


def build_site(
    config: Config,
    registry: HandlerRegistry | None = None,
    engine: TemplateEngine | None = None,
    title_extractor: HeadingTitleExtractor | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        config: Loaded site configuration.
        registry: Optional handler table; defaults to pandoc conversion.
        engine: Optional template engine.
        title_extractor: Optional fallback title extractor.

    Returns:
        BuildResult containing all pages and the output directory.

    Raises:
        BuildError: On converter, filesystem or template failures.
        ConfigError: If a content rule turns out to be invalid for a file.
    """
    builder = _SiteBuilder(
        config,
        registry or create_default_registry(),
        engine or TemplateEngine(config.templates_path, config.site),
        title_extractor or default_title_extractor,
    )
    staging = staging_dir_for(config.build_path)
    try:
        ensure_clean_dir(staging)
    except OSError as exc:
        raise BuildError(staging, f"Failed to reset staging directory: {exc}", exc) from exc
    try:
        pages = builder.build_into(staging)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    try:
        swap_dirs(staging, config.build_path)
    except OSError as exc:
        shutil.rmtree(staging, ignore_errors=True)
        raise BuildError(config.build_path, f"Failed to replace output: {exc}", exc) from exc
    logger.info("Built %d pages into %s", len(pages), config.build_path)
    return BuildResult(pages=pages, output_dir=config.build_path)


class _SiteBuilder:
    def __init__(
        self,
        config: Config,
        registry: HandlerRegistry,
        engine: TemplateEngine,
        title_extractor: HeadingTitleExtractor,
    ):
        self.config = config
        self.registry = registry
        self.engine = engine
        self.title_extractor = title_extractor
        self._staging = config.build_path

    def build_into(self, staging: Path) -> PageCollection:
        self._staging = staging
        self._copy_static()
        produced = self._process_content()
        pages = PageCollection(page for page, _ in produced)
        self.engine.update_collections(pages)
        for page, contents in produced:
            self._render(page, contents)
        return pages

    def _working_path(self, destination: Path) -> Path:
        return self._staging / destination.relative_to(self.config.build_path)

    def _copy_static(self) -> None:
        static = self.config.static_path
        if not static.is_dir():
            logger.warning("Static directory %s does not exist; nothing copied", static)
            return
        try:
            copy_tree(static, self._staging)
        except (OSError, shutil.Error) as exc:
            raise BuildError(static, f"Failed to copy static files: {exc}", exc) from exc

    def _process_content(self) -> list[tuple[Page, str]]:
        content = self.config.content_path
        if not content.is_dir():
            raise BuildError(content, "Content directory does not exist")

        produced: list[tuple[Page, str]] = []
        seen: dict[Path, Path] = {}
        for path in FileContentLoader(content).iter_files():
            entry = resolve_entry(self.config, path, read_front_matter=True)
            if entry is None:
                logger.info("No content entry matches %s; skipping", path)
                continue

            handler = self.registry.get_handler(path)
            working = self._working_path(entry.output_path)
            logger.debug("Handling %s with %s handler", path, handler.kind)
            if handler.produces_page:
                try:
                    working.parent.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    raise BuildError(
                        path, f"Failed to create output directory {working.parent}: {exc}", exc
                    ) from exc

            try:
                emitted = handler.handle(entry, working)
                if not emitted:
                    continue
                contents = working.read_text(encoding="utf-8", errors="replace")
            except ConversionError as exc:
                raise BuildError(path, str(exc), exc) from exc
            except OSError as exc:
                raise BuildError(path, f"Failed to write {entry.output_path}: {exc}", exc) from exc

            previous = seen.get(entry.output_path)
            if previous is not None:
                logger.warning("%s overwrites %s at %s", path, previous, entry.output_path)
                produced = [
                    item for item in produced if item[0].destination_path != entry.output_path
                ]
            seen[entry.output_path] = path
            produced.append((self._make_page(entry, contents), contents))
        return produced

    def _make_page(self, entry: ContentEntry, contents: str) -> Page:
        title = entry.title
        if not title:
            title = self.title_extractor.extract(contents) or ""
            if not title:
                logger.warning("No title for page %s", entry.input_path)
        if not entry.description:
            logger.debug("No description for page %s", entry.input_path)

        created_at = entry.created_at
        if created_at is None:
            try:
                created_at = datetime.fromtimestamp(entry.input_path.stat().st_mtime)
            except OSError as exc:
                raise BuildError(
                    entry.input_path, f"Failed to read modification time: {exc}", exc
                ) from exc

        return Page(
            source_path=entry.input_path,
            template_path=entry.template,
            destination_path=entry.output_path,
            url=url_for_destination(entry.output_path, self.config.build_path),
            title=title,
            description=entry.description,
            created_at=created_at,
            tags=list(entry.tags),
            metadata=dict(entry.metadata),
        )

    def _render(self, page: Page, contents: str) -> None:
        try:
            rendered = self.engine.render_page(page, contents)
        except TemplateSyntaxError as exc:
            raise BuildError(
                page.source_path,
                f"Template syntax error in {exc.filename or exc.name} on line {exc.lineno}: {exc.message}",
                exc,
            ) from exc
        except TemplateNotFound as exc:
            raise BuildError(page.source_path, f"Template not found: {exc.name}", exc) from exc
        except Exception as exc:
            raise BuildError(page.source_path, _format_error_message(exc), exc) from exc

        target = self._working_path(page.destination_path)
        try:
            target.write_text(rendered, encoding="utf-8")
        except OSError as exc:
            raise BuildError(page.source_path, f"Failed to write {target}: {exc}", exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    # Handle common Jinja2/template errors
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"

    return f"{error_type}: {error_msg}"
