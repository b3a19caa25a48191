"""Per-extension file handlers for Spot.

The build dispatches every content file through a HandlerRegistry, a table
mapping file extensions to handlers. Each handler has one capability:

- ConvertHandler: convert the document to HTML and register a page.
- CopyHandler: copy HTML verbatim and register a page.
- LinkHandler: extract and log the URL of a link file; nothing is emitted.
- SkipHandler: log and ignore the file (fallback for unknown extensions).

Supporting a new extension means registering a handler, not editing the build.
"""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from .content import ContentEntry
from .converters import (
    LinkExtractionError,
    PandocConverter,
    extract_shortcut_link,
    extract_webloc_link,
)
from .protocols import DocumentConverter, LinkExtractor

logger = logging.getLogger(__name__)

CONVERTIBLE_SUFFIXES = (".md", ".markdown", ".txt", ".docx", ".odt", ".rtf", ".ipynb")
HTML_SUFFIXES = (".html", ".htm")


class BaseFileHandler(ABC):
    """Base class for content file handlers.

    Attributes:
        suffixes: Lower-case extensions the handler is registered for.
    """

    kind: str = ""
    suffixes: tuple[str, ...] = ()

    @property
    def produces_page(self) -> bool:
        """Whether handled files are emitted as pages."""
        return False

    @abstractmethod
    def handle(self, entry: ContentEntry, destination: Path) -> bool:
        """Process one content file.

        Args:
            entry: Resolved entry of the file.
            destination: Where the page must be written. Its parent exists.

        Returns:
            True if a page was written at ``destination``.
        """
        ...


class ConvertHandler(BaseFileHandler):
    """Converts documents to HTML with a DocumentConverter."""

    kind = "convert"

    def __init__(
        self,
        converter: DocumentConverter | None = None,
        suffixes: tuple[str, ...] = CONVERTIBLE_SUFFIXES,
    ):
        self.converter = converter or PandocConverter()
        self.suffixes = suffixes

    @property
    def produces_page(self) -> bool:
        return True

    def handle(self, entry: ContentEntry, destination: Path) -> bool:
        produced = self.converter.convert(entry.input_path, destination.parent, destination.stem)
        if produced != destination:
            shutil.move(str(produced), destination)
        return True


class CopyHandler(BaseFileHandler):
    """Copies HTML files verbatim."""

    kind = "copy"

    def __init__(self, suffixes: tuple[str, ...] = HTML_SUFFIXES):
        self.suffixes = suffixes

    @property
    def produces_page(self) -> bool:
        return True

    def handle(self, entry: ContentEntry, destination: Path) -> bool:
        shutil.copy2(entry.input_path, destination)
        return True


class LinkHandler(BaseFileHandler):
    """Logs the URL of a link file.

    Nothing is written and no page is registered; a link file is an inert
    placeholder in the content tree.
    """

    kind = "link"

    def __init__(self, extractor: LinkExtractor, suffixes: tuple[str, ...]):
        self.extractor = extractor
        self.suffixes = suffixes

    def handle(self, entry: ContentEntry, destination: Path) -> bool:
        try:
            url = self.extractor(entry.input_path)
        except LinkExtractionError as exc:
            logger.warning("Failed to extract link from %s: %s", entry.input_path, exc)
            return False
        logger.info("Found link %s in %s; nothing is emitted for it", url, entry.input_path)
        return False


class SkipHandler(BaseFileHandler):
    """Fallback for unsupported extensions."""

    kind = "skip"

    def handle(self, entry: ContentEntry, destination: Path) -> bool:
        logger.info(
            "Skipping %s since extension %r is not supported",
            entry.input_path,
            entry.input_path.suffix,
        )
        return False


class HandlerRegistry:
    """Extension to handler table.

    Later registrations replace earlier ones for the same extension.
    Unregistered extensions resolve to the fallback handler.
    """

    def __init__(self, fallback: BaseFileHandler | None = None):
        self._handlers: dict[str, BaseFileHandler] = {}
        self.fallback = fallback or SkipHandler()

    def register(self, handler: BaseFileHandler) -> None:
        """Register ``handler`` for each of its suffixes."""
        for suffix in handler.suffixes:
            self._handlers[suffix.lower()] = handler

    def get_handler(self, path: Path) -> BaseFileHandler:
        """Return the handler for ``path``'s extension."""
        return self._handlers.get(path.suffix.lower(), self.fallback)

    def __contains__(self, suffix: object) -> bool:
        return isinstance(suffix, str) and suffix.lower() in self._handlers


def create_default_registry(converter: DocumentConverter | None = None) -> HandlerRegistry:
    """Create a registry with the default handlers.

    Args:
        converter: Optional converter replacing pandoc.

    Returns:
        Configured HandlerRegistry.
    """
    registry = HandlerRegistry()
    registry.register(ConvertHandler(converter))
    registry.register(CopyHandler())
    registry.register(LinkHandler(extract_webloc_link, (".webloc",)))
    registry.register(LinkHandler(extract_shortcut_link, (".lnk",)))
    return registry
