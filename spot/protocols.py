"""Protocol definitions for Spot.

This module defines the interfaces of the collaborators the build depends on,
so alternative converters or link readers can be plugged into the handler
registry (and faked in tests) without touching the build itself.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class DocumentConverter(Protocol):
    """Protocol for converting documents to HTML.

    Implementations write ``output_base_name + ".html"`` into the given
    directory and return the produced path.
    """

    @abstractmethod
    def convert(self, input_file: Path, output_directory: Path, output_base_name: str) -> Path:
        """Convert a document to HTML.

        Args:
            input_file: Document to convert.
            output_directory: Existing directory receiving the result.
            output_base_name: File name of the result, without extension.

        Returns:
            Path of the produced HTML file.
        """
        ...


@runtime_checkable
class LinkExtractor(Protocol):
    """Protocol for reading the target URL of a link file."""

    @abstractmethod
    def __call__(self, path: Path) -> str:
        """Return the URL stored in ``path``."""
        ...
