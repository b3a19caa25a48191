"""External converters for Spot.

This module wraps the programs and file formats Spot does not implement itself:
pandoc for turning documents into HTML, and the two link file formats whose
embedded URL is extracted.

Key classes:
- PandocConverter: Converts documents to HTML fragments with pandoc.

Key functions:
- extract_webloc_link: Read the URL of a macOS ``.webloc`` property list.
- extract_shortcut_link: Read the URL embedded in a Windows ``.lnk`` file.
"""

from __future__ import annotations

import logging
import plistlib
import re
import struct
import subprocess
import uuid
from pathlib import Path

from .executable_utils import find_executable

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = (".md", ".markdown")

# Shell link header: HeaderSize (uint32, always 0x4C) followed by LinkCLSID.
SHELL_LINK_HEADER_SIZE = 0x4C
SHELL_LINK_CLSID = uuid.UUID("00021401-0000-0000-C000-000000000046").bytes_le
_URL_RE = re.compile(r"https?://[^\s\x00\"'<>]+")


class ConversionError(RuntimeError):
    """Raised when a document cannot be converted to HTML."""


class LinkExtractionError(ValueError):
    """Raised when a link file is malformed or holds no URL."""


class PandocConverter:
    """Converts documents to HTML with pandoc.

    Embedded media is extracted into an ``_assets`` directory next to the
    produced file.

    Attributes:
        executable: Explicit pandoc path; looked up on first use when None.
        media_dir: Name of the directory receiving extracted media.
    """

    def __init__(self, executable: str | None = None, media_dir: str = "_assets"):
        self.executable = executable
        self.media_dir = media_dir

    def convert(self, input_file: Path, output_directory: Path, output_base_name: str) -> Path:
        """Convert ``input_file`` to ``output_directory/output_base_name.html``.

        Args:
            input_file: Document to convert.
            output_directory: Existing directory receiving the HTML.
            output_base_name: File name of the result, without extension.

        Returns:
            Path of the produced HTML file.

        Raises:
            ConversionError: If pandoc is missing or fails.
        """
        pandoc = self.executable or find_executable("pandoc", "SPOT_PANDOC")
        if not pandoc:
            raise ConversionError(
                "pandoc not found; install it or point SPOT_PANDOC at the executable"
            )

        output_name = f"{output_base_name}.html"
        cmd = [pandoc]
        if input_file.suffix.lower() in MARKDOWN_SUFFIXES:
            cmd.extend(["-f", "gfm+yaml_metadata_block"])
        cmd.extend(
            [
                str(input_file),
                "-o",
                output_name,
                "-t",
                "html",
                f"--extract-media={self.media_dir}",
            ]
        )

        try:
            result = subprocess.run(cmd, cwd=output_directory, capture_output=True, text=True)
        except OSError as exc:
            raise ConversionError(f"Failed to run pandoc on {input_file}: {exc}") from exc
        if result.returncode != 0:
            raise ConversionError(
                f"pandoc failed on {input_file} (exit {result.returncode}): "
                f"{result.stderr.strip()}"
            )

        output = output_directory / output_name
        logger.debug("Converted %s -> %s", input_file, output)
        return output


def extract_webloc_link(path: Path) -> str:
    """Return the URL stored in a ``.webloc`` file.

    Both the XML and the binary property list encodings are accepted.

    Raises:
        LinkExtractionError: If the file is not a property list with a URL.
    """
    try:
        with open(path, "rb") as f:
            data = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError) as exc:
        raise LinkExtractionError(f"{path} is not a readable property list: {exc}") from exc
    url = data.get("URL") if isinstance(data, dict) else None
    if not isinstance(url, str) or not url:
        raise LinkExtractionError(f"{path} has no URL entry")
    return url


def extract_shortcut_link(path: Path) -> str:
    """Return the first web URL embedded in a Windows ``.lnk`` shortcut.

    The file must start with a shell link header carrying the shell link
    class identifier. The remaining data is scanned for an ``http(s)://``
    URL stored either as UTF-16LE or 8-bit text.

    Raises:
        LinkExtractionError: If the header is invalid or no URL is found.
    """
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise LinkExtractionError(f"Cannot read {path}: {exc}") from exc

    if len(data) < SHELL_LINK_HEADER_SIZE:
        raise LinkExtractionError(f"{path} is too short to be a shortcut file")
    (header_size,) = struct.unpack_from("<I", data, 0)
    if header_size != SHELL_LINK_HEADER_SIZE or data[4:20] != SHELL_LINK_CLSID:
        raise LinkExtractionError(f"{path} is not a valid Windows shortcut file")

    body = data[SHELL_LINK_HEADER_SIZE:]
    candidates = (
        body.decode("utf-16-le", errors="ignore"),
        body[1:].decode("utf-16-le", errors="ignore"),
        body.decode("latin-1"),
    )
    for text in candidates:
        match = _URL_RE.search(text)
        if match:
            return match.group(0)
    raise LinkExtractionError(f"No URL found in the shortcut file {path}")
