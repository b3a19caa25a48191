"""Configuration loading for Spot.

The configuration is a YAML document describing where the content, static,
template and build trees live, an optional default template, site metadata and
an ordered list of content rules. Paths are resolved relative to the directory
holding the configuration file.

Key functions:
- load_config: Parse and validate a configuration file into a Config.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .trie import PathTrie
from .utils import coerce_datetime, is_relative_to

DEFAULT_CONFIG_NAME = "config.yaml"

DEFAULT_CONFIG = {
    "content_path": "content/",
    "static_path": "static/",
    "templates_path": "templates/",
    "build_path": "dist/",
    "default_template": "",
    "site_title": "",
    "site_description": "",
}


class ConfigError(ValueError):
    """Raised for malformed or unusable configuration."""


@dataclass(frozen=True)
class SiteInfo:
    title: str = ""
    description: str = ""


@dataclass(frozen=True)
class ContentRule:
    """One entry of the ``content`` list.

    Attributes:
        input_path: Absolute file or directory the rule applies to.
        output_path: Absolute destination, or None to derive it from the input.
        template: Absolute template path, or None for the default template.
        is_directory: Whether the rule covers every file below ``input_path``.
    """

    input_path: Path
    output_path: Path | None = None
    template: Path | None = None
    title: str = ""
    description: str = ""
    created_at: datetime | None = None
    tags: tuple[str, ...] = ()
    metadata: Mapping[str, str] = field(default_factory=dict)
    is_directory: bool = False


@dataclass
class Config:
    """Resolved site configuration.

    Attributes:
        config_path: Absolute path of the configuration file.
        content_path: Root of the content tree.
        static_path: Root of the static assets copied verbatim.
        templates_path: Root of the Jinja2 templates.
        build_path: Output root.
        default_template: Template for files no rule matches, if any.
        site: Site-wide title and description exposed to templates.
        content: Content rules in declaration order.
        trie: Index over ``content`` keyed by input path.
    """

    config_path: Path
    content_path: Path
    static_path: Path
    templates_path: Path
    build_path: Path
    default_template: Path | None = None
    site: SiteInfo = field(default_factory=SiteInfo)
    content: list[ContentRule] = field(default_factory=list)
    trie: PathTrie[ContentRule] = field(default_factory=PathTrie, repr=False)

    def match(self, path: Path) -> ContentRule | None:
        """Return the most specific rule covering ``path``."""
        return self.trie.search(path)

    @property
    def watch_paths(self) -> list[Path]:
        return [self.content_path, self.static_path, self.templates_path]


def load_config(config_path: Path | str) -> Config:
    """Load and validate a configuration file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Config with absolute paths and a populated rule index.

    Raises:
        ConfigError: If the file is unreadable, malformed or describes an
            invalid set of content rules.
    """
    config_path = Path(config_path).resolve()
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse config {config_path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config {config_path} must be a mapping")

    raw = DEFAULT_CONFIG.copy()
    raw.update({k: v for k, v in loaded.items() if v is not None})

    base = config_path.parent
    templates_path = _root_path(base, raw["templates_path"])
    build_path = _root_path(base, raw["build_path"])
    config = Config(
        config_path=config_path,
        content_path=_root_path(base, raw["content_path"]),
        static_path=_root_path(base, raw["static_path"]),
        templates_path=templates_path,
        build_path=build_path,
        default_template=_optional_path(templates_path, raw["default_template"]),
        site=SiteInfo(
            title=str(raw["site_title"]),
            description=str(raw["site_description"]),
        ),
    )

    entries = raw.get("content") or []
    if not isinstance(entries, list):
        raise ConfigError("'content' must be a list of content entries")
    for index, entry in enumerate(entries):
        rule = _parse_rule(config, index, entry)
        config.content.append(rule)
        config.trie.insert(rule.input_path, rule)
    return config


def _parse_rule(config: Config, index: int, entry: Any) -> ContentRule:
    where = f"content[{index}]"
    if not isinstance(entry, dict):
        raise ConfigError(f"{where} must be a mapping")
    raw_input = str(entry.get("input_path") or "")
    if not raw_input:
        raise ConfigError(f"{where} is missing input_path")

    input_path = join_under(config.content_path, raw_input)
    is_directory = raw_input.endswith(("/", os.sep)) or input_path.is_dir()
    output_path = _optional_path(config.build_path, entry.get("output_path"), nested=True)
    if output_path is not None and (
        output_path == config.build_path or not is_relative_to(output_path, config.build_path)
    ):
        raise ConfigError(f"{where}: output_path {output_path} is outside {config.build_path}")
    if is_directory and output_path is not None:
        raise ConfigError(
            f"{where}: input_path {raw_input!r} is a directory, so output_path "
            "would be shared by every file below it; leave output_path empty"
        )

    try:
        created_at = coerce_datetime(entry.get("created_at"))
    except ValueError as exc:
        raise ConfigError(f"{where}: invalid created_at: {exc}") from exc

    return ContentRule(
        input_path=input_path,
        output_path=output_path,
        template=_optional_path(config.templates_path, entry.get("template"), nested=True),
        title=str(entry.get("title") or ""),
        description=str(entry.get("description") or ""),
        created_at=created_at,
        tags=parse_tags(entry.get("tags"), where),
        metadata=parse_metadata(entry.get("metadata"), where),
        is_directory=is_directory,
    )


def parse_tags(value: Any, where: str = "tags") -> tuple[str, ...]:
    """Normalize a YAML tags value into a tuple of strings."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list):
        raise ConfigError(f"{where}: tags must be a list")
    return tuple(str(tag) for tag in value)


def parse_metadata(value: Any, where: str = "metadata") -> dict[str, str]:
    """Normalize a YAML metadata mapping into ``str -> str``."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where}: metadata must be a mapping")
    return {str(k): "" if v is None else str(v) for k, v in value.items()}


def join_under(root: Path, value: str) -> Path:
    """Join ``value`` below ``root``, treating a leading separator as the root itself.

    Examples:
        >>> join_under(Path("/site/content"), "/blog/")
        PosixPath('/site/content/blog')
    """
    relative = value.lstrip("/" + os.sep)
    return Path(os.path.normpath(root / relative))


def _root_path(base: Path, value: Any) -> Path:
    return Path(os.path.normpath(base / str(value)))


def _optional_path(root: Path, value: Any, nested: bool = False) -> Path | None:
    if value is None or str(value).strip() == "":
        return None
    if nested:
        return join_under(root, str(value))
    return _root_path(root, value)
