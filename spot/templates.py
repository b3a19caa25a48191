"""Template rendering engine for Spot.

This module uses Jinja2 to wrap converted page contents in the page's template.
Templates see the page being rendered, its HTML contents, the complete page
index of the current build and the site metadata.

Key class:
- TemplateEngine: Handles template loading and rendering.

Template context:
- page: The Page being rendered.
- contents: The page's HTML, marked safe.
- pages: PageCollection of every page of the build, in walk order.
- tags: TagCollection mapping tags to pages.
- site: SiteInfo with the configured title and description.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup

from .collections import PageCollection, TagCollection
from .config import SiteInfo
from .content import Page
from .utils import build_tags_index, is_relative_to

__all__ = ["TemplateEngine", "has_prefix"]


def has_prefix(value: str, prefix: str) -> bool:
    """Template helper: whether ``value`` starts with ``prefix``."""
    return str(value).startswith(prefix)


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        templates_dir: Root directory the templates are loaded from.
        site: Site metadata exposed as ``site``.
        env: Jinja2 environment.
        pages: Page index of the current build.
        tags: Pages grouped by tag.
    """

    def __init__(self, templates_dir: Path, site: SiteInfo | None = None):
        """Initialize the template engine.

        Args:
            templates_dir: Directory with templates.
            site: Site metadata.
        """
        self.templates_dir = templates_dir
        self.site = site or SiteInfo()
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "htm", "xml"]),
            enable_async=False,
        )
        self.pages = PageCollection([])
        self.tags = TagCollection({})
        self._install_globals()

    def _install_globals(self) -> None:
        """Install global variables and functions in the Jinja environment."""
        self.env.globals["site"] = self.site
        self.env.globals["pages"] = self.pages
        self.env.globals["tags"] = self.tags
        self.env.globals["has_prefix"] = has_prefix
        self.env.globals["url_for"] = self._url_for

    def update_collections(self, pages: Iterable[Page]) -> None:
        """Replace the page index every render sees.

        Args:
            pages: Every page of the build, in walk order.
        """
        self.pages = PageCollection(pages)
        self.tags = TagCollection(build_tags_index(self.pages))
        self.env.globals["pages"] = self.pages
        self.env.globals["tags"] = self.tags

    @staticmethod
    def _url_for(path: str) -> str:
        """Return ``path`` as a root-relative URL, leaving absolute URLs alone."""
        if path.startswith(("http://", "https://", "//")):
            return path
        return path if path.startswith("/") else f"/{path}"

    def render_page(self, page: Page, contents: str) -> str:
        """Render a page with its template.

        Args:
            page: Page object to render.
            contents: HTML produced for the page.

        Returns:
            Rendered HTML string, or ``contents`` unchanged when the page has
            no template.

        Raises:
            jinja2.TemplateNotFound: If the template file does not exist.
            jinja2.TemplateError: If the template fails to parse or render.
        """
        if page.template_path is None:
            return contents
        template = self.env.get_template(self._template_name(page.template_path))
        return template.render(
            page=page,
            contents=Markup(contents),
            pages=self.pages,
            tags=self.tags,
            site=self.site,
        )

    def _template_name(self, path: Path) -> str:
        if not is_relative_to(path, self.templates_dir):
            raise TemplateNotFound(f"{path} is outside {self.templates_dir}")
        return path.relative_to(self.templates_dir).as_posix()
