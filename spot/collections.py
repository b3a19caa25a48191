from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from datetime import datetime

from .content import Page


class PageCollection(Sequence[Page]):
    """Read-only list of Pages with the queries templates use.

    Every query is a linear scan that keeps the collection's order, which for
    the site index is the order the build walked the content tree.
    """

    def __init__(self, pages: Iterable[Page]):
        self._pages = tuple(pages)

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return PageCollection(self._pages[item])
        return self._pages[item]

    def with_tag(self, tag: str) -> PageCollection:
        return PageCollection(p for p in self._pages if tag in p.tags)

    def with_url_prefix(self, prefix: str) -> PageCollection:
        return PageCollection(p for p in self._pages if p.url.startswith(prefix))

    def with_metadata(self, key: str, value: str) -> PageCollection:
        return PageCollection(
            p for p in self._pages if key in p.metadata and p.metadata[key] == value
        )

    def sorted(self, reverse: bool = True) -> PageCollection:
        """Sort pages by creation time, then by URL.

        Pages without a creation time sort as the oldest.

        Args:
            reverse: If True (default), newest first.

        Returns:
            A new PageCollection with sorted pages.
        """

        def sort_key(p: Page):
            created = p.created_at or datetime.min
            if created.tzinfo is not None:
                created = created.replace(tzinfo=None) - created.utcoffset()
            return (created, p.url)

        return PageCollection(sorted(self._pages, key=sort_key, reverse=reverse))

    def latest(self, count: int = 5) -> PageCollection:
        return self.sorted()[:count]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PageCollection({len(self._pages)} pages)"


class TagCollection(Mapping[str, PageCollection]):
    """Mapping of tag name to PageCollection with convenience helpers."""

    def __init__(self, mapping: dict[str, Iterable[Page]]):
        self._mapping = {k: PageCollection(v) for k, v in mapping.items()}

    def __getitem__(self, key: str) -> PageCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TagCollection({len(self._mapping)} tags)"
