from datetime import datetime, timedelta, timezone
from pathlib import Path

from spot.collections import PageCollection, TagCollection
from spot.content import Page


def make_page(url, created_at=None, tags=None, metadata=None, title=None):
    return Page(
        source_path=Path("content") / url.strip("/"),
        template_path=None,
        destination_path=Path("dist") / url.strip("/"),
        url=url,
        title=title or url,
        created_at=created_at,
        tags=tags or [],
        metadata=metadata or {},
    )


def test_page_collection_filters_keep_walk_order():
    pages = PageCollection(
        [
            make_page("/blog/b.html", tags=["blog", "python"], metadata={"series": "x"}),
            make_page("/about.html", metadata={"series": "y"}),
            make_page("/blog/a.html", tags=["blog"], metadata={"series": "x"}),
        ]
    )
    assert len(pages) == 3
    assert [p.url for p in pages.with_tag("blog")] == ["/blog/b.html", "/blog/a.html"]
    assert [p.url for p in pages.with_tag("python")] == ["/blog/b.html"]
    assert [p.url for p in pages.with_url_prefix("/blog/")] == ["/blog/b.html", "/blog/a.html"]
    assert [p.url for p in pages.with_metadata("series", "x")] == ["/blog/b.html", "/blog/a.html"]
    assert len(pages.with_metadata("missing", "")) == 0
    assert isinstance(pages.with_tag("blog"), PageCollection)


def test_sorted_by_created_at_then_url():
    pages = PageCollection(
        [
            make_page("/b.html", datetime(2024, 1, 1)),
            make_page("/c.html", datetime(2024, 3, 1)),
            make_page("/a.html", datetime(2024, 1, 1)),
            make_page("/undated.html"),
        ]
    )
    assert [p.url for p in pages.sorted()] == ["/c.html", "/b.html", "/a.html", "/undated.html"]
    assert [p.url for p in pages.sorted(reverse=False)] == [
        "/undated.html",
        "/a.html",
        "/b.html",
        "/c.html",
    ]
    assert [p.url for p in pages.latest(2)] == ["/c.html", "/b.html"]


def test_sorted_mixes_aware_and_naive_timestamps():
    plus_two = timezone(timedelta(hours=2))
    pages = PageCollection(
        [
            make_page("/naive.html", datetime(2024, 1, 1, 11, 0)),
            # 12:00+02:00 is 10:00 UTC, so it is older than the naive 11:00.
            make_page("/aware.html", datetime(2024, 1, 1, 12, 0, tzinfo=plus_two)),
        ]
    )
    assert [p.url for p in pages.sorted(reverse=False)] == ["/aware.html", "/naive.html"]


def test_slicing_returns_collection():
    pages = PageCollection(make_page(f"/{i}.html") for i in range(4))
    head = pages[:2]
    assert isinstance(head, PageCollection)
    assert [p.url for p in head] == ["/0.html", "/1.html"]
    assert pages[-1].url == "/3.html"


def test_tag_collection_mapping():
    first = make_page("/a.html", tags=["x"])
    second = make_page("/b.html", tags=["x", "y"])
    tags = TagCollection({"x": [first, second], "y": [second]})
    assert set(tags) == {"x", "y"}
    assert len(tags) == 2
    assert [p.url for p in tags["x"]] == ["/a.html", "/b.html"]
    assert isinstance(tags["y"], PageCollection)
