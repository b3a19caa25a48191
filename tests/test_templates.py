from datetime import datetime
from pathlib import Path

import pytest
from jinja2 import TemplateNotFound

from spot.config import SiteInfo
from spot.content import Page
from spot.templates import TemplateEngine, has_prefix


def make_page(templates_dir, url, template="page.html", **kwargs):
    return Page(
        source_path=Path("content") / url.strip("/"),
        template_path=templates_dir / template if template else None,
        destination_path=Path("dist") / url.strip("/"),
        url=url,
        **kwargs,
    )


def test_render_exposes_page_contents_pages_and_site(tmp_path):
    (tmp_path / "page.html").write_text(
        "<title>{{ page.title }} - {{ site.title }}</title>"
        "{{ contents }}"
        "{% for p in pages %}[{{ p.url }}]{% endfor %}"
        "{% for p in tags['blog'] %}<{{ p.title }}>{% endfor %}"
        "{{ url_for('styles.css') }}",
        encoding="utf-8",
    )
    engine = TemplateEngine(tmp_path, SiteInfo(title="Site", description="About"))
    home = make_page(tmp_path, "/", title="Home")
    post = make_page(tmp_path, "/blog/post.html", title="Post", tags=["blog"])
    engine.update_collections([home, post])

    rendered = engine.render_page(home, "<p>Hi & bye</p>")

    assert rendered.startswith("<title>Home - Site</title>")
    # Produced HTML is inserted verbatim, not escaped.
    assert "<p>Hi & bye</p>" in rendered
    assert "[/][/blog/post.html]" in rendered
    assert "<Post>" in rendered
    assert rendered.endswith("/styles.css")


def test_page_values_are_autoescaped(tmp_path):
    (tmp_path / "page.html").write_text("{{ page.title }}", encoding="utf-8")
    engine = TemplateEngine(tmp_path)
    page = make_page(tmp_path, "/x.html", title="<b>Bold</b>")
    assert engine.render_page(page, "") == "&lt;b&gt;Bold&lt;/b&gt;"


def test_has_prefix_and_date_formatting_in_templates(tmp_path):
    (tmp_path / "list.html").write_text(
        "{% for p in pages.sorted() %}{% if has_prefix(p.url, '/blog/') %}"
        "{{ p.created_at.strftime('%Y-%m-%d') }} {{ p.title }};"
        "{% endif %}{% endfor %}",
        encoding="utf-8",
    )
    engine = TemplateEngine(tmp_path)
    old = make_page(tmp_path, "/blog/old.html", "list.html", title="Old", created_at=datetime(2023, 1, 1))
    new = make_page(tmp_path, "/blog/new.html", "list.html", title="New", created_at=datetime(2024, 1, 1))
    other = make_page(tmp_path, "/about.html", "list.html", title="About", created_at=datetime(2025, 1, 1))
    engine.update_collections([old, other, new])

    assert engine.render_page(other, "") == "2024-01-01 New;2023-01-01 Old;"


def test_page_without_template_renders_contents_unchanged(tmp_path):
    engine = TemplateEngine(tmp_path)
    page = make_page(tmp_path, "/raw.html", template=None)
    assert engine.render_page(page, "<p>raw</p>") == "<p>raw</p>"


def test_missing_and_foreign_templates_raise(tmp_path):
    engine = TemplateEngine(tmp_path / "templates")
    with pytest.raises(TemplateNotFound):
        engine.render_page(make_page(tmp_path / "templates", "/a.html", "missing.html"), "")
    with pytest.raises(TemplateNotFound):
        engine.render_page(make_page(tmp_path / "elsewhere", "/b.html"), "")


def test_url_for_and_has_prefix_helpers(tmp_path):
    engine = TemplateEngine(tmp_path)
    assert engine._url_for("styles.css") == "/styles.css"
    assert engine._url_for("/img/logo.png") == "/img/logo.png"
    assert engine._url_for("https://cdn.example.com/lib.js") == "https://cdn.example.com/lib.js"
    assert has_prefix("/blog/post.html", "/blog/")
    assert not has_prefix("/about.html", "/blog/")
