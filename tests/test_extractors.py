import logging
from datetime import datetime

import pytest
import yaml

from spot.extractors import (
    FrontMatterReader,
    HeadingTitleExtractor,
    extract_frontmatter,
)


def test_extract_frontmatter_splits_block_and_body():
    data, body = extract_frontmatter("---\ntitle: Hello\ntags: [a]\n---\n# Body\n")
    assert data == {"title": "Hello", "tags": ["a"]}
    assert body == "# Body\n"

    data, body = extract_frontmatter("no front matter")
    assert data == {}
    assert body == "no front matter"


def test_extract_frontmatter_rejects_non_mapping():
    with pytest.raises(yaml.YAMLError):
        extract_frontmatter("---\n- a\n- b\n---\nbody")


def test_reader_returns_present_fields_only(tmp_path):
    path = tmp_path / "post.md"
    path.write_text(
        "---\ntitle: Hello\ncreated_at: 2024-03-01\nmetadata: {n: 1}\nauthor: ignored\n---\nbody",
        encoding="utf-8",
    )
    fields = FrontMatterReader().read(path)
    assert fields == {
        "title": "Hello",
        "created_at": datetime(2024, 3, 1),
        "metadata": {"n": "1"},
    }


def test_reader_handles_missing_and_binary_files(tmp_path, caplog):
    reader = FrontMatterReader()
    plain = tmp_path / "plain.md"
    plain.write_text("# Just a heading", encoding="utf-8")
    binary = tmp_path / "doc.docx"
    binary.write_bytes(b"---\xff\xfe\x00binary")

    assert reader.read(plain) is None
    assert reader.read(binary) is None
    with caplog.at_level(logging.WARNING, logger="spot"):
        assert reader.read(tmp_path / "missing.md") is None
    assert "Failed to read" in caplog.text


def test_reader_warns_on_invalid_front_matter(tmp_path, caplog):
    broken = tmp_path / "broken.md"
    broken.write_text("---\ntitle: [unclosed\n---\nbody", encoding="utf-8")
    bad_date = tmp_path / "bad_date.md"
    bad_date.write_text("---\ncreated_at: someday\n---\nbody", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="spot"):
        assert FrontMatterReader().read(broken) is None
        assert FrontMatterReader().read(bad_date) is None
    assert "Failed to parse front matter" in caplog.text
    assert "Ignoring invalid front matter" in caplog.text


def test_heading_title_uses_first_heading_in_document_order():
    extractor = HeadingTitleExtractor()
    html = (
        "<div><section><h1>  Nested   <em>first</em> </h1></section></div>"
        "<h1>Second</h1>"
    )
    assert extractor.extract(html) == "Nested first"
    assert extractor.extract("<h2>Only h2</h2>") is None
    assert extractor.extract("<h1>   </h1>") is None
    assert HeadingTitleExtractor("h2").extract("<h2>Only h2</h2>") == "Only h2"
