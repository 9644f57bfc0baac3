from datetime import date
from pathlib import Path

import pytest

from folio.config import load_config
from folio.content import (
    ConvertedMarkdown,
    FileContentLoader,
    RawDocument,
    document_url,
    from_raw,
)
from folio.content_types import ContentTypeDescriptor, ContentTypeRegistry, default_content_types
from folio.errors import ConversionError, FileIOError, FrontMatterDecodeError, MissingRequiredField
from folio.frontmatter import YamlFrontMatterParser
from folio.renderers import MarkdownConverter


class EchoConverter:
    def convert(self, text):
        return ConvertedMarkdown(html=f"<p>{text.strip()}</p>")


class BrokenConverter:
    def convert(self, text):
        raise ConversionError("boom")


def make_raw(front_matter, filename="hello.md", body="Body", content_type="page", lang=None):
    return RawDocument(
        path=Path("content") / filename,
        front_matter=front_matter,
        body=body,
        filename=filename,
        content_type=content_type,
        lang=lang,
    )


@pytest.fixture
def types():
    return default_content_types()


def test_frontmatter_parser():
    parser = YamlFrontMatterParser()
    assert parser.parse("---\ntitle: Hi\ntags: [a]\n---\nBody") == (
        {"title": "Hi", "tags": ["a"]},
        "Body",
    )
    assert parser.parse("No front matter") == ({}, "No front matter")
    assert parser.parse("---\n---\nBody") == ({}, "Body")
    assert parser.parse("---\n1: one\n---\n")[0] == {"1": "one"}


@pytest.mark.parametrize("text", ["---\ntitle: [x\n---\nBody", "---\n- a\n- b\n---\nBody"])
def test_frontmatter_parser_rejects_bad_blocks(text):
    with pytest.raises(FrontMatterDecodeError):
        YamlFrontMatterParser().parse(text)


def test_from_raw_maps_known_and_unknown_keys(config, types):
    raw = make_raw(
        {
            "title": "Hello",
            "date": "2024-03-01",
            "tags": ["a", "b", "a"],
            "categories": "news",
            "draft": True,
            "layout": "wide",
            "author": "Ada",
        },
        filename="2024-01-01-hello.md",
        content_type="post",
    )
    doc = from_raw(raw, EchoConverter(), types.describe("post"), config)

    assert doc.title == "Hello"
    assert doc.date == date(2024, 3, 1)
    assert doc.slug == "hello"
    assert doc.lang == "en"
    assert doc.tags == ("a", "b")
    assert doc.categories == ("news",)
    assert doc.draft is True
    assert doc.meta == {"layout": "wide", "author": "Ada"}
    assert doc.layout == "wide"
    assert doc.url == "/posts/hello/"
    assert doc.content_type == "post"
    assert doc.body == "<p>Body</p>"


def test_from_raw_date_from_filename_and_explicit_slug(config, types):
    raw = make_raw(
        {"title": "Hi", "slug": "Custom Slug!"},
        filename="2024-01-15-hi.md",
        content_type="post",
    )
    doc = from_raw(raw, EchoConverter(), types.describe("post"), config)
    assert doc.date == date(2024, 1, 15)
    assert doc.slug == "custom-slug"
    assert doc.url == "/posts/custom-slug/"


@pytest.mark.parametrize("title", [None, "", "   ", ["x"]])
def test_from_raw_requires_title(config, types, title):
    raw = make_raw({} if title is None else {"title": title})
    with pytest.raises(MissingRequiredField) as excinfo:
        from_raw(raw, EchoConverter(), types.pages, config)
    assert excinfo.value.field == "title"
    assert excinfo.value.source_path == raw.path


def test_from_raw_enforces_type_required_fields(config, types):
    raw = make_raw({"title": "Undated"}, filename="undated.md", content_type="post")
    with pytest.raises(MissingRequiredField) as excinfo:
        from_raw(raw, EchoConverter(), types.describe("post"), config)
    assert excinfo.value.field == "date"

    custom = ContentTypeDescriptor("recipe", "recipes", "recipes", required_fields=("title", "serves"))
    with pytest.raises(MissingRequiredField):
        from_raw(make_raw({"title": "Soup"}), EchoConverter(), custom, config)
    doc = from_raw(make_raw({"title": "Soup", "serves": 4}), EchoConverter(), custom, config)
    assert doc.meta == {"serves": 4}


def test_from_raw_attaches_path_to_converter_errors(config, types):
    raw = make_raw({"title": "Hi"})
    with pytest.raises(ConversionError) as excinfo:
        from_raw(raw, BrokenConverter(), types.pages, config)
    assert excinfo.value.source_path == raw.path


def test_document_url(tmp_path, types):
    config = load_config(tmp_path, languages={"en": {}, "tr": {}})
    assert document_url("about", "en", types.pages, config) == "/about/"
    assert document_url("index", "en", types.pages, config) == "/"
    assert document_url("index", "tr", types.pages, config) == "/tr/"
    assert document_url("hello", "tr", types.describe("post"), config) == "/tr/posts/hello/"


def test_content_type_registry_validation():
    registry = ContentTypeRegistry()
    registry.register(ContentTypeDescriptor("post", "posts", "posts"))
    with pytest.raises(ValueError):
        registry.register(ContentTypeDescriptor("post", "articles", "articles"))
    with pytest.raises(ValueError):
        registry.register(ContentTypeDescriptor("article", "posts", "posts"))
    with pytest.raises(ValueError):
        registry.register(ContentTypeDescriptor("Bad Name", "bad", "bad"))
    assert "post" in registry
    assert len(registry) == 1
    ad_hoc = registry.for_directory("recipes")
    assert ad_hoc.url_prefix == "recipes"
    assert ad_hoc.default_layout == "page"


def test_loader_discovers_and_locates(make_site, types):
    root = make_site(
        {
            "content/index.md": "---\ntitle: Home\n---\n",
            "content/posts/2024-01-01-a.md": "---\ntitle: A\n---\n",
            "content/posts/tr/2024-01-01-a.md": "---\ntitle: A tr\n---\n",
            "content/_drafts/x.md": "---\ntitle: X\n---\n",
            "content/.hidden/y.md": "---\ntitle: Y\n---\n",
            "content/notes.txt": "ignored",
        },
        config="languages:\n  en: English\n  tr: Türkçe\n",
    )
    config = load_config(root)
    loader = FileContentLoader(config, types, YamlFrontMatterParser())

    found = [p.relative_to(config.content_path).as_posix() for p in loader.discover()]
    assert found == ["index.md", "posts/2024-01-01-a.md", "posts/tr/2024-01-01-a.md"]

    raw = loader.load(config.content_path / "posts" / "tr" / "2024-01-01-a.md")
    assert raw.content_type == "post"
    assert raw.lang == "tr"
    assert raw.front_matter == {"title": "A tr"}

    home = loader.load(config.content_path / "index.md")
    assert home.content_type == "page"
    assert home.lang is None


def test_loader_errors_carry_source_path(make_site, types):
    root = make_site({"content/bad.md": "---\ntitle: [x\n---\n"})
    config = load_config(root)
    loader = FileContentLoader(config, types, YamlFrontMatterParser())
    bad = config.content_path / "bad.md"
    with pytest.raises(FrontMatterDecodeError) as excinfo:
        loader.load(bad)
    assert excinfo.value.source_path == bad

    binary = config.content_path / "binary.md"
    binary.write_bytes(b"\xff\xfe\x00")
    with pytest.raises(FileIOError):
        loader.load(binary)
    with pytest.raises(FileIOError):
        loader.read(config.content_path / "missing.md")


def test_markdown_converter_headings_and_code():
    converted = MarkdownConverter().convert(
        "# Intro\n\n## Intro\n\n### Details *here*\n\n```python\nprint('hi')\n```\n\n"
        "```nosuchlang\n<x>\n```\n"
    )
    assert '<h1 id="intro">Intro</h1>' in converted.html
    assert '<h2 id="intro-1">Intro</h2>' in converted.html
    assert [(h.id, h.level) for h in converted.toc] == [
        ("intro", 1),
        ("intro-1", 2),
        ("details-here", 3),
    ]
    assert converted.toc[2].text == "Details here"
    assert 'class="highlight"' in converted.html
    assert '<code class="language-nosuchlang">&lt;x&gt;' in converted.html


def test_markdown_converter_plugins():
    html = MarkdownConverter().convert("~~gone~~\n\n| a | b |\n|---|---|\n| 1 | 2 |\n").html
    assert "<del>gone</del>" in html
    assert "<table>" in html
