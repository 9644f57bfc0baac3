from datetime import date

import pytest

from folio.html_utils import escape_html, inject_before_body_close, join_root_url
from folio.utils import (
    atomic_copy,
    atomic_write,
    extract_date_from_name,
    fingerprint,
    first_paragraph,
    is_internal_path,
    is_markdown,
    prune_stale_files,
    reading_time,
    slug_from_filename,
    slugify,
    strip_date_prefix,
    strip_tags,
    titleize,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Hello, World!", "hello-world"),
        ("  spaced   out  ", "spaced-out"),
        ("Türkçe Yazı", "turkce-yazi"),
        ("already-a-slug", "already-a-slug"),
        ("!!!", "index"),
    ],
)
def test_slugify(text, expected):
    assert slugify(text) == expected


@pytest.mark.parametrize("text", ["Hello World", "a--b__c", "Ünïcödé!", "", "x" * 3, "--"])
def test_slugify_is_idempotent(text):
    assert slugify(slugify(text)) == slugify(text)


def test_slug_and_date_from_filename():
    assert slug_from_filename("2024-01-15-Hello-World.md") == "hello-world"
    assert slug_from_filename("about.md") == "about"
    assert strip_date_prefix("2024-01-15-hello") == "hello"
    assert extract_date_from_name("2024-01-15-hello") == date(2024, 1, 15)
    assert extract_date_from_name("2024-13-45-bad") is None
    assert extract_date_from_name("hello") is None


def test_titleize():
    assert titleize("2024-01-15-hello-world.md") == "Hello World"
    assert titleize("posts") == "Posts"
    assert titleize("___") == "Untitled"


def test_text_helpers():
    html = "<h1>Title</h1><p>First <em>para</em>.</p><p>Second</p>"
    assert strip_tags("<p>a <b>b</b></p>") == "a b"
    assert first_paragraph(html) == "First para ."
    assert first_paragraph("<p>" + "word " * 100 + "</p>", limit=20).endswith("...")
    assert reading_time("<p>short</p>") == 1
    assert reading_time("<p>" + "word " * 600 + "</p>") == 3


def test_path_helpers(tmp_path):
    assert is_internal_path(tmp_path.relative_to(tmp_path) / "_drafts" / "x.md")
    assert is_internal_path((tmp_path / ".git" / "x").relative_to(tmp_path))
    assert not is_internal_path((tmp_path / "posts" / "x.md").relative_to(tmp_path))
    assert is_markdown(tmp_path / "A.MD")
    assert not is_markdown(tmp_path / "a.txt")


def test_fingerprint_is_sha256():
    assert fingerprint(b"abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_atomic_write_leaves_no_temp_files(tmp_path):
    target = tmp_path / "deep" / "dir" / "index.html"
    atomic_write(target, "first")
    atomic_write(target, "second")
    assert target.read_text(encoding="utf-8") == "second"
    assert [p.name for p in target.parent.iterdir()] == ["index.html"]

    copy = tmp_path / "copy" / "index.html"
    atomic_copy(target, copy)
    assert copy.read_text(encoding="utf-8") == "second"


def test_prune_stale_files(tmp_path):
    keep = tmp_path / "keep" / "index.html"
    stale = tmp_path / "stale" / "index.html"
    atomic_write(keep, "k")
    atomic_write(stale, "s")

    removed = prune_stale_files(tmp_path, {keep.resolve()})

    assert removed == [stale]
    assert keep.exists()
    assert not (tmp_path / "stale").exists()


def test_html_helpers():
    assert escape_html('<a href="x">') == "&lt;a href=&quot;x&quot;&gt;"
    assert escape_html(None) == ""
    assert join_root_url("https://example.com/", "/posts/") == "https://example.com/posts/"
    assert join_root_url("https://example.com", "https://other.org/x") == "https://other.org/x"
    assert inject_before_body_close("<body>x</body>", "<s/>") == "<body>x<s/></body>"
    assert inject_before_body_close("x", "<s/>") == "x<s/>"
