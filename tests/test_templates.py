from datetime import date
from pathlib import Path

import pytest
from markupsafe import Markup

from folio.blocks import default_blocks
from folio.collections import CollectionBuilder, paginate
from folio.config import load_config
from folio.content import Document, Heading
from folio.content_types import default_content_types
from folio.errors import TemplateRenderError, ThemeResolutionError
from folio.templates import JinjaTemplateRenderer, Renderer, pygments_css
from folio.themes import ThemeResolver, resolve_theme_chain


def make_renderer(config, documents, themes_dir: Path, theme="default"):
    chain = resolve_theme_chain(themes_dir, theme)
    collections = CollectionBuilder(default_content_types()).build(documents, config)
    diagnostics = []
    renderer = Renderer(
        config,
        ThemeResolver(chain),
        JinjaTemplateRenderer(chain),
        default_blocks(),
        collections,
        diagnostics,
    )
    return renderer, diagnostics


@pytest.fixture
def post():
    return Document(
        title="Hello <World>",
        body='<h2 id="intro">Intro</h2><p>Hi there.</p>',
        date=date(2024, 1, 15),
        slug="hello",
        lang="en",
        tags=("python",),
        content_type="post",
        url="/posts/hello/",
        source_path=Path("content/posts/2024-01-15-hello.md"),
        toc=(Heading("intro", "Intro", 2),),
    )


def test_render_document_with_default_theme(config, post, tmp_path):
    renderer, diagnostics = make_renderer(config, [post], tmp_path / "themes")
    html = renderer.render_document(post, default_content_types().describe("post"))

    assert html.startswith("<!DOCTYPE html>")
    assert "<h1>Hello &lt;World&gt;</h1>" in html
    assert '<h2 id="intro">Intro</h2><p>Hi there.</p>' in html
    assert '<time datetime="2024-01-15">' in html
    assert '<nav class="toc">' in html
    assert 'href="/tags/python/"' in html
    assert '<link rel="stylesheet" href="/assets/css/main.css">' in html
    assert '<link rel="canonical" href="https://example.com/posts/hello/">' in html
    assert diagnostics == []


def test_render_list_with_pagination(config, post, tmp_path):
    renderer, _ = make_renderer(config, [post], tmp_path / "themes")
    items = [post.replace(slug=f"p{i}", url=f"/posts/p{i}/") for i in range(3)]
    page = paginate(items, 2, "/posts/")[0]
    html = renderer.render_list("Posts", list(page.items), page.url, "en", pagination=page)

    assert "<h1>Posts</h1>" in html
    assert 'href="/posts/p0/"' in html
    assert 'href="/posts/p2/"' not in html
    assert 'rel="next" href="/posts/page/2/"' in html
    assert "Page 1 of 2" in html


def test_custom_layout_and_unknown_block(config, post, tmp_path):
    themes = tmp_path / "themes"
    layouts = themes / "mine" / "layouts"
    layouts.mkdir(parents=True)
    (layouts / "post.html.jinja").write_text(
        "<div class='mine'>{{ inner_content }}{{ block('does_not_exist') }}</div>",
        encoding="utf-8",
    )
    renderer, diagnostics = make_renderer(config, [post], themes, theme="mine")
    html = renderer.render_document(post, default_content_types().describe("post"))

    assert "<div class='mine'>" in html
    assert "<!DOCTYPE html>" in html
    assert len(diagnostics) == 1
    assert diagnostics[0].source == str(post.source_path)
    assert "does_not_exist" in diagnostics[0].message


def test_missing_layout_raises_with_source_path(config, post, tmp_path):
    renderer, _ = make_renderer(config, [post], tmp_path / "themes")
    broken = post.replace(meta={"layout": "missing_layout"})
    with pytest.raises(ThemeResolutionError) as excinfo:
        renderer.render_document(broken)
    assert excinfo.value.source_path == post.source_path
    assert excinfo.value.chain == ("default",)


def test_template_errors_are_wrapped(config, post, tmp_path):
    themes = tmp_path / "themes"
    layouts = themes / "broken" / "layouts"
    layouts.mkdir(parents=True)
    (layouts / "post.html.jinja").write_text("{% if %}", encoding="utf-8")
    (layouts / "page.html.jinja").write_text("{{ content.nope.deeper }}", encoding="utf-8")
    renderer, _ = make_renderer(config, [post], themes, theme="broken")

    with pytest.raises(TemplateRenderError) as excinfo:
        renderer.render_document(post, default_content_types().describe("post"))
    assert excinfo.value.template == "post.html.jinja"
    assert "syntax error" in excinfo.value.reason
    assert excinfo.value.source_path == post.source_path

    with pytest.raises(TemplateRenderError):
        renderer.render_document(post.replace(content_type="page"), default_content_types().pages)


def test_url_helpers(config, post, tmp_path):
    renderer, _ = make_renderer(config, [post], tmp_path / "themes")
    assert renderer.url_for("about/") == "/about/"
    assert renderer.url_for("https://x.org") == "https://x.org"
    assert renderer.absolute_url("/feed.xml") == "https://example.com/feed.xml"
    assert renderer.asset_url("/css/main.css") == "/assets/css/main.css"
    assert renderer.term_url("categories", "Big News", "en") == "/categories/big-news/"


def test_pygments_css_is_markup():
    css = pygments_css()
    assert isinstance(css, Markup)
    assert ".highlight" in css


def test_default_theme_renders_seo_and_breadcrumb(config, post, tmp_path):
    renderer, diagnostics = make_renderer(config, [post], tmp_path / "themes")
    html = renderer.render_document(post, default_content_types().describe("post"))

    assert '<meta property="og:type" content="article">' in html
    assert '<meta property="article:tag" content="python">' in html
    assert '"@type": "BlogPosting"' in html
    assert '<nav class="breadcrumb" aria-label="Breadcrumb">' in html
    assert '<li><a href="/posts/">Posts</a></li>' in html
    assert diagnostics == []


def test_language_overrides_apply_to_localized_pages(make_site, post, tmp_path):
    project = make_site(
        config=(
            "title: My Blog\nbase_url: https://example.com\n"
            "languages:\n  en: {name: English}\n"
            "  tr: {name: Türkçe, title: Blogum, translations: {older: Önceki}}\n"
        )
    )
    config = load_config(project)
    turkish = post.replace(lang="tr", url="/tr/posts/hello/", slug="hello")
    renderer, _ = make_renderer(config, [post, turkish], tmp_path / "themes")

    items = [turkish.replace(slug=f"p{i}", url=f"/tr/posts/p{i}/") for i in range(3)]
    page = paginate(items, 2, "/tr/posts/")[0]
    html = renderer.render_list("Yazılar", list(page.items), page.url, "tr", pagination=page)
    assert '<a class="site-title" href="/tr/">Blogum</a>' in html
    assert "Sayfa 1 / 2" in html
    assert "Önceki" in html

    english = renderer.render_document(post, default_content_types().describe("post"))
    assert '<a class="site-title" href="/">My Blog</a>' in english
    assert "Blogum" not in english
