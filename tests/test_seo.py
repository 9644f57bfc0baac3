import json
import re
from datetime import date

from folio.config import load_config
from folio.content import Document
from folio.seo import hreflang_tags, json_ld, meta_tags, structured_data


def article(**changes):
    base = Document(
        title="Hello & Welcome",
        body="<p>First paragraph.</p>",
        date=date(2024, 3, 1),
        slug="hello",
        lang="en",
        tags=("python", "web"),
        categories=("dev",),
        meta={"image": "/img/cover.png", "updated": date(2024, 3, 5)},
        content_type="post",
        url="/posts/hello/",
    )
    return base.replace(**changes)


def test_meta_tags_for_articles(config):
    html = meta_tags(article(), config, "/posts/hello/")

    assert '<meta name="description" content="First paragraph.">' in html
    assert '<meta property="og:title" content="Hello &amp; Welcome">' in html
    assert '<meta property="og:type" content="article">' in html
    assert '<meta property="og:site_name" content="Test Site">' in html
    assert '<meta property="og:image" content="https://example.com/img/cover.png">' in html
    assert '<meta property="twitter:card" content="summary_large_image">' in html
    assert '<meta property="article:published_time" content="2024-03-01">' in html
    assert '<meta property="article:modified_time" content="2024-03-05">' in html
    assert '<meta property="article:section" content="dev">' in html
    assert html.count('property="article:tag"') == 2
    assert html.endswith('<link rel="canonical" href="https://example.com/posts/hello/">')


def test_meta_tags_for_pages_and_listings(config):
    page = article(content_type="page", meta={}, url="/about/")
    html = meta_tags(page, config, "/about/")
    assert '<meta property="twitter:card" content="summary">' in html
    assert "article:" not in html
    assert "og:image" not in html

    listing = meta_tags(None, config, "/posts/page/2/")
    assert '<meta property="og:type" content="website">' in listing
    assert '<meta property="og:title" content="Test Site">' in listing
    assert '<link rel="canonical" href="https://example.com/posts/page/2/">' in listing


def test_hreflang_tags_include_x_default(config):
    assert hreflang_tags({"en": "/posts/a/"}, config) == ""

    html = hreflang_tags({"en": "/posts/a/", "tr": "/tr/posts/a/"}, config)
    assert '<link rel="alternate" hreflang="tr" href="https://example.com/tr/posts/a/">' in html
    assert '<link rel="alternate" hreflang="x-default" href="https://example.com/posts/a/">' in html


def test_structured_data_types(tmp_path):
    config = load_config(tmp_path, title="Blog", author="Ada", base_url="https://example.com")

    posting = structured_data(article(), config, "/posts/hello/")
    assert posting["@type"] == "BlogPosting"
    assert posting["headline"] == "Hello & Welcome"
    assert posting["datePublished"] == "2024-03-01"
    assert posting["dateModified"] == "2024-03-05"
    assert posting["author"] == {"@type": "Person", "name": "Ada"}
    assert posting["keywords"] == "python, web"

    page = structured_data(article(content_type="page"), config, "/about/")
    assert page["@type"] == "WebPage"
    assert page["url"] == "https://example.com/about/"

    site = structured_data(None, config, "/")
    assert site == {
        "@context": "https://schema.org",
        "@type": "WebSite",
        "name": "Blog",
        "url": "https://example.com/",
    }


def test_json_ld_cannot_close_the_script_element(config):
    html = json_ld(article(title="Bad </script><b>"), config, "/posts/hello/")

    assert html.startswith('<script type="application/ld+json">')
    assert html.count("</script>") == 1
    payload = re.search(r">(.*)</script>$", html).group(1)
    assert json.loads(payload)["headline"] == "Bad </script><b>"
