"""Search-engine and social metadata for Folio pages.

The base template renders three snippets in ``<head>``:

- meta_tags: description, canonical URL, OpenGraph and Twitter Card tags,
  plus ``article:*`` tags for dated content types.
- hreflang_tags: alternate links to every translation, with ``x-default``
  pointing at the default-language page.
- json_ld: schema.org structured data (BlogPosting, WebPage or WebSite).

Listing pages pass ``document=None`` and get site-level values.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from markupsafe import Markup

from .html_utils import escape_html, join_root_url

if TYPE_CHECKING:
    from .config import SiteConfig
    from .content import Document

ARTICLE_TYPES = frozenset({"post", "note"})
PROPERTY_PREFIXES = ("og:", "twitter:", "article:")


def _meta(name: str, content: object) -> str:
    attr = "property" if name.startswith(PROPERTY_PREFIXES) else "name"
    return f'<meta {attr}="{name}" content="{escape_html(content)}">'


def _iso(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def _image_url(document: Document, site: SiteConfig) -> str | None:
    image = document.meta.get("image")
    return join_root_url(site.base_url, str(image)) if image else None


def meta_tags(document: Document | None, site: SiteConfig, url: str) -> Markup:
    """Render description, canonical, OpenGraph and Twitter tags.

    Args:
        document: Page being rendered, None for listing pages.
        site: Site configuration, already localized for the page language.
        url: Site URL of the page.
    """
    absolute = join_root_url(site.base_url, url)
    if document is None:
        description = site.description
        tags = [
            _meta("description", description),
            _meta("og:title", site.title),
            _meta("og:description", description),
            _meta("og:url", absolute),
            _meta("og:type", "website"),
            _meta("og:site_name", site.title),
            _meta("twitter:card", "summary"),
            _meta("twitter:title", site.title),
            _meta("twitter:description", description),
        ]
    else:
        description = document.description
        image = _image_url(document, site)
        tags = [
            _meta("description", description),
            _meta("og:title", document.title),
            _meta("og:description", description),
            _meta("og:url", absolute),
            _meta("og:type", "article"),
            _meta("og:site_name", site.title),
            _meta("twitter:card", "summary_large_image" if image else "summary"),
            _meta("twitter:title", document.title),
            _meta("twitter:description", description),
        ]
        if image:
            tags += [_meta("og:image", image), _meta("twitter:image", image)]
        if document.content_type in ARTICLE_TYPES:
            for name, value in (
                ("article:published_time", _iso(document.date)),
                ("article:modified_time", _iso(document.meta.get("updated"))),
                ("article:author", document.meta.get("author") or site.author),
            ):
                if value:
                    tags.append(_meta(name, value))
            tags += [_meta("article:section", category) for category in document.categories]
            tags += [_meta("article:tag", tag) for tag in document.tags]
    tags.append(f'<link rel="canonical" href="{escape_html(absolute)}">')
    return Markup("\n".join(tags))


def hreflang_tags(alternates: Mapping[str, str], site: SiteConfig) -> Markup:
    """Render ``<link rel="alternate" hreflang>`` for every translation.

    Nothing is rendered for a page without translations.
    """
    if len(alternates) < 2:
        return Markup("")
    links = [
        f'<link rel="alternate" hreflang="{escape_html(code)}" '
        f'href="{escape_html(join_root_url(site.base_url, url))}">'
        for code, url in alternates.items()
    ]
    default_url = alternates.get(site.default_lang)
    if default_url is not None:
        links.append(
            '<link rel="alternate" hreflang="x-default" '
            f'href="{escape_html(join_root_url(site.base_url, default_url))}">'
        )
    return Markup("\n".join(links))


def structured_data(document: Document | None, site: SiteConfig, url: str) -> dict[str, Any]:
    """Build the schema.org object describing a page."""
    absolute = join_root_url(site.base_url, url)
    if document is None:
        data: dict[str, Any] = {
            "@context": "https://schema.org",
            "@type": "WebSite",
            "name": site.title,
            "url": absolute,
        }
        if site.description:
            data["description"] = site.description
        return data

    if document.content_type not in ARTICLE_TYPES:
        data = {
            "@context": "https://schema.org",
            "@type": "WebPage",
            "name": document.title,
            "url": absolute,
        }
        if document.description:
            data["description"] = document.description
        return data

    data = {
        "@context": "https://schema.org",
        "@type": "BlogPosting",
        "headline": document.title,
        "url": absolute,
    }
    optional = {
        "description": document.description,
        "datePublished": _iso(document.date),
        "dateModified": _iso(document.meta.get("updated")),
        "image": _image_url(document, site),
    }
    data.update({key: value for key, value in optional.items() if value})
    author = document.meta.get("author") or site.author
    if author:
        data["author"] = {"@type": "Person", "name": str(author)}
    if document.tags:
        data["keywords"] = ", ".join(document.tags)
    return data


def json_ld(document: Document | None, site: SiteConfig, url: str) -> Markup:
    """Render structured data as a ``<script type="application/ld+json">`` tag."""
    payload = json.dumps(structured_data(document, site, url), ensure_ascii=False)
    # "</" would close the script element early.
    payload = payload.replace("</", "<\\/")
    return Markup(f'<script type="application/ld+json">{payload}</script>')
