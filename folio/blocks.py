"""Reusable template components for Folio.

A block is a named render function ``(context, options) -> html``. Templates
invoke blocks through the ``block`` helper::

    {{ block("recent_posts", limit=3) }}
    {{ block("toc") }}
    {{ block("related_posts", limit=5) }}

Blocks are registered explicitly before the first build. Invoking a name
that is not registered renders nothing and records a Diagnostic; it never
aborts rendering.

Text produced by the built-in blocks ("Recent Posts", "5 min read"...) comes
from the translation catalogs of the active language.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from markupsafe import Markup

from .collections import group_by_category, group_by_tag, merge_by_slug, sort_by_date
from .html_utils import escape_html, join_root_url
from .i18n import prefixed_path, translate, translator
from .utils import reading_time, titleize

if TYPE_CHECKING:
    from .config import SiteConfig
    from .content import Document, Heading
    from .protocols import Block

logger = logging.getLogger(__name__)

BLOCK_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")

BlockFn = Callable[["BlockContext", Mapping[str, Any]], str]


@dataclass(frozen=True)
class BlockContext:
    """Everything a block may look at.

    Attributes:
        config: Site configuration.
        documents: Every published document of the build, newest first.
        document: Document being rendered, None on listing pages.
        lang: Active language code.
        alternates: Language code to URL of this page's translations.
        url: URL of the page being rendered.
    """

    config: SiteConfig
    documents: Sequence[Document] = ()
    document: Document | None = None
    lang: str = "en"
    alternates: Mapping[str, str] = field(default_factory=dict)
    url: str = "/"


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem found while rendering.

    Attributes:
        source: Source file or URL of the page being rendered.
        message: What went wrong.
    """

    source: str
    message: str


class BlockRegistry:
    """Validated mapping of block names to render functions.

    Example:
        >>> registry = BlockRegistry()
        >>> registry.register("hello", lambda context, options: "<b>hi</b>")
        >>> "hello" in registry
        True
    """

    def __init__(self):
        self._blocks: dict[str, BlockFn] = {}

    def register(self, name: str, fn: BlockFn) -> None:
        """Register a block.

        Raises:
            ValueError: If the name is not a lowercase identifier or is taken.
            TypeError: If fn is not callable.
        """
        if not isinstance(name, str) or not BLOCK_NAME_RE.match(name):
            raise ValueError(f"Invalid block name: {name!r}")
        if not callable(fn):
            raise TypeError(f"Block '{name}' must be callable, got {fn!r}")
        if name in self._blocks:
            raise ValueError(f"Block '{name}' is already registered")
        self._blocks[name] = fn

    def register_block(self, block: Block) -> None:
        """Register an object exposing ``name`` and ``render``."""
        self.register(block.name, block.render)

    def names(self) -> list[str]:
        return list(self._blocks)

    def __contains__(self, name: object) -> bool:
        return name in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    def render(
        self,
        name: str,
        context: BlockContext,
        options: Mapping[str, Any] | None = None,
        diagnostics: list[Diagnostic] | None = None,
    ) -> Markup:
        """Render a block by name.

        Args:
            name: Registered block name.
            context: Rendering context.
            options: Options passed by the template.
            diagnostics: List receiving a Diagnostic for unknown names.

        Returns:
            The block's HTML, or empty Markup for an unknown name.
        """
        fn = self._blocks.get(name)
        if fn is None:
            source = (
                str(context.document.source_path)
                if context.document is not None and context.document.source_path
                else context.url
            )
            message = f"unknown block '{name}'"
            logger.warning("%s: %s", source, message)
            if diagnostics is not None:
                diagnostics.append(Diagnostic(source, message))
            return Markup("")
        return Markup(fn(context, dict(options or {})))

    def build_helper(
        self, context: BlockContext, diagnostics: list[Diagnostic] | None = None
    ) -> Callable[..., Markup]:
        """Return the ``block(name, **options)`` function exposed to templates."""

        def block(name: str, **options: Any) -> Markup:
            return self.render(name, context, options, diagnostics)

        return block


def _in_language(documents: Sequence[Document], lang: str) -> list[Document]:
    return [doc for doc in documents if doc.lang == lang]


def recent_posts(context: BlockContext, options: Mapping[str, Any]) -> str:
    """List the latest posts of the active language."""
    limit = int(options.get("limit", 5))
    content_type = str(options.get("type", "post"))
    heading = options.get("title") or translate("recent_posts", context.lang, context.config)
    posts = [
        doc
        for doc in _in_language(context.documents, context.lang)
        if doc.content_type == content_type
    ]
    posts = sort_by_date(posts)[:limit]
    if not posts:
        return ""
    items = []
    for post in posts:
        date_html = (
            f' <time datetime="{post.date.isoformat()}">{post.date.isoformat()}</time>'
            if post.date
            else ""
        )
        items.append(
            f'<li><a href="{escape_html(post.url)}">{escape_html(post.title)}</a>{date_html}</li>'
        )
    joined = "\n  ".join(items)
    return (
        f'<section class="recent-posts">\n  <h2>{escape_html(heading)}</h2>\n'
        f"  <ul>\n  {joined}\n  </ul>\n</section>"
    )


def _term_cloud(
    context: BlockContext,
    groups: Mapping[str, Sequence[Document]],
    kind: str,
    item_class: str,
) -> str:
    if not groups:
        return ""
    archives = merge_by_slug(groups)
    max_count = max(len(docs) for _, docs in archives.values())
    items = []
    for slug, (term, docs) in sorted(archives.items(), key=lambda item: item[1][0]):
        count = len(docs)
        size = "large" if count / max_count > 0.6 else "small"
        url = prefixed_path(context.lang, f"/{kind}/{slug}/", context.config)
        items.append(
            f'<a href="{escape_html(url)}" class="{item_class} {size}">'
            f'{escape_html(term)} <span class="count">{count}</span></a>'
        )
    joined = "\n  ".join(items)
    return f'<section class="{kind}-cloud">\n  {joined}\n</section>'


def tag_cloud(context: BlockContext, options: Mapping[str, Any]) -> str:
    """Link every tag of the active language, sized by usage."""
    groups = group_by_tag(_in_language(context.documents, context.lang))
    return _term_cloud(context, groups, "tags", "tag")


def category_cloud(context: BlockContext, options: Mapping[str, Any]) -> str:
    """Link every category of the active language, sized by usage."""
    groups = group_by_category(_in_language(context.documents, context.lang))
    return _term_cloud(context, groups, "categories", "category")


def reading_time_block(context: BlockContext, options: Mapping[str, Any]) -> str:
    if context.document is None:
        return ""
    wpm = int(options.get("words_per_minute", 200))
    minutes = reading_time(context.document.body, wpm)
    text = translate("min_read", context.lang, context.config, count=minutes)
    return f'<span class="reading-time">{escape_html(text)}</span>'


def language_switcher(context: BlockContext, options: Mapping[str, Any]) -> str:
    """Link the translations of the current page; hidden without any."""
    if len(context.alternates) < 2:
        return ""
    codes = [c for c in context.config.language_codes if c in context.alternates]
    codes += [c for c in context.alternates if c not in codes]
    items = []
    for code in codes:
        name = escape_html(context.config.language_name(code))
        url = escape_html(context.alternates[code])
        if code == context.lang:
            items.append(f'<li><span class="active" lang="{code}">{name}</span></li>')
        else:
            items.append(
                f'<li><a href="{url}" hreflang="{code}" lang="{code}">{name}</a></li>'
            )
    joined = "\n    ".join(items)
    return f'<nav class="language-switcher">\n  <ul>\n    {joined}\n  </ul>\n</nav>'


def _overlap(document: Document, other: Document) -> int:
    tags = len(set(document.tags) & set(other.tags))
    categories = len(set(document.categories) & set(other.categories))
    return tags + categories


def _related_list(
    context: BlockContext, options: Mapping[str, Any], content_type: str
) -> str:
    document = context.document
    if document is None:
        return ""
    limit = int(options.get("limit", 3))
    scored = []
    for other in _in_language(context.documents, context.lang):
        if other.content_type != content_type or other.url == document.url:
            continue
        score = _overlap(document, other)
        if score > 0:
            scored.append((score, other))
    if not scored:
        return ""
    # Stable sort keeps newest-first order among equal scores.
    scored.sort(key=lambda pair: pair[0], reverse=True)
    heading = options.get("title") or translate("related_posts", context.lang, context.config)
    items = []
    for _, other in scored[:limit]:
        date_html = (
            f' <time datetime="{other.date.isoformat()}">{other.date.isoformat()}</time>'
            if other.date
            else ""
        )
        items.append(
            f'<li><a href="{escape_html(other.url)}">{escape_html(other.title)}</a>{date_html}</li>'
        )
    joined = "\n  ".join(items)
    return (
        f'<section class="related-posts">\n  <h2>{escape_html(heading)}</h2>\n'
        f"  <ul>\n  {joined}\n  </ul>\n</section>"
    )


def related_posts(context: BlockContext, options: Mapping[str, Any]) -> str:
    """List posts sharing tags or categories with the current document.

    Candidates score one point per shared tag and per shared category; those
    scoring zero are left out. Options: ``limit`` (3), ``type`` ("post"),
    ``title``.
    """
    return _related_list(context, options, str(options.get("type", "post")))


def related_content(context: BlockContext, options: Mapping[str, Any]) -> str:
    """Like related_posts, but defaults to the current document's type."""
    if context.document is None:
        return ""
    content_type = str(options.get("type", context.document.content_type))
    return _related_list(context, options, content_type)


def breadcrumb(context: BlockContext, options: Mapping[str, Any]) -> str:
    """Render Home > Section > Title with BreadcrumbList structured data.

    Listing pages and the home page get no breadcrumb.
    """
    document = context.document
    home = prefixed_path(context.lang, "/", context.config)
    if document is None or document.url in (home, "/"):
        return ""
    t = translator(context.lang, context.config)
    crumbs: list[tuple[str, str | None]] = [(t("home"), home)]
    segments = [part for part in document.url[len(home):].split("/") if part]
    if document.content_type != "page" and len(segments) > 1:
        section = segments[0]
        crumbs.append((t(section, default=titleize(section)), f"{home}{section}/"))
    crumbs.append((document.title, None))

    items = []
    elements = []
    for position, (label, url) in enumerate(crumbs, start=1):
        if url is None:
            items.append(f'<li aria-current="page">{escape_html(label)}</li>')
            target = document.url
        else:
            items.append(f'<li><a href="{escape_html(url)}">{escape_html(label)}</a></li>')
            target = url
        elements.append(
            {
                "@type": "ListItem",
                "position": position,
                "name": label,
                "item": join_root_url(context.config.base_url, target),
            }
        )
    data = {"@context": "https://schema.org", "@type": "BreadcrumbList", "itemListElement": elements}
    payload = json.dumps(data, ensure_ascii=False).replace("</", "<\\/")
    joined = "\n    ".join(items)
    return (
        f'<nav class="breadcrumb" aria-label="Breadcrumb">\n  <ol>\n    {joined}\n  </ol>\n</nav>\n'
        f'<script type="application/ld+json">{payload}</script>'
    )


def render_toc(headings: Sequence[Heading]) -> str:
    """Render headings as nested ``<ul>`` lists.

    Args:
        headings: Headings in document order.

    Returns:
        HTML string of the nested TOC, or "" if there are no headings.
    """
    if not headings:
        return ""

    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists if going to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        else:
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(
            f'<li><a href="#{escape_html(heading.id)}">{escape_html(heading.text)}</a>'
        )

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return "".join(html_parts)


def toc(context: BlockContext, options: Mapping[str, Any]) -> str:
    if context.document is None or not context.document.toc:
        return ""
    max_level = int(options.get("max_level", 6))
    headings = [h for h in context.document.toc if h.level <= max_level]
    if not headings:
        return ""
    return f'<nav class="toc">{render_toc(headings)}</nav>'


def default_blocks() -> BlockRegistry:
    """Build a registry holding the built-in blocks."""
    registry = BlockRegistry()
    registry.register("recent_posts", recent_posts)
    registry.register("tag_cloud", tag_cloud)
    registry.register("category_cloud", category_cloud)
    registry.register("reading_time", reading_time_block)
    registry.register("language_switcher", language_switcher)
    registry.register("toc", toc)
    registry.register("related_posts", related_posts)
    registry.register("related_content", related_content)
    registry.register("breadcrumb", breadcrumb)
    return registry
