"""Template rendering for Folio.

This module uses Jinja2 to render documents and listing pages through the
theme chain.

Key classes:
- JinjaTemplateRenderer: Renders a template identifier with assigns.
- Renderer: Composes body -> layout -> base for documents and listings.

Every page is rendered in three layers. The document body (already HTML)
is passed to the resolved layout template as ``inner_content``; the
layout's output is passed to the ``base`` template as ``inner_content``.
Both layers see the same assigns, including ``t`` for UI strings and the
SEO snippets ``seo_meta``, ``hreflang_tags`` and ``json_ld``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    TemplateNotFound,
    TemplateSyntaxError,
    select_autoescape,
)
from markupsafe import Markup
from pygments.formatters import HtmlFormatter

from . import seo
from .blocks import BlockContext
from .errors import DocumentError, TemplateRenderError
from .html_utils import join_root_url
from .i18n import prefixed_path, resolve_site_config, text_direction, translator
from .themes import ThemeResolver
from .utils import slugify

if TYPE_CHECKING:
    from .blocks import BlockRegistry, Diagnostic
    from .collections import Pagination, SiteCollections
    from .config import SiteConfig
    from .content import Document
    from .content_types import ContentTypeDescriptor
    from .themes import ThemeChain

BASE_LAYOUT = "base"
LIST_LAYOUT = "list"


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    if isinstance(exc, TemplateSyntaxError):
        return f"syntax error on line {exc.lineno}: {exc.message}"
    if isinstance(exc, TemplateNotFound):
        return f"template not found: {error_msg}"
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"

    return f"{error_type}: {error_msg}"


def pygments_css() -> Markup:
    """Return Pygments CSS styles for the .highlight class."""
    return Markup(HtmlFormatter().get_style_defs(".highlight"))


class JinjaTemplateRenderer:
    """Renders templates found in the layout directories of a theme chain.

    Attributes:
        env: Jinja2 environment searching the chain's layouts in order.
    """

    def __init__(self, chain: ThemeChain):
        self.env = Environment(
            loader=FileSystemLoader([str(d) for d in chain.layout_dirs]),
            autoescape=select_autoescape(["html", "xml", "html.jinja", "xml.jinja"]),
            enable_async=False,
        )
        self.env.globals["pygments_css"] = pygments_css

    def render(self, template_id: str, assigns: Mapping[str, Any]) -> str:
        """Render a template.

        Raises:
            TemplateRenderError: If loading or rendering fails.
        """
        try:
            template = self.env.get_template(template_id)
            return template.render(**assigns)
        except DocumentError:
            raise
        except Exception as exc:
            raise TemplateRenderError(template_id, _format_error_message(exc)) from exc


class Renderer:
    """Composes pages from documents, layouts and blocks.

    One Renderer serves one build: it holds that build's collections and
    collects block diagnostics into the list it was given.
    """

    def __init__(
        self,
        config: SiteConfig,
        resolver: ThemeResolver,
        templates: JinjaTemplateRenderer,
        blocks: BlockRegistry,
        collections: SiteCollections,
        diagnostics: list[Diagnostic] | None = None,
    ):
        self.config = config
        self.resolver = resolver
        self.templates = templates
        self.blocks = blocks
        self.collections = collections
        self.diagnostics = diagnostics if diagnostics is not None else []

    def url_for(self, path: str) -> str:
        """Return a site URL path; external URLs are returned unchanged."""
        if path.startswith(("http://", "https://", "//")):
            return path
        return path if path.startswith("/") else f"/{path}"

    def absolute_url(self, path: str) -> str:
        return join_root_url(self.config.base_url, self.url_for(path))

    def asset_url(self, name: str) -> str:
        return self.url_for(f"assets/{name.lstrip('/')}")

    def term_url(self, kind: str, term: str, lang: str) -> str:
        """Return the archive URL of a tag or category."""
        return prefixed_path(lang, f"/{kind}/{slugify(term)}/", self.config)

    def _assigns(
        self,
        *,
        document: Document | None,
        title: str,
        lang: str,
        url: str,
        alternates: Mapping[str, str],
        pagination: Pagination | None,
        items: Sequence[Document] = (),
        extra: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        context = BlockContext(
            config=self.config,
            documents=self.collections.documents,
            document=document,
            lang=lang,
            alternates=alternates,
            url=url,
        )
        language = self.collections.language(lang)
        site = resolve_site_config(self.config, lang)
        assigns: dict[str, Any] = {
            "site": site,
            "content": document,
            "page_title": title,
            "page_url": url,
            "lang": lang,
            "documents": self.collections.documents,
            "items": items,
            "tags": language.tags,
            "categories": language.categories,
            "alternates": dict(alternates),
            "pagination": pagination,
            "block": self.blocks.build_helper(context, self.diagnostics),
            "asset_url": self.asset_url,
            "url_for": self.url_for,
            "absolute_url": self.absolute_url,
            "text_direction": text_direction(lang),
            "term_url": lambda kind, term: self.term_url(kind, term, lang),
            "t": translator(lang, self.config),
            "seo_meta": seo.meta_tags(document, site, url),
            "hreflang_tags": seo.hreflang_tags(alternates, site),
            "json_ld": seo.json_ld(document, site, url),
        }
        if extra:
            assigns.update(extra)
        return assigns

    def _compose(self, layout: str, body: str, assigns: dict[str, Any]) -> str:
        layout_id = self.resolver.template_id(layout)
        base_id = self.resolver.template_id(BASE_LAYOUT)
        inner = self.templates.render(layout_id, {**assigns, "inner_content": Markup(body)})
        return self.templates.render(base_id, {**assigns, "inner_content": Markup(inner)})

    def render_document(
        self, document: Document, descriptor: ContentTypeDescriptor | None = None
    ) -> str:
        """Render a document through its layout and the base template.

        Raises:
            ThemeResolutionError: If the layout or base template is missing.
            TemplateRenderError: If a template fails.
        """
        assigns = self._assigns(
            document=document,
            title=document.title,
            lang=document.lang,
            url=document.url,
            alternates=self.collections.alternates_for(document),
            pagination=None,
        )
        layout = ThemeResolver.layout_name(document, descriptor)
        try:
            return self._compose(layout, document.body, assigns)
        except DocumentError as exc:
            if exc.source_path is None:
                exc.source_path = document.source_path
            raise

    def render_list(
        self,
        title: str,
        items: Sequence[Document],
        url: str,
        lang: str,
        pagination: Pagination | None = None,
        alternates: Mapping[str, str] | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> str:
        """Render a listing page (type index, tag or category archive).

        Raises:
            ThemeResolutionError: If the list or base template is missing.
            TemplateRenderError: If a template fails.
        """
        assigns = self._assigns(
            document=None,
            title=title,
            lang=lang,
            url=url,
            alternates=alternates or {lang: url},
            pagination=pagination,
            items=items,
            extra=extra,
        )
        return self._compose(LIST_LAYOUT, "", assigns)
