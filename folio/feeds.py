"""Feed generation for Folio.

This module generates the XML files derived from the published documents:
an Atom feed for the whole site, one Atom feed per content type and a
sitemap. Generators return file contents; the orchestrator writes them
together with every other output file.

Classes:
    FeedFile: One generated file (output-relative path and content).
    FeedContext: Inputs shared by all generators.
    FeedGenerator: Base class for feed generators.
    SitemapGenerator: Generates sitemap.xml.
    AtomFeedGenerator: Generates feed.xml and feed/<type>.xml.
    FeedRegistry: Registry running every generator.

Functions:
    create_default_feed_registry: Create a registry with default generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

from .collections import sort_by_date
from .html_utils import escape_html, join_root_url

if TYPE_CHECKING:
    from .config import SiteConfig
    from .content import Document

FEED_LIMIT = 20


@dataclass(frozen=True)
class FeedFile:
    path: str
    content: str


@dataclass(frozen=True)
class FeedContext:
    """Inputs shared by all feed generators.

    Attributes:
        config: Site configuration.
        documents: Published documents of the build.
        page_urls: URL of every HTML page written by the build.
    """

    config: SiteConfig
    documents: Sequence[Document]
    page_urls: Sequence[str] = field(default_factory=tuple)


class FeedGenerator(ABC):
    """Abstract base class for feed generators.

    Following the Open/Closed Principle, new feed formats can be added
    by creating new subclasses without modifying existing code.
    """

    @abstractmethod
    def generate(self, context: FeedContext) -> list[FeedFile]:
        """Generate feed files.

        Args:
            context: Documents, written URLs and configuration.

        Returns:
            Generated files; an empty list when there is nothing to publish.
        """
        ...


def _timestamp(value: date | None) -> str:
    if value is None:
        return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return f"{value.isoformat()}T00:00:00Z"


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml for search engine indexing.

    Creates a sitemap following the sitemaps.org protocol, listing every
    written page with its absolute URL and, for documents, the date.
    """

    filename = "sitemap.xml"

    def generate(self, context: FeedContext) -> list[FeedFile]:
        base_url = context.config.base_url
        dates = {doc.url: doc.date for doc in context.documents}
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for url in sorted(set(context.page_urls)):
            loc = escape_html(join_root_url(base_url, url))
            lastmod = dates.get(url)
            if lastmod is not None:
                lines.append(
                    f"  <url><loc>{loc}</loc><lastmod>{lastmod.isoformat()}</lastmod></url>"
                )
            else:
                lines.append(f"  <url><loc>{loc}</loc></url>")
        lines.append("</urlset>")
        return [FeedFile(self.filename, "\n".join(lines) + "\n")]


class AtomFeedGenerator(FeedGenerator):
    """Generates Atom 1.0 feeds of dated documents, newest first.

    ``feed.xml`` covers every dated document; ``feed/<type>.xml`` is written
    for each content type that has dated documents.
    """

    def __init__(self, limit: int = FEED_LIMIT, per_type: bool = True):
        self.limit = limit
        self.per_type = per_type

    def generate(self, context: FeedContext) -> list[FeedFile]:
        dated = [doc for doc in context.documents if doc.date is not None]
        if not dated:
            return []
        files = [FeedFile("feed.xml", self.render(context.config, dated, "/feed.xml"))]
        if self.per_type:
            types = list(dict.fromkeys(doc.content_type for doc in dated))
            for type_name in types:
                docs = [doc for doc in dated if doc.content_type == type_name]
                path = f"feed/{type_name}.xml"
                title = f"{context.config.title} - {type_name}"
                files.append(FeedFile(path, self.render(context.config, docs, f"/{path}", title)))
        return files

    def render(
        self,
        config: SiteConfig,
        documents: Iterable[Document],
        self_path: str,
        title: str | None = None,
    ) -> str:
        entries = sort_by_date(documents)[: self.limit]
        base_url = config.base_url
        home = join_root_url(base_url, "/")
        lines = [
            '<?xml version="1.0" encoding="utf-8"?>',
            '<feed xmlns="http://www.w3.org/2005/Atom">',
            f"  <title>{escape_html(title or config.title)}</title>",
        ]
        if config.description:
            lines.append(f"  <subtitle>{escape_html(config.description)}</subtitle>")
        lines.extend(
            [
                f'  <link href="{escape_html(home)}"/>',
                f'  <link rel="self" href="{escape_html(join_root_url(base_url, self_path))}"/>',
                f"  <id>{escape_html(home)}</id>",
                f"  <updated>{_timestamp(entries[0].date if entries else None)}</updated>",
            ]
        )
        if config.author:
            lines.append(f"  <author><name>{escape_html(config.author)}</name></author>")
        for doc in entries:
            link = escape_html(join_root_url(base_url, doc.url))
            lines.extend(
                [
                    "  <entry>",
                    f"    <title>{escape_html(doc.title)}</title>",
                    f'    <link href="{link}"/>',
                    f"    <id>{link}</id>",
                    f"    <updated>{_timestamp(doc.date)}</updated>",
                    f"    <summary>{escape_html(doc.description)}</summary>",
                    f'    <content type="html">{escape_html(doc.body)}</content>',
                ]
            )
            for tag in doc.tags:
                lines.append(f'    <category term="{escape_html(tag)}"/>')
            lines.append("  </entry>")
        lines.append("</feed>")
        return "\n".join(lines) + "\n"


class FeedRegistry:
    """Registry for managing feed generators.

    Attributes:
        _generators: List of registered feed generators.
    """

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(self, context: FeedContext) -> list[FeedFile]:
        """Run all registered generators.

        Args:
            context: Inputs shared by all generators.

        Returns:
            Every generated file, in registration order.
        """
        files: list[FeedFile] = []
        for generator in self._generators:
            files.extend(generator.generate(context))
        return files


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the Atom and sitemap generators."""
    registry = FeedRegistry()
    registry.register(AtomFeedGenerator())
    registry.register(SitemapGenerator())
    return registry
