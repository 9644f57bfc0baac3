"""Site building for Folio.

This module sequences a complete build:

1. load configuration and validate paths
2. discover content files
3. run the pipeline per file, reusing cached Documents when possible
4. drop drafts and reject slug collisions
5. assemble collections
6. render every retained document; when some fail, rebuild the collections
   from the rest and render those again
7. generate derived output (index pages, archives, feeds, sitemap)
8. copy static assets
9. write files and prune stale output
10. run post-build tooling

Errors scoped to one document are collected in BuildResult.failures and
never stop the build. Configuration errors abort it before any document
is processed.

Key classes:
- BuildOrchestrator: Runs a build with explicit registries.
- BuildResult: Pages written, failures, diagnostics and the updated cache.
- ContentCache: Parsed documents keyed by source path and fingerprint.

Key functions:
- build_site: Build a project with default registries.
- clean_output: Remove a project's output directory.
"""

from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .assets import AssetPipeline, run_post_build
from .blocks import BlockRegistry, Diagnostic, default_blocks
from .collections import (
    CollectionBuilder,
    Pagination,
    SiteCollections,
    merge_by_slug,
    paginate,
)
from .config import SiteConfig, load_config, validate_paths
from .content import Document, FileContentLoader
from .content_types import ContentTypeRegistry, default_content_types
from .errors import ConfigurationError, DocumentError, FileIOError, HookError, SlugCollisionError
from .feeds import FeedContext, FeedRegistry, create_default_feed_registry
from .frontmatter import YamlFrontMatterParser
from .i18n import prefixed_path, resolve_site_config, translate
from .pipeline import HookRegistry, Pipeline
from .renderers import MarkdownConverter
from .templates import JinjaTemplateRenderer, Renderer
from .themes import ThemeResolver, theme_chain_for
from .utils import atomic_write, fingerprint, prune_stale_files, titleize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageDescriptor:
    """A file written by the build.

    Attributes:
        url: Site URL of the file.
        output_path: Path of the written file.
        source_path: Source document, None for derived output.
    """

    url: str
    output_path: Path
    source_path: Path | None = None


@dataclass(frozen=True)
class DocumentFailure:
    """A document that could not be built.

    Attributes:
        source_path: Source file, None for derived pages.
        stage: Build stage that failed (load, parse, collect, render, write,
            derived, assets, or the hook stage name).
        error: The error raised.
    """

    source_path: Path | None
    stage: str
    error: Exception

    @property
    def cause(self) -> str:
        if isinstance(self.error, DocumentError):
            return self.error.message
        return f"{type(self.error).__name__}: {self.error}"

    def __str__(self) -> str:
        location = str(self.source_path) if self.source_path else "<derived>"
        return f"{location} [{self.stage}] {self.cause}"


@dataclass(frozen=True)
class CacheEntry:
    fingerprint: str
    document: Document


@dataclass(frozen=True)
class ContentCache:
    """Parsed documents from a previous build.

    Attributes:
        signature: Parsing-relevant settings the entries were built with.
        entries: Source path to (fingerprint, Document).
    """

    signature: tuple = ()
    entries: Mapping[Path, CacheEntry] = field(default_factory=dict)

    def lookup(self, path: Path, digest: str, signature: tuple) -> Document | None:
        """Return the cached Document if the file and settings are unchanged."""
        if signature != self.signature:
            return None
        entry = self.entries.get(path)
        if entry is None or entry.fingerprint != digest:
            return None
        return entry.document

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class BuildResult:
    """Result of a site build.

    Attributes:
        pages: Files written, in write order.
        failures: Per-document errors.
        diagnostics: Non-fatal problems such as unknown blocks.
        elapsed: Wall-clock seconds the build took.
        content_cache: Cache to pass to the next build.
        output_dir: Directory the site was written to.
        documents: Documents whose pages were rendered.
    """

    pages: list[PageDescriptor]
    failures: list[DocumentFailure]
    diagnostics: list[Diagnostic]
    elapsed: float
    content_cache: ContentCache
    output_dir: Path
    documents: list[Document] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def documents_written(self) -> int:
        return sum(1 for page in self.pages if page.source_path is not None)


def output_path_for(output_dir: Path, url: str) -> Path:
    """Map a page URL to ``<output>/<url>/index.html``."""
    url_path = url.strip("/")
    target_dir = output_dir / url_path if url_path else output_dir
    return target_dir / "index.html"


def _failure_stage(exc: DocumentError, default: str) -> str:
    if isinstance(exc, HookError):
        return exc.stage
    return default


class _Outputs:
    """Queued output files, keyed by destination."""

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.files: dict[Path, tuple[str, str, Path | None]] = {}

    def add_page(self, url: str, html: str, source_path: Path | None = None) -> bool:
        path = output_path_for(self.output_dir, url)
        if path in self.files:
            return False
        self.files[path] = (url, html, source_path)
        return True

    def add_file(self, relative: str, content: str) -> None:
        path = self.output_dir / relative
        self.files[path] = (f"/{relative}", content, None)

    def has_url(self, url: str) -> bool:
        return output_path_for(self.output_dir, url) in self.files


class BuildOrchestrator:
    """Runs builds for one project.

    Registries are populated explicitly by the caller (or with the
    built-in defaults) before the first build and reused afterwards.

    Attributes:
        project_root: Directory containing folio.yaml.
        overrides: Configuration overrides applied on every build.
    """

    def __init__(
        self,
        project_root: Path,
        overrides: Mapping[str, Any] | None = None,
        *,
        content_types: ContentTypeRegistry | None = None,
        hooks: HookRegistry | None = None,
        blocks: BlockRegistry | None = None,
        converter: MarkdownConverter | None = None,
        parser: YamlFrontMatterParser | None = None,
        feeds: FeedRegistry | None = None,
    ):
        self.project_root = project_root
        self.overrides = dict(overrides or {})
        self.content_types = content_types if content_types is not None else default_content_types()
        self.blocks = blocks if blocks is not None else default_blocks()
        self.parser = parser or YamlFrontMatterParser()
        self.pipeline = Pipeline(converter or MarkdownConverter(), hooks)
        self.feeds = feeds if feeds is not None else create_default_feed_registry()

    @property
    def hooks(self) -> HookRegistry:
        return self.pipeline.hooks

    def load_config(self) -> SiteConfig:
        return load_config(self.project_root, **self.overrides)

    def build(self, cache: ContentCache | None = None) -> BuildResult:
        """Load configuration and run a build.

        Args:
            cache: Cache returned by the previous build, if any.

        Raises:
            ConfigurationError: If the configuration is unusable.
        """
        return self.run(self.load_config(), cache)

    def run(self, config: SiteConfig, cache: ContentCache | None = None) -> BuildResult:
        """Run a build with an already loaded configuration.

        Raises:
            ConfigurationError: If paths or themes are unusable.
        """
        started = time.perf_counter()
        validate_paths(config)
        chain = theme_chain_for(config)
        cache = cache if cache is not None else ContentCache()
        output_dir = config.output_path
        failures: list[DocumentFailure] = []
        diagnostics: list[Diagnostic] = []

        documents, entries = self._parse_all(config, cache, failures)
        retained = self._retain(documents, config, failures)
        collections = CollectionBuilder(self.content_types).build(retained, config)

        resolver = ThemeResolver(chain)
        renderer = Renderer(
            config,
            resolver,
            JinjaTemplateRenderer(chain),
            self.blocks,
            collections,
            diagnostics,
        )
        # Pages, listings and feeds only link documents that rendered, so a
        # render failure rebuilds the collections and renders the rest again.
        published = retained
        while True:
            candidates = published
            outputs = _Outputs(output_dir)
            diagnostics.clear()
            published = self._render_documents(candidates, config, renderer, outputs, failures)
            if len(published) == len(candidates):
                break
            collections = CollectionBuilder(self.content_types).build(published, config)
            renderer.collections = collections
        self._render_derived(collections, config, renderer, outputs, failures)
        for feed in self.feeds.generate_all(
            FeedContext(
                config=config,
                documents=list(collections.documents),
                page_urls=[url for url, _, _ in outputs.files.values()],
            )
        ):
            outputs.add_file(feed.path, feed.content)

        output_dir.mkdir(parents=True, exist_ok=True)
        planned = {path.resolve() for path in outputs.files}
        asset_errors: list[FileIOError] = []
        assets_written = AssetPipeline(config, chain).run(
            output_dir, reserved=planned, errors=asset_errors
        )
        failures.extend(DocumentFailure(err.source_path, "assets", err) for err in asset_errors)
        pages = self._write(outputs, failures)

        keep = {page.output_path.resolve() for page in pages}
        keep.update(path.resolve() for path in assets_written)
        removed = prune_stale_files(output_dir, keep)
        if removed:
            logger.debug("Removed %d stale files", len(removed))

        run_post_build(config, chain, output_dir)

        elapsed = time.perf_counter() - started
        result = BuildResult(
            pages=pages,
            failures=failures,
            diagnostics=diagnostics,
            elapsed=elapsed,
            content_cache=ContentCache(config.parsing_signature(), entries),
            output_dir=output_dir,
            documents=published,
        )
        logger.info(
            "Built %d pages (%d failed) in %.2fs",
            len(pages),
            len(failures),
            elapsed,
        )
        return result

    def _parse_all(
        self,
        config: SiteConfig,
        cache: ContentCache,
        failures: list[DocumentFailure],
    ) -> tuple[list[Document], dict[Path, CacheEntry]]:
        loader = FileContentLoader(config, self.content_types, self.parser)
        signature = config.parsing_signature()
        documents: list[Document] = []
        entries: dict[Path, CacheEntry] = {}
        reused = 0
        for path in loader.discover():
            try:
                data = loader.read(path)
            except FileIOError as exc:
                failures.append(DocumentFailure(path, "load", exc))
                continue
            digest = fingerprint(data)
            document = cache.lookup(path, digest, signature)
            if document is not None:
                reused += 1
            else:
                stage = "load"
                try:
                    raw = loader.load(path, data)
                    stage = "parse"
                    descriptor = self.content_types.describe(raw.content_type)
                    document = self.pipeline.parse(raw, descriptor, config)
                except DocumentError as exc:
                    failures.append(DocumentFailure(path, _failure_stage(exc, stage), exc))
                    continue
            entries[path] = CacheEntry(digest, document)
            documents.append(document)
        logger.debug("Parsed %d documents (%d from cache)", len(documents), reused)
        return documents, entries

    def _retain(
        self,
        documents: list[Document],
        config: SiteConfig,
        failures: list[DocumentFailure],
    ) -> list[Document]:
        retained: list[Document] = []
        seen: dict[tuple[str, str, str], Document] = {}
        for doc in documents:
            if doc.draft and not config.drafts:
                continue
            key = (doc.content_type, doc.lang, doc.slug)
            existing = seen.get(key)
            if existing is not None:
                error = SlugCollisionError(
                    doc.slug, doc.content_type, doc.lang, existing.source_path, doc.source_path
                )
                failures.append(DocumentFailure(doc.source_path, "collect", error))
                continue
            seen[key] = doc
            retained.append(doc)
        return retained

    def _render_documents(
        self,
        documents: list[Document],
        config: SiteConfig,
        renderer: Renderer,
        outputs: _Outputs,
        failures: list[DocumentFailure],
    ) -> list[Document]:
        rendered: list[Document] = []
        for doc in documents:
            descriptor = self.content_types.describe(doc.content_type)
            try:
                prepared = self.pipeline.before_render(doc, config)
                html = renderer.render_document(prepared, descriptor)
                _, html = self.pipeline.after_render(prepared, html, config)
            except DocumentError as exc:
                failures.append(
                    DocumentFailure(doc.source_path, _failure_stage(exc, "render"), exc)
                )
                continue
            if not outputs.add_page(doc.url, html, doc.source_path):
                error = DocumentError(f"URL {doc.url} is already used by another document")
                failures.append(DocumentFailure(doc.source_path, "collect", error))
                continue
            rendered.append(doc)
        return rendered

    def _render_list_pages(
        self,
        renderer: Renderer,
        outputs: _Outputs,
        failures: list[DocumentFailure],
        title: str,
        pages: list[Pagination],
        lang: str,
        extra: Mapping[str, Any] | None = None,
    ) -> None:
        for page in pages:
            if outputs.has_url(page.url):
                continue
            try:
                html = renderer.render_list(
                    title, list(page.items), page.url, lang, pagination=page, extra=extra
                )
            except DocumentError as exc:
                failures.append(DocumentFailure(None, "derived", exc))
                return
            outputs.add_page(page.url, html)

    def _render_derived(
        self,
        collections: SiteCollections,
        config: SiteConfig,
        renderer: Renderer,
        outputs: _Outputs,
        failures: list[DocumentFailure],
    ) -> None:
        per_page = config.posts_per_page
        for (type_name, lang), collection in collections.by_type.items():
            descriptor = self.content_types.describe(type_name)
            self._render_list_pages(
                renderer,
                outputs,
                failures,
                translate(
                    descriptor.directory, lang, config, default=titleize(descriptor.directory)
                ),
                collection.pages,
                lang,
            )

        for lang, collection in collections.by_language.items():
            for kind, key, index in (
                ("tags", "tagged", collection.tags),
                ("categories", "category", collection.categories),
            ):
                for slug, (term, docs) in merge_by_slug(index).items():
                    base_path = prefixed_path(lang, f"/{kind}/{slug}/", config)
                    self._render_list_pages(
                        renderer,
                        outputs,
                        failures,
                        translate(key, lang, config, term=term),
                        paginate(docs, per_page, base_path),
                        lang,
                        extra={"term": term},
                    )

            home = prefixed_path(lang, "/", config)
            if outputs.has_url(home):
                continue
            listed = [
                doc
                for doc in collection.documents
                if self.content_types.describe(doc.content_type).url_prefix
            ]
            self._render_list_pages(
                renderer,
                outputs,
                failures,
                resolve_site_config(config, lang).title,
                paginate(listed, per_page, home),
                lang,
            )

    def _write(
        self, outputs: _Outputs, failures: list[DocumentFailure]
    ) -> list[PageDescriptor]:
        pages: list[PageDescriptor] = []
        for path, (url, content, source_path) in outputs.files.items():
            try:
                atomic_write(path, content)
            except OSError as exc:
                error = FileIOError(f"cannot write {path}: {exc.strerror or exc}", source_path)
                failures.append(DocumentFailure(source_path, "write", error))
                continue
            pages.append(PageDescriptor(url, path, source_path))
        return pages


def build_site(
    project_root: Path, cache: ContentCache | None = None, **overrides: Any
) -> BuildResult:
    """Build a project with the default registries.

    Args:
        project_root: Root directory of the project.
        cache: Cache returned by a previous build.
        **overrides: Configuration overrides (e.g. ``drafts=True``).

    Returns:
        BuildResult of the build.

    Raises:
        ConfigurationError: If the configuration is unusable.
    """
    return BuildOrchestrator(project_root, overrides).build(cache)


def clean_output(project_root: Path, **overrides: Any) -> Path | None:
    """Remove the output directory.

    Returns:
        The removed directory, or None if it did not exist.

    Raises:
        ConfigurationError: If the output directory contains the project's
            content or configuration.
    """
    config = load_config(project_root, **overrides)
    output = config.output_path.resolve()
    if not output.exists():
        return None
    root = config.project_root.resolve()
    if output == root or root.is_relative_to(output) or config.content_path.resolve().is_relative_to(output):
        raise ConfigurationError(f"Refusing to remove {output}: it contains the project")
    shutil.rmtree(output)
    return output
