"""Content model and loading for Folio.

This module discovers content files, reads them into RawDocuments and turns
RawDocuments into Documents.

Key classes:
- Heading: A heading collected for table-of-contents generation.
- ConvertedMarkdown: Output of the Markdown converter.
- RawDocument: One source file split into front matter and body.
- Document: A fully parsed piece of content, never mutated after creation.
- FileContentLoader: Discovers and reads files under the content root.

Directory conventions:
    content/about.md                 -> page "about"
    content/posts/2024-01-15-hi.md   -> post "hi"
    content/posts/tr/merhaba.md      -> Turkish post "merhaba"
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .errors import DocumentError, FileIOError, MissingRequiredField
from .i18n import is_language_dir, language_prefix
from .utils import (
    extract_date_from_name,
    first_paragraph,
    is_internal_path,
    is_markdown,
    reading_time,
    slug_from_filename,
    slugify,
)

if TYPE_CHECKING:
    from .config import SiteConfig
    from .content_types import ContentTypeDescriptor, ContentTypeRegistry
    from .protocols import Converter, FrontMatterParser

logger = logging.getLogger(__name__)

KNOWN_KEYS = frozenset({"title", "date", "slug", "lang", "tags", "categories", "draft"})


@dataclass(frozen=True)
class Heading:
    """Represents a heading extracted from markdown content for TOC generation.

    Attributes:
        id: Anchor ID for the heading (URL-friendly slug).
        text: The text content of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


@dataclass(frozen=True)
class ConvertedMarkdown:
    html: str
    toc: tuple[Heading, ...] = ()


@dataclass(frozen=True)
class RawDocument:
    """A source file before parsing.

    Attributes:
        path: Path to the source file.
        front_matter: Decoded front-matter mapping.
        body: Markdown body following the front matter.
        filename: Name of the source file.
        content_type: Name of the content type the file belongs to.
        lang: Language taken from the directory layout, if any.
    """

    path: Path
    front_matter: Mapping[str, Any]
    body: str
    filename: str
    content_type: str = "page"
    lang: str | None = None


@dataclass(frozen=True)
class Document:
    """A parsed piece of content.

    Attributes:
        title: Human-readable title (never empty).
        body: Rendered HTML body.
        date: Publication date, if known.
        slug: URL-friendly slug, unique within (content_type, lang).
        lang: Language code.
        tags: Ordered, de-duplicated tags.
        categories: Ordered, de-duplicated categories.
        draft: Whether this is a draft.
        meta: Every front-matter key not listed above.
        source_path: Path to the source file.
        content_type: Name of the content type.
        url: URL path of the rendered page.
        toc: Headings of the body, in order.
    """

    title: str
    body: str
    date: date | None
    slug: str
    lang: str
    tags: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    draft: bool = False
    meta: Mapping[str, Any] = field(default_factory=dict)
    source_path: Path | None = None
    content_type: str = "page"
    url: str = "/"
    toc: tuple[Heading, ...] = ()

    @property
    def layout(self) -> str | None:
        value = self.meta.get("layout")
        return str(value) if value else None

    @property
    def description(self) -> str:
        explicit = self.meta.get("description")
        if explicit:
            return str(explicit)
        return first_paragraph(self.body)

    @property
    def reading_time(self) -> int:
        return reading_time(self.body)

    def replace(self, **changes: Any) -> Document:
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)


def _as_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def _as_terms(value: Any) -> tuple[str, ...]:
    """Wrap scalars, drop empties and duplicates, keep first-seen order."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    seen: dict[str, None] = {}
    for item in items:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            seen.setdefault(text, None)
    return tuple(seen)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def document_url(
    slug: str, lang: str, descriptor: ContentTypeDescriptor, config: SiteConfig
) -> str:
    """Build the URL ``/[lang/][prefix/]slug/`` for a document.

    An ``index`` slug in a type without URL prefix maps to the language root.
    """
    segments = [language_prefix(lang, config), descriptor.url_prefix]
    if not (slug == "index" and not descriptor.url_prefix):
        segments.append(slug)
    path = "/".join(s for s in segments if s)
    return f"/{path}/" if path else "/"


def from_raw(
    raw: RawDocument,
    converter: Converter,
    descriptor: ContentTypeDescriptor,
    config: SiteConfig,
) -> Document:
    """Create a Document from a RawDocument.

    Args:
        raw: The unparsed document.
        converter: Markdown converter producing the HTML body.
        descriptor: Content type of the document.
        config: Site configuration.

    Returns:
        The parsed Document.

    Raises:
        MissingRequiredField: If the title or another required field is absent.
        ConversionError: If the body cannot be converted.
    """
    fm = raw.front_matter
    title = fm.get("title")
    if isinstance(title, (dict, list, bool)) or _is_blank(title):
        raise MissingRequiredField("title", raw.path)
    title = str(title).strip()

    if "date" in fm:
        doc_date = _as_date(fm.get("date"))
    else:
        doc_date = extract_date_from_name(Path(raw.filename).stem)

    resolved = {"title": title, "date": doc_date}
    for name in descriptor.required_fields:
        value = resolved[name] if name in resolved else fm.get(name)
        if _is_blank(value):
            raise MissingRequiredField(name, raw.path)

    explicit_slug = fm.get("slug")
    if _is_blank(explicit_slug):
        slug = slug_from_filename(raw.filename)
    else:
        slug = slugify(str(explicit_slug))

    lang_value = fm.get("lang")
    lang = str(lang_value) if not _is_blank(lang_value) else (raw.lang or config.default_lang)

    try:
        converted = converter.convert(raw.body)
    except DocumentError as exc:
        if exc.source_path is None:
            exc.source_path = raw.path
        raise

    return Document(
        title=title,
        body=converted.html,
        date=doc_date,
        slug=slug,
        lang=lang,
        tags=_as_terms(fm.get("tags")),
        categories=_as_terms(fm.get("categories")),
        draft=bool(fm.get("draft", False)),
        meta={k: v for k, v in fm.items() if k not in KNOWN_KEYS},
        source_path=raw.path,
        content_type=descriptor.name,
        url=document_url(slug, lang, descriptor, config),
        toc=tuple(converted.toc),
    )


class FileContentLoader:
    """Discovers and reads content files.

    Attributes:
        config: Site configuration.
        content_types: Registry used to map directories to content types.
        parser: Front-matter parser.
    """

    def __init__(
        self,
        config: SiteConfig,
        content_types: ContentTypeRegistry,
        parser: FrontMatterParser,
    ):
        self.config = config
        self.content_types = content_types
        self.parser = parser
        self.root = config.content_path

    def discover(self) -> list[Path]:
        """Return every Markdown file under the content root, sorted.

        Path components starting with ``_`` or ``.`` are skipped.
        """
        files: list[Path] = []
        for path in self.root.rglob("*"):
            if not path.is_file() or not is_markdown(path):
                continue
            if is_internal_path(path.relative_to(self.root)):
                continue
            files.append(path)
        return sorted(files)

    def read(self, path: Path) -> bytes:
        """Read raw bytes of a content file.

        Raises:
            FileIOError: If the file cannot be read.
        """
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileIOError(f"cannot read file: {exc.strerror or exc}", path) from exc

    def locate(self, path: Path) -> tuple[ContentTypeDescriptor, str | None]:
        """Map a source path to its content type and directory language."""
        parts = path.relative_to(self.root).parts
        if len(parts) == 1:
            return self.content_types.pages, None
        descriptor = self.content_types.for_directory(parts[0])
        if len(parts) >= 3 and is_language_dir(parts[1], self.config):
            return descriptor, parts[1]
        return descriptor, None

    def load(self, path: Path, data: bytes | None = None) -> RawDocument:
        """Read and split a content file into a RawDocument.

        Args:
            path: Source file.
            data: Bytes already read by the caller, if any.

        Raises:
            FileIOError: If the file cannot be read or is not UTF-8.
            FrontMatterDecodeError: If the front matter is invalid.
        """
        if data is None:
            data = self.read(path)
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FileIOError(f"file is not valid UTF-8: {exc.reason}", path) from exc
        try:
            front_matter, body = self.parser.parse(text)
        except DocumentError as exc:
            if exc.source_path is None:
                exc.source_path = path
            raise
        descriptor, lang = self.locate(path)
        logger.debug("Loaded %s as %s", path, descriptor.name)
        return RawDocument(
            path=path,
            front_matter=front_matter,
            body=body,
            filename=path.name,
            content_type=descriptor.name,
            lang=lang,
        )
