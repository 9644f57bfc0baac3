"""Derived indices over the documents of one build.

Everything here is computed from the exact document list passed in, so the
indices of one build never mix old and new documents.

Key pieces:
- sort_by_date, group_by_tag, group_by_category, merge_by_slug: ordering and
  grouping.
- paginate / Pagination: fixed-size pages with prev/next URLs.
- link_translations: language alternates of every document.
- DocumentCollection, GroupIndex: helpers handed to templates.
- CollectionBuilder: builds SiteCollections for a build.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .i18n import prefixed_path
from .utils import slugify

if TYPE_CHECKING:
    from .config import SiteConfig
    from .content import Document
    from .content_types import ContentTypeRegistry

logger = logging.getLogger(__name__)

TranslationKey = tuple[str, str, str]


def sort_by_date(documents: Iterable[Document]) -> list[Document]:
    """Sort newest first; undated documents follow in their original order."""
    docs = list(documents)
    dated = [doc for doc in docs if doc.date is not None]
    undated = [doc for doc in docs if doc.date is None]
    dated.sort(key=lambda doc: doc.date, reverse=True)
    return dated + undated


def _group_by(documents: Iterable[Document], attribute: str) -> dict[str, list[Document]]:
    groups: dict[str, list[Document]] = {}
    for doc in documents:
        for term in dict.fromkeys(getattr(doc, attribute)):
            groups.setdefault(term, []).append(doc)
    return groups


def group_by_tag(documents: Iterable[Document]) -> dict[str, list[Document]]:
    """Group documents by tag, keeping first-seen document order per tag.

    Example:
        Documents tagged ``["a", "b"]`` and ``["b"]`` give a group ``a``
        with one document and a group ``b`` with two.
    """
    return _group_by(documents, "tags")


def group_by_category(documents: Iterable[Document]) -> dict[str, list[Document]]:
    """Group documents by category, keeping first-seen document order."""
    return _group_by(documents, "categories")


def merge_by_slug(
    groups: Mapping[str, Iterable[Document]],
) -> dict[str, tuple[str, list[Document]]]:
    """Merge groups whose names share an archive slug.

    ``Foo Bar`` and ``foo-bar`` both publish at ``/tags/foo-bar/``, so their
    documents are listed together under the first spelling seen.

    Returns:
        Slug to (display name, documents newest first).
    """
    merged: dict[str, tuple[str, list[Document]]] = {}
    for name, docs in groups.items():
        slug = slugify(name)
        if slug not in merged:
            merged[slug] = (name, list(docs))
            continue
        label, existing = merged[slug]
        logger.debug("'%s' shares archive '%s' with '%s'", name, slug, label)
        existing.extend(doc for doc in docs if doc not in existing)
    return {slug: (label, sort_by_date(docs)) for slug, (label, docs) in merged.items()}


@dataclass(frozen=True)
class Pagination:
    """One page of a paginated listing.

    Attributes:
        number: 1-based page number.
        items: Documents on this page.
        total_pages: Number of pages in the listing.
        total_items: Number of documents in the listing.
        page_size: Maximum documents per page.
        url: URL of this page.
        prev_url: URL of the previous page, None on the first.
        next_url: URL of the next page, None on the last.
    """

    number: int
    items: tuple[Document, ...]
    total_pages: int
    total_items: int
    page_size: int
    url: str
    prev_url: str | None = None
    next_url: str | None = None

    @property
    def has_prev(self) -> bool:
        return self.prev_url is not None

    @property
    def has_next(self) -> bool:
        return self.next_url is not None


def page_url(base_path: str, number: int) -> str:
    """URL of a page number: page 1 at ``base/``, page N at ``base/page/N/``.

    Examples:
        >>> page_url("/posts/", 1)
        '/posts/'

        >>> page_url("/posts", 3)
        '/posts/page/3/'
    """
    base = base_path.rstrip("/")
    if number == 1:
        return f"{base}/"
    return f"{base}/page/{number}/"


def paginate(
    items: Sequence[Document], page_size: int, base_path: str
) -> list[Pagination]:
    """Split items into pages.

    Args:
        items: Ordered documents.
        page_size: Maximum documents per page.
        base_path: URL of the first page.

    Returns:
        ``ceil(len(items) / page_size)`` pages; an empty list for no items.

    Raises:
        ValueError: If page_size is not positive.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    items = list(items)
    total = len(items)
    total_pages = math.ceil(total / page_size)
    pages: list[Pagination] = []
    for index in range(total_pages):
        number = index + 1
        chunk = items[index * page_size : number * page_size]
        pages.append(
            Pagination(
                number=number,
                items=tuple(chunk),
                total_pages=total_pages,
                total_items=total,
                page_size=page_size,
                url=page_url(base_path, number),
                prev_url=page_url(base_path, number - 1) if number > 1 else None,
                next_url=page_url(base_path, number + 1) if number < total_pages else None,
            )
        )
    return pages


def translation_key(document: Document) -> TranslationKey:
    return (document.content_type, document.lang, document.slug)


def _explicit_alternates(
    document: Document, index: Mapping[TranslationKey, Document]
) -> dict[str, str] | None:
    declared = document.meta.get("translations")
    if not isinstance(declared, Mapping) or not declared:
        return None
    alternates = {document.lang: document.url}
    for lang, target in declared.items():
        target = str(target)
        if target.startswith(("/", "http://", "https://")):
            alternates[str(lang)] = target
            continue
        linked = index.get((document.content_type, str(lang), target))
        if linked is None:
            logger.debug(
                "%s: translation '%s' for %s not found", document.source_path, target, lang
            )
            continue
        alternates[str(lang)] = linked.url
    return alternates


def link_translations(
    documents: Iterable[Document],
) -> dict[TranslationKey, dict[str, str]]:
    """Compute language alternates (language code to URL) for every document.

    A document's own ``translations`` front-matter mapping (language code to
    slug or URL) is used verbatim. Otherwise documents sharing a content
    type and slug across languages are linked to each other.
    """
    docs = list(documents)
    index = {translation_key(doc): doc for doc in docs}
    inferred: dict[tuple[str, str], dict[str, str]] = {}
    for doc in docs:
        inferred.setdefault((doc.content_type, doc.slug), {}).setdefault(doc.lang, doc.url)

    links: dict[TranslationKey, dict[str, str]] = {}
    for doc in docs:
        explicit = _explicit_alternates(doc, index)
        if explicit is not None:
            links[translation_key(doc)] = explicit
        else:
            links[translation_key(doc)] = dict(inferred[(doc.content_type, doc.slug)])
    return links


class DocumentCollection(Sequence["Document"]):
    """Lightweight helper for working with lists of Documents in templates and code."""

    def __init__(self, documents: Iterable[Document] = ()):
        self._documents = list(documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return DocumentCollection(self._documents[item])
        return self._documents[item]

    def of_type(self, content_type: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.content_type == content_type)

    def with_tag(self, tag: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if tag in d.tags)

    def in_category(self, category: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if category in d.categories)

    def in_language(self, lang: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.lang == lang)

    def published(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if not d.draft)

    def sorted(self) -> DocumentCollection:
        return DocumentCollection(sort_by_date(self._documents))

    def latest(self, count: int = 5) -> DocumentCollection:
        return DocumentCollection(sort_by_date(self._documents)[:count])

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"DocumentCollection({len(self._documents)} documents)"


class GroupIndex(Mapping[str, DocumentCollection]):
    """Mapping of tag or category name to DocumentCollection."""

    def __init__(self, mapping: Mapping[str, Iterable[Document]]):
        self._mapping = {k: DocumentCollection(v) for k, v in mapping.items()}

    def __getitem__(self, key: str) -> DocumentCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def counts(self) -> dict[str, int]:
        return {key: len(docs) for key, docs in self._mapping.items()}

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"GroupIndex({len(self._mapping)} groups)"


@dataclass
class Collection:
    """A named, ordered document sequence with its derived indices.

    Attributes:
        name: Collection name (language code or ``type:lang``).
        documents: Documents, newest first.
        tags: Tag index.
        categories: Category index.
        pages: Pagination slices; empty when the collection has no index page.
    """

    name: str
    documents: DocumentCollection
    tags: GroupIndex
    categories: GroupIndex
    pages: list[Pagination] = field(default_factory=list)

    @classmethod
    def from_documents(
        cls,
        name: str,
        documents: Iterable[Document],
        page_size: int | None = None,
        base_path: str | None = None,
    ) -> Collection:
        ordered = sort_by_date(documents)
        pages = paginate(ordered, page_size, base_path) if page_size and base_path else []
        return cls(
            name=name,
            documents=DocumentCollection(ordered),
            tags=GroupIndex(group_by_tag(ordered)),
            categories=GroupIndex(group_by_category(ordered)),
            pages=pages,
        )


@dataclass
class SiteCollections:
    """All collections of one build.

    Attributes:
        documents: Every document, newest first.
        by_language: One collection per language.
        by_type: One paginated collection per (content type, language).
        translations: Language alternates per document.
    """

    documents: DocumentCollection
    by_language: dict[str, Collection]
    by_type: dict[tuple[str, str], Collection]
    translations: dict[TranslationKey, dict[str, str]]

    def alternates_for(self, document: Document) -> dict[str, str]:
        return dict(self.translations.get(translation_key(document), {}))

    def language(self, lang: str) -> Collection:
        found = self.by_language.get(lang)
        if found is None:
            return Collection.from_documents(lang, [])
        return found


class CollectionBuilder:
    """Builds SiteCollections from the documents of a build."""

    def __init__(self, content_types: ContentTypeRegistry):
        self.content_types = content_types

    def build(self, documents: Iterable[Document], config: SiteConfig) -> SiteCollections:
        docs = sort_by_date(documents)

        languages: dict[str, list[Document]] = {}
        types: dict[tuple[str, str], list[Document]] = {}
        for doc in docs:
            languages.setdefault(doc.lang, []).append(doc)
            types.setdefault((doc.content_type, doc.lang), []).append(doc)

        by_language = {
            lang: Collection.from_documents(lang, items) for lang, items in languages.items()
        }
        by_type: dict[tuple[str, str], Collection] = {}
        for (type_name, lang), items in types.items():
            descriptor = self.content_types.describe(type_name)
            base_path = (
                prefixed_path(lang, f"/{descriptor.url_prefix}/", config)
                if descriptor.url_prefix
                else None
            )
            by_type[(type_name, lang)] = Collection.from_documents(
                f"{type_name}:{lang}", items, config.posts_per_page, base_path
            )

        return SiteCollections(
            documents=DocumentCollection(docs),
            by_language=by_language,
            by_type=by_type,
            translations=link_translations(docs),
        )
