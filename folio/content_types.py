"""Content type registry for Folio.

A content type ties a directory under ``content/`` to a URL prefix, a
default layout and a set of required front-matter fields. Types are
registered explicitly; the registry validates names and directories at
registration time so lookups never fail later in the build.

Key classes:
- ContentTypeDescriptor: Immutable description of one content type.
- ContentTypeRegistry: Ordered, validated mapping of types.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

NAME_RE_CHARS = frozenset("abcdefghijklmnopqrstuvwxyz0123456789_-")


@dataclass(frozen=True)
class ContentTypeDescriptor:
    """Describes one kind of content.

    Attributes:
        name: Symbolic name (``post``, ``page``...).
        directory: Directory under the content root holding its files.
        url_prefix: First URL segment of its documents ("" for none).
        default_layout: Layout used when front matter names none.
        required_fields: Front-matter keys every document must provide.
    """

    name: str
    directory: str
    url_prefix: str
    default_layout: str = "page"
    required_fields: tuple[str, ...] = ("title",)

    @property
    def is_dated(self) -> bool:
        return "date" in self.required_fields


class ContentTypeRegistry:
    """Registry of content types keyed by name and by directory.

    Example:
        >>> registry = ContentTypeRegistry()
        >>> registry.register(ContentTypeDescriptor("post", "posts", "posts", "post"))
        >>> registry.find_by_directory("posts").name
        'post'
    """

    def __init__(self):
        self._by_name: dict[str, ContentTypeDescriptor] = {}
        self._by_directory: dict[str, ContentTypeDescriptor] = {}

    def register(self, descriptor: ContentTypeDescriptor) -> None:
        """Register a content type.

        Raises:
            ValueError: If the name is not a lowercase identifier, or the
                name or directory is already taken.
        """
        if not descriptor.name or not set(descriptor.name) <= NAME_RE_CHARS:
            raise ValueError(f"Invalid content type name: {descriptor.name!r}")
        if not descriptor.directory or "/" in descriptor.directory:
            raise ValueError(f"Invalid content type directory: {descriptor.directory!r}")
        if descriptor.name in self._by_name:
            raise ValueError(f"Content type '{descriptor.name}' is already registered")
        if descriptor.directory in self._by_directory:
            owner = self._by_directory[descriptor.directory].name
            raise ValueError(
                f"Directory '{descriptor.directory}' is already used by '{owner}'"
            )
        self._by_name[descriptor.name] = descriptor
        self._by_directory[descriptor.directory] = descriptor

    def find_by_directory(self, directory: str) -> ContentTypeDescriptor | None:
        return self._by_directory.get(directory)

    def find_by_name(self, name: str) -> ContentTypeDescriptor | None:
        return self._by_name.get(name)

    def describe(self, name: str) -> ContentTypeDescriptor:
        """Return the descriptor for a type name, including ad-hoc types."""
        return self._by_name.get(name) or self.for_directory(name)

    def for_directory(self, directory: str) -> ContentTypeDescriptor:
        """Return the registered type for a directory, or an ad-hoc one.

        Unknown directories become page-like types named after the
        directory so arbitrary sections still publish.
        """
        found = self._by_directory.get(directory)
        if found is not None:
            return found
        return ContentTypeDescriptor(
            name=directory,
            directory=directory,
            url_prefix=directory,
            default_layout="page",
        )

    @property
    def pages(self) -> ContentTypeDescriptor:
        """Descriptor used for files placed directly in the content root."""
        return self.for_directory("pages")

    def __iter__(self) -> Iterator[ContentTypeDescriptor]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


def default_content_types() -> ContentTypeRegistry:
    """Build a registry with the built-in content types."""
    registry = ContentTypeRegistry()
    registry.register(
        ContentTypeDescriptor("post", "posts", "posts", "post", ("title", "date"))
    )
    registry.register(
        ContentTypeDescriptor("note", "notes", "notes", "post", ("title", "date"))
    )
    registry.register(ContentTypeDescriptor("project", "projects", "projects", "page"))
    registry.register(ContentTypeDescriptor("talk", "talks", "talks", "page"))
    registry.register(ContentTypeDescriptor("page", "pages", "", "page"))
    return registry
