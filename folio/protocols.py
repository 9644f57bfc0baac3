"""Protocol definitions for Folio.

This module defines the narrow contracts between the build core and the
services it consumes (Markdown conversion, front-matter decoding, template
rendering, filesystem notification) and the extension points it offers
(pipeline hooks, template blocks).

These protocols enable:
- Loose coupling between the core and its collaborators
- Easy testing through fake implementations
- Explicit, registry-based extension without implicit discovery
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .blocks import BlockContext
    from .config import SiteConfig
    from .content import ConvertedMarkdown
    from .pipeline import Stage
    from .watcher import ChangeEvent


@runtime_checkable
class Converter(Protocol):
    """Protocol for converting Markdown text to HTML."""

    @abstractmethod
    def convert(self, text: str) -> ConvertedMarkdown:
        """Convert Markdown to HTML.

        Args:
            text: Markdown source.

        Returns:
            ConvertedMarkdown with the HTML and collected headings.

        Raises:
            ConversionError: If conversion fails.
        """
        ...


@runtime_checkable
class FrontMatterParser(Protocol):
    """Protocol for splitting and decoding a front-matter block."""

    @abstractmethod
    def parse(self, text: str) -> tuple[dict[str, Any], str]:
        """Split text into a front-matter mapping and the remaining body.

        Args:
            text: Raw file content.

        Returns:
            Tuple of (front matter mapping, body text).

        Raises:
            FrontMatterDecodeError: If the block cannot be decoded.
        """
        ...


@runtime_checkable
class TemplateRenderer(Protocol):
    """Protocol for rendering a template identifier with assigns."""

    @abstractmethod
    def render(self, template_id: str, assigns: Mapping[str, Any]) -> str:
        """Render a template.

        Args:
            template_id: Identifier of the template to render.
            assigns: Variables available to the template.

        Returns:
            Rendered HTML.

        Raises:
            TemplateRenderError: If rendering fails.
        """
        ...


@runtime_checkable
class FileWatchSource(Protocol):
    """Protocol for a stream of filesystem change events."""

    @abstractmethod
    def subscribe(self, directories: Sequence[Path]) -> Iterator[ChangeEvent]:
        """Yield change events for the given directories.

        The stream ends after yielding an event whose kind is "stop".
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Ask the stream to emit its stop event and terminate."""
        ...


@runtime_checkable
class Hook(Protocol):
    """Protocol for objects registered as pipeline hooks.

    ``run`` receives the stage's input value and returns its replacement.
    Raising any exception marks the current document as failed.
    """

    stage: Stage

    @abstractmethod
    def run(self, value: Any, config: SiteConfig) -> Any:
        ...


@runtime_checkable
class Block(Protocol):
    """Protocol for a reusable template component."""

    name: str

    @abstractmethod
    def render(self, context: BlockContext, options: Mapping[str, Any]) -> str:
        """Render the block to an HTML string."""
        ...
