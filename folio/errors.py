"""Error taxonomy for Folio.

Two families of errors exist:

- ConfigurationError aborts a whole build before any document is processed.
- DocumentError (and its subclasses) is scoped to one source file. The build
  records it in BuildResult.failures and keeps going with every other document.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class FolioError(Exception):
    """Base class for all errors raised by Folio."""


class ConfigurationError(FolioError):
    """Site configuration is unusable; the build cannot start."""


class DocumentError(FolioError):
    """Error scoped to a single content document.

    Attributes:
        source_path: Path of the offending source file, when known.
        message: Human-readable error message.
    """

    def __init__(self, message: str, source_path: Path | None = None):
        self.message = message
        self.source_path = source_path
        super().__init__(message)

    def __str__(self) -> str:
        if self.source_path is not None:
            return f"{self.source_path}: {self.message}"
        return self.message


class MissingRequiredField(DocumentError):
    """A required front-matter field is absent or empty."""

    def __init__(self, field: str, source_path: Path | None = None):
        self.field = field
        super().__init__(f"missing required field '{field}'", source_path)


class FrontMatterDecodeError(DocumentError):
    """The front-matter block could not be decoded into a mapping."""

    def __init__(self, reason: str, source_path: Path | None = None):
        self.reason = reason
        super().__init__(f"invalid front matter: {reason}", source_path)


class ConversionError(DocumentError):
    """The Markdown converter failed."""


class TemplateRenderError(DocumentError):
    """A template raised while rendering.

    Attributes:
        template: Identifier of the template that failed.
    """

    def __init__(
        self, template: str, reason: str, source_path: Path | None = None
    ):
        self.template = template
        self.reason = reason
        super().__init__(f"template '{template}' failed: {reason}", source_path)


class HookError(DocumentError):
    """A pipeline hook failed.

    Attributes:
        stage: Name of the pipeline stage the hook was registered for.
        hook: Name of the failing hook.
        cause: The exception raised by the hook.
    """

    def __init__(
        self,
        stage: str,
        hook: str,
        cause: BaseException,
        source_path: Path | None = None,
    ):
        self.stage = stage
        self.hook = hook
        self.cause = cause
        super().__init__(
            f"hook '{hook}' failed at {stage}: {type(cause).__name__}: {cause}",
            source_path,
        )


class ThemeResolutionError(DocumentError):
    """No theme in the chain provides the requested layout or asset.

    Attributes:
        layout: Requested resource name.
        chain: Theme names that were searched, in order.
    """

    def __init__(
        self,
        layout: str,
        chain: Sequence[str],
        source_path: Path | None = None,
    ):
        self.layout = layout
        self.chain = tuple(chain)
        searched = " -> ".join(self.chain)
        super().__init__(
            f"layout '{layout}' not found in theme chain [{searched}]", source_path
        )


class SlugCollisionError(DocumentError):
    """Two documents of the same type and language share a slug."""

    def __init__(
        self,
        slug: str,
        content_type: str,
        lang: str,
        existing_path: Path | None,
        source_path: Path | None = None,
    ):
        self.slug = slug
        self.content_type = content_type
        self.lang = lang
        self.existing_path = existing_path
        super().__init__(
            f"slug '{slug}' ({content_type}, {lang}) already used by {existing_path}",
            source_path,
        )


class FileIOError(DocumentError):
    """Reading a source file or writing an output file failed."""
