"""Staged transformation pipeline for Folio.

Every document passes four fixed stages. Extension code registers hooks
for a stage; hooks run sequentially, lowest priority first, ties broken by
registration order. Each hook receives the stage value and the site
configuration and returns the replacement value.

Stage values:
    before_parse   RawDocument
    after_parse    Document
    before_render  Document
    after_render   (Document, html) tuple

A hook that raises marks the current document as failed: the exception is
wrapped in HookError and no further hooks or stages run for that document.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from .content import Document, RawDocument, from_raw
from .errors import HookError

if TYPE_CHECKING:
    from pathlib import Path

    from .config import SiteConfig
    from .content_types import ContentTypeDescriptor
    from .protocols import Converter, Hook

logger = logging.getLogger(__name__)

HookFn = Callable[[Any, "SiteConfig"], Any]


class Stage(str, Enum):
    BEFORE_PARSE = "before_parse"
    AFTER_PARSE = "after_parse"
    BEFORE_RENDER = "before_render"
    AFTER_RENDER = "after_render"


@dataclass(frozen=True)
class _Registration:
    priority: int
    sequence: int
    name: str
    fn: HookFn


class HookRegistry:
    """Ordered registry of pipeline hooks.

    Example:
        >>> hooks = HookRegistry()
        >>> hooks.register("after_parse", lambda doc, config: doc, name="noop")
        >>> [name for name in hooks.names(Stage.AFTER_PARSE)]
        ['noop']
    """

    def __init__(self):
        self._hooks: dict[Stage, list[_Registration]] = {stage: [] for stage in Stage}
        self._counter = itertools.count()

    def register(
        self,
        stage: Stage | str,
        fn: HookFn,
        priority: int = 0,
        name: str | None = None,
    ) -> None:
        """Register a hook function for a stage.

        Args:
            stage: Stage or its string value.
            fn: Callable taking (value, config) and returning the new value.
            priority: Lower values run first.
            name: Name used in error messages; defaults to the function name.

        Raises:
            ValueError: If the stage is unknown.
            TypeError: If fn is not callable or priority is not an integer.
        """
        try:
            resolved = Stage(stage)
        except ValueError:
            valid = ", ".join(s.value for s in Stage)
            raise ValueError(f"Unknown hook stage {stage!r}; expected one of {valid}") from None
        if not callable(fn):
            raise TypeError(f"Hook for {resolved.value} must be callable, got {fn!r}")
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise TypeError(f"Hook priority must be an integer, got {priority!r}")
        label = name or getattr(fn, "__qualname__", None) or repr(fn)
        entries = self._hooks[resolved]
        entries.append(_Registration(priority, next(self._counter), label, fn))
        entries.sort(key=lambda entry: (entry.priority, entry.sequence))

    def register_hook(self, hook: Hook) -> None:
        """Register an object exposing ``stage``, ``run`` and optional ``priority``."""
        self.register(
            hook.stage,
            hook.run,
            priority=getattr(hook, "priority", 0),
            name=type(hook).__name__,
        )

    def for_stage(self, stage: Stage | str) -> Iterator[tuple[str, HookFn]]:
        for entry in self._hooks[Stage(stage)]:
            yield entry.name, entry.fn

    def names(self, stage: Stage | str) -> list[str]:
        return [name for name, _ in self.for_stage(stage)]

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._hooks.values())


class Pipeline:
    """Runs hooks and parsing for one document at a time.

    Attributes:
        hooks: Hook registry consulted at every stage.
        converter: Markdown converter used by parsing.
    """

    def __init__(self, converter: Converter, hooks: HookRegistry | None = None):
        self.converter = converter
        self.hooks = hooks if hooks is not None else HookRegistry()

    def run_stage(
        self,
        stage: Stage,
        value: Any,
        config: SiteConfig,
        source_path: Path | None = None,
    ) -> Any:
        """Run every hook of a stage in order.

        Raises:
            HookError: If a hook raises or returns None.
        """
        for name, fn in self.hooks.for_stage(stage):
            try:
                result = fn(value, config)
                if result is None:
                    raise TypeError("hook returned None")
            except Exception as exc:
                logger.debug("Hook %s failed at %s for %s", name, stage.value, source_path)
                raise HookError(stage.value, name, exc, source_path) from exc
            value = result
        return value

    def parse(
        self, raw: RawDocument, descriptor: ContentTypeDescriptor, config: SiteConfig
    ) -> Document:
        """Run before_parse hooks, parse, then run after_parse hooks."""
        source_path = raw.path
        raw = self.run_stage(Stage.BEFORE_PARSE, raw, config, source_path)
        _expect(raw, RawDocument, Stage.BEFORE_PARSE, source_path)
        document = from_raw(raw, self.converter, descriptor, config)
        document = self.run_stage(Stage.AFTER_PARSE, document, config, source_path)
        _expect(document, Document, Stage.AFTER_PARSE, source_path)
        return document

    def before_render(self, document: Document, config: SiteConfig) -> Document:
        result = self.run_stage(
            Stage.BEFORE_RENDER, document, config, document.source_path
        )
        _expect(result, Document, Stage.BEFORE_RENDER, document.source_path)
        return result

    def after_render(
        self, document: Document, html: str, config: SiteConfig
    ) -> tuple[Document, str]:
        result = self.run_stage(
            Stage.AFTER_RENDER, (document, html), config, document.source_path
        )
        if (
            not isinstance(result, tuple)
            or len(result) != 2
            or not isinstance(result[1], str)
        ):
            raise HookError(
                Stage.AFTER_RENDER.value,
                "after_render",
                TypeError(f"expected (Document, html) tuple, got {type(result).__name__}"),
                document.source_path,
            )
        return result


def _expect(value: Any, kind: type, stage: Stage, source_path: Path | None = None) -> None:
    if not isinstance(value, kind):
        raise HookError(
            stage.value,
            stage.value,
            TypeError(f"expected {kind.__name__}, got {type(value).__name__}"),
            source_path,
        )
