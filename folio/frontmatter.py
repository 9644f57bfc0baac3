"""YAML front-matter decoding for Folio.

A content file may start with a block delimited by ``---`` lines. The block
is decoded with PyYAML; everything after it is the document body.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

from .errors import FrontMatterDecodeError

FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
EMPTY_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n---[ \t]*(?:\r?\n|\Z)")


class YamlFrontMatterParser:
    """Splits a leading YAML block from the body.

    Example:
        >>> YamlFrontMatterParser().parse("---\\ntitle: Hi\\n---\\nBody")
        ({'title': 'Hi'}, 'Body')
    """

    def parse(self, text: str) -> tuple[dict[str, Any], str]:
        """Split text into a front-matter mapping and body.

        Args:
            text: Raw file content.

        Returns:
            Tuple of (front matter, body). Text without a block yields
            an empty mapping and the unchanged text.

        Raises:
            FrontMatterDecodeError: If the block is not valid YAML or does
                not decode to a mapping.
        """
        empty = EMPTY_FRONTMATTER_RE.match(text)
        if empty:
            return {}, text[empty.end() :]
        match = FRONTMATTER_RE.match(text)
        if not match:
            return {}, text
        try:
            data = yaml.safe_load(match.group(1))
        except yaml.YAMLError as exc:
            raise FrontMatterDecodeError(str(exc)) from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise FrontMatterDecodeError(
                f"expected a mapping, got {type(data).__name__}"
            )
        return {str(key): value for key, value in data.items()}, text[match.end() :]
