"""Theme inheritance and layout resolution for Folio.

A theme is a directory under ``themes/`` with ``layouts/`` and ``assets/``
subdirectories. Themes inherit from a parent: the configured
``theme_parent`` first, then any ``parent:`` key declared in a theme's
``theme.yaml``. Every chain ends with the default theme shipped inside the
package::

    themes/my_theme/
    ├── theme.yaml        (optional: "parent: base_theme")
    ├── layouts/
    │   ├── post.html.jinja
    │   └── base.html.jinja
    └── assets/
        └── css/main.css

The chain is flattened once per theme configuration and memoized until a
``theme.yaml`` changes; layout lookups then search the flat list in order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from .errors import ConfigurationError, ThemeResolutionError

if TYPE_CHECKING:
    from .config import SiteConfig
    from .content import Document
    from .content_types import ContentTypeDescriptor

logger = logging.getLogger(__name__)

DEFAULT_THEME = "default"
DEFAULT_THEME_ROOT = Path(__file__).parent / "default_theme"
THEME_FILE = "theme.yaml"
LAYOUT_SUFFIXES = (".html.jinja", ".jinja", ".html", "")
FALLBACK_LAYOUT = "page"


@dataclass(frozen=True)
class ThemeChain:
    """Flattened theme inheritance chain, most specific theme first.

    Attributes:
        names: Theme names in lookup order.
        roots: Theme root directories, parallel to names.
    """

    names: tuple[str, ...]
    roots: tuple[Path, ...]

    @property
    def layout_dirs(self) -> list[Path]:
        return [root / "layouts" for root in self.roots if (root / "layouts").is_dir()]

    @property
    def asset_dirs(self) -> list[Path]:
        return [root / "assets" for root in self.roots if (root / "assets").is_dir()]


def _declared_parent(root: Path) -> str | None:
    theme_file = root / THEME_FILE
    if not theme_file.is_file():
        return None
    try:
        data = yaml.safe_load(theme_file.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read {theme_file}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{theme_file} must contain a mapping")
    parent = data.get("parent")
    return str(parent) if parent else None


def _theme_files_stamp(themes_dir: Path) -> tuple[tuple[str, int, int], ...]:
    stamp = []
    if themes_dir.is_dir():
        for theme_file in sorted(themes_dir.glob(f"*/{THEME_FILE}")):
            stat = theme_file.stat()
            stamp.append((theme_file.parent.name, stat.st_mtime_ns, stat.st_size))
    return tuple(stamp)


def resolve_theme_chain(
    themes_dir: Path,
    theme: str,
    parent: str = DEFAULT_THEME,
    default_root: Path = DEFAULT_THEME_ROOT,
) -> ThemeChain:
    """Flatten the inheritance chain for a theme.

    Args:
        themes_dir: Directory holding custom themes.
        theme: Active theme name.
        parent: Explicit parent of the active theme.
        default_root: Root of the built-in default theme.

    Returns:
        ThemeChain ending with the default theme.

    Raises:
        ConfigurationError: If a named theme does not exist or the parent
            links form a cycle.
    """
    return _flatten_chain(
        themes_dir, theme, parent, default_root, _theme_files_stamp(themes_dir)
    )


@lru_cache(maxsize=32)
def _flatten_chain(
    themes_dir: Path,
    theme: str,
    parent: str,
    default_root: Path,
    stamp: tuple[tuple[str, int, int], ...],
) -> ThemeChain:
    # stamp only keys the cache; editing any theme.yaml invalidates it.
    names: list[str] = []
    roots: list[Path] = []
    current: str | None = theme
    explicit = parent if parent not in (DEFAULT_THEME, theme) else None

    while current and current != DEFAULT_THEME:
        if current in names:
            cycle = " -> ".join([*names, current])
            raise ConfigurationError(f"Theme inheritance cycle: {cycle}")
        root = themes_dir / current
        if not root.is_dir():
            raise ConfigurationError(f"Theme '{current}' not found in {themes_dir}")
        names.append(current)
        roots.append(root)
        if explicit is not None:
            current, explicit = explicit, None
        else:
            current = _declared_parent(root)

    names.append(DEFAULT_THEME)
    roots.append(default_root)
    logger.debug("Theme chain resolved: %s", " -> ".join(names))
    return ThemeChain(tuple(names), tuple(roots))


def theme_chain_for(config: SiteConfig) -> ThemeChain:
    """Return the memoized theme chain for a site configuration."""
    return resolve_theme_chain(
        config.themes_path.resolve(), config.theme, config.theme_parent
    )


class ThemeResolver:
    """Resolves layout and asset names through a ThemeChain.

    Results, successful or not, are memoized for the lifetime of the
    resolver; the orchestrator creates one resolver per build.
    """

    def __init__(self, chain: ThemeChain):
        self.chain = chain
        self._layouts: dict[str, tuple[Path, Path] | None] = {}
        self._assets: dict[str, Path | None] = {}

    def _find_layout(self, name: str) -> tuple[Path, Path] | None:
        if not name or ".." in Path(name).parts or Path(name).is_absolute():
            return None
        for layout_dir in self.chain.layout_dirs:
            for suffix in LAYOUT_SUFFIXES:
                candidate = layout_dir / f"{name}{suffix}"
                if candidate.is_file():
                    return layout_dir, candidate
        return None

    def resolve_layout(self, name: str) -> Path:
        """Return the path of the first layout file matching name.

        Raises:
            ThemeResolutionError: If no theme in the chain provides it.
        """
        if name not in self._layouts:
            self._layouts[name] = self._find_layout(name)
        found = self._layouts[name]
        if found is None:
            raise ThemeResolutionError(name, self.chain.names)
        return found[1]

    def template_id(self, name: str) -> str:
        """Return the template loader identifier of a layout.

        Raises:
            ThemeResolutionError: If no theme in the chain provides it.
        """
        path = self.resolve_layout(name)
        layout_dir = self._layouts[name][0]
        return path.relative_to(layout_dir).as_posix()

    def resolve_asset(self, name: str) -> Path:
        """Return the path of the first asset file matching name.

        Raises:
            ThemeResolutionError: If no theme in the chain provides it.
        """
        if name not in self._assets:
            found = None
            relative = Path(name.lstrip("/"))
            if ".." not in relative.parts:
                for asset_dir in self.chain.asset_dirs:
                    candidate = asset_dir / relative
                    if candidate.is_file():
                        found = candidate
                        break
            self._assets[name] = found
        result = self._assets[name]
        if result is None:
            raise ThemeResolutionError(name, self.chain.names)
        return result

    def has_asset(self, name: str) -> bool:
        try:
            self.resolve_asset(name)
        except ThemeResolutionError:
            return False
        return True

    @staticmethod
    def layout_name(document: Document, descriptor: ContentTypeDescriptor | None) -> str:
        """Pick a document's layout: front matter, then content type, then "page"."""
        if document.layout:
            return document.layout
        if descriptor is not None and descriptor.default_layout:
            return descriptor.default_layout
        return FALLBACK_LAYOUT
