"""Language helpers for Folio.

Content in a non-default language lives in a language subdirectory of its
content type (``content/posts/tr/merhaba.md``) and is published under a
language prefix (``/tr/posts/merhaba/``). The default language has no prefix.

UI strings used by themes and blocks are looked up with ``translate``:

1. ``languages.<lang>.translations`` in folio.yaml
2. ``languages.<default_lang>.translations`` in folio.yaml
3. the catalog shipped for the language (``translations/<lang>.yml``)
4. the catalog shipped for the default language
5. the key itself

Any other key under ``languages.<lang>`` (``title``, ``description``...)
overrides the site setting of the same name for pages in that language.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from .config import SiteConfig

logger = logging.getLogger(__name__)

RTL_LANGUAGES = frozenset({"ar", "he", "fa", "ur"})
TRANSLATIONS_DIR = Path(__file__).parent / "translations"
LOCALIZED_FIELDS = frozenset({"title", "description", "author"})
_LANGUAGE_ONLY_KEYS = frozenset({"name", "translations"})


def is_language_dir(name: str, config: SiteConfig) -> bool:
    """Check whether a directory name selects a non-default language."""
    return name in config.languages and name != config.default_lang


def language_prefix(lang: str, config: SiteConfig) -> str:
    """Return the URL prefix for a language ("" for the default language)."""
    return "" if lang == config.default_lang else lang


def text_direction(lang: str) -> str:
    """Return "rtl" for right-to-left languages and "ltr" otherwise."""
    return "rtl" if lang in RTL_LANGUAGES else "ltr"


def prefixed_path(lang: str, path: str, config: SiteConfig) -> str:
    """Prefix a site-relative URL path with the language segment.

    ``"/tags/elixir/"`` becomes ``"/tr/tags/elixir/"`` for Turkish content and
    stays unchanged for the default language.
    """
    prefix = language_prefix(lang, config)
    trimmed = path if path.startswith("/") else f"/{path}"
    return f"/{prefix}{trimmed}" if prefix else trimmed


@lru_cache(maxsize=None)
def load_catalog(lang: str) -> dict[str, Any]:
    """Load the UI strings shipped for a language; {} when none exist."""
    path = TRANSLATIONS_DIR / f"{lang}.yml"
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Cannot read translations %s: %s", path, exc)
        return {}
    return {str(key): value for key, value in data.items()} if isinstance(data, dict) else {}


def _configured_strings(lang: str, config: SiteConfig) -> Mapping[str, Any]:
    options = config.languages.get(lang) or {}
    strings = options.get("translations")
    return strings if isinstance(strings, Mapping) else {}


def _lookup(key: str, lang: str, config: SiteConfig) -> Any:
    default = config.default_lang
    for source in (
        _configured_strings(lang, config),
        _configured_strings(default, config),
        load_catalog(lang),
        load_catalog(default),
    ):
        if key in source:
            return source[key]
    return None


def translate(
    key: str,
    lang: str,
    config: SiteConfig,
    default: str | None = None,
    **bindings: Any,
) -> str:
    """Translate a UI string key.

    A value holding ``one``/``other`` forms is pluralized with the ``count``
    binding. ``{name}`` placeholders are replaced by the matching binding.

    Examples:
        >>> translate("related_posts", "en", SiteConfig(Path(".")))
        'Related Posts'

        >>> translate("posts_count", "en", SiteConfig(Path(".")), count=1)
        '1 post'

        >>> translate("no_such_key", "en", SiteConfig(Path(".")))
        'no_such_key'
    """
    value = _lookup(key, lang, config)
    if value is None:
        value = key if default is None else default
    if isinstance(value, Mapping):
        count = bindings.get("count")
        form = "one" if count == 1 and "one" in value else "other"
        value = value.get(form, "")
    text = str(value)
    for name, bound in bindings.items():
        text = text.replace("{" + name + "}", str(bound))
    return text


def translator(lang: str, config: SiteConfig) -> Callable[..., str]:
    """Return ``t(key, **bindings)`` bound to one language, for templates."""

    def t(key: str, default: str | None = None, **bindings: Any) -> str:
        return translate(key, lang, config, default, **bindings)

    return t


def resolve_site_config(config: SiteConfig, lang: str) -> SiteConfig:
    """Apply the per-language overrides of ``languages.<lang>``.

    Example:
        ``languages: {tr: {name: Türkçe, title: Blogum}}`` gives Turkish pages
        the title "Blogum"; other languages keep the site title.
    """
    options = config.languages.get(lang) or {}
    overrides = {k: v for k, v in options.items() if k not in _LANGUAGE_ONLY_KEYS}
    if not overrides:
        return config
    known = {k: v for k, v in overrides.items() if k in LOCALIZED_FIELDS}
    extra = {k: v for k, v in overrides.items() if k not in LOCALIZED_FIELDS}
    return dataclasses.replace(config, **known, extra={**config.extra, **extra})
