"""Site configuration for Folio.

Configuration is resolved from three layers (lowest to highest priority):

1. Built-in defaults (DEFAULT_CONFIG)
2. The project's folio.yaml
3. Runtime overrides passed by the caller (CLI flags, tests)

The result is an immutable SiteConfig that is passed explicitly to every
component that needs it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

CONFIG_FILENAME = "folio.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "title": "My Site",
    "description": "",
    "author": None,
    "base_url": "http://localhost:4000",
    "content_dir": "content",
    "output_dir": "output",
    "static_dir": "static",
    "themes_dir": "themes",
    "theme": "default",
    "theme_parent": "default",
    "default_lang": "en",
    "languages": {"en": {"name": "English"}},
    "drafts": False,
    "posts_per_page": 10,
    "port": 4000,
    "post_build": [],
}


@dataclass(frozen=True)
class SiteConfig:
    """Resolved site configuration.

    Attributes:
        project_root: Directory containing folio.yaml and the content tree.
        title: Site title.
        description: Site description used in feeds and meta tags.
        author: Default author name for feeds.
        base_url: Absolute URL the site is deployed at.
        content_dir: Content directory, relative to project_root.
        output_dir: Output directory, relative to project_root (or absolute).
        static_dir: Directory of files copied verbatim into the output.
        themes_dir: Directory holding custom themes.
        theme: Active theme name.
        theme_parent: Explicit parent theme name.
        default_lang: Language code of unprefixed content.
        languages: Mapping of language code to options (``name`` etc.).
        drafts: Whether draft documents are written.
        posts_per_page: Page size for paginated index pages.
        port: Development server port.
        post_build: Shell commands run after every build.
        extra: Unrecognized folio.yaml keys, available to templates.
    """

    project_root: Path
    title: str = DEFAULT_CONFIG["title"]
    description: str = DEFAULT_CONFIG["description"]
    author: str | None = DEFAULT_CONFIG["author"]
    base_url: str = DEFAULT_CONFIG["base_url"]
    content_dir: str = DEFAULT_CONFIG["content_dir"]
    output_dir: str = DEFAULT_CONFIG["output_dir"]
    static_dir: str = DEFAULT_CONFIG["static_dir"]
    themes_dir: str = DEFAULT_CONFIG["themes_dir"]
    theme: str = DEFAULT_CONFIG["theme"]
    theme_parent: str = DEFAULT_CONFIG["theme_parent"]
    default_lang: str = DEFAULT_CONFIG["default_lang"]
    languages: dict[str, dict[str, Any]] = field(
        default_factory=lambda: {"en": {"name": "English"}}
    )
    drafts: bool = DEFAULT_CONFIG["drafts"]
    posts_per_page: int = DEFAULT_CONFIG["posts_per_page"]
    port: int = DEFAULT_CONFIG["port"]
    post_build: tuple[str, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def content_path(self) -> Path:
        return self.project_root / self.content_dir

    @property
    def output_path(self) -> Path:
        return self.project_root / self.output_dir

    @property
    def static_path(self) -> Path:
        return self.project_root / self.static_dir

    @property
    def themes_path(self) -> Path:
        return self.project_root / self.themes_dir

    @property
    def language_codes(self) -> tuple[str, ...]:
        codes = tuple(self.languages)
        if self.default_lang not in codes:
            codes = (self.default_lang, *codes)
        return codes

    def language_name(self, code: str) -> str:
        options = self.languages.get(code) or {}
        return str(options.get("name") or code.upper())

    def parsing_signature(self) -> tuple:
        """Return the settings whose change invalidates every cached document."""
        return (
            self.theme,
            self.theme_parent,
            self.default_lang,
            tuple(sorted(self.languages)),
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a setting by name, falling back to extra keys."""
        if key in _FIELD_NAMES:
            return getattr(self, key)
        return self.extra.get(key, default)


_FIELD_NAMES = {f.name for f in fields(SiteConfig)} - {"extra", "project_root"}


def read_config_file(project_root: Path) -> dict[str, Any]:
    """Read folio.yaml from the project root.

    Args:
        project_root: Root directory of the project.

    Returns:
        The decoded mapping, or an empty dict if no file exists.

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping.
    """
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read {config_path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")
    return loaded


def load_config(project_root: Path, **overrides: Any) -> SiteConfig:
    """Load site configuration with defaults and overrides applied.

    Args:
        project_root: Root directory of the project.
        **overrides: Values that take precedence over folio.yaml.
            ``None`` values are ignored.

    Returns:
        Resolved SiteConfig.

    Raises:
        ConfigurationError: If a value has the wrong shape.
    """
    merged: dict[str, Any] = dict(DEFAULT_CONFIG)
    merged.update(read_config_file(project_root))
    merged.update({k: v for k, v in overrides.items() if v is not None})

    known = {k: v for k, v in merged.items() if k in _FIELD_NAMES}
    extra = {k: v for k, v in merged.items() if k not in _FIELD_NAMES}

    known["languages"] = _normalize_languages(known.get("languages"))
    known["default_lang"] = str(known["default_lang"])
    known["post_build"] = _normalize_commands(known.get("post_build"))
    try:
        known["posts_per_page"] = int(known["posts_per_page"])
        known["port"] = int(known["port"])
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc
    if known["posts_per_page"] <= 0:
        raise ConfigurationError("posts_per_page must be a positive integer")
    known["drafts"] = bool(known["drafts"])

    return SiteConfig(project_root=project_root, extra=extra, **known)


def validate_paths(config: SiteConfig) -> None:
    """Check the directories a build depends on.

    Raises:
        ConfigurationError: If the content root is missing or unreadable,
            or the output path would clobber content.
    """
    content = config.content_path.resolve()
    output = config.output_path.resolve()
    if not content.is_dir():
        raise ConfigurationError(f"Expected content directory at {content}")
    try:
        next(content.iterdir(), None)
    except OSError as exc:
        raise ConfigurationError(f"Content directory {content} is unreadable: {exc}") from exc
    if output == content or content.is_relative_to(output):
        raise ConfigurationError(
            f"Output directory {output} would overwrite content directory {content}"
        )
    if output.exists() and not output.is_dir():
        raise ConfigurationError(f"Output path {output} is not a directory")


def _normalize_languages(value: Any) -> dict[str, dict[str, Any]]:
    if value is None:
        return {"en": {"name": "English"}}
    if isinstance(value, list):
        return {str(code): {"name": str(code).upper()} for code in value}
    if not isinstance(value, dict):
        raise ConfigurationError("languages must be a mapping of code to options")
    languages: dict[str, dict[str, Any]] = {}
    for code, options in value.items():
        if options is None:
            options = {}
        elif isinstance(options, str):
            options = {"name": options}
        elif not isinstance(options, dict):
            raise ConfigurationError(f"Options for language '{code}' must be a mapping")
        languages[str(code)] = dict(options)
    return languages


def _normalize_commands(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list):
        raise ConfigurationError("post_build must be a list of commands")
    return tuple(str(cmd) for cmd in value)
