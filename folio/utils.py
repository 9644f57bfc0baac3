"""Utility functions for Folio.

This module contains small helpers used throughout the Folio codebase:
string processing, filename handling, date extraction and file output.

Key functions:
    slugify: Convert arbitrary text to a URL slug.
    slug_from_filename: Derive a slug from a content filename.
    titleize: Convert filenames to human-readable titles.
    extract_date_from_name: Extract date from filename prefix.
    strip_date_prefix: Drop a YYYY-MM-DD- prefix from a filename stem.
    is_markdown: Check if a path is a Markdown file.
    is_internal_path: Check for _-prefixed or hidden path components.
    fingerprint: Content hash used by the build cache.
    atomic_write: Write a file so readers never see partial content.
"""

from __future__ import annotations

import hashlib
import os
import re
import shutil
import tempfile
import unicodedata
from datetime import date
from pathlib import Path

DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-(.+)$")
TAG_RE = re.compile(r"<[^>]+>")
# Letters NFKD leaves without an ASCII base.
ASCII_FOLDS = str.maketrans(
    {
        "ı": "i",
        "ß": "ss",
        "æ": "ae",
        "Æ": "AE",
        "ø": "o",
        "Ø": "O",
        "ł": "l",
        "Ł": "L",
        "đ": "d",
        "Đ": "D",
    }
)


def slugify(text: str) -> str:
    """Convert text to a URL-safe slug.

    Non-ASCII letters are folded to their ASCII base, every run of other
    characters becomes a single hyphen. The function is idempotent:
    ``slugify(slugify(x)) == slugify(x)``.

    Args:
        text: Text to convert.

    Returns:
        Lowercase slug, or "index" when nothing usable remains.

    Examples:
        >>> slugify("Hello, World!")
        'hello-world'

        >>> slugify("Türkçe Yazı")
        'turkce-yazi'
    """
    folded = unicodedata.normalize("NFKD", str(text).translate(ASCII_FOLDS))
    folded = folded.encode("ascii", "ignore").decode("ascii")
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", folded)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def strip_date_prefix(name: str) -> str:
    """Remove a leading YYYY-MM-DD- prefix from a filename stem.

    Examples:
        >>> strip_date_prefix("2024-01-15-hello-world")
        'hello-world'

        >>> strip_date_prefix("about")
        'about'
    """
    match = DATE_PREFIX_RE.match(name)
    return match.group(4) if match else name


def slug_from_filename(filename: str) -> str:
    """Derive a slug from a content filename.

    Strips the extension and any date prefix, then slugifies.

    Examples:
        >>> slug_from_filename("2024-01-15-Hello-World.md")
        'hello-world'
    """
    return slugify(strip_date_prefix(Path(filename).stem))


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'

        >>> titleize("getting-started.md")
        'Getting Started'
    """
    base = strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def extract_date_from_name(name: str) -> date | None:
    """Extract a date from a filename with YYYY-MM-DD prefix.

    Args:
        name: Filename stem (without extension).

    Returns:
        date object if a valid date prefix is found, None otherwise.

    Examples:
        >>> extract_date_from_name("2024-01-15-hello-world")
        datetime.date(2024, 1, 15)

        >>> extract_date_from_name("hello-world")
    """
    match = DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def strip_tags(html: str) -> str:
    """Replace HTML tags with spaces and collapse whitespace."""
    return " ".join(TAG_RE.sub(" ", html).split())


def first_paragraph(html: str, limit: int = 160) -> str:
    """Extract the text of the first <p> element, truncated to limit."""
    match = re.search(r"<p[^>]*>(.*?)</p>", html, re.DOTALL | re.IGNORECASE)
    text = strip_tags(match.group(1) if match else html)
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def reading_time(html: str, words_per_minute: int = 200) -> int:
    """Estimate reading time in minutes (at least 1) from HTML."""
    words = len(strip_tags(html).split())
    return max(1, words // words_per_minute)


def is_internal_path(path: Path) -> bool:
    """Check if a path is internal (a component starts with _ or .).

    Args:
        path: Path to check.

    Returns:
        True if any path component starts with an underscore or a dot.
    """
    return any(part.startswith(("_", ".")) for part in path.parts)


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file.

    Args:
        path: Path to check.

    Returns:
        True if the file has .md extension (case-insensitive).
    """
    return path.suffix.lower() == ".md"


def fingerprint(data: bytes) -> str:
    """Return the SHA-256 hex digest of data."""
    return hashlib.sha256(data).hexdigest()


def atomic_write(path: Path, data: str | bytes) -> None:
    """Write data to path through a temp file and an atomic rename.

    Readers either see the previous file or the complete new one.

    Args:
        path: Destination file.
        data: Text (written as UTF-8) or bytes.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = data.encode("utf-8") if isinstance(data, str) else data
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def atomic_copy(source: Path, dest: Path) -> None:
    """Copy a file into place with an atomic rename."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
    os.close(fd)
    try:
        shutil.copy2(source, tmp_name)
        os.replace(tmp_name, dest)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def prune_stale_files(root: Path, keep: set[Path]) -> list[Path]:
    """Delete files under root that are not in keep, then empty directories.

    Args:
        root: Output directory.
        keep: Resolved paths written by the current build.

    Returns:
        Paths that were removed.
    """
    removed: list[Path] = []
    if not root.exists():
        return removed
    for item in root.rglob("*"):
        if item.is_file() and item.resolve() not in keep:
            item.unlink()
            removed.append(item)
    for item in sorted((p for p in root.rglob("*") if p.is_dir()), reverse=True):
        if not any(item.iterdir()):
            item.rmdir()
    return removed
