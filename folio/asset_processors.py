"""Asset processors for Folio.

Each processor handles one kind of static file and writes its result with
an atomic rename, so the preview server never serves a half-written asset.

Key classes:
- ImageProcessor: Re-encodes raster images with Pillow's optimizer.
- JSProcessor: Minifies JavaScript with rjsmin.
- StaticAssetProcessor: Copies any other file unchanged.
- AssetProcessorRegistry: Picks the processor for a file by priority.
- TailwindCSSProcessor: Post-build Tailwind CLI run over the theme's main.css.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from rjsmin import jsmin

from .utils import atomic_copy, atomic_write

logger = logging.getLogger(__name__)


def find_executable(name: str, project_root: Path | None = None) -> str | None:
    """Return the path of a tool from PATH, else from ``node_modules/.bin``."""
    found = shutil.which(name)
    if found or project_root is None:
        return found
    local = project_root / "node_modules" / ".bin" / name
    return str(local) if local.exists() else None


class BaseAssetProcessor(ABC):
    """Base class for asset processors."""

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> None:
        """Write the processed asset to dest.

        Raises:
            OSError: If the source cannot be read or dest cannot be written.
        """
        ...


class ImageProcessor(BaseAssetProcessor):
    """Optimizes PNG, JPEG and WebP images with Pillow.

    Files Pillow cannot decode are copied unchanged.
    """

    SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

    @property
    def priority(self) -> int:
        return 100

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def process(self, source: Path, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
        os.close(fd)
        try:
            with Image.open(source) as img:
                img.save(tmp_name, format=img.format, optimize=True)
            os.replace(tmp_name, dest)
        except (UnidentifiedImageError, ValueError, OSError) as exc:
            Path(tmp_name).unlink(missing_ok=True)
            logger.debug("Copying %s unoptimized: %s", source, exc)
            atomic_copy(source, dest)


class JSProcessor(BaseAssetProcessor):
    """Minifies JavaScript with rjsmin; ``*.min.js`` files are copied as-is."""

    @property
    def priority(self) -> int:
        return 80

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".js" and not path.name.endswith(".min.js")

    def process(self, source: Path, dest: Path) -> None:
        try:
            with open(source, encoding="utf-8") as f_in:
                minified = jsmin(f_in.read())
        except UnicodeDecodeError:
            atomic_copy(source, dest)
            return
        atomic_write(dest, minified)


class StaticAssetProcessor(BaseAssetProcessor):
    """Copies files that need no processing (CSS, fonts, SVGs...)."""

    @property
    def priority(self) -> int:
        return 0  # Lowest priority - fallback

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, dest: Path) -> None:
        atomic_copy(source, dest)


class AssetProcessorRegistry:
    """Registry for managing asset processors.

    Processors are consulted highest priority first; the first one that
    accepts a file processes it.
    """

    def __init__(self):
        self._processors: list[BaseAssetProcessor] = []

    def register(self, processor: BaseAssetProcessor) -> None:
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset using the appropriate processor.

        Returns:
            True if a processor handled the file, False if none matched.
        """
        processor = self.get_processor(source)
        if processor is None:
            return False
        processor.process(source, dest)
        return True


def create_default_registry() -> AssetProcessorRegistry:
    registry = AssetProcessorRegistry()
    registry.register(ImageProcessor())
    registry.register(JSProcessor())
    registry.register(StaticAssetProcessor())
    return registry


class TailwindCSSProcessor:
    """Compiles the theme's ``css/main.css`` with the Tailwind CLI.

    Runs after the build has written its output so Tailwind can scan the
    rendered HTML for class names. The compiled stylesheet replaces the
    copied one through an atomic rename. A missing CLI or a failing run
    leaves the copied stylesheet in place.
    """

    def __init__(self, project_root: Path, output_dir: Path):
        self.project_root = project_root
        self.output_dir = output_dir

    def process(self, source: Path, dest: Path) -> bool:
        """Compile source into dest.

        Returns:
            True if Tailwind produced the stylesheet.
        """
        tailwind_bin = find_executable("tailwindcss", self.project_root)
        if not tailwind_bin:
            logger.debug("Tailwind CSS CLI not found; keeping unprocessed %s", dest)
            return False

        content_globs = [
            str(self.output_dir / "**" / "*.html"),
            str(self.output_dir / "**" / "*.js"),
        ]
        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
        os.close(fd)
        cmd = [
            tailwind_bin,
            "-i",
            str(source),
            "-o",
            tmp_name,
            "--minify",
            "--content",
            ",".join(content_globs),
        ]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, cwd=self.project_root
            )
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            logger.warning("Tailwind build failed to start: %s", exc)
            return False
        if result.returncode != 0:
            Path(tmp_name).unlink(missing_ok=True)
            logger.warning("Tailwind build failed: %s", result.stderr.strip())
            return False
        os.replace(tmp_name, dest)
        return True
