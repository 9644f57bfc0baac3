"""Static asset copying and post-build tooling for Folio.

Assets come from two places:

1. ``assets/`` of every theme in the chain, copied to ``output/assets/``.
   Parents are copied first so a child theme's file wins.
2. The project's static directory, copied verbatim to the output root.

Every destination is written once, by the processor registered for its
file type. After the output tree is complete, post-build tooling runs: the
Tailwind CLI over the theme's ``css/main.css`` and any shell commands listed
in ``post_build``. Tooling failures are logged and never fail the build.

Key components:
- AssetPipeline: Collects and processes static assets.
- run_post_build: Runs Tailwind and configured commands.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from .asset_processors import (
    AssetProcessorRegistry,
    TailwindCSSProcessor,
    create_default_registry,
)
from .errors import FileIOError
from .utils import is_internal_path

if TYPE_CHECKING:
    from .config import SiteConfig
    from .themes import ThemeChain

logger = logging.getLogger(__name__)

TAILWIND_ENTRY = Path("css") / "main.css"


def _iter_files(root: Path):
    for item in sorted(root.rglob("*")):
        if item.is_file() and not is_internal_path(item.relative_to(root)):
            yield item


class AssetPipeline:
    """Copies theme and static assets into the output directory.

    Attributes:
        config: Site configuration.
        chain: Theme chain providing ``assets/`` directories.
        processor_registry: Registry of asset processors.
    """

    def __init__(
        self,
        config: SiteConfig,
        chain: ThemeChain,
        processor_registry: AssetProcessorRegistry | None = None,
    ):
        self.config = config
        self.chain = chain
        self.processor_registry = processor_registry or create_default_registry()

    def plan(self, output_dir: Path) -> dict[Path, Path]:
        """Map each destination file to the source that provides it."""
        plan: dict[Path, Path] = {}
        target = output_dir / "assets"
        for assets_dir in reversed(self.chain.asset_dirs):
            for item in _iter_files(assets_dir):
                plan[target / item.relative_to(assets_dir)] = item
        static_dir = self.config.static_path
        if static_dir.is_dir():
            for item in _iter_files(static_dir):
                plan[output_dir / item.relative_to(static_dir)] = item
        return plan

    def run(
        self,
        output_dir: Path,
        reserved: set[Path] | None = None,
        errors: list[FileIOError] | None = None,
    ) -> list[Path]:
        """Process every planned asset.

        Args:
            output_dir: Output root.
            reserved: Resolved destinations already written by the build;
                static files never overwrite them.
            errors: List receiving a FileIOError for every asset that could
                not be copied. The remaining assets are still processed.

        Returns:
            Destinations that were written.
        """
        reserved = reserved or set()
        written: list[Path] = []
        for dest, source in self.plan(output_dir).items():
            if dest.resolve() in reserved:
                logger.warning("Static file %s collides with a generated page; skipped", source)
                continue
            try:
                processed = self.processor_registry.process(source, dest)
            except OSError as exc:
                error = FileIOError(f"cannot copy asset to {dest}: {exc.strerror or exc}", source)
                logger.warning("%s", error)
                if errors is not None:
                    errors.append(error)
                continue
            if processed:
                written.append(dest)
        return written


def run_post_build(config: SiteConfig, chain: ThemeChain, output_dir: Path) -> None:
    """Run Tailwind over the theme stylesheet and configured commands."""
    for assets_dir in chain.asset_dirs:
        source = assets_dir / TAILWIND_ENTRY
        if source.is_file():
            TailwindCSSProcessor(config.project_root, output_dir).process(
                source, output_dir / "assets" / TAILWIND_ENTRY
            )
            break

    for command in config.post_build:
        logger.info("Running post-build command: %s", command)
        try:
            result = subprocess.run(
                command,
                shell=True,
                cwd=config.project_root,
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            logger.warning("Post-build command %r failed to start: %s", command, exc)
            continue
        if result.returncode != 0:
            logger.warning(
                "Post-build command %r exited with %d: %s",
                command,
                result.returncode,
                result.stderr.strip(),
            )
