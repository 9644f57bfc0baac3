"""Folio static site generator.

This package turns a tree of Markdown content plus a Jinja2 theme into a
deployable tree of HTML/XML files. In development mode it keeps a live
preview in sync with edits on disk.

The main entry point is the CLI module, which provides commands for building
sites, running the development server and creating content files.

Architecture:
- Content is loaded into immutable documents through a staged pipeline with hooks.
- Layouts and assets resolve through a flattened theme inheritance chain.
- Collections (tags, categories, pagination, translations) are derived per build.
- The development server serializes rebuilds through a single-owner rebuilder.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
