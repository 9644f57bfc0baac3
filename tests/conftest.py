from pathlib import Path

import pytest

from folio.config import load_config

DEFAULT_CONFIG = "title: Test Site\nbase_url: https://example.com\n"


@pytest.fixture(autouse=True)
def no_tailwind(monkeypatch):
    # Keep builds independent of a globally installed Tailwind CLI.
    monkeypatch.setattr(
        "folio.asset_processors.find_executable", lambda name, project_root=None: None
    )


@pytest.fixture
def make_site(tmp_path):
    """Return a factory writing folio.yaml and content files under tmp_path."""

    def _make(files=None, config=DEFAULT_CONFIG) -> Path:
        (tmp_path / "folio.yaml").write_text(config, encoding="utf-8")
        (tmp_path / "content").mkdir(exist_ok=True)
        for rel, text in (files or {}).items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return tmp_path

    return _make


@pytest.fixture
def config(make_site):
    return load_config(make_site())
