import pytest

from folio.config import load_config
from folio.i18n import (
    load_catalog,
    prefixed_path,
    resolve_site_config,
    text_direction,
    translate,
    translator,
)


@pytest.fixture
def bilingual(tmp_path):
    return load_config(
        tmp_path,
        title="My Blog",
        languages={
            "en": {"name": "English", "translations": {"home": "Start"}},
            "tr": {"name": "Türkçe", "title": "Blogum", "tagline": "Merhaba"},
            "de": {"name": "Deutsch"},
        },
    )


def test_shipped_catalogs_cover_the_same_keys():
    assert set(load_catalog("en")) == set(load_catalog("tr"))
    assert load_catalog("xx") == {}


def test_translate_lookup_order(bilingual):
    # Configured strings beat every catalog, for the default language too.
    assert translate("home", "en", bilingual) == "Start"
    assert translate("home", "de", bilingual) == "Start"
    assert translate("older", "tr", bilingual) == "Daha Eski"
    assert translate("older", "de", bilingual) == "Older"
    assert translate("missing", "tr", bilingual) == "missing"
    assert translate("missing", "tr", bilingual, default="Fallback") == "Fallback"


def test_translate_bindings_and_plurals(config):
    assert translate("page_of", "en", config, number=2, total=5) == "Page 2 of 5"
    assert translate("posts_count", "en", config, count=1) == "1 post"
    assert translate("posts_count", "en", config, count=3) == "3 posts"
    assert translate("posts_count", "en", config, count=0) == "0 posts"
    assert translate("tagged", "tr", config, term="elixir") == "Etiket: elixir"


def test_translator_binds_language(bilingual):
    t = translator("tr", bilingual)
    assert t("related_posts") == "İlgili Yazılar"
    assert t("min_read", count=4) == "4 dk okuma"
    assert t("projects_archive", default="Archive") == "Archive"


def test_resolve_site_config_applies_language_overrides(bilingual):
    turkish = resolve_site_config(bilingual, "tr")
    assert turkish.title == "Blogum"
    assert turkish.extra["tagline"] == "Merhaba"
    assert "name" not in turkish.extra
    assert bilingual.title == "My Blog"
    assert resolve_site_config(bilingual, "de") is bilingual
    assert resolve_site_config(bilingual, "en") is bilingual


def test_prefixes_and_direction(bilingual):
    assert prefixed_path("tr", "tags/elixir/", bilingual) == "/tr/tags/elixir/"
    assert prefixed_path("en", "/tags/elixir/", bilingual) == "/tags/elixir/"
    assert text_direction("ar") == "rtl"
    assert text_direction("tr") == "ltr"
