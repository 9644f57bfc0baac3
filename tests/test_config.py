import pytest

from folio.config import load_config, read_config_file, validate_paths
from folio.errors import ConfigurationError


def test_defaults_without_config_file(tmp_path):
    config = load_config(tmp_path)
    assert config.title == "My Site"
    assert config.output_path == tmp_path / "output"
    assert config.content_path == tmp_path / "content"
    assert config.posts_per_page == 10
    assert config.language_codes == ("en",)
    assert config.drafts is False


def test_file_values_and_overrides(tmp_path):
    (tmp_path / "folio.yaml").write_text(
        "title: Blog\nposts_per_page: 3\ncomments: true\npost_build: echo hi\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path, posts_per_page=5, drafts=None)
    assert config.title == "Blog"
    assert config.posts_per_page == 5
    assert config.drafts is False
    assert config.post_build == ("echo hi",)
    assert config.extra == {"comments": True}
    assert config.get("comments") is True
    assert config.get("title") == "Blog"


def test_languages_normalized(tmp_path):
    (tmp_path / "folio.yaml").write_text(
        "default_lang: en\nlanguages:\n  en: English\n  tr:\n    name: Türkçe\n  ar:\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    assert config.language_codes == ("en", "tr", "ar")
    assert config.language_name("tr") == "Türkçe"
    assert config.language_name("ar") == "AR"


@pytest.mark.parametrize(
    "text",
    ["title: [unclosed\n", "- just\n- a list\n", "posts_per_page: 0\n", "port: abc\n"],
)
def test_invalid_config_raises(tmp_path, text):
    (tmp_path / "folio.yaml").write_text(text, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(tmp_path)


def test_read_config_file_missing(tmp_path):
    assert read_config_file(tmp_path) == {}


def test_parsing_signature_tracks_languages(tmp_path):
    base = load_config(tmp_path)
    changed = load_config(tmp_path, languages={"en": {}, "tr": {}})
    assert base.parsing_signature() != changed.parsing_signature()
    assert base.parsing_signature() == load_config(tmp_path, title="Other").parsing_signature()


def test_validate_paths(tmp_path):
    config = load_config(tmp_path)
    with pytest.raises(ConfigurationError, match="Expected content directory"):
        validate_paths(config)

    (tmp_path / "content").mkdir()
    validate_paths(config)

    with pytest.raises(ConfigurationError, match="would overwrite"):
        validate_paths(load_config(tmp_path, output_dir="content"))
    with pytest.raises(ConfigurationError, match="would overwrite"):
        validate_paths(load_config(tmp_path, output_dir="."))

    (tmp_path / "output").write_text("not a dir", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="not a directory"):
        validate_paths(config)
