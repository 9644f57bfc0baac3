from datetime import date
from pathlib import Path

from click.testing import CliRunner

from folio.build import BuildResult, ContentCache, DocumentFailure
from folio.cli import cli
from folio.errors import ThemeResolutionError

SITE = {
    "content/index.md": "---\ntitle: Home\n---\nHello.\n",
    "content/posts/2024-01-15-hello.md": "---\ntitle: Hello\n---\nPost.\n",
}


class Answer:
    def __init__(self, value):
        self.value = value

    def ask(self):
        return self.value


def fake_prompts(monkeypatch, selections, text):
    answers = list(selections)
    monkeypatch.setattr(
        "folio.cli.questionary.select", lambda *args, **kwargs: Answer(answers.pop(0))
    )
    monkeypatch.setattr("folio.cli.questionary.text", lambda *args, **kwargs: Answer(text))


def test_build_command(make_site, monkeypatch):
    project = make_site(SITE)
    monkeypatch.chdir(project)

    result = CliRunner().invoke(cli, ["build"], catch_exceptions=False)

    assert result.exit_code == 0
    assert "Built" in result.output
    assert (project / "output" / "posts" / "hello" / "index.html").exists()


def test_build_command_output_and_drafts(make_site, monkeypatch):
    files = dict(SITE)
    files["content/wip.md"] = "---\ntitle: WIP\ndraft: true\n---\n"
    project = make_site(files)
    monkeypatch.chdir(project)

    result = CliRunner().invoke(cli, ["build", "--drafts", "--output", "public"])

    assert result.exit_code == 0
    assert (project / "public" / "wip" / "index.html").exists()
    assert not (project / "output").exists()


def test_build_command_reports_failures(make_site, monkeypatch):
    files = dict(SITE)
    files["content/broken.md"] = "---\ntitle: Broken\nlayout: missing_layout\n---\n"
    project = make_site(files)
    monkeypatch.chdir(project)

    result = CliRunner().invoke(cli, ["build"])

    assert result.exit_code == 1
    assert "File: content/broken.md" in result.output
    assert "Stage: render" in result.output
    assert "missing_layout" in result.output
    assert (project / "output" / "posts" / "hello" / "index.html").exists()


def test_build_command_configuration_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "Expected content directory" in result.output


def test_clean_command(make_site, monkeypatch):
    project = make_site(SITE)
    monkeypatch.chdir(project)
    runner = CliRunner()

    assert "Nothing to clean" in runner.invoke(cli, ["clean"]).output
    runner.invoke(cli, ["build"])
    result = runner.invoke(cli, ["clean"])
    assert result.exit_code == 0
    assert "Removed" in result.output
    assert not (project / "output").exists()


def test_serve_command(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    called = {}

    class DummyServer:
        def __init__(self, root, port=None, drafts=False):
            called["root"] = root
            called["port"] = port
            called["drafts"] = drafts
            self.port = port

        def start(self):
            failure = DocumentFailure(
                Path("content/x.md"), "render", ThemeResolutionError("gone", ["default"])
            )
            return BuildResult([], [failure], [], 0.0, ContentCache(), tmp_path / "output")

        def serve_forever(self):
            called["served"] = True

    monkeypatch.setattr("folio.server.DevServer", DummyServer)

    result = CliRunner().invoke(cli, ["serve", "--drafts", "--port", "5050"])

    assert result.exit_code == 0
    assert called["root"].resolve() == tmp_path.resolve()
    assert (called["port"], called["drafts"], called["served"]) == (5050, True, True)
    assert "http://localhost:5050" in result.output
    assert "content/x.md [render]" in result.output


def test_new_creates_dated_post(make_site, monkeypatch):
    project = make_site()
    monkeypatch.chdir(project)
    fake_prompts(monkeypatch, ["post"], "  My First Post ")

    result = CliRunner().invoke(cli, ["new"], catch_exceptions=False)

    assert result.exit_code == 0
    created = project / "content" / "posts" / f"{date.today().isoformat()}-my-first-post.md"
    text = created.read_text(encoding="utf-8")
    assert text.startswith("---\ntitle: My First Post\n")
    assert "draft: true" in text


def test_new_page_in_second_language(make_site, monkeypatch):
    project = make_site(config="title: T\nlanguages:\n  en: English\n  tr: Türkçe\n")
    monkeypatch.chdir(project)
    fake_prompts(monkeypatch, ["page", "tr"], "Hakkında")

    result = CliRunner().invoke(cli, ["new"], catch_exceptions=False)

    assert result.exit_code == 0
    assert (project / "content" / "pages" / "tr" / "hakkinda.md").exists()


def test_new_rejects_slug_collision(make_site, monkeypatch):
    project = make_site({"content/posts/2023-05-01-hello.md": "---\ntitle: Hello\n---\n"})
    monkeypatch.chdir(project)
    fake_prompts(monkeypatch, ["post"], "Hello")

    result = CliRunner().invoke(cli, ["new"])

    assert result.exit_code != 0
    assert "already exists" in result.output


def test_new_requires_content_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["new"])
    assert result.exit_code != 0
    assert "No content/ directory found" in result.output


def test_new_aborts_when_prompt_cancelled(make_site, monkeypatch):
    monkeypatch.chdir(make_site())
    fake_prompts(monkeypatch, [None], "x")
    result = CliRunner().invoke(cli, ["new"])
    assert result.exit_code == 1


def test_module_main_entrypoint():
    from folio.__main__ import main

    assert callable(main)


def test_main_invokes_cli(monkeypatch):
    import folio.cli as cli_mod

    called = {}
    monkeypatch.setattr(cli_mod, "cli", lambda: called.setdefault("ran", True))
    cli_mod.main()
    assert called["ran"]
