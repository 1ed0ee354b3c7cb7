from __future__ import annotations

import datetime as dt
import shutil
from pathlib import Path

import pytest

from weblog.aggregate import ArticleRecord, SectionRecord
from weblog.content import Document
from weblog.errors import RenderError, TemplateError
from weblog.manifest import SiteManifest
from weblog.render import (
    DEFAULT_TEMPLATES,
    load_templates,
    render_document,
    render_index,
    render_template,
)

SITE = SiteManifest(title="Field Notes", author="Sam", email="sam@example.com", href="https://example.com")


class FakeHandle:
    def __init__(self, write_error=None, close_error=None):
        self.write_error = write_error
        self.close_error = close_error
        self.written = []
        self.closed = False

    def write(self, text):
        if self.write_error:
            raise self.write_error
        self.written.append(text)

    def close(self):
        self.closed = True
        if self.close_error:
            raise self.close_error


def make_document(**overrides) -> Document:
    fields = dict(
        title="Hello <World>",
        summary="Greeting",
        published_at=dt.datetime(2024, 3, 1),
        content="<p>Body</p>",
        authors=["Ann"],
        tags=["go"],
    )
    fields.update(overrides)
    return Document(**fields)


def test_render_template_is_single_pass():
    assert render_template("{{a}}-{{ b }}", a="{{b}}", b="x") == "{{b}}-x"


class TestLoadTemplates:
    def test_bundled_set(self):
        templates = load_templates()
        assert "{{head}}" in templates.article
        assert "{{sections}}" in templates.index

    def test_missing_directory_is_fatal(self, tmp_path):
        with pytest.raises(TemplateError, match="couldn't read template"):
            load_templates(tmp_path / "nope")

    def test_unknown_placeholder_is_fatal(self, tmp_path):
        directory = tmp_path / "templates"
        shutil.copytree(DEFAULT_TEMPLATES, directory)
        index = directory / "index.html"
        index.write_text(index.read_text(encoding="utf-8") + "{{sidebar}}", encoding="utf-8")
        with pytest.raises(TemplateError, match="'index' uses unknown placeholders: sidebar"):
            load_templates(directory)


def test_render_document_escapes_and_fills(tmp_path):
    dest = tmp_path / "hello.html"
    render_document(dest, make_document(), load_templates(), SITE)
    page = dest.read_text(encoding="utf-8")
    assert "<h1>Hello &lt;World&gt;</h1>" in page
    assert "<p>Body</p>" in page
    assert '<time datetime="2024-03-01T00:00:00">2024-03-01</time>' in page
    assert '<li class="chip">go</li>' in page
    assert 'href="../weblog.atom"' in page
    assert "{{" not in page


def test_render_index_sections_in_order(tmp_path):
    sections = [
        SectionRecord(
            "Go",
            [
                ArticleRecord("articles/b.html", "Bee", "b summary", dt.datetime(2024, 2, 1, 10, 30)),
                ArticleRecord("articles/a.html", "Ay", "a summary", dt.datetime(2024, 1, 1)),
            ],
        ),
        SectionRecord("Empty"),
    ]
    dest = tmp_path / "index.html"
    render_index(dest, sections, load_templates(), SITE)
    page = dest.read_text(encoding="utf-8")
    assert page.index("Bee") < page.index("Ay")
    assert '<a href="articles/b.html">Bee</a>' in page
    assert "2024-02-01 10:30" in page
    assert '<section class="section"><h2>Empty</h2></section>' in page


class TestOutputFile:
    def test_close_failure_after_success(self, tmp_path, monkeypatch):
        templates = load_templates()
        handle = FakeHandle(close_error=OSError("disk full"))
        monkeypatch.setattr(Path, "open", lambda self, *args, **kwargs: handle)
        with pytest.raises(RenderError, match="couldn't close .*disk full"):
            render_index(tmp_path / "index.html", [], templates, SITE)
        assert handle.written
        assert handle.closed

    def test_close_failure_appended_to_render_failure(self, tmp_path, monkeypatch):
        templates = load_templates()
        handle = FakeHandle(write_error=OSError("write boom"), close_error=OSError("close boom"))
        monkeypatch.setattr(Path, "open", lambda self, *args, **kwargs: handle)
        with pytest.raises(RenderError) as excinfo:
            render_document(tmp_path / "a.html", make_document(), templates, SITE)
        message = str(excinfo.value)
        assert message.index("write boom") < message.index("close boom")
        assert "; and couldn't close" in message

    def test_render_failure_still_closes(self, tmp_path, monkeypatch):
        templates = load_templates()
        handle = FakeHandle(write_error=OSError("write boom"))
        monkeypatch.setattr(Path, "open", lambda self, *args, **kwargs: handle)
        with pytest.raises(RenderError, match="couldn't render .*write boom"):
            render_document(tmp_path / "a.html", make_document(), templates, SITE)
        assert handle.closed

    def test_create_failure(self, tmp_path):
        with pytest.raises(RenderError, match="couldn't create"):
            render_index(tmp_path / "missing" / "index.html", [], load_templates(), SITE)
