from __future__ import annotations

import json
from pathlib import Path

import pytest


def article_text(title: str, date: str, summary: str = "", body: str = "Body text.") -> str:
    lines = ["---", f"title: {title}", f"date: {date}"]
    if summary:
        lines.append(f"summary: {summary}")
    lines.extend(["---", body, ""])
    return "\n".join(lines)


class SiteSources:
    """Article directories plus a manifest under one source root."""

    def __init__(self, root: Path, out: Path) -> None:
        self.root = root
        self.out = out
        self.manifest = root / "manifest.json"

    def write_article(self, article_id: str, text: str) -> Path:
        directory = self.root / article_id
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{article_id}.md"
        path.write_text(text, encoding="utf-8")
        return path

    def write_manifest(self, sections: list[dict], **fields: str) -> Path:
        data = {
            "title": "Field Notes",
            "author": "Sam Doe",
            "email": "sam@example.com",
            "href": "https://example.com/blog",
            "description": "Notes from the field.",
            "sections": sections,
        }
        data.update(fields)
        self.manifest.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return self.manifest


@pytest.fixture
def site(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> SiteSources:
    root = tmp_path / "src"
    root.mkdir()
    sources = SiteSources(root, tmp_path / "out")
    sources.write_article("alpha", article_text("Alpha Post", "2024-01-05", "Alpha summary"))
    sources.write_article(
        "beta",
        article_text("Beta Post", "2024-02-10 08:30", "Beta summary", body="Intro.\n\n.code snippet.py #L2\n"),
    )
    (root / "beta" / "snippet.py").write_text("a = 1\nb = 2\n", encoding="utf-8")
    sources.write_article("gamma", article_text("Gamma Post", "2024-03-15", "Gamma summary"))
    sources.write_manifest(
        [
            {"section": "Go", "articles": ["alpha", "beta"]},
            {"section": "Python", "articles": ["gamma"]},
            {"section": "Empty", "articles": []},
        ]
    )
    monkeypatch.chdir(root)
    return sources


@pytest.fixture(name="article_text")
def article_text_fixture():
    return article_text
