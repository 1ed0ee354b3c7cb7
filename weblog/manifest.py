from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .config import load_mapping
from .errors import ManifestError


@dataclass(frozen=True)
class SectionSpec:
    name: str
    article_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class SiteManifest:
    title: str = ""
    author: str = ""
    email: str = ""
    href: str = ""
    description: str = ""
    sections: tuple[SectionSpec, ...] = field(default_factory=tuple)

    def article_ids(self) -> list[str]:
        return [article_id for section in self.sections for article_id in section.article_ids]


def _text(data: dict, key: str, where: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ManifestError(f"{where}: {key!r} must be a string, got {type(value).__name__}")
    return value


def parse_section(data: object, index: int) -> SectionSpec:
    where = f"sections[{index}]"
    if not isinstance(data, dict):
        raise ManifestError(f"{where} must be an object")
    articles = data.get("articles") or []
    if not isinstance(articles, list) or not all(isinstance(item, str) for item in articles):
        raise ManifestError(f"{where}: 'articles' must be a list of strings")
    return SectionSpec(name=_text(data, "section", where), article_ids=tuple(articles))


def parse_manifest(data: dict) -> SiteManifest:
    raw_sections = data.get("sections") or []
    if not isinstance(raw_sections, list):
        raise ManifestError("'sections' must be a list")
    manifest = SiteManifest(
        title=_text(data, "title", "manifest"),
        author=_text(data, "author", "manifest"),
        email=_text(data, "email", "manifest"),
        href=_text(data, "href", "manifest"),
        description=_text(data, "description", "manifest"),
        sections=tuple(parse_section(item, i) for i, item in enumerate(raw_sections)),
    )
    seen: set[str] = set()
    duplicates = []
    for article_id in manifest.article_ids():
        if article_id in seen and article_id not in duplicates:
            duplicates.append(article_id)
        seen.add(article_id)
    if duplicates:
        raise ManifestError(f"duplicate article ids: {', '.join(duplicates)}")
    return manifest


def load_manifest(path: Path) -> SiteManifest:
    data = load_mapping(path, error=ManifestError)
    try:
        return parse_manifest(data)
    except ManifestError as exc:
        raise ManifestError(f"{path}: {exc}") from exc
