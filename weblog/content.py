from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from pathlib import Path

import markdown

from .directives import DirectiveExtension
from .errors import DocumentError

SOURCE_SUFFIX = ".md"
SUMMARY_LENGTH = 200
LIST_MARKER_RE = re.compile(r"^(?P<indent>[ \t]*)(?:[-+*]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")
TAG_RE = re.compile(r"<[^>]+>")
LIST_KEYS = {"authors", "tags"}


@dataclass
class Document:
    title: str
    summary: str
    published_at: dt.datetime
    content: str
    subtitle: str = ""
    authors: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    toc: str = ""
    source: Path | None = None


def parse_list(value: str) -> list[str]:
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1]
        items = [item.strip().strip("'\"") for item in inner.split(",")]
    else:
        items = [item.strip() for item in value.split(",")]
    return [item for item in items if item]


def parse_front_matter(text: str) -> tuple[dict, str]:
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, clean_text

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            end = i
            break
    if end is None:
        raise DocumentError("front matter is not closed with '---'")

    meta = {}
    for line in lines[1:end]:
        line = line.strip()
        if not line or line.startswith("#") or ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip().lower()
        value = value.strip()
        if key in LIST_KEYS:
            meta[key] = parse_list(value)
        else:
            meta[key] = value
    body = "\n".join(lines[end + 1 :])
    return meta, body


def extract_title(meta: dict, body: str) -> tuple[str, str]:
    if meta.get("title"):
        return meta["title"], body
    lines = body.splitlines()
    for i, line in enumerate(lines):
        stripped = line.strip()
        if stripped.startswith("# "):
            title = stripped[2:].strip()
            new_body = "\n".join(lines[i + 1 :]).lstrip()
            return title, new_body
        if stripped:
            break
    return "", body


def parse_published(meta: dict, fallback: dt.datetime | None) -> dt.datetime:
    # A date without a time means midnight.
    date_value = (meta.get("date") or "").strip()
    time_value = (meta.get("time") or "").strip()
    if not date_value:
        if fallback is None:
            raise DocumentError("missing 'date' in front matter")
        return fallback
    try:
        if "T" in date_value or " " in date_value:
            return dt.datetime.fromisoformat(date_value)
        date_part = dt.date.fromisoformat(date_value)
        time_part = dt.time.fromisoformat(time_value) if time_value else dt.time()
    except ValueError as exc:
        raise DocumentError(f"invalid date {date_value!r}: {exc}") from exc
    return dt.datetime.combine(date_part, time_part)


def normalize_list_spacing(text: str) -> str:
    # Markdown needs a blank line before a top-level list that follows a paragraph.
    out: list[str] = []
    fence = ""
    for line in text.splitlines():
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            fence = marker if not fence else ("" if marker == fence else fence)
        elif not fence and LIST_MARKER_RE.match(line) and not line[:1].isspace():
            previous = out[-1] if out else ""
            if previous.strip() and not LIST_MARKER_RE.match(previous):
                out.append("")
        out.append(line)
    return "\n".join(out)


def strip_tags(html_text: str) -> str:
    return TAG_RE.sub("", html_text)


def summarize(html_content: str) -> str:
    text = " ".join(strip_tags(html_content).split())
    if len(text) <= SUMMARY_LENGTH:
        return text
    return text[:SUMMARY_LENGTH].rstrip() + "..."


def parse_document(
    text: str, name: str, base_dir: Path, fallback_time: dt.datetime | None = None
) -> Document:
    try:
        meta, body = parse_front_matter(text)
        title, body = extract_title(meta, body)
        if not title:
            raise DocumentError("no title in front matter or leading '# ' heading")
        published_at = parse_published(meta, fallback_time)
        md = markdown.Markdown(
            extensions=["fenced_code", "tables", "toc", DirectiveExtension(base_dir=base_dir)],
            extension_configs={"toc": {"toc_depth": "2-4"}},
        )
        html_content = md.convert(normalize_list_spacing(body))
    except DocumentError as exc:
        raise DocumentError(f"couldn't parse {name}: {exc}") from exc
    return Document(
        title=title,
        subtitle=meta.get("subtitle", ""),
        summary=meta.get("summary") or meta.get("description") or summarize(html_content),
        published_at=published_at,
        content=html_content,
        authors=meta.get("authors", []),
        tags=meta.get("tags", []),
        toc=md.toc,
    )


def read_document(path: Path) -> Document:
    try:
        text = path.read_text(encoding="utf-8")
        mtime = dt.datetime.fromtimestamp(path.stat().st_mtime).replace(microsecond=0)
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentError(f"couldn't open {path}: {exc}") from exc
    doc = parse_document(text, path.stem, path.parent, fallback_time=mtime)
    doc.source = path
    return doc
