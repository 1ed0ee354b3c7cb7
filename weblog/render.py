from __future__ import annotations

import datetime as dt
import html
import re
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, TextIO

from .aggregate import SectionRecord
from .content import Document
from .errors import RenderError, TemplateError, WeblogError, combine_errors
from .manifest import SiteManifest

DEFAULT_TEMPLATES = Path(__file__).parent / "templates"
PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")
DATE_FMT = "%Y-%m-%d"
DATETIME_FMT = "%Y-%m-%d %H:%M"
FEED_NAME = "weblog.atom"

# Placeholders each named template may use.
TEMPLATE_FIELDS = {
    "head": {"title", "site_title", "description", "author", "root", "feed"},
    "actions": {"root", "feed", "site_title"},
    "footer": {"author", "email", "href", "site_title"},
    "article": {
        "head", "actions", "footer", "title", "subtitle", "date", "datetime",
        "authors", "tags", "toc", "content",
    },
    "index": {"head", "actions", "footer", "site_title", "description", "sections"},
}


@dataclass(frozen=True)
class TemplateSet:
    head: str
    actions: str
    footer: str
    article: str
    index: str


def check_placeholders(name: str, text: str) -> None:
    unknown = sorted({m.group(1) for m in PLACEHOLDER_RE.finditer(text)} - TEMPLATE_FIELDS[name])
    if unknown:
        raise TemplateError(f"template {name!r} uses unknown placeholders: {', '.join(unknown)}")


def load_templates(directory: Path | None = None) -> TemplateSet:
    directory = DEFAULT_TEMPLATES if directory is None else directory
    texts = {}
    for name in TEMPLATE_FIELDS:
        path = directory / f"{name}.html"
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateError(f"couldn't read template {path}: {exc}") from exc
        check_placeholders(name, text)
        texts[name] = text
    return TemplateSet(**texts)


def render_template(template: str, **context: str) -> str:
    # Single pass, so substituted values are never scanned for placeholders.
    return PLACEHOLDER_RE.sub(lambda m: context.get(m.group(1), ""), template)


def format_date(value: dt.datetime) -> str:
    if value.time() == dt.time() and value.tzinfo is None:
        return value.strftime(DATE_FMT)
    return value.strftime(DATETIME_FMT)


@contextmanager
def output_file(path: Path) -> Iterator[TextIO]:
    try:
        handle = path.open("w", encoding="utf-8", newline="\n")
    except OSError as exc:
        raise RenderError(f"couldn't create {path}: {exc}") from exc
    try:
        yield handle
    except Exception as exc:
        error = exc if isinstance(exc, WeblogError) else RenderError(f"couldn't render {path}: {exc}")
        try:
            handle.close()
        except OSError as close_exc:
            raise combine_errors(error, f"couldn't close {path}", close_exc) from exc
        if error is exc:
            raise
        raise error from exc
    try:
        handle.close()
    except OSError as exc:
        raise RenderError(f"couldn't close {path}: {exc}") from exc


def page_parts(templates: TemplateSet, site: SiteManifest, title: str, root: str) -> dict[str, str]:
    site_title = html.escape(site.title)
    feed = f"{root}/{FEED_NAME}"
    return {
        "head": render_template(
            templates.head,
            title=html.escape(title),
            site_title=site_title,
            description=html.escape(site.description),
            author=html.escape(site.author),
            root=root,
            feed=feed,
        ),
        "actions": render_template(templates.actions, root=root, feed=feed, site_title=site_title),
        "footer": render_template(
            templates.footer,
            author=html.escape(site.author),
            email=html.escape(site.email),
            href=html.escape(site.href),
            site_title=site_title,
        ),
    }


def build_tag_list(tags: list[str]) -> str:
    if not tags:
        return ""
    chips = "".join(f'<li class="chip">{html.escape(tag)}</li>' for tag in tags)
    return f'<ul class="tags">{chips}</ul>'


def render_document(dest: Path, document: Document, templates: TemplateSet, site: SiteManifest) -> None:
    page_title = f"{document.title} | {site.title}" if site.title else document.title
    with output_file(dest) as handle:
        handle.write(
            render_template(
                templates.article,
                **page_parts(templates, site, page_title, ".."),
                title=html.escape(document.title),
                subtitle=html.escape(document.subtitle),
                date=format_date(document.published_at),
                datetime=document.published_at.isoformat(),
                authors=html.escape(", ".join(document.authors)),
                tags=build_tag_list(document.tags),
                toc=document.toc if "<li" in document.toc else "",
                content=document.content,
            )
        )


def build_section_list(sections: list[SectionRecord]) -> str:
    blocks = []
    for section in sections:
        entries = []
        for record in section.articles:
            entries.append(
                '<li class="entry">'
                f'<a href="{html.escape(record.url)}">{html.escape(record.title)}</a>'
                f'<time datetime="{record.published_at.isoformat()}">{format_date(record.published_at)}</time>'
                f'<p class="summary">{html.escape(record.summary)}</p>'
                "</li>"
            )
        listing = f'<ul class="entries">{"".join(entries)}</ul>' if entries else ""
        blocks.append(f'<section class="section"><h2>{html.escape(section.name)}</h2>{listing}</section>')
    return "\n".join(blocks)


def render_index(dest: Path, sections: list[SectionRecord], templates: TemplateSet, site: SiteManifest) -> None:
    with output_file(dest) as handle:
        handle.write(
            render_template(
                templates.index,
                **page_parts(templates, site, site.title, "."),
                site_title=html.escape(site.title),
                description=html.escape(site.description),
                sections=build_section_list(sections),
            )
        )
