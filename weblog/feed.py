from __future__ import annotations

import datetime as dt
import html
import posixpath
import re
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

from .aggregate import ArticleRecord
from .errors import FeedError
from .manifest import SiteManifest

ATOM_NS = "http://www.w3.org/2005/Atom"
# Characters outside the XML 1.0 Char production.
INVALID_XML_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


@dataclass(frozen=True)
class FeedItem:
    title: str
    link: str
    description: str
    id: str
    created: dt.datetime


@dataclass(frozen=True)
class FeedMeta:
    title: str
    link: str
    description: str
    author: str
    email: str
    created: dt.datetime

    @classmethod
    def from_site(cls, site: SiteManifest, created: dt.datetime) -> FeedMeta:
        return cls(
            title=site.title,
            link=site.href,
            description=site.description,
            author=site.author,
            email=site.email,
            created=created,
        )


def join_url(base: str, path: str) -> str:
    """Append ``path`` to the path of ``base``, cleaning dot segments.

    A leading slash on ``path`` does not replace the base path, and nothing is
    re-encoded.
    """
    try:
        parts = urlsplit(base)
    except ValueError as exc:
        raise FeedError(f"couldn't join {path!r} onto {base!r}: {exc}") from exc
    elem = path.lstrip("/")
    joined = posixpath.join(parts.path, elem) if parts.path else elem
    if parts.netloc and not joined.startswith("/"):
        joined = "/" + joined
    if joined:
        cleaned = posixpath.normpath(joined)
        if cleaned.startswith("//"):
            cleaned = "/" + cleaned.lstrip("/")
        if path.endswith("/") and not cleaned.endswith("/"):
            cleaned += "/"
        joined = cleaned
    return urlunsplit(parts._replace(path=joined))


def feed_item(site: SiteManifest, record: ArticleRecord) -> FeedItem:
    link = join_url(site.href, record.url)
    return FeedItem(
        title=record.title,
        link=link,
        description=record.summary,
        id=link,
        created=record.published_at,
    )


def iso_date(value: dt.datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def xml_text(value: str, where: str) -> str:
    if INVALID_XML_RE.search(value):
        raise FeedError(f"{where} contains characters not allowed in XML")
    return html.escape(value)


def author_element(name: str, email: str) -> str:
    if not name and not email:
        return ""
    parts = ["<author>"]
    if name:
        parts.append(f"<name>{xml_text(name, 'author name')}</name>")
    if email:
        parts.append(f"<email>{xml_text(email, 'author email')}</email>")
    parts.append("</author>")
    return "".join(parts)


def serialize_atom(meta: FeedMeta, items: list[FeedItem]) -> str:
    author = author_element(meta.author, meta.email)
    entries = []
    for item in items:
        where = f"feed entry {item.id!r}"
        entries.append(
            "\n".join(
                line
                for line in [
                    "<entry>",
                    f"<title>{xml_text(item.title, where)}</title>",
                    f"<updated>{iso_date(item.created)}</updated>",
                    f"<id>{xml_text(item.id, where)}</id>",
                    f'<link href="{xml_text(item.link, where)}" rel="alternate"></link>',
                    f'<summary type="html">{xml_text(item.description, where)}</summary>',
                    author,
                    "</entry>",
                ]
                if line
            )
        )
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<feed xmlns="{ATOM_NS}">',
        f"<title>{xml_text(meta.title, 'feed title')}</title>",
        f"<id>{xml_text(meta.link, 'feed link')}</id>",
        f"<updated>{iso_date(meta.created)}</updated>",
        f"<subtitle>{xml_text(meta.description, 'feed description')}</subtitle>",
        f'<link href="{xml_text(meta.link, "feed link")}"></link>',
        author,
        *entries,
        "</feed>",
    ]
    return "\n".join(line for line in lines if line) + "\n"


def build_feed(site: SiteManifest, items: list[FeedItem], generated_at: dt.datetime) -> bytes:
    return serialize_atom(FeedMeta.from_site(site, generated_at), items).encode("utf-8")
