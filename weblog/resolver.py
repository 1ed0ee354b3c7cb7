from __future__ import annotations

import datetime as dt
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, NamedTuple

from .content import SOURCE_SUFFIX, Document, read_document
from .errors import ArticleError, ArtifactError, combine_errors
from .manifest import SiteManifest
from .render import TemplateSet, render_document

ARTICLES_DIR = "articles"


class ResolvedArticle(NamedTuple):
    document: Document
    url: str
    published_at: dt.datetime


@contextmanager
def working_directory(path: Path) -> Iterator[Path]:
    """Run the body with ``path`` as the process working directory.

    The previous directory is restored on every exit path. If restoring fails
    while another error is pending, both are reported together.
    """
    try:
        previous = Path.cwd()
    except OSError as exc:
        raise ArticleError(f"couldn't get cwd: {exc}") from exc
    try:
        os.chdir(path)
    except (OSError, ValueError) as exc:
        raise ArticleError(f"couldn't cd to {path}: {exc}") from exc
    try:
        yield previous
    except Exception as exc:
        try:
            os.chdir(previous)
        except OSError as restore_exc:
            raise combine_errors(exc, f"couldn't cd back to {previous}", restore_exc) from exc
        raise
    try:
        os.chdir(previous)
    except OSError as exc:
        raise ArticleError(f"couldn't cd back to {previous}: {exc}") from exc


def check_article_id(article_id: str) -> None:
    if not article_id or article_id in {".", ".."}:
        raise ArticleError(f"invalid article id {article_id!r}")
    if "\x00" in article_id:
        raise ArticleError(f"article id {article_id!r} contains a NUL byte")
    if "/" in article_id or "\\" in article_id:
        raise ArticleError(f"article id {article_id!r} must be a single directory name")


def article_url(article_id: str) -> str:
    return f"{ARTICLES_DIR}/{article_id}.html"


def resolve_article(
    output_root: Path, article_id: str, templates: TemplateSet, site: SiteManifest
) -> ResolvedArticle:
    check_article_id(article_id)
    url = article_url(article_id)
    dest = output_root.joinpath(*url.split("/"))
    try:
        with working_directory(Path(article_id)):
            document = read_document(Path(article_id + SOURCE_SUFFIX))
            render_document(dest, document, templates, site)
    except ArtifactError as exc:
        raise ArticleError(f"article {article_id}: {exc}") from exc
    return ResolvedArticle(document, url, document.published_at)
