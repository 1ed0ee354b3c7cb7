from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .aggregate import ArticleRecord, MetadataAggregator, SectionRecord
from .errors import ArtifactError, OutputDirError
from .feed import FeedItem, build_feed, feed_item
from .manifest import SiteManifest, load_manifest
from .render import FEED_NAME, TemplateSet, load_templates, render_index
from .resolver import ARTICLES_DIR, resolve_article

logger = logging.getLogger(__name__)

INDEX_NAME = "index.html"


@dataclass
class ArtifactFailure:
    artifact: str
    stage: str
    message: str


@dataclass
class BuildReport:
    sections: list[SectionRecord] = field(default_factory=list)
    feed_items: list[FeedItem] = field(default_factory=list)
    failures: list[ArtifactFailure] = field(default_factory=list)
    index_written: bool = False
    feed_written: bool = False

    @property
    def article_count(self) -> int:
        return sum(len(section.articles) for section in self.sections)

    def record_failure(self, artifact: str, stage: str, exc: Exception) -> None:
        logger.error("%s", exc)
        self.failures.append(ArtifactFailure(artifact=artifact, stage=stage, message=str(exc)))


def prepare_output_dirs(out_dir: Path) -> None:
    try:
        (out_dir / ARTICLES_DIR).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputDirError(f"couldn't make articles output dir under {out_dir}: {exc}") from exc


def process_articles(
    manifest: SiteManifest, out_dir: Path, templates: TemplateSet, report: BuildReport
) -> None:
    aggregator = MetadataAggregator()
    for section in manifest.sections:
        aggregator.start_section(section.name)
        for article_id in section.article_ids:
            logger.info("%s %s", section.name, article_id)
            try:
                resolved = resolve_article(out_dir, article_id, templates, manifest)
            except ArtifactError as exc:
                report.record_failure(article_id, "article", exc)
                continue
            record = ArticleRecord(
                url=resolved.url,
                title=resolved.document.title,
                summary=resolved.document.summary,
                published_at=resolved.published_at,
            )
            aggregator.add(record)
            try:
                report.feed_items.append(feed_item(manifest, record))
            except ArtifactError as exc:
                report.record_failure(article_id, "feed-link", exc)
    report.sections = aggregator.sections


def write_index(manifest: SiteManifest, out_dir: Path, templates: TemplateSet, report: BuildReport) -> None:
    logger.info("index")
    try:
        render_index(out_dir / INDEX_NAME, report.sections, templates, manifest)
    except ArtifactError as exc:
        report.record_failure(INDEX_NAME, "index", exc)
        return
    report.index_written = True


def write_feed(manifest: SiteManifest, out_dir: Path, started: dt.datetime, report: BuildReport) -> None:
    try:
        atom = build_feed(manifest, report.feed_items, started)
    except ArtifactError as exc:
        report.record_failure(FEED_NAME, "feed", ArtifactError(f"generating atom feed: {exc} (continuing)"))
        return
    try:
        (out_dir / FEED_NAME).write_bytes(atom)
    except OSError as exc:
        report.record_failure(FEED_NAME, "feed", ArtifactError(f"writing atom feed: {exc} (continuing)"))
        return
    report.feed_written = True


def build_site(
    out_dir: Path,
    manifest_path: Path,
    templates_dir: Path | None = None,
    now: dt.datetime | None = None,
) -> BuildReport:
    """Build every article, the index and the feed.

    Fatal problems (manifest, templates, output directory) raise
    ``FatalBuildError`` before anything is written. Everything else is logged,
    recorded on the returned report, and skipped.
    """
    started = now or dt.datetime.now(dt.timezone.utc)
    out_dir = out_dir.resolve()
    manifest = load_manifest(manifest_path)
    templates = load_templates(templates_dir)
    prepare_output_dirs(out_dir)

    report = BuildReport()
    process_articles(manifest, out_dir, templates, report)
    write_index(manifest, out_dir, templates, report)
    write_feed(manifest, out_dir, started, report)
    logger.info(
        "done: %d articles in %d sections, %d failures",
        report.article_count,
        len(report.sections),
        len(report.failures),
    )
    return report
