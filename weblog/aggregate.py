from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ArticleRecord:
    url: str
    title: str
    summary: str
    published_at: dt.datetime


@dataclass
class SectionRecord:
    name: str
    articles: list[ArticleRecord] = field(default_factory=list)


class MetadataAggregator:
    # Sections are kept even when none of their articles succeed.

    def __init__(self) -> None:
        self._sections: list[SectionRecord] = []

    def start_section(self, name: str) -> SectionRecord:
        section = SectionRecord(name=name)
        self._sections.append(section)
        return section

    def add(self, record: ArticleRecord) -> None:
        if not self._sections:
            raise RuntimeError("add() called before start_section()")
        self._sections[-1].articles.append(record)

    @property
    def sections(self) -> list[SectionRecord]:
        return list(self._sections)

    def records(self) -> list[ArticleRecord]:
        return [record for section in self._sections for record in section.articles]
