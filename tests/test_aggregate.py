from __future__ import annotations

import datetime as dt

import pytest

from weblog.aggregate import ArticleRecord, MetadataAggregator


def record(name: str) -> ArticleRecord:
    return ArticleRecord(f"articles/{name}.html", name.title(), f"{name} summary", dt.datetime(2024, 1, 1))


def test_records_follow_section_order():
    aggregator = MetadataAggregator()
    aggregator.start_section("First")
    aggregator.add(record("b"))
    aggregator.add(record("a"))
    aggregator.start_section("Nothing")
    aggregator.start_section("Last")
    aggregator.add(record("c"))
    assert [(s.name, [r.url for r in s.articles]) for s in aggregator.sections] == [
        ("First", ["articles/b.html", "articles/a.html"]),
        ("Nothing", []),
        ("Last", ["articles/c.html"]),
    ]
    assert [r.title for r in aggregator.records()] == ["B", "A", "C"]


def test_add_requires_section():
    with pytest.raises(RuntimeError):
        MetadataAggregator().add(record("a"))
