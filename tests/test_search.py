"""
tests/test_search.py
"""
from __future__ import annotations

import pytest

from search import (
    LISTING_PROJECTION,
    autocomplete_pipeline,
    filter_titles,
    term_matches,
    title_matches,
)


def test_one_edit_from_a_word_prefix_matches():
    assert title_matches("sonovertink", "Sonoverthinks ideas")


def test_plain_prefix_matches():
    assert title_matches("sono", "Sonoverthinks ideas")
    assert title_matches("ide", "Sonoverthinks ideas")


@pytest.mark.parametrize(
    "query",
    [
        "xonoverthink",   # first character must match exactly
        "sonxxxxxthink",  # too many edits
        "",
    ],
)
def test_non_matches(query):
    assert not title_matches(query, "Sonoverthinks ideas")


def test_every_term_must_match_some_word():
    assert title_matches("ideas sonover", "Sonoverthinks ideas")
    assert not title_matches("ideas banjo", "Sonoverthinks ideas")


def test_term_matches_bounds():
    assert term_matches("fastapu", "fastapi")
    assert not term_matches("fastapu", "fastapi", max_edits=0)
    assert term_matches("mongo", "mongodb", max_edits=0)


def test_filter_titles_keeps_order_and_limit():
    docs = [{"title": f"Building part {i}"} for i in range(30)]
    hits = filter_titles("bulding", docs)
    assert len(hits) == 20
    assert hits[0]["title"] == "Building part 0"


def test_autocomplete_pipeline_shape():
    pipeline = autocomplete_pipeline("sonovertink")

    autocomplete = pipeline[0]["$search"]["autocomplete"]
    assert autocomplete["query"] == "sonovertink"
    assert autocomplete["path"] == "title"
    assert autocomplete["fuzzy"] == {"maxEdits": 2, "prefixLength": 1, "maxExpansions": 256}
    assert pipeline[1] == {"$limit": 20}
    assert pipeline[2] == {"$project": LISTING_PROJECTION}
