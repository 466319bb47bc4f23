"""
Fuzzy title search.

Two ways to answer the same query:

* `autocomplete_pipeline` builds an Atlas Search aggregation that runs the
  `autocomplete` operator against the `title` index.
* `title_matches` approximates it in-process with rapidfuzz, for
  databases that have no Atlas Search index.

Autocomplete indexes titles as edge grams, so here a query term matches a
title word when it is within `max_edits` of some prefix of that word and
shares its first `prefix_length` characters exactly. Unlike Atlas (default
`tokenOrder: "any"`), every query term must match some word, and hits come
back in storage order rather than ranked by relevance.
"""

import re
from typing import Any, Dict, Iterable, List

from rapidfuzz.distance import Levenshtein

SEARCH_LIMIT = 20
MAX_EDITS = 2
PREFIX_LENGTH = 1
MAX_EXPANSIONS = 256

# Heavy or internal fields that never leave the API
LISTING_PROJECTION: Dict[str, int] = {
    "banner": 0,
    "content": 0,
    "altText": 0,
    "customID": 0,
}

_TOKEN = re.compile(r"\w+")


def autocomplete_pipeline(query: str, limit: int = SEARCH_LIMIT) -> List[Dict[str, Any]]:
    return [
        {
            "$search": {
                "autocomplete": {
                    "query": query,
                    "path": "title",
                    "fuzzy": {
                        "maxEdits": MAX_EDITS,
                        "prefixLength": PREFIX_LENGTH,
                        "maxExpansions": MAX_EXPANSIONS,
                    },
                },
            },
        },
        {"$limit": limit},
        {"$project": dict(LISTING_PROJECTION)},
    ]


def tokenize(text: str) -> List[str]:
    return _TOKEN.findall((text or "").lower())


def term_matches(term: str, word: str, max_edits: int = MAX_EDITS, prefix_length: int = PREFIX_LENGTH) -> bool:
    if word[:prefix_length] != term[:prefix_length]:
        return False
    shortest = max(1, len(term) - max_edits)
    longest = min(len(word), len(term) + max_edits)
    for size in range(shortest, longest + 1):
        if Levenshtein.distance(term, word[:size], score_cutoff=max_edits) <= max_edits:
            return True
    return False


def title_matches(query: str, title: str, max_edits: int = MAX_EDITS, prefix_length: int = PREFIX_LENGTH) -> bool:
    """True when every query term matches some word of `title`."""
    terms = tokenize(query)
    words = tokenize(title)
    if not terms or not words:
        return False
    return all(
        any(term_matches(term, word, max_edits, prefix_length) for word in words)
        for term in terms
    )


def filter_titles(query: str, documents: Iterable[Dict[str, Any]], limit: int = SEARCH_LIMIT) -> List[Dict[str, Any]]:
    hits = []
    for doc in documents:
        if title_matches(query, doc.get("title", "")):
            hits.append(doc)
            if len(hits) >= limit:
                break
    return hits
