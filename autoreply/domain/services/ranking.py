# autoreply/domain/services/ranking.py
# Pure domain services: no I/O, deterministic, no external libraries.
from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence

from autoreply.domain.models import Passage, ScoredPassage

K1 = 1.5
B = 0.75

STOPWORDS = frozenset(
    """
    a an the and or but in on at to for of with is it its i you we they this
    that be are was were has have had do does did will would could should not
    no can so if as by from up about into than then when where who which what
    how also just more been their there our your my his her
    """.split()
)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens without punctuation, one-letter tokens or stopwords."""
    cleaned = _NON_ALNUM.sub(" ", text.lower())
    return [t for t in cleaned.split() if len(t) > 1 and t not in STOPWORDS]


def bm25_score(
    query_terms: Sequence[str],
    passage_terms: Sequence[str],
    avg_passage_length: float,
    k1: float = K1,
    b: float = B,
) -> float:
    """
    BM25 term-frequency saturation without IDF.

    There is no corpus beyond the current document, so every matching query
    term weighs the same once saturated and length-normalized. Each unique
    query term is counted once; zero overlap scores exactly 0.0.
    """
    if not passage_terms:
        return 0.0
    tf = Counter(passage_terms)
    length_ratio = len(passage_terms) / (avg_passage_length or 1.0)
    score = 0.0
    for term in dict.fromkeys(query_terms):
        f = tf.get(term, 0)
        if f == 0:
            continue
        score += (f * (k1 + 1)) / (f + k1 * (1 - b + b * length_ratio))
    return score


def rank_passages(query: str, passages: Sequence[Passage]) -> list[ScoredPassage]:
    """
    Score every passage against the query and sort descending.

    - sorted() is stable, so equal scores keep document order.
    - Passages sharing no query token score 0.0 and land after positive ones.
    """
    if not passages:
        return []
    query_terms = tokenize(query)
    passage_terms = [tokenize(p.text) for p in passages]
    avg_len = sum(len(t) for t in passage_terms) / len(passage_terms)

    scored = [
        ScoredPassage(passage=p, score=bm25_score(query_terms, terms, avg_len))
        for p, terms in zip(passages, passage_terms, strict=True)
    ]
    return sorted(scored, key=lambda s: s.score, reverse=True)
