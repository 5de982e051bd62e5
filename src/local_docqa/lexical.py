from __future__ import annotations

import re

from .schema import Block, ScoredCandidate
from .settings import RetrievalSettings

STOP_WORDS = frozenset(
    {
        "the", "is", "at", "which", "on", "and", "a", "an", "of", "for", "with", "in", "to",
        "it", "this", "that", "by", "from", "up", "out", "into", "over", "after", "are", "was",
        "were", "be", "been", "being", "have", "has", "had", "do", "does", "did", "but", "or",
        "so", "if", "then", "else", "when", "where", "why", "how",
    }
)

SUBSTRING_HIT = 1
WHOLE_WORD_BONUS = 2

_PUNCTUATION = re.compile(r"[^\w\s]")


def query_terms(query: str, min_term_length: int = 3) -> list[str]:
    """Extract content terms from a query.

    Args:
        query: Raw user question.
        min_term_length: Shortest term kept after punctuation stripping.

    Returns:
        Lower-cased terms with stop words and short tokens removed. When that
        leaves nothing, the plain lower-cased whitespace split is returned so
        trivial queries still get a literal pass.
    """
    lowered = query.lower()
    terms = [
        term
        for term in _PUNCTUATION.sub("", lowered).split()
        if len(term) >= min_term_length and term not in STOP_WORDS
    ]
    if not terms:
        terms = lowered.split()
    return terms


def score_text(text: str, terms: list[str]) -> int:
    lowered = text.lower()
    score = 0
    for term in terms:
        if term in lowered:
            score += SUBSTRING_HIT
            if re.search(rf"\b{re.escape(term)}\b", lowered):
                score += WHOLE_WORD_BONUS
    return score


def lexical_score(
    query: str, blocks: list[Block], settings: RetrievalSettings | None = None
) -> list[ScoredCandidate]:
    """Rank blocks by literal term overlap with the query.

    Each term found anywhere in a block adds 1; a whole-word match adds 2 more.

    Args:
        query: User question.
        blocks: Blocks of the current document.
        settings: Retrieval parameters; defaults are used when omitted.

    Returns:
        Candidates with a positive score, highest first. Ties keep block order.
    """
    settings = settings or RetrievalSettings()
    terms = query_terms(query, settings.min_term_length)

    scored = [ScoredCandidate(block=block, score=score_text(block.text, terms)) for block in blocks]
    matched = [candidate for candidate in scored if candidate.score > 0]
    return sorted(matched, key=lambda candidate: candidate.score, reverse=True)
