from __future__ import annotations

import logging

from .backends import EmbedFn
from .embeddings import as_vector, cosine_similarity
from .schema import Block, ScoredCandidate
from .settings import RetrievalSettings

logger = logging.getLogger(__name__)


def select_candidates(
    lexical: list[ScoredCandidate], all_blocks: list[Block], settings: RetrievalSettings
) -> list[ScoredCandidate]:
    """Bound the number of blocks sent to the embedding model.

    Args:
        lexical: Lexically ranked candidates, best first.
        all_blocks: Every block of the document.
        settings: Retrieval parameters.

    Returns:
        The top lexical candidates, or the leading blocks with score 0 when
        nothing matched lexically.
    """
    if lexical:
        return lexical[: settings.lexical_top_k]
    return [ScoredCandidate(block=block, score=0) for block in all_blocks[: settings.fallback_block_count]]


def semantic_rank(
    query: str,
    candidates: list[ScoredCandidate],
    all_blocks: list[Block],
    embed: EmbedFn,
    settings: RetrievalSettings | None = None,
) -> list[ScoredCandidate]:
    """Re-rank lexical candidates by embedding similarity to the query.

    Blocks are embedded one at a time in candidate order. The final score is
    ``cosine + lexical_weight * lexical_score`` and only candidates above the
    similarity floor are kept. If embedding fails for any reason the lexical
    ranking is returned unchanged.

    Args:
        query: User question.
        candidates: Output of lexical scoring, best first.
        all_blocks: Every block of the document, used when ``candidates`` is empty.
        embed: Embedding callable.
        settings: Retrieval parameters; defaults are used when omitted.

    Returns:
        Relevant candidates sorted by combined score, highest first.
    """
    settings = settings or RetrievalSettings()
    shortlist = select_candidates(candidates, all_blocks, settings)
    if not shortlist:
        return []

    try:
        logger.info("Running semantic analysis on %d candidates...", len(shortlist))
        query_vector = as_vector(embed(query))

        results: list[ScoredCandidate] = []
        for position, candidate in enumerate(shortlist, start=1):
            logger.debug("Semantic pass %d/%d...", position, len(shortlist))
            block_vector = as_vector(embed(candidate.text))
            similarity = cosine_similarity(query_vector, block_vector)
            results.append(
                ScoredCandidate(
                    block=candidate.block,
                    score=similarity + settings.lexical_weight * candidate.score,
                )
            )
    except Exception as exc:
        logger.warning("Semantic search failed, returning keyword matches: %s", exc)
        return candidates

    relevant = [result for result in results if result.score > settings.similarity_floor]
    return sorted(relevant, key=lambda result: result.score, reverse=True)
