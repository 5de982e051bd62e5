from __future__ import annotations

import logging

from .backends import AnswerFn
from .schema import AnswerResult, Block, ScoredCandidate
from .settings import RetrievalSettings

logger = logging.getLogger(__name__)

NO_RELEVANT_SECTIONS_MESSAGE = "No relevant sections found. Try rephrasing your question."
SNIPPET_HEADER = "Based on the document context, here is what I found:"


def quote_block(block: Block) -> str:
    return f'> "{block.text}"\n\n*(Section {block.citation})*'


def format_answer(result: AnswerResult, secondary: Block | None = None) -> str:
    """Render an accepted answer with its evidence and optional extra context."""
    text = result.answer_text.strip()
    headline = text[:1].upper() + text[1:]

    response = f"**Answer:** {headline}\n\n### Evidence\n{quote_block(result.source_block)}"
    if secondary is not None:
        response += f"\n\n### Context\n{quote_block(secondary)}"
    return response


def format_snippets(blocks: list[Block]) -> str:
    """Render raw findings without asserting an answer."""
    sections = [f"### Finding {position}\n{quote_block(block)}" for position, block in enumerate(blocks, start=1)]
    return f"{SNIPPET_HEADER}\n\n" + "\n\n".join(sections)


def synthesize(
    query: str,
    ranked: list[ScoredCandidate],
    answer: AnswerFn,
    settings: RetrievalSettings | None = None,
) -> str:
    """Extract an answer from the best block and format the response.

    The model's confidence is a weak signal, so the acceptance bar is low and
    the evidence block is always quoted. Below the bar the top blocks are
    listed verbatim instead.

    Args:
        query: User question.
        ranked: Relevant candidates, best first.
        answer: Extractive question-answering callable.
        settings: Retrieval parameters; defaults are used when omitted.

    Returns:
        Markdown response with citations to the quoted sections.
    """
    if not ranked:
        return NO_RELEVANT_SECTIONS_MESSAGE
    settings = settings or RetrievalSettings()

    top = ranked[: settings.evidence_block_count]
    primary = top[0]
    secondary = top[1] if len(top) > 1 else None

    logger.info("Extracting specific answer from section %d...", primary.block.citation)
    extracted = answer(query, primary.text)

    if extracted is not None and extracted.text.strip() and extracted.score > settings.answer_confidence_threshold:
        result = AnswerResult(
            answer_text=extracted.text,
            confidence_score=extracted.score,
            source_block=primary.block,
        )
        return format_answer(result, secondary.block if secondary is not None else None)

    logger.info("Answer confidence too low, falling back to snippets.")
    return format_snippets([candidate.block for candidate in top])
