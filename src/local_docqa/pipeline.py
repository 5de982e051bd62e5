from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Callable

from opentelemetry import trace

from .backends import AnswerFn, EmbedFn, get_answerer, get_embedder
from .chunking import chunk_document
from .lexical import lexical_score
from .qa import synthesize
from .schema import Block
from .semantic import semantic_rank
from .settings import ModelSettings, RetrievalSettings, load_settings
from .tracing import (
    ATTR_BLOCK_COUNT,
    ATTR_INPUT_VALUE,
    ATTR_OUTPUT_VALUE,
    ATTR_RETRIEVAL_DOCUMENTS,
    get_tracer,
    traced_answering,
    traced_embedding,
)

logger = logging.getLogger(__name__)

NO_READABLE_TEXT_MESSAGE = "I couldn't extract any readable text from this document."
BACKEND_UNAVAILABLE_MESSAGE = (
    "The AI engine is taking longer than expected. This usually means it's still "
    "downloading or loading the local models. Please check your connection or wait "
    "a few more moments and ask again."
)


@lru_cache(maxsize=8)
def _cached_blocks(text: str, settings: RetrievalSettings) -> tuple[Block, ...]:
    return tuple(chunk_document(text, settings))


def document_blocks(text: str, settings: RetrievalSettings | None = None) -> list[Block]:
    """Return the blocks for ``text``, chunking it at most once per settings."""
    return list(_cached_blocks(text, settings or RetrievalSettings()))


def default_backends(model_settings: ModelSettings | None = None) -> tuple[EmbedFn, AnswerFn]:
    """Resolve the shared local backends, wrapped with tracing spans.

    Models are not loaded here; the first embedding or answering call does it.
    """
    if model_settings is None:
        model_settings, _ = load_settings()
    tracer = get_tracer("local_docqa.backends")
    embedder = get_embedder(model_settings.embedding_model, device=model_settings.device)
    answerer = get_answerer(model_settings.qa_model, device=model_settings.device)
    return (
        traced_embedding(embedder, tracer, model_name=model_settings.embedding_model),
        traced_answering(answerer, tracer, model_name=model_settings.qa_model),
    )


def _answer_from_blocks(
    query: str,
    blocks: list[Block],
    embed: EmbedFn | None,
    answer: AnswerFn | None,
    settings: RetrievalSettings,
    tracer: trace.Tracer,
) -> str:
    if not blocks:
        return NO_READABLE_TEXT_MESSAGE

    if embed is None or answer is None:
        default_embed, default_answer = default_backends()
        embed = embed or default_embed
        answer = answer or default_answer

    logger.info("Searching for: %r across %d blocks", query, len(blocks))
    with tracer.start_as_current_span("lexical-filter") as span:
        lexical = lexical_score(query, blocks, settings)
        span.set_attribute(ATTR_RETRIEVAL_DOCUMENTS, len(lexical))

    with tracer.start_as_current_span("semantic-rank") as span:
        ranked = semantic_rank(query, lexical, blocks, embed, settings)
        span.set_attribute(ATTR_RETRIEVAL_DOCUMENTS, len(ranked))

    with tracer.start_as_current_span("synthesis"):
        return synthesize(query, ranked, answer, settings)


def _guarded(query: str, tracer: trace.Tracer, run: Callable[[], str]) -> str:
    started = time.perf_counter()
    with tracer.start_as_current_span("docqa-query") as span:
        span.set_attribute(ATTR_INPUT_VALUE, query)
        try:
            response = run()
        except Exception as exc:
            logger.exception("Document analysis failed")
            span.set_status(trace.StatusCode.ERROR, str(exc))
            span.record_exception(exc)
            response = BACKEND_UNAVAILABLE_MESSAGE
        span.set_attribute(ATTR_OUTPUT_VALUE, response[:500])
    logger.info("Analysis finished in %.2fs", time.perf_counter() - started)
    return response


def answer_query(
    query: str,
    document_text: str,
    embed: EmbedFn | None = None,
    answer: AnswerFn | None = None,
    settings: RetrievalSettings | None = None,
) -> str:
    """Answer a question about one document. Never raises.

    Args:
        query: User question.
        document_text: Full plaintext of the document.
        embed: Embedding callable; the shared local model when omitted.
        answer: Extractive QA callable; the shared local model when omitted.
        settings: Retrieval parameters; when omitted they are read from the
            environment through ``load_settings``.

    Returns:
        A formatted markdown response, or a user-facing message explaining
        why no answer could be produced.
    """
    tracer = get_tracer("local_docqa.pipeline")

    def run() -> str:
        active = settings if settings is not None else load_settings()[1]
        with tracer.start_as_current_span("chunking") as span:
            blocks = document_blocks(document_text, active)
            span.set_attribute(ATTR_BLOCK_COUNT, len(blocks))
        return _answer_from_blocks(query, blocks, embed, answer, active, tracer)

    return _guarded(query, tracer, run)


class DocumentSession:
    """One loaded document whose blocks are reused across questions.

    Retrieval settings default to the environment-backed values from
    ``load_settings``, which raises ``ValueError`` on a malformed override.
    """

    def __init__(
        self,
        document_text: str,
        embed: EmbedFn | None = None,
        answer: AnswerFn | None = None,
        settings: RetrievalSettings | None = None,
    ):
        self.settings = settings if settings is not None else load_settings()[1]
        self.blocks = document_blocks(document_text, self.settings)
        self._embed = embed
        self._answer = answer

    @property
    def is_empty(self) -> bool:
        return not self.blocks

    def ask(self, query: str) -> str:
        """Answer ``query`` against this document. Never raises."""
        tracer = get_tracer("local_docqa.pipeline")
        return _guarded(
            query,
            tracer,
            lambda: _answer_from_blocks(query, self.blocks, self._embed, self._answer, self.settings, tracer),
        )
