from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(slots=True)
class ModelSettings:
    """Local model configuration for the embedding and extractive QA backends."""

    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    qa_model: str = "distilbert-base-cased-distilled-squad"
    device: str = "cpu"


@dataclass(slots=True, frozen=True)
class RetrievalSettings:
    """Chunking, ranking and answer-acceptance parameters.

    The similarity floor and the answer confidence threshold are empirically
    chosen values; they are exposed here so callers can tune them per corpus.
    """

    max_block_chars: int = 500
    overlap_words: int = 12
    min_block_chars: int = 20
    min_term_length: int = 3
    lexical_top_k: int = 15
    fallback_block_count: int = 30
    lexical_weight: float = 0.1
    similarity_floor: float = 0.15
    answer_confidence_threshold: float = 0.01
    evidence_block_count: int = 2


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def load_settings() -> tuple[ModelSettings, RetrievalSettings]:
    """Load environment-backed settings and return typed config objects.

    Returns:
        Tuple containing model settings and retrieval settings.

    Raises:
        ValueError: If a numeric override is not a valid number.
    """
    load_dotenv()
    defaults = RetrievalSettings()
    return (
        ModelSettings(
            embedding_model=os.getenv("DOCQA_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"),
            qa_model=os.getenv("DOCQA_QA_MODEL", "distilbert-base-cased-distilled-squad"),
            device=os.getenv("DOCQA_DEVICE", "cpu"),
        ),
        RetrievalSettings(
            similarity_floor=_env_float("DOCQA_SIMILARITY_FLOOR", defaults.similarity_floor),
            answer_confidence_threshold=_env_float(
                "DOCQA_ANSWER_THRESHOLD", defaults.answer_confidence_threshold
            ),
        ),
    )
