from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Block:
    """Bounded passage of document text with its position in the block sequence."""

    index: int
    text: str

    @property
    def citation(self) -> int:
        """1-based section number shown to readers."""
        return self.index + 1


@dataclass(slots=True)
class ScoredCandidate:
    """Block paired with a relevance score for one query."""

    block: Block
    score: float

    @property
    def index(self) -> int:
        return self.block.index

    @property
    def text(self) -> str:
        return self.block.text


@dataclass(slots=True)
class ExtractiveAnswer:
    """Span selected by a question-answering model with its confidence."""

    text: str
    score: float
    start: int | None = None
    end: int | None = None


@dataclass(slots=True)
class AnswerResult:
    """Accepted answer together with the block it was extracted from."""

    answer_text: str
    confidence_score: float
    source_block: Block
