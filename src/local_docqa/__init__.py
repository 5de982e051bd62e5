"""Local question answering over a single document."""

from .pipeline import DocumentSession, answer_query
from .schema import AnswerResult, Block, ExtractiveAnswer, ScoredCandidate

__all__ = [
    "AnswerResult",
    "Block",
    "DocumentSession",
    "ExtractiveAnswer",
    "ScoredCandidate",
    "answer_query",
]
