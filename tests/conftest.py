"""Shared pytest fixtures for local_docqa unit tests."""
from __future__ import annotations

import re

import pytest

from local_docqa.schema import Block, ExtractiveAnswer, ScoredCandidate


class KeywordEmbedder:
    """Deterministic bag-of-words embedder over a fixed vocabulary.

    Stands in for the sentence-transformers model so ranking tests run
    offline. Records every text it was asked to embed.
    """

    VOCABULARY = ("vpn", "remote", "work", "device", "lost", "security", "leave", "deadline", "travel")

    def __init__(self):
        self.calls: list[str] = []

    def __call__(self, text: str) -> list[float]:
        self.calls.append(text)
        words = re.findall(r"\w+", text.lower())
        return [float(words.count(term)) for term in self.VOCABULARY]


class FakeAnswerer:
    """Extractive QA stand-in returning a fixed answer and score."""

    def __init__(self, text: str = "the VPN", score: float = 0.9):
        self.text = text
        self.score = score
        self.calls: list[tuple[str, str]] = []

    def __call__(self, question: str, context: str) -> ExtractiveAnswer:
        self.calls.append((question, context))
        return ExtractiveAnswer(text=self.text, score=self.score)


@pytest.fixture()
def keyword_embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture()
def fake_answerer() -> FakeAnswerer:
    return FakeAnswerer()


@pytest.fixture()
def handbook_text() -> str:
    return (
        "Remote work is allowed up to three days per week with manager approval.\n"
        "All remote connections must go through the corporate VPN.\n"
        "Lost devices must be reported to the security team within one hour.\n"
        "Annual leave requests should be submitted two weeks in advance.\n"
    )


@pytest.fixture()
def sample_blocks() -> list[Block]:
    return [
        Block(index=0, text="Remote work is allowed up to three days per week."),
        Block(index=1, text="All remote connections must go through the corporate VPN."),
        Block(index=2, text="Lost devices must be reported to the security team within one hour."),
        Block(index=3, text="Annual leave requests should be submitted two weeks in advance."),
    ]


@pytest.fixture()
def sample_candidates(sample_blocks) -> list[ScoredCandidate]:
    return [
        ScoredCandidate(block=sample_blocks[1], score=1.3),
        ScoredCandidate(block=sample_blocks[0], score=0.8),
        ScoredCandidate(block=sample_blocks[2], score=0.4),
    ]
