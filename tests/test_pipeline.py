"""Tests for pipeline.py — end-to-end orchestration with mocked backends.

No model is downloaded: embedding and QA services are replaced with
deterministic fakes or mocks.
"""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from local_docqa.pipeline import (
    BACKEND_UNAVAILABLE_MESSAGE,
    NO_READABLE_TEXT_MESSAGE,
    DocumentSession,
    answer_query,
    document_blocks,
)
from local_docqa.qa import NO_RELEVANT_SECTIONS_MESSAGE, SNIPPET_HEADER
from local_docqa.schema import ExtractiveAnswer
from local_docqa.settings import ModelSettings, RetrievalSettings

from conftest import FakeAnswerer


# ---------------------------------------------------------------------------
# document_blocks
# ---------------------------------------------------------------------------

class TestDocumentBlocks:
    def test_returns_fresh_list_each_call(self, handbook_text):
        first = document_blocks(handbook_text)
        second = document_blocks(handbook_text)
        assert first == second
        assert first is not second

    def test_different_settings_rechunk(self, handbook_text):
        default = document_blocks(handbook_text)
        small = document_blocks(handbook_text, RetrievalSettings(max_block_chars=80))
        assert len(small) > len(default)


# ---------------------------------------------------------------------------
# answer_query
# ---------------------------------------------------------------------------

class TestAnswerQuery:
    def test_deadline_example(self):
        embed = MagicMock(return_value=[1.0, 0.0, 0.0])
        answer = MagicMock(return_value=ExtractiveAnswer(text="March 5, 2024", score=0.9))

        output = answer_query("What is the deadline?", "The deadline is March 5, 2024.", embed, answer)

        assert "March 5, 2024" in output
        assert '> "The deadline is March 5, 2024."' in output
        assert "(Section 1)" in output

    def test_low_confidence_lists_snippets(self, handbook_text, keyword_embedder):
        output = answer_query(
            "Which remote VPN rules apply?",
            handbook_text,
            keyword_embedder,
            FakeAnswerer(text="x", score=0.001),
        )
        assert "**Answer:**" not in output
        assert output.startswith(SNIPPET_HEADER)
        assert '> "' in output

    def test_empty_document_skips_backends(self):
        embed = MagicMock()
        answer = MagicMock()
        output = answer_query("Anything?", "", embed, answer)
        assert output == NO_READABLE_TEXT_MESSAGE
        embed.assert_not_called()
        answer.assert_not_called()

    @patch("local_docqa.pipeline.default_backends")
    def test_empty_document_never_resolves_default_backends(self, mock_defaults):
        assert answer_query("Anything?", "") == NO_READABLE_TEXT_MESSAGE
        mock_defaults.assert_not_called()

    def test_embedding_always_failing_still_answers(self, handbook_text, fake_answerer):
        embed = MagicMock(side_effect=RuntimeError("embedding backend offline"))
        output = answer_query("How do I report lost devices?", handbook_text, embed, fake_answerer)
        assert output
        assert "**Answer:**" in output
        assert "Lost devices must be reported" in output

    def test_embedding_failure_without_lexical_match_reports_no_sections(self, handbook_text, fake_answerer):
        embed = MagicMock(side_effect=RuntimeError("embedding backend offline"))
        output = answer_query("quantum chromodynamics", handbook_text, embed, fake_answerer)
        assert output == NO_RELEVANT_SECTIONS_MESSAGE

    def test_qa_failure_returns_backend_message(self, handbook_text, keyword_embedder):
        answer = MagicMock(side_effect=RuntimeError("QA model still downloading"))
        output = answer_query("Which VPN?", handbook_text, keyword_embedder, answer)
        assert output == BACKEND_UNAVAILABLE_MESSAGE

    def test_no_relevant_sections(self, handbook_text, keyword_embedder, fake_answerer):
        output = answer_query("quantum chromodynamics", handbook_text, keyword_embedder, fake_answerer)
        assert output == NO_RELEVANT_SECTIONS_MESSAGE
        assert fake_answerer.calls == []

    def test_semantic_search_runs_without_lexical_overlap(self, handbook_text, fake_answerer):
        embed = MagicMock(return_value=[0.6, 0.8])
        output = answer_query("zebra migration", handbook_text, embed, fake_answerer)
        assert embed.call_count == 1 + len(document_blocks(handbook_text))
        assert "**Answer:**" in output

    def test_default_backend_resolution_failure_is_contained(self, handbook_text):
        with patch("local_docqa.pipeline.default_backends", side_effect=ValueError("bad settings")):
            assert answer_query("Which VPN?", handbook_text) == BACKEND_UNAVAILABLE_MESSAGE

    @patch("local_docqa.pipeline.default_backends")
    def test_uses_default_backends_when_omitted(self, mock_defaults, handbook_text, keyword_embedder, fake_answerer):
        mock_defaults.return_value = (keyword_embedder, fake_answerer)
        output = answer_query("Which VPN?", handbook_text)
        mock_defaults.assert_called_once()
        assert "**Answer:**" in output

    def test_never_raises_on_unexpected_errors(self, handbook_text, keyword_embedder):
        answer = MagicMock(return_value=None)
        output = answer_query("Which VPN?", handbook_text, keyword_embedder, answer)
        assert isinstance(output, str) and output


# ---------------------------------------------------------------------------
# environment-backed retrieval settings
# ---------------------------------------------------------------------------

class TestEnvironmentSettings:
    @pytest.fixture(autouse=True)
    def _no_dotenv(self, monkeypatch):
        monkeypatch.setattr("local_docqa.settings.load_dotenv", lambda: False)
        monkeypatch.delenv("DOCQA_SIMILARITY_FLOOR", raising=False)
        monkeypatch.delenv("DOCQA_ANSWER_THRESHOLD", raising=False)

    def _deadline_answer(self, score: float) -> MagicMock:
        return MagicMock(return_value=ExtractiveAnswer(text="March 5, 2024", score=score))

    def test_answer_threshold_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("DOCQA_ANSWER_THRESHOLD", "0.95")
        embed = MagicMock(return_value=[1.0, 0.0])
        output = answer_query(
            "What is the deadline?", "The deadline is March 5, 2024.", embed, self._deadline_answer(0.5)
        )
        assert "**Answer:**" not in output
        assert output.startswith(SNIPPET_HEADER)

    def test_similarity_floor_read_from_environment(self, monkeypatch, fake_answerer):
        monkeypatch.setenv("DOCQA_SIMILARITY_FLOOR", "5.0")
        embed = MagicMock(return_value=[1.0, 0.0])
        output = answer_query("What is the deadline?", "The deadline is March 5, 2024.", embed, fake_answerer)
        assert output == NO_RELEVANT_SECTIONS_MESSAGE

    def test_explicit_settings_take_precedence(self, monkeypatch):
        monkeypatch.setenv("DOCQA_ANSWER_THRESHOLD", "0.95")
        embed = MagicMock(return_value=[1.0, 0.0])
        output = answer_query(
            "What is the deadline?",
            "The deadline is March 5, 2024.",
            embed,
            self._deadline_answer(0.5),
            RetrievalSettings(),
        )
        assert output.startswith("**Answer:** March 5, 2024")

    def test_malformed_override_returns_backend_message(self, monkeypatch, fake_answerer):
        monkeypatch.setenv("DOCQA_SIMILARITY_FLOOR", "not-a-number")
        embed = MagicMock(return_value=[1.0, 0.0])
        output = answer_query("What is the deadline?", "The deadline is March 5, 2024.", embed, fake_answerer)
        assert output == BACKEND_UNAVAILABLE_MESSAGE

    def test_session_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DOCQA_ANSWER_THRESHOLD", "0.95")
        session = DocumentSession(
            "The deadline is March 5, 2024.", MagicMock(return_value=[1.0, 0.0]), self._deadline_answer(0.5)
        )
        assert session.settings.answer_confidence_threshold == pytest.approx(0.95)
        assert "**Answer:**" not in session.ask("What is the deadline?")


# ---------------------------------------------------------------------------
# DocumentSession
# ---------------------------------------------------------------------------

class TestDocumentSession:
    def test_chunks_once_on_creation(self, handbook_text, keyword_embedder, fake_answerer):
        with patch("local_docqa.pipeline.document_blocks", wraps=document_blocks) as spy:
            session = DocumentSession(handbook_text, keyword_embedder, fake_answerer)
            session.ask("Which VPN?")
            session.ask("How do I report lost devices?")
        spy.assert_called_once()

    def test_ask_returns_answers(self, handbook_text, keyword_embedder, fake_answerer):
        session = DocumentSession(handbook_text, keyword_embedder, fake_answerer)
        assert "**Answer:**" in session.ask("Which VPN?")

    def test_empty_session(self):
        session = DocumentSession("   ")
        assert session.is_empty
        assert session.ask("Anything?") == NO_READABLE_TEXT_MESSAGE

    def test_ask_never_raises(self, handbook_text, keyword_embedder):
        session = DocumentSession(handbook_text, keyword_embedder, MagicMock(side_effect=OSError("disk")))
        assert session.ask("Which VPN?") == BACKEND_UNAVAILABLE_MESSAGE


# ---------------------------------------------------------------------------
# default_backends
# ---------------------------------------------------------------------------

class TestDefaultBackends:
    @patch("local_docqa.pipeline.get_answerer")
    @patch("local_docqa.pipeline.get_embedder")
    def test_wraps_shared_backends_without_loading(self, mock_get_embedder, mock_get_answerer):
        from local_docqa.pipeline import default_backends

        settings = ModelSettings(embedding_model="emb-model", qa_model="qa-model", device="cpu")
        embed, answer = default_backends(settings)

        mock_get_embedder.assert_called_once_with("emb-model", device="cpu")
        mock_get_answerer.assert_called_once_with("qa-model", device="cpu")
        mock_get_embedder.return_value.assert_not_called()
        assert callable(embed) and callable(answer)
