"""Lazily initialized local inference backends.

The retrieval and synthesis code only depends on two narrow callables:

- ``EmbedFn``: ``(text) -> vector``
- ``AnswerFn``: ``(question, context) -> ExtractiveAnswer``

This module provides the default implementations backed by
sentence-transformers and a transformers question-answering pipeline. Models
are loaded on first use behind a single-flight guard, and every inference call
goes through a slot of size one so the backend never runs two calls at once.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Generic, Sequence, TypeVar

import numpy as np

from .schema import ExtractiveAnswer

logger = logging.getLogger(__name__)

T = TypeVar("T")

EmbedFn = Callable[[str], Sequence[float]]
AnswerFn = Callable[[str, str], ExtractiveAnswer]


class LazyResource(Generic[T]):
    """Process-wide handle that builds its value once, on first demand.

    Concurrent callers arriving while the factory runs wait on the same
    future and receive the same instance. A failed build is reported to
    every waiter and cleared, so the next call starts a fresh attempt.
    """

    def __init__(self, factory: Callable[[], T], name: str):
        self._factory = factory
        self.name = name
        self._lock = threading.Lock()
        self._future: Future[T] | None = None

    @property
    def is_ready(self) -> bool:
        future = self._future
        return future is not None and future.done() and future.exception() is None

    def ensure_ready(self) -> T:
        with self._lock:
            future = self._future
            owner = future is None
            if owner:
                future = Future()
                self._future = future

        if owner:
            logger.info("Initializing %s...", self.name)
            try:
                value = self._factory()
            except BaseException as exc:
                with self._lock:
                    self._future = None
                future.set_exception(exc)
                logger.error("Failed to initialize %s: %s", self.name, exc)
                raise
            else:
                future.set_result(value)
                logger.info("%s ready.", self.name)
        else:
            logger.debug("%s is already loading, waiting...", self.name)

        return future.result()


class SentenceTransformerEmbedder:
    """Mean-pooled, L2-normalized sentence embeddings from a local model."""

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2", device: str = "cpu"):
        self.model_name = model_name
        self.device = device
        self._model: LazyResource[Any] = LazyResource(self._load, name=f"embedding model {model_name}")
        self._slot = threading.BoundedSemaphore(1)

    def _load(self):
        from sentence_transformers import SentenceTransformer

        return SentenceTransformer(self.model_name, device=self.device)

    def ensure_ready(self):
        return self._model.ensure_ready()

    def __call__(self, text: str) -> np.ndarray:
        model = self.ensure_ready()
        with self._slot:
            return model.encode(
                text,
                normalize_embeddings=True,
                convert_to_numpy=True,
                show_progress_bar=False,
            )


class TransformersQuestionAnswerer:
    """Extractive question answering with a local transformers pipeline."""

    def __init__(self, model_name: str = "distilbert-base-cased-distilled-squad", device: str = "cpu"):
        self.model_name = model_name
        self.device = device
        self._pipeline: LazyResource[Any] = LazyResource(self._load, name=f"QA model {model_name}")
        self._slot = threading.BoundedSemaphore(1)

    def _load(self):
        from transformers import pipeline

        return pipeline("question-answering", model=self.model_name, device=self.device)

    def ensure_ready(self):
        return self._pipeline.ensure_ready()

    def __call__(self, question: str, context: str) -> ExtractiveAnswer:
        qa = self.ensure_ready()
        with self._slot:
            result = qa(question=question, context=context)
        return ExtractiveAnswer(
            text=str(result["answer"]),
            score=float(result["score"]),
            start=result.get("start"),
            end=result.get("end"),
        )


_registry_lock = threading.Lock()
_embedders: dict[tuple[str, str], SentenceTransformerEmbedder] = {}
_answerers: dict[tuple[str, str], TransformersQuestionAnswerer] = {}


def get_embedder(
    model_name: str = "sentence-transformers/all-MiniLM-L6-v2", device: str = "cpu"
) -> SentenceTransformerEmbedder:
    """Return the shared embedder for ``model_name``; the model loads on first call."""
    with _registry_lock:
        key = (model_name, device)
        if key not in _embedders:
            _embedders[key] = SentenceTransformerEmbedder(model_name, device=device)
        return _embedders[key]


def get_answerer(
    model_name: str = "distilbert-base-cased-distilled-squad", device: str = "cpu"
) -> TransformersQuestionAnswerer:
    """Return the shared question answerer for ``model_name``."""
    with _registry_lock:
        key = (model_name, device)
        if key not in _answerers:
            _answerers[key] = TransformersQuestionAnswerer(model_name, device=device)
        return _answerers[key]
