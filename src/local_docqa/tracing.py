"""OpenTelemetry tracing helpers for the document QA pipeline.

Every query handled by :func:`local_docqa.pipeline.answer_query` opens a
``docqa-query`` span with one child span per stage (``chunking``,
``lexical-filter``, ``semantic-rank``, ``synthesis``). The backends can also
be wrapped so each model call shows up as its own span.

Usage without a backend (development / testing):

    from local_docqa.tracing import configure_tracing

    configure_tracing()   # uses ConsoleSpanExporter by default

Usage with an OTLP collector such as Arize Phoenix:

    configure_tracing(endpoint="http://localhost:6006/v1/traces", service_name="local-docqa")

Without a call to :func:`configure_tracing` the no-op global provider is used
and spans are discarded.
"""
from __future__ import annotations

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)

from .backends import AnswerFn, EmbedFn
from .schema import ExtractiveAnswer

# ---------------------------------------------------------------------------
# OpenInference semantic-convention attribute names
# ---------------------------------------------------------------------------

ATTR_INPUT_VALUE = "input.value"
ATTR_OUTPUT_VALUE = "output.value"
ATTR_LLM_MODEL_NAME = "llm.model_name"
ATTR_RETRIEVAL_DOCUMENTS = "retrieval.documents"
ATTR_EMBEDDING_MODEL_NAME = "embedding.model_name"
ATTR_EMBEDDING_DIMENSION = "embedding.dimension"
ATTR_ANSWER_SCORE = "docqa.answer.score"
ATTR_BLOCK_COUNT = "docqa.block_count"

# ---------------------------------------------------------------------------
# Provider lifecycle helpers
# ---------------------------------------------------------------------------

_provider: TracerProvider | None = None


def configure_tracing(
    endpoint: str | None = None,
    service_name: str = "local-docqa",
    exporter: SpanExporter | None = None,
) -> TracerProvider:
    """Create and register a global TracerProvider.

    Args:
        endpoint: OTLP HTTP endpoint URL to send traces to. When *None* and no
            custom *exporter* is given, spans are printed to stdout.
        service_name: Label identifying this application in the backend.
        exporter: An already-constructed exporter, e.g. an
            ``InMemorySpanExporter`` in tests. When provided, *endpoint* is
            ignored.

    Returns:
        The configured provider, also set as the global OTel provider.
    """
    global _provider

    resource = Resource(attributes={SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)

    if exporter is not None:
        chosen_exporter: SpanExporter = exporter
    elif endpoint is not None:
        try:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
                OTLPSpanExporter,
            )
        except ImportError as exc:  # pragma: no cover
            raise ImportError(
                "opentelemetry-exporter-otlp-proto-http is required to export "
                "traces to an OTLP endpoint.  Install it with:\n"
                "  pip install 'local-docqa[otlp]'"
            ) from exc
        chosen_exporter = OTLPSpanExporter(endpoint=endpoint)
    else:
        chosen_exporter = ConsoleSpanExporter()

    provider.add_span_processor(SimpleSpanProcessor(chosen_exporter))
    trace.set_tracer_provider(provider)
    _provider = provider
    return provider


def get_tracer(name: str) -> trace.Tracer:
    """Return a tracer from the configured provider, or the global no-op one."""
    if _provider is not None:
        return _provider.get_tracer(name)
    return trace.get_tracer(name)


# ---------------------------------------------------------------------------
# Span-wrapping helpers for the inference backends
# ---------------------------------------------------------------------------


def traced_embedding(embed: EmbedFn, tracer: trace.Tracer, model_name: str = "") -> EmbedFn:
    """Wrap an embedding callable so every call is recorded as an ``embedding`` span.

    The span records the input text (first 500 characters), the model name
    when given, the vector dimension, and OK/ERROR status.
    """

    def _wrapped(text: str):
        with tracer.start_as_current_span("embedding") as span:
            span.set_attribute(ATTR_INPUT_VALUE, text[:500])
            if model_name:
                span.set_attribute(ATTR_EMBEDDING_MODEL_NAME, model_name)
            try:
                vector = embed(text)
                span.set_attribute(ATTR_EMBEDDING_DIMENSION, len(vector))
                span.set_status(trace.StatusCode.OK)
                return vector
            except Exception as exc:
                span.set_status(trace.StatusCode.ERROR, str(exc))
                span.record_exception(exc)
                raise

    return _wrapped


def traced_answering(answer: AnswerFn, tracer: trace.Tracer, model_name: str = "") -> AnswerFn:
    """Wrap an extractive QA callable so every call is recorded as an ``answering`` span.

    The span records the question, the model name when given, the extracted
    answer text and its confidence, and OK/ERROR status.
    """

    def _wrapped(question: str, context: str) -> ExtractiveAnswer:
        with tracer.start_as_current_span("answering") as span:
            span.set_attribute(ATTR_INPUT_VALUE, question)
            if model_name:
                span.set_attribute(ATTR_LLM_MODEL_NAME, model_name)
            try:
                result = answer(question, context)
                span.set_attribute(ATTR_OUTPUT_VALUE, result.text[:500])
                span.set_attribute(ATTR_ANSWER_SCORE, result.score)
                span.set_status(trace.StatusCode.OK)
                return result
            except Exception as exc:
                span.set_status(trace.StatusCode.ERROR, str(exc))
                span.record_exception(exc)
                raise

    return _wrapped
