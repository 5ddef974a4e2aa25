"""OpenTelemetry spans for runs, turns, tool calls and handoffs."""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace import Span as SDKSpan
from opentelemetry.sdk.trace import SpanProcessor
from opentelemetry.sdk.trace import TracerProvider as SDKTracerProvider
from opentelemetry.trace import Span, StatusCode
from opentelemetry.util.types import AttributeValue

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "agent_relay"


def to_attribute_value(value: Any) -> AttributeValue:
    """OpenTelemetry only stores primitives; anything richer is stored as JSON."""
    if isinstance(value, (str, bool, int, float)):
        return value
    return json.dumps(value, default=str)


def set_span_attributes(span: Span, attributes: Mapping[str, Any]) -> None:
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, to_attribute_value(value))


def set_exception(span: Span, exception: BaseException) -> None:
    span.set_attribute("success", False)
    span.set_attribute("error", str(exception) or type(exception).__name__)
    span.record_exception(exception)
    span.set_status(StatusCode.ERROR, repr(exception))


class Tracer:
    """
    Opens spans on an OpenTelemetry tracer provider.
    Without a provider the global one is used, which is a no-op until the application installs an SDK.
    """

    def __init__(self, tracer_provider: trace.TracerProvider | None = None) -> None:
        self._tracer = trace.get_tracer(INSTRUMENTATION_NAME, tracer_provider=tracer_provider)

    @contextmanager
    def span(self, name: str, attributes: Mapping[str, Any] | None = None) -> Iterator[Span]:
        """Open a span as the current span; it is ended on every exit path, cancellation included."""
        started = time.perf_counter()
        with self._tracer.start_as_current_span(
            name,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            set_span_attributes(span, attributes or {})
            try:
                yield span
            except BaseException as exc:
                set_exception(span, exc)
                raise
            finally:
                span.set_attribute("duration_ms", round((time.perf_counter() - started) * 1000, 3))


class NoopTracer(Tracer):
    def __init__(self) -> None:
        super().__init__(trace.NoOpTracerProvider())


class LoggingSpanProcessor(SpanProcessor):
    def __init__(self, level: int = logging.DEBUG, log: logging.Logger | None = None) -> None:
        self._level = level
        self._logger = log or logger

    def on_start(self, span: SDKSpan, parent_context: Context | None = None) -> None:
        parent = span.parent.span_id if span.parent is not None else None
        self._logger.log(self._level, "span start %s id=%s parent=%s", span.name, span.context.span_id, parent)

    def on_end(self, span: ReadableSpan) -> None:
        self._logger.log(
            self._level,
            "span end %s id=%s status=%s attributes=%s",
            span.name,
            span.context.span_id,
            span.status.status_code.name,
            dict(span.attributes or {}),
        )


class LoggingTracer(Tracer):
    """Writes every span to the standard logger through a private SDK tracer provider."""

    def __init__(self, level: int = logging.DEBUG, log: logging.Logger | None = None) -> None:
        provider = SDKTracerProvider()
        provider.add_span_processor(LoggingSpanProcessor(level, log))
        super().__init__(provider)


_default_tracer: Tracer = Tracer()


def set_default_tracer(tracer: Tracer) -> None:
    global _default_tracer
    _default_tracer = tracer


def get_default_tracer() -> Tracer:
    return _default_tracer
