"""Observability layer for chat client calls.

This layer handles:
- Spans and GenAI metrics per call (OpenTelemetry API)
- Accumulation of streaming responses into one reported result
- Structured logging
"""

from .factory import InstrumentationFactory
from .logging import ClientLogger
from .scope import ClientInstruments, InstrumentationScope
from .streaming_scope import ScopeOutcome, StreamingCompletionSummary, StreamingScope

__all__ = [
    "ClientInstruments",
    "ClientLogger",
    "InstrumentationFactory",
    "InstrumentationScope",
    "ScopeOutcome",
    "StreamingCompletionSummary",
    "StreamingScope",
]
