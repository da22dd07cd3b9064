"""
Example: Streaming with Usage Data

This example streams a chat completion, prints the text as it arrives and
then reads the accumulated result (text, finish reason, token usage) that
was reported to telemetry for the call.

Spans and metrics go to the console when the OpenTelemetry SDK is installed.
"""

import asyncio

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

from steer_chat_sdk import (
    CancellationToken,
    ChatClient,
    ChatCompletionOptions,
    InstrumentationConfig,
    SystemMessage,
    UserMessage,
)


def configure_telemetry():
    tracer_provider = TracerProvider()
    tracer_provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(tracer_provider)

    reader = PeriodicExportingMetricReader(ConsoleMetricExporter())
    metrics.set_meter_provider(MeterProvider(metric_readers=[reader]))


async def example_basic_streaming_with_usage():
    """Basic example of streaming with usage data."""
    print("=== Basic Streaming with Usage ===\n")

    config = InstrumentationConfig(record_events=True)
    async with ChatClient(instrumentation_config=config) as client:
        options = ChatCompletionOptions(model="gpt-4o-mini", temperature=0.7, max_tokens=100)
        messages = [
            SystemMessage(content="You are a poet."),
            UserMessage(content="Write a haiku about Python programming"),
        ]

        async with client.complete_chat_streaming_async(messages, options) as updates:
            async for update in updates:
                print(update.text, end="", flush=True)
        print()

        summary = updates.scope.summary
        print(f"\nFinish reason: {summary.finish_reason}")
        if summary.usage:
            print("Usage information:")
            print(f"  Prompt tokens: {summary.usage.prompt_tokens}")
            print(f"  Completion tokens: {summary.usage.completion_tokens}")
            print(f"  Total tokens: {summary.usage.total_tokens}")


async def example_cancelled_stream():
    """Cancel a stream after the first few updates."""
    print("\n=== Cancelled Stream ===\n")

    token = CancellationToken()
    async with ChatClient() as client:
        updates = client.complete_chat_streaming_async(
            "Count slowly from one to one hundred", model="gpt-4o-mini", cancellation=token
        )
        received = 0
        try:
            async for update in updates:
                received += 1
                if received == 5:
                    token.cancel()
        except asyncio.CancelledError:
            print(f"Cancelled after {received} updates")

        print(f"Reported error type: {updates.scope.summary.error_type}")


async def main():
    configure_telemetry()
    await example_basic_streaming_with_usage()
    await example_cancelled_stream()


if __name__ == "__main__":
    asyncio.run(main())
