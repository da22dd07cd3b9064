"""Shared pytest fixtures for Steer Chat SDK tests."""

import pytest

from steer_chat_sdk.config.settings import ClientSettings, InstrumentationConfig
from steer_chat_sdk.observability.factory import InstrumentationFactory
from steer_chat_sdk.streaming.cancellation import CallContext
from tests.helpers.streaming_mocks import StreamingServer
from tests.helpers.telemetry import TelemetryCapture


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without network access")
    config.addinivalue_line("markers", "integration: client tests over a mocked transport")
    config.addinivalue_line("markers", "slow: slow tests")


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Mock environment variables for testing."""
    env_vars = {
        "STEER_CHAT_API_KEY": "test-key",
        "STEER_CHAT_BASE_URL": "https://chat.example.com:8443/v1",
        "STEER_CHAT_MODEL": "gpt-test",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def telemetry():
    """In-memory span exporter and metric reader."""
    capture = TelemetryCapture()
    yield capture
    capture.shutdown()


@pytest.fixture
def instrumentation_config():
    return InstrumentationConfig(enabled=True, record_events=False, record_content=False)


@pytest.fixture
def factory(telemetry, instrumentation_config):
    """Instrumentation factory reporting into the in-memory providers."""
    return InstrumentationFactory(
        "gpt-test",
        "https://chat.example.com/v1",
        config=instrumentation_config,
        tracer_provider=telemetry.tracer_provider,
        meter_provider=telemetry.meter_provider,
    )


@pytest.fixture
def call_context():
    return CallContext.create()


@pytest.fixture
def settings():
    return ClientSettings(
        api_key="test-key",
        base_url="https://chat.example.com/v1",
        model="gpt-test",
        timeout=5.0,
    )


@pytest.fixture
def server():
    """Mocked service; set ``body``/``json_body``/``status_code`` per test."""
    return StreamingServer()
