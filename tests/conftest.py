import time

import pytest

from config.config import PROVIDER_KEY_ENV
from providers.base_adapter import BaseProviderAdapter


class FakeAdapter(BaseProviderAdapter):
    """
    Offline adapter. ``reply`` is returned as the completion text, or raised
    when it is an exception. Every ``invoke`` is recorded in ``calls``.
    """

    def __init__(self, label, reply=None, *, api_key="test-key", delay=0.0):
        provider, _, model = label.partition("/")
        super().__init__(provider, model or "fake-model", api_key)
        self.reply = reply
        self.delay = delay
        self.calls = []
        self.completions = 0

    def invoke(self, prompt, system_context="", timeout=45.0):
        self.calls.append(prompt)
        return super().invoke(prompt, system_context, timeout)

    def _complete(self, prompt, system_context, timeout):
        self.completions += 1
        if self.delay:
            time.sleep(self.delay)
        if isinstance(self.reply, BaseException):
            raise self.reply
        return self.reply


class StatusError(Exception):
    """Mimics an SDK error carrying an HTTP status."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


@pytest.fixture
def make_adapter():
    """Factory fixture for FakeAdapter instances."""
    return FakeAdapter


@pytest.fixture
def status_error():
    return StatusError


@pytest.fixture
def mock_env(monkeypatch):
    """Fixture to isolate tests from real credentials in the environment."""
    for env_name in PROVIDER_KEY_ENV.values():
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.delenv("TAVILY_API_KEY", raising=False)

    env_vars = {
        "OPENROUTER_API_KEY": "test-openrouter-key",
        "GOOGLE_API_KEY": "test-google-key",
        "PROVIDER_TIMEOUT_S": "5",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars
