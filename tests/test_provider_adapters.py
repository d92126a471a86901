from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from models.outcome import ErrorKind
from providers.gemini_adapter import GeminiAdapter
from providers.openai_compatible import OpenAICompatibleAdapter


def _chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestOpenAICompatibleAdapter:
    @patch("openai.OpenAI")
    def test_success(self, mock_openai):
        mock_openai.return_value.chat.completions.create.return_value = _chat_response('[{"a": 1}]')
        adapter = OpenAICompatibleAdapter(
            "groq", "llama-3.3-70b-versatile", "test-key", base_url="https://api.groq.com/openai/v1"
        )

        outcome = adapter.invoke("find effects", "be precise", timeout=12.0)

        assert outcome.is_success
        assert outcome.text == '[{"a": 1}]'
        assert outcome.provider == "groq/llama-3.3-70b-versatile"

        kwargs = mock_openai.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "llama-3.3-70b-versatile"
        assert kwargs["timeout"] == 12.0
        assert kwargs["messages"] == [
            {"role": "system", "content": "be precise"},
            {"role": "user", "content": "find effects"},
        ]
        assert mock_openai.call_args.kwargs["max_retries"] == 0

    @patch("openai.OpenAI")
    def test_unconfigured_makes_no_client(self, mock_openai):
        adapter = OpenAICompatibleAdapter("groq", "llama", None, base_url="https://api.groq.com/openai/v1")
        outcome = adapter.invoke("prompt")

        assert outcome.error == ErrorKind.UNCONFIGURED
        mock_openai.assert_not_called()

    @pytest.mark.parametrize("content", [None, "", "   \n"])
    @patch("openai.OpenAI")
    def test_empty_text(self, mock_openai, content):
        mock_openai.return_value.chat.completions.create.return_value = _chat_response(content)
        adapter = OpenAICompatibleAdapter("groq", "llama", "test-key", base_url="https://x.example.com/v1")
        assert adapter.invoke("prompt").error == ErrorKind.EMPTY_RESPONSE

    @patch("openai.OpenAI")
    def test_no_choices_is_empty(self, mock_openai):
        mock_openai.return_value.chat.completions.create.return_value = SimpleNamespace(choices=[])
        adapter = OpenAICompatibleAdapter("groq", "llama", "test-key", base_url="https://x.example.com/v1")
        assert adapter.invoke("prompt").error == ErrorKind.EMPTY_RESPONSE

    @patch("openai.OpenAI")
    def test_site_headers_passed_through(self, mock_openai):
        headers = {"HTTP-Referer": "http://localhost:3000", "X-Title": "Catalog"}
        OpenAICompatibleAdapter(
            "openrouter", "perplexity/sonar", "test-key",
            base_url="https://openrouter.ai/api/v1", default_headers=headers,
        )
        assert mock_openai.call_args.kwargs["default_headers"] == headers
        assert mock_openai.call_args.kwargs["base_url"] == "https://openrouter.ai/api/v1"


class TestGeminiAdapter:
    @patch("google.genai.Client")
    def test_success(self, mock_client):
        mock_client.return_value.models.generate_content.return_value = SimpleNamespace(text='{"a": 1}')
        adapter = GeminiAdapter("google", "gemini-2.0-flash", "test-key", temperature=0.2, max_tokens=100)

        outcome = adapter.invoke("prompt", "system rules", timeout=10.0)

        assert outcome.is_success
        assert outcome.text == '{"a": 1}'
        kwargs = mock_client.return_value.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert kwargs["config"]["system_instruction"] == "system rules"
        assert kwargs["config"]["max_output_tokens"] == 100
        assert kwargs["config"]["http_options"] == {"timeout": 10000}

    @patch("google.genai.Client")
    def test_no_system_instruction_when_empty(self, mock_client):
        mock_client.return_value.models.generate_content.return_value = SimpleNamespace(text="ok")
        GeminiAdapter("google", "gemini-2.0-flash", "test-key").invoke("prompt")
        config = mock_client.return_value.models.generate_content.call_args.kwargs["config"]
        assert "system_instruction" not in config

    @patch("google.genai.Client")
    def test_exception_is_classified(self, mock_client):
        mock_client.return_value.models.generate_content.side_effect = RuntimeError(
            "429 RESOURCE_EXHAUSTED. Resource has been exhausted"
        )
        outcome = GeminiAdapter("google", "gemini-2.0-flash", "test-key").invoke("prompt")
        assert outcome.error == ErrorKind.RATE_LIMITED


@pytest.mark.parametrize(
    "message,status,expected",
    [
        ("Too Many Requests", 429, ErrorKind.RATE_LIMITED),
        ("Payment Required", 402, ErrorKind.RATE_LIMITED),
        ("Invalid API key", 401, ErrorKind.UNCONFIGURED),
        ("Forbidden", 403, ErrorKind.UNCONFIGURED),
        ("Internal Server Error", 500, ErrorKind.TRANSIENT),
        ("Service Unavailable", 503, ErrorKind.TRANSIENT),
        ("Service Unavailable: quota exceeded", 503, ErrorKind.RATE_LIMITED),
        ("Error code: 429 - rate limit reached", None, ErrorKind.RATE_LIMITED),
        ("insufficient_quota", None, ErrorKind.RATE_LIMITED),
        ("401 Unauthorized", None, ErrorKind.UNCONFIGURED),
        ("Connection reset by peer", None, ErrorKind.TRANSIENT),
        ("Request timed out.", None, ErrorKind.TRANSIENT),
        ("User location is not supported for the API use.", 400, ErrorKind.TRANSIENT),
    ],
)
def test_error_classification(make_adapter, status_error, message, status, expected):
    adapter = make_adapter("provider/model", status_error(message, status))
    outcome = adapter.invoke("prompt")

    assert outcome.is_error
    assert outcome.error == expected
    assert outcome.text == ""


@pytest.mark.parametrize(
    "message,status,expected",
    [
        ("Payment Required", 402, True),
        ("Error code: 402 - insufficient credits", None, True),
        ("You exceeded your current quota: insufficient_quota", 429, True),
        ("Too Many Requests", 429, False),
        ("Internal Server Error", 500, False),
    ],
)
def test_credit_exhaustion_flags_the_credential(make_adapter, status_error, message, status, expected):
    outcome = make_adapter("openrouter/model", status_error(message, status)).invoke("prompt")
    assert outcome.credential_exhausted is expected


def test_unconfigured_never_calls_provider(make_adapter):
    adapter = make_adapter("provider/model", "text", api_key=None)
    outcome = adapter.invoke("prompt")

    assert outcome.error == ErrorKind.UNCONFIGURED
    assert adapter.completions == 0


def test_status_read_from_response_attribute(make_adapter):
    exc = Exception("boom")
    exc.response = MagicMock(status_code=429)
    outcome = make_adapter("provider/model", exc).invoke("prompt")
    assert outcome.error == ErrorKind.RATE_LIMITED
