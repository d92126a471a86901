import openai

from .base_adapter import BaseProviderAdapter


class OpenAICompatibleAdapter(BaseProviderAdapter):
    """
    Adapter for any OpenAI-compatible chat completions API.

    Uses the OpenAI SDK with a custom base URL (OpenRouter, Groq, Cerebras,
    SiliconFlow, Hyperbolic, DeepSeek). SDK-level retries are disabled: a failed
    call is reported once and the orchestrator moves on to the next provider.
    """

    def __init__(
        self,
        provider_name: str,
        model_name: str,
        api_key: str | None,
        *,
        base_url: str,
        default_headers: dict[str, str] | None = None,
        **kwargs,
    ):
        super().__init__(provider_name, model_name, api_key, **kwargs)
        self.base_url = base_url
        self.client = None
        if api_key:
            self.client = openai.OpenAI(
                api_key=api_key,
                base_url=base_url,
                default_headers=default_headers,
                max_retries=0,
            )

    def _complete(self, prompt: str, system_context: str, timeout: float) -> str | None:
        messages = []
        if system_context:
            messages.append({"role": "system", "content": system_context})
        messages.append({"role": "user", "content": prompt})

        response = self.client.chat.completions.create(
            model=self.model_name,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=timeout,
        )

        if not response.choices:
            return None
        return response.choices[0].message.content
