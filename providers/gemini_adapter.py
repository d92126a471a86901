from google import genai

from .base_adapter import BaseProviderAdapter


class GeminiAdapter(BaseProviderAdapter):
    """
    Adapter for the Google Gemini API through the google.genai package.
    The system context is sent as ``system_instruction``.
    """

    def __init__(self, provider_name: str, model_name: str, api_key: str | None, **kwargs):
        super().__init__(provider_name, model_name, api_key, **kwargs)
        self.client = genai.Client(api_key=api_key) if api_key else None

    def _complete(self, prompt: str, system_context: str, timeout: float) -> str | None:
        config = {
            "temperature": self.temperature,
            "max_output_tokens": self.max_tokens,
            # google.genai expects milliseconds
            "http_options": {"timeout": int(timeout * 1000)},
        }
        if system_context:
            config["system_instruction"] = system_context

        response = self.client.models.generate_content(
            model=self.model_name,
            contents=prompt,
            config=config,
        )
        return getattr(response, "text", None)
