import os
from pathlib import Path

from dotenv import load_dotenv

# provider name -> environment variable holding its credential
PROVIDER_KEY_ENV = {
    "openrouter": "OPENROUTER_API_KEY",
    "google": "GOOGLE_API_KEY",
    "groq": "GROQ_API_KEY",
    "cerebras": "CEREBRAS_API_KEY",
    "siliconflow": "SILICONFLOW_API_KEY",
    "hyperbolic": "HYPERBOLIC_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
}


class Config:
    """Configuration management for the pipeline.

    Read once at startup; treat the instance as read-only afterwards.
    """

    def __init__(self, env_file: str | Path | None = None):
        """Initialize configuration with environment variables."""
        # Load environment variables from .env file if it exists
        env_path = Path(env_file) if env_file else Path(__file__).parent.parent / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Provider credentials
        self.API_KEYS: dict[str, str | None] = {
            provider: os.getenv(env_name) or None for provider, env_name in PROVIDER_KEY_ENV.items()
        }
        self.TAVILY_API_KEY = os.getenv("TAVILY_API_KEY") or None

        # Pipeline behaviour
        self.PROVIDER_TIMEOUT_S = float(os.getenv("PROVIDER_TIMEOUT_S", "45"))
        self.SEARCH_TIMEOUT_S = float(os.getenv("SEARCH_TIMEOUT_S", "15"))
        self.EXCLUSION_PROMPT_LIMIT = int(os.getenv("EXCLUSION_PROMPT_LIMIT", "50"))
        self.SITE_URL = os.getenv("SITE_URL", "http://localhost:3000")
        self.PROVIDER_REGISTRY_PATH = os.getenv(
            "PROVIDER_REGISTRY_PATH", str(Path(__file__).parent / "providers.yaml")
        )

    def api_key(self, provider: str) -> str | None:
        return self.API_KEYS.get(provider.lower().strip())

    def configured_providers(self) -> list[str]:
        return sorted(name for name, key in self.API_KEYS.items() if key)

    def validate(self) -> bool:
        """
        Check that at least one generation provider has a credential.

        Returns:
            bool: True if the pipeline can attempt any provider at all
        """
        return bool(self.configured_providers())

    def get_provider_info(self) -> str:
        configured = self.configured_providers()
        search = "tavily" if self.TAVILY_API_KEY else "none"
        return f"providers: {', '.join(configured) or 'none'} | evidence search: {search}"
