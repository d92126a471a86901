from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from config.config import Config

from .base_adapter import BaseProviderAdapter
from .gemini_adapter import GeminiAdapter
from .openai_compatible import OpenAICompatibleAdapter

STAGES = ("discovery", "structuring", "combined", "enrichment")
ADAPTER_KINDS = ("openai_compatible", "gemini")
SITE_TITLE = "Mandela Catalog Pipeline"


@dataclass(frozen=True)
class ChainEntry:
    provider: str
    model: str


@dataclass
class ProviderRegistry:
    _providers: dict[str, dict[str, Any]]
    _stages: dict[str, list[ChainEntry]]
    _generation: dict[str, dict[str, Any]]
    _evidence: dict[str, Any]

    @classmethod
    def from_yaml(cls, path: str | None = None) -> "ProviderRegistry":
        registry_path = Path(path) if path else Path(__file__).resolve().parent.parent / "config" / "providers.yaml"
        if not registry_path.exists():
            raise ValueError(f"Provider registry not found at {registry_path}")

        data = yaml.safe_load(registry_path.read_text(encoding="utf-8"))
        if not data or "providers" not in data or "stages" not in data:
            raise ValueError("Invalid provider registry: missing providers or stages")

        providers: dict[str, dict[str, Any]] = {}
        for name, pdata in data["providers"].items():
            pdata = pdata or {}
            kind = pdata.get("kind")
            if kind not in ADAPTER_KINDS:
                raise ValueError(f"Unknown adapter kind {kind!r} for provider {name}")
            if kind == "openai_compatible" and not pdata.get("base_url"):
                raise ValueError(f"Provider {name} requires base_url")
            providers[name.lower()] = dict(pdata)

        stages: dict[str, list[ChainEntry]] = {}
        for stage in STAGES:
            entries = data["stages"].get(stage)
            if not isinstance(entries, list) or not entries:
                raise ValueError(f"Invalid provider registry: stage {stage} has no providers")
            chain: list[ChainEntry] = []
            for entry in entries:
                if not isinstance(entry, dict) or "provider" not in entry or "model" not in entry:
                    raise ValueError(f"Missing provider/model in stage {stage}")
                provider = str(entry["provider"]).lower()
                if provider not in providers:
                    raise ValueError(f"Stage {stage} references unknown provider {provider}")
                chain.append(ChainEntry(provider=provider, model=str(entry["model"])))
            stages[stage] = chain

        return cls(
            _providers=providers,
            _stages=stages,
            _generation=data.get("generation", {}) or {},
            _evidence=data.get("evidence", {}) or {},
        )

    def chain(self, stage: str) -> list[ChainEntry]:
        if stage not in self._stages:
            raise ValueError(f"Unknown stage: {stage}")
        return list(self._stages[stage])

    def evidence_settings(self) -> dict[str, Any]:
        return dict(self._evidence)

    def generation_settings(self, stage: str) -> dict[str, Any]:
        return dict(self._generation.get(stage, {}) or {})

    def build_adapter(
        self, entry: ChainEntry, config: Config, stage: str | None = None
    ) -> BaseProviderAdapter:
        pdata = self._providers[entry.provider]
        settings = self.generation_settings(stage) if stage else {}
        common = {
            "temperature": float(settings.get("temperature", 0.7)),
            "max_tokens": int(settings.get("max_tokens", 2000)),
        }
        api_key = config.api_key(entry.provider)

        if pdata["kind"] == "gemini":
            return GeminiAdapter(entry.provider, entry.model, api_key, **common)

        headers = None
        if pdata.get("send_site_headers"):
            headers = {"HTTP-Referer": config.SITE_URL, "X-Title": SITE_TITLE}
        return OpenAICompatibleAdapter(
            entry.provider,
            entry.model,
            api_key,
            base_url=pdata["base_url"],
            default_headers=headers,
            **common,
        )

    def build_chain(self, stage: str, config: Config) -> list[BaseProviderAdapter]:
        """Build the ordered adapters for a stage; unconfigured ones are kept and skipped at run time."""
        return [self.build_adapter(entry, config, stage) for entry in self.chain(stage)]

    def configured_chain(self, stage: str, config: Config) -> list[ChainEntry]:
        return [entry for entry in self.chain(stage) if config.api_key(entry.provider)]
