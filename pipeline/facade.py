"""
CatalogPipeline - the entry point for catalog discovery and enrichment runs.

Composes the fallback orchestrator, the record validator and the evidence
retriever. Expected failures come back as PipelineResult(success=False); only
programmer errors (for example a malformed provider registry) raise.
"""

import asyncio
import json
from collections.abc import Sequence
from typing import Any, Protocol

from config.config import Config
from models.outcome import ErrorKind, PipelineResult, ProviderOutcome
from models.records import CandidateRecord, EnrichmentRecord, SearchEvidence, SearchLink
from providers.base_adapter import BaseProviderAdapter
from providers.registry import STAGES, ProviderRegistry
from search import EvidenceRetriever, create_evidence_retriever, residue_search_links
from utils.logger import get_logger

from .extractor import parse_json_payload
from .fallback_orchestrator import (
    FallbackOrchestrator,
    ParseFailure,
    RunCanceled,
    RunContext,
    RunState,
    await_with_cancel,
)
from .prompts import combined_request, discovery_request, enrichment_request, structuring_request
from .validator import RecordValidator

logger = get_logger(__name__)

MIN_TITLE_LENGTH = 3


class CatalogSink(Protocol):
    """Storage collaborator. The pipeline hands records back and never persists them itself."""

    def save_candidates(self, records: list[CandidateRecord]) -> None: ...

    def save_enrichment(self, title: str, record: EnrichmentRecord) -> None: ...


class CatalogPipeline:
    """
    Two operations, each a sequence of fallback stages:

    discover:            discovery -> structuring  (combined chain when either fails)
    generate_enrichment: evidence retrieval -> enrichment

    Each call gets a fresh RunContext; nothing mutable is shared between runs.
    """

    def __init__(
        self,
        chains: dict[str, list[BaseProviderAdapter]],
        *,
        retriever: EvidenceRetriever | None = None,
        validator: RecordValidator | None = None,
        orchestrator: FallbackOrchestrator | None = None,
        exclusion_limit: int = 50,
        search_timeout_s: float = 15.0,
    ):
        self.chains = {stage: list(chains.get(stage, [])) for stage in STAGES}
        self.retriever = retriever or EvidenceRetriever(None)
        self.validator = validator or RecordValidator()
        self.orchestrator = orchestrator or FallbackOrchestrator()
        self.exclusion_limit = exclusion_limit
        self.search_timeout_s = search_timeout_s

    @classmethod
    def from_config(
        cls, config: Config | None = None, registry: ProviderRegistry | None = None
    ) -> "CatalogPipeline":
        config = config or Config()
        registry = registry or ProviderRegistry.from_yaml(config.PROVIDER_REGISTRY_PATH)

        if not config.validate():
            logger.warning("No provider credentials configured; every run will exhaust its chains")
        logger.info(f"Pipeline configured ({config.get_provider_info()})")

        return cls(
            {stage: registry.build_chain(stage, config) for stage in STAGES},
            retriever=create_evidence_retriever(config, registry.evidence_settings()),
            orchestrator=FallbackOrchestrator(timeout_s=config.PROVIDER_TIMEOUT_S),
            exclusion_limit=config.EXCLUSION_PROMPT_LIMIT,
            search_timeout_s=config.SEARCH_TIMEOUT_S,
        )

    def provider_status(self) -> dict[str, list[dict[str, Any]]]:
        return {
            stage: [{"provider": a.label, "configured": a.is_configured} for a in adapters]
            for stage, adapters in self.chains.items()
        }

    # ------------------------------------------------------------------
    # Parse hooks
    # ------------------------------------------------------------------

    def _decode(self, text: str) -> Any:
        try:
            return parse_json_payload(text)
        except json.JSONDecodeError as e:
            raise ParseFailure(ErrorKind.INVALID_RESPONSE, f"unparseable JSON: {e.msg}") from e

    def _parse_candidates(self, text: str, exclusion_titles: list[str]) -> list[CandidateRecord]:
        validated = self.validator.validate_candidates(self._decode(text))
        if not validated.success:
            raise ParseFailure(validated.error, validated.detail)

        deduped = self.validator.dedupe_candidates(validated.data, exclusion_titles)
        if not deduped.success:
            raise ParseFailure(deduped.error, deduped.detail)
        return deduped.data

    def _parse_enrichment(
        self, text: str, title: str, evidence: list[SearchEvidence], links: list[SearchLink]
    ) -> EnrichmentRecord:
        normalized = self.validator.normalize_enrichment(self._decode(text), title, evidence, links)
        if not normalized.success:
            raise ParseFailure(normalized.error, normalized.detail)
        return normalized.data

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fail(self, run: RunContext, error: ErrorKind, detail: str) -> PipelineResult:
        run.transition(RunState.FAILED)
        logger.error(
            f"{run.operation} failed: {error.value}",
            extra={"extra_fields": {"run_id": run.run_id, "detail": detail}},
        )
        return PipelineResult.fail(error, detail, **run.summary())

    def _stage_failed(self, run: RunContext, outcome: ProviderOutcome) -> PipelineResult:
        return self._fail(run, outcome.error, outcome.detail)

    async def _retrieve_evidence(self, title: str, run: RunContext) -> list[SearchEvidence]:
        """Best effort: any failure or timeout yields no evidence. Raises RunCanceled."""
        if not self.retriever.is_configured:
            return []

        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(None, self.retriever.find_evidence, title, self.search_timeout_s)
        try:
            return await await_with_cancel(call, run.cancel_event, self.search_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(
                f"Evidence search timed out after {self.search_timeout_s}s; continuing without evidence",
                extra={"extra_fields": {"run_id": run.run_id}},
            )
        except RunCanceled:
            raise
        except Exception as e:
            logger.warning(
                f"Evidence search failed: {e}; continuing without evidence",
                extra={"extra_fields": {"run_id": run.run_id}},
                exc_info=True,
            )
        return []

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def discover(
        self, exclusion_titles: Sequence[str] | None = None, *, cancel_event: asyncio.Event | None = None
    ) -> PipelineResult[list[CandidateRecord]]:
        """
        Find new candidate entries absent from ``exclusion_titles``.

        Args:
            exclusion_titles: Titles already in the catalog; only the first
                ``exclusion_limit`` go into prompts, all of them are used for dedupe
            cancel_event: Set it to abort the run; the result is then ``canceled``

        Returns:
            PipelineResult with at least one validated, deduplicated CandidateRecord
            on success, otherwise the terminal error kind and last provider message
        """
        run = RunContext(operation="discover", cancel_event=cancel_event)
        exclusions = [t for t in (exclusion_titles or []) if isinstance(t, str) and t.strip()]

        def parse(text: str) -> list[CandidateRecord]:
            return self._parse_candidates(text, exclusions)

        run.transition(RunState.DISCOVERING)
        findings = await self.orchestrator.run_stage(
            self.chains["discovery"], discovery_request(exclusions, self.exclusion_limit), run=run
        )
        if findings.error == ErrorKind.CANCELED:
            return self._stage_failed(run, findings)

        notes = findings.text if findings.is_success else None
        run.transition(RunState.STRUCTURING)

        outcome: ProviderOutcome | None = None
        if notes:
            outcome = await self.orchestrator.run_stage(
                self.chains["structuring"],
                structuring_request(notes, exclusions, self.exclusion_limit),
                run=run,
                parse=parse,
            )
            if outcome.error == ErrorKind.CANCELED:
                return self._stage_failed(run, outcome)

        if outcome is None or outcome.is_error:
            logger.info(
                "Falling back to combined search-and-structure",
                extra={"extra_fields": {"run_id": run.run_id, "has_research_notes": bool(notes)}},
            )
            outcome = await self.orchestrator.run_stage(
                self.chains["combined"],
                combined_request(exclusions, self.exclusion_limit, research_notes=notes),
                run=run,
                parse=parse,
            )
            if outcome.is_error:
                return self._stage_failed(run, outcome)

        if run.canceled:
            return self._fail(run, ErrorKind.CANCELED, "run canceled")

        records: list[CandidateRecord] = outcome.payload
        run.transition(RunState.VALIDATED)
        logger.info(
            f"Discovered {len(records)} candidate records",
            extra={"extra_fields": {"run_id": run.run_id, "provider": outcome.provider}},
        )
        return PipelineResult.ok(records, provider_used=outcome.provider, **run.summary())

    async def generate_enrichment(
        self,
        title: str,
        question: str,
        variant_a: str,
        variant_b: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> PipelineResult[EnrichmentRecord]:
        """Produce the explanatory sections and citations for one catalog entry."""
        run = RunContext(operation="enrichment", cancel_event=cancel_event)

        title = (title or "").strip()
        question = (question or "").strip()
        variant_a = (variant_a or "").strip()
        variant_b = (variant_b or "").strip()
        if len(title) < MIN_TITLE_LENGTH:
            return self._fail(run, ErrorKind.INVALID_INPUT, f"title must be at least {MIN_TITLE_LENGTH} characters")
        if not variant_a or not variant_b:
            return self._fail(run, ErrorKind.INVALID_INPUT, "both variants are required")

        run.transition(RunState.RETRIEVING_EVIDENCE)
        try:
            evidence = await self._retrieve_evidence(title, run)
        except RunCanceled:
            return self._fail(run, ErrorKind.CANCELED, "run canceled")
        links = residue_search_links(title)

        run.transition(RunState.GENERATING)
        outcome = await self.orchestrator.run_stage(
            self.chains["enrichment"],
            enrichment_request(title, question, variant_a, variant_b, evidence),
            run=run,
            parse=lambda text: self._parse_enrichment(text, title, evidence, links),
        )
        if outcome.is_error:
            return self._stage_failed(run, outcome)
        if run.canceled:
            return self._fail(run, ErrorKind.CANCELED, "run canceled")

        record: EnrichmentRecord = outcome.payload
        if record.is_rejected:
            logger.warning(
                f"Model rejected subject {title!r}: {record.rejection_reason}",
                extra={"extra_fields": {"run_id": run.run_id, "provider": outcome.provider}},
            )

        run.transition(RunState.VALIDATED)
        return PipelineResult.ok(
            record, provider_used=outcome.provider, evidence_count=len(evidence), **run.summary()
        )
