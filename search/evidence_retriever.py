"""Relevance-filtered evidence retrieval for grounding enrichment prompts."""

from typing import Any

from models.records import SearchEvidence
from utils.logger import get_logger

from .relevance import clean_text, is_blocked, is_cyrillic, is_relevant
from .tavily_client import TavilySearchClient

logger = get_logger(__name__)

DEFAULT_BLOCKED_DOMAINS = ["wikipedia.org"]


def build_search_query(subject: str) -> str:
    """Decorate the subject so the index looks for the phenomenon, not everyday mentions."""
    if is_cyrillic(subject):
        return f'"{subject}" эффект манделы обсуждение цитата'
    return f'"{subject}" mandela effect residue proof'


class EvidenceRetriever:
    """
    Find up to ``max_results`` corroborating snippets for a subject.

    Best effort: a missing client or any search failure yields an empty list.
    """

    def __init__(self, client: TavilySearchClient | None, settings: dict[str, Any] | None = None):
        settings = settings or {}
        self.client = client
        self.blocked_domains = list(settings.get("blocked_domains", DEFAULT_BLOCKED_DOMAINS))
        self.candidate_pool = int(settings.get("candidate_pool", 8))
        self.max_results = int(settings.get("max_results", 3))
        self.max_chars = int(settings.get("max_chars", 500))
        self.short_query_words = int(settings.get("short_query_words", 2))
        self.short_threshold = float(settings.get("short_query_threshold", 0.99))
        self.long_threshold = float(settings.get("long_query_threshold", 0.6))

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def find_evidence(self, query: str, timeout: float = 15.0) -> list[SearchEvidence]:
        if not self.client:
            logger.info("Evidence search not configured; continuing without evidence")
            return []
        if not query or not query.strip():
            return []

        results = self.client.search(
            build_search_query(query.strip()),
            max_results=self.candidate_pool,
            exclude_domains=self.blocked_domains,
            timeout=timeout,
        )

        survivors: list[dict[str, Any]] = []
        for result in results:
            url = str(result.get("url") or "")
            if is_blocked(url, self.blocked_domains):
                continue
            title = str(result.get("title") or "")
            text = str(result.get("content") or "")
            relevant = is_relevant(
                query,
                title,
                text,
                short_query_words=self.short_query_words,
                short_threshold=self.short_threshold,
                long_threshold=self.long_threshold,
            )
            logger.debug(
                "Relevance check",
                extra={"extra_fields": {"query": query, "title": title[:40], "relevant": relevant}},
            )
            if relevant:
                survivors.append(result)

        survivors.sort(key=lambda r: float(r.get("score") or 0.0), reverse=True)
        evidence = [
            SearchEvidence(
                title=str(r.get("title") or "Unknown Source"),
                url=str(r["url"]),
                text=clean_text(str(r.get("content") or ""), self.max_chars),
                published_date=r.get("published_date") or None,
                relevance_score=float(r["score"]) if r.get("score") is not None else None,
            )
            for r in survivors[: self.max_results]
        ]

        logger.info(
            f"Found {len(evidence)} evidence snippets after filtering",
            extra={"extra_fields": {"query": query, "candidates": len(results)}},
        )
        return evidence
