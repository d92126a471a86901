import re
from typing import Any
from urllib.parse import quote_plus, urlparse

from models.outcome import ErrorKind, PipelineResult
from models.records import (
    SECTION_SOURCES,
    CandidateRecord,
    Category,
    EnrichmentRecord,
    SearchEvidence,
    SearchLink,
)
from utils.logger import get_logger

logger = get_logger(__name__)

GENERIC_SEARCH_URL = "https://www.google.com/search?q={query}"

# wire key -> record field
CANDIDATE_KEYS = {
    "title": ("title",),
    "question": ("question", "prompt"),
    "variant_a": ("variantA", "variant_a"),
    "variant_b": ("variantB", "variant_b"),
}
SECTION_KEYS = {
    "current_state": "currentState",
    "scientific": "scientific",
    "community": "community",
    "history": "history",
    "residue": "residue",
}
SOURCE_KEYS = {
    "source_link": "sourceLink",
    "scientific_source": "scientificSource",
    "community_source": "communitySource",
    "history_source": "historySource",
    "residue_source": "residueSource",
}


def fallback_search_url(title: str) -> str:
    return GENERIC_SEARCH_URL.format(query=quote_plus(f"{title.strip()} Mandela effect"))


def title_key(title: str) -> str:
    """Comparison key for duplicate detection: casefolded, punctuation-free, single-spaced."""
    return re.sub(r"[\W_]+", " ", title.casefold()).strip()


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n\n".join(str(item).strip() for item in value if item is not None and str(item).strip())
    return str(value).strip()


class RecordValidator:
    """
    Narrow untrusted provider payloads into typed records.

    Candidates follow an accept-the-valid-subset policy: malformed elements are
    dropped, never repaired, and the batch succeeds while one element survives.
    """

    def _pick(self, item: dict[str, Any], keys: tuple[str, ...]) -> Any:
        for key in keys:
            value = item.get(key)
            if isinstance(value, str):
                return value
        return item.get(keys[0])

    def _coerce_candidate(self, item: Any) -> CandidateRecord | None:
        if not isinstance(item, dict):
            return None

        values = {field: self._pick(item, keys) for field, keys in CANDIDATE_KEYS.items()}
        category = item.get("category")
        if not all(isinstance(v, str) for v in values.values()) or not isinstance(category, str):
            return None

        trimmed = {field: value.strip() for field, value in values.items()}
        if not all(trimmed.values()):
            return None
        if trimmed["variant_a"].casefold() == trimmed["variant_b"].casefold():
            return None

        source_url = item.get("sourceUrl")
        source_url = source_url.strip() if isinstance(source_url, str) and source_url.strip() else None

        return CandidateRecord(
            title=trimmed["title"],
            question=trimmed["question"],
            variant_a=trimmed["variant_a"],
            variant_b=trimmed["variant_b"],
            category=Category.normalize(category),
            source_url=source_url,
        )

    def validate_candidates(self, parsed: Any) -> PipelineResult[list[CandidateRecord]]:
        if not isinstance(parsed, list):
            return PipelineResult.fail(
                ErrorKind.INVALID_RESPONSE, f"expected a JSON array, got {type(parsed).__name__}"
            )

        records: list[CandidateRecord] = []
        for item in parsed:
            record = self._coerce_candidate(item)
            if record is not None:
                records.append(record)

        rejected = len(parsed) - len(records)
        if rejected:
            logger.info(
                "Dropped invalid candidate records",
                extra={"extra_fields": {"received": len(parsed), "rejected": rejected}},
            )

        if not records:
            return PipelineResult.fail(
                ErrorKind.NO_VALID_RECORDS, f"0 of {len(parsed)} records passed validation"
            )
        return PipelineResult.ok(records, rejected=rejected)

    def dedupe_candidates(
        self, records: list[CandidateRecord], exclusion_titles: list[str]
    ) -> PipelineResult[list[CandidateRecord]]:
        """Drop records already in the catalog or repeated within the batch."""
        seen = {title_key(t) for t in exclusion_titles if isinstance(t, str) and t.strip()}
        kept: list[CandidateRecord] = []
        for record in records:
            key = title_key(record.title)
            if key in seen:
                continue
            seen.add(key)
            kept.append(record)

        duplicates = len(records) - len(kept)
        if duplicates:
            logger.info(
                "Dropped duplicate candidate records",
                extra={"extra_fields": {"duplicates": duplicates, "kept": len(kept)}},
            )
        if not kept:
            return PipelineResult.fail(
                ErrorKind.NO_VALID_RECORDS, "every candidate duplicates an existing entry"
            )
        return PipelineResult.ok(kept, duplicates=duplicates)

    def normalize_enrichment(
        self,
        parsed: Any,
        title: str,
        evidence: list[SearchEvidence] | None = None,
        search_links: list[SearchLink] | None = None,
    ) -> PipelineResult[EnrichmentRecord]:
        if not isinstance(parsed, dict):
            return PipelineResult.fail(
                ErrorKind.INVALID_RESPONSE, f"expected a JSON object, got {type(parsed).__name__}"
            )

        evidence = list(evidence or [])
        search_links = list(search_links or [])
        fallback = fallback_search_url(title)

        rejection = parsed.get("error")
        if isinstance(rejection, str) and rejection.strip():
            sections = {field: "" for field in SECTION_KEYS}
            sources = {field: fallback for field in SOURCE_KEYS}
            return PipelineResult.ok(
                EnrichmentRecord(
                    **sections,
                    **sources,
                    evidence=evidence,
                    search_links=search_links,
                    rejection_reason=rejection.strip(),
                )
            )

        sections = {field: _to_text(parsed.get(key)) for field, key in SECTION_KEYS.items()}
        if not any(sections.values()):
            return PipelineResult.fail(ErrorKind.NO_VALID_RECORDS, "every content section is empty")

        sources: dict[str, str] = {}
        for field, key in SOURCE_KEYS.items():
            value = _to_text(parsed.get(key))
            if not _is_http_url(value):
                value = ""
            sources[field] = value

        residue_field = SECTION_SOURCES["residue"]
        if not sources[residue_field] and evidence:
            sources[residue_field] = evidence[0].url
        for field, value in sources.items():
            if not value:
                sources[field] = fallback

        image_prompt = parsed.get("imagePrompt")
        image_prompt = image_prompt.strip() if isinstance(image_prompt, str) and image_prompt.strip() else None

        return PipelineResult.ok(
            EnrichmentRecord(
                **sections,
                **sources,
                category=Category.normalize(parsed.get("category")),
                image_prompt=image_prompt,
                evidence=evidence,
                search_links=search_links,
            )
        )
