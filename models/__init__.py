"""
Models package for pipeline records and outcomes.
"""

from .outcome import ADVANCE_KINDS, ErrorKind, PipelineResult, ProviderOutcome
from .records import (
    SECTION_SOURCES,
    CandidateRecord,
    Category,
    EnrichmentRecord,
    SearchEvidence,
    SearchLink,
)

__all__ = [
    "ADVANCE_KINDS",
    "SECTION_SOURCES",
    "CandidateRecord",
    "Category",
    "EnrichmentRecord",
    "ErrorKind",
    "PipelineResult",
    "ProviderOutcome",
    "SearchEvidence",
    "SearchLink",
]
