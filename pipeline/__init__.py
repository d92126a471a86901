"""
Pipeline package: extraction, validation, fallback orchestration and the facade.
"""

from .facade import CatalogPipeline, CatalogSink
from .fallback_orchestrator import FallbackOrchestrator, ParseFailure, RunContext, RunState, StageRequest

__all__ = [
    "CatalogPipeline",
    "CatalogSink",
    "FallbackOrchestrator",
    "ParseFailure",
    "RunContext",
    "RunState",
    "StageRequest",
]
