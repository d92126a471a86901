"""Evidence search tools for the enrichment pipeline."""

from .evidence_retriever import EvidenceRetriever, build_search_query
from .factory import create_evidence_retriever
from .links import residue_search_links

__all__ = ["EvidenceRetriever", "build_search_query", "create_evidence_retriever", "residue_search_links"]
