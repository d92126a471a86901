"""Factory for creating the evidence retriever from configuration."""

from typing import Any

from config.config import Config
from utils.logger import get_logger

from .evidence_retriever import EvidenceRetriever
from .tavily_client import TavilySearchClient

logger = get_logger(__name__)


def create_evidence_retriever(config: Config, settings: dict[str, Any] | None = None) -> EvidenceRetriever:
    """
    Create an EvidenceRetriever from configuration.

    A missing TAVILY_API_KEY is a normal condition: the retriever is created
    without a client and always returns no evidence.
    """
    client = None
    if config.TAVILY_API_KEY:
        client = TavilySearchClient(api_key=config.TAVILY_API_KEY)
    else:
        logger.warning("TAVILY_API_KEY not set; enrichment runs without evidence")

    return EvidenceRetriever(client, settings)
