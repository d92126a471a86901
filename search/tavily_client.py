"""Tavily API client used as the external search index for evidence retrieval."""

from typing import Any

from tavily import TavilyClient

from utils.logger import get_logger

logger = get_logger(__name__)


class TavilySearchClient:
    """
    Thin wrapper over the Tavily SDK.

    Returns raw result dicts (title, url, content, score, published_date) and
    never raises: evidence is a best-effort enhancement.
    """

    def __init__(self, api_key: str):
        """
        Initialize Tavily client.

        Args:
            api_key: Tavily API key
        """
        if not api_key:
            raise ValueError("TAVILY_API_KEY not configured")
        self.client = TavilyClient(api_key=api_key)
        logger.info("Tavily client initialized")

    def search(
        self,
        query: str,
        max_results: int = 8,
        exclude_domains: list[str] | None = None,
        timeout: float = 15.0,
    ) -> list[dict[str, Any]]:
        """
        Search the web using Tavily API.

        Args:
            query: Search query
            max_results: Size of the candidate pool to request
            exclude_domains: Domains Tavily should leave out
            timeout: Seconds before the request is abandoned

        Returns:
            Raw result dicts, or an empty list on any failure
        """
        logger.info(f"Tavily search: '{query}' (max_results={max_results})")

        try:
            response = self.client.search(
                query=query,
                max_results=max_results,
                search_depth="advanced",
                exclude_domains=exclude_domains or [],
                include_answer=False,
                include_raw_content=False,
                timeout=int(timeout),
            )
        except Exception as e:
            logger.error(f"Tavily search failed: {e}", exc_info=True)
            return []

        results = response.get("results", []) if isinstance(response, dict) else []
        logger.info(f"Tavily returned {len(results)} results")
        return [r for r in results if isinstance(r, dict)]
