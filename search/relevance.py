"""Word-overlap relevance and domain filtering for search results."""

import re
from urllib.parse import urlparse

CYRILLIC = re.compile(r"[а-яА-ЯёЁ]")


def is_cyrillic(text: str) -> bool:
    return bool(CYRILLIC.search(text or ""))


def significant_words(text: str) -> set[str]:
    """Lowercase letter-only words longer than two characters."""
    letters = "".join(ch for ch in (text or "").lower() if ch.isalpha() or ch.isspace())
    return {word for word in letters.split() if len(word) > 2}


def overlap_ratio(query: str, content: str) -> float:
    query_words = significant_words(query)
    if not query_words:
        return 1.0
    return len(query_words & significant_words(content)) / len(query_words)


def is_relevant(
    query: str,
    title: str,
    text: str,
    *,
    short_query_words: int = 2,
    short_threshold: float = 0.99,
    long_threshold: float = 0.6,
) -> bool:
    """
    Keep a result only if it shares enough significant words with the query.

    Short queries (<= short_query_words words) need near-total overlap,
    otherwise loosely related pages would pass on a single shared word.
    """
    query_words = significant_words(query)
    if not query_words:
        return True
    ratio = overlap_ratio(query, f"{title} {text}")
    threshold = short_threshold if len(query_words) <= short_query_words else long_threshold
    return ratio >= threshold


def is_blocked(url: str, blocked_domains: list[str]) -> bool:
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return True
    for domain in blocked_domains:
        domain = domain.lower().lstrip(".")
        if host == domain or host.endswith("." + domain):
            return True
    return False


def clean_text(text: str, limit: int = 500) -> str:
    collapsed = re.sub(r"\s+", " ", text or "").strip()
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[:limit] + "..."
