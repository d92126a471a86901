"""
Prompt builders for every pipeline stage.

Content fields are requested in Russian; search links and image prompts in English.
"""

from collections.abc import Sequence

from models.records import Category, SearchEvidence

from .fallback_orchestrator import StageRequest

CATEGORY_LIST = "|".join(c.value for c in Category)

CANDIDATE_FORMAT = f"""[
  {{
    "title": "Effect title in Russian",
    "question": "Voting question in Russian, ending with ?",
    "variantA": "Variant A (the false memory)",
    "variantB": "Variant B (reality)",
    "category": "{CATEGORY_LIST}",
    "sourceUrl": "https://example.com/article (optional)"
  }}
]"""

CANDIDATE_RULES = """Rules:
- Each effect must be a REAL Mandela Effect, never invented.
- variantA is the FALSE memory, variantB is what actually exists.
- The question must be clear and end with "?".
- Language: Russian for title, question, variantA, variantB; English for sourceUrl.
- STRICTLY exclude anything similar to the exclusion list."""

DISCOVERY_SYSTEM = """You are a Mandela Effect researcher with live web access.

Search forums, Reddit threads and articles for real Mandela Effects: collective false
memories where many people remember one version and reality shows another.
Write plain research notes. For each effect give its name, what people remember,
what is actually true, and a source URL when you have one."""

STRUCTURING_SYSTEM = f"""You are a Mandela Effect Database Archivist.

You convert research notes into database records.

{CANDIDATE_RULES}

Return ONLY a valid JSON array, no markdown, no explanations, in this format:
{CANDIDATE_FORMAT}"""

COMBINED_SYSTEM = f"""You are a Mandela Effect Database Archivist.

Your goal: find 15-20 VALID Mandela Effects that are MISSING from the provided exclusion list
and return them as database records.

{CANDIDATE_RULES}

Return ONLY a valid JSON array, no markdown, no explanations, in this format:
{CANDIDATE_FORMAT}"""

ENRICHMENT_SYSTEM = f"""STRICT INPUT CHECK (do this first):
If the title and question are generic words ("title", "test", "example"), gibberish
("asdasd", "qwerty"), or too vague to name a specific brand, film, quote or event,
return ONLY:
{{ "error": "Unclear request. Enter a specific effect name (for example: 'Volkswagen logo', 'Star Wars quote')." }}
Never return content fields together with "error". Never write apologies into any field.

Otherwise you are a JSON generator for a Mandela Effect database. Variants A and B are
already provided; analyse the difference between them and write:
- currentState: the facts as they are today (2 sentences)
- history: how the false memory spread
- scientific: why people confuse A and B
- community: what the community says
- residue: at least 2 CONCRETE examples of the false version in culture, each with a
  title and year or episode. Never write vague phrases like "in various sources".
  If there is no residue, say so plainly.

Text fields in Russian. Search queries inside links in English.
Also return "imagePrompt" in English illustrating the FALSE memory (variant A),
ending with "cinematic lighting, hyperrealistic, 4k, no text".

Return ONLY a JSON object, no markdown, without variantA/variantB:
{{
  "category": "{CATEGORY_LIST}",
  "currentState": "...",
  "scientific": "...",
  "community": "...",
  "history": "...",
  "residue": "...",
  "sourceLink": "https://www.google.com/search?q=...",
  "scientificSource": "https://www.google.com/search?q=...",
  "communitySource": "https://www.google.com/search?q=...",
  "historySource": "https://www.google.com/search?q=...",
  "residueSource": "https://www.google.com/search?q=...",
  "imagePrompt": "Close up shot of ..., cinematic lighting, hyperrealistic, 4k, no text"
}}"""


def format_exclusions(exclusion_titles: Sequence[str], limit: int) -> str:
    titles = [t for t in exclusion_titles[:limit] if t]
    return ", ".join(titles) if titles else "(empty)"


def discovery_request(exclusion_titles: Sequence[str], limit: int = 50) -> StageRequest:
    prompt = (
        "Find 15-20 real Mandela Effects that are NOT in this exclusion list:\n\n"
        f"{format_exclusions(exclusion_titles, limit)}\n\n"
        "Return research notes with sources."
    )
    return StageRequest(stage="discovery", prompt=prompt, system_context=DISCOVERY_SYSTEM)


def structuring_request(findings: str, exclusion_titles: Sequence[str], limit: int = 50) -> StageRequest:
    prompt = (
        f"Research notes:\n\n{findings}\n\n"
        f"Exclusion list:\n{format_exclusions(exclusion_titles, limit)}\n\n"
        "Return a JSON array of records built only from these notes."
    )
    return StageRequest(stage="structuring", prompt=prompt, system_context=STRUCTURING_SYSTEM)


def combined_request(
    exclusion_titles: Sequence[str], limit: int = 50, research_notes: str | None = None
) -> StageRequest:
    prompt = (
        "Find 15-20 Mandela Effects that are NOT in this exclusion list:\n\n"
        f"{format_exclusions(exclusion_titles, limit)}\n\n"
    )
    if research_notes:
        prompt += f"Research notes gathered earlier (use them first):\n\n{research_notes}\n\n"
    prompt += "Return a JSON array with valid effects."
    return StageRequest(stage="combined", prompt=prompt, system_context=COMBINED_SYSTEM)


def format_evidence(evidence: Sequence[SearchEvidence]) -> str:
    if not evidence:
        return ""
    blocks = []
    for i, item in enumerate(evidence, 1):
        dated = f" ({item.published_date})" if item.published_date else ""
        blocks.append(f"[{i}] {item.title}{dated}\n{item.url}\n{item.text}")
    return "\n\n".join(blocks)


def enrichment_request(
    title: str,
    question: str,
    variant_a: str,
    variant_b: str,
    evidence: Sequence[SearchEvidence] = (),
) -> StageRequest:
    prompt = (
        f'SUBJECT: "{title}"\n'
        f'QUESTION: "{question or "What is the effect about?"}"\n'
        f'VARIANT A (false memory): "{variant_a}"\n'
        f'VARIANT B (reality): "{variant_b}"\n'
    )
    evidence_block = format_evidence(evidence)
    if evidence_block:
        prompt += (
            "\nEVIDENCE found on the web. Ground residue and sources in it and cite its URLs "
            f"where they fit:\n\n{evidence_block}\n"
        )
    prompt += "\nReturn the JSON object."
    return StageRequest(stage="enrichment", prompt=prompt, system_context=ENRICHMENT_SYSTEM)
