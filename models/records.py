from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Category(str, Enum):
    FILMS = "films"
    BRANDS = "brands"
    MUSIC = "music"
    POPCULTURE = "popculture"
    CHILDHOOD = "childhood"
    PEOPLE = "people"
    GEOGRAPHY = "geography"
    HISTORY = "history"
    SCIENCE = "science"
    RUSSIAN = "russian"
    TECH = "tech"
    FOOD = "food"
    GAMES = "games"
    BRAIN = "brain"
    OTHER = "other"

    @classmethod
    def normalize(cls, value: Any) -> "Category":
        """Map untrusted input onto the closed set; anything unknown becomes OTHER."""
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.OTHER


@dataclass(frozen=True)
class CandidateRecord:
    title: str
    question: str
    variant_a: str
    variant_b: str
    category: Category = Category.OTHER
    source_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "question": self.question,
            "variantA": self.variant_a,
            "variantB": self.variant_b,
            "category": self.category.value,
            "sourceUrl": self.source_url,
        }


@dataclass(frozen=True)
class SearchEvidence:
    title: str
    url: str
    text: str
    published_date: str | None = None
    relevance_score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "text": self.text,
            "publishedDate": self.published_date,
            "relevanceScore": self.relevance_score,
        }


@dataclass(frozen=True)
class SearchLink:
    platform: str
    title: str
    url: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "title": self.title,
            "url": self.url,
            "description": self.description,
        }


# section name -> citation field that backs it
SECTION_SOURCES: dict[str, str] = {
    "current_state": "source_link",
    "scientific": "scientific_source",
    "community": "community_source",
    "history": "history_source",
    "residue": "residue_source",
}


@dataclass(frozen=True)
class EnrichmentRecord:
    current_state: str
    scientific: str
    community: str
    history: str
    residue: str
    source_link: str
    scientific_source: str
    community_source: str
    history_source: str
    residue_source: str
    category: Category = Category.OTHER
    image_prompt: str | None = None
    evidence: list[SearchEvidence] = field(default_factory=list)
    search_links: list[SearchLink] = field(default_factory=list)
    rejection_reason: str | None = None

    @property
    def is_rejected(self) -> bool:
        return self.rejection_reason is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentState": self.current_state,
            "scientific": self.scientific,
            "community": self.community,
            "history": self.history,
            "residue": self.residue,
            "sourceLink": self.source_link,
            "scientificSource": self.scientific_source,
            "communitySource": self.community_source,
            "historySource": self.history_source,
            "residueSource": self.residue_source,
            "category": self.category.value,
            "imagePrompt": self.image_prompt,
            "evidence": [item.to_dict() for item in self.evidence],
            "searchLinks": [link.to_dict() for link in self.search_links],
            "error": self.rejection_reason,
        }
