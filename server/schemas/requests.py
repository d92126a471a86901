"""Pydantic request models for FastAPI endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class DiscoverRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exclusion_titles: list[str] = Field(default_factory=list, alias="exclusionTitles", max_length=10000)


class EnrichmentRequest(BaseModel):
    """Content checks (title length, non-empty variants) happen in the pipeline, not here."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    question: str = ""
    variant_a: str = Field(..., alias="variantA")
    variant_b: str = Field(..., alias="variantB")
