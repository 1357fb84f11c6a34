"""Tunable weights and runtime settings for the lead engine.

Weights are plain pydantic models passed explicitly to the similarity and
scoring functions so they can be tuned per call and in tests. Runtime
settings are read from the environment (.env supported):

  BULK_BATCH_SIZE            default leads per enrichment chunk (5)
  BULK_BATCH_DELAY_SECONDS   pause between chunks (2)
  DUPLICATE_THRESHOLD        default similarity threshold for reviews (80)
"""
import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

MAX_BATCH_SIZE = 50
IMPORT_ERROR_DETAIL_CAP = 500
DEFAULT_LOG_LIMIT = 10


class SimilarityWeights(BaseModel):
    """Maximum contribution of each signal, applied to a 0-100 signal value."""

    business_name: float = 0.4
    phone: float = 0.3
    owner_email: float = 0.2
    address: float = 0.1
    website: float = 0.1


class ScoringWeights(BaseModel):
    fit: float = 0.35
    engagement: float = 0.25
    contact_quality: float = 0.20
    opportunity: float = 0.20


class ScoringPolicy(BaseModel):
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    target_business_types: List[str] = Field(
        default_factory=lambda: ["HVAC", "Roofing", "Painting"]
    )
    ideal_employee_range: tuple[int, int] = (1, 20)
    ideal_revenue_range: tuple[int, int] = (100_000, 2_000_000)
    acceptable_revenue_range: tuple[int, int] = (50_000, 5_000_000)


class BulkJobSettings(BaseModel):
    batch_size: int = Field(default=5, ge=1, le=MAX_BATCH_SIZE)
    batch_delay_seconds: float = Field(default=2.0, ge=0)
    log_limit: int = Field(default=DEFAULT_LOG_LIMIT, ge=1)


def load_bulk_settings() -> BulkJobSettings:
    """Build BulkJobSettings from the environment."""
    return BulkJobSettings(
        batch_size=int(os.environ.get("BULK_BATCH_SIZE", "5")),
        batch_delay_seconds=float(os.environ.get("BULK_BATCH_DELAY_SECONDS", "2")),
    )


def default_duplicate_threshold() -> float:
    return float(os.environ.get("DUPLICATE_THRESHOLD", "80"))
