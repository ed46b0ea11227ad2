"""Identity resolution entities: match scores and slug mappings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class MatchResult:
    """Outcome of scoring one scraped candidate against a catalog record."""

    slug: str
    is_match: bool
    confidence: float
    quick_filters_passed: bool = False
    type_match: bool = False
    year_match: bool = False
    title_similarity: float = 0.0  # 0-100 (best Dice pair, scaled)
    best_pair: str = ""
    metadata_score: int = 0
    season_valid: bool = True
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProviderSlug:
    """Accepted slug for one provider with its confidence."""

    provider: str
    slug: str
    confidence: float


@dataclass
class SlugMapping:
    """Persisted per-provider slug mapping for one catalog id.

    A non-null slug is authoritative and never re-attempted automatically.
    """

    catalog_id: int
    slugs: dict[str, str | None] = field(default_factory=dict)
    confidence: dict[str, float | None] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def slug_for(self, provider: str) -> str | None:
        return self.slugs.get(provider) or None

    @property
    def resolved_providers(self) -> list[str]:
        return sorted(p for p, s in self.slugs.items() if s)
