"""Tier list configuration and assignment of ranked competitors to tiers."""

from collections.abc import Sequence

from pydantic import BaseModel, Field, TypeAdapter

from tiervoter.exceptions import TierConfigError
from tiervoter.logging import get_logger
from tiervoter.ranker.models import Competitor
from tiervoter.store import KeyValueStore, StoreKeys, read_value, write_value

log = get_logger(__name__)


class Tier(BaseModel):
    """One row of the tier list: how many of the next-ranked competitors it holds."""
    label: str
    size: int = Field(ge=0)
    color: str


class TierAssignment(BaseModel):
    """A tier together with the competitors that fall into it."""
    tier: Tier
    competitors: list[Competitor]
    start_rank: int  # 1-based rank of the first competitor in this tier


DEFAULT_TIERS: list[Tier] = [
    Tier(label="S", size=5, color="#FF7F7F"),
    Tier(label="A", size=6, color="#FFBF7F"),
    Tier(label="B", size=6, color="#FFDF7F"),
    Tier(label="C", size=6, color="#FFFF7F"),
    Tier(label="D", size=5, color="#BFFF7F"),
    Tier(label="E", size=5, color="#7FFF7F"),
]

NEW_TIER_SIZE = 3
NEW_TIER_COLOR = "#7FFF7F"

_tiers_adapter = TypeAdapter(list[Tier])


def standings(competitors: Sequence[Competitor]) -> list[Competitor]:
    """Competitors sorted by rating, highest first."""
    return sorted(competitors, key=lambda c: c.rating, reverse=True)


def rank_of(competitors: Sequence[Competitor], competitor_id: int) -> int | None:
    """1-based rank of a competitor by rating, or None if absent."""
    for i, c in enumerate(standings(competitors), 1):
        if c.id == competitor_id:
            return i
    return None


def total_slots(tiers: Sequence[Tier]) -> int:
    return sum(t.size for t in tiers)


def assign_tiers(
    competitors: Sequence[Competitor],
    tiers: Sequence[Tier]
) -> list[TierAssignment]:
    """Fill tiers in order with competitors ranked by rating.

    Each tier takes the next ``size`` competitors. Tiers past the end of
    the standings come back empty; competitors beyond the total tier
    capacity are left out.
    """
    ranked = standings(competitors)
    assignments = []
    index = 0
    for tier in tiers:
        assignments.append(TierAssignment(
            tier=tier,
            competitors=ranked[index:index + tier.size],
            start_rank=index + 1,
        ))
        index += tier.size
    return assignments


class TierConfigStore:
    """Reads and edits the persisted tier configuration."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def load(self) -> list[Tier]:
        tiers = read_value(self.store, StoreKeys.TIER_CONFIG, _tiers_adapter, None)
        if not tiers:
            return [t.model_copy() for t in DEFAULT_TIERS]
        return tiers

    def save(self, tiers: Sequence[Tier]) -> None:
        if not tiers:
            raise TierConfigError("A tier list needs at least one tier")
        write_value(self.store, StoreKeys.TIER_CONFIG, _tiers_adapter, list(tiers))

    def add(self, label: str | None = None, size: int = NEW_TIER_SIZE, color: str = NEW_TIER_COLOR) -> list[Tier]:
        """Append a tier. The default label is its 1-based position."""
        tiers = self.load()
        if size < 0:
            raise TierConfigError(f"Tier size must be non-negative, got {size}")
        tiers.append(Tier(label=label or str(len(tiers) + 1), size=size, color=color))
        self.save(tiers)
        return tiers

    def remove(self, index: int) -> list[Tier]:
        """Remove the tier at index; the last remaining tier cannot be removed."""
        tiers = self.load()
        if len(tiers) <= 1:
            raise TierConfigError("Cannot remove the last tier")
        if not 0 <= index < len(tiers):
            raise TierConfigError(f"No tier at index {index}")
        del tiers[index]
        self.save(tiers)
        return tiers

    def update(
        self,
        index: int,
        label: str | None = None,
        size: int | None = None,
        color: str | None = None
    ) -> list[Tier]:
        """Change one or more fields of the tier at index."""
        tiers = self.load()
        if not 0 <= index < len(tiers):
            raise TierConfigError(f"No tier at index {index}")
        if size is not None and size < 0:
            raise TierConfigError(f"Tier size must be non-negative, got {size}")
        changes = {k: v for k, v in {"label": label, "size": size, "color": color}.items() if v is not None}
        tiers[index] = tiers[index].model_copy(update=changes)
        self.save(tiers)
        return tiers

    def reset(self) -> list[Tier]:
        tiers = [t.model_copy() for t in DEFAULT_TIERS]
        self.save(tiers)
        log.info("tier_config_reset")
        return tiers
