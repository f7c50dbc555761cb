"""Data models for the Glicko-2 ranking system."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

INITIAL_RATING = 1500.0
INITIAL_DEVIATION = 350.0
INITIAL_VOLATILITY = 0.06

# Unordered pair of competitor ids, generated with the smaller id first.
Pair = tuple[int, int]


class Competitor(BaseModel):
    """A rankable item and its Glicko-2 state."""
    id: int
    name: str = ""
    image: str = ""
    rating: float = INITIAL_RATING
    deviation: float = INITIAL_DEVIATION  # RD
    volatility: float = INITIAL_VOLATILITY
    vote_count: int = 0


class MatchRecord(BaseModel):
    """A single recorded vote."""
    winner_id: int
    loser_id: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionState(BaseModel):
    """Scheduler slots and the queue of pairs not yet offered this cycle."""
    current: Pair | None = None
    lookahead: Pair | None = None
    queue: list[Pair] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return self.current is None and self.lookahead is None and not self.queue


class SchedulerStatus(str, Enum):
    """Lifecycle of a match scheduler."""
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"


class Progress(BaseModel):
    """How many pairs of the current cycle have been voted on."""
    completed: int
    total: int

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 0.0
        return self.completed / self.total


class VoteOutcome(BaseModel):
    """Result of applying one vote, with ranks before and after."""
    winner: Competitor
    loser: Competitor
    record: MatchRecord
    previous_ranks: dict[int, int]
    ranks: dict[int, int]


class RankerConfig(BaseModel):
    """Configuration for rating updates and pair scheduling."""
    # Glicko-2 system constant: how fast volatility may change
    tau: float = 0.5
    # Bracket width at which the volatility root search stops
    epsilon: float = 1e-6

    initial_rating: float = INITIAL_RATING
    initial_deviation: float = INITIAL_DEVIATION
    initial_volatility: float = INITIAL_VOLATILITY

    # Floors applied if an update drifts to a non-positive value
    min_deviation: float = 1e-6
    min_volatility: float = 1e-6

    # Start a fresh shuffled cycle instead of finishing when the queue runs out
    auto_cycle: bool = False
