"""Glicko-2 rating and pair scheduling for head-to-head votes."""

from tiervoter.ranker.glicko import update
from tiervoter.ranker.models import (
    Competitor,
    MatchRecord,
    Pair,
    Progress,
    RankerConfig,
    SchedulerStatus,
    SessionState,
    VoteOutcome,
)
from tiervoter.ranker.pairing import MatchScheduler, generate_pairs, resolve_pair

__all__ = [
    "update",
    "Competitor",
    "MatchRecord",
    "Pair",
    "Progress",
    "RankerConfig",
    "SchedulerStatus",
    "SessionState",
    "VoteOutcome",
    "MatchScheduler",
    "generate_pairs",
    "resolve_pair",
]
