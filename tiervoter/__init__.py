"""Tierlist Voter - rank a roster through sequential head-to-head votes."""

from tiervoter.ranker import Competitor, MatchRecord, MatchScheduler, Progress, RankerConfig, update
from tiervoter.session import VotingSession, create_session
from tiervoter.store import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "Competitor",
    "MatchRecord",
    "MatchScheduler",
    "Progress",
    "RankerConfig",
    "update",
    "VotingSession",
    "create_session",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
]
