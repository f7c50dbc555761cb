"""Persisted match history and head-to-head lookups."""

from pydantic import TypeAdapter

from tiervoter.ranker.models import MatchRecord
from tiervoter.store import KeyValueStore, StoreKeys, read_value, write_value

_records_adapter = TypeAdapter(list[MatchRecord])


class MatchHistory:
    """Append-only list of votes, except that undo may drop the last one."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def records(self) -> list[MatchRecord]:
        return read_value(self.store, StoreKeys.MATCH_HISTORY, _records_adapter, [])

    def append(self, record: MatchRecord) -> None:
        records = self.records()
        records.append(record)
        write_value(self.store, StoreKeys.MATCH_HISTORY, _records_adapter, records)

    def pop_last(self) -> MatchRecord | None:
        """Remove and return the most recent record, if any."""
        records = self.records()
        if not records:
            return None
        last = records.pop()
        write_value(self.store, StoreKeys.MATCH_HISTORY, _records_adapter, records)
        return last

    def clear(self) -> None:
        self.store.remove(StoreKeys.MATCH_HISTORY)

    def beaten_by(self, competitor_id: int) -> list[int]:
        """Ids of competitors this competitor has beaten, first win first."""
        beaten = [r.loser_id for r in self.records() if r.winner_id == competitor_id]
        return list(dict.fromkeys(beaten))

    def lost_to(self, competitor_id: int) -> list[int]:
        """Ids of competitors that have beaten this competitor, first loss first."""
        winners = [r.winner_id for r in self.records() if r.loser_id == competitor_id]
        return list(dict.fromkeys(winners))

    def record_for(self, competitor_id: int) -> tuple[int, int]:
        """(wins, losses) for a competitor across the whole history."""
        wins = losses = 0
        for r in self.records():
            if r.winner_id == competitor_id:
                wins += 1
            elif r.loser_id == competitor_id:
                losses += 1
        return wins, losses

    def __len__(self) -> int:
        return len(self.records())
