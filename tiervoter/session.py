"""Voting session tying together ratings, scheduling, history and tiers."""

import random
from collections.abc import Sequence

from pydantic import BaseModel, TypeAdapter

from tiervoter import config as settings
from tiervoter.events import EventHandler, NullEventHandler
from tiervoter.exceptions import UndoError, VoteError
from tiervoter.history import MatchHistory
from tiervoter.logging import get_logger
from tiervoter.ranker.glicko import update
from tiervoter.ranker.models import (
    Competitor,
    MatchRecord,
    Pair,
    Progress,
    RankerConfig,
    VoteOutcome,
)
from tiervoter.ranker.pairing import MatchScheduler
from tiervoter.roster import DEFAULT_ROSTER, merge_roster
from tiervoter.store import KeyValueStore, StoreKeys, read_value, write_value
from tiervoter.tiers import TierAssignment, TierConfigStore, assign_tiers, rank_of, standings, total_slots

log = get_logger(__name__)

_competitors_adapter = TypeAdapter(list[Competitor])


class UndoSnapshot(BaseModel):
    """State needed to take back the most recent vote."""
    competitors: list[Competitor]
    current: Pair | None
    lookahead: Pair | None


class VotingSession:
    """Pairwise voting session over a fixed roster.

    The host constructs one session at startup and passes it to whatever
    needs it. Construction hydrates everything from the store once; after
    that the session is the single owner of competitor, history and queue
    state.

    Flow:
    - ``current_pair()`` gives the two competitors on offer
    - ``vote(winner_id, loser_id)`` rates them, records the match and advances
    - ``undo()`` takes back the last vote (one level)
    - ``reset()`` starts over with fresh ratings and a new shuffled queue
    """

    def __init__(
        self,
        store: KeyValueStore,
        roster: Sequence[Competitor] | None = None,
        config: RankerConfig | None = None,
        event_handler: EventHandler | None = None,
        rng: random.Random | None = None
    ):
        """Initialize and hydrate the session.

        Args:
            store: Durable store for all session state
            roster: Competitors to rank (uses the default roster if None)
            config: Rating and scheduling options (uses defaults if None)
            event_handler: Optional event handler for presentation updates (uses NullHandler if None)
            rng: Random source for queue shuffles
        """
        self.store = store
        self.roster = list(roster if roster is not None else DEFAULT_ROSTER)
        self.config = config or RankerConfig()
        self.event_handler = event_handler or NullEventHandler()

        self.history = MatchHistory(store)
        self.tier_config = TierConfigStore(store)
        self.scheduler = MatchScheduler(store, self.config, rng)

        self.competitors: list[Competitor] = []
        self.hydrated = False
        self._undo: UndoSnapshot | None = None

        self.hydrate()

    def hydrate(self) -> None:
        """Load competitors and resume the queue. Only the first call has any effect."""
        if self.hydrated:
            return
        persisted = read_value(self.store, StoreKeys.CHARACTERS, _competitors_adapter, [])
        self.competitors = merge_roster(self.roster, persisted)
        self.scheduler.initialize_or_resume([c.id for c in self.roster])
        self.hydrated = True

        progress = self.progress()
        log.info(
            "session_hydrated",
            competitors=len(self.competitors),
            completed=progress.completed,
            total=progress.total,
        )

    def competitor(self, competitor_id: int) -> Competitor | None:
        for c in self.competitors:
            if c.id == competitor_id:
                return c
        return None

    def current_pair(self) -> tuple[Competitor, Competitor] | None:
        return self.scheduler.current_competitors(self.competitors)

    def lookahead_pair(self) -> tuple[Competitor, Competitor] | None:
        return self.scheduler.lookahead_competitors(self.competitors)

    def progress(self) -> Progress:
        return self.scheduler.progress()

    def is_finished(self) -> bool:
        return self.scheduler.is_exhausted()

    @property
    def can_undo(self) -> bool:
        return self._undo is not None

    def vote(self, winner_id: int, loser_id: int) -> VoteOutcome:
        """Record that winner_id beat loser_id in the current pair.

        Raises:
            VoteError: If no pair is on offer or the ids are not the current pair
        """
        pair = self.scheduler.current_pair()
        if pair is None:
            raise VoteError("No pair is on offer; the session is finished")
        if winner_id == loser_id or {winner_id, loser_id} != set(pair):
            raise VoteError(f"Vote {winner_id} over {loser_id} does not match current pair {pair}")

        winner = self.competitor(winner_id)
        loser = self.competitor(loser_id)
        if winner is None or loser is None:
            raise VoteError(f"Unknown competitor in pair {pair}")

        self._undo = UndoSnapshot(
            competitors=list(self.competitors),
            current=pair,
            lookahead=self.scheduler.lookahead_pair(),
        )
        previous_ranks = {
            winner_id: rank_of(self.competitors, winner_id),
            loser_id: rank_of(self.competitors, loser_id),
        }

        new_winner, new_loser = update(winner, loser, self.config)
        new_winner = new_winner.model_copy(update={"vote_count": winner.vote_count + 1})
        new_loser = new_loser.model_copy(update={"vote_count": loser.vote_count + 1})
        replacements = {winner_id: new_winner, loser_id: new_loser}
        self.competitors = [replacements.get(c.id, c) for c in self.competitors]
        self._save_competitors()

        record = MatchRecord(winner_id=winner_id, loser_id=loser_id)
        self.history.append(record)
        self.scheduler.advance(self.competitors)

        outcome = VoteOutcome(
            winner=new_winner,
            loser=new_loser,
            record=record,
            previous_ranks=previous_ranks,
            ranks={
                winner_id: rank_of(self.competitors, winner_id),
                loser_id: rank_of(self.competitors, loser_id),
            },
        )
        log.info(
            "vote_recorded",
            winner_id=winner_id,
            loser_id=loser_id,
            winner_rating=round(new_winner.rating, 1),
            loser_rating=round(new_loser.rating, 1),
        )

        self.event_handler.on_vote(outcome=outcome)
        self.event_handler.on_progress(progress=self.progress())
        if self.is_finished():
            log.info("session_finished", total=self.progress().total)
            self.event_handler.on_finished()

        return outcome

    def undo(self) -> MatchRecord | None:
        """Take back the most recent vote.

        Restores the competitors as they were before the vote, drops the
        last match record, and returns the pairs the vote pulled from the
        queue to its front.

        Returns:
            The removed match record (None if the history was already empty)

        Raises:
            UndoError: If there is no vote to undo
        """
        snapshot = self._undo
        if snapshot is None:
            raise UndoError("Nothing to undo")

        offered = (snapshot.current, snapshot.lookahead)
        consumed = []
        if self.scheduler.lookahead_pair() is not None and self.scheduler.lookahead_pair() not in offered:
            consumed.append(self.scheduler.lookahead_pair())
        if self.scheduler.current_pair() is not None and self.scheduler.current_pair() not in offered:
            consumed.append(self.scheduler.current_pair())
        # Lookahead goes back first so the earlier-popped pair ends up in front
        for pair in consumed:
            self.scheduler.push_back(pair)
        self.scheduler.restore(snapshot.current, snapshot.lookahead)

        self.competitors = snapshot.competitors
        self._save_competitors()
        record = self.history.pop_last()
        self._undo = None

        log.info(
            "vote_undone",
            winner_id=record.winner_id if record else None,
            loser_id=record.loser_id if record else None,
            requeued=len(consumed),
        )
        if record is not None:
            self.event_handler.on_undo(record=record)
        self.event_handler.on_progress(progress=self.progress())
        return record

    def reset(self) -> None:
        """Forget all ratings and history and start a new shuffled cycle."""
        self.competitors = [c.model_copy() for c in self.roster]
        self.store.remove(StoreKeys.CHARACTERS)
        self.history.clear()
        self.scheduler.reset()
        self._undo = None

        log.info("session_reset", total=self.progress().total)
        self.event_handler.on_reset()
        self.event_handler.on_progress(progress=self.progress())

    def standings(self) -> list[Competitor]:
        """Competitors sorted by rating, highest first."""
        return standings(self.competitors)

    def tier_list(self) -> list[TierAssignment]:
        """Current standings split into the configured tiers."""
        tiers = self.tier_config.load()
        slots = total_slots(tiers)
        if slots != len(self.competitors):
            log.debug("tier_slots_mismatch", slots=slots, competitors=len(self.competitors))
        return assign_tiers(self.competitors, tiers)

    def beaten_by(self, competitor_id: int) -> list[Competitor]:
        """Competitors that competitor_id has beaten at least once."""
        return self._lookup(self.history.beaten_by(competitor_id))

    def lost_to(self, competitor_id: int) -> list[Competitor]:
        """Competitors that have beaten competitor_id at least once."""
        return self._lookup(self.history.lost_to(competitor_id))

    def _lookup(self, ids: list[int]) -> list[Competitor]:
        wanted = set(ids)
        return [c for c in self.competitors if c.id in wanted]

    def _save_competitors(self) -> None:
        write_value(self.store, StoreKeys.CHARACTERS, _competitors_adapter, self.competitors)


def create_session(
    store: KeyValueStore | None = None,
    event_handler: EventHandler | None = None,
    config: RankerConfig | None = None
) -> VotingSession:
    """Build a session from environment settings.

    Uses the JSON file store at ``TIERVOTER_STORE_PATH`` unless a store is
    given, and seeds the queue shuffle from ``TIERVOTER_SHUFFLE_SEED`` when set.
    """
    rng = random.Random(settings.SHUFFLE_SEED) if settings.SHUFFLE_SEED is not None else None
    return VotingSession(
        store if store is not None else settings.open_default_store(),
        config=config,
        event_handler=event_handler,
        rng=rng,
    )
