"""Non-repeating pair scheduling for head-to-head votes.

Every unordered pair of competitors is offered once per cycle, in a random
order fixed when the cycle starts. Two pairs are held out of the queue: the
``current`` pair on offer and a ``lookahead`` pair so the host can prepare
the next match early. All three are written to the durable store after
every change so a reload resumes exactly where the session left off.
"""

import random
from collections.abc import Iterable, Sequence
from itertools import combinations

from pydantic import TypeAdapter

from tiervoter.logging import get_logger
from tiervoter.ranker.models import (
    Competitor,
    Pair,
    Progress,
    RankerConfig,
    SchedulerStatus,
    SessionState,
)
from tiervoter.store import KeyValueStore, StoreKeys, read_value, write_value

log = get_logger(__name__)

_pair_adapter = TypeAdapter(Pair | None)
_queue_adapter = TypeAdapter(list[Pair] | None)


def generate_pairs(competitor_ids: Sequence[int]) -> list[Pair]:
    """Every unordered pair of distinct ids, smaller id first."""
    unique_ids = sorted(set(competitor_ids))
    return list(combinations(unique_ids, 2))


def resolve_pair(
    pair: Pair | None,
    competitors: Iterable[Competitor]
) -> tuple[Competitor, Competitor] | None:
    """Look up both sides of a pair in a competitor collection.

    Returns None if the pair is empty or either id is missing.
    """
    if pair is None:
        return None
    by_id = {c.id: c for c in competitors}
    first = by_id.get(pair[0])
    second = by_id.get(pair[1])
    if first is None or second is None:
        return None
    return first, second


class MatchScheduler:
    """Owns the pair queue and the current/lookahead slots.

    Usage:
        scheduler = MatchScheduler(store)
        scheduler.initialize_or_resume([c.id for c in roster])
        pair = scheduler.current_pair()
        ...
        scheduler.advance(updated_competitors)
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: RankerConfig | None = None,
        rng: random.Random | None = None
    ):
        """Initialize the scheduler.

        Args:
            store: Durable store holding the queue and both slots
            config: Scheduling options (uses defaults if None)
            rng: Random source for shuffles (a fresh ``random.Random`` if None)
        """
        self.store = store
        self.config = config or RankerConfig()
        self.rng = rng or random.Random()
        self.competitor_ids: list[int] = []
        self.state = SessionState()
        self.initialized = False
        self._known_ids: set[int] = set()

    @property
    def status(self) -> SchedulerStatus:
        if not self.initialized:
            return SchedulerStatus.UNINITIALIZED
        if self.is_exhausted():
            return SchedulerStatus.EXHAUSTED
        return SchedulerStatus.ACTIVE

    def initialize_or_resume(self, competitor_ids: Sequence[int]) -> None:
        """Load persisted state, or start a freshly shuffled cycle.

        Args:
            competitor_ids: Ids of every competitor in the roster
        """
        self.competitor_ids = sorted(set(competitor_ids))
        self._known_ids = set(self.competitor_ids)

        persisted = self._load()
        if persisted is None:
            self._start_cycle()
            self.initialized = True
            return

        self.state = persisted
        self.initialized = True
        log.debug(
            "queue_resumed",
            queue_length=len(self.state.queue),
            current=self.state.current,
            lookahead=self.state.lookahead,
        )

        if self.state.current is not None and not self._resolvable(self.state.current):
            log.warning("stale_pair_skipped", pair=self.state.current, slot="current")
            self.state.current = None
        if self.state.lookahead is not None and not self._resolvable(self.state.lookahead):
            log.warning("stale_pair_skipped", pair=self.state.lookahead, slot="lookahead")
            self.state.lookahead = None

        # An empty slot with pairs still queued only happens after a stale
        # or unreadable slot, so refill it
        if self.state.current is None and not self.is_exhausted():
            self.state.current = self.state.lookahead or self._pop_next()
            self.state.lookahead = self._pop_next()
            self._save()
        elif self.state.lookahead is None and self.state.queue:
            self.state.lookahead = self._pop_next()
            self._save()

    def current_pair(self) -> Pair | None:
        return self.state.current

    def lookahead_pair(self) -> Pair | None:
        return self.state.lookahead

    def current_competitors(
        self,
        competitors: Iterable[Competitor]
    ) -> tuple[Competitor, Competitor] | None:
        return resolve_pair(self.state.current, competitors)

    def lookahead_competitors(
        self,
        competitors: Iterable[Competitor]
    ) -> tuple[Competitor, Competitor] | None:
        return resolve_pair(self.state.lookahead, competitors)

    def advance(self, competitors: Iterable[Competitor]) -> None:
        """Move to the next pair.

        The lookahead pair becomes current and the next queued pair becomes
        the lookahead. When the lookahead slot is already empty the next
        queued pair goes straight into current. Once everything is empty
        this is a no-op.

        Args:
            competitors: Latest competitor records, used to drop pairs whose
                ids are no longer known
        """
        self._known_ids = {c.id for c in competitors}

        lookahead = self.state.lookahead
        if lookahead is not None and self._resolvable(lookahead):
            self.state.current = lookahead
        else:
            if lookahead is not None:
                log.warning("stale_pair_skipped", pair=lookahead, slot="lookahead")
            self.state.current = self._pop_next()
        self.state.lookahead = self._pop_next()
        self._save()

        if self.is_exhausted():
            log.info("queue_exhausted", total=self.progress().total)

    def push_back(self, pair: Pair) -> None:
        """Put a pair back at the front of the queue (used by undo)."""
        self.state.queue.insert(0, pair)
        self._save()

    def restore(self, current: Pair | None, lookahead: Pair | None) -> None:
        """Overwrite both slots, e.g. to return to the state before a vote."""
        self.state.current = current
        self.state.lookahead = lookahead
        self._save()

    def reset(self) -> None:
        """Throw away the cycle and start a freshly shuffled one."""
        self._known_ids = set(self.competitor_ids)
        self._start_cycle()
        self.initialized = True
        log.info("queue_reset", total=self.progress().total)

    def progress(self) -> Progress:
        """Pairs voted on so far in this cycle.

        Both occupied slots count as not yet completed.
        """
        n = len(self.competitor_ids)
        total = n * (n - 1) // 2
        pending = len(self.state.queue)
        pending += 1 if self.state.current is not None else 0
        pending += 1 if self.state.lookahead is not None else 0
        return Progress(completed=max(0, total - pending), total=total)

    def is_exhausted(self) -> bool:
        """True only when both slots and the queue are all empty."""
        return self.state.is_empty()

    def _resolvable(self, pair: Pair) -> bool:
        return pair[0] in self._known_ids and pair[1] in self._known_ids

    def _shuffled_pairs(self) -> list[Pair]:
        pairs = generate_pairs(self.competitor_ids)
        self.rng.shuffle(pairs)
        return pairs

    def _start_cycle(self) -> None:
        queue = self._shuffled_pairs()
        total = len(queue)
        current = queue.pop(0) if queue else None
        lookahead = queue.pop(0) if queue else None
        self.state = SessionState(current=current, lookahead=lookahead, queue=queue)
        self._save()
        log.info("queue_generated", pairs=total)

    def _pop_next(self) -> Pair | None:
        """Pop the next usable pair from the front of the queue.

        Pairs with unknown ids are dropped. In auto-cycle mode an empty
        queue is refilled with a new shuffled cycle.
        """
        for _ in range(len(self.state.queue)):
            pair = self.state.queue.pop(0)
            if self._resolvable(pair):
                return pair
            log.warning("stale_pair_skipped", pair=pair, slot="queue")

        if self.config.auto_cycle and len(self.competitor_ids) >= 2:
            self.state.queue = self._shuffled_pairs()
            log.info("queue_regenerated", pairs=len(self.state.queue))
            return self.state.queue.pop(0)

        return None

    def _load(self) -> SessionState | None:
        queue = read_value(self.store, StoreKeys.MATCH_QUEUE, _queue_adapter, None)
        if queue is None:
            return None
        return SessionState(
            current=read_value(self.store, StoreKeys.CURRENT_PAIR, _pair_adapter, None),
            lookahead=read_value(self.store, StoreKeys.NEXT_PAIR, _pair_adapter, None),
            queue=queue,
        )

    def _save(self) -> None:
        write_value(self.store, StoreKeys.MATCH_QUEUE, _queue_adapter, self.state.queue)
        write_value(self.store, StoreKeys.CURRENT_PAIR, _pair_adapter, self.state.current)
        write_value(self.store, StoreKeys.NEXT_PAIR, _pair_adapter, self.state.lookahead)
