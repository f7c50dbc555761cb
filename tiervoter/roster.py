"""The default character roster and reconciliation with persisted data."""

from collections.abc import Sequence

from tiervoter.ranker.models import Competitor, RankerConfig


def create_competitor(
    id: int,
    name: str,
    image: str = "",
    config: RankerConfig | None = None
) -> Competitor:
    """Create a competitor with fresh Glicko-2 state."""
    config = config or RankerConfig()
    return Competitor(
        id=id,
        name=name,
        image=image,
        rating=config.initial_rating,
        deviation=config.initial_deviation,
        volatility=config.initial_volatility,
    )


DEFAULT_ROSTER: list[Competitor] = [
    create_competitor(1, "2B", "2B.png"),
    create_competitor(2, "Amy", "Amy.png"),
    create_competitor(3, "Astaroth", "Astaroth.png"),
    create_competitor(4, "Azwel", "Azwel.png"),
    create_competitor(5, "Cassandra", "Cassandra.png"),
    create_competitor(6, "Cervantes", "Cervantes.png"),
    create_competitor(7, "Taki", "Taki.png"),
    create_competitor(8, "Talim", "Talim.png"),
    create_competitor(9, "Geralt", "Geralt.png"),
    create_competitor(10, "Groh", "Groh.png"),
    create_competitor(11, "Haohmaru", "Haohmaru.png"),
    create_competitor(12, "Hilde", "Hilde.png"),
    create_competitor(13, "Hwang", "Hwang.png"),
    create_competitor(14, "Ivy", "Ivy.png"),
    create_competitor(15, "Kilik", "Kilik.png"),
    create_competitor(16, "Maxi", "Maxi.png"),
    create_competitor(17, "Mitsurugi", "Mitsurugi.png"),
    create_competitor(18, "Nightmare", "Nightmare.png"),
    create_competitor(19, "Raphael", "Raphael.png"),
    create_competitor(20, "Seong Mina", "SeongMina.png"),
    create_competitor(21, "Setsuka", "Setsuka.png"),
    create_competitor(22, "Siegfried", "Siegfried.png"),
    create_competitor(23, "Sophitia", "Sophitia.png"),
    create_competitor(24, "Tira", "Tira.png"),
    create_competitor(25, "Voldo", "Voldo.png"),
    create_competitor(26, "Xianghua", "Xianghua.png"),
    create_competitor(27, "Yoshimitsu", "Yoshimitsu.png"),
    create_competitor(28, "Zasalamel", "Zasalamel.png"),
]


def merge_roster(
    roster: Sequence[Competitor],
    persisted: Sequence[Competitor]
) -> list[Competitor]:
    """Overlay persisted competitor data onto the roster.

    The result has exactly one entry per roster competitor, in roster
    order. Fields present in a persisted record win over the roster's;
    fields it never stored keep the roster value. Persisted ids that are
    not in the roster are dropped.

    Args:
        roster: Authoritative competitor list
        persisted: Competitors loaded from the store

    Returns:
        Merged competitors, one per roster entry
    """
    by_id = {c.id: c for c in persisted}
    merged = []
    for base in roster:
        found = by_id.get(base.id)
        if found is None:
            merged.append(base.model_copy())
        else:
            merged.append(base.model_copy(update=found.model_dump(exclude_unset=True)))
    return merged
