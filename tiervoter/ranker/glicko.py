"""Pure Glicko-2 rating calculations for single head-to-head votes.

Follows Glickman's "Example of the Glicko-2 system", with each vote treated
as its own rating period. Ratings live on the public scale (centered at
1500) and are converted to the internal scale (centered at 0) for the
update.
"""

import math

from tiervoter.ranker.models import Competitor, RankerConfig

GLICKO2_SCALE = 173.7178
RATING_CENTER = 1500.0

# Keeps E(1-E) away from zero when the rating gap is enormous
EXPECTED_SCORE_LIMIT = 1e-12


def scale_down(rating: float, deviation: float) -> tuple[float, float]:
    """Convert (rating, RD) to the internal (mu, phi) scale."""
    return (rating - RATING_CENTER) / GLICKO2_SCALE, deviation / GLICKO2_SCALE


def scale_up(mu: float, phi: float) -> tuple[float, float]:
    """Convert internal (mu, phi) back to (rating, RD)."""
    return GLICKO2_SCALE * mu + RATING_CENTER, GLICKO2_SCALE * phi


def g(phi: float) -> float:
    """Down-weight an opponent according to their rating uncertainty.

    g(phi) = 1 / sqrt(1 + 3 phi^2 / pi^2)
    """
    return 1.0 / math.sqrt(1.0 + 3.0 * phi * phi / (math.pi * math.pi))


def expected_score(mu: float, mu_opp: float, phi_opp: float) -> float:
    """Logistic probability that the player at mu beats the opponent.

    Args:
        mu: Player rating on the internal scale
        mu_opp: Opponent rating on the internal scale
        phi_opp: Opponent deviation on the internal scale

    Returns:
        Expected score between 0 and 1; rounds to exactly 0 or 1 for huge gaps
    """
    z = g(phi_opp) * (mu - mu_opp)
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    ez = math.exp(z)
    return ez / (1.0 + ez)


def solve_volatility(
    phi: float,
    delta: float,
    v: float,
    sigma: float,
    tau: float = 0.5,
    epsilon: float = 1e-6
) -> float:
    """Find the new volatility with the Illinois variant of regula falsi.

    Solves f(x) = 0 for
        f(x) = e^x (delta^2 - phi^2 - v - e^x) / (2 (phi^2 + v + e^x)^2) - (x - a) / tau^2
    where a = ln(sigma^2).

    Args:
        phi: Current deviation on the internal scale
        delta: Estimated rating improvement
        v: Estimated variance of the rating from this match
        sigma: Current volatility
        tau: System constant limiting volatility change
        epsilon: Convergence tolerance on the bracket width

    Returns:
        The new volatility sigma'
    """
    a = math.log(sigma * sigma)
    phi_sq = phi * phi
    delta_sq = delta * delta
    tau_sq = tau * tau

    def f(x: float) -> float:
        ex = math.exp(x)
        return (ex * (delta_sq - phi_sq - v - ex)) / (2.0 * (phi_sq + v + ex) ** 2) - (x - a) / tau_sq

    lower = a
    if delta_sq > phi_sq + v:
        upper = math.log(delta_sq - phi_sq - v)
    else:
        # f(x) grows without bound as x decreases, so this terminates
        k = 1
        while f(a - k * tau) < 0:
            k += 1
        upper = a - k * tau

    f_lower = f(lower)
    f_upper = f(upper)

    while abs(upper - lower) > epsilon:
        candidate = lower + (lower - upper) * f_lower / (f_upper - f_lower)
        f_candidate = f(candidate)
        if f_candidate * f_upper <= 0:
            lower, f_lower = upper, f_upper
        else:
            f_lower /= 2.0
        upper, f_upper = candidate, f_candidate

    return math.exp(lower / 2.0)


def _rate(
    player: Competitor,
    opponent: Competitor,
    outcome: float,
    config: RankerConfig
) -> Competitor:
    """Rate one side of a match against its opponent's pre-match state."""
    mu, phi = scale_down(player.rating, player.deviation)
    mu_opp, phi_opp = scale_down(opponent.rating, opponent.deviation)

    g_opp = g(phi_opp)
    expected = expected_score(mu, mu_opp, phi_opp)
    expected = min(max(expected, EXPECTED_SCORE_LIMIT), 1.0 - EXPECTED_SCORE_LIMIT)
    v = 1.0 / (g_opp * g_opp * expected * (1.0 - expected))
    delta = v * g_opp * (outcome - expected)

    volatility = solve_volatility(phi, delta, v, player.volatility, config.tau, config.epsilon)
    if not (math.isfinite(volatility) and volatility > config.min_volatility):
        volatility = config.min_volatility

    phi_star = math.sqrt(phi * phi + volatility * volatility)
    new_phi = 1.0 / math.sqrt(1.0 / (phi_star * phi_star) + 1.0 / v)
    new_mu = mu + new_phi * new_phi * g_opp * (outcome - expected)

    rating, deviation = scale_up(new_mu, new_phi)
    if not (math.isfinite(deviation) and deviation > config.min_deviation):
        deviation = config.min_deviation

    return player.model_copy(update={
        "rating": rating,
        "deviation": deviation,
        "volatility": volatility,
    })


def update(
    winner: Competitor,
    loser: Competitor,
    config: RankerConfig | None = None
) -> tuple[Competitor, Competitor]:
    """Update both competitors after winner beats loser.

    Inputs are not modified. Both sides are rated against the other's
    pre-match state. Deviation and volatility of the inputs must be
    positive.

    Args:
        winner: Competitor who won the vote
        loser: Competitor who lost the vote
        config: Rating constants (uses defaults if None)

    Returns:
        (new_winner, new_loser) copies with updated rating, deviation and volatility
    """
    config = config or RankerConfig()
    new_winner = _rate(winner, loser, 1.0, config)
    new_loser = _rate(loser, winner, 0.0, config)
    return new_winner, new_loser
