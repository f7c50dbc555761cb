"""Unit tests for Glicko-2 rating calculations."""

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tiervoter.ranker.glicko import (
    GLICKO2_SCALE,
    expected_score,
    g,
    scale_down,
    scale_up,
    solve_volatility,
    update,
)
from tiervoter.ranker.models import Competitor, RankerConfig

# Mark all tests in this module as unit tests
pytestmark = pytest.mark.unit


def make_competitor(
    id: int = 1,
    rating: float = 1500.0,
    deviation: float = 350.0,
    volatility: float = 0.06
) -> Competitor:
    """Factory to create a Competitor for testing."""
    return Competitor(id=id, name=f"Competitor {id}", rating=rating, deviation=deviation, volatility=volatility)


class TestScaling:
    """Tests for conversion between the public and internal scales."""

    def test_center_maps_to_zero(self):
        """Rating 1500 is mu 0 on the internal scale."""
        mu, phi = scale_down(1500, 350)
        assert mu == pytest.approx(0.0)
        assert phi == pytest.approx(350 / 173.7178)

    def test_scale_up_inverts_scale_down(self):
        """Converting down and back up returns the starting values."""
        rating, deviation = scale_up(*scale_down(1723.4, 88.0))
        assert rating == pytest.approx(1723.4)
        assert deviation == pytest.approx(88.0)


class TestExpectedScore:
    """Tests for g and expected_score."""

    def test_g_is_one_for_certain_opponent(self):
        """An opponent with zero deviation is not down-weighted."""
        assert g(0.0) == pytest.approx(1.0)

    def test_g_shrinks_with_uncertainty(self):
        """Higher opponent deviation gives a smaller weight."""
        assert g(2.0) < g(1.0) < g(0.5) < 1.0

    def test_equal_ratings_gives_half(self):
        """Equal ratings give an expected score of 0.5."""
        assert expected_score(0.0, 0.0, 2.0) == pytest.approx(0.5)

    def test_higher_rating_gives_higher_expected(self):
        """Higher rated player has higher expected score."""
        assert expected_score(1.0, -1.0, 0.5) > 0.5

    @given(
        mu=st.floats(min_value=-5, max_value=5),
        mu_opp=st.floats(min_value=-5, max_value=5),
        phi=st.floats(min_value=0.01, max_value=2.1)
    )
    @settings(max_examples=100)
    def test_expected_scores_sum_to_one(self, mu, mu_opp, phi):
        """Property test: both sides' expected scores sum to 1 for equal deviations."""
        total = expected_score(mu, mu_opp, phi) + expected_score(mu_opp, mu, phi)
        assert total == pytest.approx(1.0)

    def test_extreme_gap_does_not_overflow(self):
        """Gaps of hundreds of internal units saturate instead of raising."""
        assert expected_score(700.0, -700.0, 0.1) == pytest.approx(1.0)
        assert expected_score(-700.0, 700.0, 0.1) == pytest.approx(0.0)

    @given(
        mu=st.floats(min_value=-5, max_value=5),
        mu_opp=st.floats(min_value=-5, max_value=5),
        phi=st.floats(min_value=0.01, max_value=2.1)
    )
    @settings(max_examples=100)
    def test_expected_score_bounds(self, mu, mu_opp, phi):
        """Property test: expected score never reaches 0 or 1."""
        assert 0.0 < expected_score(mu, mu_opp, phi) < 1.0


class TestSolveVolatility:
    """Tests for the Illinois root search on volatility."""

    def test_unsurprising_result_lowers_volatility(self):
        """When delta^2 < phi^2 + v the new volatility is below the old one."""
        # Two fresh competitors, win for the first
        phi = 350 / GLICKO2_SCALE
        g_opp = g(phi)
        v = 1.0 / (g_opp * g_opp * 0.25)
        delta = v * g_opp * 0.5
        assert delta * delta < phi * phi + v

        sigma = solve_volatility(phi, delta, v, 0.06)

        assert 0.059 < sigma < 0.06

    def test_big_upset_raises_volatility(self):
        """When delta^2 > phi^2 + v the new volatility is above the old one."""
        phi = 0.2
        g_opp = g(0.2)
        expected = expected_score(-2.0, 2.0, 0.2)
        v = 1.0 / (g_opp * g_opp * expected * (1.0 - expected))
        delta = v * g_opp * (1.0 - expected)
        assert delta * delta > phi * phi + v

        sigma = solve_volatility(phi, delta, v, 0.06)

        assert sigma > 0.06
        assert math.isfinite(sigma)

    def test_smaller_tau_limits_change(self):
        """A smaller system constant keeps volatility closer to its old value."""
        phi = 0.2
        g_opp = g(0.2)
        expected = expected_score(-2.0, 2.0, 0.2)
        v = 1.0 / (g_opp * g_opp * expected * (1.0 - expected))
        delta = v * g_opp * (1.0 - expected)

        loose = solve_volatility(phi, delta, v, 0.06, tau=1.2)
        tight = solve_volatility(phi, delta, v, 0.06, tau=0.3)

        assert abs(tight - 0.06) < abs(loose - 0.06)


class TestUpdate:
    """Tests for the update function."""

    def test_fresh_competitors_single_win(self):
        """Winner rises above 1500, loser falls below, both deviations shrink."""
        a = make_competitor(1)
        b = make_competitor(2)

        new_a, new_b = update(a, b)

        assert new_a.rating > 1500
        assert new_b.rating < 1500
        assert new_a.deviation < 350
        assert new_b.deviation < 350

    def test_fresh_competitors_known_values(self):
        """A single win between fresh competitors matches hand-computed Glicko-2 values."""
        new_a, new_b = update(make_competitor(1), make_competitor(2))

        assert new_a.rating == pytest.approx(1662.3, abs=0.5)
        assert new_b.rating == pytest.approx(1337.7, abs=0.5)
        assert new_a.deviation == pytest.approx(290.3, abs=0.5)
        assert new_b.deviation == pytest.approx(290.3, abs=0.5)
        assert new_a.volatility == pytest.approx(0.06, abs=1e-4)

    def test_identity_and_extra_fields_preserved(self):
        """Ids, names and vote counts pass through unchanged."""
        a = make_competitor(7).model_copy(update={"vote_count": 3})
        b = make_competitor(9)

        new_a, new_b = update(a, b)

        assert new_a.id == 7
        assert new_b.id == 9
        assert new_a.name == "Competitor 7"
        assert new_a.vote_count == 3

    def test_inputs_not_modified(self):
        """update returns new objects and leaves its arguments alone."""
        a = make_competitor(1)
        b = make_competitor(2)

        update(a, b)

        assert a.rating == 1500
        assert b.deviation == 350

    def test_deterministic(self):
        """Same inputs always give the same outputs."""
        a = make_competitor(1, 1620, 120, 0.059)
        b = make_competitor(2, 1480, 80, 0.061)

        assert update(a, b) == update(a, b)

    def test_upset_moves_ratings_further(self):
        """A low-rated winner gains more than a high-rated winner would."""
        low = make_competitor(1, rating=1300, deviation=100)
        high = make_competitor(2, rating=1700, deviation=100)

        upset_winner, _ = update(low, high)
        expected_winner, _ = update(high, low)

        assert upset_winner.rating - 1300 > expected_winner.rating - 1700

    def test_uncertain_opponent_counts_less(self):
        """Beating a very uncertain opponent moves a settled rating less."""
        player = make_competitor(1, deviation=60)
        settled = make_competitor(2, deviation=40)
        unsettled = make_competitor(3, deviation=350)

        vs_settled, _ = update(player, settled)
        vs_unsettled, _ = update(player, unsettled)

        assert vs_settled.rating > vs_unsettled.rating

    def test_deviation_floor_applies(self):
        """Deviation below the configured floor is clamped up to it."""
        config = RankerConfig(min_deviation=400.0)

        new_a, new_b = update(make_competitor(1), make_competitor(2), config)

        assert new_a.deviation == 400.0
        assert new_b.deviation == 400.0

    @pytest.mark.parametrize("gap", [7000, 8000, 120000])
    def test_huge_rating_gap_stays_finite(self, gap):
        """A rating gap large enough to round the expected score to 0 or 1 still rates cleanly."""
        strong = make_competitor(1, rating=1500 + gap, deviation=30)
        weak = make_competitor(2, rating=1500, deviation=30)

        for winner, loser in ((strong, weak), (weak, strong)):
            new_winner, new_loser = update(winner, loser)
            for c in (new_winner, new_loser):
                assert math.isfinite(c.rating)
                assert 0 < c.deviation < math.inf
                assert 0 < c.volatility < math.inf
            assert new_winner.rating >= winner.rating - 1e-6
            assert new_loser.rating <= loser.rating + 1e-6

    @given(
        offset=st.floats(min_value=0, max_value=600),
        deviation=st.floats(min_value=30, max_value=350),
        volatility=st.floats(min_value=0.03, max_value=0.1)
    )
    @settings(max_examples=100, deadline=None)
    def test_swapping_outcome_mirrors_result(self, offset, deviation, volatility):
        """Property test: mirrored inputs with swapped outcome give mirrored outputs."""
        a = make_competitor(1, 1500 + offset, deviation, volatility)
        b = make_competitor(2, 1500 - offset, deviation, volatility)

        new_a, new_b = update(a, b)

        # The loser's side is the winner's side reflected around 1500
        assert new_a.rating - 1500 == pytest.approx(-(new_b.rating - 1500), abs=1e-3)
        assert new_a.deviation == pytest.approx(new_b.deviation, rel=1e-5)
        assert new_a.volatility == pytest.approx(new_b.volatility, rel=1e-5)

    def test_equal_competitors_swap_roles(self):
        """With identical starting state, swapping the winner swaps the results."""
        a = make_competitor(1, 1550, 120, 0.06)
        b = make_competitor(2, 1550, 120, 0.06)

        a_wins = update(a, b)
        b_wins = update(b, a)

        assert a_wins[0].rating == pytest.approx(b_wins[0].rating)
        assert a_wins[1].rating == pytest.approx(b_wins[1].rating)
        assert b_wins[0].id == 2
        assert b_wins[1].id == 1

    @given(
        rating_a=st.floats(min_value=800, max_value=2200),
        rating_b=st.floats(min_value=800, max_value=2200),
        deviation_a=st.floats(min_value=30, max_value=350),
        deviation_b=st.floats(min_value=30, max_value=350),
        volatility=st.floats(min_value=0.03, max_value=0.1)
    )
    @settings(max_examples=100, deadline=None)
    def test_winner_never_drops_loser_never_rises(self, rating_a, rating_b, deviation_a, deviation_b, volatility):
        """Property test: the winner's rating goes up and the loser's goes down."""
        a = make_competitor(1, rating_a, deviation_a, volatility)
        b = make_competitor(2, rating_b, deviation_b, volatility)

        new_a, new_b = update(a, b)

        assert new_a.rating >= rating_a
        assert new_b.rating <= rating_b

    @given(
        rating_a=st.floats(min_value=800, max_value=2200),
        rating_b=st.floats(min_value=800, max_value=2200),
        deviation_a=st.floats(min_value=30, max_value=350),
        deviation_b=st.floats(min_value=30, max_value=350),
        volatility=st.floats(min_value=0.03, max_value=0.1)
    )
    @settings(max_examples=100, deadline=None)
    def test_state_stays_valid(self, rating_a, rating_b, deviation_a, deviation_b, volatility):
        """Property test: deviation and volatility stay positive and finite."""
        new_a, new_b = update(
            make_competitor(1, rating_a, deviation_a, volatility),
            make_competitor(2, rating_b, deviation_b, volatility),
        )

        for c in (new_a, new_b):
            assert math.isfinite(c.rating)
            assert 0 < c.deviation < math.inf
            assert 0 < c.volatility < math.inf

    @given(
        rating_a=st.floats(min_value=800, max_value=2200),
        rating_b=st.floats(min_value=800, max_value=2200),
        deviation_a=st.floats(min_value=30, max_value=350),
        deviation_b=st.floats(min_value=30, max_value=350),
        volatility=st.floats(min_value=0.03, max_value=0.1)
    )
    @settings(max_examples=100, deadline=None)
    def test_deviation_bounded_by_volatility_drift(self, rating_a, rating_b, deviation_a, deviation_b, volatility):
        """Property test: new deviation never exceeds the pre-period deviation phi*."""
        a = make_competitor(1, rating_a, deviation_a, volatility)
        b = make_competitor(2, rating_b, deviation_b, volatility)

        new_a, _ = update(a, b)

        phi_star = math.sqrt((deviation_a / GLICKO2_SCALE) ** 2 + new_a.volatility ** 2)
        assert new_a.deviation <= GLICKO2_SCALE * phi_star

    @given(
        rating_a=st.floats(min_value=1300, max_value=1700),
        rating_b=st.floats(min_value=1300, max_value=1700),
        deviation_a=st.floats(min_value=200, max_value=350),
        deviation_b=st.floats(min_value=30, max_value=350),
        volatility=st.floats(min_value=0.03, max_value=0.09)
    )
    @settings(max_examples=100, deadline=None)
    def test_uncertain_player_deviation_shrinks(self, rating_a, rating_b, deviation_a, deviation_b, volatility):
        """Property test: a vote reduces deviation when it is large relative to the match variance."""
        a = make_competitor(1, rating_a, deviation_a, volatility)
        b = make_competitor(2, rating_b, deviation_b, volatility)

        as_winner, _ = update(a, b)
        _, as_loser = update(b, a)

        assert as_winner.deviation <= deviation_a
        assert as_loser.deviation <= deviation_a
