"""Tests for the weighted scoring engine and the weight rebalancer.

Property tests push well over a thousand random slider edits through
``rebalance`` and check the weight vector always totals exactly 100.
"""

import random

import pytest
from hypothesis import assume, example, given, settings, strategies as st

from wte_engine.utils import InvalidParameter, TechnologyScores
from wte_engine.technologies import CRITERIA, DEFAULT_TECHNOLOGIES, DEFAULT_WEIGHTS
from wte_engine.scoring import (
    MAX_WEIGHT,
    MIN_WEIGHT,
    rebalance,
    ranking_table,
    recommend,
    score,
    strengths,
    validate_weights,
)


def weights_of(*values):
    return dict(zip(CRITERIA, values))


@st.composite
def bounded_weights(draw):
    """Valid slider state: five integers in [5, 50] totalling 100."""
    spare = 100 - 5 * MIN_WEIGHT
    cuts = sorted(draw(st.lists(st.integers(0, spare), min_size=4, max_size=4)))
    bounds = [0, *cuts, spare]
    extras = [b - a for a, b in zip(bounds, bounds[1:])]
    assume(max(extras) <= MAX_WEIGHT - MIN_WEIGHT)
    return weights_of(*(MIN_WEIGHT + e for e in extras))


@st.composite
def any_weights(draw):
    """Any non-negative integer split of 100 across the five criteria."""
    cuts = sorted(draw(st.lists(st.integers(0, 100), min_size=4, max_size=4)))
    bounds = [0, *cuts, 100]
    return weights_of(*(b - a for a, b in zip(bounds, bounds[1:])))


# ---- Scoring ----

class TestScore:
    def test_worked_example(self):
        tech = TechnologyScores('Gasification', weights_of(7.5, 8.2, 6.8, 7.8, 7.0))
        [result] = score([tech], weights_of(20, 30, 15, 20, 15))
        assert result.total_score == pytest.approx(7.59)
        assert result.weighted['economic'] == pytest.approx(1.5)
        assert result.weighted['environmental'] == pytest.approx(2.46)
        assert result.weighted['social'] == pytest.approx(1.02)
        assert result.weighted['technical'] == pytest.approx(1.56)
        assert result.weighted['regulatory'] == pytest.approx(1.05)
        assert result.rank == 1

    def test_default_ranking(self):
        ranked = score(DEFAULT_TECHNOLOGIES, DEFAULT_WEIGHTS)
        assert [r.technology_name for r in ranked] == [
            'Anaerobic Digestion', 'Gasification', 'RDF', 'Pyrolysis', 'Incineration',
        ]
        assert ranked[0].total_score == pytest.approx(8.03)
        assert [r.rank for r in ranked] == [1, 2, 3, 4, 5]

    def test_ties_keep_input_order(self):
        same = weights_of(5, 5, 5, 5, 5)
        techs = [TechnologyScores('B', same), TechnologyScores('A', same), TechnologyScores('C', weights_of(9, 9, 9, 9, 9))]
        ranked = score(techs, DEFAULT_WEIGHTS)
        assert [r.technology_name for r in ranked] == ['C', 'B', 'A']

    def test_accepts_plain_records(self):
        flat = {'name': 'Flat', **weights_of(10, 10, 10, 10, 10)}
        nested = {'name': 'Nested', 'scores': weights_of(0, 0, 0, 0, 0)}
        ranked = score([nested, flat], DEFAULT_WEIGHTS)
        assert [r.technology_name for r in ranked] == ['Flat', 'Nested']
        assert ranked[0].total_score == pytest.approx(10.0)
        assert ranked[1].total_score == 0.0

    def test_empty(self):
        assert score([], DEFAULT_WEIGHTS) == []

    @pytest.mark.parametrize('record', [
        {'name': 'X', 'scores': weights_of(11, 5, 5, 5, 5)},
        {'name': 'X', 'scores': weights_of(-1, 5, 5, 5, 5)},
        {'name': 'X', 'scores': {'economic': 5}},
        {'scores': weights_of(5, 5, 5, 5, 5)},
    ])
    def test_invalid_scores(self, record):
        with pytest.raises(InvalidParameter):
            score([record], DEFAULT_WEIGHTS)

    def test_invalid_weights(self):
        with pytest.raises(InvalidParameter):
            score(DEFAULT_TECHNOLOGIES, {**DEFAULT_WEIGHTS, 'economic': 120})
        with pytest.raises(InvalidParameter):
            score(DEFAULT_TECHNOLOGIES, {'economic': 100})

    def test_zero_weights_give_zero_totals(self):
        ranked = score(DEFAULT_TECHNOLOGIES, weights_of(0, 0, 0, 0, 0))
        assert all(r.total_score == 0 for r in ranked)
        assert [r.technology_name for r in ranked] == [t.name for t in DEFAULT_TECHNOLOGIES]

    @settings(max_examples=200)
    @given(
        weights=bounded_weights(),
        rows=st.lists(st.lists(st.floats(0, 10), min_size=5, max_size=5), min_size=1, max_size=8),
    )
    def test_ranking_is_non_increasing_and_bounded(self, weights, rows):
        techs = [TechnologyScores(f'T{i}', weights_of(*r)) for i, r in enumerate(rows)]
        ranked = score(techs, weights)
        totals = [r.total_score for r in ranked]
        assert all(a >= b for a, b in zip(totals, totals[1:]))
        assert all(0 <= t <= 10 + 1e-9 for t in totals)


class TestRecommend:
    def test_top_recommendation(self):
        ranked = score(DEFAULT_TECHNOLOGIES, DEFAULT_WEIGHTS)
        rec = recommend(ranked, DEFAULT_TECHNOLOGIES)
        assert rec['technology'] == 'Anaerobic Digestion'
        assert rec['total_score'] == pytest.approx(8.03)
        # 8.8 environmental, then social and regulatory tied at 8.5
        assert rec['strengths'] == ['environmental', 'social', 'regulatory']

    def test_no_results(self):
        assert recommend([], DEFAULT_TECHNOLOGIES) is None

    def test_strengths_top_n(self):
        assert strengths(DEFAULT_TECHNOLOGIES[2], top=2) == ['technical', 'economic']

    def test_ranking_table(self):
        df = ranking_table(score(DEFAULT_TECHNOLOGIES, DEFAULT_WEIGHTS))
        assert list(df.columns) == ['rank', 'technology', *CRITERIA, 'total']
        assert len(df) == 5
        assert df.iloc[0]['technology'] == 'Anaerobic Digestion'


# ---- Rebalancing ----

class TestRebalance:
    def test_proportional_without_rounding_error(self):
        new = rebalance(DEFAULT_WEIGHTS, 'economic', 30)
        assert new == weights_of(30, 26, 13, 18, 13)

    def test_rounding_error_goes_to_largest(self):
        # scaled others: 28.875, 14.4375, 19.25, 14.4375 -> 29, 14, 19, 14 = 76
        new = rebalance(DEFAULT_WEIGHTS, 'economic', 23)
        assert new == weights_of(23, 30, 14, 19, 14)

    def test_rounding_tie_breaks_on_criterion_order(self):
        new = rebalance(weights_of(20, 20, 20, 20, 20), 'regulatory', 23)
        assert new == weights_of(20, 19, 19, 19, 23)

    def test_same_value_returns_copy(self):
        current = dict(DEFAULT_WEIGHTS)
        new = rebalance(current, 'social', 15)
        assert new == current
        assert new is not current

    def test_input_not_mutated(self):
        current = dict(DEFAULT_WEIGHTS)
        rebalance(current, 'technical', 45)
        assert current == DEFAULT_WEIGHTS

    def test_keys_in_canonical_order(self):
        new = rebalance(DEFAULT_WEIGHTS, 'regulatory', 40)
        assert list(new) == list(CRITERIA)

    def test_permissive_mode_can_leave_bounds(self):
        current = weights_of(5, 35, 5, 5, 50)
        new = rebalance(current, 'regulatory', 5, strict=False)
        # 1.9x scaling: 9.5, 66.5, 9.5, 9.5 -> 10, 67, 10, 10, then -2 on the largest
        assert new == weights_of(10, 65, 10, 10, 5)
        assert sum(new.values()) == 100

    def test_strict_mode_reclamps(self):
        current = weights_of(5, 35, 5, 5, 50)
        new = rebalance(current, 'regulatory', 5)
        assert new == weights_of(15, 50, 15, 15, 5)

    def test_strict_mode_clamps_edited_value(self):
        new = rebalance(DEFAULT_WEIGHTS, 'economic', 80)
        assert new['economic'] == MAX_WEIGHT
        assert sum(new.values()) == 100
        assert all(MIN_WEIGHT <= w <= MAX_WEIGHT for w in new.values())

    def test_all_others_zero(self):
        new = rebalance(weights_of(100, 0, 0, 0, 0), 'economic', 60, strict=False)
        assert new == weights_of(60, 10, 10, 10, 10)

    def test_tiny_budget_never_goes_negative(self):
        # 25 * 2 / 100 = 0.5 rounds up to 1 four times, two units over budget
        new = rebalance(weights_of(25, 25, 25, 25, 0), 'regulatory', 98, strict=False)
        assert new == weights_of(0, 0, 1, 1, 98)
        again = rebalance(new, 'economic', 10, strict=False)
        assert sum(again.values()) == 100
        assert all(w >= 0 for w in again.values())

    @pytest.mark.parametrize('current, criterion, value', [
        (DEFAULT_WEIGHTS, 'cost', 20),
        (DEFAULT_WEIGHTS, 'economic', 120),
        (DEFAULT_WEIGHTS, 'economic', -1),
        (DEFAULT_WEIGHTS, 'economic', 'high'),
        (weights_of(20, 20, 20, 20, 10), 'economic', 30),
        (weights_of(20.5, 29.5, 15, 20, 15), 'economic', 30),
    ])
    def test_invalid_input(self, current, criterion, value):
        with pytest.raises(InvalidParameter):
            rebalance(current, criterion, value)

    def test_validate_weights_rejects_missing(self):
        with pytest.raises(InvalidParameter):
            validate_weights({'economic': 100})


class TestRebalanceProperties:
    @settings(max_examples=1000)
    @given(
        current=bounded_weights(),
        criterion=st.sampled_from(CRITERIA),
        value=st.integers(MIN_WEIGHT, MAX_WEIGHT),
    )
    def test_strict_total_and_bounds(self, current, criterion, value):
        new = rebalance(current, criterion, value)
        assert sum(new.values()) == 100
        assert all(MIN_WEIGHT <= w <= MAX_WEIGHT for w in new.values())
        assert new[criterion] == value

    @settings(max_examples=1000)
    @given(
        current=any_weights(),
        criterion=st.sampled_from(CRITERIA),
        value=st.integers(0, 100),
    )
    @example(current=weights_of(25, 25, 25, 25, 0), criterion='regulatory', value=98)
    def test_permissive_total(self, current, criterion, value):
        new = rebalance(current, criterion, value, strict=False)
        assert sum(new.values()) == 100
        assert all(w >= 0 for w in new.values())
        assert new[criterion] == value

    @settings(max_examples=50)
    @given(edits=st.lists(
        st.tuples(st.sampled_from(CRITERIA), st.integers(MIN_WEIGHT, MAX_WEIGHT)),
        min_size=25, max_size=25,
    ))
    def test_chained_slider_edits(self, edits):
        weights = dict(DEFAULT_WEIGHTS)
        for criterion, value in edits:
            weights = rebalance(weights, criterion, value)
            assert sum(weights.values()) == 100
            assert all(MIN_WEIGHT <= w <= MAX_WEIGHT for w in weights.values())

    def test_random_walk_both_modes(self):
        rng = random.Random(2024)
        strict = dict(DEFAULT_WEIGHTS)
        loose = dict(DEFAULT_WEIGHTS)
        for _ in range(2000):
            criterion = rng.choice(CRITERIA)
            value = rng.randint(MIN_WEIGHT, MAX_WEIGHT)
            strict = rebalance(strict, criterion, value)
            loose = rebalance(loose, criterion, value, strict=False)
            assert sum(strict.values()) == 100
            assert sum(loose.values()) == 100
