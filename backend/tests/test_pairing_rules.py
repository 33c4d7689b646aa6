"""
Tests for round-robin pairing rules (circle method).
"""

import pytest

from tourneyplan.services.pairing_rules import rr_matches_per_group, rr_pairings_by_round, rr_round_count


def test_rr_matches_per_group():
    assert rr_matches_per_group(0) == 0
    assert rr_matches_per_group(1) == 0
    assert rr_matches_per_group(2) == 1
    assert rr_matches_per_group(4) == 6
    assert rr_matches_per_group(5) == 10


def test_rr_round_count():
    assert rr_round_count(1) == 0
    assert rr_round_count(2) == 1
    assert rr_round_count(4) == 3
    assert rr_round_count(5) == 5  # odd: one bye per round
    assert rr_round_count(6) == 5


def test_pairings_group_of_4_exact():
    assert rr_pairings_by_round(4) == [
        (1, 1, 0, 3),
        (1, 2, 1, 2),
        (2, 1, 0, 2),
        (2, 2, 3, 1),
        (3, 1, 0, 1),
        (3, 2, 2, 3),
    ]


def test_pairings_group_of_3_skips_bye():
    pairings = rr_pairings_by_round(3)
    assert len(pairings) == 3
    assert {frozenset((a, b)) for _, _, a, b in pairings} == {
        frozenset((0, 1)),
        frozenset((0, 2)),
        frozenset((1, 2)),
    }
    # Bye position never shows up
    assert all(3 not in (a, b) for _, _, a, b in pairings)


@pytest.mark.parametrize("n", range(2, 11))
def test_every_pair_exactly_once_and_no_team_twice_per_round(n):
    pairings = rr_pairings_by_round(n)
    assert len(pairings) == rr_matches_per_group(n)

    pairs = [frozenset((a, b)) for _, _, a, b in pairings]
    assert len(set(pairs)) == len(pairs)

    rounds = {}
    for round_idx, _, a, b in pairings:
        seen = rounds.setdefault(round_idx, set())
        assert a not in seen and b not in seen
        seen.update((a, b))
    assert max(rounds) == rr_round_count(n)


def test_small_groups_have_no_pairings():
    assert rr_pairings_by_round(0) == []
    assert rr_pairings_by_round(1) == []
