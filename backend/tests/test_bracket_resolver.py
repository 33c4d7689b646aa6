"""
Tests for bracket placeholder resolution.
"""

from datetime import datetime

import pytest

from tourneyplan.services.bracket_resolver import (
    MSG_ALREADY_RESOLVED,
    MSG_GROUP_PHASE_INCOMPLETE,
    MSG_NOTHING_RESOLVABLE,
    auto_resolve_if_ready,
    bracket_status,
    is_group_phase_complete,
    needs_resolution,
    resolve_pass,
)
from tourneyplan.services.schedule_generator import generate
from tourneyplan.services.tournament_model import FinalsConfig, Match, Team, TournamentConfig, TournamentState
from tourneyplan.utils.placeholders import BestSecond, GroupStanding, LoserOf, Resolved, Unknown, WinnerOf


def make_state(group_sizes, preset="top-4", **config_overrides):
    labels = "ABCDEFGH"
    teams = []
    for g, size in enumerate(group_sizes):
        for i in range(size):
            teams.append(Team(id=f"{labels[g].lower()}{i + 1}", name=f"{labels[g]}{i + 1}", group=labels[g]))
    config = TournamentConfig(
        group_system="groupsAndFinals",
        number_of_groups=len(group_sizes),
        number_of_fields=2,
        start_time=datetime(2026, 6, 13, 9, 0),
        finals=FinalsConfig(preset=preset),
        **config_overrides,
    )
    schedule = generate(config, teams)
    return TournamentState(config=config, teams=tuple(teams), matches=schedule.matches)


def score(state, match_id, a, b):
    return state.with_matches(m.with_score(a, b) if m.id == match_id else m for m in state.matches)


def score_group_by_seed(state):
    """Lower seed number always wins 1:0, so standings follow seed order."""
    for m in state.matches:
        if m.is_final:
            continue
        a, b = m.team_a.team_id, m.team_b.team_id
        state = score(state, m.id, *((1, 0) if a < b else (0, 1)))
    return state


def bracket(state):
    return {m.id: m for m in state.matches if m.is_final}


@pytest.fixture
def two_groups_of_two():
    return make_state([2, 2])


class TestQueries:
    def test_group_phase_complete(self, two_groups_of_two):
        state = two_groups_of_two
        assert not is_group_phase_complete(state)
        state = score(state, "g1", 1, 0)
        assert not is_group_phase_complete(state)
        state = score(state, "g2", 1, 0)
        assert is_group_phase_complete(state)

    def test_no_group_matches_is_not_complete(self):
        state = TournamentState(config=TournamentConfig(), teams=())
        assert not is_group_phase_complete(state)

    def test_needs_resolution(self, two_groups_of_two):
        assert needs_resolution(two_groups_of_two)
        no_bracket = make_state([2, 2], preset="none")
        assert not needs_resolution(no_bracket)

    def test_bracket_status(self, two_groups_of_two):
        status = bracket_status(two_groups_of_two)
        assert status.to_dict() == {
            "group_phase_complete": False,
            "needs_resolution": True,
            "unresolved_match_ids": ["semi1", "semi2", "third-place", "final"],
        }


class TestCascade:
    def test_semis_then_finals(self, two_groups_of_two):
        state = score(two_groups_of_two, "g1", 2, 1)  # a1 beats a2
        state = score(state, "g2", 0, 3)  # b2 beats b1

        result = resolve_pass(state)
        assert result.resolved
        assert result.updated_count == 2
        assert sorted(result.updated_match_ids) == ["semi1", "semi2"]
        assert result.message == "2 bracket matches resolved"

        b = bracket(result.tournament)
        assert (b["semi1"].team_a, b["semi1"].team_b) == (Resolved("a1"), Resolved("b1"))
        assert (b["semi2"].team_a, b["semi2"].team_b) == (Resolved("b2"), Resolved("a2"))
        assert (b["final"].team_a, b["final"].team_b) == (WinnerOf("semi1"), WinnerOf("semi2"))

        state = score(result.tournament, "semi1", 1, 0)  # a1 wins
        state = score(state, "semi2", 2, 3)  # a2 wins
        result = resolve_pass(state)
        assert result.updated_count == 2
        assert sorted(result.updated_match_ids) == ["final", "third-place"]

        b = bracket(result.tournament)
        assert (b["final"].team_a, b["final"].team_b) == (Resolved("a1"), Resolved("a2"))
        assert (b["third-place"].team_a, b["third-place"].team_b) == (Resolved("b1"), Resolved("b2"))
        assert not needs_resolution(result.tournament)

    def test_one_pass_resolves_every_ready_layer(self):
        # Scores on bracket matches entered before resolution are kept, so a
        # single pass can walk from the groups down to the final.
        state = score_group_by_seed(make_state([2, 2]))
        state = score(state, "semi1", 2, 0)
        state = score(state, "semi2", 0, 2)

        result = resolve_pass(state)
        assert result.updated_count == 4
        b = bracket(result.tournament)
        assert (b["final"].team_a, b["final"].team_b) == (Resolved("a1"), Resolved("a2"))
        assert (b["third-place"].team_a, b["third-place"].team_b) == (Resolved("b2"), Resolved("b1"))

    def test_top8_full_walk(self):
        state = score_group_by_seed(make_state([3, 3, 3, 3], preset="top-8"))
        result = resolve_pass(state)
        b = bracket(result.tournament)
        assert (b["qf1"].team_a, b["qf1"].team_b) == (Resolved("a1"), Resolved("d2"))
        assert (b["qf3"].team_a, b["qf3"].team_b) == (Resolved("c1"), Resolved("b2"))
        assert b["semi1"].team_a == WinnerOf("qf1")

        state = result.tournament
        for qf in ("qf1", "qf2", "qf3", "qf4"):
            state = score(state, qf, 1, 0)
        result = resolve_pass(state)
        b = bracket(result.tournament)
        assert (b["semi1"].team_a, b["semi1"].team_b) == (Resolved("a1"), Resolved("d1"))
        assert (b["semi2"].team_a, b["semi2"].team_b) == (Resolved("b1"), Resolved("c1"))


class TestIdempotenceAndMonotonicity:
    def test_second_pass_is_a_no_op(self, two_groups_of_two):
        state = score_group_by_seed(two_groups_of_two)
        first = resolve_pass(state)
        assert first.resolved

        second = resolve_pass(first.tournament)
        assert not second.resolved
        assert second.updated_count == 0
        assert second.updated_match_ids == []
        assert second.message == MSG_NOTHING_RESOLVABLE
        assert second.tournament == first.tournament

    def test_resolved_sides_never_revert(self, two_groups_of_two):
        state = score_group_by_seed(two_groups_of_two)
        resolved = resolve_pass(state).tournament
        semis = (bracket(resolved)["semi1"], bracket(resolved)["semi2"])

        # Change a group result so standings flip; the bracket stays as is
        flipped = score(resolved, "g1", 0, 5)
        again = resolve_pass(flipped)
        assert (bracket(again.tournament)["semi1"], bracket(again.tournament)["semi2"]) == semis

    def test_input_state_is_not_mutated(self, two_groups_of_two):
        state = score_group_by_seed(two_groups_of_two)
        before = state.matches
        resolve_pass(state)
        assert state.matches is before
        assert bracket(state)["semi1"].team_a == GroupStanding("A", 1)

    def test_group_matches_and_scores_untouched(self, two_groups_of_two):
        state = score_group_by_seed(two_groups_of_two)
        after = resolve_pass(state).tournament
        assert [m for m in after.matches if not m.is_final] == [m for m in state.matches if not m.is_final]
        assert all(m.score_a is None for m in after.matches if m.is_final)


class TestBlockedResolution:
    def test_nothing_scored(self, two_groups_of_two):
        result = resolve_pass(two_groups_of_two)
        assert not result.resolved
        assert result.updated_count == 0
        assert result.message == MSG_GROUP_PHASE_INCOMPLETE
        assert result.tournament == two_groups_of_two

    def test_incomplete_group_blocks_only_its_own_standings(self, two_groups_of_two):
        state = score(two_groups_of_two, "g1", 1, 0)
        result = resolve_pass(state)
        assert result.resolved
        b = bracket(result.tournament)
        assert (b["semi1"].team_a, b["semi1"].team_b) == (Resolved("a1"), GroupStanding("B", 2))
        assert (b["semi2"].team_a, b["semi2"].team_b) == (GroupStanding("B", 1), Resolved("a2"))

    def test_complete_group_resolves_before_others(self):
        state = make_state([2, 2], preset="final-only")
        state = score(state, "g1", 1, 0)
        result = resolve_pass(state)
        final = bracket(result.tournament)["final"]
        assert final.team_a == Resolved("a1")
        assert final.team_b == GroupStanding("B", 1)

    def test_draw_blocks_winner_and_loser(self, two_groups_of_two):
        state = resolve_pass(score_group_by_seed(two_groups_of_two)).tournament
        state = score(state, "semi1", 1, 1)
        state = score(state, "semi2", 0, 2)

        b = bracket(resolve_pass(state).tournament)
        assert b["final"].team_a == WinnerOf("semi1")
        assert b["final"].team_b == Resolved("a2")
        assert b["third-place"].team_a == LoserOf("semi1")
        assert b["third-place"].team_b == Resolved("b1")

    def test_placeholder_in_referenced_match_blocks(self):
        config = TournamentConfig(group_system="groupsAndFinals", number_of_groups=2)
        matches = (
            Match(id="g1", round=1, field=1, slot=0, team_a=Resolved("a1"), team_b=Resolved("a2"), score_a=1, score_b=0, group="A"),
            Match(id="semi1", round=2, field=1, slot=1, team_a=Resolved("a1"), team_b=Unknown(), score_a=2, score_b=0, is_final=True),
            Match(id="final", round=3, field=1, slot=2, team_a=WinnerOf("semi1"), team_b=LoserOf("semi1"), is_final=True),
        )
        teams = (Team(id="a1", name="A1", group="A"), Team(id="a2", name="A2", group="A"))
        state = TournamentState(config=config, teams=teams, matches=matches)

        result = resolve_pass(state)
        assert not result.resolved
        assert bracket(result.tournament)["final"].team_a == WinnerOf("semi1")
        assert bracket(result.tournament)["semi1"].team_b == Unknown()

    def test_unknown_group_and_missing_match_are_left_alone(self):
        config = TournamentConfig(group_system="groupsAndFinals", number_of_groups=2)
        matches = (
            Match(id="g1", round=1, field=1, slot=0, team_a=Resolved("a1"), team_b=Resolved("a2"), score_a=1, score_b=0, group="A"),
            Match(id="x", round=2, field=1, slot=1, team_a=GroupStanding("Q", 1), team_b=WinnerOf("nope"), is_final=True),
            Match(id="y", round=2, field=2, slot=1, team_a=GroupStanding("A", 3), team_b=GroupStanding("Gruppe A", 2), is_final=True),
        )
        teams = (Team(id="a1", name="A1", group="A"), Team(id="a2", name="A2", group="A"))
        result = resolve_pass(TournamentState(config=config, teams=teams, matches=matches))
        b = bracket(result.tournament)
        assert (b["x"].team_a, b["x"].team_b) == (GroupStanding("Q", 1), WinnerOf("nope"))
        # Only the producible position resolves
        assert (b["y"].team_a, b["y"].team_b) == (GroupStanding("A", 3), Resolved("a2"))


class TestBestSecond:
    def test_waits_for_every_group_then_takes_first_found(self):
        state = make_state([3, 3, 3])
        b = bracket(state)
        assert b["semi2"].team_b == BestSecond()

        # Only group A complete: no BestSecond yet
        partial = state
        for m in state.matches:
            if m.group == "A":
                a, bb = m.team_a.team_id, m.team_b.team_id
                partial = score(partial, m.id, *((1, 0) if a < bb else (0, 1)))
        assert bracket(resolve_pass(partial).tournament)["semi2"].team_b == BestSecond()

        resolved = resolve_pass(score_group_by_seed(state)).tournament
        assert bracket(resolved)["semi2"].team_b == Resolved("a2")
        assert bracket(resolved)["semi2"].team_a == Resolved("c1")


class TestMessagesAndAutoResolve:
    def test_already_resolved(self, two_groups_of_two):
        state = score_group_by_seed(two_groups_of_two)
        state = resolve_pass(state).tournament
        state = score(state, "semi1", 1, 0)
        state = score(state, "semi2", 1, 0)
        state = resolve_pass(state).tournament

        result = resolve_pass(state)
        assert (result.resolved, result.updated_count, result.message) == (False, 0, MSG_ALREADY_RESOLVED)
        assert auto_resolve_if_ready(state) is None

    def test_single_match_message(self):
        state = score(make_state([2, 2], preset="final-only"), "g1", 1, 0)
        state = score(state, "g2", 1, 0)
        result = resolve_pass(state)
        assert result.message == "1 bracket match resolved"

    def test_auto_resolve_waits_for_group_phase(self, two_groups_of_two):
        assert auto_resolve_if_ready(two_groups_of_two) is None
        assert auto_resolve_if_ready(score(two_groups_of_two, "g1", 1, 0)) is None

        result = auto_resolve_if_ready(score_group_by_seed(two_groups_of_two))
        assert result is not None
        assert result.updated_count == 2

    def test_to_dict(self, two_groups_of_two):
        data = resolve_pass(score_group_by_seed(two_groups_of_two)).to_dict()
        assert set(data) == {"resolved", "updated_count", "updated_match_ids", "message"}


class TestSingleTeamGroup:
    def test_lone_team_group_is_complete(self):
        state = make_state([2, 1], preset="final-only")
        final = bracket(state)["final"]
        assert (final.team_a, final.team_b) == (GroupStanding("A", 1), GroupStanding("B", 1))

        # Group B has no matches to wait for
        result = resolve_pass(state)
        assert result.updated_match_ids == ["final"]
        assert bracket(result.tournament)["final"].team_b == Resolved("b1")
        assert bracket(result.tournament)["final"].team_a == GroupStanding("A", 1)

    def test_bracket_finishes_once_other_groups_are_scored(self):
        state = score_group_by_seed(make_state([2, 1], preset="final-only"))
        result = resolve_pass(state)

        final = bracket(result.tournament)["final"]
        assert (final.team_a, final.team_b) == (Resolved("a1"), Resolved("b1"))
        assert not needs_resolution(result.tournament)
