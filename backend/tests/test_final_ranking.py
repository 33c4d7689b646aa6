"""
Tests for finals placement and the merged final ranking.
"""

from tourneyplan.services.final_ranking import calculate_finals_placement, merged_final_ranking
from tourneyplan.services.tournament_model import Match, Team, TournamentConfig, TournamentState
from tourneyplan.utils.placeholders import Resolved, WinnerOf

TEAMS = tuple(Team(id=f"t{i}", name=f"Team {i}", group="A" if i <= 3 else "B") for i in range(1, 7))


def final_match(match_id, final_type, a, b, score_a=None, score_b=None):
    return Match(
        id=match_id,
        round=5,
        field=1,
        team_a=Resolved(a) if not isinstance(a, WinnerOf) else a,
        team_b=Resolved(b),
        score_a=score_a,
        score_b=score_b,
        is_final=True,
        final_type=final_type,
    )


def group_match(match_id, a, b, score_a, score_b, group):
    return Match(id=match_id, round=1, field=1, team_a=Resolved(a), team_b=Resolved(b), score_a=score_a, score_b=score_b, group=group)


def test_not_started_without_bracket():
    result = calculate_finals_placement(TEAMS, [])
    assert result.placements == []
    assert result.playoff_status == "not-started"
    assert not result.all_finals_completed


def test_placements_from_decisive_matches():
    matches = [
        final_match("final", "final", "t1", "t4", 1, 2),
        final_match("third-place", "thirdPlace", "t2", "t5", 3, 0),
    ]
    result = calculate_finals_placement(TEAMS, matches)
    assert [(p.rank, p.team.id) for p in result.placements] == [(1, "t4"), (2, "t1"), (3, "t2"), (4, "t5")]
    assert result.playoff_status == "completed"
    assert result.placements[0].match_label == "Final"


def test_in_progress_and_draw_ignored():
    matches = [
        final_match("final", "final", "t1", "t4"),
        final_match("third-place", "thirdPlace", "t2", "t5", 1, 1),
    ]
    result = calculate_finals_placement(TEAMS, matches)
    assert result.placements == []
    assert result.playoff_status == "in-progress"
    assert (result.completed_finals_count, result.total_finals_count) == (1, 2)


def test_team_names_are_accepted():
    matches = [final_match("final", "final", "Team 1", "t4", 3, 1)]
    result = calculate_finals_placement(TEAMS, matches)
    assert [p.team.id for p in result.placements] == ["t1", "t4"]


def test_merged_ranking_appends_group_order():
    matches = (
        group_match("g1", "t1", "t2", 1, 0, "A"),
        group_match("g2", "t1", "t3", 2, 0, "A"),
        group_match("g3", "t2", "t3", 1, 0, "A"),
        group_match("g4", "t4", "t5", 4, 0, "B"),
        group_match("g5", "t4", "t6", 1, 0, "B"),
        group_match("g6", "t5", "t6", 0, 3, "B"),
        final_match("final", "final", "t1", "t4", 0, 1),
    )
    state = TournamentState(config=TournamentConfig(), teams=TEAMS, matches=matches)
    data = merged_final_ranking(state)

    ranking = [(r["rank"], r["team_id"], r["decided_by"]) for r in data["ranking"]]
    assert ranking[:2] == [(1, "t4", "playoff"), (2, "t1", "playoff")]
    # Remaining teams by overall group-stage standings: t6 (3 pts, +2), t2 (3 pts, 0), t3, t5
    assert ranking[2:] == [(3, "t6", "groupStage"), (4, "t2", "groupStage"), (5, "t3", "groupStage"), (6, "t5", "groupStage")]
    assert data["playoff_status"] == "completed"


def test_unresolved_final_reserves_top_ranks():
    matches = (final_match("final", "final", WinnerOf("semi1"), "t4", 2, 0),)
    state = TournamentState(config=TournamentConfig(), teams=TEAMS, matches=matches)
    data = merged_final_ranking(state)

    ranking = [(r["rank"], r["team_id"], r["decided_by"]) for r in data["ranking"]]
    assert ranking[0] == (1, "t4", "pending")
    assert [r for r, _, d in ranking if d == "groupStage"] == [3, 4, 5, 6, 7]


def test_third_place_decided_before_final():
    matches = (
        group_match("g1", "t1", "t2", 1, 0, "A"),
        group_match("g2", "t4", "t5", 1, 0, "B"),
        final_match("final", "final", "t1", "t4"),
        final_match("third-place", "thirdPlace", "t2", "t5", 2, 1),
    )
    state = TournamentState(config=TournamentConfig(), teams=TEAMS, matches=matches)
    data = merged_final_ranking(state)

    ranking = [(r["rank"], r["team_id"], r["decided_by"]) for r in data["ranking"]]
    assert ranking[:4] == [(1, "t1", "pending"), (1, "t4", "pending"), (3, "t2", "playoff"), (4, "t5", "playoff")]
    assert [(rank, d) for rank, _, d in ranking[4:]] == [(5, "groupStage"), (6, "groupStage")]
    assert data["playoff_status"] == "in-progress"
