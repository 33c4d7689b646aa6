"""
Tests for the placeholder / group key parser.
"""

import pytest

from tourneyplan.utils.placeholders import (
    BestSecond,
    GroupStanding,
    LoserOf,
    Resolved,
    Unknown,
    WinnerOf,
    canonical_group_key,
    format_team_slot,
    group_label_for_index,
    is_placeholder,
    ordinal,
    parse_placeholder,
    parse_team_ref,
    team_id_of,
)


@pytest.mark.parametrize(
    "label,expected",
    [
        ("A", "A"),
        ("a", "A"),
        (" B ", "B"),
        ("Gruppe A", "A"),
        ("gruppe c", "C"),
        ("Group D", "D"),
        ("", None),
        (None, None),
    ],
)
def test_canonical_group_key(label, expected):
    assert canonical_group_key(label) == expected


def test_group_label_for_index():
    assert group_label_for_index(0) == "A"
    assert group_label_for_index(7) == "H"
    assert group_label_for_index(25) == "Z"
    assert group_label_for_index(26) == "AA"


def test_ordinal():
    assert [ordinal(n) for n in (1, 2, 3, 4, 11, 12, 13, 21, 22)] == [
        "1st", "2nd", "3rd", "4th", "11th", "12th", "13th", "21st", "22nd",
    ]


@pytest.mark.parametrize(
    "token,expected",
    [
        ("group-a-1st", GroupStanding("A", 1)),
        ("group-b-2nd", GroupStanding("B", 2)),
        ("GROUP-C-3rd", GroupStanding("C", 3)),
        ("group-d-4th", GroupStanding("D", 4)),
        ("bestSecond", BestSecond()),
        ("semi1-winner", WinnerOf("semi1")),
        ("qf2-loser", LoserOf("qf2")),
        ("r16-3-winner", WinnerOf("r16-3")),
        ("TBD", Unknown()),
        ("Lions", None),
    ],
)
def test_parse_placeholder(token, expected):
    assert parse_placeholder(token) == expected


def test_parse_team_ref_prefers_known_ids_then_names():
    ids = ["t1", "semi1-winner"]
    by_name = {"Lions": "t1"}

    assert parse_team_ref("t1", ids, by_name) == Resolved("t1")
    # A real team id wins over the placeholder reading
    assert parse_team_ref("semi1-winner", ids, by_name) == Resolved("semi1-winner")
    assert parse_team_ref("Lions", ids, by_name) == Resolved("t1")
    assert parse_team_ref("semi2-loser", ids, by_name) == LoserOf("semi2")
    assert parse_team_ref("", ids, by_name) == Unknown()
    assert parse_team_ref(None) == Unknown()
    # Unknown plain strings stay concrete
    assert parse_team_ref("removed-team-7") == Resolved("removed-team-7")


@pytest.mark.parametrize(
    "slot,token",
    [
        (Resolved("t9"), "t9"),
        (GroupStanding("A", 1), "group-a-1st"),
        (GroupStanding("B", 2), "group-b-2nd"),
        (BestSecond(), "bestSecond"),
        (WinnerOf("semi1"), "semi1-winner"),
        (LoserOf("qf4"), "qf4-loser"),
        (Unknown(), "TBD"),
    ],
)
def test_format_team_slot(slot, token):
    assert format_team_slot(slot) == token
    assert parse_team_ref(token, ["t9"]) == slot


def test_is_placeholder_and_team_id_of():
    assert not is_placeholder(Resolved("t1"))
    assert is_placeholder(GroupStanding("A", 1))
    assert is_placeholder(Unknown())
    assert team_id_of(Resolved("t1")) == "t1"
    assert team_id_of(WinnerOf("semi1")) is None
