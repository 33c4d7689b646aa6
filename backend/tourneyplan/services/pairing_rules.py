"""
Group Stage Pairing Rules — round-robin pairings (single source of truth).

Pairings are expressed on 0-based positions inside a group so that the
generator can map them onto whatever teams the group holds.
"""

from typing import List, Tuple


def rr_matches_per_group(group_size: int) -> int:
    """Return number of RR matches in a group: C(n, 2) = n*(n-1)/2."""
    return (group_size * (group_size - 1)) // 2


def rr_round_count(group_size: int) -> int:
    """
    Return number of RR rounds for a group of n teams.
    Even n: n-1 rounds. Odd n: n rounds (one team has a bye each round).
    """
    if group_size < 2:
        return 0
    if group_size % 2 == 0:
        return group_size - 1
    return group_size


def rr_pairings_by_round(group_size: int) -> List[Tuple[int, int, int, int]]:
    """
    Round-robin pairings via the circle method.

    Returns list of (round_index, sequence_in_round, idx_a, idx_b) with 1-based
    round_index and sequence_in_round. idx_a, idx_b are 0-based positions.

    Position 0 stays fixed while the others rotate. For odd n a virtual BYE
    position is added; pairings against it are skipped, so no match is
    emitted for the bye. No position appears twice within a round.
    """
    n = group_size
    if n < 2:
        return []

    n2 = n + 1 if n % 2 == 1 else n
    half = n2 // 2
    bye_idx = n if n % 2 == 1 else -1

    result: List[Tuple[int, int, int, int]] = []
    positions = list(range(n2))

    for round_num in range(1, n2):
        seq = 0
        for i in range(half):
            a, b = positions[i], positions[n2 - 1 - i]
            if a == bye_idx or b == bye_idx:
                continue
            seq += 1
            result.append((round_num, seq, a, b))
        # Rotate: keep 0, move last to second, shift others
        positions = [positions[0]] + [positions[-1]] + positions[1:-1]

    return result
