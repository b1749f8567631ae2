from __future__ import annotations

from collections.abc import Sequence

from .state import BoardUnit, MatchSnapshot


def calculate_synergies(board: Sequence[BoardUnit], synergy_block_turns: int = 0) -> None:
    """Recompute every unit's synergy bonus from board composition alone.

    Each unit gets +1 attack per distinct friendly partner it shares at least
    one school with, however many schools they share. The bookkeeping entry
    goes under the first shared school in the first unit's tag order. Old
    bonuses are always removed first, so calling this repeatedly is a no-op.
    Health is never touched.
    """
    for unit in board:
        unit.attack -= unit.synergy_bonus
        unit.synergy_bonus = 0
        unit.synergy_breakdown = {}

    if synergy_block_turns > 0:
        return

    for i, first in enumerate(board):
        for second in board[i + 1 :]:
            shared = [s for s in first.schools if s in second.schools]
            if not shared:
                continue
            school = shared[0]
            first.synergy_breakdown[school] = first.synergy_breakdown.get(school, 0) + 1
            second.synergy_breakdown[school] = second.synergy_breakdown.get(school, 0) + 1

    for unit in board:
        bonus = sum(unit.synergy_breakdown.values())
        unit.synergy_bonus = bonus
        unit.attack += bonus


def refresh_synergies(state: MatchSnapshot) -> None:
    for ps in state.players:
        calculate_synergies(ps.board, ps.synergy_block_turns)
