"""
Scoring and line-clear rules for Tetrimino.
Covers T-spin detection, base clear values, back-to-back, combo (REN) bonuses,
level progression and the gravity speed curve.
"""

from typing import List, Optional
from dataclasses import dataclass
import math

from .board import Board
from .pieces import Piece, PieceType, Position


LINES_PER_LEVEL = 10
BACK_TO_BACK_MULTIPLIER = 1.5

# Base score values (before level and back-to-back)
SCORE_VALUES = {
    1: 100,   # Single
    2: 300,   # Double
    3: 500,   # Triple
    4: 800    # Tetris
}

T_SPIN_SCORE_VALUES = {
    1: 800,
    2: 1200,
    3: 1600
}

CLEAR_LABELS = {1: "Single", 2: "Double", 3: "Triple", 4: "Tetris"}
T_SPIN_LABELS = {1: "T-Spin Single", 2: "T-Spin Double", 3: "T-Spin Triple"}

# Indexed by combo counter; counters past the end use the last entry
COMBO_BONUS_TABLE = [0, 50, 100, 200, 400, 800, 1200, 1600, 2000]


@dataclass
class ScoreState:
    """Score and level counters for one session."""
    score: int = 0
    level: int = 1
    total_lines: int = 0
    combo: int = -1  # -1 = no active combo
    back_to_back: bool = False


@dataclass(frozen=True)
class ClearEvent:
    """Result of one placement that cleared at least one line."""
    lines: int
    t_spin: bool
    base: int
    back_to_back_applied: bool
    combo: int
    combo_bonus: int
    points: int
    level_before: int
    level: int
    message: str

    @property
    def leveled_up(self) -> bool:
        return self.level > self.level_before


def is_t_spin(piece: Piece, position: Position, board: Board,
              last_move_was_rotation: bool) -> bool:
    """
    Check the 3-corner T-spin rule.

    The piece must be a T whose last successful action was a rotation, and
    at least 3 of the 4 cells diagonal to its pivot must be occupied. Walls
    and the floor count as occupied; the space above the board does not.
    """
    if piece.piece_type != PieceType.T or not last_move_was_rotation:
        return False

    corners = [
        (position.col - 1, position.row - 1),
        (position.col + 1, position.row - 1),
        (position.col - 1, position.row + 1),
        (position.col + 1, position.row + 1),
    ]

    occupied = 0
    for col, row in corners:
        if col < 0 or col >= board.columns or row >= board.rows:
            occupied += 1
        elif row >= 0 and board.is_filled(row, col):
            occupied += 1

    return occupied >= 3


def base_score(lines: int, t_spin: bool) -> int:
    table = T_SPIN_SCORE_VALUES if t_spin else SCORE_VALUES
    return table.get(lines, 0)


def is_difficult_clear(lines: int, t_spin: bool) -> bool:
    """Tetrises and line-clearing T-spins keep back-to-back alive."""
    if t_spin:
        return lines > 0
    return lines == 4


def combo_bonus(combo: int, level: int) -> int:
    if combo <= 0:
        return 0
    return COMBO_BONUS_TABLE[min(combo, len(COMBO_BONUS_TABLE) - 1)] * level


def level_for_lines(total_lines: int) -> int:
    return total_lines // LINES_PER_LEVEL + 1


def fall_interval(level: int, minimum: float = 0.0) -> float:
    """
    Seconds between gravity steps: (0.8 - (level-1)*0.007) ** (level-1).
    Level 1 is exactly 1.0s. The result never drops below minimum.
    """
    base = 0.8 - (level - 1) * 0.007
    if base <= 0:
        return minimum
    return max(minimum, math.pow(base, level - 1))


def clear_message_text(lines: int, t_spin: bool, back_to_back: bool, combo: int) -> str:
    """Text shown after a clear, e.g. "Tetris\\nBack-to-Back"."""
    labels = T_SPIN_LABELS if t_spin else CLEAR_LABELS
    components: List[str] = []
    if back_to_back:
        components.append("Back-to-Back")
    if combo > 0:
        components.append(f"{combo} REN")
    components.sort()

    label = labels.get(lines)
    if label:
        components.insert(0, label)
    return "\n".join(components)


class ScoringEngine:
    """Applies placements to a ScoreState and reports what was scored."""

    def __init__(self):
        self.state = ScoreState()

    def reset(self):
        self.state = ScoreState()

    def add_drop_points(self, points: int):
        if points > 0:
            self.state.score += points

    def register_placement(self, lines: int, t_spin: bool = False) -> Optional[ClearEvent]:
        """
        Score one placement. A placement that clears nothing only breaks the
        combo; back-to-back status is left untouched.
        """
        state = self.state
        if lines <= 0:
            state.combo = -1
            return None

        state.combo += 1

        base = base_score(lines, t_spin)
        difficult = is_difficult_clear(lines, t_spin)
        b2b_applied = difficult and state.back_to_back
        multiplier = BACK_TO_BACK_MULTIPLIER if b2b_applied else 1.0
        state.back_to_back = difficult

        level_before = state.level
        bonus = combo_bonus(state.combo, level_before)
        points = int(math.floor(base * level_before * multiplier)) + bonus
        state.score += points

        state.total_lines += lines
        state.level = max(state.level, level_for_lines(state.total_lines))

        return ClearEvent(
            lines=lines,
            t_spin=t_spin,
            base=base,
            back_to_back_applied=b2b_applied,
            combo=state.combo,
            combo_bonus=bonus,
            points=points,
            level_before=level_before,
            level=state.level,
            message=clear_message_text(lines, t_spin, b2b_applied, state.combo),
        )
