"""
Tetromino piece definitions for Tetrimino.
Holds the 7 piece blueprints, their rotation states and the SRS wall kick tables.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass


class PieceType(Enum):
    """The 7 standard Tetris pieces, in catalog order."""
    I = 0
    O = 1
    T = 2
    L = 3
    J = 4
    S = 5
    Z = 6


# RGB colors, one per identity
COLORS: Dict[PieceType, Tuple[int, int, int]] = {
    PieceType.I: (0, 255, 255),    # Cyan
    PieceType.O: (255, 255, 0),    # Yellow
    PieceType.T: (128, 0, 128),    # Purple
    PieceType.L: (255, 165, 0),    # Orange
    PieceType.J: (0, 0, 255),      # Blue
    PieceType.S: (0, 255, 0),      # Green
    PieceType.Z: (255, 0, 0),      # Red
}

# Shape tables: [rotation][block] = (col_offset, row_offset) from the pivot.
# Rows grow downward. Every state contains the pivot itself (0, 0).
SHAPES: Dict[PieceType, List[List[Tuple[int, int]]]] = {
    PieceType.I: [
        [(0, -1), (0, 0), (0, 1), (0, 2)],
        [(-1, 0), (0, 0), (1, 0), (2, 0)],
        [(0, -1), (0, 0), (0, 1), (0, 2)],
        [(-1, 0), (0, 0), (1, 0), (2, 0)],
    ],
    PieceType.O: [
        [(0, 0), (1, 0), (0, 1), (1, 1)],  # O piece has only one rotation
    ],
    PieceType.T: [
        [(-1, 0), (0, 0), (1, 0), (0, 1)],
        [(0, -1), (0, 0), (0, 1), (-1, 0)],
        [(-1, 0), (0, 0), (1, 0), (0, -1)],
        [(0, -1), (0, 0), (0, 1), (1, 0)],
    ],
    PieceType.L: [
        [(0, -1), (0, 0), (0, 1), (1, 1)],
        [(-1, 0), (0, 0), (1, 0), (-1, 1)],
        [(0, -1), (0, 0), (0, 1), (-1, -1)],
        [(-1, 0), (0, 0), (1, 0), (1, -1)],
    ],
    PieceType.J: [
        [(0, -1), (0, 0), (0, 1), (-1, 1)],
        [(-1, 0), (0, 0), (1, 0), (1, 1)],
        [(0, -1), (0, 0), (0, 1), (1, -1)],
        [(-1, -1), (-1, 0), (0, 0), (1, 0)],
    ],
    PieceType.S: [
        [(-1, 1), (0, 1), (0, 0), (1, 0)],
        [(0, -1), (0, 0), (1, 0), (1, 1)],
        [(-1, 1), (0, 1), (0, 0), (1, 0)],
        [(0, -1), (0, 0), (1, 0), (1, 1)],
    ],
    PieceType.Z: [
        [(-1, 0), (0, 0), (0, 1), (1, 1)],
        [(1, -1), (1, 0), (0, 0), (0, 1)],
        [(-1, 0), (0, 0), (0, 1), (1, 1)],
        [(1, -1), (1, 0), (0, 0), (0, 1)],
    ],
}

# SRS (Super Rotation System) wall kick data
# Format: (from_rotation, to_rotation) -> [(col_offset, row_offset), ...]
# Row offsets are positive "up", so they are subtracted from a board row.
JLSTZ_KICKS: Dict[Tuple[int, int], List[Tuple[int, int]]] = {
    (0, 1): [(0, 0), (-1, 0), (-1, 1), (0, -2), (-1, -2)],
    (1, 0): [(0, 0), (1, 0), (1, -1), (0, 2), (1, 2)],
    (1, 2): [(0, 0), (1, 0), (1, -1), (0, 2), (1, 2)],
    (2, 1): [(0, 0), (-1, 0), (-1, 1), (0, -2), (-1, -2)],
    (2, 3): [(0, 0), (1, 0), (1, 1), (0, -2), (1, -2)],
    (3, 2): [(0, 0), (-1, 0), (-1, -1), (0, 2), (-1, 2)],
    (3, 0): [(0, 0), (-1, 0), (-1, -1), (0, 2), (-1, 2)],
    (0, 3): [(0, 0), (1, 0), (1, 1), (0, -2), (1, -2)],
}

I_KICKS: Dict[Tuple[int, int], List[Tuple[int, int]]] = {
    (0, 1): [(0, 0), (-2, 0), (1, 0), (-2, -1), (1, 2)],
    (1, 0): [(0, 0), (2, 0), (-1, 0), (2, 1), (-1, -2)],
    (1, 2): [(0, 0), (-1, 0), (2, 0), (-1, 2), (2, -1)],
    (2, 1): [(0, 0), (1, 0), (-2, 0), (1, -2), (-2, 1)],
    (2, 3): [(0, 0), (2, 0), (-1, 0), (2, 1), (-1, -2)],
    (3, 2): [(0, 0), (-2, 0), (1, 0), (-2, -1), (1, 2)],
    (3, 0): [(0, 0), (1, 0), (-2, 0), (1, -2), (-2, 1)],
    (0, 3): [(0, 0), (-1, 0), (2, 0), (-1, 2), (2, -1)],
}


def get_wall_kicks(piece_type: PieceType, from_rotation: int,
                   to_rotation: int) -> Optional[List[Tuple[int, int]]]:
    """
    Get the ordered kick candidates for a rotation transition.

    Returns an empty list for the O piece (it never rotates) and None for a
    transition neither table lists, e.g. a 180° turn.
    """
    if piece_type == PieceType.O:
        return []

    table = I_KICKS if piece_type == PieceType.I else JLSTZ_KICKS
    kicks = table.get((from_rotation, to_rotation))
    return list(kicks) if kicks is not None else None


@dataclass(frozen=True)
class Position:
    """Pivot offset of a piece on the board."""
    col: int
    row: int

    def translate(self, dcol: int, drow: int) -> 'Position':
        return Position(self.col + dcol, self.row + drow)


@dataclass(frozen=True)
class Piece:
    """A live piece: an identity plus its current rotation state."""
    piece_type: PieceType
    rotation: int = 0

    @property
    def shape(self) -> List[Tuple[int, int]]:
        """Get the block offsets for the current rotation."""
        states = SHAPES[self.piece_type]
        return states[self.rotation % len(states)]

    @property
    def color(self) -> Tuple[int, int, int]:
        return COLORS[self.piece_type]

    @property
    def can_rotate(self) -> bool:
        return len(SHAPES[self.piece_type]) > 1

    def cells(self, position: Position) -> List[Tuple[int, int]]:
        """Get the absolute (col, row) cells this piece covers at a position."""
        return [(position.col + dc, position.row + dr) for dc, dr in self.shape]

    def rotated(self, clockwise: bool = True) -> 'Piece':
        """Return a new piece advanced one rotation state."""
        count = len(SHAPES[self.piece_type])
        step = 1 if clockwise else count - 1
        return Piece(self.piece_type, (self.rotation + step) % count)

    def reset_rotation(self) -> 'Piece':
        return Piece(self.piece_type, 0)

    def __repr__(self):
        return f"Piece({self.piece_type.name}, r={self.rotation})"


def get_all_piece_types() -> List[PieceType]:
    """Get all piece types."""
    return list(PieceType)
