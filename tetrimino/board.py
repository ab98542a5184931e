"""
Board state management for Tetrimino.
Handles the cell grid, piece placement, full-row scanning and the two-step line clear.
"""

from enum import Enum
from typing import Iterable, List, NamedTuple, Optional
import numpy as np

from .pieces import Piece, PieceType, Position


EMPTY = 0
CLEARING = -1


class CellState(Enum):
    EMPTY = 0
    FILLED = 1
    CLEARING = 2


class Cell(NamedTuple):
    """One board cell. piece_type is set only for FILLED cells."""
    state: CellState
    piece_type: Optional[PieceType] = None


def piece_code(piece_type: PieceType) -> int:
    """Grid value stored for a cell filled by this piece type (1-7)."""
    return piece_type.value + 1


def code_to_piece(code: int) -> Optional[PieceType]:
    if code <= 0:
        return None
    return PieceType(code - 1)


class Board:
    """
    Fixed-size playing field. Row 0 is the top (spawn) row.

    The grid is an int8 numpy array: 0 is empty, 1-7 is filled with a piece
    identity and -1 marks a row waiting to be removed by commit_clear.
    """

    BOARD_ROWS = 20
    BOARD_COLUMNS = 10

    def __init__(self, rows: int = BOARD_ROWS, columns: int = BOARD_COLUMNS):
        self.rows = rows
        self.columns = columns
        self.grid = np.zeros((self.rows, self.columns), dtype=np.int8)

    def reset(self):
        """Reset the board to all empty cells."""
        self.grid = np.zeros((self.rows, self.columns), dtype=np.int8)

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.columns

    def is_filled(self, row: int, col: int) -> bool:
        """True if the cell holds a locked block. Out-of-range cells are not filled."""
        if not self.in_bounds(row, col):
            return False
        return bool(self.grid[row, col] > EMPTY)

    def cell(self, row: int, col: int) -> Cell:
        code = int(self.grid[row, col])
        if code == EMPTY:
            return Cell(CellState.EMPTY)
        if code == CLEARING:
            return Cell(CellState.CLEARING)
        return Cell(CellState.FILLED, code_to_piece(code))

    def place(self, piece: Piece, position: Position):
        """
        Write the piece's identity into every covered cell.
        Cells outside the grid are skipped; a legal placement never has any.
        """
        code = piece_code(piece.piece_type)
        for col, row in piece.cells(position):
            if self.in_bounds(row, col):
                self.grid[row, col] = code

    def scan_full_rows(self) -> List[int]:
        """Get the indices, top to bottom, of rows with no empty cell."""
        full = np.all(self.grid != EMPTY, axis=1)
        return [int(r) for r in np.flatnonzero(full)]

    def mark_clearing(self, rows: Iterable[int]):
        """Flag whole rows as clearing. The rows stay in place until commit_clear."""
        for row in rows:
            if 0 <= row < self.rows:
                self.grid[row, :] = CLEARING

    def commit_clear(self, rows: Iterable[int]) -> int:
        """
        Remove the given rows and insert as many empty rows at the top.
        Returns the number of rows removed.
        """
        doomed = {r for r in rows if 0 <= r < self.rows}
        if not doomed:
            return 0

        keep = [r for r in range(self.rows) if r not in doomed]
        new_rows = np.zeros((len(doomed), self.columns), dtype=np.int8)
        self.grid = np.vstack([new_rows, self.grid[keep]])
        return len(doomed)

    def get_height_map(self) -> List[int]:
        """Get the height of each column."""
        heights = []
        for x in range(self.columns):
            column = np.flatnonzero(self.grid[:, x] != EMPTY)
            heights.append(self.rows - int(column[0]) if column.size else 0)
        return heights

    def is_empty(self) -> bool:
        return not bool(np.any(self.grid))

    def copy_grid(self) -> np.ndarray:
        return self.grid.copy()

    def __str__(self):
        """String representation of the board."""
        result = []
        for y in range(self.rows):
            row = ""
            for x in range(self.columns):
                code = self.grid[y, x]
                if code == CLEARING:
                    row += "▒"
                elif code:
                    row += "█"
                else:
                    row += "·"
            result.append(row)
        return "\n".join(result)

    def __repr__(self):
        return f"Board(rows={self.rows}, columns={self.columns})"
