"""
Collision queries and kick-resolved rotation for Tetrimino.
"""

from typing import Optional, Tuple

from .board import Board
from .pieces import Piece, Position, get_wall_kicks


def collides(piece: Piece, position: Position, board: Board) -> bool:
    """
    Check whether a piece at a position overlaps a wall, the floor or a locked block.
    Cells above the top row are open, so a piece may spawn partly off-board.
    """
    for col, row in piece.cells(position):
        if col < 0 or col >= board.columns or row >= board.rows:
            return True
        if row < 0:
            continue
        if board.is_filled(row, col):
            return True
    return False


def can_move(piece: Piece, position: Position, board: Board,
             dcol: int, drow: int) -> bool:
    return not collides(piece, position.translate(dcol, drow), board)


def rotate(piece: Piece, position: Position, board: Board,
           clockwise: bool = True) -> Optional[Tuple[Piece, Position]]:
    """
    Rotate a piece one step using the SRS kick tables.

    Candidates are tried in table order; the first one that fits wins.
    Returns the rotated piece and its new position, or None if every
    candidate collides. The O piece comes back unchanged.
    """
    if not piece.can_rotate:
        return piece, position

    rotated = piece.rotated(clockwise)
    kicks = get_wall_kicks(piece.piece_type, piece.rotation, rotated.rotation)
    if kicks is None:
        return None

    for kick_col, kick_row in kicks:
        # Kick rows point up, board rows point down
        candidate = Position(position.col + kick_col, position.row - kick_row)
        if not collides(rotated, candidate, board):
            return rotated, candidate

    return None


def ghost_position(piece: Piece, position: Position, board: Board) -> Position:
    """Get the position where the piece would land if hard dropped."""
    drop_pos = position
    while not collides(piece, drop_pos.translate(0, 1), board):
        drop_pos = drop_pos.translate(0, 1)
    return drop_pos
