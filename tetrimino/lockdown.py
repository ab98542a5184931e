# Tetrimino - A falling-block rules engine
# lockdown.py - Lock delay state machine for a grounded piece

from typing import Optional

from .scheduler import Scheduler, TimerKind


class LockDownController:
    """
    Decides when a resting piece becomes part of the board.

    The piece is grounded when a downward move fails. From then on a grace
    timer runs; each successful move or rotation restarts it, but only up to
    move_cap moves. Reaching a new lowest row resets the move count. The
    controller owns the LOCK timer and nothing else.
    """

    def __init__(self, scheduler: Scheduler, grace_period: float = 0.5, move_cap: int = 15):
        self.scheduler = scheduler
        self.grace_period = grace_period
        self.move_cap = move_cap

        self.active = False
        self.lowest_row_reached = 0
        self.moves_since_grounded = 0
        self.deadline: Optional[float] = None

    def _arm(self):
        self.scheduler.schedule_once(self.grace_period, TimerKind.LOCK)
        self.deadline = self.scheduler.now() + self.grace_period

    def ground(self, row: int):
        """The piece failed to move down at this row. Starts the grace timer once."""
        if self.active:
            return
        self.active = True
        self.lowest_row_reached = row
        self.moves_since_grounded = 0
        self._arm()

    def register_move(self, row: int) -> bool:
        """
        Count a successful move or rotation of a grounded piece.
        Returns True when the move cap is exceeded and the piece must lock now.
        """
        if not self.active:
            return False

        self.moves_since_grounded += 1
        if self.moves_since_grounded > self.move_cap:
            return True

        if row > self.lowest_row_reached:
            self.lowest_row_reached = row
            self.moves_since_grounded = 0

        self._arm()
        return False

    def release(self):
        """Drop all lock-down state (piece fell again, locked, or was swapped out)."""
        if self.active or self.scheduler.is_scheduled(TimerKind.LOCK):
            self.scheduler.cancel(TimerKind.LOCK)
        self.active = False
        self.lowest_row_reached = 0
        self.moves_since_grounded = 0
        self.deadline = None

    def __repr__(self):
        return (f"LockDownController(active={self.active}, lowest={self.lowest_row_reached}, "
                f"moves={self.moves_since_grounded})")
