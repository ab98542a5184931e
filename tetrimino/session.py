"""
Game session for Tetrimino.
Owns the board, the active/held/next pieces and the score, and sequences every
rule in response to player intents and scheduler ticks.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass, asdict, fields
from enum import Enum
import json
import numpy as np

from .board import Board
from .exceptions import InvalidConfigError
from .lockdown import LockDownController
from .pieces import Piece, PieceType, Position
from .randomizer import BagRandomizer
from .rotation import collides, ghost_position, rotate
from .scheduler import ManualScheduler, Scheduler, TimerKind
from .scoring import ClearEvent, ScoringEngine, fall_interval, is_t_spin


@dataclass
class GameConfig:
    """Configuration for a game session. Durations are in seconds."""
    rows: int = 20
    columns: int = 10
    queue_size: int = 5
    spawn_col: int = 4
    spawn_row: int = 0
    lock_delay: float = 0.5
    lock_move_cap: int = 15
    clear_delay: float = 0.2
    soft_drop_interval: float = 0.05
    message_duration: float = 1.5
    min_fall_interval: float = 1 / 60
    hold_enabled: bool = True
    soft_drop_points: int = 1
    hard_drop_points: int = 2
    seed: Optional[int] = None

    def __post_init__(self):
        if self.rows < 4 or self.columns < 4:
            raise InvalidConfigError(f"Board must be at least 4x4, got {self.rows}x{self.columns}")
        if not 0 <= self.spawn_col < self.columns:
            raise InvalidConfigError(f"spawn_col {self.spawn_col} is outside the board")
        if self.queue_size < 1:
            raise InvalidConfigError("queue_size must be at least 1")
        if self.lock_move_cap < 0:
            raise InvalidConfigError("lock_move_cap cannot be negative")
        for name in ('lock_delay', 'clear_delay', 'soft_drop_interval',
                     'message_duration', 'min_fall_interval'):
            if getattr(self, name) <= 0:
                raise InvalidConfigError(f"{name} must be positive")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_json(cls, path: str) -> 'GameConfig':
        with open(path, "r", encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Intent(Enum):
    """Already-classified player inputs."""
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    ROTATE_CW = "rotate_cw"
    ROTATE_CCW = "rotate_ccw"
    SOFT_DROP_START = "soft_drop_start"
    SOFT_DROP_STOP = "soft_drop_stop"
    HARD_DROP = "hard_drop"
    HOLD = "hold"
    PAUSE = "pause"
    RESUME = "resume"
    RESTART = "restart"


@dataclass(frozen=True)
class ClearMessage:
    text: str
    expires_at: float


@dataclass
class GameSnapshot:
    """Read-only copy of everything a renderer needs."""
    board: np.ndarray
    current_piece: Optional[Piece]
    position: Optional[Position]
    ghost_position: Optional[Position]
    held_piece: Optional[Piece]
    next_pieces: List[PieceType]
    score: int
    level: int
    lines_cleared: int
    combo: int
    back_to_back: bool
    clear_message: Optional[ClearMessage]
    paused: bool
    game_over: bool
    can_hold: bool
    fall_interval: float


class GameSession:
    """Main game session: one board, one player, one score."""

    def __init__(self, config: Optional[GameConfig] = None,
                 scheduler: Optional[Scheduler] = None,
                 on_change: Optional[Callable[['GameSession'], None]] = None):
        self.config = config or GameConfig()
        self.scheduler = scheduler or ManualScheduler()
        self.scheduler.bind(self.on_tick)
        self.on_change = on_change

        self.board = Board(self.config.rows, self.config.columns)
        self.randomizer = BagRandomizer(self.config.queue_size, self.config.seed)
        self.scoring = ScoringEngine()
        self.lockdown = LockDownController(
            self.scheduler, self.config.lock_delay, self.config.lock_move_cap
        )

        # Callbacks
        self.on_piece_locked: Optional[Callable[[Piece, Position], None]] = None
        self.on_line_cleared: Optional[Callable[[ClearEvent], None]] = None
        self.on_level_up: Optional[Callable[[int], None]] = None
        self.on_game_over: Optional[Callable[[], None]] = None

        self._reset_state()
        self._start_game()

    def _reset_state(self):
        self.current_piece: Optional[Piece] = None
        self.position: Optional[Position] = None
        self.held_piece: Optional[Piece] = None
        self.hold_used = False
        self.last_move_was_rotation = False
        self.soft_dropping = False
        self.paused = False
        self.game_over = False
        self.pending_clear: Optional[Tuple[List[int], bool]] = None
        self._message: Optional[ClearMessage] = None

    def _start_game(self):
        self._spawn_piece()
        if not self.game_over:
            self._start_gravity()

    @property
    def spawn_position(self) -> Position:
        return Position(self.config.spawn_col, self.config.spawn_row)

    # --- Read-only accessors ---

    @property
    def score(self) -> int:
        return self.scoring.state.score

    @property
    def level(self) -> int:
        return self.scoring.state.level

    @property
    def lines_cleared(self) -> int:
        return self.scoring.state.total_lines

    @property
    def combo(self) -> int:
        return self.scoring.state.combo

    @property
    def back_to_back(self) -> bool:
        return self.scoring.state.back_to_back

    @property
    def next_pieces(self) -> List[PieceType]:
        return self.randomizer.peek()

    @property
    def can_hold(self) -> bool:
        return (self.config.hold_enabled and not self.hold_used
                and self.current_piece is not None)

    @property
    def ghost_position(self) -> Optional[Position]:
        if self.current_piece is None:
            return None
        return ghost_position(self.current_piece, self.position, self.board)

    @property
    def clear_message(self) -> Optional[ClearMessage]:
        if self._message is None or self.scheduler.now() >= self._message.expires_at:
            return None
        return self._message

    @property
    def fall_interval(self) -> float:
        return fall_interval(self.level, self.config.min_fall_interval)

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            board=self.board.copy_grid(),
            current_piece=self.current_piece,
            position=self.position,
            ghost_position=self.ghost_position,
            held_piece=self.held_piece,
            next_pieces=self.next_pieces,
            score=self.score,
            level=self.level,
            lines_cleared=self.lines_cleared,
            combo=self.combo,
            back_to_back=self.back_to_back,
            clear_message=self.clear_message,
            paused=self.paused,
            game_over=self.game_over,
            can_hold=self.can_hold,
            fall_interval=self.fall_interval,
        )

    def get_stats(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'level': self.level,
            'lines_cleared': self.lines_cleared,
            'combo': self.combo,
            'back_to_back': self.back_to_back,
            'game_over': self.game_over,
            'board_height': max(self.board.get_height_map()),
        }

    # --- Host entry points ---

    def apply_intent(self, intent: Intent) -> bool:
        """
        Apply one player intent. Returns True if it changed anything.
        Illegal intents are ignored, never raised.
        """
        if intent == Intent.RESTART:
            self.restart()
            return True
        if self.game_over:
            return False

        if intent == Intent.PAUSE:
            changed = self._pause()
        elif intent == Intent.RESUME:
            changed = self._resume()
        elif self.paused:
            return False
        elif intent == Intent.MOVE_LEFT:
            changed = self._shift(-1)
        elif intent == Intent.MOVE_RIGHT:
            changed = self._shift(1)
        elif intent == Intent.ROTATE_CW:
            changed = self._rotate(True)
        elif intent == Intent.ROTATE_CCW:
            changed = self._rotate(False)
        elif intent == Intent.SOFT_DROP_START:
            changed = self._start_soft_drop()
        elif intent == Intent.SOFT_DROP_STOP:
            changed = self._stop_soft_drop()
        elif intent == Intent.HARD_DROP:
            changed = self._hard_drop()
        elif intent == Intent.HOLD:
            changed = self._hold()
        else:
            changed = False

        if changed:
            self._notify()
        return changed

    def on_tick(self, kind: TimerKind):
        """Handle a timer firing. Bound to the scheduler at construction."""
        if kind == TimerKind.CLEAR_COMMIT:
            # Still commits while paused; restart cancels it instead
            self._commit_clear()
            self._notify()
            return
        if self.game_over or self.paused:
            return

        if kind == TimerKind.GRAVITY:
            if not self.soft_dropping:
                self._step_down()
        elif kind == TimerKind.SOFT_DROP:
            if self._step_down():
                self.scoring.add_drop_points(self.config.soft_drop_points)
        elif kind == TimerKind.LOCK:
            self._on_lock_timer()
        self._notify()

    def restart(self):
        """Throw away all state, including in-flight timers, and start a new game."""
        self.scheduler.cancel_all()
        self.lockdown.release()
        self.board.reset()
        self.randomizer.reset()
        self.scoring.reset()
        self._reset_state()
        self._start_game()
        self._notify()

    # --- Timers ---

    def _start_gravity(self):
        if self.paused or self.game_over or self.soft_dropping:
            return
        self.scheduler.schedule_repeating(self.fall_interval, TimerKind.GRAVITY)

    def _pause(self) -> bool:
        if self.paused:
            return False
        self.paused = True
        self.soft_dropping = False
        self.scheduler.cancel(TimerKind.GRAVITY)
        self.scheduler.cancel(TimerKind.SOFT_DROP)
        self.lockdown.release()
        return True

    def _resume(self) -> bool:
        if not self.paused:
            return False
        self.paused = False
        self._start_gravity()
        return True

    def _start_soft_drop(self) -> bool:
        if self.soft_dropping:
            return False
        self.soft_dropping = True
        self.scheduler.cancel(TimerKind.GRAVITY)
        self.scheduler.schedule_repeating(self.config.soft_drop_interval, TimerKind.SOFT_DROP)
        return True

    def _stop_soft_drop(self) -> bool:
        if not self.soft_dropping:
            return False
        self.soft_dropping = False
        self.scheduler.cancel(TimerKind.SOFT_DROP)
        self._start_gravity()
        return True

    # --- Piece actions ---

    def _step_down(self) -> bool:
        """Move the piece down one row, or ground it if it cannot fall."""
        if self.current_piece is None:
            return False

        below = self.position.translate(0, 1)
        if not collides(self.current_piece, below, self.board):
            self.position = below
            self.last_move_was_rotation = False
            self.lockdown.release()
            return True

        self.lockdown.ground(self.position.row)
        return False

    def _shift(self, dx: int) -> bool:
        if self.current_piece is None:
            return False

        target = self.position.translate(dx, 0)
        if collides(self.current_piece, target, self.board):
            return False

        self.position = target
        self.last_move_was_rotation = False
        self._count_grounded_move()
        return True

    def _rotate(self, clockwise: bool) -> bool:
        if self.current_piece is None or not self.current_piece.can_rotate:
            return False

        result = rotate(self.current_piece, self.position, self.board, clockwise)
        if result is None:
            return False

        self.current_piece, self.position = result
        self.last_move_was_rotation = True
        self._count_grounded_move()
        return True

    def _count_grounded_move(self):
        """A move or rotation of a grounded piece restarts lock-down, up to the move cap."""
        if not self.lockdown.active:
            return
        if not collides(self.current_piece, self.position.translate(0, 1), self.board):
            # Off the ledge, so it is no longer grounded
            self.lockdown.release()
            return
        if self.lockdown.register_move(self.position.row):
            self._finalize_placement()

    def _hard_drop(self) -> bool:
        if self.current_piece is None:
            return False

        landing = ghost_position(self.current_piece, self.position, self.board)
        dropped = landing.row - self.position.row
        if dropped > 0:
            self.scoring.add_drop_points(dropped * self.config.hard_drop_points)
            self.last_move_was_rotation = False
        self.position = landing
        self._finalize_placement()
        return True

    def _hold(self) -> bool:
        if not self.can_hold:
            return False

        self.hold_used = True
        stashed = self.current_piece.reset_rotation()
        if self.held_piece is not None:
            incoming = self.held_piece
        else:
            incoming = Piece(self.randomizer.dequeue_next())
        self.held_piece = stashed

        self._place_new_piece(incoming)
        return True

    def _on_lock_timer(self):
        if not self.lockdown.active or self.current_piece is None:
            return
        if not collides(self.current_piece, self.position.translate(0, 1), self.board):
            # Slid off its ledge since grounding; let gravity take it again
            self.lockdown.release()
            return
        self._finalize_placement()

    # --- Placement, clears, spawning ---

    def _finalize_placement(self):
        """Lock the active piece, then either start a clear or spawn the next piece."""
        self.lockdown.release()
        piece, position = self.current_piece, self.position
        t_spin = is_t_spin(piece, position, self.board, self.last_move_was_rotation)

        self.board.place(piece, position)
        self.current_piece = None
        self.position = None
        if self.on_piece_locked:
            self.on_piece_locked(piece, position)

        full_rows = self.board.scan_full_rows()
        if full_rows:
            self.board.mark_clearing(full_rows)
            self.pending_clear = (full_rows, t_spin)
            self.scheduler.schedule_once(self.config.clear_delay, TimerKind.CLEAR_COMMIT)
        else:
            self.scoring.register_placement(0, t_spin)
            self._spawn_piece()

    def _commit_clear(self):
        if self.pending_clear is None:
            return
        rows, t_spin = self.pending_clear
        self.pending_clear = None

        removed = self.board.commit_clear(rows)
        event = self.scoring.register_placement(removed, t_spin)
        if event is not None:
            if event.message:
                self._message = ClearMessage(
                    event.message, self.scheduler.now() + self.config.message_duration
                )
            if event.leveled_up and self.on_level_up:
                self.on_level_up(event.level)
            if self.on_line_cleared:
                self.on_line_cleared(event)

        if not self.game_over:
            # Fresh gravity phase at the current level's interval
            self._start_gravity()
            self._spawn_piece()

    def _spawn_piece(self):
        self.hold_used = False
        self._place_new_piece(Piece(self.randomizer.dequeue_next()))

    def _place_new_piece(self, piece: Piece):
        self.lockdown.release()
        self.current_piece = piece
        self.position = self.spawn_position
        self.last_move_was_rotation = False

        if collides(self.current_piece, self.position, self.board):
            self._set_game_over()

    def _set_game_over(self):
        self.game_over = True
        self.soft_dropping = False
        self.scheduler.cancel_all()
        self.lockdown.release()
        if self.on_game_over:
            self.on_game_over()

    def _notify(self):
        if self.on_change:
            self.on_change(self)

    # --- Text rendering ---

    def render_text(self, show_ghost: bool = True) -> str:
        """Board with the active piece (○) and its ghost (◌) drawn in."""
        rows = [list(line) for line in str(self.board).split("\n")]

        def draw(cells, glyph):
            for col, row in cells:
                if self.board.in_bounds(row, col):
                    rows[row][col] = glyph

        if self.current_piece is not None:
            if show_ghost:
                draw(self.current_piece.cells(self.ghost_position), "◌")
            draw(self.current_piece.cells(self.position), "○")
        return "\n".join("".join(r) for r in rows)

    def __str__(self):
        """String representation of the game state."""
        result = []
        result.append(f"Level: {self.level}")
        result.append(f"Lines: {self.lines_cleared}")
        result.append(f"Score: {self.score}")
        result.append(f"Combo: {self.combo}")
        result.append(f"Hold: {self.held_piece.piece_type.name if self.held_piece else '-'}")
        result.append(f"Next: {' '.join(p.name for p in self.next_pieces)}")
        if self.clear_message:
            result.append(self.clear_message.text.replace("\n", " / "))
        if self.paused:
            result.append("PAUSED")
        if self.game_over:
            result.append("GAME OVER")
        result.append("")
        result.append(self.render_text())
        return "\n".join(result)
