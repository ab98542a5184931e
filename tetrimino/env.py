# Tetrimino - A falling-block rules engine
# env.py - Gymnasium environment hosting a GameSession on a virtual clock

from typing import Optional
from dataclasses import replace

import gymnasium as gym
from gymnasium import spaces
import numpy as np

from .board import CLEARING
from .pieces import Piece, PieceType
from .scheduler import ManualScheduler
from .session import GameConfig, GameSession, Intent


CLEARING_ID = len(PieceType) + 1  # board observation value for clearing cells


class TetrisEnv(gym.Env):
    """
    A Tetris environment that conforms to the Gymnasium API.

    The environment is the host for a GameSession: it turns each discrete
    action into an intent, then advances a ManualScheduler by step_seconds so
    gravity, lock delay and line-clear timers run exactly as they would live.

    Action Space (Discrete(8)):
    - 0: Do nothing (let time pass)
    - 1: Move Left
    - 2: Move Right
    - 3: Rotate Clockwise
    - 4: Rotate Counter-Clockwise
    - 5: Soft Drop (one soft-drop tick)
    - 6: Hard Drop
    - 7: Hold Piece

    Observation Space:
    - board: rows x columns, 0 empty, 1-7 piece id, 8 clearing
    - current / hold: piece id, 0 for none
    - next: ids of the visible next queue
    - ghost: 0/1 map of the hard-drop landing cells
    - combo / back_to_back
    Reward is the score gained during the step.
    """

    metadata = {"render_modes": ["ansi"]}

    ACTIONS = [
        None,
        Intent.MOVE_LEFT,
        Intent.MOVE_RIGHT,
        Intent.ROTATE_CW,
        Intent.ROTATE_CCW,
        Intent.SOFT_DROP_START,
        Intent.HARD_DROP,
        Intent.HOLD,
    ]

    def __init__(self, config: Optional[GameConfig] = None, step_seconds: float = 0.1,
                 render_mode: Optional[str] = None):
        super().__init__()
        self.config = config or GameConfig()
        self.step_seconds = step_seconds
        self.render_mode = render_mode

        rows, cols = self.config.rows, self.config.columns
        n_ids = len(PieceType) + 1

        self.action_space = spaces.Discrete(len(self.ACTIONS))
        self.observation_space = spaces.Dict({
            "board": spaces.Box(low=0, high=CLEARING_ID, shape=(rows, cols), dtype=np.uint8),
            "current": spaces.Discrete(n_ids),
            "hold": spaces.Discrete(n_ids),
            "next": spaces.Box(low=0, high=len(PieceType), shape=(self.config.queue_size,), dtype=np.uint8),
            "ghost": spaces.Box(low=0, high=1, shape=(rows, cols), dtype=np.uint8),
            "combo": spaces.Box(low=-1, high=np.iinfo(np.int16).max, shape=(1,), dtype=np.int16),
            "back_to_back": spaces.Discrete(2),
        })

        self.scheduler = ManualScheduler()
        self.session = GameSession(self.config, self.scheduler)

    @staticmethod
    def _piece_id(piece: Optional[Piece]) -> int:
        if piece is None:
            return 0  # 0 for no piece
        return piece.piece_type.value + 1

    def _get_observation(self):
        session = self.session
        grid = session.board.copy_grid()
        board = np.where(grid == CLEARING, CLEARING_ID, grid).astype(np.uint8)

        ghost = np.zeros_like(board)
        if session.current_piece is not None:
            for col, row in session.current_piece.cells(session.ghost_position):
                if session.board.in_bounds(row, col):
                    ghost[row, col] = 1

        next_ids = [p.value + 1 for p in session.next_pieces]
        next_ids += [0] * (self.config.queue_size - len(next_ids))

        return {
            "board": board,
            "current": self._piece_id(session.current_piece),
            "hold": self._piece_id(session.held_piece),
            "next": np.array(next_ids, dtype=np.uint8),
            "ghost": ghost,
            "combo": np.array([session.combo], dtype=np.int16),
            "back_to_back": int(session.back_to_back),
        }

    def _get_info(self):
        return self.session.get_stats()

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)
        session_seed = int(self.np_random.integers(0, 2**31 - 1))
        self.scheduler = ManualScheduler()
        self.session = GameSession(replace(self.config, seed=session_seed), self.scheduler)
        return self._get_observation(), self._get_info()

    def step(self, action: int):
        if not self.action_space.contains(action):
            raise ValueError(f"Invalid action {action!r}")

        session = self.session
        score_before = session.score
        intent = self.ACTIONS[int(action)]

        if intent == Intent.SOFT_DROP_START:
            session.apply_intent(Intent.SOFT_DROP_START)
            self.scheduler.advance(self.config.soft_drop_interval)
            session.apply_intent(Intent.SOFT_DROP_STOP)
        elif intent is not None:
            session.apply_intent(intent)

        if not session.game_over:
            self.scheduler.advance(self.step_seconds)

        reward = float(session.score - score_before)
        terminated = session.game_over
        return self._get_observation(), reward, terminated, False, self._get_info()

    def render(self):
        if self.render_mode == "ansi":
            return str(self.session)
        return None

    def close(self):
        self.scheduler.cancel_all()
