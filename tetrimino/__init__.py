"""
Tetrimino: a falling-block puzzle rules engine.
Contains the board, piece catalog, 7-bag randomizer, SRS rotation, lock delay,
scoring and the game session that sequences them.
"""

from .board import Board, Cell, CellState
from .exceptions import InvalidConfigError, SchedulerError, TetriminoError
from .lockdown import LockDownController
from .pieces import Piece, PieceType, Position
from .randomizer import BagRandomizer
from .rotation import collides, ghost_position, rotate
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler, TimerKind
from .scoring import ClearEvent, ScoreState, ScoringEngine, fall_interval
from .session import ClearMessage, GameConfig, GameSession, GameSnapshot, Intent
from .env import TetrisEnv

__all__ = [
    'Board', 'Cell', 'CellState',
    'TetriminoError', 'InvalidConfigError', 'SchedulerError',
    'LockDownController',
    'Piece', 'PieceType', 'Position',
    'BagRandomizer',
    'collides', 'ghost_position', 'rotate',
    'Scheduler', 'ManualScheduler', 'AsyncioScheduler', 'TimerKind',
    'ClearEvent', 'ScoreState', 'ScoringEngine', 'fall_interval',
    'ClearMessage', 'GameConfig', 'GameSession', 'GameSnapshot', 'Intent',
    'TetrisEnv',
]
