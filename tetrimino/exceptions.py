# Tetrimino - A falling-block rules engine
# exceptions.py - Custom exceptions for the game engine


class TetriminoError(Exception):
    """Base class for engine errors."""
    pass


class InvalidConfigError(TetriminoError):
    """Raised when a GameConfig holds values the engine cannot run with."""
    pass


class SchedulerError(TetriminoError):
    """Raised when a scheduler is used before binding or given a bad delay."""
    pass
