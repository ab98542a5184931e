"""
Integration tests for the game session, driven on a virtual clock.
"""

import asyncio
import json
import os
import sys
import tempfile
import unittest

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tetrimino.board import CLEARING
from tetrimino.exceptions import InvalidConfigError
from tetrimino.pieces import Piece, PieceType, Position
from tetrimino.scheduler import AsyncioScheduler, ManualScheduler, TimerKind
from tetrimino.scoring import fall_interval
from tetrimino.session import GameConfig, GameSession, Intent


def put(session, piece_type, col, row, rotation=0):
    """Replace the active piece, as if it had just spawned there."""
    session.lockdown.release()
    session.current_piece = Piece(piece_type, rotation)
    session.position = Position(col, row)
    session.last_move_was_rotation = False


class SessionTestCase(unittest.TestCase):

    def setUp(self):
        self.scheduler = ManualScheduler()
        self.session = GameSession(GameConfig(seed=7), self.scheduler)

    def fill_row_except(self, row, *cols):
        self.session.board.grid[row, :] = 1
        for col in cols:
            self.session.board.grid[row, col] = 0


class TestGameStart(SessionTestCase):

    def test_initial_state(self):
        session = self.session
        self.assertIsNotNone(session.current_piece)
        self.assertEqual(session.position, Position(4, 0))
        self.assertEqual(session.current_piece.rotation, 0)
        self.assertEqual(len(session.next_pieces), 5)
        self.assertEqual(session.score, 0)
        self.assertEqual(session.level, 1)
        self.assertEqual(session.combo, -1)
        self.assertIsNone(session.held_piece)
        self.assertTrue(session.can_hold)
        self.assertEqual(self.scheduler.interval_of(TimerKind.GRAVITY), 1.0)

    def test_same_seed_same_pieces(self):
        other = GameSession(GameConfig(seed=7), ManualScheduler())
        self.assertEqual(other.current_piece, self.session.current_piece)
        self.assertEqual(other.next_pieces, self.session.next_pieces)

    def test_snapshot(self):
        snapshot = self.session.snapshot()
        self.assertEqual(snapshot.position, Position(4, 0))
        self.assertEqual(snapshot.board.shape, (20, 10))
        self.assertFalse(snapshot.paused)
        self.assertFalse(snapshot.game_over)
        self.assertEqual(snapshot.fall_interval, 1.0)
        snapshot.board[0, 0] = 5
        self.assertEqual(self.session.board.grid[0, 0], 0)

    def test_stats_and_text(self):
        stats = self.session.get_stats()
        self.assertEqual(stats['score'], 0)
        self.assertEqual(stats['board_height'], 0)
        self.assertIn("Score: 0", str(self.session))


class TestMovement(SessionTestCase):

    def test_move_until_wall(self):
        put(self.session, PieceType.O, 4, 5)
        for expected_col in (3, 2, 1, 0):
            self.assertTrue(self.session.apply_intent(Intent.MOVE_LEFT))
            self.assertEqual(self.session.position.col, expected_col)
        self.assertFalse(self.session.apply_intent(Intent.MOVE_LEFT))
        self.assertTrue(self.session.apply_intent(Intent.MOVE_RIGHT))
        self.assertEqual(self.session.position, Position(1, 5))

    def test_gravity(self):
        put(self.session, PieceType.O, 4, 5)
        self.scheduler.advance(0.5)
        self.assertEqual(self.session.position, Position(4, 5))
        self.scheduler.advance(0.5)
        self.assertEqual(self.session.position, Position(4, 6))

    def test_rotation_sets_and_translation_clears_flag(self):
        put(self.session, PieceType.T, 4, 10)
        self.assertTrue(self.session.apply_intent(Intent.ROTATE_CW))
        self.assertEqual(self.session.current_piece, Piece(PieceType.T, 1))
        self.assertTrue(self.session.last_move_was_rotation)
        self.assertTrue(self.session.apply_intent(Intent.MOVE_LEFT))
        self.assertFalse(self.session.last_move_was_rotation)

    def test_gravity_clears_rotation_flag(self):
        put(self.session, PieceType.T, 4, 10)
        self.session.apply_intent(Intent.ROTATE_CCW)
        self.scheduler.advance(1.0)
        self.assertFalse(self.session.last_move_was_rotation)

    def test_o_piece_rotation_is_rejected(self):
        put(self.session, PieceType.O, 4, 10)
        self.assertFalse(self.session.apply_intent(Intent.ROTATE_CW))

    def test_on_change_fires_for_accepted_intents(self):
        changes = []
        self.session.on_change = changes.append
        put(self.session, PieceType.O, 0, 5)
        self.session.apply_intent(Intent.MOVE_LEFT)
        self.assertEqual(changes, [])
        self.session.apply_intent(Intent.MOVE_RIGHT)
        self.assertEqual(changes, [self.session])

    def test_ghost_position(self):
        put(self.session, PieceType.O, 4, 0)
        self.assertEqual(self.session.ghost_position, Position(4, 18))


class TestDrops(SessionTestCase):

    def test_hard_drop(self):
        locked = []
        self.session.on_piece_locked = lambda piece, pos: locked.append((piece, pos))
        put(self.session, PieceType.O, 4, 0)

        self.assertTrue(self.session.apply_intent(Intent.HARD_DROP))

        self.assertEqual(self.session.score, 36)
        for col, row in [(4, 18), (5, 18), (4, 19), (5, 19)]:
            self.assertTrue(self.session.board.is_filled(row, col))
        self.assertEqual(locked, [(Piece(PieceType.O), Position(4, 18))])
        self.assertEqual(self.session.position, Position(4, 0))

    def test_soft_drop(self):
        put(self.session, PieceType.O, 4, 5)
        self.assertTrue(self.session.apply_intent(Intent.SOFT_DROP_START))
        self.assertFalse(self.scheduler.is_scheduled(TimerKind.GRAVITY))
        self.assertEqual(self.scheduler.interval_of(TimerKind.SOFT_DROP), 0.05)

        self.scheduler.advance(0.05)
        self.assertEqual(self.session.position, Position(4, 6))
        self.assertEqual(self.session.score, 1)

        self.assertTrue(self.session.apply_intent(Intent.SOFT_DROP_STOP))
        self.assertFalse(self.scheduler.is_scheduled(TimerKind.SOFT_DROP))
        self.assertTrue(self.scheduler.is_scheduled(TimerKind.GRAVITY))
        self.assertFalse(self.session.apply_intent(Intent.SOFT_DROP_STOP))

    def test_soft_drop_on_ground_scores_nothing(self):
        put(self.session, PieceType.O, 4, 18)
        self.session.apply_intent(Intent.SOFT_DROP_START)
        self.scheduler.advance(0.05)
        self.assertEqual(self.session.score, 0)
        self.assertTrue(self.session.lockdown.active)


class TestLockDown(SessionTestCase):

    def test_lock_after_grace_period(self):
        put(self.session, PieceType.O, 4, 18)
        self.scheduler.advance(1.0)
        self.assertTrue(self.session.lockdown.active)
        self.scheduler.advance(0.25)
        self.assertTrue(self.session.board.is_empty())
        self.assertEqual(self.session.position, Position(4, 18))
        self.scheduler.advance(0.25)
        self.assertTrue(self.session.board.is_filled(19, 4))
        self.assertEqual(self.session.position, Position(4, 0))

    def test_move_restarts_grace_period(self):
        put(self.session, PieceType.O, 4, 18)
        self.scheduler.advance(1.0)
        self.scheduler.advance(0.25)
        self.session.apply_intent(Intent.MOVE_LEFT)
        self.scheduler.advance(0.25)
        self.assertTrue(self.session.board.is_empty())
        self.scheduler.advance(0.25)
        self.assertTrue(self.session.board.is_filled(19, 3))
        self.assertFalse(self.session.board.is_filled(19, 5))

    def test_move_cap_forces_lock(self):
        put(self.session, PieceType.O, 4, 18)
        self.scheduler.advance(1.0)
        for i in range(15):
            self.session.apply_intent(Intent.MOVE_LEFT if i % 2 == 0 else Intent.MOVE_RIGHT)
        self.assertTrue(self.session.board.is_empty())
        self.session.apply_intent(Intent.MOVE_RIGHT)
        self.assertFalse(self.session.board.is_empty())
        self.assertEqual(self.session.position, Position(4, 0))

    def test_piece_slid_off_ledge_keeps_falling(self):
        self.session.board.grid[12, 0:2] = 1
        put(self.session, PieceType.O, 0, 10)
        self.scheduler.advance(1.0)
        self.assertTrue(self.session.lockdown.active)
        self.session.apply_intent(Intent.MOVE_RIGHT)
        self.session.apply_intent(Intent.MOVE_RIGHT)

        self.scheduler.advance(0.5)
        self.assertEqual(int(np.count_nonzero(self.session.board.grid)), 2)
        self.assertEqual(self.session.position, Position(2, 10))
        self.assertFalse(self.session.lockdown.active)

        self.scheduler.advance(0.5)
        self.assertEqual(self.session.position, Position(2, 11))

    def test_moves_off_a_ledge_do_not_count_toward_cap(self):
        self.session.board.grid[12, 0] = 1
        put(self.session, PieceType.O, 0, 10)
        self.scheduler.advance(1.0)
        self.assertTrue(self.session.lockdown.active)

        self.session.apply_intent(Intent.MOVE_RIGHT)
        self.assertFalse(self.session.lockdown.active)
        for i in range(15):
            self.session.apply_intent(Intent.MOVE_RIGHT if i % 2 == 0 else Intent.MOVE_LEFT)

        self.assertEqual(int(np.count_nonzero(self.session.board.grid)), 1)
        self.assertEqual(self.session.current_piece, Piece(PieceType.O))
        self.assertEqual(self.session.position, Position(2, 10))

        self.scheduler.advance(1.0)
        self.assertEqual(self.session.position, Position(2, 11))


class TestLineClears(SessionTestCase):

    def test_single_clear_is_deferred(self):
        cleared = []
        self.session.on_line_cleared = cleared.append
        self.fill_row_except(19, 4, 5)
        put(self.session, PieceType.O, 4, 18)

        self.session.apply_intent(Intent.HARD_DROP)

        self.assertTrue(np.all(self.session.board.grid[19] == CLEARING))
        self.assertIsNone(self.session.current_piece)
        self.assertIsNotNone(self.session.pending_clear)
        self.assertFalse(self.session.apply_intent(Intent.MOVE_LEFT))
        self.scheduler.advance(0.1)
        self.assertEqual(self.session.score, 0)

        self.scheduler.advance(0.1)
        self.assertEqual(self.session.score, 100)
        self.assertEqual(self.session.lines_cleared, 1)
        self.assertEqual(len(cleared), 1)
        self.assertTrue(self.session.board.is_filled(19, 4))
        self.assertTrue(self.session.board.is_filled(19, 5))
        self.assertEqual(int(np.count_nonzero(self.session.board.grid)), 2)
        self.assertEqual(self.session.position, Position(4, 0))
        self.assertEqual(self.session.clear_message.text, "Single")

        self.scheduler.advance(2.0)
        self.assertIsNone(self.session.clear_message)

    def test_t_spin_double(self):
        self.fill_row_except(19, 4)
        self.fill_row_except(18, 3, 4, 5)
        self.session.board.grid[17, 3] = 1
        put(self.session, PieceType.T, 4, 18)
        self.session.last_move_was_rotation = True

        self.session.apply_intent(Intent.HARD_DROP)
        self.scheduler.advance(0.2)

        self.assertEqual(self.session.score, 1200)
        self.assertEqual(self.session.lines_cleared, 2)
        self.assertTrue(self.session.back_to_back)
        self.assertEqual(self.session.clear_message.text, "T-Spin Double")

    def test_same_double_without_rotation(self):
        self.fill_row_except(19, 4)
        self.fill_row_except(18, 3, 4, 5)
        self.session.board.grid[17, 3] = 1
        put(self.session, PieceType.T, 4, 18)

        self.session.apply_intent(Intent.HARD_DROP)
        self.scheduler.advance(0.2)

        self.assertEqual(self.session.score, 300)
        self.assertFalse(self.session.back_to_back)

    def test_level_up_speeds_up_gravity(self):
        levels = []
        self.session.on_level_up = levels.append
        self.session.scoring.state.total_lines = 9
        self.fill_row_except(19, 4, 5)
        put(self.session, PieceType.O, 4, 18)

        self.session.apply_intent(Intent.HARD_DROP)
        self.scheduler.advance(0.2)

        self.assertEqual(self.session.score, 100)
        self.assertEqual(self.session.level, 2)
        self.assertEqual(levels, [2])
        self.assertAlmostEqual(self.scheduler.interval_of(TimerKind.GRAVITY), fall_interval(2))
        self.assertAlmostEqual(self.session.fall_interval, 0.793)

    def test_piece_spawned_after_clear_gets_full_gravity_interval(self):
        self.scheduler.advance(0.5)
        self.fill_row_except(19, 4, 5)
        put(self.session, PieceType.O, 4, 18)

        self.session.apply_intent(Intent.HARD_DROP)
        self.scheduler.advance(0.2)

        self.assertEqual(self.session.position, Position(4, 0))
        self.assertAlmostEqual(self.scheduler.next_due(TimerKind.GRAVITY), 1.7)
        self.scheduler.advance(0.5)
        self.assertEqual(self.session.position, Position(4, 0))
        self.scheduler.advance(0.6)
        self.assertEqual(self.session.position, Position(4, 1))


class TestHold(SessionTestCase):

    def test_hold_swaps_and_locks_out(self):
        first = self.session.current_piece.piece_type
        upcoming = self.session.next_pieces[0]

        self.assertTrue(self.session.apply_intent(Intent.HOLD))
        self.assertEqual(self.session.held_piece, Piece(first))
        self.assertEqual(self.session.current_piece.piece_type, upcoming)
        self.assertEqual(self.session.position, Position(4, 0))
        self.assertFalse(self.session.can_hold)
        self.assertFalse(self.session.apply_intent(Intent.HOLD))

        self.session.apply_intent(Intent.HARD_DROP)
        self.assertTrue(self.session.can_hold)
        self.assertTrue(self.session.apply_intent(Intent.HOLD))
        self.assertEqual(self.session.current_piece.piece_type, first)

    def test_held_piece_loses_rotation(self):
        put(self.session, PieceType.T, 4, 10, rotation=2)
        self.session.apply_intent(Intent.HOLD)
        self.assertEqual(self.session.held_piece, Piece(PieceType.T, 0))

    def test_hold_disabled(self):
        session = GameSession(GameConfig(seed=7, hold_enabled=False), ManualScheduler())
        self.assertFalse(session.apply_intent(Intent.HOLD))


class TestPause(SessionTestCase):

    def test_pause_freezes_piece(self):
        put(self.session, PieceType.O, 4, 5)
        self.assertTrue(self.session.apply_intent(Intent.PAUSE))
        self.assertFalse(self.session.apply_intent(Intent.PAUSE))
        self.assertFalse(self.scheduler.is_scheduled(TimerKind.GRAVITY))
        self.assertFalse(self.session.apply_intent(Intent.MOVE_LEFT))
        self.scheduler.advance(5.0)
        self.assertEqual(self.session.position, Position(4, 5))

        self.assertTrue(self.session.apply_intent(Intent.RESUME))
        self.assertFalse(self.session.apply_intent(Intent.RESUME))
        self.assertEqual(self.scheduler.interval_of(TimerKind.GRAVITY), 1.0)

    def test_pending_clear_commits_while_paused(self):
        self.fill_row_except(19, 4, 5)
        put(self.session, PieceType.O, 4, 18)
        self.session.apply_intent(Intent.HARD_DROP)
        self.session.apply_intent(Intent.PAUSE)

        self.scheduler.advance(0.2)

        self.assertEqual(self.session.score, 100)
        self.assertIsNotNone(self.session.current_piece)
        self.assertTrue(self.session.paused)
        self.assertFalse(self.scheduler.is_scheduled(TimerKind.GRAVITY))


class TestGameOverAndRestart(SessionTestCase):

    def test_blocked_spawn_ends_game(self):
        ended = []
        self.session.on_game_over = lambda: ended.append(True)
        self.session.board.grid[0:3, 2:8] = 1

        self.session.apply_intent(Intent.HOLD)

        self.assertTrue(self.session.game_over)
        self.assertEqual(ended, [True])
        grid = self.session.board.copy_grid()
        for intent in (Intent.MOVE_LEFT, Intent.HARD_DROP, Intent.HOLD, Intent.PAUSE):
            self.assertFalse(self.session.apply_intent(intent))
        self.scheduler.advance(10.0)
        self.assertTrue(np.array_equal(grid, self.session.board.grid))

    def test_restart_after_game_over(self):
        self.session.board.grid[0:3, 2:8] = 1
        self.session.apply_intent(Intent.HOLD)

        self.assertTrue(self.session.apply_intent(Intent.RESTART))

        self.assertFalse(self.session.game_over)
        self.assertTrue(self.session.board.is_empty())
        self.assertIsNone(self.session.held_piece)
        self.assertEqual(self.session.position, Position(4, 0))
        self.assertTrue(self.scheduler.is_scheduled(TimerKind.GRAVITY))

    def test_restart_cancels_pending_clear(self):
        self.fill_row_except(19, 4, 5)
        put(self.session, PieceType.O, 4, 18)
        self.session.apply_intent(Intent.HARD_DROP)

        self.session.apply_intent(Intent.RESTART)

        self.assertFalse(self.scheduler.is_scheduled(TimerKind.CLEAR_COMMIT))
        self.assertIsNone(self.session.pending_clear)
        self.scheduler.advance(0.5)
        self.assertEqual(self.session.score, 0)
        self.assertTrue(self.session.board.is_empty())

    def test_restart_replays_seeded_sequence(self):
        first = self.session.current_piece
        upcoming = self.session.next_pieces
        self.session.apply_intent(Intent.HARD_DROP)
        self.session.apply_intent(Intent.RESTART)
        self.assertEqual(self.session.current_piece, first)
        self.assertEqual(self.session.next_pieces, upcoming)


class TestAsyncioHost(unittest.TestCase):
    """Test a session driven by an asyncio event loop."""

    def test_session_runs_on_event_loop(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            session = GameSession(GameConfig(seed=3, clear_delay=0.01), scheduler)
            interval = scheduler.interval_of(TimerKind.GRAVITY)
            session.board.grid[19, :] = 1
            session.board.grid[19, 4:6] = 0
            put(session, PieceType.O, 4, 18)
            session.apply_intent(Intent.HARD_DROP)
            pending = session.pending_clear is not None
            await asyncio.sleep(0.1)
            scheduler.cancel_all()
            return session, interval, pending

        session, interval, pending = asyncio.run(scenario())
        self.assertEqual(interval, 1.0)
        self.assertTrue(pending)
        self.assertIsNone(session.pending_clear)
        self.assertEqual(session.score, 100)
        self.assertEqual(session.position, Position(4, 0))

    def test_session_needs_running_loop(self):
        with self.assertRaises(RuntimeError):
            GameSession(GameConfig(seed=3), AsyncioScheduler())

class TestGameConfig(unittest.TestCase):

    def test_defaults(self):
        config = GameConfig()
        self.assertEqual((config.rows, config.columns), (20, 10))
        self.assertEqual(config.lock_delay, 0.5)
        self.assertEqual(config.lock_move_cap, 15)

    def test_validation(self):
        with self.assertRaises(InvalidConfigError):
            GameConfig(rows=2)
        with self.assertRaises(InvalidConfigError):
            GameConfig(spawn_col=10)
        with self.assertRaises(InvalidConfigError):
            GameConfig(clear_delay=0)

    def test_unknown_keys_rejected(self):
        with self.assertRaises(InvalidConfigError):
            GameConfig.from_dict({'rows': 20, 'gravity': 3})

    def test_from_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.json")
            with open(path, "w", encoding="utf-8") as fh:
                json.dump({"rows": 22, "seed": 3}, fh)
            config = GameConfig.from_json(path)
        self.assertEqual(config.rows, 22)
        self.assertEqual(config.seed, 3)
        self.assertEqual(GameConfig.from_dict(config.to_dict()), config)

    def test_custom_board_size(self):
        session = GameSession(GameConfig(rows=12, columns=8, spawn_col=3), ManualScheduler())
        self.assertEqual(session.board.grid.shape, (12, 8))
        self.assertEqual(session.position, Position(3, 0))


if __name__ == '__main__':
    unittest.main()
