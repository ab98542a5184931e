#!/usr/bin/env python3
"""
Tetrimino: a falling-block puzzle rules engine
Main entry point and command-line interface.
"""

import argparse
import random
import sys
import time
from typing import Optional, Tuple

from tetrimino.scheduler import ManualScheduler
from tetrimino.scoring import ClearEvent
from tetrimino.session import GameConfig, GameSession, Intent


# Intents the random demo bot picks from
BOT_INTENTS = [
    Intent.MOVE_LEFT, Intent.MOVE_RIGHT,
    Intent.ROTATE_CW, Intent.ROTATE_CCW,
    Intent.HOLD,
]

# Commands accepted by the interactive mode
PLAY_COMMANDS = {
    'a': Intent.MOVE_LEFT,
    'd': Intent.MOVE_RIGHT,
    'w': Intent.ROTATE_CW,
    'q': Intent.ROTATE_CCW,
    ' ': Intent.HARD_DROP,
    'h': Intent.HOLD,
    'p': Intent.PAUSE,
    'u': Intent.RESUME,
    'r': Intent.RESTART,
}


def load_config(args) -> GameConfig:
    config = GameConfig.from_json(args.config) if args.config else GameConfig()
    if args.seed is not None:
        config.seed = args.seed
    return config


def run_bot_game(config: GameConfig, rng: random.Random, step: float = 0.1,
                 max_steps: Optional[int] = None,
                 verbose: bool = False) -> Tuple[GameSession, int]:
    """Play one game with random intents on a virtual clock. Returns (session, pieces locked)."""
    scheduler = ManualScheduler()
    session = GameSession(config, scheduler)
    pieces = [0]

    def piece_locked(piece, position):
        pieces[0] += 1
        if verbose and pieces[0] % 25 == 0:
            print(f"\nPieces: {pieces[0]}")
            print(session)
            print("-" * 30)

    def line_cleared(event: ClearEvent):
        if verbose:
            print(f"✓ {event.message.replace(chr(10), ' / ')}: +{event.points}")

    def level_up(level: int):
        if verbose:
            print(f"⬆ Level {level} (fall interval {session.fall_interval:.3f}s)")

    session.on_piece_locked = piece_locked
    session.on_line_cleared = line_cleared
    session.on_level_up = level_up

    steps = 0
    while not session.game_over and (max_steps is None or steps < max_steps):
        steps += 1
        roll = rng.random()
        if roll < 0.15:
            session.apply_intent(Intent.HARD_DROP)
        elif roll < 0.25:
            session.apply_intent(Intent.SOFT_DROP_START)
            scheduler.advance(config.soft_drop_interval * 3)
            session.apply_intent(Intent.SOFT_DROP_STOP)
        else:
            session.apply_intent(rng.choice(BOT_INTENTS))
        scheduler.advance(step)

    return session, pieces[0]


def demo_game(args):
    """Run a demo game with a random bot."""
    print("🧱 Tetrimino Demo")
    print("=" * 50)

    config = load_config(args)
    rng = random.Random(args.seed)
    start_time = time.time()
    session, pieces = run_bot_game(config, rng, step=args.step, max_steps=args.max_steps, verbose=True)
    duration = time.time() - start_time

    print("\n" + "=" * 50)
    print("🎮 GAME OVER" if session.game_over else "⏹ STOPPED")
    print("=" * 50)
    print(session)
    print()
    print(f"Final Score: {session.score}")
    print(f"Lines Cleared: {session.lines_cleared}")
    print(f"Level Reached: {session.level}")
    print(f"Pieces Locked: {pieces}")
    print(f"Virtual Time: {session.scheduler.now():.1f} seconds")
    print(f"Wall Time: {duration:.2f} seconds")


def play_game(args):
    """Line-based interactive mode: type commands, time advances per line."""
    config = load_config(args)
    scheduler = ManualScheduler()
    session = GameSession(config, scheduler)

    print("🧱 Tetrimino")
    print("Commands: a/d move, w/q rotate, s soft drop, space hard drop, h hold,")
    print("          p pause, u resume, r restart, . wait, x quit")
    print(session)

    for line in sys.stdin:
        command = line.rstrip("\n")
        if command == 'x':
            break
        for char in command or '.':
            if char == 's':
                session.apply_intent(Intent.SOFT_DROP_START)
                scheduler.advance(config.soft_drop_interval)
                session.apply_intent(Intent.SOFT_DROP_STOP)
            elif char in PLAY_COMMANDS:
                session.apply_intent(PLAY_COMMANDS[char])
        scheduler.advance(args.step)
        print(session)

    print(f"\nFinal Score: {session.score}")


def benchmark(args):
    """Run performance benchmarks."""
    print("🧱 Tetrimino Performance Benchmark")
    print("=" * 50)

    config = load_config(args)
    rng = random.Random(args.seed)
    total_pieces = 0
    total_lines = 0

    start_time = time.time()
    for game in range(args.games):
        session, pieces = run_bot_game(config, rng, step=args.step, max_steps=args.max_steps)
        total_lines += session.lines_cleared
        total_pieces += pieces
        if game % 10 == 0:
            print(f"Game {game + 1}/{args.games}: Score={session.score}, Lines={session.lines_cleared}")
    elapsed = time.time() - start_time

    print(f"\n{args.games} games in {elapsed:.3f}s ({args.games / elapsed:.1f} games/s)")
    print(f"Pieces locked: {total_pieces} ({total_pieces / elapsed:.0f} pieces/s)")
    print(f"Average Lines: {total_lines / args.games:.1f}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Tetrimino: a falling-block puzzle rules engine")
    parser.add_argument('--seed', type=int, default=None, help='Seed for the piece randomizer')
    parser.add_argument('--config', default=None, help='Path to a JSON GameConfig file')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Demo command
    demo_parser = subparsers.add_parser('demo', help='Run a demo game with a random bot')
    demo_parser.add_argument('--step', type=float, default=0.1, help='Virtual seconds per bot action')
    demo_parser.add_argument('--max-steps', type=int, default=5000, help='Stop after this many actions')

    # Play command
    play_parser = subparsers.add_parser('play', help='Play in line-based text mode')
    play_parser.add_argument('--step', type=float, default=0.25, help='Virtual seconds per input line')

    # Benchmark command
    benchmark_parser = subparsers.add_parser('benchmark', help='Run performance benchmarks')
    benchmark_parser.add_argument('--games', type=int, default=20, help='Number of simulated games')
    benchmark_parser.add_argument('--step', type=float, default=0.1, help='Virtual seconds per bot action')
    benchmark_parser.add_argument('--max-steps', type=int, default=5000, help='Action limit per game')

    args = parser.parse_args()

    if args.command == 'demo':
        demo_game(args)
    elif args.command == 'play':
        play_game(args)
    elif args.command == 'benchmark':
        benchmark(args)
    else:
        parser.print_help()
        print("\nFor a quick demo, run: python main.py demo")


if __name__ == "__main__":
    main()
