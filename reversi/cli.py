"""
Reversi CLI - Command-line interface for the engine.

Usage:
    reversi serve [--host H] [--port P]     Run the HTTP API
    reversi play [--difficulty D]           Play against the AI in the terminal
    reversi config                          Print the effective configuration
"""

import argparse
import asyncio
import json
import logging
import sys

from .config import Settings, configure_logging
from .errors import ReversiError

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Reversi Arena - Reversi against a computer opponent",
        prog="reversi",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address (default: SERVER_HOST or 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Port (default: SERVER_PORT or 3000)")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play against the AI in the terminal")
    play_parser.add_argument(
        "--difficulty", "-d",
        choices=["easy", "medium", "hard"],
        default="easy",
        help="AI strength",
    )

    # Config command
    subparsers.add_parser("config", help="Print the effective configuration")

    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        settings.validate()
    except ReversiError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        sys.exit(2)

    if args.command == "serve":
        cmd_serve(args, settings)
    elif args.command == "play":
        cmd_play(args, settings)
    elif args.command == "config":
        cmd_config(args, settings)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args, settings: Settings):
    """Run the FastAPI app under uvicorn."""
    import uvicorn
    from .api.app import create_app

    configure_logging(settings.server.log_level)
    host = args.host or settings.server.host
    port = args.port or settings.server.port
    app = create_app(settings=settings)

    logger.info("Starting Reversi Arena on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level=settings.server.log_level.lower())


def cmd_config(args, settings: Settings):
    """Print settings as JSON."""
    print(json.dumps(settings.to_dict(), indent=2))


def cmd_play(args, settings: Settings):
    """Terminal game: human is black, the AI answers in fast mode."""
    from .bots.policy import Difficulty
    from .bots.service import LocalOpponentService
    from .session import FallbackPolicy, GameLoop, SessionRegistry

    configure_logging("WARNING")
    registry = SessionRegistry(max_sessions=1)
    loop = GameLoop(
        registry,
        FallbackPolicy(
            primary=LocalOpponentService(timeout_ms=settings.opponent.timeout_ms, fast=True),
            enable_fallback=False,
            max_attempts=settings.fallback.max_retry_attempts,
            retry_delay_ms=0,
        ),
    )
    session_id = registry.create(Difficulty(args.difficulty))

    print("=" * 40)
    print(f"Reversi vs AI ({args.difficulty})")
    print("You are black (●). Enter moves as 'row col', 'q' to quit.")
    print("=" * 40)

    asyncio.run(_play_loop(loop, session_id))


async def _play_loop(loop, session_id: str):
    from .engine_core.state import Position
    from .engine_core.action_generator import legal_moves

    while True:
        session = loop.registry.get(session_id)
        state = session.game_state
        print()
        print(state.board.display())
        black, white = state.score()
        print(f"● {black}  ○ {white}")

        if state.is_finished:
            winner = state.winner.value if state.winner else "nobody (draw)"
            print(f"\nGame over. Winner: {winner}")
            return

        moves = legal_moves(state.board, state.current_player)
        print("Valid moves: " + ", ".join(f"{p.row} {p.col}" for p in moves))

        line = await asyncio.to_thread(input, "> ")
        line = line.strip().lower()
        if line in ("q", "quit", "exit"):
            print("Bye.")
            return

        try:
            row, col = (int(part) for part in line.replace(",", " ").split())
        except ValueError:
            print("Enter two numbers, e.g. '2 3'")
            continue

        try:
            result = await loop.play_move(session_id, Position(row, col))
        except ReversiError as e:
            print(f"Error: {e.message}")
            continue

        for reply in result.opponent_moves:
            pos = reply.record.position
            print(f"AI plays {pos.row} {pos.col} (flipped {reply.record.flip_count})")
        if result.message and not result.opponent_moves:
            print(result.message)


if __name__ == "__main__":
    main()
