import argparse
import asyncio
import logging
import os

from judgment.models import GameConfig
from .server import HostServer

logging.basicConfig(level=logging.INFO)


def main() -> None:
    # CLI doubles as documentation for the table's timing knobs.
    parser = argparse.ArgumentParser(description="Judgment card table server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 5000)))
    parser.add_argument(
        "--password",
        default=os.environ.get("HOST_PASSWORD"),
        help="Password the host must supply to start a game (defaults to $HOST_PASSWORD)",
    )
    parser.add_argument("--grace-ms", type=int, default=60_000, help="Reconnect window before a seat is removed")
    parser.add_argument(
        "--turn-time",
        type=int,
        default=90_000,
        help="Turn time in milliseconds (0 disables the per-turn inactivity timer)",
    )
    parser.add_argument("--trick-review-ms", type=int, default=10_000)
    parser.add_argument("--round-end-ms", type=int, default=3_000)
    parser.add_argument("--game-over-ms", type=int, default=20_000, help="Delay before a finished game returns to the lobby")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.getLogger().setLevel(args.log_level.upper())

    config = GameConfig(
        grace_period_ms=args.grace_ms,
        turn_time_ms=args.turn_time,
        trick_review_ms=args.trick_review_ms,
        round_end_delay_ms=args.round_end_ms,
        game_over_teardown_ms=args.game_over_ms,
        host_password=args.password or None,
    )

    server = HostServer(config)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
