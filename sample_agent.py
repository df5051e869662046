"""
Cycles bot entry point.

    python sample_agent.py <bot_name> [--strategy floodfill|random]

Connects to the arena at CYCLES_HOST:CYCLES_PORT and plays until the game
ends or the bot is eliminated.
"""

import argparse
import logging
import sys

from agents import STRATEGIES, BotClient
from cycles_game import ConnectionFailed
from game_link import CYCLES_HOST, CYCLES_PORT, GameLink


def build_parser():
    parser = argparse.ArgumentParser(description="Flood-fill bot for the Cycles arena.")
    parser.add_argument("bot_name", help="name to register with the arena")
    parser.add_argument("--strategy", choices=sorted(STRATEGIES), default="floodfill")
    parser.add_argument("--host", default=CYCLES_HOST)
    parser.add_argument("--port", type=int, default=CYCLES_PORT)
    parser.add_argument("--seed", type=int, default=None, help="seed for the random strategy")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every decision")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    bot = BotClient(GameLink(args.host, args.port), args.bot_name, args.strategy, args.seed)
    try:
        bot.connect()
    except ConnectionFailed:
        return 1
    bot.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
