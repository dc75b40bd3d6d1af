#!/usr/bin/env python3
"""
Print seed advice for a level and land count without touching the game.

Reads the same game data the farm keeper loads and ranks the seed shop
rows by experience per hour, with and without normal fertilizer.

Usage:
    python scripts/seed_advice.py --level 12 --lands 18
    python scripts/seed_advice.py --level 5 --lands 6 --top 5 --data ./data/game
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src" / "python-agent"))

from game_config import GameConfig  # noqa: E402
from planning.crop_advisor import CropAdvisor  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Rank seeds by experience per hour")
    parser.add_argument("--level", "-l", type=int, required=True, help="Player level")
    parser.add_argument("--lands", "-n", type=int, required=True, help="Unlocked land count")
    parser.add_argument("--top", type=int, default=3, help="Seeds to list per ranking")
    parser.add_argument("--data", default="./data/game", help="Game data directory")
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(asctime)s [%(levelname)s] %(message)s")

    advisor = CropAdvisor(GameConfig.load(args.data))
    print(advisor.format_seed_advice(args.level, args.lands, count=args.top))

    best = advisor.get_best_seeds_for_level(args.level, args.lands)
    if best:
        print()
        print(f"Buy for bare planting:  {best.best_no_fert.name}")
        print(f"Buy when fertilizing:   {best.best_normal_fert.name}")


if __name__ == "__main__":
    main()
