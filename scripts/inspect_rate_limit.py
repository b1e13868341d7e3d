#!/usr/bin/env python3
"""
Inspect or reset a rate limiter window

Usage:
    python scripts/inspect_rate_limit.py slack:connections:invite_user --limit 20 --window 60
    python scripts/inspect_rate_limit.py slack:connections:invite_user --reset
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ratekeeper.app.core.logging import setup_logging
from ratekeeper.app.exceptions import CounterStoreUnavailableError
from ratekeeper.app.services.rate_limiter import RateLimiter
from ratekeeper.app.stores import get_counter_store


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect a shared rate limiter window")
    parser.add_argument("key", help="Limiter key, e.g. slack:connections:invite_user")
    parser.add_argument("--limit", type=int, default=1, help="Operations per window (for the remaining count)")
    parser.add_argument("--window", type=int, default=60, help="Window length in seconds")
    parser.add_argument("--reset", action="store_true", help="Delete the current window")
    parser.add_argument("--backend", choices=["redis", "memory"], default="redis")
    return parser.parse_args(argv)


async def inspect(args: argparse.Namespace) -> dict:
    store = get_counter_store(backend=args.backend)
    limiter = RateLimiter(args.key, rate_limit=args.limit, rate_limit_window=args.window, store=store)
    try:
        if args.reset:
            await limiter.reset()
        state = await limiter.get_state()
        return state.to_dict()
    finally:
        await store.close()


def main(argv=None) -> int:
    setup_logging()
    args = parse_args(argv)
    try:
        state = asyncio.run(inspect(args))
    except CounterStoreUnavailableError as e:
        print(f"❌ {e.message}", file=sys.stderr)
        return 1

    print(json.dumps(state, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
