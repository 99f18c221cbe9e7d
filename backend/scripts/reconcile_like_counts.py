"""Maintenance script to heal drifted post like counters.

Rewrites ``posts.likes`` from the like rows for every post whose stored
counter disagrees with them.

Usage:
    uv run python scripts/reconcile_like_counts.py

Environment overrides:
    LIKE_RECONCILE_BATCH_SIZE=500
    LIKE_RECONCILE_MAX_BATCHES=100
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from time import perf_counter

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from db.session import AsyncSessionMaker  # noqa: E402
from services.likes import DEFAULT_RECONCILE_BATCH_SIZE, reconcile_like_counts  # noqa: E402

BATCH_SIZE_ENV = "LIKE_RECONCILE_BATCH_SIZE"
MAX_BATCHES_ENV = "LIKE_RECONCILE_MAX_BATCHES"
DEFAULT_MAX_BATCHES = 100


def _parse_positive_int(raw_value: str | None, *, default: int, label: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        parsed = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{label} must be an integer") from exc
    if parsed <= 0:
        raise ValueError(f"{label} must be positive")
    return parsed


async def run() -> int:
    batch_size = _parse_positive_int(
        os.getenv(BATCH_SIZE_ENV),
        default=DEFAULT_RECONCILE_BATCH_SIZE,
        label=BATCH_SIZE_ENV,
    )
    max_batches = _parse_positive_int(
        os.getenv(MAX_BATCHES_ENV),
        default=DEFAULT_MAX_BATCHES,
        label=MAX_BATCHES_ENV,
    )

    started_at = perf_counter()
    async with AsyncSessionMaker() as session:
        posts_fixed = await reconcile_like_counts(
            session,
            batch_size=batch_size,
            max_batches=max_batches,
        )

    elapsed_ms = int((perf_counter() - started_at) * 1000)
    print(
        "Like counter reconcile complete: "
        f"posts_fixed={posts_fixed}, batch_size={batch_size}, elapsed_ms={elapsed_ms}"
    )
    return posts_fixed


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
