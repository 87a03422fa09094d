"""Full sweep — re-enrich every refreshable watchlist row in paced chunks.

Run from a scheduler or by hand::

    python -m reeltrack.sweep --chunk-size 10 --delay 60
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

import httpx

from reeltrack.main import DATA_DIR, build_services
from reeltrack.services.refresh_service import SweepPacing

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Re-enrich every refreshable watchlist row in paced chunks.")
    p.add_argument("--data-dir", default=DATA_DIR, help="Directory holding config.json and the database.")
    p.add_argument("--chunk-size", type=int, default=None, help="Rows refreshed concurrently per chunk.")
    p.add_argument("--delay", type=float, default=None, help="Seconds to wait between chunks.")
    p.add_argument("--region", default=None, help="Region code to enrich for (defaults to the configured one).")
    return p


async def _run(
    data_dir: str,
    chunk_size: Optional[int],
    delay: Optional[float],
    region: Optional[str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep=asyncio.sleep,
) -> int:
    services = build_services(data_dir, transport=transport)
    cfg = services["config_service"]
    try:
        if not cfg.tmdb_api_key:
            logger.error("TMDB API key is not configured (set TMDB_API_KEY)")
            return 1
        pacing = SweepPacing(
            chunk_size=chunk_size or cfg.sweep_chunk_size,
            delay_seconds=cfg.sweep_delay_seconds if delay is None else delay,
            sleep=sleep,
        )
        outcomes = await services["refresh_service"].run_batch(pacing, region=region)
    finally:
        await services["http_client"].close()

    failed = [o for o in outcomes if not o.success]
    for outcome in failed:
        logger.warning(f"Not refreshed: '{outcome.title}' ({outcome.error})")
    logger.info(f"Sweep done: {len(outcomes) - len(failed)} updated, {len(failed)} failed")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    return asyncio.run(_run(args.data_dir, args.chunk_size, args.delay, args.region))


if __name__ == "__main__":
    raise SystemExit(main())
