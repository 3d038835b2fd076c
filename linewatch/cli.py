#!/usr/bin/env python3
"""
Pull the projections board and report line movement from the command line.

Each run forces a refresh; with --repeat the board is pulled several times,
--interval seconds apart, and movement is reported against the previous pull.

Usage:
  linewatch-refresh
  linewatch-refresh --repeat 3 --interval 60
  linewatch-refresh --stat-type Points --out out/movements.csv
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Track NBA projection line movement")
    p.add_argument(
        "--repeat",
        type=int,
        default=1,
        help="Number of pulls (movement is reported from the second pull on). Default: 1",
    )
    p.add_argument(
        "--interval",
        type=float,
        default=60.0,
        help="Seconds between pulls when --repeat > 1. Default: 60",
    )
    p.add_argument(
        "--stat-type",
        type=str,
        default=None,
        help="Only report lines for this stat display name (e.g. Points)",
    )
    p.add_argument(
        "--out",
        type=str,
        default=None,
        help="Optional CSV path for the final board with movements",
    )
    return p.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    # Imported after load_dotenv so .env values reach Settings
    from linewatch.ingestion.projections import FetchFailure, ProjectionsClient
    from linewatch.tracking.refresh import RefreshOrchestrator
    from linewatch.tracking.summary import filter_by_stat_type, movements_to_frame, summarize_movements
    from linewatch.utils.logging import get_logger

    logger = get_logger("linewatch.cli")
    client = ProjectionsClient()
    orchestrator = RefreshOrchestrator(client.fetch, breaker=client.breaker)

    exit_code = 0
    for i in range(max(args.repeat, 1)):
        if i:
            await asyncio.sleep(args.interval)
        try:
            result = await orchestrator.refresh(force=True)
        except FetchFailure as e:
            print(f"[pull {i + 1}] fetch failed: {e} (previous board kept)")
            exit_code = 1
            continue

        board = filter_by_stat_type(orchestrator.projections, args.stat_type)
        summary = summarize_movements(result.movements, board)
        print(f"[pull {i + 1}] {len(board)} lines | {summary.headline}")
        for line in summary.moved_lines:
            arrow = "^" if line.direction.value == "up" else "v"
            print(
                f"  {arrow} {line.player_name} ({line.team_name or '-'}) {line.stat_type}: "
                f"{line.old_line:g} -> {line.new_line:g}"
            )

    if args.out:
        board = filter_by_stat_type(orchestrator.projections, args.stat_type)
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        movements_to_frame(orchestrator.movements, board).to_csv(out_path, index=False)
        logger.info(f"Wrote {len(board)} rows to {out_path}")

    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
