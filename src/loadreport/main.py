from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import jsonschema
from dotenv import load_dotenv
from rich.console import Console

from loadreport.common.logging import setup_logging
from loadreport.common.settings import Settings, load_settings
from loadreport.dispatch.service import SinkDispatcher
from loadreport.ingest.service import read_events
from loadreport.sinks.base import Sink
from loadreport.sinks.console import ConsoleSink
from loadreport.sinks.prometheus import PrometheusPushSink, PushgatewayConfig


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Load test stats reporter")
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--schema",
        default="config/schema.json",
        help="Path to settings JSON schema (default: config/schema.json)",
    )
    parser.add_argument(
        "--events",
        required=True,
        help="JSON-lines file with one reporting event per line",
    )
    parser.add_argument(
        "--interval-sec",
        type=float,
        default=None,
        help="Delay between replayed events (overrides report_interval_sec)",
    )
    args = parser.parse_args(argv)
    if args.interval_sec is not None and args.interval_sec < 0:
        raise SystemExit("--interval-sec must be >= 0")
    return args


def build_sinks(settings: Settings) -> List[Sink]:
    sinks: List[Sink] = []
    console_cfg = settings.sink_section("console")
    if console_cfg.get("enabled", True):
        sinks.append(
            ConsoleSink(console=Console(highlight=False, width=console_cfg.get("width")))
        )
    if settings.sink_section("prometheus").get("enabled", False):
        sinks.append(PrometheusPushSink(PushgatewayConfig.from_settings(settings.raw)))
    return sinks


async def replay(dispatcher: SinkDispatcher, events_path: Path, interval_sec: float) -> int:
    published = 0
    await dispatcher.start()
    try:
        for event in read_events(events_path):
            if published and interval_sec > 0:
                await asyncio.sleep(interval_sec)
            await dispatcher.publish(event)
            published += 1
    finally:
        await dispatcher.stop()
    return published


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    load_dotenv()
    events_path = Path(args.events)
    try:
        if not events_path.exists():
            raise FileNotFoundError(f"Events file not found: {events_path}")
        settings = load_settings(Path(args.config), Path(args.schema))
        sinks = build_sinks(settings)
    except (FileNotFoundError, ValueError, jsonschema.ValidationError) as exc:
        print(f"[BOOT][FAIL] {exc}", file=sys.stderr)
        return 1

    logger = setup_logging(settings.log_level, settings.app_log_path)
    interval = args.interval_sec if args.interval_sec is not None else settings.report_interval_sec
    logger.info("replay_start", extra={"events": args.events, "sinks": len(sinks)})
    try:
        published = asyncio.run(replay(SinkDispatcher(sinks), events_path, interval))
    except KeyboardInterrupt:
        logger.info("shutdown_requested")
        return 0
    logger.info("replay_complete", extra={"published": published})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
