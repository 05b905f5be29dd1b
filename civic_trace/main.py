"""Command-line entry point: run one escalation and print the result as JSON."""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

import structlog
from prometheus_client import start_http_server

from civic_trace.annotations import load_annotations
from civic_trace.config import FetcherConfig, Settings
from civic_trace.exceptions import ConfigurationError, ValidationError
from civic_trace.fetcher import DataFetcher
from civic_trace.models import Annotations, CoverageRequirement, FetchResult

DEFAULT_REQUIREMENT = "entity:0.0:title,link"


def _init_logging(level: str):
    logging.basicConfig(level=level, stream=sys.stderr)
    structlog.configure(
        processors=[structlog.processors.add_log_level, structlog.processors.TimeStamper(fmt="iso"), structlog.processors.JSONRenderer()],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        # stdout carries the result JSON; logs go through the stderr root handler
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def parse_requirement(value: str) -> CoverageRequirement:
    """``entity_type:min_confidence:field1,field2`` -> CoverageRequirement"""
    parts = value.split(":")
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"expected entity:min_confidence:fields, got {value!r}")
    entity, conf, fields = parts
    try:
        min_confidence = float(conf)
    except ValueError:
        raise argparse.ArgumentTypeError(f"min_confidence must be a number, got {conf!r}") from None
    if not 0.0 <= min_confidence <= 1.0:
        raise argparse.ArgumentTypeError(f"min_confidence must be within [0, 1], got {conf!r}")
    return CoverageRequirement(
        entity_type=entity or "entity",
        min_confidence=min_confidence,
        required_fields=frozenset(f.strip() for f in fields.split(",") if f.strip()),
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="civic-trace", description="Tiered source lookup for child-welfare research")
    p.add_argument("--query", required=True, help="Entity or topic to look up (required)")
    p.add_argument("--require", action="append", type=parse_requirement, default=None, metavar="ENTITY:CONF:FIELDS",
                   help=f"Coverage requirement, repeatable (default {DEFAULT_REQUIREMENT})")
    p.add_argument("--boost", action="append", default=[], help="Label to OR into the web search, repeatable")
    p.add_argument("--exclude", action="append", default=[], help="Label to exclude from the web search, repeatable")
    p.add_argument("--annotations", default=None, help="XML annotations file (<annotations><boost>...)")
    p.add_argument("--output", default=None, help="Write the result JSON here instead of stdout")
    p.add_argument("--wall-timeout", type=float, default=600.0, help="Abort the whole run after this many seconds")
    return p


def merge_annotations(path: Optional[str], boost: List[str], exclude: List[str]) -> Annotations:
    base = load_annotations(path)
    return Annotations(boost=[*base.boost, *boost], exclude=[*base.exclude, *exclude])


def write_result(result: FetchResult, output: Optional[str]) -> None:
    payload = result.model_dump_json(indent=2, exclude={"results": {"__all__": {"latency"}}})
    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        Path(output).write_text(payload, encoding="utf-8")
        print(f"Result written to {output}", file=sys.stderr)
    else:
        print(payload)


async def run(args: argparse.Namespace, config: FetcherConfig) -> FetchResult:
    requirements = args.require or [parse_requirement(DEFAULT_REQUIREMENT)]
    annotations = merge_annotations(args.annotations, args.boost, args.exclude)
    async with DataFetcher(config) as fetcher:
        return await fetcher.fetch_with_priority_ladder(args.query, requirements, annotations)


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    settings = Settings()
    _init_logging(settings.LOG_LEVEL)
    if settings.ENABLE_PROMETHEUS:
        start_http_server(settings.PROMETHEUS_PORT)

    try:
        config = FetcherConfig.from_settings(settings)
    except ConfigurationError as e:
        sys.stderr.write(f"\nConfiguration error: {e}\n")
        sys.exit(1)

    t0 = time.time()
    try:
        result = asyncio.run(asyncio.wait_for(run(args, config), timeout=args.wall_timeout))
    except asyncio.TimeoutError:
        sys.stderr.write(f"\nGLOBAL TIMEOUT after {time.time() - t0:.1f}s. Increase --wall-timeout.\n")
        sys.exit(2)
    except ValidationError as e:
        sys.stderr.write(f"\nInvalid input: {e}\n")
        sys.exit(1)
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted by user.\n")
        sys.exit(1)

    write_result(result, args.output)
    if not result.is_complete(config.coverage_threshold):
        sys.stderr.write(f"Best effort: coverage {result.coverage:.2f} after tier {result.tier_hit}\n")


if __name__ == "__main__":
    main()
