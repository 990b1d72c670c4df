"""
CLI for running an analytic unit over a time window.

Usage:
    python -m src.analytics.detect [options]
"""

import argparse
import asyncio
import json
import logging
import os
import sys
import time

import structlog

from src.core.logger import setup_logging

from .cache import UnitConfigCache
from .metrics import PrometheusMetricSource
from .models import AnalyticConfig
from .segments import SegmentsDatabase
from .service import AnalyticService
from .units import PatchConfig, ThresholdConfig

logger = structlog.get_logger(__name__)


def parse_arguments(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description="Detect threshold segments in a Prometheus series",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
        Examples:
        # Last hour of the default query
        python -m src.analytics.detect --query 'rate(http_requests_total[1m])'

        # Explicit window and threshold, printed as JSON
        python -m src.analytics.detect \\
            --from 1700000000 --to 1700003600 \\
            --threshold 0.8 --json

        # Persist detections and keep the unit config in Redis
        python -m src.analytics.detect --threshold 0.8 --save --use-config-cache
        """,
    )

    # Prometheus settings
    parser.add_argument(
        "--prometheus-url",
        default=os.getenv("PROMETHEUS_URL", "http://localhost:9090"),
        help="Prometheus base URL (default: http://localhost:9090 or PROMETHEUS_URL env var)",
    )
    parser.add_argument(
        "--query",
        default=os.getenv("PROMETHEUS_QUERY", "up"),
        help="PromQL expression to analyze (default: up or PROMETHEUS_QUERY env var)",
    )

    # Window
    parser.add_argument("--from", dest="from_", type=int, help="Window start (unix seconds)")
    parser.add_argument("--to", type=int, help="Window end (unix seconds, default: now)")
    parser.add_argument(
        "--window",
        type=int,
        default=3600,
        help="Window length in seconds when --from is omitted (default: 3600)",
    )

    # Unit configuration
    parser.add_argument("--unit-id", default="default", help="Analytic unit id")
    parser.add_argument(
        "--threshold",
        type=float,
        help="Threshold for the unit (default: keep current config)",
    )
    parser.add_argument(
        "--step",
        type=int,
        default=10,
        help="Detection step in seconds (default: 10)",
    )

    # PostgreSQL settings
    parser.add_argument(
        "--save",
        action="store_true",
        help="Persist detected segments to PostgreSQL",
    )
    parser.add_argument(
        "--postgres-host",
        default=os.getenv("POSTGRES_HOST", "localhost"),
        help="PostgreSQL host",
    )
    parser.add_argument(
        "--postgres-port",
        type=int,
        default=int(os.getenv("POSTGRES_PORT", "5432")),
        help="PostgreSQL port",
    )
    parser.add_argument(
        "--postgres-db",
        default=os.getenv("POSTGRES_DB", "analytics_db"),
        help="PostgreSQL database",
    )
    parser.add_argument(
        "--postgres-user",
        default=os.getenv("POSTGRES_USER", "analytics"),
        help="PostgreSQL user",
    )
    parser.add_argument(
        "--postgres-password",
        default=os.getenv("POSTGRES_PASSWORD", "analytics_password"),
        help="PostgreSQL password",
    )

    # Redis configuration
    parser.add_argument(
        "--use-config-cache",
        action="store_true",
        help="Restore and store the unit config in Redis",
    )
    parser.add_argument(
        "--redis-host",
        default=os.getenv("REDIS_HOST", "localhost"),
        help="Redis host (default: localhost or REDIS_HOST env var)",
    )

    # Output
    parser.add_argument("--json", action="store_true", help="Print segments as JSON")

    # Logging
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_config(args) -> AnalyticConfig:
    """Build configuration from arguments"""
    return AnalyticConfig(
        unit_id=args.unit_id,
        detection_step=args.step,
        default_window_seconds=args.window,
        prometheus_url=args.prometheus_url,
        prometheus_query=args.query,
        postgres_host=args.postgres_host,
        postgres_port=args.postgres_port,
        postgres_database=args.postgres_db,
        postgres_user=args.postgres_user,
        postgres_password=args.postgres_password,
        redis_host=args.redis_host,
    )


def resolve_window(args, config: AnalyticConfig) -> tuple[int, int]:
    to = args.to if args.to is not None else int(time.time())
    from_ = args.from_ if args.from_ is not None else to - config.default_window_seconds
    if from_ > to:
        raise ValueError(f"Window starts after it ends: {from_} > {to}")
    return from_, to


async def run(args) -> list[dict]:
    """Run one detection window and return the segments as dicts"""
    config = build_config(args)
    from_, to = resolve_window(args, config)

    segment_store = await asyncio.to_thread(SegmentsDatabase, config) if args.save else None
    config_cache = UnitConfigCache(config) if args.use_config_cache else None

    try:
        async with PrometheusMetricSource(
            config.prometheus_url,
            config.prometheus_query,
            max_retries=config.prometheus_max_retries,
            timeout_seconds=config.prometheus_timeout_seconds,
        ) as metric_source:
            service = AnalyticService(
                metric_source, segment_store, config=config, config_cache=config_cache
            )
            await service.restore_config()

            if args.threshold is not None:
                await service.patch_config(PatchConfig.of(ThresholdConfig(args.threshold)))

            segments = await service.get_detections(from_, to)

            if segment_store is not None:
                if not await asyncio.to_thread(segment_store.check_health):
                    raise RuntimeError("Database health check failed")
                await asyncio.to_thread(segment_store.ensure_table_exists)
                segments = await service.save_detections(segments)

            return [s.to_dict() for s in segments]
    finally:
        if segment_store is not None:
            segment_store.close()
        if config_cache is not None:
            await config_cache.close()


def main(argv=None):
    """Main entry point"""
    args = parse_arguments(argv)

    log_level = getattr(logging, args.log_level)
    setup_logging(level=log_level)

    logger.info("Starting detection", query=args.query, unit_id=args.unit_id)

    try:
        segments = asyncio.run(run(args))

        if args.json:
            print(json.dumps(segments, indent=2))
        else:
            for segment in segments:
                logger.info("Segment", **segment)

        logger.info("Detection completed successfully", segments=len(segments))
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except Exception as e:
        logger.error("Detection failed", error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
