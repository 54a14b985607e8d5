"""
Command Line Entry Point

Usage:
    bizintel-predict run              Run the prediction pipeline once
    bizintel-predict run --dry-run    Compute predictions without persisting
    bizintel-predict seed             Load generated sample data
    bizintel-predict init-db          Create the database schema
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import structlog

from bizintel.config import get_settings
from bizintel.config.logging import configure_logging
from bizintel.database.connection import close_database, create_tables, init_database

logger = structlog.get_logger(__name__)


async def run_pipeline(dry_run: bool = False) -> int:
    """Run the pipeline once; exit code 1 when the run fails"""
    from bizintel.database.models import RunStatus
    from bizintel.pipeline.runner import PipelineError, PredictionPipeline

    await init_database()
    try:
        result = await PredictionPipeline().run(dry_run=dry_run)
    except PipelineError as e:
        logger.error("Prediction run failed", error=str(e))
        return 1
    finally:
        await close_database()

    if dry_run:
        for kind, outcome in result.outcomes.items():
            logger.info(
                "Dry run output",
                model=kind.value,
                predictions=len(outcome.predictions),
                error=outcome.error,
            )
    return 0 if result.status == RunStatus.COMPLETED else 1


async def seed(n_products: int, n_customers: int, months: int, seed_value: int) -> int:
    from bizintel.ingestion.seed_db import seed_database

    await init_database()
    try:
        await create_tables()
        await seed_database(
            n_products=n_products,
            n_customers=n_customers,
            months=months,
            seed=seed_value,
        )
    finally:
        await close_database()
    return 0


async def init_db() -> int:
    await init_database()
    try:
        await create_tables()
    finally:
        await close_database()
    return 0


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="bizintel-predict",
        description="BizIntel batch prediction pipeline",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help=f"Override log level (default: {settings.monitoring.log_level})",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the prediction pipeline once")
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute and log predictions without writing them",
    )

    seed_parser = subparsers.add_parser("seed", help="Load generated sample data")
    seed_parser.add_argument("--products", type=int, default=50)
    seed_parser.add_argument("--customers", type=int, default=100)
    seed_parser.add_argument("--months", type=int, default=18)
    seed_parser.add_argument("--seed", type=int, default=42)

    subparsers.add_parser("init-db", help="Create the database schema")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "run":
        return asyncio.run(run_pipeline(dry_run=args.dry_run))
    if args.command == "seed":
        return asyncio.run(seed(args.products, args.customers, args.months, args.seed))
    return asyncio.run(init_db())


if __name__ == "__main__":
    sys.exit(main())
