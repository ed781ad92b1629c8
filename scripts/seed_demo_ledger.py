#!/usr/bin/env python3
"""Seed a demo ledger and export it.

This script runs the demo portfolio scenario (synthetic investors depositing
through PIX, monthly yield accrual, withdrawals) and exports the result to:
- JSON files: investors, accounts, pix_charges, movements (always)
- PostgreSQL: accounts, pix_charges, movements (with --postgres)
- Kafka: one event per movement on the movements topic (with --kafka)
"""

import argparse
import logging
import sys
import time
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from invest_ledger.config import AppConfig, KafkaConfig
from invest_ledger.exceptions import LedgerError
from invest_ledger.logging import setup_logging
from invest_ledger.scenarios import DemoPortfolioScenario
from invest_ledger.sinks import JsonFileSink, KafkaSink, PostgresSink

logger = logging.getLogger(__name__)


def parse_month(value: str) -> date:
    """Parse ``YYYY-MM`` into the first day of that month."""
    try:
        year, month = value.split("-")
        return date(int(year), int(month), 1)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM, got {value!r}") from exc


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed a demo investment ledger")
    parser.add_argument("--investors", type=int, default=20, help="Number of investors")
    parser.add_argument("--months", type=int, default=6, help="Months of activity")
    parser.add_argument("--start", type=parse_month, default=date(2024, 1, 1), help="First month (YYYY-MM)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--output-dir", type=Path, default=None, help="JSON output directory")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--postgres", action="store_true", help="Also load to PostgreSQL")
    parser.add_argument("--kafka", default=None, help="Kafka bootstrap servers for movement events")
    return parser.parse_args(argv)


def load_to_postgres(batches: dict[str, list], connection_string: str) -> None:
    """Create the schema and load ledger entities in foreign-key order."""
    logger.info("Loading ledger to PostgreSQL...")
    sink = PostgresSink(connection_string)
    try:
        sink.create_schema()
        t0 = time.perf_counter()
        sink.write_all(batches)
        logger.info("PostgreSQL load complete in %.1fs", time.perf_counter() - t0)
    finally:
        sink.close()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = AppConfig.from_env()
    setup_logging(config.log_level, config.log_format)

    seed = args.seed if args.seed is not None else config.seed
    output_dir = args.output_dir or config.output.json_output_dir

    publishers = []
    if args.kafka:
        publishers.append(KafkaSink(KafkaConfig(bootstrap_servers=args.kafka)))
    elif config.kafka is not None:
        publishers.append(KafkaSink(config.kafka))

    try:
        t0 = time.perf_counter()
        scenario = DemoPortfolioScenario(
            num_investors=args.investors,
            months=args.months,
            start=args.start,
            config=config,
            publishers=publishers,
            seed=seed,
        )
        scenario.generate()
        logger.info("Scenario generated in %.1fs", time.perf_counter() - t0)

        batches = scenario.batches()
        json_sink = JsonFileSink(output_dir, pretty=args.pretty or config.output.pretty_json)
        for entity_type, records in batches.items():
            json_sink.write_batch(entity_type, records)
        json_sink.close()

        if args.postgres:
            load_to_postgres(batches, config.postgres.connection_string)
    except LedgerError as exc:
        logger.error("Seeding failed: %s", exc)
        return 1
    finally:
        for publisher in publishers:
            publisher.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
