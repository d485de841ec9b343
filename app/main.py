"""
Start-up Runner for Money Manager

Opens the local database, seeds the reserved categories and runs the
recurring catch-up pass, then prints what the pass did. A front end calls
the same start-up flow through create_app_components().

Usage:
    python -m app.main [--today YYYY-MM-DD]
"""

import argparse
import asyncio
import sys
from datetime import date

import structlog

from money_manager.config import get_settings, validate_all_settings
from money_manager.observability import configure_logging
from money_manager.orchestrator import create_app_components


def run_async(coro):
    """Helper to run async functions from synchronous code."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Money Manager start-up pass.")
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Process recurring schedules due on or before this date (default: today)",
    )
    return parser.parse_args(argv)


async def start(today=None):
    components = create_app_components()
    try:
        report = await components.start_up(today)
        net_worth = await components.stats.net_worth()
        credit_due = await components.stats.total_credit_due()
        debt_outstanding = await components.stats.total_debt_outstanding()
    finally:
        await components.shut_down()
    return report, net_worth, credit_due, debt_outstanding


def main(argv=None) -> int:
    """Main application entry point."""
    args = parse_args(argv)

    checks = validate_all_settings()
    failed = {name: value for name, value in checks.items() if name.endswith("_error")}
    if failed:
        for name, message in failed.items():
            print(f"Invalid configuration ({name[:-6]}): {message}", file=sys.stderr)
        return 2

    configure_logging()
    logger = structlog.get_logger("money_manager.app")
    settings = get_settings()

    report, net_worth, credit_due, debt_outstanding = run_async(start(args.today))

    if report is None:
        logger.info("startup_pass_disabled")
    else:
        logger.info(
            "startup_pass_completed",
            today=report.today.isoformat(),
            materialized=len(report.materialized),
            failed=len(report.failed),
            skipped_over=report.skipped_over,
            disabled=report.disabled_schedule_ids,
        )

    symbol = settings.ledger.currency_symbol
    print(f"Net worth: {symbol}{net_worth}")
    print(f"Credit card dues: {symbol}{credit_due}")
    print(f"Debt outstanding: {symbol}{debt_outstanding}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
