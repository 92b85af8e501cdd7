"""
CLI entry point.

Usage:
    # Create the trading tables
    python -m ascendancy.cli init-db

    # Run one daily cycle for the configured agent (schedule once per trading day)
    python -m ascendancy.cli run-cycle
    python -m ascendancy.cli run-cycle --all
    python -m ascendancy.cli run-cycle --date 2024-03-15

    # Check every external service
    python -m ascendancy.cli check-services

    # Serve the reporting API
    python -m ascendancy.cli serve --port 8000
"""

import argparse
import logging
import sys
from datetime import date
from typing import Optional, Sequence

from ascendancy.core.config import settings
from ascendancy.shared.logging import configure_logging

logger = logging.getLogger(__name__)


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create any missing trading table."""
    from sqlalchemy.exc import SQLAlchemyError

    from ascendancy.infrastructure.trading.schema import create_tables
    from ascendancy.interfaces.trading.dependencies import _get_db_engine

    try:
        create_tables(_get_db_engine())
    except SQLAlchemyError as exc:
        logger.error("Could not create tables: %s", exc)
        return 1
    return 0


def cmd_run_cycle(args: argparse.Namespace) -> int:
    """Run one cycle, or one per agent. Exits non-zero when any cycle aborted."""
    from ascendancy.application.trading.dtos import RunTradingCycleCommand
    from ascendancy.interfaces.trading.dependencies import get_run_trading_cycle_use_case

    use_case = get_run_trading_cycle_use_case()
    if args.all_agents:
        results = use_case.execute_all(args.date)
    else:
        results = [
            use_case.execute(
                RunTradingCycleCommand(agent_id=args.agent_id, as_of=args.date)
            )
        ]

    for result in results:
        logger.info("%s [%s] %s", result.agent_id, result.cycle_status, result.summary)
        for warning in result.warnings:
            logger.warning("Stage warning: %s", warning)
    return 0 if all(r.status == "success" for r in results) else 1


def cmd_check_services(args: argparse.Namespace) -> int:
    """Check services. Exits non-zero when any is down."""
    from ascendancy.interfaces.trading.dependencies import get_check_services_use_case

    statuses = get_check_services_use_case().execute()
    for s in statuses:
        logger.info("%-22s %s %s", s.name, "OK  " if s.ok else "FAIL", s.detail)
    return 0 if all(s.ok for s in statuses) else 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("ascendancy.main:app", host=args.host, port=args.port, reload=False)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Agent Ascendancy paper-trading CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create the trading tables")
    init_parser.set_defaults(func=cmd_init_db)

    cycle_parser = subparsers.add_parser("run-cycle", help="Run one daily trading cycle")
    cycle_parser.add_argument(
        "--agent-id", default=None, dest="agent_id",
        help="Agent to run (default: the configured agent)",
    )
    cycle_parser.add_argument(
        "--all", action="store_true", dest="all_agents",
        help="Run every configured and active agent",
    )
    cycle_parser.add_argument(
        "--date", type=date.fromisoformat, default=None,
        help="Cycle date as YYYY-MM-DD (default: today, UTC)",
    )
    cycle_parser.set_defaults(func=cmd_run_cycle)

    services_parser = subparsers.add_parser(
        "check-services", help="Check market data, reasoning, feeds and the store"
    )
    services_parser.set_defaults(func=cmd_check_services)

    serve_parser = subparsers.add_parser("serve", help="Serve the reporting API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    configure_logging(level=settings.log_level)
    args = build_parser().parse_args(argv)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
