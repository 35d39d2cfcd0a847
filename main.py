#!/usr/bin/env python3
"""PersonalLM: periodic personal-data brief powered by an LLM.

This CLI collects health, calendar, message, weather and news data,
summarizes it with a PydanticAI agent and writes the result to daily
CSV files, compressed context snapshots and markdown pages.

Commands:
    run         Execute one cycle, or loop forever with --continuous
    setup       Create today's partition (CSV header) and exit
    status      Show configuration and today's output statistics
    history     Show yesterday's summary (and optionally its context)

Examples:
    python main.py run                    # Single cycle
    python main.py run -c                 # Continuous, every INTERVAL_MINUTES
    python main.py run -c --interval 30   # Continuous, every 30 minutes
    python main.py status
    python main.py history --context

Environment:
    GEMINI_API_KEY: Required for the summarizer
    See config.py for all configuration options (.env is loaded if present)
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date

from dotenv import load_dotenv

from config import Config
from errors import AppError, classify_error
from observability.logging import setup_logging

__version__ = "0.1.0"


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Run one cycle or the continuous scheduler.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    from aggregator import run_cycle
    from observability.tracing import setup_tracing
    from partition import ensure_partition
    from scheduler import Scheduler

    if args.interval:
        config.interval_minutes = args.interval

    logger = logging.getLogger(__name__)
    if config.enable_logfire:
        setup_tracing(enabled=True, service_name="personallm", token=config.logfire_token)
    for name in config.missing_paths():
        logger.warning("Configured path not found | setting=%s", name)

    if args.continuous:
        scheduler = Scheduler(config)
        try:
            asyncio.run(scheduler.run_forever())
        except KeyboardInterrupt:
            logger.info("Stopped by user (Ctrl+C)")
        return 0

    try:
        ensure_partition(date.today(), config.output_dir)
        result = asyncio.run(run_cycle(config))
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130  # Standard exit code for SIGINT
    except Exception as e:
        logger.error("Cycle failed | code=%s error=%s", classify_error(e), e, exc_info=True)
        return 1

    logger.info(
        "Run complete | sections=%d index=%d csv=%s",
        len(result.sections), result.index, result.csv_path,
    )
    return 0


def cmd_setup(args: argparse.Namespace, config: Config) -> int:
    """Create today's partition without running a cycle."""
    from partition import ensure_partition

    path = ensure_partition(date.today(), config.output_dir)
    print(f"Partition ready: {path}")
    return 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and today's output statistics."""
    from partition import count_rows, csv_path, snapshot_path
    from reports import list_reports

    today = date.today()
    daily_csv = csv_path(config.output_dir, today)
    snapshot = snapshot_path(config.output_dir, today)

    status = {
        "config": {
            "summary_model": config.summary_model,
            "interval_minutes": config.interval_minutes,
            "sources": ["weather", "news", *config.enabled_sources()],
            "location": [config.latitude, config.longitude],
            "output_dir": str(config.output_dir),
            "web_content_dir": str(config.web_content_dir),
            "enable_logfire": config.enable_logfire,
        },
        "today": {
            "date": today.isoformat(),
            "csv": str(daily_csv),
            "rows": count_rows(daily_csv),
            "snapshot_bytes": snapshot.stat().st_size if snapshot.exists() else 0,
            "reports": len(list_reports(config.web_content_dir, today)),
        },
    }

    print(json.dumps(status, indent=2))
    return 0


def cmd_history(args: argparse.Namespace, config: Config) -> int:
    """Print yesterday's summary, and its raw context with --context."""
    from history import load_previous

    previous = load_previous(config.output_dir)
    if previous.summary is None and previous.context is None:
        print("No history for yesterday.")
        return 0

    print("=== Yesterday's summary ===\n")
    print(previous.summary or "(none)")
    if args.context:
        print("\n=== Yesterday's context ===\n")
        print(previous.context or "(none)")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="PersonalLM: personal data aggregator and summarizer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"PersonalLM v{__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the aggregator")
    run_parser.add_argument(
        "-c", "--continuous",
        action="store_true",
        help="Run forever, one cycle every interval",
    )
    run_parser.add_argument(
        "--interval",
        type=int,
        help="Minutes between cycles (continuous mode)",
    )

    subparsers.add_parser("setup", help="Create today's partition and exit")
    subparsers.add_parser("status", help="Show configuration and statistics")

    history_parser = subparsers.add_parser("history", help="Show yesterday's summary")
    history_parser.add_argument(
        "--context",
        action="store_true",
        help="Also print yesterday's decoded raw context",
    )

    args = parser.parse_args(argv)

    load_dotenv(override=False)
    try:
        config = Config.load()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config, verbose=args.verbose)

    if args.command == "run":
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1

    commands = {
        "run": cmd_run,
        "setup": cmd_setup,
        "status": cmd_status,
        "history": cmd_history,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except AppError as e:
            logging.getLogger(__name__).error("Command failed | cmd=%s code=%s error=%s", args.command, e.code, e)
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except Exception as e:
            logging.getLogger(__name__).error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
