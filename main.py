"""
main.py — ExecView Core — CLI Entry Point.

Drives the dataset lifecycle from the command line. All actions share one
store connection and one orchestrator for the run.

Usage:
    python main.py --init                        # Seed the database on first run
    python main.py --show --granularity weekly   # Print headline KPIs
    python main.py --mark-read notif-1           # Mark a notification as read
    python main.py --export financial            # Write a CSV of one collection
    python main.py --reset                       # Regenerate all metric data
    python main.py --show --config custom.yaml --log-level DEBUG
"""

import argparse
import asyncio
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from execview.config import load_config
from execview.periods import DEFAULT_GRANULARITY, GRANULARITIES

if TYPE_CHECKING:
    from execview.orchestrator import DashboardOrchestrator


def _configure_logging(log_dir: str = "logs", level: str = "INFO") -> None:
    """Configure rotating file handler + stream handler.

    Args:
        log_dir: Directory for log files.
        level: Log level string.
    """
    effective_level = os.environ.get("LOG_LEVEL", level).upper()
    numeric = getattr(logging, effective_level, logging.INFO)

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file = Path(log_dir) / f"execview_{datetime.today().strftime('%Y%m%d')}.log"

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)-35s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    fh = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10 * 1024 * 1024, backupCount=7, encoding="utf-8"
    )
    fh.setFormatter(fmt)
    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(numeric)
    root.addHandler(fh)
    root.addHandler(sh)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="execview",
        description="ExecView core -- synthetic executive metrics and local persistence.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --init
  python main.py --show --granularity quarterly
  python main.py --mark-read notif-3
  python main.py --export sales --granularity weekly
  python main.py --reset --show
        """,
    )
    parser.add_argument("--config", default="config.yaml",
                        help="Path to config.yaml (default: config.yaml)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--granularity", default=DEFAULT_GRANULARITY, choices=GRANULARITIES,
                        help="Reporting granularity (default: monthly)")

    actions = parser.add_argument_group("Actions")
    actions.add_argument("--init", action="store_true",
                         help="Create and seed the database if it is empty")
    actions.add_argument("--reset", action="store_true",
                         help="Regenerate metric data and notifications")
    actions.add_argument("--mark-read", metavar="ID",
                         help="Mark one notification as read")
    actions.add_argument("--export", metavar="COLLECTION",
                         help="Export a collection of the loaded dataset to CSV")
    actions.add_argument("--summary", metavar="DOMAIN",
                         help="Export one domain's headline KPIs to CSV")
    actions.add_argument("--show", action="store_true",
                         help="Print headline KPIs and notifications")
    return parser.parse_args()


def _print_summary(orchestrator: "DashboardOrchestrator") -> None:
    summary = orchestrator.summarize()
    print(f"\nExecView -- {summary.granularity} -- last updated {summary.last_updated}")
    print("=" * 65)
    for domain in ("financial", "sales", "operations", "customer", "employee"):
        domain_summary = getattr(summary, domain)
        if domain_summary is None:
            continue
        print(f"{domain.title()} ({domain_summary.period})")
        for name, value in domain_summary.__dict__.items():
            if hasattr(value, "change_percentage"):
                print(f"  {value.name:<28} {value.value:>14,.2f}  {value.change_percentage:+6.1f}%  {value.trend}")
    print(f"Unread notifications: {summary.unread_notifications}")
    for notification in orchestrator.snapshot.notifications:
        flag = " " if notification["read"] else "*"
        print(f"  {flag} [{notification['type']:<7}] {notification['id']:<8} {notification['title']}")


async def run(args: argparse.Namespace, cfg: dict, logger: logging.Logger) -> int:
    """Execute the requested actions.

    Args:
        args: Parsed CLI arguments.
        cfg: Configuration dictionary.
        logger: Configured logger.

    Returns:
        0 on success, 1 on error.
    """
    from execview.exceptions import ExecViewError
    from execview.export import write_export
    from execview.orchestrator import DashboardOrchestrator

    orchestrator = DashboardOrchestrator.from_config(cfg)
    exit_code = 0
    try:
        await orchestrator.ensure_initialized()

        if args.reset:
            result = await orchestrator.reset_dataset()
            logger.info("Reset: %s", result.message)
            if not result.ok:
                return 1

        needs_snapshot = args.show or args.export or args.summary or args.mark_read
        if needs_snapshot:
            await orchestrator.load(args.granularity)

        if args.mark_read:
            result = await orchestrator.mark_notification_read(args.mark_read)
            if result.ok:
                logger.info("Notification %s marked as read", args.mark_read)
            else:
                logger.error("Mark-read failed (%s): %s", result.error, result.message)
                exit_code = 1

        export_dir = cfg["paths"]["export_dir"]
        if args.export:
            text = orchestrator.export_collection(args.export)
            write_export(text, args.export, export_dir, args.granularity)

        if args.summary:
            text = orchestrator.export_summary(args.summary)
            write_export(text, f"{args.summary}_summary", export_dir, args.granularity)

        if args.show:
            _print_summary(orchestrator)
    except ExecViewError as exc:
        logger.error("%s (%s)", exc.user_message, exc, exc_info=True)
        return 1
    except ValueError as exc:
        logger.error("Invalid request: %s", exc)
        return 1
    finally:
        await orchestrator.store.close()

    return exit_code


def main() -> None:
    """Parse args, configure logging, and run the requested actions."""
    args = _parse_args()
    cfg = load_config(args.config)

    _configure_logging(log_dir=cfg["paths"]["log_dir"], level=args.log_level)
    logger = logging.getLogger(__name__)

    no_action = not any([
        args.init, args.reset, args.mark_read, args.export, args.summary, args.show,
    ])
    if no_action:
        import subprocess
        subprocess.run([sys.executable, __file__, "--help"])
        sys.exit(0)

    logger.info(
        "%s core v%s | %s",
        cfg["project"]["name"],
        cfg["project"]["version"],
        datetime.today().strftime("%Y-%m-%d %H:%M:%S"),
    )
    sys.exit(asyncio.run(run(args, cfg, logger)))


if __name__ == "__main__":
    main()
