#!/usr/bin/env python3
"""Scout: Bitcoin intelligence aggregation engine.

This CLI tool polls security, news, economics, regulatory and educational
sources, classifies every relevant item into an alert, and writes a
synthesized intelligence report for downstream content tooling.

Commands:
    gather              Run one gather cycle and persist the report
    summary             Show the latest condensed summary
    monitor-education   Check educational sites over the last 7 days
    sources             List the configured source catalog

Examples:
    python main.py gather                 # Last 24 hours
    python main.py gather -t 7d --json    # Full JSON report for a week
    python main.py summary
    python main.py monitor-education

Environment:
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys

from config import Config
from models.report import Report, SummaryPlaceholder, Timeframe
from observability.logging import setup_logging

logger = logging.getLogger(__name__)


def _print_report(report: Report, limit: int = 5) -> None:
    """Human-readable digest of a report."""
    print(f"\n=== Intelligence Report {report.report_id} ({report.period.value}) ===\n")
    print(report.summary)

    if report.critical_alerts:
        print("\n--- Critical Alerts ---")
        for alert in report.critical_alerts[:limit]:
            print(f"🚨 {alert.title}")
            print(f"   Source: {alert.source} | Relevance: {alert.relevance_score}")
            print(f"   {alert.url}")

    if report.educational_opportunities:
        print("\n--- Educational Opportunities ---")
        for alert in report.educational_opportunities[:limit]:
            print(f"📚 {alert.title}")
            print(f"   Impact: {alert.educational_impact}")

    if report.threat_landscape.new_threats:
        print("\n--- New Threats ---")
        for threat in report.threat_landscape.new_threats[:limit]:
            print(f"• {threat}")

    if report.recommendations:
        print("\n--- Recommendations ---")
        for i, rec in enumerate(report.recommendations[:limit], 1):
            print(f"{i}. {rec}")
    print()


def cmd_gather(args: argparse.Namespace, config: Config) -> int:
    """Run one gather cycle.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success, 1 when the report could not be persisted)
    """
    from scout import IntelligenceScout
    from storage import PersistenceError

    engine = IntelligenceScout(config)
    exit_code = 0
    try:
        report = asyncio.run(engine.gather_intelligence(args.timeframe))
    except PersistenceError as e:
        if e.report is None:
            raise
        print(f"Warning: report was not saved: {e}", file=sys.stderr)
        report = e.report
        exit_code = 1

    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        _print_report(report)
        if exit_code == 0:
            print(f"Report saved: {engine.store.report_path(report.report_id)}")
    return exit_code


def cmd_summary(args: argparse.Namespace, config: Config) -> int:
    """Display the latest condensed summary."""
    from storage import ReportStore

    summary = ReportStore(config.data_dir).load_latest_summary()

    if args.json:
        print(summary.model_dump_json(indent=2))
        return 0

    if isinstance(summary, SummaryPlaceholder):
        print(summary.message)
        for step in summary.recommendations:
            print(f"  → {step}")
        return 0

    print(f"\n=== Latest Intelligence ({summary.last_updated:%Y-%m-%d %H:%M}) ===\n")
    print(f"Alerts: {summary.total_alerts} total, {summary.critical_count} critical, {summary.high_count} high")
    sections = (
        ("Key Recommendations", summary.key_recommendations),
        ("Top Threats", summary.top_threats),
        ("Education Opportunities", summary.education_opportunities),
    )
    for heading, items in sections:
        if items:
            print(f"\n--- {heading} ---")
            for item in items:
                print(f"• {item}")
    print()
    return 0


def cmd_monitor_education(args: argparse.Namespace, config: Config) -> int:
    """Check educational sources for new material."""
    from scout import IntelligenceScout

    alerts = asyncio.run(IntelligenceScout(config).monitor_educational_sites())

    if args.json:
        print(json.dumps([a.model_dump(mode="json") for a in alerts], indent=2, ensure_ascii=False))
        return 0

    if not alerts:
        print("No new educational material in the last 7 days.")
        return 0

    print(f"\n=== Educational Sites (last 7 days, {len(alerts)} alerts) ===\n")
    for alert in sorted(alerts, key=lambda a: -a.relevance_score):
        print(f"📚 {alert.title}")
        print(f"   Source: {alert.source} | Relevance: {alert.relevance_score}")
        print(f"   Impact: {alert.educational_impact}")
        for item in alert.action_items:
            print(f"   → {item}")
        print()
    return 0


def cmd_sources(args: argparse.Namespace, config: Config) -> int:
    """Display the configured source catalog."""
    print(json.dumps([s.model_dump(mode="json") for s in config.sources], indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Scout: Bitcoin intelligence aggregation engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # gather command
    gather_parser = subparsers.add_parser("gather", help="Run one gather cycle")
    gather_parser.add_argument(
        "-t", "--timeframe",
        choices=[t.value for t in Timeframe],
        help="Recency window (default: config DEFAULT_TIMEFRAME)",
    )
    gather_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full report as JSON",
    )

    # summary command
    summary_parser = subparsers.add_parser("summary", help="Show the latest summary")
    summary_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the summary as JSON",
    )

    # monitor-education command
    education_parser = subparsers.add_parser("monitor-education", help="Check educational sites")
    education_parser.add_argument(
        "--json",
        action="store_true",
        help="Print alerts as JSON",
    )

    # sources command
    subparsers.add_parser("sources", help="List configured sources")

    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = Config.load()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    # Setup logging
    setup_logging(config, verbose=args.verbose)

    if error := config.validate():
        print(f"Configuration error: {error}", file=sys.stderr)
        return 1

    # Route to command handler
    commands = {
        "gather": cmd_gather,
        "summary": cmd_summary,
        "monitor-education": cmd_monitor_education,
        "sources": cmd_sources,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except KeyboardInterrupt:
            logger.info("Stopped by user (Ctrl+C)")
            return 130
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
