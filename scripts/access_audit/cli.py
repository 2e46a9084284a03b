"""CLI entry point: report, scheduler."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from scripts.access_audit.config import AuditConfig, ConfigError, load_config
from scripts.access_audit.logging_config import configure_logging
from scripts.access_audit.providers.github_org import GitHubApiError, GitHubOrgProvider
from scripts.access_audit.render import render_markdown
from scripts.access_audit.report import build_report

logger = logging.getLogger("access_audit.cli")


def generate_report(config: AuditConfig) -> Path:
    """Fetch a fresh snapshot, build the report and write it as markdown."""
    provider = GitHubOrgProvider(config.github)
    snapshot = provider.fetch_with_tracking()

    report = build_report(snapshot, workers=config.report.workers)
    markdown = render_markdown(report)

    path = Path(config.report.output_path)
    path.write_text(markdown, encoding="utf-8")
    logger.info("Output written to %s", path, extra={"org": config.github.org})
    return path


def _load(args: argparse.Namespace) -> AuditConfig:
    config = load_config(org=args.org, token=args.token, output=args.output)
    configure_logging(config.log_level)
    return config


def cmd_report(args: argparse.Namespace) -> int:
    """Generate the report once."""
    config = _load(args)
    generate_report(config)
    return 0


def cmd_scheduler(args: argparse.Namespace) -> int:
    """Start the APScheduler-based regeneration loop."""
    from scripts.access_audit.scheduler import start_scheduler

    config = _load(args)
    start_scheduler(config)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="access-audit",
        description="GitHub organisation access report",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--org", help="GitHub organization name (or GITHUB_ORG)")
    common.add_argument(
        "--token",
        help="GitHub token (falls back to GITHUB_TOKEN, then git credential helper)",
    )
    common.add_argument(
        "--output", "-o",
        help="Output markdown file path (default: output.md)",
    )

    report_parser = subparsers.add_parser("report", parents=[common], help="Generate the report once")
    report_parser.set_defaults(func=cmd_report)

    sched_parser = subparsers.add_parser(
        "scheduler", parents=[common], help="Regenerate the report on an interval"
    )
    sched_parser.set_defaults(func=cmd_scheduler)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    configure_logging()

    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except ConfigError as exc:
        logger.error("Error: %s", exc)
        return 1
    except GitHubApiError as exc:
        logger.error("GitHub API error: %s", exc, extra={"org": args.org})
        return 1
    except OSError as exc:
        logger.error("Error writing output file: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
