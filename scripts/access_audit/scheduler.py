"""APScheduler-based interval regeneration of the access report."""

from __future__ import annotations

import logging
from datetime import datetime

from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.blocking import BlockingScheduler

from scripts.access_audit.config import AuditConfig

logger = logging.getLogger("access_audit.scheduler")


def _generate_report(config: AuditConfig) -> None:
    """Run one full report generation. Failures surface as job errors."""
    from scripts.access_audit.cli import generate_report

    path = generate_report(config)
    logger.info("Scheduled report written to %s", path, extra={"org": config.github.org})


def _on_job_error(event) -> None:
    """Log job execution errors."""
    logger.error(
        "Job %s raised an exception: %s",
        event.job_id,
        event.exception,
    )


def build_scheduler(config: AuditConfig) -> BlockingScheduler:
    """Interval job that also runs once as soon as the scheduler starts."""
    scheduler = BlockingScheduler()
    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    scheduler.add_job(
        _generate_report,
        "interval",
        minutes=config.scheduler.report_interval_min,
        args=[config],
        id="access_report",
        max_instances=1,
        misfire_grace_time=config.scheduler.misfire_grace_time,
        next_run_time=datetime.now(),
    )
    return scheduler


def start_scheduler(config: AuditConfig) -> None:
    """Block, regenerating the report on the configured interval."""
    scheduler = build_scheduler(config)
    logger.info(
        "Scheduler started (every %d min)",
        config.scheduler.report_interval_min,
        extra={"org": config.github.org},
    )
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")
