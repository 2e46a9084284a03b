"""Tests for the CLI, scheduler wiring and JSON logging."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from scripts.access_audit import cli
from scripts.access_audit import scheduler as scheduler_module
from scripts.access_audit.config import AuditConfig, GitHubConfig, ReportConfig, SchedulerConfig
from scripts.access_audit.logging_config import JsonFormatter
from scripts.access_audit.providers.github_org import GitHubApiError
from scripts.access_audit.scheduler import build_scheduler


def _config(tmp_path):
    return AuditConfig(
        github=GitHubConfig(token="t", org="acme"),
        report=ReportConfig(output_path=str(tmp_path / "out.md")),
        scheduler=SchedulerConfig(report_interval_min=30),
    )


def test_generate_report_writes_markdown(tmp_path, eng_snapshot):
    config = _config(tmp_path)
    with patch.object(cli, "GitHubOrgProvider") as provider_cls:
        provider_cls.return_value.fetch_with_tracking.return_value = eng_snapshot
        path = cli.generate_report(config)

    text = path.read_text(encoding="utf-8")
    assert text.startswith("# Groups\n\n## everybody in acme\n")
    assert "| repo2 | Eng, dave |" in text


def test_main_report_exit_zero(tmp_path, eng_snapshot):
    config = _config(tmp_path)
    with patch.object(cli, "load_config", return_value=config) as loader, \
            patch.object(cli, "GitHubOrgProvider") as provider_cls:
        provider_cls.return_value.fetch_with_tracking.return_value = eng_snapshot
        code = cli.main(["report", "--org", "acme", "--token", "t", "-o", "x.md"])

    assert code == 0
    loader.assert_called_once_with(org="acme", token="t", output="x.md")


def test_main_config_error_exit_one():
    with patch.object(cli, "load_config", side_effect=cli.ConfigError("missing")):
        assert cli.main(["report"]) == 1


def test_main_api_error_exit_one(tmp_path):
    config = _config(tmp_path)
    with patch.object(cli, "load_config", return_value=config), \
            patch.object(cli, "GitHubOrgProvider") as provider_cls:
        provider_cls.return_value.fetch_with_tracking.side_effect = GitHubApiError("boom", 500)
        assert cli.main(["report"]) == 1


def test_scheduler_registers_interval_job(tmp_path):
    scheduler = build_scheduler(_config(tmp_path))

    job = scheduler.get_job("access_report")
    assert job is not None
    assert job.max_instances == 1
    assert job.trigger.interval.total_seconds() == 30 * 60


def test_json_formatter_includes_extras():
    record = logging.LogRecord("access_audit.test", logging.INFO, __file__, 1, "hello %s", ("x",), None)
    record.org = "acme"
    record.records = 3

    entry = json.loads(JsonFormatter().format(record))

    assert entry["message"] == "hello x"
    assert entry["org"] == "acme"
    assert entry["records"] == 3
    assert "resource" not in entry


def test_scheduled_job_failure_propagates(tmp_path):
    """The job lets errors reach APScheduler so the error listener fires."""
    with patch.object(cli, "generate_report", side_effect=GitHubApiError("boom", 502)):
        with pytest.raises(GitHubApiError):
            scheduler_module._generate_report(_config(tmp_path))


def test_job_error_listener_logs():
    event = MagicMock(job_id="access_report", exception=GitHubApiError("boom", 502))

    with patch.object(scheduler_module, "logger") as mock_logger:
        scheduler_module._on_job_error(event)

    mock_logger.error.assert_called_once()
    assert mock_logger.error.call_args.args[1] == "access_report"


def test_scheduler_first_run_is_immediate(tmp_path):
    job = build_scheduler(_config(tmp_path)).get_job("access_report")

    assert job.next_run_time is not None


def test_json_formatter_lifts_report_context():
    record = logging.LogRecord("access_audit.coverage", logging.DEBUG, __file__, 1, "explained", (), None)
    record.resource = "api"
    record.grantees = 4
    record.teams = 2

    entry = json.loads(JsonFormatter().format(record))

    assert entry["resource"] == "api"
    assert entry["grantees"] == 4
    assert entry["teams"] == 2
    assert "repositories" not in entry
