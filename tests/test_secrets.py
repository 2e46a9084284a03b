"""Tests for GitHub token acquisition."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from scripts.access_audit.secrets import (
    CredentialHelperError,
    resolve_github_token,
    resolve_secret,
    token_from_git_credential,
)


def _completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(["git"], returncode, stdout=stdout, stderr=stderr)


def test_literal_secret_returned_as_is():
    assert resolve_secret("ghp_plain") == "ghp_plain"


def test_aws_secret_reference_with_json_key():
    client = MagicMock()
    client.get_secret_value.return_value = {"SecretString": '{"token": "ghp_aws"}'}
    boto3 = MagicMock()
    boto3.client.return_value = client

    with patch.dict("sys.modules", {"boto3": boto3}):
        assert resolve_secret("aws-secret://audit/github#token") == "ghp_aws"
    client.get_secret_value.assert_called_once_with(SecretId="audit/github")


@patch("scripts.access_audit.secrets.subprocess.run")
def test_git_credential_password_line(mock_run):
    mock_run.return_value = _completed("protocol=https\nhost=github.com\npassword=ghp_git\n")

    assert token_from_git_credential() == "ghp_git"
    assert mock_run.call_args.kwargs["input"] == "protocol=https\nhost=github.com\n\n"


@patch("scripts.access_audit.secrets.subprocess.run")
def test_git_credential_without_password(mock_run):
    mock_run.return_value = _completed("protocol=https\nhost=github.com\n")

    with pytest.raises(CredentialHelperError, match="no password"):
        token_from_git_credential()


@patch("scripts.access_audit.secrets.subprocess.run")
def test_git_credential_failure(mock_run):
    mock_run.return_value = _completed(returncode=128, stderr="fatal: nope")

    with pytest.raises(CredentialHelperError, match="fatal: nope"):
        token_from_git_credential()


@patch("scripts.access_audit.secrets.token_from_git_credential")
def test_explicit_token_wins(mock_helper, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")

    assert resolve_github_token("from-flag") == "from-flag"
    mock_helper.assert_not_called()


@patch("scripts.access_audit.secrets.token_from_git_credential")
def test_env_token_before_helper(mock_helper, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")

    assert resolve_github_token() == "from-env"
    mock_helper.assert_not_called()


@patch("scripts.access_audit.secrets.token_from_git_credential", return_value="from-helper")
def test_helper_used_last(mock_helper, monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    assert resolve_github_token() == "from-helper"


@patch(
    "scripts.access_audit.secrets.token_from_git_credential",
    side_effect=CredentialHelperError("no helper"),
)
def test_helper_failure_yields_empty_token(mock_helper, monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    assert resolve_github_token() == ""
