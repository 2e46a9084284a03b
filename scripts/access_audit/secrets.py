"""GitHub token acquisition.

Precedence: explicit value (CLI flag) > ``GITHUB_TOKEN`` env var > the git
credential helper for github.com. Any of the first two may be a cloud secret
reference, resolved through AWS Secrets Manager or GCP Secret Manager.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from typing import Optional

logger = logging.getLogger("access_audit.secrets")

# Prefixes that indicate a cloud secret reference
_AWS_PREFIX = "aws-secret://"
_GCP_PREFIX = "gcp-secret://"

_CREDENTIAL_REQUEST = "protocol=https\nhost=github.com\n\n"


class CredentialHelperError(RuntimeError):
    """``git credential fill`` failed or returned no password."""


def resolve_secret(value: str) -> str:
    """Resolve a secret reference to its plaintext value.

    Supported formats:
      - "aws-secret://secret-name"         -> AWS Secrets Manager
      - "aws-secret://secret-name#key"     -> AWS Secrets Manager (JSON key)
      - "gcp-secret://project/secret/ver"  -> GCP Secret Manager
      - anything else                      -> returned as-is (env var / literal)
    """
    if value.startswith(_AWS_PREFIX):
        return _resolve_aws_secret(value[len(_AWS_PREFIX):])
    if value.startswith(_GCP_PREFIX):
        return _resolve_gcp_secret(value[len(_GCP_PREFIX):])
    return value


def _resolve_aws_secret(ref: str) -> str:
    """Fetch a secret from AWS Secrets Manager.

    ref format: "secret-name" or "secret-name#json_key"
    """
    import boto3

    secret_name, _, json_key = ref.partition("#")

    region = os.environ.get("AWS_REGION", "us-east-1")
    client = boto3.client("secretsmanager", region_name=region)

    resp = client.get_secret_value(SecretId=secret_name)
    secret_string = resp["SecretString"]

    if json_key:
        data = json.loads(secret_string)
        return str(data[json_key])
    return secret_string


def _resolve_gcp_secret(ref: str) -> str:
    """Fetch a secret from GCP Secret Manager.

    ref format: "projects/PROJECT/secrets/NAME/versions/VERSION"
             or "NAME" (requires GCP_PROJECT_ID, latest version)
    """
    from google.cloud import secretmanager

    if ref.startswith("projects/"):
        name = ref
    else:
        project = os.environ.get("GCP_PROJECT_ID", "")
        if not project:
            project = _gcp_project_from_metadata()
        name = f"projects/{project}/secrets/{ref}/versions/latest"

    client = secretmanager.SecretManagerServiceClient()
    response = client.access_secret_version(request={"name": name})
    return response.payload.data.decode("UTF-8")


def _gcp_project_from_metadata() -> str:
    """Fetch the GCP project ID from the metadata server (Cloud Run/GCE only)."""
    import requests

    try:
        resp = requests.get(
            "http://metadata.google.internal/computeMetadata/v1/project/project-id",
            headers={"Metadata-Flavor": "Google"},
            timeout=2,
        )
        resp.raise_for_status()
        return resp.text
    except requests.RequestException as exc:
        raise RuntimeError(
            "Cannot determine GCP project ID. Set GCP_PROJECT_ID env var."
        ) from exc


def token_from_git_credential() -> str:
    """Ask the configured git credential helper for a github.com password."""
    try:
        proc = subprocess.run(
            ["git", "credential", "fill"],
            input=_CREDENTIAL_REQUEST,
            capture_output=True,
            text=True,
            check=False,
            timeout=30,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise CredentialHelperError(f"git credential fill failed: {exc}") from exc

    if proc.returncode != 0:
        raise CredentialHelperError(
            f"git credential fill failed: exit {proc.returncode}: {proc.stderr.strip()}"
        )
    for line in proc.stdout.splitlines():
        if line.startswith("password="):
            return line[len("password="):]
    raise CredentialHelperError("no password found in git credential output")


def resolve_github_token(explicit: Optional[str] = None) -> str:
    """Return the first available token, or "" when none can be found."""
    raw = explicit or os.environ.get("GITHUB_TOKEN", "")
    if raw:
        return resolve_secret(raw)
    try:
        return token_from_git_credential()
    except CredentialHelperError as exc:
        logger.warning("Could not get token from git credential helper: %s", exc)
        return ""
