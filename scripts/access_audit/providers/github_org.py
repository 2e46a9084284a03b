"""GitHub organisation provider: members, emails, teams, repos, access."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import requests

from scripts.access_audit.base_provider import DirectoryProvider
from scripts.access_audit.config import GitHubConfig
from scripts.access_audit.snapshot import DirectorySnapshot, Group, Identity, Resource

logger = logging.getLogger("access_audit.github")

_RETRYABLE_STATUS = {500, 502, 503, 504}
_SECONDARY_LIMIT_DEFAULT_S = 60.0


class GitHubApiError(RuntimeError):
    """An unrecoverable GitHub REST API failure."""

    def __init__(self, message: str, status: Optional[int] = None, url: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.url = url


class GitHubOrgProvider(DirectoryProvider):
    PROVIDER_NAME = "github"

    def __init__(self, config: GitHubConfig, session: Optional[requests.Session] = None) -> None:
        self._org = config.org
        self._base = config.api_base_url.rstrip("/")
        self._max_retries = config.max_retries
        self._timeout = config.request_timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"token {config.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    @staticmethod
    def _rate_limit_wait(resp: requests.Response) -> Optional[float]:
        """Seconds to wait if ``resp`` is a rate-limit rejection, else None."""
        if resp.status_code not in (403, 429):
            return None
        retry_after = resp.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return max(float(retry_after), 1.0)
            except ValueError:
                return _SECONDARY_LIMIT_DEFAULT_S
        if resp.headers.get("X-RateLimit-Remaining") == "0":
            reset = int(resp.headers.get("X-RateLimit-Reset", "0"))
            return max(reset - time.time(), 0.0) + 1.0
        if "rate limit" in resp.text.lower():
            return _SECONDARY_LIMIT_DEFAULT_S
        return None

    def _request(
        self, url: str, params: Optional[dict], allow_missing: bool = False
    ) -> Optional[requests.Response]:
        """GET with rate-limit waits and transient-failure retries.

        Returns None for a 404 when ``allow_missing`` is set.
        """
        attempt = 0
        while True:
            try:
                resp = self._session.get(url, params=params, timeout=self._timeout)
            except (requests.ConnectionError, requests.Timeout) as exc:
                if attempt >= self._max_retries:
                    raise GitHubApiError(f"GET {url} failed: {exc}", url=url) from exc
                self._rate_limit_sleep(attempt)
                attempt += 1
                continue

            wait = self._rate_limit_wait(resp)
            if wait is not None:
                if attempt >= self._max_retries:
                    raise GitHubApiError(
                        "GitHub rate limit exceeded after retries",
                        status=resp.status_code,
                        url=url,
                    )
                logger.warning("GitHub rate limit hit, waiting %.0fs", wait)
                time.sleep(wait)
                attempt += 1
                continue

            if resp.status_code in _RETRYABLE_STATUS and attempt < self._max_retries:
                self._rate_limit_sleep(attempt)
                attempt += 1
                continue

            if resp.status_code == 404 and allow_missing:
                return None

            try:
                resp.raise_for_status()
            except requests.HTTPError as exc:
                raise GitHubApiError(
                    f"GET {url} returned {resp.status_code}",
                    status=resp.status_code,
                    url=url,
                ) from exc
            return resp

    def _get_paginated(
        self, url: str, params: Optional[dict] = None, allow_missing: bool = False
    ) -> list[dict]:
        """Fetch all pages from a GitHub REST API endpoint."""
        results: list[dict] = []
        params = dict(params or {})
        params.setdefault("per_page", "100")

        while url:
            resp = self._request(url, params, allow_missing=allow_missing)
            if resp is None:
                logger.info("Skipping missing resource %s", url)
                return results
            data = resp.json()
            if isinstance(data, list):
                results.extend(data)
            else:
                results.append(data)

            # Follow Link header for pagination
            url = ""
            params = {}
            link = resp.headers.get("Link", "")
            for part in link.split(","):
                if 'rel="next"' in part:
                    url = part.split(";")[0].strip().strip("<>")
                    break
        return results

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def fetch(self) -> DirectorySnapshot:
        org = self._org

        logger.info("Fetching organization members", extra={"org": org})
        member_logins = [m["login"] for m in self._get_paginated(f"{self._base}/orgs/{org}/members")]

        logger.info("Fetching user emails", extra={"org": org})
        members, emails_available = self._fetch_identities(member_logins)
        if not emails_available:
            logger.warning("Emails unavailable for some members", extra={"org": org})
        by_key = {identity.key: identity for identity in members}

        logger.info("Fetching teams", extra={"org": org})
        teams = self._get_paginated(f"{self._base}/orgs/{org}/teams")
        groups = tuple(_group_from_payload(t) for t in teams)
        groups_by_id = {group.id: group for group in groups}

        logger.info("Fetching team members", extra={"org": org, "records": len(teams)})
        group_members: dict[int, tuple[Identity, ...]] = {}
        for team in teams:
            users = self._get_paginated(
                f"{self._base}/orgs/{org}/teams/{team['slug']}/members"
            )
            group_members[team["id"]] = tuple(_identity(u["login"], by_key) for u in users)

        logger.info("Fetching repositories", extra={"org": org})
        repos = self._get_paginated(f"{self._base}/orgs/{org}/repos")

        logger.info("Fetching repository access", extra={"org": org, "records": len(repos)})
        resources = tuple(
            self._fetch_resource(repo["name"], groups_by_id, by_key) for repo in repos
        )

        return DirectorySnapshot(
            organization=org,
            members=members,
            groups=groups,
            group_members=group_members,
            resources=resources,
            emails_available=emails_available,
        )

    def _fetch_identities(self, logins: list[str]) -> tuple[tuple[Identity, ...], bool]:
        """Look up each member's public email. Failures leave the email unset."""
        identities: list[Identity] = []
        all_available = True
        for login in logins:
            email = None
            try:
                resp = self._request(f"{self._base}/users/{login}", None, allow_missing=True)
            except GitHubApiError as exc:
                logger.warning("Could not fetch user %s: %s", login, exc)
                resp = None
            if resp is not None:
                email = resp.json().get("email") or None
            if email is None:
                all_available = False
            identities.append(Identity(login, email))
        return tuple(identities), all_available

    def _fetch_resource(
        self,
        repo_name: str,
        groups_by_id: dict[int, Group],
        by_key: dict[str, Identity],
    ) -> Resource:
        org = self._org
        teams = self._get_paginated(
            f"{self._base}/repos/{org}/{repo_name}/teams", allow_missing=True
        )
        collaborators = self._get_paginated(
            f"{self._base}/repos/{org}/{repo_name}/collaborators",
            params={"affiliation": "all"},
            allow_missing=True,
        )
        return Resource(
            name=repo_name,
            groups=tuple(groups_by_id.get(t["id"]) or _group_from_payload(t) for t in teams),
            accessors=tuple(_identity(c["login"], by_key) for c in collaborators),
        )


def _group_from_payload(team: dict[str, Any]) -> Group:
    parent = team.get("parent") or {}
    return Group(id=team["id"], name=team["name"], parent_id=parent.get("id"))


def _identity(login: str, by_key: dict[str, Identity]) -> Identity:
    return by_key.get(login.lower()) or Identity(login)
