"""Abstract base class for directory providers."""

from __future__ import annotations

import logging
import time
import uuid
from abc import ABC, abstractmethod

from scripts.access_audit.snapshot import DirectorySnapshot

logger = logging.getLogger("access_audit.provider")


class DirectoryProvider(ABC):
    """Each provider overrides fetch() and declares PROVIDER_NAME."""

    PROVIDER_NAME: str = ""

    @abstractmethod
    def fetch(self) -> DirectorySnapshot:
        """Capture the remote directory as an immutable snapshot."""

    def fetch_with_tracking(self) -> DirectorySnapshot:
        """Wrap fetch() with timing and structured start/end logging."""
        run_id = str(uuid.uuid4())
        started = time.monotonic()
        logger.info(
            "Fetch started",
            extra={"entity_type": self.PROVIDER_NAME, "run_id": run_id},
        )
        try:
            snapshot = self.fetch()
        except Exception as exc:
            logger.error(
                "Fetch failed: %s",
                exc,
                extra={"entity_type": self.PROVIDER_NAME, "run_id": run_id},
            )
            raise
        logger.info(
            "Fetch complete",
            extra={
                "entity_type": self.PROVIDER_NAME,
                "org": snapshot.organization,
                "records": len(snapshot.members) + len(snapshot.groups) + len(snapshot.resources),
                "duration_s": round(time.monotonic() - started, 3),
                "run_id": run_id,
            },
        )
        return snapshot

    # ------------------------------------------------------------------
    # Rate-limiting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _rate_limit_sleep(attempt: int, base_seconds: float = 1.0) -> None:
        """Exponential backoff sleep for transient failures."""
        delay = base_seconds * (2 ** attempt)
        delay = min(delay, 60.0)  # cap at 60s
        logger.warning("Backing off, sleeping %.1fs (attempt %d)", delay, attempt)
        time.sleep(delay)
