"""
NoteMate Backend — Analytics Snapshot Store
============================================

What:  Reads and writes the analytics aggregate as one JSON document on disk.
Why:   The aggregate must survive restarts without a database.
How:   aiofiles for non-blocking I/O; writes go to a temp file next to the
       target and are moved into place with os.replace, so a reader never
       sees a half-written snapshot. Transient OSErrors are retried with
       tenacity before giving up.
Who:   Used only by AnalyticsService.

Failure contract:
    load()  → None when the file does not exist (first run)
            → SnapshotCorruptError when it is not a JSON object
            → SnapshotStorageError on any other read failure
    save()  → SnapshotStorageError once retries are exhausted
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import aiofiles.os
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from app.config import settings
from app.exceptions import SnapshotCorruptError, SnapshotStorageError

logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    File-backed store for a single JSON snapshot.

    Args:
        path: Override the snapshot location (used in tests).
              If None, uses settings.analytics_file.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or settings.analytics_file)

    def exists(self) -> bool:
        return self.path.is_file()

    async def load(self) -> Optional[Dict[str, Any]]:
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise SnapshotStorageError(
                message="Could not read analytics snapshot",
                context={"path": str(self.path), "error": str(e)},
            ) from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SnapshotCorruptError(
                context={"path": str(self.path), "error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise SnapshotCorruptError(
                message="Analytics snapshot is not a JSON object",
                context={"path": str(self.path), "found": type(data).__name__},
            )
        return data

    async def save(self, snapshot: Dict[str, Any]) -> None:
        """Replace the snapshot on disk with `snapshot`."""
        try:
            await self._write_with_retry(json.dumps(snapshot, indent=2))
        except (OSError, TypeError, ValueError) as e:
            raise SnapshotStorageError(
                context={"path": str(self.path), "error_type": type(e).__name__, "error": str(e)},
            ) from e

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(settings.snapshot_retry_attempts),
        wait=(
            wait_exponential(multiplier=settings.snapshot_retry_min_wait, max=settings.snapshot_retry_max_wait)
            + wait_random(0, settings.snapshot_retry_min_wait)
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _write_with_retry(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Unique temp name: two overlapping checkpoints never share a file
        tmp_path = self.path.with_name(f"{self.path.name}.{uuid.uuid4().hex[:8]}.tmp")
        replaced = False
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, self.path)
            replaced = True
        finally:
            # Also runs on cancellation (write timeout), which is not an OSError
            if not replaced:
                tmp_path.unlink(missing_ok=True)
        logger.debug("Analytics snapshot written to %s (%d bytes)", self.path, len(payload))
