# =============================================================================
# silentengine/db/request_log.py — Day-partitioned request log
# =============================================================================
# One JSON array per UTC day: <log_dir>/requests-YYYY-MM-DD.json.
# Records are buffered in memory and flushed every 10th append, when the
# buffer overflows (then only the newest half is kept) and on day rollover.
# A flush merges pending records into the persisted partition and swaps the
# file in with os.replace, so readers never see a half-written partition.
# Nothing here raises into the request path: failures are logged.
# =============================================================================

import json
import os
import time
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from silentengine.core.errors import PersistenceError
from silentengine.schemas.log import RequestLog
from silentengine.schemas.request import GenerateRequest
from silentengine.schemas.response import GenerateResponse
from silentengine.security.privacy import PrivacyFilter
from silentengine.utils.logger import logger

PARTITION_PREFIX = "requests-"
PARTITION_SUFFIX = ".json"
ARCHIVE_DIRNAME = "archive"
MAX_LOGS_IN_MEMORY = 1000
FLUSH_EVERY = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def partition_name(day: date) -> str:
    return f"{PARTITION_PREFIX}{day.isoformat()}{PARTITION_SUFFIX}"


class RequestLogger:
    def __init__(
        self,
        log_dir: str | Path,
        privacy: PrivacyFilter,
        max_in_memory: int = MAX_LOGS_IN_MEMORY,
        flush_every: int = FLUSH_EVERY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.archive_dir = self.log_dir / ARCHIVE_DIRNAME
        self.privacy = privacy
        self.max_in_memory = max_in_memory
        self.flush_every = flush_every
        self._clock = clock
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self._buffer: list[dict] = []
        self._pending: dict[Path, list[dict]] = {}
        self._appends_since_flush = 0
        self._partition = self.partition_path(self._clock().date())
        self._hydrate()

    def partition_path(self, day: date) -> Path:
        return self.log_dir / partition_name(day)

    def _hydrate(self) -> None:
        if not self._partition.exists():
            return
        try:
            self._buffer = self._read_partition(self._partition)[-self.max_in_memory:]
            logger.info("request_log_loaded", extra={"count": len(self._buffer), "file": str(self._partition)})
        except PersistenceError as e:
            logger.warning("request_log_load_failed", extra={"file": str(self._partition), "error": str(e)})
            self._buffer = []

    # -------------------------------------------------------------------------
    # write path
    # -------------------------------------------------------------------------

    def append(
        self,
        request: GenerateRequest,
        response: GenerateResponse,
        error: str | None = None,
        fallback_used: bool = False,
    ) -> None:
        try:
            self._append(request, response, error, fallback_used)
        except Exception:
            logger.exception("request_log_append_failed", extra={"request_id": response.request_id})

    def _append(
        self,
        request: GenerateRequest,
        response: GenerateResponse,
        error: str | None,
        fallback_used: bool,
    ) -> None:
        now = self._clock()
        wire_request = request.to_wire()
        wire_request["prompt"] = self.privacy.sanitize(request.prompt, "prompt")
        wire_response = response.to_wire()
        wire_response["content"] = self.privacy.sanitize(response.content, "response")
        entry = RequestLog(
            id=response.request_id,
            timestamp=now.isoformat().replace("+00:00", "Z"),
            request=wire_request,
            response=wire_response,
            error=error or None,
            fallback_used=fallback_used,
        ).to_wire()

        partition = self.partition_path(now.date())
        if partition != self._partition:
            self.flush()
            self._partition = partition
            self._buffer = []
        self._buffer.append(entry)
        self._pending.setdefault(partition, []).append(entry)
        self._appends_since_flush += 1

        if len(self._buffer) > self.max_in_memory:
            self.flush()
            self._buffer = self._buffer[-(self.max_in_memory // 2):]
        elif self._appends_since_flush >= self.flush_every:
            self.flush()

    def flush(self) -> bool:
        self._appends_since_flush = 0
        ok = True
        for path in list(self._pending):
            entries = self._pending[path]
            try:
                self._write_merged(path, entries)
            except (OSError, PersistenceError) as e:
                ok = False
                logger.error(
                    "request_log_save_failed",
                    extra={"file": str(path), "pending": len(entries), "error": str(e)},
                )
                continue
            del self._pending[path]
            logger.debug("request_log_saved", extra={"file": str(path), "count": len(entries)})
        return ok

    def _write_merged(self, path: Path, entries: list[dict]) -> None:
        existing: list[dict] = []
        if path.exists():
            try:
                existing = self._read_partition(path)
            except PersistenceError as e:
                self.archive_dir.mkdir(parents=True, exist_ok=True)
                quarantine = self.archive_dir / f"{path.name}.corrupt-{int(time.time())}"
                os.replace(path, quarantine)
                logger.warning(
                    "request_log_quarantined",
                    extra={"file": str(path), "moved_to": str(quarantine), "error": str(e)},
                )
        tmp = path.with_name(f"{path.name}.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(existing + entries, f, indent=2)
        os.replace(tmp, path)

    def shutdown(self) -> None:
        self.flush()

    # -------------------------------------------------------------------------
    # read path
    # -------------------------------------------------------------------------

    @staticmethod
    def _read_partition(path: Path) -> list[dict]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"could not read {path}: {e}") from e
        if not isinstance(data, list):
            raise PersistenceError(f"{path} does not hold a list of records")
        return data

    def query_range(self, start_date: date | datetime, end_date: date | datetime) -> list[RequestLog]:
        start = start_date.date() if isinstance(start_date, datetime) else start_date
        end = end_date.date() if isinstance(end_date, datetime) else end_date
        records: list[RequestLog] = []
        day = start
        while day <= end:
            path = self.partition_path(day)
            day += timedelta(days=1)
            if not path.exists():
                continue
            try:
                raw = self._read_partition(path)
            except PersistenceError as e:
                logger.warning("request_log_read_failed", extra={"file": str(path), "error": str(e)})
                continue
            for position, item in enumerate(raw):
                try:
                    records.append(RequestLog.model_validate(item))
                except ValidationError as e:
                    logger.warning(
                        "request_log_record_invalid",
                        extra={"file": str(path), "position": position, "error": str(e)},
                    )
        return records

    def recent(self, limit: int = 20) -> list[dict]:
        if limit <= 0:
            return []
        return list(reversed(self._buffer[-limit:]))

    # -------------------------------------------------------------------------
    # archival
    # -------------------------------------------------------------------------

    def archive(self, older_than_days: int | None = None) -> list[str]:
        """Move partitions last modified before the cutoff into archive/.

        Without ``older_than_days`` the privacy retention window decides.
        """
        self.archive_dir.mkdir(parents=True, exist_ok=True)
        now = self._clock()
        archived: list[str] = []
        for path in sorted(self.log_dir.iterdir()):
            name = path.name
            if not path.is_file() or not name.startswith(PARTITION_PREFIX) or not name.endswith(PARTITION_SUFFIX):
                continue
            try:
                modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
                if older_than_days is None:
                    expired = not self.privacy.should_retain(modified, now=now)
                else:
                    expired = modified < now - timedelta(days=older_than_days)
                if not expired:
                    continue
                os.replace(path, self.archive_dir / name)
            except OSError as e:
                logger.error("request_log_archive_failed", extra={"file": name, "error": str(e)})
                continue
            archived.append(name)
            logger.info("request_log_archived", extra={"file": name})
        return archived
