"""Persistence backends for the verification ledger.

Every backend stores the whole ledger as one versioned JSON document::

    {"schema_version": 1, "records": [...]}

A bare JSON array (the layout written before versioning) is still accepted
on read and is upgraded the next time the ledger is written.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import redis

from review_ledger.models.status import DirectoryStatus, FileStatus, PersistenceStatus
from review_ledger.services.errors import StorageUnavailable

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

RecordList = List[Dict[str, Any]]


def encode_document(records: RecordList) -> str:
    return json.dumps({"schema_version": SCHEMA_VERSION, "records": records}, indent=2)


def decode_document(raw: str) -> RecordList:
    """Parse a stored ledger document, raising ValueError if it is malformed."""
    if not raw.strip():
        return []

    data = json.loads(raw)
    if isinstance(data, list):
        records = data
    elif isinstance(data, dict):
        version = data.get("schema_version")
        if version != SCHEMA_VERSION:
            raise ValueError(f"Unsupported ledger schema version: {version!r}")
        records = data.get("records")
        if not isinstance(records, list):
            raise ValueError("Ledger document has no record list")
    else:
        raise ValueError(f"Unexpected ledger document type: {type(data).__name__}")

    if not all(isinstance(item, dict) for item in records):
        raise ValueError("Ledger contains non-object records")
    return records


def _file_status(path: Path, with_count: bool = False) -> FileStatus:
    status = FileStatus(exists=path.exists(), path=str(path))
    if status.exists:
        stats = path.stat()
        status.size = stats.st_size
        status.last_modified = datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc)
        if with_count:
            status.record_count = len(decode_document(path.read_text(encoding="utf-8")))
    return status


class LedgerBackend:
    """Interface implemented by ledger persistence backends."""

    name = "abstract"

    def load(self) -> RecordList:
        """Return every stored record; an absent store is an empty ledger."""
        raise NotImplementedError

    def save(self, records: RecordList, log_line: Optional[str] = None) -> None:
        """Replace the stored ledger with ``records``."""
        raise NotImplementedError

    def status(self) -> PersistenceStatus:
        raise NotImplementedError


class JsonFileBackend(LedgerBackend):
    """Ledger stored as a JSON file, with a backup copy and a verification log."""

    name = "file"

    def __init__(
        self,
        results_path: Path,
        backup_path: Optional[Path] = None,
        log_path: Optional[Path] = None,
    ) -> None:
        self.results_path = Path(results_path)
        self.backup_path = Path(backup_path) if backup_path else None
        self.log_path = Path(log_path) if log_path else None

    def load(self) -> RecordList:
        if not self.results_path.exists():
            return []
        try:
            return decode_document(self.results_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageUnavailable(f"Cannot read ledger {self.results_path}: {exc}") from exc

    def save(self, records: RecordList, log_line: Optional[str] = None) -> None:
        directory = self.results_path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            if self.backup_path and self.results_path.exists():
                shutil.copy2(self.results_path, self.backup_path)

            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".ledger-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(encode_document(records))
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self.results_path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StorageUnavailable(f"Cannot write ledger {self.results_path}: {exc}") from exc

        if log_line and self.log_path:
            try:
                with open(self.log_path, "a", encoding="utf-8") as handle:
                    handle.write(log_line + "\n")
            except OSError as exc:
                logger.warning(f"Failed to append verification log {self.log_path}: {exc}")

    def status(self) -> PersistenceStatus:
        directory = self.results_path.parent
        status = PersistenceStatus(
            backend=self.name,
            schema_version=SCHEMA_VERSION,
            data_directory=DirectoryStatus(exists=directory.exists(), path=str(directory)),
            results_file=FileStatus(exists=False, path=str(self.results_path)),
        )
        try:
            status.results_file = _file_status(self.results_path, with_count=True)
        except (OSError, ValueError) as exc:
            logger.warning(f"Error reading results file: {exc}")
            status.results_file.exists = self.results_path.exists()
            status.available = False
            status.error = str(exc)

        for attr, path in (("backup_file", self.backup_path), ("log_file", self.log_path)):
            if path is None:
                continue
            try:
                setattr(status, attr, _file_status(path))
            except OSError as exc:
                logger.warning(f"Error reading {attr}: {exc}")
                setattr(status, attr, FileStatus(exists=path.exists(), path=str(path)))
        return status


class RedisBackend(LedgerBackend):
    """Ledger stored as a JSON string under a single redis key."""

    name = "redis"

    def __init__(self, client: "redis.Redis", key: str = "review_ledger:verifications") -> None:
        self.client = client
        self.key = key
        self.updated_key = f"{key}:updated_at"

    def _get(self, key: str) -> Optional[str]:
        value = self.client.get(key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def load(self) -> RecordList:
        try:
            raw = self._get(self.key)
            return decode_document(raw) if raw else []
        except (ValueError, redis.RedisError) as exc:
            raise StorageUnavailable(f"Cannot read ledger key {self.key}: {exc}") from exc

    def save(self, records: RecordList, log_line: Optional[str] = None) -> None:
        payload = encode_document(records)
        try:
            self.client.mset({
                self.key: payload,
                self.updated_key: datetime.now(timezone.utc).isoformat(),
            })
        except redis.RedisError as exc:
            raise StorageUnavailable(f"Cannot write ledger key {self.key}: {exc}", retryable=True) from exc
        if log_line:
            logger.info(f"Verification recorded in redis: {log_line}")

    def status(self) -> PersistenceStatus:
        results = FileStatus(exists=False, path=self.key)
        status = PersistenceStatus(backend=self.name, schema_version=SCHEMA_VERSION, results_file=results)
        try:
            raw = self._get(self.key)
            if raw is not None:
                results.exists = True
                results.size = len(raw.encode("utf-8"))
                results.record_count = len(decode_document(raw))
                updated = self._get(self.updated_key)
                results.last_modified = datetime.fromisoformat(updated) if updated else None
        except (ValueError, redis.RedisError) as exc:
            logger.warning(f"Error reading ledger key {self.key}: {exc}")
            status.available = False
            status.error = str(exc)
        return status


class MemoryBackend(LedgerBackend):
    """Process-local ledger, used for ephemeral deployments and tests."""

    name = "memory"

    def __init__(self, records: Optional[RecordList] = None) -> None:
        self._records: RecordList = copy.deepcopy(records or [])
        self._updated_at: Optional[datetime] = None
        self.log: List[str] = []

    def load(self) -> RecordList:
        return copy.deepcopy(self._records)

    def save(self, records: RecordList, log_line: Optional[str] = None) -> None:
        self._records = copy.deepcopy(records)
        self._updated_at = datetime.now(timezone.utc)
        if log_line:
            self.log.append(log_line)

    def status(self) -> PersistenceStatus:
        return PersistenceStatus(
            backend=self.name,
            schema_version=SCHEMA_VERSION,
            results_file=FileStatus(
                exists=self._updated_at is not None or bool(self._records),
                path="memory://ledger",
                size=len(encode_document(self._records)),
                last_modified=self._updated_at,
                record_count=len(self._records),
            ),
        )

