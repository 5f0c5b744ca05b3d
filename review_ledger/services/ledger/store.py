"""Verification ledger: upsert-by-id store of human verdicts."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional, TypeVar

from pydantic import ValidationError

from review_ledger.config.settings import (
    get_backup_file_path,
    get_log_file_path,
    get_results_file_path,
    settings,
)
from review_ledger.models.status import PersistenceStatus
from review_ledger.models.verification import VerificationRecord, VerificationSubmission
from review_ledger.services.errors import InvalidPayload, StorageUnavailable

from .backends import JsonFileBackend, LedgerBackend, MemoryBackend, RedisBackend
from .classifier import ConfusionClassifier

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class LedgerSnapshot:
    """Result of a full ledger read.

    ``available`` is False when the store could not be read; ``records`` is
    then empty and means "unknown", not "no verifications".
    """

    records: List[VerificationRecord] = field(default_factory=list)
    available: bool = True
    error: Optional[str] = None


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "payload"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


class VerificationLedger:
    """Durable, ordered collection of verification records keyed by id.

    The read-modify-write cycle of ``submit`` runs under a single-writer lock
    with backend I/O off the event loop. A write that has started always runs
    to completion, even if the awaiting caller times out or is cancelled; the
    lock is released only once it has finished.
    """

    def __init__(
        self,
        backend: LedgerBackend,
        classifier: Optional[ConfusionClassifier] = None,
        io_timeout: float = 5.0,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.backend = backend
        self.classifier = classifier or ConfusionClassifier(settings.POSITIVE_LABEL)
        self.io_timeout = io_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = asyncio.Lock()

    async def _run_exclusive(self, func: Callable[..., T], *args: Any) -> T:
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=self.io_timeout)
        except asyncio.TimeoutError:
            raise StorageUnavailable("Ledger is busy, retry shortly", retryable=True)

        task = asyncio.ensure_future(asyncio.to_thread(func, *args))

        def _release(done: "asyncio.Future[T]") -> None:
            self._lock.release()
            if not done.cancelled() and done.exception() is not None:
                logger.debug(f"Ledger operation finished with error: {done.exception()}")

        task.add_done_callback(_release)

        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=self.io_timeout)
        except asyncio.TimeoutError:
            raise StorageUnavailable(
                f"Ledger I/O exceeded {self.io_timeout:.1f}s, retry shortly", retryable=True
            )

    def _build_record(self, record_input: Mapping[str, Any]) -> VerificationRecord:
        if not isinstance(record_input, Mapping):
            raise InvalidPayload("Verification payload must be a JSON object")
        try:
            submission = VerificationSubmission.model_validate(record_input)
        except ValidationError as exc:
            raise InvalidPayload(_describe_validation_error(exc)) from exc

        meta = submission.meta
        label = meta.label if meta else None
        return VerificationRecord(
            id=submission.id,
            verdict=submission.verdict,
            label=label,
            confidence=meta.confidence if meta else None,
            predicted_at=meta.predicted_at if meta else None,
            source=meta.source if meta else None,
            timestamp=submission.timestamp or self._clock(),
            confusion=self.classifier.classify(label, submission.verdict),
        )

    def _upsert(self, record: VerificationRecord) -> None:
        stored = [existing.model_dump(mode="json") for existing in self._load_records()]
        entry = record.model_dump(mode="json")

        for index, existing in enumerate(stored):
            if existing.get("id") == record.id:
                stored[index] = entry
                break
        else:
            stored.append(entry)

        confusion = record.confusion.value if record.confusion else "-"
        log_line = (
            f"{entry['timestamp']} {record.id} {record.verdict.value} "
            f"{record.label or '-'} {confusion}"
        )
        self.backend.save(stored, log_line=log_line)

    async def submit(self, record_input: Mapping[str, Any]) -> VerificationRecord:
        """Validate, classify and upsert one verification; returns the stored record.

        Raises:
            InvalidPayload: missing/blank id, unknown verdict, or malformed meta
            StorageUnavailable: the ledger could not be read or written
        """
        record = self._build_record(record_input)
        try:
            await self._run_exclusive(self._upsert, record)
        except StorageUnavailable as exc:
            logger.error(f"Failed to persist verification {record.id}: {exc}", exc_info=True)
            raise

        logger.info(
            f"Verification stored: id={record.id} verdict={record.verdict.value} "
            f"confusion={record.confusion.value if record.confusion else None}"
        )
        return record

    def _load_records(self) -> List[VerificationRecord]:
        records = []
        for raw in self.backend.load():
            try:
                record = VerificationRecord.model_validate(raw)
            except ValidationError as exc:
                raise StorageUnavailable(f"Ledger record {raw.get('id')!r} is malformed: {exc}") from exc
            # Legacy records predate stored confusion
            if "confusion" not in raw:
                record.confusion = self.classifier.classify(record.label, record.verdict)
            records.append(record)
        return records

    async def read_all(self) -> LedgerSnapshot:
        """Every record in ledger order, or an unavailable snapshot if unreadable."""
        try:
            records = await self._run_exclusive(self._load_records)
        except StorageUnavailable as exc:
            logger.warning(f"Ledger read failed, serving empty snapshot: {exc}")
            return LedgerSnapshot(records=[], available=False, error=str(exc))
        return LedgerSnapshot(records=records)

    async def status(self) -> PersistenceStatus:
        return await asyncio.wait_for(asyncio.to_thread(self.backend.status), timeout=self.io_timeout)


def build_backend(backend_name: Optional[str] = None) -> LedgerBackend:
    """Create the persistence backend selected by LEDGER_BACKEND."""
    backend_name = (backend_name or settings.LEDGER_BACKEND).lower()

    if backend_name == "redis":
        from review_ledger.config.redis_config import get_redis_client

        return RedisBackend(get_redis_client(), key=settings.REDIS_LEDGER_KEY)
    if backend_name == "memory":
        return MemoryBackend()

    return JsonFileBackend(
        results_path=get_results_file_path(),
        backup_path=get_backup_file_path(),
        log_path=get_log_file_path(),
    )


_default_ledger: Optional[VerificationLedger] = None


def get_ledger() -> VerificationLedger:
    """Return the global ledger singleton."""

    global _default_ledger
    if _default_ledger is None:
        _default_ledger = VerificationLedger(
            backend=build_backend(),
            classifier=ConfusionClassifier(settings.POSITIVE_LABEL),
            io_timeout=settings.LEDGER_IO_TIMEOUT,
        )
    return _default_ledger
