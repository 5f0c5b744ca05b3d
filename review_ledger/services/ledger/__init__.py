"""Verification ledger services package."""

from .backends import (  # noqa: F401
    SCHEMA_VERSION,
    JsonFileBackend,
    LedgerBackend,
    MemoryBackend,
    RedisBackend,
    decode_document,
    encode_document,
)
from .classifier import (  # noqa: F401
    DEFAULT_POSITIVE_LABEL,
    ConfusionClassifier,
    classify_confusion,
)
from .store import (  # noqa: F401
    LedgerSnapshot,
    VerificationLedger,
    build_backend,
    get_ledger,
)

__all__ = [
    "SCHEMA_VERSION",
    "JsonFileBackend",
    "LedgerBackend",
    "MemoryBackend",
    "RedisBackend",
    "decode_document",
    "encode_document",
    "DEFAULT_POSITIVE_LABEL",
    "ConfusionClassifier",
    "classify_confusion",
    "LedgerSnapshot",
    "VerificationLedger",
    "build_backend",
    "get_ledger",
]
