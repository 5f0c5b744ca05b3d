"""
Status Models - Operational view of the ledger's backing store
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class DirectoryStatus(BaseModel):
    exists: bool
    path: str


class FileStatus(BaseModel):
    exists: bool
    path: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    record_count: Optional[int] = None


class PersistenceStatus(BaseModel):
    """Where the ledger lives and what is currently on disk (or in redis)."""

    backend: str
    schema_version: int
    data_directory: Optional[DirectoryStatus] = None
    results_file: FileStatus
    backup_file: Optional[FileStatus] = None
    log_file: Optional[FileStatus] = None
    available: bool = True
    error: Optional[str] = None
