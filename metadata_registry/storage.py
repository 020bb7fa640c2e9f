"""
NFT Metadata Registry - Storage Backends

This module provides the key-value stores backing the metadata and URI
stores: an in-memory store and a JSON file store with locked, atomic
updates and optional compression.
"""

import fcntl
import gzip
import json
import logging
import os
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional, Union

from .schema import MetadataRecord, UriRecord


logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base storage exception."""
    pass


class LockTimeoutError(StorageError):
    """Lock acquisition timeout exception."""
    pass


class IntegrityError(StorageError):
    """Stored document could not be decoded."""
    pass


class KeyValueStore(ABC):
    """Minimal key-value interface the registry stores are built on."""

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def contains(self, key: str) -> bool:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        pass


class InMemoryStore(KeyValueStore):
    """Dictionary-backed store."""

    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._data.get(key)
        return dict(value) if value is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        self._data[key] = dict(value)

    def contains(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> List[str]:
        return list(self._data.keys())


class FileLock:
    """Exclusive lock file next to the guarded file."""

    def __init__(self, file_path: Union[str, Path], timeout: float = 30.0):
        self.file_path = Path(file_path)
        self.lock_file_path = self.file_path.with_suffix(self.file_path.suffix + '.lock')
        self.timeout = timeout
        self.lock_fd = None
        self._thread_lock = RLock()

    def acquire(self) -> bool:
        """Acquire file lock with timeout."""
        with self._thread_lock:
            if self.lock_fd is not None:
                return True

            start_time = time.time()

            while time.time() - start_time < self.timeout:
                try:
                    self.lock_fd = os.open(
                        str(self.lock_file_path),
                        os.O_CREAT | os.O_EXCL | os.O_RDWR
                    )
                except FileExistsError:
                    time.sleep(0.05)
                    continue
                except OSError as e:
                    raise StorageError(f"Failed to acquire lock: {e}")

                try:
                    fcntl.flock(self.lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    return True
                except BlockingIOError:
                    os.close(self.lock_fd)
                    os.unlink(self.lock_file_path)
                    self.lock_fd = None

            raise LockTimeoutError(f"Failed to acquire lock within {self.timeout} seconds")

    def release(self) -> None:
        """Release file lock."""
        with self._thread_lock:
            if self.lock_fd is None:
                return

            try:
                fcntl.flock(self.lock_fd, fcntl.LOCK_UN)
                os.close(self.lock_fd)
                os.unlink(self.lock_file_path)
            except OSError as e:
                # Do not mask an exception raised inside the locked block
                logger.warning(f"Failed to release lock {self.lock_file_path}: {e}")
            finally:
                self.lock_fd = None

    def is_locked(self) -> bool:
        return self.lock_fd is not None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class JSONFileStore(KeyValueStore):
    """Key-value store persisted as a single JSON document."""

    def __init__(
        self,
        file_path: Union[str, Path],
        compressed: bool = False,
        lock_timeout: float = 30.0
    ):
        self.file_path = Path(file_path)
        self.compressed = compressed
        self.lock_timeout = lock_timeout

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        if not self.file_path.exists():
            with self._lock_context():
                if not self.file_path.exists():
                    self._write_document({})

    def _read_bytes(self) -> bytes:
        if self.compressed:
            with gzip.open(self.file_path, 'rb') as f:
                return f.read()
        with open(self.file_path, 'rb') as f:
            return f.read()

    def _load_document(self) -> Dict[str, Any]:
        """Read and decode the document. Caller must hold the lock."""
        try:
            data = self._read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {self.file_path}: {e}")

        if not data:
            return {}

        try:
            document = json.loads(data.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise IntegrityError(f"Invalid JSON data in {self.file_path}: {e}")

        if not isinstance(document, dict):
            raise IntegrityError(f"Expected a JSON object in {self.file_path}")
        return document

    def _write_document(self, document: Dict[str, Any]) -> None:
        """Write the document atomically via a temporary file and rename."""
        json_data = json.dumps(document, indent=2, sort_keys=True).encode('utf-8')
        temp_file = self.file_path.with_suffix(self.file_path.suffix + '.tmp')

        try:
            if self.compressed:
                with gzip.open(temp_file, 'wb') as f:
                    f.write(json_data)
            else:
                with open(temp_file, 'wb') as f:
                    f.write(json_data)
            os.replace(temp_file, self.file_path)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StorageError(f"Failed to write {self.file_path}: {e}")

    @contextmanager
    def _lock_context(self):
        with FileLock(self.file_path, timeout=self.lock_timeout):
            yield

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock_context():
            return self._load_document().get(key)

    def set(self, key: str, value: Dict[str, Any]) -> None:
        with self._lock_context():
            document = self._load_document()
            document[key] = value
            self._write_document(document)

    def contains(self, key: str) -> bool:
        with self._lock_context():
            return key in self._load_document()

    def keys(self) -> List[str]:
        with self._lock_context():
            return list(self._load_document().keys())

    def size(self) -> int:
        """Get storage file size in bytes."""
        if not self.file_path.exists():
            return 0
        return self.file_path.stat().st_size


class MetadataStore:
    """Token id to MetadataRecord mapping."""

    def __init__(self, backend: KeyValueStore):
        self.backend = backend

    def get(self, token_id: int) -> Optional[MetadataRecord]:
        data = self.backend.get(str(token_id))
        return MetadataRecord.model_validate(data) if data is not None else None

    def put(self, token_id: int, record: MetadataRecord) -> None:
        self.backend.set(str(token_id), record.model_dump(mode='json'))

    def contains(self, token_id: int) -> bool:
        return self.backend.contains(str(token_id))

    def token_ids(self) -> List[int]:
        return sorted(int(key) for key in self.backend.keys())

    def latest_marker(self) -> int:
        """Highest updated_at among stored records, 0 when empty."""
        markers = [
            record.updated_at
            for record in (self.get(token_id) for token_id in self.token_ids())
            if record is not None
        ]
        return max(markers, default=0)


class UriStore:
    """Token id to UriRecord mapping."""

    def __init__(self, backend: KeyValueStore):
        self.backend = backend

    def get(self, token_id: int) -> Optional[UriRecord]:
        data = self.backend.get(str(token_id))
        return UriRecord.model_validate(data) if data is not None else None

    def put(self, token_id: int, record: UriRecord) -> None:
        self.backend.set(str(token_id), record.model_dump(mode='json'))

    def contains(self, token_id: int) -> bool:
        return self.backend.contains(str(token_id))

    def token_ids(self) -> List[int]:
        return sorted(int(key) for key in self.backend.keys())
