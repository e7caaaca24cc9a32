"""
Storage management for THE VAULT.

Encrypted recovery phrases are kept as an ordered list of records. The whole
list is serialized as one JSON document and written under a single key of a
key-value preference backend, so every change rewrites the full list.
"""

import os
import json
import uuid
import datetime
import threading
import logging
import shutil
from typing import List, Dict, Optional, Any
from dataclasses import dataclass, replace

from .utils import set_owner_only_permissions
from .errors import InvalidInput, StorageCorrupt, StorageUnavailable
from . import config

logger = logging.getLogger(__name__)


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _format_timestamp(value: datetime.datetime) -> str:
    return value.isoformat()


def _parse_timestamp(value: Any) -> datetime.datetime:
    """
    Parse a stored timestamp.

    ISO-8601 strings are what this package writes. Numbers are seconds since
    2001-01-01 UTC, the encoding used by records from the mobile app.
    Naive values are taken to be UTC.
    """
    if isinstance(value, bool):
        raise ValueError("Boolean is not a timestamp")
    if isinstance(value, (int, float)):
        try:
            return datetime.datetime.fromtimestamp(
                config.APPLE_REFERENCE_EPOCH + value, tz=datetime.timezone.utc
            )
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    if isinstance(value, str):
        # fromisoformat only accepts a trailing Z from Python 3.11
        if value.endswith(("Z", "z")):
            value = value[:-1] + "+00:00"
        parsed = datetime.datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=datetime.timezone.utc)
        return parsed
    raise ValueError(f"Unsupported timestamp: {value!r}")


@dataclass(frozen=True)
class EncryptedRecord:
    """
    A named, encrypted recovery phrase.

    Records are immutable; touching one stores a copy with a new
    last_accessed.
    """
    id: str
    name: str
    ciphertext: str
    created_at: datetime.datetime
    last_accessed: datetime.datetime

    @classmethod
    def create(cls, name: str, ciphertext: str) -> 'EncryptedRecord':
        """Create a new record with a fresh id and both timestamps set to now."""
        now = _now()
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            ciphertext=ciphertext,
            created_at=now,
            last_accessed=now,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted field layout."""
        return {
            'id': self.id,
            'name': self.name,
            'encryptedData': self.ciphertext,
            'createdAt': _format_timestamp(self.created_at),
            'lastAccessed': _format_timestamp(self.last_accessed),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EncryptedRecord':
        """
        Create from the persisted field layout.

        Raises:
            KeyError, TypeError, ValueError: If the data is malformed
        """
        for field in ('id', 'name', 'encryptedData'):
            if not isinstance(data[field], str):
                raise TypeError(f"Field {field} must be a string")
        return cls(
            id=data['id'],
            name=data['name'],
            ciphertext=data['encryptedData'],
            created_at=_parse_timestamp(data['createdAt']),
            last_accessed=_parse_timestamp(data['lastAccessed']),
        )


class PreferenceBackend:
    """
    Key-value store holding text values.

    Backends must be closed when no longer needed; using a closed backend
    raises RuntimeError.
    """

    def __init__(self):
        self._closed = False

    def load(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if there is none."""
        raise NotImplementedError

    def store(self, key: str, value: str) -> None:
        """Replace the value stored under key."""
        raise NotImplementedError

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Preferences are closed")

    def __enter__(self) -> 'PreferenceBackend':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class MemoryPreferences(PreferenceBackend):
    """In-process backend, used by tests and short-lived sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__()
        self._values: Dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[str]:
        self._check_open()
        return self._values.get(key)

    def store(self, key: str, value: str) -> None:
        self._check_open()
        self._values[key] = value

    def close(self) -> None:
        self._values.clear()
        super().close()


class FilePreferences(PreferenceBackend):
    """
    Backend persisting all keys in one JSON object on disk.

    Writes go to a temporary file that then replaces the target, and the file
    is restricted to its owner.
    """

    def __init__(self, filepath: str):
        """
        Args:
            filepath: Path to the preferences document
        """
        super().__init__()
        self.filepath = filepath

    def _read_all(self) -> Dict[str, Any]:
        if not os.path.exists(self.filepath):
            return {}
        try:
            with open(self.filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageCorrupt(f"Cannot read preferences file {self.filepath}") from e
        if not isinstance(data, dict):
            raise StorageCorrupt(f"Preferences file {self.filepath} does not hold an object")
        return data

    def load(self, key: str) -> Optional[str]:
        """
        Raises:
            StorageCorrupt: If the preferences file cannot be parsed
        """
        self._check_open()
        value = self._read_all().get(key)
        if value is not None and not isinstance(value, str):
            raise StorageCorrupt(f"Preference {key} is not text")
        return value

    def store(self, key: str, value: str) -> None:
        """
        Raises:
            StorageUnavailable: If the preferences file cannot be written
        """
        self._check_open()
        try:
            data = self._read_all()
        except StorageCorrupt:
            logger.warning(f"Preferences file {self.filepath} is unreadable; replacing it.")
            data = {}
        data[key] = value

        tmp_path = self.filepath + '.tmp'
        try:
            directory = os.path.dirname(self.filepath)
            if directory:
                os.makedirs(directory, exist_ok=True)

            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)

            # Atomic replace using shutil.move
            shutil.move(tmp_path, self.filepath)

            if not set_owner_only_permissions(self.filepath):
                logger.warning(f"Failed to set secure file permissions for preferences: {self.filepath}.")

        except OSError as e:
            logger.error(f"Error saving preferences file {self.filepath}: {e}", exc_info=True)
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageUnavailable(f"Cannot write preferences file {self.filepath}: {e.strerror or e}") from e


class StorageManager:
    """
    Manages the persisted sequence of encrypted records.

    Each mutation reads the full sequence, changes it and writes it back.
    A lock serializes these cycles between threads sharing this instance;
    separate processes writing the same backend are last-write-wins.
    """

    def __init__(self, backend: PreferenceBackend, strict: bool = False,
                 key: str = config.STORAGE_KEY):
        """
        Initialize storage manager.
        Args:
            backend: Preference backend holding the record document
            strict: Raise StorageCorrupt on unreadable data instead of
                treating the store as empty
            key: Preference key of the record document
        """
        self.backend = backend
        self.strict = strict
        self.key = key
        self._lock = threading.Lock()

    def _load(self) -> List[EncryptedRecord]:
        try:
            raw = self.backend.load(self.key)
            if raw is None:
                return []
            data = json.loads(raw)
            if not isinstance(data, list):
                raise StorageCorrupt(f"Record document under {self.key} is not a list")
            records = [EncryptedRecord.from_dict(item) for item in data]
        except (StorageCorrupt, ValueError, KeyError, TypeError) as e:
            if self.strict:
                if isinstance(e, StorageCorrupt):
                    raise
                raise StorageCorrupt(f"Record document under {self.key} is malformed") from e
            logger.warning(f"Record document under {self.key} is unreadable, treating store as empty: {e}")
            return []
        return records

    def _save(self, records: List[EncryptedRecord]) -> None:
        self.backend.store(self.key, json.dumps([r.to_dict() for r in records]))

    def get_records(self) -> List[EncryptedRecord]:
        """Get all records in insertion order."""
        with self._lock:
            return self._load()

    def get_record(self, record_id: str) -> Optional[EncryptedRecord]:
        with self._lock:
            for record in self._load():
                if record.id == record_id:
                    return record
            return None

    def add_record(self, record: EncryptedRecord) -> None:
        """
        Append a record. Names are not deduplicated.

        Raises:
            InvalidInput: If a record with the same id is already stored
        """
        with self._lock:
            records = self._load()
            if any(r.id == record.id for r in records):
                raise InvalidInput(f"Record {record.id} already exists")
            records.append(record)
            self._save(records)
            logger.info(f"Saved record {record.id} ({record.name!r})")

    def delete_record(self, record_id: str) -> bool:
        """
        Delete a record.

        Returns:
            True if a record was removed
        """
        with self._lock:
            records = self._load()
            remaining = [r for r in records if r.id != record_id]
            if len(remaining) == len(records):
                return False
            self._save(remaining)
            logger.info(f"Deleted record {record_id}")
            return True

    def touch(self, record_id: str) -> bool:
        """
        Mark a record as accessed now. The timestamp never moves backwards.

        Returns:
            True if the record exists
        """
        with self._lock:
            records = self._load()
            for i, record in enumerate(records):
                if record.id == record_id:
                    now = _now()
                    if now > record.last_accessed:
                        records[i] = replace(record, last_accessed=now)
                    self._save(records)
                    return True
            return False
