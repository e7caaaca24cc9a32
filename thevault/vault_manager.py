"""
Vault orchestration: encrypts phrases, keeps the record list in sync and
reports every outcome as an OperationResult instead of raising.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from .crypto import CryptoManager
from .storage import EncryptedRecord, StorageManager
from .errors import (
    VaultError, InvalidInput, EncryptionFailure, DecryptionFailure, StorageCorrupt,
    StorageUnavailable,
)
from . import config

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    INVALID_INPUT = "invalid_input"
    ENCRYPTION_FAILURE = "encryption_failure"
    DECRYPTION_FAILURE = "decryption_failure"
    STORAGE_CORRUPT = "storage_corrupt"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    NOT_FOUND = "not_found"


_ERROR_KINDS = {
    InvalidInput: ErrorKind.INVALID_INPUT,
    EncryptionFailure: ErrorKind.ENCRYPTION_FAILURE,
    DecryptionFailure: ErrorKind.DECRYPTION_FAILURE,
    StorageCorrupt: ErrorKind.STORAGE_CORRUPT,
    StorageUnavailable: ErrorKind.STORAGE_UNAVAILABLE,
}


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a vault operation. ``value`` is only meaningful when ``ok``."""
    ok: bool
    value: Any = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def success(cls, value: Any = None) -> 'OperationResult':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> 'OperationResult':
        return cls(ok=False, error=error, message=message)

    @classmethod
    def from_error(cls, exc: VaultError) -> 'OperationResult':
        for exc_type, kind in _ERROR_KINDS.items():
            if isinstance(exc, exc_type):
                return cls.failure(kind, str(exc))
        raise exc


def normalize_mnemonic(text: str) -> str:
    """Collapse runs of whitespace and lowercase a recovery phrase."""
    return " ".join(text.split()).lower()


def looks_like_mnemonic(text: str) -> bool:
    """True if the phrase has a standard recovery-phrase word count."""
    return len(text.split()) in config.MNEMONIC_WORD_COUNTS


class VaultController:
    """
    Combines encryption and record storage for callers.

    The most recent successful encryption is held in ``pending_ciphertext``
    until it is saved. ``records`` mirrors the store after every operation
    that may change it. Passphrases and keys are never retained.
    """

    def __init__(self, storage: StorageManager, crypto: Optional[CryptoManager] = None):
        self.storage = storage
        self.crypto = crypto or CryptoManager()
        self.records: List[EncryptedRecord] = []
        self.pending_ciphertext: Optional[str] = None
        self.last_error: Optional[OperationResult] = None
        self.refresh()

    def _storage_call(self, operation, *args) -> OperationResult:
        try:
            return OperationResult.success(operation(*args))
        except (StorageCorrupt, StorageUnavailable) as e:
            logger.error(f"Storage operation failed: {e}")
            self.last_error = OperationResult.from_error(e)
            return self.last_error

    def refresh(self) -> OperationResult:
        """
        Reload the record list from storage.

        On failure ``records`` is emptied and the failure is kept in
        ``last_error``.
        """
        result = self._storage_call(self.storage.get_records)
        if result.ok:
            self.records = result.value
            self.last_error = None
        else:
            self.records = []
        return result

    def list(self) -> OperationResult:
        return self.refresh()

    def encrypt(self, mnemonic: str, passphrase: str) -> OperationResult:
        """Encrypt a phrase and hold the ciphertext pending an explicit save."""
        try:
            ciphertext = self.crypto.encrypt(mnemonic, passphrase)
        except (InvalidInput, EncryptionFailure) as e:
            logger.warning(f"Encryption rejected: {e}")
            return OperationResult.from_error(e)
        self.pending_ciphertext = ciphertext
        return OperationResult.success(ciphertext)

    def decrypt(self, ciphertext: str, passphrase: str) -> OperationResult:
        try:
            return OperationResult.success(self.crypto.decrypt(ciphertext, passphrase))
        except (InvalidInput, DecryptionFailure) as e:
            logger.info(f"Decryption rejected: {e}")
            return OperationResult.from_error(e)

    def decrypt_record(self, record_id: str, passphrase: str) -> OperationResult:
        """
        Decrypt a stored record and mark it accessed on success.

        If the access time cannot be written the plaintext is still returned
        and the write failure is kept in ``last_error``.
        """
        lookup = self._storage_call(self.storage.get_record, record_id)
        if not lookup.ok:
            return lookup
        if lookup.value is None:
            return OperationResult.failure(ErrorKind.NOT_FOUND, f"No record with id {record_id}")
        result = self.decrypt(lookup.value.ciphertext, passphrase)
        if result.ok:
            touched = self._storage_call(self.storage.touch, record_id)
            if touched.ok:
                self.refresh()
        return result

    def save(self, name: str, ciphertext: Optional[str] = None) -> OperationResult:
        """
        Persist ciphertext as a new named record.

        Without an explicit ciphertext the pending result of the last
        :meth:`encrypt` is saved and then cleared.
        """
        use_pending = ciphertext is None
        if use_pending:
            ciphertext = self.pending_ciphertext
        if not isinstance(name, str) or not name.strip():
            return OperationResult.failure(ErrorKind.INVALID_INPUT, "Record name must not be empty")
        if not isinstance(ciphertext, str) or not ciphertext:
            return OperationResult.failure(ErrorKind.INVALID_INPUT, "Nothing to save")

        record = EncryptedRecord.create(name, ciphertext)
        try:
            self.storage.add_record(record)
        except VaultError as e:
            logger.error(f"Could not save record {name!r}: {e}")
            return OperationResult.from_error(e)
        if use_pending:
            self.pending_ciphertext = None
        self.refresh()
        return OperationResult.success(record)

    def delete(self, record_id: str) -> OperationResult:
        """Delete a record. ``value`` is False when no record had that id."""
        result = self._storage_call(self.storage.delete_record, record_id)
        if result.ok:
            self.refresh()
        return result

    def touch(self, record_id: str) -> OperationResult:
        """Mark a record accessed. ``value`` is False when no record had that id."""
        result = self._storage_call(self.storage.touch, record_id)
        if result.ok:
            self.refresh()
        return result
