"""
THE VAULT
Copyright (c) 2025

Keeps wallet recovery phrases encrypted at rest under a user passphrase.
Callers must complete device authentication (biometric or passcode) before
using this package; no authentication is performed here.
"""
import logging

from .crypto import CryptoManager, derive_key
from .errors import VaultError, InvalidInput, EncryptionFailure, DecryptionFailure, StorageCorrupt, StorageUnavailable
from .storage import EncryptedRecord, PreferenceBackend, MemoryPreferences, FilePreferences, StorageManager
from .vault_manager import VaultController, OperationResult, ErrorKind

logging.getLogger(__name__).addHandler(logging.NullHandler())
