"""
Exceptions raised by the vault core.
"""


class VaultError(Exception):
    """Base class for all vault errors."""


class InvalidInput(VaultError):
    """Text or encoding supplied by the caller is malformed."""


class EncryptionFailure(VaultError):
    """The cipher could not complete an encryption."""


class DecryptionFailure(VaultError):
    """
    Ciphertext could not be opened.

    Wrong passphrase, tag mismatch and truncated or corrupted data all raise
    this same error so callers cannot tell them apart.
    """


class StorageCorrupt(VaultError):
    """The persisted record document cannot be parsed."""


class StorageUnavailable(VaultError):
    """The persistence backend could not be written."""
