"""
Cryptographic operations for THE VAULT.

Recovery phrases are sealed with AES-256-GCM under a key derived from the
user's passphrase. The on-disk format matches the records written by the
mobile app: base64 of ``nonce || ciphertext || tag`` with an all-zero nonce
and a single global salt. Both are known weaknesses (identical inputs give
identical ciphertext) and are kept so that existing records stay readable.
"""

import base64
import logging
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.backends import default_backend
from cryptography.exceptions import InvalidTag

from . import config
from .errors import InvalidInput, EncryptionFailure, DecryptionFailure

logger = logging.getLogger(__name__)


def _encode_text(text: str, what: str) -> bytes:
    if not isinstance(text, str):
        raise InvalidInput(f"{what} must be text, got {type(text).__name__}")
    try:
        return text.encode('utf-8')
    except UnicodeEncodeError as e:
        raise InvalidInput(f"{what} cannot be encoded as UTF-8") from e


def derive_key(passphrase: str) -> bytes:
    """
    Derive the 32-byte AES key for a passphrase.

    The key is SHA-256(passphrase || KEY_DERIVATION_SALT). The same passphrase
    always yields the same key.

    Raises:
        InvalidInput: If the passphrase is not encodable text
    """
    digest = hashes.Hash(hashes.SHA256(), backend=default_backend())
    digest.update(_encode_text(passphrase, "Passphrase"))
    digest.update(config.KEY_DERIVATION_SALT)
    return digest.finalize()


class CryptoManager:
    """Seals and opens recovery phrases with passphrase-derived keys."""

    KEY_SIZE = config.KEY_SIZE
    NONCE_SIZE = config.NONCE_SIZE
    TAG_SIZE = config.TAG_SIZE

    def __init__(self):
        """Initialize the crypto manager."""
        self.backend = default_backend()

    def derive_key(self, passphrase: str) -> bytes:
        return derive_key(passphrase)

    def encrypt(self, plaintext: str, passphrase: str) -> str:
        """
        Encrypt text using AES-256-GCM.

        Args:
            plaintext: Text to protect, usually a recovery phrase
            passphrase: User passphrase the key is derived from

        Returns:
            Base64 text of nonce || ciphertext || tag

        Raises:
            InvalidInput: If plaintext or passphrase is not encodable text
            EncryptionFailure: If the cipher operation fails
        """
        data = _encode_text(plaintext, "Plaintext")
        key = derive_key(passphrase)
        nonce = config.FIXED_NONCE

        try:
            cipher = Cipher(
                algorithms.AES(key),
                modes.GCM(nonce),
                backend=self.backend
            )
            encryptor = cipher.encryptor()
            ciphertext = encryptor.update(data) + encryptor.finalize()
            tag = encryptor.tag
        except Exception as e:
            logger.error(f"Encryption failed: {type(e).__name__}")
            raise EncryptionFailure("Encryption failed") from e

        return base64.b64encode(nonce + ciphertext + tag).decode('ascii')

    def decrypt(self, blob: str, passphrase: str) -> str:
        """
        Decrypt text produced by :meth:`encrypt`.

        Args:
            blob: Base64 text of nonce || ciphertext || tag
            passphrase: User passphrase the key is derived from

        Returns:
            The original plaintext

        Raises:
            InvalidInput: If the blob is not valid, canonical base64 text
            DecryptionFailure: If the data is truncated, fails authentication,
                or does not decode to UTF-8 text
        """
        if not isinstance(blob, str):
            raise InvalidInput(f"Ciphertext must be text, got {type(blob).__name__}")
        try:
            combined = base64.b64decode(blob, validate=True)
        except ValueError as e:
            raise InvalidInput("Ciphertext is not valid base64") from e
        if base64.b64encode(combined).decode('ascii') != blob:
            # only the canonical encoding of the decoded bytes is accepted
            raise InvalidInput("Ciphertext is not canonical base64")

        key = derive_key(passphrase)

        if len(combined) < self.NONCE_SIZE + self.TAG_SIZE:
            raise DecryptionFailure("Decryption failed")

        nonce = combined[:self.NONCE_SIZE]
        ciphertext = combined[self.NONCE_SIZE:-self.TAG_SIZE]
        tag = combined[-self.TAG_SIZE:]

        try:
            cipher = Cipher(
                algorithms.AES(key),
                modes.GCM(nonce, tag),
                backend=self.backend
            )
            decryptor = cipher.decryptor()
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
        except InvalidTag as e:
            raise DecryptionFailure("Decryption failed") from e

        try:
            return plaintext.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecryptionFailure("Decryption failed") from e
