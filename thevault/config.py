"""
Configuration constants for THE VAULT.
"""

import os

# Application Metadata
APP_VERSION = "1.0"  # Use: Current version of the application. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "THE VAULT"  # Use: Full name of the application. Type: str. Range: Any valid string.
APP_DISCLAIMER = """  # Use: Notice printed by the command-line front end. Type: str (multi-line). Range: Any valid string.
THE VAULT keeps wallet recovery phrases encrypted on this device only. Anyone
who learns your passphrase can read every phrase stored under it.
"""

# Security Settings
KEY_SIZE = 32  # Use: Size of the derived encryption key in bytes. Corresponds to AES-256. Type: int. Range: 32 bytes (SHA-256 digest length).
NONCE_SIZE = 12  # Use: Size of the Nonce (Number used once) in bytes for AES-GCM. Type: int. Range: 12 bytes (96 bits) is the recommended size for GCM.
TAG_SIZE = 16  # Use: Size of the authentication tag in bytes for AES-GCM. Type: int. Range: 16 bytes (128 bits).
KEY_DERIVATION_SALT = b"THE_VAULT_SALT"  # Use: Global salt appended to every passphrase before hashing. Shared by all records; changing it makes existing records unreadable. Type: bytes. Range: Fixed value.
FIXED_NONCE = bytes(NONCE_SIZE)  # Use: All-zero nonce used for every encryption. Kept for compatibility with existing records. Type: bytes. Range: NONCE_SIZE zero bytes.
MNEMONIC_WORD_COUNTS = (12, 15, 18, 21, 24)  # Use: Word counts of standard BIP-39 recovery phrases, used only to warn about unusual input. Type: tuple[int]. Range: Positive integers.

# Storage Settings
STORAGE_KEY = "encrypted_mnemonics"  # Use: Preference key under which the whole record sequence is stored. Type: str. Range: Fixed value.
APPLE_REFERENCE_EPOCH = 978307200  # Use: Unix time of 2001-01-01T00:00:00Z, the epoch of numeric timestamps written by the mobile app. Type: int. Range: Fixed value.
HOME_ENV_VAR = "THEVAULT_HOME"  # Use: Environment variable overriding the directory that holds the preferences file. Type: str. Range: Any environment variable name.

# File and Directory Names
CONFIG_DIR_NAME = ".thevault"  # Use: Name of the hidden directory within the user's home directory where THE VAULT stores its data. Type: str. Range: Any valid directory name.
PREFERENCES_FILE = "preferences.json"  # Use: Filename of the key-value preferences document. Type: str. Range: Any valid filename.

# Logging
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'  # Use: Format string passed to logging.basicConfig by the command-line front end. Type: str. Range: Any logging format string.


def get_data_dir() -> str:
    """Directory holding the preferences file, honouring THEVAULT_HOME."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return override
    return os.path.join(os.path.expanduser("~"), CONFIG_DIR_NAME)


def get_default_preferences_path() -> str:
    return os.path.join(get_data_dir(), PREFERENCES_FILE)
