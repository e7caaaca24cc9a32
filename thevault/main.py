"""
Command-line entry point for THE VAULT.

Device authentication is expected to have happened before this tool runs;
it only encrypts, decrypts and manages stored recovery phrases.
"""

import sys
import argparse
import getpass
import logging
from typing import List, Optional

from .storage import FilePreferences, StorageManager
from .errors import VaultError
from .vault_manager import VaultController, OperationResult, looks_like_mnemonic
from . import config

logger = logging.getLogger(__name__)


def _read_secret(prompt: str, given: Optional[str], confirm: bool = False) -> str:
    if given is not None:
        return given
    value = getpass.getpass(prompt)
    if confirm and getpass.getpass("Repeat " + prompt[0].lower() + prompt[1:]) != value:
        raise ValueError("Entries do not match")
    return value


def _report_failure(result: OperationResult) -> int:
    print(f"error: {result.message} ({result.error.value})", file=sys.stderr)
    return 1


def _cmd_encrypt(controller: VaultController, args) -> int:
    mnemonic = _read_secret("Mnemonic: ", args.mnemonic)
    if not looks_like_mnemonic(mnemonic):
        print(f"warning: phrase has {len(mnemonic.split())} words; recovery phrases usually have "
              f"{', '.join(str(n) for n in config.MNEMONIC_WORD_COUNTS)}", file=sys.stderr)
    passphrase = _read_secret("Passphrase: ", args.passphrase, confirm=True)

    result = controller.encrypt(mnemonic, passphrase)
    if not result.ok:
        return _report_failure(result)
    print(result.value)

    if args.save:
        saved = controller.save(args.save)
        if not saved.ok:
            return _report_failure(saved)
        print(f"saved as {saved.value.id}")
    return 0


def _cmd_decrypt(controller: VaultController, args) -> int:
    passphrase = _read_secret("Passphrase: ", args.passphrase)
    result = controller.decrypt(args.ciphertext, passphrase)
    if not result.ok:
        return _report_failure(result)
    print(result.value)
    return 0


def _cmd_show(controller: VaultController, args) -> int:
    passphrase = _read_secret("Passphrase: ", args.passphrase)
    result = controller.decrypt_record(args.record_id, passphrase)
    if not result.ok:
        return _report_failure(result)
    print(result.value)
    return 0


def _cmd_list(controller: VaultController, args) -> int:
    result = controller.list()
    if not result.ok:
        return _report_failure(result)
    for record in result.value:
        print(f"{record.id}  {record.created_at:%Y-%m-%d %H:%M}  {record.name}")
    return 0


def _cmd_delete(controller: VaultController, args) -> int:
    result = controller.delete(args.record_id)
    if not result.ok:
        return _report_failure(result)
    if not result.value:
        print(f"error: no record with id {args.record_id}", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thevault",
        description=f"{config.APP_NAME} v{config.APP_VERSION}: encrypted storage for recovery phrases.",
        epilog=config.APP_DISCLAIMER,
    )
    parser.add_argument("--prefs", default=None,
                        help="Preferences file (default: %s)" % config.get_default_preferences_path())
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("encrypt", help="Encrypt a recovery phrase")
    p.add_argument("--mnemonic", help="Phrase to encrypt (prompted if omitted)")
    p.add_argument("--passphrase", help="Passphrase (prompted if omitted)")
    p.add_argument("--save", metavar="NAME", help="Store the result under NAME")
    p.set_defaults(func=_cmd_encrypt)

    p = sub.add_parser("decrypt", help="Decrypt a ciphertext")
    p.add_argument("ciphertext")
    p.add_argument("--passphrase", help="Passphrase (prompted if omitted)")
    p.set_defaults(func=_cmd_decrypt)

    p = sub.add_parser("list", help="List stored records")
    p.set_defaults(func=_cmd_list)

    p = sub.add_parser("show", help="Decrypt a stored record")
    p.add_argument("record_id")
    p.add_argument("--passphrase", help="Passphrase (prompted if omitted)")
    p.set_defaults(func=_cmd_show)

    p = sub.add_parser("delete", help="Delete a stored record")
    p.add_argument("record_id")
    p.set_defaults(func=_cmd_delete)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format=config.LOG_FORMAT)

    prefs_path = args.prefs or config.get_default_preferences_path()
    with FilePreferences(prefs_path) as backend:
        controller = VaultController(StorageManager(backend))
        try:
            return args.func(controller, args)
        except (ValueError, OSError, VaultError) as e:
            print(f"error: {e}", file=sys.stderr)
            return 1


if __name__ == "__main__":
    sys.exit(main())
