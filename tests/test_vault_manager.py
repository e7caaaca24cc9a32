# Tests for VaultController orchestration
#
# Coverage:
#   - The ledger scenario: encrypt, decrypt, wrong passphrase, save, list
#   - OperationResult tagging for every failure kind
#   - Pending ciphertext lifecycle
#   - Stored-record decryption touches the record
#   - Delete and refresh keep the in-memory view current
#   - Storage failures reported as results, never raised
#   - Mnemonic helpers

import datetime

import pytest

from thevault import config, storage
from thevault.crypto import CryptoManager
from thevault.errors import EncryptionFailure, StorageUnavailable
from thevault.storage import FilePreferences, MemoryPreferences, StorageManager
from thevault.vault_manager import (
    ErrorKind,
    OperationResult,
    VaultController,
    looks_like_mnemonic,
    normalize_mnemonic,
)

from conftest import MNEMONIC, PASSPHRASE


# ── Scenario ────────────────────────────────────────────────────────


def test_ledger_scenario(controller):
    encrypted = controller.encrypt(MNEMONIC, PASSPHRASE)
    assert encrypted.ok
    ciphertext = encrypted.value

    assert controller.decrypt(ciphertext, PASSPHRASE).value == MNEMONIC

    wrong = controller.decrypt(ciphertext, "wrong-pass")
    assert not wrong.ok
    assert wrong.error is ErrorKind.DECRYPTION_FAILURE

    saved = controller.save("My Ledger", ciphertext)
    assert saved.ok

    records = controller.list().value
    assert len(records) == 1
    assert records[0].name == "My Ledger"
    assert records[0].ciphertext == ciphertext


# ── Results ─────────────────────────────────────────────────────────


class TestResults:
    def test_empty_plaintext_is_success(self, controller):
        ciphertext = controller.encrypt("", PASSPHRASE).value
        result = controller.decrypt(ciphertext, PASSPHRASE)
        assert result.ok
        assert result.value == ""
        assert result.error is None

    def test_invalid_base64(self, controller):
        result = controller.decrypt("***", PASSPHRASE)
        assert not result.ok
        assert result.error is ErrorKind.INVALID_INPUT
        assert result.value is None

    def test_invalid_plaintext(self, controller):
        result = controller.encrypt("\ud800", PASSPHRASE)
        assert result.error is ErrorKind.INVALID_INPUT
        assert controller.pending_ciphertext is None

    def test_encryption_failure(self, store):
        class BrokenCrypto(CryptoManager):
            def encrypt(self, plaintext, passphrase):
                raise EncryptionFailure("Encryption failed")

        controller = VaultController(store, crypto=BrokenCrypto())
        result = controller.encrypt(MNEMONIC, PASSPHRASE)
        assert result.error is ErrorKind.ENCRYPTION_FAILURE

    def test_from_error_rejects_unknown(self):
        from thevault.errors import VaultError
        with pytest.raises(VaultError):
            OperationResult.from_error(VaultError("other"))


# ── Pending ciphertext ──────────────────────────────────────────────


class TestPending:
    def test_encrypt_holds_result_without_saving(self, controller):
        result = controller.encrypt(MNEMONIC, PASSPHRASE)
        assert controller.pending_ciphertext == result.value
        assert controller.list().value == []

    def test_save_uses_and_clears_pending(self, controller):
        ciphertext = controller.encrypt(MNEMONIC, PASSPHRASE).value
        saved = controller.save("My Ledger")
        assert saved.ok
        assert saved.value.ciphertext == ciphertext
        assert controller.pending_ciphertext is None

    def test_explicit_ciphertext_keeps_pending(self, controller):
        pending = controller.encrypt(MNEMONIC, PASSPHRASE).value
        other = CryptoManager().encrypt("other phrase", PASSPHRASE)
        assert controller.save("Other", other).ok
        assert controller.pending_ciphertext == pending

    def test_nothing_to_save(self, controller):
        result = controller.save("My Ledger")
        assert result.error is ErrorKind.INVALID_INPUT
        assert controller.records == []

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_rejected(self, controller, name):
        controller.encrypt(MNEMONIC, PASSPHRASE)
        result = controller.save(name)
        assert result.error is ErrorKind.INVALID_INPUT
        assert controller.pending_ciphertext is not None


# ── Stored records ──────────────────────────────────────────────────


class TestStoredRecords:
    def test_decrypt_record_touches(self, controller, monkeypatch):
        start = datetime.datetime(2025, 3, 1, tzinfo=datetime.timezone.utc)
        monkeypatch.setattr(storage, "_now", lambda: start)
        controller.encrypt(MNEMONIC, PASSPHRASE)
        record = controller.save("My Ledger").value

        later = start + datetime.timedelta(minutes=10)
        monkeypatch.setattr(storage, "_now", lambda: later)
        result = controller.decrypt_record(record.id, PASSPHRASE)
        assert result.value == MNEMONIC
        assert controller.records[0].last_accessed == later

    def test_failed_decrypt_does_not_touch(self, controller, monkeypatch):
        start = datetime.datetime(2025, 3, 1, tzinfo=datetime.timezone.utc)
        monkeypatch.setattr(storage, "_now", lambda: start)
        controller.encrypt(MNEMONIC, PASSPHRASE)
        record = controller.save("My Ledger").value

        monkeypatch.setattr(storage, "_now", lambda: start + datetime.timedelta(minutes=10))
        result = controller.decrypt_record(record.id, "wrong-pass")
        assert result.error is ErrorKind.DECRYPTION_FAILURE
        assert controller.list().value[0].last_accessed == start

    def test_decrypt_missing_record(self, controller):
        result = controller.decrypt_record("missing", PASSPHRASE)
        assert result.error is ErrorKind.NOT_FOUND

    def test_delete(self, controller):
        controller.encrypt(MNEMONIC, PASSPHRASE)
        record = controller.save("My Ledger").value
        assert controller.delete(record.id).value is True
        assert controller.records == []
        assert controller.delete(record.id).value is False

    def test_touch(self, controller):
        controller.encrypt(MNEMONIC, PASSPHRASE)
        record = controller.save("My Ledger").value
        assert controller.touch(record.id).value is True
        assert controller.records[0].last_accessed >= record.last_accessed
        assert controller.touch("missing").value is False

    def test_refresh_sees_other_writers(self, store):
        first = VaultController(store)
        second = VaultController(store)
        first.save("Shared", first.encrypt(MNEMONIC, PASSPHRASE).value)
        assert second.records == []
        assert [r.name for r in second.refresh().value] == ["Shared"]

    def test_loads_existing_records_on_start(self):
        backend = MemoryPreferences()
        VaultController(StorageManager(backend)).save("Kept", "AAAA")
        assert [r.name for r in VaultController(StorageManager(backend)).records] == ["Kept"]

    def test_strict_store_surfaces_corruption_on_save(self):
        backend = MemoryPreferences({config.STORAGE_KEY: "garbage"})
        lenient = VaultController(StorageManager(backend))
        assert lenient.records == []

        strict_backend = MemoryPreferences()
        controller = VaultController(StorageManager(strict_backend, strict=True))
        strict_backend.store(config.STORAGE_KEY, "garbage")
        result = controller.save("Name", "AAAA")
        assert result.error is ErrorKind.STORAGE_CORRUPT


# ── Storage failures ────────────────────────────────────────────────


class FlakyPreferences(MemoryPreferences):
    """Memory backend whose writes can be switched off."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_writes = False

    def store(self, key, value):
        if self.fail_writes:
            raise StorageUnavailable("disk full")
        super().store(key, value)


@pytest.fixture
def corrupt_strict_controller():
    backend = MemoryPreferences({config.STORAGE_KEY: "{not json"})
    return VaultController(StorageManager(backend, strict=True))


class TestStorageFailures:
    def test_constructor_keeps_corruption_as_last_error(self, corrupt_strict_controller):
        assert corrupt_strict_controller.records == []
        assert corrupt_strict_controller.last_error.error is ErrorKind.STORAGE_CORRUPT

    @pytest.mark.parametrize("call", [
        lambda c: c.list(),
        lambda c: c.refresh(),
        lambda c: c.delete("some-id"),
        lambda c: c.touch("some-id"),
        lambda c: c.decrypt_record("some-id", PASSPHRASE),
        lambda c: c.save("Name", "AAAA"),
    ])
    def test_strict_corruption_is_reported(self, corrupt_strict_controller, call):
        result = call(corrupt_strict_controller)
        assert not result.ok
        assert result.error is ErrorKind.STORAGE_CORRUPT

    def test_repaired_store_clears_last_error(self):
        backend = MemoryPreferences({config.STORAGE_KEY: "{not json"})
        controller = VaultController(StorageManager(backend, strict=True))
        backend.store(config.STORAGE_KEY, "[]")
        assert controller.refresh().ok
        assert controller.last_error is None

    def test_failed_write_keeps_pending(self):
        backend = FlakyPreferences()
        controller = VaultController(StorageManager(backend))
        controller.encrypt(MNEMONIC, PASSPHRASE)
        backend.fail_writes = True
        result = controller.save("My Ledger")
        assert result.error is ErrorKind.STORAGE_UNAVAILABLE
        assert controller.pending_ciphertext is not None

    def test_failed_delete_and_touch(self):
        backend = FlakyPreferences()
        controller = VaultController(StorageManager(backend))
        record = controller.save("My Ledger", controller.encrypt(MNEMONIC, PASSPHRASE).value).value
        backend.fail_writes = True
        assert controller.delete(record.id).error is ErrorKind.STORAGE_UNAVAILABLE
        assert controller.touch(record.id).error is ErrorKind.STORAGE_UNAVAILABLE
        assert [r.id for r in controller.records] == [record.id]

    def test_decrypt_record_survives_failed_touch(self):
        backend = FlakyPreferences()
        controller = VaultController(StorageManager(backend))
        record = controller.save("My Ledger", controller.encrypt(MNEMONIC, PASSPHRASE).value).value
        backend.fail_writes = True
        result = controller.decrypt_record(record.id, PASSPHRASE)
        assert result.value == MNEMONIC
        assert controller.last_error.error is ErrorKind.STORAGE_UNAVAILABLE

    def test_preferences_path_under_regular_file(self, tmp_path):
        blocker = tmp_path / "afile"
        blocker.write_text("not a directory")
        backend = FilePreferences(str(blocker / "sub" / "preferences.json"))
        controller = VaultController(StorageManager(backend))
        result = controller.save("My Ledger", controller.encrypt(MNEMONIC, PASSPHRASE).value)
        assert result.error is ErrorKind.STORAGE_UNAVAILABLE
        assert not (blocker / "sub").exists()


# ── Mnemonic helpers ────────────────────────────────────────────────


def test_normalize_mnemonic():
    assert normalize_mnemonic("  Abandon\tABILITY \n able ") == "abandon ability able"


@pytest.mark.parametrize("text,expected", [
    (MNEMONIC, True),
    (" ".join(["zoo"] * 24), True),
    ("too short", False),
    (" ".join(["zoo"] * 13), False),
])
def test_looks_like_mnemonic(text, expected):
    assert looks_like_mnemonic(text) is expected
