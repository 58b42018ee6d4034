import dataclasses
from datetime import datetime, timezone

import pytest

from shellhist.data import (
    CustomColumn,
    DecryptionError,
    HistoryEntry,
    decrypt,
    decrypt_history_entry,
    deserialize_custom_columns,
    encrypt,
    encrypt_history_entry,
    encryption_key,
    get_hishtory_path,
    serialize_custom_columns,
    user_id,
)

SECRET = "secret"


def _sample_entry() -> HistoryEntry:
    return HistoryEntry(
        local_username="david",
        hostname="x1",
        command="ls /foo",
        current_working_directory="~/",
        home_directory="/home/david",
        exit_code=2,
        start_time=datetime(2022, 1, 9, 12, 0, 0, tzinfo=timezone.utc),
        end_time=datetime(2022, 1, 9, 12, 0, 5, 250000, tzinfo=timezone.utc),
        device_id="device-1",
        entry_id="entry-1",
        custom_columns=[CustomColumn("git_branch", "main")],
    )


def test_encryption_key_is_deterministic():
    assert encryption_key("key") == encryption_key("key")
    assert len(encryption_key("key")) == 32


def test_encrypt_decrypt_round_trip():
    ciphertext, nonce = encrypt("key", b"hello world!", b"extra")
    assert decrypt("key", ciphertext, b"extra", nonce) == b"hello world!"
    assert len(nonce) == 12


def test_decrypt_with_wrong_additional_data_fails():
    ciphertext, nonce = encrypt("key", b"hello world!", b"extra")
    with pytest.raises(DecryptionError):
        decrypt("key", ciphertext, b"other", nonce)


def test_decrypt_with_wrong_key_fails():
    ciphertext, nonce = encrypt("key", b"hello world!", b"extra")
    with pytest.raises(DecryptionError):
        decrypt("other-key", ciphertext, b"extra", nonce)


def test_custom_column_serialization_empty():
    assert serialize_custom_columns([]) == b"[]"


def test_custom_column_serialization_values():
    columns = [CustomColumn("name1", "val1"), CustomColumn("name2", "val2")]
    assert (
        serialize_custom_columns(columns)
        == b'[{"name":"name1","value":"val1"},{"name":"name2","value":"val2"}]'
    )


def test_custom_column_round_trip():
    columns = [CustomColumn("a", "<b>"), CustomColumn("c", "d")]
    assert deserialize_custom_columns(serialize_custom_columns(columns)) == columns


def test_custom_column_escapes_html():
    assert serialize_custom_columns([CustomColumn("a", "<")]) == b'[{"name":"a","value":"\\u003c"}]'


def test_deserialize_null_is_empty():
    assert deserialize_custom_columns(b"null") == []


def test_deserialize_rejects_non_bytes():
    with pytest.raises(ValueError):
        deserialize_custom_columns("[]")


def test_user_id_shape():
    uid = user_id(SECRET)
    assert uid == user_id(SECRET)
    assert len(uid) == 44
    assert uid.endswith("=")
    assert user_id("other") != uid


def test_entry_dict_round_trip():
    entry = _sample_entry()
    assert HistoryEntry.from_dict(entry.to_dict()) == entry


def test_entry_time_format():
    entry = HistoryEntry(end_time=datetime(1970, 1, 1, tzinfo=timezone.utc))
    payload = entry.to_dict()
    assert payload["end_time"] == "1970-01-01T00:00:00Z"
    assert payload["start_time"] == "0001-01-01T00:00:00Z"
    assert _sample_entry().to_dict()["end_time"] == "2022-01-09T12:00:05.25Z"


def test_encrypt_history_entry_round_trip():
    entry = _sample_entry()
    encrypted = encrypt_history_entry(SECRET, entry)
    assert encrypted.user_id == user_id(SECRET)
    assert encrypted.encrypted_id == "entry-1"
    assert encrypted.date == entry.end_time
    assert encrypted.read_count == 0
    assert decrypt_history_entry(SECRET, encrypted) == entry


def test_decrypt_history_entry_rejects_other_user():
    encrypted = encrypt_history_entry(SECRET, _sample_entry())
    with pytest.raises(DecryptionError):
        decrypt_history_entry("other", encrypted)


def test_decrypt_history_entry_rejects_mismatched_ids():
    encrypted = encrypt_history_entry(SECRET, _sample_entry())
    tampered = dataclasses.replace(encrypted, encrypted_id="entry-2")
    with pytest.raises(DecryptionError):
        decrypt_history_entry(SECRET, tampered)


def test_decrypt_history_entry_corrupt_payload_is_empty():
    encrypted = encrypt_history_entry(SECRET, _sample_entry())
    corrupted = dataclasses.replace(encrypted, encrypted_data=b"\x00" * len(encrypted.encrypted_data))
    assert decrypt_history_entry(SECRET, corrupted) == HistoryEntry()


def test_get_hishtory_path_default(monkeypatch):
    monkeypatch.delenv("HISHTORY_PATH", raising=False)
    assert get_hishtory_path() == ".hishtory"


def test_get_hishtory_path_override(monkeypatch):
    monkeypatch.setenv("HISHTORY_PATH", ".custom")
    assert get_hishtory_path() == ".custom"