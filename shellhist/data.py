"""History entry model, custom column serialization and entry encryption."""

from __future__ import annotations

import base64
import dataclasses
import hashlib
import hmac
import json
import os
import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

KDF_USER_ID = "user_id"
KDF_ENCRYPTION_KEY = "encryption_key"
CONFIG_PATH = ".hishtory.config"
DB_PATH = ".hishtory.db"

_DEFAULT_HISHTORY_PATH = ".hishtory"
_NONCE_SIZE = 12

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class DecryptionError(ValueError):
    """Raised when an encrypted payload cannot be decrypted or is rejected."""


def _dumps(value: Any) -> bytes:
    """Compact JSON with HTML-sensitive characters escaped."""
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "+" if offset > timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_time(text: str) -> datetime:
    match = _TIME_RE.match(text)
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    micro = int((fraction or "").ljust(6, "0")[:6])
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tzinfo=tz
    )


@dataclass
class CustomColumn:
    """A named value captured from a user-defined column command."""

    name: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CustomColumn:
        return cls(name=payload.get("name", ""), value=payload.get("value", ""))


def serialize_custom_columns(columns: list[CustomColumn]) -> bytes:
    """Encode custom columns as a compact JSON array."""
    return _dumps([column.to_dict() for column in columns])


def deserialize_custom_columns(value: Any) -> list[CustomColumn]:
    """Decode custom columns stored as JSON bytes."""
    if not isinstance(value, (bytes, bytearray)):
        raise ValueError(f"failed to unmarshal CustomColumns value {value!r}")
    items = json.loads(bytes(value).decode("utf-8"))
    if items is None:
        return []
    return [CustomColumn.from_dict(item) for item in items]


@dataclass
class HistoryEntry:
    """One recorded shell command with its metadata."""

    local_username: str = ""
    hostname: str = ""
    command: str = ""
    current_working_directory: str = ""
    home_directory: str = ""
    exit_code: int = 0
    start_time: datetime = _ZERO_TIME
    end_time: datetime = _ZERO_TIME
    device_id: str = ""
    entry_id: str = ""
    custom_columns: list[CustomColumn] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "local_username": self.local_username,
            "hostname": self.hostname,
            "command": self.command,
            "current_working_directory": self.current_working_directory,
            "home_directory": self.home_directory,
            "exit_code": self.exit_code,
            "start_time": _format_time(self.start_time),
            "end_time": _format_time(self.end_time),
            "device_id": self.device_id,
            "entry_id": self.entry_id,
            "custom_columns": [column.to_dict() for column in self.custom_columns],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> HistoryEntry:
        start = payload.get("start_time")
        end = payload.get("end_time")
        return cls(
            local_username=payload.get("local_username", ""),
            hostname=payload.get("hostname", ""),
            command=payload.get("command", ""),
            current_working_directory=payload.get("current_working_directory", ""),
            home_directory=payload.get("home_directory", ""),
            exit_code=int(payload.get("exit_code", 0)),
            start_time=_parse_time(start) if start else _ZERO_TIME,
            end_time=_parse_time(end) if end else _ZERO_TIME,
            device_id=payload.get("device_id", ""),
            entry_id=payload.get("entry_id", ""),
            custom_columns=[
                CustomColumn.from_dict(item) for item in payload.get("custom_columns") or []
            ],
        )


@dataclass
class EncryptedHistoryEntry:
    """A history entry encrypted for transport to the sync backend."""

    encrypted_data: bytes
    nonce: bytes
    user_id: str
    date: datetime
    encrypted_id: str
    read_count: int = 0


def _sha256_hmac(key: str, additional_data: str) -> bytes:
    return hmac.new(key.encode("utf-8"), additional_data.encode("utf-8"), hashlib.sha256).digest()


def user_id(key: str) -> str:
    """Derive the public user identifier from a secret key."""
    return base64.urlsafe_b64encode(_sha256_hmac(key, KDF_USER_ID)).decode("ascii")


def encryption_key(user_secret: str) -> bytes:
    """Derive the 32-byte AES key from a secret key."""
    return _sha256_hmac(user_secret, KDF_ENCRYPTION_KEY)


def encrypt(user_secret: str, data: bytes, additional_data: bytes) -> tuple[bytes, bytes]:
    """Encrypt data with AES-GCM; return (ciphertext, nonce)."""
    aead = AESGCM(encryption_key(user_secret))
    nonce = secrets.token_bytes(_NONCE_SIZE)
    ciphertext = aead.encrypt(nonce, data, additional_data)
    try:
        aead.decrypt(nonce, ciphertext, additional_data)
    except InvalidTag as err:
        raise DecryptionError("failed to open AEAD") from err
    return ciphertext, nonce


def decrypt(user_secret: str, data: bytes, additional_data: bytes, nonce: bytes) -> bytes:
    """Decrypt AES-GCM ciphertext produced by :func:`encrypt`."""
    aead = AESGCM(encryption_key(user_secret))
    try:
        return aead.decrypt(nonce, data, additional_data)
    except (InvalidTag, ValueError) as err:
        raise DecryptionError("failed to decrypt") from err


def encrypt_history_entry(user_secret: str, entry: HistoryEntry) -> EncryptedHistoryEntry:
    """Serialize and encrypt a history entry for the given user."""
    uid = user_id(user_secret)
    ciphertext, nonce = encrypt(user_secret, _dumps(entry.to_dict()), uid.encode("utf-8"))
    return EncryptedHistoryEntry(
        encrypted_data=ciphertext,
        nonce=nonce,
        user_id=uid,
        date=entry.end_time,
        encrypted_id=entry.entry_id,
        read_count=0,
    )


def decrypt_history_entry(user_secret: str, entry: EncryptedHistoryEntry) -> HistoryEntry:
    """Decrypt an entry; undecryptable payloads yield an empty entry."""
    uid = user_id(user_secret)
    if entry.user_id != uid:
        raise DecryptionError("refusing to decrypt history entry with mismatching UserId")
    try:
        plaintext = decrypt(user_secret, entry.encrypted_data, uid.encode("utf-8"), entry.nonce)
    except DecryptionError:
        return HistoryEntry()
    try:
        decrypted = HistoryEntry.from_dict(json.loads(plaintext.decode("utf-8")))
    except (ValueError, TypeError, AttributeError):
        return HistoryEntry()
    if decrypted.entry_id and entry.encrypted_id and decrypted.entry_id != entry.encrypted_id:
        raise DecryptionError(
            "rejecting encrypted history entry that contains mismatching IDs "
            f"(outer={entry.encrypted_id} inner={decrypted.entry_id})"
        )
    return decrypted


def get_hishtory_path() -> str:
    """Directory under the home directory where state is kept."""
    return os.environ.get("HISHTORY_PATH") or _DEFAULT_HISHTORY_PATH


__all__ = [
    "CONFIG_PATH",
    "DB_PATH",
    "KDF_ENCRYPTION_KEY",
    "KDF_USER_ID",
    "CustomColumn",
    "DecryptionError",
    "EncryptedHistoryEntry",
    "HistoryEntry",
    "decrypt",
    "decrypt_history_entry",
    "deserialize_custom_columns",
    "encrypt",
    "encrypt_history_entry",
    "encryption_key",
    "get_hishtory_path",
    "serialize_custom_columns",
    "user_id",
]


def _replace(entry: EncryptedHistoryEntry, **changes: Any) -> EncryptedHistoryEntry:
    return dataclasses.replace(entry, **changes)