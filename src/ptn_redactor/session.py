"""Session store — the placeholder → original value mappings.

A session is what a caller keeps (and only the caller keeps) to reverse a
redaction. It is append-only: merging never overwrites an existing
placeholder, so re-sanitizing cannot invalidate a restore in flight. Only
an explicit ``clear()`` shrinks it.

File format (UTF-8 JSON, pretty-printed)::

    {
      "version": "1.0.0",
      "createdAt": 1718000000000,
      "sessionId": "V1StGXR8_Z",
      "mappings": [
        {"placeholder": "⟦PTN:EMAIL:1:1A2B⟧", "originalValue": "...",
         "type": "EMAIL", "checksum": "1A2B", "createdAt": 1718000000000}
      ]
    }

Imports are validated field by field and rejected wholesale on the first
problem; there is no partial acceptance.
"""

from __future__ import annotations
import base64
import binascii
import json
import logging
import math
import re
import secrets
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .placeholder import parse_placeholder
from .types import PlaceholderMapping, RedactorSession, SensitiveType

logger = logging.getLogger(__name__)

SESSION_VERSION = "1.0.0"
EXPORT_FILENAME_PREFIX = "ptn-session"

_ID_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz_-"
_ID_LENGTH = 10
_CHECKSUM_RE = re.compile(r"[0-9A-Fa-f]{4}")
# Epoch milliseconds of 9999-12-31T23:59:59.999Z, the last instant datetime holds
MAX_TIMESTAMP_MS = 253_402_300_799_999


class SessionFormatError(ValueError):
    """A session document failed structural validation."""


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def new_session_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def create_empty_session() -> RedactorSession:
    return RedactorSession(
        version=SESSION_VERSION,
        created_at=now_ms(),
        session_id=new_session_id(),
        mappings=[],
    )


def merge_sessions(
    existing: RedactorSession | None,
    new: RedactorSession,
) -> RedactorSession:
    """Append ``new``'s mappings whose placeholder ``existing`` lacks.

    The oldest mapping for a placeholder always wins. Neither argument is
    mutated; the result keeps ``existing``'s envelope.
    """
    if existing is None:
        return RedactorSession(
            version=new.version,
            created_at=new.created_at,
            session_id=new.session_id,
            mappings=list(new.mappings),
        )

    seen = {m.placeholder for m in existing.mappings}
    added: list[PlaceholderMapping] = []
    for m in new.mappings:
        if m.placeholder not in seen:
            seen.add(m.placeholder)
            added.append(m)

    return RedactorSession(
        version=existing.version,
        created_at=existing.created_at,
        session_id=existing.session_id,
        mappings=[*existing.mappings, *added],
    )


# ----------------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------------

def session_to_dict(session: RedactorSession) -> dict[str, Any]:
    return {
        "version": session.version,
        "createdAt": session.created_at,
        "sessionId": session.session_id,
        "mappings": [
            {
                "placeholder": m.placeholder,
                "originalValue": m.original_value,
                "type": m.type.value,
                "checksum": m.checksum,
                "createdAt": m.created_at,
            }
            for m in session.mappings
        ],
    }


def serialize_session(session: RedactorSession) -> str:
    return json.dumps(session_to_dict(session), indent=2, ensure_ascii=False)


def _require(obj: dict, key: str, kind: type | tuple[type, ...], where: str) -> Any:
    if key not in obj:
        raise SessionFormatError(f"{where}: missing field {key!r}")
    value = obj[key]
    # bool is an int subclass; never accept it as a timestamp
    if isinstance(value, bool) or not isinstance(value, kind):
        raise SessionFormatError(f"{where}: field {key!r} has the wrong type")
    if isinstance(value, float) and not math.isfinite(value):
        raise SessionFormatError(f"{where}: field {key!r} is not a finite number")
    return value


def _timestamp(obj: dict, key: str, where: str) -> int:
    value = _require(obj, key, (int, float), where)
    if not 0 <= value <= MAX_TIMESTAMP_MS:
        raise SessionFormatError(f"{where}: field {key!r} is out of range")
    return int(value)


def _mapping_from_dict(raw: Any, i: int) -> PlaceholderMapping:
    where = f"mappings[{i}]"
    if not isinstance(raw, dict):
        raise SessionFormatError(f"{where}: expected an object")

    placeholder = _require(raw, "placeholder", str, where)
    original = _require(raw, "originalValue", str, where)
    type_name = _require(raw, "type", str, where)
    checksum = _require(raw, "checksum", str, where)
    created_at = _timestamp(raw, "createdAt", where)

    try:
        sensitive_type = SensitiveType(type_name)
    except ValueError:
        raise SessionFormatError(f"{where}: unknown type {type_name!r}") from None
    if not _CHECKSUM_RE.fullmatch(checksum):
        raise SessionFormatError(f"{where}: malformed checksum")

    parsed = parse_placeholder(placeholder)
    if parsed is None:
        raise SessionFormatError(f"{where}: malformed placeholder")
    if parsed.type != sensitive_type.value or parsed.checksum != checksum.upper():
        raise SessionFormatError(f"{where}: placeholder disagrees with its mapping")

    return PlaceholderMapping(
        placeholder=placeholder,
        original_value=original,
        type=sensitive_type,
        checksum=checksum,
        created_at=created_at,
    )


def session_from_dict(data: Any) -> RedactorSession:
    """Validate a decoded document and build a session from it."""
    if not isinstance(data, dict):
        raise SessionFormatError("session: expected a JSON object")

    version = _require(data, "version", str, "session")
    created_at = _timestamp(data, "createdAt", "session")
    session_id = _require(data, "sessionId", str, "session")
    raw_mappings = _require(data, "mappings", list, "session")

    mappings = [_mapping_from_dict(raw, i) for i, raw in enumerate(raw_mappings)]
    placeholders = [m.placeholder for m in mappings]
    if len(set(placeholders)) != len(placeholders):
        raise SessionFormatError("session: duplicate placeholders")

    return RedactorSession(
        version=version,
        created_at=created_at,
        session_id=session_id,
        mappings=mappings,
    )


def deserialize_session(raw: str | bytes) -> RedactorSession:
    """Parse a session file's contents. Raises SessionFormatError."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise SessionFormatError(f"session: not UTF-8: {e}") from e
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, RecursionError) as e:
        raise SessionFormatError(f"session: invalid JSON: {e}") from e
    return session_from_dict(data)


# ----------------------------------------------------------------------
# Obfuscated export
# ----------------------------------------------------------------------
# XOR with a repeating key. This is NOT encryption: anyone holding the
# file can recover the key from known plaintext. It only keeps mappings
# from being readable at a glance.

def _xor(data: bytes, key: str) -> bytes:
    if not key:
        raise ValueError("obfuscation key must not be empty")
    k = key.encode("utf-8")
    return bytes(b ^ k[i % len(k)] for i, b in enumerate(data))


def obfuscate_session(session: RedactorSession, key: str) -> str:
    inner = base64.b64encode(serialize_session(session).encode("utf-8"))
    return base64.b64encode(_xor(inner, key)).decode("ascii")


def deobfuscate_session(blob: str, key: str) -> RedactorSession:
    try:
        inner = _xor(base64.b64decode(blob, validate=True), key)
        raw = base64.b64decode(inner, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SessionFormatError(f"session: cannot de-obfuscate: {e}") from e
    return deserialize_session(raw)


# ----------------------------------------------------------------------
# Stats & file names
# ----------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SessionStats:
    total_mappings: int
    by_type: dict[str, int]
    created_at: datetime
    session_id: str


def session_stats(session: RedactorSession) -> SessionStats:
    by_type = Counter(m.type.value for m in session.mappings)
    return SessionStats(
        total_mappings=len(session.mappings),
        by_type=dict(by_type),
        created_at=datetime.fromtimestamp(session.created_at / 1000, tz=timezone.utc),
        session_id=session.session_id,
    )


def generate_export_filename(
    prefix: str = EXPORT_FILENAME_PREFIX,
    now: datetime | None = None,
) -> str:
    """``ptn-session-2024-06-10T08-30-00.json``"""
    now = now or datetime.now(timezone.utc)
    return f"{prefix}-{now.strftime('%Y-%m-%dT%H-%M-%S')}.json"


class SessionStore:
    """The caller-held, accumulated session.

    Not synchronized: one owner per store. Wrap calls in a lock if several
    threads merge into the same instance.
    """

    __slots__ = ("_session",)

    def __init__(self, session: RedactorSession | None = None) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    @property
    def session(self) -> RedactorSession | None:
        return self._session

    @property
    def has_valid_session(self) -> bool:
        return self._session is not None and bool(self._session.mappings)

    def merge(self, session: RedactorSession) -> int:
        """Merge ``session`` in; returns how many mappings were added."""
        before = self.size
        self._session = merge_sessions(self._session, session)
        added = self.size - before
        logger.debug("Merged session %s: %d new mapping(s)", session.session_id, added)
        return added

    def clear(self) -> None:
        self._session = None

    def import_bytes(self, raw: str | bytes) -> int:
        """Validate then merge. The store is untouched if validation fails."""
        imported = deserialize_session(raw)
        return self.merge(imported)

    def import_file(self, path: str | Path) -> int:
        return self.import_bytes(Path(path).expanduser().read_bytes())

    def export(self, directory: str | Path = ".", *, prefix: str = EXPORT_FILENAME_PREFIX) -> Path:
        """Write the session as ``<prefix>-<timestamp>.json``; returns the path."""
        if not self.has_valid_session:
            raise ValueError("nothing to export: session is empty")
        directory = Path(directory).expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / generate_export_filename(prefix)
        path.write_text(serialize_session(self._session), encoding="utf-8")
        logger.info("Exported %d mapping(s) to %s", self.size, path)
        return path

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self._session.mappings) if self._session else 0

    def stats(self) -> SessionStats | None:
        return session_stats(self._session) if self._session else None

    def dump(self) -> dict[str, str]:
        """Return a copy of the placeholder → value mapping (for debugging)."""
        if not self._session:
            return {}
        return {m.placeholder: m.original_value for m in self._session.mappings}
