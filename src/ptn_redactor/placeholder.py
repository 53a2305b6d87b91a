"""Placeholder codec — build, parse, and find ``⟦PTN:TYPE:INDEX:CHECKSUM⟧`` tokens.

    ⟦PTN:JWT:1:6F3A⟧
     │   │   │ └── 4 hex digits, checksum of the original value
     │   │   └──── 1-based occurrence counter for this type
     │   └──────── SensitiveType name
     └──────────── prefix

The checksum is a 16-bit fold of a 31-multiplier rolling hash. It is NOT a
MAC: it exists to catch stale sessions and hand-edited placeholders, not
to resist tampering.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from functools import lru_cache

from .types import SensitiveType

DEFAULT_PREFIX = "PTN"
OPEN = "⟦"
CLOSE = "⟧"

_PREFIX_RE = re.compile(r"[A-Z]+")
# Any prefix: used for parsing single tokens and validating imports
_ANY_TOKEN = re.compile(r"⟦([A-Z]+):([A-Z_]+):(\d+):([A-F0-9]{4})⟧")


@dataclass(frozen=True, slots=True)
class ParsedPlaceholder:
    placeholder: str
    prefix: str
    type: str               # raw tag; may not be a known SensitiveType
    index: int
    checksum: str
    position: int = 0       # offset in the scanned text


def _utf16_units(value: str):
    # UTF-16 code units, as JavaScript strings count them
    for ch in value:
        cp = ord(ch)
        if cp > 0xFFFF:
            cp -= 0x10000
            yield 0xD800 + (cp >> 10)
            yield 0xDC00 + (cp & 0x3FF)
        else:
            yield cp


def generate_checksum(value: str) -> str:
    """4-digit uppercase hex checksum of ``value``."""
    h = 0
    for unit in _utf16_units(value):
        h = (h * 31 + unit) & 0xFFFFFFFF
    return f"{h & 0xFFFF:04X}"


def verify_checksum(value: str, checksum: str) -> bool:
    return generate_checksum(value) == checksum.upper()


def validate_prefix(prefix: str) -> str:
    if not _PREFIX_RE.fullmatch(prefix):
        raise ValueError(f"placeholder prefix must be uppercase letters only: {prefix!r}")
    return prefix


def generate_placeholder(
    sensitive_type: SensitiveType,
    index: int,
    original_value: str,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    checksum = generate_checksum(original_value)
    return f"{OPEN}{prefix}:{sensitive_type.value}:{index}:{checksum}{CLOSE}"


def parse_placeholder(placeholder: str) -> ParsedPlaceholder | None:
    """Parse a single token. Returns None unless the whole string is one token."""
    m = _ANY_TOKEN.fullmatch(placeholder)
    if not m:
        return None
    return ParsedPlaceholder(
        placeholder=m.group(),
        prefix=m.group(1),
        type=m.group(2),
        index=int(m.group(3)),
        checksum=m.group(4),
    )


@lru_cache(maxsize=16)
def token_pattern(prefix: str = DEFAULT_PREFIX) -> re.Pattern:
    """Compiled discovery pattern for one prefix."""
    validate_prefix(prefix)
    return re.compile(
        re.escape(OPEN) + prefix + r":([A-Z_]+):(\d+):([A-F0-9]{4})" + re.escape(CLOSE)
    )


def find_placeholders(text: str, prefix: str = DEFAULT_PREFIX) -> list[ParsedPlaceholder]:
    """Every token in ``text``, left to right, with its offset."""
    return [
        ParsedPlaceholder(
            placeholder=m.group(),
            prefix=prefix,
            type=m.group(1),
            index=int(m.group(2)),
            checksum=m.group(3),
            position=m.start(),
        )
        for m in token_pattern(prefix).finditer(text)
    ]


def contains_placeholders(text: str, prefix: str = DEFAULT_PREFIX) -> bool:
    return token_pattern(prefix).search(text) is not None


def count_placeholders(text: str, prefix: str = DEFAULT_PREFIX) -> int:
    return sum(1 for _ in token_pattern(prefix).finditer(text))
