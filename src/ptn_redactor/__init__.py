"""PTN Redactor — reversible, placeholder-based redaction of secrets in text."""

from .redactor import RedactionEngine, EngineConfig, create_engine, sanitize, restore
from .patterns import RuleRegistry, RuleError, load_rules
from .placeholder import generate_checksum, verify_checksum, generate_placeholder, find_placeholders
from .session import (
    SessionStore, SessionFormatError,
    merge_sessions, serialize_session, deserialize_session,
)
from .presets import get_preset, list_presets
from .middleware import RedactMiddleware
from .streaming import StreamingRestorer
from .config import create_engine_from_config, load_config, load_from_yaml
from .types import (
    SensitiveType, DetectionRule, SensitiveMatch, PlaceholderMapping, RedactorSession,
    SanitizeResult, RestoreResult,
)

__all__ = [
    "RedactionEngine", "EngineConfig", "create_engine", "sanitize", "restore",
    "RuleRegistry", "RuleError", "load_rules",
    "generate_checksum", "verify_checksum", "generate_placeholder", "find_placeholders",
    "SessionStore", "SessionFormatError",
    "merge_sessions", "serialize_session", "deserialize_session",
    "get_preset", "list_presets",
    "RedactMiddleware",
    "StreamingRestorer",
    "create_engine_from_config", "load_config", "load_from_yaml",
    "SensitiveType", "DetectionRule", "SensitiveMatch", "PlaceholderMapping", "RedactorSession",
    "SanitizeResult", "RestoreResult",
]
__version__ = "0.1.0"
