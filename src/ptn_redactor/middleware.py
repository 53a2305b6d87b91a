"""Session-holding facade — what a UI or chat proxy wraps around the engine.

Usage:

    mw = RedactMiddleware.create()

    # Before pasting into an assistant
    safe = mw.sanitize(log_text).output_text

    # After copying the assistant's answer back
    real = mw.restore(answer).restored_text

    # Keep the mapping for later
    mw.export_session("~/redactor-sessions")

Every successful, non-empty sanitize is merged into the held store; the
store is only emptied by ``clear_session``.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .redactor import EngineConfig, RedactionEngine
from .session import SessionStore
from .types import RestoreResult, SanitizeResult

logger = logging.getLogger(__name__)


@dataclass
class RedactMiddleware:
    """Engine plus the caller's accumulated session."""

    engine: RedactionEngine
    store: SessionStore = field(default_factory=SessionStore)
    preset: str | None = None

    @classmethod
    def create(
        cls,
        *,
        config: EngineConfig | None = None,
        preset: str | None = None,
    ) -> "RedactMiddleware":
        """Factory — creates a fresh middleware with its own empty store."""
        mw = cls(engine=RedactionEngine(config))
        if preset:
            mw.set_preset(preset)
        return mw

    def set_preset(self, preset: str) -> None:
        self.engine.apply_preset(preset)
        self.preset = preset

    def sanitize(self, text: str) -> SanitizeResult:
        result = self.engine.sanitize(text)
        if result.success and result.session.mappings:
            self.store.merge(result.session)
        return result

    def restore(self, text: str) -> RestoreResult:
        return self.engine.restore(text, self.store.session)

    def import_session(self, path: str | Path) -> int:
        """Merge a session file in. Raises SessionFormatError, store untouched."""
        return self.store.import_file(path)

    def export_session(self, directory: str | Path = ".") -> Path:
        return self.store.export(directory)

    def clear_session(self) -> None:
        self.store.clear()

    @property
    def stats(self) -> dict:
        stats = self.store.stats()
        return {
            "mapping_count": self.store.size,
            "by_type": stats.by_type if stats else {},
            "session_id": stats.session_id if stats else None,
            "preset": self.preset,
            "enabled_rules": len(self.engine.enabled_rule_ids),
        }
