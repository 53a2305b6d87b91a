"""RedactionEngine — the main API.

Usage:
    from ptn_redactor import RedactionEngine, SessionStore

    engine = RedactionEngine()          # reusable; rules are read-only per call
    store = SessionStore()              # one per user/conversation

    result = engine.sanitize("OPENAI_API_KEY=sk-proj-abc123xyz789verylongapikey")
    print(result.output_text)           # "OPENAI_API_KEY=⟦PTN:API_KEY:1:<checksum>⟧"
    store.merge(result.session)         # accumulating is the caller's choice

    reply = engine.restore(ai_reply, store.session)
    print(reply.restored_text, reply.report.unmatched_placeholders)

Neither ``sanitize`` nor ``restore`` raises: every failure is reported on
the result's ``success`` / ``error`` fields, and on a hard failure the
input text comes back unchanged.
"""

from __future__ import annotations
import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from .patterns import RuleRegistry
from .placeholder import (
    DEFAULT_PREFIX,
    find_placeholders,
    generate_checksum,
    validate_prefix,
    verify_checksum,
)
from .presets import get_preset_rule_ids
from .scanner import DEFAULT_CONTEXT_LENGTH, Scanner
from .session import SESSION_VERSION, new_session_id, now_ms
from .types import (
    DetectionRule,
    MatchSummary,
    PlaceholderMapping,
    RedactorSession,
    RestoreReport,
    RestoreResult,
    SanitizeReport,
    SanitizeResult,
    SensitiveType,
)

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Formatting options. None of these change what gets detected."""
    placeholder_prefix: str = DEFAULT_PREFIX
    detailed_report: bool = True      # False = counts only, no per-match rows
    context_length: int = DEFAULT_CONTEXT_LENGTH

    def __post_init__(self) -> None:
        validate_prefix(self.placeholder_prefix)
        if self.context_length < 0:
            raise ValueError("context_length must be >= 0")


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class RedactionEngine:
    """Scanner + placeholder codec + session building, behind two calls."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        registry: RuleRegistry | None = None,
        enabled_rules: Iterable[str] | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.registry = registry if registry is not None else RuleRegistry.default()
        self._scanner = Scanner(self.config.placeholder_prefix, self.config.context_length)
        if enabled_rules is None:
            self._enabled: frozenset[str] = frozenset(r.id for r in self.registry.default_enabled())
        else:
            self._enabled = self._known(enabled_rules)

    # ------------------------------------------------------------------
    # Rule selection
    # ------------------------------------------------------------------
    # Each setter swaps in a new frozenset, so a scan already running
    # keeps the set it started with.

    def _known(self, rule_ids: Iterable[str]) -> frozenset[str]:
        ids = set(rule_ids)
        unknown = ids.difference(self.registry.ids)
        if unknown:
            logger.warning("Ignoring unknown rule id(s): %s", ", ".join(sorted(unknown)))
        return frozenset(ids - unknown)

    @property
    def enabled_rule_ids(self) -> frozenset[str]:
        return self._enabled

    def enabled_rules(self) -> list[DetectionRule]:
        """Enabled rules in catalog order."""
        return [r for r in self.registry if r.id in self._enabled]

    def set_enabled_rules(self, rule_ids: Iterable[str]) -> None:
        self._enabled = self._known(rule_ids)

    def enable_rule(self, rule_id: str) -> None:
        self._enabled = self._enabled | self._known([rule_id])

    def disable_rule(self, rule_id: str) -> None:
        self._enabled = self._enabled - {rule_id}

    def toggle_rule(self, rule_id: str) -> bool:
        """Flip one rule; returns whether it is now enabled."""
        if rule_id in self._enabled:
            self.disable_rule(rule_id)
            return False
        self.enable_rule(rule_id)
        return rule_id in self._enabled

    def enable_all_rules(self) -> None:
        self._enabled = frozenset(self.registry.ids)

    def disable_all_rules(self) -> None:
        self._enabled = frozenset()

    def reset_rules_to_default(self) -> None:
        self._enabled = frozenset(r.id for r in self.registry.default_enabled())

    def apply_preset(self, preset_id: str) -> None:
        self.set_enabled_rules(get_preset_rule_ids(preset_id))

    # ------------------------------------------------------------------
    # Sanitize
    # ------------------------------------------------------------------

    def sanitize(self, text: str) -> SanitizeResult:
        """Replace every detected value with a placeholder.

        Returns a fresh session holding only this call's mappings.
        """
        started = time.perf_counter()
        try:
            matches = self._scanner.scan(text, self.enabled_rules())

            created = now_ms()
            mappings = [
                PlaceholderMapping(
                    placeholder=m.placeholder,
                    original_value=m.original_value,
                    type=m.type,
                    checksum=generate_checksum(m.original_value),
                    created_at=created,
                )
                for m in matches
            ]

            # Right-to-left so earlier offsets stay valid
            parts: list[str] = []
            cursor = len(text)
            for m in reversed(matches):
                parts.append(text[m.end:cursor])
                parts.append(m.placeholder)
                cursor = m.start
            parts.append(text[:cursor])
            output = "".join(reversed(parts))

            by_type: dict[SensitiveType, int] = dict(Counter(m.type for m in matches))
            rows = [
                MatchSummary(
                    type=m.type,
                    line_number=m.line_number,
                    context_snippet=m.context_snippet,
                    placeholder_preview=m.placeholder,
                )
                for m in matches
            ] if self.config.detailed_report else []

            report = SanitizeReport(
                total_matches=len(matches),
                matches_by_type=by_type,
                matches=rows,
                processing_time=_elapsed_ms(started),
            )
            session = RedactorSession(
                version=SESSION_VERSION,
                created_at=created,
                session_id=new_session_id(),
                mappings=mappings,
            )
            logger.debug(
                "Sanitized %d chars: %d match(es) across %d type(s)",
                len(text), len(matches), len(by_type),
            )
            return SanitizeResult(output_text=output, report=report, session=session, success=True)

        except Exception as e:
            logger.exception("sanitize failed")
            return SanitizeResult(
                output_text=text,
                report=SanitizeReport(processing_time=_elapsed_ms(started)),
                session=RedactorSession(
                    version=SESSION_VERSION,
                    created_at=now_ms(),
                    session_id=new_session_id(),
                ),
                success=False,
                error=str(e) or type(e).__name__,
            )

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def restore(self, text: str, session: RedactorSession | None) -> RestoreResult:
        """Put original values back for every placeholder the session knows.

        Unknown placeholders and checksum failures stay in the text as-is
        and are listed in the report; the rest are still restored.
        """
        started = time.perf_counter()
        if session is None:
            return RestoreResult(
                restored_text=text,
                report=RestoreReport(processing_time=_elapsed_ms(started)),
                success=False,
                error="No session available. Import a session file first.",
            )

        try:
            found = find_placeholders(text, self.config.placeholder_prefix)
            lookup = {m.placeholder: m for m in session.mappings}

            report = RestoreReport()
            parts: list[str] = []
            cursor = len(text)
            for ph in reversed(found):
                end = ph.position + len(ph.placeholder)
                mapping = lookup.get(ph.placeholder)
                if mapping is None:
                    report.unmatched_placeholders.append(ph.placeholder)
                    continue
                value = mapping.original_value
                if not (verify_checksum(value, ph.checksum) and verify_checksum(value, mapping.checksum)):
                    report.checksum_failures.append(ph.placeholder)
                    continue
                parts.append(text[end:cursor])
                parts.append(value)
                cursor = ph.position
                report.restored_count += 1
            parts.append(text[:cursor])
            restored = "".join(reversed(parts))

            # Collected right-to-left; report in reading order
            report.unmatched_placeholders.reverse()
            report.checksum_failures.reverse()
            report.processing_time = _elapsed_ms(started)

            error = None
            if report.unmatched_placeholders:
                error = f"{len(report.unmatched_placeholders)} placeholder(s) not found in session"
            elif report.checksum_failures:
                error = f"{len(report.checksum_failures)} checksum verification(s) failed"
            if error:
                logger.warning("Partial restore: %s", error)

            return RestoreResult(
                restored_text=restored,
                report=report,
                success=error is None,
                error=error,
            )

        except Exception as e:
            logger.exception("restore failed")
            return RestoreResult(
                restored_text=text,
                report=RestoreReport(processing_time=_elapsed_ms(started)),
                success=False,
                error=str(e) or type(e).__name__,
            )


def create_engine(
    config: EngineConfig | None = None,
    *,
    registry: RuleRegistry | None = None,
    enabled_rules: Iterable[str] | None = None,
) -> RedactionEngine:
    return RedactionEngine(config, registry=registry, enabled_rules=enabled_rules)


def sanitize(text: str, enabled_rules: Iterable[str] | None = None) -> SanitizeResult:
    """One-shot sanitize with the packaged catalog."""
    return create_engine(enabled_rules=enabled_rules).sanitize(text)


def restore(text: str, session: RedactorSession | None) -> RestoreResult:
    """One-shot restore."""
    return create_engine().restore(text, session)
