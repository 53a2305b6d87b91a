"""Rule registry — the catalog of detection rules.

The catalog lives in ``data/rules.yaml`` and is compiled once, at load.
A RuleRegistry is an immutable value handed to the engine, so several
engines with different catalogs can coexist in one process.

Every pattern is compiled with ``re.ASCII`` so ``\\b``, ``\\d`` and ``\\w``
behave the same next to CJK text as they do next to punctuation.
"""

from __future__ import annotations
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Iterator

import yaml

from .types import CATEGORIES, DetectionRule, SensitiveType

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent / "data" / "rules.yaml"

_FLAGS = {
    "IGNORECASE": re.IGNORECASE,
    "MULTILINE": re.MULTILINE,
    "DOTALL": re.DOTALL,
}

# Innermost group followed by an unbounded quantifier: ( ... ){n,} / + / *
_GROUP_THEN_REPEAT = re.compile(r"\(((?:[^()\\]|\\.)*)\)(?:[+*]|\{\d+,\})")
_ESCAPE = re.compile(r"\\.")
_CHAR_CLASS = re.compile(r"\[[^\]]*\]")


class RuleError(ValueError):
    """The rule catalog is malformed."""


def _has_nested_quantifier(source: str) -> bool:
    """True for ``(a+)+``-style shapes that backtrack exponentially."""
    for m in _GROUP_THEN_REPEAT.finditer(source):
        body = _CHAR_CLASS.sub("", _ESCAPE.sub("", m.group(1)))
        if "+" in body or "*" in body or re.search(r"\{\d+,\}", body):
            return True
    return False


def compile_rule(entry: dict[str, Any]) -> DetectionRule:
    """Build a DetectionRule from one catalog entry, validating it."""
    rule_id = entry.get("id")
    if not isinstance(rule_id, str) or not rule_id:
        raise RuleError(f"rule without an id: {entry!r}")

    try:
        sensitive_type = SensitiveType(entry["type"])
    except (KeyError, ValueError):
        raise RuleError(f"{rule_id}: unknown sensitive type {entry.get('type')!r}") from None

    source = entry.get("pattern")
    if not isinstance(source, str) or not source:
        raise RuleError(f"{rule_id}: missing pattern")
    if _has_nested_quantifier(source):
        raise RuleError(f"{rule_id}: nested unbounded quantifier in pattern")

    flags = re.ASCII
    for name in entry.get("flags") or []:
        if name not in _FLAGS:
            raise RuleError(f"{rule_id}: unknown flag {name!r}")
        flags |= _FLAGS[name]

    try:
        pattern = re.compile(source, flags)
    except re.error as e:
        raise RuleError(f"{rule_id}: pattern does not compile: {e}") from e

    capture_group = entry.get("capture_group", 0)
    if not isinstance(capture_group, int) or not 0 <= capture_group <= pattern.groups:
        raise RuleError(
            f"{rule_id}: capture_group {capture_group!r} out of range "
            f"(pattern has {pattern.groups} groups)"
        )
    if pattern.fullmatch(""):
        raise RuleError(f"{rule_id}: pattern matches the empty string")

    priority = entry.get("priority", 0)
    if not isinstance(priority, int) or isinstance(priority, bool):
        raise RuleError(f"{rule_id}: priority must be an integer")

    return DetectionRule(
        id=rule_id,
        name=entry.get("name", rule_id),
        type=sensitive_type,
        pattern=pattern,
        priority=priority,
        default_enabled=bool(entry.get("default_enabled", True)),
        description=entry.get("description", ""),
        capture_group=capture_group,
    )


class RuleRegistry:
    """Immutable, ordered collection of detection rules."""

    __slots__ = ("_rules", "_by_id")

    def __init__(self, rules: Iterable[DetectionRule]) -> None:
        self._rules: tuple[DetectionRule, ...] = tuple(rules)
        self._by_id: dict[str, DetectionRule] = {}
        for rule in self._rules:
            if rule.id in self._by_id:
                raise RuleError(f"duplicate rule id: {rule.id}")
            self._by_id[rule.id] = rule

    @classmethod
    def from_yaml(cls, path: str | Path) -> RuleRegistry:
        return cls(load_rules(path))

    @classmethod
    def default(cls) -> RuleRegistry:
        """The packaged catalog (loaded once per process)."""
        return _default_registry()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, rule_id: str) -> DetectionRule | None:
        return self._by_id.get(rule_id)

    def by_type(self, sensitive_type: SensitiveType) -> list[DetectionRule]:
        return [r for r in self._rules if r.type is sensitive_type]

    def default_enabled(self) -> list[DetectionRule]:
        return [r for r in self._rules if r.default_enabled]

    def sorted_by_priority(
        self, rules: Iterable[DetectionRule] | None = None,
    ) -> list[DetectionRule]:
        """Highest priority first; ties keep catalog order."""
        pool = self._rules if rules is None else rules
        return sorted(pool, key=lambda r: -r.priority)

    def by_category(self) -> dict[str, list[DetectionRule]]:
        grouped: dict[str, list[DetectionRule]] = {c: [] for c in CATEGORIES}
        for rule in self._rules:
            grouped[rule.type.category].append(rule)
        return grouped

    @property
    def ids(self) -> list[str]:
        return [r.id for r in self._rules]

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[DetectionRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def __repr__(self) -> str:
        return f"RuleRegistry({len(self._rules)} rules)"


def load_rules(path: str | Path | None = None) -> list[DetectionRule]:
    """Load and compile a rule catalog from YAML."""
    path = Path(path or DEFAULT_RULES_PATH).expanduser()
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    entries = data.get("rules") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise RuleError(f"{path}: expected a top-level 'rules' list")

    rules = [compile_rule(entry) for entry in entries]
    logger.debug("Loaded %d detection rules from %s", len(rules), path)
    return rules


@lru_cache(maxsize=1)
def _default_registry() -> RuleRegistry:
    return RuleRegistry(load_rules())
