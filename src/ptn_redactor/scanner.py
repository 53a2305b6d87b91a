"""Scanner — run enabled rules over text and resolve overlaps.

Rules run in priority order (highest first, catalog order on ties) and
each claimed range is final: a later rule can neither split nor re-claim
it. That is what lets a ``private-key-block`` win over ``base64-long``
inside the same region. The accepted matches are returned sorted by start
offset, independent of the order they were claimed in.
"""

from __future__ import annotations
import bisect
import re
from collections import Counter
from typing import Iterable

from .placeholder import DEFAULT_PREFIX, generate_placeholder
from .types import DetectionRule, SensitiveMatch

DEFAULT_CONTEXT_LENGTH = 30

_NEWLINE = re.compile("\n")


class _ClaimedRanges:
    """Sorted, pairwise-disjoint half-open ranges."""

    __slots__ = ("_starts", "_ends")

    def __init__(self) -> None:
        self._starts: list[int] = []
        self._ends: list[int] = []

    def overlaps(self, start: int, end: int) -> bool:
        i = bisect.bisect_left(self._starts, end)
        # Only the range starting just before `end` can reach into [start, end)
        return i > 0 and self._ends[i - 1] > start

    def claim(self, start: int, end: int) -> None:
        i = bisect.bisect_left(self._starts, start)
        self._starts.insert(i, start)
        self._ends.insert(i, end)


class LineIndex:
    """Offset → 1-based line number, via the sorted newline offsets."""

    __slots__ = ("_newlines",)

    def __init__(self, text: str) -> None:
        self._newlines = [m.start() for m in _NEWLINE.finditer(text)]

    def line_of(self, index: int) -> int:
        return bisect.bisect_left(self._newlines, index) + 1


def context_snippet(
    text: str,
    start: int,
    end: int,
    placeholder: str,
    context_length: int = DEFAULT_CONTEXT_LENGTH,
) -> str:
    """Up to ``context_length`` chars either side, cut at line breaks."""
    before = text[max(0, start - context_length):start]
    after = text[end:end + context_length]
    before = before[before.rfind("\n") + 1:]
    nl = after.find("\n")
    if nl != -1:
        after = after[:nl]
    return f"...{before}{placeholder}{after}..."


class Scanner:
    """Stateless between calls; safe to share across threads."""

    __slots__ = ("prefix", "context_length")

    def __init__(
        self,
        prefix: str = DEFAULT_PREFIX,
        context_length: int = DEFAULT_CONTEXT_LENGTH,
    ) -> None:
        self.prefix = prefix
        self.context_length = context_length

    def scan(self, text: str, rules: Iterable[DetectionRule]) -> list[SensitiveMatch]:
        """Return non-overlapping matches sorted by start offset."""
        ordered = sorted(rules, key=lambda r: -r.priority)
        claimed = _ClaimedRanges()
        lines = LineIndex(text)
        counters: Counter = Counter()
        matches: list[SensitiveMatch] = []

        for rule in ordered:
            group = rule.capture_group
            for m in rule.pattern.finditer(text):
                start, end = m.span(group)
                # Unmatched optional group gives (-1, -1); empty capture is useless too
                if start < 0 or start == end:
                    continue
                if claimed.overlaps(start, end):
                    continue

                counters[rule.type] += 1
                value = text[start:end]
                placeholder = generate_placeholder(
                    rule.type, counters[rule.type], value, self.prefix,
                )
                matches.append(SensitiveMatch(
                    rule_id=rule.id,
                    type=rule.type,
                    original_value=value,
                    placeholder=placeholder,
                    start=start,
                    end=end,
                    line_number=lines.line_of(start),
                    context_snippet=context_snippet(
                        text, start, end, placeholder, self.context_length,
                    ),
                ))
                claimed.claim(start, end)

        return sorted(matches, key=lambda m: m.start)
