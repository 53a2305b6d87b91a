"""Streaming restorer — restores placeholders in a reply as it streams in.

For SSE/streaming responses a placeholder can arrive in fragments:
    ⟦PT  →  ⟦PTN:EMA  →  ⟦PTN:EMAIL:1:  →  ⟦PTN:EMAIL:1:1A2B⟧

Text is held back only from an opening ``⟦`` until the token is complete
or clearly not a token, then flushed with the original value restored.

Usage:
    restorer = StreamingRestorer(session)
    for chunk in sse_stream:
        ready = restorer.feed(chunk)
        if ready:
            yield ready
    yield restorer.flush()
    print(restorer.report.unmatched_placeholders)
"""

from __future__ import annotations
import logging

from .placeholder import CLOSE, DEFAULT_PREFIX, OPEN, token_pattern, verify_checksum
from .types import RedactorSession, RestoreReport

logger = logging.getLogger(__name__)


class StreamingRestorer:
    """Buffers streaming chunks and restores complete placeholders."""

    __slots__ = ("_lookup", "_pattern", "_buffer", "_max_token_len", "report")

    def __init__(
        self,
        session: RedactorSession,
        *,
        prefix: str = DEFAULT_PREFIX,
        max_token_len: int = 64,
    ) -> None:
        self._lookup = {m.placeholder: m for m in session.mappings}
        self._pattern = token_pattern(prefix)
        self._buffer = ""
        self._max_token_len = max_token_len  # safety limit
        self.report = RestoreReport()

    def feed(self, chunk: str) -> str:
        """Feed a chunk, return any text ready to emit."""
        self._buffer += chunk
        return self._drain()

    def flush(self) -> str:
        """Emit whatever is left (call at end of stream)."""
        out = self._drain()
        rest, self._buffer = self._buffer, ""
        return out + rest

    def _resolve(self, token: str, checksum: str) -> str:
        mapping = self._lookup.get(token)
        if mapping is None:
            self.report.unmatched_placeholders.append(token)
            return token
        value = mapping.original_value
        if not (verify_checksum(value, checksum) and verify_checksum(value, mapping.checksum)):
            self.report.checksum_failures.append(token)
            return token
        self.report.restored_count += 1
        return value

    def _drain(self) -> str:
        out_parts: list[str] = []

        while self._buffer:
            idx = self._buffer.find(OPEN)
            if idx == -1:
                out_parts.append(self._buffer)
                self._buffer = ""
                break

            if idx > 0:
                out_parts.append(self._buffer[:idx])
                self._buffer = self._buffer[idx:]

            # Buffer now starts with ⟦
            m = self._pattern.match(self._buffer)
            if m:
                out_parts.append(self._resolve(m.group(), m.group(3)))
                self._buffer = self._buffer[m.end():]
                continue

            close_idx = self._buffer.find(CLOSE)
            if close_idx != -1:
                # Closed but not a valid token: emit the bracket, rescan the rest
                out_parts.append(OPEN)
                self._buffer = self._buffer[1:]
                continue

            if len(self._buffer) > self._max_token_len:
                out_parts.append(OPEN)
                self._buffer = self._buffer[1:]
                continue

            # Still accumulating a potential token
            break

        return "".join(out_parts)
