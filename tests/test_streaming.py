"""Tests for the streaming restorer."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import dataclasses

from ptn_redactor import RedactionEngine, StreamingRestorer


def _session_and_placeholder(text="mail alice@example.com"):
    result = RedactionEngine().sanitize(text)
    return result.session, result.session.mappings[0].placeholder


def _run(restorer, chunks):
    out = [restorer.feed(c) for c in chunks]
    out.append(restorer.flush())
    return "".join(out)


def test_fragmented_token_is_restored():
    session, ph = _session_and_placeholder()
    restorer = StreamingRestorer(session)
    chunks = ["Hi ", ph[:3], ph[3:10], ph[10:], " bye"]
    assert _run(restorer, chunks) == "Hi alice@example.com bye"
    assert restorer.report.restored_count == 1


def test_text_before_bracket_is_not_held():
    session, _ = _session_and_placeholder()
    restorer = StreamingRestorer(session)
    assert restorer.feed("Hi ⟦PTN") == "Hi "
    assert restorer.flush() == "⟦PTN"


def test_one_chunk_per_character():
    session, ph = _session_and_placeholder()
    restorer = StreamingRestorer(session)
    text = f"to: {ph}, cc: {ph}"
    assert _run(restorer, list(text)) == "to: alice@example.com, cc: alice@example.com"
    assert restorer.report.restored_count == 2


def test_non_token_brackets_pass_through():
    session, ph = _session_and_placeholder()
    restorer = StreamingRestorer(session)
    assert _run(restorer, ["a ⟦not a token⟧ b ", "⟦", ph]) == "a ⟦not a token⟧ b ⟦alice@example.com"


def test_overlong_bracket_is_released():
    session, _ = _session_and_placeholder()
    restorer = StreamingRestorer(session)
    text = "⟦" + "x" * 80
    assert restorer.feed(text) == text


def test_unknown_token_is_kept_and_reported():
    session, _ = _session_and_placeholder()
    restorer = StreamingRestorer(session)
    assert _run(restorer, ["see ⟦PTN:EMAIL:9:ABCD⟧"]) == "see ⟦PTN:EMAIL:9:ABCD⟧"
    assert restorer.report.unmatched_placeholders == ["⟦PTN:EMAIL:9:ABCD⟧"]


def test_checksum_failure_is_kept_and_reported():
    session, ph = _session_and_placeholder()
    (mapping,) = session.mappings
    tampered = dataclasses.replace(
        session, mappings=[dataclasses.replace(mapping, original_value="mallory@example.com")],
    )
    restorer = StreamingRestorer(tampered)
    assert _run(restorer, [ph]) == ph
    assert restorer.report.checksum_failures == [ph]


def test_custom_prefix():
    result = RedactionEngine().sanitize("mail alice@example.com")
    restorer = StreamingRestorer(result.session, prefix="SEC")
    ph = result.session.mappings[0].placeholder
    # A PTN token is not a SEC token: left alone
    assert _run(restorer, [ph]) == ph
