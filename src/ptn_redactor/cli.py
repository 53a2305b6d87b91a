"""CLI interface for ptn-redactor.

Usage:
    # Redact a log before pasting it anywhere (stdin → stdout).
    # The mapping is merged into the session file, created if missing.
    cat app.log | ptn-redactor sanitize --session my-session.json

    # Put the original values back into an assistant's reply
    pbpaste | ptn-redactor restore --session my-session.json

    # Inspect a session file / the rule catalog / presets
    ptn-redactor stats --session my-session.json
    ptn-redactor rules
    ptn-redactor presets

The session file never leaves your machine; keep it next to your work and
delete it when done.
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .config import create_engine_from_config, load_config, load_from_yaml
from .presets import list_presets
from .redactor import RedactionEngine
from .session import SessionFormatError, SessionStore, serialize_session
from .types import SanitizeResult

logger = logging.getLogger("ptn_redactor.cli")

EXIT_PARTIAL = 1
EXIT_BAD_INPUT = 2


def _build_engine(args: argparse.Namespace) -> RedactionEngine:
    cfg: dict[str, Any] = load_from_yaml(args.config) if args.config else load_config({})
    if args.preset:
        cfg["preset"] = args.preset
    if args.enable:
        cfg["enabled_rules"] += args.enable.split(",")
    if args.disable:
        cfg["disabled_rules"] += args.disable.split(",")
    if args.context_length is not None:
        cfg["context_length"] = args.context_length
    return create_engine_from_config(cfg)


def _load_store(path: str | None, *, required: bool) -> SessionStore:
    store = SessionStore()
    if path and Path(path).expanduser().exists():
        store.import_file(path)
    elif required:
        raise FileNotFoundError(f"session file not found: {path}")
    return store


def _report_dict(result: SanitizeResult) -> dict[str, Any]:
    report = result.report
    return {
        "total_matches": report.total_matches,
        "matches_by_type": {t.value: n for t, n in report.matches_by_type.items()},
        "matches": [
            {
                "type": m.type.value,
                "line": m.line_number,
                "context": m.context_snippet,
                "placeholder": m.placeholder_preview,
            }
            for m in report.matches
        ],
        "processing_time_ms": round(report.processing_time, 3),
    }


def cmd_sanitize(args: argparse.Namespace) -> int:
    """Sanitize stdin, merging the mappings into --session if given."""
    engine = _build_engine(args)
    store = _load_store(args.session, required=False)

    result = engine.sanitize(sys.stdin.read())
    if not result.success:
        sys.stderr.write(f"sanitize failed: {result.error}\n")
        return EXIT_PARTIAL

    added = store.merge(result.session) if result.session.mappings else 0
    if args.session and store.session is not None:
        Path(args.session).expanduser().write_text(
            serialize_session(store.session), encoding="utf-8",
        )
    if args.export_dir and store.has_valid_session:
        path = store.export(args.export_dir)
        sys.stderr.write(f"exported session to {path}\n")

    if args.json:
        json.dump(
            {"text": result.output_text, "report": _report_dict(result), "mappings_added": added},
            sys.stdout, ensure_ascii=False, indent=2,
        )
        sys.stdout.write("\n")
    else:
        sys.stdout.write(result.output_text)
        sys.stderr.write(f"redacted {result.report.total_matches} value(s)\n")
    return 0


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore placeholders on stdin from --session."""
    engine = _build_engine(args)
    store = _load_store(args.session, required=True)

    result = engine.restore(sys.stdin.read(), store.session)
    sys.stdout.write(result.restored_text)

    report = result.report
    sys.stderr.write(f"restored {report.restored_count} placeholder(s)\n")
    for token in report.unmatched_placeholders:
        sys.stderr.write(f"  not in session: {token}\n")
    for token in report.checksum_failures:
        sys.stderr.write(f"  checksum mismatch: {token}\n")
    if not result.success:
        sys.stderr.write(f"{result.error}\n")
        return EXIT_PARTIAL
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Show mapping counts for a session file."""
    store = _load_store(args.session, required=True)
    stats = store.stats()
    json.dump(
        {
            "session_id": stats.session_id if stats else None,
            "created_at": stats.created_at.isoformat() if stats else None,
            "total_mappings": store.size,
            "by_type": stats.by_type if stats else {},
        },
        sys.stdout, indent=2,
    )
    sys.stdout.write("\n")
    return 0


def cmd_rules(args: argparse.Namespace) -> int:
    """List the rule catalog by category (* = enabled)."""
    engine = _build_engine(args)
    enabled = engine.enabled_rule_ids
    for category, rules in engine.registry.by_category().items():
        if not rules:
            continue
        sys.stdout.write(f"{category}\n")
        for rule in engine.registry.sorted_by_priority(rules):
            mark = "*" if rule.id in enabled else " "
            sys.stdout.write(f"  {mark} {rule.id:<28} {rule.priority:>3}  {rule.name}\n")
    return 0


def cmd_presets(args: argparse.Namespace) -> int:
    """List available presets."""
    for preset in list_presets():
        sys.stdout.write(f"{preset.id:<22} {len(preset.enabled_rules):>3} rules  {preset.description}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ptn-redactor",
        description="Reversible redaction of secrets in text you share",
    )
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--preset", help="Rule preset (see `presets`)")
    parser.add_argument("--enable", default="", help="Comma-separated rule ids to enable")
    parser.add_argument("--disable", default="", help="Comma-separated rule ids to disable")
    parser.add_argument("--context-length", type=int, default=None, help="Report context chars")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("sanitize", help="Redact stdin")
    p.add_argument("--session", help="Session file to merge mappings into")
    p.add_argument("--export-dir", help="Also write a timestamped session export here")
    p.add_argument("--json", action="store_true", help="Print text and report as JSON")

    p = sub.add_parser("restore", help="Restore placeholders on stdin")
    p.add_argument("--session", required=True, help="Session file")

    p = sub.add_parser("stats", help="Session file summary")
    p.add_argument("--session", required=True, help="Session file")

    sub.add_parser("rules", help="List detection rules")
    sub.add_parser("presets", help="List presets")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cmds = {
        "sanitize": cmd_sanitize,
        "restore": cmd_restore,
        "stats": cmd_stats,
        "rules": cmd_rules,
        "presets": cmd_presets,
    }
    try:
        return cmds[args.command](args)
    except (SessionFormatError, FileNotFoundError, ValueError) as e:
        sys.stderr.write(f"error: {e}\n")
        return EXIT_BAD_INPUT


if __name__ == "__main__":
    sys.exit(main())
