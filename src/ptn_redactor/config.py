"""YAML/dict config loader for ptn-redactor.

Supports loading from a YAML file or a plain dict (for embedding in a
larger application config).

Example YAML:

    ptn_redactor:
      placeholder_prefix: PTN
      detailed_report: true
      context_length: 30
      preset: env              # optional; wins over the default rule set
      enabled_rules:           # optional; added on top of the preset
        - email-address
      disabled_rules:
        - generic-password
      rules_path: ~/my-rules.yaml   # optional custom catalog
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Any

import yaml

from .patterns import RuleRegistry
from .redactor import EngineConfig, RedactionEngine

logger = logging.getLogger(__name__)


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = data or {}
    # Support nested under "ptn_redactor" key or flat
    if "ptn_redactor" in data:
        data = data["ptn_redactor"] or {}

    return {
        "placeholder_prefix": data.get("placeholder_prefix", "PTN"),
        "detailed_report": bool(data.get("detailed_report", True)),
        "context_length": int(data.get("context_length", 30)),
        "preset": data.get("preset"),
        "enabled_rules": list(data.get("enabled_rules") or []),
        "disabled_rules": list(data.get("disabled_rules") or []),
        "rules_path": data.get("rules_path"),
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    with open(Path(path).expanduser(), encoding="utf-8") as f:
        return load_config(yaml.safe_load(f))


def create_engine_from_config(config: dict[str, Any]) -> RedactionEngine:
    """Create a fully configured engine from a (raw or normalized) config dict."""
    cfg = load_config(config)

    engine_config = EngineConfig(
        placeholder_prefix=cfg["placeholder_prefix"],
        detailed_report=cfg["detailed_report"],
        context_length=cfg["context_length"],
    )
    registry = RuleRegistry.from_yaml(cfg["rules_path"]) if cfg["rules_path"] else None
    engine = RedactionEngine(engine_config, registry=registry)

    if cfg["preset"]:
        engine.apply_preset(cfg["preset"])
    for rule_id in cfg["enabled_rules"]:
        engine.enable_rule(rule_id)
    for rule_id in cfg["disabled_rules"]:
        engine.disable_rule(rule_id)

    logger.debug(
        "Engine ready: %d of %d rules enabled", len(engine.enabled_rule_ids), len(engine.registry),
    )
    return engine
