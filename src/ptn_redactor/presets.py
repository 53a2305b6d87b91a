"""Named rule presets, loaded from ``data/presets.yaml``."""

from __future__ import annotations
import logging
from functools import lru_cache
from pathlib import Path

import yaml

from .types import PresetConfig

logger = logging.getLogger(__name__)

DEFAULT_PRESETS_PATH = Path(__file__).parent / "data" / "presets.yaml"
DEFAULT_PRESET = "default"


def load_presets(path: str | Path | None = None) -> dict[str, PresetConfig]:
    """Read presets from YAML, keyed by id."""
    path = Path(path or DEFAULT_PRESETS_PATH).expanduser()
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    presets: dict[str, PresetConfig] = {}
    for preset_id, raw in (data.get("presets") or {}).items():
        presets[preset_id] = PresetConfig(
            id=preset_id,
            name=raw.get("name", preset_id),
            enabled_rules=tuple(raw.get("enabled_rules") or ()),
            disabled_rules=tuple(raw.get("disabled_rules") or ()),
            description=raw.get("description", ""),
        )
    if DEFAULT_PRESET not in presets:
        raise ValueError(f"{path}: no {DEFAULT_PRESET!r} preset")
    return presets


@lru_cache(maxsize=1)
def _packaged() -> dict[str, PresetConfig]:
    return load_presets()


def get_preset(preset_id: str) -> PresetConfig:
    """Look up a preset; unknown ids fall back to ``default``."""
    presets = _packaged()
    if preset_id not in presets:
        logger.info("Unknown preset %r, using %r", preset_id, DEFAULT_PRESET)
        return presets[DEFAULT_PRESET]
    return presets[preset_id]


def get_preset_rule_ids(preset_id: str) -> list[str]:
    return list(get_preset(preset_id).enabled_rules)


def list_presets() -> list[PresetConfig]:
    return list(_packaged().values())
