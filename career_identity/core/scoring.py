from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

DEFAULT_SCORING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "scoring.yaml"
REQUIRED_SECTIONS = ("synthesis", "matching", "documents")

_scoring_config: dict[str, Any] | None = None


def scoring_config_path() -> Path:
    override = (os.getenv("SCORING_CONFIG_PATH") or "").strip()
    return Path(override) if override else DEFAULT_SCORING_CONFIG_PATH


def load_scoring_config(path: Path) -> dict[str, Any]:
    """Read and validate a scoring YAML file without touching the cache."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise RuntimeError(f"Scoring config not found at '{path}'") from exc
    except OSError as exc:
        raise RuntimeError(f"Failed to read scoring config '{path}': {exc}") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in scoring config '{path}': {exc}") from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(f"Invalid scoring config '{path}': expected a top-level mapping.")
    missing = [section for section in REQUIRED_SECTIONS if not isinstance(parsed.get(section), dict)]
    if missing:
        raise RuntimeError(f"Invalid scoring config '{path}': missing sections {', '.join(missing)}")
    return parsed


def get_scoring_config() -> dict[str, Any]:
    global _scoring_config

    if _scoring_config is None:
        _scoring_config = load_scoring_config(scoring_config_path())
    return _scoring_config


def clear_scoring_cache() -> None:
    global _scoring_config
    _scoring_config = None


def get_scoring_value(path: str, default: Any = None) -> Any:
    """Look up a tunable by dot path, e.g. 'synthesis.rag.similarity_threshold'."""
    if not path:
        return default

    current: Any = get_scoring_config()
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current
