"""
Configuration loading: YAML overrides applied to Pydantic model defaults.

YAML files only list the values that differ from the defaults in config.py.
A file may name a base file with ``extends: <filename>`` (resolved relative to
itself); the extending file's values win.
"""

from pathlib import Path
from typing import Any

import yaml

from hand_abstraction.shared.config import Config, deep_merge_dicts

CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"


def load_config(path: str | Path | None = None, **overrides: Any) -> Config:
    """
    Build a Config from defaults, an optional YAML file and keyword overrides.

    Later sources win: field defaults, then the YAML chain, then ``overrides``.

    Args:
        path: Optional YAML file
        **overrides: Nested keys joined with ``__``, e.g. ``clustering__n_clusters=20``

    Returns:
        Validated, frozen Config

    Examples:
        >>> cfg = load_config("config/fast_test.yaml", clustering__n_clusters=8)
        >>> cfg = load_config(system__seed=7)
    """
    config = Config.default()

    if path is not None:
        config = config.merge(_load_yaml(Path(path)))

    if overrides:
        config = config.merge(_nest_overrides(overrides))

    return config


def load_named_config(name: str, **overrides: Any) -> Config:
    """Load ``config/<name>.yaml`` from the repository config directory."""
    config = load_config(CONFIG_DIR / f"{name}.yaml", **overrides)
    return config.merge({"system": {"config_name": name}})


def _load_yaml(path: Path, _seen: tuple[Path, ...] = ()) -> dict[str, Any]:
    """Read a YAML file and fold in its ``extends`` chain."""
    path = path.resolve()
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    if path in _seen:
        raise ValueError(f"Config extends chain loops back to {path}")

    with open(path) as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    if "extends" in data:
        base = _load_yaml(path.parent / data.pop("extends"), _seen + (path,))
        data = deep_merge_dicts(base, data)

    return data


def _nest_overrides(flat: dict[str, Any]) -> dict[str, Any]:
    """
    Turn ``{"clustering__n_clusters": 20}`` into ``{"clustering": {"n_clusters": 20}}``.
    """
    nested: dict[str, Any] = {}
    for key, value in flat.items():
        *parents, leaf = key.split("__")
        current = nested
        for part in parents:
            current = current.setdefault(part, {})
        current[leaf] = value
    return nested
