from __future__ import annotations

import json
from pathlib import Path

import yaml

from .errors import ConfigError, FatalBuildError

try:
    import tomllib as toml
except ImportError:  # Python < 3.11
    import tomli as toml

CONFIG_KEYS = {"out", "manifest", "templates", "verbose"}


def load_mapping(path: Path, error: type[FatalBuildError] = ConfigError) -> dict:
    """Read a TOML, YAML or JSON file (chosen by suffix) that must hold a mapping."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise error(f"couldn't read {path}: {exc}") from exc
    suffix = path.suffix.lower()
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise error(f"invalid TOML in {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise error(f"invalid YAML in {path}: {exc}") from exc
        if data is None:
            data = {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise error(f"invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise error(f"{path} must contain a mapping at the top level")
    return data


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    data = load_mapping(path)
    unknown = sorted(set(data) - CONFIG_KEYS)
    if unknown:
        raise ConfigError(f"unknown keys in {path}: {', '.join(unknown)}")
    return data
