"""
Configuration loader for the OAI-PMH harvester.

Handles loading configuration from JSON/YAML files, applying environment
overrides and converting the result to a typed :class:`HarvestConfig`.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .models import HarvestConfig


# camelCase names accepted in config files, as used by harvester REST parameters
PARAMETER_ALIASES = {
    "from": "from_date",
    "until": "until_date",
    "hostUrl": "host_url",
    "metadataPrefix": "metadata_prefix",
    "logoUrl": "logo_url",
    "repositoryIdentifier": "repository_identifier",
    "identifyTimeout": "identify_timeout",
    "minIntervalSeconds": "min_interval_seconds",
    "userAgent": "user_agent",
}

ENV_PREFIX = "OAIHARVEST_"

_FLOAT_FIELDS = {"timeout", "identify_timeout", "min_interval_seconds"}

YAML_SUFFIXES = (".yaml", ".yml")


def canonical_key(key: str) -> str:
    """Map a camelCase parameter name to its configuration field name."""
    return PARAMETER_ALIASES.get(key, key)


def _parse_config_text(text: str, suffix: str) -> Any:
    if suffix in YAML_SUFFIXES:
        return yaml.safe_load(text) or {}
    if suffix == ".json":
        return json.loads(text)
    raise ValueError(f"Unsupported config format '{suffix}' (expected .json, .yaml or .yml)")


def load_raw_config(path: Path) -> Dict[str, Any]:
    """
    Read the settings mapping stored in a JSON or YAML file.

    A top-level ``harvest`` section, if present, is returned instead of
    the whole document.

    Raises:
        FileNotFoundError: ``path`` does not exist
        ValueError: Unknown file suffix, or the document is not a mapping
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"No configuration file at {path}")

    document = _parse_config_text(path.read_text(encoding="utf-8"), path.suffix.lower())
    if not isinstance(document, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")

    section = document.get("harvest")
    return section if isinstance(section, dict) else document


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect ``OAIHARVEST_*`` environment variables as config fields."""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for name in HarvestConfig.__dataclass_fields__:
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value is not None:
            overrides[name] = value
    return overrides


def config_from_dict(raw: Mapping[str, Any]) -> HarvestConfig:
    """
    Build HarvestConfig from raw configuration.

    Accepts snake_case field names and the camelCase parameter names
    (``hostUrl``, ``metadataPrefix``, ``from``, ``until``, ``logoUrl``).

    Raises:
        ValueError: If a key is unknown or a value is invalid
    """
    known = HarvestConfig.__dataclass_fields__
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        name = canonical_key(str(key))
        if name not in known:
            raise ValueError(f"Unknown configuration key: {key}")
        if name in _FLOAT_FIELDS and value is not None:
            try:
                value = float(value)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"{key} must be numeric, got: {value!r}") from exc
        values[name] = value

    config = HarvestConfig(**values)
    config.validate()
    return config


def load_config(path: Optional[Path] = None) -> HarvestConfig:
    """
    Load and validate a harvest configuration.

    Args:
        path: Optional JSON/YAML file. Without one, only defaults and
            environment overrides apply.

    Returns:
        Validated HarvestConfig
    """
    load_dotenv()
    raw = load_raw_config(path) if path is not None else {}

    merged = {canonical_key(str(key)): value for key, value in raw.items()}
    merged.update(env_overrides())
    return config_from_dict(merged)
