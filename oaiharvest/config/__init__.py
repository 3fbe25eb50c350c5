"""
Configuration for the OAI-PMH harvester.
"""

from .loader import (
    PARAMETER_ALIASES,
    canonical_key,
    config_from_dict,
    env_overrides,
    load_config,
    load_raw_config,
)
from .models import HarvestConfig

__all__ = [
    "HarvestConfig",
    "PARAMETER_ALIASES",
    "canonical_key",
    "config_from_dict",
    "env_overrides",
    "load_config",
    "load_raw_config",
]
