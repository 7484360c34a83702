"""
Platform configuration: defaults merged with an optional JSON file and overrides.
"""

import json
from typing import Any, Dict, Mapping, Optional

from .core.exceptions import ConfigurationError


DEFAULT_CONFIG: Dict[str, Any] = {
    'host': "0.0.0.0",
    'port': 3005,
    'data_file': "data/students.json",
    'persist': True,
    'log_level': "INFO",
    'cors_origins': ["*"],
    'discrepancy_threshold': 25,
}


def load_config(path: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Build the configuration dict. Unknown keys are rejected."""
    config = dict(DEFAULT_CONFIG)

    if path:
        try:
            with open(path, 'r', encoding="utf-8") as f:
                file_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}")
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")
        _merge(config, file_config)

    if overrides:
        # CLI flags left unset arrive as None
        _merge(config, {k: v for k, v in overrides.items() if v is not None})

    return config


def _merge(config: Dict[str, Any], updates: Mapping[str, Any]) -> None:
    unknown = sorted(set(updates) - set(DEFAULT_CONFIG))
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}",
                                 details={"keys": unknown})
    config.update(updates)
