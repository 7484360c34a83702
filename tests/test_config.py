# tests/test_config.py

import json

import pytest

from evaltrack.config import DEFAULT_CONFIG, load_config
from evaltrack.core.exceptions import ConfigurationError


def test_defaults():
    config = load_config()
    assert config == DEFAULT_CONFIG
    assert config['port'] == 3005
    assert config['discrepancy_threshold'] == 25


def test_file_then_overrides(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"port": 8000, "log_level": "DEBUG"}), encoding="utf-8")

    config = load_config(str(path), {"port": 9000, "host": None})

    assert config['port'] == 9000
    assert config['log_level'] == "DEBUG"
    assert config['host'] == DEFAULT_CONFIG['host']


def test_defaults_are_not_mutated():
    load_config(overrides={"port": 1})
    assert DEFAULT_CONFIG['port'] == 3005


def test_unknown_key_is_rejected():
    with pytest.raises(ConfigurationError):
        load_config(overrides={"rest_port": 1})


def test_unreadable_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(str(tmp_path / "missing.json"))


def test_file_must_hold_an_object(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(str(path))
