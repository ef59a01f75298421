"""Unit tests for config module."""

from __future__ import annotations

import json
from datetime import datetime

import pytest

from scout import config as config_module
from scout.config import (
    DEFAULT_CHUNK_LENGTH,
    DEFAULT_CONFIG,
    Config,
    get_decision_prompt,
    get_system_prompt,
    load_config,
    save_config,
    validate_config,
)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(config_module, "CONFIG_FILE", path)
    return path


def test_config_defaults() -> None:
    """Test Config default values."""
    config = Config(api_key="test_key")
    assert config.provider == "openai"
    assert config.chunk_length == DEFAULT_CHUNK_LENGTH == 1122
    assert config.search_engine == "jina"
    assert config.duplicate_continuation == "once"
    assert config.streaming is False
    assert config.show_thinking is True


def test_defaults_match_default_config() -> None:
    config = Config(api_key="k").to_dict()
    for key, value in DEFAULT_CONFIG.items():
        assert config[key] == value


def test_config_round_trip() -> None:
    """Test converting config to and from a dictionary."""
    config = Config(api_key="k", provider="gemini", max_tool_rounds=4)
    assert Config.from_dict(config.to_dict()) == config


def test_validate_config_valid() -> None:
    is_valid, errors = validate_config({"api_key": "k", "streaming": True, "chunk_length": 500})
    assert is_valid
    assert errors == []


def test_validate_config_missing_api_key() -> None:
    is_valid, errors = validate_config({"model": "m"})
    assert not is_valid
    assert errors == ["Missing required field: api_key"]


@pytest.mark.parametrize(
    "field,value",
    [
        ("provider", "anthropic"),
        ("base_url", "api.test.com"),
        ("streaming", "yes"),
        ("cot_grammar", "haiku"),
        ("search_engine", "bing"),
        ("duplicate_continuation", "never"),
        ("chunk_length", 0),
        ("max_tool_rounds", True),
        ("context_window", -1),
    ],
)
def test_validate_config_invalid_field(field, value) -> None:
    is_valid, errors = validate_config({"api_key": "k", field: value})
    assert not is_valid
    assert any(field in error for error in errors)


def test_validate_config_unknown_field() -> None:
    is_valid, errors = validate_config({"api_key": "k", "default_effort": "m"})
    assert not is_valid
    assert "Unknown fields: default_effort" in errors


def test_save_and_load(config_file) -> None:
    save_config(Config(api_key="saved", search_engine="duckduckgo"))

    assert json.loads(config_file.read_text(encoding="utf-8"))["api_key"] == "saved"
    loaded = load_config()
    assert loaded.api_key == "saved"
    assert loaded.search_engine == "duckduckgo"


def test_load_missing(config_file) -> None:
    with pytest.raises(FileNotFoundError):
        load_config()


def test_load_invalid(config_file) -> None:
    config_file.write_text(json.dumps({"api_key": "k", "provider": "nope"}), encoding="utf-8")
    with pytest.raises(ValueError, match="provider"):
        load_config()


def test_system_prompt() -> None:
    prompt = get_system_prompt(chunk_length=2000)
    assert datetime.now().strftime("%Y-%m-%d") in prompt
    assert '"length":2000' in prompt
    assert '{"tool":"web_search","arguments":{"query":"your query"}}' in prompt
    assert "jina, duckduckgo" in prompt


def test_system_prompt_custom_template() -> None:
    assert get_system_prompt(prompt_template="Today is {current_date}.").startswith("Today is ")


def test_decision_prompt() -> None:
    prompt = get_decision_prompt("what is it?", "some snippet")
    assert '"what is it?"' in prompt
    assert '"some snippet"' in prompt
    assert "YES or NO" in prompt
