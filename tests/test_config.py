from __future__ import annotations

import pytest

from sentrytap.config import (
    DEFAULT_CONFIG,
    DEFAULT_GENERIC_TYPE_PREFIXES,
    ConfigError,
    TapConfig,
    apply_env_overrides,
    load_config,
)

FULL_CONFIG = """
fingerprint:
  placeholder: "{id}"
  snippet_length: 20
  log_response_bodies: false
classification:
  generic_type_prefixes:
    - builtins.
    - app.errors.Wrapped
logging:
  json_enabled: true
  level: DEBUG
"""


def test_defaults():
    assert DEFAULT_CONFIG == TapConfig()
    assert DEFAULT_CONFIG.path_placeholder == "-omitted-"
    assert DEFAULT_CONFIG.snippet_length == 15
    assert DEFAULT_CONFIG.log_response_bodies is True
    assert DEFAULT_CONFIG.generic_type_prefixes == DEFAULT_GENERIC_TYPE_PREFIXES


def test_load_full_config(tmp_path):
    path = tmp_path / "sentrytap.yaml"
    path.write_text(FULL_CONFIG)
    cfg = load_config(path)
    assert cfg.path_placeholder == "{id}"
    assert cfg.snippet_length == 20
    assert cfg.log_response_bodies is False
    assert cfg.generic_type_prefixes == ("builtins.", "app.errors.Wrapped")
    assert cfg.logging_json_enabled is True
    assert cfg.logging_level == "DEBUG"


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == DEFAULT_CONFIG


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "fingerprint:\n  snippet_length: many\n",
        "fingerprint:\n  snippet_length: -1\n",
        "fingerprint:\n  log_response_bodies: sometimes\n",
        "classification:\n  generic_type_prefixes: 3\n",
        "- just\n- a list\n",
        "fingerprint: [unclosed\n",
    ],
)
def test_invalid_values(tmp_path, text):
    path = tmp_path / "bad.yaml"
    path.write_text(text)
    with pytest.raises(ConfigError):
        load_config(path)


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("SENTRYTAP_PLACEHOLDER", ":id")
    monkeypatch.setenv("SENTRYTAP_LOG_RESPONSE_BODIES", "0")
    monkeypatch.setenv("SENTRYTAP_GENERIC_TYPES", "builtins., app.Wrapped ,")
    cfg = apply_env_overrides(TapConfig())
    assert cfg.path_placeholder == ":id"
    assert cfg.log_response_bodies is False
    assert cfg.generic_type_prefixes == ("builtins.", "app.Wrapped")

    path = tmp_path / "cfg.yaml"
    path.write_text("fingerprint:\n  placeholder: x\n")
    assert load_config(path).path_placeholder == ":id"


def test_config_is_read_only():
    with pytest.raises(AttributeError):
        DEFAULT_CONFIG.path_placeholder = "changed"  # type: ignore[misc]
