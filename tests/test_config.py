from __future__ import annotations

import json

import pytest

from erase_serde_skip.config import DEFAULT_CONFIG, ConfigError, load_config


def _write(tmp_path, payload) -> object:
    path = tmp_path / "erase.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_defaults_fill_missing_keys(tmp_path):
    config = load_config(_write(tmp_path, {"version": "erase-config-v0.1"}))
    assert config.markers == DEFAULT_CONFIG.markers
    assert config.suffixes == (".rs",)
    assert config.exclude_dirs == frozenset({"target", ".git"})


def test_markers_are_normalised(tmp_path):
    config = load_config(
        _write(
            tmp_path,
            {"version": "erase-config-v0.1", "markers": ["my_crate :: erase"], "exclude_dirs": ["vendor"]},
        )
    )
    assert config.markers == ("my_crate::erase",)
    assert config.exclude_dirs == frozenset({"vendor"})


@pytest.mark.parametrize(
    "payload, code",
    [
        ({"version": "other"}, "CONFIG_VERSION_INVALID"),
        ({"version": "erase-config-v0.1", "markers": []}, "CONFIG_VALUE_INVALID"),
        ({"version": "erase-config-v0.1", "suffixes": [""]}, "CONFIG_VALUE_INVALID"),
        ({"version": "erase-config-v0.1", "namespace": "serde"}, "CONFIG_KEY_UNKNOWN"),
        (["not", "an", "object"], "CONFIG_INVALID_JSON"),
    ],
)
def test_invalid_config(tmp_path, payload, code):
    with pytest.raises(ConfigError) as exc:
        load_config(_write(tmp_path, payload))
    assert str(exc.value).startswith(code)


def test_missing_and_unparsable_config(tmp_path):
    with pytest.raises(ConfigError, match="^CONFIG_NOT_FOUND"):
        load_config(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigError, match="^CONFIG_INVALID_JSON"):
        load_config(bad)
