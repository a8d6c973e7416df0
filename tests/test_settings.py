from pathlib import Path

import pytest

from locatorsynth.errors import SettingsError
from locatorsynth.settings import SynthesisSettings, load_settings, save_settings


def test_settings_roundtrip(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "settings.json"
    original = SynthesisSettings(
        fast_max_depth=4,
        deep_max_depth=12,
        aggressive_digits=False,
        stable_words=("save", "apply"),
    )

    ok, error = save_settings(original, config_path)

    assert ok
    assert error is None
    assert load_settings(config_path) == original
    assert not list(config_path.parent.glob("*.tmp"))


def test_settings_load_fallbacks(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.json"
    assert load_settings(config_path) == SynthesisSettings()

    config_path.write_text("{invalid", encoding="utf-8")
    assert load_settings(config_path) == SynthesisSettings()

    config_path.write_text("[1, 2, 3]", encoding="utf-8")
    assert load_settings(config_path) == SynthesisSettings()


def test_settings_ignore_bad_values(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.json"
    config_path.write_text('{"fast_max_depth": "many", "deep_candidate_limit": 20, "unknown": 1}', encoding="utf-8")

    loaded = load_settings(config_path)

    assert loaded.fast_max_depth == SynthesisSettings().fast_max_depth
    assert loaded.deep_candidate_limit == 20


def test_settings_invalid_combination_falls_back(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.json"
    config_path.write_text('{"fast_max_depth": 20, "deep_max_depth": 5}', encoding="utf-8")

    assert load_settings(config_path) == SynthesisSettings()


def test_settings_validate() -> None:
    SynthesisSettings().validate()
    with pytest.raises(SettingsError):
        SynthesisSettings(fast_candidate_limit=0).validate()
    with pytest.raises(SettingsError):
        SynthesisSettings(fast_max_depth=8, deep_max_depth=4).validate()


def test_settings_accept_only_json_booleans(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.json"
    config_path.write_text('{"aggressive_digits": "false"}', encoding="utf-8")
    assert load_settings(config_path).aggressive_digits is True

    config_path.write_text('{"aggressive_digits": false}', encoding="utf-8")
    assert load_settings(config_path).aggressive_digits is False
