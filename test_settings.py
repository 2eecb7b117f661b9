"""Tests for the settings classes and JSON loading."""

import json

import pytest

from touchscreen_sketch.config.settings import (
    ConversionConfig,
    CornerConfig,
    GestureConfig,
    load_settings,
)


def test_instance_override_leaves_defaults_alone():
    config = CornerConfig(MIN_SEGMENT_LENGTH=10)
    assert config.MIN_SEGMENT_LENGTH == 10
    assert CornerConfig.MIN_SEGMENT_LENGTH == 15.0
    assert CornerConfig().MIN_SEGMENT_LENGTH == 15.0


def test_unknown_setting_rejected():
    with pytest.raises(ValueError):
        GestureConfig(TAP_RADIUS_PX=5)
    with pytest.raises(ValueError):
        GestureConfig(tap_radius=5)


def test_from_dict_accepts_lower_case():
    config = ConversionConfig.from_dict({'line_threshold': 1.5})
    assert config.LINE_THRESHOLD == 1.5
    assert config.as_dict()['ARC_THRESHOLD'] == ConversionConfig.ARC_THRESHOLD


def test_load_settings(tmp_path):
    path = tmp_path / 'settings.json'
    path.write_text(json.dumps({'gesture': {'tap_timeout': 250}, 'pipeline': {}}))

    settings = load_settings(str(path))
    assert settings['gesture'].TAP_TIMEOUT == 250
    assert settings['corner'].SMOOTHING_WINDOW == CornerConfig.SMOOTHING_WINDOW


def test_load_settings_unknown_section(tmp_path):
    path = tmp_path / 'settings.json'
    path.write_text(json.dumps({'rendering': {}}))
    with pytest.raises(ValueError):
        load_settings(str(path))


def test_simplicity_bonus_is_read_only():
    config = ConversionConfig()
    with pytest.raises(TypeError):
        config.SIMPLICITY_BONUS['line'] = 1.0
    with pytest.raises(TypeError):
        config.as_dict()['SIMPLICITY_BONUS']['arc'] = 1.0
    assert ConversionConfig.SIMPLICITY_BONUS['line'] == 0.1


def test_mapping_override_is_copied():
    bonus = {'line': 0.0, 'arc': 0.0, 'circle': 0.0, 'unknown': 0.0}
    config = ConversionConfig(SIMPLICITY_BONUS=bonus)
    bonus['line'] = 5.0

    assert config.SIMPLICITY_BONUS['line'] == 0.0
    with pytest.raises(TypeError):
        config.SIMPLICITY_BONUS['line'] = 1.0
    assert ConversionConfig().SIMPLICITY_BONUS['line'] == 0.1
