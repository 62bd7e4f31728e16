import json

from settings import (
    SessionConfig,
    default_settings,
    load_settings,
    save_settings,
    whisper_options,
)


def test_load_missing_file_returns_defaults(tmp_path):
    defaults = default_settings()
    assert load_settings(defaults, str(tmp_path / "missing.json")) == defaults


def test_load_overlays_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"silence_timeout_ms": 2500, "preset": "accurate_gpu"}))
    settings = load_settings(default_settings(), str(path))
    assert settings["silence_timeout_ms"] == 2500
    assert settings["preset"] == "accurate_gpu"
    assert settings["min_clip_bytes"] == 1024


def test_load_ignores_bad_json(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2")
    assert load_settings(default_settings(), str(path)) == default_settings()
    assert "Ignoring" in caplog.text


def test_save_then_load(tmp_path):
    path = str(tmp_path / "settings.json")
    settings = default_settings()
    settings["warmup_s"] = 0.5
    save_settings(settings, path)
    assert load_settings(default_settings(), path)["warmup_s"] == 0.5


def test_session_config_from_settings():
    config = SessionConfig.from_settings({"silence_timeout_ms": "3000", "warmup_s": 0})
    assert config.silence_timeout_ms == 3000.0
    assert config.warmup_s == 0.0
    assert config.speech_threshold == 0.035
    assert config.min_clip_bytes == 1024
    assert config.struggle_block_threshold == 3


def test_whisper_options_cpu():
    opts = whisper_options(dict(default_settings(), device="cpu"))
    assert opts["fp16"] is False
    assert opts["beam_size"] == 1
    assert opts["language"] == "en"
    assert opts["condition_on_previous_text"] is False


def test_whisper_options_gpu_preset():
    opts = whisper_options(dict(default_settings(), device="cpu", preset="accurate_gpu"))
    assert opts["beam_size"] == 5
    assert opts["fp16"] is True


def test_whisper_options_auto_language():
    opts = whisper_options(dict(default_settings(), device="cpu", language="auto"))
    assert opts["language"] is None


def test_selected_device_and_speed_persist(tmp_path):
    path = str(tmp_path / "settings.json")
    settings = load_settings(default_settings(), path)
    assert settings["input_device"] is None
    assert settings["tts_speed"] == 1.0

    settings["input_device"] = 3
    settings["tts_speed"] = 0.8
    save_settings(settings, path)

    reloaded = load_settings(default_settings(), path)
    assert reloaded["input_device"] == 3
    assert reloaded["tts_speed"] == 0.8
    assert SessionConfig.from_settings(reloaded).input_device == 3
