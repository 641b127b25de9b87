import json
import pytest
from pydantic import ValidationError

from keytrace.config import Settings, load_settings


def test_defaults():
    s = Settings()
    assert s.window.pre_roll == 0.5 and s.window.post_roll == 0.5
    assert s.selection.hit_threshold == 0.1
    assert (s.viewport.min_zoom, s.viewport.max_zoom) == (1.0, 20.0)
    assert s.capture.active_key_timeout == 0.15
    assert s.export.archive_prefix == "keyboard_segments"


def test_from_env(monkeypatch):
    monkeypatch.setenv("KEYTRACE_SELECTION__HIT_THRESHOLD", "0.25")
    monkeypatch.setenv("KEYTRACE_LOGGING__LEVEL", "debug")
    s = Settings()
    assert s.selection.hit_threshold == 0.25
    assert s.logging.level == "DEBUG"


def test_from_env_accepted_types(monkeypatch):
    monkeypatch.setenv("KEYTRACE_DECODE__ACCEPTED_TYPES", "audio/wav,audio/flac")
    s = Settings()
    assert s.decode.accepted_types == ["audio/wav", "audio/flac"]


def test_invalid_values():
    with pytest.raises(ValidationError):
        Settings.model_validate({"viewport": {"min_zoom": 5, "max_zoom": 2}})
    with pytest.raises(ValidationError):
        Settings.model_validate({"render": {"mode": "sonogram"}})


def test_load_settings_json(tmp_path):
    p = tmp_path / "cfg.json"
    p.write_text(json.dumps({"window": {"pre_roll": 0.25}, "render": {"width": 640}}))
    s = load_settings(p)
    assert s.window.pre_roll == 0.25
    assert s.render.width == 640


try:
    import yaml  # type: ignore
except Exception:  # pragma: no cover
    yaml = None


@pytest.mark.skipif(yaml is None, reason="PyYAML not installed")
def test_load_settings_yaml(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("window:\n  post_roll: 0.75\nviewport:\n  max_zoom: 40\n")
    s = load_settings(p)
    assert s.window.post_roll == 0.75
    assert s.viewport.max_zoom == 40


def test_load_settings_rejects_non_mapping(tmp_path):
    p = tmp_path / "cfg.json"
    p.write_text("[1, 2]")
    with pytest.raises(TypeError):
        load_settings(p)
