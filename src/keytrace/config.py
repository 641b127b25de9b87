from __future__ import annotations

"""Configuration utilities for keytrace.

This module defines a hierarchical configuration schema using Pydantic models.
The :class:`Settings` container groups the event window, viewport, selection,
rendering, playback, capture, decoding, export and logging sections.
Instances can be populated from ``KEYTRACE_`` environment variables or from
YAML/JSON files with matching nested keys.
"""

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import EnvSettingsSource

try:  # pragma: no cover - optional dependency
    import yaml  # type: ignore
except Exception:  # pragma: no cover
    yaml = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _split_strings(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class SectionModel(BaseModel):
    """Base model for configuration subsections that ignores unknown fields."""

    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Settings schema
# ---------------------------------------------------------------------------


class WindowSettings(SectionModel):
    """Audio window recorded around each key press, in seconds."""

    pre_roll: float = Field(0.5, ge=0.0)
    post_roll: float = Field(0.5, ge=0.0)


class ViewportSettings(SectionModel):
    """Zoom bounds and step factors."""

    min_zoom: float = Field(1.0, gt=0.0)
    max_zoom: float = 20.0
    wheel_in_factor: float = Field(1.1, gt=1.0)
    wheel_out_factor: float = Field(0.9, gt=0.0, lt=1.0)
    button_factor: float = Field(1.2, gt=1.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "ViewportSettings":
        if self.max_zoom < self.min_zoom:
            raise ValueError("max_zoom must not be smaller than min_zoom")
        return self


class SelectionSettings(SectionModel):
    """Hit-testing options."""

    hit_threshold: float = Field(0.1, gt=0.0)


class RenderSettings(SectionModel):
    """Default canvas geometry and drawing mode."""

    width: int = Field(1200, gt=0)
    height: int = Field(300, gt=0)
    tick_divisions: int = Field(10, gt=0)
    mode: Literal["waveform", "spectrogram"] = "waveform"


class PlaybackSettings(SectionModel):
    """Playhead refresh interval in seconds."""

    tick_interval: float = Field(1.0 / 60.0, gt=0.0)


class CaptureSettings(SectionModel):
    """Options for the capture collaborator."""

    mime_hint: str = "audio/wav"
    active_key_timeout: float = Field(0.15, ge=0.0)


class DecodeSettings(SectionModel):
    """Declared audio types accepted for import."""

    accepted_types: list[str] = Field(
        default_factory=lambda: [
            "audio/wav",
            "audio/x-wav",
            "audio/wave",
            "audio/mp3",
            "audio/mpeg",
            "audio/ogg",
            "audio/flac",
        ]
    )

    @field_validator("accepted_types", mode="before")
    @classmethod
    def _coerce_types(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _split_strings(value)
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        return value


class ExportSettings(SectionModel):
    """Where and how exported segment archives are written."""

    output_dir: str = "."
    archive_prefix: str = "keyboard_segments"
    metadata_name: str = "metadata.json"


class LoggingSettings(SectionModel):
    """Logger level and format used by the command line interface."""

    level: str = "INFO"
    format: str = "%(levelname)s:%(name)s:%(message)s"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class Settings(BaseSettings):
    """Container for all runtime configuration sections."""

    window: WindowSettings = Field(default_factory=WindowSettings)
    viewport: ViewportSettings = Field(default_factory=ViewportSettings)
    selection: SelectionSettings = Field(default_factory=SelectionSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    decode: DecodeSettings = Field(default_factory=DecodeSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix="KEYTRACE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        class LenientEnvSettingsSource(EnvSettingsSource):
            def decode_complex_value(self, field_name, target_field, value):  # type: ignore[override]
                try:
                    return super().decode_complex_value(field_name, target_field, value)
                except json.JSONDecodeError:
                    return value

        env_settings.__class__ = LenientEnvSettingsSource
        return init_settings, env_settings, dotenv_settings, file_secret_settings


# ---------------------------------------------------------------------------
# Loading utilities
# ---------------------------------------------------------------------------


def load_settings(path: str | Path) -> Settings:
    """Load settings from a JSON or YAML file."""

    p = Path(path)
    text = p.read_text()
    if p.suffix.lower() in {".yaml", ".yml"}:
        if yaml is None:
            raise RuntimeError("PyYAML is required to load YAML files")
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise TypeError("Configuration file must define a mapping")
    return Settings.model_validate(data)
