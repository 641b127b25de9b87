from __future__ import annotations

"""Command line interface for keytrace using Typer."""

from collections.abc import Mapping
from pathlib import Path
from typing import Dict, List, NoReturn, Optional

import json
import logging

import matplotlib.pyplot as plt
import typer
from pydantic import ValidationError

from .config import Settings, load_settings
from .core.keycodes import display_name
from .core.timeline import find_nearest_event
from .core.session import Session
from .errors import DecodeFailure
from .export.archive import ZipArchiveSink
from .ingest import EventsParseError, decode_file, read_events
from .types import SampleBuffer
from .utils.logging import configure_logging
from .utils.timeparse import parse_time
from .viz.plot_frame import save_frame
from .viz.waveform import render_frame

app = typer.Typer(help="Correlate keyboard events with recorded audio")
logger = logging.getLogger(__name__)


def _parse_override_value(raw: str) -> object:
    lower = raw.lower()
    if lower in {"true", "false"}:
        return lower == "true"
    if lower in {"null", "none"}:
        return None
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        pass
    if raw.startswith("[") or raw.startswith("{"):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            raise typer.BadParameter(f"invalid JSON override value: {raw}") from None
    return raw


def _ensure_path(settings: Settings, keys: List[str]) -> None:
    current: object = settings
    for key in keys[:-1]:
        if not hasattr(current, key):
            raise typer.BadParameter(f"unknown configuration key: {'.'.join(keys)}")
        current = getattr(current, key)
    if not hasattr(current, keys[-1]):
        raise typer.BadParameter(f"unknown configuration key: {'.'.join(keys)}")


def _apply_override(data: Dict[str, object], keys: List[str], value: object) -> None:
    target = data
    for key in keys[:-1]:
        existing = target.get(key)
        if not isinstance(existing, dict):
            existing = {}
            target[key] = existing
        target = existing
    target[keys[-1]] = value


def _time_option(raw: Optional[str], name: str) -> Optional[float]:
    if raw is None:
        return None
    try:
        return parse_time(raw)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint=name) from exc


def _fail(ctx: typer.Context, msg: str) -> NoReturn:
    if ctx.meta.get("debug"):
        logger.exception(msg)
        raise
    typer.secho(msg, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


@app.callback()
def init(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        dir_okay=False,
        file_okay=True,
        exists=False,
        help="Path to a YAML or JSON configuration file.",
    ),
    set_overrides: List[str] = typer.Option(
        [],
        "--set",
        help="Override configuration values using dotted paths, e.g. selection.hit_threshold=0.2",
    ),
    debug: bool = typer.Option(False, "--debug", help="Show tracebacks on failure"),
) -> None:
    """Initialise the Typer context with validated settings."""

    if config is not None and not config.exists():
        raise typer.BadParameter(f"configuration file not found: {config}")

    try:
        if config is not None:
            settings = load_settings(config)
        elif isinstance(ctx.obj, Settings):
            settings = ctx.obj
        elif isinstance(ctx.obj, Mapping):
            settings = Settings.model_validate(dict(ctx.obj))
        else:
            settings = Settings()
    except (FileNotFoundError, RuntimeError, TypeError, json.JSONDecodeError, ValidationError) as exc:
        raise typer.BadParameter(f"failed to load configuration: {exc}") from exc

    if set_overrides:
        data = settings.model_dump()
        for override in set_overrides:
            if "=" not in override:
                raise typer.BadParameter(
                    "overrides must be of the form --set section.key=value"
                )
            key, raw_value = override.split("=", 1)
            if not key:
                raise typer.BadParameter("override key cannot be empty")
            keys = key.split(".")
            _ensure_path(settings, keys)
            value = _parse_override_value(raw_value)
            _apply_override(data, keys, value)
        try:
            settings = Settings.model_validate(data)
        except ValidationError as exc:
            raise typer.BadParameter(f"invalid configuration override: {exc}") from exc

    configure_logging(settings.logging)
    ctx.meta["debug"] = debug
    ctx.obj = settings


def _load_audio(ctx: typer.Context, audio: Path) -> SampleBuffer:
    cfg: Settings = ctx.obj
    try:
        return decode_file(audio, accepted=cfg.decode.accepted_types)
    except DecodeFailure as exc:
        _fail(ctx, f"Failed to load audio {audio}: {exc}")


def _open_session(ctx: typer.Context, audio: Path, events: Optional[Path]) -> Session:
    cfg: Settings = ctx.obj
    buffer = _load_audio(ctx, audio)
    try:
        key_events = (
            read_events(events, pre_roll=cfg.window.pre_roll, post_roll=cfg.window.post_roll)
            if events is not None
            else []
        )
    except (EventsParseError, ValueError, OSError) as exc:
        _fail(ctx, f"Failed to load key events {events}: {exc}")
    session = Session(cfg)
    session.open_recording(buffer, key_events)
    return session


def _select_times(session: Session, times: List[str]) -> int:
    """Select the press nearest to each of ``times``; repeats never deselect."""

    threshold = session.settings.selection.hit_threshold
    matched = 0
    for raw in times:
        t = _time_option(raw, "--select")
        event = find_nearest_event(t, session.timeline, threshold=threshold)
        if event is None:
            typer.secho(f"no key press within {threshold}s of {t:.3f}s", err=True)
        else:
            session.timeline.set_selected(event.id, True)
            matched += 1
    return matched


@app.command()
def info(
    ctx: typer.Context,
    audio: Path = typer.Argument(..., exists=True, dir_okay=False),
) -> None:
    """Decode ``audio`` and print its duration, sample rate and length."""

    buffer = _load_audio(ctx, audio)
    typer.echo(
        f"{audio.name}: duration={buffer.duration:.3f}s sample_rate={buffer.sample_rate} samples={len(buffer)}"
    )


@app.command()
def events(
    ctx: typer.Context,
    events_path: Path = typer.Argument(..., exists=True, dir_okay=False, metavar="EVENTS"),
    audio: Optional[Path] = typer.Option(None, "--audio", "-a", exists=True, dir_okay=False),
) -> None:
    """List key presses from ``EVENTS``.

    When ``--audio`` is given the windows are clamped to the audio duration
    and presses after the end of the audio are dropped, exactly as after a
    live recording.
    """

    cfg: Settings = ctx.obj
    if audio is not None:
        timeline = _open_session(ctx, audio, events_path).timeline
    else:
        try:
            timeline = read_events(events_path, pre_roll=cfg.window.pre_roll, post_roll=cfg.window.post_roll)
        except (EventsParseError, ValueError, OSError) as exc:
            _fail(ctx, f"Failed to load key events {events_path}: {exc}")

    for idx, event in enumerate(timeline, start=1):
        typer.echo(
            f"#{idx} {display_name(event.key_code, event.key_label)} code={event.key_code} "
            f"time={event.event_time:.3f}s window={event.window_start:.3f}s-{event.window_end:.3f}s "
            f"duration={event.window_duration:.3f}s"
        )
    typer.echo(f"{len(timeline)} key press(es)")


@app.command()
def render(
    ctx: typer.Context,
    audio: Path = typer.Argument(..., exists=True, dir_okay=False),
    events_path: Optional[Path] = typer.Argument(None, exists=True, dir_okay=False, metavar="[EVENTS]"),
    output: Path = typer.Option(..., "--output", "-o", help="Image file to write"),
    zoom: float = typer.Option(1.0, "--zoom", help="Zoom level, clamped to the configured bounds"),
    pan: str = typer.Option("0", "--pan", help="Start of the visible window"),
    width: Optional[int] = typer.Option(None, "--width", min=1),
    height: Optional[int] = typer.Option(None, "--height", min=1),
    playhead: Optional[str] = typer.Option(None, "--playhead"),
    trim_start: Optional[str] = typer.Option(None, "--trim-start"),
    trim_end: Optional[str] = typer.Option(None, "--trim-end"),
    spectrogram: bool = typer.Option(False, "--spectrogram", help="Draw the amplitude heatmap instead"),
    select: List[str] = typer.Option([], "--select", "-s", help="Select the press nearest to this time"),
) -> None:
    """Render the waveform, key markers and ticks of ``AUDIO`` to an image."""

    cfg: Settings = ctx.obj
    session = _open_session(ctx, audio, events_path)
    session.viewport = session.viewport.with_zoom(zoom).with_pan(_time_option(pan, "--pan"))
    _select_times(session, select)
    if trim_start is not None:
        session.set_trim_start(_time_option(trim_start, "--trim-start"))
    if trim_end is not None:
        session.set_trim_end(_time_option(trim_end, "--trim-end"))

    frame = render_frame(
        session.buffer,
        session.timeline,
        session.viewport,
        width=width or cfg.render.width,
        height=height or cfg.render.height,
        playhead=_time_option(playhead, "--playhead"),
        trim_start=session.trim_start,
        trim_end=session.trim_end,
        mode="spectrogram" if spectrogram else cfg.render.mode,
        tick_divisions=cfg.render.tick_divisions,
    )
    fig = save_frame(frame, output)
    if fig is not None:
        plt.close(fig)
    visible = session.viewport.visible
    typer.echo(
        f"Rendered {visible.start:.3f}s-{visible.end:.3f}s "
        f"(zoom {session.viewport.zoom_level:.1f}x) to {output}"
    )


@app.command()
def export(
    ctx: typer.Context,
    audio: Path = typer.Argument(..., exists=True, dir_okay=False),
    events_path: Path = typer.Argument(..., exists=True, dir_okay=False, metavar="EVENTS"),
    select: List[str] = typer.Option([], "--select", "-s", help="Select the press nearest to this time"),
    all_: bool = typer.Option(False, "--all", help="Export every key press"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", file_okay=False, help="Output directory"),
) -> None:
    """Export the selected key press segments as WAV files in a zip archive."""

    cfg: Settings = ctx.obj
    session = _open_session(ctx, audio, events_path)
    if all_:
        session.timeline.select_all()
    else:
        _select_times(session, select)

    sink = ZipArchiveSink(
        output or cfg.export.output_dir,
        prefix=cfg.export.archive_prefix,
        metadata_name=cfg.export.metadata_name,
    )
    path = session.export(sink)
    if path is None:
        note = session.notifications[-1]
        typer.secho(f"{note.title}: {note.description}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Exported {len(session.timeline.selected())} segments to {path}")


def main() -> None:
    """Execute the Typer application."""

    app()


if __name__ == "__main__":
    main()
