"""Utilities for parsing and formatting human friendly time values."""

from __future__ import annotations


def parse_time(text: str) -> float:
    """Parse ``text`` as a time value in seconds.

    Accepted formats are:

    * ``HH:MM:SS``
    * ``MM:SS``
    * ``SS``

    Fractional seconds and a trailing ``s`` unit (``"1.25s"``) are
    supported.  ``ValueError`` is raised on malformed or negative input.
    """

    cleaned = text.strip()
    if cleaned.endswith("s"):
        cleaned = cleaned[:-1].rstrip()
    if not cleaned:
        raise ValueError("empty time string")

    parts = cleaned.split(":")
    if len(parts) > 3:
        raise ValueError("too many components in time string")
    try:
        parts_f = [float(p) for p in parts]
    except ValueError as exc:
        raise ValueError(f"invalid time value: {text!r}") from exc
    if any(p < 0 for p in parts_f):
        raise ValueError(f"negative time value: {text!r}")

    seconds = 0.0
    for value in parts_f:
        seconds = seconds * 60 + value
    return seconds


def format_seconds(t: float, places: int = 2) -> str:
    """Format ``t`` as ``"<t>s"`` with ``places`` decimals (``1.20s``)."""

    return f"{t:.{places}f}s"
