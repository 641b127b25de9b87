"""Exceptions raised by keytrace.

The user-facing conditions (:class:`CaptureUnavailable`,
:class:`DecodeFailure`, :class:`UnsupportedFormat` and
:class:`EmptySelection`) are recovered by :class:`~keytrace.core.session.Session`
and reported as notifications.  Library callers that use the lower level
functions directly receive them as ordinary exceptions.
"""

from __future__ import annotations


class KeytraceError(Exception):
    """Base class for all keytrace errors."""


class CaptureUnavailable(KeytraceError):
    """Raised when the capture device cannot be acquired."""


class DecodeFailure(KeytraceError):
    """Raised when audio bytes cannot be decoded into samples."""


class UnsupportedFormat(DecodeFailure):
    """Raised before decoding when the declared audio type is not accepted."""

    def __init__(self, mime_hint: str) -> None:
        self.mime_hint = mime_hint
        super().__init__(f"unsupported audio format: {mime_hint!r}")


class EmptySelection(KeytraceError):
    """Raised when an export is requested with no selected events."""

    def __init__(self, message: str = "no key press segments selected") -> None:
        super().__init__(message)


class InvalidTransition(KeytraceError):
    """Raised when a session is asked to move between incompatible states."""

    def __init__(self, current: object, target: object) -> None:
        self.current = current
        self.target = target
        super().__init__(f"cannot move session from {current} to {target}")


__all__ = [
    "KeytraceError",
    "CaptureUnavailable",
    "DecodeFailure",
    "UnsupportedFormat",
    "EmptySelection",
    "InvalidTransition",
]
