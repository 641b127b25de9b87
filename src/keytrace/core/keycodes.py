"""Canonical key-code normalisation.

Physical key codes (``KeyA``, ``ShiftLeft``, ``Digit7`` ...) are mapped to a
logical key group once, when a :class:`~keytrace.core.timeline.KeyEvent` is
built.  Everything downstream (press counts, the keyboard overview, active
key highlighting) compares groups instead of re-deriving them from raw
codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Collection, Dict, List

# Codes whose logical group cannot be derived from a prefix.
CODE_GROUPS: Dict[str, str] = {
    "Space": "Space",
    "Enter": "Enter",
    "NumpadEnter": "Enter",
    "Backspace": "Backspace",
    "Tab": "Tab",
    "CapsLock": "CapsLock",
    "Escape": "Escape",
    "ShiftLeft": "Shift",
    "ShiftRight": "Shift",
    "ControlLeft": "Ctrl",
    "ControlRight": "Ctrl",
    "AltLeft": "Alt",
    "AltRight": "Alt",
    "MetaLeft": "Meta",
    "MetaRight": "Meta",
    "Backquote": "`",
    "Minus": "-",
    "Equal": "=",
    "BracketLeft": "[",
    "BracketRight": "]",
    "Backslash": "\\",
    "Semicolon": ";",
    "Quote": "'",
    "Comma": ",",
    "Period": ".",
    "Slash": "/",
}

# Short names shown for non-printing keys in listings.
DISPLAY_NAMES: Dict[str, str] = {
    "Space": "Space",
    "Enter": "Enter",
    "Backspace": "Backspace",
    "Tab": "Tab",
    "CapsLock": "Caps",
    "Escape": "Esc",
    "Shift": "Shift",
    "Ctrl": "Ctrl",
    "Alt": "Alt",
    "Meta": "Meta",
}

KEYBOARD_LAYOUT: List[List[str]] = [
    ["`", "1", "2", "3", "4", "5", "6", "7", "8", "9", "0", "-", "=", "Backspace"],
    ["Tab", "q", "w", "e", "r", "t", "y", "u", "i", "o", "p", "[", "]", "\\"],
    ["CapsLock", "a", "s", "d", "f", "g", "h", "j", "k", "l", ";", "'", "Enter"],
    ["Shift", "z", "x", "c", "v", "b", "n", "m", ",", ".", "/"],
    ["Ctrl", "Meta", "Alt", "Space"],
]

_PREFIXES = (("Key", str.lower), ("Digit", str), ("Numpad", str))


@lru_cache(maxsize=256)
def normalize_code(code: str, key: str = "") -> str:
    """Return the logical key group for a physical ``code``.

    Codes missing from :data:`CODE_GROUPS` are resolved by prefix
    (``KeyQ`` -> ``q``, ``Digit4`` -> ``4``); anything else falls back to the
    lower-cased ``key`` label, or to ``code`` itself when no label is known.
    """

    if code in CODE_GROUPS:
        return CODE_GROUPS[code]
    for prefix, convert in _PREFIXES:
        rest = code[len(prefix):]
        if code.startswith(prefix) and len(rest) == 1:
            return convert(rest)
    if key == " ":
        return "Space"
    if key:
        return key.lower()
    return code


def display_name(code: str, key: str) -> str:
    """Human readable name used in event listings."""

    group = normalize_code(code, key)
    return DISPLAY_NAMES.get(group, key.upper() if key.strip() else group)


def marker_label(key: str) -> str:
    """Label drawn next to an event marker; the space bar reads ``Space``."""

    return "Space" if key == " " else key


@dataclass(frozen=True)
class KeyCap:
    """State of a single key in the keyboard overview."""

    group: str
    label: str
    count: int
    active: bool


def keyboard_state(counts: Dict[str, int], active: Collection[str] = ()) -> List[List[KeyCap]]:
    """Combine press counts and held keys into :data:`KEYBOARD_LAYOUT` rows.

    ``counts`` maps key groups to the number of recorded presses (see
    :meth:`EventTimeline.counts_by_group`); ``active`` holds the groups that
    are currently pressed.
    """

    return [
        [
            KeyCap(
                group=group,
                label=DISPLAY_NAMES.get(group, group),
                count=int(counts.get(group, 0)),
                active=group in active,
            )
            for group in row
        ]
        for row in KEYBOARD_LAYOUT
    ]


__all__ = [
    "CODE_GROUPS",
    "DISPLAY_NAMES",
    "KEYBOARD_LAYOUT",
    "KeyCap",
    "normalize_code",
    "display_name",
    "marker_label",
    "keyboard_state",
]
