"""Environment lookups and numeric helpers shared by the shell."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_WHITESPACE = " \t\n\v\f\r"
_LEADING_DIGITS = re.compile(r"[0-9]*")
_LONG_MAX = 2**63 - 1


@dataclass
class ShellState:
    """Mutable state of a running shell: its environment and last exit status.

    The environment is kept as ``NAME=value`` strings in insertion order,
    which is the order ``env`` prints them in.
    """

    env: list[str] = field(default_factory=list)
    status: int = 0


def get_env_value(env, name):
    """Return the value of variable ``name`` in ``env``, or None if unset.

    Only entries of the form ``name=...`` match; an entry without ``=``
    is never a match.
    """
    for entry in env:
        key, sep, value = entry.partition("=")
        if sep and key == name:
            return value
    return None


def get_env_prefix(env, prefix):
    """Return what follows ``prefix`` in the first entry starting with it."""
    for entry in env:
        if entry.startswith(prefix):
            return entry[len(prefix):]
    return None


def status_text(status):
    """Render an exit status the way ``$?`` expands it."""
    if status == 256:
        return "1"
    return str(status)


def _to_int32(value):
    value &= 0xFFFFFFFF
    return value - 2**32 if value >= 2**31 else value


def parse_exit_number(text):
    """Read a leading, optionally signed decimal number as a 32-bit int.

    Leading whitespace is skipped and parsing stops at the first
    non-digit. A value beyond the range of a 64-bit long is clamped to
    that range before being narrowed to 32 bits.
    """
    rest = text.lstrip(_WHITESPACE)
    negative = False
    if rest[:1] in ("-", "+"):
        negative = rest[0] == "-"
        rest = rest[1:]
    digits = _LEADING_DIGITS.match(rest).group()
    value = int(digits) if digits else 0
    cutoff = _LONG_MAX + 1 if negative else _LONG_MAX
    if value > cutoff:
        return _to_int32(cutoff)
    return _to_int32(-value if negative else value)