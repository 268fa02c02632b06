"""Small string helpers shared by the lexer, parser and builtins."""

from __future__ import annotations

import re

_BLANKS = " \t\n\v\f\r"
_BLANK_RUN = re.compile(r"[ \t\n\v\f\r]+")
_LONG_MIN_TEXT = "-9223372036854775808"
_LONG_MAX = 2**63 - 1


def _skip_blanks(text: str) -> int:
    pos = 0
    while pos < len(text) and text[pos] in _BLANKS:
        pos += 1
    return pos


def _read_sign(text: str, pos: int) -> tuple[int, int]:
    if pos < len(text) and text[pos] in "+-":
        return (-1 if text[pos] == "-" else 1), pos + 1
    return 1, pos


def _read_digits(text: str, pos: int) -> tuple[int, int]:
    end = pos
    while end < len(text) and "0" <= text[end] <= "9":
        end += 1
    return (int(text[pos:end]) if end > pos else 0), end


def atoi(text: str) -> int:
    """Parse a leading integer like C ``atoi``, wrapping to a 32-bit int.

    Leading blanks and one sign are accepted; parsing stops at the first
    non-digit.  Text without digits gives 0.
    """
    sign, pos = _read_sign(text, _skip_blanks(text))
    magnitude, _ = _read_digits(text, pos)
    return ((sign * magnitude + 2**31) % 2**32) - 2**31


def parse_exit_code(text: str) -> int:
    """Parse the argument of ``exit`` as a signed 64-bit number.

    Raises ValueError when the number does not fit in 64 bits or when
    anything other than digits follows the optional sign.
    """
    sign, pos = _read_sign(text, _skip_blanks(text))
    magnitude, end = _read_digits(text, pos)
    if text == _LONG_MIN_TEXT:
        return -(2**63)
    if end < len(text) or magnitude > _LONG_MAX:
        raise ValueError(f"{text}: numeric argument required")
    return sign * magnitude


def split_on(text: str, sep: str) -> list[str]:
    """Split ``text`` on ``sep``, dropping the empty pieces."""
    return [part for part in text.split(sep) if part]


def strip_whitespace(text: str) -> str:
    """Remove spaces and the control blanks (tab to carriage return) at both ends."""
    return text.strip(_BLANKS)


def split_whitespace(text: str) -> list[str]:
    """Split ``text`` on runs of spaces and control blanks."""
    return [part for part in _BLANK_RUN.split(text) if part]


def has_word_break(text: str) -> bool:
    """True when ``text``, once trimmed, still holds whitespace between words."""
    return len(split_whitespace(text)) > 1


def env_name_matches(entry: str | None, name: str | None) -> bool:
    """True when the ``NAME=value`` string ``entry`` defines ``name``."""
    if entry is None or name is None:
        return False
    return entry.startswith(name + "=")


def format_error(cmd: str | None, message: str) -> str:
    """Build a shell error line: the prefix, the command, then ``message``."""
    return f"minishell: {cmd or ''}{message}"