"""Expansion of ``$NAME`` and ``$?`` inside words."""

from __future__ import annotations

import string
from collections.abc import Iterable

from minish.textutil import env_name_matches

_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_")


def lookup_variable(envp: Iterable[str], name: str) -> str:
    """Return the value of ``name`` in a list of ``NAME=value`` strings, or ""."""
    for entry in envp:
        if env_name_matches(entry, name):
            return entry[len(name) + 1 :]
    return ""


def expand_variables(
    word: str,
    envp: Iterable[str],
    exit_status: int = 0,
    next_quoted: bool = False,
) -> str:
    """Expand the variables of ``word`` against ``envp``.

    The first ``$`` is replaced by the value of the name that follows it
    (``$?`` gives ``exit_status``).  While the text after that name still
    holds a ``$``, the whole result is expanded again, so ``$`` signs that
    come from a value are expanded too.  A ``$`` that ends the text expands
    to ``$`` alone.  A lone ``$`` before a quoted token (``next_quoted``)
    expands to nothing.
    """
    envp = list(envp)
    if word == "$" and next_quoted:
        return ""
    while True:
        dollar = word.find("$")
        if dollar == -1:
            return word
        start = dollar + 1
        if start == len(word):
            return "$"
        end = start
        while end < len(word) and word[end] in _NAME_CHARS:
            end += 1
        if word[start] == "?":
            value = str(exit_status)
            end = start + 1
        else:
            value = lookup_variable(envp, word[start:end])
        rest = word[end:]
        expanded = word[:dollar] + value + rest
        if "$" not in rest:
            return expanded
        word = expanded


def has_expandable_variable(text: str) -> bool:
    """True when ``text`` holds a ``$`` and no single quote."""
    if "'" in text:
        return False
    return "$" in text