"""Splitting a command line into tokens."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

_WHITESPACE = " \t\n\r\v\f"
_QUOTES = "'\""


class TokenType(Enum):
    """Kind of a lexical token."""

    WORD = "w"
    VARIABLE = "v"
    SPACE = "s"
    PIPE = "p"
    REDIRECT = "r"
    HEREDOC = "h"


@dataclass(frozen=True)
class Token:
    """One token.  ``quoted`` is 0 when bare, 1 in single, 2 in double quotes."""

    word: str
    type: TokenType
    quoted: int = 0

    @property
    def is_text(self) -> bool:
        """True for tokens that make up command arguments."""
        return self.type in (TokenType.WORD, TokenType.VARIABLE)


def has_unclosed_quote(line: str) -> bool:
    """Return True if a single or double quote in ``line`` is never closed."""
    pos = 0
    while pos < len(line):
        char = line[pos]
        if char in _QUOTES:
            close = line.find(char, pos + 1)
            if close == -1:
                return True
            pos = close
        pos += 1
    return False


def _is_redirect(line: str, pos: int) -> bool:
    return pos < len(line) and line[pos] in "<>"


def _is_plain(line: str, pos: int) -> bool:
    char = line[pos]
    return not (
        char in "<>" or char in _WHITESPACE or char in "|$" or char in _QUOTES
    )


def _scan_variable(line: str, pos: int) -> int:
    end = pos + 1
    if end < len(line) and line[end] == "_":
        end += 1
    while end < len(line) and line[end] not in _WHITESPACE and line[end] not in "'\"|":
        end += 1
    return end


def _scan_plain(line: str, pos: int) -> int:
    end = pos
    while end < len(line) and _is_plain(line, end):
        end += 1
    return end


def _scan_redirect(line: str, pos: int) -> tuple[Token, int]:
    pair = line[pos : pos + 2]
    if pair == "<<":
        return Token("<<", TokenType.HEREDOC), pos + 2
    if pair == ">>":
        return Token(">>", TokenType.REDIRECT), pos + 2
    return Token(line[pos], TokenType.REDIRECT), pos + 1


def _scan_quoted(line: str, pos: int) -> tuple[Token, int]:
    quote = line[pos]
    close = line.find(quote, pos + 1)
    if close == -1:
        close = len(line)
    content = line[pos + 1 : close]
    end = min(close + 1, len(line))
    if quote == "'":
        return Token(content, TokenType.WORD, 1), end
    kind = TokenType.VARIABLE if "$" in content else TokenType.WORD
    return Token(content, kind, 2), end


def _scan(line: str) -> Iterator[Token]:
    pos = 0
    length = len(line)
    while pos < length:
        if line.startswith("$$", pos):
            pos += 2
        elif line[pos] == "$":
            end = _scan_variable(line, pos)
            yield Token(line[pos:end], TokenType.VARIABLE)
            pos = end
        if pos >= length:
            break
        char = line[pos]
        if _is_plain(line, pos):
            end = _scan_plain(line, pos)
            yield Token(line[pos:end], TokenType.WORD)
            pos = end
        elif char in _WHITESPACE:
            yield Token(" ", TokenType.SPACE)
            while pos < length and line[pos] in _WHITESPACE:
                pos += 1
        elif char == "|":
            yield Token("|", TokenType.PIPE)
            pos += 1
        elif _is_redirect(line, pos):
            token, pos = _scan_redirect(line, pos)
            yield token
        elif char in _QUOTES:
            token, pos = _scan_quoted(line, pos)
            yield token


def tokenize(line: str) -> list[Token]:
    """Split ``line`` into words, variables, spaces, pipes and redirections.

    Runs of whitespace collapse into one SPACE token; ``$$`` is dropped.
    """
    return list(_scan(line))