"""Turning a token list into commands with their redirections and heredocs."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from itertools import takewhile

from minish.expand import expand_variables
from minish.lexer import Token, TokenType
from minish.state import ShellState
from minish.textutil import format_error, has_word_break, split_whitespace

OPEN_FAILED = -1
AMBIGUOUS_REDIRECT = -2
EXPANDED_TARGET = -3

HEREDOC_PROMPT = "heredoc>"
DEFAULT_TMPDIR = "/tmp"

_FILE_MODE = 0o777
_OPEN_FLAGS = {
    "<": os.O_RDONLY,
    ">>": os.O_WRONLY | os.O_CREAT | os.O_APPEND,
    ">": os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
}

ReadLine = Callable[[str], "str | None"]


def _close_fd(fd: int | None) -> None:
    if fd is not None and fd > 2:
        try:
            os.close(fd)
        except OSError:
            pass


@dataclass
class Command:
    """One stage of a pipeline.

    ``in_fd`` and ``out_fd`` are open descriptors for the redirections, None
    when the stage is not redirected, or a negative code when a redirection
    failed (-1 open failure, -2 ambiguous, -3 expanded target).
    """

    args: list[str] = field(default_factory=list)
    in_fd: int | None = None
    out_fd: int | None = None

    @property
    def name(self) -> str | None:
        """The command word, or None for a stage with no arguments."""
        return self.args[0] if self.args else None

    @property
    def redirect_failed(self) -> bool:
        """True when one of the redirections could not be set up."""
        return any(fd is not None and fd < 0 for fd in (self.in_fd, self.out_fd))

    def close(self) -> None:
        """Close the redirection descriptors this command owns."""
        _close_fd(self.in_fd)
        _close_fd(self.out_fd)


@dataclass
class Heredoc:
    """A heredoc body stored in a file, with a descriptor open on it."""

    path: str
    delimiter: str
    quoted: bool = False
    fd: int | None = None

    def close(self) -> None:
        """Close the descriptor on the body."""
        _close_fd(self.fd)
        self.fd = None


class _Cursor:
    """A position in a token list with one token of lookahead."""

    def __init__(self, tokens: Sequence[Token], pos: int = 0) -> None:
        self.tokens = tokens
        self.pos = pos

    @property
    def current(self) -> Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    @property
    def following(self) -> Token | None:
        nxt = self.pos + 1
        return self.tokens[nxt] if nxt < len(self.tokens) else None

    @property
    def next_quoted(self) -> bool:
        nxt = self.following
        return nxt is not None and bool(nxt.quoted)

    def advance(self) -> None:
        self.pos += 1

    def skip_space(self) -> None:
        tok = self.current
        if tok is not None and tok.type is TokenType.SPACE:
            self.advance()

    def skip_to_segment_end(self) -> None:
        while self.following is not None and self.following.type is not TokenType.PIPE:
            self.advance()

    def at(self, kind: TokenType) -> bool:
        tok = self.current
        return tok is not None and tok.type is kind

    def at_text(self) -> bool:
        tok = self.current
        return tok is not None and tok.is_text


def check_pipe_syntax(tokens: Iterable[Token]) -> bool:
    """False when a pipe starts the line, ends it, or follows another pipe."""
    tokens = list(tokens)
    first = next((tok for tok in tokens if tok.type is not TokenType.SPACE), None)
    if first is not None and first.type is TokenType.PIPE:
        return False
    for pos, tok in enumerate(tokens):
        if tok.type is not TokenType.PIPE:
            continue
        rest = tokens[pos + 1 :]
        if rest and rest[0].type is TokenType.SPACE:
            rest = rest[1:]
        if not rest or rest[0].type is TokenType.PIPE:
            return False
    return True


def check_redirect_syntax(tokens: Iterable[Token]) -> str | None:
    """Return the unexpected token after a redirection, or None if all are valid."""
    tokens = list(tokens)
    for pos, tok in enumerate(tokens):
        if tok.type not in (TokenType.REDIRECT, TokenType.HEREDOC):
            continue
        last = tok
        after = pos + 1
        if after < len(tokens) and tokens[after].type is TokenType.SPACE:
            last = tokens[after]
            after += 1
        if after >= len(tokens):
            return last.word
        if not tokens[after].is_text:
            return tokens[after].word
    return None


def count_pipes(tokens: Iterable[Token]) -> int:
    """Number of pipe tokens."""
    return sum(1 for tok in tokens if tok.type is TokenType.PIPE)


def count_args(tokens: Iterable[Token]) -> int:
    """Text tokens minus redirection operators, up to the first pipe."""
    total = 0
    for tok in tokens:
        if tok.type is TokenType.PIPE:
            break
        if tok.is_text:
            total += 1
        elif tok.type in (TokenType.REDIRECT, TokenType.HEREDOC):
            total -= 1
    return total


def heredoc_delimiter(tokens: Sequence[Token], start: int) -> tuple[str, bool, int]:
    """Read the delimiter that begins at ``tokens[start]``.

    The first token and every text token right after it are joined.  Returns
    the delimiter, whether any part of it was quoted, and the index of the
    first token after it.
    """
    if start >= len(tokens):
        raise ValueError("missing heredoc delimiter")
    first = tokens[start]
    rest = list(takewhile(lambda tok: tok.is_text, tokens[start + 1 :]))
    parts = [first, *rest]
    delimiter = "".join(tok.word for tok in parts)
    quoted = any(tok.quoted for tok in parts)
    return delimiter, quoted, start + len(parts)


def _default_read_line(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


def _free_heredoc_path(tmpdir: str) -> str:
    number = 0
    while True:
        path = os.path.join(tmpdir, f"heredoc_{number}")
        if not os.path.exists(path):
            return path
        number += 1


def _read_heredoc(
    delimiter: str,
    quoted: bool,
    envp: list[str],
    state: ShellState,
    read_line: ReadLine,
    tmpdir: str,
) -> Heredoc | None:
    if state.interrupted:
        return None
    path = _free_heredoc_path(tmpdir)
    state.in_heredoc = True
    state.heredoc_quoted = quoted
    try:
        with os.fdopen(os.open(path, os.O_RDWR | os.O_CREAT, _FILE_MODE), "w") as body:
            while True:
                try:
                    line = read_line(HEREDOC_PROMPT)
                except KeyboardInterrupt:
                    state.interrupted = True
                    state.exit_status = 1
                    return None
                if line is None or line == delimiter:
                    break
                state.heredoc_line = line
                if not quoted and "$" in line:
                    line = expand_variables(line, envp, state.exit_status)
                body.write(line + "\n")
    finally:
        state.in_heredoc = False
        state.heredoc_line = None
    fd = os.open(path, os.O_RDWR | os.O_APPEND)
    state.heredoc_fd = fd
    return Heredoc(path, delimiter, quoted, fd)


def collect_heredocs(
    tokens: Sequence[Token],
    envp: Iterable[str],
    state: ShellState,
    read_line: ReadLine | None = None,
    tmpdir: str = DEFAULT_TMPDIR,
) -> dict[int, Heredoc]:
    """Read every heredoc of the line, before any command is built.

    Returns the last heredoc of each pipeline stage, keyed by stage index.
    When reading is interrupted, nothing is kept and ``state.interrupted``
    is set.
    """
    tokens = list(tokens)
    envp = list(envp)
    read_line = read_line or _default_read_line
    heredocs: dict[int, Heredoc] = {}
    stage = 0
    cur = _Cursor(tokens)
    while cur.current is not None:
        tok = cur.current
        if tok.type is TokenType.PIPE:
            stage += 1
            cur.advance()
            continue
        if tok.type is not TokenType.HEREDOC:
            cur.advance()
            continue
        cur.advance()
        cur.skip_space()
        delimiter, quoted, cur.pos = heredoc_delimiter(tokens, cur.pos)
        doc = _read_heredoc(delimiter, quoted, envp, state, read_line, tmpdir)
        if doc is None:
            for pending in heredocs.values():
                pending.close()
            return {}
        previous = heredocs.get(stage)
        if previous is not None:
            previous.close()
        heredocs[stage] = doc
    return heredocs


def _replace_fd(old: int | None, new: int | None, keep: set[int]) -> int | None:
    if old is not None and old > 2 and old != new and old not in keep:
        _close_fd(old)
    return new


def _open_target(
    target: Token, op: str, envp: list[str], state: ShellState, next_quoted: bool
) -> int:
    flags = _OPEN_FLAGS[op]
    if target.type is not TokenType.VARIABLE:
        try:
            return os.open(target.word, flags, _FILE_MODE)
        except OSError:
            return OPEN_FAILED
    path = expand_variables(target.word, envp, state.exit_status, next_quoted)
    try:
        fd = os.open(path, flags, _FILE_MODE)
    except OSError:
        fd = OPEN_FAILED
    if fd < 0 and not path:
        return AMBIGUOUS_REDIRECT
    _close_fd(fd if fd >= 0 else None)
    return EXPANDED_TARGET


def _report_redirect(
    target: Token, command: Command, envp: list[str], state: ShellState, next_quoted: bool
) -> None:
    codes = (command.in_fd, command.out_fd)
    if OPEN_FAILED in codes:
        sys.stderr.write(format_error(target.word, ": No such file or directory\n"))
    if EXPANDED_TARGET in codes:
        shown = expand_variables(target.word, envp, state.exit_status, next_quoted)
        sys.stderr.write(format_error(shown, ": No such file or directory\n"))
    elif AMBIGUOUS_REDIRECT in codes:
        sys.stderr.write(format_error(target.word, ": ambiguous redirect\n"))


def _apply_redirect(
    cur: _Cursor, command: Command, envp: list[str], state: ShellState, keep: set[int]
) -> None:
    op = cur.current.word
    cur.advance()
    cur.skip_space()
    target = cur.current
    if target is None:
        return
    next_quoted = cur.next_quoted
    fd = _open_target(target, op, envp, state, next_quoted)
    if op == "<":
        command.in_fd = _replace_fd(command.in_fd, fd, keep)
    else:
        command.out_fd = _replace_fd(command.out_fd, fd, keep)
    _report_redirect(target, command, envp, state, next_quoted)
    if OPEN_FAILED in (command.in_fd, command.out_fd):
        cur.skip_to_segment_end()
    cur.advance()


def _apply_heredoc(
    cur: _Cursor, command: Command, state: ShellState, heredocs: dict[int, Heredoc], keep: set[int]
) -> None:
    cur.advance()
    cur.skip_space()
    doc = heredocs.get(state.pipe_index)
    command.in_fd = _replace_fd(command.in_fd, doc.fd if doc else None, keep)
    while cur.at_text():
        cur.advance()


def _expand_token(cur: _Cursor, envp: list[str], state: ShellState) -> str:
    tok = cur.current
    if tok.type is TokenType.VARIABLE:
        return expand_variables(tok.word, envp, state.exit_status, cur.next_quoted)
    return tok.word


def _word_group(
    cur: _Cursor, args: list[str], envp: list[str], state: ShellState
) -> str | None:
    """Join adjacent text tokens into one argument; None when it is empty."""
    first = cur.current
    value: str | None = _expand_token(cur, envp, state)
    if first.type is TokenType.VARIABLE:
        value = value or None
        if value is not None and first.quoted != 2 and has_word_break(value):
            state.split_args = args + split_whitespace(value)
            value = None
    cur.advance()
    while cur.at_text():
        piece = _expand_token(cur, envp, state)
        value = piece if value is None else value + piece
        cur.advance()
    return value


def _parse_stage(
    cur: _Cursor,
    envp: list[str],
    state: ShellState,
    heredocs: dict[int, Heredoc],
    keep: set[int],
) -> Command:
    state.arg_capacity = count_args(cur.tokens[cur.pos :])
    state.split_args = None
    command = Command()
    args: list[str] = []
    while cur.current is not None and not state.interrupted:
        if cur.at(TokenType.PIPE):
            state.pipe_index += 1
            break
        if cur.at(TokenType.REDIRECT):
            _apply_redirect(cur, command, envp, state, keep)
        if cur.at(TokenType.HEREDOC):
            _apply_heredoc(cur, command, state, heredocs, keep)
        if cur.at_text():
            value = _word_group(cur, args, envp, state)
            if value is not None:
                args.append(value)
        if cur.at(TokenType.SPACE):
            cur.advance()
    if state.split_args is not None:
        args = state.split_args
        state.split_args = None
    command.args = args
    return command


def parse(
    tokens: Iterable[Token],
    envp: Iterable[str],
    state: ShellState,
    read_line: ReadLine | None = None,
    tmpdir: str = DEFAULT_TMPDIR,
) -> list[Command]:
    """Build the pipeline stages of one line.

    Syntax errors are reported on stderr and set ``state.exit_status`` (2
    for pipes, 258 for redirections); an empty list is returned for them,
    for an empty line and for an interrupted heredoc.
    """
    tokens = list(tokens)
    envp = list(envp)
    if not tokens:
        return []
    if not check_pipe_syntax(tokens):
        sys.stderr.write("parssing error in pipe\n")
        state.exit_status = 2
        return []
    unexpected = check_redirect_syntax(tokens)
    if unexpected is not None:
        state.exit_status = 258
        sys.stderr.write(f"syntax error near unexpected token `{unexpected}`\n")
        return []
    heredocs = collect_heredocs(tokens, envp, state, read_line, tmpdir)
    if state.interrupted:
        return []
    keep = {doc.fd for doc in heredocs.values() if doc.fd is not None}
    state.pipe_index = 0
    cur = _Cursor(tokens)
    commands: list[Command] = []
    while True:
        commands.append(_parse_stage(cur, envp, state, heredocs, keep))
        if not cur.at(TokenType.PIPE):
            break
        cur.advance()
    state.pipe_index = 0
    used = {fd for command in commands for fd in (command.in_fd, command.out_fd)}
    for doc in heredocs.values():
        if doc.fd not in used:
            doc.close()
    return commands