"""Mutable state shared by the stages of one shell session."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ShellState:
    """Session-wide flags and counters used while a line is read and run.

    ``exit_status`` is the value ``$?`` expands to.  ``interrupted`` becomes
    true when a heredoc is cancelled; the rest of the line is then dropped.
    """

    exit_status: int = 0
    interrupted: bool = False
    in_heredoc: bool = False
    in_executor: bool = False
    heredoc_quoted: bool = False
    heredoc_fd: int | None = None
    heredoc_line: str | None = None
    pipe_index: int = 0
    arg_capacity: int = 0
    overflow: bool = False
    home_unset: bool = False
    stdin_backup: int | None = None
    split_args: list[str] | None = None

    def reset_for_line(self) -> None:
        """Clear the per-line flags before a new input line is handled."""
        self.interrupted = False
        self.heredoc_fd = None
        self.heredoc_quoted = False