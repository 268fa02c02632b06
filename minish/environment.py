"""The shell's own list of environment variables."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

from minish.textutil import atoi

DEFAULT_LAST_COMMAND = "/usr/bin/env"
DEFAULT_PATH = "/usr/gnu/bin:/usr/local/bin:/bin:/usr/bin:."


@dataclass
class EnvVar:
    """One variable.

    ``value`` is None for a name that was exported without a value.
    ``hidden`` marks a variable that neither ``env`` nor ``export`` lists,
    as the fallback PATH of an empty environment is.
    """

    name: str
    value: str | None = None
    hidden: bool = False

    @property
    def shown_in_env(self) -> bool:
        """True when ``env`` prints this variable."""
        return self.value is not None and not self.hidden


def _entries(environ: Mapping[str, str] | Iterable[str]) -> list[tuple[str, str]]:
    if isinstance(environ, Mapping):
        return [(str(name), str(value)) for name, value in environ.items()]
    pairs = []
    for entry in environ:
        name, _, value = entry.partition("=")
        pairs.append((name, value))
    return pairs


class Environment:
    """An ordered list of variables; lookups match names exactly."""

    def __init__(self, variables: Iterable[EnvVar] = ()) -> None:
        self._vars: list[EnvVar] = list(variables)

    @classmethod
    def from_environ(
        cls, environ: Mapping[str, str] | Iterable[str]
    ) -> Environment:
        """Build the list from the process environment.

        ``environ`` is a mapping or a sequence of ``NAME=value`` strings.
        SHLVL is raised by one, except when it is the very first entry,
        which is copied as it is.  An empty environment gives the defaults
        for the current directory.
        """
        pairs = _entries(environ)
        if not pairs:
            import os

            return cls.default(os.getcwd())
        env = cls()
        for position, (name, value) in enumerate(pairs):
            if position > 0 and name == "SHLVL":
                value = str(atoi(value) + 1)
            env.append(name, value)
        return env

    @classmethod
    def default(cls, cwd: str) -> Environment:
        """The variables a shell started with no environment begins with."""
        env = cls()
        env.append("PWD", cwd)
        env.append("SHLVL", "1")
        env.append("_", DEFAULT_LAST_COMMAND)
        env.append("PATH", DEFAULT_PATH)
        env.hide_path()
        return env

    def get(self, name: str) -> str | None:
        """Value of the first variable called ``name``, or None."""
        var = self.find(name)
        return var.value if var is not None else None

    def find(self, name: str) -> EnvVar | None:
        """The first variable called ``name``, or None."""
        return next((var for var in self._vars if var.name == name), None)

    def __contains__(self, name: object) -> bool:
        return any(var.name == name for var in self._vars)

    def __iter__(self) -> Iterator[EnvVar]:
        return iter(self._vars)

    def __len__(self) -> int:
        return len(self._vars)

    def append(self, name: str, value: str | None = None) -> EnvVar:
        """Add a variable at the end and return it."""
        var = EnvVar(name, value)
        self._vars.append(var)
        return var

    def remove(self, name: str) -> bool:
        """Delete the variable ``name``; return whether anything was removed.

        When the first variable matches only it is removed; otherwise every
        variable of that name goes.
        """
        if self._vars and self._vars[0].name == name:
            del self._vars[0]
            return True
        kept = [var for var in self._vars if var.name != name]
        removed = len(kept) != len(self._vars)
        self._vars = kept
        return removed

    def to_envp(self) -> list[str]:
        """``NAME=value`` strings for every variable, in order, for exec."""
        return [f"{var.name}={var.value or ''}" for var in self._vars]

    def hide_path(self) -> None:
        """Mark every PATH variable as hidden from ``env`` and ``export``."""
        for var in self._vars:
            if var.name == "PATH":
                var.hidden = True