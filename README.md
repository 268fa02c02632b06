# minish

`minish` holds the front end of a small command shell. It turns a command
line into tokens, expands `$NAME` and `$?`, keeps the shell's own list of
environment variables, and parses a line into pipeline stages. Redirection
files are opened and here-documents are read during parsing.

## Installing

```
pip install .
```

Use `pip install .[test]` to get the test requirements as well.

## Example

```python
from minish.environment import Environment
from minish.lexer import has_unclosed_quote, tokenize
from minish.parser import parse
from minish.state import ShellState

env = Environment.from_environ({"HOME": "/home/user", "PATH": "/usr/bin"})
state = ShellState()

line = 'echo "$HOME" | wc -c'
if not has_unclosed_quote(line):
    commands = parse(tokenize(line), env.to_envp(), state)
    print([command.args for command in commands])
    # [['echo', '/home/user'], ['wc', '-c']]
    for command in commands:
        command.close()
```

## Modules

- `minish.lexer`: `tokenize(line)` returns a list of `Token` objects. Each
  has a `word`, a `TokenType` (`WORD`, `VARIABLE`, `SPACE`, `PIPE`,
  `REDIRECT`, `HEREDOC`) and `quoted` (0 bare, 1 single, 2 double quotes).
  A run of whitespace becomes one `SPACE` token and `$$` is dropped.
  `has_unclosed_quote(line)` reports a quote that is never closed.
- `minish.expand`: `expand_variables(word, envp, exit_status, next_quoted)`
  expands variables against a list of `NAME=value` strings. `$?` gives
  `exit_status`. An unknown name gives an empty string. `lookup_variable`
  and `has_expandable_variable` are helpers.
- `minish.environment`: `Environment` is an ordered list of `EnvVar`
  entries. `Environment.from_environ` builds it from a mapping or from
  `NAME=value` strings and adds 1 to `SHLVL`. `Environment.default(cwd)`
  gives `PWD`, `SHLVL=1`, `_` and a default `PATH`, and that `PATH` is
  marked hidden. `to_envp()` gives strings to pass to a child process.
- `minish.parser`: `parse(tokens, envp, state, read_line, tmpdir)` returns a
  list of `Command` stages. Each has `args`, `in_fd` and `out_fd`.
  - A pipe at the start or end of a line, or two pipes in a row, prints
    `parssing error in pipe` and sets the status to 2.
  - A redirection with no target sets the status to 258.
  - Here-document lines come from `read_line` (by default `input`) with the
    prompt `heredoc>`. They are stored in `heredoc_N` files in `tmpdir`, and
    those files are not removed afterwards.
  - An unquoted variable that expands to several words is split into
    separate arguments.
  - `check_pipe_syntax`, `check_redirect_syntax`, `count_pipes`,
    `count_args`, `heredoc_delimiter` and `collect_heredocs` are also public.
- `minish.state`: `ShellState` holds the exit status and the flags that the
  parser shares with its caller.
- `minish.textutil`: string helpers. These include `atoi`,
  `parse_exit_code` (it raises `ValueError` for a value that is not a
  64-bit number), `split_whitespace`, `split_on` and `format_error`.

## What it does not do

The package does not run commands. There is no interactive prompt loop and
no `minish` command. There are no builtins such as `cd`, `echo`, `export` or
`exit`, and no `PATH` lookup or process start for a parsed pipeline. A caller
that has the `Command` list must start the processes, connect the pipes and
close the descriptors.