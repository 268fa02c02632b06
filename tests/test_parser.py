import os

import pytest

from minish.lexer import tokenize
from minish.parser import (
    AMBIGUOUS_REDIRECT,
    EXPANDED_TARGET,
    OPEN_FAILED,
    check_pipe_syntax,
    check_redirect_syntax,
    collect_heredocs,
    count_args,
    count_pipes,
    heredoc_delimiter,
    parse,
)
from minish.state import ShellState


def _reader(lines):
    it = iter(lines)
    return lambda prompt: next(it, None)


def _interrupting(prompt):
    raise KeyboardInterrupt


def _slurp(fd):
    os.lseek(fd, 0, os.SEEK_SET)
    data = os.read(fd, 65536)
    os.close(fd)
    return data.decode()


def _run(line, envp=(), state=None, lines=(), tmpdir="/tmp"):
    state = state or ShellState()
    return parse(tokenize(line), envp, state, _reader(lines), str(tmpdir))


def test_simple_command():
    (cmd,) = _run("echo hello world")
    assert cmd.args == ["echo", "hello", "world"]
    assert cmd.in_fd is None and cmd.out_fd is None
    assert cmd.name == "echo"


def test_pipeline_stages():
    cmds = _run("ls -l | wc -l")
    assert [c.args for c in cmds] == [["ls", "-l"], ["wc", "-l"]]


def test_empty_line_gives_nothing():
    assert parse([], [], ShellState()) == []


def test_variable_expansion():
    (cmd,) = _run("echo $HOME", envp=["HOME=/home/user"])
    assert cmd.args == ["echo", "/home/user"]


def test_exit_status_expansion():
    state = ShellState(exit_status=42)
    (cmd,) = _run("echo $?", state=state)
    assert cmd.args == ["echo", "42"]


def test_quoted_variable_is_not_split():
    (cmd,) = _run('echo "$A"', envp=["A=x y"])
    assert cmd.args == ["echo", "x y"]


def test_unquoted_variable_is_split():
    (cmd,) = _run("echo $A", envp=["A=x y"])
    assert cmd.args == ["echo", "x", "y"]


def test_split_replaces_later_arguments():
    state = ShellState()
    (cmd,) = _run("echo $A z", envp=["A=x y"], state=state)
    assert cmd.args == ["echo", "x", "y"]
    assert state.split_args is None


def test_empty_variable_is_dropped():
    (cmd,) = _run("echo $NOPE")
    assert cmd.args == ["echo"]


def test_adjacent_tokens_are_joined():
    (cmd,) = _run('echo a"b"c')
    assert cmd.args == ["echo", "abc"]


def test_single_quotes_keep_dollar():
    (cmd,) = _run("echo '$HOME'", envp=["HOME=/home/user"])
    assert cmd.args == ["echo", "$HOME"]


@pytest.mark.parametrize("line", ["| ls", "ls |", "ls || wc", "ls | | wc"])
def test_bad_pipes(line, capsys):
    assert check_pipe_syntax(tokenize(line)) is False
    state = ShellState()
    assert _run(line, state=state) == []
    assert state.exit_status == 2
    assert "parssing error in pipe" in capsys.readouterr().err


@pytest.mark.parametrize("line", ["ls | wc", "a|b", "echo hi"])
def test_good_pipes(line):
    assert check_pipe_syntax(tokenize(line)) is True


def test_redirect_syntax_errors():
    assert check_redirect_syntax(tokenize("cat <")) == "<"
    assert check_redirect_syntax(tokenize("cat < ")) == " "
    assert check_redirect_syntax(tokenize("echo > | b")) == "|"
    assert check_redirect_syntax(tokenize("echo > out")) is None


def test_redirect_syntax_error_status(capsys):
    state = ShellState()
    assert _run("cat >", state=state) == []
    assert state.exit_status == 258
    assert "syntax error near unexpected token `>`" in capsys.readouterr().err


@pytest.mark.parametrize("line", ["a | b", "a | b | c", "echo hi", "x|y|z|w"])
def test_count_pipes_matches_bars(line):
    assert count_pipes(tokenize(line)) == line.count("|")


def test_count_args_subtracts_redirects():
    assert count_args(tokenize("cat a > b | wc")) == 2


def test_heredoc_delimiter_joins_and_marks_quotes():
    tokens = tokenize("a'b'c | x")
    assert heredoc_delimiter(tokens, 0) == ("abc", True, 3)
    plain, quoted, _ = heredoc_delimiter(tokenize("EOF"), 0)
    assert (plain, quoted) == ("EOF", False)


def test_heredoc_delimiter_missing():
    with pytest.raises(ValueError):
        heredoc_delimiter(tokenize("cat"), 5)


def test_output_redirect(tmp_path):
    target = tmp_path / "out"
    (cmd,) = _run(f"echo hi > {target}")
    assert cmd.args == ["echo", "hi"]
    assert cmd.out_fd > 2
    os.write(cmd.out_fd, b"data")
    cmd.close()
    assert target.read_text() == "data"


def test_append_redirect(tmp_path):
    target = tmp_path / "log"
    target.write_text("one")
    (cmd,) = _run(f"echo >> {target}")
    os.write(cmd.out_fd, b"two")
    cmd.close()
    assert target.read_text() == "onetwo"


def test_input_redirect(tmp_path):
    source = tmp_path / "in"
    source.write_text("content")
    (cmd,) = _run(f"cat < {source}")
    assert _slurp(cmd.in_fd) == "content"


def test_missing_input_skips_rest_of_stage(tmp_path, capsys):
    missing = tmp_path / "missing"
    cmds = _run(f"cat < {missing} extra | wc")
    assert cmds[0].in_fd == OPEN_FAILED
    assert cmds[0].args == ["cat"]
    assert cmds[0].redirect_failed
    assert cmds[1].args == ["wc"]
    assert f"minishell: {missing}: No such file or directory" in capsys.readouterr().err


def test_empty_variable_target_is_ambiguous(capsys):
    (cmd,) = _run("cat < $NOPE")
    assert cmd.in_fd == AMBIGUOUS_REDIRECT
    assert "minishell: $NOPE: ambiguous redirect" in capsys.readouterr().err


def test_variable_target_is_reported(tmp_path, capsys):
    target = tmp_path / "f"
    (cmd,) = _run("echo > $F", envp=[f"F={target}"])
    assert cmd.out_fd == EXPANDED_TARGET
    assert f"minishell: {target}: No such file or directory" in capsys.readouterr().err


def test_heredoc_expands_lines(tmp_path):
    (cmd,) = _run(
        "cat << EOF",
        envp=["USER=alice"],
        lines=["hello $USER", "EOF", "unread"],
        tmpdir=tmp_path,
    )
    assert cmd.args == ["cat"]
    assert _slurp(cmd.in_fd) == "hello alice\n"


def test_quoted_heredoc_keeps_dollar(tmp_path):
    (cmd,) = _run(
        'cat << "EOF"', envp=["USER=alice"], lines=["$USER", "EOF"], tmpdir=tmp_path
    )
    assert _slurp(cmd.in_fd) == "$USER\n"


def test_heredoc_ends_at_end_of_input(tmp_path):
    (cmd,) = _run("cat << END", lines=["a", "b"], tmpdir=tmp_path)
    assert _slurp(cmd.in_fd) == "a\nb\n"


def test_heredoc_in_second_stage(tmp_path):
    cmds = _run("cat | cat << X", lines=["line", "X"], tmpdir=tmp_path)
    assert cmds[0].in_fd is None
    assert _slurp(cmds[1].in_fd) == "line\n"


def test_last_heredoc_of_stage_wins(tmp_path):
    (cmd,) = _run("cat << A << B", lines=["first", "A", "second", "B"], tmpdir=tmp_path)
    assert _slurp(cmd.in_fd) == "second\n"


def test_interrupted_heredoc(tmp_path):
    state = ShellState()
    result = parse(tokenize("cat << EOF"), [], state, _interrupting, str(tmp_path))
    assert result == []
    assert state.interrupted is True
    assert state.exit_status == 1
    assert state.in_heredoc is False


def test_collect_heredocs_uses_free_names(tmp_path):
    state = ShellState()
    first = collect_heredocs(tokenize("cat << E"), [], state, _reader(["x", "E"]), str(tmp_path))
    second = collect_heredocs(tokenize("cat << E"), [], state, _reader(["y", "E"]), str(tmp_path))
    assert os.path.basename(first[0].path) == "heredoc_0"
    assert os.path.basename(second[0].path) == "heredoc_1"
    assert (tmp_path / "heredoc_0").read_text() == "x\n"
    assert (tmp_path / "heredoc_1").read_text() == "y\n"
    first[0].close()
    second[0].close()
    assert first[0].fd is None
    assert second[0].delimiter == "E"