import pytest

from minish.expand import expand_variables, has_expandable_variable, lookup_variable

HOME = "/home/user"
ENVP = ["HOME=" + HOME, "USER=user", "PATH=/bin:/usr/bin"]


def test_lookup_variable_found():
    assert lookup_variable(ENVP, "HOME") == HOME


def test_lookup_variable_missing():
    assert lookup_variable(ENVP, "HOM") == ""


def test_lookup_variable_first_match_wins():
    assert lookup_variable(["A=one", "A=two"], "A") == "one"


def test_expand_simple():
    assert expand_variables("$HOME", ENVP) == HOME


def test_expand_keeps_prefix_and_suffix():
    assert expand_variables("pre$HOME/x", ENVP) == "pre" + HOME + "/x"


def test_expand_exit_status():
    assert expand_variables("$?", ENVP, 42) == "42"


def test_expand_exit_status_followed_by_text():
    assert expand_variables("$?x", ENVP, 7) == "7x"


def test_expand_unknown_is_empty():
    assert expand_variables("$NOPE", ENVP) == ""


def test_expand_several():
    assert expand_variables("$USER:$HOME", ENVP) == "user:" + HOME


def test_expand_trailing_dollar():
    assert expand_variables("$", ENVP) == "$"


def test_lone_dollar_before_quote_is_empty():
    assert expand_variables("$", ENVP, next_quoted=True) == ""


def test_expand_without_dollar_is_unchanged():
    assert expand_variables("plain", ENVP) == "plain"


def test_expand_rescans_values():
    envp = ["A=$B", "B=done"]
    assert expand_variables("$A$B", envp) == "done" + "done"


@pytest.mark.parametrize(
    "text, expected",
    [("$HOME", True), ("'$HOME'", False), ("plain", False), ("a'b", False)],
)
def test_has_expandable_variable(text, expected):
    assert has_expandable_variable(text) is expected