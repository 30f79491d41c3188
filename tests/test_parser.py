import os

import pytest

from minishell.parser import (
    Command,
    RedirectMode,
    Redirection,
    build_commands,
    parse,
)
from minishell.tokenizer import ShellSyntaxError, Token, TokenType


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_simple_command_arguments():
    commands = parse("echo hello world", [])
    assert len(commands) == 1
    assert commands[0].args == ["echo", "hello", "world"]
    assert commands[0].redirect_in.file_name is None
    assert commands[0].redirect_out.file_name is None


def test_pipeline_splits_commands():
    commands = parse("ls -l | wc -l | cat", [])
    assert [c.args for c in commands] == [["ls", "-l"], ["wc", "-l"], ["cat"]]


def test_variables_and_quotes_resolved():
    commands = parse("echo $HOME 'a b'", ["HOME=/home/user"])
    assert commands[0].args == ["echo", "/home/user", "a b"]


def test_output_redirection_truncates_at_parse_time(workdir):
    target = workdir / "out.txt"
    target.write_text("old content")
    commands = parse("echo hi > out.txt", [])
    cmd = commands[0]
    assert cmd.args == ["echo", "hi"]
    assert cmd.redirect_out.file_name == "out.txt"
    assert cmd.redirect_out.mode is RedirectMode.TRUNCATE
    assert target.read_text() == ""


def test_append_redirection_keeps_content(workdir):
    target = workdir / "log.txt"
    target.write_text("kept")
    cmd = parse("echo hi >> log.txt", [])[0]
    assert cmd.redirect_out.mode is RedirectMode.APPEND
    assert target.read_text() == "kept"


def test_output_redirection_creates_file(workdir):
    commands = parse("echo > created", [])
    assert commands[0].args == ["echo"]
    assert commands[0].redirect_out.file_name == "created"
    assert (workdir / "created").exists()


def test_last_output_redirection_wins(workdir):
    cmd = parse("echo a > first > second", [])[0]
    assert cmd.redirect_out.file_name == "second"
    assert (workdir / "first").exists()
    assert (workdir / "second").exists()
    assert cmd.args == ["echo", "a"]


def test_input_redirection(workdir):
    (workdir / "in.txt").write_text("data")
    cmd = parse("cat < in.txt", [])[0]
    assert cmd.args == ["cat"]
    assert cmd.redirect_in.file_name == "in.txt"
    assert cmd.redirect_in.mode is RedirectMode.READ
    assert not cmd.invalid


def test_missing_input_marks_invalid_and_stops(workdir, capsys):
    cmd = parse("cat < missing > out", [])[0]
    assert cmd.redirect_in.invalid
    assert cmd.invalid
    assert cmd.redirect_out.file_name is None
    assert not (workdir / "out").exists()
    assert "missing" in capsys.readouterr().err


def test_invalid_redirection_is_per_command(workdir):
    commands = parse("cat < missing | echo hi > out", [])
    assert commands[0].invalid
    assert not commands[1].invalid
    assert (workdir / "out").exists()


def test_heredoc_delimiters_accumulate():
    cmd = parse("cat << A << B", [])[0]
    assert cmd.redirect_in.heredocs == ["A", "B"]
    assert cmd.redirect_in.mode is RedirectMode.HEREDOC
    assert cmd.redirect_in.file_name is None
    assert cmd.args == ["cat"]


def test_heredoc_cancels_earlier_input_file(workdir):
    (workdir / "in.txt").write_text("data")
    cmd = parse("cat < in.txt << END", [])[0]
    assert cmd.redirect_in.file_name is None
    assert cmd.redirect_in.heredocs == ["END"]


@pytest.mark.parametrize("line", ["echo |", "| echo", "echo >", "cat < | wc", "a || b"])
def test_syntax_errors(line):
    with pytest.raises(ShellSyntaxError):
        parse(line, [])


def test_build_commands_empty_gives_one_empty_command():
    commands = build_commands([])
    assert commands == [Command()]


def test_build_commands_from_tokens():
    tokens = [
        Token("grep", TokenType.OTHER),
        Token("x", TokenType.OTHER),
        Token("<<", TokenType.RED_IN),
        Token("EOF", TokenType.OTHER),
        Token("|", TokenType.PIPE),
        Token("wc", TokenType.OTHER),
    ]
    commands = build_commands(tokens)
    assert [c.args for c in commands] == [["grep", "x"], ["wc"]]
    assert commands[0].redirect_in.heredocs == ["EOF"]


def test_apply_unknown_operator():
    with pytest.raises(ValueError):
        Redirection().apply("|", "file")


def test_apply_empty_target_is_invalid(workdir, capsys):
    redirection = Redirection()
    redirection.apply(">", "")
    assert redirection.invalid
    assert capsys.readouterr().err != ""


def test_open_flags():
    assert RedirectMode.READ.open_flags == os.O_RDONLY
    assert RedirectMode.TRUNCATE.open_flags & os.O_TRUNC
    assert RedirectMode.APPEND.open_flags & os.O_APPEND
    assert RedirectMode.HEREDOC.open_flags is None
    assert RedirectMode(">>") is RedirectMode.APPEND