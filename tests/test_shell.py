import pytest

from minishell.builtins import ShellExit
from minishell.environ import ShellState
from minishell.shell import main, run_line


def scripted_input(monkeypatch, lines):
    remaining = iter(lines)

    def fake_input(prompt=""):
        item = next(remaining, None)
        if item is None:
            raise EOFError
        if isinstance(item, BaseException):
            raise item
        return item

    monkeypatch.setattr("builtins.input", fake_input)


def test_run_line_echo(capsys):
    state = ShellState()
    assert run_line(state, "echo hi") == 0
    assert capsys.readouterr().out == "hi\n"


def test_run_line_trims_spaces(capsys):
    state = ShellState()
    run_line(state, "   echo hi   ")
    assert capsys.readouterr().out == "hi\n"


def test_blank_line_keeps_status():
    state = ShellState(status=5)
    assert run_line(state, "   ") == 5


def test_syntax_error_keeps_status(capsys):
    state = ShellState(status=5)
    assert run_line(state, "echo |") == 5
    assert capsys.readouterr().err == "Minishell: Syntax error\n"


def test_status_expansion(capsys):
    state = ShellState(status=42)
    run_line(state, "echo $?")
    assert capsys.readouterr().out == "42\n"


def test_export_then_expand(capsys):
    state = ShellState()
    run_line(state, "export X=hello")
    run_line(state, "echo $X")
    assert capsys.readouterr().out == "hello\n"


def test_run_line_exit_raises():
    with pytest.raises(ShellExit) as info:
        run_line(ShellState(), "exit 7")
    assert info.value.status == 7


def test_main_exit_status(monkeypatch, capsys):
    scripted_input(monkeypatch, ["echo hi", "exit 3"])
    assert main() == 3
    assert capsys.readouterr().out == "hi\nexit\n"


def test_main_end_of_input(monkeypatch, capsys):
    scripted_input(monkeypatch, [])
    assert main() == 0
    assert capsys.readouterr().out == "exit\n"


def test_main_uses_process_environment(monkeypatch, capsys):
    monkeypatch.setenv("SHELL_TEST_VALUE", "visible")
    scripted_input(monkeypatch, ["echo $SHELL_TEST_VALUE"])
    main()
    assert capsys.readouterr().out == "visible\nexit\n"


def test_main_interrupt_sets_status(monkeypatch, capsys):
    scripted_input(monkeypatch, [KeyboardInterrupt(), "echo $?"])
    assert main() == 0
    assert capsys.readouterr().out == "\n1\nexit\n"


def test_main_skips_empty_lines(monkeypatch, capsys):
    scripted_input(monkeypatch, ["", "exit"])
    assert main() == 0
    assert capsys.readouterr().out == "exit\n"