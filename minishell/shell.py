"""The interactive read-eval loop of the shell."""

from __future__ import annotations

import contextlib
import os
import signal
import sys
import threading

from minishell.builtins import ShellExit
from minishell.environ import ShellState
from minishell.executor import execute
from minishell.parser import parse
from minishell.tokenizer import ShellSyntaxError

PROMPT = "Minishell 🐚$ "


def _read_line(prompt):
    try:
        return input(prompt)
    except EOFError:
        return None


def run_line(state, line, read_line=None):
    """Parse and run one command line, returning the resulting status.

    A blank line or a line with a syntax error leaves the status as it was.
    """
    line = line.strip(" ")
    if not line:
        return state.status
    try:
        commands = parse(line, state.env, state.status)
    except ShellSyntaxError:
        sys.stderr.write("Minishell: Syntax error\n")
        return state.status
    return execute(state, commands, read_line or _read_line)


@contextlib.contextmanager
def _ignore_quit():
    if not hasattr(signal, "SIGQUIT") or threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGQUIT, signal.SIG_IGN)
    try:
        yield
    finally:
        if previous is not None:
            signal.signal(signal.SIGQUIT, previous)


def main(argv=None):
    """Run the shell until ``exit`` or end of input; return the exit status."""
    if sys.stdin.isatty():
        with contextlib.suppress(ImportError):
            import readline  # noqa: F401  line editing and history for input()
    state = ShellState(env=[f"{key}={value}" for key, value in os.environ.items()])
    with _ignore_quit():
        while True:
            try:
                line = _read_line(PROMPT)
            except KeyboardInterrupt:
                sys.stdout.write("\n")
                state.status = 1
                continue
            if line is None:
                sys.stdout.write("exit\n")
                sys.stdout.flush()
                return 0
            if not line:
                continue
            try:
                run_line(state, line)
            except ShellExit as exc:
                sys.stdout.flush()
                return exc.status & 0xFF
            except KeyboardInterrupt:
                sys.stdout.write("\n")
                state.status = 1


if __name__ == "__main__":
    sys.exit(main())