"""Running parsed commands: pipelines, redirections and here-documents."""

from __future__ import annotations

import contextlib
import io
import os
import signal
import subprocess
import sys
import threading

from minishell.builtins import ShellExit, is_builtin, run_builtin
from minishell.environ import ShellState, get_env_prefix

HEREDOC_PROMPT = "<"
_CREATE_MODE = 0o644


class _StageDone(Exception):
    """A pipeline stage finished before anything was run."""

    def __init__(self, status):
        super().__init__(status)
        self.status = status


def _input_line(prompt):
    try:
        return input(prompt)
    except EOFError:
        return None


def _close(fd):
    if fd is not None:
        os.close(fd)


def _is_executable(path):
    return os.access(path, os.F_OK) and os.access(path, os.X_OK)


def find_command(name, env):
    """Resolve ``name`` to an executable path, searching ``PATH`` in ``env``.

    A name that is already executable as given is returned unchanged, as
    is a name found nowhere on the search path.
    """
    if _is_executable(name):
        return name
    search = get_env_prefix(env, "PATH=")
    if search is None:
        return name
    for directory in filter(None, search.split(":")):
        candidate = f"{directory}/{name}"
        if _is_executable(candidate):
            return candidate
    return name


def read_heredoc(delimiter, read_line):
    """Collect lines from ``read_line`` up to a line equal to ``delimiter``.

    Each collected line ends with a newline. Raises EOFError if input
    ends before the delimiter is seen.
    """
    lines = []
    while True:
        line = read_line(HEREDOC_PROMPT)
        if line is None:
            raise EOFError(f"here-document ended before {delimiter!r}")
        if line == delimiter:
            return "".join(f"{text}\n" for text in lines)
        lines.append(line)


def _feed(data, fd, writers):
    """Write ``data`` to ``fd`` in the background and close it."""

    def write():
        try:
            with open(fd, "wb", buffering=0) as pipe:
                pipe.write(data)
        except BrokenPipeError:
            pass

    thread = threading.Thread(target=write, daemon=True)
    thread.start()
    writers.append(thread)


def _data_fd(data, writers):
    read_end, write_end = os.pipe()
    _feed(data, write_end, writers)
    return read_end


def _open_redirect(redirect):
    try:
        return os.open(redirect.file_name, redirect.mode.open_flags, _CREATE_MODE)
    except OSError as exc:
        print(f"{redirect.file_name}: {exc.strerror}", file=sys.stderr)
        raise _StageDone(1) from None


def _stage_input(command, read_line, writers):
    """Read the command's here-documents and open its input file.

    Returns the descriptor to use as input, or None to keep the default.
    """
    redirect = command.redirect_in
    fd = None
    for delimiter in redirect.heredocs:
        try:
            text = read_heredoc(delimiter, read_line)
        except KeyboardInterrupt:
            sys.stdout.write("\n")
            sys.stdout.flush()
            _close(fd)
            raise _StageDone(1) from None
        except EOFError:
            _close(fd)
            raise _StageDone(1) from None
        if command.args:
            _close(fd)
            fd = _data_fd(text.encode(), writers)
    if not command.args:
        raise _StageDone(0)
    if redirect.file_name is not None:
        try:
            file_fd = _open_redirect(redirect)
        except _StageDone:
            _close(fd)
            raise
        _close(fd)
        fd = file_fd
    return fd


def _stage_output(command):
    redirect = command.redirect_out
    if redirect.file_name is None:
        return None
    return _open_redirect(redirect)


def _environment(env):
    return {
        key: value
        for key, sep, value in (entry.partition("=") for entry in env)
        if sep
    }


def _current_dir():
    try:
        return os.getcwd()
    except OSError:
        return None


def _run_piped_builtin(state, args, stdout_fd, writers):
    """Run a builtin as one stage of a pipeline, leaving ``state`` untouched."""
    buffer = io.StringIO()
    scratch = ShellState(env=list(state.env), status=state.status)
    cwd = _current_dir()
    try:
        status = run_builtin(scratch, args, buffer, sys.stderr)
    except ShellExit as exc:
        status = exc.status & 0xFF
    finally:
        if cwd is not None:
            with contextlib.suppress(OSError):
                os.chdir(cwd)
    if stdout_fd is None:
        sys.stdout.write(buffer.getvalue())
        sys.stdout.flush()
    else:
        _feed(buffer.getvalue().encode(), os.dup(stdout_fd), writers)
    return status


def _spawn(args, env, stdin, stdout):
    """Start an external program, or return the status for a failed start."""
    path = find_command(args[0], env)
    executable = path if "/" in path else os.path.join(os.curdir, path)
    sys.stdout.flush()
    try:
        return subprocess.Popen(
            args,
            executable=executable,
            stdin=stdin,
            stdout=stdout,
            env=_environment(env),
        )
    except NotADirectoryError as exc:
        print(f"{path}: {exc.strerror}", file=sys.stderr)
        return 126
    except OSError as exc:
        if path.startswith("/"):
            print(f"{path}: {exc.strerror}", file=sys.stderr)
        else:
            sys.stderr.write(f"{path}: command not found\n")
        return 127


def _run_stage(state, command, upstream, downstream, read_line, writers):
    """Start one stage; return its Popen or, if nothing runs on, its status."""
    if command.invalid:
        return 1
    try:
        in_fd = _stage_input(command, read_line, writers)
    except _StageDone as done:
        return done.status
    try:
        out_fd = _stage_output(command)
    except _StageDone as done:
        _close(in_fd)
        return done.status
    try:
        stdin = upstream if in_fd is None else in_fd
        stdout = downstream if out_fd is None else out_fd
        if is_builtin(command.args[0]):
            return _run_piped_builtin(state, command.args, stdout, writers)
        return _spawn(command.args, state.env, stdin, stdout)
    finally:
        _close(in_fd)
        _close(out_fd)


def _run_solo(state, command, read_line):
    """Run a lone builtin in the shell itself, so its effects persist."""
    if command.invalid:
        return 1
    writers = []
    try:
        _close(_stage_input(command, read_line, writers))
        out_fd = _stage_output(command)
    except _StageDone as done:
        return done.status
    finally:
        for writer in writers:
            writer.join()
    if out_fd is None:
        try:
            return run_builtin(state, command.args, sys.stdout, sys.stderr)
        finally:
            sys.stdout.flush()
    with os.fdopen(out_fd, "w", encoding="utf-8") as handle:
        return run_builtin(state, command.args, handle, sys.stderr)


def _on_interrupt(signum, frame):
    sys.stdout.write("\n")
    sys.stdout.flush()


def _on_quit(signum, frame):
    sys.stdout.write("Quit: 3\n")
    sys.stdout.flush()


@contextlib.contextmanager
def _child_signals():
    """Let the shell survive interrupts while it waits for its children."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    handlers = {signal.SIGINT: _on_interrupt}
    if hasattr(signal, "SIGQUIT"):
        handlers[signal.SIGQUIT] = _on_quit
    previous = {signum: signal.signal(signum, handler) for signum, handler in handlers.items()}
    try:
        yield
    finally:
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)


def execute(state, commands, read_line=None):
    """Run a pipeline of commands and record its exit status in ``state``.

    A single builtin runs inside the shell; anything else runs stage by
    stage, connected by pipes, with file redirections taking precedence
    over the pipes. The status is that of the last stage that exited
    normally. ``exit`` run on its own raises ShellExit.
    """
    read_line = read_line or _input_line
    commands = list(commands)
    if not commands:
        return state.status
    first = commands[0]
    if len(commands) == 1 and first.args and is_builtin(first.args[0]):
        state.status = _run_solo(state, first, read_line)
        return state.status
    writers = []
    results = []
    upstream = None
    last = len(commands) - 1
    for index, command in enumerate(commands):
        read_end, write_end = os.pipe() if index < last else (None, None)
        try:
            results.append(
                _run_stage(state, command, upstream, write_end, read_line, writers)
            )
        finally:
            _close(upstream)
            _close(write_end)
        upstream = read_end
    with _child_signals():
        for result in results:
            code = result.wait() if isinstance(result, subprocess.Popen) else result
            if code >= 0:
                state.status = code
    for writer in writers:
        writer.join()
    return state.status