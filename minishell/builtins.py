"""The commands the shell runs itself instead of starting a program."""

from __future__ import annotations

import os
import string
import sys

from minishell.environ import get_env_prefix, parse_exit_number

BUILTINS = frozenset({"echo", "cd", "pwd", "export", "unset", "env", "exit"})

_NAME_START = string.ascii_letters + "_"
_NAME_CHARS = _NAME_START + string.digits
_SIGNS = "+-"


class ShellExit(Exception):
    """Raised by ``exit`` to end the shell with ``status``."""

    def __init__(self, status):
        super().__init__(status)
        self.status = status


def is_builtin(name):
    """Tell whether ``name`` is run by the shell itself."""
    return name in BUILTINS


def _is_n_flag(arg):
    return arg.startswith("-") and all(c == "n" for c in arg[1:])


def echo(args, out):
    """Write the arguments separated by spaces; ``-n`` drops the newline.

    Any number of leading ``-n``-style flags (a dash followed only by
    ``n`` characters) are consumed. A double backslash followed by ``n``
    is written as a newline.
    """
    if len(args) < 2:
        out.write("\n")
        return 0
    words = args[1:]
    flags = 0
    while flags < len(words) and _is_n_flag(words[flags]):
        flags += 1
    out.write(" ".join(word.replace("\\\\n", "\n") for word in words[flags:]))
    if not flags:
        out.write("\n")
    return 0


def _update_pwd(env, prefix):
    # The first entry sharing the prefix's first four characters is replaced.
    try:
        cwd = os.getcwd()
    except OSError:
        return
    for index, entry in enumerate(env):
        if entry[:4] == prefix[:4]:
            env[index] = prefix + cwd
            return


def cd(args, env):
    """Change the working directory and keep ``OLDPWD``/``PWD`` up to date.

    Without an argument it goes to ``HOME``; ``-`` goes to ``OLDPWD`` and
    a leading ``~`` stands for ``HOME``.
    """
    if len(args) < 2:
        path = get_env_prefix(env, "HOME=")
    elif args[1] == "-":
        path = get_env_prefix(env, "OLDPWD=")
    elif args[1].startswith("~"):
        home = get_env_prefix(env, "HOME=")
        path = None if home is None else home + args[1][1:]
    else:
        path = args[1]
    _update_pwd(env, "OLDPWD=")
    if path is None:
        print("cd: HOME not set", file=sys.stderr)
        return 1
    try:
        os.chdir(path)
    except OSError as exc:
        print(f"{path}: {exc.strerror}", file=sys.stderr)
        return 1
    _update_pwd(env, "PWD=")
    return 0


def pwd(out):
    """Write the current working directory."""
    try:
        cwd = os.getcwd()
    except OSError as exc:
        print(f"minishell : pwd: {exc.strerror}", file=sys.stderr)
        return 1
    out.write(cwd + "\n")
    return 0


def _check_name(arg, err):
    """Return True for ``NAME=value``, False for a bare name; raise on bad names."""
    name, sep, _ = arg.partition("=")
    if not arg or arg[0] not in _NAME_START or any(c not in _NAME_CHARS for c in name):
        err.write(f"minishell: export: {arg}: not a valid identifier\n")
        raise ValueError(arg)
    return bool(sep)


def _replace_existing(env, assignment):
    name = assignment.partition("=")[0]
    for index, entry in enumerate(env):
        key, sep, _ = entry.partition("=")
        if sep and key == name:
            env[index] = assignment
            return True
    return False


def _sort_key(entry):
    # '=' sorts before the end of the string, which sorts before any character.
    return tuple(-1 if c == "=" else ord(c) for c in entry) + (0,)


def sorted_exports(env):
    """Return the environment entries in the order ``export`` lists them."""
    return sorted(env, key=_sort_key)


def export(env, args, out, err):
    """Set variables from ``NAME=value`` arguments, or list them all.

    Processing stops at the first invalid name (status 1) and right after
    an existing variable has been overwritten (status 0).
    """
    if len(args) < 2:
        for entry in sorted_exports(env):
            out.write(f"declare -x {entry}\n")
    for arg in args[1:]:
        try:
            has_value = _check_name(arg, err)
        except ValueError:
            return 1
        if not has_value:
            continue
        if _replace_existing(env, arg):
            return 0
        env.append(arg)
    return 0


def unset(env, args):
    """Remove the first variable matching each name given."""
    for name in args[1:]:
        size = len(name)
        for index, entry in enumerate(env):
            if len(entry) > size and entry[size] == "=" and entry.startswith(name):
                del env[index]
                break
    return 0


def env_command(env, args, out, err):
    """Write every environment entry; no arguments are accepted."""
    if len(args) > 1:
        err.write("minishell: env: too many arguments\n")
        return 1
    for entry in env:
        out.write(entry + "\n")
    return 0


def _is_number(text):
    digits = text[1:] if text[:1] in _SIGNS else text
    return all(c in string.digits for c in digits)


def exit_command(args, out, err):
    """Announce the exit and raise ShellExit with the chosen status."""
    out.write("exit\n")
    if len(args) > 2:
        err.write("minishell: exit: too many arguments\n")
        status = 1
    elif len(args) == 2:
        if _is_number(args[1]):
            status = parse_exit_number(args[1])
        else:
            err.write(f"minishell: exit: {args[1]}: numeric argument required\n")
            status = 255
    else:
        status = 0
    raise ShellExit(status)


def run_builtin(state, args, out, err):
    """Run the builtin named by ``args[0]`` against ``state`` and return its status."""
    name = args[0] if args else None
    if name == "echo":
        return echo(args, out)
    if name == "cd":
        return cd(args, state.env)
    if name == "pwd":
        return pwd(out)
    if name == "export":
        return export(state.env, args, out, err)
    if name == "unset":
        return unset(state.env, args)
    if name == "env":
        return env_command(state.env, args, out, err)
    if name == "exit":
        exit_command(args, out, err)
    return 0