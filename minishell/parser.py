"""Turning a command line into commands with their arguments and redirections."""

from __future__ import annotations

import enum
import os
import sys
from dataclasses import dataclass, field

from minishell.tokenizer import TokenType, tokenize

_CREATE_MODE = 0o644


class RedirectMode(enum.Enum):
    """How a redirection opens its target, keyed by its operator."""

    READ = "<"
    HEREDOC = "<<"
    TRUNCATE = ">"
    APPEND = ">>"

    @property
    def open_flags(self):
        """Flags for ``os.open``, or None for a here-document."""
        if self is RedirectMode.READ:
            return os.O_RDONLY
        if self is RedirectMode.TRUNCATE:
            return os.O_CREAT | os.O_TRUNC | os.O_RDWR
        if self is RedirectMode.APPEND:
            return os.O_CREAT | os.O_APPEND | os.O_RDWR
        return None


@dataclass
class Redirection:
    """One side (input or output) of a command's redirections.

    Only the last file redirection of a side is kept; here-document
    delimiters accumulate in order.
    """

    file_name: str | None = None
    mode: RedirectMode | None = None
    invalid: bool = False
    heredocs: list[str] = field(default_factory=list)

    def apply(self, operator, target):
        """Record ``operator target`` and check the file can be opened.

        Output files are created (and truncated for ``>``) right away.
        If the file cannot be opened the error is reported on stderr and
        the redirection is marked invalid. Raises ValueError for an
        unknown operator.
        """
        mode = RedirectMode(operator)
        self.mode = mode
        if mode is RedirectMode.HEREDOC:
            self.file_name = None
            self.heredocs.append(target)
            return
        self.file_name = target
        try:
            fd = os.open(target, mode.open_flags, _CREATE_MODE)
        except OSError as exc:
            print(f"{target}: {exc.strerror}", file=sys.stderr)
            self.invalid = True
        else:
            os.close(fd)


@dataclass
class Command:
    """A single command of a pipeline."""

    args: list[str] = field(default_factory=list)
    redirect_in: Redirection = field(default_factory=Redirection)
    redirect_out: Redirection = field(default_factory=Redirection)

    @property
    def invalid(self):
        """True when one of the command's redirections failed."""
        return self.redirect_in.invalid or self.redirect_out.invalid


def _segments(tokens):
    segment = []
    for token in tokens:
        if token.kind is TokenType.PIPE:
            yield segment
            segment = []
        else:
            segment.append(token)
    yield segment


def _build_command(tokens):
    command = Command()
    stream = iter(tokens)
    for token in stream:
        if token.kind is TokenType.OTHER:
            command.args.append(token.text)
            continue
        target = next(stream)
        if command.invalid:
            continue
        side = (
            command.redirect_in
            if token.kind is TokenType.RED_IN
            else command.redirect_out
        )
        side.apply(token.text, target.text)
    return command


def build_commands(tokens):
    """Group checked tokens into commands, one per pipeline stage.

    Once a redirection of a command fails, its later redirections are
    ignored.
    """
    return [_build_command(segment) for segment in _segments(tokens)]


def parse(line, env, last_status=0):
    """Tokenize ``line`` and build its commands.

    Raises ShellSyntaxError when the line is malformed.
    """
    return build_commands(tokenize(line, env, last_status))