"""Splitting a command line into tokens, with variable expansion."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from minishell.environ import get_env_value, status_text

_BLANK_CHARS = " \t\n\r\v\f"
_LEXER = re.compile(
    r"(?P<op>>>|<<|[|<>])"
    r"|(?P<blank>[ \t\n\r\v\f])"
    r"|(?P<word>(?:[^|<> \t\n\r\v\f'\"]|'[^']*'|\"[^\"]*\")+)"
    r"|(?P<quote>['\"])"
)
_NAME_END = _BLANK_CHARS + "'\"$"
_QUOTED = re.compile(r"'([^']*)'?|\"([^\"]*)\"?")


class TokenType(enum.Enum):
    """Kinds of token a command line is made of."""

    OTHER = 0
    PIPE = 1
    RED_IN = 2
    RED_OUT = 3


_OPERATORS = {"|": TokenType.PIPE, "<": TokenType.RED_IN, ">": TokenType.RED_OUT}


@dataclass(frozen=True)
class Token:
    """One word or operator of a command line."""

    text: str
    kind: TokenType


class ShellSyntaxError(ValueError):
    """Raised when a command line cannot be parsed."""


def split_tokens(line):
    """Split ``line`` into words and operators, leaving quotes in place."""
    tokens = []
    for match in _LEXER.finditer(line):
        group = match.lastgroup
        text = match.group()
        if group == "quote":
            raise ShellSyntaxError(f"unclosed quote {text}")
        if group == "op":
            tokens.append(Token(text, _OPERATORS[text[0]]))
        elif group == "word":
            tokens.append(Token(text, TokenType.OTHER))
    return tokens


def _substitute_first(text, env, last_status):
    # The first '$' of the word is the one replaced, wherever the scan is.
    dollar = text.index("$")
    start = dollar + 1
    end = start
    while end < len(text) and text[end] not in _NAME_END:
        end += 1
    if text[start:start + 1] == "?":
        end = start + 1
        value = status_text(last_status)
    else:
        value = get_env_value(env, text[start:end])
    return text[:dollar] + (value or "") + text[end:]


def expand_variables(text, env, last_status=0):
    """Expand ``$NAME`` and ``$?`` in a word, leaving single-quoted parts alone."""
    i = 0
    while i < len(text):
        if text[i] == '"':
            i += 1
            while i < len(text) and text[i] not in '"$':
                i += 1
        if i < len(text) and text[i] == "'":
            i += 1
            while i < len(text) and text[i] != "'":
                i += 1
        if (
            i < len(text)
            and text[i] == "$"
            and text[i + 1:i + 2] not in ("", " ", '"')
        ):
            text = _substitute_first(text, env, last_status)
        if i >= len(text):
            break
        i += 1
    return text


def remove_quotes(text):
    """Drop the quote characters around each quoted part of a word."""
    return _QUOTED.sub(
        lambda m: m.group(1) if m.group(1) is not None else m.group(2), text
    )


def _check_syntax(tokens):
    if tokens and tokens[0].kind is TokenType.PIPE:
        raise ShellSyntaxError("syntax error near '|'")
    for token, following in zip(tokens, [*tokens[1:], None]):
        if token.kind is TokenType.OTHER:
            continue
        if following is None:
            raise ShellSyntaxError(f"syntax error near '{token.text}'")
        if token.kind is TokenType.PIPE:
            if following.kind is TokenType.PIPE:
                raise ShellSyntaxError("syntax error near '|'")
        elif following.kind is not TokenType.OTHER:
            raise ShellSyntaxError(f"syntax error near '{following.text}'")


def tokenize(line, env, last_status=0):
    """Split, expand and unquote a command line, checking operator syntax."""
    expanded = [
        Token(expand_variables(token.text, env, last_status), token.kind)
        if token.kind is TokenType.OTHER
        else token
        for token in split_tokens(line)
    ]
    _check_syntax(expanded)
    return [Token(remove_quotes(token.text), token.kind) for token in expanded]