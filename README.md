# minishell

A small interactive command shell. It reads a line, splits it into
commands joined by pipes, expands variables, applies redirections and
here-documents, and runs each command either as a builtin or as a
program found on `PATH`.

## Installing

```
pip install .
```

## Running

```
minishell
```

The prompt is `Minishell 🐚$ `. End of input (Ctrl-D) prints `exit` and
leaves the shell with status 0. When input is a terminal, line editing
and history come from Python's `readline` module if it is available.
Ctrl-C at the prompt starts a fresh line and sets the status to 1.

## What the shell understands

- Pipes: `ls -l | grep py | wc -l`
- Input redirection: `< file`
- Output redirection: `> file` (truncate) and `>> file` (append);
  output files are created as soon as the line is parsed
- Here-documents: `<< END`, read line by line at a `<` prompt until a
  line equal to `END`
- Single and double quotes; the quote characters are removed from words
- `$NAME` expands from the environment and `$?` to the last exit
  status; there is no expansion inside single quotes

An unclosed quote, a pipe at the start, a trailing pipe, two pipes in a
row or a redirection without a target is reported as
`Minishell: Syntax error` and nothing is run.

Only the last file redirection on each side of a command counts. A file
redirection takes precedence over the pipe on the same side. The exit
status of a pipeline is that of its last stage.

## Builtins

| Command  | Behaviour |
|----------|-----------|
| `echo`   | prints its arguments; `-n` (also `-nnn`, repeated) suppresses the newline |
| `cd`     | no argument goes to `$HOME`, `-` to `$OLDPWD`, a leading `~` stands for `$HOME`; updates `PWD` and `OLDPWD` |
| `pwd`    | prints the working directory |
| `export` | sets `NAME=value`; with no arguments lists variables sorted, as `declare -x NAME=value` |
| `unset`  | removes variables |
| `env`    | prints the environment; takes no arguments |
| `exit`   | prints `exit` and leaves the shell, with an optional numeric status |

A builtin run on its own changes the shell itself. A builtin inside a
pipeline runs on a copy of the shell's state, so `cd`, `export`,
`unset` and `exit` there have no lasting effect.

A command that cannot be found exits with status 127; one whose path
runs through a non-directory exits with 126.

## Using it from Python

```python
from minishell.environ import ShellState
from minishell.parser import parse
from minishell.shell import run_line

state = ShellState(env=["HOME=/home/user", "PATH=/usr/bin:/bin"])
commands = parse('echo "$HOME" | cat > out.txt', state.env, state.status)

status = run_line(state, "echo hello")
```

- `minishell.tokenizer.tokenize(line, env, last_status)` returns the
  checked `Token` list and raises `ShellSyntaxError` on bad input.
- `minishell.parser.parse(line, env, last_status)` returns a list of
  `Command` objects, each with `args`, `redirect_in` and `redirect_out`.
- `minishell.executor.execute(state, commands, read_line)` runs them
  and stores the status in `state.status`; `read_line(prompt)` supplies
  here-document lines and returns None at end of input.
- `minishell.shell.run_line(state, line, read_line)` does both for one
  line. A lone `exit` raises `minishell.builtins.ShellExit`.

## What it does not do

There are no command separators (`;`, `&&`, `||`), no background jobs,
no globbing, no backslash escapes and no subshells or scripts: the shell
only reads and runs one interactive line at a time.