#!/usr/bin/env python3
"""Fake interactive shell for integration testing.

This script plays the shell under test: it accepts the session arguments
built by shell_runner.build_argv, prints the ps1 prompt, and answers one
command per stdin line.

Usage:
    python fake_shell.py --env JSON [--commands PATH] [--disabled a,b] [--contexts.NAME a,b]...

Commands:
    echo TEXT...     print TEXT to stdout
    warn TEXT...     print TEXT to stderr
    mixed TEXT       print TEXT to stdout and stderr
    env [KEY]        print the session environment keys, or the value of KEY
    commands         print the --commands path ("none" if unset)
    disabled         print the disabled commands, comma separated
    contexts         print "NAME: a,b" for each context, sorted by name
    split TEXT       print TEXT, then the prompt in two separate writes
    lines N          print N numbered lines
    sleep SECONDS    wait, then prompt
    hang             print "hanging" and never prompt again
    flood N          print N characters and never prompt again
    exit [CODE]      exit without prompting
"""

from __future__ import annotations

import argparse
import json
import shlex
import sys
import time

CONTEXT_PREFIX = "--contexts."


def parse_args(argv: list[str]) -> tuple[argparse.Namespace, dict[str, list[str]]]:
    """Parse the fixed flags plus any number of --contexts.NAME options."""
    parser = argparse.ArgumentParser(description="Fake shell for testing")
    parser.add_argument("--env", type=json.loads, default={}, help="Session environment JSON")
    parser.add_argument("--commands", default=None, help="Command definition file")
    parser.add_argument("--disabled", default="", help="Disabled commands")

    args, rest = parser.parse_known_args(argv)

    contexts: dict[str, list[str]] = {}
    while rest:
        flag = rest.pop(0)
        if not flag.startswith(CONTEXT_PREFIX) or not rest:
            parser.error(f"unrecognized argument: {flag}")
        contexts[flag[len(CONTEXT_PREFIX):]] = _split_list(rest.pop(0))

    return args, contexts


def _split_list(value: str) -> list[str]:
    return [item for item in value.split(",") if item]


STDERR_SETTLE = 0.05  # lets the reader see stderr before the next prompt


def write(text: str, stream=None) -> None:
    stream = stream or sys.stdout
    stream.write(text)
    stream.flush()
    if stream is sys.stderr:
        time.sleep(STDERR_SETTLE)


def hang() -> None:
    while True:
        time.sleep(1)


def main() -> None:
    for stream in (sys.stdin, sys.stdout, sys.stderr):
        stream.reconfigure(encoding="utf-8")

    args, contexts = parse_args(sys.argv[1:])
    env = args.env
    prompt = env.get("ps1", "> ")
    disabled = set(_split_list(args.disabled))

    write(prompt)

    for raw_line in sys.stdin:
        line = raw_line.rstrip("\n")
        words = shlex.split(line)
        if not words:
            write(prompt)
            continue

        name, params = words[0], words[1:]

        if name in disabled:
            write(f"Command not available: {name}\n", sys.stderr)
        elif name == "echo":
            write(" ".join(params) + "\n")
        elif name == "warn":
            write(" ".join(params) + "\n", sys.stderr)
        elif name == "mixed":
            text = " ".join(params)
            write(f"out: {text}\n")
            write(f"err: {text}\n", sys.stderr)
        elif name == "env":
            if params:
                write(f"{env.get(params[0], '')}\n")
            else:
                write(",".join(sorted(env)) + "\n")
        elif name == "commands":
            write(f"{args.commands or 'none'}\n")
        elif name == "disabled":
            write(",".join(sorted(disabled)) + "\n")
        elif name == "contexts":
            for context_name in sorted(contexts):
                write(f"{context_name}: {','.join(contexts[context_name])}\n")
        elif name == "split":
            write(" ".join(params) + "\n" + prompt[:1])
            time.sleep(0.05)
            write(prompt[1:])
            continue
        elif name == "lines":
            for i in range(int(params[0])):
                write(f"line{i}\n")
        elif name == "sleep":
            time.sleep(float(params[0]))
        elif name == "hang":
            write("hanging\n")
            hang()
        elif name == "flood":
            write("x" * int(params[0]) + "\n")
            hang()
        elif name == "exit":
            sys.exit(int(params[0]) if params else 0)
        else:
            write(f"Unknown command: {name}\n", sys.stderr)

        write(prompt)


if __name__ == "__main__":
    main()
