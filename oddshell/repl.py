#!/usr/bin/env python3
# Interactive loop: prompt, read one line, run it as a pipeline, repeat.
#   oddshell                       interactive, natural left-to-right order
#   oddshell --reverse             legacy order: "a | b" runs b first into a
#   oddshell -c 'out.txt < ls -l'  run one line and exit

from __future__ import annotations

import argparse
import logging
import sys
from typing import BinaryIO, List, Optional, TextIO

from .config import LOG_LEVELS, Config, parse_order
from .executor import PipelineResult, run_line
from .logs import setup_logging
from .pipeline import StageOrder

log = logging.getLogger(__name__)

EXIT_WORD = "exit"


class Shell:
    def __init__(
        self,
        config: Optional[Config] = None,
        input: Optional[TextIO] = None,
        output: Optional[BinaryIO] = None,
        stdin_fd: int = 0,
    ):
        self.config = config or Config()
        self.input = input if input is not None else sys.stdin
        self.output = output if output is not None else sys.stdout.buffer
        self.stdin_fd = stdin_fd
        self.last_result: Optional[PipelineResult] = None

    def prompt(self) -> None:
        self.output.write(self.config.prompt.encode())
        self.output.flush()

    def read_line(self) -> Optional[str]:
        line = self.input.readline()
        if line == "":
            return None
        return line.rstrip("\n")

    def execute(self, line: str) -> Optional[PipelineResult]:
        result = run_line(line, self.output, order=self.config.order, stdin_fd=self.stdin_fd)
        if result is None:
            return None
        self.last_result = result
        for outcome in result.outcomes:
            if outcome.status:
                log.info("stage %d (%s) exited with status %d", outcome.index, outcome.stage, outcome.status)
        return result

    def run(self) -> int:
        while True:
            try:
                self.prompt()
                line = self.read_line()
            except KeyboardInterrupt:
                line = None
            if line is None:
                # end of input
                self.output.write(b"\n")
                self.output.flush()
                break
            if line.strip() == EXIT_WORD:
                break
            try:
                self.execute(line)
            except KeyboardInterrupt:
                # Ctrl-C while draining; the executor has already reaped
                self.output.write(b"\n")
            except Exception:
                log.exception("error running %r", line)
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="oddshell", description="Minimal pipeline shell")
    parser.add_argument("-c", "--command", help="Run one line and exit with its last status")
    parser.add_argument("--prompt", help="Prompt string (default: $OSH_PROMPT or 'osh>')")
    parser.add_argument("--reverse", action="store_true", help="Legacy order: the last command typed runs first")
    parser.add_argument("--order", choices=[o.value for o in StageOrder], help="Stage order (default: $OSH_ORDER or natural)")
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="Diagnostics level on stderr")
    return parser


def load_config(args: argparse.Namespace) -> Config:
    config = Config.from_env()
    if args.prompt is not None:
        config.prompt = args.prompt
    if args.order:
        config.order = parse_order(args.order)
    if args.reverse:
        config.order = StageOrder.REVERSED
    if args.log_level:
        config.log_level = args.log_level
    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = load_config(args)
    except ValueError as e:
        parser.error(str(e))
    setup_logging(config.log_level)

    shell = Shell(config)
    if args.command is not None:
        result = shell.execute(args.command)
        if result is None:
            return 0
        status = result.last_status
        if status is None:
            return 0 if result.ok else 1
        # killed by signal N -> 128+N, like sh
        return status if status >= 0 else 128 - status
    return shell.run()


if __name__ == "__main__":
    raise SystemExit(main())
