"""Run a Pipeline: one forked process per stage, joined by OS pipes.

Every stage writes into a fresh pipe (or its redirection file) and the next
stage reads from that pipe. The pipe after the last stage is drained into the
interpreter's output, then every child that was actually created is reaped.
The parent closes each descriptor as soon as the child it was meant for has
been forked, so a reader only sees end-of-stream once its writer exits.
"""

from __future__ import annotations

import contextlib
import enum
import logging
import os
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, List, Optional

from .errors import PipeCreationError, RedirectionError, ShellError, SpawnError
from .forwarder import forward_output, reap
from .paths import which
from .pipeline import Pipeline, Stage, StageOrder, build_pipeline
from .tokenizer import tokenize

log = logging.getLogger(__name__)

# child exit codes when exec never happens
EXIT_BIND_FAILED = 125
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127

Resolver = Callable[[str], Optional[str]]


class ExecState(enum.Enum):
    IDLE = "idle"
    SPAWNING = "spawning"
    ALL_SPAWNED = "all-spawned"
    DRAINING = "draining"
    REAPED = "reaped"
    DONE = "done"


class PipeBoundary:
    """One os.pipe() pair. Each end is closed exactly once."""

    def __init__(self):
        try:
            self.read_fd, self.write_fd = os.pipe()
        except OSError as e:
            raise PipeCreationError(f"pipe: {e.strerror}") from e

    def close_read(self) -> None:
        if self.read_fd is not None:
            fd, self.read_fd = self.read_fd, None
            os.close(fd)

    def close_write(self) -> None:
        if self.write_fd is not None:
            fd, self.write_fd = self.write_fd, None
            os.close(fd)

    def close(self) -> None:
        try:
            self.close_write()
        finally:
            self.close_read()

    @property
    def closed(self) -> bool:
        return self.read_fd is None and self.write_fd is None

    def __enter__(self) -> "PipeBoundary":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"PipeBoundary(read={self.read_fd}, write={self.write_fd})"


@dataclass
class StageOutcome:
    index: int
    stage: Stage
    pid: Optional[int] = None
    status: Optional[int] = None
    skipped: bool = False
    error: Optional[str] = None


@dataclass
class PipelineResult:
    outcomes: List[StageOutcome] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[ShellError] = field(default_factory=list)
    aborted: bool = False
    forwarded: int = 0
    state: ExecState = ExecState.IDLE

    @property
    def pids(self) -> List[int]:
        return [o.pid for o in self.outcomes if o.pid is not None]

    @property
    def spawned(self) -> int:
        return len(self.pids)

    @property
    def reaped(self) -> int:
        return sum(1 for o in self.outcomes if o.pid is not None and o.status is not None)

    @property
    def statuses(self) -> List[Optional[int]]:
        return [o.status for o in self.outcomes if o.pid is not None]

    @property
    def last_status(self) -> Optional[int]:
        statuses = self.statuses
        return statuses[-1] if statuses else None

    @property
    def ok(self) -> bool:
        return not self.aborted and not self.errors and all(s == 0 for s in self.statuses)


def _child_error(msg: str) -> None:
    try:
        os.write(2, f"osh: {msg}\n".encode("utf-8", errors="replace"))
    except OSError:
        pass


def exec_child(in_fd: int, out_fd: int, exe: Optional[str], argv: List[str]) -> None:
    """Runs in the forked child and never returns."""
    code = EXIT_NOT_FOUND
    try:
        try:
            os.dup2(in_fd, 0)
            os.dup2(out_fd, 1)
        except OSError as e:
            _child_error(f"dup2: {e.strerror}")
            code = EXIT_BIND_FAILED
            return
        if exe is None:
            _child_error(f"{argv[0]}: command not found")
            return
        try:
            os.execv(exe, argv)
        except FileNotFoundError:
            _child_error(f"{argv[0]}: command not found")
        except OSError as e:
            _child_error(f"{argv[0]}: {e.strerror}")
            code = EXIT_NOT_EXECUTABLE
    finally:
        # exiting closes the child's copy of the write end, unblocking readers
        os._exit(code)


class PipelineExecutor:
    def __init__(
        self,
        pipeline: Pipeline,
        output: BinaryIO,
        stdin_fd: int = 0,
        resolver: Resolver = which,
    ):
        self.pipeline = pipeline
        self.output = output
        self.stdin_fd = stdin_fd
        self.resolver = resolver

    def _open_target(self, idx: int, stage: Stage, result: PipelineResult) -> Optional[BinaryIO]:
        assert stage.target is not None
        try:
            return open(stage.target, "wb")
        except OSError as e:
            err = RedirectionError(f"cannot open {stage.target}: {e.strerror}", stage.target, stage=idx)
            log.error("%s; writing to the pipe instead", err)
            result.errors.append(err)
            return None

    def _spawn(self, idx: int, stage: Stage, in_fd: int, out_fd: int) -> int:
        exe = self.resolver(stage.tokens[0])
        try:
            pid = os.fork()
        except OSError as e:
            raise SpawnError(f"fork: {e.strerror}", stage=idx) from e
        if pid == 0:
            exec_child(in_fd, out_fd, exe, stage.argv)
        log.debug("spawned pid=%d stage=%d in=%d out=%d argv=%s", pid, idx, in_fd, out_fd, stage.argv)
        return pid

    def _spawn_all(self, stack: contextlib.ExitStack, result: PipelineResult) -> Optional[PipeBoundary]:
        prev: Optional[PipeBoundary] = None
        for idx, stage in enumerate(self.pipeline):
            outcome = StageOutcome(index=idx, stage=stage)
            result.outcomes.append(outcome)
            if stage.empty:
                msg = f"stage {idx}: empty command skipped"
                log.warning(msg)
                result.warnings.append(msg)
                outcome.skipped = True
                continue

            boundary = stack.enter_context(PipeBoundary())
            in_fd = self.stdin_fd if prev is None else prev.read_fd
            target = self._open_target(idx, stage, result) if stage.target else None
            try:
                if target is not None:
                    out_fd = target.fileno()
                    # nothing flows to the next stage
                    boundary.close_write()
                else:
                    out_fd = boundary.write_fd
                outcome.pid = self._spawn(idx, stage, in_fd, out_fd)
            except SpawnError as e:
                log.error("%s", e)
                outcome.error = str(e)
                result.errors.append(e)
            finally:
                if target is not None:
                    target.close()
                boundary.close_write()
                if prev is not None:
                    prev.close_read()
            prev = boundary
        return prev

    def run(self) -> PipelineResult:
        result = PipelineResult()
        result.state = ExecState.SPAWNING
        try:
            with contextlib.ExitStack() as stack:
                last = self._spawn_all(stack, result)
                result.state = ExecState.ALL_SPAWNED
                if last is not None:
                    result.state = ExecState.DRAINING
                    result.forwarded = forward_output(last.read_fd, self.output)
                    last.close_read()
        except PipeCreationError as e:
            # every descriptor is closed by now so running children see EOF/EPIPE
            log.error("%s; aborting pipeline", e)
            result.errors.append(e)
            result.aborted = True
        finally:
            statuses = reap(result.pids)
            for outcome in result.outcomes:
                if outcome.pid is not None:
                    outcome.status = statuses.get(outcome.pid)
            result.state = ExecState.REAPED
        result.state = ExecState.DONE
        return result


def run_line(
    line: str,
    output: BinaryIO,
    order: StageOrder = StageOrder.NATURAL,
    stdin_fd: int = 0,
    resolver: Resolver = which,
) -> Optional[PipelineResult]:
    """Tokenize, build and run one input line. None means there was nothing to run."""
    pipeline = build_pipeline(tokenize(line), order)
    if pipeline is None:
        return None
    return PipelineExecutor(pipeline, output, stdin_fd=stdin_fd, resolver=resolver).run()
