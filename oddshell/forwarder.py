import logging
import os
from typing import BinaryIO, Dict, Iterable, Optional

log = logging.getLogger(__name__)

CHUNK_SIZE = 4096


def forward_output(fd: int, output: BinaryIO, chunk_size: int = CHUNK_SIZE) -> int:
    """Copy bytes from fd to output until end-of-stream. Returns the byte count."""
    total = 0
    while True:
        data = os.read(fd, chunk_size)
        if not data:
            break
        output.write(data)
        output.flush()
        total += len(data)
    return total


def reap(pids: Iterable[int]) -> Dict[int, Optional[int]]:
    """Wait for every pid. Status is the exit code, or -signum if killed."""
    statuses: Dict[int, Optional[int]] = {}
    for pid in pids:
        try:
            _pid, status = os.waitpid(pid, 0)
        except ChildProcessError:
            log.error("pid %d was already reaped", pid)
            statuses[pid] = None
            continue
        statuses[pid] = os.waitstatus_to_exitcode(status)
        log.debug("reaped pid=%d status=%s", pid, statuses[pid])
    return statuses
