"""Error types raised while building or running a pipeline."""

from typing import Optional


class ShellError(Exception):
    """Base class for interpreter errors that end up in a PipelineResult."""

    def __init__(self, message: str, stage: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage is None:
            return self.message
        return f"stage {self.stage}: {self.message}"


class PipeCreationError(ShellError):
    """os.pipe() failed; the current iteration is aborted."""


class SpawnError(ShellError):
    """fork() failed for one stage; other stages still run."""


class RedirectionError(ShellError):
    """The redirection target could not be opened for writing."""

    def __init__(self, message: str, path: str, stage: Optional[int] = None):
        super().__init__(message, stage)
        self.path = path
