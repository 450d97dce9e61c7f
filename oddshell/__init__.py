"""oddshell: a minimal pipeline shell.

One input line becomes a chain of forked processes joined by OS pipes; the
last stage's output is streamed back to the caller.
"""

__version__ = "0.1.0"

from .executor import PipelineExecutor, PipelineResult, run_line
from .pipeline import Pipeline, Stage, StageOrder, build_pipeline, resolve_redirection
from .tokenizer import tokenize

__all__ = [
    "Pipeline",
    "PipelineExecutor",
    "PipelineResult",
    "Stage",
    "StageOrder",
    "build_pipeline",
    "resolve_redirection",
    "run_line",
    "tokenize",
]
