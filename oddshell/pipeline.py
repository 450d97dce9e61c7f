# Turns a flat token list into an ordered chain of stages.

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

PIPE = "|"
# Written after the file name: "out.txt < echo hi" sends echo's output to
# out.txt. It reads like input redirection but is output redirection.
REDIRECT = "<"


class StageOrder(enum.Enum):
    NATURAL = "natural"
    # last command typed runs first and feeds the one typed before it
    REVERSED = "reversed"


@dataclass(frozen=True)
class Stage:
    tokens: Tuple[str, ...]
    target: Optional[str] = None

    @property
    def argv(self) -> List[str]:
        return list(self.tokens)

    @property
    def empty(self) -> bool:
        return not self.tokens

    def __str__(self) -> str:
        cmd = " ".join(self.tokens) or "<empty>"
        if self.target is not None:
            return f"{self.target} {REDIRECT} {cmd}"
        return cmd


@dataclass
class Pipeline:
    stages: List[Stage] = field(default_factory=list)
    order: StageOrder = StageOrder.NATURAL

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(self.stages)

    def __getitem__(self, idx: int) -> Stage:
        return self.stages[idx]


def split_stages(tokens: Sequence[str]) -> List[Tuple[str, ...]]:
    stages: List[Tuple[str, ...]] = []
    current: List[str] = []
    for tok in tokens:
        if tok == PIPE:
            stages.append(tuple(current))
            current = []
        else:
            current.append(tok)
    stages.append(tuple(current))
    return stages


def resolve_redirection(tokens: Sequence[str]) -> Tuple[Tuple[str, ...], Optional[str]]:
    """Detect ``FILE < cmd args...`` and strip it from the argument vector.

    Only position 1 is checked; a ``<`` anywhere else is an ordinary argument.
    Returns the effective argv and the target path (or None).
    """
    tokens = tuple(tokens)
    if len(tokens) >= 2 and tokens[1] == REDIRECT:
        return tokens[2:], tokens[0]
    return tokens, None


def build_pipeline(tokens: Sequence[str], order: StageOrder = StageOrder.NATURAL) -> Optional[Pipeline]:
    if not tokens:
        return None
    stages: List[Stage] = []
    for raw in split_stages(tokens):
        argv, target = resolve_redirection(raw)
        stages.append(Stage(tokens=argv, target=target))
    if order is StageOrder.REVERSED:
        stages.reverse()
    return Pipeline(stages=stages, order=order)
