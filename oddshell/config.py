import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .pipeline import StageOrder

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    prompt: str = "osh>"
    order: StageOrder = StageOrder.NATURAL
    log_level: str = "WARNING"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Config":
        env = os.environ if env is None else env
        cfg = cls()
        cfg.prompt = env.get("OSH_PROMPT", cfg.prompt)
        if "OSH_ORDER" in env:
            cfg.order = parse_order(env["OSH_ORDER"], "OSH_ORDER")
        if "OSH_LOG_LEVEL" in env:
            cfg.log_level = parse_level(env["OSH_LOG_LEVEL"], "OSH_LOG_LEVEL")
        cfg.host = env.get("OSH_HOST", cfg.host)
        if "PORT" in env:
            try:
                cfg.port = int(env["PORT"])
            except ValueError:
                raise ValueError(f"PORT: not a port number: {env['PORT']!r}") from None
        return cfg


def parse_order(value: str, name: str = "order") -> StageOrder:
    try:
        return StageOrder(value.strip().lower())
    except ValueError:
        choices = ", ".join(o.value for o in StageOrder)
        raise ValueError(f"{name}: expected one of {choices}, got {value!r}") from None


def parse_level(value: str, name: str = "log level") -> str:
    level = value.strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"{name}: unknown log level {value!r}")
    return level
