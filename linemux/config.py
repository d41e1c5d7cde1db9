"""
Runtime settings for linemux.

Defaults can be overridden from the environment (or a .env file):

    LINEMUX_POLL_INTERVAL   seconds to wait per readiness poll (0.05)
    LINEMUX_CHUNK_SIZE      max bytes per read (65536)
"""

import os
from dataclasses import dataclass, replace
from typing import Callable, Mapping, Optional

from dotenv import load_dotenv

from .mux import DEFAULT_CHUNK_SIZE, DEFAULT_POLL_INTERVAL

ENV_POLL_INTERVAL = "LINEMUX_POLL_INTERVAL"
ENV_CHUNK_SIZE = "LINEMUX_CHUNK_SIZE"


@dataclass(frozen=True)
class MuxConfig:
    poll_interval: float = DEFAULT_POLL_INTERVAL
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 dotenv: bool = True) -> 'MuxConfig':
        """
        Build a config from environment variables.

        Loads .env first unless `dotenv` is False or an explicit
        `environ` mapping is given.
        """
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        return cls(
            poll_interval=_env_value(environ, ENV_POLL_INTERVAL, float,
                                     DEFAULT_POLL_INTERVAL),
            chunk_size=_env_value(environ, ENV_CHUNK_SIZE, int,
                                  DEFAULT_CHUNK_SIZE),
        )

    def override(self, poll_interval: Optional[float] = None,
                 chunk_size: Optional[int] = None) -> 'MuxConfig':
        """Return a copy with any non-None values replaced."""
        changes = {}
        if poll_interval is not None:
            changes['poll_interval'] = poll_interval
        if chunk_size is not None:
            changes['chunk_size'] = chunk_size
        return replace(self, **changes)


def _env_value(environ: Mapping[str, str], name: str,
               convert: Callable, default):
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return convert(raw)
    except ValueError:
        raise ValueError(f"Invalid {name} '{raw}'") from None
