"""
linemux — Line-preserving multiplexer for files and named pipes

Reads any number of sources concurrently and copies them to a single
output. Each source is opened in its own task, so a named pipe that is
still waiting for a writer does not delay sources already producing
data. Output writes always end at a newline, or at end-of-stream for a
source's final unterminated fragment.

Usage:
    python -m linemux log1 /tmp/fifo log2 > merged
"""

from .channel import HandoffChannel
from .config import MuxConfig
from .mux import Multiplexer
from .opener import SourceOpener, SourceOpenError
from .poller import SelectorPoller
from .runner import LineMux, merge
from .types import Source, SourceState, WOULD_BLOCK, CLOSED
from .writer import OutputWriter

__all__ = [
    'HandoffChannel',
    'MuxConfig',
    'Multiplexer',
    'SourceOpener', 'SourceOpenError',
    'SelectorPoller',
    'LineMux', 'merge',
    'Source', 'SourceState', 'WOULD_BLOCK', 'CLOSED',
    'OutputWriter',
]
