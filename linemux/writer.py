"""
linemux.writer — Output side of the multiplexer.

Each flush is one write call on the output stream, so a complete line
(or a final fragment at end-of-stream) never shares a write with
another source's bytes. Nothing is buffered across calls.
"""

import logging
from typing import BinaryIO

logger = logging.getLogger("linemux.writer")


class OutputWriter:
    """Writes flushable byte ranges to a binary stream."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self.flushes = 0
        self.bytes_written = 0

    def write(self, data: bytes):
        """Write `data` in one call and push it through the stream."""
        if not data:
            return
        self._stream.write(data)
        self._stream.flush()
        self.flushes += 1
        self.bytes_written += len(data)
        logger.debug(f"Flushed {len(data)} bytes")
