"""
linemux.mux — The coordinator.

A single control loop that owns every opened source:

1. Claims newly opened sources from the handoff channel and acks them
2. Polls the active set for readability with a bounded wait
3. Reads up to chunk_size bytes from each ready source
4. Flushes everything up to the last newline of each read, buffering
   the trailing partial line per source
5. On end-of-stream flushes whatever partial line is left and releases
   the source

Loop states:
    awaiting-first-source → draining (≥1 active) → drained-and-complete

The number of requested sources is fixed at construction. Polling
alone cannot tell "nothing left to read" from "not opened yet", so the
loop runs until as many sources have closed as were requested.

Within one source byte order is preserved. Across sources the
interleaving unit is one flush.
"""

import asyncio
import logging
from typing import Dict

from .channel import HandoffChannel
from .lines import split_complete
from .types import Source, SourceState, WOULD_BLOCK, CLOSED
from .writer import OutputWriter

logger = logging.getLogger("linemux.mux")

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_POLL_INTERVAL = 0.05


class Multiplexer:
    """
    Merges the requested sources into one output without splitting lines.

    `poller` is anything offering the SelectorPoller interface.
    """

    def __init__(
        self,
        expected: int,
        channel: HandoffChannel,
        poller,
        writer: OutputWriter,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if expected < 0:
            raise ValueError(f"expected must be >= 0, got {expected}")
        self.expected = expected
        self._channel = channel
        self._poller = poller
        self._writer = writer
        self._chunk_size = chunk_size
        self._poll_interval = poll_interval

        # source id → Source, for sources in the poll set
        self._active: Dict[int, Source] = {}

        self.opened = 0
        self.closed = 0

    @property
    def active(self) -> int:
        return len(self._active)

    @property
    def complete(self) -> bool:
        return self.closed >= self.expected

    async def run(self):
        """Run until every requested source has been drained and closed."""
        try:
            while not self.complete:
                self._admit_ready()

                if not self._active:
                    # Nothing to poll but sources outstanding: wait for one
                    self._admit(await self._channel.receive())
                    continue

                ready = await self._poller.poll(self._poll_interval)
                for source in ready:
                    # May have closed earlier in this round
                    if source.id in self._active:
                        self._service(source)

                if ready:
                    # Yield once per round; regular files never stop being ready
                    await asyncio.sleep(0)
        finally:
            for source in list(self._active.values()):
                self._poller.release(source)
            self._active.clear()

        logger.info(
            f"All {self.expected} sources closed "
            f"({self._writer.flushes} flushes, {self._writer.bytes_written} bytes)"
        )

    # ── Admission ───────────────────────────────────────────────

    def _admit(self, source: Source):
        self._poller.register(source)
        self._active[source.id] = source
        source.state = SourceState.ACTIVE
        self.opened += 1
        self._channel.acknowledge(source)
        logger.debug(
            f"Admitted {source!r} ({self.opened}/{self.expected} opened)"
        )

    def _admit_ready(self):
        """Claim every queued handoff without waiting."""
        while True:
            source = self._channel.receive_nowait()
            if source is None:
                return
            self._admit(source)

    # ── Reading ─────────────────────────────────────────────────

    def _service(self, source: Source):
        result = self._poller.try_read(source, self._chunk_size)

        if result is WOULD_BLOCK:
            return

        if result is CLOSED:
            self._close(source)
            # A closed slot is a good moment to take in new sources
            self._admit_ready()
            return

        end = split_complete(result)
        if end == 0:
            source.partial.append(result)
            return

        if source.partial:
            source.partial.append(result[:end])
            self._writer.write(source.take_partial())
        else:
            self._writer.write(result[:end])

        if end < len(result):
            source.partial.append(result[end:])

    def _close(self, source: Source):
        del self._active[source.id]
        self._poller.release(source)

        # End-of-stream: the trailing fragment goes out as-is
        if source.partial:
            logger.debug(
                f"Flushing {source.pending_bytes} unterminated bytes from {source!r}"
            )
        self._writer.write(source.take_partial())

        source.state = SourceState.CLOSED
        self.closed += 1
        logger.debug(
            f"Closed {source!r} ({self.closed}/{self.expected} closed)"
        )
