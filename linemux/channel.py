"""
linemux.channel — Handoff between openers and the multiplexer.

An unbounded FIFO of handoffs and a reply slot per handoff for the
acknowledgment:

    opener ──handoff(Source)──▶ multiplexer
    opener ◀──ack(source id)─── multiplexer

An opener publishes its freshly opened source and then waits for the
acknowledgment carrying that source's id. Only after the ack does the
opener consider its job done; until then the handle is still its own.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from .types import Source

logger = logging.getLogger("linemux.channel")


class HandoffChannel:
    """
    Multi-producer / single-consumer handoff queue with per-source
    acknowledgments.

    Acks are keyed by source id. Ids are unique per run, so an ack can
    only ever wake the opener that published that source.

    Must be created inside a running event loop.
    """

    def __init__(self):
        self._handoffs: asyncio.Queue = asyncio.Queue()

        # Source id → future resolved by acknowledge()
        self._pending: Dict[int, asyncio.Future] = {}

    def _ack_future(self, source_id: int) -> asyncio.Future:
        future = self._pending.get(source_id)
        if future is None:
            future = asyncio.get_running_loop().create_future()
            self._pending[source_id] = future
        return future

    # ── Opener side ─────────────────────────────────────────────

    def hand_off_nowait(self, source: Source):
        self._ack_future(source.id)
        self._handoffs.put_nowait(source)
        logger.debug(f"Handed off {source!r}")

    async def hand_off(self, source: Source):
        """Publish an opened source to the multiplexer."""
        self.hand_off_nowait(source)

    async def wait_ack(self, source_id: int):
        """Block until the multiplexer acknowledges `source_id`."""
        future = self._ack_future(source_id)
        try:
            await future
        finally:
            if self._pending.get(source_id) is future:
                del self._pending[source_id]

    # ── Multiplexer side ────────────────────────────────────────

    async def receive(self) -> Source:
        """Wait for the next handoff."""
        return await self._handoffs.get()

    def receive_nowait(self) -> Optional[Source]:
        """Return the next handoff if one is queued, else None."""
        try:
            return self._handoffs.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def acknowledge(self, source: Source):
        """Tell the originating opener the multiplexer owns `source` now."""
        future = self._ack_future(source.id)
        if not future.done():
            future.set_result(source.id)

    def drain(self) -> List[Source]:
        """Remove and return every handoff nobody claimed."""
        unclaimed = []
        while True:
            source = self.receive_nowait()
            if source is None:
                return unclaimed
            unclaimed.append(source)

    @property
    def pending(self) -> int:
        """Handoffs queued but not yet claimed."""
        return self._handoffs.qsize()

    @property
    def unacknowledged(self) -> int:
        """Acks not yet collected by their openers."""
        return len(self._pending)
