"""
linemux.poller — Platform I/O capability used by the multiplexer.

The multiplexer only ever talks to this interface:

    register(source)           add a source to the readiness set
    await poll(timeout)        → list of ready sources (maybe empty)
    try_read(source, n)        → bytes | WOULD_BLOCK | CLOSED
    release(source)            drop from the set and close the handle
    close()                    release everything

so the line-splitting logic does not depend on the polling primitive.
SelectorPoller backs it with the `selectors` module. poll(2) is
preferred over epoll because epoll refuses regular files, which are
always readable as far as poll(2) and select(2) are concerned.
"""

import asyncio
import concurrent.futures
import logging
import os
import selectors
from typing import Dict, List, Optional, Union

from .types import Source, NOHANDLE, WOULD_BLOCK, CLOSED, ReadStatus

logger = logging.getLogger("linemux.poller")

ReadResult = Union[bytes, ReadStatus]


def _default_selector() -> selectors.BaseSelector:
    if hasattr(selectors, "PollSelector"):
        return selectors.PollSelector()
    return selectors.SelectSelector()


class SelectorPoller:
    """Readiness polling over non-blocking file descriptors."""

    def __init__(self, selector: selectors.BaseSelector = None):
        self._selector = selector or _default_selector()
        self._sources: Dict[int, Source] = {}

        # Bounded waits run here so the event loop stays free
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="linemux-poll"
        )
        self._inflight: Optional[concurrent.futures.Future] = None

    def __len__(self):
        return len(self._sources)

    def register(self, source: Source):
        self._selector.register(source.handle, selectors.EVENT_READ, source)
        self._sources[source.handle] = source

    def unregister(self, source: Source):
        if self._sources.pop(source.handle, None) is not None:
            self._selector.unregister(source.handle)

    def _select(self, timeout: float) -> List[Source]:
        return [key.data for key, events in self._selector.select(timeout)
                if events & selectors.EVENT_READ]

    async def poll(self, timeout: float) -> List[Source]:
        """
        Return the registered sources that are ready to read.

        Checks without waiting first; only if nothing is ready does the
        bounded wait run, in a worker thread so the event loop keeps
        accepting handoffs meanwhile.
        """
        if not self._sources:
            return []
        ready = self._select(0)
        if ready or timeout <= 0:
            return ready
        self._inflight = self._executor.submit(self._select, timeout)
        try:
            return await asyncio.wrap_future(self._inflight)
        finally:
            if self._inflight.done():
                self._inflight = None

    def _settle(self):
        """
        Wait out a bounded wait abandoned by a cancelled poll().

        Handles must not be closed while the worker thread still polls
        them. Blocks for at most one poll interval.
        """
        inflight, self._inflight = self._inflight, None
        if inflight is not None:
            concurrent.futures.wait([inflight])

    def try_read(self, source: Source, max_bytes: int) -> ReadResult:
        try:
            data = os.read(source.handle, max_bytes)
        except BlockingIOError:
            return WOULD_BLOCK
        if not data:
            return CLOSED
        return data

    def release(self, source: Source):
        """Unregister and close the source's handle."""
        if source.handle == NOHANDLE:
            return
        self._settle()
        self.unregister(source)
        try:
            os.close(source.handle)
        except OSError as e:
            logger.warning(f"Closing '{source.path}' failed: {e}")
        source.handle = NOHANDLE

    def close(self):
        self._settle()
        self._executor.shutdown(wait=True)
        for source in list(self._sources.values()):
            self.release(source)
        self._selector.close()
