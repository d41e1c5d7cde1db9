"""
linemux.opener — One opener per requested path.

Opening a named pipe blocks until a writer connects, so the platform
open runs in its own daemon thread and the result is posted back to
the event loop. A pipe still waiting for its writer never holds up the
multiplexer or the other openers, and never keeps a dying process
alive.

Lifecycle of a source while the opener owns it:
  1. PENDING_OPEN while the blocking open is in flight
  2. non-blocking mode is set on the new handle
  3. OPENED_UNACKNOWLEDGED once handed off on the channel
  4. done when the multiplexer acknowledges the source id
"""

import asyncio
import logging
import os
import threading
from typing import Optional

from .channel import HandoffChannel
from .types import Source, SourceState, NOHANDLE

logger = logging.getLogger("linemux.opener")


class SourceOpenError(OSError):
    """A requested source could not be opened or configured. Fatal."""

    def __init__(self, path: str, cause: OSError):
        super().__init__(cause.errno, cause.strerror or str(cause), path)
        self.path = path
        self.cause = cause

    def __str__(self):
        reason = self.cause.strerror or str(self.cause)
        return f"cannot open '{self.path}': {reason}"


def open_nonblocking(path: str) -> int:
    """
    Open `path` for reading and switch the handle to non-blocking reads.

    Blocks for as long as the platform open does (a FIFO without a
    writer blocks indefinitely).
    """
    fd = os.open(path, os.O_RDONLY)
    try:
        os.set_blocking(fd, False)
    except OSError:
        os.close(fd)
        raise
    return fd


class SourceOpener:
    """Opens one source and hands it to the multiplexer."""

    def __init__(self, source: Source, channel: HandoffChannel):
        self.source = source
        self._channel = channel

    async def run(self):
        """
        Open, hand off, and wait for the acknowledgment.

        Raises SourceOpenError if the path cannot be opened.
        """
        source = self.source
        fd = await self._open()

        source.handle = fd
        source.state = SourceState.OPENED_UNACKNOWLEDGED
        logger.info(f"Opened '{source.path}' (source {source.id}, fd={fd})")

        try:
            await self._channel.hand_off(source)
        except asyncio.CancelledError:
            # Never reached the multiplexer; the handle is still ours
            os.close(fd)
            source.handle = NOHANDLE
            raise

        await self._channel.wait_ack(source.id)
        logger.debug(f"Source {source.id} acknowledged")

    async def _open(self) -> int:
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        thread = threading.Thread(
            target=self._open_in_thread,
            args=(loop, future),
            name=f"open-{self.source.id}",
            daemon=True,
        )
        thread.start()
        return await future

    def _open_in_thread(self, loop: asyncio.AbstractEventLoop,
                        future: asyncio.Future):
        """Thread body: the only place the blocking open happens."""
        fd: Optional[int] = None
        error: Optional[OSError] = None
        try:
            fd = open_nonblocking(self.source.path)
        except OSError as e:
            error = e

        try:
            loop.call_soon_threadsafe(self._deliver, future, fd, error)
        except RuntimeError:
            # Event loop already closed; nobody will take the handle
            if fd is not None:
                os.close(fd)

    def _deliver(self, future: asyncio.Future, fd: Optional[int],
                 error: Optional[OSError]):
        if future.cancelled():
            if fd is not None:
                os.close(fd)
            return
        if error is not None:
            future.set_exception(SourceOpenError(self.source.path, error))
        else:
            future.set_result(fd)
