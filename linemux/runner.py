"""
linemux.runner — Wires openers, channel, multiplexer and writer.

Usage:
    mux = LineMux(["/tmp/a.log", "/tmp/pipe"], sys.stdout.buffer)
    await mux.run()

One SourceOpener task per path plus one Multiplexer task. The first
task to fail (normally a SourceOpenError) cancels the rest and its
exception is raised from run(). Cancelling run() cancels every task.
"""

import asyncio
import logging
from typing import BinaryIO, List, Sequence

from .channel import HandoffChannel
from .config import MuxConfig
from .mux import Multiplexer
from .opener import SourceOpener
from .poller import SelectorPoller
from .types import Source
from .writer import OutputWriter

logger = logging.getLogger("linemux.runner")


class LineMux:
    """
    Merges a fixed list of paths into one binary output stream.

    Each path becomes a Source with a unique id; ids are never reused,
    so acknowledgments cannot be confused between sources.
    """

    def __init__(self, paths: Sequence[str], output: BinaryIO,
                 config: MuxConfig = None, poller=None):
        self.config = config or MuxConfig()
        self.sources: List[Source] = [
            Source(id=i, path=path) for i, path in enumerate(paths, 1)
        ]
        self.writer = OutputWriter(output)
        self._poller = poller
        self._tasks: List[asyncio.Task] = []
        self.multiplexer: Multiplexer = None

    async def run(self):
        """Merge every source until all have reached end-of-stream."""
        if not self.sources:
            return

        channel = HandoffChannel()
        poller = self._poller or SelectorPoller()
        self.multiplexer = Multiplexer(
            expected=len(self.sources),
            channel=channel,
            poller=poller,
            writer=self.writer,
            chunk_size=self.config.chunk_size,
            poll_interval=self.config.poll_interval,
        )

        self._tasks = [
            asyncio.create_task(
                SourceOpener(source, channel).run(),
                name=f"opener-{source.id}",
            )
            for source in self.sources
        ]
        self._tasks.append(
            asyncio.create_task(self.multiplexer.run(), name="multiplexer")
        )
        logger.info(f"Merging {len(self.sources)} sources")

        try:
            done, _ = await asyncio.wait(
                self._tasks, return_when=asyncio.FIRST_EXCEPTION
            )
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    raise task.exception()
        finally:
            await self._cancel_all()
            for source in channel.drain():
                poller.release(source)
            poller.close()

    async def _cancel_all(self):
        """Cancel and reap every task still running."""
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []


def merge(paths: Sequence[str], output: BinaryIO, config: MuxConfig = None):
    """Blocking convenience wrapper around LineMux.run()."""
    asyncio.run(LineMux(paths, output, config).run())
