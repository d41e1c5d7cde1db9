import asyncio
import threading
from typing import Dict, List

import pytest

from linemux.channel import HandoffChannel
from linemux.mux import Multiplexer
from linemux.types import Source, SourceState, NOHANDLE, WOULD_BLOCK, CLOSED
from linemux.writer import OutputWriter


class RecordingStream:
    """Binary output stream that keeps every write call separately."""

    def __init__(self):
        self.writes: List[bytes] = []
        self.first_write = threading.Event()

    def write(self, data):
        self.writes.append(bytes(data))
        self.first_write.set()
        return len(data)

    def flush(self):
        pass

    def getvalue(self) -> bytes:
        return b"".join(self.writes)


class ScriptedPoller:
    """
    In-memory stand-in for SelectorPoller.

    Each source path maps to the list of results its reads return in
    order (bytes or WOULD_BLOCK); once exhausted the source is CLOSED.
    Every registered source is reported ready on every poll.
    """

    def __init__(self, script: Dict[str, list]):
        self._script = {path: list(items) for path, items in script.items()}
        self._sources: Dict[int, Source] = {}
        self.released: List[str] = []
        self.polls = 0
        self.closed = False

    def __len__(self):
        return len(self._sources)

    def register(self, source: Source):
        self._sources[source.id] = source

    def unregister(self, source: Source):
        self._sources.pop(source.id, None)

    async def poll(self, timeout: float) -> List[Source]:
        self.polls += 1
        await asyncio.sleep(0)
        return list(self._sources.values())

    def try_read(self, source: Source, max_bytes: int):
        items = self._script[source.path]
        if not items:
            return CLOSED
        return items.pop(0)

    def release(self, source: Source):
        self.unregister(source)
        self.released.append(source.path)
        source.handle = NOHANDLE

    def close(self):
        self.closed = True


def scripted_source(source_id: int, path: str) -> Source:
    return Source(id=source_id, path=path, handle=100 + source_id,
                  state=SourceState.OPENED_UNACKNOWLEDGED)


async def drive(script: Dict[str, list], delay_handoffs: float = 0):
    """Run a Multiplexer over scripted sources, handing them off in order."""
    channel = HandoffChannel()
    poller = ScriptedPoller(script)
    stream = RecordingStream()
    mux = Multiplexer(len(script), channel, poller, OutputWriter(stream))

    task = asyncio.create_task(mux.run())
    sources = []
    for i, path in enumerate(script, 1):
        if delay_handoffs:
            await asyncio.sleep(delay_handoffs)
        source = scripted_source(i, path)
        sources.append(source)
        await channel.hand_off(source)

    await asyncio.wait_for(task, timeout=5)
    return stream, mux, poller, sources


@pytest.fixture
def recording_stream():
    return RecordingStream()
