"""
Core types for the line multiplexer.
"""

import enum
from dataclasses import dataclass, field
from typing import List

# Sentinel handle before the platform open returns
NOHANDLE = -1


class SourceState(enum.Enum):
    """Lifecycle of one input source."""
    PENDING_OPEN = "pending-open"
    OPENED_UNACKNOWLEDGED = "opened-unacknowledged"
    ACTIVE = "active"
    CLOSED = "closed"


class ReadStatus(enum.Enum):
    """Non-data outcomes of a non-blocking read."""
    WOULD_BLOCK = "would-block"
    CLOSED = "closed"


WOULD_BLOCK = ReadStatus.WOULD_BLOCK
CLOSED = ReadStatus.CLOSED


@dataclass(eq=False)
class Source:
    """
    One requested input path.

    Owned by its opener until handed off, then by the multiplexer.

    - id: unique per run, allocated by the runner; never reused
    - handle: descriptor once opened (NOHANDLE before)
    - partial: chunks read since the last newline flush; joining them
      never yields a newline
    """
    id: int
    path: str
    handle: int = NOHANDLE
    state: SourceState = SourceState.PENDING_OPEN
    partial: List[bytes] = field(default_factory=list)

    @property
    def pending_bytes(self) -> int:
        return sum(len(chunk) for chunk in self.partial)

    def take_partial(self) -> bytes:
        """Return and clear the buffered partial line."""
        data = b"".join(self.partial)
        self.partial.clear()
        return data

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Source({self.id}:{self.path!r} {self.state.value})"
