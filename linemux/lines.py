"""
Line-boundary helpers.
"""

NEWLINE = b"\n"


def split_complete(chunk: bytes) -> int:
    """
    Return the length of the newline-terminated prefix of `chunk`.

    Scans backward for the last newline. The result is the exclusive
    end of the complete-line region: `chunk[:n]` may be flushed and
    `chunk[n:]` is a trailing partial line. Zero means no newline.
    """
    return chunk.rfind(NEWLINE) + 1
