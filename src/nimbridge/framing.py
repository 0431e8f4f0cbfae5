"""Line reassembly for event-stream bodies."""

import codecs
from typing import List


class LineReassembler:
    """
    Turns arbitrary byte chunks into complete newline-terminated lines.

    The unterminated tail of the data seen so far is held back until a later
    chunk completes it. Bytes are decoded incrementally, so a multi-byte
    character split across two chunks is not corrupted.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self.pending = ""

    def feed(self, chunk: bytes) -> List[str]:
        """
        Add a chunk and return every line it completed, without the line feed.
        """
        self.pending += self._decoder.decode(chunk)
        if "\n" not in self.pending:
            return []

        lines = self.pending.split("\n")
        self.pending = lines.pop()
        return lines

    def flush(self) -> str:
        """
        Return and clear whatever has not been terminated by a line feed.
        """
        fragment = self.pending + self._decoder.decode(b"", final=True)
        self.pending = ""
        return fragment
