"""NETCONF message framing.

Requests are always sent with base:1.1 chunked framing (RFC 6242). Replies are
delimited by either the legacy ``]]>]]>`` end-of-message marker (used by the
device hello) or the ``##`` end-of-chunks marker.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from .errors import FramingError

logger = logging.getLogger(__name__)

END_OF_MESSAGE = b"]]>]]>"
END_OF_CHUNKS = b"##"
TERMINATORS: Tuple[bytes, ...] = (END_OF_MESSAGE, END_OF_CHUNKS)

GREETING = """<hello xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">
  <capabilities>
    <capability>urn:ietf:params:netconf:base:1.1</capability>
  </capabilities>
</hello>
]]>]]>"""


def frame_request(body: str) -> bytes:
    """Serialize the client hello followed by ``body`` as a single chunk.

    The chunk size is the UTF-8 byte length of ``body``, not its character count.
    """
    payload = body.encode("utf-8")
    return b"".join((
        GREETING.encode("utf-8"),
        b"\n#%d\n" % len(payload),
        payload,
        b"\n##\n",
    ))


def _failure_table(pattern: bytes) -> List[int]:
    table = [0] * len(pattern)
    k = 0
    for i in range(1, len(pattern)):
        while k and pattern[i] != pattern[k]:
            k = table[k - 1]
        if pattern[i] == pattern[k]:
            k += 1
        table[i] = k
    return table


class SuffixMatcher:
    """Incremental suffix matcher over a small fixed set of terminators.

    Bytes are fed one at a time; the matcher keeps, per pattern, the length of
    the longest pattern prefix that is a suffix of everything fed so far, so the
    accumulated buffer never has to be rescanned.
    """

    def __init__(self, patterns: Iterable[bytes] = TERMINATORS):
        self._patterns = tuple(patterns)
        if not self._patterns or not all(self._patterns):
            raise ValueError("SuffixMatcher needs at least one non-empty pattern")
        self._tables = [_failure_table(p) for p in self._patterns]
        self._matched = [0] * len(self._patterns)

    def reset(self) -> None:
        self._matched = [0] * len(self._patterns)

    def feed(self, byte: int) -> Optional[bytes]:
        """Advance by one byte. Returns the terminator completed by it, if any."""
        for i, pattern in enumerate(self._patterns):
            k = self._matched[i]
            table = self._tables[i]
            while k and pattern[k] != byte:
                k = table[k - 1]
            if pattern[k] == byte:
                k += 1
            if k == len(pattern):
                self.reset()
                return pattern
            self._matched[i] = k
        return None

    def scan(self, data: bytes) -> int:
        """Feed ``data`` until a terminator completes.

        Returns the offset just past the terminator, or -1 if ``data`` was
        consumed without completing one.
        """
        for offset, byte in enumerate(data):
            if self.feed(byte) is not None:
                return offset + 1
        return -1


def unframe(reply: str) -> str:
    """Strip NETCONF framing from a raw reply, leaving the XML document.

    Handles end-of-message framed text and chunked framing with one or more
    chunks. Text carrying neither is returned as is.
    """
    trimmed = reply.rstrip()
    if trimmed.endswith(END_OF_MESSAGE.decode()):
        return trimmed[:-len(END_OF_MESSAGE)]

    if not reply.lstrip().startswith("#"):
        return reply

    data = reply.encode("utf-8")
    pos = len(data) - len(data.lstrip())
    chunks = []

    while True:
        if data[pos:pos + 1] != b"#":
            raise FramingError(f"Expected chunk header at byte {pos}")
        if data[pos + 1:pos + 2] == b"#":
            break

        newline = data.find(b"\n", pos + 1)
        if newline < 0:
            raise FramingError(f"Unterminated chunk header at byte {pos}")
        header = data[pos + 1:newline]
        if not header.isdigit() or header.startswith(b"0"):
            raise FramingError(f"Invalid chunk size {header!r}")

        start = newline + 1
        end = start + int(header)
        if end > len(data):
            raise FramingError(
                f"Chunk of {int(header)} bytes truncated after {len(data) - start} bytes"
            )
        chunks.append(data[start:end])

        if data[end:end + 2] != b"\n#":
            raise FramingError(f"Missing chunk delimiter at byte {end}")
        pos = end + 1

    logger.debug(f"Unframed {len(chunks)} chunk(s)")
    return b"".join(chunks).decode("utf-8", errors="replace")
