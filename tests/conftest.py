"""Shared pytest fixtures for libtau tests."""

from libtau.protocol import Status, encode_frame
from libtau.transport import Transport, TransportError, TransportTimeout

# Markers that can be placed in a FakeTransport script.
STALL = "stall"
FAIL = "fail"


def make_response(cmd: int, payload: bytes = b"", status: int = Status.OK) -> bytes:
    """Build a valid camera response frame for testing."""
    return encode_frame(cmd, payload, status)


class FakeTransport(Transport):
    """Test double for a camera link: scripted input, records output.

    *script* is a sequence of items consumed by :meth:`read_byte`:
    ints and bytes objects are delivered byte by byte, ``STALL`` raises
    TransportTimeout once and ``FAIL`` raises TransportError once.
    When the script runs out every read times out.
    """

    def __init__(self, script=(), write_limit: int | None = None):
        """Initialize with a read script and an optional write cap."""
        self._queue = []
        for item in script:
            if isinstance(item, (bytes, bytearray)):
                self._queue.extend(item)
            else:
                self._queue.append(item)
        self._write_limit = write_limit
        self.sent = []
        self.read_timeouts = []
        self.closed = False

    def feed(self, data: bytes) -> None:
        """Queue more inbound bytes."""
        self._queue.extend(data)

    def write(self, data: bytes) -> int:
        """Record *data*; honour the write cap if one was given."""
        self.sent.append(bytes(data))
        if self._write_limit is not None:
            return min(len(data), self._write_limit)
        return len(data)

    def read_byte(self, timeout_ms: int) -> int:
        """Return the next scripted byte or raise the scripted error."""
        self.read_timeouts.append(timeout_ms)
        if not self._queue:
            raise TransportTimeout("script exhausted")
        item = self._queue.pop(0)
        if item == STALL:
            raise TransportTimeout("scripted stall")
        if item == FAIL:
            raise TransportError("scripted failure")
        return item

    @property
    def pending(self) -> int:
        """Number of scripted items not yet consumed."""
        return len(self._queue)

    def close(self) -> None:
        """Mark the transport closed."""
        self.closed = True


class FailingWriteTransport(FakeTransport):
    """FakeTransport whose write always raises TransportError."""

    def write(self, data: bytes) -> int:
        """Record *data*, then fail."""
        self.sent.append(bytes(data))
        raise TransportError("scripted write failure")
