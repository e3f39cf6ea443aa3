"""Tests for libtau.transport."""

import pytest

from libtau.transport import Transport, TransportError, TransportTimeout


class _Recording(Transport):
    """Minimal subclass that only tracks close()."""

    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class TestTransportBase:
    """Base class behaviour."""

    def test_abstract_methods(self):
        """The base class does not implement I/O."""
        transport = Transport()
        with pytest.raises(NotImplementedError):
            transport.write(b"\x00")
        with pytest.raises(NotImplementedError):
            transport.read_byte(10)

    def test_context_manager_closes(self):
        """Leaving a with block calls close()."""
        with _Recording() as transport:
            assert not transport.closed
        assert transport.closed

    def test_context_manager_closes_on_error(self):
        """close() runs even when the block raises, and the error propagates."""
        transport = _Recording()
        with pytest.raises(RuntimeError):
            with transport:
                raise RuntimeError("boom")
        assert transport.closed

    def test_timeout_and_error_are_distinct(self):
        """A timeout is not a transport error and vice versa."""
        assert not issubclass(TransportTimeout, TransportError)
        assert not issubclass(TransportError, TransportTimeout)
