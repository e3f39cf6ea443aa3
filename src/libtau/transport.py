"""Byte-stream transport contract used by the transaction engine.

The engine only needs three things from a link to the camera: write a
whole frame, read one byte with a deadline, and close.  Serial and TCP
implementations live in their own modules; tests substitute any object
with the same methods.

Example:
    >>> from libtau.protocol import encode_request, Command
    >>> from libtau.serial_transport import SerialTransport
    >>> with SerialTransport("/dev/ttyUSB0") as transport:
    ...     written = transport.write(encode_request(Command.NO_OP))
    ...     first = transport.read_byte(1000)
"""


class TransportError(Exception):
    """The underlying link failed (I/O error, closed port, reset)."""


class TransportTimeout(Exception):
    """No byte arrived before the read deadline."""


class Transport:
    """Base class for camera links.

    Subclasses implement :meth:`write`, :meth:`read_byte` and
    :meth:`close`.  Duck typing is enough for the engine; inheriting
    from this class only adds context-manager support.
    """

    def write(self, data: bytes) -> int:
        """Send *data* and return the number of bytes written.

        Blocks until everything is sent; a count short of ``len(data)``
        means the link failed part way.

        Raises:
            TransportError: If nothing could be written.
        """
        raise NotImplementedError

    def read_byte(self, timeout_ms: int) -> int:
        """Return the next received byte, waiting up to *timeout_ms*.

        Raises:
            TransportTimeout: If no byte arrives in time.
            TransportError: If the link fails.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release the underlying resource."""
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
