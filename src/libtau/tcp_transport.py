"""TCP transport for a Tau camera behind a serial-to-network bridge.

The byte stream is the same as on the serial line: frames are sent
unchanged and replies are read back one byte at a time.  Typical use
is a telnet/ser2net style bridge exposing the camera's port as
``host:port``.

Example:
    >>> from libtau.protocol import encode_request, Command
    >>> from libtau.tcp_transport import TcpTransport
    >>> with TcpTransport("sdk.example.net", 5471) as transport:
    ...     transport.write(encode_request(Command.NO_OP))
    10
"""

import logging
import socket

from libtau.transport import Transport, TransportError, TransportTimeout

log = logging.getLogger(__name__)


class TcpTransport(Transport):
    """Tau camera link over a TCP connection.

    Args:
        host: Bridge host name or address.
        port: Bridge TCP port.
        connect_timeout: Seconds to wait for the connection (default 5).

    Raises:
        TransportError: If the connection cannot be established.
    """

    def __init__(self, host: str, port: int, connect_timeout: float = 5.0):
        """Connect to the bridge."""
        self._peer = "{}:{}".format(host, port)
        try:
            self._sock = socket.create_connection((host, port), timeout=connect_timeout)
        except OSError as exc:
            raise TransportError("unable to connect to {}: {}".format(self._peer, exc)) from exc
        self._sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        log.info("connected to %s", self._peer)

    def write(self, data: bytes) -> int:
        """Send all of *data*.

        Raises:
            TransportError: If the connection fails.
        """
        try:
            self._sock.sendall(data)
        except OSError as exc:
            raise TransportError("send to {} failed: {}".format(self._peer, exc)) from exc
        return len(data)

    def read_byte(self, timeout_ms: int) -> int:
        """Receive one byte, waiting at most *timeout_ms* milliseconds.

        Raises:
            TransportTimeout: If nothing arrives in time.
            TransportError: If the peer closed the connection or it failed.
        """
        try:
            self._sock.settimeout(timeout_ms / 1000.0)
            data = self._sock.recv(1)
        except (socket.timeout, BlockingIOError) as exc:
            # A zero timeout puts the socket in non-blocking mode.
            raise TransportTimeout(
                "no byte from {} within {} ms".format(self._peer, timeout_ms)
            ) from exc
        except OSError as exc:
            raise TransportError("recv from {} failed: {}".format(self._peer, exc)) from exc
        if not data:
            raise TransportError("connection closed by {}".format(self._peer))
        return data[0]

    def close(self) -> None:
        """Close the connection."""
        try:
            self._sock.close()
        except OSError:
            pass
        log.info("disconnected from %s", self._peer)
