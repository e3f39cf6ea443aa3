"""Serial transport for a Tau camera on an RS-232 line.

Wraps pyserial with the camera's fixed line settings: 57600 baud,
8 data bits, no parity, 1 stop bit, no hardware or software flow
control, modem-control lines ignored.  Both buffers are flushed on
open so stale bytes from a previous session never reach a reply.

Example:
    >>> from libtau.protocol import encode_request, Command
    >>> from libtau.serial_transport import SerialTransport
    >>> transport = SerialTransport("/dev/ttyUSB0")
    >>> transport.write(encode_request(Command.NO_OP))
    10
    >>> transport.close()
"""

import logging

import serial

from libtau.config import DEFAULT_BAUDRATE
from libtau.transport import Transport, TransportError, TransportTimeout

log = logging.getLogger(__name__)


class SerialTransport(Transport):
    """Tau camera link over a serial port.

    Args:
        port: Serial port device path (e.g. ``"/dev/ttyUSB0"``).
        baudrate: Baud rate (default 57600).

    Raises:
        TransportError: If the port cannot be opened.
    """

    def __init__(self, port: str, baudrate: int = DEFAULT_BAUDRATE):
        """Open and configure the serial port."""
        self._port = port
        try:
            self._ser = serial.Serial(
                port,
                baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
                timeout=0,
            )
        except serial.SerialException as exc:
            raise TransportError("unable to open {}: {}".format(port, exc)) from exc
        try:
            self._ser.reset_input_buffer()
            self._ser.reset_output_buffer()
        except Exception as exc:
            # tcflush failures surface as termios.error, not SerialException.
            self._ser.close()
            raise TransportError("unable to flush {}: {}".format(port, exc)) from exc
        log.info("opened %s at %d baud", port, baudrate)

    def write(self, data: bytes) -> int:
        """Write *data* and wait until it has left the output buffer.

        Returns:
            int: Number of bytes written.

        Raises:
            TransportError: On a serial I/O failure.
        """
        try:
            written = self._ser.write(data)
            self._ser.flush()
        except serial.SerialException as exc:
            raise TransportError("write to {} failed: {}".format(self._port, exc)) from exc
        return len(data) if written is None else written

    def read_byte(self, timeout_ms: int) -> int:
        """Read one byte, waiting at most *timeout_ms* milliseconds.

        Raises:
            TransportTimeout: If nothing arrives in time.
            TransportError: On a serial I/O failure.
        """
        try:
            self._ser.timeout = timeout_ms / 1000.0
            data = self._ser.read(1)
        except serial.SerialException as exc:
            raise TransportError("read from {} failed: {}".format(self._port, exc)) from exc
        if not data:
            raise TransportTimeout("no byte from {} within {} ms".format(self._port, timeout_ms))
        return data[0]

    def close(self) -> None:
        """Close the serial port."""
        self._ser.close()
        log.info("closed %s", self._port)
