"""Synchronous command transactions with a Tau camera.

One transaction writes a request frame, reads the 8-byte reply header
one byte at a time under a per-byte deadline, reads the payload and
frame CRC it announces, and validates the result.  Nothing is kept
between transactions, and nothing here retries: every failure comes
back to the caller as a status.

There is no request id on the wire.  A reply is matched to its request
only by the echoed function code, so the link must be quiet before a
send; :func:`verify_communication` drains it first.  After any failed
transaction the link state is unknown and the next one should start
with a flush.

Example:
    >>> from libtau.camera import TauCamera
    >>> from libtau.serial_transport import SerialTransport
    >>> from libtau.protocol import Command
    >>> cam = TauCamera(SerialTransport("/dev/ttyUSB0"))
    >>> cam.verify().status
    <Status.OK: 0>
    >>> cam.do_cmd(Command.GET_REVISION, out_size=64).payload.hex(' ')
    '0a 00 02 2b 08 00 00 40'
    >>> cam.close()
"""

import logging
import time
from dataclasses import dataclass

from libtau.config import FLUSH_TIMEOUT_MS, NORMAL_TIMEOUT_MS
from libtau.protocol import (
    CRC_LEN,
    HEADER_LEN,
    Command,
    Status,
    decode_response,
    encode_request,
    extract_payload,
    payload_length,
)
from libtau.serial_transport import SerialTransport
from libtau.tcp_transport import TcpTransport
from libtau.transport import TransportError, TransportTimeout

log = logging.getLogger(__name__)


@dataclass
class Result:
    """Outcome of one command transaction.

    ``payload`` is always empty unless ``status`` is OK.
    """

    status: Status | int
    payload: bytes = b""

    @property
    def ok(self) -> bool:
        return self.status == Status.OK

    @property
    def length(self) -> int:
        return len(self.payload)


def send_frame(transport, frame: bytes) -> Status:
    """Write *frame* to *transport* in one send.

    Returns:
        Status: OK, or COMMUNICATION_ERROR on a failed or short write.
    """
    try:
        written = transport.write(frame)
    except TransportError as exc:
        log.debug("unable to send request: %s", exc)
        return Status.COMMUNICATION_ERROR
    if written != len(frame):
        log.debug(
            "unable to write all the bytes of the request: %d/%d",
            written, len(frame),
        )
        return Status.COMMUNICATION_ERROR
    return Status.OK


def _read_into(
    transport, buf: bytearray, count: int, timeout_ms: int, deadline: float | None
) -> None:
    """Append *count* bytes to *buf*, each waited for up to *timeout_ms*.

    *deadline* is a ``time.monotonic()`` value that caps every wait.
    Bytes read before a failure stay in *buf*.
    """
    for _ in range(count):
        wait_ms = timeout_ms
        if deadline is not None:
            remaining_ms = int((deadline - time.monotonic()) * 1000)
            if remaining_ms <= 0:
                raise TransportTimeout("transaction deadline passed")
            wait_ms = min(wait_ms, remaining_ms)
        buf.append(transport.read_byte(wait_ms))


def receive_frame(
    transport,
    max_payload: int,
    timeout_ms: int = NORMAL_TIMEOUT_MS,
    deadline_ms: int | None = None,
) -> tuple[Status, bytes]:
    """Read one complete frame, header first, then payload and CRC.

    Args:
        transport: Object with ``read_byte(timeout_ms)``.
        max_payload: Largest payload the caller can accept.
        timeout_ms: Deadline for each individual byte.
        deadline_ms: Optional limit on the whole read, from the first
            header byte to the last CRC byte.

    Returns:
        tuple: ``(status, frame_bytes)``.  Status is OK with the full
            frame, or TIMEOUT, COMMUNICATION_ERROR or BYTE_COUNT_ERROR
            with whatever was read so far.
    """
    buf = bytearray()
    deadline = None
    if deadline_ms is not None:
        deadline = time.monotonic() + deadline_ms / 1000.0

    try:
        _read_into(transport, buf, HEADER_LEN, timeout_ms, deadline)
    except TransportTimeout:
        log.debug(
            "timeout waiting for response header: %d/%d bytes: %s",
            len(buf), HEADER_LEN, buf.hex(" "),
        )
        return Status.TIMEOUT, bytes(buf)
    except TransportError as exc:
        log.debug("unable to receive response header: %s", exc)
        return Status.COMMUNICATION_ERROR, bytes(buf)

    n = payload_length(buf)
    if n > max_payload:
        log.debug(
            "response announces %d payload bytes, room for only %d",
            n, max_payload,
        )
        return Status.BYTE_COUNT_ERROR, bytes(buf)

    try:
        _read_into(transport, buf, n + CRC_LEN, timeout_ms, deadline)
    except TransportTimeout:
        log.debug(
            "timeout waiting for response data: %d/%d bytes",
            len(buf) - HEADER_LEN, n + CRC_LEN,
        )
        return Status.TIMEOUT, bytes(buf)
    except TransportError as exc:
        log.debug("unable to receive response data: %s", exc)
        return Status.COMMUNICATION_ERROR, bytes(buf)

    return Status.OK, bytes(buf)


def flush_received(transport, timeout_ms: int = FLUSH_TIMEOUT_MS) -> int:
    """Discard stale input until the link stays quiet for *timeout_ms*.

    A transport error also ends the drain; it is logged, not raised.

    Returns:
        int: Number of bytes discarded.
    """
    count = 0
    while True:
        try:
            transport.read_byte(timeout_ms)
        except TransportTimeout:
            break
        except TransportError as exc:
            log.warning("unexpected problem discarding data from camera: %s", exc)
            break
        count += 1
    if count:
        log.debug("discarded %d stale bytes", count)
    return count


def do_cmd(
    transport,
    cmd: int,
    payload: bytes = b"",
    out_size: int = 0,
    timeout_ms: int = NORMAL_TIMEOUT_MS,
    deadline_ms: int | None = None,
) -> Result:
    """Send one command and wait for its response.

    Args:
        transport: The camera link, borrowed for this call only.
        cmd: Function code (Command member or any int 0-255).
        payload: Request payload (may be empty).
        out_size: Largest response payload the caller accepts.  A reply
            announcing more fails with BYTE_COUNT_ERROR.
        timeout_ms: Per-byte read deadline.
        deadline_ms: Optional limit on reading the whole response.

    Returns:
        Result: The status and, when OK, the response payload.

    Raises:
        ValueError: If *cmd* or *payload* cannot be encoded, or
            *out_size* is negative.

    Example:
        >>> do_cmd(transport, Command.NO_OP)
        Result(status=<Status.OK: 0>, payload=b'')
    """
    if out_size < 0:
        raise ValueError("out_size must not be negative, got {}".format(out_size))

    request = encode_request(cmd, payload)
    log.debug("sending request to camera: %s", request.hex(" "))

    status = send_frame(transport, request)
    if status != Status.OK:
        return Result(status)

    status, raw = receive_frame(transport, out_size, timeout_ms, deadline_ms)
    if status != Status.OK:
        return Result(status)

    log.debug("received response from camera: %s", raw.hex(" "))

    frame = decode_response(raw, cmd)
    if not frame.ok:
        log.warning("command 0x%02X failed: %r", cmd, frame.status)
        return Result(frame.status)

    return Result(Status.OK, extract_payload(frame, out_size))


def verify_communication(
    transport,
    timeout_ms: int = NORMAL_TIMEOUT_MS,
    flush_timeout_ms: int = FLUSH_TIMEOUT_MS,
) -> Result:
    """Drain stale input, then check the camera answers a NO_OP."""
    flush_received(transport, flush_timeout_ms)
    return do_cmd(transport, Command.NO_OP, timeout_ms=timeout_ms)


class TauCamera:
    """A Tau camera reached through one transport.

    Owns the transport and closes it on :meth:`close` or at the end of
    a ``with`` block.  Transactions are strictly one at a time; the
    class adds no locking.

    Args:
        transport: Object with ``write``, ``read_byte`` and ``close``.
        timeout_ms: Per-byte deadline for normal traffic.
        flush_timeout_ms: Per-byte deadline while draining stale input.
        deadline_ms: Optional limit on reading each whole response.
    """

    def __init__(
        self,
        transport,
        timeout_ms: int = NORMAL_TIMEOUT_MS,
        flush_timeout_ms: int = FLUSH_TIMEOUT_MS,
        deadline_ms: int | None = None,
    ):
        self._transport = transport
        self.timeout_ms = timeout_ms
        self.flush_timeout_ms = flush_timeout_ms
        self.deadline_ms = deadline_ms

    @property
    def transport(self):
        return self._transport

    def do_cmd(
        self,
        cmd: int,
        payload: bytes = b"",
        out_size: int = 0,
        deadline_ms: int | None = None,
    ) -> Result:
        """Run one command transaction.  See :func:`do_cmd`.

        *deadline_ms* overrides the camera's own ``deadline_ms`` for this call.
        """
        if deadline_ms is None:
            deadline_ms = self.deadline_ms
        return do_cmd(
            self._transport, cmd, payload, out_size, self.timeout_ms, deadline_ms
        )

    def flush(self) -> int:
        """Discard stale input.  See :func:`flush_received`."""
        return flush_received(self._transport, self.flush_timeout_ms)

    def verify(self) -> Result:
        """Flush, then send NO_OP.  See :func:`verify_communication`."""
        return verify_communication(
            self._transport, self.timeout_ms, self.flush_timeout_ms
        )

    def close(self) -> None:
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def open_camera(cfg: dict) -> TauCamera:
    """Open the transport described by *cfg* and wrap it in a TauCamera.

    *cfg* is a dict as returned by :func:`libtau.config.load_config`.

    Raises:
        TransportError: If the port or connection cannot be opened.
        ValueError: If the transport name is unknown.
    """
    if cfg["transport"] == "serial":
        transport = SerialTransport(cfg["port"], cfg["baudrate"])
    elif cfg["transport"] == "tcp":
        transport = TcpTransport(cfg["host"], cfg["port"])
    else:
        raise ValueError("unknown transport '{}'".format(cfg["transport"]))
    return TauCamera(
        transport,
        timeout_ms=cfg.get("timeout_ms", NORMAL_TIMEOUT_MS),
        flush_timeout_ms=cfg.get("flush_timeout_ms", FLUSH_TIMEOUT_MS),
        deadline_ms=cfg.get("deadline_ms"),
    )
