"""Frame encoding and decoding for the Tau 320 serial protocol.

Every frame, in both directions, has the layout::

    PROCESS(0x6E) STATUS RESERVED(0x00) FUNCTION LEN_HI LEN_LO
    HCRC_HI HCRC_LO [PAYLOAD...] FCRC_HI FCRC_LO

The header CRC covers the first six bytes; the frame CRC covers every
byte before it (header, header CRC and payload).  All multi-byte fields
are big-endian.

Example:
    >>> from libtau.protocol import encode_request, decode_response, Command
    >>> raw = encode_request(Command.FFC_MODE_SELECT)
    >>> raw.hex(' ')
    '6e 00 00 0b 00 00 2f 4a 00 00'
    >>> decode_response(raw, Command.FFC_MODE_SELECT).status
    <Status.OK: 0>
"""

import enum
import logging
import struct
from dataclasses import dataclass

from libtau.crc import crc16_ccitt

log = logging.getLogger(__name__)

# -- Protocol constants ------------------------------------------------------

PROCESS_CODE = 0x6E
RESERVED = 0x00
HEADER_LEN = 8
CRC_LEN = 2
FRAME_OVERHEAD = HEADER_LEN + CRC_LEN
MAX_PAYLOAD_LEN = 0xFFFF

# Offsets into the header.
_OFF_STATUS = 1
_OFF_FUNCTION = 3
_OFF_LENGTH = 4
_OFF_HEADER_CRC = 6


class Status(enum.IntEnum):
    """Status byte carried in every frame.

    0-9 are defined by the camera firmware, 10-99 are left to FLIR for
    future use, and 100 and above are produced on the host side.
    """

    OK = 0
    BUSY = 1
    NOT_READY = 2
    RANGE_ERROR = 3
    CHECKSUM_ERROR = 4
    UNDEFINED_PROCESS = 5
    UNDEFINED_FUNCTION = 6
    TIMEOUT = 7
    BYTE_COUNT_ERROR = 8
    FEATURE_NOT_ENABLED = 9
    COMMUNICATION_ERROR = 100


class Command(enum.IntEnum):
    """Function codes the library knows by name.

    Any other byte value is still a valid command; it is sent and
    matched as a plain int.
    """

    NO_OP = 0x00
    SET_DEFAULTS = 0x01
    CAMERA_RESET = 0x02
    GET_REVISION = 0x05
    FFC_MODE_SELECT = 0x0B


def to_status(value: int) -> Status | int:
    """Map a raw status byte to a Status, or return it unchanged.

    Firmware may report codes this library does not know about; those
    are passed through as plain ints so callers still see them.

    Example:
        >>> to_status(1)
        <Status.BUSY: 1>
        >>> to_status(42)
        42
    """
    try:
        return Status(value)
    except ValueError:
        return value


@dataclass
class Frame:
    """Decoded protocol frame.

    ``cmd`` is None when the buffer was too short to carry a function
    code.  ``payload`` is empty unless ``status`` is OK.
    """

    status: Status | int
    cmd: int | None
    payload: bytes

    @property
    def ok(self) -> bool:
        return self.status == Status.OK

    def __repr__(self) -> str:
        cmd = "None" if self.cmd is None else "0x{:02X}".format(self.cmd)
        return "Frame(status={!r}, cmd={}, payload={})".format(
            self.status, cmd, self.payload.hex(" ") if self.payload else "(empty)"
        )


# -- Encoding ----------------------------------------------------------------


def encode_frame(cmd: int, payload: bytes = b"", status: int = Status.OK) -> bytes:
    """Build a complete protocol frame.

    Constructs PROCESS + STATUS + RESERVED + FUNCTION + LEN + HCRC,
    appends the payload, then the frame CRC over everything before it.
    With no payload the frame CRC covers the eight header bytes, which
    for this CRC always comes out as 0x0000.

    Args:
        cmd: Function code (int, 0-255).
        payload: Payload bytes (may be empty or None).
        status: Status byte; requests always carry OK.

    Returns:
        bytes: The encoded frame, ``10 + len(payload)`` bytes long.

    Raises:
        ValueError: If cmd or status is not a byte, or the payload is
            longer than 65535 bytes.
    """
    if payload is None:
        payload = b""
    if not (0 <= cmd <= 0xFF):
        raise ValueError("cmd must be in range 0-255, got {}".format(cmd))
    if not (0 <= status <= 0xFF):
        raise ValueError("status must be in range 0-255, got {}".format(status))
    if len(payload) > MAX_PAYLOAD_LEN:
        raise ValueError(
            "payload too long: {} bytes, maximum is {}".format(
                len(payload), MAX_PAYLOAD_LEN
            )
        )

    header = struct.pack(
        ">BBBBH", PROCESS_CODE, status, RESERVED, cmd, len(payload)
    )
    header += struct.pack(">H", crc16_ccitt(header))
    body = header + bytes(payload)
    return body + struct.pack(">H", crc16_ccitt(body))


def encode_request(cmd: int, payload: bytes = b"") -> bytes:
    """Build a host-to-camera request frame (status OK).

    Example:
        >>> encode_request(Command.GET_REVISION).hex(' ')
        '6e 00 00 05 00 00 34 4b 00 00'
    """
    return encode_frame(cmd, payload, Status.OK)


# -- Decoding ----------------------------------------------------------------


def payload_length(header: bytes) -> int:
    """Return the payload length N declared in a frame header."""
    return struct.unpack_from(">H", header, _OFF_LENGTH)[0]


def _check_crcs(data: bytes) -> Status | None:
    """Validate header CRC, truncation and frame CRC, in that order.

    Returns None when the frame is intact, otherwise the failing status.
    """
    header_crc = struct.unpack_from(">H", data, _OFF_HEADER_CRC)[0]
    computed = crc16_ccitt(data[:_OFF_HEADER_CRC])
    if header_crc != computed:
        log.debug(
            "header CRC mismatch: received 0x%04X, computed 0x%04X",
            header_crc, computed,
        )
        return Status.CHECKSUM_ERROR

    n = payload_length(data)
    if len(data) < FRAME_OVERHEAD + n:
        log.debug(
            "truncated frame: LEN field says %d payload bytes, frame is %d bytes",
            n, len(data),
        )
        return Status.COMMUNICATION_ERROR

    frame_crc = struct.unpack_from(">H", data, HEADER_LEN + n)[0]
    computed = crc16_ccitt(data[: HEADER_LEN + n])
    if frame_crc != computed:
        log.debug(
            "frame CRC mismatch: received 0x%04X, computed 0x%04X",
            frame_crc, computed,
        )
        return Status.CHECKSUM_ERROR

    return None


def decode_response(data: bytes, cmd_expected: int) -> Frame:
    """Validate a camera response and return its typed view.

    Checks run in a fixed order and the first failure wins:

    1. fewer than 10 bytes -> COMMUNICATION_ERROR
    2. wrong process code -> COMMUNICATION_ERROR
    3. status byte not OK -> that status, nothing else is checked
    4. function code differs from *cmd_expected* -> COMMUNICATION_ERROR
    5. header CRC mismatch -> CHECKSUM_ERROR
    6. frame CRC mismatch -> CHECKSUM_ERROR

    Args:
        data: The complete frame as read from the transport.
        cmd_expected: Function code of the request this answers.

    Returns:
        Frame: ``status`` holds the outcome; ``payload`` is only filled
            in when the status is OK.

    Example:
        >>> raw = bytes.fromhex('6e 00 00 05 00 00 34 4b 00 00')
        >>> decode_response(raw, 0x0B).status
        <Status.COMMUNICATION_ERROR: 100>
    """
    data = bytes(data)

    if len(data) < FRAME_OVERHEAD:
        log.debug(
            "frame too short: %d bytes, minimum is %d", len(data), FRAME_OVERHEAD
        )
        cmd = data[_OFF_FUNCTION] if len(data) > _OFF_FUNCTION else None
        return Frame(Status.COMMUNICATION_ERROR, cmd, b"")

    cmd = data[_OFF_FUNCTION]

    if data[0] != PROCESS_CODE:
        log.debug(
            "bad process code: expected 0x%02X, got 0x%02X", PROCESS_CODE, data[0]
        )
        return Frame(Status.COMMUNICATION_ERROR, cmd, b"")

    status = data[_OFF_STATUS]
    if status != Status.OK:
        return Frame(to_status(status), cmd, b"")

    if cmd != cmd_expected:
        log.debug(
            "function code mismatch: expected 0x%02X, got 0x%02X",
            cmd_expected, cmd,
        )
        return Frame(Status.COMMUNICATION_ERROR, cmd, b"")

    failure = _check_crcs(data)
    if failure is not None:
        return Frame(failure, cmd, b"")

    n = payload_length(data)
    return Frame(Status.OK, cmd, data[HEADER_LEN : HEADER_LEN + n])


def decode_request(data: bytes) -> Frame:
    """Validate a host request, as the camera would.

    Used by the camera simulator.  No function code is expected, so
    the echo check is skipped, and the status byte of a request is
    ignored.  An intact frame decodes as OK; a short frame or one with
    a bad process code as UNDEFINED_PROCESS.
    """
    data = bytes(data)

    if len(data) < FRAME_OVERHEAD or data[0] != PROCESS_CODE:
        cmd = data[_OFF_FUNCTION] if len(data) > _OFF_FUNCTION else None
        return Frame(Status.UNDEFINED_PROCESS, cmd, b"")

    cmd = data[_OFF_FUNCTION]
    failure = _check_crcs(data)
    if failure is not None:
        return Frame(failure, cmd, b"")

    n = payload_length(data)
    return Frame(Status.OK, cmd, data[HEADER_LEN : HEADER_LEN + n])


def extract_payload(frame: Frame, capacity: int) -> bytes:
    """Return the payload of *frame* if it fits in *capacity* bytes.

    A payload larger than the caller can hold is dropped whole, never
    truncated, and a warning is logged.

    Example:
        >>> extract_payload(Frame(Status.OK, 5, b"\\x01\\x02"), 1)
        b''
    """
    n = len(frame.payload)
    if n == 0:
        return b""
    if capacity < n:
        log.warning(
            "response ignored: %d payload bytes for cmd 0x%02X, "
            "room for only %d",
            n, frame.cmd, capacity,
        )
        return b""
    return frame.payload
