#!/usr/bin/env python3
"""Virtual Tau camera for bench testing.

Listens on a serial port (typically a socat PTY) and answers request
frames the way the camera does.  NO_OP, GET_REVISION and
FFC_MODE_SELECT are implemented; any other function code gets
UNDEFINED_FUNCTION, and a corrupted request gets the matching error
status with an empty payload.

Usage:
    python simulator.py <port>

Args:
    port: Serial port path (e.g. /tmp/tau-camera).

Example:
    python simulator.py /tmp/tau-camera
"""

import sys

from libtau.camera import receive_frame
from libtau.protocol import (
    MAX_PAYLOAD_LEN,
    Command,
    Status,
    decode_request,
    encode_frame,
)
from libtau.serial_transport import SerialTransport

# Captured from a real camera in reply to GET_REVISION.
REVISION = bytes.fromhex("0a 00 02 2b 08 00 00 40")

FFC_MODES = (0, 1, 2)


class CameraState:
    """Settings the simulated camera remembers between requests."""

    def __init__(self):
        """Start in automatic FFC mode."""
        self.ffc_mode = 1

    def handle(self, cmd, payload):
        """Answer one valid request.

        Args:
            cmd: Function code (int).
            payload: Request payload (bytes).

        Returns:
            tuple: ``(status, reply_payload)``.
        """
        if cmd == Command.NO_OP:
            return Status.OK, b""

        if cmd == Command.GET_REVISION:
            return Status.OK, REVISION

        if cmd == Command.FFC_MODE_SELECT:
            if len(payload) == 0:
                return Status.OK, self.ffc_mode.to_bytes(2, "big")
            if len(payload) != 2:
                return Status.BYTE_COUNT_ERROR, b""
            mode = int.from_bytes(payload, "big")
            if mode not in FFC_MODES:
                return Status.RANGE_ERROR, b""
            self.ffc_mode = mode
            return Status.OK, payload

        return Status.UNDEFINED_FUNCTION, b""


def run(port):
    """Run the simulator loop.

    Opens *port*, reads incoming request frames, and writes a
    response for each one.

    Args:
        port: Serial port device path.
    """
    transport = SerialTransport(port)
    state = CameraState()

    print("simulator: listening on {}".format(port), flush=True)

    try:
        while True:
            status, raw = receive_frame(transport, MAX_PAYLOAD_LEN)
            if status != Status.OK:
                continue

            request = decode_request(raw)
            if request.ok:
                status, payload = state.handle(request.cmd, request.payload)
            else:
                status, payload = request.status, b""

            transport.write(encode_frame(request.cmd, payload, status))
    except KeyboardInterrupt:
        pass
    finally:
        transport.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: simulator.py <port>", file=sys.stderr)
        sys.exit(1)
    run(sys.argv[1])
