#!/usr/bin/env python3
"""Quick smoke test for the simulator.

Connects to the host-side PTY, verifies communication with a NO_OP,
then asks for the firmware revision.  Exits 0 on success, 1 on
failure.

Usage:
    python check_simulator.py <host_pty>

Args:
    host_pty: Path to the host-side PTY (e.g. /tmp/tau-host).

Example:
    python check_simulator.py /tmp/tau-host
"""

import sys

from libtau.camera import TauCamera
from libtau.protocol import Command
from libtau.serial_transport import SerialTransport

EXPECTED_REVISION = bytes.fromhex("0a 00 02 2b 08 00 00 40")


def main(host_pty):
    """Verify, then read the revision.

    Args:
        host_pty: Path to the host-side PTY.

    Returns:
        int: 0 on success, 1 on failure.
    """
    with TauCamera(SerialTransport(host_pty)) as cam:
        result = cam.verify()
        if not result.ok:
            print("FAIL: no-op: {!r}".format(result.status))
            return 1

        result = cam.do_cmd(Command.GET_REVISION, out_size=64)
        if not result.ok:
            print("FAIL: get revision: {!r}".format(result.status))
            return 1

        if result.payload != EXPECTED_REVISION:
            print("FAIL: wrong revision: {}".format(result.payload.hex(" ")))
            return 1

    print("OK: revision={}".format(result.payload.hex(" ")))
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: check_simulator.py <host_pty>", file=sys.stderr)
        sys.exit(1)
    sys.exit(main(sys.argv[1]))
