"""CRC-16/CCITT for the Tau serial protocol.

Polynomial 0x1021, starting register 0x0000, MSB-first, no reflection
and no final XOR (the "XMODEM" flavour).  The camera uses this for both
the header CRC and the frame CRC.

Example:
    >>> from libtau.crc import crc16_ccitt
    >>> hex(crc16_ccitt(bytes.fromhex("6e 00 00 0b 00 00")))
    '0x2f4a'
"""

CCITT_POLY = 0x1021
CCITT_INIT = 0x0000


def _build_table() -> tuple[int, ...]:
    """Return the 256-entry lookup table for CCITT_POLY."""
    table = []
    for i in range(256):
        crc = i << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ CCITT_POLY) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
        table.append(crc)
    return tuple(table)


# Built once at import; a tuple so nothing can modify it afterwards.
CRC_CCITT_TABLE = _build_table()


def update_crc(crc: int, byte: int) -> int:
    """Feed one byte into a running CRC and return the new value.

    Example:
        >>> crc = 0
        >>> for b in b"\\x6e\\x00":
        ...     crc = update_crc(crc, b)
    """
    return ((crc << 8) & 0xFFFF) ^ CRC_CCITT_TABLE[((crc >> 8) ^ byte) & 0xFF]


def crc16_ccitt(data: bytes, crc: int = CCITT_INIT) -> int:
    """Compute CRC-16/CCITT over a byte sequence.

    Table-driven.  *crc* lets callers continue a checksum started over
    an earlier chunk; leave it at the default for a fresh computation.
    The input is only read, never modified.

    Args:
        data: Bytes-like object to compute the CRC over.
        crc: Starting register value (default 0x0000).

    Returns:
        int: 16-bit CRC value.

    Example:
        >>> crc16_ccitt(b"")
        0
    """
    for byte in data:
        crc = update_crc(crc, byte)
    return crc
