"""Tests for libtau.crc."""

import binascii
import random

from libtau.crc import CRC_CCITT_TABLE, crc16_ccitt, update_crc


class TestCrcTable:
    """Lookup table construction."""

    def test_table_has_256_entries(self):
        """One entry per byte value."""
        assert len(CRC_CCITT_TABLE) == 256

    def test_known_entries(self):
        """Spot-check entries of the standard 0x1021 table."""
        assert CRC_CCITT_TABLE[0] == 0x0000
        assert CRC_CCITT_TABLE[1] == 0x1021
        assert CRC_CCITT_TABLE[2] == 0x2042
        assert CRC_CCITT_TABLE[255] == 0x1EF0

    def test_table_is_immutable(self):
        """The table is a tuple, not a list."""
        assert isinstance(CRC_CCITT_TABLE, tuple)


class TestCrc16Ccitt:
    """CRC-16/CCITT (zero start) computation tests."""

    def test_empty_input(self):
        """CRC of empty data is the zero starting value."""
        assert crc16_ccitt(b"") == 0x0000

    def test_check_value(self):
        """Standard check string '123456789' gives 0x31C3 (XMODEM)."""
        assert crc16_ccitt(b"123456789") == 0x31C3

    def test_ffc_mode_select_header(self):
        """Header of the FFC_MODE_SELECT sample packet gives 0x2F4A."""
        assert crc16_ccitt(bytes.fromhex("6e 00 00 0b 00 00")) == 0x2F4A

    def test_get_revision_header(self):
        """Header of the captured GET_REVISION request gives 0x344B."""
        assert crc16_ccitt(bytes.fromhex("6e 00 00 05 00 00")) == 0x344B

    def test_get_revision_reply_header(self):
        """Header of the GET_REVISION reply with 8 bytes gives 0xB543."""
        assert crc16_ccitt(bytes.fromhex("6e 00 00 05 00 08")) == 0xB543

    def test_data_followed_by_its_crc_is_zero(self):
        """Appending the big-endian CRC to the data yields a zero CRC."""
        data = bytes.fromhex("6e 00 00 0b 00 00")
        crc = crc16_ccitt(data)
        assert crc16_ccitt(data + crc.to_bytes(2, "big")) == 0

    def test_matches_binascii_crc_hqx(self):
        """Agrees with the stdlib CRC-CCITT for random inputs."""
        rng = random.Random(1021)
        for _ in range(50):
            data = bytes(rng.randrange(256) for _ in range(rng.randrange(64)))
            assert crc16_ccitt(data) == binascii.crc_hqx(data, 0)

    def test_does_not_mutate_input(self):
        """The input buffer is left unchanged."""
        data = bytearray(b"\x6e\x00\x00\x05")
        crc16_ccitt(data)
        assert data == bytearray(b"\x6e\x00\x00\x05")


class TestUpdateCrc:
    """Incremental use of the CRC engine."""

    def test_incremental_equals_whole(self):
        """Byte-by-byte updates give the same result as one call."""
        data = bytes.fromhex("6e 00 00 05 00 08 b5 43 0a 00 02 2b 08 00 00 40")
        crc = 0
        for byte in data:
            crc = update_crc(crc, byte)
        assert crc == crc16_ccitt(data)

    def test_chunked_equals_whole(self):
        """Continuing from a previous CRC matches a single pass."""
        data = b"thermal imaging core"
        head = crc16_ccitt(data[:7])
        assert crc16_ccitt(data[7:], head) == crc16_ccitt(data)

    def test_result_is_16_bit(self):
        """Every update stays within 16 bits."""
        crc = 0xFFFF
        for byte in range(256):
            crc = update_crc(crc, byte)
            assert 0 <= crc <= 0xFFFF
