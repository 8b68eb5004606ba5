"""Tests for edmtools.decoder.stream – byte stream reader."""

import pytest

from edmtools.decoder.errors import UnexpectedEof
from edmtools.decoder.stream import ByteStream

from tests.builders import with_checksum


class TestReads:
    def test_read(self):
        stream = ByteStream(bytes([0x01, 0xFF]))
        assert stream.read() == 0x01
        assert stream.read() == 0xFF
        assert stream.eof

    def test_read_word_big_endian(self):
        stream = ByteStream(bytes([0x12, 0x34]))
        assert stream.read_word() == 0x1234

    def test_read_past_end(self):
        stream = ByteStream(b"")
        with pytest.raises(UnexpectedEof):
            stream.read()

    def test_eof_is_eof_error(self):
        stream = ByteStream(b"\x01")
        stream.read()
        with pytest.raises(EOFError):
            stream.read_word()

    def test_start_and_end(self):
        stream = ByteStream(bytes(range(10)), start=2, end=4)
        assert stream.read() == 2
        assert stream.read() == 3
        with pytest.raises(UnexpectedEof):
            stream.read()


class TestCounterAndCapture:
    def test_counter_counts_reads(self):
        stream = ByteStream(bytes(4))
        stream.read()
        stream.read_word()
        assert stream.get_counter() == 3
        stream.reset_counter()
        assert stream.counter == 0

    def test_capture(self):
        stream = ByteStream(bytes([0xAB, 0x01, 0x02]))
        stream.read()
        stream.clear_current_record()
        stream.read_word()
        assert stream.get_current_record_bytes() == b"\x01\x02"
        assert stream.current_record_size == 2
        assert stream.current_record_hex() == "01 02"

    def test_peek_does_not_consume(self):
        stream = ByteStream(bytes([1, 2, 3, 4]))
        stream.read()
        assert stream.peek(3) == b"\x02\x03\x04"
        assert stream.pos == 1
        assert stream.get_counter() == 1
        assert stream.get_current_record_bytes() == b"\x01"

    def test_peek_past_end(self):
        stream = ByteStream(bytes([1, 2]))
        with pytest.raises(UnexpectedEof):
            stream.peek(3)
        assert stream.pos == 0

    def test_skip_counts_but_does_not_capture(self):
        stream = ByteStream(bytes([1, 2, 3, 4]))
        stream.skip(2)
        assert stream.get_counter() == 2
        assert stream.get_current_record_bytes() == b""
        assert stream.read() == 3

    def test_skip_past_end(self):
        stream = ByteStream(bytes(2))
        with pytest.raises(UnexpectedEof):
            stream.skip(3)

    def test_skip_to_end(self):
        stream = ByteStream(bytes(10))
        stream.read()
        assert stream.skip_to_end() == 9
        assert stream.eof

    def test_mark_reset(self):
        stream = ByteStream(bytes([1, 2, 3]))
        stream.mark()
        stream.read()
        stream.read()
        stream.reset()
        assert stream.read() == 1


class TestChecksumEpilogue:
    def test_valid_checksum(self):
        stream = ByteStream(with_checksum(bytes([0x10, 0x20, 0x30])))
        for _ in range(3):
            stream.read()
        assert stream.checksum_epilogue() is None
        assert stream.current_record_size == 4

    def test_mismatch(self):
        stream = ByteStream(bytes([0x01, 0x02, 0x00]))
        stream.read()
        stream.read()
        warning = stream.checksum_epilogue()
        assert warning == "Checksum mismatch actual 00 vs expected FD: 01 02 00"

    def test_checksum_only_covers_current_record(self):
        stream = ByteStream(bytes([0x55]) + with_checksum(bytes([0x01])))
        stream.read()
        stream.clear_current_record()
        stream.read()
        assert stream.checksum_epilogue() is None
