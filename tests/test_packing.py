import pytest

from epd_pipeline.errors import SizeMismatchError
from epd_pipeline.packing import BinaryPacker, pack_nibbles, unpack_nibbles
from epd_pipeline.palette import DEFAULT_PANEL


def test_pack_pairs_high_nibble_first():
    assert pack_nibbles([1, 0, 3, 2]) == bytes([0x10, 0x32])


def test_odd_trailing_index_uses_high_nibble():
    assert pack_nibbles([6, 5, 3]) == bytes([0x65, 0x30])
    assert pack_nibbles([]) == b""


@pytest.mark.parametrize("length", [0, 1, 2, 7, 384000])
def test_packed_length_is_half_rounded_up(length):
    assert len(pack_nibbles([1] * length)) == (length + 1) // 2


def test_unpack_recovers_stream():
    stream = [0, 1, 2, 3, 5, 6, 6, 5, 3, 2, 1, 0]
    assert unpack_nibbles(pack_nibbles(stream)) == stream
    assert unpack_nibbles(pack_nibbles([2, 3, 5]), count=3) == [2, 3, 5]


def test_panel_packer_produces_full_frame():
    packed = BinaryPacker(DEFAULT_PANEL).pack(bytes([3]) * DEFAULT_PANEL.pixel_count)
    assert len(packed) == 192000
    assert set(packed) == {0x33}


@pytest.mark.parametrize("length", [0, 383999, 384001, 1000])
def test_panel_packer_rejects_wrong_length(length):
    with pytest.raises(SizeMismatchError) as excinfo:
        BinaryPacker(DEFAULT_PANEL).pack(bytes(length))
    assert excinfo.value.expected == 384000
    assert excinfo.value.actual == length
    assert excinfo.value.kind == "size_mismatch"
