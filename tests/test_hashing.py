"""Tests for deterministic hashing."""

import pytest

from dailypick.hashing import MASK32, hash01, hash32


class TestHash32:
    """Test the 32-bit mixing hash."""

    def test_empty_string_is_zero(self):
        assert hash32("") == 0

    @pytest.mark.parametrize("text,expected", [
        ("a", 2456313694),
        ("abcd", 646393889),
        ("abcde", 1594468574),
        ("20250315#u1#0::B1", 3346505425),
        ("가나다라마", 1268878337),
        ("😀x", 2796286815),
    ])
    def test_known_values(self, text, expected):
        """Values produced by the discovery page's JavaScript murmur32."""
        assert hash32(text) == expected

    def test_repeatable(self):
        assert hash32("20250315#u1#0::B1") == hash32("20250315#u1#0::B1")

    def test_within_32_bits(self):
        for text in ["a", "ab", "abc", "abcd", "abcde", "a much longer seed string#with#parts"]:
            value = hash32(text)
            assert 0 <= value <= MASK32

    def test_single_character_inputs_differ(self):
        """The tail step multiplies by an odd constant, so distinct bytes stay distinct."""
        assert hash32("a") != hash32("b")

    def test_non_string_input_is_stringified(self):
        assert hash32(12345) == hash32("12345")

    def test_reads_low_byte_of_utf16_code_units(self):
        # U+AC00 has low byte 0x00
        assert hash32("가") == hash32("\x00")

    def test_astral_characters_count_as_two_units(self):
        # U+1F600 is D83D DE00 in UTF-16: low bytes 0x3D ('=') and 0x00
        assert hash32("😀") == hash32("=\x00")


class TestHash01:
    """Test the normalized hash."""

    def test_range(self):
        for i in range(200):
            value = hash01(f"seed#{i}")
            assert 0.0 <= value <= 1.0

    def test_matches_hash32(self):
        assert hash01("seed#u7") == pytest.approx(hash32("seed#u7") / 0xFFFFFFFF)

    def test_empty_string(self):
        assert hash01("") == 0.0
