"""Tests for room code generation."""

import random
import re

from services.naming_service import generate_room_code, ROOM_CODE_ALPHABET

CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{6}$")


class TestGenerateRoomCode:

    def test_code_is_six_alphanumeric_characters(self):
        for _ in range(200):
            assert CODE_PATTERN.match(generate_room_code())

    def test_alphabet_has_62_symbols(self):
        assert len(set(ROOM_CODE_ALPHABET)) == 62

    def test_same_seed_gives_same_code(self):
        assert generate_room_code(random.Random(7)) == generate_room_code(random.Random(7))

    def test_codes_cover_upper_lower_and_digits(self):
        """Over many draws every character class shows up."""
        rng = random.Random(99)
        chars = "".join(generate_room_code(rng) for _ in range(500))
        assert any(c.isupper() for c in chars)
        assert any(c.islower() for c in chars)
        assert any(c.isdigit() for c in chars)
