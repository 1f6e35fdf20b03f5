"""Tests for temporary password and code generation."""

from __future__ import annotations

import random

import pytest

from errors import InvalidInput
from services.credentials import (
    ALL_CHARACTERS,
    DIGITS,
    LOWERCASE,
    SPECIALS,
    UPPERCASE,
    generate_temporary_password,
    generate_verification_code,
)


@pytest.mark.parametrize("length", [4, 5, 10, 32])
def test_password_covers_every_character_class(length):
    for _ in range(50):
        password = generate_temporary_password(length)

        assert len(password) == length
        assert any(char in UPPERCASE for char in password)
        assert any(char in LOWERCASE for char in password)
        assert any(char in DIGITS for char in password)
        assert any(char in SPECIALS for char in password)
        assert set(password) <= set(ALL_CHARACTERS)


def test_default_length_is_ten():
    assert len(generate_temporary_password()) == 10


def test_ambiguous_characters_are_never_used():
    passwords = "".join(generate_temporary_password(20) for _ in range(100))
    assert not set(passwords) & set("IOlo01")


def test_class_representatives_are_shuffled():
    rng = random.Random(7)
    first_chars = {generate_temporary_password(4, rng=rng)[0] for _ in range(200)}

    assert first_chars & set(UPPERCASE)
    assert first_chars - set(UPPERCASE)


def test_too_short_length_is_rejected():
    with pytest.raises(InvalidInput):
        generate_temporary_password(3)


def test_verification_code_is_six_digits():
    code = generate_verification_code()
    assert len(code) == 6
    assert code.isdigit()
