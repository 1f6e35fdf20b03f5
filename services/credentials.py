"""Temporary password and one-time code generation."""

from __future__ import annotations

import random
import secrets

from errors import InvalidInput

# Ambiguous glyphs (I/O, l/o, 0/1) are left out of every class.
UPPERCASE = "ABCDEFGHJKLMNPQRSTUVWXYZ"
LOWERCASE = "abcdefghijkmnpqrstuvwxyz"
DIGITS = "23456789"
SPECIALS = "!@#$%&*?"
CHARACTER_CLASSES = (UPPERCASE, LOWERCASE, DIGITS, SPECIALS)
ALL_CHARACTERS = "".join(CHARACTER_CLASSES)

MIN_PASSWORD_LENGTH = len(CHARACTER_CLASSES)


def generate_temporary_password(length: int = 10, rng: random.Random | None = None) -> str:
    """Return a random password holding at least one character of each class."""

    if length < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password length must be at least {MIN_PASSWORD_LENGTH}.")

    rng = rng or secrets.SystemRandom()
    chars = [rng.choice(charset) for charset in CHARACTER_CLASSES]
    chars.extend(rng.choice(ALL_CHARACTERS) for _ in range(length - MIN_PASSWORD_LENGTH))
    rng.shuffle(chars)
    return "".join(chars)


def generate_verification_code(digits: int = 6) -> str:
    """Return a zero-padded numeric one-time code."""

    return str(secrets.randbelow(10**digits)).zfill(digits)
