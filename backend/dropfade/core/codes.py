# dropfade/core/codes.py

import secrets
import string

CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_CODE_LENGTH = 6


def generate_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """Random uppercase alphanumeric access code"""
    if length < 1:
        raise ValueError("code length must be positive")
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    """Access codes are case-insensitive for the person typing them"""
    return (code or "").strip().upper()


def is_well_formed(code: str) -> bool:
    # Only checks the alphabet; length is configurable and may change
    # while older codes are still live.
    return bool(code) and all(c in CODE_ALPHABET for c in code)
