"""
Identifier and join code generation.
"""
import random
import string
from datetime import datetime, timezone

# Excludes the look-alikes I, O, 0 and 1
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_LENGTH = 6


def generate_join_code() -> str:
    """Generate a 6-character join code."""
    return "".join(random.choices(JOIN_CODE_ALPHABET, k=JOIN_CODE_LENGTH))


def generate_id(prefix: str = "") -> str:
    """Generate a unique ID with optional prefix."""
    timestamp = int(datetime.now(timezone.utc).timestamp() * 1000)
    random_part = "".join(random.choices(string.ascii_lowercase + string.digits, k=8))
    return f"{prefix}{timestamp}_{random_part}"
