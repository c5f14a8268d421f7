"""
Client identifier generation.

Identifiers are the SHA-256 hex digest of the client's email, mobile
number, the creation time in milliseconds and a random number in [0, 1000).
Collisions are unlikely but not ruled out; nothing checks for them.
"""

import hashlib
import secrets
import time
from typing import Optional

RANDOM_RANGE = 1000
ID_LENGTH = 64


def generate_client_id(email: str, mobile: str, random_value: Optional[int] = None) -> str:
    """
    Generate an identifier for a new client.

    Args:
        email: Client email
        mobile: Client mobile number (as stored)
        random_value: Seed in [0, 1000); drawn at random when omitted

    Returns:
        64-character lowercase hex string
    """
    if random_value is None:
        random_value = secrets.randbelow(RANDOM_RANGE)

    timestamp = int(time.time() * 1000)
    seed = f"{email}{mobile}{timestamp}{random_value}"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()
