"""Steam Guard mobile authenticator codes.

Code generation is done by ``steam.guard``; this module only accepts the
shared secret in the encodings authenticator exports use (base64 or hex).
"""

from __future__ import annotations

import base64
import binascii
import re
import time

from steam.guard import generate_twofactor_code_for_time

_HEX_SECRET = re.compile(r"^[0-9a-fA-F]{40}$")


def decode_shared_secret(secret: str) -> bytes:
    """Decode a shared secret given as 40 hex digits or base64.

    Raises:
        ValueError: If the secret is neither
    """
    secret = secret.strip()
    if _HEX_SECRET.match(secret):
        return bytes.fromhex(secret)
    try:
        return base64.b64decode(secret, validate=True)
    except binascii.Error as e:
        raise ValueError("Shared secret must be base64 or 40 hex digits") from e


def generate_auth_code(secret: str | bytes, timestamp: float | None = None) -> str:
    """Generate the login code for a shared secret.

    Uses the local clock; ``steam.guard.generate_twofactor_code`` would
    first query the store for a time offset.

    Args:
        secret: Shared secret (raw bytes, base64 or hex string)
        timestamp: Unix time to generate for, defaults to now

    Returns:
        Five-character code, valid for the current 30-second window
    """
    key = secret if isinstance(secret, bytes) else decode_shared_secret(secret)
    if timestamp is None:
        timestamp = time.time()
    return generate_twofactor_code_for_time(key, timestamp)
