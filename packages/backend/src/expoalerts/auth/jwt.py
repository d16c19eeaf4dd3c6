"""JWT decoding for alert attribution.

Learn: Tokens are verified by the API gateway before a request reaches
this service, so here we only *read* the payload to find out who sent
the alert. Signature checks are intentionally skipped.
"""

from typing import Optional

import jwt

UNKNOWN_SENDER = "Unknown"


def decode_unverified(token: str) -> Optional[dict]:
    """Decode a JWT payload without verifying it. Returns None if unreadable."""
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None


def sender_from_token(token: str) -> str:
    """Username claim from the token, or "Unknown"."""
    payload = decode_unverified(token) or {}
    return payload.get("username") or UNKNOWN_SENDER
