"""FastAPI auth dependencies.

Learn: Used as Depends() in route handlers. The gateway has already
authenticated the caller; this only extracts the bearer token so the
alert can be attributed to a username.
"""

from typing import Optional

from fastapi import Header, HTTPException

from expoalerts.auth.jwt import sender_from_token


async def get_sender(authorization: Optional[str] = Header(None)) -> str:
    """Resolve the alert sender from `Authorization: Bearer <token>`."""
    if not authorization:
        raise HTTPException(status_code=400, detail="Authorization header missing")

    parts = authorization.split(" ")
    token = parts[1] if len(parts) > 1 else ""
    if not token:
        raise HTTPException(status_code=400, detail="Token missing")

    return sender_from_token(token)
