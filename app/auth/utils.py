"""JWT access token helpers."""

from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from app.config import get_settings

ALGORITHM = "HS256"


def create_access_token(
    user_id: str,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed access token for an account.

    Args:
        user_id: Account ID, stored as the ``sub`` claim.
        email: Account email.
        expires_delta: Token lifetime. Defaults to the configured expiry.

    Returns:
        str: Encoded JWT.
    """
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user_id),
        "email": email,
        "type": "access",
        "exp": datetime.utcnow() + expires_delta,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify an access token.

    Returns:
        dict | None: Token claims, or None when invalid or expired.
    """
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != "access":
        return None
    return payload
