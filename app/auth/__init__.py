"""Authentication helpers (token handling only)."""

from app.auth.utils import create_access_token, decode_access_token

__all__ = ["create_access_token", "decode_access_token"]
