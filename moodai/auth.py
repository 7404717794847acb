"""Password hashing and signed session tokens."""

from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from .errors import MoodAIError

TOKEN_COOKIE = "token"
TOKEN_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class InvalidToken(MoodAIError):
    """Raised when a session token is malformed, tampered with or expired."""


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(password, hashed)
    except (ValueError, TypeError):
        return False


def create_token(user_id: str, secret: str, expiry_days: int = 7) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=expiry_days)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=TOKEN_ALGORITHM)


def decode_token(token: str, secret: str) -> str:
    """
    Verify a session token and return the user id it carries.

    Raises:
        InvalidToken: if the signature, expiry or payload is invalid
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[TOKEN_ALGORITHM])
    except jwt.InvalidTokenError as e:
        raise InvalidToken(str(e)) from e

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise InvalidToken("Token has no subject")
    return user_id
