"""Password hashing and access token helpers.

Passwords are hashed with bcrypt through passlib. Access tokens are HS256
JWTs whose ``sub`` claim carries the user ID.

Usage:
    from bookswap.core.security import create_access_token, decode_access_token

    token = create_access_token(user_id=7)
    decode_access_token(token)  # -> 7
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from bookswap.config import Settings, get_settings
from bookswap.core.logging import get_logger

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# =============================================================================
# Passwords
# =============================================================================


def hash_password(password: str) -> str:
    """Hash a plain text password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


# =============================================================================
# Access tokens
# =============================================================================


def create_access_token(
    user_id: int,
    settings: Settings | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a signed access token for a user.

    Args:
        user_id: The authenticated user's ID
        settings: Settings to sign with (defaults to the cached settings)
        expires_delta: Override for the configured token lifetime

    Returns:
        Encoded JWT string
    """
    settings = settings or get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expire_minutes)

    payload = {
        "sub": str(user_id),
        "exp": datetime.now(UTC) + expires_delta,
        "type": "access",
    }
    return jwt.encode(
        payload,
        settings.jwt_secret_key.get_secret_value(),
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str, settings: Settings | None = None) -> int | None:
    """Decode an access token and return the user ID it was issued for.

    Returns:
        The user ID, or None when the token is invalid, expired or malformed
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        logger.warning("token_decode_failed", error=str(e))
        return None

    if payload.get("type") != "access":
        return None

    try:
        user_id = int(payload.get("sub", ""))
    except (TypeError, ValueError):
        return None
    return user_id if user_id > 0 else None
