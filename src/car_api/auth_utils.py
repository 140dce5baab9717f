import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from car_api.config import Settings

logger = logging.getLogger(__name__)

# Work factor is fixed server-side.
_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


class Identity(BaseModel):
    """Identity carried by a verified bearer token."""

    user_id: int
    username: str


# PUBLIC_INTERFACE
def hash_password(password: str) -> str:
    """Hash a plaintext password."""
    return _pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password against a stored hash."""
    try:
        return _pwd_context.verify(password, password_hash)
    except ValueError:
        # Stored value is not a recognizable hash.
        return False


def _create_access_token(payload: Dict[str, Any], settings: Settings) -> str:
    to_encode = payload.copy()
    if settings.jwt_expires_minutes:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expires_minutes)
        to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


# PUBLIC_INTERFACE
def create_user_access_token(user_id: int, username: str, settings: Settings) -> str:
    """Create a signed token identifying a user."""
    return _create_access_token({"sub": str(user_id), "username": username}, settings)


# PUBLIC_INTERFACE
def extract_token(authorization: Optional[str]) -> Optional[str]:
    """
    Pull the token out of an Authorization header value.

    Clients send the bare token; a leading ``Bearer`` scheme is tolerated.
    """
    if not authorization:
        return None
    value = authorization.strip()
    scheme, _, rest = value.partition(" ")
    if rest and scheme.lower() == "bearer":
        value = rest.strip()
    return value or None


# PUBLIC_INTERFACE
def decode_identity(token: Optional[str], settings: Settings) -> Optional[Identity]:
    """Verify a token and return its identity, or None when it cannot be trusted."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return Identity(user_id=int(payload["sub"]), username=str(payload["username"]))
    except (JWTError, KeyError, TypeError, ValueError) as exc:
        logger.debug("Ignoring unverifiable token: %s", exc)
        return None
