# geoattend/core/security.py
"""Password hashing and bearer tokens for teacher and student accounts."""
from datetime import timedelta
from jose import jwt, JWTError
from passlib.context import CryptContext

from geoattend.core import clock
from geoattend.core.config import settings
from geoattend.core.errors import ErrorKind, NotAuthenticated

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(email: str, expires_delta: timedelta | None = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": email, "exp": clock.utcnow() + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the account email a bearer token was issued for.

    Raises NotAuthenticated for a bad signature, an expired token or a token
    without a subject.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        raise NotAuthenticated(ErrorKind.INVALID_CREDENTIALS, "Could not validate credentials") from exc

    email = payload.get("sub")
    if not email:
        raise NotAuthenticated(ErrorKind.INVALID_CREDENTIALS, "Could not validate credentials")
    return email
