"""
Token validation logic.

Tokens are issued by the external auth provider; this module only verifies
them and extracts the caller's user id. `create_access_token` mints
compatible tokens for local tooling and tests.
"""

from datetime import datetime, timedelta
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from app.core.config import settings
from app.core.errors import AuthenticationError

# HTTP Bearer scheme (Only shows a token input box in Swagger)
security_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire, "iat": datetime.utcnow()})

    return jwt.encode(
        to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate JWT token string"""
    try:
        return jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None


def verify_token(token: str) -> Optional[str]:
    """Verify token and extract user ID (sub claim)"""
    payload = decode_token(token)
    if payload is None:
        return None

    user_id: Optional[str] = payload.get("sub")
    return user_id


async def get_current_user_id(
    auth: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security_scheme)],
) -> str:
    """
    FastAPI dependency to validate token and return current user ID.
    Used in protected routes.
    """
    if auth is None:
        raise AuthenticationError("Missing bearer token")
    user_id = verify_token(auth.credentials)
    if not user_id:
        raise AuthenticationError("Could not validate credentials")
    return user_id


# Frequently used Dependency Annotation
CurrentUserDep = Annotated[str, Depends(get_current_user_id)]
