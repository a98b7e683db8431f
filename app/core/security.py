from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from app.config import settings
from app.shared.exceptions import CredentialsException


# Missing headers are reported as 401 by get_current_user_id, not 403
security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT access token issued by the auth provider."""
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except JWTError:
        return None


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Dependency returning the authenticated user's id.

    Raises:
        CredentialsException: If the token is missing or invalid
    """
    if credentials is None:
        raise CredentialsException("Not authenticated")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise CredentialsException("Invalid authentication credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise CredentialsException("Invalid authentication credentials")

    return str(user_id)
