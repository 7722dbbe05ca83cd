from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.logging import get_logger, set_user_context

logger = get_logger(__name__)
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> AuthUser:
    """
    Validate a Supabase JWT and build the AuthUser it describes.

    Raises JWTError or ValidationError when the token is unusable.
    """
    settings = get_settings()
    # Supabase signs with HS256; audience varies between projects
    payload = jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=["HS256"],
        options={"verify_aud": False},
    )
    user = AuthUser(**payload)
    user.access_token = token
    return user


async def get_current_user(
    token: Annotated[HTTPAuthorizationCredentials, Depends(security)]
) -> AuthUser:
    """
    Validate Supabase JWT and return the authenticated user.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        user = decode_access_token(token.credentials)
    except (JWTError, ValidationError):
        raise credentials_exception

    set_user_context(user.user_id)
    return user


async def get_optional_user(
    token: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(optional_security)
    ],
) -> Optional[AuthUser]:
    """
    Return the authenticated user, or None when there is no usable session.

    A missing or invalid token means "logged out", never an error.
    """
    if token is None:
        return None

    try:
        user = decode_access_token(token.credentials)
    except (JWTError, ValidationError) as exc:
        logger.info(
            "Ignoring unusable bearer token",
            extra={"extra_fields": {"error": str(exc)}},
        )
        return None

    set_user_context(user.user_id)
    return user
