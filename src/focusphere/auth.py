"""Authentication for the Focusphere assistant API.

Environment-based mode switching:
- dev mode: allows X-User-Id header fallback (for development/testing)
- jwt mode: requires a JWT bearer token and extracts user_id from claims

Environment Variables:
    FOCUSPHERE_AUTH_MODE: Authentication mode (dev|jwt), defaults to "dev"
    JWT_SECRET_KEY: Secret key for JWT validation (required in jwt mode)
    JWT_ALGORITHM: JWT algorithm (default: HS256)
"""

import logging
import os
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

# Fixture user ID for development/testing
FIXTURE_USER_ID = "dev-user"

MAX_USER_ID_LENGTH = 128

security = HTTPBearer(auto_error=False)


def get_auth_mode() -> str:
    """Get the configured authentication mode ("dev" or "jwt")."""
    return os.getenv("FOCUSPHERE_AUTH_MODE", "dev").lower()


def validate_jwt_token(token: str) -> str:
    """Validate JWT token and extract user_id.

    Args:
        token: JWT token string

    Returns:
        User ID extracted from token claims

    Raises:
        HTTPException: If token is invalid or missing required claims
    """
    secret_key = os.getenv("JWT_SECRET_KEY")
    if not secret_key:
        logger.error("JWT_SECRET_KEY not configured for jwt mode")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication not properly configured",
        )

    algorithm = os.getenv("JWT_ALGORITHM", "HS256")

    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        logger.warning("JWT token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid JWT token: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        ) from None

    # Try common claim names: user_id, sub (subject), uid
    user_id = payload.get("user_id") or payload.get("sub") or payload.get("uid")
    if not user_id:
        logger.warning("JWT token missing user_id claim")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user identifier",
        )

    return str(user_id)


async def get_current_user(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> str:
    """Extract and validate user ID based on configured auth mode.

    Behavior by auth mode:
    - dev: Accepts X-User-Id header, falls back to fixture user ID
    - jwt: Requires valid JWT bearer token, extracts user_id from claims

    Raises:
        HTTPException: In jwt mode if authentication fails
    """
    auth_mode = get_auth_mode()

    if auth_mode == "dev":
        if x_user_id and x_user_id.strip() and len(x_user_id) <= MAX_USER_ID_LENGTH:
            logger.debug("Dev mode: Using user_id from X-User-Id header: %s", x_user_id)
            return x_user_id.strip()

        logger.debug("Dev mode: Using fixture user ID")
        return FIXTURE_USER_ID

    elif auth_mode == "jwt":
        if not credentials or not credentials.credentials:
            logger.warning("JWT mode: Missing bearer token")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user_id = validate_jwt_token(credentials.credentials)
        logger.debug("JWT mode: Authenticated user_id: %s", user_id)
        return user_id

    else:
        logger.error("Unknown authentication mode: %s", auth_mode)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Invalid authentication configuration",
        )


# Type alias for dependency injection
CurrentUser = Annotated[str, Depends(get_current_user)]
