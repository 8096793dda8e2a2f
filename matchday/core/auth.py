"""
Request identity dependencies.

Sign-in is handled by the auth provider in front of this service, which
forwards the authenticated user's id in ``X-User-Id``. The settlement
trigger is an operator endpoint guarded by ``X-Admin-Token``.
"""
import hmac
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader
from starlette.requests import Request

from matchday.core.config import settings
from matchday.core.logging import get_logger

logger = get_logger(__name__)

USER_ID_HEADER = "X-User-Id"
ADMIN_TOKEN_HEADER = "X-Admin-Token"

user_id_header = APIKeyHeader(name=USER_ID_HEADER, auto_error=False)
admin_token_header = APIKeyHeader(name=ADMIN_TOKEN_HEADER, auto_error=False)


def get_current_user_id(user_id: Optional[str] = Security(user_id_header)) -> str:
    """
    Resolve the authenticated user id.

    Raises:
        HTTPException: 401 if no user id was forwarded
    """
    if not user_id or not user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return user_id.strip()


def require_admin_token(
    request: Request,
    token: Optional[str] = Security(admin_token_header)
) -> None:
    """
    Guard operator endpoints.

    When ``ADMIN_TOKEN`` is unset the check is skipped outside production so
    local cron setups work without extra configuration.
    """
    if not settings.ADMIN_TOKEN:
        if settings.is_production():
            logger.warning("ADMIN_TOKEN not configured in production - rejecting request")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Admin token required. Configure ADMIN_TOKEN environment variable."
            )
        return

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Admin token missing. Provide {ADMIN_TOKEN_HEADER} header."
        )

    if not hmac.compare_digest(token, settings.ADMIN_TOKEN):
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Invalid admin token attempt from {client}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin token."
        )
