import logging
from fastapi import Request
from app.errors import ErrorType
from app.exceptions import AppException
from app.security import ACCESS_TOKEN, TokenError, TokenExpiredError, decode_token

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


async def get_current_user_id(request: Request) -> int:
    """Authenticate the request from the access token cookie."""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        raise AppException(ErrorType.UNAUTHORIZED, "Unauthorized! (token not found)")

    try:
        claims = decode_token(token, ACCESS_TOKEN)
    except TokenExpiredError:
        # Client is expected to call the refresh endpoint and retry
        raise AppException(ErrorType.TOKEN_EXPIRED, "Need to refresh token.")
    except TokenError as e:
        logger.info(f"Rejected access token: {e}")
        raise AppException(ErrorType.UNAUTHORIZED, "Unauthorized!")

    return int(claims["sub"])
