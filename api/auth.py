import hmac
import hashlib
import time
from typing import Optional
import structlog
from fastapi import Header, HTTPException, Request
from core.config import settings

logger = structlog.get_logger()


def sign(data: str) -> str:
    return hmac.new(settings.AUTH_SECRET.encode(), data.encode(), hashlib.sha256).hexdigest()


def create_token(user_id: str, timestamp: Optional[int] = None) -> str:
    """Format: {user_id}:{timestamp}:{signature}"""
    timestamp = int(time.time()) if timestamp is None else timestamp
    data = f"{user_id}:{timestamp}"
    return f"{data}:{sign(data)}"


def verify_token(token: str) -> Optional[str]:
    """
    Verify a signed caller token and return the user ID.
    Format: {user_id}:{timestamp}:{signature}
    """
    if not token:
        return None

    parts = token.rsplit(':', 2)
    if len(parts) != 3:
        return None

    user_id, timestamp_str, signature = parts
    if not user_id:
        return None

    try:
        timestamp = int(timestamp_str)
    except ValueError:
        return None

    # Check expiration
    if int(time.time()) - timestamp > settings.TOKEN_TTL_SECONDS:
        logger.warning("Token expired", user_id=user_id)
        return None

    if hmac.compare_digest(sign(f"{user_id}:{timestamp_str}"), signature):
        return user_id

    logger.warning("Token signature mismatch", user_id=user_id)
    return None


def get_current_user(
    request: Request,
    x_auth_token: str = Header(None),
    authorization: str = Header(None),
) -> str:
    # Authorization: Bearer <token>
    if authorization and authorization.lower().startswith('bearer '):
        user_id = verify_token(authorization.split(' ', 1)[1].strip())
        if user_id:
            return user_id

    if x_auth_token:
        user_id = verify_token(x_auth_token)
        if user_id:
            return user_id

    logger.warning("Auth failed: Missing or invalid credentials", path=request.url.path)
    raise HTTPException(status_code=401, detail="Unauthorized")
