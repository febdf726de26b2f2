from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.exceptions import RateLimitedError
from ..core.security import security, resolve_claims, Claims
from ..services.booking_service import BookingService

async def get_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[Claims]:
    """Resolve bearer credentials into claims; None when absent or invalid.

    Rejection happens in the authorization guard so every failure looks alike.
    """
    if credentials is None:
        return None
    return resolve_claims(credentials.credentials)

def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Per-client hourly limit on booking requests."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:booking:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, 3600, 1)  # 1 hour window
    else:
        if int(current_requests) >= settings.RATE_LIMIT_PER_HOUR:
            raise RateLimitedError()
        redis_client.incr(key)
