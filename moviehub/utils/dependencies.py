from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import os
import secrets

from moviehub.utils.cache import AppCaches

security = HTTPBearer(auto_error=False)


def get_caches(request: Request) -> AppCaches:
    """Caches built by the application lifespan."""
    caches = getattr(request.app.state, "caches", None)
    if caches is None:
        caches = AppCaches.from_env()
        request.app.state.caches = caches
    return caches


# Dependency guarding the admin / ISR monitor routes
async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    expected = os.getenv("ADMIN_API_TOKEN")
    if not expected:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Admin API is not configured")

    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode(), expected.encode()
    ):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")

    return "admin"
