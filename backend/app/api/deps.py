from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.services.identity import (
    AuthenticatedUser,
    AuthenticationError,
    SupabaseIdentityProvider,
)

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_identity_provider() -> SupabaseIdentityProvider:
    return SupabaseIdentityProvider(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_ROLE_KEY,
        timeout=settings.AUTH_TIMEOUT_SECONDS,
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    provider: SupabaseIdentityProvider = Depends(get_identity_provider),
) -> AuthenticatedUser:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")

    try:
        return provider.verify(credentials.credentials)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
