import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    email: Optional[str] = None


class AuthenticationError(Exception):
    pass


class SupabaseIdentityProvider:
    """Validates bearer tokens against the Supabase auth ``/user`` endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.api_key = api_key
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def verify(self, token: str) -> AuthenticatedUser:
        if not self.base_url or not self.api_key:
            logger.error("Identity provider is not configured (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY)")
            raise AuthenticationError("Authentication failed")

        try:
            response = self._client.get(
                "/auth/v1/user",
                headers={"Authorization": f"Bearer {token}", "apikey": self.api_key},
            )
        except httpx.HTTPError as exc:
            logger.warning("Identity provider request failed: %s", exc)
            raise AuthenticationError("Authentication failed") from exc

        if response.status_code != 200:
            raise AuthenticationError("Invalid or expired token")

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthenticationError("Invalid or expired token") from exc

        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            raise AuthenticationError("Invalid or expired token")
        return AuthenticatedUser(user_id=str(user_id), email=payload.get("email"))

    def close(self) -> None:
        self._client.close()
