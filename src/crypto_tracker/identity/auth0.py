"""Auth0 Management API client used to look up user emails."""
import logging
import time
from urllib.parse import quote

import httpx

from crypto_tracker.exceptions import IdentityLookupError
from crypto_tracker.services.protocols import IdentityUser

logger = logging.getLogger(__name__)

# Refresh the management token this many seconds before Auth0 expires it.
_TOKEN_EXPIRY_MARGIN = 60.0


class Auth0IdentityProvider:
    """Fetches users by id via the Auth0 Management API.

    A client-credentials token is requested on first use and reused until
    shortly before it expires.
    """

    def __init__(
        self,
        domain: str | None,
        client_id: str | None,
        client_secret: str | None,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._domain = (domain or "").removeprefix("https://").rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self._client = client or httpx.AsyncClient(
            base_url=f"https://{self._domain}" if self._domain else "https://localhost",
            timeout=timeout,
        )
        self._token: str | None = None
        self._token_expires_at = 0.0

    @property
    def configured(self) -> bool:
        return bool(self._domain and self._client_id and self._client_secret)

    async def get_user_by_id(self, user_id: str) -> IdentityUser:
        """Return the Auth0 user; raises IdentityLookupError on any failure."""
        if not self.configured:
            raise IdentityLookupError("Auth0 is not configured")
        token = await self._management_token()
        try:
            response = await self._client.get(
                f"/api/v2/users/{quote(user_id, safe='')}",
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                self._token = None
            raise IdentityLookupError(
                f"Auth0 user lookup failed for {user_id}: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise IdentityLookupError(f"Auth0 user lookup failed for {user_id}: {e}") from e

        data = response.json()
        return IdentityUser(
            user_id=data.get("user_id") or user_id,
            email=data.get("email"),
            name=data.get("name"),
        )

    async def _management_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token
        try:
            response = await self._client.post(
                "/oauth/token",
                json={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "audience": f"https://{self._domain}/api/v2/",
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise IdentityLookupError(f"Auth0 token request failed: {e}") from e

        try:
            payload = response.json()
            self._token = str(payload["access_token"])
            expires_in = float(payload.get("expires_in", 86400))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            self._token = None
            raise IdentityLookupError(f"Auth0 token response malformed: {e!r}") from e
        self._token_expires_at = time.monotonic() + max(expires_in - _TOKEN_EXPIRY_MARGIN, 0.0)
        logger.debug("Obtained Auth0 management token (expires in %ss)", expires_in)
        return self._token

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
