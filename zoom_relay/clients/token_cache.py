"""Chatbot token acquisition via the client-credentials grant."""
import asyncio
import logging
import time
from typing import Optional

import httpx

from zoom_relay.core.exceptions import AuthConfigError, TokenError
from zoom_relay.core.models import AccessToken
from zoom_relay.utils.http import build_basic_auth_header, error_detail, response_body

logger = logging.getLogger(__name__)


class ChatbotTokenCache:
    """
    Obtains and caches the bearer token for outbound Zoom chatbot calls.

    The token is reused until `refresh_margin_seconds` before it expires.
    Refreshes are single-flight: concurrent callers that find the token
    stale wait on one exchange instead of each hitting the token endpoint.
    With caching disabled every call performs a fresh exchange.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        cache_enabled: bool = True,
        refresh_margin_seconds: float = 60.0,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize token cache.

        Args:
            client_id: Zoom app client ID
            client_secret: Zoom app client secret
            token_url: OAuth token endpoint (e.g., https://zoom.us/oauth/token)
            cache_enabled: Reuse tokens until shortly before expiry
            refresh_margin_seconds: How early to refresh a cached token
            timeout: Request timeout in seconds
            client: Optional preconfigured HTTP client (tests inject transports)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.cache_enabled = cache_enabled
        self.refresh_margin_seconds = refresh_margin_seconds
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings, client: Optional[httpx.AsyncClient] = None) -> "ChatbotTokenCache":
        return cls(
            client_id=settings.ZOOM_CLIENT_ID,
            client_secret=settings.ZOOM_CLIENT_SECRET,
            token_url=settings.ZOOM_OAUTH_TOKEN_URL,
            cache_enabled=settings.TOKEN_CACHE_ENABLED,
            refresh_margin_seconds=settings.TOKEN_REFRESH_MARGIN_SECONDS,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            client=client
        )

    async def get_token(self) -> str:
        """
        Return a bearer token, exchanging credentials if needed.

        Raises:
            AuthConfigError: If client credentials are not configured
            TokenError: If the token endpoint rejects the exchange
        """
        if not self.client_id or not self.client_secret:
            raise AuthConfigError(
                "Missing required environment variables: ZOOM_CLIENT_ID, ZOOM_CLIENT_SECRET"
            )

        if not self.cache_enabled:
            token = await self._fetch_token()
            return token.value

        token = self._token
        if token is not None and token.is_fresh(self.refresh_margin_seconds):
            return token.value

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self._token
            if token is not None and token.is_fresh(self.refresh_margin_seconds):
                return token.value

            self._token = await self._fetch_token()
            return self._token.value

    def invalidate(self) -> None:
        """Drop the cached token (e.g. after the API answered 401)."""
        if self._token is not None:
            logger.info("Invalidated cached chatbot token")
        self._token = None

    async def _fetch_token(self) -> AccessToken:
        headers = {
            "Authorization": build_basic_auth_header(self.client_id, self.client_secret),
            "Content-Type": "application/x-www-form-urlencoded",
        }

        try:
            response = await self.client.post(
                self.token_url,
                data={"grant_type": "client_credentials"},
                headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Error getting chatbot token from Zoom: {e}")
            raise TokenError(f"Failed to get Zoom chatbot token: {e}") from e

        if response.status_code >= 400:
            body = response_body(response)
            logger.error(f"Error getting chatbot token from Zoom: HTTP {response.status_code} {body}")
            if isinstance(body, dict) and isinstance(body.get("error"), str):
                code = body["error"]
            else:
                code = error_detail(body, response.reason_phrase)
            raise TokenError(
                f"Failed to get Zoom chatbot token: {code}",
                status=response.status_code,
                body=body
            )

        data = response_body(response)
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise TokenError(
                "Failed to get Zoom chatbot token: response missing access_token",
                status=response.status_code,
                body=data
            )

        expires_in = data.get("expires_in")
        try:
            expires_at = time.monotonic() + float(expires_in) if expires_in else None
        except (TypeError, ValueError) as e:
            raise TokenError(
                f"Failed to get Zoom chatbot token: invalid expires_in {expires_in!r}",
                status=response.status_code,
                body=data
            ) from e

        logger.info("Successfully received chatbot token from Zoom")
        return AccessToken(value=access_token, expires_at=expires_at)

    async def close(self) -> None:
        await self.client.aclose()
