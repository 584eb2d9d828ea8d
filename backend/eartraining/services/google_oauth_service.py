"""
Google OAuth Service
Authorization-code flow against Google: consent URL, code exchange and
userinfo lookup.
"""
import logging
from typing import Optional
from urllib.parse import urlencode
import httpx
from pydantic import BaseModel

from eartraining.config import settings


logger = logging.getLogger(__name__)


class GoogleOAuthError(Exception):
    """Google rejected the request or is unreachable."""


class GoogleUserInfo(BaseModel):
    """Subset of the userinfo payload we use"""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None


class GoogleOAuthService:
    """Client for Google's OAuth 2.0 endpoints"""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.client_id = client_id or settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or settings.GOOGLE_CLIENT_SECRET
        self.timeout = timeout or settings.GOOGLE_HTTP_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id)

    @property
    def redirect_uri(self) -> str:
        return f"{settings.BACKEND_URL}{settings.API_V1_PREFIX}/auth/google/callback"

    def build_authorization_url(self) -> str:
        """Consent screen URL the browser is redirected to."""
        if not self.client_id:
            raise GoogleOAuthError("Google Client ID não configurado")
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "profile email",
            "access_type": "offline",
            "prompt": "select_account",
        }
        return f"{settings.GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        """
        Trade an authorization code for an access token.

        Raises:
            GoogleOAuthError: non-2xx answer, network failure or malformed body
        """
        data = {
            "client_id": self.client_id or "",
            "client_secret": self.client_secret or "",
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(settings.GOOGLE_TOKEN_URL, data=data)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Google token exchange failed: {e}")
            raise GoogleOAuthError("Erro ao trocar código por token") from e

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise GoogleOAuthError("Erro ao trocar código por token")
        return access_token

    async def fetch_user_info(self, access_token: str) -> GoogleUserInfo:
        """Profile of the user owning `access_token`."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    settings.GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"}
                )
                response.raise_for_status()
                return GoogleUserInfo.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as e:
            # ValueError covers non-JSON bodies and profiles failing validation
            logger.error(f"Google userinfo request failed: {e}")
            raise GoogleOAuthError("Erro ao obter dados do usuário") from e


# Singleton instance
google_oauth_service = GoogleOAuthService()
