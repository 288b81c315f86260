"""
JobAdder OAuth client.

Builds the authorization URL and talks to the JobAdder identity server's
token endpoint (authorization_code and refresh_token grants).
"""
import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError as PydanticValidationError

from src.auth.config import (
    JOBADDER_AUTH_URL,
    JOBADDER_CLIENT_ID,
    JOBADDER_CLIENT_SECRET,
    JOBADDER_SCOPES,
    OAUTH_REDIRECT_URI,
)
from src.auth.exceptions import AuthenticationError, InvalidTokenError
from src.config import JOBADDER_HTTP_TIMEOUT
from src.exceptions import ConfigError, TransientNetworkError
from src.models.jobadder import JobAdderTokenResponse

logger = logging.getLogger(__name__)


class JobAdderOAuthClient:
    """
    Client for the JobAdder identity server.

    Secrets are sent in the form body and never logged.
    """

    def __init__(
        self,
        client_id: str = JOBADDER_CLIENT_ID,
        client_secret: str = JOBADDER_CLIENT_SECRET,
        redirect_uri: str = OAUTH_REDIRECT_URI,
        auth_url: str = JOBADDER_AUTH_URL,
        scopes: str = JOBADDER_SCOPES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.base_url = auth_url
        self.scopes = scopes
        self._transport = transport

    def get_authorization_url(self, state: str) -> str:
        """
        Generate the JobAdder authorization URL.

        Args:
            state: Opaque value echoed back on the callback (the tenant id)

        Returns:
            The full OAuth authorization URL

        Raises:
            ConfigError: If the client id is not configured
        """
        if not self.client_id:
            raise ConfigError("JOBADDER_CLIENT_ID")

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scopes,
            "state": state,
        }
        return f"{self.base_url}/authorize?{urlencode(params)}"

    async def exchange_code(self, code: str) -> JobAdderTokenResponse:
        """
        Exchange an authorization code for an access/refresh token pair.

        Raises:
            ConfigError: If client credentials are not configured
            InvalidTokenError: If JobAdder rejects the code
        """
        return await self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        })

    async def refresh(self, refresh_token: str) -> JobAdderTokenResponse:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            AuthenticationError: If the refresh token is missing
            InvalidTokenError: If JobAdder rejects the refresh token
        """
        if not refresh_token:
            raise AuthenticationError("No refresh token available")
        return await self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })

    async def _token_request(self, form: dict[str, str]) -> JobAdderTokenResponse:
        if not self.client_id or not self.client_secret:
            raise ConfigError("JobAdder OAuth credentials")

        grant_type = form["grant_type"]
        data = {**form, "client_id": self.client_id, "client_secret": self.client_secret}

        try:
            async with httpx.AsyncClient(timeout=JOBADDER_HTTP_TIMEOUT, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/token",
                    data=data,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(f"JobAdder token request ({grant_type}) failed: {type(e).__name__}")
            raise TransientNetworkError(f"JobAdder token endpoint unreachable: {type(e).__name__}")

        if response.status_code != 200:
            # Body may echo the submitted grant, so only the status is logged
            logger.error(f"JobAdder token request ({grant_type}) rejected with status {response.status_code}")
            raise InvalidTokenError(
                f"JobAdder rejected the {grant_type} grant",
                details={"status": response.status_code},
            )

        try:
            return JobAdderTokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError):
            logger.error(f"JobAdder token response ({grant_type}) could not be parsed")
            raise InvalidTokenError("Malformed token response from JobAdder")
