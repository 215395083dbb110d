"""Login proxy in front of the identity provider.

Two upstream shapes are supported. A configured ``auth_login_url`` is treated
as a sign-in gateway that accepts ``{username, password, client_id,
user_pool_id}`` and answers with ``AccessToken``/``IdToken``/``RefreshToken``.
Otherwise, with Cognito region and client id configured, the Cognito
``InitiateAuth`` API is called directly with ``USER_PASSWORD_AUTH``.

Passwords and tokens are never logged.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from typing import Any

import httpx

from docportal.common.logging import log_context
from docportal.settings import Settings

from .exceptions import IdentityProviderError, LoginNotConfiguredError, LoginRejectedError
from .schemas import LoginResponse

logger = logging.getLogger(__name__)

COGNITO_TARGET = "AWSCognitoIdentityProviderService.InitiateAuth"
COGNITO_CONTENT_TYPE = "application/x-amz-json-1.1"
_REJECTED_STATUSES = frozenset({400, 401, 403})


def cognito_secret_hash(username: str, client_id: str, client_secret: str) -> str:
    digest = hmac.new(
        client_secret.encode("utf-8"),
        (username + client_id).encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


class LoginService:
    """Exchange a username and password for provider-issued tokens."""

    def __init__(self, *, settings: Settings, client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._client = client

    @property
    def is_configured(self) -> bool:
        settings = self._settings
        if settings.auth_login_url:
            return True
        return bool(settings.cognito_endpoint and settings.cognito_client_id)

    async def login(self, username: str, password: str) -> LoginResponse:
        username = username.strip()
        if self._settings.auth_login_url:
            response = await self._login_via_gateway(username, password)
        elif self.is_configured:
            response = await self._login_via_cognito(username, password)
        else:
            raise LoginNotConfiguredError("Login is not configured")

        logger.info("auth.login.success", extra=log_context(username=response.username))
        return response

    # ---- upstreams --------------------------------------------------------

    async def _login_via_gateway(self, username: str, password: str) -> LoginResponse:
        settings = self._settings
        headers = {"Content-Type": "application/json"}
        if settings.auth_login_api_key is not None:
            headers["X-API-Key"] = settings.auth_login_api_key.get_secret_value()
        body = {
            "username": username,
            "password": password,
            "client_id": settings.cognito_client_id,
            "user_pool_id": settings.cognito_user_pool_id,
        }
        data = await self._post(str(settings.auth_login_url), json_body=body, headers=headers)

        if data.get("error"):
            logger.info(
                "auth.login.rejected",
                extra=log_context(username=username, upstream="gateway"),
            )
            raise LoginRejectedError(str(data.get("message") or "Invalid credentials"))

        return self._tokens(
            username=str(data.get("username") or username),
            access_token=data.get("AccessToken"),
            id_token=data.get("IdToken"),
            refresh_token=data.get("RefreshToken"),
            expires_in=data.get("ExpiresIn"),
        )

    async def _login_via_cognito(self, username: str, password: str) -> LoginResponse:
        settings = self._settings
        client_id = str(settings.cognito_client_id)
        parameters = {"USERNAME": username, "PASSWORD": password}
        if settings.cognito_client_secret is not None:
            parameters["SECRET_HASH"] = cognito_secret_hash(
                username,
                client_id,
                settings.cognito_client_secret.get_secret_value(),
            )
        body = {
            "AuthFlow": "USER_PASSWORD_AUTH",
            "ClientId": client_id,
            "AuthParameters": parameters,
        }
        headers = {"X-Amz-Target": COGNITO_TARGET, "Content-Type": COGNITO_CONTENT_TYPE}
        data = await self._post(str(settings.cognito_endpoint), json_body=body, headers=headers)

        if data.get("ChallengeName"):
            logger.info(
                "auth.login.challenge",
                extra=log_context(username=username, challenge=data.get("ChallengeName")),
            )
            raise LoginRejectedError("Additional authentication challenge required")

        result = data.get("AuthenticationResult") or {}
        return self._tokens(
            username=username,
            access_token=result.get("AccessToken"),
            id_token=result.get("IdToken"),
            refresh_token=result.get("RefreshToken"),
            expires_in=result.get("ExpiresIn"),
        )

    async def _post(
        self,
        url: str,
        *,
        json_body: dict[str, Any],
        headers: dict[str, str],
    ) -> dict[str, Any]:
        try:
            response = await self._client.post(
                url,
                json=json_body,
                headers=headers,
                timeout=self._settings.auth_login_timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            logger.warning("auth.login.timeout", extra=log_context(url=url))
            raise IdentityProviderError("Identity provider timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "auth.login.upstream_error",
                extra=log_context(url=url, error=type(exc).__name__),
            )
            raise IdentityProviderError("Identity provider unreachable") from exc

        if response.status_code in _REJECTED_STATUSES:
            logger.info(
                "auth.login.rejected",
                extra=log_context(url=url, status_code=response.status_code),
            )
            raise LoginRejectedError("Invalid credentials")
        if response.status_code >= 400:
            logger.warning(
                "auth.login.upstream_status",
                extra=log_context(url=url, status_code=response.status_code),
            )
            raise IdentityProviderError(f"Identity provider returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise IdentityProviderError("Identity provider returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise IdentityProviderError("Identity provider returned an unexpected body")
        return data

    @staticmethod
    def _tokens(
        *,
        username: str,
        access_token: Any,
        id_token: Any,
        refresh_token: Any,
        expires_in: Any,
    ) -> LoginResponse:
        if not access_token or not id_token:
            raise IdentityProviderError("Identity provider response is missing tokens")
        return LoginResponse(
            username=username,
            access_token=str(access_token),
            id_token=str(id_token),
            refresh_token=str(refresh_token) if refresh_token else None,
            expires_in=int(expires_in) if expires_in is not None else None,
        )


__all__ = ["LoginService", "cognito_secret_hash"]
