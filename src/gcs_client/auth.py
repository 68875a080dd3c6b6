"""Token generators for the credential sources the storage API accepts."""

import json
import logging
import os
import time
from typing import Any

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from .config import Config
from .consts import (
    JWT_ASSERTION_LIFETIME_SECONDS,
    JWT_BEARER_GRANT_TYPE,
    METADATA_FLAVOR_HEADER,
    METADATA_TOKEN_URL,
    OAUTH2_TOKEN_URL,
    STORAGE_READ_WRITE_SCOPE,
)
from .exceptions import ConfigError, TokenError
from .models import Token
from .protocols import TokenGenerator

logger = logging.getLogger("gcs-client.auth")


async def _request_token(
    http_client: httpx.AsyncClient, method: str, url: str, **kwargs
) -> Token:
    """Call a token endpoint and parse its OAuth2 body into a Token.

    Raises:
        TokenError: On network failure, non-2xx status or a body without
            an access_token.
    """
    logger.debug(f"Requesting token from {url}")
    try:
        response = await http_client.request(method, url, **kwargs)
        response.raise_for_status()
        token = Token.from_response(response.json())
    except httpx.HTTPStatusError as e:
        raise TokenError(
            f"Token endpoint returned {e.response.status_code}",
            errors=[e.response.text],
            suggestions=["Check that the credentials are valid and not revoked"],
            context={"token_url": url},
        ) from e
    except httpx.HTTPError as e:
        raise TokenError(
            f"Could not reach token endpoint: {e}",
            context={"token_url": url},
        ) from e
    except (KeyError, ValueError) as e:
        raise TokenError(
            "Token endpoint returned response without access_token",
            errors=[f"Invalid token response: {e}"],
            suggestions=["This may indicate an auth server bug or API change"],
            context={"token_url": url},
        ) from e

    logger.info("Access token minted")
    return token


class StaticTokenGenerator:
    """Hands out a pre-issued access token.

    With ``expires_in`` set, every call produces a token that expires that
    many seconds from the call; otherwise tokens never expire.
    """

    def __init__(self, access_token: str, expires_in: int | None = None):
        self.access_token = access_token
        self.expires_in = expires_in

    async def get(self, http_client: httpx.AsyncClient) -> Token:
        if self.expires_in is None:
            return Token(access_token=self.access_token)
        return Token.from_response(
            {"access_token": self.access_token, "expires_in": self.expires_in}
        )


class MetadataServerTokenGenerator:
    """Fetches tokens for the default service account of a compute instance."""

    def __init__(self, url: str = METADATA_TOKEN_URL):
        self.url = url

    async def get(self, http_client: httpx.AsyncClient) -> Token:
        return await _request_token(
            http_client, "GET", self.url, headers=METADATA_FLAVOR_HEADER
        )


class AuthorizedUserTokenGenerator:
    """Exchanges a user refresh token (``gcloud auth`` credentials)."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        token_url: str = OAUTH2_TOKEN_URL,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.token_url = token_url

    async def get(self, http_client: httpx.AsyncClient) -> Token:
        return await _request_token(
            http_client,
            "POST",
            self.token_url,
            data={
                "grant_type": "refresh_token",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": self.refresh_token,
            },
        )


class ServiceAccountTokenGenerator:
    """Signs a JWT assertion with a service account key and trades it for a token."""

    def __init__(
        self,
        client_email: str,
        private_key: str,
        private_key_id: str | None = None,
        token_url: str = OAUTH2_TOKEN_URL,
        scopes: list[str] | None = None,
    ):
        self.client_email = client_email
        self.private_key = private_key
        self.private_key_id = private_key_id
        self.token_url = token_url
        self.scopes = scopes or [STORAGE_READ_WRITE_SCOPE]

    def assertion(self, now: int | None = None) -> str:
        """Build the signed RS256 assertion.

        Raises:
            TokenError: If the private key cannot sign.
        """
        now = int(time.time()) if now is None else now
        claims = {
            "iss": self.client_email,
            "scope": " ".join(self.scopes),
            "aud": self.token_url,
            "iat": now,
            "exp": now + JWT_ASSERTION_LIFETIME_SECONDS,
        }
        headers = {"kid": self.private_key_id} if self.private_key_id else None
        try:
            return jwt.encode(
                claims, self.private_key, algorithm="RS256", headers=headers
            )
        except JOSEError as e:
            raise TokenError(
                f"Could not sign assertion for {self.client_email}",
                errors=[str(e)],
                suggestions=["Check the private_key in the credentials file"],
                context={"client_email": self.client_email},
            ) from e

    async def get(self, http_client: httpx.AsyncClient) -> Token:
        return await _request_token(
            http_client,
            "POST",
            self.token_url,
            data={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": self.assertion()},
        )


def _load_credentials(credentials_file: str) -> dict[str, Any]:
    """Load credentials from a JSON file."""
    logger.debug(f"Loading credentials from {credentials_file}")

    try:
        credentials_path = os.path.expanduser(credentials_file)
        with open(credentials_path) as f:
            return json.load(f)

    except (FileNotFoundError, PermissionError) as e:
        raise ConfigError(
            f"Credentials file not found: {credentials_file}",
            suggestions=[
                f"Create credentials file at {credentials_file}",
                "Check file permissions",
            ],
            context={"credentials_path": credentials_file},
        ) from e
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"Invalid JSON in credentials file: {credentials_file}",
            errors=[f"JSON error: {e.msg}"],
            suggestions=["Fix JSON syntax in credentials file"],
            context={"credentials_path": credentials_file},
        ) from e


def token_generator_from_config(config: Config) -> TokenGenerator:
    """Pick a token generator for the configured credential source.

    Uses the credentials file when set, otherwise the metadata server.

    Raises:
        ConfigError: If the credentials file is unreadable or unsupported.
    """
    if not config.credentials_file:
        logger.debug("No credentials file configured, using metadata server")
        return MetadataServerTokenGenerator(config.metadata_token_url)

    credentials = _load_credentials(config.credentials_file)
    credential_type = credentials.get("type")
    try:
        if credential_type == "service_account":
            return ServiceAccountTokenGenerator(
                client_email=credentials["client_email"],
                private_key=credentials["private_key"],
                private_key_id=credentials.get("private_key_id"),
                token_url=credentials.get("token_uri", config.token_url),
                scopes=config.scopes,
            )
        if credential_type == "authorized_user":
            return AuthorizedUserTokenGenerator(
                client_id=credentials["client_id"],
                client_secret=credentials["client_secret"],
                refresh_token=credentials["refresh_token"],
                token_url=config.token_url,
            )
    except KeyError as e:
        raise ConfigError(
            f"Credentials file is missing a required field: {config.credentials_file}",
            errors=[f"Missing required field: {e}"],
            context={
                "credentials_path": config.credentials_file,
                "type": credential_type,
            },
        ) from e

    raise ConfigError(
        f"Unsupported credentials type: {credential_type!r}",
        suggestions=["Use a service_account or authorized_user credentials file"],
        context={"credentials_path": config.credentials_file},
    )
