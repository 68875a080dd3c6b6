"""gcs-client package

Authenticated HTTP client for the Google Cloud Storage JSON API, with
transparent access token refresh and typed response errors.
"""

from .auth import (
    AuthorizedUserTokenGenerator,
    MetadataServerTokenGenerator,
    ServiceAccountTokenGenerator,
    StaticTokenGenerator,
    token_generator_from_config,
)
from .client import BodyStream, StorageClient
from .config import Config, get_config, setup_logging
from .consts import PACKAGE_VERSION
from .exceptions import (
    ConfigError,
    HttpTransportError,
    ResourceNotFound,
    StorageError,
    TokenError,
    UnexpectedJson,
    UnexpectedResponse,
)
from .models import AccessToken, Token
from .protocols import TokenGenerator

__version__ = PACKAGE_VERSION

__all__ = [
    "__version__",
    "get_config",
    "setup_logging",
    "token_generator_from_config",
    "Config",
    "StorageClient",
    "BodyStream",
    "Token",
    "AccessToken",
    "TokenGenerator",
    "StaticTokenGenerator",
    "MetadataServerTokenGenerator",
    "AuthorizedUserTokenGenerator",
    "ServiceAccountTokenGenerator",
    "StorageError",
    "ConfigError",
    "TokenError",
    "HttpTransportError",
    "ResourceNotFound",
    "UnexpectedResponse",
    "UnexpectedJson",
]
