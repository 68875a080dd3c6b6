"""gcs-client custom exceptions.

Exception Design Principles:
1. Every failure of the storage client surfaces as a StorageError subclass
2. Split on what the caller can act on:
   - Credentials could not be turned into a token (TokenError)
   - Nothing came back from the server (HttpTransportError)
   - The object does not exist (ResourceNotFound)
   - The server answered, but not with success (UnexpectedResponse, UnexpectedJson)
   - Local setup is wrong (ConfigError)
3. Underlying library exceptions are chained, never discarded
"""


class StorageError(Exception):
    """Base exception for all gcs-client errors.

    Provides rich context and actionable suggestions beyond standard exceptions.
    All gcs-client custom exceptions inherit from this base class.
    """

    def __init__(
        self,
        message: str,  # the error message
        *,
        errors: list[str] = None,  # detailed list of errors (if available)
        suggestions: list[str] = None,  # remedial actions
        context: dict = None,  # additional detailed context
    ):
        """Initialize StorageError.

        Args:
            message: Primary error message for users
            errors: List of specific error details
            suggestions: List of actionable suggestions for resolution
            context: Additional context information as key-value pairs
        """
        super().__init__(message)
        self.message = message
        self.errors = errors or []
        self.suggestions = suggestions or []
        self.context = context or {}


class ConfigError(StorageError):
    """Application configuration errors - recoverable by user reconfiguration.

    Covers setup issues that prevent a token generator from being built:
    - Missing or malformed credentials files
    - Unsupported credential types

    Runtime token endpoint failures are TokenError, not ConfigError.
    """

    pass


class TokenError(StorageError):
    """Minting a new access token failed.

    Raised at client construction and whenever an expired token could not
    be replaced. The token endpoint URL is carried in ``context`` when known.
    """

    pass


class HttpTransportError(StorageError):
    """Network or IO failure, including failure to read a response body.

    No URL is attached; the caller already knows which request it made.
    """

    pass


class ResourceNotFound(StorageError):
    """The storage API answered 404 for ``url``."""

    def __init__(self, url: str):
        super().__init__(
            f"Resource not found: {url}",
            suggestions=["Check the bucket and object names"],
            context={"url": url},
        )
        self.url = url


class UnexpectedResponse(StorageError):
    """Any non-2xx, non-404 answer; ``body`` is the raw response text."""

    def __init__(self, url: str, body: str):
        super().__init__(
            f"Unexpected response from {url}: {body}",
            errors=[body],
            context={"url": url},
        )
        self.url = url
        self.body = body


class UnexpectedJson(StorageError):
    """A 2xx body that is not the expected JSON, or that embeds an error.

    ``type_name`` names the type the caller asked the body to decode into.
    """

    def __init__(self, type_name: str, url: str, details: str):
        super().__init__(
            f"Unexpected JSON decoding {type_name} from {url}: {details}",
            errors=[details],
            context={"url": url, "type_name": type_name},
        )
        self.type_name = type_name
        self.url = url
        self.details = details
