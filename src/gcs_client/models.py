from datetime import UTC, datetime, timedelta
from typing import Any, NewType

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .consts import DEFAULT_TOKEN_EXPIRY_SECONDS, TOKEN_REFRESH_BUFFER_SECONDS

# Bearer string sent in the Authorization header
AccessToken = NewType("AccessToken", str)


# =============================================================================
# TOKENS
# =============================================================================


class Token(BaseModel):
    """An access token and the moment it stops being usable.

    Tokens are immutable; a refresh produces a new Token rather than
    updating an existing one.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., description="Opaque credential value")
    token_type: str = Field("Bearer", description="OAuth2 token type")
    expires_at: datetime | None = Field(
        None, description="UTC expiry time; None means the token never expires"
    )

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "Token":
        """Build a Token from an OAuth2 token endpoint body.

        Args:
            data: Decoded JSON with ``access_token`` and optionally
                ``expires_in`` and ``token_type``.

        Raises:
            KeyError: If ``access_token`` is missing.
        """
        expires_in = data.get("expires_in", DEFAULT_TOKEN_EXPIRY_SECONDS)
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            expires_at=datetime.now(UTC) + timedelta(seconds=int(expires_in)),
        )

    def is_valid(self, now: datetime | None = None) -> bool:
        """Whether the token can still be sent without refreshing first."""
        if self.expires_at is None:
            return True
        now = now or datetime.now(UTC)
        refresh_time = self.expires_at - timedelta(
            seconds=TOKEN_REFRESH_BUFFER_SECONDS
        )
        return now < refresh_time

    def bearer(self) -> AccessToken:
        return AccessToken(self.access_token)

    def __repr__(self) -> str:
        return f"Token(token_type='{self.token_type}', expires_at={self.expires_at!r})"


# =============================================================================
# JSON ERROR ENVELOPE
# =============================================================================
# The storage API reports failures as {"error": {...}}, sometimes with HTTP 200


class ApiErrorDetail(BaseModel):
    model_config = ConfigDict(extra="allow")

    domain: str | None = None
    reason: str | None = None
    message: str | None = None


class ApiError(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: int | None = None
    message: str | None = None
    errors: list[ApiErrorDetail] = Field(default_factory=list)

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.code}: {self.message}"
        return str(self.message)


class ErrorEnvelope(BaseModel):
    """Body carrying an error marker instead of a success payload."""

    error: ApiError

    @classmethod
    def detect(cls, data: Any) -> "ErrorEnvelope | None":
        """Return the envelope if ``data`` carries an error marker, else None."""
        if not isinstance(data, dict) or "error" not in data:
            return None
        error = data["error"]
        try:
            return cls(error=ApiError.model_validate(error))
        except ValidationError:
            return cls(error=ApiError(message=str(error)))
