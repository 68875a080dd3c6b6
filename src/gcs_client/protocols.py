"""Protocol definitions for dependency injection and interface contracts."""

from typing import Protocol

import httpx

from .models import Token


class TokenGenerator(Protocol):
    """Protocol for sources of fresh access tokens."""

    async def get(self, http_client: httpx.AsyncClient) -> Token:
        """Mint a new token.

        Args:
            http_client: Transport to reach the token endpoint with.

        Returns:
            A newly issued Token.

        Raises:
            TokenError: If a token cannot be obtained.
        """
        ...
