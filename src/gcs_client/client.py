"""Storage client: authenticated low-level calls to the storage API."""

import logging
from collections.abc import AsyncIterable, AsyncIterator, Mapping
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import Config, get_config
from .consts import USER_AGENT
from .exceptions import (
    HttpTransportError,
    ResourceNotFound,
    TokenError,
    UnexpectedJson,
    UnexpectedResponse,
)
from .lock import TokenCell
from .models import AccessToken, ErrorEnvelope, Token
from .protocols import TokenGenerator

logger = logging.getLogger("gcs-client.client")

R = TypeVar("R")

Query = Mapping[str, Any] | list[tuple[str, Any]] | BaseModel | None


def _query_params(query: Query) -> Any:
    """Serialize a query into httpx params, dropping unset values."""
    if query is None:
        return None
    if isinstance(query, BaseModel):
        return query.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(query, Mapping):
        return {key: value for key, value in query.items() if value is not None}
    return [(key, value) for key, value in query if value is not None]


class BodyStream:
    """Single-pass async iterator over a streamed response body.

    Closing it closes the underlying response, even before the first chunk
    is read. Once closed, exhausted or failed it yields nothing more.
    """

    def __init__(self, response: httpx.Response):
        self._response = response
        self._chunks = response.aiter_bytes()
        self._closed = False

    def __aiter__(self) -> "BodyStream":
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            raise
        except httpx.HTTPError as e:
            await self.aclose()
            raise HttpTransportError(f"Reading response body failed: {e}") from e

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._chunks.aclose()
        await self._response.aclose()

    async def __aenter__(self) -> "BodyStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


class StorageClient:
    """Storage API client with bearer authentication.

    Responsibilities:
    - Keep a valid access token, minting a new one when the cached one expires
    - Issue DELETE/POST/GET requests with the token attached
    - Turn responses into payloads or typed StorageError subclasses

    Build instances with ``await StorageClient.create(...)`` so the first
    token is minted before the client is used.
    """

    def __init__(
        self,
        token_generator: TokenGenerator,
        token: Token,
        http_client: httpx.AsyncClient,
        *,
        owns_http_client: bool = False,
    ):
        """Initialize StorageClient.

        Args:
            token_generator: Source of fresh tokens.
            token: Initial, already minted token.
            http_client: HTTP transport for storage and token calls.
            owns_http_client: Whether aclose() should close http_client.
        """
        self.token_generator = token_generator
        self.http_client = http_client
        self.token_cell = TokenCell(token)
        self._owns_http_client = owns_http_client

    @classmethod
    async def create(
        cls,
        token_generator: TokenGenerator,
        config: Config | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "StorageClient":
        """Create a client holding a freshly minted token.

        Args:
            token_generator: Source of fresh tokens.
            config: Config instance. If None, uses get_config().
            http_client: HTTP client. If None, creates a new one that the
                storage client owns and closes.

        Raises:
            TokenError: If the initial token cannot be minted.
        """
        owns_http_client = http_client is None
        if owns_http_client:
            config = config or get_config()
            http_client = httpx.AsyncClient(
                headers={"User-Agent": USER_AGENT},
                timeout=config.timeout_seconds,
                follow_redirects=True,
            )

        try:
            token = await cls._mint(token_generator, http_client)
        except TokenError:
            if owns_http_client:
                await http_client.aclose()
            raise

        logger.info("Storage client created")
        return cls(
            token_generator,
            token,
            http_client,
            owns_http_client=owns_http_client,
        )

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "StorageClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @staticmethod
    async def _mint(
        token_generator: TokenGenerator, http_client: httpx.AsyncClient
    ) -> Token:
        try:
            return await token_generator.get(http_client)
        except TokenError:
            raise
        except Exception as e:
            raise TokenError(f"Token generator failed: {e}") from e

    async def refresh_token(self) -> AccessToken:
        """Get a currently valid access token.

        The cached token is returned without any network call while valid.
        Otherwise a new token is minted outside the lock and then installed.
        Concurrent callers may each mint; the last install wins.

        Raises:
            TokenError: If a new token cannot be minted.
        """
        async with self.token_cell.read() as token:
            if token.is_valid():
                return token.bearer()

        logger.debug("Cached token expired, minting a new one")
        token = await self._mint(self.token_generator, self.http_client)
        await self.token_cell.replace(token)
        return token.bearer()

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send an authenticated request and return the unread response."""
        token = await self.refresh_token()
        request = self.http_client.build_request(
            method, url, headers={"Authorization": f"Bearer {token}"}, **kwargs
        )

        logger.debug(f"{method} {url}")
        try:
            return await self.http_client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise HttpTransportError(f"{method} {url} failed: {e}") from e

    @staticmethod
    async def _success_response(url: str, response: httpx.Response) -> httpx.Response:
        """Pass a 2xx response through untouched, raise for anything else.

        The response is closed before raising.

        Raises:
            ResourceNotFound: For HTTP 404.
            UnexpectedResponse: For any other non-2xx status, with the body text.
            HttpTransportError: If the error body cannot be read.
        """
        if response.is_success:
            return response

        try:
            if response.status_code == httpx.codes.NOT_FOUND:
                raise ResourceNotFound(url)

            try:
                await response.aread()
            except httpx.HTTPError as e:
                raise HttpTransportError(
                    f"Reading error body from {url} failed: {e}"
                ) from e
            raise UnexpectedResponse(url, response.text)
        finally:
            await response.aclose()

    async def _execute(self, method: str, url: str, **kwargs) -> None:
        """Send a request whose success payload is discarded."""
        response = await self._send(method, url, **kwargs)
        try:
            await self._success_response(url, response)
        finally:
            await response.aclose()
        logger.debug(f"{method} {url} successful")

    async def delete(self, url: str) -> None:
        """Delete the resource at ``url``.

        Raises:
            TokenError, HttpTransportError, ResourceNotFound, UnexpectedResponse
        """
        await self._execute("DELETE", url)

    async def post(self, url: str, body: AsyncIterable[bytes] | bytes) -> None:
        """Post ``body`` to ``url``, streaming it when it is an async iterable.

        A failure raised by the body iterator while uploading surfaces as
        HttpTransportError.

        Raises:
            TokenError, HttpTransportError, ResourceNotFound, UnexpectedResponse
        """
        if isinstance(body, AsyncIterable):
            body = self._guard_body(body)
        await self._execute("POST", url, content=body)

    @staticmethod
    async def _guard_body(body: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
        try:
            async for chunk in body:
                yield chunk
        except Exception as e:
            raise HttpTransportError(f"Reading request body failed: {e}") from e

    async def get_as_stream(self, url: str, query: Query = None) -> "BodyStream":
        """Get ``url`` and return its body as a single-pass stream of chunks.

        Errors up to and including the status check are raised here. A read
        failure while iterating raises HttpTransportError from the iterator
        and ends it. The response is closed when iteration ends or when the
        caller closes the stream, whether or not a chunk was read.

        Raises:
            TokenError, HttpTransportError, ResourceNotFound, UnexpectedResponse
        """
        response = await self._send("GET", url, params=_query_params(query))
        await self._success_response(url, response)
        logger.debug(f"GET {url} streaming")
        return BodyStream(response)

    async def get_as_json(
        self, url: str, result_type: type[R], query: Query = None
    ) -> R:
        """Get ``url`` and decode its JSON body as ``result_type``.

        Args:
            url: Complete URL to fetch.
            result_type: Any type pydantic can validate into.
            query: Query parameters.

        Returns:
            The decoded body.

        Raises:
            TokenError, HttpTransportError, ResourceNotFound, UnexpectedResponse
            UnexpectedJson: If the body is not JSON, carries an error envelope
                or does not match result_type.
        """
        response = await self._send("GET", url, params=_query_params(query))
        await self._success_response(url, response)
        try:
            await response.aread()
        except httpx.HTTPError as e:
            raise HttpTransportError(f"Reading body from {url} failed: {e}") from e
        finally:
            await response.aclose()

        logger.debug(f"GET {url} successful")
        return self._decode_json(url, result_type, response)

    @staticmethod
    def _decode_json(url: str, result_type: type[R], response: httpx.Response) -> R:
        type_name = getattr(result_type, "__name__", repr(result_type))
        try:
            data = response.json()
        except ValueError as e:
            raise UnexpectedJson(type_name, url, f"Invalid JSON: {e}") from e

        envelope = ErrorEnvelope.detect(data)
        if envelope is not None:
            raise UnexpectedJson(type_name, url, str(envelope.error))

        try:
            return TypeAdapter(result_type).validate_python(data)
        except ValidationError as e:
            raise UnexpectedJson(type_name, url, str(e)) from e
