"""
Turbo Client - Core Module

The Turbo client implementation providing:
- Configuration with production / development presets
- An httpx transport shared by the payment and upload services
- Unauthenticated operations (balance, upload costs, pre-signed uploads)
- Authenticated sign-then-upload with lifecycle events
- A synchronous wrapper for non-async callers

Usage:
    from turbo_client import TurboFactory

    async with TurboFactory.authenticated(private_key=jwk) as turbo:
        balance = await turbo.get_balance()
        result = await turbo.upload(b"Hello, Turbo!", tags=[("Content-Type", "text/plain")])
"""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from typing import IO, Any, TypeVar
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .events import EventKind, Stage, UploadEvents
from .exceptions import (
    ConfigurationError,
    HTTPStatusError,
    ResponseDecodeError,
    ServiceUnavailableError,
    SigningError,
    UploadError,
    ValidationError,
)
from .models import Balance, DataItem, Tag, TokenType, UploadCost, UploadResult
from .signers import Signer, create_signer
from .utils import UploadLogger, validate_service_url

logger = logging.getLogger("turbo")

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

PRODUCTION_PAYMENT_URL = "https://payment.ardrive.io"
PRODUCTION_UPLOAD_URL = "https://upload.ardrive.io"
DEVELOPMENT_PAYMENT_URL = "https://payment.ardrive.dev"
DEVELOPMENT_UPLOAD_URL = "https://upload.ardrive.dev"

TagsInput = Iterable[Tag | dict[str, str] | tuple[str, str]]


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class TurboConfig:
    """
    Configuration for the Turbo clients.

    Every field has a production default; nothing is read from the
    environment. Use the presets or explicit arguments to point the
    client elsewhere.
    """

    payment_url: str = PRODUCTION_PAYMENT_URL
    upload_url: str = PRODUCTION_UPLOAD_URL
    token: TokenType = TokenType.ARWEAVE

    timeout: float = 30.0
    upload_chunk_size: int = 65536

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        for key in ("payment_url", "upload_url"):
            try:
                setattr(self, key, validate_service_url(getattr(self, key)))
            except ValueError as e:
                raise ConfigurationError(str(e), config_key=key) from e

        try:
            self.token = TokenType(self.token)
        except ValueError as e:
            raise ConfigurationError(f"Unknown token type: {self.token}", config_key="token") from e

        if self.timeout <= 0:
            raise ConfigurationError("Timeout must be positive", config_key="timeout")
        if self.upload_chunk_size <= 0:
            raise ConfigurationError(
                "Upload chunk size must be positive", config_key="upload_chunk_size"
            )

    @classmethod
    def production(cls, token: TokenType | str = TokenType.ARWEAVE) -> TurboConfig:
        """Production service endpoints."""
        return cls(
            payment_url=PRODUCTION_PAYMENT_URL,
            upload_url=PRODUCTION_UPLOAD_URL,
            token=token,
        )

    @classmethod
    def development(cls, token: TokenType | str = TokenType.ARWEAVE) -> TurboConfig:
        """Development service endpoints."""
        return cls(
            payment_url=DEVELOPMENT_PAYMENT_URL,
            upload_url=DEVELOPMENT_UPLOAD_URL,
            token=token,
        )


# =============================================================================
# TRANSPORT
# =============================================================================


async def stream_file(stream: IO[bytes], chunk_size: int) -> AsyncIterator[bytes]:
    """
    Yield ``stream`` in chunks, reading off the event loop.

    A read already running in a worker thread cannot be interrupted. On
    cancellation it is awaited to completion before ``CancelledError``
    propagates, so the caller never closes the stream mid-read.
    """
    while True:
        read = asyncio.ensure_future(asyncio.to_thread(stream.read, chunk_size))
        try:
            chunk = await asyncio.shield(read)
        except asyncio.CancelledError:
            await asyncio.wait({read})
            raise
        if not chunk:
            return
        yield chunk


class TurboHTTPClient:
    """
    Request execution against the payment and upload services.

    One ``httpx.AsyncClient`` is shared by every call; it is safe for
    concurrent requests. Non-2xx responses raise ``HTTPStatusError`` and
    connection failures raise ``ServiceUnavailableError``.
    """

    def __init__(self, config: TurboConfig, client: httpx.AsyncClient | None = None) -> None:
        """
        Initialize the transport.

        Args:
            config: Service URLs and timeouts.
            client: Optional pre-built httpx client. It is used as-is and
                never closed by this transport.
        """
        self._config = config
        self._client = client
        self._owns_client = client is None

    @property
    def payment_url(self) -> str:
        return self._config.payment_url

    @property
    def upload_url(self) -> str:
        return self._config.upload_url

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def __aenter__(self) -> TurboHTTPClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        """Create the underlying httpx client."""
        if self._client is not None:
            return

        timeout = httpx.Timeout(
            timeout=self._config.timeout,
            connect=5.0,
            read=self._config.timeout,
            write=self._config.timeout,
            pool=5.0,
        )
        self._client = httpx.AsyncClient(timeout=timeout)
        self._owns_client = True

    async def close(self) -> None:
        """Close the underlying httpx client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def get(self, url: str, headers: dict[str, str] | None = None) -> httpx.Response:
        return await self._request("GET", url, headers=headers)

    async def post(
        self,
        url: str,
        content: bytes | AsyncIterator[bytes],
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """POST ``content``; an async iterator is streamed chunk by chunk."""
        return await self._request("POST", url, content=content, headers=headers)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is None:
            raise ConfigurationError("Client not connected. Call connect() first.")

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise ServiceUnavailableError(url) from e

        logger.debug(f"{method} {url} -> {response.status_code}")

        if not response.is_success:
            raise HTTPStatusError(response.status_code, response.text, url=url)

        return response

    @staticmethod
    def decode(response: httpx.Response, model: type[M], url: str | None = None) -> M:
        """
        Decode a JSON response body into ``model``.

        Raises:
            ResponseDecodeError: If the body is not JSON or does not match the model.
        """
        try:
            return model.model_validate(response.json())
        except (PydanticValidationError, ValueError) as e:
            raise ResponseDecodeError(
                response.text,
                url=url,
                message=f"Failed to decode {model.__name__} response: {e}",
            ) from e


# =============================================================================
# UNAUTHENTICATED CLIENT
# =============================================================================


class TurboUnauthenticatedClient:
    """
    Access to Turbo operations that need no wallet.

    Usage:
        async with TurboUnauthenticatedClient() as turbo:
            balance = await turbo.get_balance("vLRHFqCw1uHu75xqB4fCDW-QxpkpJxBtFD9g4QYUbfw")
            costs = await turbo.get_upload_costs([1024, 1048576])
    """

    def __init__(
        self,
        config: TurboConfig | None = None,
        *,
        http: TurboHTTPClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Service configuration (defaults to production).
            http: Optional transport; built from ``config`` when omitted.
        """
        self._config = config or TurboConfig()
        self._http = http or TurboHTTPClient(self._config)
        self._upload_logger = UploadLogger()

    @property
    def config(self) -> TurboConfig:
        return self._config

    async def __aenter__(self) -> TurboUnauthenticatedClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        await self._http.connect()

    async def close(self) -> None:
        await self._http.close()

    async def get_balance(self, address: str) -> Balance:
        """
        Get the credit balance of ``address``.

        A wallet the payment service has never seen (404) has a zero balance.

        Args:
            address: Native wallet address.

        Returns:
            The balance, ``Balance()`` when the account does not exist.

        Raises:
            ValidationError: If the address is empty.
            TransportError: On network, status or decode failure.
        """
        if not address:
            raise ValidationError("Address is required", field="address")

        url = (
            f"{self._http.payment_url}/v1/account/balance/{self._config.token.value}"
            f"?{urlencode({'address': address})}"
        )
        try:
            response = await self._http.get(url)
        except HTTPStatusError as e:
            if e.status_code == 404:
                logger.debug(f"No account for {address}, reporting zero balance")
                return Balance()
            raise

        return self._http.decode(response, Balance, url=url)

    async def get_upload_costs(self, byte_counts: Sequence[int]) -> list[UploadCost]:
        """
        Get the price of uploading each byte count.

        One request is made per count, in order. The first failure aborts
        the batch and is raised; no partial list is returned.

        Args:
            byte_counts: Sizes to price.

        Returns:
            Costs in the same order as ``byte_counts``.
        """
        for count in byte_counts:
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise ValidationError(
                    f"Byte counts must be non-negative integers, got {count!r}",
                    field="byte_counts",
                )

        costs = []
        for count in byte_counts:
            url = f"{self._http.payment_url}/v1/price/bytes/{count}"
            response = await self._http.get(url)
            costs.append(self._http.decode(response, UploadCost, url=url))
        return costs

    async def upload_signed_data_item(
        self,
        stream_factory: Callable[[], IO[bytes]],
        size_factory: Callable[[], int],
        events: UploadEvents | None = None,
    ) -> UploadResult:
        """
        Upload a pre-signed data item.

        Args:
            stream_factory: Returns a fresh readable binary stream of the
                signed item on each call. The stream is closed afterwards.
            size_factory: Returns the item's size in bytes.
            events: Optional lifecycle callbacks.

        Returns:
            The upload service's receipt.

        Raises:
            ValidationError: If a factory is missing.
            UploadError: On any failure, with the original exception as cause.
        """
        if stream_factory is None or size_factory is None:
            raise ValidationError(
                "Both stream_factory and size_factory are required", field="stream_factory"
            )

        events = events or UploadEvents()
        url = f"{self._http.upload_url}/v1/tx"
        stream: IO[bytes] | None = None

        try:
            stream = stream_factory()
            size = size_factory()

            self._upload_logger.log_upload_start(url, size)
            events.emit(EventKind.UPLOAD_START, Stage.UPLOADING, size)
            events.progress(Stage.UPLOADING, size, 0)

            response = await self._http.post(
                url,
                content=stream_file(stream, self._config.upload_chunk_size),
                headers={
                    "Content-Type": "application/octet-stream",
                    "Content-Length": str(size),
                },
            )
            result = self._http.decode(response, UploadResult, url=url)

            self._upload_logger.log_upload_success(result.id, result.owner)
            events.emit(EventKind.UPLOAD_SUCCESS, Stage.UPLOADING, result)
            events.progress(Stage.UPLOADING, size, size)
        except asyncio.CancelledError as e:
            self._upload_logger.log_failure(Stage.UPLOADING.value, e)
            events.stage_error(Stage.UPLOADING, e)
            raise
        except Exception as e:
            error = e if isinstance(e, UploadError) else UploadError(
                f"Failed to upload data item: {e}", cause=e
            )
            self._upload_logger.log_failure(Stage.UPLOADING.value, error)
            events.stage_error(Stage.UPLOADING, error)
            if error is e:
                raise
            raise error from e
        finally:
            if stream is not None:
                stream.close()

        return result


# =============================================================================
# AUTHENTICATED CLIENT
# =============================================================================


class TurboAuthenticatedClient(TurboUnauthenticatedClient):
    """
    Turbo client bound to one wallet signer.

    The signer is fixed for the client's lifetime. Uploads through one
    client are not serialized internally; callers that need a strict
    signing order must await them one at a time.
    """

    def __init__(
        self,
        signer: Signer,
        config: TurboConfig | None = None,
        *,
        http: TurboHTTPClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            signer: Wallet adapter used for every upload.
            config: Service configuration. Its token is aligned to the signer's.
            http: Optional transport.
        """
        if not isinstance(signer, Signer):
            raise ValidationError("A Signer is required", field="signer")

        config = config or TurboConfig()
        if config.token != signer.token_type:
            config = replace(config, token=signer.token_type)

        super().__init__(config, http=http)
        self._signer = signer

    @property
    def signer(self) -> Signer:
        return self._signer

    def get_signer(self) -> Signer:
        """Return the wallet signer this client was built with."""
        return self._signer

    async def get_balance(self, address: str | None = None) -> Balance:
        """
        Get the credit balance of the signer's wallet, or of ``address``.

        Raises:
            WalletKeyError: If the signer cannot produce its address.
        """
        if address is None:
            address = self._signer.get_native_address()
        return await super().get_balance(address)

    async def upload(
        self,
        data: bytes | None = None,
        *,
        data_reader: IO[bytes] | None = None,
        tags: TagsInput | None = None,
        target: str | None = None,
        anchor: str | None = None,
        events: UploadEvents | None = None,
    ) -> UploadResult:
        """
        Sign ``data`` as a data item and upload it.

        Args:
            data: Payload bytes (may be empty). Takes precedence over ``data_reader``.
            data_reader: Readable binary stream, drained fully when ``data`` is None.
            tags: Ordered metadata tags; ``Tag``, dicts or ``(name, value)`` pairs.
            target: Optional base64url target address.
            anchor: Optional 32-byte anchor.
            events: Optional lifecycle callbacks.

        Returns:
            The upload service's receipt.

        Raises:
            ValidationError: If neither data source is given or input is malformed.
            SigningError: If signing fails. Nothing is uploaded.
            UploadError: If the upload fails.
        """
        payload = await self._read_payload(data, data_reader)
        try:
            item = DataItem.create(payload, tags, target, anchor)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid data item: {e}", field="tags") from e

        events = events or UploadEvents()
        total = len(payload)

        self._upload_logger.log_signing_start(total, len(item.tags))
        events.progress(Stage.SIGNING, total, 0)

        try:
            signed = await asyncio.to_thread(self._signer.sign_data_item, item)
            if signed is None or not signed.binary:
                raise SigningError("Signer returned an empty data item")

            self._upload_logger.log_signing_success(signed.id, signed.size)
            events.emit(EventKind.SIGNING_SUCCESS, Stage.SIGNING, signed)
            events.progress(Stage.SIGNING, total, total)
        except asyncio.CancelledError as e:
            self._upload_logger.log_failure(Stage.SIGNING.value, e)
            events.stage_error(Stage.SIGNING, e)
            raise
        except Exception as e:
            error = e if isinstance(e, SigningError) else SigningError(
                f"Failed to sign data item: {e}", cause=e
            )
            self._upload_logger.log_failure(Stage.SIGNING.value, error)
            events.stage_error(Stage.SIGNING, error)
            if error is e:
                raise
            raise error from e

        binary = signed.binary
        return await self.upload_signed_data_item(
            lambda: io.BytesIO(binary),
            lambda: len(binary),
            events,
        )

    @staticmethod
    async def _read_payload(data: Any, data_reader: IO[bytes] | None) -> bytes:
        if data is not None:
            if not isinstance(data, (bytes, bytearray, memoryview)):
                raise ValidationError("Data must be bytes", field="data")
            return bytes(data)

        if data_reader is not None:
            try:
                payload = await asyncio.to_thread(data_reader.read)
            except (OSError, ValueError) as e:
                raise ValidationError(f"Failed to read data: {e}", field="data_reader") from e
            if not isinstance(payload, (bytes, bytearray)):
                raise ValidationError("Data reader must yield bytes", field="data_reader")
            return bytes(payload)

        raise ValidationError("Either data or data_reader must be provided", field="data")


# =============================================================================
# FACTORY
# =============================================================================


class TurboFactory:
    """Builds Turbo clients from configuration and key material."""

    @staticmethod
    def unauthenticated(
        config: TurboConfig | None = None,
        *,
        http: TurboHTTPClient | None = None,
    ) -> TurboUnauthenticatedClient:
        return TurboUnauthenticatedClient(config, http=http)

    @staticmethod
    def authenticated(
        *,
        signer: Signer | None = None,
        private_key: Any = None,
        token: TokenType | str | None = None,
        config: TurboConfig | None = None,
        http: TurboHTTPClient | None = None,
    ) -> TurboAuthenticatedClient:
        """
        Build an authenticated client.

        Args:
            signer: Ready-made signer; takes precedence over ``private_key``.
            private_key: JWK mapping (arweave) or hex string (Ethereum family).
            token: Token type of ``private_key``; defaults to the config's token.
            config: Service configuration.
            http: Optional transport.

        Raises:
            ValidationError: If neither signer nor private key is given, or the key is malformed.
            ConfigurationError: If the token type has no signer.
        """
        if signer is None:
            if private_key is None:
                raise ValidationError(
                    "Either signer or private_key must be provided", field="signer"
                )
            signer = create_signer(private_key, token or (config or TurboConfig()).token)
        return TurboAuthenticatedClient(signer, config, http=http)


unauthenticated = TurboFactory.unauthenticated
authenticated = TurboFactory.authenticated


# =============================================================================
# SYNCHRONOUS WRAPPER
# =============================================================================


class SyncTurboClient:
    """
    Synchronous wrapper around the async Turbo clients.

    Usage:
        with SyncTurboClient(private_key=jwk) as turbo:
            balance = turbo.get_balance()
            result = turbo.upload(b"Hello, Turbo!")
    """

    def __init__(
        self,
        client: TurboUnauthenticatedClient | None = None,
        **kwargs: Any,
    ) -> None:
        """Wrap ``client``, or build one with the factory's keyword arguments."""
        if client is None:
            if kwargs.get("signer") is not None or kwargs.get("private_key") is not None:
                client = TurboFactory.authenticated(**kwargs)
            else:
                client = TurboFactory.unauthenticated(**kwargs)
        self._async_client = client
        self._loop: asyncio.AbstractEventLoop | None = None

    def __enter__(self) -> SyncTurboClient:
        self._loop = asyncio.new_event_loop()
        self._loop.run_until_complete(self._async_client.connect())
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._loop:
            self._loop.run_until_complete(self._async_client.close())
            self._loop.close()
            self._loop = None

    def _run(self, coro: Awaitable[T]) -> T:
        if not self._loop:
            raise ConfigurationError("Client not connected. Use with statement.")
        return self._loop.run_until_complete(coro)

    def _authenticated(self) -> TurboAuthenticatedClient:
        if not isinstance(self._async_client, TurboAuthenticatedClient):
            raise ConfigurationError("This operation requires a signer")
        return self._async_client

    def get_balance(self, address: str | None = None) -> Balance:
        if address is None:
            return self._run(self._authenticated().get_balance())
        return self._run(self._async_client.get_balance(address))

    def get_upload_costs(self, byte_counts: Sequence[int]) -> list[UploadCost]:
        return self._run(self._async_client.get_upload_costs(byte_counts))

    def upload(self, data: bytes | None = None, **kwargs: Any) -> UploadResult:
        return self._run(self._authenticated().upload(data, **kwargs))

    def upload_signed_data_item(
        self,
        stream_factory: Callable[[], IO[bytes]],
        size_factory: Callable[[], int],
        events: UploadEvents | None = None,
    ) -> UploadResult:
        return self._run(
            self._async_client.upload_signed_data_item(stream_factory, size_factory, events)
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


@asynccontextmanager
async def create_client(
    signer: Signer | None = None,
    private_key: Any = None,
    **kwargs: Any,
) -> AsyncIterator[TurboUnauthenticatedClient]:
    """
    Create a connected Turbo client.

    Authenticated when a signer or private key is given, otherwise
    unauthenticated.

    Usage:
        async with create_client(private_key=jwk) as turbo:
            result = await turbo.upload(b"data")
    """
    client: TurboUnauthenticatedClient
    if signer is not None or private_key is not None:
        client = TurboFactory.authenticated(signer=signer, private_key=private_key, **kwargs)
    else:
        client = TurboFactory.unauthenticated(**kwargs)
    try:
        await client.connect()
        yield client
    finally:
        await client.close()
