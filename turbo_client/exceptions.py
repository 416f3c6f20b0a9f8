"""
Turbo Client - Exception Classes

Typed exceptions for the Turbo upload and payment SDK.

Every failure is a normal raised exception; nothing here is process-fatal
and nothing is retried internally. Callers decide on retry policy.
"""

from typing import Any


class TurboError(Exception):
    """Base exception for all Turbo client errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional structured details for debugging.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, details={self.details})"


# =============================================================================
# CONFIGURATION & INPUT ERRORS
# =============================================================================


class ConfigurationError(TurboError):
    """
    Raised when the client is misconfigured.

    Check the TurboConfig fields and initialization parameters.
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.config_key = config_key
        full_details = details or {}
        if config_key:
            full_details["config_key"] = config_key
        super().__init__(message, full_details)


class ValidationError(TurboError):
    """
    Raised when required input is missing or malformed.

    Examples:
    - upload() called with neither data nor a data reader
    - a wallet key that cannot be parsed
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.field = field
        full_details = details or {}
        if field:
            full_details["field"] = field
        super().__init__(message, full_details)


# =============================================================================
# WALLET ERRORS
# =============================================================================


class WalletError(TurboError):
    """Base class for wallet-related errors."""

    pass


class WalletKeyError(WalletError):
    """Raised when the wallet's key material is unusable (e.g. no address can be derived)."""

    def __init__(
        self,
        message: str = "Wallet key material is corrupt or unavailable.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)


# =============================================================================
# STAGE ERRORS
# =============================================================================


class StageError(TurboError):
    """
    Raised when one stage of an upload fails.

    The original exception is kept on ``cause`` and chained as ``__cause__``.
    """

    default_stage = ""

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize with stage context.

        Args:
            message: Description of the failure.
            stage: Stage name ("signing" or "uploading").
            cause: The underlying exception, if any.
            details: Optional additional details.
        """
        self.stage = stage or self.default_stage
        self.cause = cause
        full_details = details or {}
        full_details["stage"] = self.stage
        if cause is not None:
            full_details["cause"] = repr(cause)
        super().__init__(message, full_details)


class SigningError(StageError):
    """
    Raised when a signer fails to produce a signature or a signed data item.

    A signer that returns an empty signed item binary is treated the same way.
    """

    default_stage = "signing"


class UploadError(StageError):
    """Raised when a signed data item cannot be delivered to the upload service."""

    default_stage = "uploading"


# =============================================================================
# TRANSPORT ERRORS
# =============================================================================


class TransportError(TurboError):
    """Base class for HTTP transport errors."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.url = url
        full_details = details or {}
        if url:
            full_details["url"] = url
        super().__init__(message, full_details)


class ServiceUnavailableError(TransportError):
    """
    Raised when a Turbo service cannot be reached.

    The request never produced an HTTP response (DNS, connect, read timeout...).
    """

    def __init__(
        self,
        url: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or f"Turbo service unavailable at {url}", url, details)


class HTTPStatusError(TransportError):
    """Raised when a Turbo service answers with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        body: str,
        url: str | None = None,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize with the failed response.

        Args:
            status_code: HTTP status code returned by the service.
            body: Raw response body.
            url: The requested URL.
            message: Optional custom message.
            details: Optional additional details.
        """
        self.status_code = status_code
        self.body = body
        full_details = details or {}
        full_details["status_code"] = status_code
        default_msg = f"HTTP {status_code}: {body}" if body else f"HTTP {status_code}"
        super().__init__(message or default_msg, url, full_details)


class ResponseDecodeError(TransportError):
    """Raised when a successful response body is not the JSON we expect."""

    def __init__(
        self,
        body: str,
        url: str | None = None,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.body = body
        super().__init__(message or "Failed to decode JSON response", url, details)
