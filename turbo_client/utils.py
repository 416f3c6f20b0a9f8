"""
Turbo Client - Utility Functions

Helper functions for:
- base64url encoding used by Arweave identifiers
- Service URL validation
- Logging utilities
"""

import base64
import logging


# =============================================================================
# ENCODING UTILITIES
# =============================================================================


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url, the Arweave identifier format."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """
    Decode an unpadded (or padded) base64url string.

    Raises:
        ValueError: If the value is not valid base64url.
    """
    padding = "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(value + padding)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid base64url value: {value!r}") from e


# =============================================================================
# LOGGING UTILITIES
# =============================================================================


class UploadLogger:
    """
    Structured logger for signing and upload operations.

    Records carry an ``event`` field in ``extra`` so they can be
    filtered or shipped by whatever handler the application installs.
    """

    def __init__(self, logger_name: str = "turbo.uploads") -> None:
        self.logger = logging.getLogger(logger_name)

    def log_signing_start(self, total_bytes: int, tag_count: int) -> None:
        self.logger.debug(
            "Signing data item",
            extra={
                "event": "signing_start",
                "total_bytes": total_bytes,
                "tag_count": tag_count,
            },
        )

    def log_signing_success(self, item_id: str, size: int) -> None:
        self.logger.info(
            "Data item signed",
            extra={"event": "signing_success", "item_id": item_id, "size": size},
        )

    def log_upload_start(self, url: str, size: int) -> None:
        self.logger.debug(
            "Uploading data item",
            extra={"event": "upload_start", "url": self._redact_url(url), "size": size},
        )

    def log_upload_success(self, item_id: str, owner: str) -> None:
        self.logger.info(
            "Upload successful",
            extra={"event": "upload_success", "item_id": item_id, "owner": owner},
        )

    def log_failure(self, stage: str, error: BaseException) -> None:
        """Log a failed stage."""
        self.logger.warning(
            f"{stage.capitalize()} failed",
            extra={
                "event": f"{stage}_failure",
                "stage": stage,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact query parameters (wallet addresses) for logging."""
        if "?" in url:
            base, _ = url.split("?", 1)
            return f"{base}?[REDACTED]"
        return url


# =============================================================================
# VALIDATION UTILITIES
# =============================================================================


def validate_service_url(url: str) -> str:
    """
    Validate and normalize a Turbo service URL.

    Args:
        url: The service base URL to validate.

    Returns:
        Normalized URL without trailing slash.

    Raises:
        ValueError: If URL is invalid.
    """
    if not url:
        raise ValueError("Service URL cannot be empty")

    url = url.rstrip("/")

    if not url.startswith(("http://", "https://")):
        raise ValueError(f"Invalid URL scheme: {url}")

    return url
