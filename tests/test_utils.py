"""Tests for utility functions."""

import logging

import pytest

from turbo_client.utils import (
    UploadLogger,
    b64url_decode,
    b64url_encode,
    validate_service_url,
)


class TestBase64Url:
    """Tests for base64url helpers."""

    def test_encode_strips_padding(self):
        assert b64url_encode(b"\xfb\xff") == "-_8"

    def test_decode_accepts_unpadded(self):
        assert b64url_decode("-_8") == b"\xfb\xff"

    def test_decode_32_byte_address(self):
        raw = bytes(range(32))

        assert b64url_decode(b64url_encode(raw)) == raw
        assert len(b64url_encode(raw)) == 43

    def test_decode_invalid_raises(self):
        with pytest.raises(ValueError):
            b64url_decode("abcde")


class TestValidateServiceUrl:
    """Tests for service URL validation."""

    def test_valid_https(self):
        assert validate_service_url("https://upload.ardrive.io") == "https://upload.ardrive.io"

    def test_strips_trailing_slash(self):
        assert validate_service_url("https://payment.ardrive.io/") == "https://payment.ardrive.io"

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            validate_service_url("")

    def test_invalid_scheme_raises(self):
        with pytest.raises(ValueError):
            validate_service_url("ftp://upload.ardrive.io")


class TestUploadLogger:
    """Tests for the structured upload logger."""

    def test_redacts_query_string(self):
        redacted = UploadLogger._redact_url(
            "https://payment.test/v1/account/balance/arweave?address=abc"
        )

        assert redacted == "https://payment.test/v1/account/balance/arweave?[REDACTED]"

    def test_url_without_query_unchanged(self):
        assert UploadLogger._redact_url("https://upload.test/v1/tx") == "https://upload.test/v1/tx"

    def test_failure_record(self, caplog):
        upload_logger = UploadLogger()

        with caplog.at_level(logging.WARNING, logger="turbo.uploads"):
            upload_logger.log_failure("signing", RuntimeError("boom"))

        record = caplog.records[-1]
        assert record.event == "signing_failure"
        assert record.error == "boom"
        assert record.error_type == "RuntimeError"

    def test_upload_success_record(self, caplog):
        upload_logger = UploadLogger()

        with caplog.at_level(logging.INFO, logger="turbo.uploads"):
            upload_logger.log_upload_success("abc123", "ownerX")

        record = caplog.records[-1]
        assert record.event == "upload_success"
        assert record.item_id == "abc123"
