"""
Unit tests for the error taxonomy and user-facing messages.
"""

import pytest

from hotspot_core.errors import (
    AuthError, ValidationError, InvalidCredentialsError, ApiError, TransportError,
    ApiTimeoutError, RemoteStatusError, StorageCorruptError, describe_error,
)


class TestTaxonomy:

    def test_validation_joins_violations(self):
        error = ValidationError(["Username must be at least 3 characters",
                                 "Forbidden characters detected"])
        assert str(error) == "Username must be at least 3 characters, Forbidden characters detected"
        assert isinstance(error, AuthError)

    def test_timeout_is_transport(self):
        assert isinstance(ApiTimeoutError(), TransportError)
        assert isinstance(RemoteStatusError(404), ApiError)

    def test_storage_corrupt_names_key(self):
        assert "accounts" in str(StorageCorruptError("accounts", "bad json"))

    def test_invalid_credentials_message(self):
        assert str(InvalidCredentialsError()) == "Invalid username or password"


class TestDescribeError:

    @pytest.mark.parametrize("error,message", [
        (ApiTimeoutError(), "Slow connection or server not responding."),
        (RemoteStatusError(404), "Resource not found on the server."),
        (RemoteStatusError(503, "Service Unavailable"), "Internal server error."),
        (RemoteStatusError(401, "Unauthorized"), "HTTP 401: Unauthorized"),
        (TransportError("refused"), "Cannot reach the server. Check the connection."),
    ])
    def test_messages(self, error, message):
        assert describe_error(error) == message
