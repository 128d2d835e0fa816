"""
Tests for the Starview exception hierarchy.
"""

import pytest

from starview.exceptions import (
    APIError,
    CacheError,
    ConfigFileError,
    ConfigurationError,
    DecodeError,
    DownloadError,
    InvalidRequestError,
    OutputPathError,
    StarviewError,
    TransportError,
)


class TestStarviewError:
    def test_basic_message(self):
        error = StarviewError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.details is None

    def test_message_with_details(self):
        error = StarviewError("Operation failed", details="Connection timeout")
        assert str(error) == "Operation failed - Connection timeout"


class TestHierarchy:
    @pytest.mark.parametrize(
        "error_class,parent",
        [
            (APIError, StarviewError),
            (InvalidRequestError, APIError),
            (TransportError, APIError),
            (DecodeError, APIError),
            (DownloadError, StarviewError),
            (CacheError, StarviewError),
            (ConfigurationError, StarviewError),
            (ConfigFileError, ConfigurationError),
            (OutputPathError, ConfigurationError),
        ],
    )
    def test_inheritance(self, error_class, parent):
        assert issubclass(error_class, parent)


class TestAttributes:
    def test_api_error(self):
        error = InvalidRequestError("Not Found", endpoint="load", status_code=404)
        assert error.endpoint == "load"
        assert error.status_code == 404
        assert str(error) == "Not Found"

    def test_download_error_defaults(self):
        error = DownloadError("HTTP error 500", url="https://cdn.example.com/a.bin")
        assert error.url == "https://cdn.example.com/a.bin"
        assert error.status_code is None
        assert error.retry_count == 0
        assert error.is_retryable is True

    def test_cache_error_path(self):
        error = CacheError("Cache file not found", path="/tmp/starview.cache")
        assert error.path == "/tmp/starview.cache"

    def test_output_path_error(self):
        error = OutputPathError("Output path is not a directory", path="out")
        assert error.path == "out"
        assert str(error) == "Output path is not a directory"
