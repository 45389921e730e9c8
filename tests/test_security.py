"""Tests for submitted website URL validation."""

import socket

import pytest
from unittest.mock import patch

from pipelines.security import (
    INVALID_URL_MESSAGE,
    UNSUPPORTED_URL_MESSAGE,
    InvalidWebsiteURL,
    check_host,
    is_private_ip,
    is_valid_url,
    is_website_url,
    validate_website_url,
)


class TestValidateWebsiteURL:
    """Validation of user submitted URLs."""

    def test_valid_url_is_stripped(self):
        assert validate_website_url("  https://example.com/blog  ") == "https://example.com/blog"

    @pytest.mark.parametrize("url", [
        None,
        "",
        "not a url",
        "example.com",
        "ftp://example.com/file",
        "file:///etc/passwd",
        "https://",
    ])
    def test_invalid_urls(self, url):
        with pytest.raises(InvalidWebsiteURL) as exc_info:
            validate_website_url(url)
        assert exc_info.value.message == INVALID_URL_MESSAGE

    @pytest.mark.parametrize("url", [
        "https://www.youtube.com/watch?v=abc",
        "https://youtube.com/shorts/abc",
        "https://youtu.be/abc",
        "https://m.youtube.com/watch?v=abc",
    ])
    def test_video_urls_rejected(self, url):
        with pytest.raises(InvalidWebsiteURL) as exc_info:
            validate_website_url(url)
        assert exc_info.value.message == UNSUPPORTED_URL_MESSAGE

    @pytest.mark.parametrize("url", [
        "http://localhost:8000",
        "http://127.0.0.1/admin",
        "http://10.0.0.5/",
        "http://192.168.1.1/",
        "http://169.254.169.254/latest/meta-data/",
        "http://[::1]/",
    ])
    def test_internal_hosts_rejected(self, url):
        with pytest.raises(InvalidWebsiteURL) as exc_info:
            validate_website_url(url)
        assert exc_info.value.message == INVALID_URL_MESSAGE

    def test_public_ip_allowed(self):
        assert validate_website_url("http://93.184.216.34/") == "http://93.184.216.34/"

    def test_invalid_url_is_value_error(self):
        with pytest.raises(ValueError):
            validate_website_url("nope")


class TestDNSResolution:
    """Optional hostname resolution."""

    @patch("pipelines.security.socket.getaddrinfo")
    def test_hostname_resolving_to_private_ip(self, mock_getaddrinfo):
        mock_getaddrinfo.return_value = [(socket.AF_INET, socket.SOCK_STREAM, 6, '', ('10.1.2.3', 0))]

        with pytest.raises(InvalidWebsiteURL):
            validate_website_url("https://internal.example.com", resolve_dns=True)

    @patch("pipelines.security.socket.getaddrinfo")
    def test_hostname_resolving_to_public_ip(self, mock_getaddrinfo):
        mock_getaddrinfo.return_value = [(socket.AF_INET, socket.SOCK_STREAM, 6, '', ('93.184.216.34', 0))]

        assert validate_website_url("https://example.com", resolve_dns=True) == "https://example.com"

    @patch("pipelines.security.socket.getaddrinfo")
    def test_unresolvable_hostname(self, mock_getaddrinfo):
        mock_getaddrinfo.side_effect = socket.gaierror("Name or service not known")

        is_safe, error = check_host("https://nowhere.invalid", resolve_dns=True)
        assert not is_safe
        assert "Failed to resolve" in error

    @patch("pipelines.security.socket.getaddrinfo")
    def test_dns_not_consulted_by_default(self, mock_getaddrinfo):
        validate_website_url("https://example.com")
        mock_getaddrinfo.assert_not_called()


def test_is_private_ip():
    assert is_private_ip("127.0.0.1")
    assert is_private_ip("fe80::1")
    assert not is_private_ip("8.8.8.8")
    # Unparseable addresses are treated as unsafe
    assert is_private_ip("not-an-ip")


def test_is_valid_url():
    assert is_valid_url("https://example.com")
    assert not is_valid_url("mailto:someone@example.com")


def test_is_website_url():
    assert is_website_url("https://example.com/watch")
    assert not is_website_url("https://youtu.be/xyz")
    assert is_website_url("https://notyoutube.com/")
