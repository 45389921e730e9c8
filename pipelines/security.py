"""URL validation for submitted websites.

Rejects malformed URLs, non-web schemes, video platforms and hosts in
private address ranges so the crawler is never pointed at internal
services.
"""

import ipaddress
import logging
import socket
from typing import Optional, Set, Tuple
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

# Private IP ranges as defined by RFC 1918, RFC 4193, and others
PRIVATE_IP_RANGES = [
    ipaddress.ip_network('10.0.0.0/8'),        # RFC 1918
    ipaddress.ip_network('172.16.0.0/12'),     # RFC 1918
    ipaddress.ip_network('192.168.0.0/16'),    # RFC 1918
    ipaddress.ip_network('127.0.0.0/8'),       # Loopback
    ipaddress.ip_network('169.254.0.0/16'),    # Link-local
    ipaddress.ip_network('::1/128'),           # IPv6 loopback
    ipaddress.ip_network('fc00::/7'),          # IPv6 unique local
    ipaddress.ip_network('fe80::/10'),         # IPv6 link-local
    ipaddress.ip_network('0.0.0.0/8'),         # "This" network
    ipaddress.ip_network('224.0.0.0/4'),       # Multicast
    ipaddress.ip_network('240.0.0.0/4'),       # Reserved
]

ALLOWED_SCHEMES = {'http', 'https'}
LOCALHOST_NAMES = {'localhost', 'local', '0'}
VIDEO_HOSTS = ('youtube.com', 'youtu.be')

INVALID_URL_MESSAGE = "Invalid URL"
UNSUPPORTED_URL_MESSAGE = "Only website URLs are supported"


class InvalidWebsiteURL(ValueError):
    """Raised when a submitted URL cannot be ingested."""

    def __init__(self, url: str, message: str = INVALID_URL_MESSAGE):
        super().__init__(message)
        self.url = url
        self.message = message


def is_private_ip(ip_str: str) -> bool:
    """Check if an IP address is in a private range.

    Args:
        ip_str: IP address as string

    Returns:
        True if IP is in private range (or not an IP at all), False otherwise
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return any(ip in network for network in PRIVATE_IP_RANGES)
    except ValueError:
        return True


def resolve_hostname(hostname: str) -> Set[str]:
    """Resolve a hostname and reject it if any address is private."""
    try:
        addr_info = socket.getaddrinfo(hostname, None)
    except socket.gaierror as e:
        raise InvalidWebsiteURL(hostname, f"Failed to resolve hostname {hostname}") from e

    ips = {info[4][0] for info in addr_info}
    private_ips = [ip for ip in ips if is_private_ip(ip)]
    if private_ips:
        raise InvalidWebsiteURL(hostname, f"Hostname {hostname} resolves to private IP(s): {private_ips}")
    return ips


def is_valid_url(url: str) -> bool:
    """True for absolute http(s) URLs with a hostname."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.hostname)


def is_website_url(url: str) -> bool:
    """False for video platform URLs, which carry no crawlable text."""
    hostname = (urlparse(url).hostname or "").lower()
    return not any(hostname == host or hostname.endswith("." + host) for host in VIDEO_HOSTS)


def check_host(url: str, resolve_dns: bool = False) -> Tuple[bool, Optional[str]]:
    """Check that a URL does not point at localhost or a private address.

    Returns:
        Tuple of (is_safe, error_message)
    """
    hostname = (urlparse(url).hostname or "").lower()
    if hostname in LOCALHOST_NAMES:
        return False, f"Localhost hostname '{hostname}' is not allowed"

    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        if resolve_dns:
            try:
                resolve_hostname(hostname)
            except InvalidWebsiteURL as e:
                return False, e.message
        return True, None

    if is_private_ip(str(ip)):
        return False, f"Private IP address '{hostname}' is not allowed"
    return True, None


def validate_website_url(url: str, resolve_dns: bool = False) -> str:
    """Validate a submitted website URL and return it stripped.

    Args:
        url: URL submitted by the user
        resolve_dns: Also resolve the hostname and reject private addresses

    Raises:
        InvalidWebsiteURL: With the message to show the user
    """
    if not is_valid_url(url):
        raise InvalidWebsiteURL(url or "", INVALID_URL_MESSAGE)

    url = url.strip()
    if not is_website_url(url):
        raise InvalidWebsiteURL(url, UNSUPPORTED_URL_MESSAGE)

    is_safe, error = check_host(url, resolve_dns=resolve_dns)
    if not is_safe:
        logger.warning(f"Blocked website URL {url}: {error}")
        raise InvalidWebsiteURL(url, INVALID_URL_MESSAGE)

    return url
