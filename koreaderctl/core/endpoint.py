"""Endpoint validation shared by the settings store and the HTTP client."""

from __future__ import annotations

import re

from koreaderctl.core.errors import InvalidEndpointError
from koreaderctl.core.model import Endpoint

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
_IPV4_RE = re.compile(rf"(?:{_OCTET}\.){{3}}{_OCTET}")

DEFAULT_HOST = "192.168.1.100"
DEFAULT_PORT = 8080
DEFAULT_ENDPOINT = Endpoint(host=DEFAULT_HOST, port=DEFAULT_PORT)


def is_valid_host(host: str) -> bool:
    if not host or not host.strip():
        return False
    return _IPV4_RE.fullmatch(host) is not None


def is_valid_port(port: int | str) -> bool:
    if isinstance(port, bool):
        return False
    try:
        number = int(port)
    except (TypeError, ValueError):
        return False
    return 1 <= number <= 65535


def host_error(host: str) -> str | None:
    """Return a user-facing message for an invalid host, or None."""
    if not host or not host.strip():
        return "IP address is required"
    if not is_valid_host(host):
        return "Invalid IPv4 address format (e.g., 192.168.1.100)"
    return None


def port_error(port: int | str) -> str | None:
    if isinstance(port, str) and not port.strip():
        return "Port is required"
    if not is_valid_port(port):
        return "Port must be between 1-65535"
    return None


def is_valid_endpoint(endpoint: Endpoint) -> bool:
    return is_valid_host(endpoint.host) and is_valid_port(endpoint.port)


def validate_endpoint(endpoint: Endpoint) -> Endpoint:
    if not is_valid_endpoint(endpoint):
        raise InvalidEndpointError("Invalid IP address or port")
    return endpoint


def parse_endpoint(host: str, port: int | str) -> Endpoint:
    """Build a validated endpoint from raw user input."""
    problems = [p for p in (host_error(host), port_error(port)) if p]
    if problems:
        raise InvalidEndpointError("; ".join(problems))
    return Endpoint(host=host, port=int(port))
