import pytest

from koreaderctl.core.endpoint import host_error, is_valid_host, is_valid_port, parse_endpoint, port_error
from koreaderctl.core.errors import InvalidEndpointError
from koreaderctl.core.model import Endpoint


@pytest.mark.parametrize("host", ["10.0.0.5", "192.168.1.100", "0.0.0.0", "255.255.255.255", "01.2.3.4"])
def test_valid_hosts(host: str) -> None:
    assert is_valid_host(host)


@pytest.mark.parametrize("host", ["", " ", "999.0.0.1", "256.1.1.1", "10.0.0", "10.0.0.5.6", "kobo.local", "10.0.0.5 "])
def test_invalid_hosts(host: str) -> None:
    assert not is_valid_host(host)


@pytest.mark.parametrize(("port", "ok"), [(1, True), (65535, True), ("8080", True), (0, False), (65536, False), ("x", False), (True, False)])
def test_port_range(port, ok: bool) -> None:
    assert is_valid_port(port) is ok


def test_error_messages() -> None:
    assert host_error("") == "IP address is required"
    assert host_error("1.2.3") == "Invalid IPv4 address format (e.g., 192.168.1.100)"
    assert port_error("") == "Port is required"
    assert port_error("99999") == "Port must be between 1-65535"
    assert host_error("10.0.0.5") is None and port_error(8080) is None


def test_parse_endpoint() -> None:
    endpoint = parse_endpoint("10.0.0.5", "8080")
    assert endpoint == Endpoint("10.0.0.5", 8080)
    assert endpoint.base_url == "http://10.0.0.5:8080"

    with pytest.raises(InvalidEndpointError) as exc:
        parse_endpoint("", "0")
    assert "IP address is required" in str(exc.value)
    assert "Port must be between 1-65535" in str(exc.value)
