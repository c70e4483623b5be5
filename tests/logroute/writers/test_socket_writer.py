"""Tests for SocketWriter."""

import json
import socket

import pytest

from logroute.exceptions import LogConfigurationError
from logroute.levels import Level
from logroute.writers.socket import SocketWriter, parse_endpoint


@pytest.fixture
def udp_server():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(5.0)
    yield sock
    sock.close()


@pytest.fixture
def tcp_server():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    sock.settimeout(5.0)
    yield sock
    sock.close()


@pytest.mark.unit
class TestParseEndpoint:
    """Test endpoint parsing."""

    @pytest.mark.parametrize(
        "endpoint,expected",
        [
            ("localhost:514", ("localhost", 514)),
            ("10.0.0.1:9000", ("10.0.0.1", 9000)),
            ("[::1]:514", ("::1", 514)),
        ],
    )
    def test_valid(self, endpoint, expected):
        assert parse_endpoint(endpoint) == expected

    @pytest.mark.parametrize("endpoint", ["localhost", ":514", "host:", "host:port"])
    def test_invalid(self, endpoint):
        with pytest.raises(LogConfigurationError):
            parse_endpoint(endpoint)


@pytest.mark.integration
class TestSocketWriter:
    """Test sending records over local sockets."""

    def test_udp_datagram_per_record(self, udp_server, make_record):
        host, port = udp_server.getsockname()
        writer = SocketWriter(f"{host}:{port}", protocol="udp")

        writer.accept(make_record("over udp", Level.WARNING, "app:1"))
        data, _ = udp_server.recvfrom(65536)
        writer.close()

        payload = json.loads(data.decode("utf-8"))
        assert payload["message"] == "over udp"
        assert payload["level"] == "WARNING"
        assert payload["source"] == "app:1"
        assert writer.sent == 1

    def test_tcp_newline_delimited(self, tcp_server, make_record):
        host, port = tcp_server.getsockname()
        writer = SocketWriter(f"{host}:{port}", protocol="TCP")

        writer.accept(make_record("first"))
        conn, _ = tcp_server.accept()
        writer.accept(make_record("second"))
        writer.close()

        conn.settimeout(5.0)
        chunks = []
        while True:
            chunk = conn.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
        conn.close()

        lines = b"".join(chunks).decode("utf-8").splitlines()
        assert [json.loads(line)["message"] for line in lines] == ["first", "second"]

    def test_send_failure_does_not_raise(self, tcp_server, make_record, capsys):
        host, port = tcp_server.getsockname()
        tcp_server.close()  # nothing listens any more
        writer = SocketWriter(f"{host}:{port}", protocol="tcp", timeout=0.5)

        writer.accept(make_record("lost"))
        writer.close()

        assert writer.errors == 1
        assert writer.sent == 0
        assert "send to tcp://" in capsys.readouterr().err

    def test_accept_after_close_is_noop(self, udp_server, make_record):
        host, port = udp_server.getsockname()
        writer = SocketWriter(f"{host}:{port}")
        writer.close()
        writer.accept(make_record())
        assert writer.sent == 0

    def test_invalid_protocol(self):
        with pytest.raises(LogConfigurationError, match="Unknown socket protocol"):
            SocketWriter("localhost:514", protocol="sctp")
