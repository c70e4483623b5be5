"""
Network socket writer.

Each accepted record is encoded as a compact JSON object terminated by a
newline and sent inline on the caller's thread over UDP (one datagram per
record) or TCP (a newline-delimited stream). Send failures are counted and
reported on stderr, never raised.
"""

from __future__ import annotations

import socket
import sys
import threading

from ..constants import LogConstants
from ..exceptions import LogConfigurationError
from ..record import Record
from .structured import JSONRecordEncoder


def parse_endpoint(endpoint: str) -> tuple[str, int]:
    """
    Split "host:port" (or "[v6addr]:port") into host and port.

    Raises:
        LogConfigurationError: If the endpoint is malformed
    """
    host, sep, port = endpoint.strip().rpartition(":")
    if not sep or not host or not port.isdigit():
        raise LogConfigurationError(f"Invalid socket endpoint: '{endpoint}'")
    return host.strip("[]"), int(port)


class SocketWriter:
    """
    Sends records to a network endpoint.

    The connection is opened on first use and reopened after a failure, so a
    collector that comes up late still receives later records.
    """

    def __init__(
        self,
        endpoint: str,
        protocol: str = LogConstants.DEFAULT_SOCKET_PROTOCOL,
        timeout: float = 1.0,
        encoder: JSONRecordEncoder | None = None,
    ) -> None:
        """
        Initialize socket writer.

        Args:
            endpoint: "host:port" of the collector
            protocol: "udp" or "tcp"
            timeout: Connect/send timeout in seconds
            encoder: JSON encoder (defaults to ISO timestamps)

        Raises:
            LogConfigurationError: If the endpoint or protocol is invalid
        """
        protocol = protocol.lower()
        if protocol not in LogConstants.SOCKET_PROTOCOLS:
            raise LogConfigurationError(
                f"Unknown socket protocol: '{protocol}'. "
                f"Supported protocols: {', '.join(LogConstants.SOCKET_PROTOCOLS)}"
            )
        self.endpoint = endpoint
        self.address = parse_endpoint(endpoint)
        self.protocol = protocol
        self.timeout = timeout
        self.encoder = encoder or JSONRecordEncoder()
        self.errors = 0
        self.sent = 0
        self._sock: socket.socket | None = None
        self._lock = threading.Lock()
        self._closed = False

    def _connect(self) -> socket.socket:
        if self.protocol == "tcp":
            return socket.create_connection(self.address, timeout=self.timeout)

        host, port = self.address
        family, kind, proto, _, addr = socket.getaddrinfo(
            host, port, type=socket.SOCK_DGRAM
        )[0]
        sock = socket.socket(family, kind, proto)
        sock.settimeout(self.timeout)
        sock.connect(addr)
        return sock

    def _drop_socket(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass  # Already broken

    def accept(self, record: Record) -> None:
        payload = self.encoder.encode(record).encode("utf-8", errors="replace")
        with self._lock:
            if self._closed:
                return
            try:
                if self._sock is None:
                    self._sock = self._connect()
                self._sock.sendall(payload)
                self.sent += 1
            except OSError as e:
                self.errors += 1
                self._drop_socket()
                sys.stderr.write(
                    f"{LogConstants.DIAG_PREFIX} send to {self.protocol}://{self.endpoint} failed: {e}\n"
                )

    def close(self) -> int:
        with self._lock:
            self._closed = True
            self._drop_socket()
        return 0

    def __repr__(self) -> str:
        return f"SocketWriter({self.endpoint!r}, protocol={self.protocol!r})"
