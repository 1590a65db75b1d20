"""
Datagram Transport

UDP endpoints for the one-way broadcast channel. The sender addresses a
broadcast or multicast destination; the receiver binds the port on all
interfaces and optionally joins the multicast group.
"""

from __future__ import annotations

import ipaddress
import socket
import struct
from collections import deque
from collections.abc import Callable, Iterable

from monitor_sync.exceptions import TransportError
from monitor_sync.logging import get_logger

logger = get_logger("transport")

BROADCAST_ADDRESS = "255.255.255.255"
DEFAULT_PORT = 3000
MAX_DATAGRAM = 65535


def is_multicast(address: str) -> bool:
    """True for an IPv4 multicast group address (224.0.0.0/4)."""
    try:
        return ipaddress.IPv4Address(address).is_multicast
    except ValueError:
        return False


def describe(address: str | None, port: int) -> str:
    """Human-readable endpoint, "(any)" standing in for broadcast."""
    return f"{address or '(any)'}:{port}"


class DatagramTransport:
    """
    A UDP socket used either to send to a fixed destination or to receive.

    Use the ``sender()`` / ``receiver()`` constructors; both raise
    TransportError when the socket cannot be set up.
    """

    def __init__(self, sock: socket.socket, destination: tuple[str, int] | None = None):
        self._socket = sock
        self.destination = destination

    @classmethod
    def sender(cls, port: int = DEFAULT_PORT, multicast_address: str | None = None) -> DatagramTransport:
        """Open a socket that sends to the multicast group, or broadcast if none."""
        destination = (multicast_address or BROADCAST_ADDRESS, port)
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
        except OSError as e:
            raise TransportError(f"Cannot open sender socket: {e}") from e

        logger.debug(f"Sender ready for {describe(multicast_address, port)}")
        return cls(sock, destination)

    @classmethod
    def receiver(
        cls,
        port: int = DEFAULT_PORT,
        multicast_address: str | None = None,
        bind_address: str = "0.0.0.0",
    ) -> DatagramTransport:
        """Bind a receiving socket, joining ``multicast_address`` when given."""
        sock = None
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((bind_address, port))
            if multicast_address:
                membership = struct.pack(
                    "4s4s",
                    socket.inet_aton(multicast_address),
                    socket.inet_aton("0.0.0.0"),
                )
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
        except OSError as e:
            if sock is not None:
                sock.close()
            raise TransportError(f"Cannot bind receiver on {describe(multicast_address, port)}: {e}") from e

        logger.debug(f"Receiver bound on {describe(multicast_address, port)}")
        return cls(sock)

    @property
    def local_port(self) -> int:
        return self._socket.getsockname()[1]

    def send(self, payload: bytes) -> int:
        """Send one datagram to the destination. Raises OSError on failure."""
        if self.destination is None:
            raise TransportError("Transport has no destination")
        return self._socket.sendto(payload, self.destination)

    def receive(self, timeout: float | None = None) -> bytes | None:
        """
        Wait up to ``timeout`` seconds for a datagram.

        Returns:
            The payload, or None when the timeout elapsed
        """
        self._socket.settimeout(timeout)
        try:
            payload, _ = self._socket.recvfrom(MAX_DATAGRAM)
        except socket.timeout:
            return None
        return payload

    def close(self) -> None:
        self._socket.close()

    def __enter__(self) -> DatagramTransport:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class MockTransport:
    """In-memory transport for testing without sockets."""

    def __init__(self, incoming: Iterable[bytes | Exception] = (), fail_sends: int = 0):
        self.sent: list[bytes] = []
        self._incoming: deque[bytes | Exception] = deque(incoming)
        self.fail_sends = fail_sends
        self.closed = False
        self.on_empty: Callable[[], None] | None = None

    def feed(self, item: bytes | Exception) -> None:
        """Queue a datagram (or an error to raise) for the next receive."""
        self._incoming.append(item)

    def send(self, payload: bytes) -> int:
        if self.fail_sends > 0:
            self.fail_sends -= 1
            raise OSError("mock send failure")
        self.sent.append(payload)
        return len(payload)

    def receive(self, timeout: float | None = None) -> bytes | None:
        if not self._incoming:
            if self.on_empty is not None:
                self.on_empty()
            return None
        item = self._incoming.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> MockTransport:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
