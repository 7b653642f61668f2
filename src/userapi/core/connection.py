"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket. The service serves exactly ONE request
per connection:

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSED
              │                                      ▲
              └── peer closed / nothing sent ────────┘

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

One send() on the client may arrive as several recv() chunks on the
server, so reading loops until the RequestParser reports a complete
request:

    recv() → b"POST /api/v1/users HTTP/1.1\r\nContent-Len"   need more
    recv() → b"gth: 32\r\n\r\n{\"name\":\"Ann\","            need more
    recv() → b"\"email\":\"a@x.com\"}"                        complete

If the client stops sending (closes its write side), whatever arrived is
decoded as-is.
=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..http.request import HTTPRequest, RequestParser

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its single request/response cycle."""

    NEW = "new"                # Accepted, nothing read yet
    READING = "reading"        # Receiving request bytes
    PROCESSING = "processing"  # Request routed to an operation
    WRITING = "writing"        # Sending the response
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket:           The accepted client socket.
        address:          Client's (ip, port).
        id:               Short identifier for log lines.
        buffer_size:      Bytes requested per recv().
        timeout:          Socket timeout in seconds (None = block).
        max_request_size: Largest request accepted.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 1024
    timeout: Optional[float] = 30.0
    max_request_size: int = 1024 * 1024

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[HTTPRequest]:
        """
        Read one complete request.

        Returns:
            The decoded request, or None if the client closed the
            connection without sending anything.

        Raises:
            TimeoutError:   If the client stalls for longer than timeout.
            HTTPParseError: If the request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        parser = RequestParser(max_request_size=self.max_request_size)

        try:
            while True:
                chunk = self._recv()
                if not chunk:
                    return parser.finish(self.address)
                request = parser.feed(chunk, self.address)
                if request is not None:
                    return request
        except socket.timeout:
            raise TimeoutError(
                f"Request read timeout after {parser.buffered} bytes"
            ) from None

    def _recv(self) -> bytes:
        """recv() that treats an abrupt disconnect as end of stream."""
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send the whole response.

        Returns:
            True if sent, False if the client was already gone.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection.

        shutdown(SHUT_WR) sends FIN so the client sees the end of the
        body (responses carry no Content-Length). Unread input is drained
        briefly so close() does not reset the connection before the
        client has read the response.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(self.buffer_size):
                pass
        except OSError:
            pass  # Timeout or disconnect, closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
