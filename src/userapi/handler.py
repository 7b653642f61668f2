"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Serves exactly one request per accepted connection, on a worker thread:

    ┌──────────────┐   ┌───────────┐   ┌────────────┐   ┌───────┐
    │ read_request │──►│  router   │──►│ to_bytes() │──►│ close │
    └──────────────┘   └───────────┘   └────────────┘   └───────┘
           │                                                ▲
           ├── nothing sent ───────────────────────────────►│  (no response)
           └── timeout / too large ──► 500 "Internal error" │

Nothing escapes handle(): a worker thread always gets control back and the
socket is always closed.

Each answered request produces one line on the "userapi.access" logger:

    127.0.0.1 "GET /api/v1/users/7" 404 14 0.84ms
=============================================================================
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .core.connection import Connection, ConnectionState
from .errors import ServiceError
from .http.request import HTTPRequest
from .http.response import HTTPResponse, internal_error
from .http.router import Router

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("userapi.access")


@dataclass
class AccessLogEntry:
    client_ip: str
    method: str
    path: str
    status_code: int
    content_length: int
    duration_ms: float

    def to_text(self) -> str:
        return (
            f'{self.client_ip} "{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class ConnectionHandler:
    """
    Runs the request/response cycle for one Connection.

    One instance is shared by all workers; it holds no per-request state.
    """

    def __init__(self, router: Router):
        self.router = router

    def handle(self, conn: Connection) -> None:
        start_time = time.time()
        with conn:
            try:
                request = conn.read_request()
            except (TimeoutError, ServiceError) as e:
                logger.warning(f"[{conn.id}] Could not read request from {conn.client_ip}: {e}")
                self._respond(conn, None, internal_error(str(e)), start_time)
                return
            except Exception as e:
                logger.exception(f"[{conn.id}] Unexpected error reading request: {e}")
                return

            if request is None:
                logger.debug(f"[{conn.id}] Client {conn.client_ip} sent nothing")
                return

            conn.state = ConnectionState.PROCESSING
            try:
                response = self.router.handle(request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Routing failed: {e}")
                response = internal_error(f"{type(e).__name__}: {e}")

            self._respond(conn, request, response, start_time)

    def _respond(
        self,
        conn: Connection,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        start_time: float,
    ) -> None:
        if response.reason:
            logger.error(f"[{conn.id}] {response.reason}")

        data = response.to_bytes()
        conn.send_response(data)

        access_logger.info(AccessLogEntry(
            client_ip=conn.client_ip,
            method=request.method if request else "-",
            path=request.path if request else "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=(time.time() - start_time) * 1000,
        ).to_text())


def reject(conn: Connection) -> None:
    """Answer 500 and close without routing (used when the worker queue is full)."""
    with conn:
        conn.send_response(internal_error("Server overloaded, worker queue full").to_bytes())
