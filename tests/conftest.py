"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from userapi import ServiceConfig, UserService
from userapi.db import Database
from userapi.http import Router, build_router
from userapi.operations import UserOperations

COLLECTION = "/api/v1/users"


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample GET for one user."""
    return (
        b"GET /api/v1/users/42 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample POST creating a user."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/v1/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'users.db'}"


@pytest.fixture
def database(database_url: str) -> Generator[Database, None, None]:
    """A fresh SQLite database with the users table."""
    db = Database.connect(database_url)
    db.ensure_schema()
    yield db
    db.dispose()


@pytest.fixture
def operations(database: Database) -> UserOperations:
    return UserOperations(database)


@pytest.fixture
def router(operations: UserOperations) -> Router:
    """The user routes under /api/v1/users."""
    return build_router(operations, COLLECTION)


@pytest.fixture
def config(database_url: str) -> ServiceConfig:
    """Default test service configuration."""
    return ServiceConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        database_url=database_url,
        log_level="WARNING",
    )


class TestServer:
    """Runs a UserService in a background thread."""

    __test__ = False  # Not a test class

    def __init__(self, service: UserService):
        self.service = service
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.service.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.service.run, daemon=True)
        self._thread.start()
        if not self.service.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.service.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send one raw request and read until the server closes."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(raw)
            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def test_server(config: ServiceConfig) -> Generator[TestServer, None, None]:
    """A live service on an ephemeral port backed by SQLite."""
    test_srv = TestServer(UserService(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
