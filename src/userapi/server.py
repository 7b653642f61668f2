"""
=============================================================================
USER SERVICE
=============================================================================

Wires the pieces together and owns their lifecycle:

    ServiceConfig
         │ validate()
         ▼
    Database.connect() ──► ensure_schema()        (failures abort start-up)
         │
         ▼
    UserOperations ──► build_router() ──► ConnectionHandler
                                                 ▲
    SocketServer ── accept ──► ThreadPool.submit ┘

=============================================================================
REQUEST FLOW
=============================================================================

    1. SocketServer accepts and wraps the client socket in a Connection
    2. The Connection is queued on the ThreadPool (full queue → 500, close)
    3. A worker runs ConnectionHandler.handle(): read, route, respond, close

=============================================================================
SHUTDOWN
=============================================================================

SIGINT/SIGTERM (or stop()) end the accept loop. Queued connections are
still served, then the workers exit and the database pool is disposed.
=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServiceConfig
from .core.connection import Connection
from .core.socket_server import SocketServer
from .core.thread_pool import ThreadPool
from .db import Database
from .handler import ConnectionHandler, reject
from .http.router import Router, build_router
from .operations import UserOperations

logger = logging.getLogger(__name__)


class UserService:
    """
    The user CRUD service.

    Usage:
        service = UserService(ServiceConfig.from_env())
        service.run()  # blocks until SIGINT/SIGTERM

    Construction validates the configuration and prepares the database, so
    a misconfigured service fails before it ever listens.

    Raises (from __init__):
        ValueError:    Invalid configuration or DATABASE_URL.
        DatabaseError: The users table could not be created.
    """

    def __init__(self, config: Optional[ServiceConfig] = None, database: Optional[Database] = None):
        self.config = config or ServiceConfig.from_env()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # DATABASE
        # ─────────────────────────────────────────────────────────────────

        self.database = database or Database.connect(
            self.config.database_url,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
        )
        self.database.ensure_schema()

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION
        # ─────────────────────────────────────────────────────────────────

        self.operations = UserOperations(self.database)
        self.router: Router = build_router(self.operations, self.config.collection_path)
        self._handler = ConnectionHandler(self.router)

        # ─────────────────────────────────────────────────────────────────
        # NETWORK
        # ─────────────────────────────────────────────────────────────────

        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._socket_server = SocketServer(self.config)

    @property
    def address(self) -> Tuple[str, int]:
        """Address being listened on (the real port when configured with 0)."""
        return self._socket_server.address

    def run(self):
        """Serve until stopped. Blocks."""
        self._setup_logging()
        self._thread_pool.start()

        logger.info(
            f"Serving users at {self.config.collection_path} "
            f"on {self.config.host}:{self.config.port}"
        )
        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the service is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def stop(self):
        """Ask a running service to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("userapi").setLevel(level)

    def _handle_connection(self, conn: Connection):
        if not self._thread_pool.submit(self._handler.handle, conn):
            logger.warning(f"[{conn.id}] Worker queue full, rejecting {conn.client_ip}")
            reject(conn)

    def _shutdown(self):
        logger.info("Shutting down user service...")
        self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
        self.database.dispose()
        logger.info("User service stopped")


def create_app(config: Optional[ServiceConfig] = None) -> UserService:
    """
    Create a ready-to-run service.

    Example:
        app = create_app(ServiceConfig(database_url="sqlite:///users.db", port=3000))
        app.run()
    """
    return UserService(config)
