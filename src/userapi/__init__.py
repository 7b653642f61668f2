"""
=============================================================================
USERAPI: A USER CRUD SERVICE ON A HAND-WRITTEN HTTP SERVER
=============================================================================

Five JSON endpoints over one relational table, served straight off TCP
sockets:

    POST    /api/<ns>/users         create a user, answer it with its id
    GET     /api/<ns>/users/<id>    one user, or 404 "User not found"
    GET     /api/<ns>/users         every user, [] when empty
    PUT     /api/<ns>/users/<id>    overwrite name and email
    DELETE  /api/<ns>/users/<id>    remove, or 404 "User not found"
    OPTIONS (any path)              CORS preflight

=============================================================================
PACKAGE LAYOUT
=============================================================================

    userapi/
    ├── __main__.py     CLI (python -m userapi)
    ├── server.py       UserService: wiring and lifecycle
    ├── handler.py      one connection → one request → one response
    ├── operations.py   the five persistence operations
    ├── db.py           SQLAlchemy engine, pool and users table
    ├── models.py       User record
    ├── errors.py       ServiceError taxonomy
    ├── config.py       ServiceConfig (env + CLI)
    ├── http/           request parsing, responses, router
    └── core/           socket server, thread pool, connection
=============================================================================
"""

__version__ = "1.0.0"

from .config import ServiceConfig
from .server import UserService, create_app

__all__ = ["UserService", "ServiceConfig", "create_app", "__version__"]
