"""
=============================================================================
USER PERSISTENCE OPERATIONS
=============================================================================

The five things a client can do to the users table. Each operation takes
the routed request, talks to the database and either returns a response
or raises a ServiceError for the router to map.

    ┌──────────┬──────────────────────────────┬───────────────────────────┐
    │ Operation│ Database calls               │ Outcomes                  │
    ├──────────┼──────────────────────────────┼───────────────────────────┤
    │ create   │ INSERT, then SELECT by id    │ 200 user │ 500            │
    │ get_one  │ SELECT by id                 │ 200 user │ 404 │ 500      │
    │ get_all  │ SELECT all, ordered by id    │ 200 list │ 500            │
    │ update   │ UPDATE by id                 │ 200 text │ 500            │
    │ delete   │ DELETE by id (row count)     │ 200 text │ 404 │ 500      │
    └──────────┴──────────────────────────────┴───────────────────────────┘

Notes on behavior clients rely on:

- create re-reads the row after the INSERT commits, so the response always
  shows what the database stored, not what the client sent.
- update does NOT check whether a row matched. Updating an unknown id
  answers 200 "User updated".
- An id that does not parse is a 500, same as a database failure.
=============================================================================
"""

import logging

from sqlalchemy import select

from .db import Database, users
from .errors import DatabaseError, NotFoundError
from .http.request import HTTPRequest, decode_user, parse_id
from .http.response import HTTPResponse, internal_error, ok
from .models import User

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found"

_USER_COLUMNS = (users.c.id, users.c.name, users.c.email)


class UserOperations:
    """
    CRUD operations on the users table.

    Each method is a route handler: HTTPRequest in, HTTPResponse out.
    Every call checks its own connection out of the database pool, so one
    instance is safely shared by all worker threads.
    """

    def __init__(self, database: Database):
        self.database = database

    def create(self, request: HTTPRequest) -> HTTPResponse:
        """POST /api/<ns>/users: insert a user and return it with its id."""
        user = decode_user(request.body)

        with self.database.transaction() as conn:
            result = conn.execute(users.insert().values(name=user.name, email=user.email))
            user_id = result.inserted_primary_key[0]

        try:
            created = self._fetch(user_id)
        except (DatabaseError, NotFoundError) as e:
            return internal_error(
                f"Created user {user_id} could not be re-read: {e.message}",
                message="Failed to retrieve created user",
            )

        logger.debug(f"Created user {created.id}")
        return ok(created.to_dict())

    def get_one(self, request: HTTPRequest) -> HTTPResponse:
        """GET /api/<ns>/users/<id>: return one user or 404."""
        user_id = parse_id(request.user_id)
        return ok(self._fetch(user_id).to_dict())

    def get_all(self, request: HTTPRequest) -> HTTPResponse:
        """GET /api/<ns>/users: return every user (an empty table gives [])."""
        with self.database.transaction() as conn:
            rows = conn.execute(select(*_USER_COLUMNS).order_by(users.c.id)).all()
        return ok([User.from_row(row).to_dict() for row in rows])

    def update(self, request: HTTPRequest) -> HTTPResponse:
        """PUT /api/<ns>/users/<id>: overwrite name and email."""
        user_id = parse_id(request.user_id)
        user = decode_user(request.body)

        with self.database.transaction() as conn:
            result = conn.execute(
                users.update()
                .where(users.c.id == user_id)
                .values(name=user.name, email=user.email)
            )
            affected = result.rowcount

        # Unknown ids still answer "updated"
        logger.debug(f"Update of user {user_id} affected {affected} row(s)")
        return ok("User updated")

    def delete(self, request: HTTPRequest) -> HTTPResponse:
        """DELETE /api/<ns>/users/<id>: remove a user, 404 if nothing was removed."""
        user_id = parse_id(request.user_id)

        with self.database.transaction() as conn:
            affected = conn.execute(users.delete().where(users.c.id == user_id)).rowcount

        if affected == 0:
            raise NotFoundError(USER_NOT_FOUND)
        return ok("User deleted")

    def _fetch(self, user_id: int) -> User:
        with self.database.transaction() as conn:
            row = conn.execute(select(*_USER_COLUMNS).where(users.c.id == user_id)).first()
        if row is None:
            raise NotFoundError(USER_NOT_FOUND)
        return User.from_row(row)
