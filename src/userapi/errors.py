"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure inside the service is one of a handful of exception types.
The router turns them into responses in exactly one place:

    ┌──────────────────┬──────────────────────────────┬────────────────────┐
    │  Exception       │ Raised when                  │ Wire status        │
    ├──────────────────┼──────────────────────────────┼────────────────────┤
    │  ParseError      │ bad request line / id / body │ 500 INTERNAL ERROR │
    │  DecodeError     │ body is not a valid user     │ 500 INTERNAL ERROR │
    │  DatabaseError   │ connection or query failed   │ 500 INTERNAL ERROR │
    │  NotFoundError   │ no row for the given id      │ 404 NOT FOUND      │
    └──────────────────┴──────────────────────────────┴────────────────────┘

Clients cannot tell a malformed request from an unreachable database: both
read as a server error. The message on each exception is for the logs only.
=============================================================================
"""


class ServiceError(Exception):
    """Base class for every error the service maps to a response."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ParseError(ServiceError):
    """The request line, path id or body could not be interpreted."""


class DecodeError(ParseError):
    """The request body is missing or is not a valid user document."""


class NotFoundError(ServiceError):
    """
    The addressed user does not exist.

    The message IS sent to the client (e.g. "User not found"), unlike the
    other error kinds.
    """


class DatabaseError(ServiceError):
    """A database connection or statement failed."""
