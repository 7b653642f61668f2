"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The service answers with exactly three statuses. Their status lines are
fixed byte-for-byte so existing clients keep working:

    HTTP/1.1 200 OK
    HTTP/1.1 404 NOT FOUND
    HTTP/1.1 500 INTERNAL ERROR
             ─── ──────────────
              │        │
              │        └── Reason phrase (from _STATUS_PHRASES)
              └─────────── Status code

This is the ONE place where a status becomes wire text. Everything else
passes HTTPStatus values around.
=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the service.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'NOT FOUND'
    """

    OK = 200                       # Request handled, payload follows
    NOT_FOUND = 404                # Unknown route, or no user with that id
    INTERNAL_SERVER_ERROR = 500    # Parse failure or database failure

    @property
    def phrase(self) -> str:
        """Reason phrase written after the code in the status line."""
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx status."""
        return 200 <= self < 300


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
    HTTPStatus.INTERNAL_SERVER_ERROR: "INTERNAL ERROR",
}
