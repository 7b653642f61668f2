"""
=============================================================================
REQUEST ROUTER
=============================================================================

Maps (method, path) to one handler by PREFIX test, in registration order.
First match wins.

=============================================================================
THE USER ROUTE TABLE
=============================================================================

    ┌───┬─────────┬────────────────────┬──────────────┬────────────────────┐
    │ # │ Method  │ Prefix             │ Id segment   │ Handler            │
    ├───┼─────────┼────────────────────┼──────────────┼────────────────────┤
    │ 1 │ OPTIONS │ (any path)         │ ignored      │ preflight → 200    │
    │ 2 │ POST    │ /api/v1/users      │ must be none │ create             │
    │ 3 │ GET     │ /api/v1/users/     │ ignored      │ get_one            │
    │ 4 │ GET     │ /api/v1/users      │ ignored      │ get_all            │
    │ 5 │ PUT     │ /api/v1/users/     │ ignored      │ update             │
    │ 6 │ DELETE  │ /api/v1/users/     │ ignored      │ delete             │
    │   │ *       │ anything else      │              │ 404 "404 not found"│
    └───┴─────────┴────────────────────┴──────────────┴────────────────────┘

ORDER MATTERS. "/api/v1/users" is a prefix of "/api/v1/users/42", so the
item route (3) must be registered before the collection route (4), or
every GET /api/v1/users/42 would be answered with the full list.

=============================================================================
ERRORS BECOME RESPONSES HERE
=============================================================================

Handlers return an HTTPResponse or raise. handle() maps exceptions in one
place:

    NotFoundError        → 404, body = the error message
    other ServiceError   → 500 "Internal error"  (reason kept for the log)
    anything unexpected  → 500 "Internal error"  (logged with traceback)
=============================================================================
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional
import logging

from ..errors import NotFoundError, ServiceError
from .request import HTTPRequest, extract_id
from .response import HTTPResponse, internal_error, not_found, ok

if TYPE_CHECKING:
    from ..operations import UserOperations

logger = logging.getLogger(__name__)

# A handler takes the routed request and returns the response
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A registered route.

    Attributes:
        prefix:   Path prefix the request path must start with.
        method:   Exact method to match (None = any method).
        handler:  Function called with the request.
        name:     Optional name, used in logs.
        allow_id: False for collection routes that must not carry an id.
    """

    prefix: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None
    allow_id: bool = True


@dataclass
class RouteMatch:
    """The route that matched and the parameters pulled from the path."""

    route: Route
    params: Dict[str, str] = field(default_factory=dict)


class Router:
    """
    Ordered prefix router.

        router = Router()

        @router.get("/api/v1/users/", name="get_one")
        def get_one(request):
            return ok({"id": request.user_id})

        response = router.handle(HTTPRequest("GET", "/api/v1/users/7"))
    """

    def __init__(self):
        self._routes: List[Route] = []

    @property
    def routes(self) -> List[Route]:
        """Registered routes in match order."""
        return list(self._routes)

    def add_route(
        self,
        prefix: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
        allow_id: bool = True,
    ) -> Route:
        """Register a route at the END of the match order."""
        route = Route(
            prefix=prefix,
            method=method,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            allow_id=allow_id,
        )
        self._routes.append(route)
        return route

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route matching method and path.

        Methods are compared exactly (case-sensitive), as on the wire.
        """
        user_id = extract_id(path)
        for route in self._routes:
            if route.method is not None and route.method != method:
                continue
            if not path.startswith(route.prefix):
                continue
            if not route.allow_id and user_id:
                continue
            return RouteMatch(route=route, params={"id": user_id})
        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Route a request and turn its outcome into a response."""
        match = self.match(request.method, request.path)
        if match is None:
            return not_found()

        request.path_params = match.params
        try:
            return match.route.handler(request)
        except NotFoundError as e:
            return not_found(e.message)
        except ServiceError as e:
            return internal_error(f"{type(e).__name__}: {e.message}")
        except Exception as e:
            logger.exception(f"Unhandled error in route {match.route.name}: {e}")
            return internal_error(f"{type(e).__name__}: {e}")

    # =========================================================================
    # DECORATOR-STYLE REGISTRATION
    # =========================================================================

    def route(
        self,
        prefix: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
        allow_id: bool = True,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(prefix, handler, method, name, allow_id)
            return handler
        return decorator

    def get(self, prefix: str, **kwargs) -> Callable[[Handler], Handler]:
        return self.route(prefix, "GET", **kwargs)

    def post(self, prefix: str, **kwargs) -> Callable[[Handler], Handler]:
        return self.route(prefix, "POST", **kwargs)

    def put(self, prefix: str, **kwargs) -> Callable[[Handler], Handler]:
        return self.route(prefix, "PUT", **kwargs)

    def delete(self, prefix: str, **kwargs) -> Callable[[Handler], Handler]:
        return self.route(prefix, "DELETE", **kwargs)

    def options(self, prefix: str, **kwargs) -> Callable[[Handler], Handler]:
        return self.route(prefix, "OPTIONS", **kwargs)


def preflight(request: HTTPRequest) -> HTTPResponse:
    """CORS preflight: 200 with the CORS headers and no body."""
    return ok()


def build_router(operations: "UserOperations", collection_path: str) -> Router:
    """
    Register the user routes in their required order.

    Args:
        operations:      The persistence operations to dispatch to.
        collection_path: e.g. "/api/v1/users" (no trailing slash).
    """
    item_prefix = collection_path + "/"

    router = Router()
    router.add_route("", preflight, method="OPTIONS", name="preflight")
    router.add_route(collection_path, operations.create, method="POST", name="create", allow_id=False)
    router.add_route(item_prefix, operations.get_one, method="GET", name="get_one")
    router.add_route(collection_path, operations.get_all, method="GET", name="get_all")
    router.add_route(item_prefix, operations.update, method="PUT", name="update")
    router.add_route(item_prefix, operations.delete, method="DELETE", name="delete")
    return router
