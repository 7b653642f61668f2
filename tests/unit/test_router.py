"""
Unit tests for the prefix router and the user route table.
"""

import pytest

from userapi.errors import DatabaseError, DecodeError, NotFoundError
from userapi.http.router import Router, build_router
from userapi.http.request import HTTPRequest
from userapi.http.response import HTTPResponse, ok


def make_request(method: str, path: str, body: bytes = b"") -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path, body=body)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ok({"path": request.path})


class RecordingOperations:
    """Stands in for UserOperations; answers with the operation's name."""

    def __init__(self):
        self.calls = []

    def _record(self, name, request):
        self.calls.append((name, request.user_id))
        return ok(name)

    def create(self, request):
        return self._record("create", request)

    def get_one(self, request):
        return self._record("get_one", request)

    def get_all(self, request):
        return self._record("get_all", request)

    def update(self, request):
        return self._record("update", request)

    def delete(self, request):
        return self._record("delete", request)


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        assert len(router.routes) == 1
        assert router.routes[0].prefix == "/users"
        assert router.routes[0].method == "GET"
        assert router.routes[0].name == "dummy_handler"

    def test_match_is_by_prefix(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        assert router.match("GET", "/users") is not None
        assert router.match("GET", "/users/1/anything") is not None
        assert router.match("GET", "/posts") is None

    def test_match_with_method(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        assert router.match("POST", "/users") is None
        assert router.match("get", "/users") is None

    def test_first_registered_wins(self):
        router = Router()
        router.add_route("/a", dummy_handler, method="GET", name="first")
        router.add_route("/a", dummy_handler, method="GET", name="second")

        assert router.match("GET", "/a").route.name == "first"

    def test_match_params(self):
        router = Router()
        router.add_route("/api/v1/users/", dummy_handler, method="GET")

        match = router.match("GET", "/api/v1/users/42")
        assert match.params == {"id": "42"}

    def test_allow_id_false_rejects_id(self):
        router = Router()
        router.add_route("/api/v1/users", dummy_handler, method="POST", allow_id=False)

        assert router.match("POST", "/api/v1/users") is not None
        assert router.match("POST", "/api/v1/users/") is not None
        assert router.match("POST", "/api/v1/users/5") is None

    def test_handle_not_found(self):
        response = Router().handle(make_request("GET", "/nowhere"))

        assert response.status == 404
        assert response.body == b"404 not found"

    def test_handle_sets_path_params(self):
        router = Router()
        seen = {}

        @router.get("/api/v1/users/")
        def handler(request):
            seen["id"] = request.user_id
            return ok()

        router.handle(make_request("GET", "/api/v1/users/7"))
        assert seen == {"id": "7"}


class TestErrorMapping:
    """Exceptions raised by handlers become responses in handle()."""

    def _router_raising(self, exc: Exception) -> Router:
        router = Router()

        @router.get("/boom")
        def boom(request):
            raise exc

        return router

    def test_not_found_error(self):
        response = self._router_raising(NotFoundError("User not found")).handle(
            make_request("GET", "/boom")
        )

        assert response.status == 404
        assert response.body == b"User not found"

    @pytest.mark.parametrize("exc", [
        DecodeError("bad body"),
        DatabaseError("connection refused"),
    ])
    def test_service_errors_are_500(self, exc: Exception):
        response = self._router_raising(exc).handle(make_request("GET", "/boom"))

        assert response.status == 500
        assert response.body == b"Internal error"
        assert exc.message in response.reason

    def test_unexpected_error_is_500(self):
        response = self._router_raising(RuntimeError("oops")).handle(make_request("GET", "/boom"))

        assert response.status == 500
        assert response.body == b"Internal error"
        assert response.reason == "RuntimeError: oops"


class TestRouterDecorators:
    """Tests for decorator-style registration."""

    @pytest.mark.parametrize("method", ["get", "post", "put", "delete", "options"])
    def test_method_decorators(self, method: str):
        router = Router()

        @getattr(router, method)("/x")
        def handler(request):
            return ok()

        assert router.routes[0].method == method.upper()
        assert router.routes[0].handler is handler


class TestUserRoutes:
    """The route table built by build_router()."""

    @pytest.fixture
    def ops(self) -> RecordingOperations:
        return RecordingOperations()

    @pytest.fixture
    def user_router(self, ops: RecordingOperations) -> Router:
        return build_router(ops, "/api/v1/users")

    @pytest.mark.parametrize("method, path, operation, user_id", [
        ("POST", "/api/v1/users", "create", ""),
        ("GET", "/api/v1/users/42", "get_one", "42"),
        ("GET", "/api/v1/users/abc", "get_one", "abc"),
        ("GET", "/api/v1/users", "get_all", ""),
        ("PUT", "/api/v1/users/3", "update", "3"),
        ("DELETE", "/api/v1/users/3", "delete", "3"),
    ])
    def test_dispatch(self, user_router, ops, method, path, operation, user_id):
        response = user_router.handle(make_request(method, path))

        assert response.status == 200
        assert ops.calls == [(operation, user_id)]

    def test_item_route_precedes_collection(self, user_router):
        """GET /users/42 must not be answered by the list route."""
        assert user_router.match("GET", "/api/v1/users/42").route.name == "get_one"
        assert user_router.match("GET", "/api/v1/users").route.name == "get_all"

    def test_options_any_path(self, user_router, ops):
        response = user_router.handle(make_request("OPTIONS", "/anything/at/all"))

        assert response.status == 200
        assert response.body == b""
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert ops.calls == []

    def test_post_with_id_is_not_found(self, user_router, ops):
        response = user_router.handle(make_request("POST", "/api/v1/users/5"))

        assert response.status == 404
        assert response.body == b"404 not found"
        assert ops.calls == []

    @pytest.mark.parametrize("method, path", [
        ("GET", "/api/v2/users"),
        ("GET", "/"),
        ("PATCH", "/api/v1/users/1"),
        ("get", "/api/v1/users"),
        ("", ""),
    ])
    def test_unmatched(self, user_router, method, path):
        response = user_router.handle(make_request(method, path))

        assert response.status == 404
        assert response.body == b"404 not found"
