"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path, headers, body) to a handler and returns its
RouteResult. Routing is a pure function: no I/O happens here, only in
the handlers it dispatches to.

=============================================================================
ROUTE TABLE
=============================================================================

Routes are evaluated top to bottom and the FIRST match wins:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  #  Condition                         Result                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │  0  method not GET / POST             405 Method Not Allowed         │
    │  1  EXACT   "/"            GET        root handler                   │
    │  2  PREFIX  "/echo"        GET        echo handler                   │
    │  3  EXACT   "/user-agent"  GET        user-agent handler             │
    │  4  PREFIX  "/files"       GET, POST  files handler                  │
    │  -  nothing matched                   404 Not Found                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TAGGED ROUTES INSTEAD OF REGEX
=============================================================================

Each route is tagged with how its pattern is matched:

    EXACT     path == pattern
    PREFIX    path starts with pattern, and the rest is captured as an
              optional "/<segment>" suffix:

                  "/echo"          → segment ""
                  "/echo/"         → segment ""
                  "/echo/abc"      → segment "abc"
                  "/echo/a/b/c"    → segment "a/b/c"   (slashes allowed)
                  "/echoes"        → no capture → 404

A PREFIX route that is selected but cannot capture a segment answers
404 itself; evaluation does not continue to later routes.

Precedence is the order of the table, so it is visible at a glance and
testable without a running server.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, List, Optional

from .headers import HeaderSet
from .request import HTTPRequest
from .response import RouteResult, empty_result
from .status_codes import HTTPStatus


class RouteKind(Enum):
    """How a route's pattern is compared with the request path."""

    EXACT = "exact"     # /user-agent - whole path must match
    PREFIX = "prefix"   # /files - prefix plus optional /<segment>


@dataclass(frozen=True)
class RouteContext:
    """
    Everything a handler gets to see.

    Attributes:
        method:  Request method.
        path:    Request path, as received.
        headers: Recognized request headers.
        body:    Request body, or None.
        segment: Suffix captured by a PREFIX route ("" when absent).
    """

    method: str
    path: str
    headers: HeaderSet = field(default_factory=HeaderSet)
    body: Optional[bytes] = None
    segment: str = ""


Handler = Callable[[RouteContext], RouteResult]


@dataclass(frozen=True)
class Route:
    """
    One entry of the route table.

        Route(RouteKind.PREFIX, "/files", frozenset({"GET", "POST"}),
              files.handle, name="files")
    """

    kind: RouteKind
    pattern: str
    methods: FrozenSet[str]
    handler: Handler
    name: Optional[str] = None

    def selects(self, method: str, path: str) -> bool:
        """Check whether this route claims the request."""
        if method not in self.methods:
            return False
        if self.kind is RouteKind.EXACT:
            return path == self.pattern
        return path.startswith(self.pattern)

    def capture(self, path: str) -> Optional[str]:
        """
        Extract the optional "/<segment>" suffix of a PREFIX route.

        Returns None when the path continues the prefix without a slash
        (e.g. "/echoes" against "/echo"). EXACT routes capture "".
        """
        if self.kind is RouteKind.EXACT:
            return ""
        rest = path[len(self.pattern):]
        if rest == "":
            return ""
        if rest.startswith("/"):
            return rest[1:]
        return None


class Router:
    """
    Ordered route table with a fixed method filter in front of it.

    ==========================================================================
    USAGE
    ==========================================================================

        router = Router()
        router.add_route(RouteKind.EXACT, "/", root, methods=("GET",))
        router.add_route(RouteKind.PREFIX, "/echo", echo.handle, methods=("GET",))

        result = router.route("GET", "/echo/hi", headers, None)
        result.status       # HTTPStatus.OK

    ==========================================================================
    """

    ALLOWED_METHODS = frozenset({"GET", "POST"})

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(
        self,
        kind: RouteKind,
        pattern: str,
        handler: Handler,
        methods=("GET",),
        name: Optional[str] = None,
    ) -> Route:
        """
        Append a route to the end of the table (lowest precedence so far).

        Returns:
            The created Route.
        """
        route = Route(
            kind=kind,
            pattern=pattern,
            methods=frozenset(m.upper() for m in methods),
            handler=handler,
            name=name,
        )
        self._routes.append(route)
        return route

    def match(self, method: str, path: str) -> Optional[Route]:
        """
        Find the first route that claims (method, path).

        The method filter is not applied here; see route().
        """
        for route in self._routes:
            if route.selects(method, path):
                return route
        return None

    def route(
        self,
        method: str,
        path: str,
        headers: Optional[HeaderSet] = None,
        body: Optional[bytes] = None,
    ) -> RouteResult:
        """
        Dispatch a request to its handler.

        Args:
            method: Request method.
            path: Request path.
            headers: Recognized request headers.
            body: Request body, if one was read.

        Returns:
            The handler's RouteResult, or an empty 404/405 result.
        """
        if method not in self.ALLOWED_METHODS:
            return empty_result(HTTPStatus.METHOD_NOT_ALLOWED)

        route = self.match(method, path)
        if route is None:
            return empty_result(HTTPStatus.NOT_FOUND)

        segment = route.capture(path)
        if segment is None:
            return empty_result(HTTPStatus.NOT_FOUND)

        context = RouteContext(
            method=method,
            path=path,
            headers=headers if headers is not None else HeaderSet(),
            body=body,
            segment=segment,
        )
        return route.handler(context)

    def handle(self, request: HTTPRequest) -> RouteResult:
        """Route a parsed request."""
        return self.route(request.method, request.path, request.headers, request.body)

    @property
    def routes(self) -> List[Route]:
        """Registered routes, in precedence order."""
        return list(self._routes)

    def describe(self) -> List[str]:
        """One line per route, for the startup log."""
        return [
            f"{','.join(sorted(r.methods)):<9} {r.kind.value:<6} {r.pattern}"
            for r in self._routes
        ]
