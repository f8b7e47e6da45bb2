"""Redirector Route Evaluation Engine.

Evaluates a route's compiled conditions against a request and turns the
outcome into a redirect.

Conditions are combined with AND logic and evaluated in declaration order.
The first failing condition stops evaluation and the request is sent to the
route's failure target; if every condition passes (or there are none) it is
sent to the success target. Both use the route's configured redirect status.

Requests whose method/path have no route are handed to a NotFoundPolicy.

Example:
    table = RouteTable.from_routes([route])
    engine = RedirectEngine(table)

    decision = engine.handle(
        create_request_view("/chrome", user_agent="Mozilla/5.0 Chrome/70"),
        now=datetime.now().astimezone(),
    )
    if isinstance(decision, RedirectResponse):
        # send decision.status_code with Location: decision.location
        pass
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType

import structlog

from redirector.core.exceptions import ConfigError
from redirector.observability.metrics import EVALUATION_DURATION
from redirector.routing.comparators import format_rfc3339
from redirector.routing.conditions import Condition, Subject

logger = structlog.get_logger()


class Outcome(Enum):
    """Result of evaluating a route's conditions."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class RequestView:
    """The parts of an HTTP request the engine looks at.

    Header names are matched case-insensitively.
    """

    method: str
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str, default: str = "") -> str:
        """Get a header value by case-insensitive name."""
        value = self.headers.get(name)
        if value is not None:
            return value
        lowered = name.lower()
        for key, candidate in self.headers.items():
            if key.lower() == lowered:
                return candidate
        return default

    @property
    def user_agent(self) -> str:
        """User-Agent header, empty string when absent."""
        return self.header("User-Agent")


@dataclass(frozen=True)
class Route:
    """A compiled routing rule.

    Attributes:
        name: Route name from the config.
        path: Exact request path the route answers.
        conditions: Conditions in evaluation order.
        allowed_methods: Upper-case HTTP methods the route answers.
        success_target: Redirect location when all conditions pass.
        failure_target: Redirect location when any condition fails.
        redirect_status: HTTP status used for both redirects.
    """

    name: str
    path: str
    conditions: tuple[Condition, ...]
    allowed_methods: frozenset[str]
    success_target: str
    failure_target: str
    redirect_status: int = 302


@dataclass(frozen=True)
class RedirectResponse:
    """A redirect to send back to the client."""

    location: str
    status_code: int


@dataclass(frozen=True)
class NotFound:
    """No route and no not-found redirect: answer 404."""

    status_code: int = 404


@dataclass(frozen=True)
class MethodNotAllowed:
    """The path is routed, but not for this method: answer 405."""

    allowed: tuple[str, ...]
    status_code: int = 405


Decision = RedirectResponse | NotFound | MethodNotAllowed


@dataclass(frozen=True)
class NotFoundPolicy:
    """What to do with requests that match no route.

    The redirect is only used when both a target and a status are set,
    otherwise the request gets a plain 404.
    """

    redirect: str | None = None
    status: int | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.redirect) and bool(self.status)

    def respond(self) -> RedirectResponse | NotFound:
        if self.redirect and self.status:
            return RedirectResponse(location=self.redirect, status_code=self.status)
        return NotFound()


class RouteTable:
    """Read-only lookup of routes by (method, path).

    Built once at startup and shared by every request handler. Nothing
    mutates it afterwards, so no locking is needed.
    """

    def __init__(self, routes: Mapping[tuple[str, str], Route]) -> None:
        self._routes: Mapping[tuple[str, str], Route] = MappingProxyType(dict(routes))
        methods_by_path: dict[str, set[str]] = {}
        for method, path in self._routes:
            methods_by_path.setdefault(path, set()).add(method)
        self._methods_by_path: Mapping[str, frozenset[str]] = MappingProxyType(
            {path: frozenset(methods) for path, methods in methods_by_path.items()}
        )

    @classmethod
    def from_routes(cls, routes: list[Route]) -> RouteTable:
        """Index routes by each of their allowed methods.

        Raises:
            ConfigError: If two routes claim the same method and path.
        """
        index: dict[tuple[str, str], Route] = {}
        for route in routes:
            for method in sorted(route.allowed_methods):
                key = (method, route.path)
                existing = index.get(key)
                if existing is not None:
                    raise ConfigError(
                        f"Routes '{existing.name}' and '{route.name}' both handle "
                        f"{method} {route.path}"
                    )
                index[key] = route
        return cls(index)

    def lookup(self, method: str, path: str) -> Route | None:
        """Find the route for a method and path."""
        return self._routes.get((method.upper(), path))

    def allowed_methods(self, path: str) -> frozenset[str]:
        """Methods routed for a path (empty if the path is unknown)."""
        return self._methods_by_path.get(path, frozenset())

    def paths(self) -> list[str]:
        """All routed paths, sorted."""
        return sorted(self._methods_by_path)

    def routes(self) -> list[Route]:
        """Distinct routes in path order."""
        seen: dict[str, Route] = {}
        for method, path in sorted(self._routes, key=lambda key: (key[1], key[0])):
            route = self._routes[(method, path)]
            seen.setdefault(route.name, route)
        return list(seen.values())

    def __iter__(self) -> Iterator[Route]:
        return iter(self.routes())

    def __len__(self) -> int:
        """Return number of distinct routes."""
        return len(self.routes())

    def __bool__(self) -> bool:
        return bool(self._routes)


_EXTRACTORS: dict[Subject, Callable[[RequestView, datetime], str]] = {
    Subject.USER_AGENT: lambda request, now: request.user_agent,
    Subject.TIME: lambda request, now: format_rfc3339(now),
}


def evaluate(route: Route, request: RequestView, now: datetime) -> Outcome:
    """Evaluate a route's conditions against a request.

    Conditions run in declaration order. The first one that does not hold
    ends evaluation with FAILURE; later conditions are not invoked. A route
    without conditions always succeeds.

    Args:
        route: The compiled route.
        request: The incoming request.
        now: Evaluation time. Must be timezone-aware for Time conditions
            to ever pass.

    Returns:
        Outcome.SUCCESS or Outcome.FAILURE.
    """
    for condition in route.conditions:
        value = _EXTRACTORS[condition.subject](request, now)
        passed = condition.check(value)
        logger.debug(
            "Condition evaluated",
            route=route.name,
            condition=condition.raw,
            got=value,
            expected=condition.expected,
            passed=passed,
        )
        if not passed:
            return Outcome.FAILURE
    return Outcome.SUCCESS


def dispatch(route: Route, outcome: Outcome) -> RedirectResponse:
    """Map an outcome to the route's redirect."""
    if outcome is Outcome.SUCCESS:
        return RedirectResponse(location=route.success_target, status_code=route.redirect_status)
    return RedirectResponse(location=route.failure_target, status_code=route.redirect_status)


class RedirectEngine:
    """Resolves requests against a RouteTable.

    Holds no mutable state; one instance serves all requests concurrently.
    """

    def __init__(
        self,
        table: RouteTable,
        not_found: NotFoundPolicy | None = None,
        handle_method_not_allowed: bool = True,
    ) -> None:
        self.table = table
        self.not_found = not_found or NotFoundPolicy()
        self.handle_method_not_allowed = handle_method_not_allowed

    def resolve(self, request: RequestView, now: datetime) -> tuple[Route, Outcome] | None:
        """Find and evaluate the route for a request.

        Returns:
            (route, outcome), or None if no route matches method and path.
        """
        route = self.table.lookup(request.method, request.path)
        if route is None:
            return None
        start = time.perf_counter()
        outcome = evaluate(route, request, now)
        EVALUATION_DURATION.observe(time.perf_counter() - start)
        return route, outcome

    def handle(self, request: RequestView, now: datetime) -> Decision:
        """Decide the response for a request."""
        resolved = self.resolve(request, now)
        if resolved is not None:
            route, outcome = resolved
            return dispatch(route, outcome)
        return self.unmatched(request)

    def unmatched(self, request: RequestView) -> Decision:
        """Decide the response for a request that matched no route."""
        if self.handle_method_not_allowed:
            allowed = self.table.allowed_methods(request.path)
            if allowed:
                return MethodNotAllowed(allowed=tuple(sorted(allowed)))

        return self.not_found.respond()


def create_request_view(
    path: str,
    method: str = "GET",
    user_agent: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> RequestView:
    """Helper to build a RequestView.

    Args:
        path: Request path.
        method: HTTP method (default: GET).
        user_agent: Shorthand for the User-Agent header.
        headers: Other request headers.

    Returns:
        RequestView for use with evaluate() and RedirectEngine.
    """
    all_headers = dict(headers or {})
    if user_agent is not None:
        all_headers["User-Agent"] = user_agent
    return RequestView(method=method.upper(), path=path, headers=all_headers)
