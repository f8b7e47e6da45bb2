"""Redirector Routing Module.

Compiles declarative route conditions and decides, per request, whether to
redirect to a route's success or failure target.

Features:
- Condition language: "<Subject> <Operator> <Expected>"
- User-Agent matching (has, is, starts_with, ends_with)
- Time windows against RFC3339 timestamps (lt, gt)
- Short-circuit AND evaluation in declaration order
- Immutable route table shared by all requests
- Not-found and method-not-allowed handling

Usage:
    from redirector.routing import (
        RedirectEngine,
        Route,
        RouteTable,
        compile_condition,
        create_request_view,
    )

    route = Route(
        name="chrome",
        path="/chrome",
        conditions=(compile_condition("User-Agent has Chrome"),),
        allowed_methods=frozenset({"GET"}),
        success_target="/panel",
        failure_target="/bye",
    )
    engine = RedirectEngine(RouteTable.from_routes([route]))

    decision = engine.handle(
        create_request_view("/chrome", user_agent="Mozilla/5.0 Chrome/70"),
        now=datetime.now().astimezone(),
    )
    # RedirectResponse(location="/panel", status_code=302)
"""

from redirector.routing.comparators import (
    Comparator,
    contains,
    equals,
    format_rfc3339,
    has_prefix,
    has_suffix,
    parse_rfc3339,
    time_after,
    time_before,
)
from redirector.routing.conditions import (
    Condition,
    Operator,
    Subject,
    compile_condition,
    supported_operators,
)
from redirector.routing.config import RouteConfig, build_route_table
from redirector.routing.engine import (
    Decision,
    MethodNotAllowed,
    NotFound,
    NotFoundPolicy,
    Outcome,
    RedirectEngine,
    RedirectResponse,
    RequestView,
    Route,
    RouteTable,
    create_request_view,
    dispatch,
    evaluate,
)

__all__ = [
    # Comparators
    "Comparator",
    "contains",
    "equals",
    "has_prefix",
    "has_suffix",
    "time_before",
    "time_after",
    "parse_rfc3339",
    "format_rfc3339",
    # Conditions
    "Condition",
    "Subject",
    "Operator",
    "compile_condition",
    "supported_operators",
    # Engine
    "Outcome",
    "RequestView",
    "Route",
    "RouteTable",
    "RedirectResponse",
    "NotFound",
    "MethodNotAllowed",
    "Decision",
    "NotFoundPolicy",
    "RedirectEngine",
    "evaluate",
    "dispatch",
    "create_request_view",
    # Configuration
    "RouteConfig",
    "build_route_table",
]
