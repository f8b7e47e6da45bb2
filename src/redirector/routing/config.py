"""Redirector Route Configuration Models.

Validates the per-route section of the config file and compiles it into
runtime Route objects.

Example YAML configuration:
    routes:
      chrome:
        path: /chrome
        conditions:
          - User-Agent has Chrome
          - Time lt 2018-10-28T20:00:00+01:00
          - Time gt 2018-10-28T10:00:00+01:00
        allowed_methods: [GET, POST]
        success_redirect: /panel
        failure_redirect: /bye
        redirect_status: 302
"""

from __future__ import annotations

from collections.abc import Mapping

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from redirector.core.exceptions import ConditionError, ConfigError
from redirector.routing.conditions import compile_condition
from redirector.routing.engine import Route, RouteTable

logger = structlog.get_logger()


class RouteConfig(BaseModel):
    """Configuration for a single route.

    This is the user-facing format that gets compiled into a Route.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str | None = Field(
        default=None,
        description=(
            "Request path to match. Defaults to the route name; when set it wins "
            "over the name, so a route keyed /a with path /b serves /b."
        ),
    )
    conditions: list[str] = Field(
        default_factory=list,
        description="Conditions in evaluation order, e.g. 'User-Agent has Chrome'.",
    )
    allowed_methods: list[str] = Field(
        default_factory=lambda: ["GET"],
        min_length=1,
        description="HTTP methods the route answers.",
    )
    success_redirect: str = Field(
        min_length=1,
        description="Redirect target when every condition holds.",
    )
    failure_redirect: str = Field(
        min_length=1,
        description="Redirect target when any condition fails.",
    )
    redirect_status: int = Field(
        default=302,
        ge=300,
        le=399,
        description="HTTP status used for both redirects.",
    )

    @field_validator("allowed_methods")
    @classmethod
    def _normalize_methods(cls, methods: list[str]) -> list[str]:
        normalized = [m.strip().upper() for m in methods]
        if any(not m for m in normalized):
            raise ValueError("allowed_methods entries must not be empty")
        return normalized

    @field_validator("path")
    @classmethod
    def _check_path(cls, path: str | None) -> str | None:
        if path is not None and not path.startswith("/"):
            raise ValueError(f"path must start with '/', got {path!r}")
        return path

    def resolved_path(self, name: str) -> str:
        """The path this route answers, falling back to its name.

        Raises:
            ConfigError: If the name is used as the path and does not start with '/'.
        """
        path = self.path or name
        if not path.startswith("/"):
            logger.error("Route path is not absolute", route=name, path=path)
            raise ConfigError(
                f"Route {name!r} has no path and its name is not an absolute path; "
                f"set path: /{name} or rename the route"
            )
        return path

    def to_route(self, name: str) -> Route:
        """Compile this configuration into a Route.

        Every condition is compiled here, once.

        Raises:
            ConditionError: If a condition cannot be compiled.
            ConfigError: If the resolved path is not absolute.
        """
        path = self.resolved_path(name)

        try:
            conditions = tuple(compile_condition(raw) for raw in self.conditions)
        except ConditionError:
            logger.error("Route has an invalid condition", route=name)
            raise

        return Route(
            name=name,
            path=path,
            conditions=conditions,
            allowed_methods=frozenset(self.allowed_methods),
            success_target=self.success_redirect,
            failure_target=self.failure_redirect,
            redirect_status=self.redirect_status,
        )


def build_route_table(routes: Mapping[str, RouteConfig]) -> RouteTable:
    """Compile route configs into an immutable RouteTable.

    Args:
        routes: Route configs keyed by route name.

    Returns:
        The compiled RouteTable.

    Raises:
        ConditionError: If any condition cannot be compiled.
        ConfigError: If two routes claim the same method and path.
    """
    compiled = []
    for name, route_config in routes.items():
        route = route_config.to_route(name)
        logger.info(
            "Route loaded",
            route=name,
            path=route.path,
            methods=sorted(route.allowed_methods),
            conditions=len(route.conditions),
            success=route.success_target,
            failure=route.failure_target,
        )
        compiled.append(route)
    return RouteTable.from_routes(compiled)
