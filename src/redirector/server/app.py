"""Redirector HTTP server.

Serves the compiled route table over aiohttp. Every request is resolved
against the table; matched routes answer with a redirect, everything else
goes through the not-found policy.

An optional control plane on a separate address exposes /health and
/metrics so they never collide with configured route paths.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import structlog
from aiohttp import hdrs, web

from redirector.core.config import RedirectorConfig, parse_bind
from redirector.observability.metrics import (
    REDIRECTS,
    UNMATCHED_REQUESTS,
    generate_metrics,
    get_content_type,
)
from redirector.routing.engine import (
    MethodNotAllowed,
    NotFound,
    RedirectEngine,
    RedirectResponse,
    RequestView,
    dispatch,
)

logger = structlog.get_logger()

DEMO_PAGES = {
    "/panel": "Hello user, how are you?",
    "/bye": "Nothing here! Bye!!!",
}


def local_now() -> datetime:
    """Current wall-clock time in the local timezone."""
    return datetime.now().astimezone()


class RedirectServer:
    """aiohttp front end for a RedirectEngine.

    The engine (and the route table inside it) is built before the server
    and never changes while it runs.
    """

    def __init__(
        self,
        config: RedirectorConfig,
        engine: RedirectEngine | None = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.config = config
        self.engine = engine if engine is not None else config.to_engine()
        self.clock = clock

        self._http_app: web.Application | None = None
        self._control_app: web.Application | None = None
        self._http_runner: web.AppRunner | None = None
        self._control_runner: web.AppRunner | None = None

    def build_app(self) -> web.Application:
        """Create the application serving configured routes."""
        app = web.Application()

        if self.config.demo_routes:
            routed = set(self.engine.table.paths())
            for path, text in DEMO_PAGES.items():
                if path in routed:
                    logger.warning("Demo page shadowed by configured route", path=path)
                    continue
                app.router.add_get(path, self._demo_handler(text))

        app.router.add_route("*", "/{path:.*}", self._handle_request)
        return app

    def build_control_app(self) -> web.Application:
        """Create the application serving /health and /metrics."""
        app = web.Application()
        app.router.add_get("/health", self._handle_health_check)
        app.router.add_get("/metrics", self._handle_metrics)
        return app

    async def start(self) -> None:
        """Bind the HTTP plane (and control plane, if configured)."""
        self._http_app = self.build_app()
        self._http_runner = web.AppRunner(self._http_app)
        await self._http_runner.setup()

        host, port = parse_bind(self.config.address)
        await web.TCPSite(self._http_runner, host, port).start()
        logger.info("HTTP plane started", host=host, port=port, routes=len(self.engine.table))

        if self.config.control_address:
            self._control_app = self.build_control_app()
            self._control_runner = web.AppRunner(self._control_app)
            await self._control_runner.setup()

            control_host, control_port = parse_bind(self.config.control_address)
            await web.TCPSite(self._control_runner, control_host, control_port).start()
            logger.info("Control plane started", host=control_host, port=control_port)

        if self.engine.not_found.enabled:
            logger.info(
                "Not found redirect is on",
                location=self.engine.not_found.redirect,
                status=self.engine.not_found.status,
            )
        else:
            logger.info("Not found redirect is off, returning 404s")

    async def stop(self) -> None:
        """Stop the server gracefully."""
        logger.info("Stopping redirect server...")
        if self._control_runner:
            await self._control_runner.cleanup()
            self._control_runner = None
        if self._http_runner:
            await self._http_runner.cleanup()
            self._http_runner = None
        logger.info("Redirect server stopped")

    async def _handle_request(self, request: web.Request) -> web.Response:
        view = RequestView(method=request.method, path=request.path, headers=request.headers)

        resolved = self.engine.resolve(view, self.clock())
        if resolved is not None:
            route, outcome = resolved
            redirect = dispatch(route, outcome)
            REDIRECTS.labels(
                route=route.name,
                outcome=outcome.value,
                status=str(redirect.status_code),
            ).inc()
            logger.info(
                "Redirect",
                route=route.name,
                method=view.method,
                path=view.path,
                outcome=outcome.value,
                location=redirect.location,
                status=redirect.status_code,
            )
            return self._redirect_response(redirect)

        decision = self.engine.unmatched(view)
        if isinstance(decision, MethodNotAllowed):
            UNMATCHED_REQUESTS.labels(reason="method_not_allowed").inc()
            return web.Response(
                text="Method Not Allowed",
                status=decision.status_code,
                content_type="text/plain",
                headers={hdrs.ALLOW: ", ".join(decision.allowed)},
            )
        if isinstance(decision, RedirectResponse):
            UNMATCHED_REQUESTS.labels(reason="not_found_redirect").inc()
            return self._redirect_response(decision)

        UNMATCHED_REQUESTS.labels(reason="not_found").inc()
        logger.debug("No route", method=view.method, path=view.path)
        return web.Response(
            text="404: Not Found",
            status=NotFound().status_code,
            content_type="text/plain",
        )

    @staticmethod
    def _redirect_response(redirect: RedirectResponse) -> web.Response:
        return web.Response(
            text=f"Redirecting to {redirect.location}",
            status=redirect.status_code,
            content_type="text/plain",
            headers={hdrs.LOCATION: redirect.location},
        )

    @staticmethod
    def _demo_handler(text: str) -> Callable[[web.Request], object]:
        async def handler(request: web.Request) -> web.Response:
            return web.Response(text=text, content_type="text/plain")

        return handler

    async def _handle_health_check(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "healthy", "routes": len(self.engine.table)})

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        return web.Response(
            body=generate_metrics(),
            headers={hdrs.CONTENT_TYPE: get_content_type()},
        )
