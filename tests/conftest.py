"""Shared fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from redirector.routing.conditions import compile_condition
from redirector.routing.engine import Route

CET = timezone(timedelta(hours=1))

CHROME_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/70.0.3538.77 Safari/537.36"
FIREFOX_UA = "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:62.0) Gecko/20100101 Firefox/62.0"

INSIDE_WINDOW = datetime(2018, 10, 28, 15, 0, tzinfo=CET)
AFTER_WINDOW = datetime(2018, 10, 28, 21, 0, tzinfo=CET)

CHROME_ROUTE_CONFIG = {
    "path": "/chrome",
    "conditions": [
        "User-Agent has Chrome",
        "Time lt 2018-10-28T20:00:00+01:00",
        "Time gt 2018-10-28T10:00:00+01:00",
    ],
    "allowed_methods": ["GET", "POST"],
    "success_redirect": "/panel",
    "failure_redirect": "/bye",
    "redirect_status": 302,
}


@pytest.fixture
def chrome_route() -> Route:
    """The /chrome route: Chrome users between 10:00 and 20:00 CET."""
    return Route(
        name="chrome",
        path="/chrome",
        conditions=tuple(compile_condition(raw) for raw in CHROME_ROUTE_CONFIG["conditions"]),
        allowed_methods=frozenset({"GET", "POST"}),
        success_target="/panel",
        failure_target="/bye",
        redirect_status=302,
    )
