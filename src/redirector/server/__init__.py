"""Redirector HTTP server."""

from redirector.server.app import RedirectServer, local_now
from redirector.server.main import run_server

__all__ = ["RedirectServer", "local_now", "run_server"]
