"""Redirector - route HTTP requests to success or failure redirects."""

__version__ = "0.1.0"
