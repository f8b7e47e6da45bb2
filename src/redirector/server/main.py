"""Redirector Server - run loop."""

import asyncio

from rich.console import Console

from redirector.server.app import RedirectServer

console = Console()


async def run_server(server: RedirectServer) -> None:
    """Run the redirect server until cancelled."""
    try:
        await server.start()
        console.print("Server started, press Ctrl+C to stop", style="green")

        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\nShutting down...", style="yellow")
    finally:
        await server.stop()
