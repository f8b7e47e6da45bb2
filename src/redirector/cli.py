"""Redirector CLI - Command line interface."""

from __future__ import annotations

import asyncio
import json
import logging
import platform
import sys

import click
import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from redirector import __version__
from redirector.core.config import RedirectorConfig, load_redirector_config
from redirector.core.exceptions import RedirectorError, format_error_for_user
from redirector.routing.engine import RedirectEngine, RouteTable

console = Console()

BANNER = """
 ┬─┐┌─┐┌┬┐┬┬─┐┌─┐┌─┐┌┬┐┌─┐┬─┐
 ├┬┘├┤  │││├┬┘├┤ │   │ │ │├┬┘
 ┴└─└─┘─┴┘┴┴└─└─┘└─┘ ┴ └─┘┴└─
   Conditional redirects by header and time
"""


def configure_logging(level: str) -> None:
    """Configure structlog to drop events below the given level."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
    )


def _load_or_exit(
    config_file: str, force_log_level: str | None = None, **overrides: object
) -> tuple[RedirectorConfig, RouteTable]:
    """Load config and compile routes, exiting with an error panel on failure.

    Logging is configured between the two steps so route compilation logs
    honour the config's level unless force_log_level replaces it.
    """
    try:
        config = load_redirector_config(config_file, **overrides)
        configure_logging(force_log_level or config.effective_log_level)
        table = config.to_route_table()
    except RedirectorError as e:
        console.print(
            Panel(
                f"[red]{e.message}[/red]",
                title=f"Error: {e.code}",
                border_style="red",
            )
        )
        sys.exit(1)
    return config, table


def _routes_table(table: RouteTable) -> Table:
    output = Table(title="Loaded routes")
    output.add_column("Route", style="cyan")
    output.add_column("Path")
    output.add_column("Methods", style="dim")
    output.add_column("Conditions")
    output.add_column("Success", style="green")
    output.add_column("Failure", style="red")
    output.add_column("Status", justify="right")

    for route in table:
        output.add_row(
            route.name,
            route.path,
            ", ".join(sorted(route.allowed_methods)),
            "\n".join(c.raw for c in route.conditions) or "[dim](none)[/dim]",
            route.success_target,
            route.failure_target,
            str(route.redirect_status),
        )
    return output


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx: click.Context):
    """Redirector - route requests to success or failure redirects.

    Each configured route lists conditions on the request's User-Agent and
    the current time. When every condition holds the client is redirected
    to the route's success target, otherwise to its failure target.

    Examples:

        redirector check --config config.yaml

        redirector serve --config config.yaml --address :8080

    Use 'redirector COMMAND --help' for more info on specific commands.
    """
    if ctx.invoked_subcommand is None:
        console.print(BANNER, style="cyan")
        console.print("Usage: redirector serve --config config.yaml", style="yellow")
        console.print("\nCommands:", style="bold")
        console.print("  redirector serve    Start the redirect server", style="dim")
        console.print("  redirector check    Validate a config file", style="dim")
        console.print("  redirector version  Show version information", style="dim")


@main.command()
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Path to YAML, JSON or TOML config file",
)
@click.option("--address", "-a", default=None, help="Bind address, e.g. :8080")
@click.option(
    "--control-address",
    default=None,
    help="Bind address for /health and /metrics (disabled by default)",
)
@click.option("--debug", is_flag=True, help="Log every condition evaluation")
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Log level (default: from config, else info)",
)
@click.option("--demo", is_flag=True, help="Serve the /panel and /bye demo pages")
def serve(
    config_file: str,
    address: str | None,
    control_address: str | None,
    debug: bool,
    log_level: str | None,
    demo: bool,
):
    """Start the redirect server."""
    from redirector.server.app import RedirectServer
    from redirector.server.main import run_server

    config, table = _load_or_exit(
        config_file,
        address=address,
        control_address=control_address,
        debug=debug or None,
        log_level=log_level,
        demo_routes=demo or None,
    )

    console.print(BANNER, style="cyan")
    console.print(_routes_table(table))
    console.print(f"Address: {config.address}", style="dim")
    if config.control_address:
        console.print(f"Control: {config.control_address}", style="dim")
    if config.not_found_redirect:
        console.print(
            f"Not found redirect is ON. Redirecting to {config.not_found_redirect} "
            f"with status {config.not_found_redirect_status}",
            style="dim",
        )
    else:
        console.print("Not found redirect is OFF. Returning 404s.", style="dim")

    engine = RedirectEngine(
        table,
        not_found=config.not_found_policy(),
        handle_method_not_allowed=config.handle_method_not_allowed,
    )
    server = RedirectServer(config, engine=engine)

    try:
        asyncio.run(run_server(server))
    except KeyboardInterrupt:
        pass
    except OSError as e:
        console.print(
            Panel(
                f"[red]{format_error_for_user(e)}[/red]",
                title="Server Error",
                border_style="red",
            )
        )
        sys.exit(1)
    console.print("[green]Server stopped.[/green]")


@main.command()
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Path to YAML, JSON or TOML config file",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def check(config_file: str, json_output: bool):
    """Validate a config file and list its routes.

    Every condition is compiled; any error exits with status 1.
    """
    config, table = _load_or_exit(config_file, force_log_level="critical")

    if json_output:
        payload = {
            "address": config.address,
            "not_found_redirect": config.not_found_redirect,
            "not_found_redirect_status": config.not_found_redirect_status,
            "routes": [
                {
                    "name": route.name,
                    "path": route.path,
                    "allowed_methods": sorted(route.allowed_methods),
                    "conditions": [c.raw for c in route.conditions],
                    "success_redirect": route.success_target,
                    "failure_redirect": route.failure_target,
                    "redirect_status": route.redirect_status,
                }
                for route in table
            ],
        }
        click.echo(json.dumps(payload, indent=2))
        return

    console.print(_routes_table(table))
    console.print(f"[green]OK[/green] {len(table)} route(s) compiled from {config_file}")


@main.command()
def version():
    """Show version information."""
    console.print(BANNER, style="cyan")
    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print(f"[bold]Python:[/bold] {platform.python_version()}")


if __name__ == "__main__":
    main()
