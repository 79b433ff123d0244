"""Private Endpoint CLI (privatelink).

Usage:
    privatelink apply endpoint.yaml               # Create a new endpoint
    privatelink apply endpoint.yaml --id <ID>     # Update a managed endpoint
    privatelink plan endpoint.yaml --id <ID>      # Show drift without changing anything
    privatelink show <ID> [--dns-zone-group NAME] # Print observed state
    privatelink delete <ID>                       # Delete an endpoint

Configuration is read from the environment (see config.Config.from_env).
Observed state and plans are printed to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any

import click

from .clients import build_reconciler
from .config import Config, ConfigurationError
from .errors import (
    EndpointValidationError,
    InvalidResourceIdError,
    OperationTimeoutError,
    PrivateEndpointError,
    ResourceAlreadyExistsError,
)
from .main import setup_logging
from .reconciler import PrivateEndpointReconciler
from .spec_loader import SpecLoadError, load_endpoint_spec

logger = logging.getLogger(__name__)

# Exit codes
EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2
EXIT_ALREADY_EXISTS = 3
EXIT_TIMEOUT = 4


def _exit_code_for(error: Exception) -> int:
    if isinstance(
        error,
        ConfigurationError | SpecLoadError | EndpointValidationError | InvalidResourceIdError,
    ):
        return EXIT_INVALID_INPUT
    if isinstance(error, ResourceAlreadyExistsError):
        return EXIT_ALREADY_EXISTS
    if isinstance(error, OperationTimeoutError):
        return EXIT_TIMEOUT
    return EXIT_FAILURE


def _run(
    ctx: click.Context,
    operation: Callable[[PrivateEndpointReconciler], Coroutine[Any, Any, Any]],
) -> Any:
    """Build a reconciler from the environment and run one async operation.

    Known failures are logged and mapped to an exit code.
    """
    try:
        reconciler = build_reconciler(Config.from_env())
        return asyncio.run(operation(reconciler))
    except (
        ConfigurationError,
        SpecLoadError,
        InvalidResourceIdError,
        PrivateEndpointError,
    ) as e:
        logger.error(
            "Private endpoint operation failed",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        click.echo(f"Error: {e}", err=True)
        ctx.exit(_exit_code_for(e))


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


def _load_spec(ctx: click.Context, spec_file: Path) -> Any:
    try:
        return load_endpoint_spec(spec_file)
    except SpecLoadError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_INVALID_INPUT)


@click.group()
@click.version_option(version="0.1.0", prog_name="privatelink")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Reconcile Azure Private Endpoints against a desired-state file."""
    setup_logging(logging.DEBUG if verbose else logging.INFO)


@cli.command()
@click.argument("spec_file", type=click.Path(path_type=Path))
@click.option("--id", "resource_id", help="ID of the managed endpoint (omit to create)")
@click.pass_context
def apply(ctx: click.Context, spec_file: Path, resource_id: str | None) -> None:
    """Create or update the endpoint described by SPEC_FILE."""
    spec = _load_spec(ctx, spec_file)
    state = _run(ctx, lambda r: r.create_or_update(spec, resource_id))
    _echo_json(state.model_dump())


@cli.command()
@click.argument("spec_file", type=click.Path(path_type=Path))
@click.option("--id", "resource_id", help="ID of the managed endpoint")
@click.pass_context
def plan(ctx: click.Context, spec_file: Path, resource_id: str | None) -> None:
    """Show the drift between SPEC_FILE and the remote endpoint."""
    spec = _load_spec(ctx, spec_file)
    report = _run(ctx, lambda r: r.plan(spec, resource_id))
    _echo_json(report.to_dict())


@cli.command()
@click.argument("resource_id")
@click.option("--dns-zone-group", "dns_zone_group_name", help="Also read this DNS zone group")
@click.pass_context
def show(ctx: click.Context, resource_id: str, dns_zone_group_name: str | None) -> None:
    """Print the observed state of RESOURCE_ID (null if it does not exist)."""
    state = _run(ctx, lambda r: r.read(resource_id, dns_zone_group_name))
    _echo_json(state.model_dump() if state is not None else None)


@cli.command()
@click.argument("resource_id")
@click.pass_context
def delete(ctx: click.Context, resource_id: str) -> None:
    """Delete RESOURCE_ID. Succeeds if it is already gone."""
    _run(ctx, lambda r: r.delete(resource_id))
    click.secho(f"Deleted {resource_id}", fg="green")
