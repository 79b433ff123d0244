"""Input predicates and identity parsing for Private Endpoints.

Field-level predicates are plain functions that raise ValueError, so they can
back pydantic field validators. validate_endpoint_settings() checks the
cross-field invariants that a single field validator cannot see; the
reconciler calls it before any remote call is issued.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from azure.mgmt.core.tools import is_valid_resource_id, parse_resource_id

from .errors import EndpointValidationError, InvalidResourceIdError

if TYPE_CHECKING:
    from .models import PrivateEndpointSpec

NETWORK_NAMESPACE = "Microsoft.Network"
PRIVATE_ENDPOINTS_TYPE = "privateEndpoints"
NETWORK_INTERFACES_TYPE = "networkInterfaces"
PRIVATE_LINK_SERVICES_TYPE = "privateLinkServices"

MIN_REQUEST_MESSAGE_LENGTH = 1
MAX_REQUEST_MESSAGE_LENGTH = 140

# 1-80 chars, starts alphanumeric, ends alphanumeric or underscore
PRIVATE_LINK_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9._-]{0,78}[a-zA-Z0-9_])?$")
SUBRESOURCE_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]{0,79}$")


def validate_private_link_name(value: str) -> str:
    if not PRIVATE_LINK_NAME_PATTERN.match(value):
        raise ValueError(
            f"{value!r} must be between 1 and 80 characters, begin with a letter or number, "
            "end with a letter, number or underscore, and may contain only letters, "
            "numbers, underscores, periods, or hyphens"
        )
    return value


def validate_subresource_name(value: str) -> str:
    if not SUBRESOURCE_NAME_PATTERN.match(value):
        raise ValueError(
            f"{value!r} must begin with a letter and contain only letters, numbers "
            "or underscores (max 80 characters)"
        )
    return value


def validate_resource_id(value: str) -> str:
    if not value or not is_valid_resource_id(value):
        raise ValueError(f"{value!r} is not a valid Azure resource ID")
    return value


def normalize_location(location: str) -> str:
    """Normalize an Azure region ("West Europe" -> "westeurope")."""
    return location.replace(" ", "").lower()


@dataclass(frozen=True)
class NetworkResourceId:
    """Parsed identity of a top-level Microsoft.Network resource."""

    subscription_id: str
    resource_group: str
    resource_type: str
    name: str


def parse_network_resource_id(resource_id: str, resource_type: str) -> NetworkResourceId:
    """Parse a resource ID and check it addresses a resource of the given type.

    Raises:
        InvalidResourceIdError: If the ID is malformed or of another type.
    """
    if not resource_id:
        raise InvalidResourceIdError("resource ID is empty")

    parts = parse_resource_id(resource_id)
    subscription_id = parts.get("subscription")
    resource_group = parts.get("resource_group")
    namespace = parts.get("namespace") or ""
    parsed_type = parts.get("type") or ""
    name = parts.get("name")

    if not subscription_id or not resource_group or not name:
        raise InvalidResourceIdError(
            f"{resource_id!r} must contain a subscription, resource group and name"
        )
    if (
        namespace.lower() != NETWORK_NAMESPACE.lower()
        or parsed_type.lower() != resource_type.lower()
    ):
        raise InvalidResourceIdError(
            f"{resource_id!r} is not a {NETWORK_NAMESPACE}/{resource_type} resource ID"
        )
    if parts.get("child_type_1"):
        raise InvalidResourceIdError(
            f"{resource_id!r} addresses a child resource, not a {resource_type} resource"
        )

    return NetworkResourceId(
        subscription_id=subscription_id,
        resource_group=resource_group,
        resource_type=resource_type,
        name=name,
    )


def parse_endpoint_id(resource_id: str) -> NetworkResourceId:
    return parse_network_resource_id(resource_id, PRIVATE_ENDPOINTS_TYPE)


def targets_private_link_service(resource_id: str) -> bool:
    """Return True if the connection target is a Private Link Service.

    A Private Link Service exposes exactly one sub-resource, so connections to
    it do not need subresource_names.
    """
    parts = parse_resource_id(resource_id)
    return (parts.get("namespace") or "").lower() == NETWORK_NAMESPACE.lower() and (
        parts.get("type") or ""
    ).lower() == PRIVATE_LINK_SERVICES_TYPE.lower()


def validate_endpoint_settings(spec: PrivateEndpointSpec) -> None:
    """Check cross-field invariants of a desired endpoint.

    Raises:
        EndpointValidationError: Listing every violation found.
    """
    problems: list[str] = []
    seen_names: set[str] = set()

    for connection in spec.private_service_connections:
        if connection.name in seen_names:
            problems.append(f"private service connection {connection.name!r} is declared twice")
        seen_names.add(connection.name)

        message = connection.request_message
        if message is not None:
            if not connection.is_manual_connection:
                problems.append(
                    f"connection {connection.name!r}: 'request_message' is only valid "
                    "when 'is_manual_connection' is true"
                )
            if not (MIN_REQUEST_MESSAGE_LENGTH <= len(message) <= MAX_REQUEST_MESSAGE_LENGTH):
                problems.append(
                    f"connection {connection.name!r}: 'request_message' must be between "
                    f"{MIN_REQUEST_MESSAGE_LENGTH} and {MAX_REQUEST_MESSAGE_LENGTH} "
                    f"characters, got {len(message)}"
                )

        if not connection.subresource_names and not targets_private_link_service(
            connection.private_connection_resource_id
        ):
            problems.append(
                f"connection {connection.name!r}: 'subresource_names' must be specified "
                "unless the target is a Private Link Service"
            )

    if problems:
        raise EndpointValidationError(
            problems, name=spec.name, resource_group=spec.resource_group_name
        )
