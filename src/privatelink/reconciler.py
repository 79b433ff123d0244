"""Reconciliation of Private Endpoints against Azure.

Each entry point is a strictly sequential phase sequence:

create_or_update:
1. Validate cross-field invariants (no remote call on failure)
2. On first creation, refuse to adopt an endpoint that already exists. On
   update, refuse a spec addressing another endpoint or changing a field
   fixed at creation (name, resource group, location, subnet)
3. Create or update the endpoint and wait for completion
4. Create or update the DNS zone group, if one is declared, and wait
5. Re-read the endpoint authoritatively and populate observed state

read:
Fetch the endpoint by identity (None if gone), resolve the private IP of its
network interface (best effort), flatten connections, zone group, custom DNS
configs and tags.

delete:
Delete by identity. Not-found at any point counts as already deleted. The
DNS zone group is removed by Azure together with the endpoint.

Phases are re-entrant: if a deadline aborts a create half way, the next
create_or_update completes the remaining steps.
"""

from __future__ import annotations

import logging

from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.network.models import PrivateEndpoint

from .config import Config
from .drift import DriftReport, detect_drift
from .errors import (
    DNS_ZONE_GROUP_KIND,
    EndpointValidationError,
    ProviderContractError,
    ProviderError,
    ResourceAlreadyExistsError,
)
from .executor import Deadline, OperationExecutor
from .models import DnsZoneGroupState, PrivateEndpointSpec, PrivateEndpointState
from .transform import (
    expand_dns_zone_group,
    expand_private_endpoint,
    flatten_custom_dns_configs,
    flatten_dns_zone_group,
    flatten_service_connections,
    flatten_tags,
)
from .validation import (
    NETWORK_INTERFACES_TYPE,
    normalize_location,
    parse_endpoint_id,
    parse_network_resource_id,
    validate_endpoint_settings,
)

logger = logging.getLogger(__name__)

# Substring of the provider error returned when a target needs a group ID
MISSING_GROUP_ID_MESSAGE = "is missing required parameter 'group Id'"


class PrivateEndpointReconciler:
    """Converges Private Endpoints towards their desired state.

    The reconciler keeps no per-resource state. Reconciliations of distinct
    endpoints may run concurrently; callers must not run two against the same
    endpoint at once.
    """

    def __init__(
        self,
        client: NetworkManagementClient,
        executor: OperationExecutor,
        config: Config,
    ) -> None:
        self._client = client
        self._executor = executor
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    # -------------------------------------------------------------------------
    # Create / Update
    # -------------------------------------------------------------------------

    async def create_or_update(
        self,
        spec: PrivateEndpointSpec,
        resource_id: str | None = None,
    ) -> PrivateEndpointState:
        """Converge the endpoint described by `spec`.

        Args:
            spec: Desired state.
            resource_id: Identity of the already-managed endpoint, or None when
                this is the first creation.

        Returns:
            Observed state after an authoritative re-read.

        Raises:
            EndpointValidationError: Invalid desired state, or an update that
                would require replacing the endpoint (nothing was sent).
            InvalidResourceIdError: `resource_id` is not a Private Endpoint ID.
            ResourceAlreadyExistsError: First creation hit an unmanaged endpoint.
            ProviderError: Azure rejected a call or an operation failed.
            OperationTimeoutError: The phase deadline elapsed.
            ProviderContractError: Azure returned an endpoint without an ID.
        """
        name = spec.name
        resource_group = spec.resource_group_name
        is_new = resource_id is None
        timeouts = self._config.timeouts
        deadline = Deadline(timeouts.create_seconds if is_new else timeouts.update_seconds)
        verb = "creating" if is_new else "updating"
        noun = "creation" if is_new else "update"

        validate_endpoint_settings(spec)

        if is_new:
            if self._config.import_protection:
                await self._ensure_absent(name, resource_group, deadline)
        else:
            _ensure_same_identity(spec, resource_id)
            await self._ensure_updatable(spec, deadline)

        logger.info(
            f"{verb.capitalize()} private endpoint",
            extra={
                "endpoint": name,
                "resource_group": resource_group,
                "connections": len(spec.private_service_connections),
            },
        )
        parameters = expand_private_endpoint(spec)
        begun = await self._executor.begin(
            lambda: self._client.private_endpoints.begin_create_or_update(
                resource_group, name, parameters
            ),
            operation_name=f'{verb} Private Endpoint "{name}"',
            deadline=deadline,
        )
        if not begun.succeeded:
            detail = str(begun.error)
            if MISSING_GROUP_ID_MESSAGE in detail:
                detail = (
                    "the target requires a 'group Id', ensure that 'subresource_names' "
                    f"is populated: {detail}"
                )
            raise ProviderError(
                detail,
                operation=verb,
                name=name,
                resource_group=resource_group,
                cause=begun.error,
            )

        done = await self._executor.wait(
            begun.result,
            operation_name=f'{verb} Private Endpoint "{name}"',
            deadline=deadline,
        )
        if not done.succeeded:
            raise ProviderError(
                str(done.error),
                operation=f"waiting for {noun} of",
                name=name,
                resource_group=resource_group,
                cause=done.error,
            )

        await self._apply_dns_zone_group(spec, deadline)

        fetched = await self._executor.fetch(
            lambda: self._client.private_endpoints.get(resource_group, name),
            operation_name=f'retrieving Private Endpoint "{name}"',
            deadline=deadline,
        )
        if not fetched.succeeded:
            raise ProviderError(
                str(fetched.error),
                operation="retrieving",
                name=name,
                resource_group=resource_group,
                cause=fetched.error,
            )
        endpoint: PrivateEndpoint = fetched.result
        if endpoint is None or not endpoint.id:
            raise ProviderContractError(
                "API returned a nil/empty ID",
                action="retrieving",
                name=name,
                resource_group=resource_group,
            )

        state = await self._read(endpoint.id, spec.dns_zone_group_name, deadline)
        if state is None:
            raise ProviderContractError(
                f'endpoint "{endpoint.id}" disappeared right after {verb}',
                action="retrieving",
                name=name,
                resource_group=resource_group,
            )
        return state

    async def _ensure_absent(self, name: str, resource_group: str, deadline: Deadline) -> None:
        existing = await self._executor.fetch(
            lambda: self._client.private_endpoints.get(resource_group, name),
            operation_name=f'checking for existing Private Endpoint "{name}"',
            deadline=deadline,
        )
        if existing.not_found:
            return
        if not existing.succeeded:
            raise ProviderError(
                str(existing.error),
                operation="checking for presence of existing",
                name=name,
                resource_group=resource_group,
                cause=existing.error,
            )
        if existing.result is not None and existing.result.id:
            raise ResourceAlreadyExistsError(
                existing.result.id, name=name, resource_group=resource_group
            )

    async def _ensure_updatable(self, spec: PrivateEndpointSpec, deadline: Deadline) -> None:
        """Refuse an update that changes a field fixed at creation.

        An endpoint that has disappeared is recreated by the PUT that follows.
        """
        name = spec.name
        resource_group = spec.resource_group_name
        current = await self._executor.fetch(
            lambda: self._client.private_endpoints.get(resource_group, name),
            operation_name=f'retrieving Private Endpoint "{name}"',
            deadline=deadline,
        )
        if current.not_found:
            return
        if not current.succeeded:
            raise ProviderError(
                str(current.error),
                operation="retrieving",
                name=name,
                resource_group=resource_group,
                cause=current.error,
            )

        endpoint: PrivateEndpoint = current.result
        problems: list[str] = []
        location = normalize_location(endpoint.location or "")
        if location and location != normalize_location(spec.location):
            problems.append(
                f"'location' cannot change from {location!r} to {spec.location!r}, "
                "the endpoint must be replaced"
            )
        subnet_id = (endpoint.subnet.id or "") if endpoint.subnet else ""
        if subnet_id and subnet_id.lower() != spec.subnet_id.lower():
            problems.append(
                f"'subnet_id' cannot change from {subnet_id!r} to {spec.subnet_id!r}, "
                "the endpoint must be replaced"
            )
        if problems:
            raise EndpointValidationError(problems, name=name, resource_group=resource_group)

    async def _apply_dns_zone_group(self, spec: PrivateEndpointSpec, deadline: Deadline) -> None:
        parameters = expand_dns_zone_group(spec.private_dns_zone_group)
        group_name = parameters.name
        if not group_name:
            return

        name = spec.name
        resource_group = spec.resource_group_name
        outcome = await self._executor.execute(
            lambda: self._client.private_dns_zone_groups.begin_create_or_update(
                resource_group, name, group_name, parameters
            ),
            operation_name=f'creating {DNS_ZONE_GROUP_KIND} "{group_name}"',
            deadline=deadline,
        )
        if not outcome.succeeded:
            raise ProviderError(
                str(outcome.error),
                operation="creating",
                kind=DNS_ZONE_GROUP_KIND,
                name=group_name,
                resource_group=resource_group,
                cause=outcome.error,
            )

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    async def read(
        self,
        resource_id: str,
        dns_zone_group_name: str | None = None,
    ) -> PrivateEndpointState | None:
        """Read the observed state of an endpoint.

        Args:
            resource_id: Identity of the endpoint.
            dns_zone_group_name: Name of the zone group in the caller's desired
                state. Zone groups are only fetched when declared.

        Returns:
            Observed state, or None if the endpoint no longer exists.
        """
        deadline = Deadline(self._config.timeouts.read_seconds)
        return await self._read(resource_id, dns_zone_group_name, deadline)

    async def _read(
        self,
        resource_id: str,
        dns_zone_group_name: str | None,
        deadline: Deadline,
    ) -> PrivateEndpointState | None:
        identity = parse_endpoint_id(resource_id)
        name = identity.name
        resource_group = identity.resource_group

        fetched = await self._executor.fetch(
            lambda: self._client.private_endpoints.get(resource_group, name),
            operation_name=f'reading Private Endpoint "{name}"',
            deadline=deadline,
        )
        if fetched.not_found:
            logger.info(
                "Private endpoint does not exist - removing from state",
                extra={"resource_id": resource_id},
            )
            return None
        if not fetched.succeeded:
            raise ProviderError(
                str(fetched.error),
                operation="reading",
                name=name,
                resource_group=resource_group,
                cause=fetched.error,
            )

        endpoint: PrivateEndpoint = fetched.result
        state = PrivateEndpointState(
            id=endpoint.id or resource_id,
            name=endpoint.name or name,
            resource_group_name=resource_group,
            location=normalize_location(endpoint.location or ""),
            subnet_id=(endpoint.subnet.id or "") if endpoint.subnet else "",
        )

        private_ip_address = await self._lookup_private_ip_address(endpoint, deadline)
        connections = flatten_service_connections(
            endpoint.private_link_service_connections,
            endpoint.manual_private_link_service_connections,
        )
        for connection in connections:
            connection.private_ip_address = private_ip_address
        state.private_service_connections = connections

        if dns_zone_group_name:
            groups = await self._read_dns_zone_group(
                resource_group, name, dns_zone_group_name, deadline
            )
            state.private_dns_zone_group = groups[0] if groups else None

        state.custom_dns_configs = flatten_custom_dns_configs(endpoint.custom_dns_configs)
        state.tags = flatten_tags(endpoint.tags)
        return state

    async def _read_dns_zone_group(
        self,
        resource_group: str,
        endpoint_name: str,
        group_name: str,
        deadline: Deadline,
    ) -> list[DnsZoneGroupState]:
        # Unlike the IP lookup, a failure here is fatal
        outcome = await self._executor.fetch(
            lambda: self._client.private_dns_zone_groups.get(
                resource_group, endpoint_name, group_name
            ),
            operation_name=f'reading {DNS_ZONE_GROUP_KIND} "{group_name}"',
            deadline=deadline,
        )
        if not outcome.succeeded:
            raise ProviderError(
                str(outcome.error),
                operation="reading",
                kind=DNS_ZONE_GROUP_KIND,
                name=group_name,
                resource_group=resource_group,
                cause=outcome.error,
            )
        return flatten_dns_zone_group(outcome.result)

    async def _lookup_private_ip_address(
        self, endpoint: PrivateEndpoint, deadline: Deadline
    ) -> str:
        """Resolve the private IP of the endpoint's first network interface.

        Best effort: any failure yields "".
        """
        interfaces = endpoint.network_interfaces or []
        if not interfaces or not interfaces[0].id:
            return ""

        interface_id = interfaces[0].id
        try:
            nic_id = parse_network_resource_id(interface_id, NETWORK_INTERFACES_TYPE)
        except ValueError as e:
            logger.warning(
                "Unparseable network interface ID",
                extra={"interface_id": interface_id, "error": str(e)},
            )
            return ""

        outcome = await self._executor.fetch(
            lambda: self._client.network_interfaces.get(nic_id.resource_group, nic_id.name),
            operation_name=f'reading Network Interface "{nic_id.name}"',
            deadline=deadline,
        )
        if not outcome.succeeded:
            logger.warning(
                "Could not resolve private IP address",
                extra={"interface_id": interface_id, "error": str(outcome.error)},
            )
            return ""

        ip_configurations = outcome.result.ip_configurations or []
        if not ip_configurations:
            return ""
        return ip_configurations[0].private_ip_address or ""

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    async def delete(self, resource_id: str) -> None:
        """Delete an endpoint. Deleting an absent endpoint succeeds."""
        identity = parse_endpoint_id(resource_id)
        name = identity.name
        resource_group = identity.resource_group
        deadline = Deadline(self._config.timeouts.delete_seconds)

        logger.info(
            "Deleting private endpoint",
            extra={"endpoint": name, "resource_group": resource_group},
        )
        begun = await self._executor.begin(
            lambda: self._client.private_endpoints.begin_delete(resource_group, name),
            operation_name=f'deleting Private Endpoint "{name}"',
            deadline=deadline,
        )
        if begun.not_found:
            logger.info("Private endpoint already absent", extra={"resource_id": resource_id})
            return
        if not begun.succeeded:
            raise ProviderError(
                str(begun.error),
                operation="deleting",
                name=name,
                resource_group=resource_group,
                cause=begun.error,
            )

        done = await self._executor.wait(
            begun.result,
            operation_name=f'deleting Private Endpoint "{name}"',
            deadline=deadline,
        )
        if not done.succeeded and not done.not_found:
            raise ProviderError(
                str(done.error),
                operation="waiting for deletion of",
                name=name,
                resource_group=resource_group,
                cause=done.error,
            )

    # -------------------------------------------------------------------------
    # Plan
    # -------------------------------------------------------------------------

    async def plan(
        self,
        spec: PrivateEndpointSpec,
        resource_id: str | None = None,
    ) -> DriftReport:
        """Compare desired state to the current remote state without changing it."""
        validate_endpoint_settings(spec)
        state = None
        if resource_id is not None:
            state = await self.read(resource_id, spec.dns_zone_group_name)
        return detect_drift(spec, state)


def _ensure_same_identity(spec: PrivateEndpointSpec, resource_id: str) -> None:
    """Check that `spec` still addresses the managed endpoint `resource_id`.

    Name and resource group are fixed at creation. A spec naming another
    endpoint means replacement, never a second PUT beside the managed one.
    """
    identity = parse_endpoint_id(resource_id)
    problems: list[str] = []
    if identity.name.lower() != spec.name.lower():
        problems.append(
            f"'name' cannot change from {identity.name!r} to {spec.name!r}, "
            "the endpoint must be replaced"
        )
    if identity.resource_group.lower() != spec.resource_group_name.lower():
        problems.append(
            f"'resource_group_name' cannot change from {identity.resource_group!r} "
            f"to {spec.resource_group_name!r}, the endpoint must be replaced"
        )
    if problems:
        raise EndpointValidationError(
            problems, name=identity.name, resource_group=identity.resource_group
        )
