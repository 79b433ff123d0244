"""Conversions between desired-state models and Azure SDK wire models.

expand_* functions build request shapes from desired state; flatten_*
functions turn provider responses back into observed state. All functions
are pure: no I/O, no waiting, and no input shape makes them raise.

The desired model keeps service connections as one ordered list with an
is_manual_connection discriminator. Only this module splits it into the
provider's two collections (automatic / manual) and merges them back.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from azure.mgmt.network.models import (
    CustomDnsConfigPropertiesFormat,
    PrivateDnsZoneConfig,
    PrivateDnsZoneGroup,
    PrivateEndpoint,
    PrivateLinkServiceConnection,
    Subnet,
)

from .models import (
    CustomDnsConfig,
    DnsZoneGroup,
    DnsZoneGroupState,
    PrivateEndpointSpec,
    ServiceConnection,
    ServiceConnectionState,
    ZoneConfigState,
)
from .validation import normalize_location

# =============================================================================
# Desired -> Wire
# =============================================================================


def expand_private_endpoint(spec: PrivateEndpointSpec) -> PrivateEndpoint:
    """Build the create-or-update request body for an endpoint."""
    connections = spec.private_service_connections
    return PrivateEndpoint(
        location=normalize_location(spec.location),
        subnet=Subnet(id=spec.subnet_id),
        private_link_service_connections=expand_service_connections(connections, manual=False),
        manual_private_link_service_connections=expand_service_connections(
            connections, manual=True
        ),
        tags=expand_tags(spec.tags),
    )


def expand_service_connections(
    connections: Sequence[ServiceConnection], manual: bool
) -> list[PrivateLinkServiceConnection]:
    """Select the connections whose discriminator equals `manual`, in order."""
    return [
        _expand_service_connection(connection)
        for connection in connections
        if connection.is_manual_connection == manual
    ]


def _expand_service_connection(connection: ServiceConnection) -> PrivateLinkServiceConnection:
    result = PrivateLinkServiceConnection(
        name=connection.name,
        private_link_service_id=connection.private_connection_resource_id,
        group_ids=list(connection.subresource_names),
    )
    # The API treats an empty message differently from an absent one
    if connection.request_message:
        result.request_message = connection.request_message
    return result


def expand_dns_zone_group(group: DnsZoneGroup | None) -> PrivateDnsZoneGroup:
    """Build the zone group request body.

    An unset group yields an empty shape whose name is None, meaning no
    dependent resource is requested.
    """
    if group is None:
        return PrivateDnsZoneGroup()

    return PrivateDnsZoneGroup(
        name=group.name,
        private_dns_zone_configs=[
            PrivateDnsZoneConfig(name=zone.name, private_dns_zone_id=zone.private_dns_zone_id)
            for zone in group.zone_configs
        ],
    )


def expand_tags(tags: Mapping[str, str] | None) -> dict[str, str]:
    return dict(tags or {})


# =============================================================================
# Wire -> Observed
# =============================================================================


def flatten_service_connections(
    automatic: Sequence[PrivateLinkServiceConnection] | None,
    manual: Sequence[PrivateLinkServiceConnection] | None,
) -> list[ServiceConnectionState]:
    """Merge the provider's two collections into one list, automatic first.

    private_ip_address is left empty; the reconciler fills it in from the
    endpoint's network interface.
    """
    results = [_flatten_service_connection(item, manual=False) for item in automatic or []]
    results.extend(_flatten_service_connection(item, manual=True) for item in manual or [])
    return results


def _flatten_service_connection(
    item: PrivateLinkServiceConnection, manual: bool
) -> ServiceConnectionState:
    return ServiceConnectionState(
        name=item.name or "",
        is_manual_connection=manual,
        private_connection_resource_id=item.private_link_service_id or "",
        subresource_names=list(item.group_ids or []),
        request_message=(item.request_message or "") if manual else "",
    )


def flatten_dns_zone_group(group: PrivateDnsZoneGroup | None) -> list[DnsZoneGroupState]:
    """Return [] when no zone group exists, else exactly one element."""
    if group is None:
        return []

    return [
        DnsZoneGroupState(
            id=group.id or "",
            name=group.name or "",
            zone_configs=[
                ZoneConfigState(
                    name=zone.name or "",
                    private_dns_zone_id=zone.private_dns_zone_id or "",
                )
                for zone in group.private_dns_zone_configs or []
            ],
        )
    ]


def flatten_custom_dns_configs(
    configs: Sequence[CustomDnsConfigPropertiesFormat] | None,
) -> list[CustomDnsConfig]:
    return [
        CustomDnsConfig(fqdn=item.fqdn or "", ip_addresses=list(item.ip_addresses or []))
        for item in configs or []
    ]


def flatten_tags(tags: Mapping[str, str] | None) -> dict[str, str]:
    return {key: value for key, value in (tags or {}).items() if value is not None}
