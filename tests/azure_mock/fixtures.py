"""Canonical IDs and desired-state payloads shared across tests."""

from __future__ import annotations

from typing import Any

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"
RESOURCE_GROUP = "rg-network"
ENDPOINT_NAME = "pe-sql"

SUBNET_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{RESOURCE_GROUP}"
    "/providers/Microsoft.Network/virtualNetworks/vnet-hub/subnets/snet-endpoints"
)
SQL_SERVER_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/rg-data"
    "/providers/Microsoft.Sql/servers/sql-prod"
)
STORAGE_ACCOUNT_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/rg-data"
    "/providers/Microsoft.Storage/storageAccounts/stprod"
)
PRIVATE_LINK_SERVICE_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/rg-apps"
    "/providers/Microsoft.Network/privateLinkServices/pls-app"
)
SQL_ZONE_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/rg-dns"
    "/providers/Microsoft.Network/privateDnsZones/privatelink.database.windows.net"
)
BLOB_ZONE_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/rg-dns"
    "/providers/Microsoft.Network/privateDnsZones/privatelink.blob.core.windows.net"
)


def automatic_connection(name: str = "conn1", **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": name,
        "isManualConnection": False,
        "privateConnectionResourceId": SQL_SERVER_ID,
        "subresourceNames": ["sqlServer"],
    }
    data.update(overrides)
    return data


def manual_connection(name: str = "conn-manual", **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": name,
        "isManualConnection": True,
        "privateConnectionResourceId": STORAGE_ACCOUNT_ID,
        "subresourceNames": ["blob"],
        "requestMessage": "please approve",
    }
    data.update(overrides)
    return data


def endpoint_data(**overrides: Any) -> dict[str, Any]:
    """Desired state in its YAML (camelCase) form."""
    data: dict[str, Any] = {
        "name": ENDPOINT_NAME,
        "resourceGroupName": RESOURCE_GROUP,
        "location": "West Europe",
        "subnetId": SUBNET_ID,
        "privateServiceConnections": [automatic_connection()],
        "tags": {"env": "test"},
    }
    data.update(overrides)
    return data


def dns_zone_group_data(name: str = "default", zone_ids: list[str] | None = None) -> dict[str, Any]:
    return {
        "name": name,
        "zoneConfigs": [
            {"name": zone_id.rsplit("/", 1)[-1].replace(".", "-"), "privateDnsZoneId": zone_id}
            for zone_id in (zone_ids or [SQL_ZONE_ID])
        ],
    }
