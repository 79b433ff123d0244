"""Pydantic models for Private Endpoint desired and observed state.

Desired-state models validate every field at the boundary (fail fast, fail
loudly). Observed-state models mirror them without constraints: whatever the
provider returns must flatten into them, and absent values are represented
by explicit zero values ("" / []) rather than None.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from .validation import (
    MAX_REQUEST_MESSAGE_LENGTH,
    MIN_REQUEST_MESSAGE_LENGTH,
    normalize_location,
    validate_private_link_name,
    validate_resource_id,
    validate_subresource_name,
)

# =============================================================================
# Desired State
# =============================================================================


class ZoneConfig(BaseModel):
    """A private DNS zone linked through a zone group."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: str
    private_dns_zone_id: str = Field(alias="privateDnsZoneId")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_private_link_name(v)

    @field_validator("private_dns_zone_id")
    @classmethod
    def validate_zone_id(cls, v: str) -> str:
        return validate_resource_id(v)


class DnsZoneGroup(BaseModel):
    """Private DNS zone group attached to the endpoint (at most one)."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: str
    zone_configs: list[ZoneConfig] = Field(alias="zoneConfigs", min_length=1)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_private_link_name(v)


class ServiceConnection(BaseModel):
    """Connection from the endpoint to a private link resource."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: str
    is_manual_connection: bool = Field(alias="isManualConnection")
    private_connection_resource_id: str = Field(alias="privateConnectionResourceId")
    subresource_names: list[str] = Field(default_factory=list, alias="subresourceNames")
    request_message: (
        Annotated[
            str,
            Field(min_length=MIN_REQUEST_MESSAGE_LENGTH, max_length=MAX_REQUEST_MESSAGE_LENGTH),
        ]
        | None
    ) = Field(None, alias="requestMessage")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_private_link_name(v)

    @field_validator("private_connection_resource_id")
    @classmethod
    def validate_target(cls, v: str) -> str:
        return validate_resource_id(v)

    @field_validator("subresource_names")
    @classmethod
    def validate_subresources(cls, v: list[str]) -> list[str]:
        for item in v:
            validate_subresource_name(item)
        return v


class PrivateEndpointSpec(BaseModel):
    """Desired state of a Private Endpoint."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: str
    resource_group_name: Annotated[str, Field(min_length=1, max_length=90)] = Field(
        alias="resourceGroupName"
    )
    location: Annotated[str, Field(min_length=1)]
    subnet_id: str = Field(alias="subnetId")
    private_service_connections: list[ServiceConnection] = Field(
        alias="privateServiceConnections", min_length=1
    )
    private_dns_zone_group: DnsZoneGroup | None = Field(None, alias="privateDnsZoneGroup")
    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_private_link_name(v)

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: str) -> str:
        return normalize_location(v)

    @field_validator("subnet_id")
    @classmethod
    def validate_subnet(cls, v: str) -> str:
        return validate_resource_id(v)

    @property
    def dns_zone_group_name(self) -> str | None:
        if self.private_dns_zone_group is None:
            return None
        return self.private_dns_zone_group.name


# =============================================================================
# Observed State
# =============================================================================


class ServiceConnectionState(BaseModel):
    """A service connection as read back from the provider."""

    name: str = ""
    is_manual_connection: bool = False
    private_connection_resource_id: str = ""
    subresource_names: list[str] = Field(default_factory=list)
    request_message: str = ""
    private_ip_address: str = ""


class ZoneConfigState(BaseModel):
    name: str = ""
    private_dns_zone_id: str = ""


class DnsZoneGroupState(BaseModel):
    id: str = ""
    name: str = ""
    zone_configs: list[ZoneConfigState] = Field(default_factory=list)


class CustomDnsConfig(BaseModel):
    """A resolved FQDN and its addresses, computed by the provider."""

    fqdn: str = ""
    ip_addresses: list[str] = Field(default_factory=list)


class PrivateEndpointState(BaseModel):
    """Observed state of a Private Endpoint after an authoritative read."""

    id: str
    name: str
    resource_group_name: str
    location: str = ""
    subnet_id: str = ""
    private_service_connections: list[ServiceConnectionState] = Field(default_factory=list)
    private_dns_zone_group: DnsZoneGroupState | None = None
    custom_dns_configs: list[CustomDnsConfig] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)
