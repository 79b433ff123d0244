"""Drift detection between desired and observed Private Endpoint state.

Observed state uses explicit zero values, so desired values are normalized
the same way before comparing (an unset request message equals ""). Computed
fields (private IP addresses, custom DNS configs, IDs) never count as drift.

Some fields cannot be changed in place. A change to any of them means the
endpoint has to be destroyed and created again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .models import (
    DnsZoneGroup,
    DnsZoneGroupState,
    PrivateEndpointSpec,
    PrivateEndpointState,
    ServiceConnection,
    ServiceConnectionState,
)
from .validation import normalize_location

# Connection fields fixed at creation
REPLACE_ON_CHANGE_CONNECTION_FIELDS = (
    "name",
    "is_manual_connection",
    "private_connection_resource_id",
    "subresource_names",
)


class DriftAction(str, Enum):
    """What converging a single difference requires."""

    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"


@dataclass(frozen=True)
class FieldChange:
    path: str
    before: Any
    after: Any
    action: DriftAction


@dataclass
class DriftReport:
    """Differences between desired and observed state."""

    changes: list[FieldChange] = field(default_factory=list)

    @property
    def has_drift(self) -> bool:
        return bool(self.changes)

    @property
    def requires_replacement(self) -> bool:
        return any(c.action == DriftAction.REPLACE for c in self.changes)

    @property
    def requires_creation(self) -> bool:
        return any(c.action == DriftAction.CREATE for c in self.changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_drift": self.has_drift,
            "requires_replacement": self.requires_replacement,
            "changes": [
                {
                    "path": c.path,
                    "before": c.before,
                    "after": c.after,
                    "action": c.action.value,
                }
                for c in self.changes
            ],
        }


def detect_drift(spec: PrivateEndpointSpec, state: PrivateEndpointState | None) -> DriftReport:
    """Compare desired state against observed state.

    Args:
        spec: Desired state.
        state: Observed state, or None if the endpoint does not exist.
    """
    report = DriftReport()
    if state is None:
        report.changes.append(FieldChange("", None, spec.name, DriftAction.CREATE))
        return report

    _compare(report, "name", state.name, spec.name, DriftAction.REPLACE)
    _compare(
        report,
        "location",
        normalize_location(state.location),
        normalize_location(spec.location),
        DriftAction.REPLACE,
    )
    _compare(
        report, "subnet_id", state.subnet_id.lower(), spec.subnet_id.lower(), DriftAction.REPLACE
    )
    _compare_connections(
        report, spec.private_service_connections, state.private_service_connections
    )
    _compare_dns_zone_group(report, spec.private_dns_zone_group, state.private_dns_zone_group)
    _compare(report, "tags", state.tags, dict(spec.tags), DriftAction.UPDATE)
    return report


def _compare(report: DriftReport, path: str, before: Any, after: Any, action: DriftAction) -> None:
    if before != after:
        report.changes.append(FieldChange(path, before, after, action))


def _connection_fields(connection: ServiceConnection | ServiceConnectionState) -> dict[str, Any]:
    return {
        "name": connection.name,
        "is_manual_connection": connection.is_manual_connection,
        "private_connection_resource_id": connection.private_connection_resource_id.lower(),
        "subresource_names": list(connection.subresource_names),
        "request_message": connection.request_message or "",
    }


def _compare_connections(
    report: DriftReport,
    desired: list[ServiceConnection],
    observed: list[ServiceConnectionState],
) -> None:
    # Azure returns automatic connections before manual ones
    ordered = [c for c in desired if not c.is_manual_connection]
    ordered.extend(c for c in desired if c.is_manual_connection)

    for index in range(max(len(ordered), len(observed))):
        path = f"private_service_connections[{index}]"
        if index >= len(observed):
            report.changes.append(
                FieldChange(path, None, ordered[index].name, DriftAction.REPLACE)
            )
            continue
        if index >= len(ordered):
            report.changes.append(
                FieldChange(path, observed[index].name, None, DriftAction.REPLACE)
            )
            continue

        before = _connection_fields(observed[index])
        after = _connection_fields(ordered[index])
        for key, value in after.items():
            action = (
                DriftAction.REPLACE
                if key in REPLACE_ON_CHANGE_CONNECTION_FIELDS
                else DriftAction.UPDATE
            )
            _compare(report, f"{path}.{key}", before[key], value, action)


def _zone_group_fields(group: DnsZoneGroup | DnsZoneGroupState | None) -> dict[str, Any] | None:
    if group is None:
        return None
    return {
        "name": group.name,
        "zone_configs": [
            {"name": zone.name, "private_dns_zone_id": zone.private_dns_zone_id.lower()}
            for zone in group.zone_configs
        ],
    }


def _compare_dns_zone_group(
    report: DriftReport,
    desired: DnsZoneGroup | None,
    observed: DnsZoneGroupState | None,
) -> None:
    # Zone groups are only read when declared, so an undeclared one is not drift
    if desired is None:
        return
    _compare(
        report,
        "private_dns_zone_group",
        _zone_group_fields(observed),
        _zone_group_fields(desired),
        DriftAction.UPDATE,
    )
