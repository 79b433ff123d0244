"""Error taxonomy for Private Endpoint reconciliation.

Every error raised out of the reconciler carries the resource kind, name and
resource group so that the message is actionable without extra context:

    creating Private Endpoint "pe-sql" (Resource Group "rg-data"): <detail>

Not-found conditions are NOT errors: a read of a missing endpoint returns
None and a delete of a missing endpoint succeeds.
"""

from __future__ import annotations

ENDPOINT_KIND = "Private Endpoint"
DNS_ZONE_GROUP_KIND = "Private Endpoint DNS Zone Group"


class PrivateEndpointError(Exception):
    """Base class for all reconciliation failures."""

    def __init__(
        self,
        detail: str,
        *,
        action: str = "reconciling",
        kind: str = ENDPOINT_KIND,
        name: str = "",
        resource_group: str = "",
    ) -> None:
        self.detail = detail
        self.action = action
        self.kind = kind
        self.name = name
        self.resource_group = resource_group
        super().__init__(self._format())

    def _format(self) -> str:
        subject = f'{self.action} {self.kind} "{self.name}"'
        if self.resource_group:
            subject += f' (Resource Group "{self.resource_group}")'
        return f"{subject}: {self.detail}"


class EndpointValidationError(PrivateEndpointError):
    """Desired configuration violates an invariant. No remote call was made."""

    def __init__(self, problems: list[str], *, name: str = "", resource_group: str = "") -> None:
        self.problems = problems
        super().__init__(
            "; ".join(problems),
            action="validating the configuration for the",
            name=name,
            resource_group=resource_group,
        )


class ResourceAlreadyExistsError(PrivateEndpointError):
    """An unmanaged resource with the same identity already exists remotely."""

    def __init__(self, resource_id: str, *, name: str = "", resource_group: str = "") -> None:
        self.resource_id = resource_id
        super().__init__(
            f'a resource with the ID "{resource_id}" already exists - '
            "it must be imported before it can be managed",
            action="creating",
            name=name,
            resource_group=resource_group,
        )


class ProviderError(PrivateEndpointError):
    """The provider rejected a call or an operation finished in a failed state."""

    def __init__(
        self,
        detail: str,
        *,
        operation: str,
        kind: str = ENDPOINT_KIND,
        name: str = "",
        resource_group: str = "",
        cause: BaseException | None = None,
    ) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(
            detail,
            action=operation,
            kind=kind,
            name=name,
            resource_group=resource_group,
        )


class OperationTimeoutError(PrivateEndpointError):
    """A phase deadline elapsed before the remote side reached a terminal state."""

    def __init__(self, operation_name: str, timeout_seconds: float) -> None:
        self.operation_name = operation_name
        self.timeout_seconds = timeout_seconds
        super().__init__(f"deadline of {timeout_seconds:.0f}s exceeded", action=operation_name)

    def _format(self) -> str:
        return f"{self.action}: {self.detail}"


class ProviderContractError(PrivateEndpointError):
    """The provider reported success but returned something unusable."""

    pass


class InvalidResourceIdError(ValueError):
    """Raised when an identity string cannot be parsed as the expected resource."""

    pass
