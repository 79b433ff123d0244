"""Azure Network API mock for testing.

In-memory implementation of the NetworkManagementClient operations used by
the private endpoint reconciler, so tests run without Azure connectivity.

Key Features:
- In-memory private endpoints, DNS zone groups and network interfaces
- Long-running operations with optional delay
- Error injection at issue time or while waiting
- Call recording for asserting which remote calls were (not) made
"""

from .context import MockAzureContext
from .credential import MockManagedIdentityCredential
from .network import (
    DEFAULT_PRIVATE_IP,
    MockLROPoller,
    MockNetworkClient,
    MockNetworkState,
    endpoint_id,
    http_error,
    interface_id,
)

__all__ = [
    "DEFAULT_PRIVATE_IP",
    "MockAzureContext",
    "MockLROPoller",
    "MockManagedIdentityCredential",
    "MockNetworkClient",
    "MockNetworkState",
    "endpoint_id",
    "http_error",
    "interface_id",
]
