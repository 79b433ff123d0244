"""Azure client construction.

Authentication always goes through a managed identity; no secrets are read
from the environment or from files.
"""

from __future__ import annotations

import logging

from azure.identity import ManagedIdentityCredential
from azure.mgmt.network import NetworkManagementClient

from .config import Config
from .executor import OperationExecutor
from .reconciler import PrivateEndpointReconciler

logger = logging.getLogger(__name__)


def get_managed_identity_credential(client_id: str | None = None) -> ManagedIdentityCredential:
    """Return a user-assigned identity credential if client_id is set, else system-assigned."""
    if client_id:
        logger.info(
            "Using user-assigned managed identity",
            extra={"client_id": client_id[:8] + "..." if len(client_id) > 8 else client_id},
        )
        return ManagedIdentityCredential(client_id=client_id)

    logger.info("Using system-assigned managed identity")
    return ManagedIdentityCredential()


def build_network_client(config: Config) -> NetworkManagementClient:
    return NetworkManagementClient(
        credential=get_managed_identity_credential(config.client_id),
        subscription_id=config.subscription_id,
    )


def build_reconciler(config: Config) -> PrivateEndpointReconciler:
    """Wire a reconciler with a fresh client and executor."""
    return PrivateEndpointReconciler(
        client=build_network_client(config),
        executor=OperationExecutor(),
        config=config,
    )
