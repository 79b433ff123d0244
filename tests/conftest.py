"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for azure_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from azure_mock import MockNetworkClient, MockNetworkState  # noqa: E402
from azure_mock.fixtures import SUBSCRIPTION_ID  # noqa: E402

from privatelink.config import Config  # noqa: E402
from privatelink.executor import OperationExecutor  # noqa: E402
from privatelink.reconciler import PrivateEndpointReconciler  # noqa: E402


@pytest.fixture
def config() -> Config:
    return Config(subscription_id=SUBSCRIPTION_ID)


@pytest.fixture
def network_state() -> MockNetworkState:
    return MockNetworkState(subscription_id=SUBSCRIPTION_ID)


@pytest.fixture
def reconciler(network_state: MockNetworkState, config: Config) -> PrivateEndpointReconciler:
    return PrivateEndpointReconciler(
        client=MockNetworkClient(network_state),
        executor=OperationExecutor(),
        config=config,
    )
