"""End-to-end tests for the privatelink CLI against the mock Azure API."""

import json
import logging
import os
import time
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from azure_mock import (
    DEFAULT_PRIVATE_IP,
    MockAzureContext,
    MockNetworkState,
    endpoint_id,
    http_error,
)
from azure_mock.fixtures import (
    ENDPOINT_NAME,
    RESOURCE_GROUP,
    SUBSCRIPTION_ID,
    automatic_connection,
    dns_zone_group_data,
    endpoint_data,
)
from click.testing import CliRunner

from privatelink.cli import (
    EXIT_ALREADY_EXISTS,
    EXIT_FAILURE,
    EXIT_INVALID_INPUT,
    EXIT_TIMEOUT,
    cli,
)

ENDPOINT_ID = endpoint_id(SUBSCRIPTION_ID, RESOURCE_GROUP, ENDPOINT_NAME)


@pytest.fixture(autouse=True)
def restore_root_handlers() -> Iterator[None]:
    """setup_logging() binds the runner's stderr; put the original handlers back."""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def env() -> Iterator[None]:
    with patch.dict(os.environ, {"AZURE_SUBSCRIPTION_ID": SUBSCRIPTION_ID}, clear=True):
        yield


@pytest.fixture
def spec_file(tmp_path: Path) -> Path:
    path = tmp_path / "endpoint.yaml"
    path.write_text(yaml.safe_dump(endpoint_data(privateDnsZoneGroup=dns_zone_group_data())))
    return path


@pytest.mark.usefixtures("env")
class TestCli:
    """Tests for CLI commands."""

    def test_apply_creates_endpoint(self, spec_file: Path) -> None:
        with MockAzureContext() as ctx:
            result = CliRunner().invoke(cli, ["apply", str(spec_file)])

        assert result.exit_code == 0, result.output
        state = json.loads(result.stdout)
        assert state["id"] == ENDPOINT_ID
        assert state["private_dns_zone_group"]["name"] == "default"
        assert state["private_service_connections"][0]["private_ip_address"] == DEFAULT_PRIVATE_IP
        assert ctx.state.count("private_endpoints.begin_create_or_update") == 1
        assert ctx.credentials[0].client_id is None

    def test_apply_uses_user_assigned_identity(self, spec_file: Path) -> None:
        with patch.dict(os.environ, {"AZURE_CLIENT_ID": "11111111-2222"}):
            with MockAzureContext() as ctx:
                result = CliRunner().invoke(cli, ["apply", str(spec_file)])

        assert result.exit_code == 0, result.output
        assert ctx.credentials[0].client_id == "11111111-2222"

    def test_apply_existing_endpoint_requires_import(self, spec_file: Path) -> None:
        with MockAzureContext() as ctx:
            runner = CliRunner()
            runner.invoke(cli, ["apply", str(spec_file)])
            result = runner.invoke(cli, ["apply", str(spec_file)])

        assert result.exit_code == EXIT_ALREADY_EXISTS
        assert "must be imported" in result.output
        assert ctx.state.count("private_endpoints.begin_create_or_update") == 1

    def test_apply_update(self, spec_file: Path) -> None:
        with MockAzureContext():
            runner = CliRunner()
            runner.invoke(cli, ["apply", str(spec_file)])
            result = runner.invoke(cli, ["apply", str(spec_file), "--id", ENDPOINT_ID])

        assert result.exit_code == 0, result.output

    def test_apply_invalid_spec(self, tmp_path: Path) -> None:
        path = tmp_path / "endpoint.yaml"
        path.write_text(yaml.safe_dump(endpoint_data(subnetId="bad")))

        with MockAzureContext() as ctx:
            result = CliRunner().invoke(cli, ["apply", str(path)])

        assert result.exit_code == EXIT_INVALID_INPUT
        assert "subnetId" in result.output
        assert ctx.state.calls == []

    def test_apply_invalid_settings(self, tmp_path: Path) -> None:
        path = tmp_path / "endpoint.yaml"
        connection = automatic_connection(requestMessage="hello")
        path.write_text(yaml.safe_dump(endpoint_data(privateServiceConnections=[connection])))

        with MockAzureContext() as ctx:
            result = CliRunner().invoke(cli, ["apply", str(path)])

        assert result.exit_code == EXIT_INVALID_INPUT
        assert ctx.state.calls == []

    def test_apply_provider_failure(self, spec_file: Path) -> None:
        with MockAzureContext() as ctx:
            ctx.state.issue_errors["private_endpoints.begin_create_or_update"] = http_error(
                "subnet is full"
            )
            result = CliRunner().invoke(cli, ["apply", str(spec_file)])

        assert result.exit_code == EXIT_FAILURE
        assert "subnet is full" in result.output

    def test_missing_configuration(self, spec_file: Path) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with MockAzureContext():
                result = CliRunner().invoke(cli, ["apply", str(spec_file)])

        assert result.exit_code == EXIT_INVALID_INPUT
        assert "AZURE_SUBSCRIPTION_ID" in result.output

    def test_apply_exits_at_the_create_deadline(self, spec_file: Path) -> None:
        state = MockNetworkState(subscription_id=SUBSCRIPTION_ID, poller_delay_seconds=5.0)
        started = time.monotonic()

        with patch.dict(os.environ, {"CREATE_TIMEOUT": "1"}):
            with MockAzureContext(state):
                result = CliRunner().invoke(cli, ["apply", str(spec_file)])

        assert result.exit_code == EXIT_TIMEOUT
        assert "deadline of 1s exceeded" in result.output
        assert time.monotonic() - started < 3

    def test_plan(self, spec_file: Path) -> None:
        with MockAzureContext():
            runner = CliRunner()
            before = runner.invoke(cli, ["plan", str(spec_file)])
            runner.invoke(cli, ["apply", str(spec_file)])
            after = runner.invoke(cli, ["plan", str(spec_file), "--id", ENDPOINT_ID])

        assert before.exit_code == 0, before.output
        assert json.loads(before.stdout)["changes"][0]["action"] == "create"
        assert after.exit_code == 0, after.output
        assert json.loads(after.stdout)["has_drift"] is False

    def test_show(self, spec_file: Path) -> None:
        with MockAzureContext():
            runner = CliRunner()
            runner.invoke(cli, ["apply", str(spec_file)])
            result = runner.invoke(cli, ["show", ENDPOINT_ID, "--dns-zone-group", "default"])

        assert result.exit_code == 0, result.output
        state = json.loads(result.stdout)
        assert state["name"] == ENDPOINT_NAME
        assert state["private_dns_zone_group"]["name"] == "default"

    def test_show_missing_endpoint(self) -> None:
        with MockAzureContext():
            result = CliRunner().invoke(cli, ["show", ENDPOINT_ID])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) is None

    def test_show_invalid_id(self) -> None:
        with MockAzureContext():
            result = CliRunner().invoke(cli, ["show", "not-an-id"])

        assert result.exit_code == EXIT_INVALID_INPUT

    def test_delete(self, spec_file: Path) -> None:
        with MockAzureContext() as ctx:
            runner = CliRunner()
            runner.invoke(cli, ["apply", str(spec_file)])
            result = runner.invoke(cli, ["delete", ENDPOINT_ID])
            repeat = runner.invoke(cli, ["delete", ENDPOINT_ID])

        assert result.exit_code == 0, result.output
        assert f"Deleted {ENDPOINT_ID}" in result.stdout
        assert repeat.exit_code == 0, repeat.output
        assert ctx.state.endpoints == {}
