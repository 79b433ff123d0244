"""Configuration management with validation.

All settings come from environment variables and are validated at load time
so that a misconfigured reconciler fails before issuing any Azure call.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Phase deadlines (seconds)
DEFAULT_CREATE_TIMEOUT_SECONDS = 60 * 60
DEFAULT_READ_TIMEOUT_SECONDS = 5 * 60
DEFAULT_UPDATE_TIMEOUT_SECONDS = 60 * 60
DEFAULT_DELETE_TIMEOUT_SECONDS = 60 * 60
MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 24 * 60 * 60

# Spec file limits
MAX_SPEC_FILE_SIZE_BYTES = 256 * 1024

# Input validation patterns
VALID_SUBSCRIPTION_ID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"


@dataclass(frozen=True)
class PhaseTimeouts:
    """Deadlines for each lifecycle phase.

    Create, update and delete wait on long-running operations and get long
    deadlines. Read only issues gets and is kept short.
    """

    create_seconds: int = DEFAULT_CREATE_TIMEOUT_SECONDS
    read_seconds: int = DEFAULT_READ_TIMEOUT_SECONDS
    update_seconds: int = DEFAULT_UPDATE_TIMEOUT_SECONDS
    delete_seconds: int = DEFAULT_DELETE_TIMEOUT_SECONDS

    def items(self) -> list[tuple[str, int]]:
        return [
            ("CREATE_TIMEOUT", self.create_seconds),
            ("READ_TIMEOUT", self.read_seconds),
            ("UPDATE_TIMEOUT", self.update_seconds),
            ("DELETE_TIMEOUT", self.delete_seconds),
        ]


@dataclass(frozen=True)
class Config:
    """Reconciler configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing at runtime.
    """

    subscription_id: str

    # User-assigned managed identity; None selects the system-assigned identity
    client_id: str | None = None

    timeouts: PhaseTimeouts = field(default_factory=PhaseTimeouts)

    # Refuse to create over an endpoint that exists but is not yet managed
    import_protection: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.subscription_id:
            errors.append("AZURE_SUBSCRIPTION_ID is required")
        elif not re.match(VALID_SUBSCRIPTION_ID_PATTERN, self.subscription_id.lower()):
            errors.append(f"AZURE_SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}")

        for key, value in self.timeouts.items():
            if not (MIN_TIMEOUT_SECONDS <= value <= MAX_TIMEOUT_SECONDS):
                errors.append(
                    f"{key} must be between {MIN_TIMEOUT_SECONDS} "
                    f"and {MAX_TIMEOUT_SECONDS} seconds"
                )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AZURE_SUBSCRIPTION_ID: Subscription holding the endpoints
            AZURE_CLIENT_ID: Client ID of a user-assigned managed identity (optional)
            CREATE_TIMEOUT: Create deadline in seconds (default: 3600)
            READ_TIMEOUT: Read deadline in seconds (default: 300)
            UPDATE_TIMEOUT: Update deadline in seconds (default: 3600)
            DELETE_TIMEOUT: Delete deadline in seconds (default: 3600)
            IMPORT_PROTECTION: If "false", adopt pre-existing endpoints on create
                (default: true)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        return cls(
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            client_id=os.environ.get("AZURE_CLIENT_ID") or None,
            timeouts=PhaseTimeouts(
                create_seconds=get_int("CREATE_TIMEOUT", DEFAULT_CREATE_TIMEOUT_SECONDS),
                read_seconds=get_int("READ_TIMEOUT", DEFAULT_READ_TIMEOUT_SECONDS),
                update_seconds=get_int("UPDATE_TIMEOUT", DEFAULT_UPDATE_TIMEOUT_SECONDS),
                delete_seconds=get_int("DELETE_TIMEOUT", DEFAULT_DELETE_TIMEOUT_SECONDS),
            ),
            import_protection=get_bool("IMPORT_PROTECTION", True),
        )
