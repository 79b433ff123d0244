"""Desired-state file loading with validation.

SECURITY: File size is checked before reading and all content is validated
at the boundary.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .config import MAX_SPEC_FILE_SIZE_BYTES
from .models import PrivateEndpointSpec

logger = logging.getLogger(__name__)

SPEC_KIND = "PrivateEndpoint"


class SpecLoadError(Exception):
    """Raised when spec loading or validation fails."""

    pass


def load_endpoint_spec(spec_path: Path) -> PrivateEndpointSpec:
    """Load and validate a Private Endpoint spec from YAML.

    Both a flat mapping and a Kubernetes-style wrapper
    (apiVersion / kind / metadata / spec) are accepted.

    Raises:
        SpecLoadError: If the file cannot be read or fails validation.
    """
    if not spec_path.exists():
        raise SpecLoadError(f"Spec file not found: {spec_path}")

    try:
        file_size = spec_path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat spec file {spec_path}: {e}") from e

    if file_size > MAX_SPEC_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"Spec file exceeds maximum size of {MAX_SPEC_FILE_SIZE_BYTES} bytes: {spec_path}"
        )

    try:
        content = spec_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read spec file {spec_path}: {e}") from e

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {spec_path}: {e}") from e

    if not isinstance(raw_data, dict):
        raise SpecLoadError(f"Spec file must contain a YAML mapping: {spec_path}")

    if "apiVersion" in raw_data and "spec" in raw_data:
        kind = raw_data.get("kind", SPEC_KIND)
        if kind != SPEC_KIND:
            raise SpecLoadError(f"Unsupported kind {kind!r} in {spec_path}, expected {SPEC_KIND}")
        spec_data = raw_data.get("spec", {})
        if not isinstance(spec_data, dict):
            raise SpecLoadError(f"Spec section must be a mapping: {spec_path}")
        # metadata.name stands in for spec.name
        metadata = raw_data.get("metadata")
        if isinstance(metadata, dict) and "name" not in spec_data and metadata.get("name"):
            spec_data = {**spec_data, "name": metadata["name"]}
    else:
        spec_data = raw_data

    try:
        spec = PrivateEndpointSpec.model_validate(spec_data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"  - {loc}: {error['msg']}")

        error_list = "\n".join(errors)
        raise SpecLoadError(f"Validation failed for {spec_path}:\n{error_list}") from e

    logger.info("Loaded private endpoint spec '%s' from %s", spec.name, spec_path)
    return spec
