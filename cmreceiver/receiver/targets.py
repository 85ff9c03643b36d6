"""Target list parsing and resolution.

The target list is a YAML sequence of ``{name, namespace}`` mappings::

    - name: app-config
      namespace: default
    - name: feature-flags
      namespace: platform

Every scalar is read as its source text, so names such as ``2024`` or
``on`` stay strings instead of becoming YAML 1.1 ints or booleans.

``resolve_targets`` turns the parsed sequence into a name -> namespace
mapping.  Duplicate names follow a last-write-wins policy: the namespace of
the last occurrence in source order is kept and each overwrite is logged.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
import yaml

from cmreceiver.errors import TargetListError
from cmreceiver.models.targets import TargetMapping, TargetSpec

_log = structlog.get_logger(component="receiver.targets")


def parse_target_list(text: str | None, source: str = "target list") -> list[TargetSpec]:
    """Parse YAML *text* into an ordered list of TargetSpec.

    Raises TargetListError if the text is absent, empty, not valid YAML, not a
    sequence, or contains an entry without a non-empty string name and
    namespace.
    """
    if text is None or not text.strip():
        raise TargetListError(f"{source} is not set or empty")

    try:
        document = yaml.load(text, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        raise TargetListError(f"Error decoding YAML from {source}: {exc}") from exc

    if document is None:
        raise TargetListError(f"{source} is empty")
    if not isinstance(document, list):
        raise TargetListError(f"{source} must be a YAML sequence, got {type(document).__name__}")

    return [_parse_entry(entry, index, source) for index, entry in enumerate(document)]


def _parse_entry(entry: Any, index: int, source: str) -> TargetSpec:
    if not isinstance(entry, dict):
        raise TargetListError(f"{source}[{index}] must be a mapping with name and namespace")
    fields: dict[str, str] = {}
    for key in ("name", "namespace"):
        value = entry.get(key)
        if not isinstance(value, str) or not value.strip():
            raise TargetListError(f"{source}[{index}] is missing a non-empty '{key}'")
        fields[key] = value.strip()
    return TargetSpec(name=fields["name"], namespace=fields["namespace"])


def resolve_targets(specs: Sequence[TargetSpec] | None) -> TargetMapping:
    """Build the name -> namespace mapping from *specs* in sequence order."""
    if not specs:
        raise TargetListError("Target list is empty; at least one target is required")

    mapping: TargetMapping = {}
    for spec in specs:
        previous = mapping.get(spec.name)
        if previous is not None and previous != spec.namespace:
            _log.warning(
                "target_overridden",
                name=spec.name,
                previous_namespace=previous,
                namespace=spec.namespace,
            )
        mapping[spec.name] = spec.namespace
    return mapping
