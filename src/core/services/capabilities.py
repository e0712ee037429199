"""Capability resolution.

Decides which optional platform features a cluster can use, given the
installation's provider and the cluster's release version.

Why a resolver object:
- The capability table is an immutable value handed in at construction; tests
  and future installations can pass their own table instead of patching a
  module-level structure.
- Results keep the table's order so listings are deterministic.
"""

from __future__ import annotations

import logging
from typing import Iterable

from core.domain.models import CapabilityDefinition, ProviderRelease, ReleaseVersion
from core.interfaces.sources import InstallationSource

logger = logging.getLogger(__name__)


def _capability(name: str, **minimums: str) -> CapabilityDefinition:
    return CapabilityDefinition(
        name=name,
        required_release_per_provider=tuple(
            ProviderRelease(provider=provider, release_version=version) for provider, version in minimums.items()
        ),
    )


AUTOSCALING = _capability("Autoscaling", aws="6.3.0")
AVAILABILITY_ZONES = _capability("AvailabilityZones", aws="6.1.0", azure="12.0.0")
NODE_POOLS = _capability("NodePools", aws="9.0.0", azure="13.0.0")
HA_MASTERS = _capability("HAMasters", aws="11.4.0")

DEFAULT_CAPABILITIES: tuple[CapabilityDefinition, ...] = (
    AUTOSCALING,
    AVAILABILITY_ZONES,
    NODE_POOLS,
    HA_MASTERS,
)


class CapabilityResolver:
    """Matches capability definitions against a provider and release version."""

    def __init__(self, definitions: Iterable[CapabilityDefinition] = DEFAULT_CAPABILITIES) -> None:
        self._definitions: tuple[CapabilityDefinition, ...] = tuple(definitions)
        names = [d.name for d in self._definitions]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate capability names: {', '.join(duplicates)}")

    @property
    def definitions(self) -> tuple[CapabilityDefinition, ...]:
        return self._definitions

    def get(self, name: str) -> CapabilityDefinition:
        for definition in self._definitions:
            if definition.name.lower() == name.strip().lower():
                return definition
        raise KeyError(name)

    def resolve(self, provider: str, release_version: str) -> list[CapabilityDefinition]:
        """Capabilities available for `provider` at `release_version`, in table order.

        Raises `InvalidVersionError` when the version is not `major.minor.patch`.
        A provider without entries yields an empty list.
        """

        version = ReleaseVersion.parse(release_version)
        active: list[CapabilityDefinition] = []
        for definition in self._definitions:
            minimum = definition.minimum_release(provider)
            if minimum is None:
                continue
            if version >= minimum:
                active.append(definition)

        logger.debug(
            "capabilities for %s %s: %s",
            provider,
            version,
            ", ".join(d.name for d in active) or "none",
        )
        return active

    def has_capability(self, provider: str, release_version: str, capability: CapabilityDefinition | str) -> bool:
        name = capability if isinstance(capability, str) else capability.name
        return any(d.name == name for d in self.resolve(provider, release_version))

    def resolve_for(self, source: InstallationSource, release_version: str) -> list[CapabilityDefinition]:
        """Resolve using the provider reported by the installation."""

        # Validate before the network call.
        ReleaseVersion.parse(release_version)
        info = source.get_info()
        return self.resolve(info.provider, release_version)
