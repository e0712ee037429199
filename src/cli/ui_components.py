"""UI components for the CLI (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Lets several commands reuse the same tables.
"""

from __future__ import annotations

from typing import Sequence

from rich.table import Table

from core.domain.models import CapabilityDefinition, Cluster


def build_clusters_table(clusters: Sequence[Cluster]) -> Table:
    table = Table(title="Clusters")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Owner", style="magenta")
    table.add_column("Release", style="green")
    for cluster in sorted(clusters, key=lambda c: (c.name.lower(), c.id)):
        table.add_row(cluster.id, cluster.name, cluster.owner or "", cluster.release_version or "")
    return table


def build_capabilities_table(
    capabilities: Sequence[CapabilityDefinition],
    *,
    provider: str,
    release_version: str,
) -> Table:
    """Capabilities in resolver order, with the minimum release for `provider`."""

    table = Table(title=f"Capabilities for {provider} {release_version}")
    table.add_column("Capability", style="cyan", no_wrap=True)
    table.add_column("Since", style="green")
    for capability in capabilities:
        minimum = capability.minimum_release(provider)
        table.add_row(capability.name, str(minimum) if minimum else "")
    return table
