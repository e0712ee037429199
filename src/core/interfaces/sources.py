"""Data-source contracts consumed by the core services.

Why Protocol:
- Structural contract (duck typing) with no rigid inheritance.
- `ApiClient` implements them over HTTP; tests implement them with plain
  in-memory fakes that count calls.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import Cluster, InstallationInfo


@runtime_checkable
class ClusterSource(Protocol):
    """Lists the clusters visible to the current credentials.

    Rules:
    - Failures are raised as `ClassifiedError` subclasses, never raw transport errors.
    - `get_cluster` raises an `HTTPStatusFailure` with status 404 for unknown IDs.
    """

    def list_clusters(self) -> list[Cluster]:
        ...

    def get_cluster(self, cluster_id: str) -> Cluster:
        ...


@runtime_checkable
class InstallationSource(Protocol):
    """Provides the installation's provider identifier."""

    def get_info(self) -> InstallationInfo:
        ...
