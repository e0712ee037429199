"""Cluster identity resolution.

Maps a user-supplied cluster reference (ID or display name) to the canonical
cluster ID. A resolver instance lives for one command invocation and owns two
caches: the cluster list (fetched at most once) and the resolved references.
"""

from __future__ import annotations

import logging
import re
import threading

from core.domain.errors import (
    AmbiguousClusterNameError,
    ClusterNameOrIDMissingError,
    ClusterNotFoundError,
    HTTPStatusFailure,
)
from core.domain.models import Cluster
from core.interfaces.sources import ClusterSource

logger = logging.getLogger(__name__)

CLUSTER_ID_PATTERN = re.compile(r"^[a-z0-9]{5}$")


def looks_like_cluster_id(value: str) -> bool:
    return bool(CLUSTER_ID_PATTERN.match(value))


class ClusterResolver:
    """Resolves cluster references against one API endpoint."""

    def __init__(self, source: ClusterSource, api_endpoint: str) -> None:
        self._source = source
        self._api_endpoint = api_endpoint
        self._ids: dict[tuple[str, str], str] = {}
        self._clusters: list[Cluster] | None = None
        self._by_id: dict[str, Cluster] = {}
        self._lock = threading.RLock()

    @property
    def api_endpoint(self) -> str:
        return self._api_endpoint

    def clusters(self) -> list[Cluster]:
        """Clusters visible to the caller; fetched on first use only."""

        with self._lock:
            if self._clusters is None:
                logger.debug("fetching cluster list from %s", self._api_endpoint)
                self._clusters = list(self._source.list_clusters())
                self._by_id.update((c.id, c) for c in self._clusters)
            return list(self._clusters)

    def invalidate(self) -> None:
        with self._lock:
            self._ids.clear()
            self._by_id.clear()
            self._clusters = None

    def default_cluster_id(self) -> str | None:
        """ID of the only visible cluster, or None when there are zero or several."""

        items = self.clusters()
        if len(items) == 1:
            return items[0].id
        return None

    def resolve_or_default(self, name_or_id: str | None) -> str:
        """Like `resolve`, but an empty reference selects the only visible cluster."""

        if not (name_or_id or "").strip():
            default_id = self.default_cluster_id()
            if default_id is not None:
                logger.debug("no cluster given, using the only cluster %s", default_id)
                return default_id
        return self.resolve(name_or_id or "")

    def cluster(self, name_or_id: str | None) -> Cluster:
        """Resolve a reference and return the cluster record, reusing fetched data."""

        cluster_id = self.resolve_or_default(name_or_id)
        with self._lock:
            cached = self._by_id.get(cluster_id)
        if cached is not None:
            return cached
        found = self._source.get_cluster(cluster_id)
        with self._lock:
            self._by_id[found.id] = found
        return found

    def resolve(self, name_or_id: str) -> str:
        """Return the canonical ID for `name_or_id`.

        Raises `ClusterNotFoundError`, `AmbiguousClusterNameError`, or the
        `ClassifiedError` of a failed API call.
        """

        reference = (name_or_id or "").strip()
        if not reference:
            raise ClusterNameOrIDMissingError()

        key = (self._api_endpoint, reference)
        with self._lock:
            cached = self._ids.get(key)
            if cached is not None:
                logger.debug("cluster reference %r resolved from cache", reference)
                return cached

            cluster_id = self._lookup_id(reference)
            if cluster_id is None:
                cluster_id = self._match_name(reference)

            self._ids[key] = cluster_id
            return cluster_id

    def _lookup_id(self, reference: str) -> str | None:
        if not looks_like_cluster_id(reference):
            return None

        if self._clusters is not None:
            for cluster in self._clusters:
                if cluster.id == reference:
                    return cluster.id

        try:
            cluster = self._source.get_cluster(reference)
        except HTTPStatusFailure as exc:
            if exc.is_not_found:
                # An ID-shaped name is still a valid name.
                logger.debug("no cluster with ID %r, trying names", reference)
                return None
            raise
        self._by_id[cluster.id] = cluster
        return cluster.id

    def _match_name(self, reference: str) -> str:
        matches = [c.id for c in self.clusters() if c.name == reference]
        if not matches:
            raise ClusterNotFoundError(reference)
        if len(matches) > 1:
            raise AmbiguousClusterNameError(reference, matches)
        return matches[0]
