"""
Unit tests for core/services/cluster_resolver.py
"""

from __future__ import annotations

import threading

import pytest

from core.domain.errors import (
    AmbiguousClusterNameError,
    ClusterNameOrIDMissingError,
    ClusterNotFoundError,
    ErrorKind,
    HTTPStatusFailure,
    TransportFailure,
)
from core.domain.models import Cluster
from core.services.cluster_resolver import ClusterResolver, looks_like_cluster_id
from tests.conftest import API_ENDPOINT, FakeClusterSource


@pytest.fixture
def resolver(cluster_source) -> ClusterResolver:
    return ClusterResolver(cluster_source, API_ENDPOINT)


# ---------------------------------------------------------------------------
# looks_like_cluster_id()
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value,expected", [("f01r4", True), ("abcde", True), ("F01R4", False), ("f01r", False), ("production", False), ("f01-4", False)])
def test_looks_like_cluster_id(value, expected):
    assert looks_like_cluster_id(value) is expected


# ---------------------------------------------------------------------------
# Name resolution
# ---------------------------------------------------------------------------

def test_unique_name_resolves_to_id(resolver, cluster_source):
    assert resolver.resolve("production") == "f01r4"
    assert cluster_source.list_calls == 1


def test_repeated_resolution_uses_cache(resolver, cluster_source):
    first = resolver.resolve("staging")
    second = resolver.resolve("staging")
    assert first == second == "a7k2q"
    assert cluster_source.list_calls == 1


def test_list_fetched_once_for_different_names(resolver, cluster_source):
    resolver.resolve("production")
    resolver.resolve("staging")
    assert cluster_source.list_calls == 1


def test_input_is_trimmed(resolver):
    assert resolver.resolve("  production ") == "f01r4"


def test_name_match_is_exact(resolver):
    with pytest.raises(ClusterNotFoundError):
        resolver.resolve("Production")


def test_unknown_name(resolver):
    with pytest.raises(ClusterNotFoundError, match="nope"):
        resolver.resolve("nope")


def test_duplicate_names_are_ambiguous(resolver):
    with pytest.raises(AmbiguousClusterNameError) as info:
        resolver.resolve("sandbox")
    assert info.value.cluster_ids == ("zz9x1", "zz9x2")


def test_empty_reference(resolver, cluster_source):
    with pytest.raises(ClusterNameOrIDMissingError):
        resolver.resolve("   ")
    assert cluster_source.list_calls == 0


# ---------------------------------------------------------------------------
# ID resolution
# ---------------------------------------------------------------------------

def test_id_confirmed_by_lookup(resolver, cluster_source):
    assert resolver.resolve("f01r4") == "f01r4"
    assert cluster_source.get_calls == 1
    assert cluster_source.list_calls == 0


def test_id_cached_after_lookup(resolver, cluster_source):
    resolver.resolve("f01r4")
    resolver.resolve("f01r4")
    assert cluster_source.get_calls == 1


def test_id_found_in_cached_list_skips_lookup(resolver, cluster_source):
    resolver.clusters()
    assert resolver.resolve("a7k2q") == "a7k2q"
    assert cluster_source.get_calls == 0


def test_id_shaped_name_falls_back_to_names():
    source = FakeClusterSource([Cluster(id="q1w2e", name="abcde")])
    resolver = ClusterResolver(source, API_ENDPOINT)
    assert resolver.resolve("abcde") == "q1w2e"
    assert source.get_calls == 1
    assert source.list_calls == 1


def test_id_lookup_other_errors_propagate():
    class Forbidden(FakeClusterSource):
        def get_cluster(self, cluster_id):
            raise HTTPStatusFailure("HTTP 403 Forbidden", "Forbidden", http_status_code=403)

    resolver = ClusterResolver(Forbidden([]), API_ENDPOINT)
    with pytest.raises(HTTPStatusFailure) as info:
        resolver.resolve("f01r4")
    assert info.value.is_forbidden


# ---------------------------------------------------------------------------
# Failures and cache scope
# ---------------------------------------------------------------------------

def test_transport_failure_propagates_unchanged():
    failure = TransportFailure("Connection refused", "down", kind=ErrorKind.CONNECTION_REFUSED)
    resolver = ClusterResolver(FakeClusterSource([], list_error=failure), API_ENDPOINT)
    with pytest.raises(TransportFailure) as info:
        resolver.resolve("production")
    assert info.value is failure


def test_failed_resolution_is_not_cached(resolver, cluster_source):
    with pytest.raises(ClusterNotFoundError):
        resolver.resolve("new-cluster")
    cluster_source.clusters.append(Cluster(id="n3w00", name="new-cluster"))
    resolver.invalidate()
    assert resolver.resolve("new-cluster") == "n3w00"
    assert cluster_source.list_calls == 2


def test_caches_are_per_instance(cluster_source):
    ClusterResolver(cluster_source, API_ENDPOINT).resolve("production")
    ClusterResolver(cluster_source, API_ENDPOINT).resolve("production")
    assert cluster_source.list_calls == 2


def test_clusters_returns_copy(resolver):
    items = resolver.clusters()
    items.clear()
    assert len(resolver.clusters()) == 4


def test_concurrent_resolutions_fetch_list_once(resolver, cluster_source):
    results: list[str] = []
    names = ["production", "staging"] * 8

    def work(name: str) -> None:
        results.append(resolver.resolve(name))

    threads = [threading.Thread(target=work, args=(n,)) for n in names]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(set(results)) == ["a7k2q", "f01r4"]
    assert cluster_source.list_calls == 1


# ---------------------------------------------------------------------------
# Default cluster
# ---------------------------------------------------------------------------

def test_default_cluster_when_only_one_is_visible(sample_clusters):
    source = FakeClusterSource(sample_clusters[:1])
    resolver = ClusterResolver(source, API_ENDPOINT)
    assert resolver.default_cluster_id() == "f01r4"
    assert resolver.resolve_or_default("") == "f01r4"
    assert resolver.resolve_or_default(None) == "f01r4"
    assert source.list_calls == 1


@pytest.mark.parametrize("count", [0, 4])
def test_no_default_cluster_unless_exactly_one(sample_clusters, count):
    resolver = ClusterResolver(FakeClusterSource(sample_clusters[:count]), API_ENDPOINT)
    assert resolver.default_cluster_id() is None
    with pytest.raises(ClusterNameOrIDMissingError):
        resolver.resolve_or_default("  ")


def test_resolve_or_default_with_reference_resolves_it(resolver):
    assert resolver.resolve_or_default("staging") == "a7k2q"


def test_resolve_stays_strict_with_a_single_cluster(sample_clusters):
    resolver = ClusterResolver(FakeClusterSource(sample_clusters[:1]), API_ENDPOINT)
    with pytest.raises(ClusterNameOrIDMissingError):
        resolver.resolve("")


# ---------------------------------------------------------------------------
# cluster()
# ---------------------------------------------------------------------------

def test_cluster_by_name_reuses_listed_record(resolver, cluster_source):
    record = resolver.cluster("production")
    assert record.id == "f01r4"
    assert record.release_version == "9.0.0"
    assert cluster_source.list_calls == 1
    assert cluster_source.get_calls == 0


def test_cluster_by_id_reuses_looked_up_record(resolver, cluster_source):
    record = resolver.cluster("a7k2q")
    again = resolver.cluster("a7k2q")
    assert record.name == again.name == "staging"
    assert cluster_source.get_calls == 1
    assert cluster_source.list_calls == 0


def test_cluster_without_reference_uses_default(sample_clusters):
    source = FakeClusterSource(sample_clusters[1:2])
    assert ClusterResolver(source, API_ENDPOINT).cluster(None).name == "staging"
    assert source.get_calls == 0
