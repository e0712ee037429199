"""
Shared fixtures for the test suite.
"""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from adapters.api_client import ApiClient
from core.config import AppSettings
from core.domain.errors import HTTPStatusFailure
from core.domain.models import Cluster

API_ENDPOINT = "https://api.test.example"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> AppSettings:
    """Settings isolated from the developer's .env files and environment."""
    return AppSettings(
        _env_file=None,
        api_endpoint=API_ENDPOINT,
        auth_token="test-token",
        http_timeout_seconds=2.0,
    )


# ---------------------------------------------------------------------------
# HTTP mock factory
# ---------------------------------------------------------------------------

def json_response(status_code: int, payload: object) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode(),
        headers={"content-type": "application/json"},
    )


@pytest.fixture
def mock_api(settings):
    """
    Builds an ApiClient whose transport is an httpx.MockTransport.

    Usage:
        client, requests = mock_api(lambda request: json_response(200, []))

    `requests` collects every request the handler saw.
    """
    clients: list[ApiClient] = []

    def build(handler: Callable[[httpx.Request], httpx.Response], app_settings: AppSettings | None = None):
        seen: list[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        client = ApiClient(app_settings or settings, transport=httpx.MockTransport(recording))
        clients.append(client)
        return client, seen

    yield build

    for client in clients:
        client.close()


# ---------------------------------------------------------------------------
# In-memory cluster source
# ---------------------------------------------------------------------------

class FakeClusterSource:
    """ClusterSource with call counters."""

    def __init__(self, clusters: list[Cluster], *, list_error: Exception | None = None):
        self.clusters = list(clusters)
        self.list_error = list_error
        self.list_calls = 0
        self.get_calls = 0

    def list_clusters(self) -> list[Cluster]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.clusters)

    def get_cluster(self, cluster_id: str) -> Cluster:
        self.get_calls += 1
        for cluster in self.clusters:
            if cluster.id == cluster_id:
                return cluster
        raise HTTPStatusFailure("HTTP 404 Not Found", "Not Found", http_status_code=404)


# ---------------------------------------------------------------------------
# Sample API payloads
# ---------------------------------------------------------------------------

CLUSTERS_JSON = [
    {
        "id": "f01r4",
        "name": "production",
        "owner": "acme",
        "release_version": "9.0.0",
        "create_date": "2019-04-16T09:30:31.192170835Z",
        "path": "/v4/clusters/f01r4/",
    },
    {
        "id": "a7k2q",
        "name": "staging",
        "owner": "acme",
        "release_version": "6.1.2",
        "create_date": "2019-05-02T11:00:00Z",
    },
    {
        "id": "zz9x1",
        "name": "sandbox",
        "owner": "acme",
        "release_version": "11.4.0",
    },
    {
        "id": "zz9x2",
        "name": "sandbox",
        "owner": "other-org",
        "release_version": "11.4.0",
    },
]

INFO_JSON = {
    "general": {
        "installation_name": "gorilla",
        "provider": "aws",
        "datacenter": "eu-central-1",
    },
    "workers": {"count_per_cluster": {"default": 3, "max": 20}},
}


@pytest.fixture
def sample_clusters() -> list[Cluster]:
    return [Cluster.model_validate(item) for item in CLUSTERS_JSON]


@pytest.fixture
def cluster_source(sample_clusters) -> FakeClusterSource:
    return FakeClusterSource(sample_clusters)
