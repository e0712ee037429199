"""
Unit tests for core/domain/models.py and core/domain/errors.py
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.domain.errors import (
    AmbiguousClusterNameError,
    HTTPStatusFailure,
    InvalidVersionError,
    TimeoutFailure,
    TransportFailure,
    ErrorKind,
    error_summary,
)
from core.domain.models import CapabilityDefinition, InstallationInfo, ProviderRelease, ReleaseVersion


# ---------------------------------------------------------------------------
# ReleaseVersion
# ---------------------------------------------------------------------------

def test_parse_and_str():
    version = ReleaseVersion.parse(" 9.1.2 ")
    assert version.as_tuple() == (9, 1, 2)
    assert str(version) == "9.1.2"


def test_ordering_is_numeric_not_lexical():
    assert ReleaseVersion.parse("10.0.0") > ReleaseVersion.parse("9.9.9")
    assert ReleaseVersion.parse("6.10.0") > ReleaseVersion.parse("6.9.0")
    assert ReleaseVersion.parse("6.1.2") >= ReleaseVersion.parse("6.1.2")
    assert ReleaseVersion.parse("6.1.2") == ReleaseVersion.parse("6.1.2")


def test_four_segments_rejected():
    with pytest.raises(InvalidVersionError) as info:
        ReleaseVersion.parse("1.2.3.4")
    assert str(info.value) == "Invalid Semantic Version"
    assert info.value.version == "1.2.3.4"


def test_release_version_is_frozen():
    version = ReleaseVersion.parse("1.2.3")
    with pytest.raises(ValidationError):
        version.major = 2


# ---------------------------------------------------------------------------
# CapabilityDefinition
# ---------------------------------------------------------------------------

def test_one_entry_per_provider():
    with pytest.raises(ValidationError, match="duplicate provider"):
        CapabilityDefinition(
            name="X",
            required_release_per_provider=(
                ProviderRelease(provider="aws", release_version="1.0.0"),
                ProviderRelease(provider="AWS", release_version="2.0.0"),
            ),
        )


def test_minimum_release_lookup():
    definition = CapabilityDefinition(
        name="X",
        required_release_per_provider=(ProviderRelease(provider="aws", release_version="1.0.0"),),
    )
    assert definition.minimum_release("aws") == ReleaseVersion.parse("1.0.0")
    assert definition.minimum_release("kvm") is None


# ---------------------------------------------------------------------------
# InstallationInfo
# ---------------------------------------------------------------------------

def test_info_from_nested_payload():
    info = InstallationInfo.from_payload({"general": {"provider": "kvm", "installation_name": "gauss"}})
    assert info.provider == "kvm"
    assert info.name == "gauss"


def test_info_without_provider_is_invalid():
    with pytest.raises(ValidationError):
        InstallationInfo.from_payload({"general": {}})


# ---------------------------------------------------------------------------
# Error values
# ---------------------------------------------------------------------------

def test_status_failure_rejects_success_codes():
    with pytest.raises(ValueError):
        HTTPStatusFailure("x", "y", http_status_code=200)


def test_transport_failure_rejects_foreign_kind():
    with pytest.raises(ValueError):
        TransportFailure("x", "y", kind=ErrorKind.TIMEOUT)


def test_empty_texts_are_filled():
    err = TimeoutFailure("", "")
    assert err.message
    assert err.details


def test_ambiguous_name_lists_sorted_ids():
    err = AmbiguousClusterNameError("sandbox", ["zz9x2", "zz9x1"])
    assert err.cluster_ids == ("zz9x1", "zz9x2")
    assert "matches 2 clusters" in str(err)


def test_error_summary_for_classified_error():
    summary = error_summary(HTTPStatusFailure("HTTP 503", "down", http_status_code=503))
    assert summary["kind"] == "http_status"
    assert summary["http_status_code"] == 503
    assert summary["retryable"] is True
