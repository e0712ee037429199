"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation at the edge (API payloads, static tables) without
  coupling the core to any I/O library.
- Frozen models make the capability table an immutable value.

Note:
- These models describe *what* the data is, not *how* it is fetched.
"""

from __future__ import annotations

from functools import total_ordering

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from core.domain.errors import InvalidVersionError


@total_ordering
class ReleaseVersion(BaseModel):
    """Semantic version triple of the platform release running a cluster.

    Parsing is strict on purpose: exactly three numeric segments. A fourth
    segment is rejected rather than ignored.
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(..., ge=0)
    minor: int = Field(..., ge=0)
    patch: int = Field(..., ge=0)

    @classmethod
    def parse(cls, text: str) -> "ReleaseVersion":
        raw = (text or "").strip()
        parts = raw.split(".")
        if len(parts) != 3 or not all(p.isdigit() and p.isascii() for p in parts):
            raise InvalidVersionError(raw)
        major, minor, patch = (int(p) for p in parts)
        return cls(major=major, minor=minor, patch=patch)

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ReleaseVersion):
            return NotImplemented
        return self.as_tuple() < other.as_tuple()

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class ProviderRelease(BaseModel):
    """Minimum release at which a capability becomes available on a provider."""

    model_config = ConfigDict(frozen=True)

    provider: str = Field(..., min_length=1, description="Provider identifier (aws, azure, kvm).")
    release_version: ReleaseVersion

    @field_validator("provider")
    @classmethod
    def _normalize_provider(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("release_version", mode="before")
    @classmethod
    def _parse_version(cls, value: object) -> object:
        if isinstance(value, str):
            return ReleaseVersion.parse(value)
        return value


class CapabilityDefinition(BaseModel):
    """An optional platform feature gated by provider and minimum release."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Unique capability name, e.g. 'NodePools'.")
    required_release_per_provider: tuple[ProviderRelease, ...] = Field(
        default=(),
        description="At most one entry per provider; absent provider means unsupported.",
    )

    @field_validator("required_release_per_provider")
    @classmethod
    def _one_entry_per_provider(cls, value: tuple[ProviderRelease, ...]) -> tuple[ProviderRelease, ...]:
        seen: set[str] = set()
        for entry in value:
            if entry.provider in seen:
                raise ValueError(f"duplicate provider entry: {entry.provider}")
            seen.add(entry.provider)
        return value

    def minimum_release(self, provider: str) -> ReleaseVersion | None:
        wanted = provider.strip().lower()
        for entry in self.required_release_per_provider:
            if entry.provider == wanted:
                return entry.release_version
        return None


class Cluster(BaseModel):
    """One entry of the cluster list visible to the current credentials."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Canonical cluster ID.")
    name: str = Field(default="", description="Display name; not unique.")
    owner: str | None = Field(default=None, description="Owning organization.")
    release_version: str | None = Field(default=None, description="Release the cluster runs.")
    create_date: str | None = Field(default=None, description="RFC 3339 timestamp as sent by the API.")


class InstallationInfo(BaseModel):
    """Subset of the installation info endpoint the core relies on."""

    model_config = ConfigDict(extra="ignore")

    provider: str = Field(..., min_length=1)
    name: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "InstallationInfo":
        # The API nests these under "general".
        general = payload.get("general") if isinstance(payload.get("general"), dict) else payload
        return cls.model_validate(
            {"provider": general.get("provider"), "name": general.get("installation_name") or general.get("name")}
        )
