"""Pydantic models describing version-observation payloads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _strip(value: object) -> object:
    if isinstance(value, str):
        return value.strip()
    return value


class ObservationBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class ObservationPayload(ObservationBaseModel):
    package_id: str = Field(validation_alias=AliasChoices("package_id", "packageId", "package"))
    source: str
    reported_version: str = Field(
        validation_alias=AliasChoices("reported_version", "reportedVersion", "version")
    )
    observed_at: datetime = Field(
        validation_alias=AliasChoices("observed_at", "observedAt", "timestamp")
    )

    _strip_package_id = field_validator("package_id", mode="before")(_strip)

    @field_validator("source", mode="before")
    @classmethod
    def _normalize_source(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower().replace("_", "-")
        return value

    @field_validator("reported_version", mode="before")
    @classmethod
    def _coerce_version(cls, value: object) -> object:
        # bare numbers show up for single-component versions
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return _strip(value)

    @field_validator("observed_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


ObservationPayloadInput = ObservationPayload | Mapping[str, object]
