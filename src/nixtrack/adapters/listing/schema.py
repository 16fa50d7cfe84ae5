"""Pydantic models describing package-listing entries."""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class ListingBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class ListingEntryPayload(ListingBaseModel):
    package_id: str = Field(validation_alias=AliasChoices("id", "package_id", "packageId"))
    attr_path: str = Field(validation_alias=AliasChoices("attr_path", "attrPath"))

    project_repology: str | None = None
    nixpkgs_name_repology: str | None = None
    owner_github: str | None = None
    repo_github: str | None = None
    owner_gitlab: str | None = None
    repo_gitlab: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_hosting(cls, value: object) -> object:
        # accept {"github": {"owner": ..., "repo": ...}} alongside flat keys
        if not isinstance(value, Mapping):
            return value
        data: dict[str, object] = dict(cast("Mapping[str, object]", value))
        for host in ("github", "gitlab"):
            nested = data.get(host)
            if isinstance(nested, Mapping):
                coordinates = cast("Mapping[str, object]", nested)
                data.setdefault(f"owner_{host}", coordinates.get("owner"))
                data.setdefault(f"repo_{host}", coordinates.get("repo"))
        return data

    _normalize_optional = field_validator(
        "project_repology",
        "nixpkgs_name_repology",
        "owner_github",
        "repo_github",
        "owner_gitlab",
        "repo_gitlab",
        mode="before",
    )(_blank_to_none)

    @field_validator("package_id", "attr_path", mode="before")
    @classmethod
    def _require_text(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValueError("must not be blank")
            return stripped
        return value


ListingEntryPayloadInput = ListingEntryPayload | Mapping[str, object]
