"""Translate package-listing payloads into listing entries."""

from __future__ import annotations

from typing import TYPE_CHECKING

from nixtrack.adapters.jsonlines import iter_payloads
from nixtrack.domain.model import UpstreamIdentity
from nixtrack.domain.update_tracking import PackageListingEntry

from .schema import ListingEntryPayload, ListingEntryPayloadInput

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


def parse_listing_entry(payload: ListingEntryPayloadInput) -> PackageListingEntry:
    validated = (
        payload
        if isinstance(payload, ListingEntryPayload)
        else ListingEntryPayload.model_validate(payload)
    )
    return PackageListingEntry(
        package_id=validated.package_id,
        attr_path=validated.attr_path,
        identity=UpstreamIdentity(
            project_repology=validated.project_repology,
            nixpkgs_name_repology=validated.nixpkgs_name_repology,
            owner_github=validated.owner_github,
            repo_github=validated.repo_github,
            owner_gitlab=validated.owner_gitlab,
            repo_gitlab=validated.repo_gitlab,
        ),
    )


def parse_listing_lines(lines: Iterable[str]) -> Iterator[PackageListingEntry]:
    for payload in iter_payloads(lines, ListingEntryPayload):
        yield parse_listing_entry(payload)
