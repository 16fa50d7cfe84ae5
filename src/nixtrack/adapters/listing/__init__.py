"""Public interface for the package-listing payload adapter."""

from __future__ import annotations

from .schema import ListingEntryPayload, ListingEntryPayloadInput
from .translator import parse_listing_entry, parse_listing_lines

__all__ = [
    "ListingEntryPayload",
    "ListingEntryPayloadInput",
    "parse_listing_entry",
    "parse_listing_lines",
]
