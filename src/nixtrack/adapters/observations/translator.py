"""Translate observation payloads into domain observations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from nixtrack.adapters.jsonlines import iter_payloads
from nixtrack.domain.model import Source, VersionObservation

from .schema import ObservationPayload, ObservationPayloadInput

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


def _ensure_payload(payload: ObservationPayloadInput) -> ObservationPayload:
    if isinstance(payload, ObservationPayload):
        return payload
    return ObservationPayload.model_validate(payload)


def _to_source(value: str) -> Source | str:
    # unknown names are passed through; the engine decides whether to reject them
    try:
        return Source(value)
    except ValueError:
        return value


def parse_observation(payload: ObservationPayloadInput) -> VersionObservation:
    validated = _ensure_payload(payload)
    return VersionObservation(
        package_id=validated.package_id,
        source=_to_source(validated.source),
        reported_version=validated.reported_version,
        observed_at=validated.observed_at,
    )


def parse_observation_lines(lines: Iterable[str]) -> Iterator[VersionObservation]:
    for payload in iter_payloads(lines, ObservationPayload):
        yield parse_observation(payload)
