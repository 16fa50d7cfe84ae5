"""Public interface for the version-observation payload adapter."""

from __future__ import annotations

from .schema import ObservationPayload, ObservationPayloadInput
from .translator import parse_observation, parse_observation_lines

__all__ = [
    "ObservationPayload",
    "ObservationPayloadInput",
    "parse_observation",
    "parse_observation_lines",
]
