"""Line-delimited JSON payload reading shared by the file-based adapters."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, cast

from pydantic import BaseModel, ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

log = getLogger(__name__)


class PayloadError(ValueError):
    """A payload line could not be decoded or validated."""

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        location = f"line {line_number}: " if line_number is not None else ""
        super().__init__(f"{location}{message}")
        self.line_number = line_number


def iter_payloads[TModel: BaseModel](
    lines: Iterable[str],
    model: type[TModel],
) -> Iterator[TModel]:
    """Validate each non-blank, non-comment line as ``model``."""

    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            document = json.loads(line)
        except json.JSONDecodeError as exc:
            raise PayloadError(f"invalid JSON ({exc.msg})", line_number=line_number) from exc
        if not isinstance(document, dict):
            raise PayloadError("expected a JSON object", line_number=line_number)
        try:
            payload = model.model_validate(cast("dict[str, object]", document))
        except ValidationError as exc:
            log.debug("Rejected payload on line %s: %s", line_number, exc)
            raise PayloadError(str(exc), line_number=line_number) from exc
        yield payload

