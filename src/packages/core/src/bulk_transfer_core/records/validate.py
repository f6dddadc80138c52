"""Structural validation of raw import records."""
from typing import Any

import pydantic

from bulk_transfer_core.records.models import RECORD_MODELS, DomainRecord
from bulk_transfer_core.util.errors import RecordValidationError

_VALUE_ERROR_PREFIX = "Value error, "


def _issues_from(exc: pydantic.ValidationError) -> list[tuple[str, str]]:
    """One (field, message) pair per violated top-level field."""
    issues: dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        field = str(loc[0]) if loc else "record"
        msg = err.get("msg", "invalid")
        if msg.startswith(_VALUE_ERROR_PREFIX):
            msg = msg[len(_VALUE_ERROR_PREFIX):]
        issues.setdefault(field, msg)
    return list(issues.items())


def validate(resource: str, raw: Any) -> DomainRecord:
    """Validate a raw record for a resource, returning its typed variant."""
    model = RECORD_MODELS.get(resource)
    if model is None:
        raise ValueError(f"Unknown resource: {resource}")
    try:
        return model.model_validate(raw)
    except pydantic.ValidationError as e:
        raise RecordValidationError(_issues_from(e)) from None
