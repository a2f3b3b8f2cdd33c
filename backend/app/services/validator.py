# app/services/validator.py
"""
Submission validation against a SurveySchema.

Order matters: a missing gate answer fails fast with a single error, an
ineligible respondent (gate answered with the ineligible value, or flagged as
filtered) passes without further checks, and every other rule accumulates.
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from app.services.schema import SurveySchema


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def coerce_scale_value(value: Any) -> Optional[float]:
    """Return the finite numeric value of a rating, or None if it has none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_multi_value(value: Any) -> List[str]:
    """
    Canonical multi-select representation: a list of unique non-empty strings.
    A lone string counts as a one-option selection.
    """
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    else:
        return []
    cleaned = [v.strip() for v in items if isinstance(v, str) and v.strip()]
    return list(dict.fromkeys(cleaned))


def is_filtered(payload: Dict[str, Any], schema: SurveySchema) -> bool:
    return bool(payload.get(schema.filtered_flag))


def is_eligible(record: Dict[str, Any], schema: SurveySchema) -> bool:
    """Whether a record counts towards demographic and scale aggregation."""
    return record.get(schema.gate_field) == schema.eligible_value and not is_filtered(record, schema)


def validate(payload: Dict[str, Any], schema: SurveySchema) -> List[str]:
    """Return the list of validation errors; an empty list means accepted."""
    errors: List[str] = []

    gate = payload.get(schema.gate_field)
    if not gate or _is_blank(gate):
        errors.append(f"Missing screening field: {schema.gate_field}")
        return errors

    if gate == schema.ineligible_value or is_filtered(payload, schema):
        return errors

    for field in schema.required_fields:
        if _is_blank(payload.get(field)):
            errors.append(f"Missing required field: {field}")

    for field in schema.multi_value_fields:
        if not coerce_multi_value(payload.get(field)):
            errors.append(f"Missing required field: {field} (select at least one option)")

    for field in schema.scale_fields:
        number = coerce_scale_value(payload.get(field))
        if number is None or not (schema.scale_min <= number <= schema.scale_max):
            errors.append(
                f"Invalid rating for {field}: must be a number between {schema.describe_range()}"
            )

    return errors


def normalize(payload: Dict[str, Any], schema: SurveySchema) -> Dict[str, Any]:
    """Copy of an accepted payload with multi-select answers in canonical list form."""
    record = dict(payload)
    for field in schema.multi_value_fields:
        if field in record:
            record[field] = coerce_multi_value(record[field])
    return record
