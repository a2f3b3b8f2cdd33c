# app/services/aggregator.py
"""
Statistics over a record set: overall counts, demographic tallies and
Likert-scale averages. Results are always recomputable from the records and
never stored as a source of truth.
"""
from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.schema import SurveySchema
from app.services.validator import coerce_scale_value, is_eligible


# ---------- Models ----------

class ScaleStat(BaseModel):
    average: Optional[float] = None
    answered: int = 0


class AggregationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    count: int
    valid_count: int = Field(alias="validCount")
    demographics: Dict[str, Dict[str, int]]
    likert_stats: Dict[str, ScaleStat] = Field(alias="likertStats")
    last_updated: str = Field(alias="lastUpdated")


# ---------- Helpers ----------

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored submittedAt value into an aware datetime (UTC if naive)."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def filter_by_date(records: Iterable[Dict[str, Any]],
                   start: Optional[date] = None,
                   end: Optional[date] = None,
                   tz: tzinfo = timezone.utc) -> List[Dict[str, Any]]:
    """
    Keep records submitted within [start 00:00:00, end 23:59:59] in tz.
    Records without a parseable submittedAt are dropped once any bound is set.
    """
    records = list(records)
    if start is None and end is None:
        return records

    lower = datetime.combine(start, time(0, 0, 0), tzinfo=tz) if start else None
    upper = datetime.combine(end, time(23, 59, 59), tzinfo=tz) if end else None

    kept = []
    for record in records:
        if not isinstance(record, dict):
            continue
        ts = parse_timestamp(record.get("submittedAt"))
        if ts is None:
            continue
        if lower and ts < lower:
            continue
        if upper and ts > upper:
            continue
        kept.append(record)
    return kept


def _tally_key(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def tally_by_field(records: Iterable[Dict[str, Any]], field: str, unanswered: str) -> Dict[str, int]:
    tally: Dict[str, int] = {}
    for record in records:
        value = record.get(field)
        if isinstance(value, (list, tuple)):
            members = [v for v in value if v]
            keys = [_tally_key(v) for v in members] or [unanswered]
        else:
            keys = [_tally_key(value) if value else unanswered]
        for key in keys:
            tally[key] = tally.get(key, 0) + 1
    return tally


def scale_stat(records: Iterable[Dict[str, Any]], field: str, schema: SurveySchema) -> ScaleStat:
    total = 0.0
    answered = 0
    for record in records:
        number = coerce_scale_value(record.get(field))
        if number is None or not (schema.scale_min <= number <= schema.scale_max):
            continue
        total += number
        answered += 1
    average = round(total / answered, 2) if answered else None
    return ScaleStat(average=average, answered=answered)


# ---------- Aggregation ----------

def aggregate(records: Iterable[Dict[str, Any]],
              schema: SurveySchema,
              start: Optional[date] = None,
              end: Optional[date] = None,
              tz: tzinfo = timezone.utc) -> AggregationResult:
    """
    Build the statistics snapshot for a record set, optionally restricted to
    a submission date range. Only eligible records feed the tallies and
    averages; count covers every record in the (filtered) set.
    """
    records = filter_by_date(records, start, end, tz)
    valid = [r for r in records if isinstance(r, dict) and is_eligible(r, schema)]

    demographics = {
        label: tally_by_field(valid, field, schema.unanswered_label)
        for label, field in schema.demographic_fields.items()
    }
    likert_stats = {field: scale_stat(valid, field, schema) for field in schema.scale_fields}

    return AggregationResult(
        count=len(records),
        valid_count=len(valid),
        demographics=demographics,
        likert_stats=likert_stats,
        last_updated=utc_now_iso(),
    )


def recent_submissions(records: List[Dict[str, Any]], limit: int = 100) -> List[Dict[str, str]]:
    """Newest-first (submittedAt, ip) pairs for the dashboard list."""
    newest_first = list(reversed(records))[:limit]
    return [
        {"submittedAt": r.get("submittedAt"), "ip": r.get("ip") or "unknown"}
        for r in newest_first
        if isinstance(r, dict)
    ]
