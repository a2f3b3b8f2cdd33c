# app/services/exporter.py
"""
CSV + JSON exports of stored records.
CSV output carries a UTF-8 byte-order mark so spreadsheet apps detect the encoding.
"""
from __future__ import annotations

import csv
import io
import json
from datetime import date
from typing import Any, Dict, List, Optional

from app.services.schema import SurveySchema

UTF8_BOM = "\ufeff"
MULTI_VALUE_SEPARATOR = ";"

EXPORT_KINDS = ("csv", "json")
MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json",
}


def csv_columns(records: List[Dict[str, Any]], schema: SurveySchema) -> List[str]:
    meta = ["submittedAt"]
    if any(isinstance(r, dict) and "ip" in r for r in records):
        meta.append("ip")
    return meta + [c for c in schema.columns if c not in meta]


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return MULTI_VALUE_SEPARATOR.join("" if v is None else str(v) for v in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def to_csv(records: List[Dict[str, Any]], schema: SurveySchema) -> str:
    headers = csv_columns(records, schema)
    buf = io.StringIO()
    w = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    w.writerow(headers)
    for record in records:
        if not isinstance(record, dict):
            continue
        w.writerow([_cell(record.get(h)) for h in headers])
    return UTF8_BOM + buf.getvalue()


def to_json(records: List[Dict[str, Any]]) -> str:
    return json.dumps(records, ensure_ascii=False, indent=2)


def format_export(records: List[Dict[str, Any]], kind: str, schema: SurveySchema) -> bytes:
    """Render records as the requested export kind ('csv' or 'json')."""
    if kind == "json":
        return to_json(records).encode("utf-8")
    if kind == "csv":
        return to_csv(records, schema).encode("utf-8")
    raise ValueError(f"Unsupported export format: {kind!r}")


def export_filename(kind: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"survey-data-{today.isoformat()}.{kind}"
