# app/services/survey.py
"""
Submission and reporting workflow:
  submit  -> validate -> normalize -> append -> refresh stats cache
  stats   -> read -> (date filter -> aggregate) | cached aggregation
  export  -> read -> date filter -> CSV/JSON
"""
from __future__ import annotations

from datetime import date, timezone, tzinfo
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from app import config
from app.services.aggregator import AggregationResult, aggregate, filter_by_date, recent_submissions, utc_now_iso
from app.services.exporter import EXPORT_KINDS, MEDIA_TYPES, export_filename, format_export
from app.services.record_store import RecordStore, StorageError
from app.services.schema import SurveySchema, resolve_schema
from app.services.stats_cache import StatsCache
from app.services.storage import build_storage
from app.services.validator import is_eligible, normalize, validate
from app.util.logging import logger


class SurveyValidationError(Exception):
    """Submitted answers break the schema rules."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class SurveyService:
    def __init__(self,
                 schema: SurveySchema,
                 store: RecordStore,
                 cache: Optional[StatsCache] = None,
                 tz: tzinfo = timezone.utc,
                 recent_limit: int = 100):
        self.schema = schema
        self.store = store
        self.cache = cache or StatsCache()
        self.tz = tz
        self.recent_limit = recent_limit

    # ---------- Write path ----------

    def submit(self, payload: Dict[str, Any], ip: Optional[str] = None) -> Dict[str, Any]:
        """
        Validate and persist one submission. Raises SurveyValidationError or
        StorageError; on success the stats cache already reflects the record.
        """
        errors = validate(payload, self.schema)
        if errors:
            logger.log_submission_rejected(errors)
            raise SurveyValidationError(errors)

        record = normalize(payload, self.schema)
        record.pop("ip", None)
        if ip is not None:
            record["ip"] = ip
        record["submittedAt"] = utc_now_iso()

        try:
            records = self.store.append(record, on_written=self._refresh_cache)
        except StorageError as e:
            logger.log_storage_failure("survey.append", e.__cause__ or e)
            raise

        logger.log_submission_accepted(len(records), is_eligible(record, self.schema))
        return record

    def _refresh_cache(self, records: List[Dict[str, Any]]) -> None:
        self.cache.invalidate(aggregate(records, self.schema, tz=self.tz))

    # ---------- Read paths ----------

    def warm_up(self) -> AggregationResult:
        """Compute the unfiltered aggregation from the full store and cache it."""
        records = self.store.read_all()
        result = aggregate(records, self.schema, tz=self.tz)
        self.cache.invalidate(result)
        logger.log_cache_refresh("startup", result.count, result.valid_count)
        return result

    def stats(self, start: Optional[date] = None, end: Optional[date] = None) -> Dict[str, Any]:
        records = self.store.read_all()
        filtered = start is not None or end is not None

        if filtered:
            records = filter_by_date(records, start, end, self.tz)
            result = aggregate(records, self.schema, tz=self.tz)
        else:
            result = self.cache.get()
            if result is None:
                result = aggregate(records, self.schema, tz=self.tz)
                self.cache.invalidate(result)

        body = result.model_dump(by_alias=True)
        body["submissions"] = recent_submissions(records, self.recent_limit)
        return body

    def export(self,
               kind: str = "csv",
               start: Optional[date] = None,
               end: Optional[date] = None,
               today: Optional[date] = None) -> Tuple[bytes, str, str]:
        """Return (content, media type, filename) for a download."""
        if kind not in EXPORT_KINDS:
            raise ValueError(f"Unsupported export format: {kind!r}")
        records = filter_by_date(self.store.read_all(), start, end, self.tz)
        content = format_export(records, kind, self.schema)
        return content, MEDIA_TYPES[kind], export_filename(kind, today)


def build_survey_service() -> SurveyService:
    """Wire a SurveyService from app.config."""
    schema = resolve_schema(config.SURVEY_SCHEMA)
    store = RecordStore(build_storage(), config.RESPONSES_PATH)
    logger.info(f"Survey schema: {schema.name} ({len(schema.scale_fields)} scale fields)")
    return SurveyService(
        schema=schema,
        store=store,
        cache=StatsCache(),
        tz=ZoneInfo(config.REPORT_TIMEZONE),
        recent_limit=config.RECENT_SUBMISSIONS_LIMIT,
    )
