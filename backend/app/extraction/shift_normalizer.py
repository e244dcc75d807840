"""
Business rules applied to draft shift records before identity reconciliation.

Every draft goes through the same steps:
1. Boundary validation (DraftShift) and drop of records without name or date
2. Mutual exclusivity of working / rest / leave, split clears lunch
3. Time normalization and duty summary derivation
4. Week completion: one record per person per week date (the printed range
   when valid, otherwise the dates seen in the records)
"""
import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from .schemas import (
    UNKNOWN_CEDULA,
    AgentSummary,
    AnalysisMetadata,
    DraftAgent,
    DraftMetadata,
    DraftShift,
    ShiftRecord,
)
from .time_normalization import (
    DEFAULT_LEAVE_REASON,
    build_duty_summary,
    is_null_sentinel,
    normalize_lunch_range,
    normalize_time,
)

logger = logging.getLogger("roster_extraction.shift_normalizer")

SPANISH_WEEKDAYS = ("Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado", "Domingo")
MAX_WEEK_DAYS = 7


class NormalizationOutcome:
    """Normalized records plus the counters reported in analysis diagnostics."""

    def __init__(self, records: List[ShiftRecord], metadata: AnalysisMetadata):
        self.records = records
        self.metadata = metadata
        self.dropped_records = 0
        self.duplicate_records = 0
        self.inferred_rest_days = 0
        self.split_missing_second_block = 0

    def diagnostics(self) -> Dict[str, int]:
        return {
            "dropped_records": self.dropped_records,
            "duplicate_records": self.duplicate_records,
            "inferred_rest_days": self.inferred_rest_days,
            "split_missing_second_block": self.split_missing_second_block,
        }


def spanish_weekday(value: date) -> str:
    return SPANISH_WEEKDAYS[value.weekday()]


def parse_iso_date(value: Any) -> Optional[date]:
    if is_null_sentinel(value):
        return None
    text = str(value).strip()[:10]
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _clean_text(value: Optional[str]) -> Optional[str]:
    if is_null_sentinel(value):
        return None
    return value.strip()


def normalize_metadata(raw: Dict[str, Any]) -> AnalysisMetadata:
    try:
        draft = DraftMetadata.model_validate(raw or {})
    except ValidationError as exc:
        logger.warning("Ignoring invalid metadata block: %s", exc.errors()[:3])
        draft = DraftMetadata()

    campaigns = list(draft.campaigns)
    campaign = _clean_text(draft.campaign)
    if campaign and campaign not in campaigns:
        campaigns.insert(0, campaign)

    return AnalysisMetadata(
        supervisor=_clean_text(draft.supervisor),
        campaign=campaign or (campaigns[0] if campaigns else None),
        campaigns=campaigns,
        contract=_clean_text(draft.contract),
        week_label=_clean_text(draft.week_label),
        week_start=parse_iso_date(draft.week_start),
        week_end=parse_iso_date(draft.week_end),
    )


def normalize_agents(raw_agents: Iterable[Dict[str, Any]]) -> List[AgentSummary]:
    agents: List[AgentSummary] = []
    for raw in raw_agents:
        try:
            draft = DraftAgent.model_validate(raw)
        except ValidationError:
            continue
        name = _clean_text(draft.name)
        if not name:
            continue
        agents.append(
            AgentSummary(
                name=name.upper(),
                campaign=_clean_text(draft.campaign),
                assigned_task=_clean_text(draft.assigned_task),
            )
        )
    return agents


def normalize_shift(raw: Dict[str, Any], metadata: AnalysisMetadata, outcome: NormalizationOutcome) -> Optional[ShiftRecord]:
    """Validate and normalize one draft record; returns None when it must be dropped."""
    try:
        draft = DraftShift.model_validate(raw)
    except ValidationError as exc:
        outcome.dropped_records += 1
        logger.warning("Dropping invalid shift record: %s", exc.errors()[:3])
        return None

    name = _clean_text(draft.person_name)
    shift_date = parse_iso_date(draft.date)
    if not name or shift_date is None:
        outcome.dropped_records += 1
        logger.warning("Dropping shift record without name or date: name=%r date=%r", draft.person_name, draft.date)
        return None

    cedula = _clean_text(draft.person_cedula) or UNKNOWN_CEDULA
    leave_reason = _clean_text(draft.leave_reason)
    is_leave = draft.is_leave or bool(leave_reason)
    is_rest_day = draft.is_rest_day and not is_leave

    record = ShiftRecord(
        person_cedula=cedula,
        person_name=name.upper(),
        date=shift_date,
        day_of_week=spanish_weekday(shift_date),
        is_rest_day=is_rest_day,
        is_leave=is_leave,
        campaign_code=_clean_text(draft.campaign_code) or metadata.campaign or "",
        contract_code=_clean_text(draft.contract_code) or metadata.contract,
        original_name_as_extracted=name,
    )

    if is_leave:
        record.leave_reason = leave_reason or DEFAULT_LEAVE_REASON
    elif not is_rest_day:
        record.start_time = normalize_time(draft.start_time)
        record.end_time = normalize_time(draft.end_time)
        if draft.is_split_shift:
            record.is_split_shift = True
            record.split_start_time_2 = normalize_time(draft.split_start_time_2)
            record.split_end_time_2 = normalize_time(draft.split_end_time_2)
            if not record.split_start_time_2 or not record.split_end_time_2:
                outcome.split_missing_second_block += 1
                logger.warning(
                    "Split shift without a complete second block: %s on %s",
                    record.person_name,
                    record.date.isoformat(),
                )
        else:
            record.lunch_break = normalize_lunch_range(draft.lunch_break)

    record.duty_summary = build_duty_summary(record)
    return record


def refresh_derived_fields(record: ShiftRecord) -> ShiftRecord:
    """Re-derive weekday and duty summary after a reviewer edited a record."""
    record.day_of_week = spanish_weekday(record.date)
    record.person_name = record.person_name.strip().upper()
    if record.is_leave:
        record.is_rest_day = False
        record.leave_reason = record.leave_reason or DEFAULT_LEAVE_REASON
    else:
        record.leave_reason = None
    if record.is_leave or record.is_rest_day:
        record.is_split_shift = False
        record.start_time = record.end_time = record.lunch_break = None
        record.split_start_time_2 = record.split_end_time_2 = None
    elif record.is_split_shift:
        record.lunch_break = None
    record.duty_summary = build_duty_summary(record)
    return record


def _metadata_week(metadata: AnalysisMetadata) -> Optional[List[date]]:
    """Dates of the printed week range, or None when it is missing or longer than a week."""
    start, end = metadata.week_start, metadata.week_end
    if not (start and end and start <= end and (end - start).days < MAX_WEEK_DAYS):
        return None
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def _rest_day_for(template: ShiftRecord, missing_date: date) -> ShiftRecord:
    record = ShiftRecord(
        person_cedula=template.person_cedula,
        person_name=template.person_name,
        date=missing_date,
        day_of_week=spanish_weekday(missing_date),
        is_rest_day=True,
        campaign_code=template.campaign_code,
        contract_code=template.contract_code,
        original_name_as_extracted=template.original_name_as_extracted,
        inferred=True,
    )
    record.duty_summary = build_duty_summary(record)
    return record


def complete_week(outcome: NormalizationOutcome) -> None:
    """Deduplicate (person, date) pairs and fill missing days with rest records."""
    week_dates = _metadata_week(outcome.metadata)
    if week_dates is None:
        week_dates = sorted({record.date for record in outcome.records})
    else:
        in_range = []
        for record in outcome.records:
            if week_dates[0] <= record.date <= week_dates[-1]:
                in_range.append(record)
                continue
            outcome.dropped_records += 1
            logger.warning(
                "Dropping shift for %s on %s outside the week %s..%s",
                record.person_name,
                record.date.isoformat(),
                week_dates[0].isoformat(),
                week_dates[-1].isoformat(),
            )
        outcome.records = in_range

    by_person: Dict[str, Dict[date, ShiftRecord]] = {}
    order: List[str] = []
    for record in outcome.records:
        key = record.identity_key
        days = by_person.get(key)
        if days is None:
            days = by_person[key] = {}
            order.append(key)
        if record.date in days:
            outcome.duplicate_records += 1
            logger.warning("Duplicate shift for %s on %s; keeping the first", record.person_name, record.date.isoformat())
            continue
        days[record.date] = record

    completed: List[ShiftRecord] = []
    for key in order:
        days = by_person[key]
        template = next(iter(days.values()))
        for week_date in week_dates:
            record = days.get(week_date)
            if record is None:
                record = _rest_day_for(template, week_date)
                outcome.inferred_rest_days += 1
            completed.append(record)

    if outcome.inferred_rest_days:
        logger.info("Inferred %d rest days to complete the week", outcome.inferred_rest_days)

    outcome.records = completed
    outcome.metadata.week_dates = week_dates
    if week_dates:
        outcome.metadata.week_start = week_dates[0]
        outcome.metadata.week_end = week_dates[-1]


def normalize_shifts(
    raw_records: Iterable[Dict[str, Any]],
    metadata: AnalysisMetadata,
) -> NormalizationOutcome:
    outcome = NormalizationOutcome([], metadata)
    for raw in raw_records:
        record = normalize_shift(raw, metadata, outcome)
        if record is not None:
            outcome.records.append(record)

    complete_week(outcome)
    return outcome
