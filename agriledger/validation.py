# agriledger/validation.py
"""
Input checks run before every create/edit.

Predicates (``is_*`` / ``*_ok``) are pure. ``check_*`` functions raise the
matching ``LedgerError`` subclass on the first failed rule.
"""
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from agriledger import models, schemas
from agriledger.errors import (
    EmptyRequiredField,
    InvalidAreaCovered,
    InvalidBatchId,
    InvalidDate,
    InvalidTimeRange,
    InvalidYield,
    StringTooLong,
)

DEFAULT_MAX_STRING_LENGTH = 256

# ---------- predicates ----------

def is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


def fits(value: Optional[str], max_length: int) -> bool:
    return value is None or len(value) <= max_length


def batch_range_ok(start: datetime, end: datetime) -> bool:
    return start < end


def clock_parts_ok(t: schemas.LogTime) -> bool:
    return 0 <= t.hour <= 23 and 0 <= t.minute <= 59


def log_range_ok(start: schemas.LogTime, end: schemas.LogTime) -> bool:
    """Start strictly before end, ordered by (date, hour, minute)."""
    if start.date != end.date:
        return start.date < end.date
    if start.hour != end.hour:
        return start.hour < end.hour
    return start.minute < end.minute


def not_in_future(value: datetime, now: datetime) -> bool:
    return value <= now


def batch_exists(db: Session, batch_id: str) -> bool:
    obj = db.get(models.Batch, batch_id)
    return obj is not None and not is_blank(obj.crop_name)

# ---------- raising checks ----------

def check_required(fields: Iterable[tuple[str, Optional[str]]]) -> None:
    for name, value in fields:
        if is_blank(value):
            raise EmptyRequiredField(f"{name} must not be empty", field=name)


def check_lengths(fields: Iterable[tuple[str, Optional[str]]], max_length: int) -> None:
    for name, value in fields:
        if not fits(value, max_length):
            raise StringTooLong(
                f"{name} exceeds {max_length} characters", field=name, max_length=max_length
            )


def check_area(area_covered: int) -> None:
    if area_covered <= 0:
        raise InvalidAreaCovered("area_covered must be positive", area_covered=area_covered)


def check_batch_reference(db: Session, batch_id: str) -> None:
    if not batch_exists(db, batch_id):
        raise InvalidBatchId(f"Batch {batch_id!r} does not exist", batch_id=batch_id)


def check_batch_fields(payload: schemas.BatchInput, *, max_length: int = DEFAULT_MAX_STRING_LENGTH) -> None:
    check_required([("crop_name", payload.crop_name), ("farmer", payload.farmer)])
    check_lengths(
        [
            ("batch_id", payload.batch_id),
            ("crop_name", payload.crop_name),
            ("farmer", payload.farmer),
            ("land", payload.land),
            ("status", payload.status),
        ],
        max_length,
    )
    if not batch_range_ok(payload.start, payload.end):
        raise InvalidTimeRange("start must be before end", start=payload.start, end=payload.end)
    if payload.expected_yield <= 0:
        raise InvalidYield("expected_yield must be positive", expected_yield=payload.expected_yield)


def check_activity_fields(payload, now: datetime, *, max_length: int = DEFAULT_MAX_STRING_LENGTH) -> None:
    """Shared by ActivityLogInput and ActivityLogEditInput."""
    check_required([("activity_name", payload.activity_name)])
    check_lengths([("activity_name", payload.activity_name)], max_length)
    if not (clock_parts_ok(payload.start) and clock_parts_ok(payload.end)):
        raise InvalidTimeRange("hour must be 0-23 and minute 0-59")
    if not log_range_ok(payload.start, payload.end):
        raise InvalidTimeRange("start must be before end")
    check_area(payload.area_covered)
    if not not_in_future(payload.start.date, now):
        raise InvalidDate("start date is in the future", date=payload.start.date)


def check_sustainability_fields(payload, now: datetime, *, max_length: int = DEFAULT_MAX_STRING_LENGTH) -> None:
    """Shared by SustainabilityLogInput and SustainabilityLogEditInput."""
    fields = [
        ("practice_name", payload.practice_name),
        ("impact_description", payload.impact_description),
    ]
    check_required(fields)
    check_lengths(fields, max_length)
    check_area(payload.area_covered)
    if not not_in_future(payload.implementation_date, now):
        raise InvalidDate("implementation date is in the future", date=payload.implementation_date)


def validate_new_batch(payload: schemas.BatchInput, *, max_length: int = DEFAULT_MAX_STRING_LENGTH) -> None:
    check_batch_fields(payload, max_length=max_length)


def validate_batch_edit(
    db: Session, payload: schemas.BatchEditInput, *, max_length: int = DEFAULT_MAX_STRING_LENGTH
) -> None:
    check_batch_reference(db, payload.batch_id)
    check_batch_fields(payload, max_length=max_length)


def validate_new_activity(
    db: Session, payload: schemas.ActivityLogInput, now: datetime, *, max_length: int = DEFAULT_MAX_STRING_LENGTH
) -> None:
    check_batch_reference(db, payload.batch_id)
    check_activity_fields(payload, now, max_length=max_length)


def validate_new_sustainability(
    db: Session, payload: schemas.SustainabilityLogInput, now: datetime, *, max_length: int = DEFAULT_MAX_STRING_LENGTH
) -> None:
    check_batch_reference(db, payload.batch_id)
    check_sustainability_fields(payload, now, max_length=max_length)
