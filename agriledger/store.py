from datetime import datetime
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import Session

from agriledger import models, schemas
from agriledger.utils import EPOCH

Row = TypeVar("Row", models.Batch, models.ActivityLog, models.SustainabilityLog)
Mutator = Callable[[Row], None]

# ---------- tiny, single-purpose helpers ----------

def _stamp_created(obj, now: datetime) -> None:
    obj.created_at = now
    obj.updated_at = now

def _stamp_updated(obj, now: datetime) -> None:
    obj.updated_at = now

def _upsert_row(db: Session, model, key, fields: dict, now: datetime):
    """Write every field of a fresh record, overwriting any row already at `key`."""
    obj = db.get(model, key)
    if obj is None:
        obj = model(**{_pk(model): key})
        db.add(obj)
    for name, value in fields.items():
        setattr(obj, name, value)
    _stamp_created(obj, now)
    db.flush()
    return obj

def _pk(model) -> str:
    return "batch_id" if model is models.Batch else "id"

def _log_time_fields(prefix: str, t: schemas.LogTime) -> dict:
    return {
        f"{prefix}_date": t.date,
        f"{prefix}_hour": t.hour,
        f"{prefix}_minute": t.minute,
    }

def batch_fields(payload: schemas.BatchInput) -> dict:
    return {
        "crop_name": payload.crop_name,
        "start": payload.start,
        "end": payload.end,
        "farmer": payload.farmer,
        "expected_yield": payload.expected_yield,
        "land": payload.land,
        "status": payload.status,
    }

def activity_fields(payload) -> dict:
    out = {"activity_name": payload.activity_name, "area_covered": payload.area_covered}
    out.update(_log_time_fields("start", payload.start))
    out.update(_log_time_fields("end", payload.end))
    return out

def sustainability_fields(payload) -> dict:
    return {
        "practice_name": payload.practice_name,
        "implementation_date": payload.implementation_date,
        "impact_description": payload.impact_description,
        "area_covered": payload.area_covered,
    }

# ---------- batches ----------

def get_batch(db: Session, batch_id: str) -> Optional[models.Batch]:
    return db.get(models.Batch, batch_id)

def put_batch(db: Session, payload: schemas.BatchInput, now: datetime) -> models.Batch:
    return _upsert_row(db, models.Batch, payload.batch_id, batch_fields(payload), now)

def update_batch(db: Session, batch_id: str, mutator: Mutator, now: datetime) -> models.Batch:
    obj = db.get(models.Batch, batch_id)
    if obj is None:
        raise KeyError(batch_id)
    mutator(obj)
    _stamp_updated(obj, now)
    db.flush()
    return obj

# ---------- logs ----------

def get_activity_log(db: Session, log_id: int) -> Optional[models.ActivityLog]:
    return db.get(models.ActivityLog, log_id)

def get_sustainability_log(db: Session, log_id: int) -> Optional[models.SustainabilityLog]:
    return db.get(models.SustainabilityLog, log_id)

def put_activity_log(db: Session, log_id: int, payload: schemas.ActivityLogInput, now: datetime) -> models.ActivityLog:
    fields = activity_fields(payload)
    fields["batch_id"] = payload.batch_id
    return _upsert_row(db, models.ActivityLog, log_id, fields, now)

def put_sustainability_log(
    db: Session, log_id: int, payload: schemas.SustainabilityLogInput, now: datetime
) -> models.SustainabilityLog:
    fields = sustainability_fields(payload)
    fields["batch_id"] = payload.batch_id
    return _upsert_row(db, models.SustainabilityLog, log_id, fields, now)

def _zero_activity_log(log_id: int) -> models.ActivityLog:
    return models.ActivityLog(
        id=log_id, batch_id="", activity_name="",
        start_date=EPOCH, start_hour=0, start_minute=0,
        end_date=EPOCH, end_hour=0, end_minute=0,
        area_covered=0, created_at=EPOCH, updated_at=EPOCH,
    )

def _zero_sustainability_log(log_id: int) -> models.SustainabilityLog:
    return models.SustainabilityLog(
        id=log_id, batch_id="", practice_name="", implementation_date=EPOCH,
        impact_description="", area_covered=0, created_at=EPOCH, updated_at=EPOCH,
    )

_ZERO_FACTORIES = {
    models.ActivityLog: _zero_activity_log,
    models.SustainabilityLog: _zero_sustainability_log,
}

def update_log(db: Session, model, log_id: int, mutator: Mutator, now: datetime):
    """
    Read-modify-write of one log row.
    An id that was never created starts from a zero-valued record.
    """
    obj = db.get(model, log_id)
    if obj is None:
        obj = _ZERO_FACTORIES[model](log_id)
        db.add(obj)
    mutator(obj)
    _stamp_updated(obj, now)
    db.flush()
    return obj
