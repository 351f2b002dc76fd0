# agriledger/history.py
"""
Append-only audit trail, one sequence per record.

Entries are written only by ``append_marker`` and never modified; callers
get them back ordered by position.
"""
from datetime import datetime
from typing import Union

from sqlalchemy import func, select, delete
from sqlalchemy.orm import Session

from agriledger import models

EDITED = "edited"
DEACTIVATED = "deactivated"

Key = Union[str, int]


def _next_seq(db: Session, record_type: str, record_key: str) -> int:
    stmt = select(func.max(models.HistoryEntry.seq)).where(
        models.HistoryEntry.record_type == record_type,
        models.HistoryEntry.record_key == record_key,
    )
    current = db.execute(stmt).scalar()
    return 0 if current is None else current + 1


def append_marker(db: Session, record_type: str, key: Key, kind: str, now: datetime) -> models.HistoryEntry:
    record_key = str(key)
    entry = models.HistoryEntry(
        record_type=record_type,
        record_key=record_key,
        seq=_next_seq(db, record_type, record_key),
        kind=kind,
        timestamp=now,
    )
    db.add(entry)
    db.flush()
    return entry


def read_history(db: Session, record_type: str, key: Key) -> list[models.HistoryEntry]:
    stmt = (
        select(models.HistoryEntry)
        .where(
            models.HistoryEntry.record_type == record_type,
            models.HistoryEntry.record_key == str(key),
        )
        .order_by(models.HistoryEntry.seq)
    )
    return list(db.execute(stmt).scalars())


def reset_history(db: Session, record_type: str, key: Key) -> int:
    """Drop a key's trail; only used when a create overwrites that key."""
    result = db.execute(
        delete(models.HistoryEntry).where(
            models.HistoryEntry.record_type == record_type,
            models.HistoryEntry.record_key == str(key),
        )
    )
    return result.rowcount or 0
