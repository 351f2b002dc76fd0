# agriledger/models.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import validates

from agriledger.db import Base
from agriledger.utils import maybe_aware_utc

CANCELLED = "Cancelled"

# HistoryEntry.record_type values
BATCH = "batch"
ACTIVITY = "activity"
SUSTAINABILITY = "sustainability"


class Batch(Base):
    __tablename__ = "batches"

    batch_id = Column(String, primary_key=True, index=True)   # caller-chosen key
    crop_name = Column(String, nullable=False, default="")    # non-empty == exists
    start = Column(DateTime(timezone=True), nullable=False)
    end = Column(DateTime(timezone=True), nullable=False)
    farmer = Column(String, nullable=False, default="")
    expected_yield = Column(Integer, nullable=False, default=0)
    land = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    # reserved for external indexers; nothing in the ledger writes it
    last_indexed_at = Column(DateTime(timezone=True), nullable=True)

    @validates("start", "end", "created_at", "updated_at", "last_indexed_at")
    def _tz(self, _, v):
        return maybe_aware_utc(v)


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=False)
    batch_id = Column(String, nullable=False, default="", index=True)
    activity_name = Column(String, nullable=False, default="")

    start_date = Column(DateTime(timezone=True), nullable=False)
    start_hour = Column(Integer, nullable=False, default=0)
    start_minute = Column(Integer, nullable=False, default=0)
    end_date = Column(DateTime(timezone=True), nullable=False)
    end_hour = Column(Integer, nullable=False, default=0)
    end_minute = Column(Integer, nullable=False, default=0)

    area_covered = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    @validates("start_date", "end_date", "created_at", "updated_at")
    def _tz(self, _, v):
        return maybe_aware_utc(v)


class SustainabilityLog(Base):
    __tablename__ = "sustainability_logs"

    id = Column(Integer, primary_key=True, autoincrement=False)
    batch_id = Column(String, nullable=False, default="", index=True)
    practice_name = Column(String, nullable=False, default="")
    implementation_date = Column(DateTime(timezone=True), nullable=False)
    impact_description = Column(String, nullable=False, default="")
    area_covered = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    @validates("implementation_date", "created_at", "updated_at")
    def _tz(self, _, v):
        return maybe_aware_utc(v)


class HistoryEntry(Base):
    __tablename__ = "history_entries"
    __table_args__ = (UniqueConstraint("record_type", "record_key", "seq"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_type = Column(String, nullable=False, index=True)   # batch | activity | sustainability
    record_key = Column(String, nullable=False, index=True)
    seq = Column(Integer, nullable=False)
    kind = Column(String, nullable=False)                      # edited | deactivated
    timestamp = Column(DateTime(timezone=True), nullable=False)

    @validates("timestamp")
    def _tz(self, _, v):
        return maybe_aware_utc(v)


class Sequence(Base):
    __tablename__ = "sequences"

    name = Column(String, primary_key=True)
    value = Column(Integer, nullable=False, default=0)   # next id to hand out


class AccessControlState(Base):
    __tablename__ = "access_control"

    id = Column(Integer, primary_key=True, default=1)    # singleton row
    owner = Column(String, nullable=False)
    paused = Column(Boolean, nullable=False, default=False)


class Operator(Base):
    __tablename__ = "operators"

    identity = Column(String, primary_key=True)
    enabled = Column(Boolean, nullable=False, default=False)
