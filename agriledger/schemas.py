# agriledger/schemas.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from agriledger.utils import to_aware_utc, epoch_seconds


class _Timestamps(BaseModel):
    """Coerces every datetime field to aware UTC at whole seconds."""

    @field_validator("*", mode="before")
    @classmethod
    def _aware(cls, v, info):
        field = cls.model_fields.get(info.field_name)
        if v is not None and field is not None and field.annotation in (datetime, Optional[datetime]):
            return to_aware_utc(v)
        return v


# ---------- inputs ----------

class BatchInput(_Timestamps):
    batch_id: str
    crop_name: str
    start: datetime
    end: datetime
    farmer: str
    expected_yield: int
    land: str = ""
    status: str = ""


class BatchEditInput(BatchInput):
    """Full overwrite of every mutable batch field."""


class LogTime(_Timestamps):
    date: datetime
    hour: int
    minute: int


class ActivityLogInput(BaseModel):
    batch_id: str
    activity_name: str
    start: LogTime
    end: LogTime
    area_covered: int


class ActivityLogEditInput(BaseModel):
    id: int
    activity_name: str
    start: LogTime
    end: LogTime
    area_covered: int


class SustainabilityLogInput(_Timestamps):
    batch_id: str
    practice_name: str
    implementation_date: datetime
    impact_description: str
    area_covered: int


class SustainabilityLogEditInput(_Timestamps):
    id: int
    practice_name: str
    implementation_date: datetime
    impact_description: str
    area_covered: int


# ---------- outputs ----------

class BatchOut(_Timestamps):
    batch_id: str
    crop_name: str
    start: datetime
    end: datetime
    farmer: str
    expected_yield: int
    land: str
    status: str
    created_at: datetime
    updated_at: datetime
    last_indexed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ActivityLogOut(_Timestamps):
    id: int
    batch_id: str
    activity_name: str
    start_date: datetime
    start_hour: int
    start_minute: int
    end_date: datetime
    end_hour: int
    end_minute: int
    area_covered: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SustainabilityLogOut(_Timestamps):
    id: int
    batch_id: str
    practice_name: str
    implementation_date: datetime
    impact_description: str
    area_covered: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HistoryEntryOut(_Timestamps):
    seq: int
    kind: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def marker(self) -> str:
        """Legacy text form, e.g. ``"Edited at: 1735689600"``."""
        return f"{self.kind.capitalize()} at: {epoch_seconds(self.timestamp)}"
