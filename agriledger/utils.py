from __future__ import annotations

from typing import Optional, Union
from datetime import datetime, timezone

import pandas as pd

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

TimeLike = Union[str, int, float, datetime]


def to_aware_utc(v: Optional[TimeLike]) -> datetime:
    """Convert input to an aware UTC datetime truncated to whole seconds.

    Accepts datetimes (naive ones are taken as UTC), ISO strings and Unix
    epoch seconds. Raises ValueError for anything pandas cannot parse.
    """
    if v is None:
        raise ValueError("timestamp is required")
    if isinstance(v, datetime):
        ts = v.astimezone(timezone.utc) if v.tzinfo else v.replace(tzinfo=timezone.utc)
        return ts.replace(microsecond=0)
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        ts = pd.to_datetime(v, unit="s", errors="coerce", utc=True)
    else:
        ts = pd.to_datetime(v, errors="coerce", utc=True)
    if pd.isna(ts):
        raise ValueError(f"Unparseable timestamp: {v!r}")
    return ts.to_pydatetime().replace(microsecond=0)


def maybe_aware_utc(v: Optional[TimeLike]) -> Optional[datetime]:
    return None if v is None else to_aware_utc(v)


def epoch_seconds(v: datetime) -> int:
    """Whole seconds since the Unix epoch for an (assumed UTC) datetime."""
    return int((to_aware_utc(v) - EPOCH).total_seconds())
