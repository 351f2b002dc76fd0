# agriledger/events.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

logger = logging.getLogger(__name__)

BATCH_CREATED = "BatchCreated"
BATCH_EDITED = "BatchEdited"
BATCH_UPDATED = "BatchUpdated"
ACTIVITY_LOG_CREATED = "ActivityLogCreated"
ACTIVITY_LOG_EDITED = "ActivityLogEdited"
SUSTAINABILITY_LOG_CREATED = "SustainabilityLogCreated"
SUSTAINABILITY_LOG_EDITED = "SustainabilityLogEdited"
OPERATOR_SET = "OperatorSet"
PAUSED = "Paused"
UNPAUSED = "Unpaused"
OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


@dataclass(frozen=True)
class LedgerEvent:
    """Post-commit notification: full field set of the mutated record."""

    name: str
    timestamp: datetime
    payload: dict[str, Any] = field(default_factory=dict)


Notifier = Callable[[LedgerEvent], None]


def log_event(event: LedgerEvent) -> None:
    logger.info("%s at %s: %s", event.name, event.timestamp.isoformat(), event.payload)
