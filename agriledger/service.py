# agriledger/service.py
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from agriledger import events, history, models, schemas, store, validation
from agriledger.access import AccessGate
from agriledger.config import Settings, configure_logging, load_settings
from agriledger.db import init_db, make_engine, make_session_factory
from agriledger.errors import BatchAlreadyExists, InvalidBatchId, LedgerError, UnknownRecord
from agriledger.identifiers import IdentifierRegistry
from agriledger.utils import to_aware_utc

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _batch_payload(obj: models.Batch) -> dict:
    return schemas.BatchOut.model_validate(obj).model_dump()

def _activity_payload(obj: models.ActivityLog) -> dict:
    return schemas.ActivityLogOut.model_validate(obj).model_dump()

def _sustainability_payload(obj: models.SustainabilityLog) -> dict:
    return schemas.SustainabilityLogOut.model_validate(obj).model_dump()


class TraceabilityLedger:
    """
    Entry points for every ledger operation.

    Each mutation runs authorize -> validate -> write -> history -> commit
    under one process-wide lock and one database transaction, then notifies.
    A failing notifier is logged and does not undo the committed write.
    A raised ``LedgerError`` means nothing was written and nothing was emitted.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        owner: str,
        clock: Clock | None = None,
        notify: events.Notifier | None = None,
        settings: Settings | None = None,
        registry: IdentifierRegistry | None = None,
        gate: AccessGate | None = None,
    ):
        # DI
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._notify = notify or events.log_event
        self._settings = settings or Settings()
        self._ids = registry or IdentifierRegistry()
        self._gate = gate or AccessGate()
        self._lock = threading.RLock()
        # in-memory stores hand every session the same connection
        self._shared_connection = isinstance(getattr(session_factory.kw.get("bind"), "pool", None), StaticPool)

        with self._lock, self._session_factory() as db:
            self._gate.initialise(db, owner)
            db.commit()

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs) -> "TraceabilityLedger":
        """Build engine, create tables and register the configured owner."""
        settings = settings or load_settings()
        configure_logging(settings.log_level)
        engine = make_engine(settings.database_url)
        init_db(engine)
        return cls(make_session_factory(engine), owner=settings.owner, settings=settings, **kwargs)

    # ---------- plumbing ----------

    def _now(self) -> datetime:
        return to_aware_utc(self._clock())

    @contextmanager
    def _write(self, operation: str, caller: str) -> Iterator[tuple[Session, datetime]]:
        with self._lock:
            db = self._session_factory()
            try:
                self._gate.authorize(db, operation, caller)
                yield db, self._now()
                db.commit()
            except LedgerError as e:
                db.rollback()
                logger.warning("%s rejected for %s: %s %s", operation, caller, e.code, e)
                raise
            finally:
                db.close()

    @contextmanager
    def _read(self) -> Iterator[Session]:
        if self._shared_connection:
            # a reader closing its session would roll back an open write
            with self._lock, self._session_factory() as db:
                yield db
        else:
            with self._session_factory() as db:
                yield db

    def _emit(self, name: str, now: datetime, payload: dict) -> None:
        try:
            self._notify(events.LedgerEvent(name=name, timestamp=now, payload=payload))
        except Exception:
            # already committed; the caller still sees success
            logger.exception("notifier failed for %s", name)

    @property
    def _max_len(self) -> int:
        return self._settings.max_string_length

    # ---------- batches ----------

    def create_batch(self, caller: str, payload: schemas.BatchInput) -> str:
        with self._write("create_batch", caller) as (db, now):
            validation.validate_new_batch(payload, max_length=self._max_len)
            existing = store.get_batch(db, payload.batch_id)
            if existing is not None:
                if self._settings.reject_duplicate_batches and validation.batch_exists(db, payload.batch_id):
                    raise BatchAlreadyExists(f"Batch {payload.batch_id!r} already exists", batch_id=payload.batch_id)
                logger.warning("create_batch overwrites existing batch %s", payload.batch_id)
                history.reset_history(db, models.BATCH, payload.batch_id)
            obj = store.put_batch(db, payload, now)
            body = _batch_payload(obj)
        logger.info("batch %s created", payload.batch_id)
        self._emit(events.BATCH_CREATED, now, body)
        return payload.batch_id

    def edit_batch(self, caller: str, payload: schemas.BatchEditInput) -> None:
        def apply(obj: models.Batch) -> None:
            for name, value in store.batch_fields(payload).items():
                setattr(obj, name, value)

        with self._write("edit_batch", caller) as (db, now):
            validation.validate_batch_edit(db, payload, max_length=self._max_len)
            obj = store.update_batch(db, payload.batch_id, apply, now)
            history.append_marker(db, models.BATCH, payload.batch_id, history.EDITED, now)
            body = _batch_payload(obj)
        logger.info("batch %s edited", payload.batch_id)
        self._emit(events.BATCH_EDITED, now, body)

    def deactivate_batch(self, caller: str, batch_id: str) -> None:
        def cancel(obj: models.Batch) -> None:
            obj.status = models.CANCELLED

        with self._write("deactivate_batch", caller) as (db, now):
            validation.check_batch_reference(db, batch_id)
            obj = store.update_batch(db, batch_id, cancel, now)
            history.append_marker(db, models.BATCH, batch_id, history.DEACTIVATED, now)
            body = _batch_payload(obj)
        logger.info("batch %s deactivated", batch_id)
        self._emit(events.BATCH_UPDATED, now, body)

    # ---------- activity logs ----------

    def create_activity_log(self, caller: str, payload: schemas.ActivityLogInput) -> int:
        with self._write("create_activity_log", caller) as (db, now):
            validation.validate_new_activity(db, payload, now, max_length=self._max_len)
            log_id = self._ids.next_id(db)
            if store.get_activity_log(db, log_id) is not None:
                history.reset_history(db, models.ACTIVITY, log_id)
            obj = store.put_activity_log(db, log_id, payload, now)
            body = _activity_payload(obj)
        logger.info("activity log %d created for batch %s", log_id, payload.batch_id)
        self._emit(events.ACTIVITY_LOG_CREATED, now, body)
        return log_id

    def edit_activity_log(self, caller: str, payload: schemas.ActivityLogEditInput) -> None:
        def apply(obj: models.ActivityLog) -> None:
            for name, value in store.activity_fields(payload).items():
                setattr(obj, name, value)

        with self._write("edit_activity_log", caller) as (db, now):
            if self._settings.reject_unknown_log_edits and store.get_activity_log(db, payload.id) is None:
                raise UnknownRecord(f"Activity log {payload.id} does not exist", id=payload.id)
            validation.check_activity_fields(payload, now, max_length=self._max_len)
            obj = store.update_log(db, models.ActivityLog, payload.id, apply, now)
            history.append_marker(db, models.ACTIVITY, payload.id, history.EDITED, now)
            body = _activity_payload(obj)
        logger.info("activity log %d edited", payload.id)
        self._emit(events.ACTIVITY_LOG_EDITED, now, body)

    # ---------- sustainability logs ----------

    def create_sustainability_log(self, caller: str, payload: schemas.SustainabilityLogInput) -> int:
        with self._write("create_sustainability_log", caller) as (db, now):
            validation.validate_new_sustainability(db, payload, now, max_length=self._max_len)
            log_id = self._ids.next_id(db)
            if store.get_sustainability_log(db, log_id) is not None:
                history.reset_history(db, models.SUSTAINABILITY, log_id)
            obj = store.put_sustainability_log(db, log_id, payload, now)
            body = _sustainability_payload(obj)
        logger.info("sustainability log %d created for batch %s", log_id, payload.batch_id)
        self._emit(events.SUSTAINABILITY_LOG_CREATED, now, body)
        return log_id

    def edit_sustainability_log(self, caller: str, payload: schemas.SustainabilityLogEditInput) -> None:
        def apply(obj: models.SustainabilityLog) -> None:
            for name, value in store.sustainability_fields(payload).items():
                setattr(obj, name, value)

        with self._write("edit_sustainability_log", caller) as (db, now):
            if self._settings.reject_unknown_log_edits and store.get_sustainability_log(db, payload.id) is None:
                raise UnknownRecord(f"Sustainability log {payload.id} does not exist", id=payload.id)
            validation.check_sustainability_fields(payload, now, max_length=self._max_len)
            obj = store.update_log(db, models.SustainabilityLog, payload.id, apply, now)
            history.append_marker(db, models.SUSTAINABILITY, payload.id, history.EDITED, now)
            body = _sustainability_payload(obj)
        logger.info("sustainability log %d edited", payload.id)
        self._emit(events.SUSTAINABILITY_LOG_EDITED, now, body)

    # ---------- access control ----------

    def set_operator(self, caller: str, identity: str, enabled: bool) -> None:
        with self._write("set_operator", caller) as (db, now):
            self._gate.set_operator(db, identity, enabled)
        logger.info("operator %s %s", identity, "granted" if enabled else "revoked")
        self._emit(events.OPERATOR_SET, now, {"operator": identity, "enabled": bool(enabled)})

    def pause(self, caller: str) -> None:
        with self._write("pause", caller) as (db, now):
            self._gate.set_paused(db, True)
        logger.info("ledger paused by %s", caller)
        self._emit(events.PAUSED, now, {"account": caller})

    def unpause(self, caller: str) -> None:
        with self._write("unpause", caller) as (db, now):
            self._gate.set_paused(db, False)
        logger.info("ledger unpaused by %s", caller)
        self._emit(events.UNPAUSED, now, {"account": caller})

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._write("transfer_ownership", caller) as (db, now):
            self._gate.transfer_ownership(db, new_owner)
        logger.info("ownership transferred from %s to %s", caller, new_owner)
        self._emit(events.OWNERSHIP_TRANSFERRED, now, {"previous_owner": caller, "new_owner": new_owner})

    def owner(self) -> str:
        with self._read() as db:
            return self._gate.owner(db)

    def is_paused(self) -> bool:
        with self._read() as db:
            return self._gate.is_paused(db)

    def is_operator(self, identity: str) -> bool:
        with self._read() as db:
            return self._gate.is_operator(db, identity)

    # ---------- reads ----------

    def get_batch(self, batch_id: str) -> Optional[schemas.BatchOut]:
        with self._read() as db:
            if not validation.batch_exists(db, batch_id):
                return None
            return schemas.BatchOut.model_validate(store.get_batch(db, batch_id))

    def get_activity_log(self, log_id: int) -> Optional[schemas.ActivityLogOut]:
        with self._read() as db:
            obj = store.get_activity_log(db, log_id)
            return None if obj is None else schemas.ActivityLogOut.model_validate(obj)

    def get_sustainability_log(self, log_id: int) -> Optional[schemas.SustainabilityLogOut]:
        with self._read() as db:
            obj = store.get_sustainability_log(db, log_id)
            return None if obj is None else schemas.SustainabilityLogOut.model_validate(obj)

    def peek_next_log_id(self) -> int:
        with self._read() as db:
            return self._ids.peek(db)

    def get_batch_history(self, batch_id: str) -> list[schemas.HistoryEntryOut]:
        with self._read() as db:
            if not validation.batch_exists(db, batch_id):
                raise InvalidBatchId(f"Batch {batch_id!r} does not exist", batch_id=batch_id)
            return self._history(db, models.BATCH, batch_id)

    def get_activity_log_history(self, log_id: int) -> list[schemas.HistoryEntryOut]:
        with self._read() as db:
            return self._history(db, models.ACTIVITY, log_id)

    def get_sustainability_log_history(self, log_id: int) -> list[schemas.HistoryEntryOut]:
        with self._read() as db:
            return self._history(db, models.SUSTAINABILITY, log_id)

    @staticmethod
    def _history(db: Session, record_type: str, key) -> list[schemas.HistoryEntryOut]:
        return [schemas.HistoryEntryOut.model_validate(e) for e in history.read_history(db, record_type, key)]
