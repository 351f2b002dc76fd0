from datetime import datetime, timedelta, timezone

import pytest

from agriledger import history, models, store
from agriledger.identifiers import IdentifierRegistry
from agriledger.utils import EPOCH

from conftest import NOW, mk_activity, mk_activity_edit, mk_batch, mk_sustainability


def same_moment(a: datetime, b: datetime) -> bool:
    """Compare datetimes ignoring tz-awareness differences."""
    if a.tzinfo is None:
        a = a.replace(tzinfo=timezone.utc)
    if b.tzinfo is None:
        b = b.replace(tzinfo=timezone.utc)
    return a == b


def test_put_batch_stamps_created_and_updated(db_session):
    """Create: every field written; created_at == updated_at == now."""
    obj = store.put_batch(db_session, mk_batch(), NOW)
    db_session.commit()

    obj = store.get_batch(db_session, "B1")
    assert isinstance(obj, models.Batch)
    assert obj.crop_name == "Rice"
    assert obj.expected_yield == 1000
    assert obj.status == "Active"
    assert same_moment(obj.created_at, NOW)
    assert same_moment(obj.updated_at, NOW)
    assert obj.last_indexed_at is None


def test_put_batch_overwrites_existing_key(db_session):
    store.put_batch(db_session, mk_batch(), NOW)
    later = NOW + timedelta(hours=1)
    store.put_batch(db_session, mk_batch(crop_name="Wheat"), later)
    db_session.commit()

    obj = store.get_batch(db_session, "B1")
    assert obj.crop_name == "Wheat"
    assert same_moment(obj.created_at, later)
    assert db_session.query(models.Batch).count() == 1


def test_update_batch_applies_mutator_and_touches_updated_at(db_session):
    store.put_batch(db_session, mk_batch(), NOW)
    later = NOW + timedelta(days=1)

    def cancel(obj):
        obj.status = models.CANCELLED

    obj = store.update_batch(db_session, "B1", cancel, later)

    assert obj.status == "Cancelled"
    assert same_moment(obj.created_at, NOW)
    assert same_moment(obj.updated_at, later)


def test_update_batch_missing_key_raises(db_session):
    with pytest.raises(KeyError):
        store.update_batch(db_session, "nope", lambda o: None, NOW)


def test_put_logs_by_id(db_session):
    a = store.put_activity_log(db_session, 0, mk_activity(), NOW)
    s = store.put_sustainability_log(db_session, 1, mk_sustainability(), NOW)
    db_session.commit()

    a = store.get_activity_log(db_session, 0)
    assert a.batch_id == "B1"
    assert (a.start_hour, a.start_minute, a.end_hour, a.end_minute) == (8, 30, 16, 30)
    assert a.area_covered == 100
    s = store.get_sustainability_log(db_session, 1)
    assert s.practice_name == "Organic Fertilizer"
    assert store.get_activity_log(db_session, 1) is None


def test_update_log_on_unknown_id_starts_from_zero_record(db_session):
    payload = mk_activity_edit(log_id=7)

    def apply(obj):
        for name, value in store.activity_fields(payload).items():
            setattr(obj, name, value)

    obj = store.update_log(db_session, models.ActivityLog, 7, apply, NOW)

    assert obj.id == 7
    assert obj.batch_id == ""
    assert obj.activity_name == "Planting"
    assert same_moment(obj.created_at, EPOCH)
    assert same_moment(obj.updated_at, NOW)


# ---------- history ----------

def test_history_appends_in_order_per_record(db_session):
    history.append_marker(db_session, models.BATCH, "B1", history.EDITED, NOW)
    history.append_marker(db_session, models.BATCH, "B2", history.EDITED, NOW)
    history.append_marker(db_session, models.BATCH, "B1", history.DEACTIVATED, NOW + timedelta(minutes=5))

    entries = history.read_history(db_session, models.BATCH, "B1")
    assert [e.seq for e in entries] == [0, 1]
    assert [e.kind for e in entries] == ["edited", "deactivated"]
    assert len(history.read_history(db_session, models.BATCH, "B2")) == 1


def test_history_is_scoped_by_record_type(db_session):
    history.append_marker(db_session, models.ACTIVITY, 0, history.EDITED, NOW)

    assert len(history.read_history(db_session, models.ACTIVITY, 0)) == 1
    assert history.read_history(db_session, models.SUSTAINABILITY, 0) == []


def test_reset_history_only_touches_one_key(db_session):
    history.append_marker(db_session, models.ACTIVITY, 0, history.EDITED, NOW)
    history.append_marker(db_session, models.ACTIVITY, 1, history.EDITED, NOW)

    assert history.reset_history(db_session, models.ACTIVITY, 0) == 1
    assert history.read_history(db_session, models.ACTIVITY, 0) == []
    assert len(history.read_history(db_session, models.ACTIVITY, 1)) == 1


# ---------- identifiers ----------

def test_registry_is_sequential_from_zero(db_session):
    ids = IdentifierRegistry()
    assert ids.peek(db_session) == 0
    assert [ids.next_id(db_session) for _ in range(3)] == [0, 1, 2]
    assert ids.peek(db_session) == 3


def test_registry_rollback_returns_id(db_session):
    ids = IdentifierRegistry()
    ids.next_id(db_session)
    db_session.commit()

    ids.next_id(db_session)
    db_session.rollback()

    assert ids.peek(db_session) == 1
    assert ids.next_id(db_session) == 1


def test_named_registries_are_independent(db_session):
    a, b = IdentifierRegistry("a"), IdentifierRegistry("b")
    a.next_id(db_session)
    a.next_id(db_session)
    assert b.next_id(db_session) == 0
