"""
Audit fan-out: every flushed change to an audited table appends an audit_logs row.

Rules per table:
    profiles       update (full old/new, only when something changed), delete
    subscriptions  insert, update, delete (full rows)
    payments       insert, update of status/amount (status, amount, paid_at subset)
    transactions   insert, update of status (status subset)

Old values of updated and deleted rows are read from the database in
before_flush (instances are usually expired after a commit, so attribute
history alone is not enough). Entries are built in after_flush and added in
after_flush_postexec, so the surrounding flush loop persists them in the same
transaction. A failure here is logged and never blocks the write.

Updates written through Core (profile merges) bypass the flush and are
recorded explicitly with record_core_update.
"""
import logging
import uuid
from contextlib import nullcontext
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import event, insert, inspect, select
from sqlalchemy.orm import Session

from wathaci.infrastructure.db.models import AuditLog, Payment, Profile, Subscription, Transaction

logger = logging.getLogger(__name__)

_STORED_KEY = "wathaci_audit_stored_rows"
_PENDING_KEY = "wathaci_pending_audit"

# table -> (audit insert, audit delete, watched fields on update, fields recorded on update)
# None for watched fields means "any column"; None for recorded fields means "full row"
AUDIT_RULES = {
    Profile: (False, True, None, None),
    Subscription: (True, True, None, None),
    Payment: (True, False, ("status", "amount"), ("status", "amount", "paid_at")),
    Transaction: (True, False, ("status",), ("status",)),
}


def json_safe(value):
    """Convert column values into something JSON columns accept"""
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _column_keys(obj):
    return [attr.key for attr in inspect(obj).mapper.column_attrs]


def _column_name(obj, key):
    # metadata_json is stored in the "metadata" column
    return inspect(obj).mapper.column_attrs[key].columns[0].name


def _snapshot(obj, keys=None):
    """Loaded attribute values, keyed by column name"""
    loaded = inspect(obj).dict
    result = {}
    for key in keys or _column_keys(obj):
        if key in loaded:
            result[_column_name(obj, key)] = json_safe(loaded[key])
    return result


def _subset(row, obj, keys):
    if row is None or keys is None:
        return row
    names = [_column_name(obj, key) for key in keys]
    return {name: row.get(name) for name in names}


def _changed(obj, keys=None) -> bool:
    state = inspect(obj)
    return any(state.attrs[key].history.has_changes() for key in (keys or _column_keys(obj)))


def _stored_row(session, obj):
    """The row as the database holds it right now, or None"""
    state = inspect(obj)
    if state.identity is None:
        return None
    mapper = state.mapper
    criteria = [column == value for column, value in zip(mapper.primary_key, state.identity)]
    row = session.connection().execute(select(mapper.local_table).where(*criteria)).mappings().first()
    if row is None:
        return None
    return {name: json_safe(value) for name, value in row.items()}


def _owner_id(obj, row=None):
    attr = "id" if isinstance(obj, Profile) else "user_id"
    value = inspect(obj).dict.get(attr)
    if value is None and row is not None:
        value = row.get(attr)
    if isinstance(value, str):
        value = uuid.UUID(value)
    return value


def _record_id(obj):
    state = inspect(obj)
    # identity keys of new objects are assigned only after after_flush
    pk = state.identity or state.mapper.primary_key_from_instance(obj)
    return str(pk[0]) if pk and pk[0] is not None else None


def _entry(obj, action, old_data, new_data, session, row=None):
    return {
        "user_id": _owner_id(obj, row),
        "action": action,
        "table_name": obj.__tablename__,
        "record_id": _record_id(obj),
        "old_data": old_data,
        "new_data": new_data,
        "metadata_json": dict(session.info.get("audit_context", {})),
    }


def capture_stored_rows(session: Session) -> dict:
    """Pre-flush rows of audited objects about to be updated or deleted"""
    stored = {}
    for obj in session.dirty:
        rule = AUDIT_RULES.get(type(obj))
        if rule and _changed(obj, rule[2]):
            stored[id(obj)] = _stored_row(session, obj)
    for obj in session.deleted:
        rule = AUDIT_RULES.get(type(obj))
        if rule and rule[1]:
            stored[id(obj)] = _stored_row(session, obj)
    return stored


def collect_audit_entries(session: Session, stored: dict | None = None) -> list[dict]:
    stored = stored or {}
    entries = []

    for obj in session.new:
        rule = AUDIT_RULES.get(type(obj))
        if rule and rule[0]:
            entries.append(_entry(obj, "INSERT", None, _snapshot(obj), session))

    for obj in session.dirty:
        rule = AUDIT_RULES.get(type(obj))
        if not rule or id(obj) not in stored:
            continue
        recorded = rule[3]
        old_row = stored[id(obj)] or {}
        new_row = dict(old_row)
        new_row.update(_snapshot(obj))
        entries.append(_entry(
            obj, "UPDATE", _subset(old_row, obj, recorded), _subset(new_row, obj, recorded), session, old_row,
        ))

    for obj in session.deleted:
        rule = AUDIT_RULES.get(type(obj))
        if rule and rule[1]:
            old_row = stored.get(id(obj)) or _snapshot(obj)
            entries.append(_entry(obj, "DELETE", old_row, None, session, old_row))

    return entries


def record_core_update(conn, table_name: str, record_id, user_id, old_data: dict, new_data: dict) -> None:
    """
    Audit an UPDATE issued through Core, which the flush hooks never see.

    Runs in a savepoint on PostgreSQL; a failure is logged and never raised.
    """
    guard = conn.begin_nested() if conn.dialect.name == "postgresql" else nullcontext()
    try:
        with guard:
            conn.execute(insert(AuditLog.__table__).values(
                user_id=user_id,
                action="UPDATE",
                table_name=table_name,
                record_id=str(record_id),
                old_data=old_data,
                new_data=new_data,
            ))
    except Exception:
        logger.warning("Audit write failed for %s %s", table_name, record_id, exc_info=True)


def _before_flush(session, flush_context, instances):
    try:
        session.info[_STORED_KEY] = capture_stored_rows(session)
    except Exception:
        logger.warning("Audit capture of stored rows failed", exc_info=True)
        session.info[_STORED_KEY] = {}


def _after_flush(session, flush_context):
    stored = session.info.pop(_STORED_KEY, {})
    try:
        entries = collect_audit_entries(session, stored)
    except Exception:
        logger.warning("Audit capture failed", exc_info=True)
        return
    if entries:
        session.info.setdefault(_PENDING_KEY, []).extend(entries)


def _after_flush_postexec(session, flush_context):
    entries = session.info.pop(_PENDING_KEY, None)
    if not entries:
        return
    try:
        session.add_all([AuditLog(**entry) for entry in entries])
    except Exception:
        logger.warning("Audit write failed for %d entries", len(entries), exc_info=True)


def _after_rollback(session):
    session.info.pop(_STORED_KEY, None)
    session.info.pop(_PENDING_KEY, None)


def install_audit_listeners() -> None:
    """Attach the audit hooks to every Session (safe to call repeatedly)"""
    if event.contains(Session, "after_flush", _after_flush):
        return
    event.listen(Session, "before_flush", _before_flush)
    event.listen(Session, "after_flush", _after_flush)
    event.listen(Session, "after_flush_postexec", _after_flush_postexec)
    event.listen(Session, "after_rollback", _after_rollback)
