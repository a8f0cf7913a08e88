"""
Thin CRUD wrapper around SQLAlchemy sessions.
"""
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cycle.errors import PersistFailed
from cycle.period_schema import PeriodRecord
from cycle.symptom_codec import decode_optional, encode_optional
from db.engine import database_path, get_engine, init_db
from db.models import PeriodEntryORM

logger = logging.getLogger(__name__)

_engine_cwd: Path | None = None
_engine_path: Path | None = None
_engine = None
_SessionLocal = None

_EDITABLE = ("start_date", "end_date", "flow", "mood", "symptoms")


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Provide a transactional database session scoped to the current engine.

    If ``PERIOD_DB_PATH`` or the current working directory changed since the
    last call, the engine and session factory are rebuilt for the new file
    first. Commits on success, rolls back and re-raises on exception, and
    always closes the session.
    """
    global _engine_cwd, _engine_path, _engine, _SessionLocal

    cwd = Path.cwd()
    env_path = os.environ.get("PERIOD_DB_PATH")
    desired_path = database_path()

    need_new_engine = (
        _SessionLocal is None
        or desired_path != _engine_path
        or (env_path is None and cwd != _engine_cwd)
    )

    if need_new_engine:
        if _engine is not None:
            _engine.dispose()
        _engine = init_db(get_engine(desired_path))
        _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False)
        _engine_cwd = cwd
        _engine_path = desired_path

    db = _SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def persist_errors(action: str) -> Iterator[None]:
    """Re-raise database failures inside the block as :class:`PersistFailed`."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Failed to %s: %s", action, exc)
        raise PersistFailed(f"could not {action}") from exc


def to_record(row: PeriodEntryORM) -> PeriodRecord:
    """Convert a row to a ``PeriodRecord``, decoding its symptom blob."""
    return PeriodRecord(
        id=row.id,
        start_date=row.start_date,
        end_date=row.end_date,
        flow=row.flow,
        mood=row.mood,
        symptoms=decode_optional(row.symptoms),
    )


def recent_periods(db: Session, limit: int) -> List[PeriodEntryORM]:
    """Rows ordered by ``start_date`` descending, at most ``limit`` of them."""
    stmt = (
        select(PeriodEntryORM)
        .order_by(PeriodEntryORM.start_date.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt))


# ---------- CRUD -----------------------------------------------------

def add_period(record: PeriodRecord) -> PeriodRecord:
    """Persist a new ``PeriodRecord``."""
    with persist_errors("add period"), session_scope() as db:
        db.add(
            PeriodEntryORM(
                id=record.id,
                start_date=record.start_date,
                end_date=record.end_date,
                flow=record.flow,
                mood=record.mood,
                symptoms=encode_optional(record.symptoms),
            )
        )
    return record


def list_periods(limit: Optional[int] = None) -> List[PeriodRecord]:
    """
    List periods, most recently started first.

    Args:
        limit: If provided, return at most this many records.
    """
    with session_scope() as db:
        stmt = select(PeriodEntryORM).order_by(PeriodEntryORM.start_date.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return [to_record(row) for row in db.scalars(stmt)]


def get_period(period_id: str) -> PeriodRecord | None:
    with session_scope() as db:
        row = db.get(PeriodEntryORM, period_id)
        return to_record(row) if row else None


def update_period(period_id: str, **changes: Any) -> PeriodRecord | None:
    """
    Apply ``changes`` (any of start_date, end_date, flow, mood, symptoms).

    The merged values are validated as a ``PeriodRecord`` before anything is
    written. Returns ``None`` when the period does not exist.
    """
    unknown = set(changes) - set(_EDITABLE)
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if "flow" in changes and changes["flow"] is None:
        raise ValueError("flow cannot be null")

    with persist_errors("update period"), session_scope() as db:
        row = db.get(PeriodEntryORM, period_id)
        if row is None:
            return None

        current = {
            "id": row.id,
            "start_date": row.start_date,
            "end_date": row.end_date,
            "flow": row.flow,
            "mood": row.mood,
        }
        if "symptoms" not in changes:
            current["symptoms"] = decode_optional(row.symptoms)
        updated = PeriodRecord.model_validate({**current, **changes})

        row.start_date = updated.start_date
        row.end_date = updated.end_date
        row.flow = updated.flow
        row.mood = updated.mood
        row.symptoms = encode_optional(updated.symptoms)
    return updated


def delete_period(period_id: str) -> bool:
    """Delete a period. Returns ``False`` when it did not exist."""
    with persist_errors("delete period"), session_scope() as db:
        row = db.get(PeriodEntryORM, period_id)
        if row is None:
            return False
        db.delete(row)
    return True
