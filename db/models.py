"""
SQLAlchemy mapping for period entries.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    LargeBinary,
    String,
)

from db.engine import Base
from cycle.period_schema import DEFAULT_FLOW


class PeriodEntryORM(Base):
    __tablename__ = "period_entries"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    start_date = Column(DateTime(timezone=True), nullable=False, index=True)
    end_date = Column(DateTime(timezone=True))
    flow = Column(String, nullable=False, default=DEFAULT_FLOW)
    mood = Column(String)
    # Encoded by cycle.symptom_codec; NULL means no symptoms stored.
    symptoms = Column(LargeBinary)
