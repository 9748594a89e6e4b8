"""
SQLAlchemy models: three tables.

`routine_items`          the items a user maintains (product link + extra as JSON blobs)
`concern_tracking`       one row per (item, concern, cycle)
`effectiveness_ratings`  append-only rating history; the latest per cycle is current
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.database import Base
from app.schemas import Frequency, ItemKind, Usage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoutineItemRecord(Base):
    __tablename__ = "routine_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    kind = Column(SQLEnum(ItemKind, values_callable=lambda e: [m.value for m in e]), nullable=False)
    usage = Column(SQLEnum(Usage, values_callable=lambda e: [m.value for m in e]))
    frequency = Column(SQLEnum(Frequency, values_callable=lambda e: [m.value for m in e]))
    concerns = Column(JSON, default=list, nullable=False)
    start_date = Column(Date)
    treatment_date = Column(Date)
    end_date = Column(Date)
    stop_reason = Column(String(200))
    upc = Column(String(32), index=True)
    product_json = Column(JSON, default=None)
    extra_json = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    trackings = relationship(
        "ConcernTrackingRecord",
        back_populates="item",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ConcernTrackingRecord.id",
    )
    ratings = relationship(
        "EffectivenessRatingRecord",
        back_populates="item",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="EffectivenessRatingRecord.id",
    )

    @property
    def anchor_date(self):
        """Start of the first tracking cycle."""
        return self.treatment_date if self.kind and ItemKind(self.kind).is_treatment else self.start_date

    def __repr__(self):
        return f"<RoutineItemRecord(id={self.id}, name={self.name})>"


class ConcernTrackingRecord(Base):
    __tablename__ = "concern_tracking"
    __table_args__ = (UniqueConstraint("routine_item_id", "concern_name", "cycle"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    routine_item_id = Column(
        Integer, ForeignKey("routine_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    concern_name = Column(String(100), nullable=False)
    cycle = Column(Integer, nullable=False, default=1)
    required_days = Column(Integer, nullable=False)
    started_on = Column(Date, nullable=False)
    paused_on = Column(Date)
    is_active = Column(Boolean, nullable=False, default=True)
    baseline_score = Column(Float)
    current_score = Column(Float)
    effectiveness_rating = Column(Boolean)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    item = relationship("RoutineItemRecord", back_populates="trackings")

    def __repr__(self):
        return (
            f"<ConcernTrackingRecord(item={self.routine_item_id}, "
            f"concern={self.concern_name}, cycle={self.cycle})>"
        )


class EffectivenessRatingRecord(Base):
    __tablename__ = "effectiveness_ratings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    routine_item_id = Column(
        Integer, ForeignKey("routine_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    concern_name = Column(String(100), nullable=False)
    cycle = Column(Integer, nullable=False, default=1)
    is_effective = Column(Boolean, nullable=False)
    rated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    item = relationship("RoutineItemRecord", back_populates="ratings")

    def __repr__(self):
        return f"<EffectivenessRatingRecord(id={self.id}, concern={self.concern_name})>"
