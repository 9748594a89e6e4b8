"""
Routine repository: all DB access in one place.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.db import EffectivenessRatingRecord, RoutineItemRecord
from app.schemas import ItemKind, ItemStatus

logger = logging.getLogger(__name__)


class RoutineRepository:
    """Single repository for all DB operations."""

    async def get_item(self, db: AsyncSession, item_id: int) -> Optional[RoutineItemRecord]:
        result = await db.execute(
            select(RoutineItemRecord)
            .where(RoutineItemRecord.id == item_id)
            .options(
                selectinload(RoutineItemRecord.trackings),
                selectinload(RoutineItemRecord.ratings),
            )
        )
        return result.scalar_one_or_none()

    async def list_items(
        self,
        db: AsyncSession,
        status: Optional[ItemStatus] = None,
        today: Optional[date] = None,
    ) -> list[RoutineItemRecord]:
        """Active items have no end date or one still ahead; archived ones are stopped non-treatments."""
        stmt = select(RoutineItemRecord).options(selectinload(RoutineItemRecord.trackings))
        today = today or date.today()
        if status == ItemStatus.ACTIVE:
            stmt = stmt.where(
                or_(RoutineItemRecord.end_date.is_(None), RoutineItemRecord.end_date > today)
            )
        elif status == ItemStatus.ARCHIVED:
            treatments = [k for k in ItemKind if k.is_treatment]
            stmt = stmt.where(
                RoutineItemRecord.end_date.is_not(None),
                RoutineItemRecord.end_date <= today,
                RoutineItemRecord.kind.not_in(treatments),
            )
        result = await db.execute(
            stmt.order_by(RoutineItemRecord.created_at.desc(), RoutineItemRecord.id.desc())
        )
        return list(result.scalars().all())

    async def add_item(self, db: AsyncSession, item: RoutineItemRecord) -> RoutineItemRecord:
        db.add(item)
        await db.commit()
        logger.info(f"Created routine item {item.id}: {item.name}")
        return item

    async def save(self, db: AsyncSession, item: RoutineItemRecord) -> None:
        db.add(item)
        await db.commit()

    async def delete_item(self, db: AsyncSession, item: RoutineItemRecord) -> None:
        await db.delete(item)
        await db.commit()
        logger.info(f"Deleted routine item {item.id}")

    async def add_rating(
        self, db: AsyncSession, item: RoutineItemRecord, rating: EffectivenessRatingRecord
    ) -> None:
        item.ratings.append(rating)
        db.add(rating)

