"""Seed the persisted catalog tables from the static catalogs"""

from typing import Mapping
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flog_economy.models.achievement import Achievement
from flog_economy.models.mystery_box import MysteryBox
from flog_economy.services.catalogs import ACHIEVEMENTS, MYSTERY_BOXES, AchievementDefinition, BoxDefinition

logger = logging.getLogger(__name__)

async def seed_catalogs(
    db: AsyncSession,
    achievements: Mapping[str, AchievementDefinition] = ACHIEVEMENTS,
    boxes: Mapping[str, BoxDefinition] = MYSTERY_BOXES,
) -> int:
    """Insert catalog rows that are not stored yet, returns the number added"""
    existing_achievements = set((await db.execute(select(Achievement.achievement_id))).scalars().all())
    existing_boxes = set((await db.execute(select(MysteryBox.box_id))).scalars().all())

    added = 0
    for definition in achievements.values():
        if definition.achievement_id in existing_achievements:
            continue
        db.add(Achievement(
            achievement_id=definition.achievement_id,
            name=definition.name,
            description=definition.description,
            icon=definition.icon,
            xp_reward=definition.xp_reward,
            flog_reward=definition.flog_reward,
            category=definition.category,
            rarity=definition.rarity,
        ))
        added += 1

    for definition in boxes.values():
        if definition.box_id in existing_boxes:
            continue
        db.add(MysteryBox(
            box_id=definition.box_id,
            name=definition.name,
            tier=definition.tier,
            price=definition.price,
            min_items=definition.min_items,
            max_items=definition.max_items,
        ))
        added += 1

    await db.commit()
    if added:
        logger.info(f"Seeded {added} catalog entries")
    return added
