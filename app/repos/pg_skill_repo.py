"""PostgreSQL implementation of SkillRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import DuplicateSkillError
from app.db.tables import SkillRow
from app.models.skill import Skill


class PgSkillRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_name(self, name: str) -> Skill | None:
        stmt = select(SkillRow).where(SkillRow.name == name)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return Skill(
            name=row.name, display_name=row.display_name, endorsements=row.endorsements
        )

    async def add(self, skill: Skill) -> None:
        # SAVEPOINT so a lost race doesn't poison the surrounding transaction.
        try:
            async with self._session.begin_nested():
                self._session.add(
                    SkillRow(
                        name=skill.name,
                        display_name=skill.display_name,
                        endorsements=skill.endorsements,
                    )
                )
                await self._session.flush()
        except IntegrityError:
            raise DuplicateSkillError(skill.name) from None
