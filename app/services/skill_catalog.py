from __future__ import annotations

import logging
from collections.abc import Iterable

from app.core.errors import DuplicateSkillError, ValidationError
from app.models.skill import MAX_SKILL_NAME_LENGTH, Skill, display_skill_name
from app.repos.skill_repo import SkillRepo

logger = logging.getLogger(__name__)


class SkillCatalog:
    """Get-or-create skills by normalized name."""

    def __init__(self, repo: SkillRepo) -> None:
        self._repo = repo

    async def resolve(self, names: Iterable[str]) -> frozenset[Skill]:
        # Validate everything before writing anything.
        wanted: dict[str, str] = {}
        for raw in names:
            display = display_skill_name(raw or "")
            key = display.lower()
            if not key:
                raise ValidationError("skill name must not be empty")
            # Lowercasing can lengthen some characters.
            if max(len(key), len(display)) > MAX_SKILL_NAME_LENGTH:
                raise ValidationError(
                    f"skill name must be at most {MAX_SKILL_NAME_LENGTH} characters"
                )
            wanted.setdefault(key, raw)

        resolved: set[Skill] = set()
        for key, raw in wanted.items():
            resolved.add(await self._get_or_create(key, raw))
        return frozenset(resolved)

    async def _get_or_create(self, key: str, raw: str) -> Skill:
        existing = await self._repo.get_by_name(key)
        if existing is not None:
            return existing

        skill = Skill.new(raw)
        try:
            await self._repo.add(skill)
        except DuplicateSkillError:
            # Lost the race to a concurrent creator.
            winner = await self._repo.get_by_name(key)
            if winner is None:
                raise
            return winner
        logger.info("Skill created name=%s", skill.name)
        return skill
