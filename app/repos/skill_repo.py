from __future__ import annotations

from typing import Protocol

from app.core.errors import DuplicateSkillError
from app.models.skill import Skill
from app.repos.undo_log import record_undo


class SkillRepo(Protocol):
    async def get_by_name(self, name: str) -> Skill | None: ...
    async def add(self, skill: Skill) -> None:
        """Insert a skill.  Raises DuplicateSkillError on a name collision."""
        ...


class InMemorySkillRepo:
    def __init__(self) -> None:
        self._by_name: dict[str, Skill] = {}

    async def get_by_name(self, name: str) -> Skill | None:
        return self._by_name.get(name)

    async def add(self, skill: Skill) -> None:
        # Same contract as the unique index on skills.name
        if skill.name in self._by_name:
            raise DuplicateSkillError(skill.name)
        self._by_name[skill.name] = skill
        record_undo(lambda: self._by_name.pop(skill.name, None))

    def clear(self) -> None:
        self._by_name.clear()
