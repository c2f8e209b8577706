from __future__ import annotations

from dataclasses import dataclass

MAX_SKILL_NAME_LENGTH = 100


def display_skill_name(raw: str) -> str:
    """Trim and collapse inner whitespace, keeping the caller's casing."""
    return " ".join(raw.split())


def normalize_skill_name(raw: str) -> str:
    """Identity key for a skill: whitespace-collapsed and lowercased."""
    return display_skill_name(raw).lower()


@dataclass(frozen=True, slots=True)
class Skill:
    # name is the normalized identity; the store keeps it unique.
    name: str
    display_name: str
    endorsements: int = 0

    @staticmethod
    def new(raw_name: str) -> Skill:
        return Skill(
            name=normalize_skill_name(raw_name),
            display_name=display_skill_name(raw_name),
            endorsements=0,
        )
