"""
Full level progression for a character.

Combines the level formulas with the archetype progression into a single
summary, and answers "what does the next level give me" questions.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional
import logging

from realms_rules.archetype import ArchetypeSummary, archetype_progression
from realms_rules.config import RulesConfig, resolve_rules
from realms_rules.data_models import MilestoneChoice
from realms_rules import formulas

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LevelProgression:
    """Every resource pool available at a level."""
    level: int
    health_energy_points: int
    ability_points: int
    skill_points: int
    training_points: int
    proficiency_points: int
    max_archetype_feats: int
    max_character_feats: int
    archetype: ArchetypeSummary

    @property
    def innate_threshold(self) -> int:
        return self.archetype.innate_threshold

    @property
    def innate_pools(self) -> int:
        return self.archetype.innate_pools

    @property
    def innate_energy(self) -> int:
        return self.archetype.innate_energy

    @property
    def armament_proficiency(self) -> int:
        return self.archetype.armament_proficiency

    def to_dict(self) -> dict[str, Any]:
        data = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "archetype"
        }
        data["archetype"] = self.archetype.to_dict()
        return data


@dataclass(frozen=True)
class LevelUpDelta:
    """Per-field gain between two levels (negative when levelling down)."""
    health_energy_points: int = 0
    ability_points: int = 0
    skill_points: int = 0
    training_points: int = 0
    proficiency_points: int = 0
    max_archetype_feats: int = 0
    max_character_feats: int = 0
    innate_threshold: int = 0
    innate_pools: int = 0
    innate_energy: int = 0
    armament_proficiency: int = 0


@dataclass(frozen=True)
class LevelMilestones:
    """What reaching a level grants on top of the standard gains."""
    level: int
    is_ability_point_level: bool
    is_proficiency_point_level: bool
    level_up_gains: dict[str, int] = field(default_factory=dict)


def get_level_progression(
    level: int,
    highest_archetype_ability: int = 0,
    martial_prof: int = 0,
    power_prof: int = 0,
    archetype_choices: Optional[Mapping[int, MilestoneChoice]] = None,
    config: Optional[RulesConfig] = None,
) -> LevelProgression:
    """
    Compute the complete progression at a level.

    Args:
        level: Character level
        highest_archetype_ability: The higher of the two archetype ability scores
        martial_prof: Martial proficiency counter
        power_prof: Power proficiency counter
        archetype_choices: Milestone choices (mixed archetype only)
        config: Rule overrides

    Returns:
        LevelProgression with all pools and the archetype summary
    """
    summary = archetype_progression(
        level, martial_prof, power_prof, archetype_choices, config
    )
    return LevelProgression(
        level=level,
        health_energy_points=formulas.health_energy_points(level, config),
        ability_points=formulas.ability_points(level, config),
        skill_points=formulas.skill_points(level, config),
        training_points=formulas.training_points(level, highest_archetype_ability, config),
        proficiency_points=formulas.proficiency_points(level, config),
        max_archetype_feats=formulas.max_archetype_feats(level, summary.bonus_archetype_feats),
        max_character_feats=formulas.max_character_feats(level),
        archetype=summary,
    )


def get_level_up_delta(
    current_level: int,
    new_level: int,
    highest_archetype_ability: int = 0,
    martial_prof: int = 0,
    power_prof: int = 0,
    archetype_choices: Optional[Mapping[int, MilestoneChoice]] = None,
    config: Optional[RulesConfig] = None,
) -> LevelUpDelta:
    """Difference in progression when moving from one level to another."""
    current = get_level_progression(
        current_level, highest_archetype_ability, martial_prof, power_prof,
        archetype_choices, config,
    )
    target = get_level_progression(
        new_level, highest_archetype_ability, martial_prof, power_prof,
        archetype_choices, config,
    )
    delta = LevelUpDelta(**{
        f.name: getattr(target, f.name) - getattr(current, f.name)
        for f in fields(LevelUpDelta)
    })
    logger.debug(f"Level {current_level} -> {new_level}: {delta}")
    return delta


def get_level_milestones(level: int, config: Optional[RulesConfig] = None) -> LevelMilestones:
    """Flag the bonus points gained on reaching ``level``."""
    rules = resolve_rules(config)
    ability_level = level >= rules.ability_point_interval and level % rules.ability_point_interval == 0
    proficiency_level = (
        level >= rules.proficiency_interval and level % rules.proficiency_interval == 0
    )
    return LevelMilestones(
        level=level,
        is_ability_point_level=ability_level,
        is_proficiency_point_level=proficiency_level,
        level_up_gains={
            "ability_points": 1 if ability_level else 0,
            "proficiency_points": 1 if proficiency_level else 0,
            "health_energy_points": rules.health_energy_per_level,
            "skill_points": rules.skill_points_per_level,
            "archetype_feats": 1,
            "character_feats": 1,
        },
    )
