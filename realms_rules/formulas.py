"""
Level formulas for the Realms rules engine.

Every function here is a pure, total function of the character level (and,
for training points, the highest archetype ability score). Levels are
validated once by the caller; ``validate_level`` is provided for that.
"""

from typing import Optional

from realms_rules.config import RulesConfig, resolve_rules
from realms_rules.data_models import InvalidLevelError


def validate_level(level: int, config: Optional[RulesConfig] = None) -> int:
    """
    Check that a level is an integer in the supported range.

    Raises:
        InvalidLevelError: The level is not an int or is out of range
    """
    rules = resolve_rules(config)
    if isinstance(level, bool) or not isinstance(level, int):
        raise InvalidLevelError(f"Level must be an integer, got {level!r}")
    if not rules.min_level <= level <= rules.max_level:
        raise InvalidLevelError(
            f"Level {level} outside {rules.min_level}-{rules.max_level}"
        )
    return level


# =============================================================================
# RESOURCE POOLS
# =============================================================================


def health_energy_points(level: int, config: Optional[RulesConfig] = None) -> int:
    """Health-energy pool: 18 at level 1, +12 per level after."""
    rules = resolve_rules(config)
    return rules.base_health_energy + rules.health_energy_per_level * (level - 1)


def ability_points(level: int, config: Optional[RulesConfig] = None) -> int:
    """Ability points: 7 at level 1, +1 at level 3 and every 3rd level after."""
    rules = resolve_rules(config)
    return rules.base_ability_points + level // rules.ability_point_interval


def skill_points(level: int, config: Optional[RulesConfig] = None) -> int:
    """Skill points: 2 + 3 per level."""
    rules = resolve_rules(config)
    return rules.base_skill_points + rules.skill_points_per_level * level


def training_points(
    level: int,
    highest_archetype_ability: int = 0,
    config: Optional[RulesConfig] = None,
) -> int:
    """
    Training points: 22 + A + (2 + A) * (level - 1).

    Args:
        level: Character level
        highest_archetype_ability: The higher of the two archetype ability scores
    """
    rules = resolve_rules(config)
    a = highest_archetype_ability or 0
    per_level = rules.training_points_per_level + a
    return rules.base_training_points + a + per_level * (level - 1)


def proficiency_points(level: int, config: Optional[RulesConfig] = None) -> int:
    """Proficiency points: 2, +1 at every 5th level."""
    rules = resolve_rules(config)
    return rules.base_proficiency + level // rules.proficiency_interval


def max_character_feats(level: int) -> int:
    """Character feat slots equal the level."""
    return max(0, level)


def max_archetype_feats(level: int, bonus_archetype_feats: int = 0) -> int:
    """Archetype feat slots: the level plus the archetype's bonus feats."""
    return max(0, level) + bonus_archetype_feats


def get_max_ability(level: int, config: Optional[RulesConfig] = None) -> int:
    """Ability score ceiling for a level: 3 at level 1 rising to 9 at 16+."""
    rules = resolve_rules(config)
    for highest_level, ceiling in rules.ability_ceilings:
        if level <= highest_level:
            return ceiling
    return rules.final_ability_ceiling
