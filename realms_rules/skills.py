"""
Skill, sub-skill and defense spending.

Skill points pay for skill values, for proficiency in base skills (species
skills are proficient for free) and for defense allocations at 2 points
each. Sub-skills require a proficient base skill. Removing a base skill's
proficiency does not touch its sub-skills directly: callers run
``reconcile_skills`` afterwards, which resets any stranded sub-skill.
"""

from dataclasses import dataclass, replace
from math import ceil
from typing import Iterable, Mapping, Optional, Sequence, Union, TYPE_CHECKING
import logging

from realms_rules.config import RulesConfig, resolve_rules
from realms_rules.data_models import (
    DEFENSE_ABILITY,
    DefenseName,
    SkillEntry,
    ValidationReason,
    ValidationResult,
    normalize_abilities,
    normalize_defenses,
    parse_ability,
    parse_defense,
)

if TYPE_CHECKING:
    from realms_rules.data_models import Catalog, CharacterRecord

logger = logging.getLogger(__name__)


# =============================================================================
# LOOKUPS
# =============================================================================


def is_species_skill(skill: SkillEntry, species_skills: Iterable[str]) -> bool:
    """Species skills may be stored by id or by name; match either, ignoring case."""
    name = skill.name.lower()
    skill_id = str(skill.skill_id).lower()
    return any(str(s).lower() in (name, skill_id) for s in species_skills)


def species_skill_ids(record: "CharacterRecord", catalog: "Catalog") -> set[str]:
    """Skill ids and names granted by the character's species."""
    if not record.species:
        return set()
    species = catalog.find_species(record.species)
    if species is None:
        logger.warning(f"Unknown species: {record.species!r}")
        return set()
    return set(species.skills)


def _find(skills: Sequence[SkillEntry], skill_id: str) -> Optional[SkillEntry]:
    for skill in skills:
        if skill.skill_id == skill_id:
            return skill
    return None


def _parent(skills: Sequence[SkillEntry], skill: SkillEntry) -> Optional[SkillEntry]:
    for candidate in skills:
        if candidate.name == skill.base_skill and not candidate.is_sub_skill:
            return candidate
    return None


def _replace_skill(skills: Sequence[SkillEntry], updated: SkillEntry) -> tuple[SkillEntry, ...]:
    return tuple(updated if s.skill_id == updated.skill_id else s for s in skills)


# =============================================================================
# SPENDING
# =============================================================================


def skill_step_cost(current_value: int, is_sub_skill: bool,
                    config: Optional[RulesConfig] = None) -> int:
    """Points to raise a skill value by one from ``current_value``."""
    rules = resolve_rules(config)
    if current_value < rules.skill_value_cap:
        return 1
    return rules.sub_skill_past_cap_cost if is_sub_skill else rules.base_skill_past_cap_cost


def skill_value_cost(value: int, is_sub_skill: bool,
                     config: Optional[RulesConfig] = None) -> int:
    """Points paid for a skill value, one step at a time from 0."""
    return sum(skill_step_cost(step, is_sub_skill, config) for step in range(max(value, 0)))


def skill_points_spent(
    skills: Iterable[SkillEntry],
    defense_allocations: Optional[Mapping[str, int]] = None,
    species_skills: Iterable[str] = (),
    config: Optional[RulesConfig] = None,
) -> int:
    """
    Total skill points spent.

    Each skill costs its value, priced per step by ``skill_step_cost``; a
    proficient base skill costs 1 more unless it comes from the species.
    Each defense allocation point costs 2.
    """
    rules = resolve_rules(config)
    species = list(species_skills)
    total = 0
    for skill in skills:
        total += skill_value_cost(skill.value, skill.is_sub_skill, rules)
        if skill.prof and not skill.is_sub_skill and not is_species_skill(skill, species):
            total += 1
    defenses = normalize_defenses(defense_allocations)
    total += sum(defenses.values()) * rules.defense_increase_cost
    return total


# =============================================================================
# PROFICIENCY AND VALUE CHANGES
# =============================================================================


def can_toggle_proficiency(
    skills: Sequence[SkillEntry],
    skill_id: str,
    species_skills: Iterable[str] = (),
    config: Optional[RulesConfig] = None,
) -> ValidationResult:
    """Check whether a skill's proficiency may be flipped."""
    skill = _find(skills, skill_id)
    if skill is None:
        return ValidationResult.reject(ValidationReason.UNKNOWN_SKILL, f"No skill {skill_id!r}")
    if is_species_skill(skill, species_skills):
        return ValidationResult.reject(
            ValidationReason.SPECIES_SKILL_LOCKED,
            f"{skill.name} is granted by species and cannot be changed",
        )
    if skill.prof:
        refund = skill_value_cost(skill.value, skill.is_sub_skill, config)
        return ValidationResult.ok(refund=refund + (0 if skill.is_sub_skill else 1))
    if skill.is_sub_skill:
        parent = _parent(skills, skill)
        if parent is None or not parent.prof:
            return ValidationResult.reject(
                ValidationReason.BASE_SKILL_NOT_PROFICIENT,
                f"{skill.name} requires proficiency in {skill.base_skill}",
            )
    return ValidationResult.ok(cost=1)


def toggle_proficiency(
    skills: Sequence[SkillEntry],
    skill_id: str,
    species_skills: Iterable[str] = (),
    config: Optional[RulesConfig] = None,
) -> tuple[tuple[SkillEntry, ...], ValidationResult]:
    """
    Flip a skill's proficiency.

    Removing proficiency resets the value to 0. A sub-skill gaining
    proficiency starts at value 1; a base skill keeps value 0. Sub-skills
    of a base skill losing proficiency are left for ``reconcile_skills``.
    """
    species = list(species_skills)
    result = can_toggle_proficiency(skills, skill_id, species, config)
    if not result.allowed:
        logger.warning(f"Proficiency toggle rejected: {result.message}")
        return tuple(skills), result
    skill = _find(skills, skill_id)
    if skill.prof:
        updated = replace(skill, prof=False, value=0)
    elif skill.is_sub_skill:
        updated = replace(skill, prof=True, value=1)
    else:
        updated = replace(skill, prof=True, value=0)
    logger.debug(f"{skill.name} proficiency -> {updated.prof}")
    return _replace_skill(skills, updated), result


def can_increase_skill(
    skills: Sequence[SkillEntry],
    skill_id: str,
    species_skills: Iterable[str] = (),
    available_points: Optional[int] = None,
    config: Optional[RulesConfig] = None,
) -> ValidationResult:
    """
    Check whether a skill may be raised by one step.

    An unproficient skill first becomes proficient; for sub-skills that
    needs a proficient base skill. Point shortfalls and values past the
    usual cap are reported but do not block.
    """
    rules = resolve_rules(config)
    skill = _find(skills, skill_id)
    if skill is None:
        return ValidationResult.reject(ValidationReason.UNKNOWN_SKILL, f"No skill {skill_id!r}")

    if skill.is_sub_skill and not skill.prof:
        parent = _parent(skills, skill)
        if parent is None or not parent.prof:
            return ValidationResult.reject(
                ValidationReason.BASE_SKILL_NOT_PROFICIENT,
                f"{skill.name} requires proficiency in {skill.base_skill}",
            )

    if skill.prof:
        cost = skill_step_cost(skill.value, skill.is_sub_skill, rules)
    elif not skill.is_sub_skill and is_species_skill(skill, species_skills):
        cost = 0
    else:
        cost = 1
    message = None
    if skill.prof and skill.value >= rules.skill_value_cap:
        message = f"{skill.name} is past the cap of {rules.skill_value_cap}; each step costs {cost}"
    if available_points is not None and cost > available_points:
        return ValidationResult.ok(
            cost=cost,
            over_budget=True,
            message=f"Need {cost} skill point(s) but only have {available_points}",
        )
    return ValidationResult.ok(cost=cost, message=message)


def increase_skill(
    skills: Sequence[SkillEntry],
    skill_id: str,
    species_skills: Iterable[str] = (),
    available_points: Optional[int] = None,
    config: Optional[RulesConfig] = None,
) -> tuple[tuple[SkillEntry, ...], ValidationResult]:
    species = list(species_skills)
    result = can_increase_skill(skills, skill_id, species, available_points, config)
    if not result.allowed:
        logger.warning(f"Skill increase rejected: {result.message}")
        return tuple(skills), result
    skill = _find(skills, skill_id)
    if not skill.prof and skill.is_sub_skill:
        updated = replace(skill, prof=True, value=1)
    elif not skill.prof:
        # Base and species skills gain proficiency before any value
        updated = replace(skill, prof=True, value=0)
    else:
        updated = replace(skill, value=skill.value + 1)
    return _replace_skill(skills, updated), result


def decrease_skill(
    skills: Sequence[SkillEntry],
    skill_id: str,
    config: Optional[RulesConfig] = None,
) -> tuple[tuple[SkillEntry, ...], ValidationResult]:
    """
    Lower a skill by one step.

    A proficient sub-skill at value 1 loses proficiency instead of going
    to 0. Values never drop below 0.
    """
    skill = _find(skills, skill_id)
    if skill is None:
        result = ValidationResult.reject(ValidationReason.UNKNOWN_SKILL, f"No skill {skill_id!r}")
        return tuple(skills), result
    if skill.is_sub_skill and skill.prof and skill.value <= 1:
        updated = replace(skill, prof=False, value=0)
        return _replace_skill(skills, updated), ValidationResult.ok(refund=skill.value)
    if skill.value <= 0:
        result = ValidationResult.reject(
            ValidationReason.SKILL_AT_ZERO, f"{skill.name} is already at 0"
        )
        logger.warning(f"Skill decrease rejected: {result.message}")
        return tuple(skills), result
    updated = replace(skill, value=skill.value - 1)
    refund = skill_step_cost(updated.value, skill.is_sub_skill, config)
    return _replace_skill(skills, updated), ValidationResult.ok(refund=refund)


@dataclass(frozen=True)
class SkillReconciliation:
    """Result of the post-mutation skill pass."""
    skills: tuple[SkillEntry, ...]
    reset_ids: tuple[str, ...] = ()


def reconcile_skills(skills: Sequence[SkillEntry]) -> SkillReconciliation:
    """
    Reset every sub-skill whose base skill is not proficient.

    Stranded sub-skills become non-proficient with value 0. The input is
    not modified; the ids that were reset are returned for auditing.
    """
    proficient_bases = {s.name for s in skills if not s.is_sub_skill and s.prof}
    result: list[SkillEntry] = []
    reset: list[str] = []
    for skill in skills:
        stranded = skill.is_sub_skill and skill.base_skill not in proficient_bases
        if stranded and (skill.prof or skill.value):
            result.append(replace(skill, prof=False, value=0))
            reset.append(skill.skill_id)
        else:
            result.append(skill)
    if reset:
        logger.info(f"Reset {len(reset)} sub-skill(s) without a proficient base: {reset}")
    return SkillReconciliation(skills=tuple(result), reset_ids=tuple(reset))


# =============================================================================
# DEFENSES
# =============================================================================


def defense_bonuses(
    abilities: Mapping[str, int],
    defense_allocations: Optional[Mapping[str, int]] = None,
) -> dict[str, int]:
    """Defense bonus per defense: paired ability score plus allocated points."""
    scores = normalize_abilities(abilities)
    allocations = normalize_defenses(defense_allocations)
    return {
        defense.value: scores[ability.value] + allocations[defense.value]
        for defense, ability in DEFENSE_ABILITY.items()
    }


def defense_scores(
    abilities: Mapping[str, int],
    defense_allocations: Optional[Mapping[str, int]] = None,
    config: Optional[RulesConfig] = None,
) -> dict[str, int]:
    """Defense score per defense: 10 plus the bonus."""
    base = resolve_rules(config).base_defense
    return {name: base + bonus for name, bonus in defense_bonuses(abilities, defense_allocations).items()}


def can_increase_defense(
    abilities: Mapping[str, int],
    defense_allocations: Optional[Mapping[str, int]],
    defense: Union[str, DefenseName],
    level: int,
    available_points: Optional[int] = None,
    config: Optional[RulesConfig] = None,
) -> ValidationResult:
    """
    Check whether one more skill point pair may go into a defense.

    Blocked once the defense bonus (ability + allocation) reaches the level,
    which keeps the defense score at or below level + 10.
    """
    rules = resolve_rules(config)
    name = parse_defense(defense)
    bonus = defense_bonuses(abilities, defense_allocations)[name.value]
    cost = rules.defense_increase_cost
    if bonus >= level:
        return ValidationResult.reject(
            ValidationReason.DEFENSE_AT_MAX,
            f"{name.value} bonus {bonus} cannot exceed level {level}",
            cost=cost,
        )
    if available_points is not None and cost > available_points:
        return ValidationResult.ok(
            cost=cost,
            over_budget=True,
            message=f"Need {cost} skill points but only have {available_points}",
        )
    return ValidationResult.ok(cost=cost)


def can_decrease_defense(
    defense_allocations: Optional[Mapping[str, int]],
    defense: Union[str, DefenseName],
    config: Optional[RulesConfig] = None,
) -> ValidationResult:
    name = parse_defense(defense)
    if normalize_defenses(defense_allocations)[name.value] <= 0:
        return ValidationResult.reject(
            ValidationReason.DEFENSE_AT_ZERO, f"No points allocated to {name.value}"
        )
    return ValidationResult.ok(refund=resolve_rules(config).defense_increase_cost)


# =============================================================================
# SKILL BONUS
# =============================================================================


def highest_linked_ability(linked_abilities: Iterable[str], abilities: Mapping[str, int]) -> int:
    """Highest score among the abilities a skill is linked to (0 if none)."""
    scores = normalize_abilities(abilities)
    values = [scores[parse_ability(a).value] for a in linked_abilities]
    return max(values) if values else 0


def skill_bonus(
    linked_abilities: Iterable[str],
    value: int,
    abilities: Mapping[str, int],
    proficient: bool = False,
) -> int:
    """
    Skill roll bonus.

    Proficient: highest linked ability + value + 1. Unproficient: double a
    negative ability, otherwise half of it rounded up.
    """
    ability = highest_linked_ability(linked_abilities, abilities)
    if proficient:
        return ability + value + 1
    if ability < 0:
        return ability * 2
    return ceil(ability / 2)
