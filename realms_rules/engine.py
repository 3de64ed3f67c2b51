"""
CharacterEngine - the entry point a host application holds per session.

Binds the read-only catalog, the rules config and a dice engine together.
Holds no character state: every method takes a CharacterRecord and returns
derived values or a new record.
"""

from typing import Optional, Union
import logging

from realms_rules import ability_costs, archetype, budget, progression, skills
from realms_rules.archetype import ArchetypeSummary, ChoiceResult
from realms_rules.budget import CharacterValidation, ResourceReport
from realms_rules.config import RulesConfig, resolve_rules
from realms_rules.data_models import (
    AbilityName,
    Catalog,
    CharacterRecord,
    DefenseName,
    MilestoneChoice,
    ValidationResult,
    parse_defense,
)
from realms_rules.dice import DiceRollEngine
from realms_rules.formulas import validate_level
from realms_rules.progression import LevelProgression

logger = logging.getLogger(__name__)


class CharacterEngine:
    """
    Rules façade for one editing session.

    Args:
        catalog: Content tables used for feat and training lookups
        config: Rule overrides; defaults to the published rules
        dice: Dice engine for the session; created if not given
    """

    def __init__(self, catalog: Optional[Catalog] = None, config: Optional[RulesConfig] = None,
                 dice: Optional[DiceRollEngine] = None):
        self.catalog = catalog or Catalog()
        self.config = resolve_rules(config)
        self.dice = dice or DiceRollEngine(config=self.config)

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    def progression(self, record: CharacterRecord) -> LevelProgression:
        validate_level(record.level, self.config)
        return progression.get_level_progression(
            record.level,
            archetype.highest_archetype_ability(record),
            record.martial_prof,
            record.power_prof,
            record.archetype_choices,
            self.config,
        )

    def archetype(self, record: CharacterRecord) -> ArchetypeSummary:
        return archetype.archetype_progression(
            record.level, record.martial_prof, record.power_prof,
            record.archetype_choices, self.config,
        )

    def resources(self, record: CharacterRecord) -> ResourceReport:
        validate_level(record.level, self.config)
        return budget.resource_tracking(record, self.catalog, self.config)

    def validate(self, record: CharacterRecord) -> CharacterValidation:
        validate_level(record.level, self.config)
        return budget.validate_character(record, self.catalog, self.config)

    # -------------------------------------------------------------------------
    # Abilities
    # -------------------------------------------------------------------------

    def increase_ability(
        self, record: CharacterRecord, name: Union[str, AbilityName]
    ) -> tuple[CharacterRecord, ValidationResult]:
        """Raise an ability; over-budget increases are applied and flagged."""
        remaining = self.resources(record).ability_points.remaining
        scores, result = ability_costs.increase_ability(
            record.abilities, name, record.level, remaining, self.config
        )
        if not result.allowed:
            return record, result
        logger.info(f"Increased {name} for {result.cost} point(s)")
        return record.with_changes(abilities=scores), result

    def decrease_ability(
        self, record: CharacterRecord, name: Union[str, AbilityName]
    ) -> tuple[CharacterRecord, ValidationResult]:
        scores, result = ability_costs.decrease_ability(
            record.abilities, name, record.base_abilities, self.config
        )
        if not result.allowed:
            return record, result
        logger.info(f"Decreased {name}, refunding {result.refund} point(s)")
        return record.with_changes(abilities=scores), result

    # -------------------------------------------------------------------------
    # Archetype
    # -------------------------------------------------------------------------

    def apply_milestone_choice(
        self,
        record: CharacterRecord,
        milestone_level: int,
        choice: Union[str, MilestoneChoice],
    ) -> tuple[CharacterRecord, ChoiceResult]:
        result = archetype.apply_milestone_choice(
            record.archetype_choices, milestone_level, choice,
            record.martial_prof, record.power_prof, record.level, self.config,
        )
        if not result.ok:
            return record, result
        return record.with_changes(archetype_choices=result.choices), result

    def set_proficiency(self, record: CharacterRecord, martial_prof: int,
                        power_prof: int) -> CharacterRecord:
        """Update the proficiency counters and drop unreachable milestone choices."""
        if martial_prof < 0 or power_prof < 0:
            raise ValueError("Proficiency counters cannot be negative")
        choices = archetype.prune_choices(
            record.archetype_choices, record.level, martial_prof, power_prof, self.config
        )
        return record.with_changes(
            martial_prof=martial_prof, power_prof=power_prof, archetype_choices=choices
        )

    def set_level(self, record: CharacterRecord, level: int) -> CharacterRecord:
        """Change the level and drop milestone choices above it."""
        validate_level(level, self.config)
        choices = archetype.prune_choices(
            record.archetype_choices, level, record.martial_prof, record.power_prof, self.config
        )
        return record.with_changes(level=level, archetype_choices=choices)

    # -------------------------------------------------------------------------
    # Skills and defenses
    # -------------------------------------------------------------------------

    def toggle_skill_proficiency(
        self, record: CharacterRecord, skill_id: str
    ) -> tuple[CharacterRecord, ValidationResult, tuple[str, ...]]:
        """
        Toggle a skill's proficiency, then reconcile dependent sub-skills.

        Returns:
            (new record, toggle result, ids of sub-skills reset by the pass)
        """
        species = skills.species_skill_ids(record, self.catalog)
        toggled, result = skills.toggle_proficiency(record.skills, skill_id, species, self.config)
        if not result.allowed:
            return record, result, ()
        reconciled = skills.reconcile_skills(toggled)
        return record.with_changes(skills=reconciled.skills), result, reconciled.reset_ids

    def increase_skill(self, record: CharacterRecord,
                       skill_id: str) -> tuple[CharacterRecord, ValidationResult]:
        remaining = self.resources(record).skill_points.remaining
        species = skills.species_skill_ids(record, self.catalog)
        updated, result = skills.increase_skill(
            record.skills, skill_id, species, remaining, self.config
        )
        if not result.allowed:
            return record, result
        return record.with_changes(skills=updated), result

    def decrease_skill(self, record: CharacterRecord,
                       skill_id: str) -> tuple[CharacterRecord, ValidationResult]:
        updated, result = skills.decrease_skill(record.skills, skill_id, self.config)
        if not result.allowed:
            return record, result
        reconciled = skills.reconcile_skills(updated)
        return record.with_changes(skills=reconciled.skills), result

    def increase_defense(self, record: CharacterRecord,
                         defense: Union[str, DefenseName]) -> tuple[CharacterRecord, ValidationResult]:
        remaining = self.resources(record).skill_points.remaining
        result = skills.can_increase_defense(
            record.abilities, record.defense_allocations, defense,
            record.level, remaining, self.config,
        )
        if not result.allowed:
            logger.warning(f"Defense increase rejected: {result.message}")
            return record, result
        allocations = dict(record.defense_allocations)
        allocations[parse_defense(defense).value] += 1
        return record.with_changes(defense_allocations=allocations), result

    def decrease_defense(self, record: CharacterRecord,
                         defense: Union[str, DefenseName]) -> tuple[CharacterRecord, ValidationResult]:
        result = skills.can_decrease_defense(record.defense_allocations, defense, self.config)
        if not result.allowed:
            return record, result
        allocations = dict(record.defense_allocations)
        allocations[parse_defense(defense).value] -= 1
        return record.with_changes(defense_allocations=allocations), result

    # -------------------------------------------------------------------------
    # Health / energy
    # -------------------------------------------------------------------------

    def allocate_health(self, record: CharacterRecord,
                        health: int) -> tuple[CharacterRecord, ValidationResult]:
        result = budget.can_allocate_health(record, health, self.config)
        if not result.allowed:
            return record, result
        return record.with_changes(health_points=health), result

    def allocate_energy(self, record: CharacterRecord,
                        energy: int) -> tuple[CharacterRecord, ValidationResult]:
        result = budget.can_allocate_energy(record, energy, self.config)
        if not result.allowed:
            return record, result
        return record.with_changes(energy_points=energy), result
