"""
Realms rules engine.

Character build and progression rules (resource pools, ability costs,
archetype milestones, budget validation) and the dice roll engine for the
Realms tabletop character sheet.
"""

from realms_rules.archetype import (
    ArchetypeSummary,
    ChoiceResult,
    apply_milestone_choice,
    archetype_progression,
    armament_proficiency,
    classify,
    prune_choices,
)
from realms_rules.budget import (
    CharacterValidation,
    ResourceReport,
    ResourceSummary,
    resource_tracking,
    validate_character,
)
from realms_rules.config import DEFAULT_RULES, RulesConfig, setup_logging
from realms_rules.data_models import (
    AbilityName,
    ArchetypeType,
    BudgetState,
    Catalog,
    CharacterRecord,
    DefenseName,
    DiceNotationError,
    InvalidLevelError,
    MilestoneChoice,
    UnknownAbilityError,
    UnknownDefenseError,
    UnknownDieTypeError,
    ValidationReason,
    ValidationResult,
)
from realms_rules.dice import (
    DicePool,
    DiceRollEngine,
    DieResult,
    DieType,
    RollEntry,
    RollLog,
    RollType,
    parse_damage_expression,
)
from realms_rules.engine import CharacterEngine
from realms_rules.progression import LevelProgression, get_level_progression

__all__ = [
    # Engine
    "CharacterEngine",
    "RulesConfig",
    "DEFAULT_RULES",
    "setup_logging",
    # Data model
    "AbilityName",
    "ArchetypeType",
    "BudgetState",
    "Catalog",
    "CharacterRecord",
    "DefenseName",
    "MilestoneChoice",
    "ValidationReason",
    "ValidationResult",
    # Errors
    "DiceNotationError",
    "InvalidLevelError",
    "UnknownAbilityError",
    "UnknownDefenseError",
    "UnknownDieTypeError",
    # Archetype
    "ArchetypeSummary",
    "ChoiceResult",
    "apply_milestone_choice",
    "archetype_progression",
    "armament_proficiency",
    "classify",
    "prune_choices",
    # Budget
    "CharacterValidation",
    "ResourceReport",
    "ResourceSummary",
    "resource_tracking",
    "validate_character",
    "LevelProgression",
    "get_level_progression",
    # Dice
    "DicePool",
    "DiceRollEngine",
    "DieResult",
    "DieType",
    "RollEntry",
    "RollLog",
    "RollType",
    "parse_damage_expression",
]
