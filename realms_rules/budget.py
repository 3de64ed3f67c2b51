"""
Budget validation across every resource pool.

Each pool is reported as total / spent / remaining plus a UI state.
Remaining may be negative: overspending is a valid state that is flagged
as over-budget, never rejected. Everything is recomputed from the record
on each call.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
import logging

from realms_rules.ability_costs import negative_ability_sum, points_spent
from realms_rules.archetype import (
    ArchetypeSummary,
    archetype_progression,
    highest_archetype_ability,
)
from realms_rules.config import RulesConfig
from realms_rules.data_models import (
    BudgetState,
    Catalog,
    CharacterRecord,
    ValidationReason,
    ValidationResult,
)
from realms_rules.skills import skill_points_spent, species_skill_ids
from realms_rules.training import training_points_spent
from realms_rules import formulas

logger = logging.getLogger(__name__)


# =============================================================================
# RESOURCE SUMMARY
# =============================================================================


def classify_remaining(remaining: int) -> BudgetState:
    if remaining < 0:
        return BudgetState.OVER_BUDGET
    if remaining > 0:
        return BudgetState.HAS_POINTS
    return BudgetState.NO_POINTS


@dataclass(frozen=True)
class ResourceSummary:
    """Total, spent and remaining points of one pool."""
    total: int
    spent: int
    remaining: int
    state: BudgetState

    @classmethod
    def from_totals(cls, total: int, spent: int) -> "ResourceSummary":
        remaining = total - spent
        return cls(total=total, spent=spent, remaining=remaining,
                   state=classify_remaining(remaining))

    @property
    def over_budget(self) -> bool:
        return self.state == BudgetState.OVER_BUDGET

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "spent": self.spent,
            "remaining": self.remaining,
            "state": self.state.value,
        }


# =============================================================================
# FEATS
# =============================================================================


@dataclass(frozen=True)
class FeatUsage:
    """Feat slot costs split by slot kind."""
    archetype: int = 0
    character: int = 0


def feat_slot_usage(record: CharacterRecord, catalog: Catalog) -> FeatUsage:
    """
    Sum feat slot costs.

    A feat costs its ``feat_lvl`` (default 1) in character or archetype
    slots depending on ``char_feat``. Feats missing from the catalog count
    as one archetype slot.
    """
    archetype = 0
    character = 0
    for feat in record.feats:
        definition = catalog.find_feat(feat.ref)
        if definition is None:
            logger.warning(f"Unknown feat {feat.name or feat.ref.ref_id!r}; counting as archetype feat")
            archetype += 1
            continue
        if definition.char_feat:
            character += definition.feat_lvl
        else:
            archetype += definition.feat_lvl
    return FeatUsage(archetype=archetype, character=character)


# =============================================================================
# RESOURCE TRACKING
# =============================================================================


@dataclass(frozen=True)
class ResourceReport:
    """Every pool for a character plus the derived archetype values."""
    ability_points: ResourceSummary
    skill_points: ResourceSummary
    training_points: ResourceSummary
    proficiency_points: ResourceSummary
    archetype_feats: ResourceSummary
    character_feats: ResourceSummary
    health_energy_points: ResourceSummary
    archetype: ArchetypeSummary
    negative_ability_sum: int = 0
    max_ability: int = 0

    def pools(self) -> dict[str, ResourceSummary]:
        return {
            "ability_points": self.ability_points,
            "skill_points": self.skill_points,
            "training_points": self.training_points,
            "proficiency_points": self.proficiency_points,
            "archetype_feats": self.archetype_feats,
            "character_feats": self.character_feats,
            "health_energy_points": self.health_energy_points,
        }

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {name: pool.to_dict() for name, pool in self.pools().items()}
        data["archetype"] = self.archetype.to_dict()
        data["negative_ability_sum"] = self.negative_ability_sum
        data["max_ability"] = self.max_ability
        return data


def resource_tracking(
    record: CharacterRecord,
    catalog: Catalog,
    config: Optional[RulesConfig] = None,
) -> ResourceReport:
    """
    Compute every resource pool for a character.

    Args:
        record: The character
        catalog: Read-only content tables for feat and training costs
        config: Rule overrides

    Returns:
        ResourceReport with one ResourceSummary per pool
    """
    level = record.level
    summary = archetype_progression(
        level, record.martial_prof, record.power_prof, record.archetype_choices, config
    )
    feats = feat_slot_usage(record, catalog)
    top_ability = highest_archetype_ability(record)

    report = ResourceReport(
        ability_points=ResourceSummary.from_totals(
            formulas.ability_points(level, config),
            points_spent(record.abilities, record.base_abilities, config),
        ),
        skill_points=ResourceSummary.from_totals(
            formulas.skill_points(level, config),
            skill_points_spent(
                record.skills,
                record.defense_allocations,
                species_skill_ids(record, catalog),
                config,
            ),
        ),
        training_points=ResourceSummary.from_totals(
            formulas.training_points(level, top_ability, config),
            training_points_spent(record, catalog),
        ),
        proficiency_points=ResourceSummary.from_totals(
            formulas.proficiency_points(level, config),
            record.martial_prof + record.power_prof,
        ),
        archetype_feats=ResourceSummary.from_totals(
            formulas.max_archetype_feats(level, summary.bonus_archetype_feats),
            feats.archetype,
        ),
        character_feats=ResourceSummary.from_totals(
            formulas.max_character_feats(level),
            feats.character,
        ),
        health_energy_points=ResourceSummary.from_totals(
            formulas.health_energy_points(level, config),
            record.health_points + record.energy_points,
        ),
        archetype=summary,
        negative_ability_sum=negative_ability_sum(record.abilities),
        max_ability=formulas.get_max_ability(level, config),
    )
    over = [name for name, pool in report.pools().items() if pool.over_budget]
    if over:
        logger.debug(f"Over budget at level {level}: {over}")
    return report


# =============================================================================
# WHOLE-CHARACTER VALIDATION
# =============================================================================


@dataclass(frozen=True)
class CharacterValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)


def validate_character(
    record: CharacterRecord,
    catalog: Catalog,
    config: Optional[RulesConfig] = None,
) -> CharacterValidation:
    """List every over-budget pool as a human-readable message."""
    report = resource_tracking(record, catalog, config)
    errors: list[str] = []

    for label, pool in (
        ("ability", report.ability_points),
        ("skill", report.skill_points),
        ("training", report.training_points),
        ("proficiency", report.proficiency_points),
        ("health-energy", report.health_energy_points),
    ):
        if pool.over_budget:
            errors.append(f"Over-allocated {label} points by {abs(pool.remaining)}")

    if report.archetype_feats.over_budget:
        errors.append(
            f"Too many archetype feats ({report.archetype_feats.spent}/{report.archetype_feats.total})"
        )
    if report.character_feats.over_budget:
        errors.append(
            f"Too many character feats ({report.character_feats.spent}/{report.character_feats.total})"
        )

    return CharacterValidation(valid=not errors, errors=errors)


# =============================================================================
# HEALTH / ENERGY ALLOCATION
# =============================================================================


def _can_allocate(label: str, new_value: int, other: int, level: int,
                  config: Optional[RulesConfig]) -> ValidationResult:
    total = formulas.health_energy_points(level, config)
    available = total - other
    if new_value < 0:
        return ValidationResult.reject(
            ValidationReason.NEGATIVE_ALLOCATION,
            f"{label} allocation cannot be negative",
        )
    if new_value > available:
        return ValidationResult.ok(
            over_budget=True,
            message=f"Not enough Health-Energy points. You have {available} points available for {label.lower()}",
        )
    return ValidationResult.ok()


def can_allocate_health(record: CharacterRecord, new_health: int,
                        config: Optional[RulesConfig] = None) -> ValidationResult:
    """Check a proposed health allocation against the shared health-energy pool."""
    return _can_allocate("Health", new_health, record.energy_points, record.level, config)


def can_allocate_energy(record: CharacterRecord, new_energy: int,
                        config: Optional[RulesConfig] = None) -> ValidationResult:
    """Check a proposed energy allocation against the shared health-energy pool."""
    return _can_allocate("Energy", new_energy, record.health_points, record.level, config)
