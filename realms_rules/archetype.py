"""
Archetype progression.

The archetype is never stored: it is recomputed from the two proficiency
counters on every query.

    martial == 0, power == 0  -> NONE
    martial == 0, power  > 0  -> POWER
    martial  > 0, power == 0  -> MARTIAL
    martial  > 0, power  > 0  -> MIXED

Power and Martial progress purely with level. Mixed starts from fixed base
values and grows only through the Innate/Feat choices recorded at milestone
levels (4, 7, 10, ...). Choices are edited through ``apply_milestone_choice``
and cleaned up through ``prune_choices`` after the counters or level change.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union, TYPE_CHECKING
import logging

from realms_rules.config import RulesConfig, resolve_rules
from realms_rules.data_models import (
    ArchetypeType,
    MilestoneChoice,
    ValidationReason,
)

if TYPE_CHECKING:
    from realms_rules.data_models import CharacterRecord

logger = logging.getLogger(__name__)


# Base values for the mixed archetype before milestone choices
MIXED_BASE_INNATE_THRESHOLD = 6
MIXED_BASE_INNATE_POOLS = 1
MIXED_BASE_BONUS_FEATS = 1

POWER_BASE_INNATE_THRESHOLD = 8
POWER_BASE_INNATE_POOLS = 2
MARTIAL_BASE_BONUS_FEATS = 2


# =============================================================================
# CLASSIFICATION
# =============================================================================


def classify(martial_prof: int, power_prof: int) -> ArchetypeType:
    """Derive the archetype from the two proficiency counters."""
    if martial_prof == 0 and power_prof > 0:
        return ArchetypeType.POWER
    if power_prof == 0 and martial_prof > 0:
        return ArchetypeType.MARTIAL
    if martial_prof > 0 and power_prof > 0:
        return ArchetypeType.MIXED
    return ArchetypeType.NONE


def milestone_levels(level: int, config: Optional[RulesConfig] = None) -> list[int]:
    """Milestone levels reached by ``level`` (4, 7, 10, ...)."""
    rules = resolve_rules(config)
    return list(range(rules.milestone_start, level + 1, rules.milestone_interval))


def is_milestone_level(level: int, config: Optional[RulesConfig] = None) -> bool:
    rules = resolve_rules(config)
    return (
        level >= rules.milestone_start
        and (level - rules.milestone_start) % rules.milestone_interval == 0
    )


# =============================================================================
# PER-ARCHETYPE PROGRESSION
# =============================================================================


def _milestone_bonus(level: int, config: Optional[RulesConfig] = None) -> int:
    rules = resolve_rules(config)
    if level < rules.milestone_start:
        return 0
    return (level - 1) // rules.milestone_interval


def innate_threshold(level: int, config: Optional[RulesConfig] = None) -> int:
    """Pure power innate threshold: 8, +1 at each milestone."""
    return POWER_BASE_INNATE_THRESHOLD + _milestone_bonus(level, config)


def innate_pools(level: int, config: Optional[RulesConfig] = None) -> int:
    """Pure power innate pools: 2, +1 at each milestone."""
    return POWER_BASE_INNATE_POOLS + _milestone_bonus(level, config)


def bonus_archetype_feats(level: int, config: Optional[RulesConfig] = None) -> int:
    """Pure martial bonus archetype feats: 2, +1 at each milestone."""
    return MARTIAL_BASE_BONUS_FEATS + _milestone_bonus(level, config)


def armament_proficiency(martial_prof: int) -> int:
    """Armament proficiency: 3, 8, 12, then +3 per martial rank past 2."""
    if martial_prof <= 0:
        return 3
    if martial_prof == 1:
        return 8
    if martial_prof == 2:
        return 12
    return 12 + 3 * (martial_prof - 2)


@dataclass(frozen=True)
class ArchetypeSummary:
    """Archetype progression at a level."""
    type: ArchetypeType
    innate_threshold: int = 0
    innate_pools: int = 0
    innate_energy: int = 0
    bonus_archetype_feats: int = 0
    armament_proficiency: int = 3
    available_milestones: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "innate_threshold": self.innate_threshold,
            "innate_pools": self.innate_pools,
            "innate_energy": self.innate_energy,
            "bonus_archetype_feats": self.bonus_archetype_feats,
            "armament_proficiency": self.armament_proficiency,
            "available_milestones": list(self.available_milestones),
        }


def archetype_progression(
    level: int,
    martial_prof: int,
    power_prof: int,
    choices: Optional[Mapping[int, Union[MilestoneChoice, str]]] = None,
    config: Optional[RulesConfig] = None,
) -> ArchetypeSummary:
    """
    Compute the archetype progression summary.

    Args:
        level: Character level
        martial_prof: Martial proficiency counter
        power_prof: Power proficiency counter
        choices: Milestone level -> choice; only read for the mixed archetype

    Returns:
        ArchetypeSummary for the current counters
    """
    archetype = classify(martial_prof, power_prof)
    armament = armament_proficiency(martial_prof)

    if archetype == ArchetypeType.POWER:
        threshold = innate_threshold(level, config)
        pools = innate_pools(level, config)
        return ArchetypeSummary(
            type=archetype,
            innate_threshold=threshold,
            innate_pools=pools,
            innate_energy=threshold * pools,
            armament_proficiency=armament,
        )

    if archetype == ArchetypeType.MARTIAL:
        return ArchetypeSummary(
            type=archetype,
            bonus_archetype_feats=bonus_archetype_feats(level, config),
            armament_proficiency=armament,
        )

    if archetype == ArchetypeType.MIXED:
        threshold = MIXED_BASE_INNATE_THRESHOLD
        pools = MIXED_BASE_INNATE_POOLS
        feats = MIXED_BASE_BONUS_FEATS
        milestones = milestone_levels(level, config)
        for milestone in milestones:
            choice = _coerce_choice((choices or {}).get(milestone))
            if choice == MilestoneChoice.INNATE:
                threshold += 1
                pools += 1
            elif choice == MilestoneChoice.FEAT:
                feats += 1
            # Unset milestones contribute nothing
        return ArchetypeSummary(
            type=archetype,
            innate_threshold=threshold,
            innate_pools=pools,
            innate_energy=threshold * pools,
            bonus_archetype_feats=feats,
            armament_proficiency=armament,
            available_milestones=tuple(milestones),
        )

    return ArchetypeSummary(type=archetype, armament_proficiency=armament)


# =============================================================================
# MILESTONE CHOICES
# =============================================================================


@dataclass(frozen=True)
class ChoiceResult:
    """Outcome of a milestone choice edit; ``choices`` is always a fresh dict."""
    ok: bool
    choices: dict[int, MilestoneChoice] = field(default_factory=dict)
    reason: Optional[ValidationReason] = None
    message: Optional[str] = None


def _coerce_choice(value: Any) -> Optional[MilestoneChoice]:
    if value is None or isinstance(value, MilestoneChoice):
        return value
    try:
        return MilestoneChoice(str(value).lower())
    except ValueError:
        return None


def apply_milestone_choice(
    choices: Mapping[int, MilestoneChoice],
    milestone_level: int,
    choice: Union[MilestoneChoice, str],
    martial_prof: int,
    power_prof: int,
    level: int,
    config: Optional[RulesConfig] = None,
) -> ChoiceResult:
    """
    Record an Innate/Feat choice at a milestone.

    Rejected (input untouched) unless the archetype is mixed, the milestone
    is a real milestone level not above ``level``, and the choice is valid.
    Reapplying the same choice is a no-op that still succeeds.
    """
    current = dict(choices)

    if classify(martial_prof, power_prof) != ArchetypeType.MIXED:
        return _reject(
            current,
            ValidationReason.NOT_MIXED_ARCHETYPE,
            "Archetype choices are only available for mixed archetypes",
        )
    if not is_milestone_level(milestone_level, config):
        return _reject(
            current,
            ValidationReason.INVALID_MILESTONE,
            f"Level {milestone_level} is not a valid milestone level",
        )
    if milestone_level > level:
        return _reject(
            current,
            ValidationReason.MILESTONE_ABOVE_LEVEL,
            f"Milestone {milestone_level} is above character level {level}",
        )
    parsed = _coerce_choice(choice)
    if parsed is None:
        return _reject(
            current,
            ValidationReason.INVALID_CHOICE,
            f'Invalid choice "{choice}". Must be "innate" or "feat"',
        )

    current[milestone_level] = parsed
    logger.info(f"Milestone {milestone_level} set to {parsed.value}")
    return ChoiceResult(ok=True, choices=current)


def _reject(choices: dict[int, MilestoneChoice], reason: ValidationReason,
            message: str) -> ChoiceResult:
    logger.warning(f"Milestone choice rejected: {message}")
    return ChoiceResult(ok=False, choices=choices, reason=reason, message=message)


def prune_choices(
    choices: Mapping[int, MilestoneChoice],
    level: int,
    martial_prof: int,
    power_prof: int,
    config: Optional[RulesConfig] = None,
) -> dict[int, MilestoneChoice]:
    """
    Drop choices that are no longer reachable.

    All choices go when the archetype is no longer mixed; otherwise only
    milestones above the current level are removed.
    """
    if classify(martial_prof, power_prof) != ArchetypeType.MIXED:
        if choices:
            logger.info(f"Clearing {len(choices)} archetype choice(s): archetype not mixed")
        return {}
    reachable = set(milestone_levels(level, config))
    kept = {int(k): v for k, v in choices.items() if int(k) in reachable}
    dropped = len(choices) - len(kept)
    if dropped:
        logger.info(f"Pruned {dropped} archetype choice(s) above level {level}")
    return kept


def choice_benefits() -> dict[MilestoneChoice, dict[str, Any]]:
    """Describe what each milestone option grants."""
    return {
        MilestoneChoice.INNATE: {
            "label": "Innate Power",
            "description": "+1 Innate Threshold, +1 Innate Pool",
            "benefits": ["Innate Threshold +1", "Innate Pools +1"],
        },
        MilestoneChoice.FEAT: {
            "label": "Combat Expertise",
            "description": "+1 Bonus Archetype Feat",
            "benefits": ["Archetype Feats +1"],
        },
    }


def highest_archetype_ability(record: "CharacterRecord") -> int:
    """The higher of the character's power and martial ability scores."""
    values = [
        record.abilities.get(name, 0)
        for name in (record.power_ability, record.martial_ability)
        if name
    ]
    return max(values) if values else 0
