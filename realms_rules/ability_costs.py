"""
Ability score cost model.

Raising a score costs 1 point below 4 and 2 points from 4 up; lowering a
score refunds 1 point below 5 and 2 points from 5 up. The thresholds differ
by one because cost is keyed on the pre-increase value and refund on the
pre-decrease value, so 4 -> 5 costs 2 and 5 -> 4 refunds 2.

Score ceilings rise with level. Any score may drop to -2, but the sum of
all negative scores may not fall below -3. Both checks always run against
the current aggregate scores passed in, never a cached total.
"""

from typing import Mapping, Optional, Union
import logging

from realms_rules.config import RulesConfig, resolve_rules
from realms_rules.data_models import (
    AbilityName,
    ValidationReason,
    ValidationResult,
    normalize_abilities,
    parse_ability,
)
from realms_rules.formulas import get_max_ability

logger = logging.getLogger(__name__)


def increase_cost(current_value: int, config: Optional[RulesConfig] = None) -> int:
    """Points needed to raise a score by one from ``current_value``."""
    if current_value >= resolve_rules(config).cost_increase_threshold:
        return 2
    return 1


def decrease_refund(current_value: int, config: Optional[RulesConfig] = None) -> int:
    """Points returned when lowering a score by one from ``current_value``."""
    if current_value >= resolve_rules(config).refund_increase_threshold:
        return 2
    return 1


def negative_ability_sum(abilities: Mapping[str, int]) -> int:
    """Sum of all negative ability scores (0 or less)."""
    return sum(v for v in abilities.values() if v < 0)


def points_spent(
    abilities: Mapping[str, int],
    base_abilities: Optional[Mapping[str, int]] = None,
    config: Optional[RulesConfig] = None,
) -> int:
    """
    Total ability points spent moving every score from its base.

    Each step is priced individually, so a score raised from 3 to 5 costs
    1 + 2 rather than 2. Scores below their base give points back.
    """
    current = normalize_abilities(abilities)
    base = normalize_abilities(base_abilities)
    total = 0
    for name, value in current.items():
        base_value = base[name]
        if value > base_value:
            for step in range(base_value, value):
                total += increase_cost(step, config)
        elif value < base_value:
            for step in range(base_value, value, -1):
                total -= decrease_refund(step, config)
    return total


def can_increase(
    abilities: Mapping[str, int],
    name: Union[str, AbilityName],
    level: int,
    available_points: Optional[int] = None,
    config: Optional[RulesConfig] = None,
) -> ValidationResult:
    """
    Check whether a score may be raised by one.

    Only the level ceiling blocks an increase. When ``available_points`` is
    given and the cost exceeds it, the result is still allowed but flagged
    ``over_budget`` so the caller can warn.
    """
    ability = parse_ability(name)
    current = normalize_abilities(abilities)[ability.value]
    ceiling = get_max_ability(level, config)
    cost = increase_cost(current, config)

    if current >= ceiling:
        return ValidationResult.reject(
            ValidationReason.AT_MAX_ABILITY,
            f"Maximum ability score at level {level} is {ceiling}",
            cost=cost,
        )

    if available_points is not None and cost > available_points:
        return ValidationResult.ok(
            cost=cost,
            over_budget=True,
            message=f"Need {cost} point(s) but only have {available_points}",
        )
    return ValidationResult.ok(cost=cost)


def can_decrease(
    abilities: Mapping[str, int],
    name: Union[str, AbilityName],
    base_abilities: Optional[Mapping[str, int]] = None,
    config: Optional[RulesConfig] = None,
) -> ValidationResult:
    """Check whether a score may be lowered by one."""
    rules = resolve_rules(config)
    ability = parse_ability(name)
    current_scores = normalize_abilities(abilities)
    current = current_scores[ability.value]
    base_value = normalize_abilities(base_abilities)[ability.value]
    new_value = current - 1

    if new_value < rules.min_ability:
        return ValidationResult.reject(
            ValidationReason.BELOW_MIN_ABILITY,
            f"Cannot reduce below {rules.min_ability}",
        )

    if new_value < 0:
        after = dict(current_scores)
        after[ability.value] = new_value
        if negative_ability_sum(after) < rules.max_negative_sum:
            return ValidationResult.reject(
                ValidationReason.NEGATIVE_SUM_CAP,
                f"Sum of negative abilities cannot be less than {rules.max_negative_sum}",
            )

    if base_value > 0 and new_value < base_value:
        return ValidationResult.reject(
            ValidationReason.BELOW_BASE_ABILITY,
            f"Cannot reduce below base value of {base_value}",
        )

    return ValidationResult.ok(refund=decrease_refund(current, config))


def increase_ability(
    abilities: Mapping[str, int],
    name: Union[str, AbilityName],
    level: int,
    available_points: Optional[int] = None,
    config: Optional[RulesConfig] = None,
) -> tuple[dict[str, int], ValidationResult]:
    """Raise a score by one if allowed; returns the new scores and the check."""
    result = can_increase(abilities, name, level, available_points, config)
    scores = normalize_abilities(abilities)
    if not result.allowed:
        logger.warning(f"Increase of {name} rejected: {result.message}")
        return scores, result
    ability = parse_ability(name).value
    scores[ability] += 1
    logger.debug(f"{ability} raised to {scores[ability]} for {result.cost} point(s)")
    return scores, result


def decrease_ability(
    abilities: Mapping[str, int],
    name: Union[str, AbilityName],
    base_abilities: Optional[Mapping[str, int]] = None,
    config: Optional[RulesConfig] = None,
) -> tuple[dict[str, int], ValidationResult]:
    """Lower a score by one if allowed; returns the new scores and the check."""
    result = can_decrease(abilities, name, base_abilities, config)
    scores = normalize_abilities(abilities)
    if not result.allowed:
        logger.warning(f"Decrease of {name} rejected: {result.message}")
        return scores, result
    ability = parse_ability(name).value
    scores[ability] -= 1
    logger.debug(f"{ability} lowered to {scores[ability]}, refunding {result.refund}")
    return scores, result
