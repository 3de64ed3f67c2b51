"""
Rule constants and logging setup for the Realms rules engine.

RulesConfig holds every tunable number the formulas use. The defaults are
the published rules; a host may override any subset from its stored core
rules document via ``RulesConfig.from_dict``.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Union
import json
import logging

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@dataclass(frozen=True)
class RulesConfig:
    """Rule constants shared by every formula."""

    # Level range
    min_level: int = 1
    max_level: int = 20

    # Resource pools
    base_ability_points: int = 7
    ability_point_interval: int = 3         # +1 every 3rd level
    base_skill_points: int = 2
    skill_points_per_level: int = 3
    base_health_energy: int = 18
    health_energy_per_level: int = 12
    base_training_points: int = 22
    training_points_per_level: int = 2      # plus the archetype ability
    base_proficiency: int = 2
    proficiency_interval: int = 5           # +1 every 5th level

    # Ability scores
    min_ability: int = -2
    max_negative_sum: int = -3
    cost_increase_threshold: int = 4        # raising from 4+ costs 2
    refund_increase_threshold: int = 5      # lowering from 5+ refunds 2
    # (highest level in tier, ceiling); levels past the last tier use final_ability_ceiling
    ability_ceilings: tuple[tuple[int, int], ...] = (
        (1, 3), (3, 4), (6, 5), (9, 6), (12, 7), (15, 8),
    )
    final_ability_ceiling: int = 9

    # Skills and defenses
    defense_increase_cost: int = 2
    base_defense: int = 10
    skill_value_cap: int = 3
    base_skill_past_cap_cost: int = 3       # per step past the cap
    sub_skill_past_cap_cost: int = 2

    # Archetype milestones
    milestone_start: int = 4
    milestone_interval: int = 3

    # Dice
    crit_adjustment: int = 2
    max_dice_per_type: int = 20
    max_roll_history: int = 50
    persisted_roll_history: int = 20

    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RulesConfig":
        """
        Build a config from a partial mapping.

        Unknown keys are kept in ``extra`` and logged rather than rejected so
        that a newer rules document does not break an older engine.
        """
        known = {f.name for f in fields(cls) if f.name != "extra"}
        values: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            if key in known:
                if key == "ability_ceilings":
                    value = tuple(tuple(pair) for pair in value)
                values[key] = value
            else:
                extra[key] = value
        if extra:
            logger.warning(f"Ignoring unknown rule keys: {sorted(extra)}")
        return cls(extra=extra, **values)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "RulesConfig":
        """Load a config from a JSON document on disk."""
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        logger.info(f"Loaded rules config from {path}")
        return cls.from_dict(data)


DEFAULT_RULES = RulesConfig()


def resolve_rules(config: Optional[RulesConfig] = None) -> RulesConfig:
    """Return ``config`` or the default rules when it is None."""
    return config if config is not None else DEFAULT_RULES
