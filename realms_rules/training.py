"""
Training point expenditure.

Training points are spent on the parts of learned powers and techniques,
on the properties of owned weapons and armor, and on Unarmed Prowess.
Within one source (powers, techniques, weapons, armor) the same part or
property appearing several times is paid for once, at the highest option
level taken in each tier. The same name under two sources is paid twice.
"""

from dataclasses import dataclass, field
from math import floor
from typing import Any
import logging

from realms_rules.data_models import Catalog, CharacterRecord, OwnedItem

logger = logging.getLogger(__name__)

WEAPON_DAMAGE_PROPERTY = "Weapon Damage"

UNARMED_PROWESS_BASE_TP = 10
UNARMED_PROWESS_UPGRADE_TP = 6
# (prowess tier, minimum character level, damage)
UNARMED_PROWESS_TIERS = (
    (1, 1, "Ability"),
    (2, 4, "1d2 + Ability"),
    (3, 8, "1d4 + Ability"),
    (4, 12, "1d6 + Ability"),
    (5, 16, "1d8 + Ability"),
)


# =============================================================================
# UNARMED PROWESS
# =============================================================================


def unarmed_prowess_cost(tier: int) -> int:
    """Training points for an Unarmed Prowess tier: 10, then +6 per tier."""
    if tier <= 0:
        return 0
    return UNARMED_PROWESS_BASE_TP + (tier - 1) * UNARMED_PROWESS_UPGRADE_TP


def max_unarmed_prowess(level: int) -> int:
    """Highest Unarmed Prowess tier open to a character of ``level``."""
    return max((tier for tier, min_level, _ in UNARMED_PROWESS_TIERS if min_level <= level), default=0)


# =============================================================================
# PART AND PROPERTY PROFICIENCIES
# =============================================================================


@dataclass
class ProficiencyEntry:
    """One deduplicated part or property the character is trained in."""
    name: str
    source: str                                   # "power", "technique", "weapon" or "armor"
    base_tp: float = 0.0
    option_tp: tuple[float, float, float] = (0.0, 0.0, 0.0)
    option_levels: list[int] = field(default_factory=lambda: [0, 0, 0])

    @property
    def cost(self) -> int:
        """base + sum(option cost * option level), floored."""
        raw = self.base_tp + sum(
            tp * lvl for tp, lvl in zip(self.option_tp, self.option_levels)
        )
        return floor(raw)

    def merge_levels(self, levels: tuple[int, int, int]) -> None:
        self.option_levels = [max(a, b) for a, b in zip(self.option_levels, levels)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "source": self.source,
            "base_tp": self.base_tp,
            "option_tp": list(self.option_tp),
            "option_levels": list(self.option_levels),
            "cost": self.cost,
        }


@dataclass(frozen=True)
class TrainingExpenditure:
    """All training entries with a positive cost, plus Unarmed Prowess."""
    entries: tuple[ProficiencyEntry, ...] = ()
    unarmed_prowess_tp: int = 0

    @property
    def total(self) -> int:
        return self.unarmed_prowess_tp + sum(e.cost for e in self.entries)

    def by_source(self, source: str) -> list[ProficiencyEntry]:
        return [e for e in self.entries if e.source == source]


def _add(entries: dict[tuple[str, str], ProficiencyEntry], entry: ProficiencyEntry,
         levels: tuple[int, int, int]) -> None:
    key = (entry.source, entry.name)
    existing = entries.get(key)
    if existing is None:
        entry.merge_levels(levels)
        entries[key] = entry
    else:
        existing.merge_levels(levels)


def _item_property_name(item: OwnedItem, name: str) -> str:
    # Weapon damage of different types are separate trainings
    if name == WEAPON_DAMAGE_PROPERTY and item.damage_types:
        return f"{name} ({', '.join(item.damage_types)})"
    return name


def extract_proficiencies(record: CharacterRecord, catalog: Catalog) -> TrainingExpenditure:
    """
    Collect the training entries for a character.

    Args:
        record: The character
        catalog: Part and property tables used for costs

    Returns:
        TrainingExpenditure; entries whose cost is 0 or less are left out
    """
    entries: dict[tuple[str, str], ProficiencyEntry] = {}

    for source, learned in (("power", record.powers), ("technique", record.techniques)):
        for ability in learned:
            for ref in ability.parts:
                part = catalog.find_part(ref, source) or catalog.find_part(ref)
                if part is None:
                    logger.warning(f"Unknown {source} part {ref.name or ref.ref_id!r} on {ability.name}")
                    continue
                _add(
                    entries,
                    ProficiencyEntry(
                        name=part.name,
                        source=source,
                        base_tp=part.base_tp,
                        option_tp=part.option_tp,
                    ),
                    ref.option_levels,
                )

    for source, items in (("weapon", record.weapons), ("armor", record.armor)):
        for item in items:
            for ref in item.properties:
                prop = catalog.find_property(ref)
                if prop is None:
                    logger.warning(f"Unknown property {ref.name or ref.ref_id!r} on {item.name}")
                    continue
                # Properties only have a first option tier
                _add(
                    entries,
                    ProficiencyEntry(
                        name=_item_property_name(item, prop.name),
                        source=source,
                        base_tp=prop.base_tp,
                        option_tp=(prop.op_1_tp, 0.0, 0.0),
                    ),
                    (ref.option_levels[0], 0, 0),
                )

    kept = tuple(e for e in entries.values() if e.cost > 0)
    logger.debug(f"Training entries: {len(kept)} of {len(entries)} with positive cost")
    return TrainingExpenditure(
        entries=kept,
        unarmed_prowess_tp=unarmed_prowess_cost(record.unarmed_prowess),
    )


def training_points_spent(record: CharacterRecord, catalog: Catalog) -> int:
    return extract_proficiencies(record, catalog).total
