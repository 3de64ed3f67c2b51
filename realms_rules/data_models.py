"""
Shared data structures for the Realms rules engine.

The engine holds no durable state: every call receives a CharacterRecord
(normalized once from the stored document) plus read-only Catalog tables,
and returns new values. Union fields in the stored document (a part, feat
or power may be a bare name or a full record) are resolved here so the
rules modules never branch on representation.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================


class UnknownAbilityError(ValueError):
    """Raised when an ability name is not one of the six core abilities."""


class UnknownDefenseError(ValueError):
    """Raised when a defense name is not one of the six defenses."""


class InvalidLevelError(ValueError):
    """Raised when a character level is outside the supported range."""


class DiceNotationError(ValueError):
    """Raised when a damage expression does not contain NdM notation."""


class UnknownDieTypeError(ValueError):
    """Raised when a die type is not one of d4, d6, d8, d10, d12, d20."""


# =============================================================================
# ENUMS
# =============================================================================


class AbilityName(str, Enum):
    """The six core ability scores."""
    STRENGTH = "strength"
    VITALITY = "vitality"
    AGILITY = "agility"
    ACUITY = "acuity"
    INTELLIGENCE = "intelligence"
    CHARISMA = "charisma"


class DefenseName(str, Enum):
    """Defenses, each paired with one ability."""
    MIGHT = "might"
    FORTITUDE = "fortitude"
    REFLEX = "reflex"
    DISCERNMENT = "discernment"
    MENTAL_FORTITUDE = "mental_fortitude"
    RESOLVE = "resolve"


DEFENSE_ABILITY: dict[DefenseName, AbilityName] = {
    DefenseName.MIGHT: AbilityName.STRENGTH,
    DefenseName.FORTITUDE: AbilityName.VITALITY,
    DefenseName.REFLEX: AbilityName.AGILITY,
    DefenseName.DISCERNMENT: AbilityName.ACUITY,
    DefenseName.MENTAL_FORTITUDE: AbilityName.INTELLIGENCE,
    DefenseName.RESOLVE: AbilityName.CHARISMA,
}

# Stored documents use camelCase for this one defense
_DEFENSE_ALIASES = {"mentalfortitude": DefenseName.MENTAL_FORTITUDE}


class ArchetypeType(str, Enum):
    """Archetype derived from the martial/power proficiency counters."""
    NONE = "none"
    POWER = "power"
    MARTIAL = "martial"
    MIXED = "mixed"


class MilestoneChoice(str, Enum):
    """Choice a mixed archetype makes at each milestone level."""
    INNATE = "innate"   # +1 innate threshold, +1 innate pool
    FEAT = "feat"       # +1 bonus archetype feat


class BudgetState(str, Enum):
    """UI-facing classification of a resource pool's remaining points."""
    OVER_BUDGET = "over-budget"
    HAS_POINTS = "has-points"
    NO_POINTS = "no-points"


class ValidationReason(str, Enum):
    """Why a soft validation rejected (or flagged) an action."""
    AT_MAX_ABILITY = "at_max_ability"
    BELOW_MIN_ABILITY = "below_min_ability"
    NEGATIVE_SUM_CAP = "negative_sum_cap"
    BELOW_BASE_ABILITY = "below_base_ability"
    INSUFFICIENT_POINTS = "insufficient_points"
    NOT_MIXED_ARCHETYPE = "not_mixed_archetype"
    INVALID_MILESTONE = "invalid_milestone"
    MILESTONE_ABOVE_LEVEL = "milestone_above_level"
    INVALID_CHOICE = "invalid_choice"
    BASE_SKILL_NOT_PROFICIENT = "base_skill_not_proficient"
    SPECIES_SKILL_LOCKED = "species_skill_locked"
    SKILL_AT_ZERO = "skill_at_zero"
    UNKNOWN_SKILL = "unknown_skill"
    DEFENSE_AT_MAX = "defense_at_max"
    DEFENSE_AT_ZERO = "defense_at_zero"
    NEGATIVE_ALLOCATION = "negative_allocation"


def parse_ability(name: Union[str, AbilityName]) -> AbilityName:
    """
    Resolve an ability name (enum or case-insensitive string).

    Raises:
        UnknownAbilityError: The name is not a core ability
    """
    if isinstance(name, AbilityName):
        return name
    try:
        return AbilityName(str(name).strip().lower())
    except ValueError:
        raise UnknownAbilityError(f"Unknown ability: {name!r}") from None


def parse_defense(name: Union[str, DefenseName]) -> DefenseName:
    """
    Resolve a defense name (enum, snake_case or camelCase string).

    Raises:
        UnknownDefenseError: The name is not a defense
    """
    if isinstance(name, DefenseName):
        return name
    key = str(name).strip().lower()
    if key in _DEFENSE_ALIASES:
        return _DEFENSE_ALIASES[key]
    try:
        return DefenseName(key)
    except ValueError:
        raise UnknownDefenseError(f"Unknown defense: {name!r}") from None


def normalize_abilities(values: Optional[Mapping[str, int]]) -> dict[str, int]:
    """
    Build a complete ability mapping keyed by ability value strings.

    Missing abilities default to 0; unknown keys fail loudly.
    """
    result = {ability.value: 0 for ability in AbilityName}
    for key, value in (values or {}).items():
        result[parse_ability(key).value] = int(value or 0)
    return result


def normalize_defenses(values: Optional[Mapping[str, int]]) -> dict[str, int]:
    """Build a complete defense allocation mapping keyed by defense value strings."""
    result = {defense.value: 0 for defense in DefenseName}
    for key, value in (values or {}).items():
        result[parse_defense(key).value] = int(value or 0)
    return result


# =============================================================================
# SOFT VALIDATION RESULTS
# =============================================================================


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of a soft rule check.

    Domain-rule violations are reported here rather than raised; the caller
    decides whether to block the action or merely warn. ``over_budget`` is
    informational and never makes ``allowed`` false.
    """
    allowed: bool
    reason: Optional[ValidationReason] = None
    message: Optional[str] = None
    cost: int = 0
    refund: int = 0
    over_budget: bool = False

    @classmethod
    def ok(cls, cost: int = 0, refund: int = 0, over_budget: bool = False,
           message: Optional[str] = None) -> "ValidationResult":
        reason = ValidationReason.INSUFFICIENT_POINTS if over_budget else None
        return cls(True, reason, message, cost, refund, over_budget)

    @classmethod
    def reject(cls, reason: ValidationReason, message: str,
               cost: int = 0) -> "ValidationResult":
        return cls(False, reason, message, cost, 0, False)

    def __bool__(self) -> bool:
        return self.allowed


# =============================================================================
# CATALOG REFERENCES
# =============================================================================


RefId = Union[int, str]


@dataclass(frozen=True)
class CatalogRef:
    """
    Normalized pointer from a character record into a catalog table.

    The stored document may hold a bare name, an ``{id, name, op_N_lvl}``
    object, or a full catalog record; all three collapse to this shape.
    """
    name: str = ""
    ref_id: Optional[RefId] = None
    option_levels: tuple[int, int, int] = (0, 0, 0)

    @classmethod
    def from_raw(cls, raw: Any) -> "CatalogRef":
        if isinstance(raw, CatalogRef):
            return raw
        if isinstance(raw, str):
            return cls(name=raw)
        if isinstance(raw, Mapping):
            return cls(
                name=str(raw.get("name") or ""),
                ref_id=raw.get("id"),
                option_levels=(
                    int(raw.get("op_1_lvl") or 0),
                    int(raw.get("op_2_lvl") or 0),
                    int(raw.get("op_3_lvl") or 0),
                ),
            )
        raise TypeError(f"Cannot build a catalog reference from {type(raw).__name__}")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.ref_id is not None:
            data["id"] = self.ref_id
        for index, level in enumerate(self.option_levels, start=1):
            if level:
                data[f"op_{index}_lvl"] = level
        return data


def find_by_id_or_name(table: Iterable[Any], ref: Any) -> Optional[Any]:
    """
    Find a catalog entry by id first, then by name.

    ``ref`` may be a CatalogRef, a raw id (int or numeric string) or a name.
    Entries must expose ``entry_id`` and ``name`` attributes.
    """
    entries = list(table)
    if ref is None:
        return None
    if not isinstance(ref, CatalogRef):
        if isinstance(ref, int):
            ref = CatalogRef(ref_id=ref)
        elif isinstance(ref, str) and ref.strip().isdigit():
            ref = CatalogRef(name=ref, ref_id=int(ref))
        else:
            ref = CatalogRef.from_raw(ref)

    if ref.ref_id is not None:
        for entry in entries:
            if entry.entry_id == ref.ref_id or str(entry.entry_id) == str(ref.ref_id):
                return entry
    if ref.name:
        for entry in entries:
            if entry.name == ref.name:
                return entry
    return None


# =============================================================================
# CATALOG TABLES
# =============================================================================


@dataclass(frozen=True)
class PartDefinition:
    """A power or technique part with up to three leveled options."""
    entry_id: Optional[RefId]
    name: str
    kind: str = "power"                 # "power" or "technique"
    description: str = ""
    base_tp: float = 0.0
    option_tp: tuple[float, float, float] = (0.0, 0.0, 0.0)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PartDefinition":
        return cls(
            entry_id=data.get("id"),
            name=str(data.get("name") or ""),
            kind=str(data.get("type") or data.get("kind") or "power").lower(),
            description=str(data.get("description") or ""),
            base_tp=float(data.get("base_tp") or 0),
            option_tp=(
                float(data.get("op_1_tp") or 0),
                float(data.get("op_2_tp") or 0),
                float(data.get("op_3_tp") or 0),
            ),
        )


@dataclass(frozen=True)
class PropertyDefinition:
    """An item property; properties carry a single leveled option."""
    entry_id: Optional[RefId]
    name: str
    description: str = ""
    base_tp: float = 0.0
    op_1_tp: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PropertyDefinition":
        return cls(
            entry_id=data.get("id"),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            base_tp=float(data.get("base_tp") or 0),
            op_1_tp=float(data.get("op_1_tp") or 0),
        )


@dataclass(frozen=True)
class FeatDefinition:
    """A feat; ``feat_lvl`` is its slot cost, ``char_feat`` marks character feats."""
    entry_id: Optional[RefId]
    name: str
    feat_lvl: int = 1
    char_feat: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FeatDefinition":
        try:
            feat_lvl = int(data.get("feat_lvl") or 1)
        except (TypeError, ValueError):
            feat_lvl = 1
        return cls(
            entry_id=data.get("id"),
            name=str(data.get("name") or ""),
            feat_lvl=feat_lvl or 1,
            char_feat=bool(data.get("char_feat")),
        )


@dataclass(frozen=True)
class SkillDefinition:
    """A skill; sub-skills name their base skill."""
    entry_id: Optional[RefId]
    name: str
    abilities: tuple[str, ...] = ()
    base_skill: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SkillDefinition":
        raw_abilities = data.get("ability") or data.get("abilities") or ()
        if isinstance(raw_abilities, str):
            raw_abilities = [a.strip() for a in raw_abilities.split(",") if a.strip()]
        return cls(
            entry_id=data.get("id"),
            name=str(data.get("name") or ""),
            abilities=tuple(str(a).lower() for a in raw_abilities),
            base_skill=data.get("base_skill") or data.get("baseSkill") or None,
        )


@dataclass(frozen=True)
class SpeciesDefinition:
    """A species; its skills are proficient for free."""
    entry_id: Optional[RefId]
    name: str
    skills: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpeciesDefinition":
        return cls(
            entry_id=data.get("id"),
            name=str(data.get("name") or ""),
            skills=tuple(str(s) for s in (data.get("skills") or ())),
        )


@dataclass
class Catalog:
    """
    Read-only game content tables, loaded by an external collaborator.

    The engine only looks entries up; it never fetches or caches them.
    """
    parts: list[PartDefinition] = field(default_factory=list)
    properties: list[PropertyDefinition] = field(default_factory=list)
    feats: list[FeatDefinition] = field(default_factory=list)
    skills: list[SkillDefinition] = field(default_factory=list)
    species: list[SpeciesDefinition] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Catalog":
        """Build from plain tables, each a list of records or an id-keyed mapping."""

        def rows(key: str) -> list[Mapping[str, Any]]:
            raw = data.get(key) or []
            if isinstance(raw, Mapping):
                return [{"id": k, **v} if "id" not in v else v for k, v in raw.items()]
            return list(raw)

        return cls(
            parts=[PartDefinition.from_dict(r) for r in rows("parts")],
            properties=[PropertyDefinition.from_dict(r) for r in rows("properties")],
            feats=[FeatDefinition.from_dict(r) for r in rows("feats")],
            skills=[SkillDefinition.from_dict(r) for r in rows("skills")],
            species=[SpeciesDefinition.from_dict(r) for r in rows("species")],
        )

    def find_part(self, ref: Any, kind: Optional[str] = None) -> Optional[PartDefinition]:
        table = self.parts if kind is None else [p for p in self.parts if p.kind == kind]
        return find_by_id_or_name(table, ref)

    def find_property(self, ref: Any) -> Optional[PropertyDefinition]:
        return find_by_id_or_name(self.properties, ref)

    def find_feat(self, ref: Any) -> Optional[FeatDefinition]:
        return find_by_id_or_name(self.feats, ref)

    def find_skill(self, ref: Any) -> Optional[SkillDefinition]:
        return find_by_id_or_name(self.skills, ref)

    def find_species(self, ref: Any) -> Optional[SpeciesDefinition]:
        return find_by_id_or_name(self.species, ref)


# =============================================================================
# CHARACTER RECORD
# =============================================================================


@dataclass(frozen=True)
class SkillEntry:
    """A skill the character has added to their sheet."""
    skill_id: str
    name: str
    prof: bool = False
    value: int = 0
    base_skill: Optional[str] = None    # Base skill name for sub-skills

    @property
    def is_sub_skill(self) -> bool:
        return bool(self.base_skill)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SkillEntry":
        name = str(data.get("name") or "")
        return cls(
            skill_id=str(data.get("id") or name),
            name=name,
            prof=bool(data.get("prof")),
            value=int(data.get("skill_val") or data.get("value") or 0),
            base_skill=data.get("baseSkill") or data.get("base_skill") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.skill_id,
            "name": self.name,
            "prof": self.prof,
            "skill_val": self.value,
        }
        if self.base_skill:
            data["baseSkill"] = self.base_skill
        return data


@dataclass(frozen=True)
class LearnedAbility:
    """A power or technique the character knows, with its configured parts."""
    name: str
    parts: tuple[CatalogRef, ...] = ()

    @classmethod
    def from_raw(cls, raw: Any, library: Optional[Mapping[str, Any]] = None) -> "LearnedAbility":
        if isinstance(raw, LearnedAbility):
            return raw
        if isinstance(raw, str):
            full = (library or {}).get(raw)
            if full is None:
                return cls(name=raw)
            raw = full
        return cls(
            name=str(raw.get("name") or ""),
            parts=tuple(CatalogRef.from_raw(p) for p in (raw.get("parts") or ())),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "parts": [p.to_dict() for p in self.parts]}


@dataclass(frozen=True)
class OwnedItem:
    """A weapon or armor the character owns, with its item properties."""
    name: str
    properties: tuple[CatalogRef, ...] = ()
    damage_types: tuple[str, ...] = ()

    @classmethod
    def from_raw(cls, raw: Any, library: Optional[Mapping[str, Any]] = None) -> "OwnedItem":
        if isinstance(raw, OwnedItem):
            return raw
        if isinstance(raw, str):
            full = (library or {}).get(raw)
            if full is None:
                return cls(name=raw)
            raw = full
        damage = raw.get("damage") or ()
        damage_types = tuple(
            str(d.get("type")) for d in damage
            if isinstance(d, Mapping) and d.get("type") and d.get("type") != "none"
        )
        return cls(
            name=str(raw.get("name") or ""),
            properties=tuple(CatalogRef.from_raw(p) for p in (raw.get("properties") or ())),
            damage_types=damage_types,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "properties": [p.to_dict() for p in self.properties],
            "damage": [{"type": t} for t in self.damage_types],
        }


@dataclass(frozen=True)
class FeatEntry:
    """A feat on the sheet, with its usage counter."""
    ref: CatalogRef
    current_uses: Optional[int] = None

    @property
    def name(self) -> str:
        return self.ref.name

    @classmethod
    def from_raw(cls, raw: Any) -> "FeatEntry":
        if isinstance(raw, FeatEntry):
            return raw
        uses = raw.get("currentUses") if isinstance(raw, Mapping) else None
        return cls(ref=CatalogRef.from_raw(raw), current_uses=uses)

    def to_dict(self) -> dict[str, Any]:
        data = self.ref.to_dict()
        if self.current_uses is not None:
            data["currentUses"] = self.current_uses
        return data


def _parse_choices(raw: Optional[Mapping[Any, Any]]) -> dict[int, MilestoneChoice]:
    choices: dict[int, MilestoneChoice] = {}
    for key, value in (raw or {}).items():
        try:
            choices[int(key)] = MilestoneChoice(str(value).lower())
        except ValueError:
            logger.warning(f"Dropping unreadable archetype choice {key!r}: {value!r}")
    return choices


@dataclass(frozen=True)
class CharacterRecord:
    """
    Normalized character document consumed by every rules module.

    Records are immutable; mutations go through ``with_changes`` which
    returns a new record.
    """
    level: int = 1
    abilities: dict[str, int] = field(default_factory=lambda: normalize_abilities(None))
    base_abilities: dict[str, int] = field(default_factory=lambda: normalize_abilities(None))
    defense_allocations: dict[str, int] = field(default_factory=lambda: normalize_defenses(None))
    martial_prof: int = 0
    power_prof: int = 0
    archetype_choices: dict[int, MilestoneChoice] = field(default_factory=dict)
    power_ability: Optional[str] = None
    martial_ability: Optional[str] = None
    species: Optional[str] = None
    skills: tuple[SkillEntry, ...] = ()
    powers: tuple[LearnedAbility, ...] = ()
    techniques: tuple[LearnedAbility, ...] = ()
    weapons: tuple[OwnedItem, ...] = ()
    armor: tuple[OwnedItem, ...] = ()
    feats: tuple[FeatEntry, ...] = ()
    health_points: int = 0
    energy_points: int = 0
    unarmed_prowess: int = 0               # prowess tier, 0 = untrained

    def __post_init__(self):
        object.__setattr__(self, "abilities", normalize_abilities(self.abilities))
        object.__setattr__(self, "base_abilities", normalize_abilities(self.base_abilities))
        object.__setattr__(
            self, "defense_allocations", normalize_defenses(self.defense_allocations)
        )
        for attr in ("power_ability", "martial_ability"):
            value = getattr(self, attr)
            if value:
                object.__setattr__(self, attr, parse_ability(value).value)

    def with_changes(self, **changes: Any) -> "CharacterRecord":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        library: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> "CharacterRecord":
        """
        Normalize a stored character document.

        Args:
            data: The stored document
            library: Optional name-keyed full records for powers, techniques
                and items referenced by bare name

        Returns:
            A CharacterRecord with all union fields resolved
        """
        archetype = data.get("archetype") or {}
        energy = data.get("health_energy_points") or {}
        return cls(
            level=int(data.get("level") or 1),
            abilities=data.get("abilities") or {},
            base_abilities=data.get("baseAbilities") or data.get("ancestryAbilities") or {},
            defense_allocations=data.get("defenseVals") or data.get("defenseSkills") or {},
            martial_prof=int(data.get("mart_prof") or 0),
            power_prof=int(data.get("pow_prof") or 0),
            archetype_choices=_parse_choices(data.get("archetypeChoices")),
            power_ability=data.get("pow_abil") or archetype.get("pow_abil") or None,
            martial_ability=data.get("mart_abil") or archetype.get("mart_abil") or None,
            species=data.get("species") or None,
            skills=tuple(SkillEntry.from_dict(s) for s in (data.get("skills") or ())),
            powers=tuple(LearnedAbility.from_raw(p, library) for p in (data.get("powers") or ())),
            techniques=tuple(
                LearnedAbility.from_raw(t, library) for t in (data.get("techniques") or ())
            ),
            weapons=tuple(OwnedItem.from_raw(w, library) for w in (data.get("weapons") or ())),
            armor=tuple(OwnedItem.from_raw(a, library) for a in (data.get("armor") or ())),
            feats=tuple(FeatEntry.from_raw(f) for f in (data.get("feats") or ())),
            health_points=int(data.get("healthPoints") or energy.get("health") or 0),
            energy_points=int(data.get("energyPoints") or energy.get("energy") or 0),
            unarmed_prowess=int(data.get("unarmedProwess") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the stored document shape."""
        return {
            "level": self.level,
            "abilities": dict(self.abilities),
            "baseAbilities": dict(self.base_abilities),
            "defenseVals": dict(self.defense_allocations),
            "mart_prof": self.martial_prof,
            "pow_prof": self.power_prof,
            "archetypeChoices": {str(k): v.value for k, v in self.archetype_choices.items()},
            "pow_abil": self.power_ability,
            "mart_abil": self.martial_ability,
            "species": self.species,
            "skills": [s.to_dict() for s in self.skills],
            "powers": [p.to_dict() for p in self.powers],
            "techniques": [t.to_dict() for t in self.techniques],
            "weapons": [w.to_dict() for w in self.weapons],
            "armor": [a.to_dict() for a in self.armor],
            "feats": [f.to_dict() for f in self.feats],
            "healthPoints": self.health_points,
            "energyPoints": self.energy_points,
            "unarmedProwess": self.unarmed_prowess,
        }
