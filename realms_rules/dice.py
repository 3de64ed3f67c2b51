"""
Dice rolling for the character sheet.

All randomness goes through a DiceRollEngine so tests can inject a seeded
``random.Random`` (or any object with ``randint``). Every roll draws all of
its dice before the RollEntry is built, and entries are immutable once
logged. The log is newest first and bounded.

Critical rule: a roll containing exactly one d20 gets +2 on a natural 20
and -2 on a natural 1. Pools with two or more d20s and damage rolls never
crit.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Union
import itertools
import logging
import random
import re

from realms_rules.config import RulesConfig, resolve_rules
from realms_rules.data_models import DiceNotationError, UnknownDieTypeError

logger = logging.getLogger(__name__)


# =============================================================================
# DIE TYPES AND POOLS
# =============================================================================


class DieType(str, Enum):
    """Die types available in the pool builder."""
    D4 = "d4"
    D6 = "d6"
    D8 = "d8"
    D10 = "d10"
    D12 = "d12"
    D20 = "d20"

    @property
    def sides(self) -> int:
        return int(self.value[1:])

    @classmethod
    def parse(cls, value: Union[str, "DieType"]) -> "DieType":
        """
        Raises:
            UnknownDieTypeError: Not one of d4, d6, d8, d10, d12, d20
        """
        if isinstance(value, DieType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownDieTypeError(f"Unknown die type: {value!r}") from None


class RollType(str, Enum):
    """Classification tag of a logged roll."""
    ATTACK = "attack"
    DAMAGE = "damage"
    SKILL = "skill"
    ABILITY = "ability"
    DEFENSE = "defense"
    CUSTOM = "custom"


@dataclass
class DicePool:
    """Counts per die type plus a flat modifier, as built up in the UI."""
    counts: dict[DieType, int] = field(default_factory=lambda: {d: 0 for d in DieType})
    modifier: int = 0
    max_per_type: int = 20

    def __post_init__(self):
        counts = {d: 0 for d in DieType}
        for die, count in self.counts.items():
            counts[DieType.parse(die)] = max(0, min(int(count), self.max_per_type))
        self.counts = counts

    def increment(self, die: Union[str, DieType]) -> bool:
        """Add one die; returns False when already at the per-type ceiling."""
        die = DieType.parse(die)
        if self.counts[die] >= self.max_per_type:
            return False
        self.counts[die] += 1
        return True

    def decrement(self, die: Union[str, DieType]) -> bool:
        """Remove one die; returns False when there are none."""
        die = DieType.parse(die)
        if self.counts[die] <= 0:
            return False
        self.counts[die] -= 1
        return True

    def increment_modifier(self, amount: int = 1) -> None:
        self.modifier += amount

    def decrement_modifier(self, amount: int = 1) -> None:
        self.modifier -= amount

    def clear(self) -> None:
        self.counts = {d: 0 for d in DieType}
        self.modifier = 0

    @property
    def total_dice(self) -> int:
        return sum(self.counts.values())

    def is_empty(self) -> bool:
        return self.total_dice == 0

    @property
    def notation(self) -> str:
        """Human-readable pool, e.g. '2d6 + 1d20 + 3'."""
        parts = [f"{count}{die.value}" for die, count in self.counts.items() if count]
        text = " + ".join(parts)
        if self.modifier > 0:
            text += f" + {self.modifier}"
        elif self.modifier < 0:
            text += f" - {abs(self.modifier)}"
        return text


# =============================================================================
# ROLL RESULTS
# =============================================================================


@dataclass(frozen=True)
class DieResult:
    """One die in a roll, flagged for rendering."""
    die_type: str
    value: int
    is_max: bool = False
    is_min: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.die_type,
            "value": self.value,
            "isMax": self.is_max,
            "isMin": self.is_min,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DieResult":
        return cls(
            die_type=str(data["type"]),
            value=int(data["value"]),
            is_max=bool(data.get("isMax")),
            is_min=bool(data.get("isMin")),
        )


@dataclass(frozen=True)
class RollEntry:
    """Immutable record of a completed roll."""
    id: str
    roll_type: RollType
    title: str
    dice: tuple[DieResult, ...]
    modifier: int
    total: int
    is_crit: bool = False
    is_crit_fail: bool = False
    crit_message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def dice_total(self) -> int:
        return sum(d.value for d in self.dice)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict for mirroring."""
        return {
            "id": self.id,
            "type": self.roll_type.value,
            "title": self.title,
            "dice": [d.to_dict() for d in self.dice],
            "modifier": self.modifier,
            "total": self.total,
            "isCrit": self.is_crit,
            "isCritFail": self.is_crit_fail,
            "critMessage": self.crit_message,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RollEntry":
        """Reconstruct from a dict produced by ``to_dict``."""
        return cls(
            id=str(data["id"]),
            roll_type=RollType(data["type"]),
            title=str(data.get("title", "")),
            dice=tuple(DieResult.from_dict(d) for d in data.get("dice", [])),
            modifier=int(data.get("modifier", 0)),
            total=int(data["total"]),
            is_crit=bool(data.get("isCrit")),
            is_crit_fail=bool(data.get("isCritFail")),
            crit_message=data.get("critMessage"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )

    def __str__(self) -> str:
        values = [d.value for d in self.dice]
        text = f"{self.title}: {values}"
        if self.modifier > 0:
            text += f" + {self.modifier}"
        elif self.modifier < 0:
            text += f" - {abs(self.modifier)}"
        text += f" = {self.total}"
        if self.crit_message:
            text += f" ({self.crit_message})"
        return text


# =============================================================================
# ROLL LOG
# =============================================================================


RollListener = Callable[[RollEntry], None]


class RollLog:
    """Newest-first, bounded history of rolls for one session."""

    def __init__(self, max_history: int = 50):
        self.max_history = max_history
        self._entries: list[RollEntry] = []
        self._listeners: list[RollListener] = []

    def add(self, entry: RollEntry) -> None:
        self._entries.insert(0, entry)
        del self._entries[self.max_history:]
        for listener in list(self._listeners):
            listener(entry)

    @property
    def entries(self) -> list[RollEntry]:
        return list(self._entries)

    @property
    def latest(self) -> Optional[RollEntry]:
        return self._entries[0] if self._entries else None

    def recent(self, count: int = 20) -> list[RollEntry]:
        """The newest ``count`` entries, e.g. for persisting a session slice."""
        return self._entries[:count]

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Roll log cleared")

    def subscribe(self, listener: RollListener) -> Callable[[], None]:
        """Register a callback for new rolls; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))


# =============================================================================
# DAMAGE NOTATION
# =============================================================================


DAMAGE_PATTERN = re.compile(r"(\d+)d(\d+)([+-]\d+)?(?:\s+([a-zA-Z]+))?")


@dataclass(frozen=True)
class DamageExpression:
    count: int
    sides: int
    modifier: int = 0
    damage_type: Optional[str] = None


def parse_damage_expression(text: str) -> DamageExpression:
    """
    Parse 'NdM[+/-K][ type]' notation, e.g. '2d6+3 fire' or '1d8'.

    Raises:
        DiceNotationError: No NdM notation found, or a die with no sides
    """
    if not isinstance(text, str):
        raise DiceNotationError(f"Damage expression must be a string, got {type(text).__name__}")
    match = DAMAGE_PATTERN.search(text)
    if not match:
        raise DiceNotationError(f"No dice notation in {text!r}")
    count, sides, modifier, damage_type = match.groups()
    if int(sides) < 1:
        raise DiceNotationError(f"Die must have at least one side: {text!r}")
    return DamageExpression(
        count=int(count),
        sides=int(sides),
        modifier=int(modifier) if modifier else 0,
        damage_type=damage_type,
    )


# =============================================================================
# ENGINE
# =============================================================================


class DiceRollEngine:
    """
    Executes rolls and appends them to a RollLog.

    Args:
        rng: Source of randomness exposing ``randint(a, b)``; defaults to a
            fresh ``random.Random``
        max_history: Log size; defaults to the rules config
        config: Rule overrides (crit adjustment, pool ceiling, history)
    """

    def __init__(self, rng: Optional[Any] = None, max_history: Optional[int] = None,
                 config: Optional[RulesConfig] = None):
        self.rules = resolve_rules(config)
        self.rng = rng if rng is not None else random.Random()
        self.log = RollLog(max_history or self.rules.max_roll_history)
        self._counter = itertools.count(1)

    def new_pool(self) -> DicePool:
        return DicePool(max_per_type=self.rules.max_dice_per_type)

    def _next_id(self) -> str:
        millis = int(datetime.now().timestamp() * 1000)
        return f"roll-{millis}-{next(self._counter)}"

    def _draw(self, label: str, sides: int) -> DieResult:
        value = self.rng.randint(1, sides)
        return DieResult(die_type=label, value=value, is_max=value == sides, is_min=value == 1)

    def _crit(self, dice: list[DieResult]) -> tuple[int, bool, bool, Optional[str]]:
        d20s = [d for d in dice if d.die_type == DieType.D20.value]
        if len(d20s) != 1:
            return 0, False, False, None
        adjust = self.rules.crit_adjustment
        if d20s[0].value == 20:
            return adjust, True, False, f"Natural 20! +{adjust} to the total!"
        if d20s[0].value == 1:
            return -adjust, False, True, f"Natural 1! -{adjust} from the total!"
        return 0, False, False, None

    def _record(self, roll_type: RollType, title: str, dice: list[DieResult],
                modifier: int, apply_crit: bool) -> RollEntry:
        adjust, is_crit, is_crit_fail, message = (
            self._crit(dice) if apply_crit else (0, False, False, None)
        )
        entry = RollEntry(
            id=self._next_id(),
            roll_type=roll_type,
            title=title,
            dice=tuple(dice),
            modifier=modifier,
            total=sum(d.value for d in dice) + modifier + adjust,
            is_crit=is_crit,
            is_crit_fail=is_crit_fail,
            crit_message=message,
        )
        self.log.add(entry)
        logger.debug(f"Rolled {entry}")
        return entry

    def roll_pool(self, pool: DicePool, title: str = "Custom Roll",
                  roll_type: RollType = RollType.CUSTOM) -> Optional[RollEntry]:
        """
        Roll every die in the pool.

        Returns:
            The logged RollEntry, or None for an empty pool (nothing logged)
        """
        if pool.is_empty():
            return None
        dice = [
            self._draw(die.value, die.sides)
            for die, count in pool.counts.items()
            for _ in range(count)
        ]
        return self._record(roll_type, title, dice, pool.modifier, apply_crit=True)

    def roll_check(self, roll_type: Union[str, RollType], title: str, bonus: int = 0) -> RollEntry:
        """Single d20 check (ability, defense, skill or attack) plus a bonus."""
        roll_type = RollType(roll_type)
        dice = [self._draw(DieType.D20.value, DieType.D20.sides)]
        return self._record(roll_type, title, dice, bonus, apply_crit=True)

    def roll_ability(self, ability_name: str, bonus: int = 0) -> RollEntry:
        return self.roll_check(RollType.ABILITY, f"{ability_name.capitalize()} Check", bonus)

    def roll_defense(self, defense_name: str, bonus: int = 0) -> RollEntry:
        return self.roll_check(RollType.DEFENSE, f"{defense_name} Save", bonus)

    def roll_skill(self, skill_name: str, bonus: int = 0) -> RollEntry:
        return self.roll_check(RollType.SKILL, skill_name, bonus)

    def roll_attack(self, weapon_name: str, attack_bonus: int = 0) -> RollEntry:
        return self.roll_check(RollType.ATTACK, f"{weapon_name} Attack", attack_bonus)

    def roll_damage(self, expression: str, bonus: int = 0) -> RollEntry:
        """
        Roll a damage expression such as '2d6+3 slashing'.

        The entry modifier is the expression's modifier plus ``bonus``.
        Damage never crits.
        """
        parsed = parse_damage_expression(expression)
        label = f"d{parsed.sides}"
        dice = [self._draw(label, parsed.sides) for _ in range(parsed.count)]
        title = f"Damage ({parsed.damage_type})" if parsed.damage_type else "Damage"
        return self._record(RollType.DAMAGE, title, dice, parsed.modifier + bonus,
                            apply_crit=False)

    def roll_custom(self, title: str, die_type: Union[str, DieType], count: int,
                    modifier: int = 0) -> Optional[RollEntry]:
        """Roll ``count`` dice of one type; follows the pool crit rule."""
        die = DieType.parse(die_type)
        pool = DicePool(counts={die: count}, modifier=modifier,
                        max_per_type=max(count, self.rules.max_dice_per_type))
        return self.roll_pool(pool, title)

    def clear_history(self) -> None:
        self.log.clear()
