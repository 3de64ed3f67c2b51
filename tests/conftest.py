"""
Pytest fixtures for the Realms rules engine test suite.

Provides deterministic dice engines, a small content catalog and sample
character records.
"""

import random

import pytest

from realms_rules.data_models import (
    Catalog,
    CharacterRecord,
    MilestoneChoice,
)
from realms_rules.dice import DiceRollEngine


class ScriptedRng:
    """RNG stub returning queued values from ``randint``."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = []

    def randint(self, a, b):
        self.calls.append((a, b))
        value = self.values.pop(0)
        assert a <= value <= b, f"scripted value {value} outside {a}-{b}"
        return value


# =============================================================================
# DICE FIXTURES
# =============================================================================


@pytest.fixture
def seeded_rng():
    """Provide a seeded Random for reproducible rolls."""
    return random.Random(42)


@pytest.fixture
def dice_engine(seeded_rng):
    """Provide a DiceRollEngine driven by a seeded RNG."""
    return DiceRollEngine(rng=seeded_rng)


@pytest.fixture
def scripted_dice():
    """Factory for a DiceRollEngine that rolls the given values in order."""

    def make(*values, **kwargs):
        return DiceRollEngine(rng=ScriptedRng(values), **kwargs)

    return make


# =============================================================================
# CATALOG FIXTURES
# =============================================================================


@pytest.fixture
def sample_catalog():
    """A small catalog with parts, properties, feats, skills and a species."""
    return Catalog.from_dict({
        "parts": [
            {"id": 1, "name": "Fire Bolt", "type": "power", "base_tp": 2,
             "op_1_tp": 1, "op_2_tp": 0.5, "op_3_tp": 0},
            {"id": 2, "name": "Power Strike", "type": "technique", "base_tp": 1.5,
             "op_1_tp": 1},
            {"id": 3, "name": "Free Flourish", "type": "technique", "base_tp": 0},
        ],
        "properties": [
            {"id": 10, "name": "Weapon Damage", "base_tp": 1, "op_1_tp": 1},
            {"id": 11, "name": "Armor Plating", "base_tp": 2, "op_1_tp": 1},
        ],
        "feats": [
            {"id": 100, "name": "Quick Hands", "feat_lvl": 1},
            {"id": 101, "name": "Heavy Hitter", "feat_lvl": 2},
            {"id": 102, "name": "Silver Tongue", "feat_lvl": 1, "char_feat": True},
        ],
        "skills": [
            {"id": "athletics", "name": "Athletics", "ability": "strength, agility"},
            {"id": "climbing", "name": "Climbing", "ability": ["strength"],
             "base_skill": "Athletics"},
            {"id": "insight", "name": "Insight", "ability": ["acuity"]},
        ],
        "species": [
            {"id": "elf", "name": "Elf", "skills": ["insight"]},
        ],
    })


# =============================================================================
# CHARACTER FIXTURES
# =============================================================================


@pytest.fixture
def level_one_record():
    """Level 1 character with all abilities at 0 and nothing spent."""
    return CharacterRecord(level=1)


@pytest.fixture
def mixed_record():
    """Level 7 mixed-archetype character with one milestone choice made."""
    return CharacterRecord(
        level=7,
        abilities={"strength": 2, "intelligence": 3},
        martial_prof=1,
        power_prof=1,
        archetype_choices={4: MilestoneChoice.INNATE},
        power_ability="intelligence",
        martial_ability="strength",
    )
