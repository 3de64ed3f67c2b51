"""
Unit tests for training point expenditure.
"""

from realms_rules.data_models import Catalog, CharacterRecord
from realms_rules.training import (
    ProficiencyEntry,
    extract_proficiencies,
    max_unarmed_prowess,
    training_points_spent,
    unarmed_prowess_cost,
)


def make_record(**kwargs):
    return CharacterRecord.from_dict(kwargs)


class TestProficiencyEntry:
    """Tests for entry cost."""

    def test_cost_floors(self):
        entry = ProficiencyEntry("Fire Bolt", "power", base_tp=2, option_tp=(1, 0.5, 0),
                                 option_levels=[1, 1, 0])
        assert entry.cost == 3

    def test_merge_keeps_highest_per_tier(self):
        entry = ProficiencyEntry("Fire Bolt", "power", option_levels=[2, 0, 1])
        entry.merge_levels((1, 3, 0))
        assert entry.option_levels == [2, 3, 1]


class TestExtractProficiencies:
    """Tests for extracting training entries from a character."""

    def test_power_part_cost(self, sample_catalog):
        record = make_record(powers=[
            {"name": "Flame", "parts": [{"id": 1, "name": "Fire Bolt", "op_1_lvl": 2, "op_2_lvl": 1}]},
        ])
        # 2 + 1*2 + 0.5*1 = 4.5 -> 4
        assert training_points_spent(record, sample_catalog) == 4

    def test_duplicate_parts_are_deduplicated(self, sample_catalog):
        """The same part on two powers is paid once at the highest levels."""
        record = make_record(powers=[
            {"name": "Flame", "parts": [{"name": "Fire Bolt", "op_1_lvl": 2}]},
            {"name": "Blaze", "parts": [{"name": "Fire Bolt", "op_1_lvl": 1, "op_2_lvl": 2}]},
        ])
        expenditure = extract_proficiencies(record, sample_catalog)
        assert len(expenditure.entries) == 1
        assert expenditure.entries[0].option_levels == [2, 2, 0]
        # 2 + 2 + 1
        assert expenditure.total == 5

    def test_zero_cost_entries_excluded(self, sample_catalog):
        record = make_record(techniques=[
            {"name": "Dance", "parts": [{"name": "Free Flourish"}]},
        ])
        assert extract_proficiencies(record, sample_catalog).entries == ()

    def test_technique_parts(self, sample_catalog):
        record = make_record(techniques=[
            {"name": "Smash", "parts": [{"name": "Power Strike", "op_1_lvl": 1}]},
        ])
        expenditure = extract_proficiencies(record, sample_catalog)
        assert [e.source for e in expenditure.entries] == ["technique"]
        assert expenditure.total == 2

    def test_item_properties_use_first_tier_only(self, sample_catalog):
        record = make_record(armor=[
            {"name": "Breastplate", "properties": [{"name": "Armor Plating", "op_1_lvl": 2}]},
        ])
        assert training_points_spent(record, sample_catalog) == 4

    def test_weapon_damage_split_by_type(self, sample_catalog):
        """Weapon damage of different types are separate entries."""
        record = make_record(weapons=[
            {"name": "Sword", "damage": [{"type": "slashing"}], "properties": [{"name": "Weapon Damage"}]},
            {"name": "Mace", "damage": [{"type": "bludgeoning"}], "properties": [{"name": "Weapon Damage"}]},
        ])
        names = sorted(e.name for e in extract_proficiencies(record, sample_catalog).entries)
        assert names == ["Weapon Damage (bludgeoning)", "Weapon Damage (slashing)"]

    def test_unknown_parts_are_skipped(self, sample_catalog, caplog):
        record = make_record(powers=[{"name": "Mystery", "parts": ["Nonexistent"]}])
        assert training_points_spent(record, sample_catalog) == 0
        assert "Unknown power part" in caplog.text

    def test_bare_name_powers_resolved_from_library(self, sample_catalog):
        library = {"Flame": {"name": "Flame", "parts": [{"name": "Fire Bolt", "op_1_lvl": 1}]}}
        record = CharacterRecord.from_dict({"powers": ["Flame"]}, library)
        assert training_points_spent(record, sample_catalog) == 3

    def test_same_name_across_sources_paid_separately(self):
        """A power part and a technique part sharing a name are two trainings."""
        catalog = Catalog.from_dict({"parts": [
            {"id": 1, "name": "Damage", "type": "power", "base_tp": 3},
            {"id": 2, "name": "Damage", "type": "technique", "base_tp": 2},
        ]})
        record = make_record(
            powers=[{"name": "Bolt", "parts": ["Damage"]}],
            techniques=[{"name": "Slash", "parts": ["Damage"]}],
        )
        expenditure = extract_proficiencies(record, catalog)
        assert sorted(e.source for e in expenditure.entries) == ["power", "technique"]
        assert training_points_spent(record, catalog) == 5

    def test_weapon_and_armor_properties_paid_separately(self, sample_catalog):
        record = make_record(
            weapons=[{"name": "Spiked Shield", "properties": [{"name": "Armor Plating"}]}],
            armor=[{"name": "Breastplate", "properties": [{"name": "Armor Plating"}]}],
        )
        expenditure = extract_proficiencies(record, sample_catalog)
        assert [e.source for e in expenditure.entries] == ["weapon", "armor"]
        assert expenditure.total == 4


class TestUnarmedProwess:
    """Tests for Unarmed Prowess training."""

    def test_cost_per_tier(self):
        assert unarmed_prowess_cost(0) == 0
        assert unarmed_prowess_cost(1) == 10
        assert unarmed_prowess_cost(3) == 22

    def test_tiers_open_with_level(self):
        assert max_unarmed_prowess(1) == 1
        assert max_unarmed_prowess(7) == 2
        assert max_unarmed_prowess(16) == 5

    def test_added_to_training_spend(self, sample_catalog):
        record = make_record(
            unarmedProwess=2,
            powers=[{"name": "Flame", "parts": [{"name": "Fire Bolt"}]}],
        )
        expenditure = extract_proficiencies(record, sample_catalog)
        assert expenditure.unarmed_prowess_tp == 16
        assert expenditure.total == 16 + 2

    def test_loaded_and_saved(self):
        record = make_record(unarmedProwess=3)
        assert record.unarmed_prowess == 3
        assert record.to_dict()["unarmedProwess"] == 3
