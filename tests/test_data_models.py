"""
Unit tests for core data models.

Tests name parsing, catalog lookups, reference normalization and the
CharacterRecord load/save round trip in realms_rules/data_models.py.
"""

import pytest

from realms_rules.data_models import (
    AbilityName,
    Catalog,
    CatalogRef,
    CharacterRecord,
    DefenseName,
    FeatDefinition,
    LearnedAbility,
    MilestoneChoice,
    OwnedItem,
    SkillEntry,
    UnknownAbilityError,
    UnknownDefenseError,
    ValidationReason,
    ValidationResult,
    find_by_id_or_name,
    normalize_abilities,
    normalize_defenses,
    parse_ability,
    parse_defense,
)


class TestNameParsing:
    """Tests for ability and defense names."""

    def test_parse_ability(self):
        assert parse_ability("Strength") == AbilityName.STRENGTH
        assert parse_ability(AbilityName.CHARISMA) == AbilityName.CHARISMA

    def test_unknown_ability(self):
        with pytest.raises(UnknownAbilityError):
            parse_ability("luck")

    def test_parse_defense_aliases(self):
        assert parse_defense("mentalFortitude") == DefenseName.MENTAL_FORTITUDE
        assert parse_defense("mental_fortitude") == DefenseName.MENTAL_FORTITUDE
        assert parse_defense("Might") == DefenseName.MIGHT

    def test_unknown_defense(self):
        with pytest.raises(UnknownDefenseError):
            parse_defense("armor")

    def test_normalize_fills_missing(self):
        abilities = normalize_abilities({"Agility": 2})
        assert len(abilities) == 6
        assert abilities["agility"] == 2
        assert abilities["strength"] == 0
        assert normalize_defenses(None)["resolve"] == 0


class TestValidationResult:
    """Tests for soft validation results."""

    def test_ok_is_truthy(self):
        assert ValidationResult.ok(cost=1)
        assert ValidationResult.ok(cost=1).reason is None

    def test_reject_is_falsy(self):
        result = ValidationResult.reject(ValidationReason.AT_MAX_ABILITY, "too high")
        assert not result
        assert result.message == "too high"


class TestCatalogLookup:
    """Tests for id-then-name catalog lookup."""

    def test_id_takes_precedence(self):
        table = [FeatDefinition(1, "Alpha"), FeatDefinition(2, "Beta")]
        assert find_by_id_or_name(table, CatalogRef(name="Alpha", ref_id=2)).name == "Beta"

    def test_falls_back_to_name(self):
        table = [FeatDefinition(1, "Alpha")]
        assert find_by_id_or_name(table, CatalogRef(name="Alpha", ref_id=99)).entry_id == 1

    def test_raw_id_and_numeric_string(self):
        table = [FeatDefinition(7, "Alpha")]
        assert find_by_id_or_name(table, 7).name == "Alpha"
        assert find_by_id_or_name(table, "7").name == "Alpha"

    def test_miss_returns_none(self):
        assert find_by_id_or_name([], "Anything") is None
        assert find_by_id_or_name([FeatDefinition(1, "A")], None) is None

    def test_catalog_from_id_keyed_mapping(self):
        catalog = Catalog.from_dict({"feats": {"5": {"name": "Keyed", "feat_lvl": 2}}})
        feat = catalog.find_feat("Keyed")
        assert feat.entry_id == "5"
        assert feat.feat_lvl == 2

    def test_find_part_by_kind(self, sample_catalog):
        assert sample_catalog.find_part("Fire Bolt", "power").kind == "power"
        assert sample_catalog.find_part("Fire Bolt", "technique") is None

    def test_skill_abilities_split(self, sample_catalog):
        athletics = sample_catalog.find_skill("athletics")
        assert athletics.abilities == ("strength", "agility")
        assert sample_catalog.find_skill("Climbing").base_skill == "Athletics"


class TestReferenceNormalization:
    """Union fields collapse to one shape at load time."""

    def test_bare_name(self):
        ref = CatalogRef.from_raw("Fire Bolt")
        assert ref.name == "Fire Bolt"
        assert ref.ref_id is None
        assert ref.option_levels == (0, 0, 0)

    def test_object_with_levels(self):
        ref = CatalogRef.from_raw({"id": 3, "name": "X", "op_1_lvl": 2, "op_3_lvl": 1})
        assert ref.option_levels == (2, 0, 1)
        assert ref.to_dict() == {"name": "X", "id": 3, "op_1_lvl": 2, "op_3_lvl": 1}

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            CatalogRef.from_raw(42)

    def test_learned_ability_without_library(self):
        assert LearnedAbility.from_raw("Flame").parts == ()

    def test_owned_item_damage_types(self):
        item = OwnedItem.from_raw({
            "name": "Sword",
            "damage": [{"type": "slashing"}, {"type": "none"}, {"amount": 2}],
        })
        assert item.damage_types == ("slashing",)


class TestCharacterRecord:
    """Tests for loading and saving character documents."""

    @pytest.fixture
    def stored_document(self):
        return {
            "level": 5,
            "abilities": {"strength": 2, "acuity": -1},
            "ancestryAbilities": {"strength": 1},
            "defenseVals": {"mentalFortitude": 1},
            "mart_prof": 1,
            "pow_prof": 2,
            "archetypeChoices": {"4": "innate"},
            "archetype": {"pow_abil": "Acuity", "mart_abil": "strength"},
            "skills": [{"id": "climbing", "name": "Climbing", "prof": True,
                        "skill_val": 1, "baseSkill": "Athletics"}],
            "powers": [{"name": "Flame", "parts": ["Fire Bolt"]}],
            "weapons": [{"name": "Sword", "properties": [{"name": "Weapon Damage", "op_1_lvl": 1}]}],
            "feats": [{"name": "Quick Hands", "currentUses": 2}],
            "health_energy_points": {"health": 12, "energy": 6},
        }

    def test_from_dict(self, stored_document):
        record = CharacterRecord.from_dict(stored_document)
        assert record.level == 5
        assert record.abilities["strength"] == 2
        assert record.abilities["vitality"] == 0
        assert record.base_abilities["strength"] == 1
        assert record.defense_allocations["mental_fortitude"] == 1
        assert record.archetype_choices == {4: MilestoneChoice.INNATE}
        assert record.power_ability == "acuity"
        assert record.skills[0].is_sub_skill
        assert record.powers[0].parts[0].name == "Fire Bolt"
        assert record.weapons[0].properties[0].option_levels == (1, 0, 0)
        assert record.feats[0].current_uses == 2
        assert record.health_points == 12
        assert record.energy_points == 6

    def test_round_trip(self, stored_document):
        record = CharacterRecord.from_dict(stored_document)
        assert CharacterRecord.from_dict(record.to_dict()) == record

    def test_unreadable_choice_dropped(self):
        record = CharacterRecord.from_dict({"archetypeChoices": {"4": "both"}})
        assert record.archetype_choices == {}

    def test_unknown_ability_key_fails(self):
        with pytest.raises(UnknownAbilityError):
            CharacterRecord.from_dict({"abilities": {"luck": 3}})

    def test_with_changes_returns_new_record(self):
        record = CharacterRecord(level=2)
        changed = record.with_changes(level=3)
        assert record.level == 2
        assert changed.level == 3

    def test_records_are_frozen(self):
        with pytest.raises(AttributeError):
            CharacterRecord().level = 4

    def test_skill_entry_to_dict(self):
        entry = SkillEntry("athletics", "Athletics", prof=True, value=2)
        assert entry.to_dict() == {"id": "athletics", "name": "Athletics", "prof": True, "skill_val": 2}
