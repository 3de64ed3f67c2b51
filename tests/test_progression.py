"""
Tests for full level progression, level-up deltas and level milestones.
"""

import pytest

from realms_rules.data_models import ArchetypeType, MilestoneChoice
from realms_rules.progression import (
    get_level_milestones,
    get_level_progression,
    get_level_up_delta,
)


class TestLevelProgression:
    """Tests for get_level_progression."""

    def test_level_one_defaults(self):
        progression = get_level_progression(1)
        assert progression.health_energy_points == 18
        assert progression.ability_points == 7
        assert progression.skill_points == 5
        assert progression.training_points == 22
        assert progression.proficiency_points == 2
        assert progression.max_character_feats == 1
        assert progression.max_archetype_feats == 1
        assert progression.archetype.type == ArchetypeType.NONE

    def test_archetype_bonus_feats_added(self):
        """Martial bonus feats raise the archetype feat maximum."""
        progression = get_level_progression(4, 0, martial_prof=2)
        assert progression.max_archetype_feats == 4 + 3

    def test_innate_values_exposed(self):
        progression = get_level_progression(
            7, 3, martial_prof=1, power_prof=1,
            archetype_choices={4: MilestoneChoice.INNATE},
        )
        assert progression.innate_threshold == 7
        assert progression.innate_pools == 2
        assert progression.innate_energy == 14
        assert progression.armament_proficiency == 8

    def test_to_dict(self):
        data = get_level_progression(3).to_dict()
        assert data["ability_points"] == 8
        assert data["archetype"]["type"] == "none"


class TestLevelUpDelta:
    """Tests for get_level_up_delta."""

    def test_standard_gains(self):
        delta = get_level_up_delta(1, 2)
        assert delta.health_energy_points == 12
        assert delta.skill_points == 3
        assert delta.training_points == 2
        assert delta.ability_points == 0
        assert delta.max_character_feats == 1

    def test_ability_point_level(self):
        assert get_level_up_delta(2, 3).ability_points == 1

    def test_power_milestone_gains(self):
        delta = get_level_up_delta(3, 4, power_prof=1)
        assert delta.innate_threshold == 1
        assert delta.innate_pools == 1
        assert delta.innate_energy == 9 * 3 - 8 * 2

    def test_level_down_is_negative(self):
        assert get_level_up_delta(5, 4).proficiency_points == -1


class TestLevelMilestones:
    """Tests for get_level_milestones."""

    @pytest.mark.parametrize("level,expected", [(2, False), (3, True), (4, False), (6, True)])
    def test_ability_point_levels(self, level, expected):
        milestones = get_level_milestones(level)
        assert milestones.is_ability_point_level is expected
        assert milestones.level_up_gains["ability_points"] == (1 if expected else 0)

    @pytest.mark.parametrize("level,expected", [(4, False), (5, True), (10, True), (11, False)])
    def test_proficiency_point_levels(self, level, expected):
        assert get_level_milestones(level).is_proficiency_point_level is expected

    def test_standard_gains(self):
        gains = get_level_milestones(2).level_up_gains
        assert gains["health_energy_points"] == 12
        assert gains["skill_points"] == 3
        assert gains["archetype_feats"] == 1
        assert gains["character_feats"] == 1

    def test_flags_match_formula_deltas(self):
        """Milestone flags agree with the formula differences."""
        for level in range(2, 21):
            milestones = get_level_milestones(level)
            delta = get_level_up_delta(level - 1, level)
            assert milestones.level_up_gains["ability_points"] == delta.ability_points
            assert milestones.level_up_gains["proficiency_points"] == delta.proficiency_points
