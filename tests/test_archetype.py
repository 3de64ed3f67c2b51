"""
Unit tests for archetype progression and milestone choices.

Tests realms_rules/archetype.py.
"""

import pytest

from realms_rules.archetype import (
    apply_milestone_choice,
    archetype_progression,
    armament_proficiency,
    bonus_archetype_feats,
    choice_benefits,
    classify,
    highest_archetype_ability,
    innate_pools,
    innate_threshold,
    is_milestone_level,
    milestone_levels,
    prune_choices,
)
from realms_rules.data_models import (
    ArchetypeType,
    CharacterRecord,
    MilestoneChoice,
    ValidationReason,
)


class TestClassify:
    """Tests for archetype classification."""

    def test_classification_table(self):
        """The four states follow the proficiency counters."""
        assert classify(0, 0) == ArchetypeType.NONE
        assert classify(0, 3) == ArchetypeType.POWER
        assert classify(2, 0) == ArchetypeType.MARTIAL
        assert classify(1, 1) == ArchetypeType.MIXED

    def test_classify_is_total(self):
        """Every non-negative counter pair maps to exactly one archetype."""
        for martial in range(5):
            for power in range(5):
                assert classify(martial, power) in set(ArchetypeType)


class TestMilestones:
    """Tests for milestone levels."""

    def test_milestone_levels(self):
        """Milestones are 4, 7, 10, ... up to the level."""
        assert milestone_levels(3) == []
        assert milestone_levels(4) == [4]
        assert milestone_levels(12) == [4, 7, 10]
        assert milestone_levels(20) == [4, 7, 10, 13, 16, 19]

    @pytest.mark.parametrize("level,expected", [
        (1, False), (3, False), (4, True), (5, False), (7, True), (19, True), (20, False),
    ])
    def test_is_milestone_level(self, level, expected):
        assert is_milestone_level(level) is expected


class TestPureArchetypes:
    """Tests for power and martial progression."""

    @pytest.mark.parametrize("level,threshold,pools", [
        (1, 8, 2), (3, 8, 2), (4, 9, 3), (7, 10, 4), (10, 11, 5), (20, 14, 8),
    ])
    def test_power_innate_values(self, level, threshold, pools):
        """Threshold and pools rise at each milestone."""
        assert innate_threshold(level) == threshold
        assert innate_pools(level) == pools

    def test_power_summary(self):
        """Power summary multiplies threshold by pools for innate energy."""
        summary = archetype_progression(4, 0, 2)
        assert summary.type == ArchetypeType.POWER
        assert summary.innate_energy == 9 * 3
        assert summary.bonus_archetype_feats == 0

    def test_martial_bonus_feats(self):
        """Martial bonus feats use the same steps from a base of 2."""
        assert bonus_archetype_feats(1) == 2
        assert bonus_archetype_feats(4) == 3
        summary = archetype_progression(7, 2, 0)
        assert summary.type == ArchetypeType.MARTIAL
        assert summary.bonus_archetype_feats == 4
        assert summary.innate_energy == 0

    def test_none_summary(self):
        """No proficiency gives no archetype benefits."""
        summary = archetype_progression(10, 0, 0)
        assert summary.type == ArchetypeType.NONE
        assert summary.innate_energy == 0
        assert summary.bonus_archetype_feats == 0


class TestArmament:
    """Tests for armament proficiency."""

    @pytest.mark.parametrize("martial,expected", [(0, 3), (1, 8), (2, 12), (3, 15), (4, 18)])
    def test_armament_proficiency(self, martial, expected):
        assert armament_proficiency(martial) == expected


class TestMixedArchetype:
    """Tests for mixed progression driven by milestone choices."""

    def test_base_values_without_choices(self):
        """Unset milestones contribute nothing."""
        summary = archetype_progression(10, 1, 1)
        assert summary.type == ArchetypeType.MIXED
        assert summary.innate_threshold == 6
        assert summary.innate_pools == 1
        assert summary.bonus_archetype_feats == 1
        assert summary.available_milestones == (4, 7, 10)

    def test_choices_accumulate(self):
        """Innate adds threshold and pools; feat adds a bonus feat."""
        choices = {4: MilestoneChoice.INNATE, 7: MilestoneChoice.FEAT, 10: MilestoneChoice.INNATE}
        summary = archetype_progression(10, 1, 1, choices)
        assert summary.innate_threshold == 8
        assert summary.innate_pools == 3
        assert summary.innate_energy == 24
        assert summary.bonus_archetype_feats == 2

    def test_choices_above_level_ignored(self):
        """Choices at milestones beyond the level are not counted."""
        summary = archetype_progression(5, 1, 1, {4: "feat", 7: "feat"})
        assert summary.bonus_archetype_feats == 2


class TestApplyMilestoneChoice:
    """Tests for the milestone choice state machine."""

    def test_accepts_valid_choice(self):
        """A mixed character can choose at a reached milestone."""
        result = apply_milestone_choice({}, 4, MilestoneChoice.INNATE, 1, 1, level=5)
        assert result.ok
        assert result.choices == {4: MilestoneChoice.INNATE}

    def test_accepts_string_choice(self):
        result = apply_milestone_choice({}, 7, "Feat", 1, 2, level=7)
        assert result.ok
        assert result.choices[7] == MilestoneChoice.FEAT

    @pytest.mark.parametrize("milestone", [1, 3, 5, 6, 8, 9])
    def test_rejects_non_milestone_levels(self, milestone):
        """Only 4, 7, 10, ... are milestones."""
        result = apply_milestone_choice({}, milestone, "innate", 1, 1, level=20)
        assert not result.ok
        assert result.reason == ValidationReason.INVALID_MILESTONE

    @pytest.mark.parametrize("martial,power", [(0, 0), (0, 2), (3, 0)])
    def test_rejects_when_not_mixed(self, martial, power):
        result = apply_milestone_choice({}, 4, "innate", martial, power, level=10)
        assert not result.ok
        assert result.reason == ValidationReason.NOT_MIXED_ARCHETYPE

    def test_rejects_milestone_above_level(self):
        result = apply_milestone_choice({}, 7, "innate", 1, 1, level=6)
        assert not result.ok
        assert result.reason == ValidationReason.MILESTONE_ABOVE_LEVEL

    def test_rejects_invalid_choice(self):
        result = apply_milestone_choice({}, 4, "both", 1, 1, level=4)
        assert not result.ok
        assert result.reason == ValidationReason.INVALID_CHOICE

    def test_does_not_mutate_input(self):
        """Accepted or rejected, the input map is untouched."""
        choices = {4: MilestoneChoice.FEAT}
        apply_milestone_choice(choices, 7, "innate", 1, 1, level=7)
        apply_milestone_choice(choices, 5, "innate", 1, 1, level=7)
        assert choices == {4: MilestoneChoice.FEAT}

    def test_reapplying_is_idempotent(self):
        """Applying the same choice twice gives the same map."""
        first = apply_milestone_choice({}, 4, "innate", 1, 1, level=4)
        second = apply_milestone_choice(first.choices, 4, "innate", 1, 1, level=4)
        assert second.ok
        assert second.choices == first.choices

    def test_changing_a_choice(self):
        """A later choice at the same milestone replaces the earlier one."""
        result = apply_milestone_choice({4: MilestoneChoice.INNATE}, 4, "feat", 1, 1, level=4)
        assert result.choices == {4: MilestoneChoice.FEAT}


class TestPruneChoices:
    """Tests for the explicit cleanup step."""

    def test_clears_all_when_not_mixed(self):
        choices = {4: MilestoneChoice.INNATE, 7: MilestoneChoice.FEAT}
        assert prune_choices(choices, 10, 0, 2) == {}

    def test_drops_milestones_above_level(self):
        choices = {4: MilestoneChoice.INNATE, 7: MilestoneChoice.FEAT, 10: MilestoneChoice.FEAT}
        assert prune_choices(choices, 8, 1, 1) == {
            4: MilestoneChoice.INNATE,
            7: MilestoneChoice.FEAT,
        }

    def test_keeps_reachable_choices(self):
        choices = {4: MilestoneChoice.INNATE}
        assert prune_choices(choices, 4, 2, 1) == choices

    def test_choices_survive_until_pruned(self):
        """Changing counters does not remove choices by itself."""
        choices = {4: MilestoneChoice.INNATE}
        summary = archetype_progression(10, 0, 2, choices)
        assert summary.type == ArchetypeType.POWER
        assert choices == {4: MilestoneChoice.INNATE}


class TestHelpers:
    """Tests for choice descriptions and archetype ability lookup."""

    def test_choice_benefits_labels(self):
        benefits = choice_benefits()
        assert benefits[MilestoneChoice.INNATE]["label"] == "Innate Power"
        assert benefits[MilestoneChoice.FEAT]["label"] == "Combat Expertise"

    def test_highest_archetype_ability(self, mixed_record):
        """The higher of the power and martial ability scores."""
        assert highest_archetype_ability(mixed_record) == 3

    def test_highest_archetype_ability_unset(self):
        assert highest_archetype_ability(CharacterRecord(abilities={"strength": 4})) == 0
