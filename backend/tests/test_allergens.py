"""Tests for the allergen toggle set."""
from potluck.dialogue.allergens import AllergenSelection


class TestAllergenSelection:
    def test_starts_empty(self):
        assert AllergenSelection().ids == []

    def test_toggle_adds_then_removes(self):
        selection, added = AllergenSelection().toggle(4)
        assert added is True
        assert selection.ids == [4]

        selection, added = selection.toggle(4)
        assert added is False
        assert selection.ids == []

    def test_many_toggles(self):
        selection = AllergenSelection()
        for allergen_id in [5, 1, 9, 5, 1, 5, 12]:
            selection, _ = selection.toggle(allergen_id)
        assert selection.ids == [5, 9, 12]

    def test_original_is_unchanged(self):
        empty = AllergenSelection()
        empty.toggle(3)
        assert empty.ids == []
