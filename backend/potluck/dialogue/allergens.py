"""Multi-select allergen toggle set used while tagging a dish."""
from dataclasses import dataclass


@dataclass(frozen=True)
class AllergenSelection:
    selected: frozenset = frozenset()

    def toggle(self, allergen_id: int) -> tuple["AllergenSelection", bool]:
        """Flip membership of ``allergen_id``; the flag is True when it was added."""
        if allergen_id in self.selected:
            return AllergenSelection(self.selected - {allergen_id}), False
        return AllergenSelection(self.selected | {allergen_id}), True

    @property
    def ids(self) -> list[int]:
        return sorted(self.selected)
