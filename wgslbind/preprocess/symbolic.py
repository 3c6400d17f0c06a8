"""Label-based group/binding allocation for ``@group_binding(NAME)``."""

from __future__ import annotations
from dataclasses import dataclass, field


@dataclass
class SymbolicBindingTable:
    """Assigns each new label the next free group, then hands out bindings per label.

    One table is shared by every ``@group_binding`` occurrence of a single
    preprocessing pass; allocation follows source order.
    """
    next_group: int = 0
    entries: dict[str, tuple[int, int]] = field(default_factory=dict)  # label -> (group, next binding)

    def __call__(self, label: str) -> tuple[int, int]:
        return self.assign(label)

    def assign(self, label: str) -> tuple[int, int]:
        if label not in self.entries:
            self.entries[label] = (self.next_group, 0)
            self.next_group += 1
        group, binding = self.entries[label]
        self.entries[label] = (group, binding + 1)
        return group, binding

    def group_of(self, label: str) -> int | None:
        entry = self.entries.get(label)
        return entry[0] if entry is not None else None

    def assignments(self) -> dict[str, tuple[int, int]]:
        """Label -> (group, number of bindings handed out)."""
        return dict(self.entries)
