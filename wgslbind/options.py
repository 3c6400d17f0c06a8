"""Reflection options."""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

Pattern = Union[str, "re.Pattern[str]"]


def _compile(pattern: Pattern) -> re.Pattern:
    return pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)


@dataclass
class ReflectionOptions:
    # Regexes naming padding members; these are left out of initializer views.
    padding_field_patterns: list[Pattern] = field(default_factory=list)
    # (struct name regex, alignment) pairs replacing a struct's computed alignment.
    struct_alignment_overrides: list[tuple[Pattern, int]] = field(default_factory=list)
    # Struct name -> host type name; these structs get no descriptor.
    explicit_struct_type_overrides: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.padding_field_patterns = [_compile(p) for p in self.padding_field_patterns]
        overrides = []
        for pattern, alignment in self.struct_alignment_overrides:
            if alignment <= 0 or alignment & (alignment - 1):
                raise ValueError(f"Struct alignment must be a power of two, got {alignment}")
            overrides.append((_compile(pattern), alignment))
        self.struct_alignment_overrides = overrides

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReflectionOptions:
        return cls(
            padding_field_patterns=list(data.get("padding_field_patterns", [])),
            struct_alignment_overrides=[
                (entry["pattern"], int(entry["alignment"]))
                for entry in data.get("struct_alignment_overrides", [])
            ],
            explicit_struct_type_overrides=dict(data.get("explicit_struct_type_overrides", {})),
        )

    def is_padding_field(self, name: str) -> bool:
        return any(p.search(name) for p in self.padding_field_patterns)

    def alignment_override(self, struct_name: Optional[str]) -> Optional[int]:
        if struct_name is None:
            return None
        for pattern, alignment in self.struct_alignment_overrides:
            if pattern.search(struct_name):
                return alignment
        return None
