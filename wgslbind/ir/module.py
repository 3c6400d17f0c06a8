"""Module-level IR declarations: globals, constants, overrides, entry points."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Union

from wgslbind.ir.types import (
    AddressSpace, Array, Binding, BindingArray, Pointer, ShaderStage, Type,
    type_inner_name,
)


@dataclass(frozen=True)
class BindingSlot:
    group: int
    binding: int


@dataclass
class GlobalVariable:
    name: Optional[str]
    space: AddressSpace
    ty: int
    binding: Optional[BindingSlot] = None


Literal = Union[bool, int, float]


@dataclass
class Constant:
    name: Optional[str]
    ty: int
    value: Optional[Literal] = None  # None when the initializer is not a literal


@dataclass
class Override:
    name: str
    ty: int
    id: Optional[int] = None
    init: Optional[Literal] = None

    @property
    def has_default(self) -> bool:
        return self.init is not None


@dataclass
class FunctionArgument:
    name: Optional[str]
    ty: int
    binding: Optional[Binding] = None


@dataclass
class FunctionResult:
    ty: int
    binding: Optional[Binding] = None


@dataclass
class EntryPoint:
    name: str
    stage: ShaderStage
    arguments: list[FunctionArgument] = field(default_factory=list)
    result: Optional[FunctionResult] = None
    workgroup_size: tuple[int, int, int] = (0, 0, 0)


@dataclass
class Module:
    types: list[Type] = field(default_factory=list)
    global_variables: list[GlobalVariable] = field(default_factory=list)
    constants: list[Constant] = field(default_factory=list)
    overrides: list[Override] = field(default_factory=list)
    entry_points: list[EntryPoint] = field(default_factory=list)

    def add_type(self, ty: Type) -> int:
        """Insert a type into the arena, returning the handle of an equal type if present."""
        for handle, existing in enumerate(self.types):
            if existing == ty:
                return handle
        self.types.append(ty)
        return len(self.types) - 1

    def __getitem__(self, handle: int) -> Type:
        return self.types[handle]

    def find_type(self, name: str) -> Optional[int]:
        for handle, ty in enumerate(self.types):
            if ty.name == name:
                return handle
        return None

    def type_name(self, handle: int) -> str:
        """WGSL spelling of a type, following handles for composite types."""
        ty = self.types[handle]
        if ty.name:
            return ty.name
        inner = ty.inner
        if isinstance(inner, Array):
            base = self.type_name(inner.base)
            return f"array<{base}>" if inner.size is None else f"array<{base}, {inner.size}>"
        if isinstance(inner, BindingArray):
            base = self.type_name(inner.base)
            return f"binding_array<{base}>" if inner.size is None else f"binding_array<{base}, {inner.size}>"
        if isinstance(inner, Pointer):
            return f"ptr<{inner.space}, {self.type_name(inner.base)}>"
        return type_inner_name(inner)
