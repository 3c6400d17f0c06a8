"""Struct layout and host-shareability.

Structs reachable from a global variable cross the host boundary and get
the WGSL memory layout (explicit offsets, padding implied by alignment).
Structs that only appear as entry point arguments, such as vertex inputs,
keep the natural C layout of their field sequence instead; their wire
format is described attribute by attribute.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import numpy as np
from loguru import logger

from wgslbind.ir.module import Module
from wgslbind.ir.types import (
    Array, Atomic, BindingArray, Matrix, Pointer, Scalar, ScalarKind, Struct,
    Vector,
)
from wgslbind.options import ReflectionOptions
from wgslbind.reflection.model import StructDescriptor, StructField


@dataclass(frozen=True)
class TypeLayout:
    size: int
    align: int


def align_up(offset: int, alignment: int) -> int:
    return (offset + alignment - 1) & ~(alignment - 1)


_SCALAR_DTYPES = {
    (ScalarKind.FLOAT, 2): "<f2",
    (ScalarKind.FLOAT, 4): "<f4",
    (ScalarKind.FLOAT, 8): "<f8",
    (ScalarKind.SINT, 1): "i1",
    (ScalarKind.SINT, 2): "<i2",
    (ScalarKind.SINT, 4): "<i4",
    (ScalarKind.SINT, 8): "<i8",
    (ScalarKind.UINT, 1): "u1",
    (ScalarKind.UINT, 2): "<u2",
    (ScalarKind.UINT, 4): "<u4",
    (ScalarKind.UINT, 8): "<u8",
    (ScalarKind.BOOL, 4): "<u4",
}


def scalar_dtype(scalar: Scalar) -> np.dtype:
    return np.dtype(_SCALAR_DTYPES[(scalar.kind, scalar.width)])


class Layouter:
    """WGSL host-shareable layout of every type in a module, computed on demand."""

    def __init__(self, module: Module, options: Optional[ReflectionOptions] = None):
        self.module = module
        self.options = options or ReflectionOptions()
        self._layouts: dict[int, TypeLayout] = {}

    def __getitem__(self, handle: int) -> TypeLayout:
        layout = self._layouts.get(handle)
        if layout is None:
            layout = self._compute(handle)
            self._layouts[handle] = layout
        return layout

    def _compute(self, handle: int) -> TypeLayout:
        ty = self.module.types[handle]
        inner = ty.inner

        if isinstance(inner, (Scalar, Atomic)):
            scalar = inner if isinstance(inner, Scalar) else inner.scalar
            return TypeLayout(scalar.width, scalar.width)
        if isinstance(inner, Vector):
            w = inner.scalar.width
            return TypeLayout(inner.size * w, (2 if inner.size == 2 else 4) * w)
        if isinstance(inner, Matrix):
            w = inner.scalar.width
            column_align = (2 if inner.rows == 2 else 4) * w
            return TypeLayout(inner.columns * column_align, column_align)
        if isinstance(inner, Array):
            stride = self.array_stride(inner.base)
            count = inner.size if inner.size is not None else 1
            return TypeLayout(count * stride, self[inner.base].align)
        if isinstance(inner, Struct):
            offsets = self.member_offsets(handle)
            align = self.struct_align(handle)
            if not inner.members:
                return TypeLayout(0, align)
            end = offsets[-1] + self[inner.members[-1].ty].size
            return TypeLayout(align_up(end, align), align)
        # Opaque handles (textures, samplers, pointers) have no memory layout
        return TypeLayout(0, 1)

    def array_stride(self, base: int) -> int:
        element = self[base]
        return align_up(element.size, element.align)

    def struct_align(self, handle: int) -> int:
        ty = self.module.types[handle]
        override = self.options.alignment_override(ty.name)
        if override is not None:
            return override
        return max((self[m.ty].align for m in ty.inner.members), default=1)

    def member_offsets(self, handle: int) -> list[int]:
        offsets = []
        cursor = 0
        for member in self.module.types[handle].inner.members:
            layout = self[member.ty]
            cursor = align_up(cursor, layout.align)
            offsets.append(cursor)
            cursor += layout.size
        return offsets

    def is_statically_sized(self, handle: int) -> bool:
        inner = self.module.types[handle].inner
        if isinstance(inner, Array):
            return inner.size is not None and self.is_statically_sized(inner.base)
        if isinstance(inner, Struct):
            return all(self.is_statically_sized(m.ty) for m in inner.members)
        return True

    def min_binding_size(self, handle: int) -> Optional[int]:
        if not self.is_statically_sized(handle):
            return None
        return self[handle].size

    def host_dtype(self, handle: int) -> Optional[np.dtype]:
        """numpy dtype with this type's WGSL byte layout, None for runtime-sized arrays."""
        inner = self.module.types[handle].inner
        if isinstance(inner, (Scalar, Atomic)):
            return scalar_dtype(inner if isinstance(inner, Scalar) else inner.scalar)
        if isinstance(inner, Vector):
            return np.dtype((scalar_dtype(inner.scalar), (inner.size,)))
        if isinstance(inner, Matrix):
            padded_rows = self[handle].align // inner.scalar.width
            return np.dtype((scalar_dtype(inner.scalar), (inner.columns, padded_rows)))
        if isinstance(inner, Array):
            if inner.size is None:
                return None
            element = self.host_dtype(inner.base)
            base_inner = self.module.types[inner.base].inner
            stride = self.array_stride(inner.base)
            if isinstance(base_inner, Vector) and element.itemsize < stride:
                # vec3 elements occupy a full vec4 slot
                element = np.dtype((scalar_dtype(base_inner.scalar), (stride // base_inner.scalar.width,)))
            # one flat subarray, so numpy does not nest the element shape
            return np.dtype((element.base, (inner.size,) + element.shape))
        if isinstance(inner, Struct):
            offsets = self.member_offsets(handle)
            names, formats, kept = [], [], []
            for member, offset in zip(inner.members, offsets):
                dtype = self.host_dtype(member.ty)
                if dtype is None:
                    continue
                names.append(member.name)
                formats.append(dtype)
                kept.append(offset)
            return np.dtype({
                "names": names, "formats": formats, "offsets": kept,
                "itemsize": self[handle].size,
            })
        return None


def natural_dtype(module: Module, handle: int) -> np.dtype:
    """C-like layout of a type: vectors and matrices are plain scalar arrays."""
    inner = module.types[handle].inner
    if isinstance(inner, (Scalar, Atomic)):
        return scalar_dtype(inner if isinstance(inner, Scalar) else inner.scalar)
    if isinstance(inner, Vector):
        return np.dtype((scalar_dtype(inner.scalar), (inner.size,)))
    if isinstance(inner, Matrix):
        return np.dtype((scalar_dtype(inner.scalar), (inner.columns, inner.rows)))
    if isinstance(inner, Array):
        element = natural_dtype(module, inner.base)
        return np.dtype((element.base, (inner.size or 1,) + element.shape))
    if isinstance(inner, Struct):
        return np.dtype({
            "names": [m.name for m in inner.members],
            "formats": [natural_dtype(module, m.ty) for m in inner.members],
        }, align=True)
    raise TypeError(f"Type '{module.type_name(handle)}' has no memory layout")


def host_shareable_types(module: Module) -> set[int]:
    """Handles of every type reachable from a global variable's type."""
    visited: set[int] = set()
    stack = [g.ty for g in module.global_variables]
    while stack:
        handle = stack.pop()
        if handle in visited:
            continue
        visited.add(handle)
        inner = module.types[handle].inner
        if isinstance(inner, (Pointer, Array, BindingArray)):
            stack.append(inner.base)
        elif isinstance(inner, Struct):
            stack.extend(m.ty for m in inner.members)
    return visited


def public_struct_types(module: Module, shareable: set[int]) -> list[int]:
    """Struct handles visible to the host, in arena order.

    That is structs used by globals, plus structs passed as entry point
    arguments. Entry point results are skipped unless a global uses them.
    """
    results = {ep.result.ty for ep in module.entry_points if ep.result is not None}
    arguments = {a.ty for ep in module.entry_points for a in ep.arguments}
    public = []
    for handle, ty in enumerate(module.types):
        if not isinstance(ty.inner, Struct):
            continue
        if handle in shareable or (handle in arguments and handle not in results):
            public.append(handle)
    return public


def has_dynamic_array_member(module: Module, handle: int) -> bool:
    return any(
        isinstance(module.types[m.ty].inner, Array) and module.types[m.ty].inner.size is None
        for m in module.types[handle].inner.members
    )


def struct_descriptors(
    module: Module,
    options: Optional[ReflectionOptions] = None,
    layouter: Optional[Layouter] = None,
) -> list[StructDescriptor]:
    options = options or ReflectionOptions()
    layouter = layouter or Layouter(module, options)
    shareable = host_shareable_types(module)

    descriptors = []
    for handle in public_struct_types(module, shareable):
        name = module.types[handle].name or f"Struct{handle}"
        if name in options.explicit_struct_type_overrides:
            logger.debug(
                "Skipping struct {} mapped to {}", name, options.explicit_struct_type_overrides[name],
            )
            continue
        if handle in shareable:
            descriptors.append(_host_struct(module, handle, name, options, layouter))
        else:
            descriptors.append(_natural_struct(module, handle, name, options))
    return descriptors


def _host_struct(
    module: Module, handle: int, name: str, options: ReflectionOptions, layouter: Layouter,
) -> StructDescriptor:
    members = module.types[handle].inner.members
    offsets = layouter.member_offsets(handle)
    fields = []
    for member, offset in zip(members, offsets):
        layout = layouter[member.ty]
        fields.append(StructField(
            name=member.name,
            type_name=module.type_name(member.ty),
            offset=offset,
            size=layout.size,
            align=layout.align,
            dtype=layouter.host_dtype(member.ty),
            is_padding=options.is_padding_field(member.name),
        ))
    layout = layouter[handle]
    return StructDescriptor(
        name=name,
        fields=fields,
        total_size=layout.size,
        total_align=layout.align,
        is_host_shareable=True,
        has_trailing_dynamic_array=has_dynamic_array_member(module, handle),
    )


def _natural_struct(
    module: Module, handle: int, name: str, options: ReflectionOptions,
) -> StructDescriptor:
    members = module.types[handle].inner.members
    dtype = natural_dtype(module, handle)
    fields = []
    for member in members:
        field_dtype, offset = dtype.fields[member.name][:2]
        fields.append(StructField(
            name=member.name,
            type_name=module.type_name(member.ty),
            offset=offset,
            size=field_dtype.itemsize,
            align=field_dtype.alignment,
            dtype=field_dtype,
            is_padding=options.is_padding_field(member.name),
        ))
    return StructDescriptor(
        name=name,
        fields=fields,
        total_size=dtype.itemsize,
        total_align=dtype.alignment,
        is_host_shareable=False,
        has_trailing_dynamic_array=has_dynamic_array_member(module, handle),
    )
