"""Vertex buffer layouts from the vertex entry point's struct arguments."""

from __future__ import annotations

import numpy as np

from wgslbind.errors import UnsupportedVertexFormat
from wgslbind.ir.module import Module
from wgslbind.ir.types import Location, ScalarKind, ShaderStage, Struct, Type, Scalar, Vector
from wgslbind.reflection.model import (
    VertexAttribute, VertexFormat, VertexInputLayout, VERTEX_FORMAT_DTYPES,
)

_SINT = ScalarKind.SINT
_UINT = ScalarKind.UINT
_FLOAT = ScalarKind.FLOAT

# (vector size or None for scalars, kind, width) -> format
_VERTEX_FORMATS: dict[tuple, VertexFormat] = {
    (None, _SINT, 4): VertexFormat.SINT32,
    (None, _UINT, 4): VertexFormat.UINT32,
    (None, _FLOAT, 4): VertexFormat.FLOAT32,
    (None, _FLOAT, 8): VertexFormat.FLOAT64,
    (2, _SINT, 1): VertexFormat.SINT8X2,
    (2, _UINT, 1): VertexFormat.UINT8X2,
    (2, _SINT, 2): VertexFormat.SINT16X2,
    (2, _UINT, 2): VertexFormat.UINT16X2,
    (2, _UINT, 4): VertexFormat.UINT32X2,
    (2, _SINT, 4): VertexFormat.SINT32X2,
    (2, _FLOAT, 4): VertexFormat.FLOAT32X2,
    (2, _FLOAT, 8): VertexFormat.FLOAT64X2,
    (3, _UINT, 4): VertexFormat.UINT32X3,
    (3, _SINT, 4): VertexFormat.SINT32X3,
    (3, _FLOAT, 4): VertexFormat.FLOAT32X3,
    (3, _FLOAT, 8): VertexFormat.FLOAT64X3,
    (4, _SINT, 1): VertexFormat.SINT8X4,
    (4, _UINT, 1): VertexFormat.UINT8X4,
    (4, _SINT, 2): VertexFormat.SINT16X4,
    (4, _UINT, 2): VertexFormat.UINT16X4,
    (4, _UINT, 4): VertexFormat.UINT32X4,
    (4, _SINT, 4): VertexFormat.SINT32X4,
    (4, _FLOAT, 4): VertexFormat.FLOAT32X4,
    (4, _FLOAT, 8): VertexFormat.FLOAT64X4,
}


def vertex_format(ty: Type) -> VertexFormat:
    """Not every WGSL type can be a vertex attribute; anything else is rejected."""
    inner = ty.inner
    if isinstance(inner, Scalar):
        key = (None, inner.kind, inner.width)
    elif isinstance(inner, Vector):
        key = (inner.size, inner.scalar.kind, inner.scalar.width)
    else:
        key = None
    fmt = _VERTEX_FORMATS.get(key) if key is not None else None
    if fmt is None:
        raise UnsupportedVertexFormat(f"Type '{ty}' cannot be used as a vertex attribute")
    return fmt


def vertex_input_layouts(module: Module) -> list[VertexInputLayout]:
    """One layout per struct argument of the first vertex entry point.

    Builtin members are skipped. Attribute offsets follow the natural
    aligned layout of the located members in declaration order.
    """
    vertex_entry = next(
        (ep for ep in module.entry_points if ep.stage == ShaderStage.VERTEX), None,
    )
    if vertex_entry is None:
        return []

    layouts = []
    for argument in vertex_entry.arguments:
        # An argument has to have a binding unless it is a struct
        if argument.binding is not None:
            continue
        arg_type = module.types[argument.ty]
        if not isinstance(arg_type.inner, Struct):
            continue

        located = [
            (m.binding.location, m.name, vertex_format(module.types[m.ty]))
            for m in arg_type.inner.members
            if isinstance(m.binding, Location)
        ]
        dtype = np.dtype({
            "names": [name for _, name, _ in located],
            "formats": [VERTEX_FORMAT_DTYPES[fmt] for _, _, fmt in located],
        }, align=True)

        attributes = [
            VertexAttribute(name, location, dtype.fields[name][1], fmt)
            for location, name, fmt in located
        ]
        layouts.append(VertexInputLayout(
            arg_type.name or f"VertexInput{argument.ty}", attributes, dtype.itemsize,
        ))
    return layouts
