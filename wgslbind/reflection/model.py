"""Binding model produced by reflection.

Everything here is plain data handed to an emitter. The ``layout_entry``,
``layout_entries`` and ``buffer_layout`` helpers return dicts in the shape
wgpu-py's ``create_bind_group_layout`` / ``VertexState(buffers=...)`` take,
so the model can drive pipeline setup directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Any, Optional, Union

import numpy as np

from wgslbind.ir.types import AddressSpace, ShaderStage, Type


class ShaderStages(IntFlag):
    NONE = 0
    VERTEX = 1
    FRAGMENT = 2
    COMPUTE = 4

    @classmethod
    def from_stage(cls, stage: ShaderStage) -> ShaderStages:
        return _STAGE_FLAGS[stage]


_STAGE_FLAGS = {
    ShaderStage.VERTEX: ShaderStages.VERTEX,
    ShaderStage.FRAGMENT: ShaderStages.FRAGMENT,
    ShaderStage.COMPUTE: ShaderStages.COMPUTE,
}


# --- Binding kinds ---

@dataclass(frozen=True)
class BufferBinding:
    type: str  # "uniform" or "storage"
    read_only: bool = False
    has_dynamic_offset: bool = False
    min_binding_size: Optional[int] = None

    @property
    def wgpu_type(self) -> str:
        if self.type == "storage" and self.read_only:
            return "read-only-storage"
        return self.type


@dataclass(frozen=True)
class TextureBinding:
    sample_type: str  # "float", "sint", "uint", "depth"
    view_dimension: str
    multisampled: bool = False
    filterable: bool = True


@dataclass(frozen=True)
class StorageTextureBinding:
    access: str  # "read-only", "write-only", "read-write"
    format: str
    view_dimension: str


@dataclass(frozen=True)
class SamplerBinding:
    type: str  # "filtering" or "comparison"


BindingKind = Union[BufferBinding, TextureBinding, StorageTextureBinding, SamplerBinding]


def binding_kind_entry(kind: BindingKind) -> dict[str, Any]:
    """The type-specific part of a bind group layout entry."""
    if isinstance(kind, BufferBinding):
        return {"buffer": {
            "type": kind.wgpu_type,
            "has_dynamic_offset": kind.has_dynamic_offset,
            "min_binding_size": kind.min_binding_size or 0,
        }}
    if isinstance(kind, TextureBinding):
        sample_type = kind.sample_type
        if sample_type == "float" and not kind.filterable:
            sample_type = "unfilterable-float"
        return {"texture": {
            "sample_type": sample_type,
            "view_dimension": kind.view_dimension,
            "multisampled": kind.multisampled,
        }}
    if isinstance(kind, StorageTextureBinding):
        return {"storage_texture": {
            "access": kind.access,
            "format": kind.format,
            "view_dimension": kind.view_dimension,
        }}
    if isinstance(kind, SamplerBinding):
        return {"sampler": {"type": kind.type}}
    raise TypeError(f"Unknown binding kind: {type(kind)}")


# --- Groups ---

@dataclass(frozen=True)
class ResourceBinding:
    name: str
    binding_index: int
    type_handle: int
    type: Type
    address_space: AddressSpace
    visible_stages: ShaderStages
    kind: Optional[BindingKind] = None  # filled in by classification
    type_name: str = ""

    def layout_entry(self) -> dict[str, Any]:
        if self.kind is None:
            raise ValueError(f"Binding '{self.name}' has not been classified")
        entry = {"binding": self.binding_index, "visibility": int(self.visible_stages)}
        entry.update(binding_kind_entry(self.kind))
        return entry


@dataclass
class GroupData:
    group: int
    bindings: list[ResourceBinding] = field(default_factory=list)

    def layout_entries(self) -> list[dict[str, Any]]:
        return [b.layout_entry() for b in self.bindings]

    def entry_names(self) -> list[str]:
        return [b.name for b in self.bindings]

    def find(self, name: str) -> Optional[ResourceBinding]:
        for b in self.bindings:
            if b.name == name:
                return b
        return None


# --- Structs ---

@dataclass(frozen=True)
class StructField:
    name: str
    type_name: str
    offset: int
    size: int
    align: int
    dtype: Optional[np.dtype] = None  # None for runtime-sized arrays
    is_padding: bool = False


@dataclass
class StructDescriptor:
    name: str
    fields: list[StructField]
    total_size: int
    total_align: int
    is_host_shareable: bool
    has_trailing_dynamic_array: bool = False

    @property
    def init_fields(self) -> list[StructField]:
        """Fields a caller provides values for; padding members are left out."""
        return [f for f in self.fields if not f.is_padding]

    def numpy_dtype(self) -> np.dtype:
        """A structured dtype matching the byte layout of this struct.

        A trailing runtime-sized array is not part of the dtype; the itemsize
        is then the offset at which the array starts.
        """
        fields = [f for f in self.fields if f.dtype is not None]
        itemsize = self.total_size
        if self.has_trailing_dynamic_array:
            itemsize = self.fields[-1].offset
        return np.dtype({
            "names": [f.name for f in fields],
            "formats": [f.dtype for f in fields],
            "offsets": [f.offset for f in fields],
            "itemsize": itemsize,
        })

    def pack(self, **values) -> bytes:
        """Serialize field values into the struct's bytes, zero-filling the rest."""
        dtype = self.numpy_dtype()
        known = {f.name for f in self.init_fields if f.dtype is not None}
        record = np.zeros((), dtype=dtype)
        for name, value in values.items():
            if name not in known:
                raise KeyError(f"'{name}' is not an initializable field of {self.name}")
            record[name] = _fit(value, dtype.fields[name][0])
        return record.tobytes()


def _fit(value, field_dtype: np.dtype):
    # Pad short vectors/matrix columns to the padded field shape (e.g. vec3 in array stride 16)
    if not field_dtype.shape:
        return value
    base, shape = field_dtype.base, field_dtype.shape
    arr = np.asarray(value, dtype=base)
    if arr.shape == shape or arr.ndim != len(shape):
        return arr
    if any(a > s for a, s in zip(arr.shape, shape)):
        return arr
    padded = np.zeros(shape, dtype=base)
    padded[tuple(slice(0, n) for n in arr.shape)] = arr
    return padded


# --- Vertex inputs ---

class VertexFormat(str, Enum):
    UINT8X2 = "uint8x2"
    UINT8X4 = "uint8x4"
    SINT8X2 = "sint8x2"
    SINT8X4 = "sint8x4"
    UINT16X2 = "uint16x2"
    UINT16X4 = "uint16x4"
    SINT16X2 = "sint16x2"
    SINT16X4 = "sint16x4"
    FLOAT32 = "float32"
    FLOAT32X2 = "float32x2"
    FLOAT32X3 = "float32x3"
    FLOAT32X4 = "float32x4"
    UINT32 = "uint32"
    UINT32X2 = "uint32x2"
    UINT32X3 = "uint32x3"
    UINT32X4 = "uint32x4"
    SINT32 = "sint32"
    SINT32X2 = "sint32x2"
    SINT32X3 = "sint32x3"
    SINT32X4 = "sint32x4"
    FLOAT64 = "float64"
    FLOAT64X2 = "float64x2"
    FLOAT64X3 = "float64x3"
    FLOAT64X4 = "float64x4"

    @property
    def dtype(self) -> np.dtype:
        return VERTEX_FORMAT_DTYPES[self]


VERTEX_FORMAT_DTYPES: dict[VertexFormat, np.dtype] = {
    VertexFormat.UINT8X2: np.dtype(("u1", (2,))),
    VertexFormat.UINT8X4: np.dtype(("u1", (4,))),
    VertexFormat.SINT8X2: np.dtype(("i1", (2,))),
    VertexFormat.SINT8X4: np.dtype(("i1", (4,))),
    VertexFormat.UINT16X2: np.dtype(("<u2", (2,))),
    VertexFormat.UINT16X4: np.dtype(("<u2", (4,))),
    VertexFormat.SINT16X2: np.dtype(("<i2", (2,))),
    VertexFormat.SINT16X4: np.dtype(("<i2", (4,))),
    VertexFormat.FLOAT32: np.dtype("<f4"),
    VertexFormat.FLOAT32X2: np.dtype(("<f4", (2,))),
    VertexFormat.FLOAT32X3: np.dtype(("<f4", (3,))),
    VertexFormat.FLOAT32X4: np.dtype(("<f4", (4,))),
    VertexFormat.UINT32: np.dtype("<u4"),
    VertexFormat.UINT32X2: np.dtype(("<u4", (2,))),
    VertexFormat.UINT32X3: np.dtype(("<u4", (3,))),
    VertexFormat.UINT32X4: np.dtype(("<u4", (4,))),
    VertexFormat.SINT32: np.dtype("<i4"),
    VertexFormat.SINT32X2: np.dtype(("<i4", (2,))),
    VertexFormat.SINT32X3: np.dtype(("<i4", (3,))),
    VertexFormat.SINT32X4: np.dtype(("<i4", (4,))),
    VertexFormat.FLOAT64: np.dtype("<f8"),
    VertexFormat.FLOAT64X2: np.dtype(("<f8", (2,))),
    VertexFormat.FLOAT64X3: np.dtype(("<f8", (3,))),
    VertexFormat.FLOAT64X4: np.dtype(("<f8", (4,))),
}


@dataclass(frozen=True)
class VertexAttribute:
    name: str
    location: int
    offset: int
    format: VertexFormat


@dataclass
class VertexInputLayout:
    struct_name: str
    attributes: list[VertexAttribute]
    array_stride: int

    def buffer_layout(self, step_mode: str = "vertex") -> dict[str, Any]:
        return {
            "array_stride": self.array_stride,
            "step_mode": step_mode,
            "attributes": [
                {"format": a.format.value, "offset": a.offset, "shader_location": a.location}
                for a in self.attributes
            ],
        }

    def numpy_dtype(self) -> np.dtype:
        """Interleaved record dtype for filling a vertex buffer of this layout."""
        return np.dtype({
            "names": [a.name for a in self.attributes],
            "formats": [a.format.dtype for a in self.attributes],
            "offsets": [a.offset for a in self.attributes],
            "itemsize": self.array_stride,
        })


# --- Constants and entry points ---

@dataclass(frozen=True)
class OverridableConstant:
    name: str
    key: str
    has_default: bool
    type_name: str = "f32"
    is_bool: bool = False
    default: Any = None

    @property
    def required(self) -> bool:
        return not self.has_default


@dataclass(frozen=True)
class ModuleConstant:
    name: str
    type_name: str
    value: Any


@dataclass(frozen=True)
class EntryPointInfo:
    name: str
    stage: ShaderStage
    target_count: int = 0
    workgroup_size: tuple[int, int, int] = (0, 0, 0)


@dataclass
class BindingModel:
    module_name: str
    groups: dict[int, GroupData]
    visibility: ShaderStages
    entry_points: list[EntryPointInfo] = field(default_factory=list)
    structs: list[StructDescriptor] = field(default_factory=list)
    vertex_inputs: list[VertexInputLayout] = field(default_factory=list)
    overridable_constants: list[OverridableConstant] = field(default_factory=list)
    constants: list[ModuleConstant] = field(default_factory=list)

    @property
    def num_groups(self) -> int:
        return len(self.groups)

    @property
    def is_compute(self) -> bool:
        return self.visibility == ShaderStages.COMPUTE

    def bind_group_layouts(self) -> list[list[dict[str, Any]]]:
        return [self.groups[i].layout_entries() for i in sorted(self.groups)]

    def struct(self, name: str) -> Optional[StructDescriptor]:
        for s in self.structs:
            if s.name == name:
                return s
        return None

    def binding(self, name: str) -> Optional[ResourceBinding]:
        for group in self.groups.values():
            found = group.find(name)
            if found is not None:
                return found
        return None
