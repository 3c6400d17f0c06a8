"""Type definitions for the validated shader IR.

Types live in a per-module arena and refer to each other by integer
handle, the same way the validator hands them to us. Every inner type is a
frozen dataclass so identical declarations deduplicate in the arena.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Optional, Union


class ScalarKind(Enum):
    SINT = "sint"
    UINT = "uint"
    FLOAT = "float"
    BOOL = "bool"


class StorageAccess(IntFlag):
    LOAD = 1
    STORE = 2


class ShaderStage(Enum):
    VERTEX = "vertex"
    FRAGMENT = "fragment"
    COMPUTE = "compute"


class ImageDimension(Enum):
    D1 = "1d"
    D2 = "2d"
    D3 = "3d"
    CUBE = "cube"


@dataclass(frozen=True)
class AddressSpace:
    kind: str  # "function", "private", "workgroup", "uniform", "storage", "handle", "push_constant"
    access: StorageAccess = StorageAccess(0)

    @classmethod
    def storage(cls, access: StorageAccess = StorageAccess.LOAD) -> AddressSpace:
        return cls("storage", access)

    def __str__(self):
        if self.kind == "storage":
            return f"storage({_access_name(self.access)})"
        return self.kind


UNIFORM = AddressSpace("uniform")
HANDLE = AddressSpace("handle")
PRIVATE = AddressSpace("private")
WORKGROUP = AddressSpace("workgroup")
FUNCTION = AddressSpace("function")
PUSH_CONSTANT = AddressSpace("push_constant")


def _access_name(access: StorageAccess) -> str:
    if access == StorageAccess.LOAD | StorageAccess.STORE:
        return "read_write"
    if access == StorageAccess.STORE:
        return "write"
    if access == StorageAccess.LOAD:
        return "read"
    return "none"


# --- Inner types ---

@dataclass(frozen=True)
class Scalar:
    kind: ScalarKind
    width: int  # bytes


@dataclass(frozen=True)
class Vector:
    size: int  # 2, 3, 4
    scalar: Scalar


@dataclass(frozen=True)
class Matrix:
    columns: int
    rows: int
    scalar: Scalar


@dataclass(frozen=True)
class Atomic:
    scalar: Scalar


@dataclass(frozen=True)
class Pointer:
    base: int
    space: AddressSpace


@dataclass(frozen=True)
class Array:
    base: int
    size: Optional[int] = None  # None means runtime-sized

    @property
    def is_dynamic(self) -> bool:
        return self.size is None


@dataclass(frozen=True)
class BindingArray:
    base: int
    size: Optional[int] = None


@dataclass(frozen=True)
class BuiltIn:
    name: str


@dataclass(frozen=True)
class Location:
    location: int
    interpolation: Optional[str] = None


Binding = Union[BuiltIn, Location]


@dataclass(frozen=True)
class StructMember:
    name: str
    ty: int
    binding: Optional[Binding] = None


@dataclass(frozen=True)
class Struct:
    members: tuple[StructMember, ...]


@dataclass(frozen=True)
class SampledClass:
    kind: ScalarKind
    multi: bool = False


@dataclass(frozen=True)
class DepthClass:
    multi: bool = False


@dataclass(frozen=True)
class StorageClass:
    format: str
    access: StorageAccess


ImageClass = Union[SampledClass, DepthClass, StorageClass]


@dataclass(frozen=True)
class Image:
    dim: ImageDimension
    arrayed: bool
    cls: ImageClass


@dataclass(frozen=True)
class Sampler:
    comparison: bool = False


TypeInner = Union[
    Scalar, Vector, Matrix, Atomic, Pointer, Array, BindingArray,
    Struct, Image, Sampler,
]


@dataclass(frozen=True)
class Type:
    name: Optional[str]
    inner: TypeInner

    def __str__(self):
        return self.name or type_inner_name(self.inner)


# Singleton scalars
BOOL = Scalar(ScalarKind.BOOL, 4)
I32 = Scalar(ScalarKind.SINT, 4)
U32 = Scalar(ScalarKind.UINT, 4)
I64 = Scalar(ScalarKind.SINT, 8)
U64 = Scalar(ScalarKind.UINT, 8)
F16 = Scalar(ScalarKind.FLOAT, 2)
F32 = Scalar(ScalarKind.FLOAT, 4)
F64 = Scalar(ScalarKind.FLOAT, 8)

# Lookup table: WGSL scalar name -> Scalar
SCALAR_MAP: dict[str, Scalar] = {
    "bool": BOOL,
    "i32": I32, "u32": U32,
    "i64": I64, "u64": U64,
    "f16": F16, "f32": F32, "f64": F64,
}

# Vector/matrix shorthand suffixes, e.g. vec3f, mat4x4h
SCALAR_SUFFIX: dict[str, Scalar] = {
    "f": F32, "h": F16, "i": I32, "u": U32,
}


def scalar_name(scalar: Scalar) -> str:
    for name, s in SCALAR_MAP.items():
        if s == scalar:
            return name
    return f"{scalar.kind.value}{scalar.width * 8}"


def type_inner_name(inner: TypeInner) -> str:
    """Short WGSL-ish spelling of a type without following handles."""
    if isinstance(inner, Scalar):
        return scalar_name(inner)
    if isinstance(inner, Vector):
        return f"vec{inner.size}<{scalar_name(inner.scalar)}>"
    if isinstance(inner, Matrix):
        return f"mat{inner.columns}x{inner.rows}<{scalar_name(inner.scalar)}>"
    if isinstance(inner, Atomic):
        return f"atomic<{scalar_name(inner.scalar)}>"
    if isinstance(inner, Sampler):
        return "sampler_comparison" if inner.comparison else "sampler"
    if isinstance(inner, Image):
        return _image_name(inner)
    return type(inner).__name__.lower()


_SAMPLED_SCALARS = {ScalarKind.FLOAT: "f32", ScalarKind.SINT: "i32", ScalarKind.UINT: "u32"}


def _image_name(image: Image) -> str:
    arrayed = "_array" if image.arrayed else ""
    cls = image.cls
    if isinstance(cls, StorageClass):
        return f"texture_storage_{image.dim.value}{arrayed}<{cls.format}, {_access_name(cls.access)}>"
    multi = "multisampled_" if cls.multi else ""
    if isinstance(cls, DepthClass):
        return f"texture_depth_{multi}{image.dim.value}{arrayed}"
    return f"texture_{multi}{image.dim.value}{arrayed}<{_SAMPLED_SCALARS.get(cls.kind, cls.kind.value)}>"
