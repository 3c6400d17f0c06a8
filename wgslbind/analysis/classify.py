"""Classify bound resources into buffer, texture, storage texture and sampler bindings."""

from __future__ import annotations

from wgslbind.analysis.layout import Layouter
from wgslbind.errors import UnsupportedBindingType
from wgslbind.ir.module import Module
from wgslbind.ir.types import (
    AddressSpace, Array, DepthClass, Image, ImageDimension, SampledClass,
    Sampler, Scalar, ScalarKind, StorageAccess, StorageClass, Struct,
)
from wgslbind.reflection.model import (
    BindingKind, BufferBinding, ResourceBinding, SamplerBinding,
    StorageTextureBinding, TextureBinding,
)

_VIEW_DIMENSIONS = {
    (ImageDimension.D1, False): "1d",
    (ImageDimension.D2, False): "2d",
    (ImageDimension.D2, True): "2d-array",
    (ImageDimension.D3, False): "3d",
    (ImageDimension.CUBE, False): "cube",
    (ImageDimension.CUBE, True): "cube-array",
}

_SAMPLE_TYPES = {
    ScalarKind.SINT: "sint",
    ScalarKind.UINT: "uint",
    ScalarKind.FLOAT: "float",
}


def classify_binding(module: Module, binding: ResourceBinding, layouter: Layouter) -> BindingKind:
    inner = binding.type.inner

    if isinstance(inner, (Scalar, Struct, Array)):
        buffer_type, read_only = buffer_binding_type(binding.address_space)
        return BufferBinding(
            type=buffer_type,
            read_only=read_only,
            min_binding_size=layouter.min_binding_size(binding.type_handle),
        )
    if isinstance(inner, Image):
        return image_binding(inner)
    if isinstance(inner, Sampler):
        return SamplerBinding("comparison" if inner.comparison else "filtering")

    raise UnsupportedBindingType(
        f"Failed to classify binding '{binding.name}' of type "
        f"'{module.type_name(binding.type_handle)}'"
    )


def buffer_binding_type(space: AddressSpace) -> tuple[str, bool]:
    """Return ``(buffer type, read_only)`` for a buffer's address space.

    Storage buffers are read-only unless STORE access is granted; LOAD is
    not consulted.
    """
    if space.kind == "uniform":
        return "uniform", False
    if space.kind == "storage":
        return "storage", not (space.access & StorageAccess.STORE)
    raise UnsupportedBindingType(f"Address space '{space}' cannot back a buffer binding")


def image_binding(image: Image) -> BindingKind:
    view_dimension = _VIEW_DIMENSIONS.get((image.dim, image.arrayed))
    if view_dimension is None:
        raise UnsupportedBindingType(
            f"Unsupported texture view dimension: {image.dim.value} (arrayed={image.arrayed})"
        )

    cls = image.cls
    if isinstance(cls, SampledClass):
        sample_type = _SAMPLE_TYPES.get(cls.kind)
        if sample_type is None:
            raise UnsupportedBindingType(f"Unsupported sample type: {cls.kind.value}")
        # Float textures are assumed filterable
        return TextureBinding(sample_type, view_dimension, cls.multi)
    if isinstance(cls, DepthClass):
        return TextureBinding("depth", view_dimension, cls.multi)
    if isinstance(cls, StorageClass):
        return StorageTextureBinding(storage_access(cls.access), cls.format, view_dimension)
    raise UnsupportedBindingType(f"Unknown image class: {type(cls).__name__}")


def storage_access(access: StorageAccess) -> str:
    is_read = bool(access & StorageAccess.LOAD)
    is_write = bool(access & StorageAccess.STORE)
    if is_read and is_write:
        return "read-write"
    if is_read:
        return "read-only"
    if is_write:
        return "write-only"
    raise UnsupportedBindingType("Storage texture has neither read nor write access")
