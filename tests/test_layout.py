"""Tests for struct layout, host-shareability and struct descriptors."""

import numpy as np
import pytest

from wgslbind.analysis.layout import (
    Layouter, TypeLayout, align_up, host_shareable_types, natural_dtype,
    public_struct_types, struct_descriptors,
)
from wgslbind.ir.builder import ModuleBuilder
from wgslbind.options import ReflectionOptions


def _layout(*members, options=None):
    """Build a single struct ``S`` and return (module, handle, layouter)."""
    b = ModuleBuilder()
    handle = b.struct("S", list(members))
    module = b.finish()
    return module, handle, Layouter(module, options)


def _descriptor(module, name, options=None):
    for d in struct_descriptors(module, options):
        if d.name == name:
            return d
    return None


def _uniform_struct(name, members):
    b = ModuleBuilder()
    b.struct(name, members)
    b.global_var("u", name, space="uniform", group=0, binding=0)
    return b.finish()


# ===========================================================================
# Primitive layout rules
# ===========================================================================

class TestPrimitiveLayout:
    def test_align_up(self):
        assert align_up(0, 16) == 0
        assert align_up(4, 16) == 16
        assert align_up(16, 16) == 16
        assert align_up(13, 8) == 16

    @pytest.mark.parametrize("ty, size, align", [
        ("f32", 4, 4),
        ("f16", 2, 2),
        ("atomic<u32>", 4, 4),
        ("vec2<f32>", 8, 8),
        ("vec3<f32>", 12, 16),
        ("vec4<f32>", 16, 16),
        ("vec3<f16>", 6, 8),
        ("mat4x4<f32>", 64, 16),
        ("mat3x3<f32>", 48, 16),
        ("mat2x2<f32>", 16, 8),
        ("array<vec3<f32>, 4>", 64, 16),
        ("array<f32, 3>", 12, 4),
        ("texture_2d<f32>", 0, 1),
    ])
    def test_type_layout(self, ty, size, align):
        b = ModuleBuilder()
        handle = b.type(ty)
        assert Layouter(b.finish())[handle] == TypeLayout(size, align)


# ===========================================================================
# Struct layout
# ===========================================================================

class TestStructLayout:
    def test_vec3_after_scalar(self):
        module, handle, layouter = _layout(("a", "f32"), ("b", "vec3<f32>"))
        assert layouter.member_offsets(handle) == [0, 16]
        assert layouter[handle] == TypeLayout(32, 16)

    def test_scalar_packs_after_vec3(self):
        module, handle, layouter = _layout(("a", "vec3<f32>"), ("b", "f32"))
        assert layouter.member_offsets(handle) == [0, 12]
        assert layouter[handle] == TypeLayout(16, 16)

    def test_nested_struct(self):
        b = ModuleBuilder()
        inner = b.struct("Inner", [("x", "f32"), ("y", "vec2<f32>")])
        outer = b.struct("Outer", [("flag", "u32"), ("inner", "Inner")])
        layouter = Layouter(b.finish())
        assert layouter[inner] == TypeLayout(16, 8)
        assert layouter.member_offsets(outer) == [0, 8]
        assert layouter[outer] == TypeLayout(24, 8)

    def test_runtime_sized_array(self):
        module, handle, layouter = _layout(("count", "u32"), ("items", "array<vec4<f32>>"))
        assert layouter.member_offsets(handle) == [0, 16]
        assert not layouter.is_statically_sized(handle)
        assert layouter.min_binding_size(handle) is None

    def test_min_binding_size(self):
        module, handle, layouter = _layout(("m", "mat4x4<f32>"), ("t", "f32"))
        assert layouter.min_binding_size(handle) == 80

    def test_alignment_override(self):
        options = ReflectionOptions(struct_alignment_overrides=[("^S$", 64)])
        module, handle, layouter = _layout(("x", "f32"), options=options)
        assert layouter[handle] == TypeLayout(64, 64)

    def test_alignment_override_must_be_power_of_two(self):
        with pytest.raises(ValueError, match="power of two"):
            ReflectionOptions(struct_alignment_overrides=[("S", 12)])


# ===========================================================================
# numpy views
# ===========================================================================

class TestHostDtype:
    def test_struct_dtype(self):
        module, handle, layouter = _layout(("a", "f32"), ("b", "vec3<f32>"))
        dtype = layouter.host_dtype(handle)
        assert dtype.itemsize == 32
        assert dtype.fields["b"][1] == 16
        assert dtype.fields["b"][0].shape == (3,)

    def test_matrix_columns_padded(self):
        b = ModuleBuilder()
        handle = b.type("mat3x3<f32>")
        dtype = Layouter(b.finish()).host_dtype(handle)
        assert dtype.shape == (3, 4)
        assert dtype.itemsize == 48

    def test_vec3_array_elements_padded(self):
        b = ModuleBuilder()
        handle = b.type("array<vec3<f32>, 4>")
        dtype = Layouter(b.finish()).host_dtype(handle)
        assert dtype.shape == (4, 4)
        assert dtype.itemsize == 64

    def test_runtime_array_has_no_dtype(self):
        b = ModuleBuilder()
        handle = b.type("array<f32>")
        assert Layouter(b.finish()).host_dtype(handle) is None

    def test_natural_dtype(self):
        b = ModuleBuilder()
        handle = b.struct("V", [("pos", "vec3<f32>"), ("uv", "vec2<f32>")])
        dtype = natural_dtype(b.finish(), handle)
        assert dtype.fields["uv"][1] == 12
        assert dtype.itemsize == 20


# ===========================================================================
# Host-shareability
# ===========================================================================

class TestHostShareable:
    def _module(self):
        b = ModuleBuilder()
        b.struct("Material", [("color", "vec4<f32>")])
        b.struct("Scene", [("material", "Material"), ("time", "f32")])
        b.struct("VsIn", [("pos", "vec3<f32>", 0)])
        b.struct("VsOut", [("pos", "vec4<f32>", "@builtin(position)")])
        b.struct("Unused", [("x", "f32")])
        b.global_var("scene", "Scene", space="uniform", group=0, binding=0)
        b.entry_point("vs", "vertex", arguments=[("v", "VsIn")], result="VsOut")
        return b.finish()

    def test_reachability(self):
        module = self._module()
        shareable = host_shareable_types(module)
        assert module.find_type("Scene") in shareable
        assert module.find_type("Material") in shareable
        assert module.find_type("VsIn") not in shareable
        assert module.find_type("Unused") not in shareable

    def test_public_structs(self):
        module = self._module()
        public = public_struct_types(module, host_shareable_types(module))
        assert [module.types[h].name for h in public] == ["Material", "Scene", "VsIn"]

    def test_struct_both_argument_and_result_is_skipped(self):
        b = ModuleBuilder()
        b.struct("Io", [("x", "vec4<f32>", 0)])
        b.entry_point("vs", "vertex", arguments=[("io", "Io")], result="Io")
        module = b.finish()
        assert public_struct_types(module, host_shareable_types(module)) == []

    def test_pointer_and_array_edges_followed(self):
        b = ModuleBuilder()
        b.struct("Node", [("value", "f32")])
        b.global_var("nodes", "array<Node>", space="storage", group=0, binding=0)
        b.global_var("ptr_a", "ptr<storage, array<Node>>", space="private")
        module = b.finish()
        assert module.find_type("Node") in host_shareable_types(module)


# ===========================================================================
# Struct descriptors
# ===========================================================================

class TestStructDescriptors:
    def test_host_struct(self):
        module = _uniform_struct("Globals", [("time", "f32"), ("light_dir", "vec3<f32>")])
        d = _descriptor(module, "Globals")
        assert d.is_host_shareable
        assert [(f.name, f.offset, f.size, f.align) for f in d.fields] == [
            ("time", 0, 4, 4), ("light_dir", 16, 12, 16),
        ]
        assert (d.total_size, d.total_align) == (32, 16)
        assert d.fields[1].type_name == "vec3<f32>"

    def test_vertex_struct_natural_layout(self):
        b = ModuleBuilder()
        b.struct("VsIn", [("pos", "vec3<f32>", 0), ("uv", "vec2<f32>", 1)])
        b.entry_point("vs", "vertex", arguments=[("v", "VsIn")])
        d = _descriptor(b.finish(), "VsIn")
        assert not d.is_host_shareable
        assert [f.offset for f in d.fields] == [0, 12]
        assert (d.total_size, d.total_align) == (20, 4)

    def test_padding_fields(self):
        options = ReflectionOptions(padding_field_patterns=["^_pad"])
        module = _uniform_struct("P", [("x", "f32"), ("_pad0", "vec3<f32>")])
        d = _descriptor(module, "P", options)
        assert [f.is_padding for f in d.fields] == [False, True]
        assert [f.name for f in d.init_fields] == ["x"]

    def test_explicit_override_skips_struct(self):
        options = ReflectionOptions(explicit_struct_type_overrides={"Globals": "MyGlobals"})
        module = _uniform_struct("Globals", [("time", "f32")])
        assert _descriptor(module, "Globals", options) is None

    def test_trailing_dynamic_array(self):
        b = ModuleBuilder()
        b.struct("Particles", [("count", "u32"), ("items", "array<vec4<f32>>")])
        b.global_var("particles", "Particles", space="storage", group=0, binding=0)
        d = _descriptor(b.finish(), "Particles")
        assert d.has_trailing_dynamic_array
        assert d.fields[1].dtype is None
        assert d.numpy_dtype().itemsize == 16
        assert d.numpy_dtype().names == ("count",)


class TestPack:
    def test_pack_zero_fills_padding(self):
        module = _uniform_struct("Globals", [("time", "f32"), ("light_dir", "vec3<f32>")])
        data = _descriptor(module, "Globals").pack(time=1.5, light_dir=[1.0, 2.0, 3.0])
        assert len(data) == 32
        assert np.frombuffer(data, dtype="<f4").tolist() == [1.5, 0, 0, 0, 1, 2, 3, 0]

    def test_pack_pads_vec3_array(self):
        module = _uniform_struct("Lights", [("positions", "array<vec3<f32>, 2>")])
        data = _descriptor(module, "Lights").pack(positions=[[1, 2, 3], [4, 5, 6]])
        assert np.frombuffer(data, dtype="<f4").tolist() == [1, 2, 3, 0, 4, 5, 6, 0]

    def test_pack_vec4_array(self):
        module = _uniform_struct("Palette", [("colors", "array<vec4<f32>, 2>")])
        descriptor = _descriptor(module, "Palette")
        assert descriptor.numpy_dtype().fields["colors"][0].shape == (2, 4)
        data = descriptor.pack(colors=[[1, 2, 3, 4], [5, 6, 7, 8]])
        assert np.frombuffer(data, dtype="<f4").tolist() == [1, 2, 3, 4, 5, 6, 7, 8]

    def test_pack_matrix_array(self):
        module = _uniform_struct("Bones", [("joints", "array<mat2x2<f32>, 2>")])
        data = _descriptor(module, "Bones").pack(joints=[[[1, 2], [3, 4]], [[5, 6], [7, 8]]])
        assert len(data) == 32
        assert np.frombuffer(data, dtype="<f4").tolist() == [1, 2, 3, 4, 5, 6, 7, 8]

    def test_pack_rejects_padding_field(self):
        options = ReflectionOptions(padding_field_patterns=["^_pad"])
        module = _uniform_struct("P", [("x", "f32"), ("_pad0", "f32")])
        with pytest.raises(KeyError):
            _descriptor(module, "P", options).pack(_pad0=1.0)

    def test_pack_defaults_to_zero(self):
        module = _uniform_struct("G", [("a", "u32"), ("b", "u32")])
        data = _descriptor(module, "G").pack(b=7)
        assert np.frombuffer(data, dtype="<u4").tolist() == [0, 7]
