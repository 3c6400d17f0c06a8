"""Tests for bind group extraction and resource classification."""

import pytest

from wgslbind.analysis.classify import (
    buffer_binding_type, classify_binding, storage_access,
)
from wgslbind.analysis.groups import get_group_data
from wgslbind.analysis.layout import Layouter
from wgslbind.errors import DuplicateBinding, NonConsecutiveGroups, UnsupportedBindingType
from wgslbind.ir.builder import ModuleBuilder
from wgslbind.ir.types import AddressSpace, StorageAccess
from wgslbind.reflection.model import (
    BufferBinding, SamplerBinding, ShaderStages, StorageTextureBinding,
    TextureBinding,
)


def _module_with(*globals_, stages=("vertex", "fragment")):
    """Module with ``(name, type, group, binding[, space[, access]])`` globals."""
    b = ModuleBuilder()
    b.struct("Uniforms", [("mvp", "mat4x4<f32>"), ("tint", "vec4<f32>")])
    for g in globals_:
        name, ty, group, binding = g[:4]
        space = g[4] if len(g) > 4 else None
        access = g[5] if len(g) > 5 else None
        b.global_var(name, ty, space=space, access=access, group=group, binding=binding)
    for i, stage in enumerate(stages):
        b.entry_point(f"main{i}", stage)
    return b.finish()


def _classify(ty, space=None, access=None):
    module = _module_with(("res", ty, 0, 0, space, access))
    binding = get_group_data(module)[0].bindings[0]
    return classify_binding(module, binding, Layouter(module))


# ===========================================================================
# Group extraction
# ===========================================================================

class TestGroups:
    def test_consecutive_groups(self):
        module = _module_with(
            ("a", "f32", 0, 0, "uniform"),
            ("b", "f32", 1, 0, "uniform"),
            ("c", "f32", 1, 1, "uniform"),
            ("d", "f32", 2, 0, "uniform"),
        )
        groups = get_group_data(module)
        assert list(groups) == [0, 1, 2]
        assert groups[1].entry_names() == ["b", "c"]

    def test_groups_sorted_by_index(self):
        module = _module_with(
            ("late", "f32", 1, 0, "uniform"),
            ("early", "f32", 0, 0, "uniform"),
        )
        assert list(get_group_data(module)) == [0, 1]

    def test_bindings_keep_declaration_order(self):
        module = _module_with(
            ("second", "f32", 0, 3, "uniform"),
            ("first", "f32", 0, 1, "uniform"),
        )
        assert get_group_data(module)[0].entry_names() == ["second", "first"]

    def test_gap_rejected(self):
        module = _module_with(("a", "f32", 0, 0, "uniform"), ("b", "f32", 2, 0, "uniform"))
        with pytest.raises(NonConsecutiveGroups) as exc:
            get_group_data(module)
        assert exc.value.groups == [0, 2]

    def test_must_start_at_zero(self):
        module = _module_with(("a", "f32", 1, 0, "uniform"))
        with pytest.raises(NonConsecutiveGroups):
            get_group_data(module)

    def test_duplicate_binding(self):
        module = _module_with(("a", "f32", 0, 2, "uniform"), ("b", "f32", 0, 2, "uniform"))
        with pytest.raises(DuplicateBinding) as exc:
            get_group_data(module)
        assert (exc.value.binding, exc.value.group) == (2, 0)

    def test_unbound_globals_skipped(self):
        b = ModuleBuilder()
        b.global_var("scratch", "array<f32, 64>", space="workgroup")
        b.global_var("u", "f32", space="uniform", group=0, binding=0)
        groups = get_group_data(b.finish())
        assert groups[0].entry_names() == ["u"]

    def test_empty_module(self):
        assert get_group_data(ModuleBuilder().finish()) == {}

    def test_visibility_is_module_stages(self):
        module = _module_with(("a", "f32", 0, 0, "uniform"))
        binding = get_group_data(module)[0].bindings[0]
        assert binding.visible_stages == ShaderStages.VERTEX | ShaderStages.FRAGMENT

    def test_compute_visibility(self):
        module = _module_with(("a", "f32", 0, 0, "uniform"), stages=("compute",))
        binding = get_group_data(module)[0].bindings[0]
        assert binding.visible_stages == ShaderStages.COMPUTE

    def test_binding_type_name(self):
        module = _module_with(("lights", "array<vec4<f32>, 8>", 0, 0, "uniform"))
        assert get_group_data(module)[0].bindings[0].type_name == "array<vec4<f32>, 8>"


# ===========================================================================
# Buffers
# ===========================================================================

class TestBufferClassification:
    def test_uniform_struct(self):
        kind = _classify("Uniforms", "uniform")
        assert kind == BufferBinding("uniform", read_only=False, min_binding_size=80)

    def test_storage_read_only(self):
        kind = _classify("array<f32, 4>", "storage", "read")
        assert kind.read_only
        assert kind.wgpu_type == "read-only-storage"
        assert kind.min_binding_size == 16

    def test_storage_read_write(self):
        kind = _classify("array<f32, 4>", "storage", "read_write")
        assert not kind.read_only
        assert kind.wgpu_type == "storage"

    def test_storage_write_only_is_not_read_only(self):
        read_only = buffer_binding_type(AddressSpace.storage(StorageAccess.STORE))[1]
        assert read_only is False

    def test_runtime_sized_has_no_min_size(self):
        kind = _classify("array<u32>", "storage", "read_write")
        assert kind.min_binding_size is None

    def test_scalar_uniform(self):
        assert _classify("u32", "uniform").min_binding_size == 4

    def test_vector_global_unsupported(self):
        with pytest.raises(UnsupportedBindingType):
            _classify("vec4<f32>", "uniform")

    def test_atomic_unsupported(self):
        with pytest.raises(UnsupportedBindingType):
            _classify("atomic<u32>", "storage", "read_write")

    def test_buffer_in_private_space(self):
        with pytest.raises(UnsupportedBindingType):
            buffer_binding_type(AddressSpace("private"))


# ===========================================================================
# Textures and samplers
# ===========================================================================

class TestTextureClassification:
    @pytest.mark.parametrize("ty, expected", [
        ("texture_2d<f32>", TextureBinding("float", "2d")),
        ("texture_1d<i32>", TextureBinding("sint", "1d")),
        ("texture_2d_array<u32>", TextureBinding("uint", "2d-array")),
        ("texture_3d<f32>", TextureBinding("float", "3d")),
        ("texture_cube<f32>", TextureBinding("float", "cube")),
        ("texture_cube_array<f32>", TextureBinding("float", "cube-array")),
        ("texture_multisampled_2d<f32>", TextureBinding("float", "2d", multisampled=True)),
        ("texture_depth_2d", TextureBinding("depth", "2d")),
        ("texture_depth_cube", TextureBinding("depth", "cube")),
    ])
    def test_sampled(self, ty, expected):
        assert _classify(ty) == expected

    def test_storage_texture(self):
        kind = _classify("texture_storage_2d<rgba8unorm, write>")
        assert kind == StorageTextureBinding("write-only", "rgba8unorm", "2d")

    def test_storage_texture_access(self):
        assert storage_access(StorageAccess.LOAD) == "read-only"
        assert storage_access(StorageAccess.STORE) == "write-only"
        assert storage_access(StorageAccess.LOAD | StorageAccess.STORE) == "read-write"
        with pytest.raises(UnsupportedBindingType):
            storage_access(StorageAccess(0))

    def test_arrayed_1d_unsupported(self):
        with pytest.raises(UnsupportedBindingType, match="view dimension"):
            _classify("texture_1d_array<f32>")

    def test_samplers(self):
        assert _classify("sampler") == SamplerBinding("filtering")
        assert _classify("sampler_comparison") == SamplerBinding("comparison")

    def test_binding_array_unsupported(self):
        with pytest.raises(UnsupportedBindingType):
            _classify("binding_array<texture_2d<f32>, 4>")
