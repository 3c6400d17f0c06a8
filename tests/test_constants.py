"""Tests for overridable pipeline constants and module constants."""

import pytest

from wgslbind.analysis.constants import (
    module_constants, overridable_constants, override_constants_map, override_key,
)
from wgslbind.errors import MissingOverrideConstant
from wgslbind.ir.builder import ModuleBuilder


def _overrides_module():
    b = ModuleBuilder()
    b.override("scale", "f32", id=3, default=1.0)
    b.override("enabled", "bool")
    b.override("samples", "u32", default=4)
    return b.finish()


class TestOverridableConstants:
    def test_keys(self):
        module = _overrides_module()
        assert [override_key(o) for o in module.overrides] == ["3", "enabled", "samples"]

    def test_extraction(self):
        constants = overridable_constants(_overrides_module())
        assert [(c.name, c.key, c.required) for c in constants] == [
            ("scale", "3", False),
            ("enabled", "enabled", True),
            ("samples", "samples", False),
        ]
        assert [c.is_bool for c in constants] == [False, True, False]
        assert constants[0].type_name == "f32"
        assert constants[2].default == 4

    def test_map_flattens_to_floats(self):
        constants = overridable_constants(_overrides_module())
        entries = override_constants_map(constants, {"scale": 2, "enabled": True, "samples": 8})
        assert entries == {"3": 2.0, "enabled": 1.0, "samples": 8.0}
        assert all(isinstance(v, float) for v in entries.values())

    def test_false_bool(self):
        constants = overridable_constants(_overrides_module())
        assert override_constants_map(constants, {"enabled": False}) == {"enabled": 0.0}

    def test_optional_omitted(self):
        constants = overridable_constants(_overrides_module())
        assert override_constants_map(constants, {"enabled": True}) == {"enabled": 1.0}

    def test_required_missing(self):
        constants = overridable_constants(_overrides_module())
        with pytest.raises(MissingOverrideConstant, match="enabled") as exc:
            override_constants_map(constants, {"scale": 1.0})
        assert exc.value.name == "enabled"

    def test_required_none_counts_as_missing(self):
        constants = overridable_constants(_overrides_module())
        with pytest.raises(MissingOverrideConstant):
            override_constants_map(constants, {"enabled": None})

    def test_no_overrides(self):
        assert overridable_constants(ModuleBuilder().finish()) == []


class TestModuleConstants:
    def test_literal_constants_only(self):
        b = ModuleBuilder()
        b.constant("PI", "f32", 3.14159)
        b.constant("MAX_LIGHTS", "u32", 16)
        b.constant("computed", "vec3<f32>")
        constants = module_constants(b.finish())
        assert [(c.name, c.type_name, c.value) for c in constants] == [
            ("PI", "f32", 3.14159),
            ("MAX_LIGHTS", "u32", 16),
        ]
