"""JSON dump of binding models.

Mirrors the per-shader reflection sidecar: a plain dict per module that
runtimes or debugging tools can read without importing this package.
"""

from __future__ import annotations
import json
from typing import Any, Iterable

from wgslbind.reflection.model import BindingModel, StructDescriptor


def model_to_dict(model: BindingModel) -> dict[str, Any]:
    return {
        "version": 1,
        "module": model.module_name,
        "visibility": int(model.visibility),
        "entry_points": [
            {
                "name": ep.name,
                "stage": ep.stage.value,
                "target_count": ep.target_count,
                "workgroup_size": list(ep.workgroup_size),
            }
            for ep in model.entry_points
        ],
        "bind_groups": {
            str(group_no): [
                dict(b.layout_entry(), name=b.name, type=b.type_name or str(b.type))
                for b in group.bindings
            ]
            for group_no, group in model.groups.items()
        },
        "structs": [_struct_to_dict(s) for s in model.structs],
        "vertex_inputs": [
            dict(v.buffer_layout(), struct=v.struct_name) for v in model.vertex_inputs
        ],
        "overridable_constants": [
            {"name": c.name, "key": c.key, "type": c.type_name, "required": c.required}
            for c in model.overridable_constants
        ],
        "constants": [
            {"name": c.name, "type": c.type_name, "value": c.value} for c in model.constants
        ],
    }


def _struct_to_dict(s: StructDescriptor) -> dict[str, Any]:
    return {
        "name": s.name,
        "size": s.total_size,
        "align": s.total_align,
        "host_shareable": s.is_host_shareable,
        "trailing_dynamic_array": s.has_trailing_dynamic_array,
        "fields": [
            {
                "name": f.name,
                "type": f.type_name,
                "offset": f.offset,
                "size": f.size,
                "align": f.align,
                "padding": f.is_padding,
            }
            for f in s.fields
        ],
    }


def emit_reflection_json(model: BindingModel) -> str:
    """Serialize a binding model to a JSON string."""
    return json.dumps(model_to_dict(model), indent=2, sort_keys=False) + "\n"


def named_binding_entries(models: Iterable[BindingModel]) -> dict[str, dict[str, Any]]:
    """Map every binding name across all modules to its layout entry.

    Later modules win when two shaders declare the same name.
    """
    entries = {}
    for model in models:
        for group in model.groups.values():
            for binding in group.bindings:
                entries[binding.name] = binding.layout_entry()
    return entries
