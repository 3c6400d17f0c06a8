"""Build the binding model of a validated module."""

from __future__ import annotations
import dataclasses
from typing import Optional

from loguru import logger

from wgslbind.analysis.classify import classify_binding
from wgslbind.analysis.constants import module_constants, overridable_constants
from wgslbind.analysis.entry_points import entry_point_infos, shader_stages
from wgslbind.analysis.groups import get_group_data
from wgslbind.analysis.layout import Layouter, struct_descriptors
from wgslbind.analysis.vertex import vertex_input_layouts
from wgslbind.ir.module import Module
from wgslbind.options import ReflectionOptions
from wgslbind.reflection.model import BindingModel, GroupData


def build_binding_model(
    module: Module,
    options: Optional[ReflectionOptions] = None,
    module_name: str = "",
) -> BindingModel:
    """Reflect a validated module.

    Args:
        module: The IR handed over by the validator.
        options: Padding, alignment and struct override configuration.
        module_name: Name recorded on the model (usually the file stem).

    Returns:
        The complete binding model.

    Raises:
        ReflectionError: Non-consecutive groups, duplicate bindings or a
            resource/vertex attribute type that cannot be classified.
    """
    options = options or ReflectionOptions()
    layouter = Layouter(module, options)

    groups = {
        group_no: GroupData(group_no, [
            dataclasses.replace(b, kind=classify_binding(module, b, layouter))
            for b in group.bindings
        ])
        for group_no, group in get_group_data(module).items()
    }

    model = BindingModel(
        module_name=module_name,
        groups=groups,
        visibility=shader_stages(module),
        entry_points=entry_point_infos(module),
        structs=struct_descriptors(module, options, layouter),
        vertex_inputs=vertex_input_layouts(module),
        overridable_constants=overridable_constants(module),
        constants=module_constants(module),
    )

    logger.debug(
        "Reflected module '{}': {} group(s), {} struct(s), {} vertex input(s), {} override(s)",
        module_name, model.num_groups, len(model.structs),
        len(model.vertex_inputs), len(model.overridable_constants),
    )
    return model
