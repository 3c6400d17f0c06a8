"""Collect bound global resources into consecutive bind groups."""

from __future__ import annotations

from loguru import logger

from wgslbind.analysis.entry_points import shader_stages
from wgslbind.errors import DuplicateBinding, NonConsecutiveGroups
from wgslbind.ir.module import Module
from wgslbind.reflection.model import GroupData, ResourceBinding


def get_group_data(module: Module) -> dict[int, GroupData]:
    """Group every global carrying ``@group/@binding`` by group index.

    Bindings keep declaration order within a group; groups are ordered by
    index. Every binding is visible to all stages of the module.

    Raises:
        DuplicateBinding: Two globals share a binding index within a group.
        NonConsecutiveGroups: Group indices do not run 0, 1, ... without gaps.
    """
    visibility = shader_stages(module)
    groups: dict[int, GroupData] = {}

    for var in module.global_variables:
        if var.binding is None:
            continue
        group_no = var.binding.group
        group = groups.setdefault(group_no, GroupData(group_no))

        # Repeated bindings are normally rejected by validation already
        if any(b.binding_index == var.binding.binding for b in group.bindings):
            raise DuplicateBinding(var.binding.binding, group_no)

        group.bindings.append(ResourceBinding(
            name=var.name or "",
            binding_index=var.binding.binding,
            type_handle=var.ty,
            type=module.types[var.ty],
            address_space=var.space,
            visible_stages=visibility,
            type_name=module.type_name(var.ty),
        ))

    ordered = dict(sorted(groups.items()))
    if list(ordered) != list(range(len(ordered))):
        raise NonConsecutiveGroups(list(ordered))

    logger.debug(
        "Collected {} bind group(s): {}",
        len(ordered), {g: len(d.bindings) for g, d in ordered.items()},
    )
    return ordered
