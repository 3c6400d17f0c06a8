"""Entry point summaries and stage visibility."""

from __future__ import annotations

from wgslbind.ir.module import EntryPoint, Module
from wgslbind.ir.types import Location, ShaderStage, Struct
from wgslbind.reflection.model import EntryPointInfo, ShaderStages


def shader_stages(module: Module) -> ShaderStages:
    """Union of the stages of every entry point in the module."""
    stages = ShaderStages.NONE
    for ep in module.entry_points:
        stages |= ShaderStages.from_stage(ep.stage)
    return stages


def fragment_target_count(module: Module, ep: EntryPoint) -> int:
    """Number of color targets written by a fragment entry point."""
    if ep.result is None:
        return 0
    if ep.result.binding is not None:
        # Builtins such as frag_depth have no render target
        return 1 if isinstance(ep.result.binding, Location) else 0
    inner = module.types[ep.result.ty].inner
    if isinstance(inner, Struct):
        return sum(1 for m in inner.members if isinstance(m.binding, Location))
    return 0


def entry_point_infos(module: Module) -> list[EntryPointInfo]:
    infos = []
    for ep in module.entry_points:
        target_count = 0
        if ep.stage == ShaderStage.FRAGMENT:
            target_count = fragment_target_count(module, ep)
        infos.append(EntryPointInfo(ep.name, ep.stage, target_count, ep.workgroup_size))
    return infos
