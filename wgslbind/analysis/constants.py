"""Module constants and pipeline-overridable constants."""

from __future__ import annotations
from typing import Any, Iterable, Mapping

from wgslbind.errors import MissingOverrideConstant
from wgslbind.ir.module import Module, Override
from wgslbind.ir.types import Scalar, ScalarKind
from wgslbind.reflection.model import ModuleConstant, OverridableConstant


def override_key(o: Override) -> str:
    """The pipeline constant key: the ``@id`` if given, otherwise the name."""
    return str(o.id) if o.id is not None else o.name


def overridable_constants(module: Module) -> list[OverridableConstant]:
    constants = []
    for o in module.overrides:
        inner = module.types[o.ty].inner
        constants.append(OverridableConstant(
            name=o.name,
            key=override_key(o),
            has_default=o.has_default,
            type_name=module.type_name(o.ty),
            is_bool=isinstance(inner, Scalar) and inner.kind == ScalarKind.BOOL,
            default=o.init,
        ))
    return constants


def override_constants_map(
    constants: Iterable[OverridableConstant],
    values: Mapping[str, Any],
) -> dict[str, float]:
    """Flatten override values into the ``key -> float`` map pipelines take.

    Args:
        constants: The module's overridable constants.
        values: Values by constant name. Required constants must be present;
            omitted optional ones fall back to the WGSL initializer.

    Returns:
        A dict keyed by override key. Booleans become 1.0/0.0.
    """
    entries: dict[str, float] = {}
    for c in constants:
        if c.name not in values or values[c.name] is None:
            if c.required:
                raise MissingOverrideConstant(c.name)
            continue
        value = values[c.name]
        if c.is_bool:
            entries[c.key] = 1.0 if value else 0.0
        else:
            entries[c.key] = float(value)
    return entries


def module_constants(module: Module) -> list[ModuleConstant]:
    """Named constants with a literal initializer."""
    return [
        ModuleConstant(c.name, module.type_name(c.ty), c.value)
        for c in module.constants
        if c.name is not None and c.value is not None
    ]
