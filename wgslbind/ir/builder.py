"""Convenience construction of IR modules from WGSL-style declarations.

The validator normally produces modules directly; this builder exists for
callers that describe a module by hand (tests, the ``reflect`` CLI command
reading a JSON declaration document).
"""

from __future__ import annotations
import re
from typing import Any, Iterable, Optional, Union

from wgslbind.errors import TypeExpressionError
from wgslbind.ir.module import (
    BindingSlot, Constant, EntryPoint, FunctionArgument, FunctionResult,
    GlobalVariable, Module, Override,
)
from wgslbind.ir.type_parser import parse_address_space, resolve_type
from wgslbind.ir.types import (
    Binding, BindingArray, BuiltIn, Image, Location, Sampler, ShaderStage,
    Struct, StructMember, Type,
)

BindingSpec = Union[Binding, int, str, None]

_LOCATION_RE = re.compile(r"^@location\(\s*(\d+)\s*\)$")
_BUILTIN_RE = re.compile(r"^@builtin\(\s*(\w+)\s*\)$")


def parse_binding(spec: BindingSpec) -> Optional[Binding]:
    """Accept ``Location``/``BuiltIn``, a bare location number, or ``"@location(n)"``/``"@builtin(x)"``."""
    if spec is None or isinstance(spec, (Location, BuiltIn)):
        return spec
    if isinstance(spec, bool):
        raise TypeExpressionError(f"Invalid binding {spec!r}")
    if isinstance(spec, int):
        return Location(spec)
    m = _LOCATION_RE.match(spec.strip())
    if m:
        return Location(int(m.group(1)))
    m = _BUILTIN_RE.match(spec.strip())
    if m:
        return BuiltIn(m.group(1))
    raise TypeExpressionError(f"Invalid binding attribute '{spec}'")


class ModuleBuilder:
    def __init__(self):
        self.module = Module()

    def type(self, expr: Union[str, int]) -> int:
        if isinstance(expr, int):
            return expr
        return resolve_type(self.module, expr)

    def struct(self, name: str, members: Iterable[tuple]) -> int:
        """Declare a struct; each member is ``(name, type)`` or ``(name, type, binding)``."""
        if self.module.find_type(name) is not None:
            raise TypeExpressionError(f"Type '{name}' is already declared")
        resolved = []
        for member in members:
            member_name, ty = member[0], member[1]
            binding = parse_binding(member[2]) if len(member) > 2 else None
            resolved.append(StructMember(member_name, self.type(ty), binding))
        return self.module.add_type(Type(name, Struct(tuple(resolved))))

    def global_var(
        self,
        name: str,
        ty: Union[str, int],
        space: Optional[str] = None,
        access: Optional[str] = None,
        group: Optional[int] = None,
        binding: Optional[int] = None,
    ) -> GlobalVariable:
        handle = self.type(ty)
        if space is None:
            inner = self.module.types[handle].inner
            space = "handle" if isinstance(inner, (Image, Sampler, BindingArray)) else "private"
        slot = None
        if group is not None or binding is not None:
            if group is None or binding is None:
                raise TypeExpressionError(f"Global '{name}' needs both group and binding")
            slot = BindingSlot(group, binding)
        var = GlobalVariable(name, parse_address_space(space, access), handle, slot)
        self.module.global_variables.append(var)
        return var

    def constant(self, name: str, ty: Union[str, int], value=None) -> Constant:
        const = Constant(name, self.type(ty), value)
        self.module.constants.append(const)
        return const

    def override(
        self, name: str, ty: Union[str, int], id: Optional[int] = None, default=None,
    ) -> Override:
        o = Override(name, self.type(ty), id=id, init=default)
        self.module.overrides.append(o)
        return o

    def entry_point(
        self,
        name: str,
        stage: Union[str, ShaderStage],
        arguments: Iterable[tuple] = (),
        result: Union[str, tuple, None] = None,
        workgroup_size: tuple[int, int, int] = (0, 0, 0),
    ) -> EntryPoint:
        """Declare an entry point.

        Args:
            arguments: ``(name, type)`` or ``(name, type, binding)`` tuples.
            result: A type expression, or ``(type, binding)``.
        """
        args = []
        for arg in arguments:
            binding = parse_binding(arg[2]) if len(arg) > 2 else None
            args.append(FunctionArgument(arg[0], self.type(arg[1]), binding))

        fn_result = None
        if isinstance(result, tuple):
            fn_result = FunctionResult(self.type(result[0]), parse_binding(result[1]))
        elif result is not None:
            fn_result = FunctionResult(self.type(result))

        ep = EntryPoint(
            name, ShaderStage(stage), args, fn_result, tuple(workgroup_size),
        )
        self.module.entry_points.append(ep)
        return ep

    def finish(self) -> Module:
        return self.module


def _member_binding(decl: dict[str, Any]) -> BindingSpec:
    if "location" in decl:
        return Location(int(decl["location"]), decl.get("interpolation"))
    if "builtin" in decl:
        return BuiltIn(decl["builtin"])
    return None


def load_module(document: dict[str, Any]) -> Module:
    """Build a module from a JSON-compatible declaration document.

    Recognised top-level keys: ``structs``, ``globals``, ``constants``,
    ``overrides`` and ``entry_points``. Structs must be listed before the
    declarations that use them.
    """
    b = ModuleBuilder()

    for s in document.get("structs", []):
        b.struct(s["name"], [
            (m["name"], m["type"], _member_binding(m)) for m in s.get("members", [])
        ])

    for g in document.get("globals", []):
        b.global_var(
            g["name"], g["type"],
            space=g.get("space"), access=g.get("access"),
            group=g.get("group"), binding=g.get("binding"),
        )

    for c in document.get("constants", []):
        b.constant(c["name"], c["type"], c.get("value"))

    for o in document.get("overrides", []):
        b.override(o["name"], o["type"], id=o.get("id"), default=o.get("default"))

    for ep in document.get("entry_points", []):
        result = ep.get("result")
        if isinstance(result, dict):
            result = (result["type"], _member_binding(result))
        b.entry_point(
            ep["name"], ep["stage"],
            arguments=[
                (a.get("name"), a["type"], _member_binding(a)) for a in ep.get("arguments", [])
            ],
            result=result,
            workgroup_size=tuple(ep.get("workgroup_size", (0, 0, 0))),
        )

    return b.finish()
