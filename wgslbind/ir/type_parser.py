"""Lark-based parser for WGSL type expressions.

Parsing produces a small generic ``TypeExpr`` tree (a name plus template
arguments); ``resolve_type_expr`` then interprets the names and interns the
resulting types into a module's arena.
"""

from __future__ import annotations
import re
from pathlib import Path
from typing import NamedTuple, Union

from lark import Lark, Transformer, Token
from lark.exceptions import LarkError

from wgslbind.errors import TypeExpressionError
from wgslbind.ir.module import Module
from wgslbind.ir.types import (
    AddressSpace, Array, Atomic, BindingArray, DepthClass, Image,
    ImageDimension, Matrix, Pointer, SampledClass, Sampler, Scalar,
    ScalarKind, StorageAccess, StorageClass, Struct, Type, Vector,
    SCALAR_MAP, SCALAR_SUFFIX,
)

_GRAMMAR_PATH = Path(__file__).parent.parent / "grammar" / "types.lark"


class TypeExpr(NamedTuple):
    name: str
    args: tuple[Union["TypeExpr", int], ...] = ()

    def __str__(self):
        if not self.args:
            return self.name
        return f"{self.name}<{', '.join(str(a) for a in self.args)}>"


class TypeExprTransformer(Transformer):
    def template(self, items):
        args = []
        for item in items:
            if isinstance(item, Token) and item.type == "INT":
                args.append(int(str(item).rstrip("iu")))
            else:
                args.append(item)
        return tuple(args)

    def type_expr(self, items):
        name = str(items[0])
        args = items[1] if len(items) > 1 else ()
        return TypeExpr(name, args)


_parser = Lark(
    _GRAMMAR_PATH.read_text(encoding="utf-8"),
    parser="lalr",
    transformer=TypeExprTransformer(),
)


def parse_type_expr(text: str) -> TypeExpr:
    try:
        return _parser.parse(text)
    except LarkError as e:
        raise TypeExpressionError(f"Invalid type expression '{text}': {e}") from e


_VEC_RE = re.compile(r"^vec([234])([fhiu]?)$")
_MAT_RE = re.compile(r"^mat([234])x([234])([fh]?)$")
_TEXTURE_RE = re.compile(
    r"^texture_(?P<depth>depth_)?(?P<ms>multisampled_)?(?P<dim>1d|2d|3d|cube)(?P<arr>_array)?$"
)
_STORAGE_TEXTURE_RE = re.compile(r"^texture_storage_(?P<dim>1d|2d|3d)(?P<arr>_array)?$")

_DIMENSIONS = {d.value: d for d in ImageDimension}

_ACCESS = {
    "read": StorageAccess.LOAD,
    "write": StorageAccess.STORE,
    "read_write": StorageAccess.LOAD | StorageAccess.STORE,
}

_SPACES = ("function", "private", "workgroup", "uniform", "storage", "handle", "push_constant")


def parse_access(name: str) -> StorageAccess:
    access = _ACCESS.get(name)
    if access is None:
        raise TypeExpressionError(f"Unknown access mode '{name}'")
    return access


def parse_address_space(name: str, access: str | None = None) -> AddressSpace:
    if name not in _SPACES:
        raise TypeExpressionError(f"Unknown address space '{name}'")
    if name == "storage":
        return AddressSpace.storage(parse_access(access or "read"))
    if access is not None:
        raise TypeExpressionError(f"Address space '{name}' does not take an access mode")
    return AddressSpace(name)


def resolve_type(module: Module, text: str) -> int:
    """Parse a type expression and intern it into ``module``, returning its handle."""
    return resolve_type_expr(module, parse_type_expr(text))


def resolve_type_expr(module: Module, expr: TypeExpr) -> int:
    inner = _resolve_inner(module, expr)
    if isinstance(inner, int):
        return inner
    return module.add_type(Type(None, inner))


def _resolve_inner(module: Module, expr: TypeExpr):
    name, args = expr.name, expr.args

    if name in SCALAR_MAP:
        _expect_args(expr, 0)
        return SCALAR_MAP[name]

    m = _VEC_RE.match(name)
    if m:
        return Vector(int(m.group(1)), _component(expr, m.group(2)))

    m = _MAT_RE.match(name)
    if m:
        scalar = _component(expr, m.group(3))
        if scalar.kind != ScalarKind.FLOAT:
            raise TypeExpressionError(f"Matrix components must be floating point: '{expr}'")
        return Matrix(int(m.group(1)), int(m.group(2)), scalar)

    if name == "atomic":
        _expect_args(expr, 1)
        return Atomic(_scalar_arg(expr, args[0]))

    if name in ("array", "binding_array"):
        if len(args) not in (1, 2) or not isinstance(args[0], TypeExpr):
            raise TypeExpressionError(f"Expected {name}<T> or {name}<T, N>: '{expr}'")
        base = resolve_type_expr(module, args[0])
        size = _int_arg(expr, args[1]) if len(args) == 2 else None
        if name == "array":
            return Array(base, size)
        return BindingArray(base, size)

    if name == "ptr":
        if len(args) not in (2, 3):
            raise TypeExpressionError(f"Expected ptr<space, T[, access]>: '{expr}'")
        space = parse_address_space(
            _name_arg(expr, args[0]),
            _name_arg(expr, args[2]) if len(args) == 3 else None,
        )
        return Pointer(resolve_type_expr(module, _type_arg(expr, args[1])), space)

    if name in ("sampler", "sampler_comparison"):
        _expect_args(expr, 0)
        return Sampler(comparison=name == "sampler_comparison")

    m = _STORAGE_TEXTURE_RE.match(name)
    if m:
        _expect_args(expr, 2)
        cls = StorageClass(_name_arg(expr, args[0]), parse_access(_name_arg(expr, args[1])))
        return Image(_DIMENSIONS[m.group("dim")], m.group("arr") is not None, cls)

    m = _TEXTURE_RE.match(name)
    if m:
        multi = m.group("ms") is not None
        if m.group("depth"):
            _expect_args(expr, 0)
            cls = DepthClass(multi)
        else:
            _expect_args(expr, 1)
            cls = SampledClass(_scalar_arg(expr, args[0]).kind, multi)
        return Image(_DIMENSIONS[m.group("dim")], m.group("arr") is not None, cls)

    # Anything else has to be a struct declared earlier
    handle = module.find_type(name)
    if handle is None or not isinstance(module.types[handle].inner, Struct):
        raise TypeExpressionError(f"Unknown type '{name}'")
    _expect_args(expr, 0)
    return handle


def _component(expr: TypeExpr, suffix: str) -> Scalar:
    if suffix:
        _expect_args(expr, 0)
        return SCALAR_SUFFIX[suffix]
    _expect_args(expr, 1)
    return _scalar_arg(expr, expr.args[0])


def _expect_args(expr: TypeExpr, n: int) -> None:
    if len(expr.args) != n:
        raise TypeExpressionError(
            f"'{expr.name}' takes {n} template argument(s), got {len(expr.args)}"
        )


def _type_arg(expr: TypeExpr, arg) -> TypeExpr:
    if not isinstance(arg, TypeExpr):
        raise TypeExpressionError(f"Expected a type argument in '{expr}'")
    return arg


def _name_arg(expr: TypeExpr, arg) -> str:
    arg = _type_arg(expr, arg)
    if arg.args:
        raise TypeExpressionError(f"Expected a plain name in '{expr}'")
    return arg.name


def _scalar_arg(expr: TypeExpr, arg) -> Scalar:
    name = _name_arg(expr, arg)
    if name not in SCALAR_MAP:
        raise TypeExpressionError(f"Expected a scalar type in '{expr}', got '{name}'")
    return SCALAR_MAP[name]


def _int_arg(expr: TypeExpr, arg) -> int:
    if not isinstance(arg, int):
        raise TypeExpressionError(f"Expected an integer size in '{expr}'")
    return arg
