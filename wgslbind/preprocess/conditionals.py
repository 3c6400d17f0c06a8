"""Conditional compilation, macro substitution and symbolic bindings.

Runs after import resolution. Handles ``#ifdef``, ``#else``, ``#endif``,
``#define`` and ``#undef``/``#undefine``; every directive line, and every
line of a suppressed region, is kept as a ``//`` comment so line numbers in
parser diagnostics still match the resolved text.

Nesting is tracked with a single depth counter plus a skip flag rather than
a stack of frames. An ``#else`` only ever re-enables a suppressed branch: after
an ``#ifdef`` whose key is defined, the ``#else`` line is commented with
``(false)`` but the lines that follow it stay active, so both branches are
emitted. An ``#else`` inside an already suppressed region closes one level of
the enclosing suppression.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from wgslbind.errors import PreprocessError
from wgslbind.preprocess.imports import directive_op
from wgslbind.preprocess.symbolic import SymbolicBindingTable

_GROUP_BINDING_RE = re.compile(r"@group_binding\(([^)]*)\)")


@dataclass
class ConditionalResult:
    text: str
    depth: int  # residual nesting depth, 0 when every #ifdef was closed


def resolve_ifdefs(
    source: str,
    defines: Optional[dict[str, str]] = None,
    on_ifdef: Optional[Callable[[str], None]] = None,
    symbolic_binding: Optional[Callable[[str], tuple[int, int]]] = None,
    defines_in_skipped: bool = True,
    start_depth: int = 0,
) -> ConditionalResult:
    """Resolve conditionals and macros in already import-resolved source.

    Args:
        source: Source text with all imports expanded.
        defines: Define table, mutated in place by ``#define``/``#undef``.
        on_ifdef: Called with the key of every ``#ifdef`` evaluated outside a
            suppressed region.
        symbolic_binding: Maps a ``@group_binding`` label to ``(group, binding)``.
            Defaults to a fresh ``SymbolicBindingTable``.
        defines_in_skipped: Whether ``#define``/``#undef`` inside a suppressed
            region still modify the define table.
        start_depth: Initial nesting depth; non-zero starts suppressed.

    Returns:
        The resolved text and the residual nesting depth.
    """
    if defines is None:
        defines = {}
    if symbolic_binding is None:
        symbolic_binding = SymbolicBindingTable()

    depth = start_depth
    skip = depth != 0
    output = []

    for line in source.splitlines():
        op, args = directive_op(line)
        comment_line = skip
        reason = None

        if op is not None and skip:
            if op == "endif":
                if depth > 0:
                    depth -= 1
            elif op == "ifdef":
                depth += 1
            elif op == "else":
                if depth > 0:
                    depth -= 1
                    reason = "(true)"
                else:
                    reason = "(false)"
            elif op in ("define", "undef", "undefine") and defines_in_skipped:
                reason = _apply_define(op, args, defines)

        elif op is not None:
            if op == "endif":
                if depth > 0:
                    depth -= 1
                comment_line = True
            elif op == "ifdef":
                if args:
                    key = args[0]
                    if on_ifdef is not None:
                        on_ifdef(key)
                    if key not in defines:
                        depth += 1
                        skip = True
                        reason = "(false)"
                    else:
                        reason = "(true)"
                comment_line = True
            elif op == "else":
                if depth > 0:
                    depth -= 1
                    reason = "(true)"
                else:
                    reason = "(false)"
                comment_line = True
            elif op in ("define", "undef", "undefine"):
                reason = _apply_define(op, args, defines)
                comment_line = True
            elif op == "import":
                raise PreprocessError(
                    "imports should have already been resolved by a previous pass: "
                    f"{line.strip()}"
                )

        line = expand_group_bindings(line, symbolic_binding)

        if comment_line:
            suffix = f"\t {reason}" if reason else ""
            output.append(f"//\t\t{line}{suffix}\n")
        else:
            output.append(substitute_macros(line, defines) + "\n")

        if skip and depth == 0:
            skip = False

    if depth != 0:
        logger.warning(
            "Resulting depth after preprocessing source was not back at top "
            "(depth {}): likely unclosed '#ifdef'",
            depth,
        )

    return ConditionalResult("".join(output), depth)


def _apply_define(op: str, args: list[str], defines: dict[str, str]) -> Optional[str]:
    if not args:
        return None
    key = args[0]
    if op == "define":
        defines[key] = args[1] if len(args) > 1 else ""
        return f"(defined {key})"
    defines.pop(key, None)
    return f"(undefined {key})"


def substitute_macros(line: str, defines: dict[str, str]) -> str:
    """Replace every literal occurrence of each key, in table order."""
    for key, value in defines.items():
        line = line.replace(key, value)
    return line


def expand_group_bindings(line: str, symbolic_binding: Callable[[str], tuple[int, int]]) -> str:
    def _replace(match: re.Match) -> str:
        group, binding = symbolic_binding(match.group(1).strip())
        return f"@group({group}) @binding({binding})"

    return _GROUP_BINDING_RE.sub(_replace, line)
