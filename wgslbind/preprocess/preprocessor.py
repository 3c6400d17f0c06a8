"""Full preprocessing pass: imports first, then conditionals and bindings."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Optional

from wgslbind.preprocess.conditionals import resolve_ifdefs
from wgslbind.preprocess.imports import MAX_RECURSION, SourceLookup, resolve_imports
from wgslbind.preprocess.symbolic import SymbolicBindingTable


@dataclass
class PreprocessResult:
    text: str
    depth: int
    defines: dict[str, str]
    encountered_ifdefs: list[str] = field(default_factory=list)
    bindings: Optional[SymbolicBindingTable] = None


def fully_preprocess(
    source: str,
    defines: Optional[dict[str, str]] = None,
    lookup: Optional[SourceLookup] = None,
    on_ifdef: Optional[Callable[[str], None]] = None,
    symbolic_binding: Optional[Callable[[str], tuple[int, int]]] = None,
    max_depth: int = MAX_RECURSION,
) -> PreprocessResult:
    """Resolve imports, conditionals, macros and ``@group_binding`` labels.

    ``defines`` is copied, so the caller's table is left untouched. When no
    ``symbolic_binding`` is given, a fresh ``SymbolicBindingTable`` scoped to
    this call is used and returned in the result.
    """
    table = dict(defines or {})
    bindings = None
    if symbolic_binding is None:
        bindings = SymbolicBindingTable()
        symbolic_binding = bindings

    encountered: list[str] = []

    def _on_ifdef(key: str) -> None:
        if key not in encountered:
            encountered.append(key)
        if on_ifdef is not None:
            on_ifdef(key)

    resolved = resolve_imports(source, lookup, max_depth)
    result = resolve_ifdefs(resolved, table, _on_ifdef, symbolic_binding)
    return PreprocessResult(result.text, result.depth, table, encountered, bindings)
