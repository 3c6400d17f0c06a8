"""Recursive ``#import`` / ``#include`` expansion."""

from __future__ import annotations
from typing import Callable, Optional

from loguru import logger

MAX_RECURSION = 100

SourceLookup = Callable[[str], Optional[str]]


def resolve_imports(
    source: str,
    lookup: Optional[SourceLookup] = None,
    max_depth: int = MAX_RECURSION,
) -> str:
    """Replace every import directive with the recursively resolved file contents.

    Args:
        source: Shader source text.
        lookup: Returns the text of a named file, or None when it cannot be found.
        max_depth: Nesting limit; deeper branches expand to nothing.

    Returns:
        The expanded source. Lines that are not import directives are kept
        verbatim, so text without imports comes back unchanged.
    """
    return _resolve_recursively(source, lookup, 0, max_depth)


def directive_op(line: str) -> tuple[Optional[str], list[str]]:
    """Split a ``#op arg ...`` line into its op and arguments, or ``(None, [])``."""
    trimmed = line.strip()
    if not trimmed.startswith("#"):
        return None, []
    parts = trimmed[1:].split()
    if not parts:
        return None, []
    return parts[0], parts[1:]


def strip_import_name(name: str) -> str:
    if name.startswith('"'):
        name = name[1:]
    if name.endswith('"'):
        name = name[:-1]
    if name.startswith("<"):
        name = name[1:]
    if name.endswith(">"):
        name = name[:-1]
    return name


def _resolve_recursively(
    source: str,
    lookup: Optional[SourceLookup],
    depth: int,
    max_depth: int,
) -> str:
    if depth > max_depth:
        logger.warning(
            "Recursion depth hit max during '#import' resolving (depth: {} > max: {})",
            depth, max_depth,
        )
        return ""

    output = []
    for line in source.splitlines(keepends=True):
        op, args = directive_op(line)
        if op not in ("import", "include"):
            output.append(line)
            continue

        trimmed = line.strip()
        if lookup is not None and args:
            name = strip_import_name(args[0])
            contents = lookup(name)
            if contents is not None:
                pasted = _resolve_recursively(contents, lookup, depth + 1, max_depth)
                if pasted and not pasted.endswith("\n"):
                    pasted += "\n"
                output.append(f"// {trimmed} // BEGIN #import '{name}'\n")
                output.append(pasted)
                output.append(f"// END #import '{name}'\n")
                continue

        logger.warning("Could not include file for directive: {}", trimmed)
        output.append(f"// {trimmed} // ERROR: Preprocessor could not include file, skipped\n")

    return "".join(output)
