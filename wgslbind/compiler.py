"""Top-level orchestration: file -> preprocessed text -> IR -> binding model."""

from __future__ import annotations
from pathlib import Path
from typing import Callable, Iterable, Optional

from loguru import logger

from wgslbind.errors import ModuleComposeError
from wgslbind.ir.module import Module
from wgslbind.options import ReflectionOptions
from wgslbind.preprocess.preprocessor import PreprocessResult, fully_preprocess
from wgslbind.reflection.builder import build_binding_model
from wgslbind.reflection.model import BindingModel

# The external WGSL parser/validator: preprocessed source -> validated module
ParseFn = Callable[[str], Module]


def module_name_for(path: Path) -> str:
    """File name up to the first dot: ``shaders/blit.frag.wgsl`` -> ``blit``."""
    return Path(path).name.split(".", 1)[0]


def _file_lookup(base_dir: Path) -> Callable[[str], Optional[str]]:
    def lookup(name: str) -> Optional[str]:
        candidate = base_dir / name
        if not candidate.is_file():
            return None
        return candidate.read_text(encoding="utf-8")
    return lookup


def preprocess_source(
    source: str,
    source_dir: Optional[Path] = None,
    defines: Optional[dict[str, str]] = None,
) -> PreprocessResult:
    lookup = _file_lookup(source_dir) if source_dir is not None else None
    return fully_preprocess(source, defines, lookup)


def preprocess_file(path: Path, defines: Optional[dict[str, str]] = None) -> PreprocessResult:
    """Read a shader with UTF-8 and preprocess it; imports resolve next to the file."""
    path = Path(path)
    source = path.read_text(encoding="utf-8")
    return preprocess_source(source, path.parent, defines)


def generate_module(
    path: Path,
    source: str,
    parse: ParseFn,
    options: Optional[ReflectionOptions] = None,
    defines: Optional[dict[str, str]] = None,
) -> BindingModel:
    """Preprocess one shader's source, hand it to the parser and reflect the result.

    Args:
        path: Path of the shader; names the module and anchors relative imports.
        source: The shader text (already read by the caller).
        parse: Parser/validator oracle.
        options: Reflection options.
        defines: Initial define table for the preprocessor.

    Raises:
        ModuleComposeError: The parser rejected the preprocessed text.
        ReflectionError: The validated module cannot be reflected.
    """
    path = Path(path)
    pre = preprocess_source(source, path.parent, defines)
    try:
        module = parse(pre.text)
    except Exception as e:
        raise ModuleComposeError(path.name, str(e)) from e

    name = module_name_for(path)
    logger.debug("Composed module '{}' from {}", name, path)
    return build_binding_model(module, options, name)


def generate_models(
    shaders: Iterable[Path],
    parse: ParseFn,
    options: Optional[ReflectionOptions] = None,
    defines: Optional[dict[str, str]] = None,
) -> list[BindingModel]:
    models = []
    for path in shaders:
        path = Path(path)
        source = path.read_text(encoding="utf-8")
        models.append(generate_module(path, source, parse, options, defines))
    return models
