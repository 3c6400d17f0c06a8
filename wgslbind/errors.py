"""Exceptions raised while preprocessing and reflecting shader modules."""

from __future__ import annotations
from typing import Optional


class WgslBindError(Exception):
    pass


class PreprocessError(WgslBindError):
    pass


class TypeExpressionError(WgslBindError):
    pass


class ModuleComposeError(WgslBindError):
    """The parser/validator rejected the preprocessed source of a file."""

    def __init__(self, file_name: str, msg: str):
        super().__init__(f"Failed to compose module with file name `{file_name}`\n{msg}")
        self.file_name = file_name
        self.msg = msg


class ReflectionError(WgslBindError):
    pass


class NonConsecutiveGroups(ReflectionError):
    def __init__(self, groups: Optional[list[int]] = None):
        self.groups = groups or []
        super().__init__(
            f"bind groups are non-consecutive or do not start from 0: {self.groups}"
        )


class DuplicateBinding(ReflectionError):
    def __init__(self, binding: int, group: Optional[int] = None):
        self.binding = binding
        self.group = group
        where = f" in group {group}" if group is not None else ""
        super().__init__(f"duplicate binding found with index `{binding}`{where}")


class UnsupportedBindingType(ReflectionError):
    pass


class UnsupportedVertexFormat(ReflectionError):
    pass


class MissingOverrideConstant(ReflectionError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"required override constant '{name}' has no value")
