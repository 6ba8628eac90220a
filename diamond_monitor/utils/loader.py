"""Loader Module - Resolves ``package.module:attribute`` import paths."""

import importlib
from typing import Any


def load_object(path: str) -> Any:
    """Import an object from a ``package.module:attribute`` path.

    Args:
        path: Import path; the attribute part may be dotted

    Returns:
        The imported object

    Raises:
        ValueError: If the path is malformed or the attribute is missing
        ImportError: If the module cannot be imported
    """
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Invalid import path '{path}', expected 'package.module:attribute'")

    obj: Any = importlib.import_module(module_name)
    for part in attribute.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise ValueError(f"'{module_name}' has no attribute '{attribute}'") from None
    return obj
