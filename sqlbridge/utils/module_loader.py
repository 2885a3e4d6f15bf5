"""Lazy import helpers for optional driver packages."""

import importlib
from types import ModuleType
from typing import Optional

from sqlbridge.exceptions import MissingDependencyError

__all__ = ("import_driver",)


def import_driver(module_name: str, install_package: Optional[str] = None) -> ModuleType:
    """Import a native driver module on first use.

    Args:
        module_name: Dotted module path, e.g. ``"firebird.driver"``.
        install_package: Name of the extra / distribution that provides it.

    Raises:
        MissingDependencyError: The driver is not installed.

    Returns:
        The imported module.
    """
    try:
        return importlib.import_module(module_name)
    except ModuleNotFoundError as e:
        raise MissingDependencyError(module_name.split(".")[0], install_package) from e
