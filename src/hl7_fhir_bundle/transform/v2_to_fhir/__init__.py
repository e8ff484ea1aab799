# src/hl7_fhir_bundle/transform/v2_to_fhir/__init__.py
"""
Segment mappers, one module per HL7 v2 segment (msh, pid, pv1, ...).

Each module registers its mapper with @register("<SEG>") at import time, so
load_all() only needs to import them. Modules whose name starts with an
underscore hold shared builders and register nothing.
"""

from __future__ import annotations

import importlib
import pkgutil
from typing import Iterator, List, Set

_DISCOVERED: Set[str] = set()


def _iter_modules(pkg_name: str) -> Iterator[str]:
    """Yield the qualified names of the modules directly under pkg_name."""
    pkg = importlib.import_module(pkg_name)
    search_path = getattr(pkg, "__path__", None)
    if not search_path:
        return
    for info in pkgutil.iter_modules(search_path, prefix=pkg_name + "."):
        yield info.name


def _is_mapper_module(modname: str) -> bool:
    return not modname.rsplit(".", 1)[-1].startswith("_")


def load_all() -> List[str]:
    """
    Import every segment mapper module not imported yet.

    Returns the module names imported by this call; an empty list once
    everything is registered.
    """
    loaded: List[str] = []
    for modname in _iter_modules(__name__):
        if modname in _DISCOVERED or not _is_mapper_module(modname):
            continue
        importlib.import_module(modname)
        _DISCOVERED.add(modname)
        loaded.append(modname)
    return loaded


__all__ = ["load_all"]
