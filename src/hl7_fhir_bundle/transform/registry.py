# src/hl7_fhir_bundle/transform/registry.py
"""
Registry for HL7 v2 segment -> FHIR resource mappers.

Provides:
- a @register(segment_type) decorator to bind segment ids to mapper classes,
- lookup by segment id,
- listing of available segment ids.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Type

from .base import ID_STRATEGIES, SegmentMapper

# Map segment id (e.g., "PID") to a mapper class.
_REGISTRY: Dict[str, Type[SegmentMapper]] = {}


def register(segment_type: str):
    """
    Decorator to register a SegmentMapper class for a segment id.

    Parameters
    ----------
    segment_type : str
        Three-letter segment id, e.g., "PID".

    Raises
    ------
    ValueError
        If the segment id is already registered.
    TypeError
        If the decorated object is not a class implementing the protocol.

    Returns
    -------
    callable
        A class decorator that registers the mapper.
    """

    def _wrap(cls: Type[SegmentMapper]) -> Type[SegmentMapper]:
        if segment_type in _REGISTRY:
            raise ValueError(f"Mapper already registered for segment {segment_type!r}")
        if not isinstance(cls, type):
            raise TypeError(f"Only classes can be registered as mappers, got {type(cls)}")
        if not callable(getattr(cls, "build", None)) or not all(
            isinstance(getattr(cls, attr, None), str)
            for attr in ("resource_type", "id_prefix", "id_strategy")
        ):
            raise TypeError(
                f"Class {cls.__name__} does not implement SegmentMapper protocol"
            )
        if cls.id_strategy not in ID_STRATEGIES:
            raise TypeError(
                f"Class {cls.__name__} has unknown id_strategy {cls.id_strategy!r}"
            )
        if cls.id_strategy == "fixed" and not callable(getattr(cls, "fixed_id", None)):
            raise TypeError(
                f"Class {cls.__name__} uses id_strategy 'fixed' without fixed_id()"
            )

        cls.segment_type = segment_type
        _REGISTRY[segment_type] = cls
        return cls

    return _wrap


def available_segments() -> List[str]:
    """
    List all registered segment ids.

    Returns
    -------
    List[str]
        Sorted list of segment ids (e.g., ["AL1", "DG1", "IN1"]).
    """
    return sorted(_REGISTRY.keys())


def get_mapper(segment_type: str) -> Optional[SegmentMapper]:
    """
    Look up and instantiate the mapper for a segment id.

    Returns None when no mapper is registered for it (EVN, IN2, Z segments).
    """
    cls = _REGISTRY.get(segment_type)
    return cls() if cls else None
