# src/hl7_fhir_bundle/transform/base.py
"""
Segment mapper protocol for HL7 v2 -> FHIR conversions.

Mappers build fhir.resources R4B models with lenient construction
(model_construct, no validation) so values keep the exact shape the mapping
rules give them. resource_json() turns a model tree back into JSON-ready
dicts for the bundle and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol, Type, TypeVar, runtime_checkable

from fhir.resources.R4B.resource import Resource
from pydantic import BaseModel

from ..fields import Segment

__all__ = [
    "FixedIdMapper",
    "ID_STRATEGIES",
    "MappingContext",
    "Resource",
    "SegmentMapper",
    "construct",
    "resource_json",
]

# "fixed"    the mapper names its own id via fixed_id(segment)
# "sequence" <prefix>-<n>, n = occurrence of the segment type in the message
# "set_id"   <prefix>-<segment field 1, default "1">
ID_STRATEGIES = ("fixed", "sequence", "set_id")

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class MappingContext:
    """
    Everything a mapper needs besides the segment itself.

    Attributes
    ----------
    resource_id : str
        Id assigned to the resource being built.
    patient_ref : str
        Reference to the bundle's Patient, e.g. "Patient/patient-1".
    encounter_ref : str or None
        Reference to the Encounter clinical resources attach to, if any.
    set_id : str
        The segment's set-id (field 1), "1" when absent.
    paired : Segment or None
        A companion segment (the IN2 matched to an IN1).
    """

    resource_id: str
    patient_ref: str
    encounter_ref: Optional[str] = None
    set_id: str = "1"
    paired: Optional[Segment] = None


@runtime_checkable
class SegmentMapper(Protocol):
    """
    Interface for segment mappers.

    Implementations declare the segment they read, the FHIR resource they
    produce and how that resource is identified, and build the resource.
    """

    segment_type: str  # e.g., "PID"
    resource_type: str  # e.g., "Patient"
    id_prefix: str  # e.g., "patient"
    id_strategy: str  # one of ID_STRATEGIES

    def build(self, segment: Segment, context: MappingContext) -> Resource:
        """
        Build one FHIR resource from a segment.

        Parameters
        ----------
        segment : Segment
            Parsed segment with a non-None body.
        context : MappingContext
            Assigned id and cross-resource references.

        Returns
        -------
        Resource
            Leniently constructed R4B resource; elements without a value
            are left unset.
        """
        ...


@runtime_checkable
class FixedIdMapper(SegmentMapper, Protocol):
    """Mapper whose resource id comes from the segment (id_strategy "fixed")."""

    def fixed_id(self, segment: Segment) -> str: ...


# ------------------------------------------------------------------------------
# model helpers
# ------------------------------------------------------------------------------


@lru_cache(maxsize=None)
def _element_fields(model: Type[BaseModel]) -> Dict[str, str]:
    """JSON element name -> model field name ("class" -> "class_fhir")."""
    return {(info.alias or name): name for name, info in model.model_fields.items()}


def construct(model: Type[M], data: Dict[str, Any]) -> M:
    """
    Build `model` from JSON-shaped data without validation.

    Keys are FHIR element names; "resourceType" is implied by the model and
    skipped. Nested values may be dicts or other constructed models.

    Raises
    ------
    ValueError
        If a key is not an element of `model`.
    """
    fields = _element_fields(model)
    values: Dict[str, Any] = {}
    for key, val in data.items():
        if key == "resourceType":
            continue
        if key not in fields:
            raise ValueError(f"{model.__name__} has no element {key!r}")
        values[fields[key]] = val
    return model.model_construct(**values)


def _is_empty(val: Any) -> bool:
    return val is None or (isinstance(val, (str, list, dict)) and not val)


def resource_json(node: Any) -> Any:
    """
    JSON-ready copy of a constructed model tree.

    Models become dicts keyed by element name, with "resourceType" first for
    resources; unset and empty elements are dropped. Dicts and lists are
    copied through, scalars returned as they are.
    """
    if isinstance(node, BaseModel):
        out: Dict[str, Any] = {}
        if isinstance(node, Resource):
            out["resourceType"] = node.get_resource_type()
        for key, name in _element_fields(type(node)).items():
            if key == "resourceType":
                continue
            val = resource_json(getattr(node, name, None))
            if not _is_empty(val):
                out[key] = val
        return out
    if isinstance(node, dict):
        return {key: resource_json(val) for key, val in node.items()}
    if isinstance(node, (list, tuple)):
        return [resource_json(val) for val in node]
    return node
