# src/hl7_fhir_bundle/transform/v2_to_fhir/obx.py
"""
OBX (observation/result) -> FHIR Observation.

Notes
-----
- The value type (OBX-2, default ST) picks the value[x] element:
    NM        -> valueQuantity, left out when OBX-5 is not numeric
    SN        -> valueQuantity from comparator^number, comparator kept
    DT/TM/TS  -> valueDateTime
    CE/CWE    -> valueCodeableConcept (SNOMED unless OBX-5 names a system)
    anything else -> valueString with the raw OBX-5 text
- Units come from OBX-6 and default to UCUM.
- Reference range (OBX-7) accepts low^high^unit or "low-high"; anything
  else is kept as text.
- Abnormal flags (OBX-8) may repeat; the last recognised flag wins.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from fhir.resources.R4B.observation import Observation

from ... import codes
from ...fields import RawField, Segment, components, exists, text, value, values
from ...normalizers import to_coded_element, to_fhir_datetime, to_number, to_quantity
from ..base import MappingContext, Resource, construct
from ..registry import register
from ._common import coding, ref

# ------------------------------------------------------------------------------
# globals
# ------------------------------------------------------------------------------

SEGMENT = "OBX"
DEFAULT_VALUE_TYPE = "ST"
DATETIME_TYPES = frozenset({"DT", "TM", "TS"})
CODED_TYPES = frozenset({"CE", "CWE"})

_RANGE_TEXT = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*-\s*(-?\d+(?:\.\d+)?)\s*$")


# ------------------------------------------------------------------------------
# helpers
# ------------------------------------------------------------------------------


def observation_value(
    value_type: str, raw: RawField, units: RawField
) -> Dict[str, Any]:
    """
    Return the value[x] element for OBX-5 as a one-key dict, or {} when the
    value cannot be expressed for its declared type.
    """
    if not exists(raw):
        return {}

    if value_type == "NM":
        quantity = to_quantity(value(raw), units)
        return {"valueQuantity": quantity.as_fhir()} if quantity else {}

    if value_type == "SN":
        parts = components(raw)
        if len(parts) < 2:
            return {}
        quantity = to_quantity(parts[1], units, comparator=parts[0] or None)
        return {"valueQuantity": quantity.as_fhir()} if quantity else {}

    if value_type in DATETIME_TYPES:
        dt = to_fhir_datetime(raw)
        return {"valueDateTime": dt} if dt else {}

    if value_type in CODED_TYPES:
        coded = to_coded_element(raw, codes.SNOMED)
        return {"valueCodeableConcept": coded.as_fhir()} if coded else {}

    raw_text = text(raw)
    return {"valueString": raw_text} if raw_text else {}


def reference_range(raw: RawField) -> List[Dict[str, Any]]:
    """OBX-7 -> Observation.referenceRange (empty list when absent)."""
    if not exists(raw):
        return []

    parts = components(raw)
    low = to_number(parts[0]) if parts else None
    high = to_number(parts[1]) if len(parts) > 1 else None
    unit = parts[2] if len(parts) > 2 and parts[2] else None

    if low is None or high is None:
        match = _RANGE_TEXT.match(parts[0]) if len(parts) == 1 else None
        if not match:
            return [{"text": text(raw)}]
        low, high = to_number(match.group(1)), to_number(match.group(2))

    def _bound(num) -> Dict[str, Any]:
        return {"value": num, "unit": unit} if unit else {"value": num}

    return [{"low": _bound(low), "high": _bound(high)}]


def interpretation(raw: RawField) -> Optional[List[Dict[str, Any]]]:
    """Last OBX-8 repetition found in the interpretation table, or None."""
    found = None
    for inst in values(raw):
        flag = (value(inst) or "").upper()
        display = codes.INTERPRETATION.get(flag)
        if display:
            found = [
                {"coding": [coding(codes.V3_OBSERVATION_INTERPRETATION, flag, display)]}
            ]
    return found


def result_status(code: Optional[str]) -> str:
    """OBX-11 -> Observation.status (default "final")."""
    if not code:
        return codes.OBSERVATION_STATUS_DEFAULT
    return codes.OBSERVATION_STATUS.get(
        code.upper(), codes.OBSERVATION_STATUS_DEFAULT
    )


@register(SEGMENT)
class OBXMapper:
    """
    Map one observation segment to an Observation resource.
    """

    resource_type = "Observation"
    id_prefix = "observation"
    id_strategy = "set_id"

    def build(self, segment: Segment, context: MappingContext) -> Resource:
        res: Dict[str, Any] = {
            "id": context.resource_id,
            "status": result_status(value(segment.get(11))),
        }

        observed = to_coded_element(segment.get(3), codes.LOINC)
        if observed:
            res["code"] = observed.as_fhir()

        res["subject"] = ref(context.patient_ref)
        if context.encounter_ref:
            res["encounter"] = ref(context.encounter_ref)

        effective = to_fhir_datetime(segment.get(14))
        if effective:
            res["effectiveDateTime"] = effective

        if exists(segment.get(15)):
            res["performer"] = [
                ref(f"Organization/organization-producer-{context.set_id}")
            ]

        value_type = (value(segment.get(2)) or DEFAULT_VALUE_TYPE).upper()
        res.update(observation_value(value_type, segment.get(5), segment.get(6)))

        interp = interpretation(segment.get(8))
        if interp:
            res["interpretation"] = interp

        method = to_coded_element(segment.get(17), codes.SNOMED)
        if method:
            res["method"] = method.as_fhir()

        ranges = reference_range(segment.get(7))
        if ranges:
            res["referenceRange"] = ranges

        return construct(Observation, res)
