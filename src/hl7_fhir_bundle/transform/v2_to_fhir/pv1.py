# src/hl7_fhir_bundle/transform/v2_to_fhir/pv1.py
"""
PV1 (patient visit) -> FHIR Encounter.

Notes
-----
- Status starts as "in-progress" and becomes "finished" only when PV1-45
  (discharge date/time) yields a date-time. Nothing else changes it.
- Doctors (PV1-7/8/17) become participants pointing at fixed placeholder
  Practitioner ids; no Practitioner resources are emitted.
- Empty period, hospitalization and lists are left out.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fhir.resources.R4B.encounter import Encounter

from ... import codes
from ...fields import Segment, components, exists, value, values
from ...normalizers import Identifier, to_fhir_datetime
from ..base import MappingContext, Resource, construct
from ..registry import register
from ._common import coding, concept, ref

# ------------------------------------------------------------------------------
# globals
# ------------------------------------------------------------------------------

SEGMENT = "PV1"
STATUS_IN_PROGRESS = "in-progress"
STATUS_FINISHED = "finished"


# ------------------------------------------------------------------------------
# helpers
# ------------------------------------------------------------------------------


def encounter_class(patient_class: Optional[str]) -> Dict[str, str]:
    """PV1-2 patient class -> v3 ActCode coding (inpatient when unmapped)."""
    act = codes.ENCOUNTER_CLASS.get(
        (patient_class or "").upper(), codes.ENCOUNTER_CLASS_DEFAULT
    )
    return coding(codes.V3_ACT_CODE, act.code, act.display)


def _location(segment: Segment, period: Dict[str, str]) -> List[Dict[str, Any]]:
    parts = [p for p in components(segment.get(3)) if p]
    if not parts:
        return []
    entry: Dict[str, Any] = {
        "location": {
            "reference": f"Location/location-{components(segment.get(3))[0] or '1'}",
            "display": " - ".join(parts),
        }
    }
    if period:
        entry["period"] = dict(period)
    return [entry]


def _participants(segment: Segment) -> List[Dict[str, Any]]:
    out = []
    for part in codes.ENCOUNTER_PARTICIPANTS:
        if not exists(segment.get(part.field)):
            continue
        out.append(
            {
                "type": [concept(codes.V3_PARTICIPATION_TYPE, part.code, part.display)],
                "individual": ref(f"Practitioner/{part.practitioner_id}"),
            }
        )
    return out


def _class_history(
    segment: Segment, enc_class: Dict[str, str], period: Dict[str, str]
) -> List[Dict[str, Any]]:
    out = []
    for inst in values(segment.get(20)):
        parts = components(inst)
        code = parts[0] if parts else ""
        if not code:
            continue
        entry: Dict[str, Any] = {"class": dict(enc_class)}
        if period:
            entry["period"] = dict(period)
        entry["extension"] = [
            {
                "url": codes.EXT_FINANCIAL_CLASS,
                "valueCodeableConcept": concept(
                    codes.V2_0064, code, parts[1] if len(parts) > 1 else None
                ),
            }
        ]
        out.append(entry)
    return out


@register(SEGMENT)
class PV1Mapper:
    """
    Map a patient visit to an Encounter resource.
    """

    resource_type = "Encounter"
    id_prefix = "encounter"
    id_strategy = "sequence"

    def build(self, segment: Segment, context: MappingContext) -> Resource:
        enc_class = encounter_class(value(segment.get(2)))

        period: Dict[str, str] = {}
        start = to_fhir_datetime(segment.get(44))
        if start:
            period["start"] = start
        end = to_fhir_datetime(segment.get(45))
        if end:
            period["end"] = end

        res: Dict[str, Any] = {
            "id": context.resource_id,
            "status": STATUS_FINISHED if end else STATUS_IN_PROGRESS,
            "class": enc_class,
            "subject": ref(context.patient_ref),
        }

        visit_number = value(segment.get(19))
        if visit_number:
            res["identifier"] = [
                Identifier(visit_number, codes.VISIT_NUMBER_SYSTEM, "VN").as_fhir()
            ]

        if period:
            res["period"] = period

        participants = _participants(segment)
        if participants:
            res["participant"] = participants

        locations = _location(segment, period)
        if locations:
            res["location"] = locations

        history = _class_history(segment, enc_class, period)
        if history:
            res["classHistory"] = history

        hospitalization: Dict[str, Any] = {}
        admit_source = value(segment.get(4))
        if admit_source:
            hospitalization["admitSource"] = {
                "coding": [{"system": codes.V2_0007, "code": admit_source}]
            }
        disposition = value(segment.get(36))
        if disposition:
            hospitalization["dischargeDisposition"] = {
                "coding": [{"system": codes.DISCHARGE_DISPOSITION, "code": disposition}]
            }
        if hospitalization:
            res["hospitalization"] = hospitalization

        return construct(Encounter, res)
