# src/hl7_fhir_bundle/transform/v2_to_fhir/al1.py
"""
AL1 (patient allergy information) -> FHIR AllergyIntolerance.

Notes
-----
- Clinical and verification statuses are fixed to active/confirmed.
- AL1-4 severity goes on reaction[0]; each AL1-5 repetition then adds one
  more reaction carrying a single manifestation.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fhir.resources.R4B.allergyintolerance import AllergyIntolerance

from ... import codes
from ...fields import Segment, exists, value, values
from ...normalizers import to_coded_element, to_fhir_datetime
from ..base import MappingContext, Resource, construct
from ..registry import register
from ._common import concept, ref

SEGMENT = "AL1"


def allergen_type(code: str) -> str:
    """AL1-2 allergen type -> AllergyIntolerance.type (default "allergy")."""
    return codes.ALLERGEN_TYPE.get(code.upper(), codes.ALLERGEN_TYPE_DEFAULT)


def _reactions(segment: Segment) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    severity = codes.ALLERGY_SEVERITY.get((value(segment.get(4)) or "").upper())
    if severity:
        out.append({"severity": severity})
    for inst in values(segment.get(5)):
        manifestation = to_coded_element(inst, codes.SNOMED)
        if manifestation:
            out.append({"manifestation": [manifestation.as_fhir()]})
    return out


@register(SEGMENT)
class AL1Mapper:
    resource_type = "AllergyIntolerance"
    id_prefix = "allergy"
    id_strategy = "set_id"

    def build(self, segment: Segment, context: MappingContext) -> Resource:
        res: Dict[str, Any] = {
            "id": context.resource_id,
            "clinicalStatus": concept(codes.ALLERGY_CLINICAL, "active", "Active"),
            "verificationStatus": concept(
                codes.ALLERGY_VERIFICATION, "confirmed", "Confirmed"
            ),
        }

        if exists(segment.get(2)):
            res["type"] = allergen_type(value(segment.get(2)) or "")

        allergen = to_coded_element(segment.get(3), codes.SNOMED)
        if allergen:
            res["code"] = allergen.as_fhir()

        res["patient"] = ref(context.patient_ref)

        onset = to_fhir_datetime(segment.get(6))
        if onset:
            res["onsetDateTime"] = onset

        reactions = _reactions(segment)
        if reactions:
            res["reaction"] = reactions

        return construct(AllergyIntolerance, res)
