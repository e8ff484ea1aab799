# src/hl7_fhir_bundle/transform/v2_to_fhir/dg1.py
"""
DG1 (diagnosis) -> FHIR Condition.

Notes
-----
- DG1-3 is read as ICD-10 unless it names its own coding system; when it is
  empty the free-text description in DG1-4 becomes code.text.
- The diagnosing clinician (DG1-16) is only referenced, keyed by set-id.
"""

from __future__ import annotations

from typing import Any, Dict

from fhir.resources.R4B.condition import Condition

from ... import codes
from ...fields import Segment, exists, value
from ...normalizers import to_coded_element, to_fhir_datetime
from ..base import MappingContext, Resource, construct
from ..registry import register
from ._common import concept, ref

SEGMENT = "DG1"


@register(SEGMENT)
class DG1Mapper:
    resource_type = "Condition"
    id_prefix = "condition"
    id_strategy = "set_id"

    def build(self, segment: Segment, context: MappingContext) -> Resource:
        res: Dict[str, Any] = {
            "id": context.resource_id,
            "clinicalStatus": concept(codes.CONDITION_CLINICAL, "active", "Active"),
        }

        category = codes.DIAGNOSIS_TYPE.get((value(segment.get(6)) or "").upper())
        if category:
            res["category"] = [
                {"coding": [{"system": codes.CONDITION_CATEGORY, "code": category}]}
            ]

        diagnosis = to_coded_element(segment.get(3), codes.ICD10)
        if diagnosis:
            res["code"] = diagnosis.as_fhir()
        else:
            description = value(segment.get(4))
            if description:
                res["code"] = {"text": description}

        res["subject"] = ref(context.patient_ref)
        if context.encounter_ref:
            res["encounter"] = ref(context.encounter_ref)

        onset = to_fhir_datetime(segment.get(5))
        if onset:
            res["onsetDateTime"] = onset

        if exists(segment.get(16)):
            res["asserter"] = ref(
                f"Practitioner/practitioner-diagnosing-{context.set_id}"
            )

        return construct(Condition, res)
