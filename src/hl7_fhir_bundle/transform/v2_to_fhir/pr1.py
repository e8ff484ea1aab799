# src/hl7_fhir_bundle/transform/v2_to_fhir/pr1.py
"""
PR1 (procedures) -> FHIR Procedure.
"""

from __future__ import annotations

from typing import Any, Dict

from fhir.resources.R4B.procedure import Procedure

from ... import codes
from ...fields import Segment, exists, value
from ...normalizers import to_coded_element, to_fhir_datetime
from ..base import MappingContext, Resource, construct
from ..registry import register
from ._common import concept, ref

SEGMENT = "PR1"


@register(SEGMENT)
class PR1Mapper:
    resource_type = "Procedure"
    id_prefix = "procedure"
    id_strategy = "set_id"

    def build(self, segment: Segment, context: MappingContext) -> Resource:
        res: Dict[str, Any] = {
            "id": context.resource_id,
            "status": "completed",
        }

        # PR1-3 coded procedure, PR1-4 description as fallback text
        procedure = to_coded_element(segment.get(3), codes.CPT)
        if procedure:
            res["code"] = procedure.as_fhir()
        else:
            description = value(segment.get(4))
            if description:
                res["code"] = {"text": description}

        res["subject"] = ref(context.patient_ref)
        if context.encounter_ref:
            res["encounter"] = ref(context.encounter_ref)

        performed = to_fhir_datetime(segment.get(5))
        if performed:
            res["performedDateTime"] = performed

        if exists(segment.get(11)):
            role = codes.SURGEON_ROLE
            res["performer"] = [
                {
                    "function": concept(codes.SNOMED, role.code, role.display),
                    "actor": ref(f"Practitioner/practitioner-surgeon-{context.set_id}"),
                }
            ]

        return construct(Procedure, res)
