# src/hl7_fhir_bundle/transform/v2_to_fhir/nk1.py
"""
NK1 (next of kin) -> FHIR RelatedPerson.
"""

from __future__ import annotations

from typing import Any, Dict

from fhir.resources.R4B.relatedperson import RelatedPerson

from ... import codes
from ...fields import Segment, component
from ...normalizers import to_address, to_human_name
from ..base import MappingContext, Resource, construct
from ..registry import register
from ._common import coding, phones, ref

SEGMENT = "NK1"


@register(SEGMENT)
class NK1Mapper:
    resource_type = "RelatedPerson"
    id_prefix = "relatedperson"
    id_strategy = "sequence"

    def build(self, segment: Segment, context: MappingContext) -> Resource:
        res: Dict[str, Any] = {
            "id": context.resource_id,
            "patient": ref(context.patient_ref),
        }

        relationship = segment.get(3)
        rel_code = component(relationship, 0)
        if rel_code:
            res["relationship"] = [
                {
                    "coding": [
                        coding(codes.V3_ROLE_CODE, rel_code, component(relationship, 1))
                    ]
                }
            ]

        name = to_human_name(segment.get(2))
        if name:
            res["name"] = [name.as_fhir()]

        # NK1-5 home, NK1-6 business
        telecom = phones(segment.get(5), "home")[:1] + phones(segment.get(6), "work")[:1]
        if telecom:
            res["telecom"] = telecom

        address = to_address(segment.get(4))
        if address:
            res["address"] = [address.as_fhir()]

        return construct(RelatedPerson, res)
