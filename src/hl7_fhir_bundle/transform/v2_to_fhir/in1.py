# src/hl7_fhir_bundle/transform/v2_to_fhir/in1.py
"""
IN1 (insurance) + paired IN2 -> FHIR Coverage.

Notes
-----
- The bundle assembler pairs an IN2 with the IN1 whose set-id equals IN2-1
  and hands it over as context.paired.
- Coverage period is date-only; an expiration date (IN1-13) is only kept
  together with an effective date (IN1-12).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fhir.resources.R4B.coverage import Coverage

from ... import codes
from ...fields import Segment, component, value
from ...normalizers import Identifier, system_uri, to_fhir_date, to_human_name
from ..base import MappingContext, Resource, construct
from ..registry import register
from ._common import ref

SEGMENT = "IN1"
PAIRED_SEGMENT = "IN2"
MEMBER_NUMBER_TYPE = "MB"


def _payor(segment: Segment) -> List[Dict[str, Any]]:
    payor: Dict[str, Any] = {}
    company_name = component(segment.get(4), 0)
    if company_name:
        payor["display"] = company_name
    company_id = segment.get(3)
    id_value = component(company_id, 0)
    if id_value:
        payor["identifier"] = {
            "system": system_uri(component(company_id, 2), codes.NPI),
            "value": id_value,
        }
    return [payor] if payor else []


def _identifiers(segment: Segment, paired: Optional[Segment]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    policy_number = value(segment.get(36))
    if policy_number:
        out.append({"system": codes.POLICY_NUMBER_SYSTEM, "value": policy_number})
    if paired is not None:
        member_number = value(paired.get(61))
        if member_number:
            out.append(Identifier(member_number, type_code=MEMBER_NUMBER_TYPE).as_fhir())
    return out


@register(SEGMENT)
class IN1Mapper:
    """
    Map an insurance segment, and its IN2 companion when present, to a
    Coverage resource.
    """

    resource_type = "Coverage"
    id_prefix = "coverage"
    id_strategy = "sequence"

    def build(self, segment: Segment, context: MappingContext) -> Resource:
        res: Dict[str, Any] = {"id": context.resource_id}

        identifiers = _identifiers(segment, context.paired)
        if identifiers:
            res["identifier"] = identifiers

        res["status"] = "active"

        insured = to_human_name(segment.get(16))
        if insured:
            res["subscriber"] = {"display": insured.display()}

        subscriber_id = value(segment.get(8))
        if subscriber_id:
            res["subscriberId"] = subscriber_id

        res["beneficiary"] = ref(context.patient_ref)

        relationship = value(segment.get(17))
        if relationship:
            res["relationship"] = {
                "coding": [{"system": codes.SUBSCRIBER_RELATIONSHIP, "code": relationship}]
            }

        start = to_fhir_date(segment.get(12))
        if start:
            period = {"start": start}
            end = to_fhir_date(segment.get(13))
            if end:
                period["end"] = end
            res["period"] = period

        payor = _payor(segment)
        if payor:
            res["payor"] = payor

        return construct(Coverage, res)
