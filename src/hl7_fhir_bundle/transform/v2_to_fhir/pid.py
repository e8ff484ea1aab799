# src/hl7_fhir_bundle/transform/v2_to_fhir/pid.py
"""
PID (patient identification) -> FHIR Patient.

Notes
-----
- A message describes one patient, so the Patient id is always "patient-1".
- Identifiers: every PID-3 repetition (MR), PID-18 (AN), PID-19 (SS) and the
  first component of PID-20 (DL).
- Race (PID-10) and ethnicity (PID-22) each become one US Core extension per
  repetition carrying an OMB category coding.
- Death: PID-29 wins; PID-30 == "Y" only counts when there is no death date.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fhir.resources.R4B.patient import Patient

from ... import codes
from ...fields import Segment, component, components, value, values
from ...normalizers import (
    to_address,
    to_fhir_date,
    to_fhir_datetime,
    to_gender,
    to_human_name,
    to_identifier,
)
from ..base import MappingContext, Resource, construct
from ..registry import register
from ._common import coding, phones

# ------------------------------------------------------------------------------
# globals
# ------------------------------------------------------------------------------

SEGMENT = "PID"
PATIENT_ID = "patient-1"


# ------------------------------------------------------------------------------
# helpers
# ------------------------------------------------------------------------------


def _identifiers(segment: Segment) -> List[Dict[str, Any]]:
    found = [to_identifier(inst, None, "MR") for inst in values(segment.get(3))]
    found.append(to_identifier(segment.get(18), None, "AN"))
    found.append(to_identifier(value(segment.get(19)), codes.US_SSN, "SS"))
    found.append(to_identifier(component(segment.get(20), 0), None, "DL"))
    return [ident.as_fhir() for ident in found if ident]


def _omb_extensions(segment: Segment, number: int, url: str) -> List[Dict[str, Any]]:
    out = []
    for inst in values(segment.get(number)):
        parts = components(inst)
        code = parts[0] if parts else ""
        if not code:
            continue
        display = parts[1] if len(parts) > 1 else None
        out.append(
            {
                "url": url,
                "extension": [
                    {
                        "url": "ombCategory",
                        "valueCoding": coding(codes.CDC_RACE_ETHNICITY, code, display),
                    }
                ],
            }
        )
    return out


@register(SEGMENT)
class PIDMapper:
    """
    Map patient demographics to a US Core Patient resource.
    """

    resource_type = "Patient"
    id_prefix = "patient"
    id_strategy = "fixed"

    def fixed_id(self, segment: Segment) -> str:
        return PATIENT_ID

    def build(self, segment: Segment, context: MappingContext) -> Resource:
        res: Dict[str, Any] = {
            "id": context.resource_id,
            "meta": {"profile": [codes.US_CORE_PATIENT]},
        }

        identifiers = _identifiers(segment)
        if identifiers:
            res["identifier"] = identifiers

        names = [to_human_name(inst) for inst in values(segment.get(5))]
        names_fhir = [n.as_fhir() for n in names if n]
        if names_fhir:
            res["name"] = names_fhir

        telecom = phones(segment.get(13), "home") + phones(segment.get(14), "work")
        if telecom:
            res["telecom"] = telecom

        res["gender"] = to_gender(segment.get(8))

        birth_date = to_fhir_date(segment.get(7))
        if birth_date:
            res["birthDate"] = birth_date

        addresses = [to_address(inst) for inst in values(segment.get(11))]
        addresses_fhir = [a.as_fhir() for a in addresses if a]
        if addresses_fhir:
            res["address"] = addresses_fhir

        marital = segment.get(16)
        marital_code = component(marital, 0)
        if marital_code:
            res["maritalStatus"] = {
                "coding": [
                    coding(
                        codes.V3_MARITAL_STATUS, marital_code, component(marital, 1)
                    )
                ]
            }

        language = component(segment.get(15), 0)
        if language:
            res["communication"] = [
                {
                    "language": {"coding": [{"system": codes.BCP47, "code": language}]},
                    "preferred": True,
                }
            ]

        extensions = _omb_extensions(segment, 10, codes.US_CORE_RACE)
        extensions += _omb_extensions(segment, 22, codes.US_CORE_ETHNICITY)
        if extensions:
            res["extension"] = extensions

        death = to_fhir_datetime(segment.get(29))
        if death:
            res["deceasedDateTime"] = death
        elif value(segment.get(30)) == "Y":
            res["deceasedBoolean"] = True

        return construct(Patient, res)
