# src/hl7_fhir_bundle/transform/v2_to_fhir/_common.py
"""
Small JSON builders shared by the segment mappers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...fields import RawField, value, values


def coding(system: str, code: str, display: Optional[str] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"system": system, "code": code}
    if display:
        out["display"] = display
    return out


def concept(system: str, code: str, display: Optional[str] = None) -> Dict[str, Any]:
    return {"coding": [coding(system, code, display)]}


def ref(reference: str) -> Dict[str, str]:
    return {"reference": reference}


def phones(raw: RawField, use: str) -> List[Dict[str, str]]:
    """One ContactPoint per non-empty repetition of an XTN field."""
    out = []
    for inst in values(raw):
        number = value(inst)
        if number:
            out.append({"system": "phone", "value": number, "use": use})
    return out
