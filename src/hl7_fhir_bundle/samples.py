# src/hl7_fhir_bundle/samples.py
"""
Deterministic sample ADT^A01 message.

The message touches every segment the converter maps (plus EVN, which it
ignores) so it can be used as a smoke test and as CLI demo input. Segments
are built from field-number -> text maps so each value sits at its documented
position.
"""

from __future__ import annotations

from typing import Dict

SEGMENT_SEPARATOR = "\r"


def _segment(seg_type: str, fields: Dict[int, str]) -> str:
    """Render an ER7 line, leaving unlisted fields empty."""
    last = max(fields) if fields else 0
    return "|".join([seg_type] + [fields.get(n, "") for n in range(1, last + 1)])


MSH = (
    "MSH|^~\\&|SendingApp|SendingFacility|ReceivingApp|ReceivingFacility|"
    "20240101120000||ADT^A01^ADT_A01|12345|P|2.5"
)

EVN = _segment("EVN", {1: "A01", 2: "20240101120000", 5: "SendingUserID"})

PID = _segment(
    "PID",
    {
        1: "1",
        3: "MRN123456789^^^HOSPITAL^MR~MRN987654321^^^CLINIC^MR",
        5: "DOE^JOHN^MIDDLE^JR^^L",
        6: "DOE^JANE",
        7: "19800115",
        8: "M",
        10: "2106-3^White^HL70005~2028-9^Asian^HL70005",
        11: "123 MAIN ST^CITY^ST^12345^USA^H^COUNTY",
        13: "555-123-4567",
        14: "555-987-6543",
        15: "ENG^English^ISO639",
        16: "M^Married^HL70002",
        18: "ACCT123456",
        19: "123456789",
        20: "DL123456789^STATE^20250101",
        22: "2186-5^Not Hispanic or Latino^HL70189",
    },
)

NK1 = _segment(
    "NK1",
    {
        1: "1",
        2: "SMITH^JANE^M",
        3: "WIFE^Wife^HL70063",
        4: "456 SECOND ST^CITY^ST^67890^USA",
        5: "555-987-6543",
        6: "555-111-2222",
    },
)

PV1 = _segment(
    "PV1",
    {
        1: "1",
        2: "I",
        3: "ICU^101^A^HOSPITAL",
        4: "E",
        7: "123456^DOCTOR^JOHN^MD",
        8: "789012^REFERRING^JANE^MD",
        17: "345678^ADMITTING^ANN^MD",
        19: "V123456",
        20: "FC001^Self Pay^HL70064",
        36: "01",
        44: "20240101100000",
    },
)

AL1 = _segment(
    "AL1",
    {
        1: "1",
        2: "DA",
        3: "48720000^Penicillin^SNM",
        4: "SV",
        5: "247472004^Hives",
        6: "20200101",
    },
)

DG1 = _segment(
    "DG1",
    {
        1: "1",
        2: "I10",
        3: "E11.9^Type 2 diabetes mellitus without complications^I10",
        4: "Type 2 diabetes",
        5: "20240101",
        6: "F",
        16: "123456^DIAGNOSING^DOC^MD",
    },
)

PR1 = _segment(
    "PR1",
    {
        1: "1",
        2: "C4",
        3: "99213^Office or other outpatient visit^CPT",
        4: "Office visit",
        5: "20240101",
        11: "123456^SURGEON^JOHN^MD",
    },
)

IN1 = _segment(
    "IN1",
    {
        1: "1",
        2: "PLAN001",
        3: "INS001^^NPI",
        4: "ACME Insurance",
        5: "123 Insurance St^City^ST^12345",
        8: "GRP001",
        12: "20240101",
        13: "20241231",
        16: "DOE^JOHN^MIDDLE",
        17: "SEL",
        36: "POL123456",
    },
)

IN2 = _segment("IN2", {1: "1", 61: "MEM987654"})

OBX = _segment(
    "OBX",
    {
        1: "1",
        2: "NM",
        3: "85354-9^Heart rate^LN",
        5: "72",
        6: "/min^beats per minute^UCUM",
        7: "60-100",
        8: "N",
        11: "F",
        14: "20240101120000",
        15: "LAB001",
        17: "LA^Laboratory^HL70148",
    },
)

SAMPLE_ADT_A01 = SEGMENT_SEPARATOR.join(
    [MSH, EVN, PID, NK1, PV1, AL1, DG1, PR1, IN1, IN2, OBX]
)


def sample_message() -> str:
    """Return the sample ADT^A01 message (segments separated by CR)."""
    return SAMPLE_ADT_A01
