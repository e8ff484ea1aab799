# src/hl7_fhir_bundle/codes.py
"""
Static code tables used by the normalizers and segment mappers.

Every table is an exhaustive, read-only mapping. The value used when a code
is missing from a table is declared next to the table as ``<TABLE>_DEFAULT``
(or is "no value", noted in the comment) so each branch can be tested.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, NamedTuple

# ------------------------------------------------------------------------------
# code system URIs
# ------------------------------------------------------------------------------

LOINC = "http://loinc.org"
SNOMED = "http://snomed.info/sct"
ICD10 = "http://hl7.org/fhir/sid/icd-10"
CPT = "http://www.ama-assn.org/go/cpt"
UCUM = "http://unitsofmeasure.org"
NPI = "http://hl7.org/fhir/sid/us-npi"
US_SSN = "http://hl7.org/fhir/sid/us-ssn"
BCP47 = "urn:ietf:bcp:47"
CDC_RACE_ETHNICITY = "urn:oid:2.16.840.1.113883.6.238"

V2_0003 = "http://terminology.hl7.org/CodeSystem/v2-0003"
V2_0007 = "http://terminology.hl7.org/CodeSystem/v2-0007"
V2_0064 = "http://terminology.hl7.org/CodeSystem/v2-0064"
V2_0203 = "http://terminology.hl7.org/CodeSystem/v2-0203"
V3_ACT_CODE = "http://terminology.hl7.org/CodeSystem/v3-ActCode"
V3_MARITAL_STATUS = "http://terminology.hl7.org/CodeSystem/v3-MaritalStatus"
V3_PARTICIPATION_TYPE = "http://terminology.hl7.org/CodeSystem/v3-ParticipationType"
V3_ROLE_CODE = "http://terminology.hl7.org/CodeSystem/v3-RoleCode"
V3_OBSERVATION_INTERPRETATION = (
    "http://terminology.hl7.org/CodeSystem/v3-ObservationInterpretation"
)
ALLERGY_CLINICAL = "http://terminology.hl7.org/CodeSystem/allergyintolerance-clinical"
ALLERGY_VERIFICATION = (
    "http://terminology.hl7.org/CodeSystem/allergyintolerance-verification"
)
CONDITION_CLINICAL = "http://terminology.hl7.org/CodeSystem/condition-clinical"
CONDITION_CATEGORY = "http://terminology.hl7.org/CodeSystem/condition-category"
SUBSCRIBER_RELATIONSHIP = (
    "http://terminology.hl7.org/CodeSystem/subscriber-relationship"
)
DISCHARGE_DISPOSITION = "http://www.nubc.org/CodeSystem/discharge-disposition"

VISIT_NUMBER_SYSTEM = "http://hospital.org/visit-number"
POLICY_NUMBER_SYSTEM = "http://insurance.org/policy-number"

US_CORE_PATIENT = "http://hl7.org/fhir/us/core/StructureDefinition/us-core-patient"
US_CORE_RACE = "http://hl7.org/fhir/us/core/StructureDefinition/us-core-race"
US_CORE_ETHNICITY = "http://hl7.org/fhir/us/core/StructureDefinition/us-core-ethnicity"
EXT_ASSIGNING_FACILITY = (
    "http://hl7.org/fhir/StructureDefinition/identifier-assigningFacility"
)
EXT_FINANCIAL_CLASS = (
    "http://hl7.org/fhir/StructureDefinition/encounter-financialClass"
)
FHIR_VERSION_FOCUS = "http://hl7.org/fhir/StructureDefinition/hl7-fhir-version-"


# HL7 table 0396 coding-system names -> FHIR system URIs. Names not listed
# are passed through unchanged.
CODING_SYSTEM_URIS: Mapping[str, str] = MappingProxyType(
    {
        "LN": LOINC,
        "LOINC": LOINC,
        "SCT": SNOMED,
        "SNM": SNOMED,
        "SNOMED": SNOMED,
        "I10": ICD10,
        "ICD10": ICD10,
        "C4": CPT,
        "CPT": CPT,
        "UCUM": UCUM,
        "NPI": NPI,
    }
)


# ------------------------------------------------------------------------------
# demographics
# ------------------------------------------------------------------------------

# HL7 table 0001 -> FHIR AdministrativeGender
ADMINISTRATIVE_SEX: Mapping[str, str] = MappingProxyType(
    {
        "M": "male",
        "F": "female",
        "O": "other",
        "U": "unknown",
        "A": "other",
        "N": "unknown",
    }
)
ADMINISTRATIVE_SEX_DEFAULT = "unknown"

# XAD address type -> FHIR Address.use
ADDRESS_USE: Mapping[str, str] = MappingProxyType(
    {
        "B": "work",
        "C": "home",
        "H": "home",
        "M": "home",
        "O": "work",
        "P": "home",
    }
)
ADDRESS_USE_DEFAULT = "home"

# HL7 table 0203 identifier types with a display; other codes carry no display
IDENTIFIER_TYPE_DISPLAY: Mapping[str, str] = MappingProxyType(
    {
        "MR": "Medical Record Number",
        "SS": "Social Security Number",
        "DL": "Driver's License Number",
        "PPN": "Passport Number",
        "PI": "Patient Identifier",
        "AN": "Account Number",
        "VN": "Visit Number",
    }
)


# ------------------------------------------------------------------------------
# encounters
# ------------------------------------------------------------------------------


class ActCode(NamedTuple):
    code: str
    display: str


# PV1-2 patient class -> v3 ActCode
ENCOUNTER_CLASS: Mapping[str, ActCode] = MappingProxyType(
    {
        "I": ActCode("IMP", "inpatient encounter"),
        "O": ActCode("AMB", "ambulatory"),
        "E": ActCode("EMER", "emergency"),
        "P": ActCode("PRENC", "pre-admission"),
        "N": ActCode("NONAC", "non-acute"),
        "R": ActCode("PRENC", "pre-admission"),
    }
)
ENCOUNTER_CLASS_DEFAULT = ENCOUNTER_CLASS["I"]


class Participation(NamedTuple):
    field: int
    code: str
    display: str
    practitioner_id: str


# PV1 doctor fields, in the order participants are emitted
ENCOUNTER_PARTICIPANTS = (
    Participation(7, "ATND", "attending", "practitioner-attending-1"),
    Participation(8, "REF", "referrer", "practitioner-referring-1"),
    Participation(17, "ADM", "admitter", "practitioner-admitting-1"),
)


# ------------------------------------------------------------------------------
# clinical
# ------------------------------------------------------------------------------

# AL1-2 allergen type; codes not listed map to ALLERGEN_TYPE_DEFAULT
ALLERGEN_TYPE: Mapping[str, str] = MappingProxyType(
    {
        "DA": "drug",
        "FA": "food",
        "MA": "medication",
        "MC": "medication",
        "EA": "environment",
        "PA": "pollen",
        "AA": "animal",
    }
)
ALLERGEN_TYPE_DEFAULT = "allergy"

# AL1-4 severity; codes not listed set no severity
ALLERGY_SEVERITY: Mapping[str, str] = MappingProxyType(
    {
        "SV": "severe",
        "MO": "moderate",
        "MI": "mild",
    }
)

# DG1-6 diagnosis type; codes not listed set no category
DIAGNOSIS_TYPE: Mapping[str, str] = MappingProxyType(
    {
        "A": "admitting",
        "W": "working",
        "F": "final",
        "I": "interim",
    }
)

SURGEON_ROLE = ActCode("304292004", "Surgeon")

# OBX-8 abnormal flags; flags not listed leave interpretation untouched
INTERPRETATION: Mapping[str, str] = MappingProxyType(
    {
        "L": "Low",
        "H": "High",
        "LL": "Critical Low",
        "HH": "Critical High",
        "N": "Normal",
        "A": "Abnormal",
    }
)

# OBX-11 result status
OBSERVATION_STATUS: Mapping[str, str] = MappingProxyType(
    {
        "F": "final",
        "P": "preliminary",
        "C": "corrected",
        "X": "cancelled",
        "I": "entered-in-error",
        "D": "deleted",
        "R": "registered",
        "S": "partial",
    }
)
OBSERVATION_STATUS_DEFAULT = "final"

# SN comparators accepted in the first component of an OBX-5 structured numeric
QUANTITY_COMPARATORS = frozenset({"<", "<=", ">=", ">"})
