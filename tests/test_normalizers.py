# tests/test_normalizers.py
"""
Tests for hl7_fhir_bundle.normalizers.
"""

import pytest

from hl7_fhir_bundle import codes
from hl7_fhir_bundle.fields import Components, Repetition, Scalar, SubComponents
from hl7_fhir_bundle.normalizers import (
    Address,
    CodedElement,
    HumanName,
    Identifier,
    address_use,
    system_uri,
    to_address,
    to_coded_element,
    to_fhir_date,
    to_fhir_datetime,
    to_gender,
    to_human_name,
    to_identifier,
    to_number,
    to_quantity,
)

# ------------------------------------------------------------------------------
# date / time
# ------------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("20240101120000", "2024-01-01T12:00:00"),
        ("19800115", "1980-01-15"),
        ("202401011200", "2024-01-01"),
        ("20240101120000.1234+0500", "2024-01-01T12:00:00"),
        ("20240101-0500", "2024-01-01"),
        ("2024", None),
        ("2024010", None),
        ("", None),
        (None, None),
        ("ABCDEFGH", None),
        ("2024AB01", None),
    ],
)
def test_to_fhir_datetime(raw, expected):
    assert to_fhir_datetime(raw) == expected


@pytest.mark.parametrize("raw", ["20240101120000", "19800115"])
def test_to_fhir_datetime_is_idempotent(raw):
    once = to_fhir_datetime(raw)
    assert to_fhir_datetime(once) == once


def test_to_fhir_datetime_accepts_field_values():
    assert to_fhir_datetime(Scalar("19800115")) == "1980-01-15"
    assert to_fhir_datetime(Components(("20240101120000", "S"))) == "2024-01-01T12:00:00"


def test_to_fhir_date():
    assert to_fhir_date("20240101120000") == "2024-01-01"
    assert to_fhir_date("19800115") == "1980-01-15"
    assert to_fhir_date("") is None


# ------------------------------------------------------------------------------
# names
# ------------------------------------------------------------------------------


def test_to_human_name_full():
    name = to_human_name("DOE^JOHN^MIDDLE^JR^DR^MD")
    assert name == HumanName("DOE", ("JOHN", "MIDDLE"), ("JR",), ("DR",))
    assert name.as_fhir() == {
        "family": "DOE",
        "given": ["JOHN", "MIDDLE"],
        "suffix": ["JR"],
        "prefix": ["DR"],
    }


def test_to_human_name_has_no_use_key():
    assert to_human_name("DOE^JOHN^MIDDLE^JR^^L").as_fhir() == {
        "family": "DOE",
        "given": ["JOHN", "MIDDLE"],
        "suffix": ["JR"],
    }


def test_to_human_name_splits_given_on_whitespace():
    assert to_human_name("ROE^Casey Joan").given == ("Casey", "Joan")


def test_to_human_name_family_or_given_only():
    assert to_human_name("DOE").as_fhir() == {"family": "DOE"}
    assert to_human_name("^JOHN").as_fhir() == {"given": ["JOHN"]}


@pytest.mark.parametrize("raw", ["", "^^^JR", None, Components(("", "", ""))])
def test_to_human_name_absent(raw):
    assert to_human_name(raw) is None


def test_human_name_display():
    assert to_human_name("DOE^JOHN^MIDDLE").display() == "JOHN MIDDLE DOE"
    assert to_human_name("^JOHN").display() == "JOHN"


# ------------------------------------------------------------------------------
# addresses
# ------------------------------------------------------------------------------


def test_to_address_full():
    addr = to_address("123 MAIN ST&APT 4^CITY^ST^12345^USA^B^COUNTY")
    assert addr == Address(
        line=("123 MAIN ST", "APT 4"),
        city="CITY",
        state="ST",
        postal_code="12345",
        country="USA",
        district="COUNTY",
        use="work",
    )
    assert addr.as_fhir() == {
        "use": "work",
        "line": ["123 MAIN ST", "APT 4"],
        "city": "CITY",
        "district": "COUNTY",
        "state": "ST",
        "postalCode": "12345",
        "country": "USA",
    }


def test_to_address_from_parsed_subcomponents():
    raw = Components((SubComponents(("1 A ST", "FL 2")), "TOWN"))
    assert to_address(raw).line == ("1 A ST", "FL 2")


def test_to_address_city_only_has_no_line_key():
    assert to_address("^CITY").as_fhir() == {"use": "home", "city": "CITY"}


def test_to_address_absent_without_line_city_state():
    assert to_address("^^^12345^USA") is None
    assert to_address("") is None


@pytest.mark.parametrize(
    "code, use",
    [("B", "work"), ("C", "home"), ("H", "home"), ("M", "home"), ("O", "work"),
     ("P", "home"), ("h", "home"), ("Z", "home"), (None, "home")],
)
def test_address_use(code, use):
    assert address_use(code) == use


# ------------------------------------------------------------------------------
# identifiers
# ------------------------------------------------------------------------------


def test_to_identifier_full():
    ident = to_identifier("MRN1^^^1.2.3^MR^FAC")
    assert ident == Identifier("MRN1", "urn:oid:1.2.3", "MR", "FAC")
    assert ident.as_fhir() == {
        "value": "MRN1",
        "system": "urn:oid:1.2.3",
        "type": {
            "coding": [
                {
                    "system": codes.V2_0203,
                    "code": "MR",
                    "display": "Medical Record Number",
                }
            ]
        },
        "extension": [
            {"url": codes.EXT_ASSIGNING_FACILITY, "valueString": "FAC"}
        ],
    }


def test_to_identifier_uses_caller_defaults():
    ident = to_identifier("123456789", codes.US_SSN, "SS")
    assert ident.system == codes.US_SSN
    assert ident.type_code == "SS"


def test_to_identifier_own_type_code_wins_over_caller():
    assert to_identifier("X1^^^^PI", None, "MR").type_code == "PI"


def test_to_identifier_unknown_type_has_no_display():
    coding = to_identifier("M1", None, "MB").as_fhir()["type"]["coding"][0]
    assert coding == {"system": codes.V2_0203, "code": "MB"}


def test_to_identifier_minimal():
    assert to_identifier("V1").as_fhir() == {"value": "V1"}


@pytest.mark.parametrize("raw", ["", "^^^1.2.3^MR", None])
def test_to_identifier_absent_without_value(raw):
    assert to_identifier(raw, None, "MR") is None


# ------------------------------------------------------------------------------
# gender
# ------------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, gender",
    [
        ("M", "male"),
        ("F", "female"),
        ("O", "other"),
        ("U", "unknown"),
        ("A", "other"),
        ("N", "unknown"),
        ("f", "female"),
        ("X", "unknown"),
        ("", "unknown"),
        (None, "unknown"),
        (Scalar("M"), "male"),
    ],
)
def test_to_gender(raw, gender):
    assert to_gender(raw) == gender


# ------------------------------------------------------------------------------
# coded elements
# ------------------------------------------------------------------------------


def test_to_coded_element_maps_system_name():
    ce = to_coded_element("85354-9^Heart rate^LN", codes.SNOMED)
    assert ce == CodedElement(codes.LOINC, "85354-9", "Heart rate")
    assert ce.as_fhir() == {
        "coding": [{"system": codes.LOINC, "code": "85354-9", "display": "Heart rate"}],
        "text": "Heart rate",
    }


def test_to_coded_element_default_system_and_code_as_text():
    ce = to_coded_element("E11.9", codes.ICD10)
    assert ce.as_fhir() == {
        "coding": [{"system": codes.ICD10, "code": "E11.9"}],
        "text": "E11.9",
    }


def test_to_coded_element_unknown_system_kept_verbatim():
    assert to_coded_element("LA^Laboratory^HL70148", codes.SNOMED).system == "HL70148"


def test_to_coded_element_display_only_has_no_coding():
    assert to_coded_element("^Penicillin", codes.SNOMED).as_fhir() == {
        "text": "Penicillin"
    }


def test_to_coded_element_from_repetition_uses_first_instance():
    raw = Repetition((Components(("A1", "First")), Components(("A2", "Second"))))
    assert to_coded_element(raw, codes.SNOMED).code == "A1"


@pytest.mark.parametrize("raw", ["", "^^LN", None])
def test_to_coded_element_absent(raw):
    assert to_coded_element(raw, codes.LOINC) is None


@pytest.mark.parametrize(
    "name, default, expected",
    [("sct", None, codes.SNOMED), ("", codes.CPT, codes.CPT), (None, None, None)],
)
def test_system_uri(name, default, expected):
    assert system_uri(name, default) == expected


# ------------------------------------------------------------------------------
# numbers / quantities
# ------------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("72", 72),
        (" -3 ", -3),
        ("+4", 4),
        ("98.6", 98.6),
        (".5", 0.5),
        ("1e3", 1000.0),
        ("", None),
        ("abc", None),
        ("12abc", None),
        ("nan", None),
        ("inf", None),
        ("1e999", None),
        (None, None),
    ],
)
def test_to_number(raw, expected):
    assert to_number(raw) == expected


def test_to_number_int_for_integral_text():
    assert isinstance(to_number("72"), int)
    assert isinstance(to_number("72.0"), float)


def test_to_quantity_with_unit():
    q = to_quantity("72", "/min")
    assert q.as_fhir() == {
        "value": 72,
        "unit": "/min",
        "system": codes.UCUM,
        "code": "/min",
    }


def test_to_quantity_maps_unit_system():
    q = to_quantity("5", Components(("mg", "milligram", "UCUM")))
    assert q.system == codes.UCUM
    q = to_quantity("5", "mg^milligram^LOCAL")
    assert q.system == "LOCAL"


def test_to_quantity_without_unit():
    assert to_quantity("3.5").as_fhir() == {"value": 3.5}


def test_to_quantity_comparator():
    assert to_quantity("100", "mg", comparator="<").as_fhir()["comparator"] == "<"
    assert to_quantity("100", "mg", comparator="~").comparator is None


def test_to_quantity_not_numeric():
    assert to_quantity("high", "mg") is None
    assert to_quantity(None) is None
