# tests/test_fields.py
"""
Tests for hl7_fhir_bundle.fields.
"""

import pytest

from hl7_fhir_bundle.fields import (
    Components,
    ParsedMessage,
    Repetition,
    Scalar,
    Segment,
    SubComponents,
    component,
    components,
    exists,
    text,
    value,
    values,
)

# ------------------------------------------------------------------------------
# value()
# ------------------------------------------------------------------------------


def test_value_absent_and_empty_are_none():
    assert value(None) is None
    assert value(Scalar("")) is None
    assert value(Components(())) is None
    assert value(Repetition(())) is None


def test_value_scalar_ignores_index():
    assert value(Scalar("M")) == "M"
    assert value(Scalar("M"), 3) == "M"


def test_value_components_by_index():
    raw = Components(("DOE", "JOHN", "MIDDLE"))
    assert value(raw) == "DOE"
    assert value(raw, 1) == "JOHN"
    assert value(raw, 2) == "MIDDLE"


def test_value_out_of_range_falls_back_to_first_element():
    raw = Components(("DOE", "JOHN"))
    assert value(raw, 7) == "DOE"
    assert value(raw, -1) == "DOE"


def test_value_unwraps_subcomponents():
    raw = Components((SubComponents(("123 MAIN ST", "APT 4")), "CITY"))
    assert value(raw) == "123 MAIN ST"


def test_value_repetition_returns_first_component_of_instance():
    raw = Repetition(
        (Components(("MRN1", "", "", "HOSP")), Components(("MRN2", "", "", "CLINIC")))
    )
    assert value(raw) == "MRN1"
    assert value(raw, 1) == "MRN2"


def test_value_repetition_of_scalars():
    raw = Repetition((Scalar("L"), Scalar("H")))
    assert value(raw, 1) == "H"


def test_value_rejects_foreign_types():
    with pytest.raises(TypeError, match=r"^not a field value: int"):
        value(42)


def test_value_empty_component_is_none():
    assert value(Components(("", "JOHN"))) is None


# ------------------------------------------------------------------------------
# values()
# ------------------------------------------------------------------------------


def test_values_absent_is_empty_list():
    assert values(None) == []


def test_values_single_instances():
    assert values(Scalar("A")) == [Scalar("A")]
    comps = Components(("DOE", "JOHN"))
    # a flat list of components is one value, not repeated scalars
    assert values(comps) == [comps]


def test_values_repetition_instances():
    raw = Repetition((Scalar("A"), Components(("B", "C"))))
    assert values(raw) == [Scalar("A"), Components(("B", "C"))]


def test_values_rejects_foreign_types():
    with pytest.raises(TypeError, match=r"^not a field value: str"):
        values("A^B")


# ------------------------------------------------------------------------------
# exists()
# ------------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, False),
        (Scalar(""), False),
        (Components(("", "")), False),
        (Components(("", SubComponents(("", "")))), False),
        (Repetition((Scalar(""), Components(("", "")))), False),
        (Scalar("x"), True),
        (Components(("", "x")), True),
        (Components((SubComponents(("", "x")),)), True),
        (Repetition((Scalar(""), Scalar("x"))), True),
    ],
)
def test_exists_flattens_recursively(raw, expected):
    assert exists(raw) is expected


# ------------------------------------------------------------------------------
# components() / component() / text()
# ------------------------------------------------------------------------------


def test_components_of_scalar_and_absent():
    assert components(None) == []
    assert components(Scalar("I")) == ["I"]


def test_components_rejoins_subcomponents():
    raw = Components((SubComponents(("123 MAIN ST", "APT 4")), "CITY"))
    assert components(raw) == ["123 MAIN ST&APT 4", "CITY"]


def test_components_uses_first_repetition():
    raw = Repetition((Components(("A", "B")), Components(("C", "D"))))
    assert components(raw) == ["A", "B"]


def test_component_index_and_missing():
    raw = Components(("ICU", "101", ""))
    assert component(raw, 1) == "101"
    assert component(raw, 2) is None
    assert component(raw, 9) is None


def test_text_rejoins_components():
    assert text(Components(("3.5", "5.1", "mmol/L"))) == "3.5^5.1^mmol/L"
    assert text(Scalar("free text")) == "free text"


def test_text_of_separators_only_is_none():
    assert text(None) is None
    assert text(Components(("", ""))) is None


# ------------------------------------------------------------------------------
# Segment / ParsedMessage
# ------------------------------------------------------------------------------


def test_segment_get_handles_unparsed_body():
    seg = Segment("PID", None, raw="PID")
    assert seg.get(5) is None


def test_segment_get_field():
    seg = Segment("PV1", {2: Scalar("I")})
    assert seg.get(2) == Scalar("I")
    assert seg.get(3) is None


def test_parsed_message_lookup_helpers():
    a = Segment("OBX", {1: Scalar("1")})
    b = Segment("OBX", {1: Scalar("2")})
    pid = Segment("PID", {})
    msg = ParsedMessage([a, pid, b])
    assert msg.of_type("OBX") == [a, b]
    assert msg.first("PID") is pid
    assert msg.first("PV1") is None
