# tests/conftest.py
"""
Shared fixtures for the converter tests.
"""

import logging

import pytest

from hl7_fhir_bundle.hl7_parser import parse_segment
from hl7_fhir_bundle.transform.base import MappingContext, resource_json
from hl7_fhir_bundle.transform.registry import get_mapper


def pytest_configure(config):
    # hl7apy is chatty at DEBUG; keep test output readable
    logging.getLogger("hl7apy").setLevel(logging.WARNING)


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """
    configure_logging() swaps handlers on the root logger; put them back so a
    handler bound to one test's captured stderr never outlives that test.
    """
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def map_segment():
    """
    Build the resource for one ER7 line with the mapper registered for its
    segment id, returned as FHIR JSON.

    Usage: map_segment("AL1|1|DA|...", encounter_ref="Encounter/encounter-1")
    """

    def _map(line, paired=None, **context):
        seg = parse_segment(line)
        mapper = get_mapper(seg.segment_type)
        assert mapper is not None, f"no mapper for {seg.segment_type}"
        context.setdefault("resource_id", f"{mapper.id_prefix}-1")
        context.setdefault("patient_ref", "Patient/patient-1")
        if paired is not None:
            context["paired"] = parse_segment(paired)
        return resource_json(mapper.build(seg, MappingContext(**context)))

    return _map
