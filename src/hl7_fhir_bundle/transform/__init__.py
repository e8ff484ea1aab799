# src/hl7_fhir_bundle/transform/__init__.py
"""
Segment-to-resource mapping.

Importing this package registers every mapper under v2_to_fhir, so
registry.get_mapper("PID") works for any caller that imported it.
"""

from __future__ import annotations

from .v2_to_fhir import load_all as _load_segment_mappers

_load_segment_mappers()
