# src/hl7_fhir_bundle/__init__.py
"""
hl7_fhir_bundle: HL7 v2 -> FHIR R4 Bundle conversion.

This package provides:
- convert / convert_parsed: turn one HL7 v2 message into a collection Bundle.
- validate: a cheap structural check of raw message text.
- sample_message: a deterministic ADT^A01 message touching every mapped
  segment.
- A CLI (hl7-fhir-bundle) wrapping the above.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .bundle import convert, convert_parsed, validate  # noqa: E402
from .samples import sample_message  # noqa: E402

__all__ = [
    "__version__",
    "convert",
    "convert_parsed",
    "sample_message",
    "validate",
]
