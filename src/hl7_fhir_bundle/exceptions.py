# src/hl7_fhir_bundle/exceptions.py
"""
Custom exceptions for hl7_fhir_bundle.

All exceptions inherit from HL7FHIRBundleError so that callers can catch
converter-specific errors without grabbing unrelated built-in exceptions.
"""


class HL7FHIRBundleError(Exception):
    """Base class for all hl7_fhir_bundle exceptions."""

    pass


class InputError(HL7FHIRBundleError, ValueError):
    """Raised when the message handed to convert() is empty or blank."""

    pass


class ParseError(HL7FHIRBundleError):
    """Raised when an HL7 v2 message cannot be parsed correctly."""

    pass


class TransformError(HL7FHIRBundleError):
    """Raised when a segment cannot be turned into a FHIR resource."""

    pass


class DuplicateIdError(TransformError):
    """Raised when two resources claim the same id under the 'error' policy."""

    pass
