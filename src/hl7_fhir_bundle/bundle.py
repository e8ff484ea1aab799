# src/hl7_fhir_bundle/bundle.py
"""
Bundle assembly and the public conversion API.

Provides:
- validate: cheap structural check of raw ER7 text
- convert: raw ER7 text -> FHIR R4 collection Bundle (dict)
- convert_parsed: ParsedMessage -> Bundle, for callers that parse themselves
- BundleAssembler: discovers segments, threads ids and references through
  the registered segment mappers, and emits entries in resource-type order
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, cast

from fhir.resources.R4B.bundle import Bundle, BundleEntry

from .config import AppConfig
from .exceptions import InputError, TransformError
from .fields import ParsedMessage, Segment, value
from .hl7_parser import to_parsed_message
from .ids import AssignedId, IdAssigner, reference
from .transform.base import (
    FixedIdMapper,
    MappingContext,
    Resource,
    SegmentMapper,
    construct,
    resource_json,
)
from .transform.registry import get_mapper
from .transform.v2_to_fhir.pid import PATIENT_ID

LOG = logging.getLogger(__name__)

__all__ = ["BundleAssembler", "convert", "convert_parsed", "resource_counts", "validate"]

# ------------------------------------------------------------------------------
# globals
# ------------------------------------------------------------------------------

# Bundle.entry is grouped by resource type in this segment order.
EMISSION_ORDER = ("MSH", "PID", "PV1", "NK1", "AL1", "DG1", "PR1", "IN1", "OBX")

# Only the first occurrence of these is mapped.
SINGLE_SEGMENTS = frozenset({"MSH", "PID"})

# Resources that point at an Encounter.
ENCOUNTER_LINKED = frozenset({"DG1", "PR1", "OBX"})

PAIRED_SEGMENTS = {"IN1": "IN2"}

DEFAULT_SET_ID = "1"


class Discovered(NamedTuple):
    position: int  # index in the message
    occurrence: int  # 1-based, among segments of the same type
    segment: Segment


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def bundle_timestamp(moment: datetime) -> str:
    """ISO-8601 instant in UTC with a trailing "Z", millisecond precision."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def set_id_of(segment: Segment) -> str:
    return value(segment.get(1)) or DEFAULT_SET_ID


class BundleAssembler:
    """
    Turn a ParsedMessage into a collection Bundle.

    Parameters
    ----------
    config : AppConfig, optional
        Supplies the duplicate-id and encounter-context policies.
    clock : callable, optional
        Returns the current time; used only for Bundle.timestamp.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config or AppConfig()
        self._clock = clock or _utc_now

    # --------------------------------------------------------------------------
    # discovery
    # --------------------------------------------------------------------------

    @staticmethod
    def discover(parsed: ParsedMessage) -> Dict[str, List[Discovered]]:
        """
        Group segments by type in one scan, keeping each segment's position
        in the message and its occurrence number among segments of its type.

        Segments without a parsed body still count as occurrences; the
        assembler skips them when mapping. For MSH and PID only the first
        occurrence is kept, parsed or not.
        """
        wanted = set(EMISSION_ORDER) | set(PAIRED_SEGMENTS.values())
        found: Dict[str, List[Discovered]] = {}
        seen: Counter = Counter()
        for position, seg in enumerate(parsed.segments):
            if seg.segment_type not in wanted:
                continue
            seen[seg.segment_type] += 1
            if seg.segment_type in SINGLE_SEGMENTS and seen[seg.segment_type] > 1:
                continue
            found.setdefault(seg.segment_type, []).append(
                Discovered(position, seen[seg.segment_type], seg)
            )
        return found

    # --------------------------------------------------------------------------
    # context
    # --------------------------------------------------------------------------

    def encounter_for(
        self, position: int, encounters: List[Tuple[int, str]]
    ) -> Optional[str]:
        """
        Encounter reference for a clinical segment at `position`.

        "last" returns the last Encounter emitted for the message; "nearest"
        the Encounter of the closest PV1 before `position`.
        """
        if not encounters:
            return None
        if self.config.encounter_context == "last":
            return encounters[-1][1]
        preceding = [ref for pos, ref in encounters if pos < position]
        return preceding[-1] if preceding else None

    @staticmethod
    def paired_segment(segment: Segment, companions: List[Discovered]) -> Optional[Segment]:
        """First parsed companion whose field 1 equals the segment's set-id."""
        own = value(segment.get(1))
        if not own:
            return None
        for found in companions:
            other = found.segment
            if other.parsed is not None and value(other.get(1)) == own:
                return other
        return None

    @staticmethod
    def assign_id(ids: IdAssigner, mapper: SegmentMapper, found: Discovered) -> AssignedId:
        if mapper.id_strategy == "fixed":
            fixed_id = cast(FixedIdMapper, mapper).fixed_id(found.segment)
            return ids.fixed(mapper.resource_type, fixed_id)
        if mapper.id_strategy == "set_id":
            key = set_id_of(found.segment)
        else:
            key = str(found.occurrence)
        return ids.assign(mapper.resource_type, mapper.id_prefix, key)

    # --------------------------------------------------------------------------
    # assembly
    # --------------------------------------------------------------------------

    def build(self, parsed: ParsedMessage) -> Bundle:
        """
        Build the Bundle model for one message.

        Raises
        ------
        DuplicateIdError
            Under the "error" duplicate policy.
        TransformError
            If a segment mapper fails on a segment.
        """
        ids = IdAssigner(self.config.duplicate_ids)
        discovered = self.discover(parsed)
        patient_ref = reference("Patient", PATIENT_ID)

        resources: List[Resource] = []
        slots: Dict[str, int] = {}
        encounters: List[Tuple[int, str]] = []

        for seg_type in EMISSION_ORDER:
            mapper = get_mapper(seg_type)
            if mapper is None:
                continue
            companions = discovered.get(PAIRED_SEGMENTS.get(seg_type, ""), [])

            for found in discovered.get(seg_type, []):
                position, seg = found.position, found.segment
                if seg.parsed is None:
                    LOG.debug("Skipping unparsed %s segment at position %d", seg_type, position)
                    continue
                assigned = self.assign_id(ids, mapper, found)
                context = MappingContext(
                    resource_id=assigned.id,
                    patient_ref=patient_ref,
                    encounter_ref=(
                        self.encounter_for(position, encounters)
                        if seg_type in ENCOUNTER_LINKED
                        else None
                    ),
                    set_id=set_id_of(seg),
                    paired=self.paired_segment(seg, companions) if companions else None,
                )
                try:
                    resource = mapper.build(seg, context)
                except (TypeError, ValueError, KeyError, IndexError) as e:
                    raise TransformError(
                        f"Failed to map {seg_type} segment at position {position}: {e}"
                    ) from e

                if assigned.replaces:
                    resources[slots[assigned.reference]] = resource
                else:
                    slots[assigned.reference] = len(resources)
                    resources.append(resource)

                if seg_type == "PV1":
                    encounters.append((position, assigned.reference))

        return construct(
            Bundle,
            {
                "type": "collection",
                "timestamp": bundle_timestamp(self._clock()),
                "entry": [
                    construct(BundleEntry, {"fullUrl": f"urn:uuid:{r.id}", "resource": r})
                    for r in resources
                ],
            },
        )

    def assemble(self, parsed: ParsedMessage) -> Dict[str, Any]:
        """Build the Bundle for one message as JSON-ready dicts."""
        bundle = resource_json(self.build(parsed))
        LOG.debug(
            "Assembled bundle with %d resource(s): %s",
            len(bundle.get("entry", [])),
            ", ".join(f"{k}={v}" for k, v in resource_counts(bundle).items()),
        )
        return bundle


def resource_counts(bundle: Dict[str, Any]) -> Dict[str, int]:
    """Number of entries per resourceType, in first-seen order."""
    return dict(Counter(e["resource"]["resourceType"] for e in bundle.get("entry", [])))


# ------------------------------------------------------------------------------
# public API
# ------------------------------------------------------------------------------


def validate(message: str) -> bool:
    """
    Cheap structural check: non-empty, starts with MSH once trimmed, and
    contains the field separator.
    """
    if not isinstance(message, str) or not message.strip():
        return False
    return message.strip().startswith("MSH") and "|" in message


def convert_parsed(parsed: ParsedMessage, config: Optional[AppConfig] = None) -> Dict[str, Any]:
    """Assemble a Bundle from an already parsed message."""
    return BundleAssembler(config).assemble(parsed)


def convert(message: str, config: Optional[AppConfig] = None) -> Dict[str, Any]:
    """
    Convert a raw HL7 v2 message into a FHIR R4 collection Bundle.

    Parameters
    ----------
    message : str
        ER7 text; segments separated by CR, LF or CRLF.
    config : AppConfig, optional
        Converter policies; defaults apply when omitted.

    Returns
    -------
    dict
        JSON-ready Bundle.

    Raises
    ------
    TypeError
        If message is not a string.
    InputError
        If message is empty or only whitespace.
    ParseError
        If hl7apy rejects the message.
    """
    if not isinstance(message, str):
        raise TypeError(f"message must be str, got {type(message).__name__}")
    if not message.strip():
        raise InputError("HL7 message is empty")
    return convert_parsed(to_parsed_message(message), config)
