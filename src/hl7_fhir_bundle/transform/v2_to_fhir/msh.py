# src/hl7_fhir_bundle/transform/v2_to_fhir/msh.py
"""
MSH (message header) -> FHIR MessageHeader.

Notes
-----
- MSH fields are numbered the HL7 way: MSH-1 is the field separator, so the
  sending application is MSH-3 and the message type MSH-9.
- The event code is the trigger event (MSH-9.2), falling back to the message
  code (MSH-9.1) and finally to "ADT".
- Sending/receiving facilities are treated as OIDs.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fhir.resources.R4B.messageheader import MessageHeader

from ... import codes
from ...fields import Segment, component, value
from ...normalizers import to_fhir_datetime
from ..base import MappingContext, Resource, construct
from ..registry import register

# ------------------------------------------------------------------------------
# globals
# ------------------------------------------------------------------------------

SEGMENT = "MSH"
DEFAULT_ID = "messageheader-1"
DEFAULT_EVENT = "ADT"


class TimestampedMessageHeader(MessageHeader):
    """
    MessageHeader that also carries the message date/time (MSH-7), which the
    R4 resource has no element for.
    """

    timestamp: Optional[str] = None


@register(SEGMENT)
class MSHMapper:
    """
    Map the message header to a MessageHeader resource.
    """

    resource_type = "MessageHeader"
    id_prefix = "message"
    id_strategy = "fixed"

    def fixed_id(self, segment: Segment) -> str:
        control_id = value(segment.get(10))
        return f"{self.id_prefix}-{control_id}" if control_id else DEFAULT_ID

    def build(self, segment: Segment, context: MappingContext) -> Resource:
        res: Dict[str, Any] = {"id": context.resource_id}

        msg_type = segment.get(9)
        event = component(msg_type, 1) or component(msg_type, 0) or DEFAULT_EVENT
        res["eventCoding"] = {"system": codes.V2_0003, "code": event}

        timestamp = to_fhir_datetime(segment.get(7))
        if timestamp:
            res["timestamp"] = timestamp

        source: Dict[str, Any] = {}
        sending_app = value(segment.get(3))
        if sending_app:
            source["name"] = sending_app
            source["software"] = sending_app
        sending_facility = value(segment.get(4))
        if sending_facility:
            source["endpoint"] = f"urn:oid:{sending_facility}"
        if source:
            res["source"] = source

        receiving_app = value(segment.get(5))
        if receiving_app:
            destination: Dict[str, Any] = {"name": receiving_app}
            receiving_facility = value(segment.get(6))
            if receiving_facility:
                destination["endpoint"] = f"urn:oid:{receiving_facility}"
            res["destination"] = [destination]

        version = value(segment.get(12))
        if version:
            res["focus"] = [{"reference": f"{codes.FHIR_VERSION_FOCUS}{version}"}]

        return construct(TimestampedMessageHeader, res)
