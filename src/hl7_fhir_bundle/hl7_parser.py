# src/hl7_fhir_bundle/hl7_parser.py
"""
HL7 v2 parsing utilities.

Provides:
- parse_hl7_v2: strict/lenient parsing into an hl7apy Message
- parse_field / parse_segment: ER7 text -> tagged field tree (see fields.py)
- segment_from_hl7apy: hl7apy Segment -> tagged field tree
- to_parsed_message: message text -> ParsedMessage, built from the hl7apy
  Message so segment order and field numbering are hl7apy's

In lenient mode a message whose MSH-12 is empty or names a version hl7apy
has no library for is parsed against FALLBACK_VERSION instead of failing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from hl7apy import check_version
from hl7apy.consts import VALIDATION_LEVEL
from hl7apy.core import Message
from hl7apy.core import Segment as HL7Segment
from hl7apy.exceptions import HL7apyException, UnsupportedVersion
from hl7apy.parser import get_message_info, parse_message, parse_segments

from .exceptions import ParseError
from .fields import (
    Components,
    FieldMap,
    Instance,
    ParsedMessage,
    RawField,
    Repetition,
    Scalar,
    Segment,
    SubComponents,
)

LOG = logging.getLogger(__name__)

# Version used when MSH-12 is empty or unsupported by hl7apy.
FALLBACK_VERSION = "2.5"

_SEGMENT_ID = re.compile(r"^[A-Z][A-Z0-9]{2}$")


@dataclass(frozen=True)
class EncodingChars:
    """Separators declared by MSH-1/MSH-2."""

    field: str = "|"
    component: str = "^"
    repetition: str = "~"
    escape: str = "\\"
    subcomponent: str = "&"

    @classmethod
    def from_hl7apy(cls, chars: Dict[str, str]) -> "EncodingChars":
        """Build from an hl7apy encoding_chars dict (keys FIELD, COMPONENT, ...)."""
        return cls(
            chars["FIELD"],
            chars["COMPONENT"],
            chars["REPETITION"],
            chars["ESCAPE"],
            chars["SUBCOMPONENT"],
        )

    @property
    def declared(self) -> str:
        """The MSH-2 text."""
        return f"{self.component}{self.repetition}{self.escape}{self.subcomponent}"


def encoding_chars(msh_line: str) -> EncodingChars:
    """
    Read the separators from an MSH line, falling back to the HL7 defaults
    for anything not declared.
    """
    default = EncodingChars()
    if not msh_line.startswith("MSH") or len(msh_line) < 4:
        return default
    field_sep = msh_line[3]
    declared = msh_line[4:].split(field_sep, 1)[0]
    chars = [default.component, default.repetition, default.escape, default.subcomponent]
    for i, ch in enumerate(declared[:4]):
        chars[i] = ch
    return EncodingChars(field_sep, *chars)


def split_lines(raw: str) -> List[str]:
    """Split ER7 text into non-blank segment lines; CR, LF and CRLF accepted."""
    text = raw.replace("\r\n", "\n").replace("\r", "\n")
    return [line.strip() for line in text.split("\n") if line.strip()]


def _is_supported(version: str) -> bool:
    try:
        check_version(version)
    except UnsupportedVersion:
        return False
    return True


def _parse_as_version(text: str, version: str, vlevel) -> Message:
    """Parse `text` against `version`, whatever its MSH-12 says."""
    chars, _, _ = get_message_info(text)
    msg = Message(version=version, validation_level=vlevel, encoding_chars=chars)
    msg.children = parse_segments(
        text,
        version=version,
        encoding_chars=chars,
        validation_level=vlevel,
        find_groups=False,
    )
    return msg


def parse_hl7_v2(raw: str, *, strict: bool = True) -> Message:
    """
    Parse an HL7 v2 message string into an hl7apy Message.

    Parameters
    ----------
    raw : str
        Raw HL7 v2 message in ER7 format (segments separated by CR/LF).
    strict : bool, default True
        If True, uses hl7apy STRICT validation. If False, uses TOLERANT
        validation, which the converter relies on so that optional segments
        and site-specific Z segments do not abort a conversion. Lenient
        parsing also falls back to FALLBACK_VERSION when MSH-12 is empty or
        unsupported.

    Returns
    -------
    Message
        Parsed HL7 message object.

    Raises
    ------
    TypeError
        If raw is not a string.
    ValueError
        If raw is an empty string.
    ParseError
        If hl7apy rejects the message.
    """
    if not isinstance(raw, str):
        raise TypeError(f"raw must be str, got {type(raw).__name__}")
    if raw.strip() == "":
        raise ValueError("raw must be a non-empty HL7 v2 string")

    normalized = "\r".join(split_lines(raw))

    vlevel = VALIDATION_LEVEL.STRICT if strict else VALIDATION_LEVEL.TOLERANT
    try:
        if not strict and normalized.startswith("MSH"):
            _, _, version = get_message_info(normalized)
            if version is not None and not _is_supported(version):
                LOG.debug(
                    "MSH-12 version %r not supported, parsing as %s",
                    version,
                    FALLBACK_VERSION,
                )
                return _parse_as_version(normalized, FALLBACK_VERSION, vlevel)
        return parse_message(normalized, find_groups=False, validation_level=vlevel)
    except HL7apyException as e:
        raise ParseError(f"Failed to parse HL7 v2 message: {e}") from e


# ------------------------------------------------------------------------------
# field tree
# ------------------------------------------------------------------------------


def _unescaper(enc: EncodingChars):
    table = {
        "F": enc.field,
        "S": enc.component,
        "T": enc.subcomponent,
        "R": enc.repetition,
        "E": enc.escape,
    }
    esc = re.escape(enc.escape)
    pattern = re.compile(f"{esc}([FSTRE]){esc}")

    def _unescape(text: str) -> str:
        if enc.escape not in text:
            return text
        return pattern.sub(lambda m: table[m.group(1)], text)

    return _unescape


def _parse_instance(text: str, enc: EncodingChars, unescape) -> Instance:
    comps = text.split(enc.component)
    if len(comps) == 1 and enc.subcomponent not in text:
        return Scalar(unescape(text))
    parts = []
    for comp in comps:
        subs = comp.split(enc.subcomponent)
        if len(subs) > 1:
            parts.append(SubComponents(tuple(unescape(s) for s in subs)))
        else:
            parts.append(unescape(comp))
    return Components(tuple(parts))


def parse_field(text: str, enc: Optional[EncodingChars] = None) -> RawField:
    """
    Turn the ER7 text of one field into a tagged value.

    Empty text -> None; "~" present -> Repetition; "^" or "&" present ->
    Components; otherwise Scalar.
    """
    enc = enc or EncodingChars()
    if text == "":
        return None
    unescape = _unescaper(enc)
    reps = text.split(enc.repetition)
    if len(reps) == 1:
        return _parse_instance(text, enc, unescape)
    return Repetition(tuple(_parse_instance(r, enc, unescape) for r in reps))


def parse_segment(line: str, enc: Optional[EncodingChars] = None) -> Segment:
    """
    Build a Segment from one ER7 line.

    MSH is numbered the HL7 way: MSH-1 is the field separator itself and
    MSH-2 the encoding characters, so MSH-3 is the first field after them.
    A line without a recognizable segment id or without any field separator
    yields a Segment whose parsed body is None. Without `enc`, an MSH line
    supplies its own separators and other lines use the HL7 defaults.
    """
    enc = enc or encoding_chars(line)
    seg_type = line[:3]
    if not _SEGMENT_ID.match(seg_type) or line[3:4] != enc.field:
        return Segment(segment_type=seg_type, parsed=None, raw=line)

    parts = line.split(enc.field)
    fields: FieldMap = {}
    if seg_type == "MSH":
        fields[1] = Scalar(enc.field)
        fields[2] = Scalar(parts[1]) if parts[1] else None
        for number, text in enumerate(parts[2:], start=3):
            fields[number] = parse_field(text, enc)
    else:
        for number, text in enumerate(parts[1:], start=1):
            fields[number] = parse_field(text, enc)
    return Segment(segment_type=seg_type, parsed=fields, raw=line)


def _field_number(name: Optional[str]) -> Optional[int]:
    # hl7apy names fields "<SEG>_<n>", e.g. "PID_5"
    suffix = (name or "").rsplit("_", 1)[-1]
    return int(suffix) if suffix.isdigit() else None


def segment_from_hl7apy(segment: HL7Segment, enc: EncodingChars) -> Segment:
    """
    Build a Segment from a parsed hl7apy segment.

    hl7apy keeps each repetition as its own child under the same field name
    and leaves empty fields out. Repetitions are joined back and re-read with
    parse_field; the numbers in between are filled with None.
    """
    texts: Dict[int, List[str]] = {}
    for fld in segment.children:
        number = _field_number(fld.name)
        if number is not None:
            texts.setdefault(number, []).append(fld.to_er7())

    fields: FieldMap = {}
    if segment.name == "MSH":
        texts.pop(1, None)
        texts.pop(2, None)
        fields[1] = Scalar(enc.field)
        fields[2] = Scalar(enc.declared)
    for number in range(len(fields) + 1, max(texts, default=0) + 1):
        reps = texts.get(number)
        fields[number] = parse_field(enc.repetition.join(reps), enc) if reps else None
    return Segment(segment_type=segment.name, parsed=fields, raw=segment.to_er7())


def to_parsed_message(raw: str) -> ParsedMessage:
    """
    Parse ER7 text into the segment list consumed by the bundle assembler.

    The message is parsed by hl7apy in tolerant mode and the field tree is
    built from its segments; any rejection surfaces as ParseError and is not
    caught here.

    Parameters
    ----------
    raw : str
        Raw HL7 v2 message.

    Returns
    -------
    ParsedMessage
        Segments in message order.
    """
    msg = parse_hl7_v2(raw, strict=False)
    enc = EncodingChars.from_hl7apy(msg.encoding_chars)
    segments = [segment_from_hl7apy(seg, enc) for seg in msg.children]
    LOG.debug(
        "Parsed %d segment(s): %s",
        len(segments),
        " ".join(s.segment_type for s in segments),
    )
    return ParsedMessage(segments=segments)
