# src/hl7_fhir_bundle/fields.py
"""
Field model and accessors for parsed HL7 v2 segments.

A field value is one of:

- ``None``            the field is absent (empty in the ER7 text)
- ``Scalar``          a single value with no component separators
- ``Components``      the ``^``-separated components of one value; a component
                      may itself be ``SubComponents`` (``&``-separated)
- ``Repetition``      ``~``-separated instances, each a Scalar or Components

A one-element Components and a bare Scalar mean the same thing to every
accessor in this module.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Scalar:
    value: str


@dataclass(frozen=True)
class SubComponents:
    parts: Tuple[str, ...]

    def text(self, separator: str = "&") -> str:
        return separator.join(self.parts)


@dataclass(frozen=True)
class Components:
    parts: Tuple[Union[str, SubComponents], ...]


@dataclass(frozen=True)
class Repetition:
    instances: Tuple[Union[Scalar, Components], ...]


Instance = Union[Scalar, Components]
RawField = Union[Scalar, Components, Repetition, None]
FieldMap = Dict[int, RawField]


@dataclass
class Segment:
    """
    One parsed segment.

    Attributes
    ----------
    segment_type : str
        Three-letter segment id, e.g. "PID".
    parsed : dict[int, RawField] or None
        Field number -> value. None marks a segment whose body could not be
        parsed; such segments are skipped by the bundle assembler.
    raw : str
        The ER7 line the segment came from.
    """

    segment_type: str
    parsed: Optional[FieldMap]
    raw: str = ""

    def get(self, number: int) -> RawField:
        if not self.parsed:
            return None
        return self.parsed.get(number)


@dataclass
class ParsedMessage:
    segments: List[Segment] = field(default_factory=list)

    def of_type(self, segment_type: str) -> List[Segment]:
        return [s for s in self.segments if s.segment_type == segment_type]

    def first(self, segment_type: str) -> Optional[Segment]:
        for seg in self.segments:
            if seg.segment_type == segment_type:
                return seg
        return None


# ------------------------------------------------------------------------------
# accessors
# ------------------------------------------------------------------------------


def _leaf(part: Union[str, SubComponents]) -> Optional[str]:
    """First scalar of a component; None when empty."""
    if isinstance(part, SubComponents):
        return (part.parts[0] if part.parts else "") or None
    return part or None


def _pick(seq: Tuple, index: int):
    # out-of-range indexes fall back to the first element
    if 0 <= index < len(seq):
        return seq[index]
    return seq[0]


def value(raw: RawField, index: int = 0) -> Optional[str]:
    """
    Return the scalar at `index`, unwrapping one nested level.

    For Components the index selects a component; for Repetition it selects
    an instance, of which the first component is returned. A Scalar returns
    its value whatever the index. Empty strings and empty containers give
    None.
    """
    if raw is None:
        return None
    if isinstance(raw, Scalar):
        return raw.value or None
    if isinstance(raw, Components):
        if not raw.parts:
            return None
        return _leaf(_pick(raw.parts, index))
    if isinstance(raw, Repetition):
        if not raw.instances:
            return None
        chosen = _pick(raw.instances, index)
        if isinstance(chosen, Components):
            return _leaf(chosen.parts[0]) if chosen.parts else None
        return chosen.value or None
    raise TypeError(f"not a field value: {type(raw).__name__}")


def values(raw: RawField) -> List[Instance]:
    """
    Return the logical repeated instances of a field.

    Repetition -> each instance; Components or Scalar -> exactly one instance
    (a flat list of components is one value, not repeated scalars).
    """
    if raw is None:
        return []
    if isinstance(raw, Repetition):
        return list(raw.instances)
    if isinstance(raw, (Scalar, Components)):
        return [raw]
    raise TypeError(f"not a field value: {type(raw).__name__}")


def _leaves(raw: Union[RawField, str, SubComponents]) -> Iterator[str]:
    if raw is None:
        return
    if isinstance(raw, str):
        yield raw
    elif isinstance(raw, Scalar):
        yield raw.value
    elif isinstance(raw, SubComponents):
        yield from raw.parts
    elif isinstance(raw, Components):
        for part in raw.parts:
            yield from _leaves(part)
    elif isinstance(raw, Repetition):
        for inst in raw.instances:
            yield from _leaves(inst)


def exists(raw: RawField) -> bool:
    """True iff at least one leaf, recursively flattened, is non-empty."""
    return any(leaf != "" for leaf in _leaves(raw))


def components(raw: RawField) -> List[str]:
    """
    Component strings of the first instance.

    Sub-components are joined back with "&" so callers that split on it
    (street lines) see the original text.
    """
    insts = values(raw)
    if not insts:
        return []
    first = insts[0]
    if isinstance(first, Scalar):
        return [first.value]
    return [p.text() if isinstance(p, SubComponents) else p for p in first.parts]


def component(raw: RawField, index: int) -> Optional[str]:
    """Component `index` (0-based) of the first instance, or None."""
    comps = components(raw)
    if 0 <= index < len(comps):
        return comps[index] or None
    return None


def text(raw: RawField) -> Optional[str]:
    """Raw ER7 text of the first instance (components re-joined with "^")."""
    joined = "^".join(components(raw))
    return joined if joined.strip("^&") else None
