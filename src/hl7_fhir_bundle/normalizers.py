# src/hl7_fhir_bundle/normalizers.py
"""
HL7 v2 data type -> FHIR data type normalizers.

Every normalizer accepts either the ``^``-delimited text of one value or a
parsed field (see fields.py) and returns a small frozen value object, a
string, or None. None is the only "nothing usable here" signal: callers omit
the corresponding FHIR key. Normalizers never raise on bad input and never
log.

Supported conversions
---------------------
- TS/DTM        -> FHIR date / dateTime string (no timezone handling)
- XPN           -> HumanName
- XAD           -> Address
- CX            -> Identifier
- IS (sex)      -> FHIR administrative gender
- CE/CWE        -> CodedElement (Coding + CodeableConcept)
- NM + CE unit  -> Quantity
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from . import codes
from .fields import RawField, components, value

Source = Union[str, RawField]
Number = Union[int, float]


# ------------------------------------------------------------------------------
# helpers
# ------------------------------------------------------------------------------


def _parts(raw: Source) -> List[str]:
    """Component strings of one value, from text or from a parsed field."""
    if raw is None:
        return []
    if isinstance(raw, str):
        return raw.split("^") if raw else []
    return components(raw)


def _at(parts: List[str], index: int) -> Optional[str]:
    if index < len(parts):
        return parts[index].strip() or None
    return None


def _scalar(raw: Source) -> Optional[str]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw.split("^", 1)[0].strip() or None
    found = value(raw)
    return found.strip() or None if found else None


def system_uri(name: Optional[str], default: Optional[str]) -> Optional[str]:
    """Map an HL7 coding-system name to a URI; unknown names pass through."""
    if not name:
        return default
    return codes.CODING_SYSTEM_URIS.get(name.upper(), name)


# ------------------------------------------------------------------------------
# date / time
# ------------------------------------------------------------------------------

_ISO_FORM = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:T(\d{2}):(\d{2}):(\d{2}))?")
_LEADING_DIGITS = re.compile(r"^\d+")


def _ts_digits(text: str) -> str:
    iso = _ISO_FORM.match(text)
    if iso:
        return "".join(g for g in iso.groups() if g)
    digits = _LEADING_DIGITS.match(text)
    return digits.group(0) if digits else ""


def to_fhir_datetime(raw: Source) -> Optional[str]:
    """
    Convert an HL7 TS/DTM value into a FHIR dateTime string.

    Parameters
    ----------
    raw : str or RawField
        ``YYYYMMDD[HHMM[SS[.S]]][+/-ZZZZ]`` text, or the field holding it.
        Values already in ``YYYY-MM-DD[THH:MM:SS]`` form are accepted so the
        conversion can be re-applied to its own output.

    Returns
    -------
    str or None
        ``YYYY-MM-DD`` when fewer than 14 digits are present,
        ``YYYY-MM-DDTHH:MM:SS`` otherwise. None when fewer than 8 leading
        digits are present.

    Notes
    -----
    Only the leading run of digits is read, so fractional seconds and
    timezone offsets are dropped rather than misread as time digits.
    """
    text = _scalar(raw)
    if not text:
        return None
    digits = _ts_digits(text)
    if len(digits) < 8:
        return None

    year = digits[0:4]
    month = digits[4:6] or "01"
    day = digits[6:8] or "01"
    out = f"{year}-{month}-{day}"

    if len(digits) >= 14:
        out += f"T{digits[8:10]}:{digits[10:12]}:{digits[12:14]}"
    return out


def to_fhir_date(raw: Source) -> Optional[str]:
    """Date portion (``YYYY-MM-DD``) of to_fhir_datetime()."""
    dt = to_fhir_datetime(raw)
    return dt.split("T", 1)[0] if dt else None


# ------------------------------------------------------------------------------
# names
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class HumanName:
    family: Optional[str] = None
    given: Tuple[str, ...] = ()
    suffix: Tuple[str, ...] = ()
    prefix: Tuple[str, ...] = ()

    def as_fhir(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.family:
            out["family"] = self.family
        if self.given:
            out["given"] = list(self.given)
        if self.suffix:
            out["suffix"] = list(self.suffix)
        if self.prefix:
            out["prefix"] = list(self.prefix)
        return out

    def display(self) -> str:
        """Given names followed by the family name, space separated."""
        return " ".join([*self.given, *([self.family] if self.family else [])])


def to_human_name(raw: Source) -> Optional[HumanName]:
    """
    XPN (Family^Given^Middle^Suffix^Prefix^Degree) -> HumanName.

    Given is split on whitespace and the middle name appended as one more
    given element. Absent when there is neither a family nor a given name.
    """
    parts = _parts(raw)
    family = _at(parts, 0)
    given = (_at(parts, 1) or "").split()
    middle = _at(parts, 2)
    if middle:
        given.append(middle)
    if not family and not given:
        return None

    suffix = _at(parts, 3)
    prefix = _at(parts, 4)
    return HumanName(
        family=family,
        given=tuple(given),
        suffix=(suffix,) if suffix else (),
        prefix=(prefix,) if prefix else (),
    )


# ------------------------------------------------------------------------------
# addresses
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class Address:
    line: Tuple[str, ...] = ()
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    district: Optional[str] = None
    use: str = codes.ADDRESS_USE_DEFAULT

    def as_fhir(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"use": self.use}
        if self.line:
            out["line"] = list(self.line)
        for key, val in (
            ("city", self.city),
            ("district", self.district),
            ("state", self.state),
            ("postalCode", self.postal_code),
            ("country", self.country),
        ):
            if val:
                out[key] = val
        return out


def address_use(code: Optional[str]) -> str:
    """XAD address type -> FHIR Address.use (home when unmapped)."""
    if not code:
        return codes.ADDRESS_USE_DEFAULT
    return codes.ADDRESS_USE.get(code.strip().upper(), codes.ADDRESS_USE_DEFAULT)


def to_address(raw: Source) -> Optional[Address]:
    """
    XAD (Street^City^State^Zip^Country^Type^County) -> Address.

    Street may hold several lines joined with "&". Absent when there is no
    street line, no city and no state.
    """
    parts = _parts(raw)
    street = _at(parts, 0) or ""
    lines = tuple(ln.strip() for ln in street.split("&") if ln.strip())
    city = _at(parts, 1)
    state = _at(parts, 2)
    if not lines and not city and not state:
        return None

    return Address(
        line=lines,
        city=city,
        state=state,
        postal_code=_at(parts, 3),
        country=_at(parts, 4),
        district=_at(parts, 6),
        use=address_use(_at(parts, 5)),
    )


# ------------------------------------------------------------------------------
# identifiers
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class Identifier:
    value: str
    system: Optional[str] = None
    type_code: Optional[str] = None
    assigning_facility: Optional[str] = None

    def as_fhir(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"value": self.value}
        if self.system:
            out["system"] = self.system
        if self.type_code:
            coding: Dict[str, Any] = {"system": codes.V2_0203, "code": self.type_code}
            display = codes.IDENTIFIER_TYPE_DISPLAY.get(self.type_code)
            if display:
                coding["display"] = display
            out["type"] = {"coding": [coding]}
        if self.assigning_facility:
            out["extension"] = [
                {
                    "url": codes.EXT_ASSIGNING_FACILITY,
                    "valueString": self.assigning_facility,
                }
            ]
        return out


def to_identifier(
    raw: Source,
    default_system: Optional[str] = None,
    type_code: Optional[str] = None,
) -> Optional[Identifier]:
    """
    CX (Value^CheckDigit^Scheme^AssigningAuthority^TypeCode^Facility)
    -> Identifier.

    Parameters
    ----------
    raw : str or RawField
        The CX value.
    default_system : str or None
        System used when no assigning authority is present.
    type_code : str or None
        Identifier type used when the value carries none of its own.

    Returns
    -------
    Identifier or None
        None when the ID value itself is empty.
    """
    parts = _parts(raw)
    ident = _at(parts, 0)
    if not ident:
        return None
    authority = _at(parts, 3)
    return Identifier(
        value=ident,
        system=f"urn:oid:{authority}" if authority else default_system,
        type_code=_at(parts, 4) or type_code,
        assigning_facility=_at(parts, 5),
    )


# ------------------------------------------------------------------------------
# administrative sex
# ------------------------------------------------------------------------------


def to_gender(raw: Source) -> str:
    """HL7 administrative sex -> male/female/other/unknown (never absent)."""
    code = _scalar(raw)
    if not code:
        return codes.ADMINISTRATIVE_SEX_DEFAULT
    return codes.ADMINISTRATIVE_SEX.get(
        code.upper(), codes.ADMINISTRATIVE_SEX_DEFAULT
    )


# ------------------------------------------------------------------------------
# coded elements
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class CodedElement:
    system: Optional[str]
    code: Optional[str] = None
    display: Optional[str] = None

    @property
    def text(self) -> str:
        return self.display or self.code or ""

    def as_coding(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.system:
            out["system"] = self.system
        if self.code:
            out["code"] = self.code
        if self.display:
            out["display"] = self.display
        return out

    def as_fhir(self) -> Dict[str, Any]:
        """CodeableConcept with one coding (when a code exists) and text."""
        out: Dict[str, Any] = {}
        if self.code:
            out["coding"] = [self.as_coding()]
        out["text"] = self.text
        return out


def to_coded_element(raw: Source, default_system: Optional[str]) -> Optional[CodedElement]:
    """
    CE/CWE (Code^Display^System) -> CodedElement.

    The system component is mapped through codes.CODING_SYSTEM_URIS; when it
    is empty, `default_system` (the call site's terminology) is used. Absent
    when both code and display are empty.
    """
    parts = _parts(raw)
    code = _at(parts, 0)
    display = _at(parts, 1)
    if not code and not display:
        return None
    return CodedElement(
        system=system_uri(_at(parts, 2), default_system),
        code=code,
        display=display,
    )


# ------------------------------------------------------------------------------
# quantities
# ------------------------------------------------------------------------------

_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def to_number(raw: Optional[str]) -> Optional[Number]:
    """Strict decimal parse: int for integral text, float otherwise."""
    if raw is None:
        return None
    text = raw.strip()
    if not _NUMBER.match(text):
        return None
    if re.fullmatch(r"[+-]?\d+", text):
        return int(text)
    num = float(text)
    return num if math.isfinite(num) else None


@dataclass(frozen=True)
class Quantity:
    value: Number
    unit: Optional[str] = None
    system: Optional[str] = None
    code: Optional[str] = None
    comparator: Optional[str] = None

    def as_fhir(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"value": self.value}
        if self.comparator:
            out["comparator"] = self.comparator
        if self.unit:
            out["unit"] = self.unit
        if self.system:
            out["system"] = self.system
        if self.code:
            out["code"] = self.code
        return out


def to_quantity(
    number: Optional[str],
    unit: Source = None,
    comparator: Optional[str] = None,
) -> Optional[Quantity]:
    """
    Numeric text plus an optional CE unit (Code^Text^System) -> Quantity.

    Returns None when `number` does not parse. Unit system defaults to UCUM.
    """
    num = to_number(number)
    if num is None:
        return None
    unit_parts = _parts(unit)
    unit_code = _at(unit_parts, 0)
    if comparator not in codes.QUANTITY_COMPARATORS:
        comparator = None
    if not unit_code:
        return Quantity(value=num, comparator=comparator)
    return Quantity(
        value=num,
        unit=unit_code,
        system=system_uri(_at(unit_parts, 2), codes.UCUM),
        code=unit_code,
        comparator=comparator,
    )
