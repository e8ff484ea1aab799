# src/hl7_fhir_bundle/ids.py
"""
Resource id and reference assignment for one conversion.

Ids are ``<prefix>-<key>``, the key being either the occurrence number of the
segment among segments of its type (``encounter-1``, ``encounter-3`` when the
second PV1 could not be parsed) or the segment set-id (``allergy-<set-id>``).
Set-id keys may collide when a message repeats a set-id; what happens then is
the duplicate policy:

- ``suffix``    the later id becomes ``<id>-2``, ``<id>-3``, ...
- ``overwrite`` the id is reused; the bundle assembler replaces the earlier
                entry in place
- ``error``     DuplicateIdError is raised
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Set

from .config import DUPLICATE_ID_POLICIES
from .exceptions import DuplicateIdError

__all__ = ["AssignedId", "IdAssigner", "reference"]


def reference(resource_type: str, resource_id: str) -> str:
    """Relative FHIR reference string, e.g. ``Patient/patient-1``."""
    return f"{resource_type}/{resource_id}"


@dataclass(frozen=True)
class AssignedId:
    id: str
    reference: str
    replaces: bool = False


class IdAssigner:
    """
    Issue unique resource ids within one bundle.

    Parameters
    ----------
    policy : str, default "suffix"
        Duplicate policy, one of config.DUPLICATE_ID_POLICIES.

    Raises
    ------
    ValueError
        If `policy` is not a known duplicate policy.
    """

    def __init__(self, policy: str = "suffix") -> None:
        if policy not in DUPLICATE_ID_POLICIES:
            raise ValueError(
                f"duplicate_ids must be one of {DUPLICATE_ID_POLICIES}, got {policy!r}"
            )
        self.policy = policy
        self._issued: Set[str] = set()

    def assign(self, resource_type: str, prefix: str, key: str) -> AssignedId:
        """
        Assign the id `<prefix>-<key>` for `resource_type`.

        Parameters
        ----------
        resource_type : str
            FHIR resource type; ids are unique per type.
        prefix : str
            Id prefix, e.g. "encounter".
        key : str
            Set-id or occurrence number of the source segment.

        Returns
        -------
        AssignedId
            The id, its reference, and whether it replaces an earlier
            resource (overwrite policy only).

        Raises
        ------
        DuplicateIdError
            Under the "error" policy, when the id was already issued.
        """
        return self._claim(resource_type, f"{prefix}-{key}")

    def fixed(self, resource_type: str, resource_id: str) -> AssignedId:
        """Claim a fixed id (MessageHeader, Patient) under the same policy."""
        return self._claim(resource_type, resource_id)

    def _claim(self, resource_type: str, candidate: str) -> AssignedId:
        qualified = reference(resource_type, candidate)
        if qualified not in self._issued:
            self._issued.add(qualified)
            return AssignedId(candidate, qualified)

        if self.policy == "error":
            raise DuplicateIdError(f"Duplicate resource id {qualified!r}")
        if self.policy == "overwrite":
            return AssignedId(candidate, qualified, replaces=True)

        n = 2
        while reference(resource_type, f"{candidate}-{n}") in self._issued:
            n += 1
        unique = f"{candidate}-{n}"
        self._issued.add(reference(resource_type, unique))
        return AssignedId(unique, reference(resource_type, unique))

    def issued(self) -> Set[str]:
        """References issued so far."""
        return set(self._issued)
