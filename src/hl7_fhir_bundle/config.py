# src/hl7_fhir_bundle/config.py
"""
Configuration utilities for hl7_fhir_bundle.

A frozen dataclass carries the converter's policy knobs; load_config() reads
them from a YAML file when one is given.

Example config.yaml::

    default_output_dir: bundles
    duplicate_ids: suffix        # suffix | overwrite | error
    encounter_context: last      # last | nearest
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

DUPLICATE_ID_POLICIES = ("suffix", "overwrite", "error")
ENCOUNTER_CONTEXT_POLICIES = ("last", "nearest")


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable converter configuration.

    Attributes
    ----------
    default_output_dir : Path
        Directory where the CLI writes Bundle JSON files.
    duplicate_ids : str
        What happens when two segments of one kind claim the same resource id:
        "suffix" appends -2, -3, ...; "overwrite" lets the later resource
        replace the earlier entry; "error" raises DuplicateIdError.
    encounter_context : str
        Which Encounter the Condition/Procedure/Observation resources point
        at: "last" uses the last PV1 of the message for all of them,
        "nearest" uses the closest PV1 that precedes each segment.
    """

    default_output_dir: Path = Path("outputs")
    duplicate_ids: str = "suffix"
    encounter_context: str = "last"

    def __post_init__(self) -> None:
        if self.duplicate_ids not in DUPLICATE_ID_POLICIES:
            raise ValueError(
                f"duplicate_ids must be one of {', '.join(DUPLICATE_ID_POLICIES)}, "
                f"got {self.duplicate_ids!r}"
            )
        if self.encounter_context not in ENCOUNTER_CONTEXT_POLICIES:
            raise ValueError(
                "encounter_context must be one of "
                f"{', '.join(ENCOUNTER_CONTEXT_POLICIES)}, "
                f"got {self.encounter_context!r}"
            )


def load_config(path: Optional[Path]) -> AppConfig:
    """
    Load converter configuration from a YAML file.

    Parameters
    ----------
    path : Path or None
        Path to a YAML config file. If None, defaults are used.

    Returns
    -------
    AppConfig
        The loaded configuration. Keys missing from the file keep their
        defaults.

    Raises
    ------
    TypeError
        If the YAML file does not parse to a mapping at the top level.
    ValueError
        If a policy key holds an unsupported value.
    yaml.YAMLError
        If the file is not valid YAML.
    """
    if path is None:
        return AppConfig()

    data: Any = yaml.safe_load(path.read_text())

    if data is None:
        return AppConfig()

    if not isinstance(data, Mapping):
        raise TypeError(
            f"Config file must contain a mapping at top level, "
            f"got {type(data).__name__}. "
            f"Config file: {path}"
        )

    defaults = AppConfig()
    return AppConfig(
        default_output_dir=Path(
            data.get("default_output_dir", defaults.default_output_dir)
        ),
        duplicate_ids=str(data.get("duplicate_ids", defaults.duplicate_ids)),
        encounter_context=str(
            data.get("encounter_context", defaults.encounter_context)
        ),
    )
