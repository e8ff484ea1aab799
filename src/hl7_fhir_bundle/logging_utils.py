# src/hl7_fhir_bundle/logging_utils.py
"""
Logging utilities for hl7_fhir_bundle.

One entry point configures root logging for the CLI and for library callers
that want the converter's debug output. The hl7apy parser logs a lot at DEBUG;
it is held at WARNING unless the caller asks for maximum verbosity.
"""

import logging
import sys
from typing import IO, Optional


_VERBOSITY_LEVELS = {
    0: logging.INFO,
    1: logging.DEBUG,
}

# third-party loggers that only surface at verbosity >= 2
_QUIET_LOGGERS = ("hl7apy",)

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(
    verbosity: int = 0, stream: Optional[IO[str]] = None
) -> logging.Logger:
    """
    Configure application-wide logging.

    Parameters
    ----------
    verbosity : int, default=0
        - 0 -> INFO
        - 1 -> DEBUG for hl7_fhir_bundle, WARNING for the HL7 parser
        - 2 or higher -> DEBUG everywhere
    stream : IO[str] or None, default=None
        Target stream for the StreamHandler. Defaults to sys.stderr so that
        JSON written to stdout stays machine readable.

    Returns
    -------
    logging.Logger
        The configured root logger.

    Raises
    ------
    TypeError
        If verbosity is not an int, or if stream has no write method.
    ValueError
        If verbosity is negative.
    """
    # bool is an int subclass; reject it explicitly
    if not isinstance(verbosity, int) or isinstance(verbosity, bool):
        raise TypeError(f"verbosity must be int, got {type(verbosity).__name__}")
    if verbosity < 0:
        raise ValueError(f"verbosity must be non-negative, got {verbosity}")

    level = _VERBOSITY_LEVELS.get(verbosity, logging.DEBUG)

    if stream is None:
        stream = sys.stderr
    elif not hasattr(stream, "write"):
        raise TypeError("stream must be file-like (support .write(...))")

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(_FORMAT))

    root = logging.getLogger()
    # Replace only plain StreamHandlers; FileHandler subclasses stay.
    root.handlers = [h for h in root.handlers if type(h) is not logging.StreamHandler]
    root.addHandler(handler)
    root.setLevel(level)

    quiet_level = logging.DEBUG if verbosity >= 2 else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    return root
