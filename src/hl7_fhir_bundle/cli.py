# src/hl7_fhir_bundle/cli.py
"""
Command-line interface for hl7_fhir_bundle.

Subcommands
-----------
convert
    Convert an HL7 v2 message into a FHIR R4 Bundle and either:
        - write it to <output-dir>/<stem>.bundle.json (default), or
        - print it to stdout (with --stdout).

validate
    Structural check of an HL7 v2 message; prints "valid" or "invalid".

sample
    Print the built-in sample ADT^A01 message.

summarize
    Convert a message and print the number of resources per type.

Exit codes
----------
0  success
1  handled, expected error (HL7FHIRBundleError, bad config, KeyboardInterrupt)
2  CLI usage error (argparse)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from . import __version__
from .bundle import convert, resource_counts, validate
from .config import AppConfig, load_config
from .exceptions import HL7FHIRBundleError
from .logging_utils import configure_logging
from .samples import sample_message

# ------------------------------------------------------------------------------
# globals
# ------------------------------------------------------------------------------

LOG = logging.getLogger("hl7_fhir_bundle")

EXIT_OK = 0
EXIT_ERR = 1
EXIT_CLI = 2

BUNDLE_SUFFIX = ".bundle.json"
STDIN_STEM = "stdin"

# ------------------------------------------------------------------------------
# Parser construction
# ------------------------------------------------------------------------------


def _add_path(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "path",
        type=Path,
        help='Path to HL7 v2 message file. Use "-" to read from stdin.',
    )


def _build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argparse parser and subcommands.

    Returns
    -------
    argparse.ArgumentParser
        Configured parser with subcommands: convert, validate, sample,
        summarize.
    """
    parser = argparse.ArgumentParser(
        prog="hl7-fhir-bundle",
        description="Convert HL7 v2 messages into FHIR R4 Bundles.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML config file (overrides defaults).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv).",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"hl7-fhir-bundle {__version__}",
    )

    sub = parser.add_subparsers(dest="cmd", required=True)

    # convert
    s1 = sub.add_parser("convert", help="Convert HL7 v2 to a FHIR Bundle.")
    _add_path(s1)
    s1.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=None,
        help="Directory to write the Bundle (defaults to config.default_output_dir).",
    )
    s1.add_argument(
        "--stdout",
        action="store_true",
        help="Write the Bundle to stdout instead of a file.",
    )
    s1.add_argument(
        "--pretty",
        action="store_true",
        help="Pretty-print JSON output (for stdout or files).",
    )

    # validate
    s2 = sub.add_parser("validate", help="Check HL7 v2 message structure.")
    _add_path(s2)

    # sample
    sub.add_parser("sample", help="Print the sample HL7 v2 message.")

    # summarize
    s4 = sub.add_parser("summarize", help="Print resource counts for a message.")
    _add_path(s4)

    return parser


# ------------------------------------------------------------------------------
# Validation helpers
# ------------------------------------------------------------------------------


def _validate_existing_file(path: Path, allow_stdin: bool = False) -> None:
    """
    Validate that a path exists and is a file, or is "-" if allow_stdin is True.

    Raises
    ------
    HL7FHIRBundleError
        If the path does not exist, is not a file, or is not readable.
    """
    if allow_stdin and str(path) == "-":
        return
    if not path.exists():
        raise HL7FHIRBundleError(f"File not found: {path}")
    if not path.is_file():
        raise HL7FHIRBundleError(f"Not a file: {path}")
    if not os.access(path, os.R_OK):
        raise HL7FHIRBundleError(f"File is not readable: {path}")


def _validate_output_dir(output_dir: Path) -> None:
    """
    Create the output directory if needed and check it is writable.

    Raises
    ------
    HL7FHIRBundleError
        If the directory cannot be created or is not writable.
    """
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise HL7FHIRBundleError(
            f"Cannot create output directory: {output_dir} ({e})"
        ) from e
    if not os.access(output_dir, os.W_OK):
        raise HL7FHIRBundleError(f"Output directory not writable: {output_dir}")


def _read_text_input(path: Path) -> str:
    """
    Read text either from a file or from stdin when path is "-".

    Raises
    ------
    HL7FHIRBundleError
        On missing files, permission errors, or OS read failures.
    """
    try:
        if str(path) == "-":
            return sys.stdin.read()
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise HL7FHIRBundleError(f"File not found: {path}")
    except PermissionError:
        raise HL7FHIRBundleError(f"Permission denied: {path}")
    except OSError as e:
        raise HL7FHIRBundleError(f"Failed to read {path}: {e}") from e


def _load_config_for_cli(path: Optional[Path]) -> AppConfig:
    """
    Load the YAML config, turning config problems into handled errors.
    """
    if path is not None:
        _validate_existing_file(path)
    try:
        return load_config(path)
    except (TypeError, ValueError, yaml.YAMLError) as e:
        raise HL7FHIRBundleError(f"Invalid config {path}: {e}") from e


# ------------------------------------------------------------------------------
# JSON helpers
# ------------------------------------------------------------------------------


def _bundle_to_json_str(bundle: Dict[str, Any], pretty: bool) -> str:
    if pretty:
        return json.dumps(bundle, indent=2, ensure_ascii=False)
    return json.dumps(bundle, separators=(",", ":"), ensure_ascii=False)


def bundle_path(source: Path, out_dir: Path) -> Path:
    """<out_dir>/<source stem>.bundle.json; stdin input is named "stdin"."""
    stem = STDIN_STEM if str(source) == "-" else source.stem
    return out_dir / f"{stem}{BUNDLE_SUFFIX}"


# ------------------------------------------------------------------------------
# Command handlers
# ------------------------------------------------------------------------------


def _cmd_convert(
    path: Path,
    cfg: AppConfig,
    output_dir: Optional[Path],
    to_stdout: bool,
    pretty: bool,
) -> int:
    """
    Convert: write one Bundle per input message.

    Raises
    ------
    HL7FHIRBundleError
        For invalid input, conversion failures, or unwritable output.
    """
    _validate_existing_file(path, allow_stdin=True)
    content = _read_text_input(path)
    bundle = convert(content, cfg)
    text = _bundle_to_json_str(bundle, pretty)

    if to_stdout:
        sys.stdout.write(text)
        sys.stdout.write("\n")
        sys.stdout.flush()
        return EXIT_OK

    out_dir = output_dir or cfg.default_output_dir
    _validate_output_dir(out_dir)
    out_path = bundle_path(path, out_dir)
    try:
        out_path.write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        raise HL7FHIRBundleError(f"Failed to write {out_path}: {e}") from e
    LOG.info("Wrote %s", out_path)
    return EXIT_OK


def _cmd_validate(path: Path) -> int:
    _validate_existing_file(path, allow_stdin=True)
    if validate(_read_text_input(path)):
        print("valid")
        return EXIT_OK
    print("invalid")
    return EXIT_ERR


def _cmd_sample() -> int:
    print(sample_message().replace("\r", "\n"))
    return EXIT_OK


def _cmd_summarize(path: Path, cfg: AppConfig) -> int:
    """
    Summarize: convert and print bundle type, timestamp, total and per-type
    resource counts.
    """
    _validate_existing_file(path, allow_stdin=True)
    bundle = convert(_read_text_input(path), cfg)
    print(f"Type: {bundle['type']}")
    print(f"Timestamp: {bundle['timestamp']}")
    print(f"Total Resources: {len(bundle['entry'])}")
    for rtype, count in resource_counts(bundle).items():
        print(f"    {rtype}: {count}")
    return EXIT_OK


# ------------------------------------------------------------------------------
# Entrypoint
# ------------------------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> int:
    """
    CLI entrypoint.

    Parameters
    ----------
    argv : list[str] or None, default None
        Argument list for testing; None uses sys.argv[1:].

    Returns
    -------
    int
        Process exit code (EXIT_OK, EXIT_ERR, or EXIT_CLI).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    try:
        cfg = _load_config_for_cli(args.config)
        if args.cmd == "convert":
            return _cmd_convert(
                path=args.path,
                cfg=cfg,
                output_dir=args.output_dir,
                to_stdout=bool(args.stdout),
                pretty=bool(args.pretty),
            )
        if args.cmd == "validate":
            return _cmd_validate(args.path)
        if args.cmd == "sample":
            return _cmd_sample()
        if args.cmd == "summarize":
            return _cmd_summarize(args.path, cfg)
        parser.error("Unknown command")
        return EXIT_CLI

    except HL7FHIRBundleError as e:
        LOG.error("%s", e)
        return EXIT_ERR
    except KeyboardInterrupt:
        LOG.error("Interrupted")
        return EXIT_ERR


if __name__ == "__main__":
    raise SystemExit(main())
