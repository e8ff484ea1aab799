# tests/test_cli.py
"""
Tests for hl7_fhir_bundle/cli.
"""

import io
import json as _json
import os
import runpy
import sys
import types
from pathlib import Path

import pytest

from hl7_fhir_bundle import __version__, cli
from hl7_fhir_bundle.samples import sample_message

# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

HL7_TEXT = (
    "MSH|^~\\&|HIS|RIH|EKG|EKG|20250101123000||ADT^A01|MSG00001|P|2.5\n"
    "EVN|A01|20250101123000\n"
    "PID|1||12345^^^MRN||Doe^John||19700101|M\n"
    "PV1|1|I|2000^2012^01||||1234^Physician^Primary\n"
)


def write_hl7(tmp_path: Path, name: str = "msg.hl7", text: str = HL7_TEXT) -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


# ------------------------------------------------------------------------------
# convert
# ------------------------------------------------------------------------------


def test_convert_writes_bundle_file(tmp_path, capsys):
    p = write_hl7(tmp_path)
    outdir = tmp_path / "out"
    code = cli.main(["convert", str(p), "-o", str(outdir)])
    _, err = capsys.readouterr()

    assert code == cli.EXIT_OK
    written = outdir / "msg.bundle.json"
    assert written.exists()
    bundle = _json.loads(written.read_text(encoding="utf-8"))
    assert bundle["resourceType"] == "Bundle"
    assert [e["resource"]["resourceType"] for e in bundle["entry"]] == [
        "MessageHeader",
        "Patient",
        "Encounter",
    ]
    assert "Wrote" in err


def test_convert_compact_json_by_default(tmp_path):
    p = write_hl7(tmp_path)
    outdir = tmp_path / "out"
    cli.main(["convert", str(p), "-o", str(outdir)])
    text = (outdir / "msg.bundle.json").read_text(encoding="utf-8")
    assert "\n  " not in text
    assert '"resourceType":"Bundle"' in text


def test_convert_stdout_pretty(tmp_path, capsys):
    p = write_hl7(tmp_path)
    code = cli.main(["convert", str(p), "--stdout", "--pretty"])
    out, _ = capsys.readouterr()

    assert code == cli.EXIT_OK
    assert out.startswith("{\n  ")
    assert _json.loads(out)["type"] == "collection"


def test_convert_reads_stdin(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO(HL7_TEXT))
    code = cli.main(["convert", "-", "--stdout"])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert _json.loads(out)["entry"][1]["resource"]["id"] == "patient-1"


def test_convert_uses_config_output_dir(tmp_path, monkeypatch):
    p = write_hl7(tmp_path)
    cfg = tmp_path / "config.yaml"
    cfg.write_text(f"default_output_dir: {tmp_path / 'from_cfg'}\n", encoding="utf-8")
    code = cli.main(["--config", str(cfg), "convert", str(p)])
    assert code == cli.EXIT_OK
    assert (tmp_path / "from_cfg" / "msg.bundle.json").exists()


def test_convert_config_policies_reach_converter(tmp_path, capsys):
    text = HL7_TEXT + "OBX|1|ST|A^A||one\nOBX|1|ST|B^B||two\n"
    p = write_hl7(tmp_path, text=text)
    cfg = tmp_path / "config.yaml"
    cfg.write_text("duplicate_ids: error\n", encoding="utf-8")
    code = cli.main(["--config", str(cfg), "convert", str(p), "--stdout"])
    _, err = capsys.readouterr()
    assert code == cli.EXIT_ERR
    assert "Duplicate resource id" in err


def test_convert_empty_file_is_handled_error(tmp_path, capsys):
    p = write_hl7(tmp_path, text="   \n")
    code = cli.main(["convert", str(p), "--stdout"])
    _, err = capsys.readouterr()
    assert code == cli.EXIT_ERR
    assert "HL7 message is empty" in err


def test_convert_unparseable_message_is_handled_error(tmp_path):
    p = write_hl7(tmp_path, text="not an hl7 message\n")
    assert cli.main(["convert", str(p), "--stdout"]) == cli.EXIT_ERR


def test_bundle_path_names():
    assert cli.bundle_path(Path("in/adt.hl7"), Path("out")) == Path(
        "out/adt.bundle.json"
    )
    assert cli.bundle_path(Path("-"), Path("out")) == Path("out/stdin.bundle.json")


# ------------------------------------------------------------------------------
# validate / sample / summarize
# ------------------------------------------------------------------------------


def test_validate_valid(tmp_path, capsys):
    p = write_hl7(tmp_path)
    code = cli.main(["validate", str(p)])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert out.strip() == "valid"


def test_validate_invalid(tmp_path, capsys):
    p = write_hl7(tmp_path, text="PID|1||12345\n")
    code = cli.main(["validate", str(p)])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_ERR
    assert out.strip() == "invalid"


def test_sample_prints_one_segment_per_line(capsys):
    code = cli.main(["sample"])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert out.splitlines() == sample_message().split("\r")


def test_summarize_prints_counts(tmp_path, capsys):
    p = write_hl7(tmp_path, text=sample_message())
    code = cli.main(["summarize", str(p)])
    out, _ = capsys.readouterr()
    lines = out.splitlines()

    assert code == cli.EXIT_OK
    assert lines[0] == "Type: collection"
    assert lines[1].startswith("Timestamp: ")
    assert lines[2] == "Total Resources: 9"
    assert lines[3:] == [
        "    MessageHeader: 1",
        "    Patient: 1",
        "    Encounter: 1",
        "    RelatedPerson: 1",
        "    AllergyIntolerance: 1",
        "    Condition: 1",
        "    Procedure: 1",
        "    Coverage: 1",
        "    Observation: 1",
    ]


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as e:
        cli.main(["--version"])
    out, _ = capsys.readouterr()
    assert e.value.code == 0
    assert out.strip() == f"hl7-fhir-bundle {__version__}"


def test_missing_subcommand_is_usage_error():
    with pytest.raises(SystemExit) as e:
        cli.main([])
    assert e.value.code == cli.EXIT_CLI


# ------------------------------------------------------------------------------
# config
# ------------------------------------------------------------------------------


@pytest.mark.parametrize(
    "content",
    ["- a\n- b\n", "duplicate_ids: sometimes\n", "default_output_dir: [unclosed\n"],
)
def test_bad_config_is_handled_error(tmp_path, capsys, content):
    cfg = tmp_path / "config.yaml"
    cfg.write_text(content, encoding="utf-8")
    code = cli.main(["--config", str(cfg), "sample"])
    _, err = capsys.readouterr()
    assert code == cli.EXIT_ERR
    assert "Invalid config" in err


def test_missing_config_file_is_handled_error(tmp_path):
    code = cli.main(["--config", str(tmp_path / "none.yaml"), "sample"])
    assert code == cli.EXIT_ERR


# ------------------------------------------------------------------------------
# _validate_existing_file
# ------------------------------------------------------------------------------


def test_convert_file_not_found(tmp_path):
    missing = tmp_path / "nope.hl7"
    code = cli.main(["convert", str(missing), "--stdout"])
    assert code == cli.EXIT_ERR


def test_validate_path_is_directory(tmp_path):
    d = tmp_path / "adir"
    d.mkdir()
    code = cli.main(["validate", str(d)])
    assert code == cli.EXIT_ERR


def test_summarize_not_readable(tmp_path, monkeypatch):
    p = write_hl7(tmp_path)
    real_access = os.access
    # force unreadable
    monkeypatch.setattr(
        os,
        "access",
        lambda path, mode: (
            False if Path(path) == p and (mode & os.R_OK) else real_access(path, mode)
        ),
    )
    code = cli.main(["summarize", str(p)])
    assert code == cli.EXIT_ERR


# ------------------------------------------------------------------------------
# _validate_output_dir
# ------------------------------------------------------------------------------


def test_output_dir_mkdir_raises_oserror(tmp_path, monkeypatch):
    p = write_hl7(tmp_path)
    bad = tmp_path / "nope"

    def boom_mkdir(self, parents=False, exist_ok=False):
        raise OSError("mkdir-fail")

    monkeypatch.setattr(Path, "mkdir", boom_mkdir)
    code = cli.main(["convert", str(p), "-o", str(bad)])
    assert code == cli.EXIT_ERR


def test_output_dir_not_writable(tmp_path, monkeypatch):
    p = write_hl7(tmp_path)
    outdir = tmp_path / "outdir"
    outdir.mkdir(parents=True, exist_ok=True)
    real_access = os.access
    # deny W_OK for this directory
    monkeypatch.setattr(
        os,
        "access",
        lambda path, mode: (
            False
            if Path(path) == outdir and (mode & os.W_OK)
            else real_access(path, mode)
        ),
    )
    code = cli.main(["convert", str(p), "-o", str(outdir)])
    assert code == cli.EXIT_ERR


def test_write_failure_is_handled_error(tmp_path, monkeypatch, capsys):
    p = write_hl7(tmp_path)
    outdir = tmp_path / "out"

    def boom_write(self, *a, **k):
        raise OSError("disk full")

    monkeypatch.setattr(Path, "write_text", boom_write)
    code = cli.main(["convert", str(p), "-o", str(outdir)])
    _, err = capsys.readouterr()
    assert code == cli.EXIT_ERR
    assert "Failed to write" in err


# ------------------------------------------------------------------------------
# _read_text_input
# ------------------------------------------------------------------------------


def test_read_text_input_file_not_found(tmp_path, monkeypatch):
    p = tmp_path / "ghost.hl7"
    # Make _read_text_input raise FileNotFoundError
    monkeypatch.setattr(
        Path,
        "read_text",
        lambda self, **k: (_ for _ in ()).throw(FileNotFoundError("nope")),
    )
    with pytest.raises(cli.HL7FHIRBundleError, match=r"^File not found"):
        cli._read_text_input(p)


def test_read_text_input_permission_error(tmp_path, monkeypatch):
    p = tmp_path / "x.hl7"
    p.write_text("x", encoding="utf-8")

    def boom(*a, **k):
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "read_text", boom)
    with pytest.raises(cli.HL7FHIRBundleError, match=r"^Permission denied"):
        cli._read_text_input(p)


def test_read_text_input_oserror(tmp_path, monkeypatch):
    p = tmp_path / "x2.hl7"
    p.write_text("x", encoding="utf-8")

    def boom(*a, **k):
        raise OSError("weird-os")

    monkeypatch.setattr(Path, "read_text", boom)
    with pytest.raises(cli.HL7FHIRBundleError, match=r"^Failed to read"):
        cli._read_text_input(p)


# ------------------------------------------------------------------------------
# main()
# ------------------------------------------------------------------------------


def test_main_keyboardinterrupt(tmp_path, monkeypatch):
    p = write_hl7(tmp_path)
    monkeypatch.setattr(
        "hl7_fhir_bundle.cli._cmd_validate",
        lambda _: (_ for _ in ()).throw(KeyboardInterrupt),
    )
    code = cli.main(["validate", str(p)])
    assert code == cli.EXIT_ERR


def test_main_unknown_command_path(monkeypatch):
    # Build a dummy parser
    class DummyParser:
        def parse_args(self, argv=None):
            # main() reads verbose and config before dispatching
            return types.SimpleNamespace(cmd="weird", verbose=0, config=None)

        def error(self, msg):
            # override to NOT raise SystemExit so main() reaches return EXIT_CLI
            return None

    monkeypatch.setattr("hl7_fhir_bundle.cli._build_parser", lambda: DummyParser())
    code = cli.main([])
    assert code == cli.EXIT_CLI


# ------------------------------------------------------------------------------
# __main__
# ------------------------------------------------------------------------------


def test_main_dunder_name_runs_ok(monkeypatch, capsys):
    # run the module fresh as __main__; the package itself stays imported
    monkeypatch.delitem(sys.modules, "hl7_fhir_bundle.cli", raising=False)
    monkeypatch.setattr(sys, "argv", ["hl7-fhir-bundle", "sample"])
    with pytest.raises(SystemExit) as e:
        runpy.run_module("hl7_fhir_bundle.cli", run_name="__main__")
    assert e.value.code == 0
    assert capsys.readouterr().out.startswith("MSH|")
