#!/usr/bin/env python3
"""Tests for the command-line interface."""

import json

import pytest

from langc.cli import main


def run(capsys, *argv):
    """Run a command and return its parsed JSON output."""
    main(list(argv))
    return json.loads(capsys.readouterr().out)


def run_failing(capsys, *argv):
    with pytest.raises(SystemExit) as exc_info:
        main(list(argv))
    assert exc_info.value.code == 1
    return json.loads(capsys.readouterr().err)


@pytest.fixture
def pot(tmp_path, source_file, capsys):
    path = tmp_path / "out" / "app.pot"
    run(capsys, "extract", "--source", str(source_file.parent), "--output", str(path),
        "--relative-to", str(source_file.parent))
    return path


def test_extract(tmp_path, source_file, capsys):
    output = tmp_path / "app.pot"
    result = run(capsys, "extract", "--source", str(source_file.parent), "--output", str(output),
                 "--relative-to", str(source_file.parent))
    assert result["status"] == "ok"
    assert result["files_scanned"] == 1
    assert result["strings"] == 4
    assert result["warnings"] == []
    text = output.read_text(encoding="utf-8")
    assert "#: Demo.java:5\n#: Demo.java:6\n" in text


def test_extract_with_config(tmp_path, source_file, capsys):
    config = tmp_path / "langc.yaml"
    config.write_text("pot:\n  package_name: demo\n  package_version: '2.0'\n", encoding="utf-8")
    output = tmp_path / "app.pot"
    run(capsys, "extract", "--source", str(source_file), "--output", str(output), "--config", str(config))
    assert '"Project-Id-Version: demo 2.0\\n"' in output.read_text(encoding="utf-8")


def test_validate(po_dir, capsys):
    result = run(capsys, "validate", str(po_dir / "de.po"))
    assert result["locale"] == "de"
    assert result["entries"] == 5
    assert result["fuzzy"] == 1
    assert result["obsolete"] == 1


def test_validate_error(tmp_path, capsys):
    path = tmp_path / "xx.po"
    path.write_text('msgid "a"\nmsgstr "b"\nmsgstr "c"\n', encoding="utf-8")
    error = run_failing(capsys, "validate", str(path))
    assert error["status"] == "error"
    assert error["type"] == "PARSE_ERROR"
    assert error["file"] == str(path)
    assert error["line"] == 3


def test_shorten(tmp_path, po_dir, pot, capsys):
    output = tmp_path / "de.short.po"
    result = run(capsys, "shorten", str(po_dir / "de.po"), "--output", str(output),
                 "--template", str(pot), "--year", "2024", "--anonymize")
    assert result["changed"] is True
    assert result["entries_before"] == 6
    assert result["entries_after"] == 3
    text = output.read_text(encoding="utf-8")
    assert "Copyright (C) 2024 Jane Doe\n" in text
    assert "@example.org" not in text
    assert "#:" not in text


def test_compile_locale_pack_lookup(tmp_path, po_dir, pot, capsys):
    out = tmp_path / "bin"
    for locale in ("en", "de", "fr"):
        result = run(capsys, "compile-locale", str(po_dir / f"{locale}.po"),
                     "--template", str(pot), "--output", str(out / f"{locale}.lcat"))
        assert result["locale"] == locale
    assert result["entries"] == 1

    pack_path = out / "main.lpak"
    result = run(capsys, "pack", *(str(out / f"{l}.lcat") for l in ("en", "de", "fr")),
                 "--template", str(pot), "--base-locale", "en", "--output", str(pack_path))
    assert result["locales"] == ["de", "en", "fr"]

    result = run(capsys, "lookup", str(pack_path), "--locale", "de", "--msgid", "Only in English")
    assert result["status"] == "ok"
    assert result["found_in"] == "en"
    assert result["text"] == "Only in English!"

    result = run(capsys, "lookup", str(pack_path), "--locale", "de", "--msgid", "{0} file",
                 "--plural", "{0} files", "--count", "3")
    assert result["found_in"] == "de"
    assert result["translations"] == ["{0} Datei", "{0} Dateien"]
    assert result["text"] == "{0} Dateien"

    result = run(capsys, "lookup", str(pack_path), "--locale", "de", "--msgid", "Nowhere")
    assert result["status"] == "missing"
    assert result["text"] == "Nowhere"

    summary = run(capsys, "inspect", str(pack_path))
    assert summary["format"] == "lpak"
    assert summary["locales"]["fr"]["covered"] == 1


def test_compile_locale_mo(tmp_path, po_dir, pot, capsys):
    result = run(capsys, "compile-locale", str(po_dir / "de.po"), "--template", str(pot), "--format", "mo")
    output = po_dir / "de.mo"
    assert result["format"] == "mo"
    assert result["output_file"] == str(output)
    assert result["entries"] == 3

    summary = run(capsys, "inspect", str(output))
    assert summary["format"] == "mo"
    assert summary["language"] == "de"
    assert summary["entries"] == 3


def test_compile(tmp_path, source_file, po_dir, capsys):
    config = tmp_path / "langc.yaml"
    config.write_text("source_set: app\nyear: 2024\n", encoding="utf-8")
    out = tmp_path / "out"
    result = run(capsys, "compile", "--config", str(config), "--source", str(source_file.parent),
                 "--catalogs", str(po_dir), "--output", str(out), "--workers", "2")
    assert result["status"] == "ok"
    assert result["locales"]["de"] == {"entries": 3, "covered": 3}
    assert result["issues"] == []
    assert (out / "app.lpak").is_file()
    assert (out / "app" / "fr.lcat").is_file()


def test_compile_without_base_locale(tmp_path, source_file, po_dir, capsys):
    (po_dir / "en.po").unlink()
    error = run_failing(capsys, "compile", "--source", str(source_file), "--catalogs", str(po_dir),
                        "--output", str(tmp_path / "out"))
    assert error["type"] == "PIPELINE_ERROR"


def test_inspect_po(po_dir, capsys):
    result = run(capsys, "inspect", str(po_dir / "fr.po"))
    assert result["format"] == "po"
    assert result["language"] == "fr"
    assert result["plural"] == 1


def test_formats(capsys):
    result = run(capsys, "formats")
    assert [f["name"] for f in result["formats"]] == ["po", "lcat", "lpak", "mo"]


def test_unexpected_error(tmp_path, capsys):
    error = run_failing(capsys, "inspect", str(tmp_path / "missing.lcat"))
    assert error["error_type"] == "FileNotFoundError"


def test_no_command(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1
