#!/usr/bin/env python3
"""Tests for the end-to-end compile pipeline."""

import pytest

from langc.acquisition import DirectorySource, FileCatalogSource, TextCatalogSource
from langc.config import PipelineConfig
from langc.errors import AcquisitionError, ParseError, PipelineError, ValidationError
from langc.models import StringKey
from langc.pipeline import compile, synthesize_catalog, write_atomic

from .conftest import DE_PO, EN_PO, FR_PO


@pytest.fixture
def catalogs():
    return {"en": EN_PO, "de": DE_PO, "fr": FR_PO}


def test_compile_in_memory(source_file, catalogs):
    result = compile([source_file], catalogs, PipelineConfig(year=2024))

    assert sorted(result.catalogs) == ["de", "en", "fr"]
    assert result.issues == []
    assert len(result.template) == 4
    assert result.pack.lookup("de", StringKey("", "Only in English")) == ("Only in English!",)
    assert result.pack.gettext("de", "Save") == "Speichern"
    assert result.pack.coverage("fr") == 1


def test_compile_from_directory(source_file, po_dir):
    result = compile([source_file], DirectorySource(po_dir).sources())
    assert result.pack.locales == ["de", "en", "fr"]


def test_outputs_written_once(tmp_path, source_file, catalogs):
    out = tmp_path / "out"
    config = PipelineConfig(year=2024, source_set="app")

    first = compile([source_file], catalogs, config, output_dir=out)
    assert sorted(first.written) == sorted([
        str(out / "app" / "de.lcat"),
        str(out / "app" / "en.lcat"),
        str(out / "app" / "fr.lcat"),
        str(out / "app.lpak"),
    ])
    assert (out / "app.lpak").read_bytes() == first.pack.to_bytes()
    assert (out / "app" / "de.lcat").read_bytes() == first.catalogs["de"].to_bytes()

    second = compile([source_file], catalogs, config, output_dir=out)
    assert second.written == []
    assert second.pack.to_bytes() == first.pack.to_bytes()


def test_worker_count_does_not_change_output(source_file, catalogs):
    serial = compile([source_file], catalogs, PipelineConfig(year=2024, workers=1))
    parallel = compile([source_file], catalogs, PipelineConfig(year=2024, workers=4))
    assert serial.pack.to_bytes() == parallel.pack.to_bytes()


def test_invalid_locale_is_reported_and_skipped(source_file, catalogs):
    catalogs["de"] = 'msgid "broken\n'
    result = compile([source_file], catalogs)

    assert sorted(result.catalogs) == ["en", "fr"]
    assert len(result.issues) == 1
    issue = result.issues[0]
    assert (issue.locale, issue.stage) == ("de", "validate")
    assert isinstance(issue.error, ParseError)
    # German lookups fall back to the base locale
    assert result.pack.gettext("de", "Save") == "Save"


def test_missing_file_is_an_acquisition_issue(tmp_path, source_file, catalogs):
    catalogs["it"] = tmp_path / "missing" / "it.po"
    result = compile([source_file], catalogs)
    assert [(i.locale, i.stage) for i in result.issues] == [("it", "acquire")]
    assert isinstance(result.issues[0].error, AcquisitionError)


def test_strict_acquisition_aborts(tmp_path, source_file, catalogs):
    catalogs["it"] = tmp_path / "missing" / "it.po"
    with pytest.raises(PipelineError) as exc_info:
        compile([source_file], catalogs, PipelineConfig(strict_acquisition=True))
    assert isinstance(exc_info.value.cause, AcquisitionError)


def test_missing_base_locale_aborts(source_file):
    with pytest.raises(PipelineError, match="base locale"):
        compile([source_file], {"de": DE_PO})


def test_synthesized_base_locale(source_file):
    result = compile([source_file], {"de": DE_PO}, PipelineConfig(synthesize_base=True))
    assert result.pack.locales == ["de", "en"]
    assert result.pack.coverage("en") == 4
    assert result.pack.gettext("de", "Only in English") == "Only in English"
    assert result.pack.ngettext("de", "{0} file", "{0} files", 2) == "{0} Dateien"


def test_broken_base_locale_aborts(source_file, catalogs):
    catalogs["en"] = 'msgid "broken\n'
    with pytest.raises(PipelineError) as exc_info:
        compile([source_file], catalogs)
    assert isinstance(exc_info.value.cause, ParseError)


def test_orphan_failure_is_per_locale(source_file, catalogs):
    result = compile([source_file], catalogs, PipelineConfig(orphan_policy="fail"))
    assert [(i.locale, i.stage) for i in result.issues] == [("de", "normalize")]
    assert "de" not in result.catalogs


def test_unreadable_source_aborts(tmp_path, catalogs):
    with pytest.raises(PipelineError):
        compile([tmp_path / "Nope.java"], catalogs)


def test_extraction_warnings_collected(tmp_path, catalogs):
    source = tmp_path / "Warn.java"
    source.write_text('tr("Save");\ntr(label);\n', encoding="utf-8")
    result = compile([source], catalogs)
    assert [(w.line, w.marker) for w in result.warnings] == [(2, "tr")]
    assert len(result.template) == 1


def test_result_to_dict(source_file, catalogs):
    catalogs["de"] = 'msgid "broken\n'
    data = compile([source_file], catalogs).to_dict()
    assert data["status"] == "ok"
    assert data["base_locale"] == "en"
    assert data["template_keys"] == 4
    assert data["locales"]["en"] == {"entries": 4, "covered": 4}
    assert data["issues"][0]["locale"] == "de"
    assert data["issues"][0]["error"]["type"] == "PARSE_ERROR"


def test_sources():
    assert TextCatalogSource("de", "text", origin="memory").fetch() == "text"
    with pytest.raises(AcquisitionError) as exc_info:
        FileCatalogSource("de", "/nonexistent/de.po").fetch()
    assert exc_info.value.locale == "de"
    with pytest.raises(AcquisitionError):
        DirectorySource("/nonexistent").locales()


def test_invalid_utf8_is_an_acquisition_error(tmp_path):
    path = tmp_path / "de.po"
    path.write_bytes(b'msgid "a"\nmsgstr "\xff"\n')
    with pytest.raises(AcquisitionError, match="UTF-8"):
        FileCatalogSource("de", path).fetch()


def test_synthesize_catalog(template):
    catalog = synthesize_catalog(template, "en")
    assert catalog.locale == "en"
    assert [e.translations for e in catalog.entries][2] == ("{0} file", "{0} files")


def test_write_atomic(tmp_path):
    path = tmp_path / "a" / "b.bin"
    assert write_atomic(path, b"data") is True
    assert write_atomic(path, b"data") is False
    assert write_atomic(path, b"other") is True
    assert path.read_bytes() == b"other"
    assert [p.name for p in path.parent.iterdir()] == ["b.bin"]


def test_surrogate_escape_skips_only_its_locale(source_file, catalogs):
    catalogs["de"] = 'msgid "Save"\nmsgstr "Sp\\xd800"\n'
    result = compile([source_file], catalogs)
    assert sorted(result.catalogs) == ["en", "fr"]
    assert [(i.locale, i.stage) for i in result.issues] == [("de", "validate")]
    assert isinstance(result.issues[0].error, ParseError)


def test_unencodable_text_is_an_encode_issue(source_file, catalogs):
    catalogs["de"] = 'msgid "Save"\nmsgstr "Sp\ud800"\n'
    result = compile([source_file], catalogs)
    assert sorted(result.catalogs) == ["en", "fr"]
    assert [(i.locale, i.stage) for i in result.issues] == [("de", "encode")]
    assert isinstance(result.issues[0].error, ValidationError)


def test_characters_beyond_bmp_in_sources(tmp_path):
    source = tmp_path / "Emoji.java"
    source.write_text('tr("Done \\uD83D\\uDE00");\n', encoding="utf-8")
    result = compile([source], {}, PipelineConfig(synthesize_base=True))
    assert result.pack.gettext("en", "Done \U0001F600") == "Done \U0001F600"
