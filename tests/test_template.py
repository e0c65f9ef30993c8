#!/usr/bin/env python3
"""Tests for template folding and POT output."""

from langc.models import Occurrence, SourceLocation, StringKey
from langc.scanner import StringScanner
from langc.template import PotMetadata, TemplateBuilder, read_template, serialize, write_pot


def occ(singular, line, plural=None, context="", comment=None, path="A.java"):
    return Occurrence(StringKey(context, singular, plural), SourceLocation(path, line), comment)


def test_repeated_literal_folds_into_one_entry():
    """Two occurrences of "Hello" give one entry with two occurrences."""
    source = 'class A {\n  String a = tr("Hello");\n  String b = tr("Hello");\n}\n'
    catalog = TemplateBuilder.build(StringScanner().scan_text(source, "A.java"))

    assert len(catalog) == 1
    entry = catalog.get(StringKey("", "Hello", None))
    assert len(entry.occurrences) == 2
    assert entry.locations == [SourceLocation("A.java", 2), SourceLocation("A.java", 3)]


def test_first_occurrence_order():
    catalog = TemplateBuilder.build([occ("b", 1), occ("a", 2), occ("b", 3), occ("c", 4)])
    assert [k.singular for k in catalog.keys] == ["b", "a", "c"]


def test_context_distinguishes_keys():
    catalog = TemplateBuilder.build([occ("Open", 1), occ("Open", 2, context="menu")])
    assert len(catalog) == 2


def test_plural_upgrades_singular_entry():
    catalog = TemplateBuilder.build([occ("File", 1), occ("Other", 2), occ("File", 3, plural="Files")])
    assert [k.singular for k in catalog.keys] == ["File", "Other"]
    assert catalog.keys[0].plural == "Files"
    assert len(catalog.get(StringKey("", "File")).occurrences) == 2


def test_conflicting_plural_keeps_first(caplog):
    catalog = TemplateBuilder.build([occ("File", 1, plural="Files"), occ("File", 2, plural="Filez")])
    assert catalog.keys[0].plural == "Files"
    assert "conflicts" in caplog.text


def test_comments_deduplicated():
    catalog = TemplateBuilder.build([
        occ("Save", 1, comment="Button"),
        occ("Save", 2, comment="Button"),
        occ("Save", 3, comment="Menu item"),
    ])
    assert catalog.get(StringKey("", "Save")).comments == ["Button", "Menu item"]


def test_serialize_pot(template):
    text = serialize(template, PotMetadata(package_name="demo", package_version="1.0", copyright_holder="Jane"))

    assert text.startswith("# SOME DESCRIPTIVE TITLE.\n# Copyright (C) YEAR Jane\n")
    assert "#, fuzzy\nmsgid \"\"\nmsgstr \"\"\n" in text
    assert '"Project-Id-Version: demo 1.0\\n"' in text
    assert '"Content-Type: text/plain; charset=CHARSET\\n"' in text
    assert '"Plural-Forms: nplurals=INTEGER; plural=EXPRESSION;\\n"' in text
    assert "POT-Creation-Date" not in text

    assert '#. Label of the save button\n#: Demo.java:5\n#: Demo.java:6\nmsgid "Save"\nmsgstr ""\n' in text
    assert 'msgctxt "menu"\nmsgid "Open"\nmsgstr ""' in text
    assert 'msgid "{0} file"\nmsgid_plural "{0} files"\nmsgstr[0] ""\nmsgstr[1] ""' in text


def test_serialize_is_deterministic(template):
    assert serialize(template) == serialize(template)


def test_no_plural_forms_without_plurals():
    catalog = TemplateBuilder.build([occ("Hello", 1)])
    assert "Plural-Forms" not in serialize(catalog)


def test_path_transformer():
    catalog = TemplateBuilder.build([occ("Hello", 7, path="/abs/src/A.java")])
    text = serialize(catalog, path_transformer=lambda p: p.replace("/abs/", ""))
    assert "#: src/A.java:7\n" in text


def test_description_entry():
    catalog = TemplateBuilder.build([occ("Hello", 1)])
    text = serialize(catalog, PotMetadata(package_name="demo", description="Does things"))
    assert text.endswith('#. Description of demo\nmsgid "Does things"\nmsgstr ""\n')


def test_write_and_read_template(tmp_path, template):
    path = write_pot(template, tmp_path / "out" / "demo.pot")
    assert path.is_file()

    reread = read_template(path.read_text(encoding="utf-8"))
    assert reread.keys == template.keys
    assert [k.plural for k in reread.keys] == [k.plural for k in template.keys]
    assert reread.get(StringKey("", "Save")).locations == [
        SourceLocation("Demo.java", 5),
        SourceLocation("Demo.java", 6),
    ]
    assert reread.get(StringKey("", "Save")).comments == ["Label of the save button"]
