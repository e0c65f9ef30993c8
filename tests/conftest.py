#!/usr/bin/env python3
"""Shared fixtures: a small Java source and PO catalogs in three locales."""

import pytest

from langc.models import TemplateCatalog
from langc.normalizer import CatalogNormalizer
from langc.scanner import StringScanner
from langc.template import TemplateBuilder
from langc.validator import CatalogValidator

SAMPLE_JAVA = '''package demo;

public class Demo {
    // Label of the save button
    String save = tr("Save");
    String again = tr("Save");
    String open = trc("menu", "Open");
    String files = trn("{0} file", "{0} files", count, count);
    String only = tr("Only in English");
}
'''

EN_PO = r'''msgid ""
msgstr ""
"Project-Id-Version: demo 1.0\n"
"Language: en\n"
"Content-Type: text/plain; charset=UTF-8\n"
"Plural-Forms: nplurals=2; plural=n != 1;\n"

msgid "Save"
msgstr "Save"

msgctxt "menu"
msgid "Open"
msgstr "Open"

msgid "{0} file"
msgid_plural "{0} files"
msgstr[0] "{0} file"
msgstr[1] "{0} files"

msgid "Only in English"
msgstr "Only in English!"
'''

DE_PO = r'''# German translation of demo.
# Copyright (C) YEAR Jane Doe <jane@example.org>
# Max Mustermann <max@example.org>, 2021.
#
#, fuzzy
msgid ""
msgstr ""
"Project-Id-Version: demo 1.0\n"
"Last-Translator: Max Mustermann <max@example.org>\n"
"Language: de\n"
"Content-Type: text/plain; charset=CHARSET\n"
"Plural-Forms: nplurals=2; plural=(n != 1);\n"

#. Label of the save button
#: Demo.java:5 Demo.java:6
msgid "Save"
msgstr "Speichern"

#: Demo.java:7
msgctxt "menu"
msgid "Open"
msgstr "Öffnen"

#: Demo.java:8
msgid "{0} file"
msgid_plural "{0} files"
msgstr[0] "{0} Datei"
msgstr[1] "{0} Dateien"

#: Demo.java:9
#, fuzzy
msgid "Only in English"
msgstr "Nur auf Englisch"

msgid "Removed feature"
msgstr "Entfernte Funktion"

#~ msgid "Old"
#~ msgstr "Alt"
'''

FR_PO = r'''msgid ""
msgstr ""
"Language: fr\n"
"Content-Type: text/plain; charset=UTF-8\n"
"Plural-Forms: nplurals=2; plural=(n > 1);\n"

msgid "Save"
msgstr "Enregistrer"

msgid "{0} file"
msgid_plural "{0} files"
msgstr[0] "{0} fichier"
msgstr[1] ""
'''


@pytest.fixture
def template() -> TemplateCatalog:
    """Template catalog of SAMPLE_JAVA."""
    return TemplateBuilder.build(StringScanner().scan_text(SAMPLE_JAVA, "Demo.java"))


@pytest.fixture
def source_file(tmp_path):
    """SAMPLE_JAVA written to disk."""
    path = tmp_path / "src" / "Demo.java"
    path.parent.mkdir(parents=True)
    path.write_text(SAMPLE_JAVA, encoding="utf-8")
    return path


@pytest.fixture
def po_dir(tmp_path):
    """Directory with en.po, de.po and fr.po."""
    directory = tmp_path / "po"
    directory.mkdir()
    for locale, text in (("en", EN_PO), ("de", DE_PO), ("fr", FR_PO)):
        (directory / f"{locale}.po").write_text(text, encoding="utf-8")
    return directory


@pytest.fixture
def normalized(template):
    """Normalized catalogs of all three locales."""
    normalizer = CatalogNormalizer()
    result = {}
    for locale, text in (("en", EN_PO), ("de", DE_PO), ("fr", FR_PO)):
        raw = CatalogValidator().validate(text, path=f"{locale}.po")
        result[locale] = normalizer.normalize(raw, template, year=2024)
    return result
