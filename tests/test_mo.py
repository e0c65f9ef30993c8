#!/usr/bin/env python3
"""Tests for the MO encoder and reader."""

import gettext
import io
import struct

import pytest

from langc.errors import ValidationError
from langc.format_handlers import FormatRegistry
from langc.format_handlers.mo import MAGIC, MAGIC_BE, MAGIC_LE, MoEncoder, MoFile
from langc.models import CatalogHeader, HeaderField, NormalizedLocaleCatalog, StringKey, TranslationEntry


@pytest.fixture
def de_mo(normalized):
    return MoEncoder().encode(normalized["de"])


def strings(data, table, count):
    """NUL-terminated strings referenced by one (length, offset) table."""
    result = []
    for i in range(count):
        length, offset = struct.unpack_from("<II", data, table + 8 * i)
        assert data[offset + length] == 0
        result.append(data[offset:offset + length])
    return result


def test_layout(de_mo):
    magic, revision, count, originals, translations, hash_size, hash_offset = struct.unpack_from("<7I", de_mo)
    assert de_mo[:4] == b"\xde\x12\x04\x95"
    assert magic == MAGIC
    assert revision == 0
    assert count == 4
    assert originals == 28
    assert translations == 28 + 8 * count
    assert hash_size == 0
    assert hash_offset == translations + 8 * count

    assert strings(de_mo, originals, count) == [
        b"",
        b"Save",
        b"menu\x04Open",
        b"{0} file\x00{0} files",
    ]
    header, save, open_, files = strings(de_mo, translations, count)
    assert save == b"Speichern"
    assert open_ == "Öffnen".encode("utf-8")
    assert files == b"{0} Datei\x00{0} Dateien"
    assert b"Content-Type: text/plain; charset=UTF-8\n" in header
    assert b"Plural-Forms: nplurals=2; plural=(n != 1);\n" in header


def test_strings_follow_the_tables(de_mo):
    _, _, count, originals, translations, _, _ = struct.unpack_from("<7I", de_mo)
    _, offset = struct.unpack_from("<II", de_mo, originals)
    assert offset == translations + 8 * count
    last_length, last_offset = struct.unpack_from("<II", de_mo, translations + 8 * (count - 1))
    assert last_offset + last_length + 1 == len(de_mo)


def test_readable_by_gettext(de_mo):
    translations = gettext.GNUTranslations(io.BytesIO(de_mo))
    assert translations.gettext("Save") == "Speichern"
    assert translations.pgettext("menu", "Open") == "Öffnen"
    assert translations.ngettext("{0} file", "{0} files", 1) == "{0} Datei"
    assert translations.ngettext("{0} file", "{0} files", 5) == "{0} Dateien"
    assert translations.gettext("Only in English") == "Only in English"


def test_round_trip(de_mo):
    mo = MoFile(de_mo)
    assert mo.byte_order == "little"
    assert mo.header.language == "de"
    assert mo.header.plural_forms == "nplurals=2; plural=(n != 1);"
    assert [(e.key, e.translations) for e in mo.entries] == [
        (StringKey("", "Save"), ("Speichern",)),
        (StringKey("menu", "Open"), ("Öffnen",)),
        (StringKey("", "{0} file", "{0} files"), ("{0} Datei", "{0} Dateien")),
    ]
    assert mo.lookup(StringKey("menu", "Open")) == ("Öffnen",)
    assert mo.lookup("Nowhere") is None


def test_big_endian(normalized, de_mo):
    data = MoEncoder().encode(normalized["de"], big_endian=True)
    assert data[:4] == MAGIC_BE
    assert len(data) == len(de_mo)
    mo = MoFile(data)
    assert mo.byte_order == "big"
    assert [e.translations for e in mo.entries] == [e.translations for e in MoFile(de_mo).entries]


def test_deterministic(normalized):
    catalog = normalized["de"]
    reordered = NormalizedLocaleCatalog(catalog.locale, catalog.header, list(reversed(catalog.entries)))
    assert MoEncoder().encode(reordered) == MoEncoder().encode(catalog)


def test_content_type_added():
    catalog = NormalizedLocaleCatalog(
        "xx",
        CatalogHeader(fields=[HeaderField("Language", "xx")]),
        [TranslationEntry(StringKey("", "a"), ("b",))],
    )
    mo = MoFile(MoEncoder().encode(catalog))
    assert mo.header.charset == "UTF-8"
    assert mo.header.language == "xx"


def test_invalid_catalogs_rejected():
    def catalog(*entries):
        return NormalizedLocaleCatalog("xx", CatalogHeader(), list(entries))

    with pytest.raises(ValidationError, match="Duplicate"):
        MoEncoder().encode(catalog(
            TranslationEntry(StringKey("", "a"), ("b",)),
            TranslationEntry(StringKey("", "a", "as"), ("b", "bs")),
        ))
    with pytest.raises(ValidationError, match="header"):
        MoEncoder().encode(catalog(TranslationEntry(StringKey("", ""), ("b",))))
    with pytest.raises(ValidationError) as exc_info:
        MoEncoder().encode(catalog(TranslationEntry(StringKey("", "a"), ("\ud800",))))
    assert exc_info.value.locale == "xx"


def test_reader_rejects_garbage(de_mo):
    with pytest.raises(ValueError, match="magic"):
        MoFile(b"NOPE" + de_mo[4:])
    with pytest.raises(ValueError, match="truncated"):
        MoFile(de_mo[:20])
    with pytest.raises(ValueError, match="outside"):
        MoFile(de_mo[:-3])
    with pytest.raises(ValueError, match="revision"):
        MoFile(de_mo[:4] + struct.pack("<I", 0x20000) + de_mo[8:])


def test_summarize_via_registry(de_mo):
    handler = FormatRegistry.detect_format("messages.bin", de_mo)
    assert handler.name == "mo"
    assert FormatRegistry.get_handler_for_extension(".gmo").name == "mo"
    summary = handler.summarize(de_mo)
    assert summary == {
        "format": "mo",
        "language": "de",
        "plural_forms": "nplurals=2; plural=(n != 1);",
        "entries": 3,
        "plural": 1,
        "byte_order": "little",
        "size": len(de_mo),
    }
    assert MAGIC_LE == de_mo[:4]
