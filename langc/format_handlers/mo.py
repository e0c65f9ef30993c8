#!/usr/bin/env python3
"""
GNU gettext MO format (.mo).

The compiled catalog that gettext runtimes load directly:

    header      28 bytes   magic 0x950412DE, revision 0, string count,
                           original table offset, translation table offset,
                           hash table size (0, no hash table), hash offset
    originals   (length, offset) per string, sorted by original bytes
    translations (length, offset) per string, same order
    strings     NUL-terminated originals, then NUL-terminated translations

An original is the lookup id (context and message joined by EOT) followed by
NUL and the plural for plural entries; its translation joins the forms with
NUL. The empty original carries the header fields. Files are written
little-endian; both byte orders are read.
"""

import logging
import struct
from typing import Any, Optional, Union

from ..errors import FormatCapacityError, ValidationError
from ..models import (
    PLURAL_SEPARATOR,
    CatalogHeader,
    HeaderField,
    NormalizedLocaleCatalog,
    StringKey,
    TranslationEntry,
)
from .base import CatalogFormat
from .binary_catalog import entry_blobs, utf8

logger = logging.getLogger(__name__)

MAGIC = 0x950412DE
MAGIC_LE = struct.pack("<I", MAGIC)
MAGIC_BE = struct.pack(">I", MAGIC)
REVISION = 0

HEADER_FORMAT = "I6I"
TABLE_ENTRY_FORMAT = "II"
HEADER_SIZE = struct.calcsize("<" + HEADER_FORMAT)
TABLE_ENTRY_SIZE = struct.calcsize("<" + TABLE_ENTRY_FORMAT)

MAX_FILE_SIZE = 0xFFFFFFFF

UTF8_CONTENT_TYPE = "text/plain; charset=UTF-8"


def mo_header(header: CatalogHeader) -> CatalogHeader:
    """Copy of a header whose Content-Type declares the UTF-8 the strings are written in."""
    fields = []
    found = False
    for f in header.fields:
        if f.name.lower() == "content-type":
            f = HeaderField(f.name, UTF8_CONTENT_TYPE, f.line)
            found = True
        fields.append(f)
    if not found:
        fields.append(HeaderField("Content-Type", UTF8_CONTENT_TYPE))
    return CatalogHeader(fields=fields, comments=list(header.comments), flags=list(header.flags), line=header.line)


def parse_header_text(text: str) -> CatalogHeader:
    """Header fields from the translation of the empty original."""
    header = CatalogHeader()
    for line in text.split("\n"):
        name, sep, value = line.partition(":")
        if sep and name.strip():
            header.fields.append(HeaderField(name.strip(), value.strip()))
    return header


class MoEncoder:
    """
    Compiles a NormalizedLocaleCatalog into MO bytes.

    Like the binary catalog encoder, the output is a pure function of the
    catalog and oversized input raises FormatCapacityError.
    """

    def encode(self, catalog: NormalizedLocaleCatalog, big_endian: bool = False) -> bytes:
        """
        Encode one locale catalog.

        Args:
            catalog: Normalized catalog; every entry is written, fuzzy ones included
            big_endian: Write big-endian integers instead of little-endian

        Raises:
            ValidationError: On duplicate keys, an empty key, or text that
                cannot be stored
            FormatCapacityError: If the file would exceed 4 GiB
        """
        header_text = utf8(mo_header(catalog.header).to_text(), catalog.locale)
        strings = {b"": header_text}
        seen = {b""}
        for entry in catalog.entries:
            lookup, original, translation = entry_blobs(catalog.locale, entry)
            if not lookup:
                raise ValidationError("Entry with an empty msgid collides with the header", locale=catalog.locale)
            if lookup in seen:
                raise ValidationError(f"Duplicate key in catalog: {entry.key.lookup_id!r}", locale=catalog.locale)
            seen.add(lookup)
            strings[original] = translation

        originals = sorted(strings)
        count = len(originals)
        originals_offset = HEADER_SIZE
        translations_offset = originals_offset + count * TABLE_ENTRY_SIZE
        data_offset = translations_offset + count * TABLE_ENTRY_SIZE

        order = ">" if big_endian else "<"
        table_entry = struct.Struct(order + TABLE_ENTRY_FORMAT)
        originals_table = bytearray()
        translations_table = bytearray()
        data = bytearray()
        for key in originals:
            originals_table += table_entry.pack(len(key), data_offset + len(data))
            data += key + b"\0"
        for key in originals:
            value = strings[key]
            translations_table += table_entry.pack(len(value), data_offset + len(data))
            data += value + b"\0"

        size = data_offset + len(data)
        if size > MAX_FILE_SIZE:
            raise FormatCapacityError(f"MO file for '{catalog.locale}' too large", limit=MAX_FILE_SIZE, actual=size)

        header = struct.pack(
            order + HEADER_FORMAT,
            MAGIC,
            REVISION,
            count,
            originals_offset,
            translations_offset,
            0,
            data_offset,
        )
        result = b"".join([header, bytes(originals_table), bytes(translations_table), bytes(data)])
        logger.debug(f"Encoded MO catalog '{catalog.locale}': {count - 1} entries, {len(result)} bytes")
        return result


class MoFile:
    """
    Decoded MO file.

    Attributes:
        byte_order: "little" or "big"
        revision: Format revision from the file header
        header: Fields of the empty original's translation
        entries: Translated entries in file order, the header excluded

    Raises:
        ValueError: If the bytes are not a well-formed MO file with UTF-8 strings
    """

    def __init__(self, data: bytes):
        data = bytes(data)
        if len(data) < HEADER_SIZE:
            raise ValueError(f"MO file truncated: {len(data)} bytes")
        if data[:4] == MAGIC_LE:
            order, self.byte_order = "<", "little"
        elif data[:4] == MAGIC_BE:
            order, self.byte_order = ">", "big"
        else:
            raise ValueError(f"Not an MO file (magic {data[:4]!r})")

        _, self.revision, count, originals_offset, translations_offset, _, _ = struct.unpack_from(
            order + HEADER_FORMAT, data, 0
        )
        if self.revision >> 16 > 1:
            raise ValueError(f"Unsupported MO revision {self.revision:#x}")
        for offset in (originals_offset, translations_offset):
            if offset + count * TABLE_ENTRY_SIZE > len(data):
                raise ValueError("MO file truncated: string table outside the file")

        table_entry = struct.Struct(order + TABLE_ENTRY_FORMAT)

        def string(table: int, i: int) -> bytes:
            length, offset = table_entry.unpack_from(data, table + i * TABLE_ENTRY_SIZE)
            if offset + length >= len(data):
                raise ValueError(f"MO string {i} points outside the file")
            return data[offset:offset + length]

        self.header = CatalogHeader()
        self.entries: list[TranslationEntry] = []
        for i in range(count):
            try:
                original = string(originals_offset, i).decode("utf-8")
                translation = string(translations_offset, i).decode("utf-8")
            except UnicodeDecodeError as e:
                raise ValueError(f"MO string {i} is not UTF-8: {e.reason}") from None
            if not original:
                self.header = parse_header_text(translation)
                continue
            lookup_id, sep, plural = original.partition(PLURAL_SEPARATOR)
            key = StringKey.from_lookup_id(lookup_id, plural if sep else None)
            self.entries.append(TranslationEntry(key=key, translations=tuple(translation.split(PLURAL_SEPARATOR))))

    def __len__(self) -> int:
        return len(self.entries)

    def lookup(self, key: Union[StringKey, str]) -> Optional[tuple[str, ...]]:
        """Translations stored for a key (a StringKey or a lookup id), or None."""
        lookup_id = key.lookup_id if isinstance(key, StringKey) else key
        for entry in self.entries:
            if entry.key.lookup_id == lookup_id:
                return entry.translations
        return None


class MoFormat(CatalogFormat):
    """GNU gettext compiled catalog."""

    @property
    def name(self) -> str:
        return "mo"

    @property
    def file_extensions(self) -> list[str]:
        return ["mo", "gmo"]

    @property
    def magic(self) -> Optional[bytes]:
        return MAGIC_LE

    def summarize(self, data: bytes) -> dict[str, Any]:
        mo = MoFile(data)
        return {
            'format': self.name,
            'language': mo.header.language,
            'plural_forms': mo.header.plural_forms,
            'entries': len(mo),
            'plural': sum(1 for e in mo.entries if e.key.is_plural),
            'byte_order': mo.byte_order,
            'size': len(data),
        }
