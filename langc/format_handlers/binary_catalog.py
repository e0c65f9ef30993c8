#!/usr/bin/env python3
"""
Binary catalog format (.lcat).

One locale's normalized translations compiled into a fixed little-endian
layout that an application can search without parsing text:

    header      28 bytes   magic "LCAT", version, nplurals, entry count,
                           locale tag length, plural program length,
                           index offset, string data offset, string data size
    locale tag  UTF-8
    program     compiled plural expression (see langc.plural)
    index       18 bytes per entry: FNV-1a hash of the lookup id, key
                offset/length, translation offset/length, form count, flags
    strings     key blob then translation blob for every entry, index order

Index records are sorted by (hash, lookup id bytes), so a reader finds a key
with a binary search. Offsets in the index are relative to the string data.
"""

import logging
import struct
from typing import Any, Iterator, Optional, Union

from ..errors import FormatCapacityError, ValidationError
from ..models import PLURAL_SEPARATOR, NormalizedLocaleCatalog, StringKey, TranslationEntry
from ..plural import PluralRule, evaluate
from .base import CatalogFormat

logger = logging.getLogger(__name__)

MAGIC = b"LCAT"
VERSION = 1

HEADER = struct.Struct("<4sHHIHHIII")
RECORD = struct.Struct("<IIHIHBB")

FLAG_PLURAL = 0x01
FLAG_FUZZY = 0x02

MAX_STRING_LENGTH = 0xFFFF
MAX_FORM_COUNT = 0xFF
MAX_LOCALE_LENGTH = 0xFFFF
MAX_PROGRAM_LENGTH = 0xFFFF
MAX_ENTRY_COUNT = 0xFFFFFFFF
MAX_SECTION_SIZE = 0xFFFFFFFF

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193

_SEP = PLURAL_SEPARATOR.encode("utf-8")


def fnv1a_32(data: bytes) -> int:
    """32-bit FNV-1a hash."""
    h = _FNV_OFFSET
    for byte in data:
        h ^= byte
        h = (h * _FNV_PRIME) & 0xFFFFFFFF
    return h


def _check_capacity(what: str, limit: int, actual: int) -> None:
    if actual > limit:
        raise FormatCapacityError(what, limit=limit, actual=actual)


def utf8(text: str, locale: str) -> bytes:
    """
    UTF-8 bytes of a catalog string.

    Raises:
        ValidationError: If the text holds lone surrogates or other unencodable characters
    """
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValidationError(f"Cannot encode {text[:40]!r} as UTF-8: {e.reason}", locale=locale) from e


def entry_blobs(locale: str, entry: TranslationEntry) -> tuple[bytes, bytes, bytes]:
    """
    Byte strings stored for one entry, shared by the compiled formats.

    Returns:
        Tuple of (lookup id, key blob, translation blob); the key blob is the
        lookup id followed by NUL and the plural for plural entries, the
        translation blob joins the forms with NUL

    Raises:
        ValidationError: If a string contains NUL or cannot be encoded
    """
    texts = [entry.key.lookup_id, *entry.translations]
    if entry.key.is_plural:
        texts.append(entry.key.plural)
    if any(PLURAL_SEPARATOR in t for t in texts):
        raise ValidationError(f"NUL character in entry {entry.key.singular[:40]!r}", locale=locale)
    lookup = utf8(entry.key.lookup_id, locale)
    key_blob = lookup
    if entry.key.is_plural:
        key_blob += _SEP + utf8(entry.key.plural, locale)
    value_blob = _SEP.join(utf8(t, locale) for t in entry.translations)
    return lookup, key_blob, value_blob


class BinaryCatalogEncoder:
    """
    Compiles a NormalizedLocaleCatalog into binary catalog bytes.

    Encoding is a pure function of the catalog: the same catalog always
    gives the same bytes. Values that do not fit the layout raise
    FormatCapacityError, they are never truncated.
    """

    def encode(self, catalog: NormalizedLocaleCatalog) -> "BinaryCatalog":
        rule = self._plural_rule(catalog)
        locale = utf8(catalog.locale, catalog.locale)
        _check_capacity(f"Locale tag of '{catalog.locale}' too long", MAX_LOCALE_LENGTH, len(locale))
        _check_capacity("Plural program too long", MAX_PROGRAM_LENGTH, len(rule.program))
        _check_capacity(f"Too many entries in catalog '{catalog.locale}'", MAX_ENTRY_COUNT, len(catalog.entries))
        _check_capacity("Too many plural forms", MAX_FORM_COUNT, rule.nplurals)

        rows = []
        seen = set()
        for entry in catalog.entries:
            lookup, key_blob, value_blob = entry_blobs(catalog.locale, entry)
            if lookup in seen:
                raise ValidationError(f"Duplicate key in catalog: {entry.key.lookup_id!r}", locale=catalog.locale)
            seen.add(lookup)
            rows.append((fnv1a_32(lookup), lookup, key_blob, value_blob, entry))
        rows.sort(key=lambda row: (row[0], row[1]))

        index = bytearray()
        strings = bytearray()
        for h, _, key_blob, value_blob, entry in rows:
            _check_capacity(f"Key too long: {entry.key.singular[:40]!r}", MAX_STRING_LENGTH, len(key_blob))
            _check_capacity(
                f"Translation too long for key {entry.key.singular[:40]!r}", MAX_STRING_LENGTH, len(value_blob)
            )
            _check_capacity(
                f"Too many forms for key {entry.key.singular[:40]!r}", MAX_FORM_COUNT, len(entry.translations)
            )

            flags = 0
            if entry.key.is_plural:
                flags |= FLAG_PLURAL
            if entry.fuzzy:
                flags |= FLAG_FUZZY

            key_offset = len(strings)
            strings += key_blob
            value_offset = len(strings)
            strings += value_blob
            index += RECORD.pack(
                h, key_offset, len(key_blob), value_offset, len(value_blob), len(entry.translations), flags
            )

        index_offset = HEADER.size + len(locale) + len(rule.program)
        strings_offset = index_offset + len(index)
        _check_capacity("String data too large", MAX_SECTION_SIZE, strings_offset + len(strings))

        header = HEADER.pack(
            MAGIC,
            VERSION,
            rule.nplurals,
            len(rows),
            len(locale),
            len(rule.program),
            index_offset,
            strings_offset,
            len(strings),
        )
        data = b"".join([header, locale, rule.program, bytes(index), bytes(strings)])
        logger.debug(f"Encoded catalog '{catalog.locale}': {len(rows)} entries, {len(data)} bytes")
        return BinaryCatalog(data)

    @staticmethod
    def _plural_rule(catalog: NormalizedLocaleCatalog) -> PluralRule:
        plural_forms = catalog.header.plural_forms
        if not plural_forms:
            return PluralRule.default()
        try:
            return PluralRule.parse(plural_forms)
        except ValueError as e:
            raise ValidationError(str(e), locale=catalog.locale) from e


class BinaryCatalog:
    """
    Read-only view over binary catalog bytes.

    Raises:
        ValueError: If the bytes are not a well-formed binary catalog
    """

    def __init__(self, data: bytes):
        self.data = bytes(data)
        if len(self.data) < HEADER.size:
            raise ValueError(f"Binary catalog truncated: {len(self.data)} bytes")
        (
            magic,
            version,
            self.nplurals,
            self.entry_count,
            locale_len,
            program_len,
            self.index_offset,
            self.strings_offset,
            self.strings_size,
        ) = HEADER.unpack_from(self.data, 0)
        if magic != MAGIC:
            raise ValueError(f"Not a binary catalog (magic {magic!r})")
        if version != VERSION:
            raise ValueError(f"Unsupported binary catalog version {version}")

        program_start = HEADER.size + locale_len
        if self.index_offset != program_start + program_len:
            raise ValueError("Binary catalog index offset does not follow the header")
        if self.strings_offset != self.index_offset + self.entry_count * RECORD.size:
            raise ValueError("Binary catalog string data offset does not follow the index")
        if self.strings_offset + self.strings_size != len(self.data):
            raise ValueError(
                f"Binary catalog size mismatch: expected {self.strings_offset + self.strings_size} bytes, "
                f"got {len(self.data)}"
            )

        self.locale = self.data[HEADER.size:program_start].decode("utf-8")
        self.plural_program = self.data[program_start:self.index_offset]

        for i in range(self.entry_count):
            _, key_off, key_len, val_off, val_len, _, _ = self._record(i)
            if key_off + key_len > self.strings_size or val_off + val_len > self.strings_size:
                raise ValueError(f"Binary catalog record {i} points outside the string data")

    def __len__(self) -> int:
        return self.entry_count

    def _record(self, i: int) -> tuple[int, int, int, int, int, int, int]:
        return RECORD.unpack_from(self.data, self.index_offset + i * RECORD.size)

    def _string(self, offset: int, length: int) -> bytes:
        start = self.strings_offset + offset
        return self.data[start:start + length]

    def _lookup_bytes(self, i: int) -> bytes:
        _, key_off, key_len, _, _, _, _ = self._record(i)
        return self._string(key_off, key_len).split(_SEP, 1)[0]

    def find(self, key: Union[StringKey, str]) -> Optional[int]:
        """Index position of a key, or None. Strings are taken as lookup ids."""
        lookup_id = key.lookup_id if isinstance(key, StringKey) else key
        target = lookup_id.encode("utf-8")
        wanted = (fnv1a_32(target), target)

        lo, hi = 0, self.entry_count
        while lo < hi:
            mid = (lo + hi) // 2
            probe = (self._record(mid)[0], self._lookup_bytes(mid))
            if probe < wanted:
                lo = mid + 1
            else:
                hi = mid
        if lo < self.entry_count and (self._record(lo)[0], self._lookup_bytes(lo)) == wanted:
            return lo
        return None

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (StringKey, str)):
            return False
        return self.find(key) is not None

    def lookup(self, key: Union[StringKey, str]) -> Optional[tuple[str, ...]]:
        """
        Translations stored for a key.

        Returns:
            One text for singular entries, one per plural slot otherwise;
            None when the catalog does not contain the key
        """
        i = self.find(key)
        if i is None:
            return None
        _, _, _, val_off, val_len, _, _ = self._record(i)
        return tuple(t.decode("utf-8") for t in self._string(val_off, val_len).split(_SEP))

    def select_plural(self, n: int) -> int:
        """Plural slot for count n; out-of-range results select slot 0."""
        index = evaluate(self.plural_program, n)
        if 0 <= index < self.nplurals:
            return index
        return 0

    def gettext(self, message: str, context: str = "") -> Optional[str]:
        found = self.lookup(StringKey(context, message))
        return found[0] if found else None

    def ngettext(self, singular: str, plural: str, n: int, context: str = "") -> Optional[str]:
        found = self.lookup(StringKey(context, singular, plural))
        if not found:
            return None
        slot = self.select_plural(n)
        return found[slot] if slot < len(found) else found[0]

    def entries(self) -> Iterator[TranslationEntry]:
        """Decoded entries in index order."""
        for i in range(self.entry_count):
            _, key_off, key_len, val_off, val_len, _, flags = self._record(i)
            key_parts = self._string(key_off, key_len).split(_SEP, 1)
            plural = key_parts[1].decode("utf-8") if flags & FLAG_PLURAL else None
            key = StringKey.from_lookup_id(key_parts[0].decode("utf-8"), plural)
            translations = tuple(t.decode("utf-8") for t in self._string(val_off, val_len).split(_SEP))
            yield TranslationEntry(key=key, translations=translations, fuzzy=bool(flags & FLAG_FUZZY))

    def to_bytes(self) -> bytes:
        return self.data

    def __eq__(self, other: object) -> bool:
        return isinstance(other, BinaryCatalog) and self.data == other.data

    def __hash__(self) -> int:
        return hash(self.data)


class BinaryCatalogFormat(CatalogFormat):
    """Compiled single-locale catalog."""

    @property
    def name(self) -> str:
        return "lcat"

    @property
    def file_extensions(self) -> list[str]:
        return ["lcat"]

    @property
    def magic(self) -> Optional[bytes]:
        return MAGIC

    def summarize(self, data: bytes) -> dict[str, Any]:
        catalog = BinaryCatalog(data)
        entries = list(catalog.entries())
        return {
            'format': self.name,
            'locale': catalog.locale,
            'nplurals': catalog.nplurals,
            'entries': len(entries),
            'plural': sum(1 for e in entries if e.key.is_plural),
            'fuzzy': sum(1 for e in entries if e.fuzzy),
            'size': len(data),
        }
