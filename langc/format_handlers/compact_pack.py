#!/usr/bin/env python3
"""
Compact pack format (.lpak).

All binary catalogs of one source set merged into a single file:

    header  magic "LPAK", version, locale count, template key count,
            base locale tag length; then the base locale tag
    TOC     per locale, sorted by tag: tag length, absolute offset, length,
            number of template keys the locale covers; then the tag
    data    the binary catalogs, concatenated in TOC order

Lookups that miss in a locale fall back to the base locale named in the
header.
"""

import logging
import struct
from typing import Any, Optional, Union

from ..errors import FormatCapacityError, ValidationError
from ..models import StringKey, TemplateCatalog
from .base import CatalogFormat
from .binary_catalog import BinaryCatalog

logger = logging.getLogger(__name__)

MAGIC = b"LPAK"
VERSION = 1

HEADER = struct.Struct("<4sHHIH")
TOC_ENTRY = struct.Struct("<BIII")

MAX_LOCALES = 0xFFFF
MAX_TAG_LENGTH = 0xFF
MAX_OFFSET = 0xFFFFFFFF


class CompactPackEncoder:
    """Merges per-locale binary catalogs into one compact pack."""

    def encode(
        self,
        template: TemplateCatalog,
        catalogs: dict[str, BinaryCatalog],
        base_locale: str,
    ) -> "CompactPack":
        """
        Build a pack from the catalogs of every locale.

        Args:
            template: Template catalog of the source set
            catalogs: Binary catalog per locale tag
            base_locale: Locale used when a lookup misses

        Raises:
            ValidationError: If base_locale has no catalog
            FormatCapacityError: If tags, counts or offsets do not fit
        """
        if base_locale not in catalogs:
            raise ValidationError(
                f"Base locale '{base_locale}' missing from pack (have: {', '.join(sorted(catalogs)) or 'none'})",
                locale=base_locale,
            )
        if len(catalogs) > MAX_LOCALES:
            raise FormatCapacityError("Too many locales in pack", limit=MAX_LOCALES, actual=len(catalogs))
        if len(template) > MAX_OFFSET:
            raise FormatCapacityError("Too many template keys", limit=MAX_OFFSET, actual=len(template))

        locales = sorted(catalogs)
        tags = {}
        for locale in locales:
            tag = locale.encode("utf-8")
            if len(tag) > MAX_TAG_LENGTH:
                raise FormatCapacityError(f"Locale tag '{locale}' too long", limit=MAX_TAG_LENGTH, actual=len(tag))
            tags[locale] = tag

        base_tag = tags[base_locale]
        toc_size = sum(TOC_ENTRY.size + len(tags[locale]) for locale in locales)
        offset = HEADER.size + len(base_tag) + toc_size

        toc = bytearray()
        for locale in locales:
            data = catalogs[locale].to_bytes()
            if offset + len(data) > MAX_OFFSET:
                raise FormatCapacityError("Pack too large", limit=MAX_OFFSET, actual=offset + len(data))
            covered = sum(1 for entry in template if entry.key in catalogs[locale])
            toc += TOC_ENTRY.pack(len(tags[locale]), offset, len(data), covered) + tags[locale]
            offset += len(data)

        header = HEADER.pack(MAGIC, VERSION, len(locales), len(template), len(base_tag))
        pack = b"".join([header, base_tag, bytes(toc)] + [catalogs[locale].to_bytes() for locale in locales])
        logger.debug(f"Encoded pack: {len(locales)} locales, base '{base_locale}', {len(pack)} bytes")
        return CompactPack(pack)


class CompactPack:
    """
    Read-only view over compact pack bytes.

    Raises:
        ValueError: If the bytes are not a well-formed pack
    """

    def __init__(self, data: bytes):
        self.data = bytes(data)
        if len(self.data) < HEADER.size:
            raise ValueError(f"Compact pack truncated: {len(self.data)} bytes")
        magic, version, locale_count, self.template_key_count, base_len = HEADER.unpack_from(self.data, 0)
        if magic != MAGIC:
            raise ValueError(f"Not a compact pack (magic {magic!r})")
        if version != VERSION:
            raise ValueError(f"Unsupported compact pack version {version}")

        pos = HEADER.size
        self.base_locale = self.data[pos:pos + base_len].decode("utf-8")
        pos += base_len

        # locale -> (offset, length, covered template keys)
        self.toc: dict[str, tuple[int, int, int]] = {}
        for _ in range(locale_count):
            if pos + TOC_ENTRY.size > len(self.data):
                raise ValueError("Compact pack table of contents truncated")
            tag_len, offset, length, covered = TOC_ENTRY.unpack_from(self.data, pos)
            pos += TOC_ENTRY.size
            tag = self.data[pos:pos + tag_len].decode("utf-8")
            pos += tag_len
            if offset + length > len(self.data):
                raise ValueError(f"Catalog of locale '{tag}' points outside the pack")
            self.toc[tag] = (offset, length, covered)

        if self.base_locale not in self.toc:
            raise ValueError(f"Base locale '{self.base_locale}' has no catalog in the pack")
        self._catalogs: dict[str, BinaryCatalog] = {}

    @property
    def locales(self) -> list[str]:
        return list(self.toc)

    def coverage(self, locale: str) -> int:
        """Number of template keys the locale translates."""
        return self.toc[locale][2]

    def catalog(self, locale: str) -> BinaryCatalog:
        if locale not in self._catalogs:
            if locale not in self.toc:
                raise KeyError(f"No catalog for locale '{locale}' in pack")
            offset, length, _ = self.toc[locale]
            self._catalogs[locale] = BinaryCatalog(self.data[offset:offset + length])
        return self._catalogs[locale]

    def resolve(self, locale: str, key: Union[StringKey, str]) -> Optional[tuple[str, tuple[str, ...]]]:
        """
        Find a key in the locale, then in the base locale.

        Returns:
            Tuple of (supplying locale, translations), or None when neither
            catalog has the key
        """
        for candidate in (locale, self.base_locale):
            if candidate not in self.toc:
                continue
            found = self.catalog(candidate).lookup(key)
            if found is not None:
                return candidate, found
        return None

    def lookup(self, locale: str, key: Union[StringKey, str]) -> Optional[tuple[str, ...]]:
        resolved = self.resolve(locale, key)
        return resolved[1] if resolved else None

    def gettext(self, locale: str, message: str, context: str = "") -> str:
        found = self.lookup(locale, StringKey(context, message))
        return found[0] if found else message

    def ngettext(self, locale: str, singular: str, plural: str, n: int, context: str = "") -> str:
        """
        Plural-aware lookup.

        The plural rule of whichever catalog supplied the text picks the
        slot; when no catalog has the key, English-style source selection
        between singular and plural applies.
        """
        resolved = self.resolve(locale, StringKey(context, singular, plural))
        if resolved is None:
            return singular if n == 1 else plural
        supplier, translations = resolved
        slot = self.catalog(supplier).select_plural(n)
        return translations[slot] if slot < len(translations) else translations[0]

    def to_bytes(self) -> bytes:
        return self.data


class CompactPackFormat(CatalogFormat):
    """Multi-locale pack of binary catalogs."""

    @property
    def name(self) -> str:
        return "lpak"

    @property
    def file_extensions(self) -> list[str]:
        return ["lpak"]

    @property
    def magic(self) -> Optional[bytes]:
        return MAGIC

    def summarize(self, data: bytes) -> dict[str, Any]:
        pack = CompactPack(data)
        return {
            'format': self.name,
            'base_locale': pack.base_locale,
            'template_keys': pack.template_key_count,
            'locales': {
                locale: {
                    'entries': len(pack.catalog(locale)),
                    'covered': pack.coverage(locale),
                    'size': pack.toc[locale][1],
                }
                for locale in pack.locales
            },
            'size': len(data),
        }
