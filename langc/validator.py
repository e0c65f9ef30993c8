#!/usr/bin/env python3
"""
Validation of locale catalogs.

CatalogValidator turns PO text into a RawLocaleCatalog or raises ParseError
at the first problem, with the file, line and offending token. A catalog is
never returned half-parsed.
"""

import logging
from pathlib import Path
from typing import Optional

from .errors import ParseError
from .format_handlers.po import PoHandler
from .models import RawLocaleCatalog, StringKey
from .plural import PluralRule

logger = logging.getLogger(__name__)

ACCEPTED_CHARSETS = {"utf-8", "utf8", "charset"}


class CatalogValidator:
    """
    Parses and checks PO catalogs.

    Checks, in order:
    - PO syntax (strings, keywords, msgstr presence, plural indices)
    - no StringKey appears twice among live (non-obsolete) entries
    - the declared charset is UTF-8 (or the CHARSET placeholder)
    - a Plural-Forms rule exists and parses when any entry is plural

    Placeholder mismatches between msgid and msgstr are not fatal; they are
    logged and collected in `warnings`.
    """

    def __init__(self, handler: Optional[PoHandler] = None):
        self.handler = handler or PoHandler()
        self.warnings: list[str] = []

    def validate(self, text: str, path: Optional[str] = None, locale: Optional[str] = None) -> RawLocaleCatalog:
        """
        Validate PO text.

        Args:
            text: PO file content
            path: File the text came from, used in error messages
            locale: Locale tag; defaults to the Language header, then the file stem

        Returns:
            RawLocaleCatalog with every entry, obsolete ones included

        Raises:
            ParseError: On the first syntax or consistency problem
        """
        try:
            header, entries = self.handler.decode(text)
        except ParseError as e:
            raise e.with_path(path) from None

        seen: dict[StringKey, int] = {}
        for entry in entries:
            if entry.obsolete:
                continue
            if entry.key in seen:
                raise ParseError(
                    f"Duplicate entry (first defined at line {seen[entry.key]})",
                    line=entry.line,
                    token=entry.key.lookup_id.replace("\x04", "|")[:40],
                    path=path,
                )
            seen[entry.key] = entry.line

        charset = header.charset
        if charset is not None and charset.lower() not in ACCEPTED_CHARSETS:
            content_type = header.get_field("Content-Type")
            raise ParseError(
                f"Unsupported charset {charset!r}, catalogs must be UTF-8",
                line=content_type.line if content_type else header.line,
                token=charset,
                path=path,
            )

        has_plurals = any(e.key.is_plural for e in entries if not e.obsolete)
        plural_field = header.get_field("Plural-Forms")
        if plural_field is not None:
            try:
                rule = PluralRule.parse(plural_field.value)
            except ValueError as e:
                raise ParseError(str(e), line=plural_field.line, token=plural_field.value[:40], path=path) from None
            self._check_slots(rule, entries, path)
        elif has_plurals:
            first = next(e for e in entries if e.key.is_plural and not e.obsolete)
            raise ParseError(
                f"Plural entry at line {first.line} but the header has no Plural-Forms rule",
                line=header.line or 1,
                token="Plural-Forms",
                path=path,
            )

        self._check_placeholders(entries, path)

        if locale is None:
            locale = header.language or (Path(path).stem if path else "und")
        logger.debug(f"Validated catalog '{locale}' ({len(seen)} entries) from {path or '<text>'}")
        return RawLocaleCatalog(locale=locale, header=header, entries=entries, path=path)

    @staticmethod
    def _check_slots(rule: PluralRule, entries: list, path: Optional[str]) -> None:
        for entry in entries:
            if entry.obsolete or not entry.key.is_plural:
                continue
            if len(entry.translations) > rule.nplurals:
                raise ParseError(
                    f"Entry has {len(entry.translations)} plural forms but nplurals={rule.nplurals}",
                    line=entry.line,
                    token=f"msgstr[{len(entry.translations) - 1}]",
                    path=path,
                )

    def _check_placeholders(self, entries: list, path: Optional[str]) -> None:
        for entry in entries:
            if entry.obsolete or not entry.is_translated:
                continue
            if entry.key.is_plural:
                # a form may drop the count placeholder, so compare the whole set
                source = f"{entry.key.singular} {entry.key.plural}"
                missing = self.handler.validate_placeholders(source, " ".join(entry.translations))
            else:
                missing = self.handler.validate_placeholders(entry.key.singular, entry.translations[0])
            for message in missing:
                warning = f"{path or '<catalog>'}:{entry.line}: {message}"
                self.warnings.append(warning)
                logger.warning(warning)
