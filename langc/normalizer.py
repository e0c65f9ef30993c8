#!/usr/bin/env python3
"""
Normalization ("shortening") of locale catalogs.

Removes what a compiled catalog does not need (obsolete and fuzzy entries,
source references, untranslated strings, strings the template no longer
knows) and fills in the YEAR and CHARSET placeholders xgettext leaves in
the header. Normalizing an already normalized catalog changes nothing.
"""

import logging
import re
from dataclasses import replace
from enum import Enum
from typing import Optional

from .errors import ValidationError
from .format_handlers.po import PoHandler
from .models import CatalogHeader, HeaderField, NormalizedLocaleCatalog, RawLocaleCatalog, TemplateCatalog
from .plural import PluralRule
from .template import CHARSET_PLACEHOLDER, YEAR_PLACEHOLDER, PotMetadata

logger = logging.getLogger(__name__)

_YEAR_PATTERN = re.compile(rf"\b{YEAR_PLACEHOLDER}\b")
_CHARSET_PATTERN = re.compile(rf"charset={CHARSET_PLACEHOLDER}\b", re.IGNORECASE)
_EMAIL_PATTERN = re.compile(r" ?<[^@]+@[^>]+>")


class OrphanPolicy(Enum):
    """What to do with entries whose key is not in the template."""
    DROP = "drop"
    FAIL = "fail"
    KEEP = "keep"


class CatalogNormalizer:
    """
    Canonicalizes a RawLocaleCatalog.

    Args:
        keep_fuzzy: Keep fuzzy entries (with their draft text) instead of dropping them
        orphan_policy: Handling of entries missing from the template
    """

    def __init__(self, keep_fuzzy: bool = False, orphan_policy: OrphanPolicy = OrphanPolicy.DROP):
        self.keep_fuzzy = keep_fuzzy
        self.orphan_policy = OrphanPolicy(orphan_policy)

    def normalize(
        self,
        catalog: RawLocaleCatalog,
        template: Optional[TemplateCatalog] = None,
        year: Optional[int] = None,
    ) -> NormalizedLocaleCatalog:
        """
        Normalize one locale catalog.

        Args:
            catalog: Validated catalog
            template: Template of the source set; without one no orphan check
                or reordering happens
            year: Replaces the YEAR placeholder in header comments

        Returns:
            A new NormalizedLocaleCatalog; the input is not modified

        Raises:
            ValidationError: If an orphan is found under OrphanPolicy.FAIL, or
                the Plural-Forms rule does not parse
        """
        nplurals = self._nplurals(catalog)
        kept = []
        dropped = {"obsolete": 0, "fuzzy": 0, "untranslated": 0, "incomplete": 0, "orphan": 0}
        for entry in catalog.entries:
            if entry.obsolete:
                dropped["obsolete"] += 1
                continue
            if entry.fuzzy and not self.keep_fuzzy:
                dropped["fuzzy"] += 1
                continue
            if not entry.is_translated:
                dropped["untranslated"] += 1
                continue
            if not entry.is_complete or (entry.key.is_plural and len(entry.translations) < nplurals):
                # lookup falls back to the base locale instead of showing a blank form
                dropped["incomplete"] += 1
                continue
            if template is not None and entry.key not in template:
                if self.orphan_policy is OrphanPolicy.FAIL:
                    raise ValidationError(
                        f"Entry {entry.key.singular[:40]!r} (line {entry.line}) is not in the template",
                        locale=catalog.locale,
                    )
                if self.orphan_policy is OrphanPolicy.DROP:
                    dropped["orphan"] += 1
                    continue
            kept.append(replace(entry, references=()))

        if template is not None:
            order = template.index_of()
            tail = len(order)
            kept.sort(key=lambda e: order.get(e.key, tail))

        for reason, count in dropped.items():
            if count:
                logger.debug(f"[{catalog.locale}] dropped {count} {reason} entries")
        logger.info(f"[{catalog.locale}] normalized: {len(kept)} of {len(catalog.entries)} entries kept")

        return NormalizedLocaleCatalog(
            locale=catalog.locale,
            header=self.normalize_header(catalog.header, year),
            entries=kept,
            path=catalog.path,
        )

    @staticmethod
    def _nplurals(catalog: RawLocaleCatalog) -> int:
        plural_forms = catalog.header.plural_forms
        if not plural_forms:
            return PluralRule.default().nplurals
        try:
            return PluralRule.parse(plural_forms).nplurals
        except ValueError as e:
            raise ValidationError(str(e), locale=catalog.locale) from None

    @staticmethod
    def normalize_header(header: CatalogHeader, year: Optional[int] = None) -> CatalogHeader:
        """Fill in the YEAR and CHARSET placeholders."""
        comments = list(header.comments)
        if year is not None:
            comments = [_YEAR_PATTERN.sub(str(year), c) for c in comments]
        fields = [
            HeaderField(f.name, _CHARSET_PATTERN.sub("charset=UTF-8", f.value), f.line)
            if f.name.lower() == "content-type" else HeaderField(f.name, f.value, f.line)
            for f in header.fields
        ]
        return CatalogHeader(fields=fields, comments=comments, flags=list(header.flags), line=header.line)


def anonymize_header(header: CatalogHeader, metadata: PotMetadata) -> CatalogHeader:
    """
    Header cleanup applied when rewriting PO files for a repository.

    Replaces the remaining xgettext placeholders of the title, copyright
    holder and package name, strips e-mail addresses from the comments and
    removes the Last-Translator field and the header's fuzzy flag.
    """
    comments = []
    for comment in header.comments:
        comment = comment.replace("SOME DESCRIPTIVE TITLE.", metadata.title)
        comment = comment.replace("THE PACKAGE'S COPYRIGHT HOLDER", metadata.copyright_holder)
        comment = comment.replace("PACKAGE package", f"{metadata.package_name} package")
        comments.append(_EMAIL_PATTERN.sub("", comment).rstrip())
    return CatalogHeader(
        fields=[f for f in header.fields if f.name.lower() != "last-translator"],
        comments=comments,
        flags=[f for f in header.flags if f != "fuzzy"],
        line=header.line,
    )


def shorten_text(
    catalog: NormalizedLocaleCatalog,
    metadata: Optional[PotMetadata] = None,
) -> str:
    """Serialize a normalized catalog back to (shortened) PO text."""
    header = catalog.header
    if metadata is not None:
        header = anonymize_header(header, metadata)
    if not (header.line or header.fields or header.comments):
        header = None
    return PoHandler().serialize(header, catalog.entries)
