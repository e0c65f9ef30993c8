#!/usr/bin/env python3
"""
Template catalog construction and POT output.

TemplateBuilder folds scanner occurrences into a TemplateCatalog, one entry
per StringKey in first-occurrence order. write_pot() renders the catalog as
a gettext template that translators start their PO files from.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from .format_handlers.po import PoHandler
from .models import (
    CatalogHeader,
    HeaderField,
    Occurrence,
    SourceLocation,
    StringKey,
    TemplateCatalog,
    TemplateEntry,
    TranslationEntry,
)

logger = logging.getLogger(__name__)

# Header placeholders are kept as xgettext writes them; the normalizer
# fills in YEAR and CHARSET for each locale catalog.
YEAR_PLACEHOLDER = "YEAR"
CHARSET_PLACEHOLDER = "CHARSET"


@dataclass
class PotMetadata:
    """Values written into the header of a POT file."""
    title: str = "SOME DESCRIPTIVE TITLE."
    copyright_holder: str = "THE PACKAGE'S COPYRIGHT HOLDER"
    package_name: str = "PACKAGE"
    package_version: str = "VERSION"
    bug_address: str = ""
    # extra entry translating the project description, as a manifest would show it
    description: Optional[str] = None


class TemplateBuilder:
    """Accumulates occurrences into a deduplicated TemplateCatalog."""

    def __init__(self):
        self.catalog = TemplateCatalog()

    def add(self, occurrence: Occurrence) -> None:
        entry = self.catalog.get(occurrence.key)
        if entry is None:
            entry = TemplateEntry(key=occurrence.key)
            self.catalog.add(entry)
        elif occurrence.key.is_plural and entry.key.plural != occurrence.key.plural:
            if entry.key.is_plural:
                logger.warning(
                    f"{occurrence.location}: plural {occurrence.key.plural!r} for {occurrence.key.singular!r} "
                    f"conflicts with {entry.key.plural!r}, keeping the first"
                )
            else:
                self.catalog.replace_key(occurrence.key)

        entry.occurrences.append(occurrence)
        if occurrence.comment and occurrence.comment not in entry.comments:
            entry.comments.append(occurrence.comment)

    def add_all(self, occurrences: Iterable[Occurrence]) -> TemplateCatalog:
        for occurrence in occurrences:
            self.add(occurrence)
        return self.catalog

    @classmethod
    def build(cls, occurrences: Iterable[Occurrence]) -> TemplateCatalog:
        """Fold occurrences into a new TemplateCatalog."""
        catalog = cls().add_all(occurrences)
        logger.info(f"Template has {len(catalog)} unique strings")
        return catalog


def _pot_header(metadata: PotMetadata, has_plurals: bool) -> CatalogHeader:
    fields = [
        ("Project-Id-Version", f"{metadata.package_name} {metadata.package_version}"),
        ("Report-Msgid-Bugs-To", metadata.bug_address),
        ("PO-Revision-Date", "YEAR-MO-DA HO:MI+ZONE"),
        ("Last-Translator", "FULL NAME <EMAIL@ADDRESS>"),
        ("Language-Team", "LANGUAGE <LL@li.org>"),
        ("Language", ""),
        ("MIME-Version", "1.0"),
        ("Content-Type", f"text/plain; charset={CHARSET_PLACEHOLDER}"),
        ("Content-Transfer-Encoding", "8bit"),
    ]
    if has_plurals:
        fields.append(("Plural-Forms", "nplurals=INTEGER; plural=EXPRESSION;"))
    return CatalogHeader(
        fields=[HeaderField(name, value) for name, value in fields],
        comments=[
            metadata.title,
            f"Copyright (C) {YEAR_PLACEHOLDER} {metadata.copyright_holder}",
            f"This file is distributed under the same license as the {metadata.package_name} package.",
            f"FIRST AUTHOR <EMAIL@ADDRESS>, {YEAR_PLACEHOLDER}.",
            "",
        ],
        flags=["fuzzy"],
    )


def template_entries(
    catalog: TemplateCatalog,
    path_transformer: Optional[Callable[[str], str]] = None,
) -> list[TranslationEntry]:
    """Template entries as untranslated PO entries."""
    entries = []
    for entry in catalog:
        references = []
        for location in entry.locations:
            path = path_transformer(location.path) if path_transformer else location.path
            references.append(f"{path}:{location.line}")
        slots = 2 if entry.key.is_plural else 1
        entries.append(
            TranslationEntry(
                key=entry.key,
                translations=("",) * slots,
                references=tuple(references),
                extracted_comments=tuple(entry.comments),
            )
        )
    return entries


def serialize(
    catalog: TemplateCatalog,
    metadata: Optional[PotMetadata] = None,
    path_transformer: Optional[Callable[[str], str]] = None,
) -> str:
    """
    Render a template catalog as POT text.

    The header carries no creation date, so the same catalog always renders
    to the same text.

    Args:
        catalog: Template catalog to render
        metadata: Header values (xgettext placeholders by default)
        path_transformer: Applied to each reference path, e.g. to make it
            relative to the source root
    """
    metadata = metadata or PotMetadata()
    entries = template_entries(catalog, path_transformer)
    if metadata.description and StringKey("", metadata.description) not in catalog:
        entries.append(
            TranslationEntry(
                key=StringKey("", metadata.description),
                translations=("",),
                extracted_comments=(f"Description of {metadata.package_name}",),
            )
        )
    header = _pot_header(metadata, any(e.key.is_plural for e in entries))
    return PoHandler().serialize(header, entries)


def write_pot(
    catalog: TemplateCatalog,
    path: Union[str, Path],
    metadata: Optional[PotMetadata] = None,
    path_transformer: Optional[Callable[[str], str]] = None,
) -> Path:
    """Write a template catalog to a POT file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize(catalog, metadata, path_transformer), encoding="utf-8")
    logger.info(f"Generated .pot file with {len(catalog)} unique strings: {path}")
    return path


def read_template(text: str) -> TemplateCatalog:
    """
    Rebuild a TemplateCatalog from POT text.

    Reference lines become occurrences (without extraction comments, those
    are kept on the entry).
    """
    _, entries = PoHandler().decode(text)
    catalog = TemplateCatalog()
    for po_entry in entries:
        if po_entry.obsolete or po_entry.key in catalog:
            continue
        occurrences = []
        for ref in po_entry.references:
            path, _, line = ref.rpartition(":")
            if path and line.isdigit():
                occurrences.append(Occurrence(po_entry.key, SourceLocation(path, int(line))))
        catalog.add(
            TemplateEntry(
                key=po_entry.key,
                occurrences=occurrences,
                comments=list(po_entry.extracted_comments),
            )
        )
    return catalog
