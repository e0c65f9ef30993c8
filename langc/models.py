#!/usr/bin/env python3
"""
Data model shared by every stage of the catalog pipeline.

StringKey identifies a translatable unit. Occurrences are folded into a
TemplateCatalog, translations live in RawLocaleCatalog /
NormalizedLocaleCatalog, and the binary stages turn those into bytes.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional

# gettext separates msgctxt from msgid with EOT in compiled catalogs
CONTEXT_SEPARATOR = "\x04"
# separates plural variants inside a compiled key or translation
PLURAL_SEPARATOR = "\x00"


@dataclass(frozen=True, order=True)
class StringKey:
    """
    Identity of a translatable string.

    Attributes:
        context: Disambiguating context, "" when there is none
        singular: The msgid
        plural: The msgid_plural (not part of equality or ordering)
    """
    context: str
    singular: str
    plural: Optional[str] = field(default=None, compare=False)

    @property
    def is_plural(self) -> bool:
        return self.plural is not None

    @property
    def lookup_id(self) -> str:
        """Key string used for hashing and lookup in compiled catalogs."""
        if self.context:
            return f"{self.context}{CONTEXT_SEPARATOR}{self.singular}"
        return self.singular

    @classmethod
    def from_lookup_id(cls, lookup_id: str, plural: Optional[str] = None) -> "StringKey":
        context, sep, singular = lookup_id.partition(CONTEXT_SEPARATOR)
        if not sep:
            return cls("", lookup_id, plural)
        return cls(context, singular, plural)

    def with_plural(self, plural: Optional[str]) -> "StringKey":
        return StringKey(self.context, self.singular, plural)


@dataclass(frozen=True)
class SourceLocation:
    """File path and 1-based line number of an extraction site."""
    path: str
    line: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}"


@dataclass(frozen=True)
class Occurrence:
    """One extraction site of a translatable string."""
    key: StringKey
    location: SourceLocation
    comment: Optional[str] = None


@dataclass
class TemplateEntry:
    """A unique key of the template and every place it was found."""
    key: StringKey
    occurrences: list[Occurrence] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)

    @property
    def locations(self) -> list[SourceLocation]:
        return [o.location for o in self.occurrences]


class TemplateCatalog:
    """
    Ordered, duplicate-free collection of template entries.

    Iteration order is the order in which keys were first added.
    """

    def __init__(self, entries: Optional[list[TemplateEntry]] = None):
        self._entries: dict[StringKey, TemplateEntry] = {}
        for entry in entries or []:
            self.add(entry)

    def add(self, entry: TemplateEntry) -> None:
        if entry.key in self._entries:
            raise ValueError(f"Duplicate template key: {entry.key!r}")
        self._entries[entry.key] = entry

    def get(self, key: StringKey) -> Optional[TemplateEntry]:
        return self._entries.get(key)

    def replace_key(self, key: StringKey) -> None:
        """Swap in an equal key carrying different plural data, keeping position."""
        self._entries[key].key = key
        # dict keys compare equal, so re-insert the new instance in place
        self._entries = {
            (key if k == key else k): v for k, v in self._entries.items()
        }

    @property
    def keys(self) -> list[StringKey]:
        return list(self._entries)

    @property
    def entries(self) -> list[TemplateEntry]:
        return list(self._entries.values())

    def index_of(self) -> dict[StringKey, int]:
        return {key: i for i, key in enumerate(self._entries)}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[TemplateEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class HeaderField:
    """A single `Name: value` line of the catalog header entry."""
    name: str
    value: str
    line: int = 0


@dataclass
class CatalogHeader:
    """
    The header entry of a PO file (the translation of the empty msgid).

    Attributes:
        fields: Header fields in file order
        comments: Header comment lines without the leading "# "
        flags: Flags of the header entry (xgettext marks it fuzzy)
        line: Line number of the header's `msgid ""`, 0 when absent
    """
    fields: list[HeaderField] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)
    line: int = 0

    def get(self, name: str) -> Optional[str]:
        found = self.get_field(name)
        return found.value if found else None

    def get_field(self, name: str) -> Optional[HeaderField]:
        lowered = name.lower()
        for header_field in self.fields:
            if header_field.name.lower() == lowered:
                return header_field
        return None

    @property
    def charset(self) -> Optional[str]:
        content_type = self.get("Content-Type")
        if not content_type:
            return None
        for part in content_type.split(";"):
            name, _, value = part.strip().partition("=")
            if name.lower() == "charset":
                return value.strip()
        return None

    @property
    def plural_forms(self) -> Optional[str]:
        return self.get("Plural-Forms")

    @property
    def revision_date(self) -> Optional[str]:
        return self.get("PO-Revision-Date")

    @property
    def team_address(self) -> Optional[str]:
        return self.get("Language-Team")

    @property
    def language(self) -> Optional[str]:
        return self.get("Language") or None

    def to_text(self) -> str:
        """Header fields as the msgstr text of the empty msgid."""
        return "".join(f"{f.name}: {f.value}\n" for f in self.fields)


@dataclass
class TranslationEntry:
    """
    One translated unit of a locale catalog.

    Attributes:
        key: The string being translated
        translations: One text for singular keys, one per plural slot otherwise
        fuzzy: Translation is an unconfirmed draft
        obsolete: Entry was commented out with `#~`
        references: `#:` source locations
        extracted_comments: `#.` comments
        translator_comments: `# ` comments
        line: Line number of the entry's msgid (0 when synthesized)
    """
    key: StringKey
    translations: tuple[str, ...]
    fuzzy: bool = False
    obsolete: bool = False
    references: tuple[str, ...] = ()
    extracted_comments: tuple[str, ...] = ()
    translator_comments: tuple[str, ...] = ()
    line: int = 0

    @property
    def is_translated(self) -> bool:
        return any(self.translations)

    @property
    def is_complete(self) -> bool:
        return bool(self.translations) and all(self.translations)


@dataclass
class RawLocaleCatalog:
    """Translations of one locale as read from a PO file."""
    locale: str
    header: CatalogHeader = field(default_factory=CatalogHeader)
    entries: list[TranslationEntry] = field(default_factory=list)
    path: Optional[str] = None

    def find(self, key: StringKey) -> Optional[TranslationEntry]:
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None

    @property
    def keys(self) -> list[StringKey]:
        return [e.key for e in self.entries]


@dataclass
class NormalizedLocaleCatalog(RawLocaleCatalog):
    """A locale catalog after normalization, ready for binary encoding."""
