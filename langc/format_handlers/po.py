#!/usr/bin/env python3
"""
GNU gettext PO/POT format handler.

Tokenizes .po and .pot files into blocks with line numbers, decodes them
into the catalog model and writes catalogs back out, wrapping long strings
at ~76 characters the way msgmerge does.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import ParseError
from ..models import CatalogHeader, HeaderField, StringKey, TranslationEntry
from .base import CatalogFormat, PlaceholderPattern, PLACEHOLDER_PATTERNS

_KEYWORD_PATTERN = re.compile(r'^(msgctxt|msgid_plural|msgid|msgstr)(?:\[(\d+)\])?(?=\s|")\s*(.*)$')
_ESCAPE_PATTERN = re.compile(r'\\(?:([0-7]{1,3})|x([0-9a-fA-F]{1,4})|(.))', re.DOTALL)
_ESCAPE_ATOM = re.compile(r'\\.|.', re.DOTALL)

_UNESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    'a': '\a',
    'b': '\b',
    'f': '\f',
    'v': '\v',
}

# backslash first to avoid double escaping
_ESCAPES = [
    ('\\', '\\\\'),
    ('\r', '\\r'),
    ('\t', '\\t'),
    ('\n', '\\n'),
    ('\a', '\\a'),
    ('\b', '\\b'),
    ('\f', '\\f'),
    ('\v', '\\v'),
    ('"', '\\"'),
]


@dataclass
class PoBlock:
    """
    One entry of a PO file exactly as written, before interpretation.

    `segments` keeps the (line, text) pieces of every string keyword so
    callers can map positions inside a value back to file lines.
    """
    translator_comments: list[str] = field(default_factory=list)
    extracted_comments: list[str] = field(default_factory=list)
    references: list[str] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)
    msgctxt: Optional[str] = None
    msgid: Optional[str] = None
    msgid_plural: Optional[str] = None
    msgstr: Optional[str] = None
    msgstr_plural: dict[int, str] = field(default_factory=dict)
    obsolete: bool = False
    line: int = 0
    segments: dict[str, list[tuple[int, str]]] = field(default_factory=dict)

    @property
    def is_header(self) -> bool:
        return self.msgid == "" and self.msgctxt is None and not self.obsolete

    @property
    def has_msgstr(self) -> bool:
        return self.msgstr is not None or bool(self.msgstr_plural)


def unescape(s: str) -> str:
    """
    Resolve the C-style escapes of a PO string.

    Raises:
        ValueError: If an escape names a UTF-16 surrogate, which has no UTF-8 form
    """
    def replace(match: re.Match) -> str:
        octal, hexa, char = match.groups()
        if octal:
            return chr(int(octal, 8))
        if hexa:
            value = int(hexa, 16)
            if 0xD800 <= value <= 0xDFFF:
                raise ValueError(f"Escape \\x{hexa} is a UTF-16 surrogate")
            return chr(value)
        return _UNESCAPES.get(char, char)
    return _ESCAPE_PATTERN.sub(replace, s)


def escape(s: str) -> str:
    """Escape a string for PO output."""
    for raw, escaped in _ESCAPES:
        s = s.replace(raw, escaped)
    return s


class PoHandler(CatalogFormat):
    """
    Handler for GNU gettext PO/POT files.

    PO format structure:
    ```
    # Translator comment
    #. Extracted comment
    #: file.java:42
    #, fuzzy
    msgctxt "context"
    msgid "Source text"
    msgstr "Translated text"

    # Plural form
    msgid "One item"
    msgid_plural "{0} items"
    msgstr[0] "Ein Element"
    msgstr[1] "{0} Elemente"

    #~ msgid "Removed string"
    #~ msgstr "Entfernte Zeichenkette"
    ```
    """

    WRAP_WIDTH = 76

    @property
    def name(self) -> str:
        return "po"

    @property
    def file_extensions(self) -> list[str]:
        return ["po", "pot"]

    @property
    def placeholder_patterns(self) -> list[PlaceholderPattern]:
        """Catalogs extracted from Java use MessageFormat, others printf."""
        return [
            PLACEHOLDER_PATTERNS['message_format'],  # {0}
            PLACEHOLDER_PATTERNS['printf'],          # %s, %d
            PLACEHOLDER_PATTERNS['printf_named'],    # %(name)s
        ]

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def parse(self, content: str) -> list[PoBlock]:
        """
        Tokenize PO content into blocks.

        Args:
            content: Raw PO file content

        Returns:
            List of PoBlock objects in file order

        Raises:
            ParseError: On unterminated strings, misplaced keywords or lines
                that are neither comments, keywords nor string continuations
        """
        blocks: list[PoBlock] = []
        current = PoBlock()
        keyword: Optional[str] = None

        def finish() -> None:
            nonlocal current, keyword
            if current.msgid is not None:
                self._check_block(current)
                blocks.append(current)
            current = PoBlock()
            keyword = None

        for line_no, raw_line in enumerate(content.split('\n'), 1):
            line = raw_line.rstrip('\r').strip()
            obsolete = False

            if line.startswith('#~'):
                obsolete = True
                line = line[2:].strip()
                if line.startswith('|'):
                    continue  # previous msgid of an obsolete entry

            if not line:
                if not obsolete:
                    finish()
                continue

            if line.startswith('#'):
                if current.has_msgstr:
                    finish()
                self._read_comment(current, line)
                continue

            if obsolete and current.msgid is None:
                current.obsolete = True

            if line.startswith('"'):
                if keyword is None:
                    raise ParseError("String continuation without keyword", line=line_no, token=line[:40])
                self._append(current, keyword, self._read_quoted(line, line_no), line_no)
                continue

            match = _KEYWORD_PATTERN.match(line)
            if not match:
                raise ParseError("Unexpected token", line=line_no, token=line.split()[0][:40])

            name, index, rest = match.groups()
            value = self._read_quoted(rest, line_no)

            if name in ('msgctxt', 'msgid') and current.has_msgstr:
                # entries are not always separated by blank lines
                finish()
                current.obsolete = obsolete

            if name == 'msgctxt':
                if current.msgctxt is not None or current.msgid is not None:
                    raise ParseError("msgctxt must precede msgid", line=line_no, token=name)
                keyword = 'msgctxt'
            elif name == 'msgid':
                if index is not None:
                    raise ParseError("msgid cannot be indexed", line=line_no, token=f"msgid[{index}]")
                if current.msgid is not None:
                    raise ParseError("msgid without msgstr", line=current.line, token='msgid')
                current.line = line_no
                keyword = 'msgid'
            elif name == 'msgid_plural':
                if current.msgid is None or current.msgid_plural is not None or current.has_msgstr:
                    raise ParseError("msgid_plural must follow msgid", line=line_no, token=name)
                keyword = 'msgid_plural'
            else:
                if current.msgid is None:
                    raise ParseError("msgstr without msgid", line=line_no, token=name)
                if index is None:
                    if current.msgstr is not None or current.msgstr_plural:
                        raise ParseError("Duplicate msgstr", line=line_no, token=name)
                    keyword = 'msgstr'
                else:
                    idx = int(index)
                    if idx in current.msgstr_plural:
                        raise ParseError("Duplicate plural translation", line=line_no, token=f"msgstr[{idx}]")
                    if current.msgstr is not None:
                        raise ParseError("Mixed msgstr and msgstr[N]", line=line_no, token=f"msgstr[{idx}]")
                    keyword = f'msgstr[{idx}]'

            self._set(current, keyword, value, line_no)

        finish()
        return blocks

    def _read_comment(self, block: PoBlock, line: str) -> None:
        if line.startswith('#.'):
            block.extracted_comments.append(line[2:].strip())
        elif line.startswith('#:'):
            block.references.extend(line[2:].split())
        elif line.startswith('#,'):
            block.flags.extend(f.strip() for f in line[2:].split(',') if f.strip())
        elif line.startswith('#|'):
            pass  # previous msgid, only useful to translators
        else:
            text = line[1:]
            block.translator_comments.append(text[1:] if text.startswith(' ') else text)

    def _read_quoted(self, text: str, line_no: int) -> str:
        """Return the unescaped value of one quoted string literal."""
        if not text.startswith('"'):
            raise ParseError("Expected string literal", line=line_no, token=text[:40])
        i = 1
        while i < len(text):
            char = text[i]
            if char == '\\':
                i += 2
                continue
            if char == '"':
                trailing = text[i + 1:].strip()
                if trailing:
                    raise ParseError("Unexpected text after string literal", line=line_no, token=trailing[:40])
                try:
                    return unescape(text[1:i])
                except ValueError as e:
                    raise ParseError(str(e), line=line_no, token=text[:40]) from None
            i += 1
        raise ParseError("Unterminated string literal", line=line_no, token=text[:40])

    def _set(self, block: PoBlock, keyword: str, value: str, line_no: int) -> None:
        block.segments[keyword] = [(line_no, value)]
        if keyword == 'msgctxt':
            block.msgctxt = value
        elif keyword == 'msgid':
            block.msgid = value
        elif keyword == 'msgid_plural':
            block.msgid_plural = value
        elif keyword == 'msgstr':
            block.msgstr = value
        else:
            block.msgstr_plural[int(keyword[7:-1])] = value

    def _append(self, block: PoBlock, keyword: str, value: str, line_no: int) -> None:
        block.segments[keyword].append((line_no, value))
        if keyword == 'msgctxt':
            block.msgctxt += value
        elif keyword == 'msgid':
            block.msgid += value
        elif keyword == 'msgid_plural':
            block.msgid_plural += value
        elif keyword == 'msgstr':
            block.msgstr += value
        else:
            block.msgstr_plural[int(keyword[7:-1])] += value

    def _check_block(self, block: PoBlock) -> None:
        if not block.has_msgstr:
            raise ParseError("Missing msgstr", line=block.line, token='msgid')
        if block.msgid_plural is None:
            if block.msgstr is None:
                raise ParseError("msgstr[N] used without msgid_plural", line=block.line, token='msgstr[0]')
            return
        if block.msgstr is not None:
            raise ParseError("Plural entry needs msgstr[N] lines", line=block.line, token='msgstr')
        for expected, found in enumerate(sorted(block.msgstr_plural)):
            if expected != found:
                raise ParseError(
                    f"Missing msgstr[{expected}] (found indices {sorted(block.msgstr_plural)})",
                    line=block.line,
                    token=f"msgstr[{found}]",
                )

    def decode(self, content: str) -> tuple[CatalogHeader, list[TranslationEntry]]:
        """
        Decode PO content into a header and translation entries.

        Returns:
            Tuple of (header, entries); the header is empty when the file has none
        """
        header = CatalogHeader()
        entries: list[TranslationEntry] = []
        for block in self.parse(content):
            if block.is_header and not header.line:
                header = self._make_header(block)
                continue
            entries.append(self._make_entry(block))
        return header, entries

    def _make_header(self, block: PoBlock) -> CatalogHeader:
        header = CatalogHeader(
            comments=list(block.translator_comments),
            flags=list(block.flags),
            line=block.line,
        )
        # map offsets inside the msgstr back to the line they came from
        starts: list[tuple[int, int]] = []
        offset = 0
        for line_no, piece in block.segments.get('msgstr', []):
            starts.append((offset, line_no))
            offset += len(piece)

        offset = 0
        for text in (block.msgstr or '').split('\n'):
            line_no = block.line
            for start, segment_line in starts:
                if start <= offset:
                    line_no = segment_line
            name, sep, value = text.partition(':')
            if sep and name.strip():
                header.fields.append(HeaderField(name.strip(), value.strip(), line_no))
            offset += len(text) + 1
        return header

    def _make_entry(self, block: PoBlock) -> TranslationEntry:
        if block.msgid_plural is None:
            translations: tuple[str, ...] = (block.msgstr or '',)
        else:
            translations = tuple(block.msgstr_plural[i] for i in sorted(block.msgstr_plural))
        return TranslationEntry(
            key=StringKey(block.msgctxt or '', block.msgid or '', block.msgid_plural),
            translations=translations,
            fuzzy='fuzzy' in block.flags,
            obsolete=block.obsolete,
            references=tuple(block.references),
            extracted_comments=tuple(block.extracted_comments),
            translator_comments=tuple(block.translator_comments),
            line=block.line,
        )

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _format_po_string(self, prefix: str, s: str, wrap_width: Optional[int] = None) -> list[str]:
        """
        Format a string for PO output, wrapping long strings at ~76 characters.

        Args:
            prefix: The PO prefix (e.g., 'msgid', 'msgstr', 'msgstr[0]')
            s: The string to format
            wrap_width: Maximum line width for wrapping

        Returns:
            List of formatted lines
        """
        wrap_width = wrap_width or self.WRAP_WIDTH
        s = s or ""
        single_line = f'{prefix} "{escape(s)}"'
        if len(single_line) <= wrap_width and '\n' not in s[:-1]:
            return [single_line]

        # msgid ""
        # "first part "
        # "second part"
        lines = [f'{prefix} ""']
        max_chunk = wrap_width - 2
        for segment in s.splitlines(keepends=True):
            atoms = _ESCAPE_ATOM.findall(escape(segment))
            while atoms:
                if sum(len(a) for a in atoms) <= max_chunk:
                    lines.append(f'"{"".join(atoms)}"')
                    break
                # break after the last space that fits, else hard break
                width = 0
                cut = 0
                last_space = 0
                for i, atom in enumerate(atoms):
                    if width + len(atom) > max_chunk:
                        break
                    width += len(atom)
                    cut = i + 1
                    if atom == ' ':
                        last_space = i + 1
                if last_space > 0:
                    cut = last_space
                lines.append(f'"{"".join(atoms[:cut])}"')
                atoms = atoms[cut:]
        return lines

    def format_header(self, header: CatalogHeader) -> list[str]:
        lines = [f'# {c}' if c else '#' for c in header.comments]
        if header.flags:
            lines.append(f'#, {", ".join(header.flags)}')
        lines.append('msgid ""')
        lines.append('msgstr ""')
        for header_field in header.fields:
            lines.append(f'"{escape(f"{header_field.name}: {header_field.value}")}\\n"')
        return lines

    def format_entry(self, entry: TranslationEntry) -> list[str]:
        lines = []
        for comment in entry.translator_comments:
            lines.append(f'# {comment}' if comment else '#')
        for comment in entry.extracted_comments:
            lines.append(f'#. {comment}')
        for ref in entry.references:
            lines.append(f'#: {ref}')
        if entry.fuzzy:
            lines.append('#, fuzzy')

        body = []
        key = entry.key
        if key.context:
            body.extend(self._format_po_string('msgctxt', key.context))
        body.extend(self._format_po_string('msgid', key.singular))
        if key.is_plural:
            body.extend(self._format_po_string('msgid_plural', key.plural))
            for idx, text in enumerate(entry.translations):
                body.extend(self._format_po_string(f'msgstr[{idx}]', text))
        else:
            body.extend(self._format_po_string('msgstr', entry.translations[0] if entry.translations else ''))

        if entry.obsolete:
            body = [f'#~ {line}' for line in body]
        return lines + body

    def serialize(self, header: Optional[CatalogHeader], entries: list[TranslationEntry]) -> str:
        """
        Write a header and entries as PO text.

        Output is a pure function of the arguments, so equal catalogs always
        produce identical files.
        """
        chunks = []
        if header is not None:
            chunks.append('\n'.join(self.format_header(header)))
        for entry in entries:
            chunks.append('\n'.join(self.format_entry(entry)))
        return '\n\n'.join(chunks) + '\n'

    def summarize(self, data: bytes) -> dict[str, Any]:
        header, entries = self.decode(data.decode('utf-8'))
        live = [e for e in entries if not e.obsolete]
        return {
            'format': self.name,
            'language': header.language,
            'plural_forms': header.plural_forms,
            'entries': len(live),
            'translated': sum(1 for e in live if e.is_translated),
            'fuzzy': sum(1 for e in live if e.fuzzy),
            'plural': sum(1 for e in live if e.key.is_plural),
            'obsolete': len(entries) - len(live),
        }
