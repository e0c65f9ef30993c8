#!/usr/bin/env python3
"""
Extraction of translatable strings from source code.

The scanner tokenizes C-family (Java, Kotlin, JavaScript, C/C++) and Python
sources and recognizes invocations of a fixed set of marker functions:

    tr("Save")                          singular
    marktr("Save")                      singular, not translated at runtime
    trc("menu", "Open")                 context, singular
    marktrc("menu", "Open")             context, singular
    trn("{0} file", "{0} files", n)     singular, plural, count
    trnc("disk", "{0} file", "{0} files", n)

Every literal argument must be a string literal, or several string literals
joined by adjacency or `+`. Invocations that break this rule are reported
as ExtractionWarning and skipped; scanning continues.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from .errors import ExtractionWarning
from .models import Occurrence, SourceLocation, StringKey

logger = logging.getLogger(__name__)

ROLE_CONTEXT = "context"
ROLE_SINGULAR = "singular"
ROLE_PLURAL = "plural"
ROLE_COUNT = "count"


@dataclass(frozen=True)
class MarkerSignature:
    """Argument roles of one marker function, in call order."""
    name: str
    roles: tuple[str, ...]

    @property
    def literal_roles(self) -> tuple[str, ...]:
        return tuple(r for r in self.roles if r != ROLE_COUNT)


MARKERS = {
    m.name: m
    for m in (
        MarkerSignature("tr", (ROLE_SINGULAR,)),
        MarkerSignature("marktr", (ROLE_SINGULAR,)),
        MarkerSignature("trc", (ROLE_CONTEXT, ROLE_SINGULAR)),
        MarkerSignature("marktrc", (ROLE_CONTEXT, ROLE_SINGULAR)),
        MarkerSignature("trn", (ROLE_SINGULAR, ROLE_PLURAL, ROLE_COUNT)),
        MarkerSignature("trnc", (ROLE_CONTEXT, ROLE_SINGULAR, ROLE_PLURAL, ROLE_COUNT)),
    )
}

# File suffixes scanned when walking a directory
SOURCE_SUFFIXES = (".java", ".kt", ".kts", ".groovy", ".scala", ".js", ".ts", ".c", ".cc", ".cpp", ".h", ".py")

# Suffixes whose line comments start with '#' instead of '//'
HASH_COMMENT_SUFFIXES = (".py",)

# Directories to exclude from extraction
EXCLUDED_DIRS = {
    "__pycache__",
    ".git",
    ".gradle",
    ".idea",
    ".pytest_cache",
    "build",
    "node_modules",
    "venv",
    ".venv",
}

# An identifier right before a marker name normally means a declaration
# (`String tr(`, `def tr(`), except for these keywords
_EXPRESSION_KEYWORDS = {
    "return", "yield", "await", "throw", "raise", "case", "else", "do",
    "in", "not", "and", "or", "is", "if", "elif", "while", "assert", "lambda", "print",
}

_C_TOKENS = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<comment>//[^\n]*|/\*.*?(?:\*/|\Z))
    |(?P<string>"(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*')
    |(?P<badstring>["'][^\n]*)
    |(?P<ident>[A-Za-z_$][\w$]*)
    |(?P<number>\d[\w.]*)
    |(?P<punct>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_PY_TOKENS = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<comment>\#[^\n]*)
    |(?P<string>[rRuU]?(?:\"\"\"(?:\\.|[^\\])*?\"\"\"|'''(?:\\.|[^\\])*?'''|"(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*'))
    |(?P<badstring>[rRuU]?["'][^\n]*)
    |(?P<ident>[A-Za-z_][\w]*)
    |(?P<number>\d[\w.]*)
    |(?P<punct>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_LITERAL_ESCAPE = re.compile(r"\\(?:u([0-9a-fA-F]{4})|([0-7]{1,3})|(.))", re.DOTALL)
_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "'": "'", "\\": "\\"}


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    line: int
    end_line: int


def tokenize(text: str, python: bool = False) -> Iterator[Token]:
    """Split source text into tokens, dropping whitespace."""
    pattern = _PY_TOKENS if python else _C_TOKENS
    line = 1
    pos = 0
    while pos < len(text):
        match = pattern.match(text, pos)
        kind = match.lastgroup
        value = match.group(kind)
        end_line = line + value.count("\n")
        if kind != "ws":
            yield Token(kind, value, line, end_line)
        line = end_line
        pos = match.end()


def literal_value(token_text: str) -> str:
    """Value of a string literal token, with common escapes resolved."""
    raw = False
    if token_text[0] in "rRuU":
        raw = token_text[0] in "rR"
        token_text = token_text[1:]
    quote = token_text[:3] if token_text[:3] in ('"""', "'''") else token_text[0]
    body = token_text[len(quote):-len(quote)]
    if raw:
        return body

    def replace(match: re.Match) -> str:
        unicode, octal, char = match.groups()
        if unicode:
            return chr(int(unicode, 16))
        if octal:
            return chr(int(octal, 8))
        return _SIMPLE_ESCAPES.get(char, "\\" + char)

    return _LITERAL_ESCAPE.sub(replace, body)


def join_surrogates(text: str) -> str:
    """
    Combine the UTF-16 surrogate pairs that `\\uXXXX` escapes leave behind.

    Raises:
        UnicodeDecodeError: If a surrogate has no partner
    """
    if not any("\ud800" <= c <= "\udfff" for c in text):
        return text
    return text.encode("utf-16", "surrogatepass").decode("utf-16")


def comment_text(token_text: str) -> str:
    """Comment token without its delimiters."""
    if token_text.startswith("/*"):
        body = token_text[2:]
        if body.endswith("*/"):
            body = body[:-2]
        lines = [ln.strip().lstrip("*").strip() for ln in body.split("\n")]
        return " ".join(ln for ln in lines if ln)
    if token_text.startswith("//"):
        return token_text[2:].strip()
    return token_text[1:].strip()


class _MalformedCall(Exception):
    pass


class StringScanner:
    """
    Scans source files for marker invocations.

    Warnings about malformed invocations are logged and collected in
    `warnings`; they never stop the scan.
    """

    def __init__(self, markers: Optional[dict[str, MarkerSignature]] = None):
        self.markers = markers or MARKERS
        self.warnings: list[ExtractionWarning] = []

    def scan(self, paths: Iterable[Union[str, Path]]) -> Iterator[Occurrence]:
        """
        Yield occurrences from each file in order.

        Files are read lazily, one at a time, as the iterator advances.
        """
        for path in paths:
            path = Path(path)
            text = path.read_text(encoding="utf-8")
            count = 0
            for occurrence in self.scan_text(text, str(path), python=path.suffix in HASH_COMMENT_SUFFIXES):
                count += 1
                yield occurrence
            logger.debug(f"Extracted {count} strings from {path}")

    def scan_text(self, text: str, path: str = "<text>", python: bool = False) -> Iterator[Occurrence]:
        """Yield occurrences found in one source text."""
        tokens = list(tokenize(text, python=python))
        last_comment: Optional[Token] = None
        previous: Optional[Token] = None
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if token.kind == "comment":
                last_comment = token
                i += 1
                continue

            signature = self.markers.get(token.text) if token.kind == "ident" else None
            if (
                signature is None
                or self._is_declaration(previous)
                or i + 1 >= len(tokens)
                or tokens[i + 1].text != "("
            ):
                previous = token
                i += 1
                continue

            comment = None
            if last_comment is not None and token.line - 1 <= last_comment.end_line <= token.line:
                comment = comment_text(last_comment.text)

            try:
                args, end = self._read_arguments(tokens, i + 1)
                key = self._build_key(signature, args)
            except _MalformedCall as e:
                self._warn(path, token.line, signature.name, str(e))
                previous = token
                i += 1
                continue

            yield Occurrence(key, SourceLocation(path, token.line), comment or None)
            previous = tokens[end]
            i = end + 1

    @staticmethod
    def _is_declaration(previous: Optional[Token]) -> bool:
        return (
            previous is not None
            and previous.kind == "ident"
            and previous.text not in _EXPRESSION_KEYWORDS
        )

    @staticmethod
    def _read_arguments(tokens: list[Token], open_index: int) -> tuple[list[list[Token]], int]:
        """Split the tokens of a call into top-level arguments."""
        args: list[list[Token]] = [[]]
        depth = 0
        for j in range(open_index + 1, len(tokens)):
            token = tokens[j]
            if token.kind == "comment":
                continue
            if token.kind == "badstring":
                raise _MalformedCall("unterminated string literal")
            if token.kind == "punct" and token.text in "([{":
                depth += 1
            elif token.kind == "punct" and token.text in ")]}":
                if depth == 0:
                    if args == [[]]:
                        return [], j
                    return args, j
                depth -= 1
            elif token.kind == "punct" and token.text == "," and depth == 0:
                args.append([])
                continue
            args[-1].append(token)
        raise _MalformedCall("unterminated call")

    def _build_key(self, signature: MarkerSignature, args: list[list[Token]]) -> StringKey:
        if len(args) < len(signature.roles):
            raise _MalformedCall(f"expected {len(signature.roles)} arguments, got {len(args)}")
        values = {}
        for position, (role, arg) in enumerate(zip(signature.roles, args), 1):
            if role == ROLE_COUNT:
                if not arg:
                    raise _MalformedCall(f"argument {position} ({role}) is empty")
                continue
            value = self._literal(arg)
            if value is None:
                raise _MalformedCall(f"argument {position} ({role}) is not a string literal")
            values[role] = value
        return StringKey(values.get(ROLE_CONTEXT, ""), values[ROLE_SINGULAR], values.get(ROLE_PLURAL))

    @staticmethod
    def _literal(arg: list[Token]) -> Optional[str]:
        """Concatenated value of `"a" "b"` or `"a" + "b"`, else None."""
        parts = []
        expect_string = True
        for token in arg:
            if token.kind == "string":
                parts.append(literal_value(token.text))
                expect_string = False
            elif token.text == "+" and not expect_string:
                expect_string = True
            else:
                return None
        if not parts or expect_string:
            return None
        try:
            return join_surrogates("".join(parts))
        except UnicodeDecodeError:
            raise _MalformedCall("unpaired surrogate in string literal") from None

    def _warn(self, path: str, line: int, marker: str, message: str) -> None:
        warning = ExtractionWarning(path, line, marker, message)
        self.warnings.append(warning)
        logger.warning(f"Skipping invocation at {warning}")


def collect_source_files(
    root: Union[str, Path],
    suffixes: Iterable[str] = SOURCE_SUFFIXES,
    exclude_dirs: Optional[set[str]] = None,
) -> list[Path]:
    """
    Recursively list source files below root in sorted order.

    Args:
        root: Directory to walk (a single file is returned as is)
        suffixes: File suffixes to include
        exclude_dirs: Directory names to skip (defaults to EXCLUDED_DIRS)
    """
    root = Path(root)
    if root.is_file():
        return [root]
    if exclude_dirs is None:
        exclude_dirs = EXCLUDED_DIRS
    suffixes = tuple(suffixes)
    files = [
        path
        for path in root.rglob("*")
        if path.is_file()
        and path.suffix in suffixes
        and not any(part in exclude_dirs for part in path.relative_to(root).parts[:-1])
    ]
    return sorted(files, key=lambda p: p.relative_to(root).as_posix())
