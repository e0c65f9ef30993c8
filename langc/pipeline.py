#!/usr/bin/env python3
"""
The compile pipeline.

    sources ──scan──> occurrences ──fold──> template
                                              │
    per locale (in parallel):                 ▼
      acquire ─> validate ─> normalize ─> encode ─┐
                                                  ├─> pack
      ...                                        ─┘

The template is complete before any locale starts, and the pack is built
only after every locale has finished. A failing locale is reported and left
out; failures of the base locale, of the template or of the pack abort the
whole run with PipelineError.
"""

import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

from .acquisition import FileCatalogSource, LocaleCatalogSource, TextCatalogSource
from .config import PipelineConfig
from .errors import AcquisitionError, ExtractionWarning, LangcError, PipelineError
from .format_handlers.binary_catalog import BinaryCatalog, BinaryCatalogEncoder
from .format_handlers.compact_pack import CompactPack, CompactPackEncoder
from .models import CatalogHeader, HeaderField, NormalizedLocaleCatalog, TemplateCatalog, TranslationEntry
from .normalizer import CatalogNormalizer
from .plural import DEFAULT_PLURAL_FORMS
from .scanner import StringScanner
from .template import TemplateBuilder
from .validator import CatalogValidator

logger = logging.getLogger(__name__)

CATALOG_SUFFIX = ".lcat"
PACK_SUFFIX = ".lpak"

STAGE_ACQUIRE = "acquire"
STAGE_VALIDATE = "validate"
STAGE_NORMALIZE = "normalize"
STAGE_ENCODE = "encode"

CatalogInput = Union[LocaleCatalogSource, Path, str]


@dataclass
class LocaleIssue:
    """A locale left out of the pack and why."""
    locale: str
    stage: str
    error: LangcError

    def to_dict(self) -> dict:
        return {"locale": self.locale, "stage": self.stage, "error": self.error.to_dict()}


@dataclass
class CompileResult:
    """Everything one compile run produced."""
    pack: CompactPack
    catalogs: dict[str, BinaryCatalog]
    template: TemplateCatalog
    issues: list[LocaleIssue] = field(default_factory=list)
    warnings: list[ExtractionWarning] = field(default_factory=list)
    written: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "status": "ok",
            "base_locale": self.pack.base_locale,
            "template_keys": len(self.template),
            "locales": {
                locale: {"entries": len(catalog), "covered": self.pack.coverage(locale)}
                for locale, catalog in self.catalogs.items()
            },
            "issues": [issue.to_dict() for issue in self.issues],
            "warnings": [warning.to_dict() for warning in self.warnings],
            "written": self.written,
        }


@dataclass
class _LocaleOutcome:
    locale: str
    catalog: Optional[BinaryCatalog] = None
    issue: Optional[LocaleIssue] = None


def _as_source(locale: str, value: CatalogInput) -> LocaleCatalogSource:
    """Paths are read from disk, plain strings are PO text."""
    if isinstance(value, LocaleCatalogSource):
        return value
    if isinstance(value, Path):
        return FileCatalogSource(locale, value)
    return TextCatalogSource(locale, value)


def synthesize_catalog(template: TemplateCatalog, locale: str) -> NormalizedLocaleCatalog:
    """A catalog that translates every template key to its own source text."""
    entries = []
    for entry in template:
        key = entry.key
        translations = (key.singular, key.plural) if key.is_plural else (key.singular,)
        entries.append(TranslationEntry(key=key, translations=translations))
    header = CatalogHeader(
        fields=[
            HeaderField("Language", locale),
            HeaderField("Content-Type", "text/plain; charset=UTF-8"),
            HeaderField("Plural-Forms", DEFAULT_PLURAL_FORMS),
        ]
    )
    return NormalizedLocaleCatalog(locale=locale, header=header, entries=entries)


class LocaleProcessor:
    """Runs the acquire, validate, normalize and encode stages for one locale."""

    def __init__(self, template: TemplateCatalog, config: PipelineConfig, year: int):
        self.template = template
        self.config = config
        self.year = year
        self.normalizer = CatalogNormalizer(config.keep_fuzzy, config.orphan_policy)
        self.encoder = BinaryCatalogEncoder()

    def process(self, locale: str, source: LocaleCatalogSource) -> _LocaleOutcome:
        stage = STAGE_ACQUIRE
        try:
            text = source.fetch()
            stage = STAGE_VALIDATE
            raw = CatalogValidator().validate(text, path=source.path, locale=locale)
            stage = STAGE_NORMALIZE
            normalized = self.normalizer.normalize(raw, self.template, self.year)
            stage = STAGE_ENCODE
            catalog = self.encoder.encode(normalized)
        except LangcError as e:
            logger.warning(f"[{locale}] skipped at {stage}: {e}")
            return _LocaleOutcome(locale, issue=LocaleIssue(locale, stage, e))
        return _LocaleOutcome(locale, catalog=catalog)

    def synthesize(self, locale: str) -> _LocaleOutcome:
        try:
            catalog = self.encoder.encode(synthesize_catalog(self.template, locale))
        except LangcError as e:
            return _LocaleOutcome(locale, issue=LocaleIssue(locale, STAGE_ENCODE, e))
        return _LocaleOutcome(locale, catalog=catalog)


def build_template(source_files: Iterable[Union[str, Path]]) -> tuple[TemplateCatalog, list[ExtractionWarning]]:
    """
    Scan sources and fold them into a template.

    Raises:
        PipelineError: If a source file cannot be read
    """
    scanner = StringScanner()
    try:
        template = TemplateBuilder.build(scanner.scan(source_files))
    except (OSError, UnicodeDecodeError) as e:
        raise PipelineError(f"Cannot build template: {e}", cause=e) from e
    return template, scanner.warnings


def write_atomic(path: Path, data: bytes) -> bool:
    """
    Write data to path through a temporary file and a rename.

    Returns:
        False if the file already had exactly this content and was left alone
    """
    if path.is_file() and path.read_bytes() == data:
        logger.debug(f"Unchanged: {path}")
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    logger.info(f"Wrote {path} ({len(data)} bytes)")
    return True


def compile(
    source_files: Iterable[Union[str, Path]],
    locale_catalogs: Mapping[str, CatalogInput],
    config: Optional[PipelineConfig] = None,
    output_dir: Optional[Union[str, Path]] = None,
) -> CompileResult:
    """
    Compile sources and locale catalogs into binary catalogs and a pack.

    Args:
        source_files: Source files to scan, in order
        locale_catalogs: Catalog per locale tag; a Path is read from disk,
            a str is PO text, or any LocaleCatalogSource
        config: Pipeline settings (defaults when omitted)
        output_dir: When given, catalogs are written to
            `<output_dir>/<source_set>/<locale>.lcat` and the pack to
            `<output_dir>/<source_set>.lpak`

    Returns:
        CompileResult with the pack, the catalog of every locale that made
        it, the template, and an issue for every locale that did not

    Raises:
        PipelineError: If the template, the base locale or the pack fails,
            or a catalog cannot be acquired under strict_acquisition
    """
    config = config or PipelineConfig()
    year = config.year if config.year is not None else datetime.now().year
    base = config.base_locale

    template, warnings = build_template(source_files)

    sources = {locale: _as_source(locale, value) for locale, value in locale_catalogs.items()}
    if base not in sources and not config.synthesize_base:
        raise PipelineError(f"No catalog for base locale '{base}'")

    processor = LocaleProcessor(template, config, year)
    with ThreadPoolExecutor(max_workers=config.workers) as executor:
        futures = [executor.submit(processor.process, locale, source) for locale, source in sources.items()]
        if base not in sources:
            futures.append(executor.submit(processor.synthesize, base))
        outcomes = [future.result() for future in futures]
    outcomes.sort(key=lambda outcome: outcome.locale)

    issues = [o.issue for o in outcomes if o.issue is not None]
    catalogs = {o.locale: o.catalog for o in outcomes if o.catalog is not None}

    failed_acquisitions = [i for i in issues if isinstance(i.error, AcquisitionError)]
    if config.strict_acquisition and failed_acquisitions:
        raise PipelineError(
            f"Could not acquire catalogs for: {', '.join(i.locale for i in failed_acquisitions)}",
            cause=failed_acquisitions[0].error,
            issues=issues,
        )
    for issue in issues:
        if issue.locale == base:
            raise PipelineError(f"Base locale '{base}' failed at {issue.stage}", cause=issue.error, issues=issues)

    try:
        pack = CompactPackEncoder().encode(template, catalogs, base)
    except LangcError as e:
        raise PipelineError(f"Cannot build pack: {e}", cause=e, issues=issues) from e

    result = CompileResult(pack=pack, catalogs=catalogs, template=template, issues=issues, warnings=warnings)
    if output_dir is not None:
        result.written = write_outputs(result, Path(output_dir), config.source_set)
    logger.info(
        f"Compiled {len(catalogs)} locales ({len(issues)} skipped), {len(template)} template keys"
    )
    return result


def write_outputs(result: CompileResult, output_dir: Path, source_set: str) -> list[str]:
    """Write catalogs and pack; returns the paths that changed."""
    written = []
    for locale, catalog in result.catalogs.items():
        path = output_dir / source_set / f"{locale}{CATALOG_SUFFIX}"
        if write_atomic(path, catalog.to_bytes()):
            written.append(str(path))
    pack_path = output_dir / f"{source_set}{PACK_SUFFIX}"
    if write_atomic(pack_path, result.pack.to_bytes()):
        written.append(str(pack_path))
    return written
