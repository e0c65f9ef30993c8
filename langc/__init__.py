"""
langc - Localization Catalog Compiler

Extracts translatable strings from source code into a gettext template,
validates and normalizes the translators' PO files, and compiles them into
binary catalogs merged into one compact multi-locale pack.

Quick start:
    langc extract --source src/ --output po/app.pot
    langc compile --config langc.yaml --source src/ --catalogs po/ --output build/i18n
    langc lookup build/i18n/main.lpak --locale de --msgid "Save"
"""

__version__ = "1.0.0"

from .config import PipelineConfig, load_config
from .errors import (
    AcquisitionError,
    ExtractionWarning,
    FormatCapacityError,
    LangcError,
    ParseError,
    PipelineError,
    ValidationError,
)
from .format_handlers import BinaryCatalog, BinaryCatalogEncoder, CompactPack, CompactPackEncoder
from .models import StringKey, TemplateCatalog
from .normalizer import CatalogNormalizer, OrphanPolicy
from .pipeline import CompileResult, LocaleIssue, compile
from .scanner import StringScanner
from .template import TemplateBuilder
from .validator import CatalogValidator

__all__ = [
    "AcquisitionError",
    "BinaryCatalog",
    "BinaryCatalogEncoder",
    "CatalogNormalizer",
    "CatalogValidator",
    "CompactPack",
    "CompactPackEncoder",
    "CompileResult",
    "ExtractionWarning",
    "FormatCapacityError",
    "LangcError",
    "LocaleIssue",
    "OrphanPolicy",
    "ParseError",
    "PipelineConfig",
    "PipelineError",
    "StringKey",
    "StringScanner",
    "TemplateBuilder",
    "TemplateCatalog",
    "ValidationError",
    "compile",
    "load_config",
]
