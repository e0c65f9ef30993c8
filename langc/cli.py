#!/usr/bin/env python3
"""
langc - Localization Catalog Compiler

Turns translatable strings in source code into compact binary catalogs.
Every command prints a JSON result on stdout; failures print a JSON error
on stderr and exit with status 1.

Commands:
    extract         - Scan sources and write a POT template
    validate        - Check a PO file
    shorten         - Normalize a PO file (drop obsolete/fuzzy entries, references)
    compile-locale  - Compile one PO file into a binary catalog (.lcat) or MO file
    pack            - Merge binary catalogs into a compact pack (.lpak)
    compile         - Run the whole pipeline from a config file
    lookup          - Look up a message in a pack, with base-locale fallback
    inspect         - Summarize a .po/.pot/.mo/.lcat/.lpak file
    formats         - List supported formats

Example Workflow:
    1. langc extract --source src/ --output build/i18n/app.pot
    2. [Translators create po/de.po, po/fr.po from app.pot]
    3. langc compile --config langc.yaml --source src/ --catalogs po/ --output build/i18n
       → Returns: locales compiled, locales skipped and why
    4. langc lookup build/i18n/main.lpak --locale de --msgid "Save"
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from . import __version__
from .acquisition import DirectorySource
from .config import PipelineConfig, load_config
from .errors import LangcError
from .format_handlers import (
    BinaryCatalog,
    BinaryCatalogEncoder,
    CompactPackEncoder,
    CompactPack,
    FormatRegistry,
    MoEncoder,
)
from .models import StringKey
from .normalizer import CatalogNormalizer, OrphanPolicy, shorten_text
from .pipeline import compile as compile_pipeline
from .pipeline import write_atomic
from .scanner import StringScanner, collect_source_files
from .template import TemplateBuilder, read_template, write_pot
from .validator import CatalogValidator

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Log to stderr so stdout stays valid JSON."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _config(args) -> PipelineConfig:
    return load_config(args.config) if getattr(args, "config", None) else PipelineConfig()


def _source_files(sources: list[str]) -> list[Path]:
    files = []
    for source in sources:
        files.extend(collect_source_files(source))
    return files


def _template(path: Optional[str]):
    if not path:
        return None
    return read_template(Path(path).read_text(encoding="utf-8"))


def _normalizer(args, config: PipelineConfig) -> CatalogNormalizer:
    keep_fuzzy = args.keep_fuzzy or config.keep_fuzzy
    orphan_policy = OrphanPolicy(args.orphan_policy) if args.orphan_policy else config.orphan_policy
    return CatalogNormalizer(keep_fuzzy=keep_fuzzy, orphan_policy=orphan_policy)


def cmd_extract(args) -> dict:
    """Scan sources and write a POT file."""
    config = _config(args)
    files = _source_files(args.source)
    scanner = StringScanner()
    catalog = TemplateBuilder.build(scanner.scan(files))

    path_transformer = None
    if args.relative_to:
        root = Path(args.relative_to).resolve()

        def path_transformer(path: str) -> str:
            resolved = Path(path).resolve()
            try:
                return resolved.relative_to(root).as_posix()
            except ValueError:
                return path

    output = write_pot(catalog, args.output, config.pot, path_transformer)
    return {
        "status": "ok",
        "output_file": str(output),
        "files_scanned": len(files),
        "strings": len(catalog),
        "warnings": [w.to_dict() for w in scanner.warnings],
        "summary": f"Extracted {len(catalog)} unique strings from {len(files)} files",
    }


def cmd_validate(args) -> dict:
    """Validate a PO file."""
    validator = CatalogValidator()
    catalog = validator.validate(Path(args.input).read_text(encoding="utf-8"), path=args.input, locale=args.locale)
    live = [e for e in catalog.entries if not e.obsolete]
    return {
        "status": "ok",
        "locale": catalog.locale,
        "entries": len(live),
        "translated": sum(1 for e in live if e.is_translated),
        "fuzzy": sum(1 for e in live if e.fuzzy),
        "obsolete": len(catalog.entries) - len(live),
        "warnings": validator.warnings,
    }


def cmd_shorten(args) -> dict:
    """Normalize a PO file and write it back."""
    config = _config(args)
    text = Path(args.input).read_text(encoding="utf-8")
    raw = CatalogValidator().validate(text, path=args.input, locale=args.locale)
    year = args.year or config.year
    normalized = _normalizer(args, config).normalize(raw, _template(args.template), year)
    output = Path(args.output or args.input)
    changed = write_atomic(output, shorten_text(normalized, config.pot if args.anonymize else None).encode("utf-8"))
    return {
        "status": "ok",
        "output_file": str(output),
        "changed": changed,
        "entries_before": len(raw.entries),
        "entries_after": len(normalized.entries),
    }


def cmd_compile_locale(args) -> dict:
    """Compile one PO file into a binary catalog or an MO file."""
    config = _config(args)
    text = Path(args.input).read_text(encoding="utf-8")
    raw = CatalogValidator().validate(text, path=args.input, locale=args.locale)
    normalized = _normalizer(args, config).normalize(raw, _template(args.template), config.year)
    if args.format == "mo":
        data = MoEncoder().encode(normalized)
    else:
        data = BinaryCatalogEncoder().encode(normalized).to_bytes()
    output = Path(args.output or Path(args.input).with_suffix(f".{args.format}"))
    write_atomic(output, data)
    return {
        "status": "ok",
        "locale": normalized.locale,
        "format": args.format,
        "output_file": str(output),
        "entries": len(normalized.entries),
        "size": len(data),
    }


def cmd_pack(args) -> dict:
    """Merge binary catalogs into a compact pack."""
    catalogs = {}
    for path in args.catalogs:
        catalog = BinaryCatalog(Path(path).read_bytes())
        if catalog.locale in catalogs:
            raise ValueError(f"Locale '{catalog.locale}' given twice ({path})")
        catalogs[catalog.locale] = catalog
    template = _template(args.template)
    pack = CompactPackEncoder().encode(template, catalogs, args.base_locale)
    output = Path(args.output)
    write_atomic(output, pack.to_bytes())
    return {
        "status": "ok",
        "output_file": str(output),
        "base_locale": pack.base_locale,
        "locales": pack.locales,
        "size": len(pack.to_bytes()),
    }


def cmd_compile(args) -> dict:
    """Run the full pipeline."""
    config = _config(args)
    if args.base_locale:
        config = replace(config, base_locale=args.base_locale)
    if args.workers:
        config = replace(config, workers=args.workers)
    sources = DirectorySource(args.catalogs).sources()
    result = compile_pipeline(_source_files(args.source), sources, config, output_dir=args.output)
    data = result.to_dict()
    data["summary"] = (
        f"Compiled {len(result.catalogs)} locales into {config.source_set}.lpak"
        + (f", {len(result.issues)} skipped" if result.issues else "")
    )
    return data


def cmd_lookup(args) -> dict:
    """Look up a message in a pack."""
    pack = CompactPack(Path(args.pack).read_bytes())
    key = StringKey(args.context or "", args.msgid, args.plural)
    resolved = pack.resolve(args.locale, key)
    if args.plural is not None:
        text = pack.ngettext(args.locale, args.msgid, args.plural, args.count, args.context or "")
    else:
        text = pack.gettext(args.locale, args.msgid, args.context or "")
    return {
        "status": "ok" if resolved else "missing",
        "locale": args.locale,
        "found_in": resolved[0] if resolved else None,
        "translations": list(resolved[1]) if resolved else [],
        "text": text,
    }


def cmd_inspect(args) -> dict:
    """Summarize a catalog file."""
    data = Path(args.input).read_bytes()
    handler = FormatRegistry.detect_format(args.input, data)
    return {"status": "ok", "file": args.input, **handler.summarize(data)}


def cmd_formats(args) -> dict:
    """List supported formats."""
    formats = FormatRegistry.list_formats()
    return {
        "status": "ok",
        "formats": formats,
        "summary": f"{len(formats)} formats supported: {', '.join(f['name'] for f in formats)}",
    }


def _add_normalize_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--template", "-t", help="POT template; entries it lacks are orphans")
    parser.add_argument("--locale", "-l", help="Locale tag (default: Language header, then file name)")
    parser.add_argument("--keep-fuzzy", action="store_true", help="Keep fuzzy translations")
    parser.add_argument("--orphan-policy", choices=[p.value for p in OrphanPolicy],
                        help="Handling of entries missing from the template")


COMMANDS = {
    "extract": cmd_extract,
    "validate": cmd_validate,
    "shorten": cmd_shorten,
    "compile-locale": cmd_compile_locale,
    "pack": cmd_pack,
    "compile": cmd_compile,
    "lookup": cmd_lookup,
    "inspect": cmd_inspect,
    "formats": cmd_formats,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="langc",
        description="langc - Localization Catalog Compiler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract strings into a template
  langc extract --source src/ --output po/app.pot --relative-to .

  # Check and clean a translation
  langc validate po/de.po
  langc shorten po/de.po --template po/app.pot --anonymize --config langc.yaml

  # Compile step by step
  langc compile-locale po/de.po --template po/app.pot --output out/de.lcat
  langc pack out/en.lcat out/de.lcat --template po/app.pot --base-locale en --output out/main.lpak

  # Or all at once
  langc compile --config langc.yaml --source src/ --catalogs po/ --output out/

  # gettext runtimes
  langc compile-locale po/de.po --format mo --output locale/de/LC_MESSAGES/app.mo

  # Query a pack
  langc lookup out/main.lpak --locale de --msgid "{0} file" --plural "{0} files" --count 3
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging on stderr")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # extract command
    extract_parser = subparsers.add_parser("extract", help="Scan sources and write a POT template")
    extract_parser.add_argument("--source", "-s", nargs="+", required=True, help="Source files or directories")
    extract_parser.add_argument("--output", "-o", required=True, help="POT file to write")
    extract_parser.add_argument("--config", help="YAML configuration file (POT header values)")
    extract_parser.add_argument("--relative-to", help="Write reference paths relative to this directory")

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a PO file")
    validate_parser.add_argument("input", help="PO file")
    validate_parser.add_argument("--locale", "-l", help="Locale tag")

    # shorten command
    shorten_parser = subparsers.add_parser("shorten", help="Normalize a PO file")
    shorten_parser.add_argument("input", help="PO file")
    shorten_parser.add_argument("--output", "-o", help="Output file (default: rewrite input)")
    shorten_parser.add_argument("--year", type=int, help="Year replacing the YEAR placeholder")
    shorten_parser.add_argument("--anonymize", action="store_true",
                                help="Fill title/copyright/package placeholders, strip e-mails and Last-Translator")
    _add_normalize_options(shorten_parser)

    # compile-locale command
    locale_parser = subparsers.add_parser("compile-locale", help="Compile a PO file into a .lcat catalog or .mo file")
    locale_parser.add_argument("input", help="PO file")
    locale_parser.add_argument("--format", "-f", choices=["lcat", "mo"], default="lcat",
                               help="Output format (default: lcat)")
    locale_parser.add_argument("--output", "-o", help="Output file (default: input with the format's suffix)")
    _add_normalize_options(locale_parser)

    # pack command
    pack_parser = subparsers.add_parser("pack", help="Merge .lcat catalogs into a .lpak pack")
    pack_parser.add_argument("catalogs", nargs="+", help=".lcat files")
    pack_parser.add_argument("--template", "-t", required=True, help="POT template")
    pack_parser.add_argument("--base-locale", "-b", required=True, help="Fallback locale")
    pack_parser.add_argument("--output", "-o", required=True, help="Pack file to write")

    # compile command
    compile_parser = subparsers.add_parser("compile", help="Run the whole pipeline")
    compile_parser.add_argument("--config", help="YAML configuration file")
    compile_parser.add_argument("--source", "-s", nargs="+", required=True, help="Source files or directories")
    compile_parser.add_argument("--catalogs", "-c", required=True, help="Directory of <locale>.po files")
    compile_parser.add_argument("--output", "-o", required=True, help="Output directory")
    compile_parser.add_argument("--base-locale", "-b", help="Override base_locale")
    compile_parser.add_argument("--workers", "-w", type=int, help="Override workers")

    # lookup command
    lookup_parser = subparsers.add_parser("lookup", help="Look up a message in a pack")
    lookup_parser.add_argument("pack", help=".lpak file")
    lookup_parser.add_argument("--locale", "-l", required=True, help="Locale to look in")
    lookup_parser.add_argument("--msgid", "-m", required=True, help="Source text")
    lookup_parser.add_argument("--context", help="Message context")
    lookup_parser.add_argument("--plural", "-p", help="Plural source text")
    lookup_parser.add_argument("--count", "-n", type=int, default=1, help="Count for plural selection (default: 1)")

    # inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Summarize a catalog file")
    inspect_parser.add_argument("input", help=".po, .pot, .lcat or .lpak file")

    # formats command
    subparsers.add_parser("formats", help="List supported formats")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose)

    try:
        result = COMMANDS[args.command](args)
        print(json.dumps(result, indent=2, ensure_ascii=False))
    except LangcError as e:
        print(json.dumps({"status": "error", **e.to_dict()}, ensure_ascii=False), file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(json.dumps({
            "status": "error",
            "error": str(e),
            "error_type": type(e).__name__,
        }), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
